"""
OpenAI embeddings client. Works with OpenAI and any provider exposing the
OpenAI ``/embeddings`` API (set ``base_url``).
"""

from typing import List, Optional

from .base import EmbeddingClient, EmbeddingConfigError

DEFAULT_MODEL = "text-embedding-3-large"
DEFAULT_DIMENSIONS = 1536


class OpenAIEmbeddingClient(EmbeddingClient):

    name = "OpenAI"

    def __init__(self, api_key: str, base_url: Optional[str] = None,
                 model: str = DEFAULT_MODEL, dimensions: Optional[int] = DEFAULT_DIMENSIONS,
                 **kwargs):
        super().__init__(**kwargs)
        if not api_key:
            raise EmbeddingConfigError(
                "OpenAI API key is required. Set OPENAI_API_KEY or openai.api_key "
                "in .project_finder.yaml")
        try:
            import openai
        except ImportError as exc:
            raise ImportError(
                "openai package is required for OpenAI embeddings. "
                "Install it with: pip install 'project_finder[semantic]'"
            ) from exc

        self.model = model
        self.dimensions = dimensions
        self._client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url or None)

    async def _embed(self, texts: List[str]) -> List[Optional[List[float]]]:
        params = {
            "model": self.model,
            "input": texts,
            "encoding_format": "float",
        }
        if self.dimensions:
            params["dimensions"] = self.dimensions
        response = await self._client.embeddings.create(**params)

        # Providers may return items out of order; index is authoritative.
        by_index = {item.index: item.embedding for item in response.data}
        return [by_index.get(i) for i in range(len(texts))]
