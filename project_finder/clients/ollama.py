import asyncio
import logging
from typing import List, Optional

import requests

from .base import EmbeddingClient

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "nomic-embed-text"


class OllamaEmbeddingClient(EmbeddingClient):

    name = "Ollama"

    def __init__(self, base_url: str, model: str = DEFAULT_MODEL, timeout: float = 60.0,
                 **kwargs):
        super().__init__(**kwargs)
        self.model = model
        self.timeout = timeout
        # Accept either the server root or any /api/... endpoint
        if "/api/" in base_url:
            self._api_root = base_url.rsplit("/api/", 1)[0]
        else:
            self._api_root = base_url.rstrip("/")

    def _post(self, texts: List[str]) -> List[Optional[List[float]]]:
        url = f"{self._api_root}/api/embed"
        payload = {"model": self.model, "input": texts}
        response = requests.post(url, json=payload, timeout=(10, self.timeout))
        response.raise_for_status()
        embeddings = response.json().get("embeddings") or []
        logger.debug("[Ollama] Got %d embeddings for %d texts", len(embeddings), len(texts))
        return [e if e else None for e in embeddings] + [None] * (len(texts) - len(embeddings))

    async def _embed(self, texts: List[str]) -> List[Optional[List[float]]]:
        return await asyncio.to_thread(self._post, texts)
