"""
Configuration: loads settings from .project_finder.yaml, environment
variables, and built-in defaults (priority: CLI args > env > YAML > defaults).
"""

import os

import yaml


_DEFAULTS = {
    "cache_ttl_seconds": 3600,
    "update_interval_seconds": 600,
    "batch_token_limit": 8000,
    "search_limit": 5,
    "search_threshold": 0.7,
    "embedding_provider": "openai",
    "embedding_model": "text-embedding-3-large",
    "embedding_dimensions": 1536,
    "embedding_max_retries": 3,
    "embedding_retry_delay": 1.0,
    "openai_api_key": "",
    "openai_base_url": "https://api.openai.com/v1",
    "ollama_base_url": "http://localhost:11434",
    "vector_store": "sqlite",
    "vector_store_path": ".project_finder/vectors.db",
    "show_progress": True,
    "log_dir": ".project_finder/logs",
}

# Config file search locations
_CONFIG_FILENAMES = [".project_finder.yaml", ".project_finder.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    for d in (os.getcwd(), os.path.expanduser("~")):
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Project finder configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .project_finder.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return _DEFAULTS[yaml_key]

        def _get_bool(env_key: str, yaml_key: str) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() in ("1", "true", "yes")
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return _DEFAULTS[yaml_key]

        # Cache and refresh cadence
        self.CACHE_TTL_SECONDS = _get("PF_CACHE_TTL_SECONDS", "cache_ttl_seconds", float)
        self.UPDATE_INTERVAL_SECONDS = _get("PF_UPDATE_INTERVAL_SECONDS",
                                            "update_interval_seconds", float)

        # Search defaults
        self.SEARCH_LIMIT = _get("PF_SEARCH_LIMIT", "search_limit", int)
        self.SEARCH_THRESHOLD = _get("PF_SEARCH_THRESHOLD", "search_threshold", float)

        # Embeddings
        self.BATCH_TOKEN_LIMIT = _get("PF_BATCH_TOKEN_LIMIT", "batch_token_limit", int)
        self.EMBEDDING_PROVIDER = _get("PF_EMBEDDING_PROVIDER", "embedding_provider")
        self.EMBEDDING_MODEL = _get("PF_EMBEDDING_MODEL", "embedding_model")
        self.EMBEDDING_DIMENSIONS = _get("PF_EMBEDDING_DIMENSIONS",
                                         "embedding_dimensions", int)
        self.EMBEDDING_MAX_RETRIES = _get("PF_EMBEDDING_MAX_RETRIES",
                                          "embedding_max_retries", int)
        self.EMBEDDING_RETRY_DELAY = _get("PF_EMBEDDING_RETRY_DELAY",
                                          "embedding_retry_delay", float)

        # OpenAI / compatible provider
        openai_section = yd.get("openai", {}) if isinstance(yd.get("openai"), dict) else {}
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY") or openai_section.get(
            "api_key", _DEFAULTS["openai_api_key"])
        self.OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or openai_section.get(
            "base_url", _DEFAULTS["openai_base_url"])

        self.OLLAMA_BASE_URL = _get("OLLAMA_BASE_URL", "ollama_base_url")

        # Vector store
        self.VECTOR_STORE = _get("PF_VECTOR_STORE", "vector_store")
        self.VECTOR_STORE_PATH = _get("PF_VECTOR_STORE_PATH", "vector_store_path")

        # Output
        self.SHOW_PROGRESS = _get_bool("PF_SHOW_PROGRESS", "show_progress")
        self.LOG_DIR = _get("PF_LOG_DIR", "log_dir")

    @property
    def semantic_enabled(self) -> bool:
        """False when embeddings are switched off (provider ``none``)."""
        return (self.EMBEDDING_PROVIDER or "").lower() != "none"

    def to_dict(self) -> dict:
        """Export settings using their YAML key names."""
        return {
            "cache_ttl_seconds": self.CACHE_TTL_SECONDS,
            "update_interval_seconds": self.UPDATE_INTERVAL_SECONDS,
            "batch_token_limit": self.BATCH_TOKEN_LIMIT,
            "search_limit": self.SEARCH_LIMIT,
            "search_threshold": self.SEARCH_THRESHOLD,
            "embedding_provider": self.EMBEDDING_PROVIDER,
            "embedding_model": self.EMBEDDING_MODEL,
            "embedding_dimensions": self.EMBEDDING_DIMENSIONS,
            "embedding_max_retries": self.EMBEDDING_MAX_RETRIES,
            "embedding_retry_delay": self.EMBEDDING_RETRY_DELAY,
            "openai": {
                "api_key": "***" if self.OPENAI_API_KEY else "",
                "base_url": self.OPENAI_BASE_URL,
            },
            "ollama_base_url": self.OLLAMA_BASE_URL,
            "vector_store": self.VECTOR_STORE,
            "vector_store_path": self.VECTOR_STORE_PATH,
            "show_progress": self.SHOW_PROGRESS,
            "log_dir": self.LOG_DIR,
        }

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
