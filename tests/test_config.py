"""
Unit tests for project_finder.config
"""

from __future__ import annotations

import pytest

from project_finder.config import Config

_ENV_KEYS = [
    "PF_CACHE_TTL_SECONDS", "PF_UPDATE_INTERVAL_SECONDS", "PF_SEARCH_LIMIT",
    "PF_SEARCH_THRESHOLD", "PF_BATCH_TOKEN_LIMIT", "PF_EMBEDDING_PROVIDER",
    "PF_EMBEDDING_MODEL", "PF_EMBEDDING_DIMENSIONS", "PF_EMBEDDING_MAX_RETRIES",
    "PF_EMBEDDING_RETRY_DELAY", "OPENAI_API_KEY", "OPENAI_BASE_URL",
    "OLLAMA_BASE_URL", "PF_VECTOR_STORE", "PF_VECTOR_STORE_PATH",
    "PF_SHOW_PROGRESS", "PF_LOG_DIR",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    # keep a real ~/.project_finder.yaml out of the way
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    def test_defaults(self):
        config = Config()
        assert config.CACHE_TTL_SECONDS == 3600
        assert config.UPDATE_INTERVAL_SECONDS == 600
        assert config.BATCH_TOKEN_LIMIT == 8000
        assert config.SEARCH_LIMIT == 5
        assert config.SEARCH_THRESHOLD == 0.7
        assert config.EMBEDDING_PROVIDER == "openai"
        assert config.VECTOR_STORE == "sqlite"
        assert config.SHOW_PROGRESS is True
        assert config.semantic_enabled


class TestPriority:
    def test_yaml_overrides_defaults(self):
        config = Config({"search_limit": 10, "vector_store": "memory",
                         "openai": {"api_key": "sk-yaml"}})
        assert config.SEARCH_LIMIT == 10
        assert config.VECTOR_STORE == "memory"
        assert config.OPENAI_API_KEY == "sk-yaml"

    def test_env_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("PF_SEARCH_LIMIT", "3")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        config = Config({"search_limit": 10, "openai": {"api_key": "sk-yaml"}})
        assert config.SEARCH_LIMIT == 3
        assert config.OPENAI_API_KEY == "sk-env"

    def test_env_values_are_cast(self, monkeypatch):
        monkeypatch.setenv("PF_SEARCH_THRESHOLD", "0.5")
        monkeypatch.setenv("PF_CACHE_TTL_SECONDS", "60")
        config = Config()
        assert config.SEARCH_THRESHOLD == 0.5
        assert config.CACHE_TTL_SECONDS == 60.0

    @pytest.mark.parametrize("value,expected", [
        ("1", True), ("true", True), ("YES", True), ("0", False), ("off", False),
    ])
    def test_bool_env(self, monkeypatch, value, expected):
        monkeypatch.setenv("PF_SHOW_PROGRESS", value)
        assert Config().SHOW_PROGRESS is expected

    def test_provider_none_disables_semantic(self, monkeypatch):
        monkeypatch.setenv("PF_EMBEDDING_PROVIDER", "none")
        assert not Config().semantic_enabled


class TestLoad:
    def test_loads_file_from_cwd(self, tmp_path):
        (tmp_path / ".project_finder.yaml").write_text(
            "update_interval_seconds: 30\nembedding_provider: ollama\n", encoding="utf-8"
        )
        config = Config.load()
        assert config.UPDATE_INTERVAL_SECONDS == 30
        assert config.EMBEDDING_PROVIDER == "ollama"

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("search_limit: 7\n", encoding="utf-8")
        assert Config.load(str(path)).SEARCH_LIMIT == 7

    def test_missing_explicit_path_uses_defaults(self, tmp_path):
        assert Config.load(str(tmp_path / "nope.yaml")).SEARCH_LIMIT == 5

    def test_invalid_yaml_ignored(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("search_limit: [unclosed\n", encoding="utf-8")
        assert Config.load(str(path)).SEARCH_LIMIT == 5


class TestToDict:
    def test_api_key_masked(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-secret")
        data = Config().to_dict()
        assert data["openai"]["api_key"] == "***"
        assert "sk-secret" not in str(data)

    def test_uses_yaml_key_names(self):
        data = Config({"search_limit": 9}).to_dict()
        assert data["search_limit"] == 9
        assert data["vector_store_path"] == ".project_finder/vectors.db"
