"""Unit tests for settings loading.

Tests cover:
- Defaults when the config file is missing
- YAML sections overriding defaults
- Environment overrides (API_TYPE, MODEL_NAME, LOG_LEVEL, TRANSLATE_CONCURRENCY)
- Out-of-range TRANSLATE_CONCURRENCY ignored
- Provider name normalization for the LLM factory
"""

from unittest.mock import patch

import pytest
import yaml

from astloom import setting
from astloom.core.model import normalize_provider
from astloom.setting import AstloomSettings, get_settings, load_settings

_ENV_VARS = (
    "API_TYPE", "API_KEY", "MODEL_NAME", "BASE_URL", "LOG_LEVEL",
    "TRANSLATE_CONCURRENCY", "ASTLOOM_CONFIG",
)


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """No ambient environment or .env file leaks into the settings."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    with patch.object(setting, "load_dotenv"):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()


def _write_config(tmp_path, data) -> str:
    path = tmp_path / "astloom.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


# ── Tests: files ──────────────────────────────────────────────────────────


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(str(tmp_path / "none.yaml"))
        assert settings == AstloomSettings()
        assert settings.llm.model_name == "gpt-4o"
        assert settings.translate.concurrency == 8
        assert settings.pipeline.max_attempts == 3

    def test_yaml_sections(self, tmp_path):
        path = _write_config(tmp_path, {
            "llm": {"api_type": "ollama", "model_name": "qwen2.5-coder"},
            "translate": {"concurrency": 4, "type_mappings": {"Money": "decimal.Decimal"}},
            "pipeline": {"backoff": True},
        })
        settings = load_settings(path)
        assert settings.llm.api_type == "ollama"
        assert settings.translate.concurrency == 4
        assert settings.translate.type_mappings == {"Money": "decimal.Decimal"}
        assert settings.pipeline.backoff
        assert settings.logging.level == "INFO"

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ASTLOOM_CONFIG", _write_config(tmp_path, {"logging": {"level": "DEBUG"}}))
        assert load_settings().logging.level == "DEBUG"

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "astloom.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_settings(str(path))

    def test_get_settings_is_cached(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ASTLOOM_CONFIG", str(tmp_path / "none.yaml"))
        assert get_settings() is get_settings()


# ── Tests: environment ────────────────────────────────────────────────────


class TestEnvOverrides:
    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        path = _write_config(tmp_path, {"llm": {"model_name": "gpt-4o-mini"}})
        monkeypatch.setenv("MODEL_NAME", "gpt-4.1")
        monkeypatch.setenv("API_TYPE", "anthropic")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        settings = load_settings(path)
        assert settings.llm.model_name == "gpt-4.1"
        assert settings.llm.api_type == "anthropic"
        assert settings.logging.level == "WARNING"

    def test_translate_concurrency(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TRANSLATE_CONCURRENCY", "16")
        assert load_settings(str(tmp_path / "none.yaml")).translate.concurrency == 16

    @pytest.mark.parametrize("raw", ["0", "33", "lots"])
    def test_invalid_concurrency_ignored(self, tmp_path, monkeypatch, raw):
        path = _write_config(tmp_path, {"translate": {"concurrency": 5}})
        monkeypatch.setenv("TRANSLATE_CONCURRENCY", raw)
        assert load_settings(path).translate.concurrency == 5


# ── Tests: providers ──────────────────────────────────────────────────────


class TestNormalizeProvider:
    def test_aliases(self):
        assert normalize_provider("OpenAI") == "openai"
        assert normalize_provider("claude") == "anthropic"
        assert normalize_provider("local") == "ollama"

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unsupported api_type"):
            normalize_provider("groq")
