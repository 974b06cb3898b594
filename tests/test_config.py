"""
Tests for environment-driven configuration.
"""

from pathlib import Path

from clone_gen.config import DEFAULT_MODEL, ModelSettings, PipelineConfig


def test_defaults():
    """Test built-in defaults."""
    config = PipelineConfig()
    assert config.model.model == DEFAULT_MODEL
    assert config.model.max_tokens == 8192
    assert config.model.timeout_seconds == 180.0
    assert config.max_continuation_attempts == 5
    assert config.max_images == 5
    assert config.max_revision_files == 10
    assert config.markup_sample_chars == 1000


def test_from_env(monkeypatch, tmp_path):
    """Test reading settings from environment variables."""
    monkeypatch.setenv("OPENROUTER_API_KEY", "env-key")
    monkeypatch.setenv("GENERATION_MODEL", "acme/model-1")
    monkeypatch.setenv("GENERATION_TEMPERATURE", "0.4")
    monkeypatch.setenv("MAX_CONTINUATION_ATTEMPTS", "3")
    monkeypatch.setenv("ENABLE_REVISION", "false")

    config = PipelineConfig.from_env(output_dir=tmp_path)

    assert config.model.api_key == "env-key"
    assert config.model.model == "acme/model-1"
    assert config.model.temperature == 0.4
    assert config.max_continuation_attempts == 3
    assert not config.enable_revision
    assert config.output_dir == Path(tmp_path)


def test_model_settings_from_env_defaults(monkeypatch):
    """Test fallbacks when variables are unset."""
    for name in ("OPENROUTER_BASE_URL", "APP_TITLE", "GENERATION_MAX_TOKENS"):
        monkeypatch.delenv(name, raising=False)

    settings = ModelSettings.from_env()

    assert settings.base_url == "https://openrouter.ai/api/v1"
    assert settings.app_title == "CloneAI.dev"
    assert settings.max_tokens == 8192
