# tests/unit/config/test_unit_settings.py — v1
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest

from assetforge.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_prompt_llm(self):
        s = Settings(_env_file=None)
        assert s.prompt_llm_provider == "openai"
        assert s.prompt_llm_model == "gpt-4"
        assert s.prompt_llm_temperature == 0.7
        assert s.prompt_llm_max_tokens == 200

    def test_default_polling(self):
        s = Settings(_env_file=None)
        assert s.poll_interval_s == 5.0
        assert s.poll_max_attempts == 60
        assert s.poll_backoff_factor == 1.0
        assert s.poll_max_interval_s is None

    def test_default_registry(self):
        s = Settings(_env_file=None)
        assert s.pipeline_retention_s == 3600.0
        assert s.sweep_interval_s == 300.0

    def test_default_heights(self):
        s = Settings(_env_file=None)
        assert s.default_character_height == 1.83
        assert s.default_rig_height == 1.7

    def test_default_style(self):
        assert Settings(_env_file=None).default_style == "runescape2007"

    def test_default_assets_root(self):
        assert Settings(_env_file=None).assets_root == Path("gdd-assets")


class TestSettingsValidation:
    def test_non_positive_poll_interval(self):
        with pytest.raises(ConfigurationError, match="POLL_INTERVAL_S"):
            Settings(_env_file=None, poll_interval_s=0)

    def test_zero_attempts(self):
        with pytest.raises(ConfigurationError, match="RIGGING_MAX_ATTEMPTS"):
            Settings(_env_file=None, rigging_max_attempts=0)

    def test_backoff_below_one(self):
        with pytest.raises(ConfigurationError, match="POLL_BACKOFF_FACTOR"):
            Settings(_env_file=None, poll_backoff_factor=0.5)

    def test_max_interval_below_interval(self):
        with pytest.raises(ConfigurationError, match="POLL_MAX_INTERVAL_S"):
            Settings(_env_file=None, poll_interval_s=10, poll_max_interval_s=5)

    def test_temperature_range(self):
        with pytest.raises(ConfigurationError, match="TEMPERATURE"):
            Settings(_env_file=None, prompt_llm_temperature=3.0)

    def test_errors_joined(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(_env_file=None, sweep_interval_s=0, http_timeout_s=0)
        assert "SWEEP_INTERVAL_S" in str(exc_info.value)
        assert "HTTP_TIMEOUT_S" in str(exc_info.value)


class TestImageServer:
    def test_trailing_slash_stripped(self):
        s = Settings(_env_file=None, image_server_url="https://img.example.com/")
        assert s.image_server_base == "https://img.example.com"

    def test_unset(self):
        assert Settings(_env_file=None).image_server_base == ""


class TestLoadSettings:
    def test_overrides(self):
        s = load_settings(_env_file=None, poll_max_attempts=3)
        assert s.poll_max_attempts == 3

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("MESHY_API_KEY", "msy-test")
        monkeypatch.setenv("PIPELINE_RETENTION_S", "60")
        s = load_settings(_env_file=None)
        assert s.meshy_api_key == "msy-test"
        assert s.pipeline_retention_s == 60.0

    def test_type_error_wrapped(self):
        with pytest.raises(ConfigurationError):
            load_settings(_env_file=None, poll_max_attempts="many")

    def test_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("PROMPT_LLM_PROVIDER=anthropic\nLOG_FORMAT=text\n")
        s = load_settings(_env_file=env)
        assert s.prompt_llm_provider == "anthropic"
        assert s.log_format == "text"
