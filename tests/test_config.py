"""Tests for configuration loading."""

import pytest

from podskip.config import Config, LLMConfig, load_config


class TestLoadConfig:
    def test_defaults_without_path(self):
        config = load_config()
        assert isinstance(config, Config)
        assert config.llm.provider == "openrouter"
        assert config.llm.model == "google/gemini-2.5-flash"
        assert config.detect.min_ad_duration == 8.0
        assert config.detect.min_confidence == 60
        assert config.detect.merge_gap == 8.0
        assert config.playback.tick_interval == 0.2
        assert config.playback.end_margin == 0.5

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.toml"))

    def test_partial_file_keeps_defaults(self, tmp_path):
        path = tmp_path / "podskip.toml"
        path.write_text(
            """
[llm]
model = "openai/gpt-5-mini"
reasoning_effort = "low"

[detect]
min_confidence = 75
merge_gap = 5.0

[playback]
end_margin = 1.0
"""
        )

        config = load_config(str(path))

        assert config.llm.model == "openai/gpt-5-mini"
        assert config.llm.reasoning_effort == "low"
        assert config.llm.temperature == 0.2
        assert config.detect.min_confidence == 75
        assert config.detect.merge_gap == 5.0
        assert config.detect.min_ad_duration == 8.0
        assert config.playback.end_margin == 1.0
        assert config.playback.seek_tolerance == 0.5


class TestLLMConfig:
    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("PODSKIP_TEST_KEY", "secret")
        assert LLMConfig(api_key_env="PODSKIP_TEST_KEY").api_key == "secret"

    def test_api_key_missing(self, monkeypatch):
        monkeypatch.delenv("PODSKIP_TEST_KEY", raising=False)
        assert LLMConfig(api_key_env="PODSKIP_TEST_KEY").api_key is None
