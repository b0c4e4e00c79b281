"""Configuration management for PodSkip."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class LLMConfig:
    """Configuration for advanced (LLM-based) detection."""

    provider: str = "openrouter"
    model: str = "google/gemini-2.5-flash"
    api_key_env: str = "OPENROUTER_API_KEY"
    base_url: str = "https://openrouter.ai/api/v1"
    temperature: float = 0.2
    reasoning_effort: str = "none"

    @property
    def api_key(self) -> str | None:
        """Get API key from environment variable."""
        return os.environ.get(self.api_key_env)


@dataclass
class DetectConfig:
    """Thresholds for the segment validation pipeline."""

    min_ad_duration: float = 8.0
    min_segment_duration: float = 3.0
    min_confidence: int = 60
    merge_gap: float = 8.0
    min_split_duration: float = 2.0
    max_expected_segments: int = 15
    basic_min_run: float = 6.0


@dataclass
class PlaybackConfig:
    """Timing for the playback skip engine."""

    tick_interval: float = 0.2  # 5 samples/sec
    end_margin: float = 0.5
    seek_tolerance: float = 0.5


@dataclass
class Config:
    """Main configuration for PodSkip."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    detect: DetectConfig = field(default_factory=DetectConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)


def load_config(path: str | None = None) -> Config:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, returns default config.

    Returns:
        A Config object with loaded or default values.
    """
    if path is None:
        return Config()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        import tomli

        with open(config_path, "rb") as f:
            data = tomli.load(f)
    except ImportError:
        raise ImportError("tomli is required for config loading. Run: pip install tomli")

    return _parse_config(data)


def _parse_config(data: dict[str, Any]) -> Config:
    """Parse configuration dictionary into Config object.

    Args:
        data: Dictionary from TOML file.

    Returns:
        Parsed Config object.
    """
    llm_data = data.get("llm", {})
    detect_data = data.get("detect", {})
    playback_data = data.get("playback", {})

    llm_defaults = LLMConfig()
    llm_config = LLMConfig(
        provider=llm_data.get("provider", llm_defaults.provider),
        model=llm_data.get("model", llm_defaults.model),
        api_key_env=llm_data.get("api_key_env", llm_defaults.api_key_env),
        base_url=llm_data.get("base_url", llm_defaults.base_url),
        temperature=llm_data.get("temperature", llm_defaults.temperature),
        reasoning_effort=llm_data.get("reasoning_effort", llm_defaults.reasoning_effort),
    )

    detect_defaults = DetectConfig()
    detect_config = DetectConfig(
        min_ad_duration=detect_data.get("min_ad_duration", detect_defaults.min_ad_duration),
        min_segment_duration=detect_data.get(
            "min_segment_duration", detect_defaults.min_segment_duration
        ),
        min_confidence=detect_data.get("min_confidence", detect_defaults.min_confidence),
        merge_gap=detect_data.get("merge_gap", detect_defaults.merge_gap),
        min_split_duration=detect_data.get(
            "min_split_duration", detect_defaults.min_split_duration
        ),
        max_expected_segments=detect_data.get(
            "max_expected_segments", detect_defaults.max_expected_segments
        ),
        basic_min_run=detect_data.get("basic_min_run", detect_defaults.basic_min_run),
    )

    playback_defaults = PlaybackConfig()
    playback_config = PlaybackConfig(
        tick_interval=playback_data.get("tick_interval", playback_defaults.tick_interval),
        end_margin=playback_data.get("end_margin", playback_defaults.end_margin),
        seek_tolerance=playback_data.get("seek_tolerance", playback_defaults.seek_tolerance),
    )

    return Config(
        llm=llm_config,
        detect=detect_config,
        playback=playback_config,
    )
