"""LLM-based skippable segment detection."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from .ad_response import extract_json_array, parse_segment_response, to_ad_segments
from .config import Config
from .models import AdSegment, Episode
from .segments import validate_and_mitigate
from .transcript import preprocess_transcript

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMModel:
    """A model available through OpenRouter."""

    id: str
    display_name: str
    price_per_million: float
    context_window: int
    supports_temperature: bool = True


LLM_MODELS = [
    LLMModel("google/gemini-2.0-flash-lite-001", "Gemini 2.0 Flash-Lite ($0.07/M)", 0.07, 1_000_000),
    LLMModel("google/gemini-2.0-flash-001", "Gemini 2.0 Flash ($0.10/M)", 0.10, 1_000_000),
    LLMModel("google/gemini-2.5-flash", "Gemini 2.5 Flash ($0.15/M)", 0.15, 1_000_000),
    LLMModel("openai/gpt-5-mini", "GPT-5 Mini ($0.25/M)", 0.25, 400_000, supports_temperature=False),
    LLMModel("meta-llama/llama-4-maverick", "Llama 4 Maverick ($0.22/M)", 0.22, 1_000_000),
    LLMModel("anthropic/claude-haiku-4.5", "Claude Haiku 4.5 ($1.00/M)", 1.00, 200_000),
]

DEFAULT_LLM_MODEL = "google/gemini-2.5-flash"

SYSTEM_PROMPT = """You find SKIPPABLE SEGMENTS in podcast transcripts: advertisements,
self-promotion, show intros/outros and closing credits. Never include real episode content.
If in doubt, leave it out. Missing part of an ad is better than marking content.

Speaker labels such as "Advertiser" or "Host" are best guesses. Judge by what is said.

The transcript carries inline timestamps like [12:30]. Use them for exact start and end times.
Back-to-back segments should share a boundary: the second starts where the first ends.

Segment types (use exactly these values):
- "advertisement": paid sponsor reads
- "self-promotion": e.g. "check out our other podcast", merch, Patreon
- "intro/outro": standard show intro or outro (NOT episode previews or recaps)
- "closing credits": e.g. "produced by X, distributed by Y"

Do NOT mark:
- hosts talking about a sponsor's product as part of the conversation
- one-sentence sponsor thank-yous followed straight by content
- guests mentioning their own company during an interview
- genuine recommendations, episode previews, recaps, listener Q&A

Rules:
- Episode duration: {{DURATION}} seconds. All times must be within [0, {{DURATION}}].
- startTime < endTime. Segments must not overlap.
- Only report segments with confidence 60 or higher (80-100 clear, 60-79 likely).
- End a segment at the very start of the transition back to the show.

Respond with ONLY a JSON array:
[
  {
    "startTime": "2:00",
    "endTime": "2:32",
    "confidence": 95,
    "type": "advertisement",
    "description": "Meal kit service, code: ABC123"
  }
]
Times are strings in M:SS or H:MM:SS format. Return [] if nothing is skippable."""


class DetectionError(Exception):
    """Advanced detection could not be run."""

    pass


def get_model(model_id: str) -> LLMModel:
    """Look up a model, falling back to the default for unknown ids."""
    for model in LLM_MODELS:
        if model.id == model_id:
            return model
    logger.warning(f"Unknown model {model_id}, using {DEFAULT_LLM_MODEL}")
    return get_model(DEFAULT_LLM_MODEL)


def build_messages(episode: Episode) -> list[dict[str, str]]:
    """Build the chat messages for an episode.

    Raises:
        DetectionError: If the episode has no transcript.
    """
    transcript = episode.transcript
    if transcript is None:
        raise DetectionError(f"No transcript available for episode {episode.id}")

    system_prompt = SYSTEM_PROMPT.replace("{{DURATION}}", str(int(transcript.duration)))

    user_content = f"""PODCAST NAME:
{episode.feed_title or "Unknown Podcast"}

PODCAST EPISODE TITLE:
{episode.title}

PODCAST EPISODE LENGTH (in seconds):
{transcript.duration}

EPISODE TRANSCRIPT WITH TIME-CODES:
{preprocess_transcript(transcript)}
"""

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_content},
    ]


class SegmentLLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def detect(self, episode: Episode) -> list[AdSegment]:
        """Detect skippable segments in an episode's transcript.

        Args:
            episode: Episode with a transcript.

        Returns:
            The validated, non-overlapping segment set.
        """
        pass


class OpenRouterClient(SegmentLLMClient):
    """OpenRouter client using the OpenAI-compatible chat API."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_LLM_MODEL,
        base_url: str = "https://openrouter.ai/api/v1",
        config: Config | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: OpenRouter API key.
            model: Model id from LLM_MODELS.
            base_url: API base URL.
            config: Configuration for sampling and pipeline thresholds.
        """
        self.api_key = api_key
        self.model = get_model(model)
        self.base_url = base_url
        self.config = config or Config()

    def _create_client(self) -> Any:
        try:
            from openai import AsyncOpenAI
        except ImportError:
            raise ImportError("openai is required. Run: pip install openai")

        return AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            default_headers={"X-Title": "PodSkip"},
        )

    def _request_params(self, episode: Episode) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": self.model.id,
            "messages": build_messages(episode),
            "response_format": {"type": "json_object"},
            # Sent even when "none" so the level is explicit
            "extra_body": {
                "reasoning": {"effort": self.config.llm.reasoning_effort, "exclude": True}
            },
        }
        if self.model.supports_temperature:
            params["temperature"] = self.config.llm.temperature
        return params

    async def detect(self, episode: Episode) -> list[AdSegment]:
        """Detect segments via OpenRouter.

        Raises:
            DetectionError: If there is no transcript or the API call fails.
            ResponseParseError: If the response is not valid JSON.
        """
        params = self._request_params(episode)
        client = self._create_client()

        logger.info(
            f"Detecting skippable segments via OpenRouter (model: {self.model.id}, "
            f"temperature: {params.get('temperature', 'n/a')}, "
            f"reasoning: {self.config.llm.reasoning_effort})"
        )

        try:
            response = await client.chat.completions.create(**params)
        except Exception as e:
            logger.error(f"OpenRouter request failed: {e}")
            raise DetectionError(f"OpenRouter API error: {e}") from e

        content = response.choices[0].message.content or ""
        validated = parse_segment_response(extract_json_array(content))

        duration = episode.transcript.duration
        return validate_and_mitigate(to_ad_segments(validated), duration, self.config.detect)


def create_llm_client(config: Config) -> SegmentLLMClient:
    """Create an LLM client based on configuration.

    Args:
        config: Configuration object.

    Returns:
        A SegmentLLMClient implementation.
    """
    provider = config.llm.provider.lower()

    if provider == "openrouter":
        api_key = config.llm.api_key
        if not api_key:
            raise DetectionError(
                f"OpenRouter API key not found. Set the {config.llm.api_key_env} environment variable."
            )
        return OpenRouterClient(
            api_key=api_key,
            model=config.llm.model,
            base_url=config.llm.base_url,
            config=config,
        )

    raise DetectionError(f"Unknown LLM provider: {provider}. Supported: openrouter")
