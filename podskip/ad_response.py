"""Parsing and validation of model-generated segment lists.

Language models are asked for a JSON array of segments but do not always
produce one. This module repairs the most common malformation (bare time
codes such as ``15:10`` where a quoted string was expected), extracts the
array from surrounding prose or code fences, and validates every record
individually so one bad record never spoils the batch.
"""

import json
import logging
import math
import re
from typing import Any

from .models import AdSegment, SegmentType, ValidatedSegment
from .timecodes import is_valid_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 50

# Either a complete JSON string literal (skipped as-is), or a property
# separator followed by an unquoted time code that ends at , } or ].
_UNQUOTED_TIME_PATTERN = re.compile(
    r'"(?:[^"\\]|\\.)*"'
    r"|(?P<sep>:\s*)(?P<time>\d{1,2}:\d{2}(?::\d{2})?)(?=\s*[,}\]])"
)

_FENCED_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


class ResponseParseError(Exception):
    """A model response could not be parsed as JSON."""

    pass


def sanitize_json_timestamps(text: str) -> str:
    """Quote bare time codes used as JSON values.

    ``{"startTime": 15:10}`` becomes ``{"startTime": "15:10"}``. Values that
    are already quoted, plain integers and anything inside string literals
    are left alone; input that needs no fixing is returned unchanged.
    """

    def _quote(match: re.Match) -> str:
        if match.group("time") is None:
            return match.group(0)
        return f'{match.group("sep")}"{match.group("time")}"'

    sanitized = _UNQUOTED_TIME_PATTERN.sub(_quote, text)

    if sanitized != text:
        logger.warning("Fixed unquoted time values in model response")

    return sanitized


def extract_json_array(content: str) -> str:
    """Pull the JSON array out of a model response.

    Prefers a fenced code block; otherwise takes the span from the first
    ``[`` to the last ``]``.
    """
    content = content.strip()

    fenced = _FENCED_BLOCK_PATTERN.search(content)
    if fenced:
        return fenced.group(1).strip()

    first = content.find("[")
    last = content.rfind("]")
    if first != -1 and last > first:
        return content[first : last + 1]

    return content


def normalize_segment_type(value: Any) -> SegmentType | None:
    """Match a type name case-insensitively against the known types."""
    if not isinstance(value, str):
        return None

    wanted = value.strip().lower()
    if not wanted:
        return None

    for segment_type in SegmentType:
        if segment_type.value == wanted:
            return segment_type
    return None


def normalize_confidence(value: Any) -> int:
    """Coerce confidence to an integer in [1, 100], defaulting to 50."""
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return DEFAULT_CONFIDENCE
    else:
        return DEFAULT_CONFIDENCE

    if math.isnan(number):
        return DEFAULT_CONFIDENCE

    number = max(1.0, min(100.0, number))
    # Half-up rounding, so 84.5 -> 85
    return int(math.floor(number + 0.5))


def validate_segment(raw: Any) -> ValidatedSegment | None:
    """Validate one raw segment record.

    Returns:
        A ValidatedSegment, or None if the record is unusable.
    """
    if not isinstance(raw, dict):
        logger.debug(f"Skipping non-object segment entry: {raw!r}")
        return None

    for key in ("startTime", "endTime", "type"):
        if raw.get(key) is None:
            logger.debug(f"Segment missing {key}, skipping: {raw!r}")
            return None

    start_time = str(raw["startTime"]).strip()
    end_time = str(raw["endTime"]).strip()

    if not is_valid_timestamp(start_time):
        logger.debug(f"Invalid startTime format: {start_time!r}")
        return None
    if not is_valid_timestamp(end_time):
        logger.debug(f"Invalid endTime format: {end_time!r}")
        return None

    segment_type = normalize_segment_type(raw["type"])
    if segment_type is None:
        logger.debug(f"Invalid segment type: {raw['type']!r}")
        return None

    description = raw.get("description")
    description = "" if description is None else str(description).strip()

    return ValidatedSegment(
        start_time=start_time,
        end_time=end_time,
        confidence=normalize_confidence(raw.get("confidence")),
        type=segment_type,
        description=description,
    )


def validate_segments(raw_segments: Any) -> list[ValidatedSegment]:
    """Validate a list of raw records, dropping the invalid ones."""
    if not isinstance(raw_segments, list):
        logger.warning(f"Expected a list of segments, got {type(raw_segments).__name__}")
        return []

    validated = [v for v in (validate_segment(raw) for raw in raw_segments) if v is not None]

    dropped = len(raw_segments) - len(validated)
    if dropped:
        logger.warning(f"Filtered out {dropped} invalid segments")

    return validated


def parse_segment_response(text: str) -> list[ValidatedSegment]:
    """Sanitize, parse and validate a JSON segment list.

    Raises:
        ResponseParseError: If the JSON is still invalid after sanitizing.
    """
    sanitized = sanitize_json_timestamps(text)

    try:
        parsed = json.loads(sanitized)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse model response after sanitizing: {e}")
        raise ResponseParseError(f"Invalid JSON in model response: {e}") from e

    return validate_segments(parsed)


def to_ad_segments(validated: list[ValidatedSegment]) -> list[AdSegment]:
    """Convert validated records to segments measured in seconds."""
    return [
        AdSegment(
            start=parse_timestamp(v.start_time),
            end=parse_timestamp(v.end_time),
            type=v.type,
            confidence=v.confidence,
            description=v.description,
        )
        for v in validated
    ]
