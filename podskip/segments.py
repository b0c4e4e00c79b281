"""Validation pipeline for skippable segments.

Turns candidate segments from either detector into the authoritative set for
an episode: in bounds, long enough, confident enough, merged where an ad
break was split into fragments, and free of overlaps.
"""

import logging

from .config import DetectConfig
from .models import AdSegment, SegmentType

logger = logging.getLogger(__name__)

DESCRIPTION_SEPARATOR = " | "


def merge_close_ads(segments: list[AdSegment], max_gap: float = 8.0) -> list[AdSegment]:
    """Merge advertisements separated by less than ``max_gap`` seconds.

    Ad breaks are often split into several fragments with short silences in
    between. Only advertisement/advertisement pairs are merged; any other
    pair is left as-is.
    """
    if not segments:
        return []

    ordered = sorted(segments, key=lambda s: s.start)

    merged: list[AdSegment] = []
    current = ordered[0]

    for segment in ordered[1:]:
        gap = segment.start - current.end
        both_ads = (
            current.type == SegmentType.ADVERTISEMENT
            and segment.type == SegmentType.ADVERTISEMENT
        )

        if both_ads and gap < max_gap:
            description = current.description
            if segment.description and segment.description not in description:
                description = (
                    f"{description}{DESCRIPTION_SEPARATOR}{segment.description}"
                    if description
                    else segment.description
                )

            current = AdSegment(
                start=current.start,
                end=max(current.end, segment.end),
                type=SegmentType.ADVERTISEMENT,
                confidence=max(current.confidence, segment.confidence),
                description=description,
            )
        else:
            merged.append(current)
            current = segment

    merged.append(current)
    return merged


def resolve_overlaps(segments: list[AdSegment]) -> list[AdSegment]:
    """Remove overlaps from a start-sorted list of segments.

    A segment nested inside the previous one is dropped. A partial overlap
    is split at the midpoint of the overlapping region; the previously
    accepted segment is shortened in place.
    """
    resolved: list[AdSegment] = []

    for current in segments:
        if not resolved:
            resolved.append(current)
            continue

        previous = resolved[-1]

        if current.start >= previous.end:
            resolved.append(current)
            continue

        logger.warning(
            f"Overlap detected: [{previous.start_time}-{previous.end_time}] "
            f"and [{current.start_time}-{current.end_time}]"
        )

        if current.end <= previous.end:
            logger.warning("Segment is contained within the previous one, dropping it")
            continue

        midpoint = (current.start + previous.end) / 2
        logger.warning(f"Splitting overlap at {midpoint:.2f}s")
        previous.end = midpoint
        current.start = midpoint
        resolved.append(current)

    return resolved


def _min_duration(segment: AdSegment, config: DetectConfig) -> float:
    if segment.type == SegmentType.ADVERTISEMENT:
        return config.min_ad_duration
    return config.min_segment_duration


def _single_pass(
    segments: list[AdSegment],
    duration: float,
    config: DetectConfig,
    warn_on_count: bool,
) -> list[AdSegment]:
    """Run the eight pipeline steps once."""
    # Bounds
    kept: list[AdSegment] = []
    for seg in segments:
        if seg.start >= duration:
            logger.warning(f"Segment starts after episode end: {seg.start_time}-{seg.end_time}")
            continue
        if seg.start < 0:
            logger.warning(f"Segment starts before 0: {seg.start_time}-{seg.end_time}")
            continue
        if seg.end <= seg.start:
            logger.warning(f"Segment ends before it starts: {seg.start_time}-{seg.end_time}")
            continue
        if seg.end > duration:
            logger.warning(f"Segment ends after episode end, capping at {duration:.2f}s")
            seg.end = duration
        kept.append(seg)

    # Minimum duration
    long_enough = []
    for seg in kept:
        if seg.duration < _min_duration(seg, config):
            logger.debug(f"Segment too short ({seg.type.value}): {seg.start_time}-{seg.end_time}")
            continue
        long_enough.append(seg)

    # Confidence
    confident = [seg for seg in long_enough if seg.confidence >= config.min_confidence]
    if len(confident) < len(long_enough):
        logger.info(
            f"Filtered out {len(long_enough) - len(confident)} segments below "
            f"{config.min_confidence}% confidence"
        )

    if warn_on_count and len(confident) > config.max_expected_segments:
        logger.warning(
            f"Unusually high segment count ({len(confident)} > "
            f"{config.max_expected_segments}), detection may be noisy"
        )

    merged = merge_close_ads(confident, config.merge_gap)
    resolved = resolve_overlaps(merged)

    final = []
    for seg in resolved:
        if seg.duration < config.min_split_duration:
            logger.info(f"Segment too short after overlap split: {seg.start_time}-{seg.end_time}")
            continue
        final.append(seg)
    return final


def validate_and_mitigate(
    segments: list[AdSegment],
    duration: float,
    config: DetectConfig | None = None,
) -> list[AdSegment]:
    """Produce the authoritative, non-overlapping segment set for an episode.

    The input is not modified. Passes repeat until the output is stable, so
    running this on its own output returns the same set. Each pass that
    changes anything removes at least one segment, so the loop terminates.

    Args:
        segments: Candidate segments in any order.
        duration: Episode duration in seconds.
        config: Pipeline thresholds. Defaults are used when omitted.

    Returns:
        Segments sorted by start with end_i <= start_i+1.
    """
    config = config or DetectConfig()

    current = _single_pass(
        [seg.model_copy() for seg in segments], duration, config, warn_on_count=True
    )
    while True:
        following = _single_pass(
            [seg.model_copy() for seg in current], duration, config, warn_on_count=False
        )
        if following == current:
            return current
        logger.debug(f"Pipeline not yet stable ({len(current)} -> {len(following)} segments)")
        current = following
