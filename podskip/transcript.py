"""Transcript formatting for model prompts and human summaries."""

from .models import DetectionResult, Transcript
from .timecodes import format_timestamp

SENTENCE_ENDINGS = (".", "!", "?")

# Stamp again after this many seconds or words without one
STAMP_GAP_SECONDS = 3.0
STAMP_WORD_COUNT = 3


def _ends_sentence(word: str) -> bool:
    return word.strip().endswith(SENTENCE_ENDINGS)


def preprocess_transcript(transcript: Transcript) -> str:
    """Compress a transcript into plain text with inline ``[M:SS]`` stamps.

    A stamp is inserted when the speaker changes (with a ``(Speaker):``
    label on a new line), at the start of a sentence, after a gap of
    3 seconds, or after 3 words without one. Segments without word timings
    are emitted as a single stamped line.
    """
    if not transcript.segments:
        return ""

    output = ""
    last_speaker = ""
    last_stamp = -1.0
    words_since_stamp = 0
    sentence_ended = True

    for segment in transcript.segments:
        if not segment.words:
            label = ""
            if segment.speaker and segment.speaker != last_speaker:
                label = f" ({segment.speaker}):"
            output += f"[{format_timestamp(segment.start)}]{label} {segment.text}\n"
            last_speaker = segment.speaker or ""
            last_stamp = segment.start
            words_since_stamp = 0
            sentence_ended = True
            continue

        for word in segment.words:
            speaker = word.speaker or segment.speaker or "Unknown"
            speaker_changed = speaker != last_speaker

            needs_stamp = (
                speaker_changed
                or sentence_ended
                or word.start - last_stamp >= STAMP_GAP_SECONDS
                or words_since_stamp >= STAMP_WORD_COUNT
            )

            if needs_stamp:
                stamp = format_timestamp(word.start)
                if speaker_changed:
                    prefix = "\n" if output else ""
                    output += f"{prefix}[{stamp}] ({speaker}): "
                else:
                    prefix = " " if output else ""
                    output += f"{prefix}[{stamp}] "
                last_stamp = word.start
                last_speaker = speaker
                words_since_stamp = 0
            else:
                output += " "

            output += word.word
            words_since_stamp += 1
            sentence_ended = _ends_sentence(word.word)

    return output.strip()


def generate_summary(result: DetectionResult) -> str:
    """Generate a summary of detected segments.

    Args:
        result: The detection result.

    Returns:
        A formatted summary string.
    """
    lines = [
        "PodSkip Detection Summary",
        "=" * 40,
        f"Source: {result.source}",
        f"Duration: {format_timestamp(result.duration)}",
        f"Detection: {result.detection_type.value}",
        f"Skippable segments: {len(result.segments)}",
        "",
    ]

    if result.segments:
        lines.append("Detected Segments:")
        lines.append("-" * 40)

        total_time = 0.0
        for i, seg in enumerate(sorted(result.segments, key=lambda s: s.start), 1):
            total_time += seg.duration
            lines.append(
                f"{i}. {seg.start_time} - {seg.end_time} "
                f"[{seg.type.value}] ({seg.duration:.0f}s, {seg.confidence}% confidence)"
            )
            if seg.description:
                lines.append(f"   {seg.description}")

        lines.append("")
        share = total_time / result.duration * 100 if result.duration else 0.0
        lines.append(f"Total skippable time: {format_timestamp(total_time)} ({share:.1f}% of episode)")
    else:
        lines.append("No skippable segments detected.")

    return "\n".join(lines)
