"""CLI for PodSkip."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from . import __version__
from .ad_llm import DetectionError, create_llm_client
from .ad_response import ResponseParseError, extract_json_array, parse_segment_response, to_ad_segments
from .config import Config, load_config
from .detection import detect_basic_segments
from .models import DetectionResult, DetectionType, Episode, Transcript
from .segments import validate_and_mitigate
from .transcript import generate_summary, preprocess_transcript

app = typer.Typer(
    name="podskip",
    help="Detect skippable segments in podcast transcripts.",
    add_completion=False,
)


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Detect skippable segments in podcast transcripts."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_config(config_path: Optional[Path]) -> Config:
    try:
        return load_config(str(config_path) if config_path else None)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _load_transcript(path: Path) -> Transcript:
    if not path.exists():
        typer.echo(f"Error: File not found: {path}", err=True)
        raise typer.Exit(1)

    try:
        with open(path) as f:
            data = json.load(f)
        return Transcript.model_validate(data)
    except Exception as e:
        typer.echo(f"Error parsing transcript: {e}", err=True)
        raise typer.Exit(1)


def _write_result(result: DetectionResult, out: Path) -> None:
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w") as f:
        f.write(result.model_dump_json(indent=2))

    typer.echo()
    typer.echo(generate_summary(result))
    typer.echo()
    typer.echo(f"Output written to {out}")


@app.command()
def detect(
    transcript_file: Annotated[Path, typer.Argument(help="Path to a transcript JSON file")],
    out: Annotated[Path, typer.Option("--out", "-o", help="Output JSON file path")],
    duration: Annotated[
        Optional[float],
        typer.Option("--duration", "-d", help="Episode duration in seconds (default: transcript duration)"),
    ] = None,
    config_path: Annotated[
        Optional[Path], typer.Option("--config", "-c", help="Path to config file")
    ] = None,
) -> None:
    """Basic detection from transcript speaker labels (no network)."""
    config = _load_config(config_path)
    transcript = _load_transcript(transcript_file)
    episode_duration = duration if duration is not None else transcript.duration

    typer.echo(f"Processing: {transcript_file}")
    typer.echo(f"Duration: {format_duration(episode_duration)}")
    typer.echo(f"Segments: {len(transcript.segments)}")

    segments = detect_basic_segments(transcript, episode_duration, config.detect)

    result = DetectionResult(
        source=str(transcript_file.absolute()),
        duration=episode_duration,
        detection_type=DetectionType.BASIC,
        segments=segments,
        model_info={"method": "speaker_labels"},
    )
    _write_result(result, out)


@app.command()
def analyze(
    transcript_file: Annotated[Path, typer.Argument(help="Path to a transcript JSON file")],
    out: Annotated[Path, typer.Option("--out", "-o", help="Output JSON file path")],
    title: Annotated[str, typer.Option("--title", help="Episode title")] = "",
    podcast: Annotated[Optional[str], typer.Option("--podcast", help="Podcast name")] = None,
    model: Annotated[
        Optional[str], typer.Option("--model", "-m", help="OpenRouter model id")
    ] = None,
    config_path: Annotated[
        Optional[Path], typer.Option("--config", "-c", help="Path to config file")
    ] = None,
) -> None:
    """Advanced detection with a language model via OpenRouter."""
    config = _load_config(config_path)
    if model:
        config.llm.model = model

    transcript = _load_transcript(transcript_file)
    episode = Episode(
        id=transcript_file.stem,
        title=title,
        feed_title=podcast,
        transcript=transcript,
    )

    typer.echo(f"Processing: {transcript_file}")
    typer.echo(f"Duration: {format_duration(transcript.duration)}")
    typer.echo(f"Analyzing with {config.llm.model}...")

    try:
        llm_client = create_llm_client(config)
        segments = asyncio.run(llm_client.detect(episode))
    except (DetectionError, ResponseParseError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    result = DetectionResult(
        source=str(transcript_file.absolute()),
        duration=transcript.duration,
        detection_type=DetectionType.ADVANCED,
        segments=segments,
        model_info={"llm_provider": config.llm.provider, "llm_model": config.llm.model},
    )
    _write_result(result, out)


@app.command()
def validate(
    response_file: Annotated[Path, typer.Argument(help="Path to a saved model response")],
    duration: Annotated[float, typer.Option("--duration", "-d", help="Episode duration in seconds")],
    out: Annotated[
        Optional[Path], typer.Option("--out", "-o", help="Output JSON file path")
    ] = None,
    config_path: Annotated[
        Optional[Path], typer.Option("--config", "-c", help="Path to config file")
    ] = None,
) -> None:
    """Run a raw model response through the validation pipeline."""
    if not response_file.exists():
        typer.echo(f"Error: File not found: {response_file}", err=True)
        raise typer.Exit(1)

    config = _load_config(config_path)
    content = response_file.read_text()

    try:
        validated = parse_segment_response(extract_json_array(content))
    except ResponseParseError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Valid records: {len(validated)}")
    segments = validate_and_mitigate(to_ad_segments(validated), duration, config.detect)

    result = DetectionResult(
        source=str(response_file.absolute()),
        duration=duration,
        detection_type=DetectionType.ADVANCED,
        segments=segments,
    )

    if out:
        _write_result(result, out)
    else:
        typer.echo()
        typer.echo(generate_summary(result))


@app.command()
def transcript(
    transcript_file: Annotated[Path, typer.Argument(help="Path to a transcript JSON file")],
    out: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Output file (default: stdout)"),
    ] = None,
) -> None:
    """Print the compressed, timestamped transcript sent to the model."""
    text = preprocess_transcript(_load_transcript(transcript_file))

    if out:
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, "w") as f:
            f.write(text)
        typer.echo(f"Transcript written to {out}")
    else:
        typer.echo(text)


@app.command()
def version() -> None:
    """Show the version of PodSkip."""
    typer.echo(f"PodSkip v{__version__}")


def format_duration(seconds: float) -> str:
    """Format duration in HH:MM:SS format."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


if __name__ == "__main__":
    app()
