"""Tests for the command line interface."""

import json
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from podskip import __version__
from podskip.cli import app, format_duration
from podskip.models import AdSegment, SegmentType

runner = CliRunner()


def write_transcript(path):
    path.write_text(
        json.dumps(
            {
                "duration": 300.0,
                "segments": [
                    {"start": 0.0, "end": 30.0, "text": "Welcome to the show.", "speaker": "Host"},
                    {"start": 30.0, "end": 60.0, "text": "Try Acme today.", "speaker": "Advertiser"},
                    {"start": 60.0, "end": 300.0, "text": "Back to the interview.", "speaker": "Host"},
                ],
            }
        )
    )
    return path


class TestDetectCommand:
    def test_writes_result(self, tmp_path):
        transcript = write_transcript(tmp_path / "episode.json")
        out = tmp_path / "out" / "result.json"

        result = runner.invoke(app, ["detect", str(transcript), "--out", str(out)])

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data["detection_type"] == "basic"
        assert [(s["start"], s["end"]) for s in data["segments"]] == [(30.0, 60.0)]
        assert "Skippable segments: 1" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["detect", str(tmp_path / "nope.json"), "--out", str(tmp_path / "o.json")])
        assert result.exit_code == 1


class TestAnalyzeCommand:
    def test_runs_llm_detection(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
        transcript = write_transcript(tmp_path / "episode.json")
        out = tmp_path / "result.json"
        detected = [AdSegment(start=30, end=60, type=SegmentType.ADVERTISEMENT, confidence=92)]

        with patch("podskip.ad_llm.OpenRouterClient.detect", new=AsyncMock(return_value=detected)):
            result = runner.invoke(
                app, ["analyze", str(transcript), "--out", str(out), "--model", "openai/gpt-5-mini"]
            )

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data["detection_type"] == "advanced"
        assert data["model_info"]["llm_model"] == "openai/gpt-5-mini"
        assert data["segments"][0]["confidence"] == 92

    def test_missing_api_key(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        transcript = write_transcript(tmp_path / "episode.json")

        result = runner.invoke(app, ["analyze", str(transcript), "--out", str(tmp_path / "o.json")])

        assert result.exit_code == 1


class TestValidateCommand:
    def test_validates_raw_response(self, tmp_path):
        response = tmp_path / "response.txt"
        response.write_text(
            "Sure:\n```json\n"
            '[{"startTime": 0:30, "endTime": 1:00, "type": "advertisement", "confidence": 90},'
            ' {"startTime": "2:00", "endTime": "2:02", "type": "advertisement", "confidence": 90}]\n```'
        )
        out = tmp_path / "validated.json"

        result = runner.invoke(app, ["validate", str(response), "--duration", "300", "--out", str(out)])

        assert result.exit_code == 0, result.output
        assert "Valid records: 2" in result.output
        data = json.loads(out.read_text())
        assert [(s["start"], s["end"]) for s in data["segments"]] == [(30.0, 60.0)]

    def test_invalid_json(self, tmp_path):
        response = tmp_path / "response.txt"
        response.write_text("[{startTime: later}]")

        result = runner.invoke(app, ["validate", str(response), "--duration", "300"])

        assert result.exit_code == 1


class TestTranscriptCommand:
    def test_prints_stamped_transcript(self, tmp_path):
        transcript = write_transcript(tmp_path / "episode.json")

        result = runner.invoke(app, ["transcript", str(transcript)])

        assert result.exit_code == 0, result.output
        assert "[0:30] (Advertiser): Try Acme today." in result.output


class TestVersionCommand:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestFormatDuration:
    def test_format(self):
        assert format_duration(3725) == "01:02:05"
        assert format_duration(59) == "00:00:59"
