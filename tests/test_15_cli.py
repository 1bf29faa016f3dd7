"""Tests for the podgen command line."""
import json
from unittest.mock import patch

import pytest

from podgen import cli
from podgen.core.models import DialogueTurn, EpisodeAudio, EpisodeResult


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "synthesis:\n"
        "  provider: tone\n"
        "cache:\n"
        f"  base_dir: {tmp_path / 'cache'}\n"
        "history:\n"
        f"  base_dir: {tmp_path / 'episodes'}\n",
        encoding="utf-8",
    )
    return str(path)


def test_cli_plan_dry_run(tmp_path, settings_file, capsys):
    script = tmp_path / "dialogue.json"
    script.write_text(json.dumps({"dialogue": [
        {"speaker": "alex", "text": "Welcome back to the show."},
        {"speaker": "jordan", "text": "Glad to be here."},
        {"speaker": "alex", "text": "Let's get into it."},
    ]}), encoding="utf-8")

    code = cli.main(["--settings", settings_file, "--provider", "tone", "plan", "--script", str(script), "--json"])
    assert code == 0
    out = capsys.readouterr().out
    assert "PLAN_OK" in out
    assert '"turns": 3' in out


def test_cli_providers_marks_selected(settings_file, capsys):
    assert cli.main(["--settings", settings_file, "providers"]) == 0
    lines = capsys.readouterr().out.splitlines()
    selected = [line for line in lines if line.startswith("*")]
    assert len(selected) == 1
    assert "tone" in selected[0]
    assert any("dia-fal" in line for line in lines)


def test_cli_cache_stats_and_sweep(settings_file, capsys):
    assert cli.main(["--settings", settings_file, "cache", "stats"]) == 0
    assert '"total_entries": 0' in capsys.readouterr().out

    assert cli.main(["--settings", settings_file, "cache", "sweep"]) == 0
    assert '"removed": 0' in capsys.readouterr().out


def test_cli_generate_writes_audio(tmp_path, settings_file, capsys):
    result = EpisodeResult(
        episode_id="abc123def456",
        audio=EpisodeAudio(data=b"RIFF" + b"\x00" * 40, mime_type="audio/wav", duration_seconds=1.5),
        dialogue=[DialogueTurn("alex", "Hello.")],
        sources=[],
        estimated_seconds=0.4,
        cache={"sources": "miss"},
    )
    out_path = tmp_path / "out" / "episode.wav"

    with patch("podgen.services.pipeline.build_pipeline") as build:
        build.return_value.run_pipeline.return_value = result
        code = cli.main(["--settings", settings_file, "generate", "AI", "--url", "https://a.test/x",
                         "--speakers", "Alex,Jordan", "--out", str(out_path), "--json"])

    assert code == 0
    assert out_path.read_bytes()[:4] == b"RIFF"
    topics, inputs, roster = build.return_value.run_pipeline.call_args.args
    assert topics == ["AI"]
    assert [i.kind for i in inputs] == ["url"]
    assert roster == ["alex", "jordan"]
    assert "abc123def456" in capsys.readouterr().out


def test_cli_generate_without_topics_fails(settings_file, capsys):
    assert cli.main(["--settings", settings_file, "generate"]) == 1
    assert "TOPICS_REQUIRED" in capsys.readouterr().err
