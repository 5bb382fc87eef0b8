"""Tests for the command line entry point."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from split_diarization import cli, pipeline
from split_diarization.errors import AggregationError, PreflightError


def test_wrong_arity_prints_usage(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["abc.wav", "0", "4"])
    assert excinfo.value.code != 0
    assert "usage:" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv",
    [
        ["abc.wav", "2", "4", "abc.seg", "/tmp/w"],
        ["abc.wav", "0", "0", "abc.seg", "/tmp/w"],
        ["abc.wav", "0", "four", "abc.seg", "/tmp/w"],
    ],
)
def test_bad_values_rejected(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    assert excinfo.value.code == 2


def test_help_mentions_example(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit):
        cli.main(["--help"])
    out = capsys.readouterr().out
    assert "abc.wav 0 4 abc.seg" in out
    assert "BIC" in out


def test_builds_config_and_runs(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen = []
    monkeypatch.setattr(cli, "run_pipeline", seen.append)

    rc = cli.main(
        [
            "rec.wav",
            "1",
            "3",
            str(tmp_path / "rec.seg"),
            str(tmp_path / "work"),
            "--config",
            str(tmp_path / "missing.yaml"),
            "--stages-dir",
            str(tmp_path / "stages"),
            "--segment-duration",
            "300",
            "--no-progress",
        ],
    )

    assert rc == 0
    (config,) = seen
    assert config.use_bic is True
    assert config.nj == 3
    assert config.segment_duration == 300
    assert config.progress is False
    assert config.stages.base_dir == tmp_path / "stages"


def test_yaml_config_is_used(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen = []
    monkeypatch.setattr(cli, "run_pipeline", seen.append)
    conf = tmp_path / "diarize.yaml"
    conf.write_text("scheduler:\n  poll_interval: 0.25\n", encoding="utf-8")

    rc = cli.main(["rec.wav", "0", "2", "o.seg", "w", "--config", str(conf)])

    assert rc == 0
    assert seen[0].poll_interval == 0.25
    assert seen[0].use_bic is False


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (PreflightError(["sox", "/x/do_cv.sh"]), 1),
        (AggregationError("nothing"), 1),
    ],
)
def test_errors_map_to_exit_codes(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, exc: Exception, code: int,
) -> None:
    def boom(_config) -> None:
        raise exc

    monkeypatch.setattr(cli, "run_pipeline", boom)
    argv = ["rec.wav", "0", "2", "o.seg", "w", "--config", str(tmp_path / "none.yaml")]
    assert cli.main(argv) == code


def test_missing_recording_is_usage_error(tmp_path: Path) -> None:
    argv = [
        str(tmp_path / "absent.wav"),
        "0",
        "1",
        str(tmp_path / "o.seg"),
        str(tmp_path / "w"),
        "--config",
        str(tmp_path / "none.yaml"),
    ]
    assert cli.main(argv) == 2


def test_prompt_with_closed_stdin_is_usage_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path,
) -> None:
    monkeypatch.setattr(pipeline, "check_requirements", lambda *_a, **_k: None)
    monkeypatch.setattr("sys.stdin", io.StringIO(""))
    wav = tmp_path / "rec.wav"
    wav.write_text("1\n")
    work = tmp_path / "w"
    work.mkdir()
    (work / "keep.txt").write_text("x")
    argv = [
        str(wav),
        "0",
        "1",
        str(tmp_path / "o.seg"),
        str(work),
        "--config",
        str(tmp_path / "none.yaml"),
        "--prompt",
    ]

    assert cli.main(argv) == 2
    assert (work / "keep.txt").exists()


def test_os_error_is_reported(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def boom(_config) -> None:
        raise PermissionError(13, "Permission denied", str(tmp_path / "o.seg"))

    monkeypatch.setattr(cli, "run_pipeline", boom)
    argv = ["rec.wav", "0", "2", "o.seg", "w", "--config", str(tmp_path / "none.yaml")]
    assert cli.main(argv) == 1
