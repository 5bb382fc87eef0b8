"""RU: Чтение свойств аудиофайла через `soxi`.

EN: Audio file properties via `soxi`.
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path

from split_diarization.errors import StageFailure

_DURATION_RE = re.compile(r"^Duration\s*:\s*(\d+):(\d+):(\d+(?:\.\d+)?)", re.MULTILINE)
_RATE_RE = re.compile(r"^Sample Rate\s*:\s*(\d+)", re.MULTILINE)


@dataclass(frozen=True)
class AudioInfo:
    """RU: Свойства записи, неизменные в течение прогона.

    EN: Recording properties, immutable for the run.
    """

    path: Path
    duration: float
    sample_rate: int

    @property
    def basename(self) -> str:
        return base_name(self.path)


def base_name(path: Path | str) -> str:
    """Return the file name without its last extension."""
    name = Path(path).name
    stem, dot, _ext = name.rpartition(".")
    return stem if dot and stem else name


def _run_subprocess(cmd: list[str]) -> subprocess.CompletedProcess[str]:
    normalized_cmd = [str(part) for part in cmd]
    return subprocess.run(normalized_cmd, capture_output=True, text=True, check=False)


def parse_soxi(text: str) -> tuple[float, int]:
    """RU: Разбирает вывод `soxi` в (длительность в секундах, частота).

    EN: Parse `soxi` output into (duration seconds, sample rate).
    """
    dur = _DURATION_RE.search(text)
    rate = _RATE_RE.search(text)
    if dur is None or rate is None:
        message = "Could not find Duration/Sample Rate in soxi output"
        raise ValueError(message)
    hours, minutes, seconds = dur.groups()
    duration = int(hours) * 3600 + int(minutes) * 60 + float(seconds)
    return duration, int(rate.group(1))


def probe_audio(path: Path, *, soxi: str = "soxi") -> AudioInfo:
    """Inspect an audio file with `soxi`."""
    res = _run_subprocess([soxi, str(path)])
    if res.returncode != 0:
        raise StageFailure(stage=soxi, returncode=res.returncode)
    try:
        duration, sample_rate = parse_soxi(res.stdout)
    except ValueError as exc:
        raise StageFailure(stage=soxi, returncode=res.returncode) from exc
    return AudioInfo(path=Path(path), duration=duration, sample_rate=sample_rate)
