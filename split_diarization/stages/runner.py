"""RU: Запуск внешних стадий и предварительная проверка окружения.

Каждая стадия — внешний скрипт или бинарник. Вывод стадии (stdout+stderr)
всегда дописывается в лог задачи, никогда не перезаписывает его.

EN: External stage invocation and preflight checks.

Each stage is an external script or binary. Its combined stdout/stderr is
always appended to the job log, never truncating it.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
import time
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Final

from split_diarization.config import StageScripts
from split_diarization.errors import PreflightError

LOGGER = logging.getLogger("diarize")

EXIT_LAUNCH_FAILED: Final = 127
EXIT_TIMEOUT: Final = 124


def check_requirements(binaries: Iterable[str], scripts: Iterable[Path]) -> None:
    """RU: Проверяет наличие всех бинарников (в PATH) и скриптов стадий.

    Собирает *все* отсутствующие элементы, а не только первый.

    EN: Check that every binary (on PATH) and stage script is present.

    Collects *all* missing items, not just the first one.
    """
    missing: list[str] = [b for b in binaries if shutil.which(b) is None]
    missing += [str(s) for s in scripts if not Path(s).exists()]
    if missing:
        raise PreflightError(missing)
    LOGGER.info("All required software present")


def build_command(script: Path, args: Sequence[object]) -> list[str]:
    """Build the argv used to launch a stage script."""
    suffix = script.suffix.lower()
    if suffix == ".sh":
        head = ["bash", str(script)]
    elif suffix == ".py":
        head = [sys.executable, str(script)]
    else:
        head = [str(script)]
    return head + [str(a) for a in args]


class StageRunner:
    """RU: Запускает стадии по идентификатору и пишет их вывод в лог.

    EN: Runs stages by id and appends their output to a log file.
    """

    def __init__(self, stages: StageScripts, *, timeout: float | None = None) -> None:
        self.stages = stages
        self.timeout = timeout

    def run(
        self,
        stage_id: str,
        args: Sequence[object],
        *,
        cwd: Path,
        log_path: Path,
    ) -> int:
        """RU: Запускает стадию и возвращает её код выхода.

        EN: Run one stage and return its exit status.
        """
        cmd = build_command(self.stages.resolve(stage_id), args)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        started = time.monotonic()
        with log_path.open("a", encoding="utf-8") as log:
            stamp = datetime.now().isoformat(timespec="seconds")
            log.write(f"# [{stamp}] {stage_id}: {' '.join(cmd)}\n")
            log.flush()
            LOGGER.debug("Running: %s", " ".join(cmd))
            try:
                res = subprocess.run(
                    cmd,
                    cwd=str(cwd),
                    stdout=log,
                    stderr=subprocess.STDOUT,
                    text=True,
                    timeout=self.timeout,
                    check=False,
                )
                returncode = res.returncode
            except subprocess.TimeoutExpired:
                log.write(f"# {stage_id}: killed after {self.timeout}s\n")
                LOGGER.error("Stage %s timed out after %ss", stage_id, self.timeout)
                returncode = EXIT_TIMEOUT
            except OSError as exc:
                log.write(f"# {stage_id}: could not start: {exc}\n")
                LOGGER.error("Stage %s could not start: %s", stage_id, exc)
                returncode = EXIT_LAUNCH_FAILED
            elapsed = time.monotonic() - started
            log.write(f"# {stage_id}: exit={returncode} elapsed={elapsed:.2f}s\n")
        LOGGER.debug("[%s] exit=%d elapsed=%.2fs", stage_id, returncode, elapsed)
        return returncode
