"""RU: Конвейер одного сегмента: речь/тишина → (BIC) → кластеризация.

EN: Per-segment pipeline: speech/silence → (BIC) → clustering.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from split_diarization.utils.audio_info import base_name
from split_diarization.utils.dirs import safe_remove_dir
from split_diarization.utils.markers import MarkerBoard

LOGGER = logging.getLogger("diarize")

WORK_SUBDIR = "work_split_approach"


class Runner(Protocol):
    def run(self, stage_id: str, args: list[object], *, cwd: Path, log_path: Path) -> int: ...


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class JobOutcome:
    """RU: Итог задачи для отчёта о прогоне.

    EN: Job result used in the run report.
    """

    segment: str
    status: JobStatus
    log_path: Path
    failed_stage: str | None = None
    returncode: int | None = None
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is JobStatus.DONE


def job_dir_for(run_root: Path, recording_name: str, segment_name: str) -> Path:
    return run_root / WORK_SUBDIR / recording_name / segment_name


class SegmentJob:
    """RU: Одна задача = один экземпляр конвейера сегмента.

    Переходы: PENDING → RUNNING (`prepare`) → DONE | FAILED (`run`).

    EN: One job = one segment pipeline instance.

    Transitions: PENDING → RUNNING (`prepare`) → DONE | FAILED (`run`).
    """

    def __init__(
        self,
        *,
        segment: Path,
        run_root: Path,
        recording_name: str,
        runner: Runner,
        use_bic: bool,
        nj: int,
    ) -> None:
        self.segment = Path(segment)
        self.name = base_name(segment)
        self.run_root = run_root
        self.runner = runner
        self.use_bic = use_bic
        self.nj = nj
        self.work_dir = job_dir_for(run_root, recording_name, self.name)
        self.log_path = self.work_dir / "log.txt"
        self.markers = MarkerBoard(run_root)
        self.status = JobStatus.PENDING

    @property
    def speech_sil_seg(self) -> Path:
        return self.work_dir / f"{self.name}.speech_sil.seg"

    @property
    def sbic_seg(self) -> Path:
        return self.work_dir / f"{self.name}.sbic.seg"

    def prepare(self) -> None:
        """RU: Готовит директорию задачи и ставит маркер «running».

        EN: Prepare the job directory and write the running marker.
        """
        if self.status is not JobStatus.PENDING:
            message = f"Job {self.name} already {self.status.value}"
            raise RuntimeError(message)
        self.markers.mark_running(self.name)
        self.status = JobStatus.RUNNING
        safe_remove_dir(self.work_dir, prompt=False)
        self.work_dir.mkdir(parents=True)

    def _stage(self, stage_id: str, args: list[object]) -> int:
        started = time.monotonic()
        rc = self.runner.run(stage_id, args, cwd=self.work_dir, log_path=self.log_path)
        LOGGER.debug(
            "[%s] %s finished rc=%d in %.1fs",
            self.name,
            stage_id,
            rc,
            time.monotonic() - started,
        )
        return rc

    def run(self) -> JobOutcome:
        """RU: Выполняет стадии 1→2→3 строго по порядку.

        Ошибка любой стадии завершает задачу: последующие стадии не
        запускаются, маркер «running» превращается в «failed».

        EN: Run stages 1→2→3 in strict order.

        A failing stage ends the job: later stages are not invoked and the
        running marker becomes a failed marker.
        """
        if self.status is not JobStatus.RUNNING:
            message = f"Job {self.name} must be prepared before running"
            raise RuntimeError(message)
        started = time.monotonic()

        LOGGER.info("[%s] speech/silence segmentation", self.name)
        rc = self._stage(
            "speech_sil",
            [self.segment, self.speech_sil_seg, self.work_dir, self.nj],
        )
        if rc != 0:
            return self.fail("speech_sil", rc, started)

        working_seg = self.speech_sil_seg
        if self.use_bic:
            LOGGER.info("[%s] BIC segmentation", self.name)
            rc = self._stage(
                "bic",
                [self.segment, self.sbic_seg, self.work_dir, self.speech_sil_seg, "speech"],
            )
            if rc != 0:
                return self.fail("bic", rc, started)
            working_seg = self.sbic_seg
        else:
            LOGGER.info(
                "[%s] skipping BIC segmentation; clustering speech/silence output",
                self.name,
            )

        LOGGER.info("[%s] clustering segments into speakers", self.name)
        rc = self._stage(
            "cluster",
            [self.segment, working_seg, int(self.use_bic), self.work_dir, self.nj],
        )
        if rc != 0:
            return self.fail("cluster", rc, started)

        self.markers.mark_done(self.name)
        self.status = JobStatus.DONE
        elapsed = time.monotonic() - started
        LOGGER.info("[%s] done in %.1fs", self.name, elapsed)
        return JobOutcome(
            segment=self.name,
            status=self.status,
            log_path=self.log_path,
            elapsed_s=elapsed,
        )

    def fail(self, stage: str, returncode: int, started: float) -> JobOutcome:
        """Move the job to FAILED and describe why."""
        self.markers.mark_failed(self.name, {"stage": stage, "returncode": returncode})
        self.status = JobStatus.FAILED
        LOGGER.warning(
            "[%s] stage %s failed (exit %d); see %s",
            self.name,
            stage,
            returncode,
            self.log_path,
        )
        return JobOutcome(
            segment=self.name,
            status=self.status,
            log_path=self.log_path,
            failed_stage=stage,
            returncode=returncode,
            elapsed_s=time.monotonic() - started,
        )
