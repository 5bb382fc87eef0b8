"""RU: Планировщик задач сегментов с ограничением параллелизма.

Допуск новых задач — грубый, по опросу: после каждого запуска считаем
маркеры `*.running` в корне прогона и, пока их не меньше `nj`, спим
`poll_interval` секунд. В конце — барьер: ждём все запущенные задачи.

EN: Segment job scheduler with a concurrency limit.

Admission control is coarse and sampling-based: after each launch we count
`*.running` markers in the run root and, while there are at least `nj`, sleep
`poll_interval` seconds. At the end a barrier waits for every launched job.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from tqdm import tqdm

from split_diarization.stages.segment_job import JobOutcome, JobStatus, SegmentJob
from split_diarization.utils.markers import MarkerBoard

LOGGER = logging.getLogger("diarize")


def _run_guarded(job: SegmentJob) -> JobOutcome:
    """Run a job; unexpected errors become a FAILED outcome."""
    started = time.monotonic()
    try:
        return job.run()
    except Exception:
        LOGGER.exception("[%s] job crashed", job.name)
        if job.status is JobStatus.RUNNING:
            return job.fail("internal", -1, started)
        raise


def _prepare_guarded(job: SegmentJob) -> JobOutcome | None:
    """Prepare a job; a setup I/O error fails it in place of launching."""
    started = time.monotonic()
    try:
        job.prepare()
    except OSError:
        LOGGER.exception("[%s] job setup failed", job.name)
        return job.fail("prepare", -1, started)
    return None


class Scheduler:
    """RU: Запускает задачи, не держа больше `nj` маркеров «running».

    EN: Launches jobs while keeping at most `nj` running markers.
    """

    def __init__(
        self,
        run_root: Path,
        *,
        nj: int,
        poll_interval: float = 2.0,
        progress: bool = True,
    ) -> None:
        if nj < 1:
            message = f"nj must be >= 1, got {nj}"
            raise ValueError(message)
        self.markers = MarkerBoard(run_root)
        self.nj = nj
        self.poll_interval = poll_interval
        self.progress = progress
        self.peak_running = 0
        self.polls = 0

    def _poll(self) -> int:
        num_running = self.markers.count_running()
        self.polls += 1
        self.peak_running = max(self.peak_running, num_running)
        return num_running

    def _wait_for_capacity(self) -> None:
        num_running = self._poll()
        while num_running >= self.nj:
            time.sleep(self.poll_interval)
            num_running = self._poll()

    def run(self, jobs: Sequence[SegmentJob]) -> list[JobOutcome]:
        """RU: Запускает все задачи и ждёт их завершения.

        Возвращает итоги в порядке запуска.

        EN: Launch every job and wait for all of them.

        Returns outcomes in launch order.
        """
        if not jobs:
            return []

        futures: list[Future[JobOutcome]] = []
        bar = tqdm(
            total=len(jobs),
            desc="segments",
            unit="job",
            disable=not self.progress,
        )
        try:
            # RU: Пул не ограничивает параллелизм — это делает опрос маркеров.
            # EN: The pool does not bound concurrency; marker polling does.
            with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
                for job in jobs:
                    LOGGER.info("Performing diarization on '%s'", job.segment)
                    setup_failure = _prepare_guarded(job)
                    if setup_failure is not None:
                        fut: Future[JobOutcome] = Future()
                        fut.set_result(setup_failure)
                    else:
                        fut = pool.submit(_run_guarded, job)
                    fut.add_done_callback(lambda _f: bar.update(1))
                    futures.append(fut)
                    self._wait_for_capacity()
                outcomes = [f.result() for f in futures]
        finally:
            bar.close()

        failed = [o for o in outcomes if not o.ok]
        LOGGER.info(
            "All %d jobs finished: %d done, %d failed (peak running %d)",
            len(outcomes),
            len(outcomes) - len(failed),
            len(failed),
            self.peak_running,
        )
        return outcomes
