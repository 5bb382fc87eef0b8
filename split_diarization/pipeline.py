"""RU: Оркестрация диаризации длинной записи «по сегментам».

Модуль ведёт весь прогон:
1) Предварительная проверка бинарников и скриптов стадий
2) Подготовка чистой рабочей директории
3) Нарезка записи на сегменты фиксированной длины
4) Параллельные конвейеры сегментов (речь/тишина → BIC → кластеризация)
5) Сборка результатов, рескоринг, кросс-валидация, копирование результата

EN: Split-approach diarization orchestration for one long recording.

This module drives the whole run:
1) Preflight check of binaries and stage scripts
2) Preparation of a clean working directory
3) Splitting the recording into fixed-duration segments
4) Parallel segment pipelines (speech/silence → BIC → clustering)
5) Aggregation, rescoring, cross-validation and copying of the result
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import asdict, dataclass, field
from pathlib import Path

from split_diarization.aggregate import aggregate
from split_diarization.config import RunConfig
from split_diarization.errors import AggregationError, StageFailure, UsageError
from split_diarization.scheduler import Scheduler
from split_diarization.stages.runner import StageRunner, check_requirements
from split_diarization.stages.segment_job import JobOutcome, SegmentJob
from split_diarization.utils.audio_info import AudioInfo, probe_audio
from split_diarization.utils.dirs import remove_dir, safe_remove_dir
from split_diarization.utils.logging_utils import status

log = logging.getLogger("diarize")

SEGMENTS_SUBDIR = "blind_segmentation"
REPORT_NAME = "run_report.json"


@dataclass
class RunReport:
    """RU: Явный отчёт о прогоне, включая упавшие сегменты.

    EN: Explicit run report, including failed segments.
    """

    recording: str
    duration: float
    sample_rate: int
    segments: int = 0
    completed: list[str] = field(default_factory=list)
    failed: list[dict[str, object]] = field(default_factory=list)
    peak_running: int = 0
    output: str | None = None

    def add(self, outcome: JobOutcome) -> None:
        if outcome.ok:
            self.completed.append(outcome.segment)
            return
        self.failed.append(
            {
                "segment": outcome.segment,
                "stage": outcome.failed_stage,
                "returncode": outcome.returncode,
                "log": str(outcome.log_path),
            },
        )

    def write(self, path: Path) -> None:
        with path.open("w", encoding="utf-8") as f:
            json.dump(asdict(self), f, ensure_ascii=False, indent=2)


def list_segments(run_root: Path) -> list[Path]:
    """RU: Возвращает аудиофайлы сегментов, созданные нарезчиком.

    EN: Return the segment audio files emitted by the splitter.
    """
    seg_dir = run_root / SEGMENTS_SUBDIR
    if not seg_dir.is_dir():
        return []
    return sorted(p for p in seg_dir.iterdir() if p.is_file() and p.suffix.lower() == ".wav")


def _wc(path: Path) -> tuple[int, int, int]:
    data = path.read_bytes()
    return data.count(b"\n"), len(data.split()), len(data)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def deliver_output(final_seg: Path, output_path: Path) -> Path:
    """Copy the final segmentation; an existing directory receives it by name, like `cp`."""
    target = output_path / final_seg.name if output_path.is_dir() else output_path
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(final_seg, target)
    return target


def prepare_work_dir(config: RunConfig) -> None:
    """Guarantee the run starts from an empty working root."""
    if not safe_remove_dir(config.work_dir, prompt=config.prompt_before_remove):
        message = f"Working directory must be clean: {config.work_dir}"
        raise UsageError(message)
    config.work_dir.mkdir(parents=True, exist_ok=True)


def split_recording(config: RunConfig, info: AudioInfo, runner: StageRunner) -> list[Path]:
    """RU: Режет запись на сегменты по `segment_duration` секунд (без перекрытия).

    EN: Split the recording into `segment_duration` second slices (no overlap).
    """
    log_path = config.work_dir / "log.txt"
    rc = runner.run(
        "split",
        [info.path, config.work_dir, config.segment_duration],
        cwd=config.work_dir,
        log_path=log_path,
    )
    if rc != 0:
        raise StageFailure(stage="split", returncode=rc, log_path=log_path)

    segments = list_segments(config.work_dir)
    if not segments:
        message = f"Splitter produced no segments under {config.work_dir / SEGMENTS_SUBDIR}"
        raise AggregationError(message)

    for seg in segments:
        seg_info = probe_audio(seg)
        log.info("segment %s: %.2fs", seg.name, seg_info.duration)
    return segments


def run_pipeline(config: RunConfig) -> RunReport:
    """RU: Запускает полный прогон и возвращает отчёт.

    Аргументы:
        config: Контекст прогона (запись, флаги, пути, лимит параллелизма).

    EN: Run the whole diarization and return the run report.

    Args:
        config: Run context (recording, flags, paths, concurrency limit).

    Raises:
        UsageError: bad arguments or an unclean working directory.
        PreflightError: required binaries or stage scripts are missing.
        StageFailure: a run-level stage (split, rescore, cv) failed.
        AggregationError: no segment produced usable output.

    """
    quiet = config.quiet
    if not config.recording.is_file():
        message = f"Recording not found: {config.recording}"
        raise UsageError(message)

    check_requirements(config.binaries, config.stages.all_paths())

    work_dir = config.work_dir
    prepare_work_dir(config)

    runner = StageRunner(config.stages, timeout=config.stage_timeout)

    info = probe_audio(config.recording)
    rec_name = info.basename
    log.info(
        "Recording %s: %.2fs @ %d Hz",
        rec_name,
        info.duration,
        info.sample_rate,
    )
    report = RunReport(
        recording=str(config.recording),
        duration=info.duration,
        sample_rate=info.sample_rate,
    )

    status(f"[split] {config.segment_duration}s segments", quiet=quiet)
    segments = split_recording(config, info, runner)
    report.segments = len(segments)

    status(f"[diarize] {len(segments)} segments, nj={config.nj}", quiet=quiet)
    jobs = [
        SegmentJob(
            segment=seg,
            run_root=work_dir,
            recording_name=rec_name,
            runner=runner,
            use_bic=config.use_bic,
            nj=config.nj,
        )
        for seg in segments
    ]
    scheduler = Scheduler(
        work_dir,
        nj=config.nj,
        poll_interval=config.poll_interval,
        progress=config.progress and not quiet,
    )
    for outcome in scheduler.run(jobs):
        report.add(outcome)
    report.peak_running = scheduler.peak_running

    for failure in report.failed:
        log.warning(
            "Segment %s failed at stage %s (exit %s); its contribution is omitted",
            failure["segment"],
            failure["stage"],
            failure["returncode"],
        )

    try:
        status("[aggregate] rescoring and cross-validation", quiet=quiet)
        final_seg = aggregate(
            run_root=work_dir,
            recording=config.recording,
            recording_name=rec_name,
            runner=runner,
        )

        output = deliver_output(final_seg, config.output_path)
        lines, words, size = _wc(output)
        log.info(
            "'%s' -> '%s' (%d lines, %d words, %d bytes)",
            final_seg,
            output,
            lines,
            words,
            size,
        )
        report.output = str(output)
    finally:
        report.write(work_dir / REPORT_NAME)

    if config.cleanup:
        if _is_within(output, work_dir):
            log.warning("Output lies inside %s; keeping working directory", work_dir)
        else:
            remove_dir(work_dir)

    status("[diarize] done", quiet=quiet)
    return report
