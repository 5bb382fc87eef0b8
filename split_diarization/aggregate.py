"""RU: Сборка результатов сегментов в итоговую сегментацию.

EN: Aggregation of per-segment results into the final segmentation.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Collection
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from split_diarization.errors import AggregationError, StageFailure
from split_diarization.stages.segment_job import WORK_SUBDIR, Runner
from split_diarization.utils.markers import MarkerBoard

LOGGER = logging.getLogger("diarize")

CLUSTER_SUFFIX: Final = ".gmm.boost.merged.seg"
SPEECH_SIL_SUFFIX: Final = ".speech_sil.seg"
CV_SUFFIX: Final = ".cv.seg"
RECLUSTER_MARK: Final = "re-cluster"
INTERVAL_RE: Final = re.compile(r"\d+\.\d+-\d+\.\d+")


@dataclass(frozen=True)
class Manifests:
    """Paths of the two manifests fed to the rescoring stage."""

    clusters: Path
    speech_sil: Path
    cluster_count: int
    speech_sil_count: int


def _is_recluster(path: Path) -> bool:
    return any(RECLUSTER_MARK in part for part in path.parts)


def find_outputs(tree: Path, suffix: str, *, done: Collection[str] | None = None) -> list[Path]:
    """RU: Ищет файлы с суффиксом, исключая выходы подстадии «re-cluster».

    Если задан `done`, учитываются только директории завершённых задач.

    EN: Find files by suffix, excluding outputs of the re-cluster sub-stage.

    When `done` is given, only directories of finished jobs are considered.
    """
    if not tree.is_dir():
        return []
    found = []
    for p in tree.rglob(f"*{suffix}"):
        rel = p.relative_to(tree)
        if not p.is_file() or _is_recluster(rel):
            continue
        if done is not None and rel.parts[0] not in done:
            continue
        found.append(p)
    return sorted(found)


def finished_jobs(run_root: Path, tree: Path) -> set[str]:
    """Names of job directories whose done marker is present."""
    if not tree.is_dir():
        return set()
    markers = MarkerBoard(run_root)
    return {d.name for d in tree.iterdir() if d.is_dir() and markers.state(d.name) == "done"}


def has_interval_record(path: Path) -> bool:
    """Return True if the file holds at least one `start-end` numeric record."""
    try:
        with path.open(encoding="utf-8", errors="replace") as f:
            return any(INTERVAL_RE.search(line) for line in f)
    except OSError:
        return False


def _write_manifest(path: Path, entries: list[Path]) -> None:
    text = "".join(f"{p}\n" for p in entries)
    path.write_text(text, encoding="utf-8")


def write_manifests(run_root: Path, recording_name: str) -> Manifests:
    """RU: Пишет списки файлов кластеризации и речи/тишины всех сегментов.

    EN: Write the clustered-segmentation and speech/silence manifests.

    Raises:
        AggregationError: when no segment produced a clustered segmentation.

    """
    tree = run_root / WORK_SUBDIR / recording_name
    done = finished_jobs(run_root, tree)
    clusters = find_outputs(tree, CLUSTER_SUFFIX, done=done)
    speech_sil = [
        p for p in find_outputs(tree, SPEECH_SIL_SUFFIX, done=done) if has_interval_record(p)
    ]

    if not clusters:
        message = f"No clustered segmentation found under {tree}; nothing to aggregate"
        raise AggregationError(message)

    manifests = Manifests(
        clusters=run_root / f"{recording_name}{CLUSTER_SUFFIX}.lst",
        speech_sil=run_root / f"{recording_name}.speech_sil.txt",
        cluster_count=len(clusters),
        speech_sil_count=len(speech_sil),
    )
    _write_manifest(manifests.clusters, clusters)
    _write_manifest(manifests.speech_sil, speech_sil)
    LOGGER.info(
        "Manifests: %d clustered, %d speech/silence",
        manifests.cluster_count,
        manifests.speech_sil_count,
    )
    return manifests


def _require(path: Path, stage: str) -> Path:
    if not path.is_file():
        message = f"Stage '{stage}' did not produce {path}"
        raise AggregationError(message)
    return path


def aggregate(
    *,
    run_root: Path,
    recording: Path,
    recording_name: str,
    runner: Runner,
) -> Path:
    """RU: Рескоринг исходной записи всеми моделями и кросс-валидация.

    Возвращает путь к итоговому файлу `<rec>.cv.seg` в корне прогона.

    EN: Rescore the original recording with all models, then cross-validate.

    Returns the final `<rec>.cv.seg` path in the run root.
    """
    manifests = write_manifests(run_root, recording_name)
    log_path = run_root / "log.txt"

    rc = runner.run(
        "rescore",
        [recording, manifests.clusters, manifests.speech_sil, run_root],
        cwd=run_root,
        log_path=log_path,
    )
    if rc != 0:
        raise StageFailure(stage="rescore", returncode=rc, log_path=log_path)
    merged = _require(run_root / f"{recording_name}{CLUSTER_SUFFIX}", "rescore")
    global_speech_sil = run_root / f"{recording_name}{SPEECH_SIL_SUFFIX}"

    rc = runner.run(
        "cv",
        [recording, merged, global_speech_sil, run_root],
        cwd=run_root,
        log_path=log_path,
    )
    if rc != 0:
        raise StageFailure(stage="cv", returncode=rc, log_path=log_path)
    return _require(run_root / f"{recording_name}{CV_SUFFIX}", "cv")
