"""RU: Конфигурация прогона: YAML-файл + аргументы CLI.

EN: Run configuration built from an optional YAML file and CLI arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

import yaml

from split_diarization.errors import UsageError

DEFAULT_SEGMENT_DURATION: Final = 600
DEFAULT_POLL_INTERVAL: Final = 2.0
DEFAULT_BINARIES: Final = ("sox", "soxi")

# Stage id -> script path relative to the stages directory.
DEFAULT_SCRIPTS: Final[dict[str, str]] = {
    "split": "segmentation/do_blind_fixed_dur_segmentation.sh",
    "speech_sil": "speech_sil_detection/do_speech_sil_detection.sh",
    "bic": "diarization/do_bic_segmentation.sh",
    "cluster": "diarization/do_clustering.sh",
    "rescore": "diarization/do_post_process_cluster_results.sh",
    "cv": "diarization/do_cv.sh",
}


@dataclass(frozen=True)
class StageScripts:
    """RU: Соответствие идентификаторов стадий путям к скриптам.

    EN: Mapping of stage ids to script paths.
    """

    base_dir: Path
    scripts: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SCRIPTS))

    def resolve(self, stage_id: str) -> Path:
        try:
            rel = self.scripts[stage_id]
        except KeyError as exc:
            message = f"Unknown stage: {stage_id}"
            raise UsageError(message) from exc
        path = Path(rel)
        return path if path.is_absolute() else self.base_dir / path

    def all_paths(self) -> list[Path]:
        return [self.resolve(stage_id) for stage_id in self.scripts]


@dataclass(frozen=True)
class RunConfig:
    """RU: Контекст прогона, передаваемый во все компоненты.

    EN: Explicit run context passed into every component.
    """

    recording: Path
    use_bic: bool
    nj: int
    output_path: Path
    work_dir: Path
    stages: StageScripts
    binaries: tuple[str, ...] = DEFAULT_BINARIES
    segment_duration: int = DEFAULT_SEGMENT_DURATION
    poll_interval: float = DEFAULT_POLL_INTERVAL
    stage_timeout: float | None = None
    prompt_before_remove: bool = False
    cleanup: bool = False
    quiet: bool = False
    verbose: bool = False
    progress: bool = True

    def __post_init__(self) -> None:
        if self.nj < 1:
            message = f"nj must be >= 1, got {self.nj}"
            raise UsageError(message)
        if self.segment_duration <= 0:
            message = f"segment_duration must be > 0, got {self.segment_duration}"
            raise UsageError(message)
        if self.poll_interval < 0:
            message = f"poll_interval must be >= 0, got {self.poll_interval}"
            raise UsageError(message)
        if self.stage_timeout is not None and self.stage_timeout <= 0:
            message = f"stage_timeout must be > 0, got {self.stage_timeout}"
            raise UsageError(message)


def load_config_file(path: Path | None) -> dict[str, Any]:
    """RU: Загружает YAML-конфиг; отсутствие файла означает пустой конфиг.

    EN: Load a YAML config; a missing file yields an empty config.
    """
    if path is None or not path.exists():
        return {}
    with path.open(encoding="utf-8") as f:
        conf = yaml.safe_load(f) or {}
    if not isinstance(conf, dict):
        message = f"Config file must contain a mapping: {path}"
        raise UsageError(message)
    return conf


def _section(conf: dict[str, Any], name: str) -> dict[str, Any]:
    value = conf.get(name, {})
    return value if isinstance(value, dict) else {}


def build_run_config(
    *,
    conf: dict[str, Any],
    recording: Path,
    use_bic: bool,
    nj: int,
    output_path: Path,
    work_dir: Path,
    overrides: dict[str, Any] | None = None,
) -> RunConfig:
    """RU: Собирает `RunConfig`; значения из CLI перекрывают YAML.

    EN: Build a `RunConfig`; CLI overrides win over YAML values.
    """
    ov = {k: v for k, v in (overrides or {}).items() if v is not None}

    stages_conf = _section(conf, "stages")
    scripts = dict(DEFAULT_SCRIPTS)
    extra = stages_conf.get("scripts")
    if isinstance(extra, dict):
        scripts.update({str(k): str(v) for k, v in extra.items()})
    stages_dir = Path(ov.get("stages_dir") or stages_conf.get("dir") or Path.cwd())

    bins_raw = conf.get("binaries")
    if isinstance(bins_raw, list):
        binaries = tuple(str(b).strip() for b in bins_raw if str(b).strip())
    else:
        binaries = DEFAULT_BINARIES

    seg_conf = _section(conf, "segmentation")
    sched_conf = _section(conf, "scheduler")
    wd_conf = _section(conf, "workdir")
    cli_conf = _section(conf, "cli")

    timeout_raw = ov.get("stage_timeout", sched_conf.get("stage_timeout"))

    try:
        return RunConfig(
            recording=Path(recording),
            use_bic=bool(use_bic),
            nj=int(nj),
            output_path=Path(output_path),
            work_dir=Path(work_dir),
            stages=StageScripts(base_dir=stages_dir, scripts=scripts),
            binaries=binaries,
            segment_duration=int(
                ov.get("segment_duration", seg_conf.get("segment_duration", DEFAULT_SEGMENT_DURATION)),
            ),
            poll_interval=float(
                ov.get("poll_interval", sched_conf.get("poll_interval", DEFAULT_POLL_INTERVAL)),
            ),
            stage_timeout=float(timeout_raw) if timeout_raw is not None else None,
            prompt_before_remove=bool(ov.get("prompt", wd_conf.get("prompt_before_remove", False))),
            cleanup=bool(ov.get("cleanup", wd_conf.get("cleanup", False))),
            quiet=bool(ov.get("quiet") or cli_conf.get("quiet", False)),
            verbose=bool(ov.get("verbose") or cli_conf.get("verbose", False)),
            progress=bool(ov.get("progress", cli_conf.get("progress", True))),
        )
    except (TypeError, ValueError) as exc:
        message = f"Invalid configuration value: {exc}"
        raise UsageError(message) from exc
