from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from split_diarization.config import build_run_config, load_config_file
from split_diarization.errors import DiarizationError, PreflightError, UsageError
from split_diarization.pipeline import run_pipeline
from split_diarization.utils.logging_utils import setup_logging

log = logging.getLogger("diarize")

EPILOG = """\
  fn-wav    - audio file to be segmented into speech/silence
  BIC       - 0 (don't use it) or 1 (use it)
  nj        - number of processors available for parallelization
  fn-seg    - output segmentation file
  dir-work  - directory within which all output created
e.g.: split-diarize abc.wav 0 4 abc.seg /tmp/abc
"""


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="split-diarize",
        description="Speaker diarization of a long recording, split into fixed-duration segments.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("wav", type=Path, metavar="fn-wav", help="Input audio file")
    ap.add_argument("bic", choices=("0", "1"), metavar="BIC", help="Use BIC segmentation (0/1)")
    ap.add_argument("nj", type=_positive_int, help="Number of parallel jobs")
    ap.add_argument("seg_out", type=Path, metavar="fn-seg", help="Output segmentation file")
    ap.add_argument("work_dir", type=Path, metavar="dir-work", help="Working directory")
    ap.add_argument("--config", type=Path, default=Path("diarize.yaml"), help="Path to YAML config")
    ap.add_argument("--stages-dir", type=Path, default=None, help="Directory holding stage scripts")
    ap.add_argument("--segment-duration", type=_positive_int, default=None, help="Seconds per segment")
    ap.add_argument("--poll-interval", type=float, default=None, help="Seconds between marker polls")
    ap.add_argument("--stage-timeout", type=float, default=None, help="Kill stages running longer")
    ap.add_argument(
        "--prompt",
        action="store_true",
        default=None,
        help="Ask before removing a non-empty working directory",
    )
    ap.add_argument(
        "--cleanup",
        action="store_true",
        default=None,
        help="Remove the working directory after a successful run",
    )
    ap.add_argument("--quiet", action="store_true", default=None, help="Only errors")
    ap.add_argument("--verbose", action="store_true", default=None, help="Verbose logs")
    ap.add_argument(
        "--no-progress",
        dest="progress",
        action="store_false",
        default=None,
        help="Disable progress UI (useful for logs/CI)",
    )
    ap.add_argument("--version", action="version", version=_version())
    return ap


def _version() -> str:
    from . import __version__

    return f"%(prog)s {__version__}"


def main(argv: list[str] | None = None) -> int:
    """RU: Точка входа CLI: разбор аргументов, запуск прогона, код выхода.

    EN: CLI entry point: parse arguments, run, map errors to exit codes.
    """
    args = build_parser().parse_args(argv)
    setup_logging(verbose=bool(args.verbose), quiet=bool(args.quiet))

    try:
        conf = load_config_file(args.config)
        config = build_run_config(
            conf=conf,
            recording=args.wav,
            use_bic=args.bic == "1",
            nj=args.nj,
            output_path=args.seg_out,
            work_dir=args.work_dir,
            overrides={
                "stages_dir": args.stages_dir,
                "segment_duration": args.segment_duration,
                "poll_interval": args.poll_interval,
                "stage_timeout": args.stage_timeout,
                "prompt": args.prompt,
                "cleanup": args.cleanup,
                "quiet": args.quiet,
                "verbose": args.verbose,
                "progress": args.progress,
            },
        )
        setup_logging(verbose=config.verbose, quiet=config.quiet)
        run_pipeline(config)
    except UsageError as exc:
        log.error("%s", exc)
        return 2
    except PreflightError as exc:
        log.error("Error: %s", exc)
        return 1
    except DiarizationError as exc:
        log.error("%s", exc)
        return 1
    except OSError as exc:
        log.error("I/O error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
