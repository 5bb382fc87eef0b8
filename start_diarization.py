#!/usr/bin/env python3
"""RU: Лаунчер диаризации длинной записи «по сегментам».

См. `python3 start_diarization.py --help`.

EN: Launcher for split-approach diarization of a long recording.

See `python3 start_diarization.py --help`.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


def ensure_venv() -> None:
    """Re-exec into the repo venv if not already in a venv."""

    env_flag = "DIARIZE_VENV_ACTIVE"
    if os.environ.get(env_flag) == "1":
        return

    if sys.prefix != sys.base_prefix:
        os.environ[env_flag] = "1"
        return

    repo_dir = Path(__file__).resolve().parent
    venv_python = repo_dir / ".venv" / "bin" / "python"
    if venv_python.exists():
        os.environ[env_flag] = "1"
        os.execv(str(venv_python), [str(venv_python), *sys.argv])  # noqa: S606


def main() -> None:
    ensure_venv()
    from split_diarization.cli import main as _main

    sys.exit(_main())


if __name__ == "__main__":
    main()
