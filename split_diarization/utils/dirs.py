"""RU: Идемпотентное удаление рабочих директорий.

EN: Idempotent removal helpers for working directories.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path

LOGGER = logging.getLogger("diarize")


def remove_dir(path: Path) -> bool:
    """RU: Рекурсивно удаляет директорию, если она есть.

    EN: Recursively remove a directory if it exists.

    Returns:
        True if something was removed, False if the directory was absent.

    """
    path = Path(path)
    if path.is_dir():
        LOGGER.info("Recursively removing '%s'...", path)
        shutil.rmtree(path)
        return True
    LOGGER.info("'%s' does not exist!", path)
    return False


def _ask(question: str) -> bool:
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        # Non-interactive stdin counts as "no".
        return False
    return answer.strip().lower() in {"y", "yes"}


def safe_remove_dir(
    path: Path,
    *,
    prompt: bool,
    confirm: Callable[[str], bool] = _ask,
) -> bool:
    """RU: «Безопасное» удаление директории.

    Пустая директория удаляется молча. Непустая — с предупреждением и,
    если `prompt`, только после подтверждения пользователя.

    EN: "Safe" directory removal.

    An empty directory is removed silently. A non-empty one is removed after
    a warning and, when `prompt` is set, only after user confirmation.

    Returns:
        True if the directory no longer exists afterwards.

    """
    path = Path(path)
    if not path.is_dir():
        LOGGER.warning("'%s' does not exist.", path)
        return True

    if not any(path.iterdir()):
        LOGGER.info("'%s' is empty. Removing...", path)
        path.rmdir()
        return True

    LOGGER.warning("'%s' is not empty!", path)
    if prompt and not confirm(f"Remove '{path}' and everything in it?"):
        LOGGER.warning("Keeping '%s'", path)
        return False
    remove_dir(path)
    return True
