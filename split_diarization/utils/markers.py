"""RU: Файлы-маркеры состояния задач в корне прогона.

Состояние каждой задачи хранится только на файловой системе:
`<seg>.running` пока задача выполняется, `.<seg>.done` после успеха и
`.<seg>.failed` после ошибки. Переходы делаются через `os.replace`, поэтому
наблюдатель никогда не видит два маркера одновременно.

EN: Job status marker files in the run root.

Each job's status lives only on the filesystem: `<seg>.running` while the job
executes, `.<seg>.done` after success and `.<seg>.failed` after a failure.
Transitions use `os.replace`, so an observer never sees two markers at once.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

RUNNING_SUFFIX: Final = ".running"
DONE_SUFFIX: Final = ".done"
FAILED_SUFFIX: Final = ".failed"


@dataclass(frozen=True)
class MarkerBoard:
    """Marker namespace rooted at one run directory."""

    root: Path

    def running(self, name: str) -> Path:
        return self.root / f"{name}{RUNNING_SUFFIX}"

    def done(self, name: str) -> Path:
        return self.root / f".{name}{DONE_SUFFIX}"

    def failed(self, name: str) -> Path:
        return self.root / f".{name}{FAILED_SUFFIX}"

    def mark_running(self, name: str) -> Path:
        """RU: Создаёт маркер «running», убирая старые терминальные маркеры.

        EN: Create the running marker, clearing stale terminal markers.
        """
        for stale in (self.done(name), self.failed(name)):
            stale.unlink(missing_ok=True)
        path = self.running(name)
        path.touch()
        return path

    def mark_done(self, name: str) -> Path:
        target = self.done(name)
        os.replace(self.running(name), target)
        return target

    def mark_failed(self, name: str, details: dict[str, Any]) -> Path:
        """RU: Переводит задачу в «failed», сохраняя причину внутри маркера.

        EN: Move the job to failed, keeping the reason inside the marker.
        """
        running = self.running(name)
        running.write_text(json.dumps(details, ensure_ascii=False) + "\n", encoding="utf-8")
        target = self.failed(name)
        os.replace(running, target)
        return target

    def count_running(self) -> int:
        return sum(1 for _ in self.root.glob(f"*{RUNNING_SUFFIX}"))

    def state(self, name: str) -> str | None:
        if self.running(name).exists():
            return "running"
        if self.done(name).exists():
            return "done"
        if self.failed(name).exists():
            return "failed"
        return None
