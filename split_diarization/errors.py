"""RU: Иерархия ошибок оркестратора.

EN: Error taxonomy for the orchestrator.
"""

from __future__ import annotations

from pathlib import Path


class DiarizationError(RuntimeError):
    """Base class for run-level failures."""


class UsageError(DiarizationError):
    """Raised when invocation arguments are invalid."""


class PreflightError(DiarizationError):
    """Raised when required binaries or stage scripts are missing."""

    def __init__(self, missing: list[str] | tuple[str, ...]) -> None:
        self.missing = tuple(missing)
        listing = " ".join(f"[{m}]" for m in self.missing)
        super().__init__(f"Binaries/scripts missing! {listing}")


class StageFailure(DiarizationError):
    """RU: Внешняя стадия завершилась с ненулевым кодом.

    EN: An external stage exited with a non-zero status.
    """

    def __init__(self, *, stage: str, returncode: int, log_path: Path | None = None) -> None:
        where = f" (see {log_path})" if log_path else ""
        super().__init__(f"Stage '{stage}' failed with exit status {returncode}{where}")
        self.stage = stage
        self.returncode = returncode
        self.log_path = log_path


class AggregationError(DiarizationError):
    """Raised when segment results cannot be merged into a final artifact."""
