"""Result and option types produced by the publishing pipeline."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt
    from pathlib import Path

ProgressCallback = typ.Callable[[int, int, str], None]


class PublishError(RuntimeError):
    """Raised when a project cannot be published at all."""


@dc.dataclass(slots=True)
class PublishOptions:
    """Switches shared by every publish call in a run.

    Attributes
    ----------
    force : bool
        Republish files even when their output is up to date.
    dry_run : bool
        Read and convert sources but never write output.
    on_progress : Callable[[int, int, str], None] | None
        Called with ``(current, total, filename)`` before each file's work.
    """

    force: bool = False
    dry_run: bool = False
    on_progress: ProgressCallback | None = None


@dc.dataclass(slots=True)
class PublishFileResult:
    """Outcome of publishing one source file.

    ``title`` and ``date`` stay ``None`` when the file was skipped as up to
    date or when the converter does not extract them. ``output_path`` is
    ``None`` only for a failed source that lies outside the base directory.
    """

    source_path: Path
    output_path: Path | None
    success: bool
    error: str | None = None
    title: str | None = None
    date: dt.datetime | None = None


@dc.dataclass(slots=True)
class PublishProjectResult:
    """Aggregated outcome of publishing one project."""

    project_name: str
    files: list[PublishFileResult] = dc.field(default_factory=list)
    duration: float = 0.0

    @property
    def total_files(self) -> int:
        """Return how many files were attempted."""
        return len(self.files)

    @property
    def success_count(self) -> int:
        """Return how many files published (or were up to date)."""
        return sum(1 for item in self.files if item.success)

    @property
    def error_count(self) -> int:
        """Return how many files failed."""
        return sum(1 for item in self.files if not item.success)


__all__ = [
    "ProgressCallback",
    "PublishError",
    "PublishFileResult",
    "PublishOptions",
    "PublishProjectResult",
]
