"""Resolve the concrete set of source files a project publishes."""

from __future__ import annotations

import dataclasses as dc
import logging
import re
import typing as typ
from fnmatch import fnmatchcase

from ._constants import SOURCE_EXTENSIONS

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .config.models import Project
    from .toc import FlatTocEntry

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True, frozen=True)
class SourceFile:
    """A discovered source document and, for TOC-driven runs, its TOC record."""

    path: Path
    toc_entry: FlatTocEntry | None = None


def resolve_toc_file(base_dir: Path, file_key: str) -> Path | None:
    """Return the first existing file for a TOC key, or None.

    ``{file}.org``, ``{file}.md`` and ``{file}.ipynb`` are probed in that
    order before the literal ``{file}`` path.
    """
    for extension in SOURCE_EXTENSIONS:
        candidate = base_dir / f"{file_key}{extension}"
        if candidate.is_file():
            return candidate
    literal = base_dir / file_key
    if literal.is_file():
        return literal
    return None


def discover_from_toc(
    base_dir: Path, entries: typ.Iterable[FlatTocEntry]
) -> list[SourceFile]:
    """Resolve flattened TOC entries to files, keeping TOC order.

    Entries that resolve to nothing are skipped.
    """
    found: list[SourceFile] = []
    for entry in entries:
        path = resolve_toc_file(base_dir, entry.file)
        if path is None:
            logger.debug("TOC entry %s has no matching file", entry.file)
            continue
        found.append(SourceFile(path, entry))
    return found


def _is_excluded(relative: str, name: str, pattern: str | None) -> bool:
    if not pattern:
        return False
    return fnmatchcase(relative, pattern) or fnmatchcase(name, pattern)


def discover_files(
    project: Project, base_dir: Path, *, skip: typ.Collection[Path] = ()
) -> list[Path]:
    """Walk ``base_dir`` and return the files ``project`` should publish.

    Parameters
    ----------
    project : Project
        Supplies ``base_extension``, ``recursive``, ``exclude`` and
        ``include``.
    base_dir : Path
        Resolved source directory.
    skip : Collection[Path], optional
        Paths never returned, such as a generated sitemap source.

    Returns
    -------
    list[Path]
        Scanned files in sorted directory-walk order, followed by any
        ``include`` matches not already found.

    Raises
    ------
    FileNotFoundError
        If ``base_dir`` does not exist.
    """
    if not base_dir.is_dir():
        msg = f"Base directory does not exist: {base_dir}"
        raise FileNotFoundError(msg)

    extension = re.compile(rf"\.({project.base_extension or 'org'})$", re.IGNORECASE)
    skipped = {path.resolve() for path in skip}
    files: list[Path] = []

    def _scan(directory: Path) -> None:
        for entry in sorted(directory.iterdir()):
            relative = entry.relative_to(base_dir).as_posix()
            if _is_excluded(relative, entry.name, project.exclude):
                continue
            if entry.is_dir():
                if project.recursive:
                    _scan(entry)
            elif entry.is_file() and extension.search(entry.name):
                if entry.resolve() not in skipped:
                    files.append(entry)

    _scan(base_dir)

    seen = {path.resolve() for path in files}
    for pattern in project.include:
        for match in sorted(base_dir.glob(pattern)):
            resolved = match.resolve()
            if match.is_file() and resolved not in seen and resolved not in skipped:
                files.append(match)
                seen.add(resolved)

    logger.debug("Discovered %d file(s) under %s", len(files), base_dir)
    return files


__all__ = ["SourceFile", "discover_files", "discover_from_toc", "resolve_toc_file"]
