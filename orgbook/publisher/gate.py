"""Output path computation and the incremental build gate."""

from __future__ import annotations

import os
import re
from pathlib import Path

SOURCE_SUFFIX_PATTERN = re.compile(r"\.(org|md|ipynb)$", re.IGNORECASE)


def is_up_to_date(source: Path, output: Path) -> bool:
    """Return True when ``output`` was modified strictly after ``source``.

    A missing output (or any other stat failure) counts as out of date.
    """
    try:
        source_mtime = source.stat().st_mtime_ns
        output_mtime = output.stat().st_mtime_ns
    except OSError:
        return False
    return output_mtime > source_mtime


def relative_source_path(source: Path, base_dir: Path) -> str:
    """Return ``source`` relative to ``base_dir`` as a POSIX path.

    The path is first compared as written, so a symlink inside ``base_dir``
    keeps its own location even when it points elsewhere. The resolved path
    is tried next.

    Raises
    ------
    ValueError
        If ``source`` lies outside ``base_dir`` either way.
    """
    lexical = Path(os.path.normpath(source.absolute()))
    try:
        return lexical.relative_to(base_dir).as_posix()
    except ValueError:
        return source.resolve().relative_to(base_dir).as_posix()


def html_relative_path(relative: str) -> str:
    """Rewrite a ``.org``/``.md``/``.ipynb`` suffix to ``.html``.

    >>> html_relative_path("guide/intro.org")
    'guide/intro.html'
    >>> html_relative_path("data/table.csv")
    'data/table.csv'
    """
    return SOURCE_SUFFIX_PATTERN.sub(".html", relative)


def compute_output_path(source: Path, base_dir: Path, output_dir: Path) -> Path:
    """Map a source file onto its HTML output path.

    The base directory prefix is stripped, the remaining subpath is kept, and
    a source extension is rewritten to ``.html``.
    """
    return output_dir / html_relative_path(relative_source_path(source, base_dir))


def compute_copy_path(source: Path, base_dir: Path, output_dir: Path) -> Path:
    """Map a file copied verbatim onto the same relative path under the output."""
    return output_dir / relative_source_path(source, base_dir)


__all__ = [
    "compute_copy_path",
    "compute_output_path",
    "html_relative_path",
    "is_up_to_date",
    "relative_source_path",
]
