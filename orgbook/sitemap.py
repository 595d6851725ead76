"""Generate the org source of a project's sitemap or index page.

Two shapes are produced. Without a table of contents the sitemap lists every
successfully published document, sorted alphabetically by title or by date,
either as a flat bullet list or grouped under one heading per directory.
With a ``_toc.yml`` it mirrors the declared hierarchy instead: one heading per
part and nested bullets for chapters and sections.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import logging
import posixpath
import re
import typing as typ

from ._constants import SOURCE_EXTENSIONS
from .backends.notebook import parse_notebook
from .config.models import SitemapSortOrder, SitemapStyle
from .publisher.dispatch import parse_date
from .publisher.gate import html_relative_path, relative_source_path
from .publisher.renderer import HtmlContentRenderer
from .toc import toc_href

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .config.models import Project
    from .publisher.models import PublishFileResult
    from .toc import TocConfig, TocEntry

logger = logging.getLogger(__name__)

EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.UTC)
ORG_KEYWORD_PATTERN = re.compile(
    r"^[ \t]*#\+(?P<key>TITLE|DATE):[ \t]*(?P<value>.*?)\s*$",
    re.IGNORECASE | re.MULTILINE,
)


@dc.dataclass(slots=True, frozen=True)
class SitemapEntry:
    """One published document listed in an auto-generated sitemap."""

    relative_path: str
    title: str
    date: dt.datetime | None = None


def _date_key(entry: SitemapEntry) -> dt.datetime:
    return entry.date or EPOCH


def sort_entries(
    entries: typ.Iterable[SitemapEntry], order: SitemapSortOrder
) -> list[SitemapEntry]:
    """Order entries for a sitemap.

    ``alphabetically`` compares titles; ``chronologically`` and
    ``anti-chronologically`` compare dates, treating a missing date as the
    Unix epoch. Sorting is stable.
    """
    items = list(entries)
    match order:
        case SitemapSortOrder.CHRONOLOGICALLY:
            return sorted(items, key=_date_key)
        case SitemapSortOrder.ANTI_CHRONOLOGICALLY:
            return sorted(items, key=_date_key, reverse=True)
        case SitemapSortOrder.ALPHABETICALLY:
            return sorted(items, key=lambda entry: entry.title)


def _entry_line(entry: SitemapEntry) -> str:
    html_path = html_relative_path(entry.relative_path)
    suffix = f" ({entry.date.date().isoformat()})" if entry.date else ""
    return f"- [[file:{html_path}][{entry.title}]]{suffix}"


def _group_by_directory(
    entries: list[SitemapEntry], folders: str
) -> list[tuple[str, list[SitemapEntry]]]:
    groups: dict[str, list[SitemapEntry]] = {}
    for entry in entries:
        groups.setdefault(posixpath.dirname(entry.relative_path) or ".", []).append(
            entry
        )
    ordered = list(groups.items())
    if folders == "first":
        ordered.sort(key=lambda item: item[0] == ".")
    elif folders == "last":
        ordered.sort(key=lambda item: item[0] != ".")
    return ordered


def generate_sitemap_org(
    entries: typ.Iterable[SitemapEntry],
    project: Project,
    *,
    today: dt.date | None = None,
) -> str:
    """Render an auto-generated sitemap as org text.

    Parameters
    ----------
    entries : Iterable[SitemapEntry]
        Published documents, in any order.
    project : Project
        Supplies ``sitemap_title``, ``sitemap_style``, ``sitemap_sort_files``
        and ``sitemap_sort_folders``.
    today : date, optional
        Value written to ``#+DATE:``; defaults to the current UTC date.

    Returns
    -------
    str
        Org text whose links point at the ``.html`` outputs.
    """
    stamp = today or dt.datetime.now(dt.UTC).date()
    ordered = sort_entries(entries, project.sitemap_sort_files)
    lines = [
        f"#+TITLE: {project.sitemap_title or 'Site Map'}",
        f"#+DATE: {stamp.isoformat()}",
        "",
    ]
    if project.sitemap_style is SitemapStyle.TREE:
        for directory, group in _group_by_directory(
            ordered, project.sitemap_sort_folders
        ):
            if directory != ".":
                lines.append(f"* {directory}")
            lines.extend(_entry_line(entry) for entry in group)
            lines.append("")
    else:
        lines.extend(_entry_line(entry) for entry in ordered)
    return "\n".join(lines)


def _toc_lines(
    entries: tuple[TocEntry, ...],
    titles: typ.Mapping[str, str],
    depth: int,
) -> typ.Iterator[str]:
    indent = "  " * depth
    for entry in entries:
        if entry.file:
            title = titles.get(entry.file) or entry.title or entry.file
            yield f"{indent}- [[file:{toc_href(entry.file)}][{title}]]"
        elif entry.url:
            yield f"{indent}- [[{entry.url}][{entry.title or entry.url}]]"
        else:
            continue
        yield from _toc_lines(entry.sections, titles, depth + 1)


def generate_toc_sitemap_org(
    toc: TocConfig,
    titles: typ.Mapping[str, str],
    title: str,
) -> str:
    """Render the declared TOC hierarchy as an org index page.

    ``titles`` maps TOC file keys to titles found while publishing; entries
    missing from it fall back to their TOC title, then to the file key.
    """
    root_title = titles.get(toc.root) or toc.root
    lines = [f"#+TITLE: {title}", "", f"- [[file:{toc_href(toc.root)}][{root_title}]]"]
    if toc.parts:
        for part in toc.parts:
            lines.append("")
            if part.caption:
                lines.append(f"* {part.caption}")
            lines.extend(_toc_lines(part.chapters, titles, 0))
    else:
        lines.extend(_toc_lines(toc.chapters, titles, 0))
    return "\n".join(lines) + "\n"


def read_metadata(path: Path) -> tuple[str | None, dt.datetime | None]:
    """Read a source document's title and date without publishing it."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.debug("Cannot read %s for sitemap metadata: %s", path, exc)
        return None, None
    suffix = path.suffix.lower()
    if suffix == ".org":
        found: dict[str, str] = {}
        for match in ORG_KEYWORD_PATTERN.finditer(text):
            found.setdefault(match.group("key").upper(), match.group("value"))
        return found.get("TITLE") or None, parse_date(found.get("DATE"))
    if suffix == ".md":
        rendered = HtmlContentRenderer().render(text)
        return rendered.title, parse_date(rendered.date)
    if suffix == ".ipynb":
        try:
            return parse_notebook(text).title, None
        except ValueError:
            return None, None
    return None, None


def entries_from_results(
    results: typ.Iterable[PublishFileResult],
    base_dir: Path,
    *,
    exclude: Path | None = None,
) -> list[SitemapEntry]:
    """Collect sitemap entries from successfully published documents.

    Copied files are left out. A result without a title (an up-to-date skip)
    has its title and date read back from the source document.
    """
    entries: list[SitemapEntry] = []
    excluded = exclude.resolve() if exclude is not None else None
    for result in results:
        if not result.success or result.source_path.suffix.lower() not in SOURCE_EXTENSIONS:
            continue
        source = result.source_path.resolve()
        if source == excluded:
            continue
        title, date = result.title, result.date
        if title is None and date is None:
            title, date = read_metadata(source)
        entries.append(
            SitemapEntry(
                relative_path=relative_source_path(result.source_path, base_dir),
                title=title or source.stem,
                date=date,
            )
        )
    return entries


def titles_by_toc_key(
    results: typ.Iterable[PublishFileResult], base_dir: Path
) -> dict[str, str]:
    """Map extension-less relative source paths to published titles."""
    titles: dict[str, str] = {}
    for result in results:
        if not result.success:
            continue
        source = result.source_path.resolve()
        title = result.title
        if title is None:
            title, _ = read_metadata(source)
        if not title:
            continue
        relative = relative_source_path(result.source_path, base_dir)
        stem, _ext = posixpath.splitext(relative)
        titles[stem] = title
        titles[relative] = title
    return titles


__all__ = [
    "SitemapEntry",
    "entries_from_results",
    "generate_sitemap_org",
    "generate_toc_sitemap_org",
    "read_metadata",
    "sort_entries",
    "titles_by_toc_key",
]
