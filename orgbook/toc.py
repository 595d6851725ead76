r"""Parse ``_toc.yml`` and flatten it into an ordered, navigable page list.

The table of contents follows the Jupyter Book layout: a ``root`` document,
then either captioned ``parts`` holding ``chapters`` or a bare ``chapters``
list, with each entry optionally nesting ``sections``. The parsed tree is
immutable; :func:`flatten_toc` derives a fresh tuple of
:class:`FlatTocEntry` records with ``prev``/``next`` keys for page
navigation.

Example
-------
>>> toc = parse_toc("root: intro\nchapters:\n  - file: one\n  - file: two\n")
>>> [entry.file for entry in flatten_toc(toc)]
['intro', 'one', 'two']
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ

from ._constants import SOURCE_EXTENSIONS, TOC_FILENAME
from .yaml_reader import parse_simple_yaml

if typ.TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True, frozen=True)
class TocEntry:
    """One node of the declared document hierarchy."""

    file: str | None = None
    title: str | None = None
    sections: tuple[TocEntry, ...] = ()
    url: str | None = None
    glob: str | None = None


@dc.dataclass(slots=True, frozen=True)
class TocPart:
    """A captioned group of chapters."""

    caption: str
    chapters: tuple[TocEntry, ...] = ()


@dc.dataclass(slots=True, frozen=True)
class TocConfig:
    """The parsed ``_toc.yml`` document."""

    root: str
    parts: tuple[TocPart, ...] = ()
    chapters: tuple[TocEntry, ...] = ()
    defaults: dict[str, typ.Any] = dc.field(default_factory=dict)
    format: str | None = None


@dc.dataclass(slots=True, frozen=True)
class FlatTocEntry:
    """A TOC file rewritten as a linear record with neighbour links.

    Attributes
    ----------
    file : str
        File key as written in the TOC (usually without extension).
    title : str | None
        Title declared in the TOC, if any.
    part : str | None
        Caption of the enclosing part, if any.
    level : int
        Nesting depth; the root is 0 and top-level chapters are 1.
    index : int
        Position in the flattened order.
    prev, next : str | None
        File keys of the neighbouring entries.
    """

    file: str
    title: str | None
    part: str | None
    level: int
    index: int
    prev: str | None = None
    next: str | None = None


def _build_entry(payload: typ.Any) -> TocEntry | None:
    if isinstance(payload, str):
        return TocEntry(file=payload)
    if not isinstance(payload, dict):
        return None
    sections = tuple(
        entry
        for entry in (_build_entry(item) for item in payload.get("sections") or [])
        if entry is not None
    )
    return TocEntry(
        file=_optional(payload.get("file")),
        title=_optional(payload.get("title")),
        sections=sections,
        url=_optional(payload.get("url")),
        glob=_optional(payload.get("glob")),
    )


def _build_entries(payload: typ.Any) -> tuple[TocEntry, ...]:
    if not isinstance(payload, list):
        return ()
    return tuple(
        entry for entry in (_build_entry(item) for item in payload) if entry is not None
    )


def _optional(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def toc_from_mapping(raw: typ.Mapping[str, typ.Any]) -> TocConfig:
    """Build a :class:`TocConfig` from an already parsed mapping.

    Raises
    ------
    ValueError
        If the mapping has no ``root`` entry.
    """
    root = _optional(raw.get("root"))
    if not root:
        msg = "Table of contents must declare a 'root' document."
        raise ValueError(msg)
    parts = tuple(
        TocPart(
            caption=str(item.get("caption") or ""),
            chapters=_build_entries(item.get("chapters")),
        )
        for item in raw.get("parts") or []
        if isinstance(item, dict)
    )
    defaults = raw.get("defaults")
    return TocConfig(
        root=root,
        parts=parts,
        chapters=_build_entries(raw.get("chapters")),
        defaults=dict(defaults) if isinstance(defaults, dict) else {},
        format=_optional(raw.get("format")),
    )


def parse_toc(text: str) -> TocConfig:
    """Parse ``_toc.yml`` content into a :class:`TocConfig`."""
    return toc_from_mapping(parse_simple_yaml(text))


def load_toc(base_dir: Path) -> TocConfig | None:
    """Load ``_toc.yml`` from ``base_dir``; return None when it does not exist.

    Any error other than a missing file propagates to the caller.
    """
    path = base_dir / TOC_FILENAME
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    logger.debug("Loaded table of contents from %s", path)
    return parse_toc(text)


def flatten_toc(toc: TocConfig) -> tuple[FlatTocEntry, ...]:
    """Walk the TOC in pre-order and link each file to its neighbours.

    The root comes first at level 0. Chapters are read from each part in
    order (tagged with the part caption) or, without parts, from
    ``chapters``; they sit at level 1 and their ``sections`` one level deeper.
    Entries without a ``file`` (external ``url`` or ``glob`` entries) are not
    files and are left out, though their sections are still walked.
    """
    collected: list[tuple[str, str | None, str | None, int]] = [
        (toc.root, None, None, 0)
    ]

    def _walk(entries: tuple[TocEntry, ...], part: str | None, level: int) -> None:
        for entry in entries:
            if entry.file:
                collected.append((entry.file, entry.title, part, level))
            if entry.sections:
                _walk(entry.sections, part, level + 1)

    if toc.parts:
        for toc_part in toc.parts:
            _walk(toc_part.chapters, toc_part.caption or None, 1)
    else:
        _walk(toc.chapters, None, 1)

    keys = [item[0] for item in collected]
    return tuple(
        FlatTocEntry(
            file=file,
            title=title,
            part=part,
            level=level,
            index=index,
            prev=keys[index - 1] if index > 0 else None,
            next=keys[index + 1] if index + 1 < len(keys) else None,
        )
        for index, (file, title, part, level) in enumerate(collected)
    )


def toc_href(file_key: str) -> str:
    """Return the output HTML path for a TOC file key.

    >>> toc_href("guide/intro")
    'guide/intro.html'
    >>> toc_href("notes.md")
    'notes.html'
    """
    for extension in SOURCE_EXTENSIONS:
        if file_key.lower().endswith(extension):
            return file_key[: -len(extension)] + ".html"
    return f"{file_key}.html"


__all__ = [
    "FlatTocEntry",
    "TocConfig",
    "TocEntry",
    "TocPart",
    "flatten_toc",
    "load_toc",
    "parse_toc",
    "toc_from_mapping",
    "toc_href",
]
