"""Extract headings and plain text from rendered HTML fragments with bs4."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from orgbook.backends.org import slugify

from .base import PageHeading

WHITESPACE_PATTERN = re.compile(r"\s+")


def ensure_heading_ids(html: str, toc_depth: int) -> tuple[str, list[PageHeading]]:
    """Give section headings ids and collect them for an in-page TOC.

    Headings ``<h2>`` to ``<h{toc_depth + 1}>`` are collected; ``<h1>`` is the
    page title and never listed. Headings without an ``id`` get one derived
    from their text, deduplicated against ids already present.

    Parameters
    ----------
    html : str
        Body fragment.
    toc_depth : int
        Number of heading levels to collect.

    Returns
    -------
    tuple[str, list[PageHeading]]
        The fragment, re-serialised only when an id was added, and the
        headings in document order.
    """
    if toc_depth < 1:
        return html, []
    soup = BeautifulSoup(html, "html.parser")
    tags = [f"h{level}" for level in range(2, min(toc_depth + 1, 6) + 1)]
    taken = {str(tag["id"]) for tag in soup.find_all(id=True)}
    headings: list[PageHeading] = []
    changed = False
    for tag in soup.find_all(tags):
        text = WHITESPACE_PATTERN.sub(" ", tag.get_text()).strip()
        if not tag.get("id"):
            base = slugify(text) or "section"
            anchor = base
            suffix = 1
            while anchor in taken:
                anchor = f"{base}-{suffix}"
                suffix += 1
            taken.add(anchor)
            tag["id"] = anchor
            changed = True
        headings.append(PageHeading(str(tag["id"]), text, int(tag.name[1]) - 1))
    return (str(soup) if changed else html), headings


def html_to_text(html: str) -> str:
    """Return the visible text of ``html`` with whitespace collapsed.

    >>> html_to_text("<p>A &amp; B</p><script>x()</script>")
    'A & B'
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return WHITESPACE_PATTERN.sub(" ", soup.get_text(" ")).strip()


__all__ = ["ensure_heading_ids", "html_to_text"]
