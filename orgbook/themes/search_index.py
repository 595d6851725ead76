"""Build the client-side search index written by themes that offer search."""

from __future__ import annotations

import json
import logging
import shutil
import typing as typ

from orgbook._constants import STATIC_DIRNAME

from .base import THEME_ASSETS_DIR

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .base import PageInfo

logger = logging.getLogger(__name__)

SEARCH_INDEX_FILENAME = "search-index.json"
SEARCH_SCRIPT_FILENAME = "search.js"
MAX_CONTENT_LENGTH = 10_000
FIELD_BOOSTS = {"title": 10, "headings": 5, "content": 1}


def truncate_content(content: str, max_length: int = MAX_CONTENT_LENGTH) -> str:
    """Shorten ``content`` to ``max_length`` characters, preferring a word break.

    The cut moves back to the last space when that space lies in the final
    fifth of the allowed length; an ellipsis marks any truncation.

    >>> truncate_content("alpha beta gamma", 12)
    'alpha beta...'
    >>> truncate_content("short", 12)
    'short'
    """
    if len(content) <= max_length:
        return content
    truncated = content[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return f"{truncated[:last_space]}..."
    return f"{truncated}..."


def build_search_index(pages: typ.Iterable[PageInfo]) -> dict[str, typ.Any]:
    """Return the index payload: one document per page plus field boosts."""
    documents = [
        {
            "id": page.path,
            "title": page.title,
            "content": truncate_content(page.content),
            "headings": " ".join(heading.text for heading in page.headings),
        }
        for page in pages
    ]
    return {
        "documents": documents,
        "config": {"fields": list(FIELD_BOOSTS), "boosts": dict(FIELD_BOOSTS)},
    }


def write_search_index(pages: typ.Iterable[PageInfo], output_dir: Path) -> Path:
    """Write ``_static/search-index.json`` and the search script.

    Returns
    -------
    Path
        Location of the written index file.
    """
    static_dir = output_dir / STATIC_DIRNAME
    static_dir.mkdir(parents=True, exist_ok=True)
    payload = build_search_index(pages)
    index_path = static_dir / SEARCH_INDEX_FILENAME
    index_path.write_text(
        json.dumps(payload, ensure_ascii=False, separators=(",", ":")),
        encoding="utf-8",
    )
    shutil.copyfile(
        THEME_ASSETS_DIR / SEARCH_SCRIPT_FILENAME, static_dir / SEARCH_SCRIPT_FILENAME
    )
    logger.debug(
        "Wrote search index with %d documents to %s",
        len(payload["documents"]),
        index_path,
    )
    return index_path


__all__ = ["build_search_index", "truncate_content", "write_search_index"]
