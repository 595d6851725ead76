"""Pluggable full-page themes.

Exports
-------
Theme, SearchIndexer
    Protocols a theme implements.
PageContext, ProjectContext, PageHeading, PageInfo
    Read-only views handed to themes.
ThemeRegistry, default_registry
    Name-to-theme lookup with a default fallback.
DefaultTheme, BookTheme
    Bundled themes.
ensure_heading_ids, html_to_text
    HTML helpers used while assembling theme pages.
"""

from __future__ import annotations

from .base import (
    PageContext,
    PageHeading,
    PageInfo,
    ProjectContext,
    SearchIndexer,
    Theme,
    path_to_root,
)
from .book import BookTheme
from .default import DefaultTheme
from .headings import ensure_heading_ids, html_to_text
from .registry import ThemeRegistry, default_registry
from .search_index import build_search_index, write_search_index

__all__ = [
    "BookTheme",
    "DefaultTheme",
    "PageContext",
    "PageHeading",
    "PageInfo",
    "ProjectContext",
    "SearchIndexer",
    "Theme",
    "ThemeRegistry",
    "build_search_index",
    "default_registry",
    "ensure_heading_ids",
    "html_to_text",
    "path_to_root",
    "write_search_index",
]
