"""Theme-facing page and project views plus the theme protocol.

A theme receives a rendered body fragment together with read-only context
about the page and its project and returns a complete HTML document. Themes
may also contribute static assets and, optionally, a search index.

Example
-------
>>> page = PageContext(title="Intro", content="<p>Hi</p>", relative_path="intro.html")
>>> path_to_root(page.relative_path)
'./'
>>> path_to_root("guide/setup/install.html")
'../../'
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from orgbook.toc import toc_href

if typ.TYPE_CHECKING:
    from orgbook.config.models import ThemeConfig
    from orgbook.toc import FlatTocEntry, TocConfig


THEME_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
THEME_ASSETS_DIR = Path(__file__).resolve().parent / "assets"


@dc.dataclass(slots=True, frozen=True)
class PageHeading:
    """An in-page heading with its anchor id.

    ``level`` counts from one for the first heading level below the page
    title, so an org top-level headline (rendered as ``<h2>``) is level 1.
    """

    id: str
    text: str
    level: int


@dc.dataclass(slots=True, frozen=True)
class PageContext:
    """Read-only view of the page being rendered."""

    title: str
    content: str
    relative_path: str
    source_path: Path | None = None
    toc_entry: FlatTocEntry | None = None
    page_headings: tuple[PageHeading, ...] = ()


@dc.dataclass(slots=True, frozen=True)
class PageInfo:
    """Plain-text summary of a rendered page, used for search indexing."""

    title: str
    path: str
    content: str
    headings: tuple[PageHeading, ...] = ()


@dc.dataclass(slots=True, frozen=True)
class ProjectContext:
    """Read-only view of the project a page belongs to."""

    config: ThemeConfig
    flat_toc: tuple[FlatTocEntry, ...]
    toc_config: TocConfig
    output_dir: Path
    base_dir: Path
    workspace_root: Path
    titles: typ.Mapping[str, str] = dc.field(default_factory=dict)

    def entry_for(self, file_key: str) -> FlatTocEntry | None:
        """Return the flattened TOC entry for ``file_key`` if there is one."""
        return next((entry for entry in self.flat_toc if entry.file == file_key), None)

    def title_for(self, file_key: str) -> str | None:
        """Return the published title of ``file_key``, else its TOC title."""
        if file_key in self.titles:
            return self.titles[file_key]
        entry = self.entry_for(file_key)
        return entry.title if entry else None


class Theme(typ.Protocol):
    """Full-page renderer and asset contributor."""

    name: str

    def render_page(
        self, content: str, page: PageContext, project: ProjectContext
    ) -> str:
        """Wrap ``content`` into a complete HTML document."""
        ...

    def copy_assets(self, output_dir: Path) -> None:
        """Write the theme's static files under ``output_dir``."""
        ...


@typ.runtime_checkable
class SearchIndexer(typ.Protocol):
    """Optional theme capability: build a client-side search index."""

    def generate_search_index(
        self, pages: typ.Sequence[PageInfo], output_dir: Path
    ) -> None:
        """Write index files for ``pages`` under ``output_dir``."""
        ...


def build_environment() -> Environment:
    """Return the Jinja environment that loads bundled theme templates."""
    return Environment(
        loader=FileSystemLoader(str(THEME_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml", "jinja"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def path_to_root(relative_path: str) -> str:
    """Return the prefix leading from ``relative_path`` back to the site root."""
    depth = relative_path.count("/")
    return "../" * depth if depth else "./"


@dc.dataclass(slots=True, frozen=True)
class NavLink:
    """A prev/next link resolved for one page."""

    href: str
    title: str


def neighbour_links(
    page: PageContext, project: ProjectContext
) -> tuple[NavLink | None, NavLink | None]:
    """Resolve the previous and next pages of ``page`` in TOC order."""
    entry = page.toc_entry
    if entry is None:
        return None, None
    prefix = path_to_root(page.relative_path)

    def _link(key: str | None) -> NavLink | None:
        if key is None:
            return None
        return NavLink(href=prefix + toc_href(key), title=project.title_for(key) or key)

    return _link(entry.prev), _link(entry.next)


__all__ = [
    "THEME_ASSETS_DIR",
    "THEME_TEMPLATES_DIR",
    "NavLink",
    "PageContext",
    "PageHeading",
    "PageInfo",
    "ProjectContext",
    "SearchIndexer",
    "Theme",
    "build_environment",
    "neighbour_links",
    "path_to_root",
]
