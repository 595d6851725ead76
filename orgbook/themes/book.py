"""Three-column book theme: site navigation, content, and an in-page TOC.

The left sidebar mirrors the ``_toc.yml`` hierarchy with the current page
highlighted and its ancestors expanded. The right sidebar lists the page's
own headings. A header carries the logo, title, navbar links and the dark
mode toggle; assets live in ``_static/`` and search is backed by
``_static/search-index.json``.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import shutil
import typing as typ

from markupsafe import Markup

from orgbook._constants import HIGHLIGHT_JS_VERSION, STATIC_DIRNAME
from orgbook.toc import toc_href

from .base import (
    THEME_ASSETS_DIR,
    build_environment,
    neighbour_links,
    path_to_root,
)
from .search_index import write_search_index

if typ.TYPE_CHECKING:
    from pathlib import Path

    from orgbook.toc import TocEntry

    from .base import PageContext, PageHeading, PageInfo, ProjectContext

logger = logging.getLogger(__name__)

BOOK_ASSETS = ("book-theme.css", "book-theme.js")
EXTERNAL_PREFIXES = ("http://", "https://")


def is_external(url: str) -> bool:
    """Return True for absolute http(s) links."""
    return url.startswith(EXTERNAL_PREFIXES)


@dc.dataclass(slots=True, frozen=True)
class NavItem:
    """One entry of the left-hand site navigation."""

    title: str
    href: str | None
    level: int = 0
    external: bool = False
    active: bool = False
    has_active: bool = False
    children: tuple[NavItem, ...] = ()

    @property
    def expanded(self) -> bool:
        """Return True when the entry's children should be shown."""
        return self.active or self.has_active


@dc.dataclass(slots=True, frozen=True)
class NavGroup:
    """A TOC part, or the ungrouped chapter list when there are no parts."""

    caption: str | None
    items: tuple[NavItem, ...]


@dc.dataclass(slots=True)
class HeadingNode:
    """A page heading with the headings nested beneath it."""

    heading: PageHeading
    children: list[HeadingNode] = dc.field(default_factory=list)


def nest_headings(
    headings: typ.Iterable[PageHeading], max_depth: int
) -> list[HeadingNode]:
    """Arrange flat headings into a tree, dropping levels past ``max_depth``."""
    roots: list[HeadingNode] = []
    stack: list[HeadingNode] = []
    for heading in headings:
        if heading.level > max_depth:
            continue
        node = HeadingNode(heading)
        while stack and stack[-1].heading.level >= heading.level:
            stack.pop()
        (stack[-1].children if stack else roots).append(node)
        stack.append(node)
    return roots


class _NavBuilder:
    """Turn TOC entries into :class:`NavItem` trees for one page."""

    def __init__(self, page: PageContext, project: ProjectContext) -> None:
        self.project = project
        self.current = page.relative_path
        self.prefix = path_to_root(page.relative_path)

    def item(self, entry: TocEntry, level: int) -> NavItem | None:
        children = tuple(
            child
            for child in (self.item(section, level + 1) for section in entry.sections)
            if child is not None
        )
        if entry.url:
            return NavItem(
                title=entry.title or entry.url,
                href=entry.url,
                level=level,
                external=is_external(entry.url),
                children=children,
            )
        if not entry.file:
            return None
        href = toc_href(entry.file)
        return NavItem(
            title=entry.title or self.project.title_for(entry.file) or entry.file,
            href=self.prefix + href,
            level=level,
            active=href == self.current,
            has_active=any(child.active or child.has_active for child in children),
            children=children,
        )

    def items(self, entries: typ.Iterable[TocEntry]) -> tuple[NavItem, ...]:
        return tuple(
            item for item in (self.item(entry, 0) for entry in entries) if item
        )

    def root(self) -> NavItem:
        key = self.project.toc_config.root
        href = toc_href(key)
        return NavItem(
            title=self.project.title_for(key) or "Home",
            href=self.prefix + href,
            active=href == self.current,
        )

    def groups(self) -> list[NavGroup]:
        toc = self.project.toc_config
        if toc.parts:
            return [
                NavGroup(part.caption, self.items(part.chapters)) for part in toc.parts
            ]
        return [NavGroup(None, self.items(toc.chapters))]


class BookTheme:
    """Jupyter-Book-like layout with sidebars, dark mode and search."""

    name = "book"

    def __init__(self) -> None:
        self.env = build_environment()
        self.template = self.env.get_template("book_page.jinja")

    def render_page(
        self, content: str, page: PageContext, project: ProjectContext
    ) -> str:
        """Assemble the three-column page around ``content``."""
        config = project.config
        root = path_to_root(page.relative_path)
        heading_tree = nest_headings(page.page_headings, config.layout.toc_depth)
        show_left = config.layout.show_left_sidebar
        show_right = config.layout.show_right_sidebar and bool(heading_tree)
        container_classes = ["book-container"]
        if not show_left:
            container_classes.append("no-left-sidebar")
        if not show_right:
            container_classes.append("no-right-sidebar")
        builder = _NavBuilder(page, project)
        prev_link, next_link = neighbour_links(page, project)
        custom_css = config.custom_css
        if custom_css and not is_external(custom_css):
            custom_css = root + custom_css
        return self.template.render(
            title=page.title or "Untitled",
            content=Markup(content),
            root=root,
            home_href=root + toc_href(project.toc_config.root),
            header=config.header,
            footer=config.footer,
            appearance=config.appearance,
            search_enabled=config.search.enabled,
            custom_css=custom_css,
            show_left=show_left,
            show_right=show_right,
            container_class=" ".join(container_classes),
            nav_root=builder.root(),
            nav_groups=builder.groups(),
            heading_tree=heading_tree,
            prev_link=prev_link,
            next_link=next_link,
            is_external=is_external,
            highlight_version=HIGHLIGHT_JS_VERSION,
        )

    def copy_assets(self, output_dir: Path) -> None:
        """Copy the stylesheet and script into ``output_dir/_static``."""
        static_dir = output_dir / STATIC_DIRNAME
        static_dir.mkdir(parents=True, exist_ok=True)
        for name in BOOK_ASSETS:
            shutil.copyfile(THEME_ASSETS_DIR / name, static_dir / name)
        logger.debug("Copied book theme assets to %s", static_dir)

    def generate_search_index(
        self, pages: typ.Sequence[PageInfo], output_dir: Path
    ) -> None:
        """Write the search index and search script for ``pages``."""
        write_search_index(pages, output_dir)


__all__ = ["BookTheme", "HeadingNode", "NavGroup", "NavItem", "nest_headings"]
