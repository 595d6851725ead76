"""Unit tests for themes: heading extraction, search index, registry and pages.

Pages rendered by the bundled ``book`` and ``default`` themes are parsed with
BeautifulSoup so assertions target structure rather than whitespace.

Usage
-----
Run ``pytest tests/test_themes.py -v``.

Examples
--------
- ``test_book_page_navigation`` renders a nested page and checks that the
  site navigation, prev/next links and asset paths climb back to the root.
- ``test_registry_falls_back_to_default`` checks the lookup fallback.
"""

from __future__ import annotations

import json
import logging
import typing as typ

import pytest
from bs4 import BeautifulSoup

from orgbook.config import (
    NavLinkConfig,
    ThemeAppearanceConfig,
    ThemeConfig,
    ThemeFooterConfig,
    ThemeHeaderConfig,
    ThemeLayoutConfig,
    ThemeSearchConfig,
)
from orgbook.themes import (
    BookTheme,
    DefaultTheme,
    PageContext,
    PageHeading,
    PageInfo,
    ProjectContext,
    SearchIndexer,
    ThemeRegistry,
    default_registry,
    ensure_heading_ids,
    html_to_text,
    path_to_root,
    write_search_index,
)
from orgbook.themes.book import nest_headings
from orgbook.themes.search_index import build_search_index, truncate_content
from orgbook.toc import flatten_toc, parse_toc

if typ.TYPE_CHECKING:
    from pathlib import Path

TOC_TEXT = """\
root: index
parts:
  - caption: Guide
    chapters:
      - file: guide/intro
        sections:
          - file: guide/setup
  - caption: Links
    chapters:
      - url: https://example.com
        title: Example
"""


def _project(
    tmp_path: Path, config: ThemeConfig, titles: dict[str, str] | None = None
) -> ProjectContext:
    toc = parse_toc(TOC_TEXT)
    return ProjectContext(
        config=config,
        flat_toc=flatten_toc(toc),
        toc_config=toc,
        output_dir=tmp_path / "out",
        base_dir=tmp_path / "src",
        workspace_root=tmp_path,
        titles=titles
        if titles is not None
        else {
            "index": "Welcome",
            "guide/intro": "Introduction",
            "guide/setup": "Setup Guide",
        },
    )


def _intro_page(project: ProjectContext, *, headings: bool = True) -> PageContext:
    return PageContext(
        title="Introduction",
        content='<h2 id="install">Install</h2><p>Body</p>',
        relative_path="guide/intro.html",
        toc_entry=project.entry_for("guide/intro"),
        page_headings=(PageHeading("install", "Install", 1),) if headings else (),
    )


def _render(
    theme: BookTheme | DefaultTheme, page: PageContext, project: ProjectContext
) -> BeautifulSoup:
    return BeautifulSoup(theme.render_page(page.content, page, project), "html.parser")


def test_ensure_heading_ids_adds_unique_anchors() -> None:
    """Headings get slug ids that do not clash with existing ones."""
    html, headings = ensure_heading_ids(
        '<h1>Title</h1><h2>Intro</h2><h3 id="intro">Kept</h3>'
        "<h2>Intro</h2><h5>Too deep</h5>",
        3,
    )
    assert [(h.id, h.text, h.level) for h in headings] == [
        ("intro-1", "Intro", 1),
        ("intro", "Kept", 2),
        ("intro-2", "Intro", 1),
    ], "expected h2 to h4 collected with unique ids"
    soup = BeautifulSoup(html, "html.parser")
    assert soup.find("h1").get("id") is None, "expected the title heading untouched"


def test_ensure_heading_ids_keeps_html_when_nothing_changes() -> None:
    """Fragments whose headings already have ids are returned unchanged."""
    fragment = '<h2 id="a">A</h2>\n<p>text</p>'
    html, headings = ensure_heading_ids(fragment, 2)
    assert html is fragment, "expected the original string back"
    assert headings == [PageHeading("a", "A", 1)], "expected the existing id"
    assert ensure_heading_ids(fragment, 0) == (fragment, []), (
        "expected no headings for a zero depth"
    )


def test_html_to_text_drops_scripts() -> None:
    """Visible text only, with whitespace collapsed."""
    assert html_to_text("<h2>A</h2>\n<p>b  <em>c</em></p><style>p{}</style>") == (
        "A b c"
    ), "expected collapsed visible text"


def test_truncate_content_prefers_word_breaks() -> None:
    """Long content is cut at a late space, or hard when there is none."""
    assert truncate_content("x" * 20, 10) == "x" * 10 + "...", "expected a hard cut"
    assert truncate_content("aaaa bbbbbbbbbb", 10) == "aaaa bbbbb...", (
        "expected an early space to be ignored"
    )


def test_search_index_payload_and_files(tmp_path: Path) -> None:
    """The index lists each page and is written compactly beside the script."""
    pages = [
        PageInfo("Home", "index.html", "Welcome text", (PageHeading("a", "About", 1),)),
        PageInfo("Guide", "guide/intro.html", "y" * 12_000),
    ]
    payload = build_search_index(pages)
    assert payload["config"]["boosts"] == {"title": 10, "headings": 5, "content": 1}, (
        "expected the field boosts"
    )
    assert payload["documents"][0]["headings"] == "About", "expected heading text"
    assert len(payload["documents"][1]["content"]) == 10_003, (
        "expected long content truncated with an ellipsis"
    )
    index_path = write_search_index(pages, tmp_path)
    assert index_path == tmp_path / "_static" / "search-index.json", "expected the path"
    text = index_path.read_text(encoding="utf-8")
    assert text.startswith('{"documents":[{"id":"index.html"'), "expected compact JSON"
    assert json.loads(text) == payload, "expected the payload to round trip"
    assert (tmp_path / "_static" / "search.js").is_file(), "expected the script"


def test_registry_falls_back_to_default(caplog: pytest.LogCaptureFixture) -> None:
    """Unknown names resolve to the default theme with a warning."""
    registry = default_registry()
    assert registry.names() == ["book", "default"], "expected the bundled themes"
    assert registry.get("book").name == "book", "expected the book theme"
    with caplog.at_level(logging.WARNING, logger="orgbook.themes.registry"):
        assert registry.get("fancy").name == "default", "expected the fallback"
    assert "fancy" in caplog.text, "expected the unknown name in the warning"
    assert registry.for_config(None).name == "default", "expected the default"


def test_registry_is_explicit() -> None:
    """Registries are independent objects; an empty one cannot fall back."""
    registry = ThemeRegistry()
    with pytest.raises(KeyError):
        registry.get("book")
    registry.register("book", BookTheme)
    assert "book" in registry, "expected the registered theme"
    assert "book" in default_registry(), "expected the default registry untouched"
    assert isinstance(BookTheme(), SearchIndexer), "expected book to index search"
    assert not isinstance(DefaultTheme(), SearchIndexer), "expected no default search"


def test_path_to_root() -> None:
    """Pages at the root use ``./``; nested pages climb with ``../``."""
    assert path_to_root("index.html") == "./", "expected the current directory"
    assert path_to_root("a/b/c.html") == "../../", "expected two levels up"


def test_title_lookup_prefers_published_titles(tmp_path: Path) -> None:
    """Published titles win over TOC titles, which win over nothing."""
    project = _project(tmp_path, ThemeConfig(name="book"), titles={})
    assert project.title_for("guide/intro") is None, "expected no title"
    project = _project(tmp_path, ThemeConfig(name="book"))
    assert project.title_for("guide/setup") == "Setup Guide", "expected the title"


def test_nest_headings() -> None:
    """Flat headings become a tree and levels past the depth are dropped."""
    tree = nest_headings(
        [
            PageHeading("a", "A", 1),
            PageHeading("b", "B", 2),
            PageHeading("c", "C", 3),
            PageHeading("d", "D", 2),
            PageHeading("e", "E", 1),
        ],
        2,
    )
    assert [node.heading.id for node in tree] == ["a", "e"], "expected two roots"
    assert [child.heading.id for child in tree[0].children] == ["b", "d"], (
        "expected the level-two headings beneath the first root"
    )


def test_book_page_navigation(tmp_path: Path) -> None:
    """Site navigation, page links and assets are relative to the page."""
    config = ThemeConfig(
        name="book",
        header=ThemeHeaderConfig(
            title="Docs",
            navbar_links=[NavLinkConfig("GitHub", "https://github.com/example")],
        ),
        footer=ThemeFooterConfig(copyright="2026 Example"),
        custom_css="css/site.css",
    )
    project = _project(tmp_path, config)
    soup = _render(BookTheme(), _intro_page(project), project)

    root_link = soup.select_one(".nav-root a")
    assert root_link is not None, "expected the root navigation entry"
    assert root_link["href"] == "../index.html", "expected the root href"
    assert root_link.get_text() == "Welcome", "expected the published root title"

    active = soup.select_one("li.nav-item.active .nav-link")
    assert active is not None, "expected the current page to be active"
    assert active["href"] == "../guide/intro.html", "expected the page href"
    assert soup.select_one("li.nav-item.active > ul.nav-children.expanded"), (
        "expected the active entry's sections expanded"
    )
    captions = [tag.get_text() for tag in soup.select(".part-caption")]
    assert captions == ["Guide", "Links"], "expected one group per part"
    external = soup.select_one("a.nav-link.external")
    assert external is not None, "expected the URL entry"
    assert external["target"] == "_blank", "expected external links in a new tab"

    prev_link = soup.select_one("a.nav-prev")
    next_link = soup.select_one("a.nav-next")
    assert prev_link is not None, "expected a previous link"
    assert prev_link["href"] == "../index.html", "expected the previous page"
    assert next_link is not None, "expected a next link"
    assert next_link["href"] == "../guide/setup.html", "expected the next page"
    assert "Setup Guide" in next_link.get_text(), "expected the next page title"

    toc_link = soup.select_one(".sidebar-right a.toc-link")
    assert toc_link is not None, "expected the in-page table of contents"
    assert toc_link["href"] == "#install", "expected the heading anchor"

    stylesheets = [link["href"] for link in soup.find_all("link", rel="stylesheet")]
    assert "../_static/book-theme.css" in stylesheets, "expected the theme CSS"
    assert "../css/site.css" in stylesheets, "expected the prefixed custom CSS"
    scripts = [script.get("src") for script in soup.find_all("script")]
    assert "../_static/search.js" in scripts, "expected the search script"
    assert soup.select_one(".header-title").get_text() == "Docs", "expected a title"
    assert "2026 Example" in soup.select_one(".copyright").get_text(), (
        "expected the copyright line"
    )


def test_book_layout_switches(tmp_path: Path) -> None:
    """Hidden sidebars, search and dark mode leave no markup behind."""
    config = ThemeConfig(
        name="book",
        layout=ThemeLayoutConfig(show_left_sidebar=False),
        appearance=ThemeAppearanceConfig(enable_dark_mode=False, default_mode="dark"),
        search=ThemeSearchConfig(enabled=False),
    )
    project = _project(tmp_path, config)
    soup = _render(BookTheme(), _intro_page(project, headings=False), project)
    container = soup.select_one(".book-container")
    assert container is not None, "expected the layout container"
    assert {"no-left-sidebar", "no-right-sidebar"} <= set(container["class"]), (
        "expected both sidebars hidden"
    )
    assert soup.select_one(".sidebar-right") is None, "expected no heading list"
    assert soup.select_one("#theme-toggle") is None, "expected no dark mode toggle"
    assert soup.select_one("#search-input") is None, "expected no search box"
    assert soup.html["data-theme"] == "dark", "expected the default colour mode"


def test_book_assets_are_copied(tmp_path: Path) -> None:
    """The book theme writes its stylesheet and script under ``_static``."""
    BookTheme().copy_assets(tmp_path)
    assert (tmp_path / "_static" / "book-theme.css").is_file(), "expected the CSS"
    assert (tmp_path / "_static" / "book-theme.js").is_file(), "expected the JS"


def test_default_page(tmp_path: Path) -> None:
    """The default theme wraps content with a title and neighbour links."""
    project = _project(tmp_path, ThemeConfig())
    page = PageContext(
        title="Welcome",
        content="<p>Hello</p>",
        relative_path="index.html",
        toc_entry=project.entry_for("index"),
    )
    soup = _render(DefaultTheme(), page, project)
    assert soup.title is not None, "expected a document title"
    assert soup.title.get_text() == "Welcome", "expected the page title"
    assert soup.select_one("a.nav-prev") is None, "expected no previous page"
    next_link = soup.select_one("a.nav-next")
    assert next_link is not None, "expected a next link"
    assert next_link["href"] == "./guide/intro.html", "expected a root-relative href"
    assert "Introduction" in next_link.get_text(), "expected the next title"
