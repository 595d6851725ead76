"""Integration tests for project and multi-project publishing.

Each test lays out a small workspace under ``tmp_path`` and publishes it
through :mod:`orgbook.orchestrator`, checking the written site rather than
internal state.

Usage
-----
Run ``pytest tests/test_orchestrator.py -v``. ``pytest-mock`` supplies the
progress callback and backend spies.

Examples
--------
- ``test_second_run_is_a_no_op`` publishes twice and asserts the second run
  only short-circuits.
- ``test_themed_project`` publishes a TOC-driven project through the book
  theme and inspects navigation, assets and the search index.
"""

from __future__ import annotations

import json
import logging
import os
import typing as typ

import nbformat
import pytest
from bs4 import BeautifulSoup

from orgbook.backends import DefaultBackend
from orgbook.config import (
    ComponentProject,
    Project,
    PublishConfig,
    ThemeConfig,
    ThemeSearchConfig,
    merge_with_defaults,
)
from orgbook.orchestrator import (
    create_project_config,
    get_publish_order,
    publish_all,
    publish_project,
    publish_project_with_theme,
    setup_github_pages,
)
from orgbook.publisher import FilePublisher, PublishError, PublishOptions

if typ.TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _age_sources(base: Path, seconds: int = 120) -> None:
    """Push every source file's modification time into the past."""
    for path in base.rglob("*"):
        if path.is_file():
            stamp = path.stat().st_mtime - seconds
            os.utime(path, (stamp, stamp))


def _project(name: str = "site", **settings: object) -> Project:
    return merge_with_defaults(
        {
            "name": name,
            "base_directory": "src",
            "publishing_directory": "out",
            **settings,
        }
    )


def _scan_workspace(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    _write(src / "index.org", "#+TITLE: Home Page\n#+DATE: 2026-01-02\n\nHello.\n")
    _write(src / "guide" / "intro.md", "# Intro\n\nRead [home](../index.md).\n")
    _write(src / "notes.txt", "not published")
    return src


def _book_workspace(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    _write(
        src / "_toc.yml",
        "format: jb-book\nroot: index\nchapters:\n  - file: guide/intro\n"
        "    sections:\n      - file: guide/setup\n",
    )
    _write(src / "index.org", "#+TITLE: Welcome\n\n* Overview\nText.\n")
    _write(src / "guide" / "intro.md", "# Introduction\n\n## Install\n\nSteps.\n")
    notebook = nbformat.v4.new_notebook(
        cells=[
            nbformat.v4.new_markdown_cell("# Setup\n\nConfigure it."),
            nbformat.v4.new_code_cell("configure()"),
        ]
    )
    _write(src / "guide" / "setup.ipynb", nbformat.writes(notebook))
    return src


def test_scan_publish_writes_pages_and_sitemap(tmp_path: Path) -> None:
    """Scanned sources are published and listed in a generated sitemap."""
    src = _scan_workspace(tmp_path)
    result = publish_project(_project(base_extension="org|md"), tmp_path)
    assert result.error_count == 0, f"unexpected failures: {result.files}"
    assert result.total_files == 3, "expected two documents and the sitemap"
    out = tmp_path / "out"
    for relative in ("index.html", "guide/intro.html", "sitemap.html"):
        assert (out / relative).is_file(), f"expected {relative} to be written"
    assert not (out / "notes.txt").exists(), "expected other files to be ignored"
    sitemap = (src / "sitemap.org").read_text(encoding="utf-8")
    assert "- [[file:guide/intro.html][Intro]]" in sitemap, "expected the guide"
    assert "- [[file:index.html][Home Page]] (2026-01-02)" in sitemap, (
        "expected the dated home page"
    )
    assert result.files[-1].title == "Site Map", "expected the sitemap last"
    intro = (out / "guide" / "intro.html").read_text(encoding="utf-8")
    assert 'href="../index.html"' in intro, "expected the .md link rewritten"


def test_generated_sitemap_is_not_a_source(tmp_path: Path) -> None:
    """Rerunning never publishes the previous sitemap as a document."""
    _scan_workspace(tmp_path)
    project = _project()
    publish_project(project, tmp_path)
    again = publish_project(project, tmp_path, PublishOptions(force=True))
    sources = [item.source_path.name for item in again.files]
    assert sources == ["index.org", "sitemap.org"], (
        "expected the sitemap only as the generated page"
    )
    sitemap = (tmp_path / "src" / "sitemap.org").read_text(encoding="utf-8")
    assert "sitemap.html" not in sitemap, "expected the sitemap not to list itself"


def test_second_run_is_a_no_op(tmp_path: Path) -> None:
    """Without changes a second run skips every file and rewrites nothing."""
    src = _scan_workspace(tmp_path)
    _age_sources(src)
    project = _project(base_extension="org|md", auto_sitemap=False)
    first = publish_project(project, tmp_path)
    assert all(item.title for item in first.files), "expected converted files"
    stamps = {item.output_path: item.output_path.stat().st_mtime_ns for item in first.files}

    second = publish_project(project, tmp_path)
    assert second.success_count == second.total_files == 2, "expected two skips"
    assert all(item.title is None and item.date is None for item in second.files), (
        "expected no metadata from up-to-date files"
    )
    assert {
        path: path.stat().st_mtime_ns for path in stamps
    } == stamps, "expected no output to be rewritten"


def test_progress_and_backend_are_used(tmp_path: Path, mocker: MockerFixture) -> None:
    """The progress callback sees each file and the backend parses org text."""
    _scan_workspace(tmp_path)
    progress = mocker.Mock()
    backend = DefaultBackend()
    parse = mocker.spy(backend, "parse_document")
    publish_project(
        _project(base_extension="org|md", auto_sitemap=False),
        tmp_path,
        PublishOptions(on_progress=progress),
        backend=backend,
    )
    assert progress.call_args_list == [
        mocker.call(1, 2, "intro.md"),
        mocker.call(2, 2, "index.org"),
    ], "expected one progress call per file in discovery order"
    assert parse.call_count == 1, "expected only the org file to be parsed"


def test_one_bad_file_does_not_stop_the_project(tmp_path: Path) -> None:
    """A broken document is reported while the others still publish."""
    src = _scan_workspace(tmp_path)
    (src / "broken.md").write_bytes(b"\xff\xfe broken")
    result = publish_project(_project(base_extension="org|md"), tmp_path)
    failed = [item for item in result.files if not item.success]
    assert [item.source_path.name for item in failed] == ["broken.md"], (
        "expected only the broken file to fail"
    )
    assert result.success_count == 3, "expected the others and the sitemap"


def test_linked_source_publishes_where_the_link_lives(tmp_path: Path) -> None:
    """A symlink to a file outside the base publishes at the link's location."""
    _write(tmp_path / "src" / "good.org", "#+TITLE: Good\n")
    shared = _write(tmp_path / "shared" / "x.org", "#+TITLE: Shared\n")
    (tmp_path / "src" / "linked.org").symlink_to(shared)
    result = publish_project(_project(auto_sitemap=False), tmp_path)
    assert result.error_count == 0, "expected both files to publish"
    assert (tmp_path / "out" / "linked.html").is_file(), (
        "expected the linked page beside its link"
    )
    assert (tmp_path / "out" / "good.html").is_file(), "expected the plain page"


def test_toc_entry_outside_the_base_fails_alone(tmp_path: Path) -> None:
    """A TOC key escaping the base is a failed file, not an aborted project."""
    _write(tmp_path / "shared" / "x.org", "#+TITLE: Shared\n")
    _write(
        tmp_path / "src" / "_toc.yml",
        "root: index\nchapters:\n  - file: ../shared/x\n",
    )
    _write(tmp_path / "src" / "index.org", "#+TITLE: Home\n")
    result = publish_project(_project(), tmp_path)
    failed = [item for item in result.files if not item.success]
    assert [item.source_path.name for item in failed] == ["x.org"], (
        "expected only the escaping entry to fail"
    )
    assert failed[0].output_path is None, "expected no output location"
    assert (tmp_path / "out" / "index.html").is_file(), "expected the root page"
    assert (tmp_path / "src" / "sitemap.org").is_file(), "expected the sitemap"


def test_missing_base_directory_aborts(tmp_path: Path) -> None:
    """Scan-driven publishing needs the base directory to exist."""
    with pytest.raises(FileNotFoundError):
        publish_project(_project(), tmp_path)


def test_toc_project_uses_toc_order_and_navigation(tmp_path: Path) -> None:
    """With a TOC, pages follow it and carry prev/next links."""
    src = _book_workspace(tmp_path)
    result = publish_project(_project(sitemap_filename="contents.org"), tmp_path)
    assert [item.source_path.name for item in result.files] == [
        "index.org",
        "intro.md",
        "setup.ipynb",
        "contents.org",
    ], "expected TOC order followed by the index page"
    intro = BeautifulSoup(
        (tmp_path / "out" / "guide" / "intro.html").read_text(encoding="utf-8"),
        "html.parser",
    )
    prev_link = intro.find("a", class_="nav-prev")
    assert prev_link is not None, "expected a previous link"
    assert prev_link["href"] == "../index.html", "expected a relative href"
    contents = (src / "contents.org").read_text(encoding="utf-8")
    assert "- [[file:index.html][Welcome]]" in contents, "expected the root"
    assert "  - [[file:guide/setup.html][Setup]]" in contents, (
        "expected the section nested under its chapter"
    )


def test_sitemap_never_replaces_a_source(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """A sitemap that would overwrite a TOC document is skipped."""
    src = _book_workspace(tmp_path)
    original = (src / "index.org").read_text(encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="orgbook.orchestrator"):
        result = publish_project(_project(sitemap_filename="index.org"), tmp_path)
    assert result.total_files == 3, "expected no generated page"
    assert (src / "index.org").read_text(encoding="utf-8") == original, (
        "expected the source untouched"
    )
    assert "Not generating sitemap" in caplog.text, "expected a warning"


def test_copy_project_has_no_sitemap(tmp_path: Path) -> None:
    """Copy projects mirror files byte for byte and skip the sitemap."""
    _write(tmp_path / "src" / "a.org", "* raw")
    result = publish_project(_project(publishing_function="copy"), tmp_path)
    assert result.total_files == 1, "expected only the copied file"
    assert (tmp_path / "out" / "a.org").read_text(encoding="utf-8") == "* raw", (
        "expected the file copied verbatim"
    )


def test_publish_order_expands_components() -> None:
    """Components expand depth-first and are never published themselves."""
    config = PublishConfig(
        projects={
            "full": ComponentProject("full", ["a", "b"]),
            "a": Project("a", "src/a", "out/a"),
            "b": Project("b", "src/b", "out/b"),
        }
    )
    assert get_publish_order(config) == ["a", "b"], "expected a then b"
    assert get_publish_order(config, ["b", "full"]) == ["b", "a"], (
        "expected each project once in request order"
    )
    assert get_publish_order(config, ["ghost"]) == [], "expected unknown names dropped"


def test_publish_order_survives_cycles() -> None:
    """A component cycle terminates and keeps the reachable projects."""
    config = PublishConfig(
        projects={
            "x": ComponentProject("x", ["y"]),
            "y": ComponentProject("y", ["x", "p"]),
            "p": Project("p", "src", "out"),
        }
    )
    assert get_publish_order(config, ["x"]) == ["p"], "expected only the project"


def test_publish_all_runs_components_and_github_pages(tmp_path: Path) -> None:
    """Named components publish their members, then Pages files are written."""
    for name in ("a", "b"):
        _write(tmp_path / name / "index.org", f"#+TITLE: {name}\n")
    config = PublishConfig(
        projects={
            "full": ComponentProject("full", ["a", "b"]),
            "a": merge_with_defaults(
                {"name": "a", "base_directory": "a", "publishing_directory": "site/a"}
            ),
            "b": merge_with_defaults(
                {"name": "b", "base_directory": "b", "publishing_directory": "site/b"}
            ),
        },
        github_pages=True,
        custom_domain="docs.example.com",
    )
    results = publish_all(config, tmp_path, names=["full"])
    assert [result.project_name for result in results] == ["a", "b"], (
        "expected both members in order"
    )
    assert (tmp_path / "site" / "a" / ".nojekyll").is_file(), (
        "expected .nojekyll in the first publishable project's output"
    )
    cname = tmp_path / "site" / "a" / "CNAME"
    assert cname.read_text(encoding="utf-8") == "docs.example.com", "expected CNAME"
    assert not (tmp_path / "site" / "b" / ".nojekyll").exists(), (
        "expected the files only once"
    )


def test_github_pages_skipped_in_dry_run(tmp_path: Path) -> None:
    """Dry runs never write the Pages files."""
    config = create_project_config("site", "./org", "./docs")
    assert setup_github_pages(config, tmp_path, PublishOptions(dry_run=True)) is None, (
        "expected nothing written"
    )
    assert not (tmp_path / "docs").exists(), "expected no output directory"
    assert setup_github_pages(config, tmp_path) == (tmp_path / "docs").resolve(), (
        "expected the output directory to be returned"
    )


def test_create_project_config_presets() -> None:
    """The Pages preset names the sitemap; explicit directories always win."""
    pages = create_project_config("site", "./org", "./docs", True, True)
    project = pages.projects["site"]
    assert isinstance(project, Project), "expected a publishable project"
    assert (project.sitemap_filename, project.sitemap_title) == ("index.org", "Home"), (
        "expected the Pages sitemap"
    )
    assert project.publishing_directory == "./docs", "expected the given directory"
    assert pages.github_pages, "expected Pages enabled"

    plain = create_project_config("site", "./src", "./public", False, False)
    project = plain.projects["site"]
    assert isinstance(project, Project), "expected a publishable project"
    assert project.sitemap_filename == "sitemap.org", "expected the plain sitemap"
    assert project.publishing_directory == "./public", "expected the given directory"
    assert not project.auto_sitemap, "expected the sitemap disabled"
    assert not plain.github_pages, "expected Pages disabled"


def test_theme_requires_a_toc(tmp_path: Path) -> None:
    """Theme publishing aborts when the project has no ``_toc.yml``."""
    _scan_workspace(tmp_path)
    with pytest.raises(PublishError, match="_toc.yml"):
        publish_project_with_theme(_project(), tmp_path, ThemeConfig(name="book"))
    config = PublishConfig(projects={"site": _project()}, theme=ThemeConfig(name="book"))
    with pytest.raises(PublishError):
        publish_all(config, tmp_path)


def test_themed_project(tmp_path: Path) -> None:
    """The book theme wraps every page and writes its assets and index."""
    src = _book_workspace(tmp_path)
    result = publish_project_with_theme(
        _project(), tmp_path, ThemeConfig(name="book")
    )
    assert result.error_count == 0, f"unexpected failures: {result.files}"
    assert result.total_files == 4, "expected three pages and the sitemap"
    out = tmp_path / "out"

    intro = BeautifulSoup(
        (out / "guide" / "intro.html").read_text(encoding="utf-8"), "html.parser"
    )
    root_link = intro.select_one(".nav-root a")
    assert root_link is not None, "expected the site navigation"
    assert root_link.get_text() == "Welcome", "expected the published root title"
    next_link = intro.select_one("a.nav-next")
    assert next_link is not None, "expected a next link"
    assert next_link["href"] == "../guide/setup.html", "expected the next page"
    assert "Setup" in next_link.get_text(), "expected the notebook title"
    toc_link = intro.select_one(".sidebar-right a.toc-link")
    assert toc_link is not None, "expected the page headings"
    assert toc_link["href"] == "#install", "expected the generated heading id"

    for asset in ("book-theme.css", "book-theme.js", "search.js"):
        assert (out / "_static" / asset).is_file(), f"expected {asset}"
    index = json.loads((out / "_static" / "search-index.json").read_text("utf-8"))
    assert {doc["id"] for doc in index["documents"]} == {
        "index.html",
        "guide/intro.html",
        "guide/setup.html",
        "sitemap.html",
    }, "expected every page in the search index"
    sitemap = (src / "sitemap.org").read_text(encoding="utf-8")
    assert "[[file:guide/intro.html][Introduction]]" in sitemap, (
        "expected published titles in the index page"
    )


def test_themed_rerun_only_refreshes_the_sitemap(tmp_path: Path) -> None:
    """Theme publishing goes through the same up-to-date gate."""
    src = _book_workspace(tmp_path)
    _age_sources(src)
    project = _project()
    publish_project_with_theme(project, tmp_path, ThemeConfig(name="book"))
    page = tmp_path / "out" / "guide" / "intro.html"
    stamp = page.stat().st_mtime_ns
    again = publish_project_with_theme(project, tmp_path, ThemeConfig(name="book"))
    titles = {item.source_path.name: item.title for item in again.files}
    assert titles["intro.md"] is None, "expected the page to be skipped"
    assert titles["sitemap.org"] == "Site Map", "expected the sitemap republished"
    assert page.stat().st_mtime_ns == stamp, "expected the page left alone"


def test_themed_rerun_without_search_skips_conversion(
    tmp_path: Path, mocker: MockerFixture
) -> None:
    """Without a search index, up-to-date pages are not converted again."""
    src = _book_workspace(tmp_path)
    _age_sources(src)
    project = _project()
    theme = ThemeConfig(name="book", search=ThemeSearchConfig(enabled=False))
    publish_project_with_theme(project, tmp_path, theme)
    convert = mocker.spy(FilePublisher, "convert_fragment")
    again = publish_project_with_theme(project, tmp_path, theme)
    assert convert.call_count == 0, "expected no page to be reconverted"
    assert again.error_count == 0, "expected a clean rerun"
    titles = {item.source_path.name: item.title for item in again.files}
    assert titles["setup.ipynb"] is None, "expected the page to be skipped"
    assert titles["sitemap.org"] == "Site Map", "expected the sitemap republished"
    sitemap = (src / "sitemap.org").read_text(encoding="utf-8")
    assert "[[file:guide/setup.html][Setup]]" in sitemap, (
        "expected titles read from the unconverted sources"
    )
    soup = BeautifulSoup(
        (tmp_path / "out" / "sitemap.html").read_text(encoding="utf-8"),
        "html.parser",
    )
    links = [anchor.get_text(strip=True) for anchor in soup.select("a.nav-link")]
    assert "Introduction" in links, "expected source titles in the sidebar"


def test_themed_dry_run_writes_nothing(tmp_path: Path) -> None:
    """A themed dry run converts pages but leaves no output or sitemap."""
    src = _book_workspace(tmp_path)
    result = publish_project_with_theme(
        _project(), tmp_path, ThemeConfig(name="book"), PublishOptions(dry_run=True)
    )
    assert result.error_count == 0, "expected every page to convert"
    assert not (tmp_path / "out").exists(), "expected no output directory"
    assert not (src / "sitemap.org").exists(), "expected no sitemap source"
