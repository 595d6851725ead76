"""Unit tests for the bundled org reader, HTML exporter and include expansion.

Usage
-----
Run ``pytest tests/test_backends.py -v``.

Examples
--------
- ``test_headline_ids_are_unique`` checks duplicate headline anchors.
- ``test_include_depth_is_bounded`` follows a self-including file until the
  depth limit leaves an inline error marker.
"""

from __future__ import annotations

import typing as typ

import nbformat
from bs4 import BeautifulSoup

from orgbook.backends import DefaultBackend, HtmlExportOptions
from orgbook.backends.includes import has_includes, process_includes
from orgbook.backends.notebook import parse_notebook
from orgbook.backends.org import (
    Block,
    ListBlock,
    Table,
    export_html,
    parse_org,
    render_inline,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

ORG_TEXT = """\
#+TITLE: Field Notes
#+AUTHOR: Ada
#+DATE: 2026-03-01

* TODO Overview :draft:
:PROPERTIES:
:ID: 1234
:END:
First line
continues here.

** Details
- one
- two

| Name | Value |
|------+-------|
| a    | 1     |

#+BEGIN_SRC python
x = 1 < 2
#+END_SRC

# a comment line
* Overview
"""


def test_keywords_and_nodes() -> None:
    """Keywords are upper-cased and blocks become typed nodes."""
    document = parse_org(ORG_TEXT)
    assert document.keywords["TITLE"] == "Field Notes", "expected the title"
    assert document.keywords["AUTHOR"] == "Ada", "expected the author"
    assert [heading.title for heading in document.headings] == [
        "Overview",
        "Details",
        "Overview",
    ], "expected TODO keywords and tags to be dropped"
    kinds = [type(node).__name__ for node in document.nodes]
    assert "ListBlock" in kinds, "expected the list"
    table = next(node for node in document.nodes if isinstance(node, Table))
    assert table.has_header, "expected a header row before the rule"
    assert table.rows == [["Name", "Value"], ["a", "1"]], "expected two table rows"
    block = next(node for node in document.nodes if isinstance(node, Block))
    assert (block.kind, block.language) == ("src", "python"), "expected a src block"
    items = next(node for node in document.nodes if isinstance(node, ListBlock))
    assert items.items == ["one", "two"], "expected the list items"


def test_headline_ids_are_unique() -> None:
    """Repeated headline text gets a numeric suffix."""
    document = parse_org(ORG_TEXT)
    assert [heading.id for heading in document.headings] == [
        "overview",
        "details",
        "overview-1",
    ], "expected deduplicated anchors"
    assert [heading.number for heading in document.headings] == ["1", "1.1", "2"], (
        "expected outline numbers"
    )


def test_drawers_and_comments_are_skipped() -> None:
    """Property drawers and comment lines never reach the output."""
    html = export_html(parse_org(ORG_TEXT), HtmlExportOptions(body_only=True))
    assert "1234" not in html, "expected the drawer to be dropped"
    assert "a comment line" not in html, "expected the comment to be dropped"
    assert "<p>First line continues here.</p>" in html, (
        "expected paragraph lines to be joined"
    )


def test_standalone_export_has_title_toc_and_postamble() -> None:
    """A full export wraps the body with title, TOC and author details."""
    html = export_html(
        parse_org(ORG_TEXT),
        HtmlExportOptions(with_toc=1, section_numbers=True),
    )
    soup = BeautifulSoup(html, "html.parser")
    assert soup.title is not None, "expected a document title"
    assert soup.title.get_text() == "Field Notes", "expected the TITLE keyword"
    toc = soup.find("nav", id="table-of-contents")
    assert toc is not None, "expected a table of contents"
    assert [a["href"] for a in toc.find_all("a")] == ["#overview", "#overview-1"], (
        "expected only top-level headlines at depth 1"
    )
    assert soup.find("span", class_="section-number") is not None, (
        "expected section numbers"
    )
    postamble = soup.find(id="postamble")
    assert postamble is not None, "expected the default postamble"
    assert "Author: Ada" in postamble.get_text(), "expected the author line"


def test_body_only_export_omits_document_shell() -> None:
    """``body_only`` returns just the rendered nodes."""
    html = export_html(
        parse_org("* Intro\nText\n"), HtmlExportOptions(body_only=True)
    )
    assert html == '<h2 id="intro">Intro</h2>\n<p>Text</p>', "expected a fragment"


def test_inline_markup() -> None:
    """Links, images, emphasis and code render as HTML."""
    assert render_inline("[[https://orgmode.org][Org]]") == (
        '<a href="https://orgmode.org">Org</a>'
    ), "expected an external link to stay untouched"
    assert render_inline("[[./img/plot.png]]") == (
        '<img src="./img/plot.png" alt="./img/plot.png">'
    ), "expected a bare image link to become an image"
    assert render_inline("[[file:notes.org::#setup][Setup]]") == (
        '<a href="notes.html#setup">Setup</a>'
    ), "expected an org link with an anchor to point at HTML"
    assert render_inline("/it/ and _under_ and +gone+") == (
        "<i>it</i> and <u>under</u> and <del>gone</del>"
    ), "expected emphasis markers"
    assert render_inline("~a*b*c~") == "<code>a*b*c</code>", (
        "expected verbatim text to be protected from emphasis"
    )


def test_export_block_passes_raw_html() -> None:
    """``#+BEGIN_EXPORT html`` content is emitted verbatim."""
    html = export_html(
        parse_org("#+BEGIN_EXPORT html\n<div class='raw'></div>\n#+END_EXPORT\n"),
        HtmlExportOptions(body_only=True),
    )
    assert html == "<div class='raw'></div>", "expected the raw HTML"


def test_include_with_lines_and_src(tmp_path: Path) -> None:
    """Line ranges are cut and source includes are wrapped in a block."""
    (tmp_path / "code.py").write_text("one\ntwo\nthree\nfour\n", encoding="utf-8")
    text = '#+INCLUDE: "code.py" src python :lines "2-3"'
    assert has_includes(text), "expected the directive to be detected"
    expanded = process_includes(text, base_path=tmp_path)
    assert expanded == "#+BEGIN_SRC python\ntwo\nthree\n#+END_SRC", (
        "expected lines two to three inside a src block"
    )


def test_include_min_level_shifts_headlines(tmp_path: Path) -> None:
    """``:minlevel`` moves the included outline to the requested depth."""
    (tmp_path / "part.org").write_text("* Top\n** Sub\n", encoding="utf-8")
    expanded = process_includes(
        '#+INCLUDE: "part.org" :minlevel 2', base_path=tmp_path
    )
    assert expanded == "** Top\n*** Sub", "expected every headline one level deeper"


def test_missing_include_leaves_a_marker(tmp_path: Path) -> None:
    """A missing file becomes an inline error marker."""
    expanded = process_includes('#+INCLUDE: "absent.org"', base_path=tmp_path)
    assert expanded == "[INCLUDE ERROR: File not found: absent.org]", (
        "expected the error marker in place of the directive"
    )


def test_include_depth_is_bounded(tmp_path: Path) -> None:
    """Recursive includes stop at the maximum depth."""
    (tmp_path / "loop.org").write_text('#+INCLUDE: "loop.org"\n', encoding="utf-8")
    expanded = process_includes(
        '#+INCLUDE: "loop.org"', base_path=tmp_path, max_depth=3
    )
    assert "[INCLUDE ERROR: Maximum include depth (3) exceeded]" in expanded, (
        "expected the depth marker"
    )


def test_included_blocks_are_not_expanded_again(tmp_path: Path) -> None:
    """Directives inside a file included as a block stay literal."""
    (tmp_path / "example.org").write_text(
        '#+INCLUDE: "other.org"\n', encoding="utf-8"
    )
    expanded = process_includes(
        '#+INCLUDE: "example.org" example', base_path=tmp_path
    )
    assert expanded.startswith("#+BEGIN_EXAMPLE\n#+INCLUDE:"), (
        "expected the nested directive to be shown, not followed"
    )


def test_nested_includes_resolve_relative_to_their_file(tmp_path: Path) -> None:
    """Includes inside included files are resolved from that file's folder."""
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "a.org").write_text('#+INCLUDE: "b.org"\n', encoding="utf-8")
    (tmp_path / "sub" / "b.org").write_text("Leaf text", encoding="utf-8")
    backend = DefaultBackend()
    expanded = backend.process_includes(
        '#+INCLUDE: "sub/a.org"', base_path=tmp_path, recursive=True, max_depth=10
    )
    assert "Leaf text" in expanded, "expected the nested include to be followed"


def test_notebook_language_and_headings() -> None:
    """The kernel language and Markdown headings are read from the notebook."""
    notebook = nbformat.v4.new_notebook(
        cells=[
            nbformat.v4.new_markdown_cell("Intro text\n\n## Method"),
            nbformat.v4.new_code_cell("1 + 1"),
        ],
        metadata={"kernelspec": {"name": "ir", "language": "R", "display_name": "R"}},
    )
    document = parse_notebook(nbformat.writes(notebook))
    assert document.language == "R", "expected the kernelspec language"
    assert [(h.level, h.title) for h in document.headings] == [(2, "Method")], (
        "expected the level-two heading"
    )
    assert document.title is None, "expected no title without a level-one heading"
    assert [cell.cell_type for cell in document.cells] == ["markdown", "code"], (
        "expected both cells in order"
    )
