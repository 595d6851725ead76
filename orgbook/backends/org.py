r"""A small org-mode reader and HTML exporter.

The reader turns org text into a flat list of block nodes (headings,
paragraphs, lists, tables, source and example blocks) plus the document
keywords. The exporter renders those nodes either as a complete standalone
HTML document or, with ``body_only``, as a fragment for a theme to wrap.

Only the org constructs a publishing site needs are covered: keywords, TODO
keywords and tags on headlines are recognised and dropped, drawers and
comments are skipped, and inline markup handles links, images, emphasis,
verbatim and code.

Example
-------
>>> doc = parse_org("#+TITLE: Notes\n* Intro\nSome *bold* text.\n")
>>> doc.keywords["TITLE"]
'Notes'
>>> export_html(doc, HtmlExportOptions(body_only=True))
'<h2 id="intro">Intro</h2>\n<p>Some <b>bold</b> text.</p>'
"""

from __future__ import annotations

import dataclasses as dc
import re
from html import escape
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from orgbook._constants import HIGHLIGHT_JS_VERSION

KEYWORD_PATTERN = re.compile(r"^[ \t]*#\+(?P<key>[A-Za-z_]+):[ \t]*(?P<value>.*)$")
HEADLINE_PATTERN = re.compile(
    r"^(?P<stars>\*+)\s+(?:(?:TODO|DONE)\s+)?(?:\[#[A-Z]\]\s+)?(?P<title>.*?)"
    r"(?:\s+(?P<tags>:[\w@#%:]+:))?\s*$"
)
BLOCK_BEGIN_PATTERN = re.compile(
    r"^[ \t]*#\+BEGIN_(?P<kind>\w+)(?:[ \t]+(?P<args>.*))?$", re.IGNORECASE
)
LIST_ITEM_PATTERN = re.compile(r"^(?P<indent>[ \t]*)(?P<bullet>[-+]|\d+[.)])\s+(?P<text>.*)$")
TABLE_RULE_PATTERN = re.compile(r"^\|[-+|]+\|?$")
DRAWER_PATTERN = re.compile(r"^[ \t]*:(?P<name>[A-Za-z_-]+):[ \t]*$")
HRULE_PATTERN = re.compile(r"^[ \t]*-{5,}[ \t]*$")

LINK_PATTERN = re.compile(r"\[\[(?P<target>[^\]]+)\](?:\[(?P<desc>[^\]]+)\])?\]")
EMPHASIS_PATTERNS = (
    (re.compile(r"(?<![\w*])\*(?=\S)(?P<text>[^*\n]*?\S)\*(?![\w*])"), "b"),
    (re.compile(r"(?<![\w/:])/(?=\S)(?P<text>[^/\n]*?\S)/(?![\w/])"), "i"),
    (re.compile(r"(?<![\w_])_(?=\S)(?P<text>[^_\n]*?\S)_(?![\w_])"), "u"),
    (re.compile(r"(?<![\w+])\+(?=\S)(?P<text>[^+\n]*?\S)\+(?![\w+])"), "del"),
)
CODE_PATTERN = re.compile(r"(?<![\w=~])(?P<mark>[=~])(?=\S)(?P<text>[^\n]*?\S)(?P=mark)(?![\w=~])")
IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp")
SLUG_STRIP = re.compile(r"[^\w\s-]")
SLUG_SPACE = re.compile(r"[\s_]+")


@dc.dataclass(slots=True)
class Heading:
    """An org headline."""

    level: int
    title: str
    id: str
    number: str | None = None


@dc.dataclass(slots=True)
class Paragraph:
    """Consecutive text lines between blank lines."""

    text: str


@dc.dataclass(slots=True)
class ListBlock:
    """A plain or ordered list; items are raw inline text."""

    ordered: bool
    items: list[str] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class Table:
    """A pipe table; the first row is a header when a rule follows it."""

    rows: list[list[str]] = dc.field(default_factory=list)
    has_header: bool = False


@dc.dataclass(slots=True)
class Block:
    """A ``#+BEGIN_X`` ... ``#+END_X`` block."""

    kind: str
    content: str
    language: str | None = None


@dc.dataclass(slots=True)
class Rule:
    """A horizontal rule."""


Node = Heading | Paragraph | ListBlock | Table | Block | Rule


@dc.dataclass(slots=True)
class OrgDocument:
    """Parsed org document: upper-cased keywords plus block nodes."""

    keywords: dict[str, str] = dc.field(default_factory=dict)
    nodes: list[Node] = dc.field(default_factory=list)

    @property
    def headings(self) -> list[Heading]:
        """Return every headline node in document order."""
        return [node for node in self.nodes if isinstance(node, Heading)]


@dc.dataclass(slots=True)
class HtmlExportOptions:
    """Settings for :func:`export_html`.

    Attributes
    ----------
    body_only : bool
        Emit only the content fragment, without the document shell, title,
        table of contents or pre/postamble.
    with_toc : bool | int
        Emit a table of contents; an integer limits its depth.
    preamble, postamble : str | None
        Raw HTML placed before and after the content.
    """

    body_only: bool = False
    title: str | None = None
    with_toc: bool | int = True
    section_numbers: bool = False
    with_author: bool = True
    with_creator: bool = True
    css_files: list[str] = dc.field(default_factory=list)
    js_files: list[str] = dc.field(default_factory=list)
    head: str | None = None
    head_extra: str | None = None
    preamble: str | None = None
    postamble: str | None = None
    use_default_theme: bool = True


def slugify(text: str) -> str:
    """Turn heading text into an ``id`` attribute value.

    >>> slugify("Getting Started: Part 1")
    'getting-started-part-1'
    """
    cleaned = SLUG_STRIP.sub("", text).strip().lower()
    return SLUG_SPACE.sub("-", cleaned).strip("-") or "section"


class _Reader:
    """Line-oriented org reader building :class:`OrgDocument` nodes."""

    def __init__(self, text: str) -> None:
        self.lines = text.splitlines()
        self.index = 0
        self.document = OrgDocument()
        self._paragraph: list[str] = []
        self._ids: dict[str, int] = {}
        self._counters: list[int] = []

    def read(self) -> OrgDocument:
        while self.index < len(self.lines):
            line = self.lines[self.index]
            self.index += 1
            self._read_line(line)
        self._flush()
        return self.document

    def _read_line(self, line: str) -> None:
        stripped = line.strip()
        if not stripped:
            self._flush()
            return
        if begin := BLOCK_BEGIN_PATTERN.match(line):
            self._flush()
            self._read_block(begin.group("kind"), begin.group("args"))
            return
        if keyword := KEYWORD_PATTERN.match(line):
            self._flush()
            key = keyword.group("key").upper()
            if not key.startswith(("END_", "BEGIN_")):
                self.document.keywords.setdefault(key, keyword.group("value").strip())
            return
        if stripped.startswith("#+") or (
            stripped.startswith("#") and (len(stripped) == 1 or stripped[1] == " ")
        ):
            return
        if headline := HEADLINE_PATTERN.match(line):
            self._flush()
            self._add_heading(len(headline.group("stars")), headline.group("title"))
            return
        if DRAWER_PATTERN.match(line):
            self._flush()
            self._skip_drawer()
            return
        if HRULE_PATTERN.match(line):
            self._flush()
            self.document.nodes.append(Rule())
            return
        if stripped.startswith("|"):
            self._flush()
            self._read_table(stripped)
            return
        if item := LIST_ITEM_PATTERN.match(line):
            self._flush()
            self._read_list(item)
            return
        self._paragraph.append(stripped)

    def _flush(self) -> None:
        if self._paragraph:
            self.document.nodes.append(Paragraph(" ".join(self._paragraph)))
            self._paragraph = []

    def _add_heading(self, level: int, title: str) -> None:
        slug = slugify(title)
        seen = self._ids.get(slug, 0)
        self._ids[slug] = seen + 1
        anchor = slug if seen == 0 else f"{slug}-{seen}"
        del self._counters[level:]
        while len(self._counters) < level:
            self._counters.append(0)
        self._counters[level - 1] += 1
        number = ".".join(str(count or 1) for count in self._counters)
        self.document.nodes.append(Heading(level, title.strip(), anchor, number))

    def _read_block(self, kind: str, args: str | None) -> None:
        end = re.compile(rf"^[ \t]*#\+END_{re.escape(kind)}[ \t]*$", re.IGNORECASE)
        body: list[str] = []
        while self.index < len(self.lines):
            line = self.lines[self.index]
            self.index += 1
            if end.match(line):
                break
            body.append(line)
        language = (args or "").split()[0] if args and args.split() else None
        self.document.nodes.append(Block(kind.lower(), "\n".join(body), language))

    def _skip_drawer(self) -> None:
        while self.index < len(self.lines):
            line = self.lines[self.index]
            self.index += 1
            if line.strip().upper() == ":END:":
                return

    def _read_table(self, first: str) -> None:
        table = Table()
        rows = [first]
        while self.index < len(self.lines) and self.lines[self.index].strip().startswith("|"):
            rows.append(self.lines[self.index].strip())
            self.index += 1
        for position, row in enumerate(rows):
            if TABLE_RULE_PATTERN.match(row):
                if position == 1:
                    table.has_header = True
                continue
            table.rows.append([cell.strip() for cell in row.strip("|").split("|")])
        self.document.nodes.append(table)

    def _read_list(self, first: re.Match[str]) -> None:
        block = ListBlock(ordered=first.group("bullet")[0].isdigit())
        block.items.append(first.group("text").strip())
        indent = len(first.group("indent"))
        while self.index < len(self.lines):
            line = self.lines[self.index]
            item = LIST_ITEM_PATTERN.match(line)
            if item and len(item.group("indent")) >= indent:
                block.items.append(item.group("text").strip())
            elif line.strip() and not item and len(line) - len(line.lstrip()) > indent:
                block.items[-1] = f"{block.items[-1]} {line.strip()}"
            else:
                break
            self.index += 1
        self.document.nodes.append(block)


def parse_org(text: str) -> OrgDocument:
    """Parse org ``text`` into an :class:`OrgDocument`."""
    return _Reader(text).read()


def _link_href(target: str) -> str:
    if target.startswith("file:"):
        target = target[len("file:") :]
    path, sep, anchor = target.partition("::")
    if path.lower().endswith(".org") and "://" not in path:
        path = path[: -len(".org")] + ".html"
    if sep and anchor.startswith("#"):
        return f"{path}{anchor}"
    return path


def render_inline(text: str) -> str:
    """Render org inline markup in ``text`` to HTML.

    >>> render_inline("See [[file:guide.org][the guide]] and =x < 1=.")
    'See <a href="guide.html">the guide</a> and <code>x &lt; 1</code>.'
    """
    placeholders: list[str] = []

    def _stash(html: str) -> str:
        placeholders.append(html)
        return f"\x00{len(placeholders) - 1}\x00"

    def _link(match: re.Match[str]) -> str:
        target = match.group("target")
        desc = match.group("desc")
        href = _link_href(target)
        if desc is None and href.lower().endswith(IMAGE_SUFFIXES):
            return _stash(f'<img src="{escape(href)}" alt="{escape(href)}">')
        label = render_inline(desc) if desc else escape(target)
        return _stash(f'<a href="{escape(href)}">{label}</a>')

    def _code(match: re.Match[str]) -> str:
        return _stash(f"<code>{escape(match.group('text'))}</code>")

    text = LINK_PATTERN.sub(_link, text)
    text = CODE_PATTERN.sub(_code, text)
    text = escape(text, quote=False)
    for pattern, tag in EMPHASIS_PATTERNS:
        text = pattern.sub(lambda match, tag=tag: f"<{tag}>{match.group('text')}</{tag}>", text)
    return re.sub(r"\x00(\d+)\x00", lambda match: placeholders[int(match.group(1))], text)


def _render_node(node: Node, options: HtmlExportOptions, shift: int) -> str:
    match node:
        case Heading(level=level, title=title, id=anchor, number=number):
            tag = f"h{min(level + shift, 6)}"
            prefix = f'<span class="section-number">{number}</span> ' if (
                options.section_numbers and number
            ) else ""
            return f'<{tag} id="{anchor}">{prefix}{render_inline(title)}</{tag}>'
        case Paragraph(text=text):
            return f"<p>{render_inline(text)}</p>"
        case ListBlock(ordered=ordered, items=items):
            tag = "ol" if ordered else "ul"
            body = "".join(f"<li>{render_inline(item)}</li>" for item in items)
            return f"<{tag}>{body}</{tag}>"
        case Table(rows=rows, has_header=has_header):
            parts = ["<table>"]
            for position, row in enumerate(rows):
                cell = "th" if has_header and position == 0 else "td"
                cells = "".join(f"<{cell}>{render_inline(value)}</{cell}>" for value in row)
                parts.append(f"<tr>{cells}</tr>")
            parts.append("</table>")
            return "".join(parts)
        case Block(kind="src", content=content, language=language):
            lang = escape(language or "text", quote=True)
            return f'<pre><code class="language-{lang}">{escape(content)}</code></pre>'
        case Block(kind="quote", content=content):
            paragraphs = [chunk.strip() for chunk in content.split("\n\n") if chunk.strip()]
            body = "".join(f"<p>{render_inline(' '.join(chunk.split()))}</p>" for chunk in paragraphs)
            return f"<blockquote>{body}</blockquote>"
        case Block(kind="export", content=content, language=language):
            return content if (language or "").lower() == "html" else ""
        case Block(kind="comment"):
            return ""
        case Block(kind=kind, content=content):
            return f'<pre class="{escape(kind, quote=True)}">{escape(content)}</pre>'
        case Rule():
            return "<hr>"
    msg = f"Unsupported node: {node!r}"
    raise TypeError(msg)


def render_body(document: OrgDocument, options: HtmlExportOptions) -> str:
    """Render the document nodes; headlines start at ``<h2>``."""
    rendered = (_render_node(node, options, 1) for node in document.nodes)
    return "\n".join(part for part in rendered if part)


def _toc_items(document: OrgDocument, with_toc: bool | int) -> list[Heading]:
    if with_toc is False:
        return []
    depth = 3 if with_toc is True else int(with_toc)
    if depth <= 0:
        return []
    return [heading for heading in document.headings if heading.level <= depth]


TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

_ENV = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml", "jinja"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def export_html(document: OrgDocument, options: HtmlExportOptions) -> str:
    """Export ``document`` to HTML.

    Parameters
    ----------
    document : OrgDocument
        Parsed document.
    options : HtmlExportOptions
        Export settings.

    Returns
    -------
    str
        A fragment when ``options.body_only`` is set, otherwise a standalone
        HTML page.
    """
    body = render_body(document, options)
    if options.body_only:
        return body
    title = document.keywords.get("TITLE") or options.title or "Untitled"
    template = _ENV.get_template("org_page.jinja")
    return template.render(
        title=title,
        author=document.keywords.get("AUTHOR") if options.with_author else None,
        date=document.keywords.get("DATE"),
        with_creator=options.with_creator,
        body=Markup(body),
        toc=_toc_items(document, options.with_toc),
        options=options,
        head=Markup(options.head or ""),
        head_extra=Markup(options.head_extra or ""),
        preamble=Markup(options.preamble) if options.preamble else None,
        postamble=Markup(options.postamble) if options.postamble else None,
        highlight_version=HIGHLIGHT_JS_VERSION,
    )


class OrgBackend:
    """Default implementation of the document collaborator contract."""

    def parse_document(self, text: str) -> OrgDocument:
        """Parse org text."""
        return parse_org(text)

    def export_to_html(self, document: OrgDocument, options: HtmlExportOptions) -> str:
        """Export a parsed document."""
        return export_html(document, options)


__all__ = [
    "Block",
    "Heading",
    "HtmlExportOptions",
    "ListBlock",
    "OrgBackend",
    "OrgDocument",
    "Paragraph",
    "Rule",
    "Table",
    "export_html",
    "parse_org",
    "render_body",
    "render_inline",
    "slugify",
]