"""Render Markdown documents and notebook code cells into HTML fragments.

Fenced code is left for the page's client-side highlighter unless the project
names a Pygments style, in which case ``codehilite`` highlights it while
converting and each block is labelled with a ``data-language`` attribute.
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ
from html import escape

from markdown import Markdown
from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .link_rewriter import MarkdownLinkExtension

if typ.TYPE_CHECKING:
    from markdown.extensions import Extension
else:  # pragma: no cover - type-checking fallback
    Extension = typ.Any

FENCE_OPEN_PATTERN = re.compile(
    r"^ {0,3}(?P<fence>`{3,}|~{3,})\s*(?P<lang>[A-Za-z0-9_+#.-]+)?[^\r\n]*$"
)
CODEHILITE_OPEN_TAG = re.compile(r'<div class="codehilite">')
ATX_HEADING_PATTERN = re.compile(r"^#\s+(.+?)\s*#*\s*$")
FRONT_MATTER_OPEN = re.compile(r"\A-{3}[ \t]*\n")


@dc.dataclass(slots=True, frozen=True)
class RenderedMarkdown:
    """HTML produced from a Markdown document plus the metadata found in it.

    Attributes
    ----------
    html : str
        Converted body fragment.
    title : str | None
        ``title`` front-matter value, else the first level-one heading.
    date : str | None
        ``date`` front-matter value as written.
    """

    html: str
    title: str | None = None
    date: str | None = None


@dc.dataclass(slots=True)
class _FenceScan:
    text: str
    languages: list[str] = dc.field(default_factory=list)
    heading: str | None = None


def _scan_fences(text: str) -> _FenceScan:
    """Normalise fence lines and note each block's language and the first heading.

    Opening fences lose up to three spaces of indentation and any info string
    after the language name (``rust,no_run`` becomes ``rust``).
    """
    lines: list[str] = []
    languages: list[str] = []
    heading: str | None = None
    closing: str | None = None
    for line in text.splitlines():
        if closing is not None:
            stripped = line.strip()
            if stripped.startswith(closing) and not stripped.strip(closing[0]):
                closing = None
                lines.append(stripped)
            else:
                lines.append(line)
            continue
        opening = FENCE_OPEN_PATTERN.match(line)
        if opening is not None:
            closing = opening["fence"]
            language = opening["lang"] or ""
            languages.append(language or "text")
            lines.append(closing + language)
            continue
        if heading is None and (match := ATX_HEADING_PATTERN.match(line)):
            heading = match.group(1).strip()
        lines.append(line)
    return _FenceScan("\n".join(lines), languages, heading)


def _label_blocks(html: str, languages: typ.Iterable[str]) -> str:
    """Add ``data-language`` to highlighted blocks, in document order."""
    remaining = iter(languages)

    def _label(_match: re.Match[str]) -> str:
        language = escape(next(remaining, "text"), quote=True)
        return f'<div class="codehilite" data-language="{language}">'

    return CODEHILITE_OPEN_TAG.sub(_label, html)


class HtmlContentRenderer:
    """Render markdown and code snippets with consistent styling."""

    def __init__(
        self,
        pygments_style: str | None = None,
        link_extension: Extension | None = None,
    ) -> None:
        """Initialize a renderer with optional pygments style and link extension.

        Parameters
        ----------
        pygments_style : str, optional
            Name of the Pygments style used for server-side highlighting. When
            ``None`` fenced code is emitted as escaped
            ``<pre><code class="language-X">`` for a client-side highlighter.
        link_extension : Extension, optional
            Markdown extension used when rewriting links; defaults to
            :class:`MarkdownLinkExtension`.
        """
        self.pygments_style = pygments_style
        self._formatter = (
            HtmlFormatter(style=pygments_style, cssclass="codehilite")
            if pygments_style
            else None
        )
        self._link_extension = link_extension or MarkdownLinkExtension()

    @property
    def highlights_server_side(self) -> bool:
        """Return True when code is highlighted with Pygments."""
        return self._formatter is not None

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks, if any."""
        if self._formatter is None:
            return ""
        return self._formatter.get_style_defs(".codehilite")

    def _build_markdown(self, *, front_matter: bool) -> Markdown:
        extensions: list[Extension | str] = ["meta"] if front_matter else []
        extensions.append("fenced_code")
        configs: dict[str, dict[str, typ.Any]] = {}
        if self.pygments_style:
            extensions.append("codehilite")
            configs["codehilite"] = {
                "css_class": "codehilite",
                "guess_lang": False,
                "pygments_style": self.pygments_style,
            }
        extensions += ["tables", "sane_lists", self._link_extension]
        return Markdown(
            extensions=extensions, extension_configs=configs, output_format="html"
        )

    def render(self, text: str, *, front_matter: bool = True) -> RenderedMarkdown:
        """Convert a Markdown document, extracting its title and date.

        Front matter is only read from a block opened by a ``---`` line at
        the very start of the document; otherwise, or with
        ``front_matter=False``, leading ``key: value`` lines stay body text.
        """
        scan = _scan_fences(text)
        if not scan.text.strip():
            return RenderedMarkdown("")
        fenced = front_matter and FRONT_MATTER_OPEN.match(scan.text) is not None
        md = self._build_markdown(front_matter=fenced)
        html = md.convert(scan.text)
        if self.highlights_server_side:
            html = _label_blocks(html, scan.languages)
        meta: dict[str, list[str]] = getattr(md, "Meta", {}) or {}
        return RenderedMarkdown(
            html,
            title=_meta_value(meta, "title") or scan.heading,
            date=_meta_value(meta, "date"),
        )

    def markdown(self, text: str) -> str:
        """Render markdown into HTML using the configured extensions."""
        return self.render(text, front_matter=False).html

    def code_block(self, code: str, language: str | None = None) -> str:
        """Render ``code`` as a highlighted or highlighter-ready block.

        Parameters
        ----------
        code : str
            Source snippet.
        language : str, optional
            Language name; defaults to ``"text"``.

        Returns
        -------
        str
            Pygments HTML with ``data-language`` metadata when a style is set,
            otherwise an escaped ``<pre><code class="language-X">`` block.
        """
        lang = language or "text"
        if self._formatter is None:
            return (
                f'<pre><code class="language-{escape(lang, quote=True)}">'
                f"{escape(code)}</code></pre>"
            )
        try:
            lexer = get_lexer_by_name(lang)
        except ClassNotFound:
            lexer = get_lexer_by_name("text")
        return _label_blocks(highlight(code, lexer, self._formatter), [lang])


def _meta_value(meta: typ.Mapping[str, list[str]], key: str) -> str | None:
    values = meta.get(key) or []
    text = " ".join(value.strip() for value in values).strip()
    return text.strip("\"'") or None


__all__ = ["HtmlContentRenderer", "RenderedMarkdown"]
