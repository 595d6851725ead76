"""Markdown extension rewriting relative ``.md`` links to published ``.html``."""

from __future__ import annotations

import typing as typ
from urllib.parse import urlsplit, urlunsplit

from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

if typ.TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from markdown import Markdown
else:  # pragma: no cover - type-checking fallback
    Markdown = typ.Any
    Element = typ.Any


def rewrite_link_target(target: str | None) -> str | None:
    """Return ``target`` with a ``.md`` path rewritten to ``.html``.

    Absolute URLs, fragment-only links and non-markdown targets yield None.

    >>> rewrite_link_target("guide/setup.md#install")
    'guide/setup.html#install'
    >>> rewrite_link_target("https://example.com/readme.md") is None
    True
    """
    if not target:
        return None
    if target.startswith(("#", "//")) or "://" in target:
        return None
    parsed = urlsplit(target)
    if parsed.scheme or parsed.netloc:
        return None
    if not parsed.path.lower().endswith(".md"):
        return None
    path = parsed.path[: -len(".md")] + ".html"
    return urlunsplit(("", "", path, parsed.query, parsed.fragment))


class MarkdownLinkExtension(Extension):
    """Point relative links at sibling Markdown documents to their HTML output.

    Register this extension on a ``markdown.Markdown`` instance so that
    ``[next](chapter2.md)`` becomes ``<a href="chapter2.html">`` in the
    published site.
    """

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the link treeprocessor on the Markdown instance."""
        md.treeprocessors.register(
            MarkdownLinkTreeprocessor(md), "orgbook_markdown_links", 15
        )


class MarkdownLinkTreeprocessor(Treeprocessor):
    """Rewrite ``href`` attributes of anchors in the parsed tree."""

    def run(self, root: Element) -> Element:
        """Rewrite relative ``.md`` anchors in place."""
        for element in root.iter("a"):
            rewritten = rewrite_link_target(element.get("href"))
            if rewritten:
                element.set("href", rewritten)
        return root


__all__ = [
    "MarkdownLinkExtension",
    "MarkdownLinkTreeprocessor",
    "rewrite_link_target",
]
