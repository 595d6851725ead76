"""Document parsing and export collaborators consumed by the publisher.

The publishing engine never parses org or notebook text itself. It talks to
an object satisfying :class:`DocumentBackend`; :class:`DefaultBackend` wires
the bundled org reader/exporter, ``#+INCLUDE`` expansion and the nbformat
notebook reader together. Pass a different backend to
:class:`~orgbook.publisher.dispatch.FilePublisher` to plug in a richer
parser.
"""

from __future__ import annotations

import typing as typ

from . import includes
from .notebook import NotebookBackend, NotebookDocument
from .org import HtmlExportOptions, OrgBackend, OrgDocument

if typ.TYPE_CHECKING:
    from pathlib import Path


class DocumentBackend(typ.Protocol):
    """Interface for parsing and exporting source documents."""

    def parse_document(self, text: str) -> OrgDocument:
        """Parse org text into a document with ``keywords``."""
        ...

    def export_to_html(self, document: OrgDocument, options: HtmlExportOptions) -> str:
        """Export a parsed document to HTML."""
        ...

    def has_includes(self, text: str) -> bool:
        """Return True when ``text`` holds include directives."""
        ...

    def process_includes(
        self, text: str, *, base_path: Path, recursive: bool, max_depth: int
    ) -> str:
        """Expand include directives."""
        ...

    def parse_notebook(self, text: str) -> NotebookDocument:
        """Parse notebook JSON text."""
        ...


class DefaultBackend(OrgBackend, NotebookBackend):
    """Bundled org and notebook support."""

    def has_includes(self, text: str) -> bool:
        """Return True when ``text`` holds include directives."""
        return includes.has_includes(text)

    def process_includes(
        self, text: str, *, base_path: Path, recursive: bool, max_depth: int
    ) -> str:
        """Expand include directives relative to ``base_path``."""
        return includes.process_includes(
            text, base_path=base_path, recursive=recursive, max_depth=max_depth
        )


__all__ = [
    "DefaultBackend",
    "DocumentBackend",
    "HtmlExportOptions",
    "NotebookDocument",
    "OrgDocument",
]
