"""Read Jupyter notebooks into a small document model using nbformat."""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

import nbformat

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$", re.MULTILINE)


@dc.dataclass(slots=True, frozen=True)
class NotebookHeading:
    """A Markdown heading found in a notebook cell."""

    level: int
    title: str
    cell_index: int


@dc.dataclass(slots=True, frozen=True)
class NotebookCell:
    """One notebook cell with its joined source and plain-text outputs."""

    cell_type: str
    source: str
    outputs: tuple[str, ...] = ()


@dc.dataclass(slots=True)
class NotebookDocument:
    """A parsed notebook.

    Attributes
    ----------
    cells : list[NotebookCell]
        Markdown, code and raw cells in order.
    headings : list[NotebookHeading]
        Headings extracted from Markdown cells.
    metadata : dict[str, Any]
        Notebook-level metadata.
    language : str
        Kernel language used for code cells.
    """

    cells: list[NotebookCell] = dc.field(default_factory=list)
    headings: list[NotebookHeading] = dc.field(default_factory=list)
    metadata: dict[str, typ.Any] = dc.field(default_factory=dict)
    language: str = "python"

    @property
    def title(self) -> str | None:
        """Return the metadata title, else the first level-one heading."""
        meta_title = self.metadata.get("title")
        if isinstance(meta_title, str) and meta_title.strip():
            return meta_title.strip()
        return next(
            (heading.title for heading in self.headings if heading.level == 1), None
        )


def _output_text(output: typ.Mapping[str, typ.Any]) -> str | None:
    kind = output.get("output_type")
    if kind == "stream":
        return "".join(output.get("text") or "")
    if kind in ("execute_result", "display_data"):
        data = output.get("data") or {}
        text = data.get("text/plain")
        return "".join(text) if isinstance(text, list) else text
    if kind == "error":
        return f"{output.get('ename', 'Error')}: {output.get('evalue', '')}"
    return None


def parse_notebook(text: str) -> NotebookDocument:
    """Parse notebook JSON text.

    Raises
    ------
    nbformat.reader.NotJSONError
        If ``text`` is not notebook JSON.
    """
    notebook = nbformat.reads(text, as_version=4)
    language_info = notebook.metadata.get("language_info") or {}
    kernelspec = notebook.metadata.get("kernelspec") or {}
    document = NotebookDocument(
        metadata=dict(notebook.metadata),
        language=str(language_info.get("name") or kernelspec.get("language") or "python"),
    )
    for index, cell in enumerate(notebook.cells):
        source = cell.get("source") or ""
        if isinstance(source, list):
            source = "".join(source)
        outputs = tuple(
            text
            for text in (_output_text(item) for item in cell.get("outputs") or [])
            if text
        )
        document.cells.append(NotebookCell(cell.cell_type, source, outputs))
        if cell.cell_type == "markdown":
            document.headings.extend(
                NotebookHeading(len(match.group(1)), match.group(2).strip(), index)
                for match in HEADING_PATTERN.finditer(source)
            )
    return document


class NotebookBackend:
    """Default notebook reader for the collaborator contract."""

    def parse_notebook(self, text: str) -> NotebookDocument:
        """Parse notebook JSON text."""
        return parse_notebook(text)


__all__ = [
    "NotebookBackend",
    "NotebookCell",
    "NotebookDocument",
    "NotebookHeading",
    "parse_notebook",
]
