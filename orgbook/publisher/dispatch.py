"""Route source files to the org, Markdown, notebook or copy publisher.

:class:`FilePublisher` binds one project to its resolved directories and a
:class:`~orgbook.backends.DocumentBackend`. Each branch applies the
incremental build gate, converts the source, creates the output directory
and writes the result, all inside a per-file failure boundary so one broken
document never aborts the project.

Example
-------
>>> from pathlib import Path
>>> from orgbook.config import merge_with_defaults
>>> project = merge_with_defaults({"base_directory": "org", "publishing_directory": "out"})
>>> publisher = FilePublisher(project, Path("."))  # doctest: +SKIP
>>> publisher.publish(Path("org/index.org")).success  # doctest: +SKIP
True
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import enum
import logging
import re
import shutil
import typing as typ
from functools import partial
from html import escape
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from orgbook._constants import HIGHLIGHT_JS_VERSION, INCLUDE_MAX_DEPTH
from orgbook.backends import DefaultBackend, HtmlExportOptions
from orgbook.config.models import PublishingFunction
from orgbook.toc import toc_href

from .gate import compute_copy_path, compute_output_path, is_up_to_date
from .models import PublishFileResult, PublishOptions
from .renderer import HtmlContentRenderer

if typ.TYPE_CHECKING:
    from orgbook.backends import DocumentBackend
    from orgbook.config.models import Project
    from orgbook.toc import FlatTocEntry

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
DATE_PATTERN = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})(?:[ T]+(?:[A-Za-z]{2,3}\s+)?(?P<time>\d{1,2}:\d{2}))?"
)
TEMPLATE_PATH_PREFIXES = ("./", "../", "/")


class Converter(enum.Enum):
    """Closed set of per-file publishing strategies."""

    ORG = "org"
    MARKDOWN = "markdown"
    NOTEBOOK = "notebook"
    COPY = "copy"


_EXTENSION_CONVERTERS = {
    ".org": Converter.ORG,
    ".md": Converter.MARKDOWN,
    ".ipynb": Converter.NOTEBOOK,
}


def converter_for_extension(path: Path) -> Converter:
    """Infer the converter from a file suffix, defaulting to a verbatim copy."""
    return _EXTENSION_CONVERTERS.get(path.suffix.lower(), Converter.COPY)


def resolve_converter(path: Path, function: PublishingFunction) -> Converter:
    """Pick the converter for ``path`` under a project's publishing function.

    >>> resolve_converter(Path("notes.md"), PublishingFunction.ORG_HTML)
    <Converter.MARKDOWN: 'markdown'>
    >>> resolve_converter(Path("notes.txt"), PublishingFunction.MD_HTML)
    <Converter.MARKDOWN: 'markdown'>
    >>> resolve_converter(Path("notes.org"), PublishingFunction.COPY)
    <Converter.COPY: 'copy'>
    """
    match function:
        case PublishingFunction.COPY:
            return Converter.COPY
        case PublishingFunction.MD_HTML:
            return Converter.MARKDOWN
        case PublishingFunction.IPYNB_HTML:
            return Converter.NOTEBOOK
        case PublishingFunction.AUTO | PublishingFunction.ORG_HTML:
            return converter_for_extension(path)


def parse_date(value: str | None) -> dt.datetime | None:
    """Extract the first ISO date (and optional time) from an org timestamp.

    >>> parse_date("<2026-01-15 Thu 09:30>")
    datetime.datetime(2026, 1, 15, 9, 30, tzinfo=datetime.timezone.utc)
    >>> parse_date("someday") is None
    True
    """
    if not value:
        return None
    match = DATE_PATTERN.search(value)
    if match is None:
        return None
    stamp = match.group("date")
    fmt = "%Y-%m-%d"
    if match.group("time"):
        stamp = f"{stamp} {match.group('time')}"
        fmt = "%Y-%m-%d %H:%M"
    try:
        return dt.datetime.strptime(stamp, fmt).replace(tzinfo=dt.UTC)
    except ValueError:
        return None


def load_template(template: str | None, workspace_root: Path) -> str | None:
    """Resolve a preamble/postamble setting to HTML.

    Values starting with ``./``, ``../`` or ``/`` are read as files relative
    to ``workspace_root``; an unreadable path is used as literal HTML.
    """
    if not template:
        return None
    if template.startswith(TEMPLATE_PATH_PREFIXES):
        path = workspace_root / template
        try:
            return path.read_text(encoding="utf-8")
        except OSError:
            logger.debug("Template %s not readable; using it as HTML", template)
    return template


def relative_root(relative_output: str) -> str:
    """Return the ``../`` prefix leading from a page back to the output root.

    >>> relative_root("guide/intro.html")
    '../'
    >>> relative_root("index.html")
    ''
    """
    return "../" * relative_output.count("/")


@dc.dataclass(slots=True, frozen=True)
class RenderedPage:
    """Converted output of one source document."""

    html: str
    title: str | None = None
    date: str | None = None


def _build_environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml", "jinja"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class FilePublisher:
    """Publish individual files of one project."""

    def __init__(
        self,
        project: Project,
        workspace_root: Path,
        options: PublishOptions | None = None,
        *,
        backend: DocumentBackend | None = None,
        toc_entries: typ.Iterable[FlatTocEntry] = (),
    ) -> None:
        """Bind a project to its directories and collaborators.

        Parameters
        ----------
        project : Project
            Fully merged project settings.
        workspace_root : Path
            Directory the project's relative paths are resolved against.
        options : PublishOptions, optional
            Run switches; defaults to a plain incremental run.
        backend : DocumentBackend, optional
            Org/notebook collaborator; defaults to :class:`DefaultBackend`.
        toc_entries : Iterable[FlatTocEntry], optional
            Flattened TOC, used to title prev/next navigation links.
        """
        self.project = project
        self.workspace_root = workspace_root
        self.options = options or PublishOptions()
        self.backend: DocumentBackend = backend or DefaultBackend()
        self.base_dir = (workspace_root / project.base_directory).resolve()
        self.output_dir = (workspace_root / project.publishing_directory).resolve()
        self.renderer = HtmlContentRenderer(project.pygments_style)
        self._toc = {entry.file: entry for entry in toc_entries}
        self._env = _build_environment()

    def output_path_for(self, source: Path) -> Path:
        """Return where ``source`` is published.

        Raises
        ------
        ValueError
            If ``source`` lies outside the base directory.
        """
        converter = resolve_converter(source, self.project.publishing_function)
        if converter is Converter.COPY:
            return compute_copy_path(source, self.base_dir, self.output_dir)
        return compute_output_path(source, self.base_dir, self.output_dir)

    def unplaceable(self, source: Path, exc: ValueError) -> PublishFileResult:
        """Record a source that has no output location as a failed file."""
        logger.warning("Cannot publish %s: %s", source, exc)
        return PublishFileResult(source, None, success=False, error=str(exc))

    def publish(
        self,
        source: Path,
        toc_entry: FlatTocEntry | None = None,
        *,
        force: bool = False,
    ) -> PublishFileResult:
        """Publish ``source`` with the converter its settings select."""
        converter = resolve_converter(source, self.project.publishing_function)
        try:
            output = self.output_path_for(source)
        except ValueError as exc:
            return self.unplaceable(source, exc)
        match converter:
            case Converter.COPY:
                return self.copy_file(source, force=force)
            case Converter.ORG:
                produce = partial(self.convert_org, source, toc_entry)
            case Converter.MARKDOWN:
                produce = partial(self.convert_markdown, source, toc_entry)
            case Converter.NOTEBOOK:
                produce = partial(self.convert_notebook, source, toc_entry)
        return self.write_guarded(source, output, produce, force=force)

    def publish_org_text(
        self, source: Path, text: str, toc_entry: FlatTocEntry | None = None
    ) -> PublishFileResult:
        """Publish org ``text`` as though it were read from ``source``.

        The gate is bypassed; used for generated documents such as sitemaps.
        """
        try:
            output = compute_output_path(source, self.base_dir, self.output_dir)
        except ValueError as exc:
            return self.unplaceable(source, exc)
        return self.write_guarded(
            source,
            output,
            partial(self.convert_org, source, toc_entry, text=text),
            force=True,
        )

    def write_guarded(
        self,
        source: Path,
        output: Path,
        produce: typ.Callable[[], RenderedPage],
        *,
        force: bool = False,
    ) -> PublishFileResult:
        """Gate, convert and write one page inside the failure boundary."""
        if not (force or self.options.force) and is_up_to_date(source, output):
            logger.debug("Skipping up-to-date %s", source)
            return PublishFileResult(source, output, success=True)
        try:
            page = produce()
            if not self.options.dry_run:
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_text(page.html, encoding="utf-8")
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to publish %s: %s", source, exc)
            return PublishFileResult(source, output, success=False, error=str(exc))
        logger.debug("Published %s -> %s", source, output)
        return PublishFileResult(
            source,
            output,
            success=True,
            title=page.title,
            date=parse_date(page.date),
        )

    def copy_file(self, source: Path, *, force: bool = False) -> PublishFileResult:
        """Copy ``source`` byte for byte under the output directory."""
        try:
            output = compute_copy_path(source, self.base_dir, self.output_dir)
        except ValueError as exc:
            return self.unplaceable(source, exc)
        if not (force or self.options.force) and is_up_to_date(source, output):
            logger.debug("Skipping up-to-date %s", source)
            return PublishFileResult(source, output, success=True)
        try:
            if not self.options.dry_run:
                output.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(source, output)
        except OSError as exc:
            logger.warning("Failed to copy %s: %s", source, exc)
            return PublishFileResult(source, output, success=False, error=str(exc))
        return PublishFileResult(source, output, success=True)

    def _relative_output(self, source: Path) -> str:
        output = compute_output_path(source, self.base_dir, self.output_dir)
        return output.relative_to(self.output_dir).as_posix()

    def navigation_html(self, source: Path, entry: FlatTocEntry | None) -> str:
        """Return prev/next links for a TOC page, relative to its depth."""
        if entry is None or (entry.prev is None and entry.next is None):
            return ""
        prefix = relative_root(self._relative_output(source))
        links: list[str] = []
        for key, css_class, arrow in (
            (entry.prev, "nav-prev", "&larr; "),
            (entry.next, "nav-next", ""),
        ):
            if key is None:
                links.append(f'<span class="{css_class}"></span>')
                continue
            neighbour = self._toc.get(key)
            label = escape((neighbour.title if neighbour else None) or key)
            suffix = " &rarr;" if css_class == "nav-next" else ""
            links.append(
                f'<a class="{css_class}" href="{escape(prefix + toc_href(key))}">'
                f"{arrow}{label}{suffix}</a>"
            )
        return f'<nav class="page-nav">{"".join(links)}</nav>'

    def export_options(self, *, body_only: bool = False) -> HtmlExportOptions:
        """Translate project settings into exporter options."""
        project = self.project
        return HtmlExportOptions(
            body_only=body_only,
            title=project.default_title,
            with_toc=project.with_toc,
            section_numbers=project.section_numbers,
            with_author=project.with_author,
            with_creator=project.with_creator,
            css_files=list(project.css_files),
            js_files=list(project.js_files),
            head=project.html_head,
            head_extra=project.html_head_extra,
            use_default_theme=project.use_default_theme,
        )

    def convert_org(
        self,
        source: Path,
        toc_entry: FlatTocEntry | None = None,
        *,
        text: str | None = None,
        body_only: bool = False,
    ) -> RenderedPage:
        """Expand includes, parse and export an org document."""
        content = text if text is not None else source.read_text(encoding="utf-8")
        if self.backend.has_includes(content):
            content = self.backend.process_includes(
                content,
                base_path=source.parent,
                recursive=True,
                max_depth=INCLUDE_MAX_DEPTH,
            )
        document = self.backend.parse_document(content)
        title = document.keywords.get("TITLE") or None
        date = document.keywords.get("DATE") or None
        options = self.export_options(body_only=body_only)
        options.title = options.title or source.stem
        if not body_only:
            options.preamble = load_template(
                self.project.html_preamble, self.workspace_root
            )
            postamble = load_template(self.project.html_postamble, self.workspace_root)
            nav = self.navigation_html(source, toc_entry)
            options.postamble = (nav + (postamble or "")) or None
        html = self.backend.export_to_html(document, options)
        return RenderedPage(html, title=title, date=date)

    def _render_document(
        self,
        template_name: str,
        source: Path,
        toc_entry: FlatTocEntry | None,
        *,
        title: str,
        body: str,
    ) -> str:
        project = self.project
        template = self._env.get_template(template_name)
        return template.render(
            title=title,
            body=Markup(body),
            nav=Markup(self.navigation_html(source, toc_entry)),
            preamble=Markup(load_template(project.html_preamble, self.workspace_root) or ""),
            postamble=Markup(
                load_template(project.html_postamble, self.workspace_root) or ""
            ),
            head_extra=Markup(project.html_head_extra or ""),
            css_files=project.css_files,
            js_files=project.js_files,
            use_default_theme=project.use_default_theme,
            pygments_css=Markup(self.renderer.stylesheet),
            client_highlight=not self.renderer.highlights_server_side,
            highlight_version=HIGHLIGHT_JS_VERSION,
        )

    def convert_markdown(
        self,
        source: Path,
        toc_entry: FlatTocEntry | None = None,
        *,
        body_only: bool = False,
    ) -> RenderedPage:
        """Convert a Markdown document into a standalone page or fragment."""
        rendered = self.renderer.render(source.read_text(encoding="utf-8"))
        title = rendered.title or self.project.default_title or source.stem
        if body_only:
            return RenderedPage(rendered.html, title=rendered.title, date=rendered.date)
        html = self._render_document(
            "markdown_page.jinja", source, toc_entry, title=title, body=rendered.html
        )
        return RenderedPage(html, title=rendered.title, date=rendered.date)

    def notebook_body(self, text: str) -> tuple[str, str | None]:
        """Render notebook cells to HTML and return it with the notebook title."""
        notebook = self.backend.parse_notebook(text)
        parts: list[str] = []
        for cell in notebook.cells:
            if cell.cell_type == "markdown":
                html = self.renderer.markdown(cell.source)
                parts.append(f'<div class="notebook-cell markdown-cell">{html}</div>')
            elif cell.cell_type == "code" and cell.source.strip():
                code = self.renderer.code_block(cell.source, notebook.language)
                outputs = "".join(
                    f'<pre class="cell-output">{escape(output)}</pre>'
                    for output in cell.outputs
                )
                parts.append(f'<div class="notebook-cell code-cell">{code}{outputs}</div>')
        return "\n".join(parts), notebook.title

    def convert_notebook(
        self,
        source: Path,
        toc_entry: FlatTocEntry | None = None,
        *,
        body_only: bool = False,
    ) -> RenderedPage:
        """Convert a notebook into a standalone page or fragment."""
        body, notebook_title = self.notebook_body(source.read_text(encoding="utf-8"))
        if body_only:
            return RenderedPage(body, title=notebook_title)
        title = notebook_title or self.project.default_title or source.stem
        html = self._render_document(
            "notebook_page.jinja", source, toc_entry, title=title, body=body
        )
        return RenderedPage(html, title=notebook_title)

    def convert_fragment(self, source: Path) -> RenderedPage:
        """Convert ``source`` to a body-only fragment for theme wrapping.

        Raises
        ------
        ValueError
            If the source would be copied rather than converted.
        """
        converter = resolve_converter(source, self.project.publishing_function)
        match converter:
            case Converter.ORG:
                return self.convert_org(source, body_only=True)
            case Converter.MARKDOWN:
                return self.convert_markdown(source, body_only=True)
            case Converter.NOTEBOOK:
                return self.convert_notebook(source, body_only=True)
            case Converter.COPY:
                msg = f"{source.name} is copied verbatim and has no HTML body"
                raise ValueError(msg)


__all__ = [
    "Converter",
    "FilePublisher",
    "RenderedPage",
    "converter_for_extension",
    "load_template",
    "parse_date",
    "relative_root",
    "resolve_converter",
]
