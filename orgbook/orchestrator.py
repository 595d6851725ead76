"""Publish whole projects and multi-project configurations.

:func:`publish_project` runs the plain pipeline: discover sources from the
``_toc.yml`` or by scanning, publish each file through
:class:`~orgbook.publisher.FilePublisher`, then write and publish the
sitemap. :func:`publish_project_with_theme` converts every TOC page to a body
fragment and lets a theme assemble the full page. :func:`publish_all` walks
the configured projects in dependency order and finishes with the GitHub
Pages artefacts.

Example
-------
>>> from pathlib import Path
>>> from orgbook.config import load_config
>>> config = load_config(Path("."))  # doctest: +SKIP
>>> results = publish_all(config, Path("."))  # doctest: +SKIP
>>> [result.success_count for result in results]  # doctest: +SKIP
[12]
"""

from __future__ import annotations

import dataclasses as dc
import logging
import time
import typing as typ
from functools import partial

from orgbook._constants import CNAME_FILENAME, NOJEKYLL_FILENAME, TOC_FILENAME
from orgbook.config.helpers import (
    DEFAULT_PROJECT_SETTINGS,
    GITHUB_PAGES_PRESET,
    merge_with_defaults,
)
from orgbook.config.models import (
    ComponentProject,
    Project,
    PublishConfig,
    PublishingFunction,
)
from orgbook.discovery import SourceFile, discover_files, discover_from_toc
from orgbook.publisher import (
    Converter,
    FilePublisher,
    PublishError,
    PublishFileResult,
    PublishOptions,
    PublishProjectResult,
    RenderedPage,
    is_up_to_date,
    resolve_converter,
)
from orgbook.sitemap import (
    entries_from_results,
    generate_sitemap_org,
    generate_toc_sitemap_org,
    read_metadata,
    titles_by_toc_key,
)
from orgbook.themes import (
    PageContext,
    PageInfo,
    ProjectContext,
    SearchIndexer,
    default_registry,
    ensure_heading_ids,
    html_to_text,
)
from orgbook.themes.registry import DEFAULT_THEME_NAME
from orgbook.toc import flatten_toc, load_toc

if typ.TYPE_CHECKING:
    from pathlib import Path

    from orgbook.backends import DocumentBackend
    from orgbook.config.models import ThemeConfig
    from orgbook.themes import PageHeading, Theme, ThemeRegistry
    from orgbook.toc import FlatTocEntry, TocConfig

logger = logging.getLogger(__name__)


def _report(options: PublishOptions, current: int, total: int, source: Path) -> None:
    if options.on_progress is not None:
        options.on_progress(current, total, source.name)


def _sitemap_source(project: Project, base_dir: Path) -> Path:
    return (base_dir / project.sitemap_filename).resolve()


def _collides(target: Path, sources: typ.Iterable[SourceFile]) -> bool:
    if any(source.path.resolve() == target for source in sources):
        logger.warning(
            "Not generating sitemap: %s is a source document of the project", target
        )
        return True
    return False


def _sitemap_text(
    project: Project,
    base_dir: Path,
    toc: TocConfig | None,
    results: list[PublishFileResult],
    target: Path,
) -> str | None:
    if toc is not None:
        return generate_toc_sitemap_org(
            toc, titles_by_toc_key(results, base_dir), project.sitemap_title
        )
    entries = entries_from_results(results, base_dir, exclude=target)
    if not entries:
        return None
    return generate_sitemap_org(entries, project)


def _write_sitemap_source(target: Path, text: str, options: PublishOptions) -> None:
    if options.dry_run:
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    logger.debug("Wrote sitemap source %s", target)


def _wants_sitemap(project: Project) -> bool:
    return (
        project.auto_sitemap
        and project.publishing_function is not PublishingFunction.COPY
    )


def _discover(
    project: Project, base_dir: Path, flat: tuple[FlatTocEntry, ...] | None
) -> list[SourceFile]:
    if flat is not None:
        return discover_from_toc(base_dir, flat)
    skip = (_sitemap_source(project, base_dir),) if _wants_sitemap(project) else ()
    return [SourceFile(path) for path in discover_files(project, base_dir, skip=skip)]


def publish_project(
    project: Project,
    workspace_root: Path,
    options: PublishOptions | None = None,
    *,
    backend: DocumentBackend | None = None,
) -> PublishProjectResult:
    """Publish every source of ``project`` and its sitemap.

    Parameters
    ----------
    project : Project
        Fully merged project settings.
    workspace_root : Path
        Directory the project's relative directories are resolved against.
    options : PublishOptions, optional
        ``force``, ``dry_run`` and the progress callback.
    backend : DocumentBackend, optional
        Org/notebook collaborator passed to the file publisher.

    Returns
    -------
    PublishProjectResult
        One result per discovered file, plus the sitemap's when one was
        published.

    Raises
    ------
    FileNotFoundError
        If there is no ``_toc.yml`` and the base directory does not exist.
    """
    options = options or PublishOptions()
    started = time.perf_counter()
    base_dir = (workspace_root / project.base_directory).resolve()
    toc = load_toc(base_dir)
    flat = flatten_toc(toc) if toc is not None else None
    publisher = FilePublisher(
        project, workspace_root, options, backend=backend, toc_entries=flat or ()
    )
    sources = _discover(project, base_dir, flat)
    logger.info("Publishing project %s: %d file(s)", project.name, len(sources))

    results: list[PublishFileResult] = []
    for index, source in enumerate(sources, start=1):
        _report(options, index, len(sources), source.path)
        results.append(publisher.publish(source.path, source.toc_entry))

    if _wants_sitemap(project):
        target = _sitemap_source(project, base_dir)
        text = None
        if not _collides(target, sources):
            text = _sitemap_text(project, base_dir, toc, results, target)
        if text is not None:
            _write_sitemap_source(target, text, options)
            results.append(publisher.publish_org_text(target, text))

    result = PublishProjectResult(
        project.name, results, duration=time.perf_counter() - started
    )
    logger.info(
        "Finished %s: %d succeeded, %d failed in %.2fs",
        project.name,
        result.success_count,
        result.error_count,
        result.duration,
    )
    return result


@dc.dataclass(slots=True)
class _ThemePage:
    """A converted fragment waiting for the theme to wrap it."""

    source: Path
    output: Path
    toc_entry: FlatTocEntry | None
    rendered: RenderedPage
    html: str
    headings: tuple[PageHeading, ...]
    force: bool = False


@dc.dataclass(slots=True)
class _CurrentPage:
    """An up-to-date page that only lends its title to the navigation."""

    source: Path
    output: Path
    toc_entry: FlatTocEntry | None
    title: str | None


def _page_title(item: _ThemePage | _CurrentPage) -> str | None:
    if isinstance(item, _CurrentPage):
        return item.title
    return item.rendered.title


def _themed(
    theme: Theme, page: PageContext, project: ProjectContext, rendered: RenderedPage
) -> RenderedPage:
    html = theme.render_page(page.content, page, project)
    return RenderedPage(html, title=rendered.title, date=rendered.date)


def _prepare_fragment(
    publisher: FilePublisher,
    source: Path,
    toc_entry: FlatTocEntry | None,
    toc_depth: int,
    *,
    text: str | None = None,
    reuse_current: bool = False,
) -> _ThemePage | _CurrentPage | PublishFileResult:
    try:
        output = publisher.output_path_for(source)
    except ValueError as exc:
        return publisher.unplaceable(source, exc)
    if (
        reuse_current
        and text is None
        and not publisher.options.force
        and is_up_to_date(source, output)
    ):
        title, _date = read_metadata(source)
        return _CurrentPage(source, output, toc_entry, title)
    try:
        if text is None:
            rendered = publisher.convert_fragment(source)
        else:
            rendered = publisher.convert_org(source, text=text, body_only=True)
        html, headings = ensure_heading_ids(rendered.html, toc_depth)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to convert %s: %s", source, exc)
        return PublishFileResult(source, output, success=False, error=str(exc))
    return _ThemePage(
        source,
        output,
        toc_entry,
        rendered,
        html,
        tuple(headings),
        force=text is not None,
    )


def publish_project_with_theme(
    project: Project,
    workspace_root: Path,
    theme_config: ThemeConfig,
    options: PublishOptions | None = None,
    *,
    backend: DocumentBackend | None = None,
    registry: ThemeRegistry | None = None,
) -> PublishProjectResult:
    """Publish a TOC-driven project through a theme.

    Every page is first converted to a body fragment so that titles are
    known for the site navigation; the theme then renders each page, and
    writes go through the usual up-to-date gate. After the pages, the theme's
    assets are copied and, when search is enabled and the theme supports
    it, the search index is written.

    The search index needs the text of every page, so up-to-date pages are
    only left unconverted when no index is written. Their navigation titles
    are then read with :func:`~orgbook.sitemap.read_metadata`.

    Raises
    ------
    PublishError
        If the project has no ``_toc.yml``.
    """
    options = options or PublishOptions()
    started = time.perf_counter()
    base_dir = (workspace_root / project.base_directory).resolve()
    toc = load_toc(base_dir)
    if toc is None:
        msg = (
            f"Theme '{theme_config.name}' requires a {TOC_FILENAME} in {base_dir}"
        )
        raise PublishError(msg)
    flat = flatten_toc(toc)
    theme = (registry or default_registry()).for_config(theme_config)
    publisher = FilePublisher(
        project, workspace_root, options, backend=backend, toc_entries=flat
    )
    sources = discover_from_toc(base_dir, flat)
    depth = theme_config.layout.toc_depth
    builds_index = (
        not options.dry_run
        and theme_config.search.enabled
        and isinstance(theme, SearchIndexer)
    )
    logger.info(
        "Publishing project %s with theme %s: %d file(s)",
        project.name,
        theme.name,
        len(sources),
    )

    prepared: list[_ThemePage | _CurrentPage | PublishFileResult] = []
    for index, source in enumerate(sources, start=1):
        _report(options, index, len(sources), source.path)
        converter = resolve_converter(source.path, project.publishing_function)
        if converter is Converter.COPY:
            prepared.append(publisher.copy_file(source.path))
        else:
            prepared.append(
                _prepare_fragment(
                    publisher,
                    source.path,
                    source.toc_entry,
                    depth,
                    reuse_current=not builds_index,
                )
            )

    if _wants_sitemap(project):
        target = _sitemap_source(project, base_dir)
        if not _collides(target, sources):
            interim = [item for item in prepared if isinstance(item, PublishFileResult)]
            interim.extend(
                PublishFileResult(
                    item.source, item.output, success=True, title=_page_title(item)
                )
                for item in prepared
                if not isinstance(item, PublishFileResult)
            )
            text = generate_toc_sitemap_org(
                toc, titles_by_toc_key(interim, base_dir), project.sitemap_title
            )
            _write_sitemap_source(target, text, options)
            prepared.append(
                _prepare_fragment(publisher, target, None, depth, text=text)
            )

    titles = {
        item.toc_entry.file: title
        for item in prepared
        if not isinstance(item, PublishFileResult)
        and item.toc_entry
        and (title := _page_title(item))
    }
    context = ProjectContext(
        config=theme_config,
        flat_toc=flat,
        toc_config=toc,
        output_dir=publisher.output_dir,
        base_dir=base_dir,
        workspace_root=workspace_root,
        titles=titles,
    )

    results: list[PublishFileResult] = []
    pages: list[PageInfo] = []
    for item in prepared:
        if isinstance(item, PublishFileResult):
            results.append(item)
            continue
        if isinstance(item, _CurrentPage):
            logger.debug("Skipping up-to-date %s", item.source)
            results.append(PublishFileResult(item.source, item.output, success=True))
            continue
        relative = item.output.relative_to(publisher.output_dir).as_posix()
        title = item.rendered.title or project.default_title or item.source.stem
        page = PageContext(
            title=title,
            content=item.html,
            relative_path=relative,
            source_path=item.source,
            toc_entry=item.toc_entry,
            page_headings=item.headings,
        )
        results.append(
            publisher.write_guarded(
                item.source,
                item.output,
                partial(_themed, theme, page, context, item.rendered),
                force=item.force,
            )
        )
        pages.append(PageInfo(title, relative, html_to_text(item.html), item.headings))

    if not options.dry_run:
        theme.copy_assets(publisher.output_dir)
        if theme_config.search.enabled and isinstance(theme, SearchIndexer):
            theme.generate_search_index(pages, publisher.output_dir)

    return PublishProjectResult(
        project.name, results, duration=time.perf_counter() - started
    )


def get_publish_order(
    config: PublishConfig, names: typ.Iterable[str] | None = None
) -> list[str]:
    """Expand component projects depth-first into publishable project names.

    A name is visited at most once, so a component cycle terminates and the
    repeated member is silently dropped; :func:`~orgbook.config.validate_config`
    reports such cycles. Unknown names are ignored.

    >>> from orgbook.config.models import ComponentProject, Project
    >>> config = PublishConfig(projects={
    ...     "full": ComponentProject("full", ["a", "b"]),
    ...     "a": Project("a", "src/a", "out/a"),
    ...     "b": Project("b", "src/b", "out/b"),
    ... })
    >>> get_publish_order(config)
    ['a', 'b']
    """
    order: list[str] = []
    visited: set[str] = set()

    def _visit(name: str) -> None:
        if name in visited:
            return
        visited.add(name)
        match config.projects.get(name):
            case ComponentProject(components=components):
                for member in components:
                    _visit(member)
            case Project():
                order.append(name)
            case None:
                logger.debug("Ignoring unknown project %s", name)

    for name in names if names is not None else config.projects:
        _visit(name)
    return order


def publish_all(
    config: PublishConfig,
    workspace_root: Path,
    options: PublishOptions | None = None,
    *,
    names: typ.Iterable[str] | None = None,
    backend: DocumentBackend | None = None,
    registry: ThemeRegistry | None = None,
) -> list[PublishProjectResult]:
    """Publish the configured projects in component order.

    Parameters
    ----------
    config : PublishConfig
        Loaded configuration.
    workspace_root : Path
        Directory project paths are resolved against.
    options : PublishOptions, optional
        Run switches shared by every project.
    names : Iterable[str], optional
        Restrict the run to these projects (components are expanded).
    backend : DocumentBackend, optional
        Org/notebook collaborator.
    registry : ThemeRegistry, optional
        Theme lookup; defaults to the bundled themes.

    Returns
    -------
    list[PublishProjectResult]
        One result per published project, in publish order.
    """
    options = options or PublishOptions()
    theme = config.theme
    themed = theme is not None and theme.name != DEFAULT_THEME_NAME
    results: list[PublishProjectResult] = []
    for name in get_publish_order(config, names):
        project = config.projects[name]
        if not isinstance(project, Project):  # pragma: no cover - order holds projects
            continue
        if themed and theme is not None:
            results.append(
                publish_project_with_theme(
                    project,
                    workspace_root,
                    theme,
                    options,
                    backend=backend,
                    registry=registry,
                )
            )
        else:
            results.append(
                publish_project(project, workspace_root, options, backend=backend)
            )
    if config.github_pages:
        setup_github_pages(config, workspace_root, options)
    return results


def setup_github_pages(
    config: PublishConfig,
    workspace_root: Path,
    options: PublishOptions | None = None,
) -> Path | None:
    """Write ``.nojekyll`` and, with a custom domain, ``CNAME``.

    The files go into the output directory of the first publishable project
    in configuration order. Component projects are passed over, so a
    configuration that lists an aggregate like ``all`` first still gets its
    Pages files beside the first real site rather than nowhere. Nothing is
    written during a dry run.

    Returns
    -------
    Path | None
        The directory written to, or None when nothing was written.
    """
    options = options or PublishOptions()
    first = next(
        (
            project
            for project in config.projects.values()
            if isinstance(project, Project)
        ),
        None,
    )
    if first is None or options.dry_run:
        return None
    output_dir = (workspace_root / first.publishing_directory).resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    (output_dir / NOJEKYLL_FILENAME).write_text("", encoding="utf-8")
    if config.custom_domain:
        (output_dir / CNAME_FILENAME).write_text(config.custom_domain, encoding="utf-8")
    logger.debug("Wrote GitHub Pages files to %s", output_dir)
    return output_dir


def create_project_config(
    name: str,
    base_directory: str,
    publishing_directory: str,
    use_github_pages: bool = True,  # noqa: FBT001, FBT002
    generate_sitemap: bool = True,  # noqa: FBT001, FBT002
) -> PublishConfig:
    """Build a one-project configuration for quick initialisation.

    The GitHub Pages preset names the sitemap ``index.org`` titled ``Home``;
    the explicit directories always win over the preset's.

    >>> config = create_project_config("site", "./org", "./docs", True, True)
    >>> project = config.projects["site"]
    >>> project.sitemap_filename, project.sitemap_title, project.publishing_directory
    ('index.org', 'Home', './docs')
    """
    preset = GITHUB_PAGES_PRESET if use_github_pages else DEFAULT_PROJECT_SETTINGS
    project = merge_with_defaults(
        {
            "name": name,
            "base_directory": base_directory,
            "publishing_directory": publishing_directory,
            "recursive": True,
            "auto_sitemap": generate_sitemap,
        },
        preset,
    )
    return PublishConfig(projects={name: project}, github_pages=use_github_pages)


__all__ = [
    "create_project_config",
    "get_publish_order",
    "publish_all",
    "publish_project",
    "publish_project_with_theme",
    "setup_github_pages",
]
