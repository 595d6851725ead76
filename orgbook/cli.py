"""Cyclopts CLI entrypoint for publishing org, Markdown and notebook sites.

The ``orgbook`` console script loads ``_config.yml`` or ``.org-publish.json``
from the workspace root and publishes the configured projects, writes a fresh
configuration with ``orgbook init``, or lists what is configured with
``orgbook list``.

Examples
--------
Publish every project of the current directory:

>>> from orgbook.cli import main
>>> main()  # doctest: +SKIP

Republish a single project into its output directory, ignoring timestamps:

>>> from orgbook.cli import app
>>> app(["publish", "docs", "--force"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from ._constants import CONFIG_FILENAME, TOC_FILENAME, YAML_CONFIG_FILENAME
from .config import (
    ComponentProject,
    load_config,
    save_config,
    save_config_yaml,
    validate_config,
)
from .orchestrator import create_project_config, publish_all
from .publisher import PublishOptions

if typ.TYPE_CHECKING:
    from .publisher import PublishProjectResult

app = App(
    name="orgbook",
    help="Publish org-mode, Markdown and notebook sources as static HTML.",
    config=cyclopts.config.Env("ORGBOOK_", command=False),  # type: ignore[unknown-argument]
)

Root = typ.Annotated[Path, Parameter(help="Workspace root holding the configuration")]
Verbose = typ.Annotated[bool, Parameter(help="Log progress and debug details")]


def _configure_logging(verbose: bool) -> None:  # noqa: FBT001
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _print_progress(current: int, total: int, filename: str) -> None:
    print(f"  [{current}/{total}] {filename}")


def _print_summary(result: PublishProjectResult) -> None:
    print(
        f"{result.project_name}: {result.success_count} published, "
        f"{result.error_count} failed ({result.duration:.2f}s)"
    )
    for item in result.files:
        if not item.success:
            print(f"  error: {_format_path(item.source_path)}: {item.error}")


@app.command(help="Publish all projects, or only the named one.")
def publish(
    project: typ.Annotated[
        str | None, Parameter(help="Project or component project to publish")
    ] = None,
    *,
    root: Root = Path(),
    force: typ.Annotated[
        bool, Parameter(help="Republish files even when outputs are up to date")
    ] = False,
    dry_run: typ.Annotated[
        bool, Parameter(help="Convert sources without writing any output")
    ] = False,
    verbose: Verbose = False,
) -> None:
    """Publish configured projects.

    Parameters
    ----------
    project : str or None, optional
        Project to publish; component projects expand to their members. When
        ``None`` every project is published.
    root : Path, optional
        Workspace root containing ``_config.yml`` or ``.org-publish.json``.
    force : bool, optional
        Bypass the up-to-date check.
    dry_run : bool, optional
        Perform reads and conversions but write nothing.
    verbose : bool, optional
        Print per-file progress and debug logging.

    Raises
    ------
    SystemExit
        With status 1 when no configuration exists, the project is unknown,
        or any file failed to publish.
    """
    _configure_logging(verbose)
    config = load_config(root)
    if config is None:
        print(
            f"No {YAML_CONFIG_FILENAME} or {CONFIG_FILENAME} found in "
            f"{_format_path(root.resolve())}. Run 'orgbook init' to create one."
        )
        raise SystemExit(1)
    for issue in validate_config(config):
        print(f"warning: {issue.field}: {issue.message}")
    if project is not None and project not in config.projects:
        known = ", ".join(config.projects)
        print(f"Unknown project '{project}'. Known projects: {known}")
        raise SystemExit(1)

    options = PublishOptions(
        force=force,
        dry_run=dry_run,
        on_progress=_print_progress if verbose else None,
    )
    results = publish_all(
        config,
        root,
        options,
        names=[project] if project is not None else None,
    )
    for result in results:
        _print_summary(result)
    if dry_run:
        print("Dry run: no files were written.")
    if any(result.error_count for result in results):
        raise SystemExit(1)


@app.command(help="Write a starter publishing configuration.")
def init(
    *,
    root: Root = Path(),
    name: typ.Annotated[str, Parameter(help="Project name")] = "site",
    base: typ.Annotated[str, Parameter(help="Source directory")] = "./org",
    output: typ.Annotated[str, Parameter(help="Publishing directory")] = "./docs",
    github: typ.Annotated[
        bool, Parameter(help="Apply the GitHub Pages preset (.nojekyll, index.org)")
    ] = True,
    sitemap: typ.Annotated[bool, Parameter(help="Generate a sitemap page")] = True,
    yaml: typ.Annotated[
        bool,
        Parameter(help=f"Write {YAML_CONFIG_FILENAME} instead of {CONFIG_FILENAME}"),
    ] = False,
    force: typ.Annotated[
        bool, Parameter(help="Overwrite an existing configuration")
    ] = False,
    verbose: Verbose = False,
) -> None:
    """Create ``.org-publish.json`` (or ``_config.yml``) in ``root``.

    Raises
    ------
    SystemExit
        With status 1 when a configuration already exists and ``force`` is
        not set.
    """
    _configure_logging(verbose)
    existing = [
        root / filename
        for filename in (YAML_CONFIG_FILENAME, CONFIG_FILENAME)
        if (root / filename).exists()
    ]
    if existing and not force:
        print(
            f"{_format_path(existing[0])} already exists; "
            "pass --force to overwrite it."
        )
        raise SystemExit(1)
    config = create_project_config(name, base, output, github, sitemap)
    written = save_config_yaml(root, config) if yaml else save_config(root, config)
    print(f"wrote {_format_path(written)}")
    print(
        f"Tip: add a {TOC_FILENAME} to {base} to control page order and "
        "navigation, or to publish with the book theme."
    )


@app.command(name="list", help="List configured projects.")
def list_projects(
    *,
    root: Root = Path(),
    verbose: Verbose = False,
) -> None:
    """Print each configured project and where it publishes.

    Raises
    ------
    SystemExit
        With status 1 when no configuration exists.
    """
    _configure_logging(verbose)
    config = load_config(root)
    if config is None:
        print(f"No publishing configuration in {_format_path(root.resolve())}.")
        raise SystemExit(1)
    for name, project in config.projects.items():
        if isinstance(project, ComponentProject):
            print(f"{name} (components: {', '.join(project.components)})")
        else:
            print(
                f"{name}: {project.base_directory} -> {project.publishing_directory}"
                f" [{project.publishing_function}]"
            )
    if config.theme is not None:
        print(f"theme: {config.theme.name}")
    if config.github_pages:
        domain = f" ({config.custom_domain})" if config.custom_domain else ""
        print(f"github pages: yes{domain}")


def main() -> None:
    """Invoke the Cyclopts application behind the ``orgbook`` console command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
