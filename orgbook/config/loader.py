"""Load and save orgbook publishing configuration files."""

from __future__ import annotations

import json
import logging
import typing as typ

from ruamel.yaml import YAML

from orgbook._constants import CONFIG_FILENAME, YAML_CONFIG_FILENAME
from orgbook.yaml_reader import parse_simple_yaml

from .helpers import (
    build_theme_config,
    is_component,
    merge_with_defaults,
    project_from_json,
    project_to_json,
    theme_to_mapping,
)
from .models import ComponentProject, Project, PublishConfig, SiteConfigError

if typ.TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_YAML_PROJECT = "main"
DEFAULT_YAML_BASE_DIRECTORY = "./"
DEFAULT_YAML_PUBLISHING_DIRECTORY = "./_build/html"
DEFAULT_YAML_EXCLUDE = "_build"

_HTML_KEYS = {
    "use_default_theme": "use_default_theme",
    "css_files": "css_files",
    "js_files": "js_files",
    "section_numbers": "section_numbers",
    "preamble": "html_preamble",
    "postamble": "html_postamble",
    "head_extra": "html_head_extra",
    "pygments_style": "pygments_style",
}
_PUBLISH_KEYS = {
    "base_directory": "base_directory",
    "publishing_directory": "publishing_directory",
    "base_extension": "base_extension",
    "recursive": "recursive",
    "exclude": "exclude",
    "include": "include",
    "publishing_function": "publishing_function",
    "auto_sitemap": "auto_sitemap",
    "sitemap_filename": "sitemap_filename",
    "sitemap_title": "sitemap_title",
    "sitemap_style": "sitemap_style",
    "sitemap_sort_files": "sitemap_sort_files",
}


def load_config(workspace_root: Path) -> PublishConfig | None:
    """Load the workspace publishing configuration.

    ``_config.yml`` is tried first, then ``.org-publish.json``.

    Parameters
    ----------
    workspace_root : Path
        Directory holding the configuration file.

    Returns
    -------
    PublishConfig | None
        The normalised configuration, or ``None`` when neither file exists.

    Raises
    ------
    SiteConfigError
        If the file content has the wrong shape.
    OSError
        For any I/O failure other than the file being absent.
    """
    yaml_path = workspace_root / YAML_CONFIG_FILENAME
    try:
        text = yaml_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        pass
    else:
        logger.debug("Reading %s", yaml_path)
        return config_from_jupyter_book(parse_simple_yaml(text))

    json_path = workspace_root / CONFIG_FILENAME
    try:
        text = json_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    logger.debug("Reading %s", json_path)
    return config_from_json(json.loads(text))


def config_from_json(raw: object) -> PublishConfig:
    """Normalise a parsed ``.org-publish.json`` payload."""
    if not isinstance(raw, dict):
        msg = "Top-level configuration must be an object."
        raise SiteConfigError(msg)
    projects_raw = raw.get("projects") or {}
    if not isinstance(projects_raw, dict):
        msg = "'projects' must be an object keyed by project name."
        raise SiteConfigError(msg)

    projects: dict[str, Project | ComponentProject] = {}
    for name, payload in projects_raw.items():
        match payload:
            case dict() if is_component(payload):
                projects[name] = ComponentProject(
                    name=name, components=[str(item) for item in payload["components"]]
                )
            case dict():
                projects[name] = project_from_json(name, payload)
            case _:
                msg = f"Project '{name}' must be an object."
                raise SiteConfigError(msg)

    theme_raw = raw.get("theme")
    return PublishConfig(
        projects=projects,
        github_pages=bool(raw.get("githubPages", False)),
        custom_domain=raw.get("customDomain") or None,
        default_project=raw.get("defaultProject") or None,
        theme=build_theme_config(theme_raw) if isinstance(theme_raw, dict) else None,
        title=raw.get("title") or None,
        author=raw.get("author") or None,
    )


def config_from_jupyter_book(raw: typ.Mapping[str, typ.Any]) -> PublishConfig:
    """Remap a Jupyter-Book style ``_config.yml`` onto a single project config."""
    html = raw.get("html") or {}
    publish = raw.get("publish") or {}
    if not isinstance(html, dict) or not isinstance(publish, dict):
        msg = "'html' and 'publish' sections must be mappings."
        raise SiteConfigError(msg)

    settings: dict[str, typ.Any] = {
        "name": publish.get("name") or DEFAULT_YAML_PROJECT,
        "base_directory": raw.get("source_directory") or DEFAULT_YAML_BASE_DIRECTORY,
        "publishing_directory": raw.get("publish_directory")
        or DEFAULT_YAML_PUBLISHING_DIRECTORY,
        "exclude": DEFAULT_YAML_EXCLUDE,
    }
    if raw.get("title"):
        settings["sitemap_title"] = str(raw["title"])
    for source_key, field in _HTML_KEYS.items():
        if html.get(source_key) is not None:
            settings[field] = html[source_key]
    if html.get("toc_depth") is not None:
        settings["with_toc"] = int(html["toc_depth"])
    for source_key, field in _PUBLISH_KEYS.items():
        if publish.get(source_key) is not None:
            settings[field] = publish[source_key]

    project = merge_with_defaults(settings)

    theme_raw = raw.get("theme")
    theme = None
    if isinstance(theme_raw, dict):
        theme_payload = dict(theme_raw)
        if html.get("toc_depth") is not None:
            layout = dict(theme_payload.get("layout") or {})
            layout.setdefault("toc_depth", html["toc_depth"])
            theme_payload["layout"] = layout
        theme = build_theme_config(theme_payload)
        if theme.header.title is None and raw.get("title"):
            theme.header.title = str(raw["title"])

    return PublishConfig(
        projects={project.name: project},
        github_pages=bool(raw.get("github_pages", False)),
        custom_domain=raw.get("custom_domain") or None,
        default_project=project.name,
        theme=theme,
        title=raw.get("title") or None,
        author=raw.get("author") or None,
    )


def config_to_json(config: PublishConfig) -> dict[str, typ.Any]:
    """Serialise a config into the ``.org-publish.json`` shape."""
    projects: dict[str, typ.Any] = {}
    for name, project in config.projects.items():
        if isinstance(project, ComponentProject):
            projects[name] = {"components": list(project.components)}
        else:
            projects[name] = project_to_json(project)
    payload: dict[str, typ.Any] = {"projects": projects}
    if config.github_pages:
        payload["githubPages"] = True
    optional = {
        "customDomain": config.custom_domain,
        "defaultProject": config.default_project,
        "title": config.title,
        "author": config.author,
    }
    payload.update({key: value for key, value in optional.items() if value})
    if config.theme is not None:
        payload["theme"] = theme_to_mapping(config.theme)
    return payload


def save_config(workspace_root: Path, config: PublishConfig) -> Path:
    """Write ``.org-publish.json`` with two-space indentation."""
    path = workspace_root / CONFIG_FILENAME
    content = json.dumps(config_to_json(config), indent=2)
    path.write_text(content + "\n", encoding="utf-8")
    return path


def _build_dump_yaml() -> YAML:
    yaml = YAML()
    yaml.default_flow_style = False
    yaml.width = 4096
    yaml.indent(mapping=2, sequence=4, offset=2)
    return yaml


def config_to_jupyter_book(config: PublishConfig) -> dict[str, typ.Any]:
    """Serialise the first publishable project into ``_config.yml`` keys."""
    project = next(
        (item for item in config.projects.values() if isinstance(item, Project)),
        None,
    )
    if project is None:
        msg = "A YAML configuration needs at least one publishable project."
        raise SiteConfigError(msg)

    document: dict[str, typ.Any] = {}
    if config.title:
        document["title"] = config.title
    if config.author:
        document["author"] = config.author
    html: dict[str, typ.Any] = {"use_default_theme": project.use_default_theme}
    if not isinstance(project.with_toc, bool):
        html["toc_depth"] = project.with_toc
    if project.section_numbers:
        html["section_numbers"] = True
    if project.css_files:
        html["css_files"] = list(project.css_files)
    if project.js_files:
        html["js_files"] = list(project.js_files)
    document["html"] = html

    publish: dict[str, typ.Any] = {
        "name": project.name,
        "base_directory": project.base_directory,
        "publishing_directory": project.publishing_directory,
        "recursive": project.recursive,
        "auto_sitemap": project.auto_sitemap,
        "sitemap_filename": project.sitemap_filename,
        "sitemap_title": project.sitemap_title,
    }
    if project.exclude:
        publish["exclude"] = project.exclude
    if project.include:
        publish["include"] = list(project.include)
    document["publish"] = publish
    document["github_pages"] = config.github_pages
    if config.custom_domain:
        document["custom_domain"] = config.custom_domain
    if config.theme is not None:
        document["theme"] = theme_to_mapping(config.theme)
    return document


def save_config_yaml(workspace_root: Path, config: PublishConfig) -> Path:
    """Write a Jupyter-Book style ``_config.yml`` for ``config``."""
    path = workspace_root / YAML_CONFIG_FILENAME
    yaml = _build_dump_yaml()
    with path.open("w", encoding="utf-8") as handle:
        yaml.dump(config_to_jupyter_book(config), handle)
    return path


__all__ = [
    "config_from_json",
    "config_from_jupyter_book",
    "config_to_jupyter_book",
    "config_to_json",
    "load_config",
    "save_config",
    "save_config_yaml",
]
