"""Utility helpers shared by the orgbook configuration loader."""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

from .models import (
    ComponentProject,
    NavLinkConfig,
    Project,
    PublishConfig,
    PublishingFunction,
    SitemapSortOrder,
    SitemapStyle,
    ThemeAppearanceConfig,
    ThemeConfig,
    ThemeFooterConfig,
    ThemeHeaderConfig,
    ThemeLayoutConfig,
    ThemeSearchConfig,
    ValidationIssue,
)

DEFAULT_PROJECT_SETTINGS: dict[str, typ.Any] = {
    "base_extension": "org",
    "recursive": True,
    "publishing_function": PublishingFunction.ORG_HTML,
    "auto_sitemap": True,
    "sitemap_filename": "sitemap.org",
    "sitemap_title": "Site Map",
    "sitemap_style": SitemapStyle.LIST,
    "sitemap_sort_files": SitemapSortOrder.ALPHABETICALLY,
    "sitemap_sort_folders": "first",
    "use_default_theme": True,
    "with_author": True,
    "with_creator": True,
    "with_toc": True,
    "section_numbers": False,
}

GITHUB_PAGES_PRESET: dict[str, typ.Any] = {
    **DEFAULT_PROJECT_SETTINGS,
    "publishing_directory": "./docs",
    "sitemap_filename": "index.org",
    "sitemap_title": "Home",
}

_PROJECT_FIELDS = frozenset(field.name for field in dc.fields(Project))
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _camel_to_snake(key: str) -> str:
    """Convert ``baseDirectory`` style keys into ``base_directory``.

    >>> _camel_to_snake("htmlHeadExtra")
    'html_head_extra'
    """
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _snake_to_camel(key: str) -> str:
    """Convert ``base_directory`` style keys into ``baseDirectory``.

    >>> _snake_to_camel("sitemap_sort_files")
    'sitemapSortFiles'
    """
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _string_list(value: object) -> list[str]:
    """Normalise a scalar or sequence into a list of non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list | tuple):
        return [str(item) for item in value if str(item).strip()]
    return [str(value)]


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def is_component(payload: typ.Mapping[str, typ.Any]) -> bool:
    """Return True when a raw project mapping declares ``components``."""
    return isinstance(payload.get("components"), list)


def merge_with_defaults(
    payload: typ.Mapping[str, typ.Any],
    preset: typ.Mapping[str, typ.Any] = DEFAULT_PROJECT_SETTINGS,
) -> Project:
    """Build a :class:`Project` from snake_case settings layered over a preset.

    Parameters
    ----------
    payload : Mapping[str, Any]
        Project settings using :class:`Project` field names. ``None`` values
        are treated as absent; unknown keys are ignored.
    preset : Mapping[str, Any], optional
        Defaults applied underneath ``payload``. Defaults to
        :data:`DEFAULT_PROJECT_SETTINGS`.

    Returns
    -------
    Project
        A fully populated project. ``name``, ``base_directory`` and
        ``publishing_directory`` fall back to ``'default'``, ``'./org'`` and
        ``'./docs'`` when neither the preset nor the payload set them.
    """
    explicit = {
        key: value
        for key, value in payload.items()
        if key in _PROJECT_FIELDS and value is not None
    }
    merged: dict[str, typ.Any] = {
        "name": "default",
        "base_directory": "./org",
        "publishing_directory": "./docs",
        **{key: value for key, value in preset.items() if key in _PROJECT_FIELDS},
        **explicit,
    }
    for required, fallback in (
        ("name", "default"),
        ("base_directory", "./org"),
        ("publishing_directory", "./docs"),
    ):
        if not merged.get(required):
            merged[required] = fallback

    merged["publishing_function"] = PublishingFunction.parse(
        merged.get("publishing_function")
    )
    merged["sitemap_style"] = _coerce_enum(
        SitemapStyle, merged.get("sitemap_style"), SitemapStyle.LIST
    )
    merged["sitemap_sort_files"] = _coerce_enum(
        SitemapSortOrder,
        merged.get("sitemap_sort_files"),
        SitemapSortOrder.ALPHABETICALLY,
    )
    for list_field in ("include", "css_files", "js_files"):
        merged[list_field] = _string_list(merged.get(list_field))
    return Project(**merged)


_E = typ.TypeVar("_E", SitemapStyle, SitemapSortOrder)


def _coerce_enum(enum_type: type[_E], value: object, fallback: _E) -> _E:
    try:
        return enum_type(str(value))
    except ValueError:
        return fallback


def project_from_json(name: str, payload: typ.Mapping[str, typ.Any]) -> Project:
    """Build a Project from a camelCase ``.org-publish.json`` entry."""
    snake = {_camel_to_snake(key): value for key, value in payload.items()}
    snake["name"] = name
    return merge_with_defaults(snake)


def project_to_json(project: Project) -> dict[str, typ.Any]:
    """Serialise a Project into camelCase keys, omitting unset values."""
    result: dict[str, typ.Any] = {}
    for field in dc.fields(project):
        value = getattr(project, field.name)
        if value is None or value == []:
            continue
        if isinstance(value, PublishingFunction | SitemapStyle | SitemapSortOrder):
            value = str(value)
        result[_snake_to_camel(field.name)] = value
    return result


def _build_links(payload: object) -> list[NavLinkConfig]:
    links: list[NavLinkConfig] = []
    if not isinstance(payload, list):
        return links
    for item in payload:
        if isinstance(item, dict) and item.get("url"):
            links.append(
                NavLinkConfig(text=str(item.get("text") or item["url"]), url=str(item["url"]))
            )
    return links


def build_theme_config(payload: typ.Mapping[str, typ.Any] | None) -> ThemeConfig:
    """Build a ThemeConfig instance from the provided mapping payload."""
    if not payload:
        return ThemeConfig()
    base = ThemeConfig()
    layout = payload.get("layout") or {}
    header = payload.get("header") or {}
    footer = payload.get("footer") or {}
    appearance = payload.get("appearance") or {}
    search = payload.get("search") or {}
    return ThemeConfig(
        name=str(payload.get("name") or base.name),
        layout=ThemeLayoutConfig(
            show_left_sidebar=bool(layout.get("show_left_sidebar", True)),
            show_right_sidebar=bool(layout.get("show_right_sidebar", True)),
            toc_depth=int(layout.get("toc_depth") or base.layout.toc_depth),
        ),
        header=ThemeHeaderConfig(
            logo=_optional_str(header.get("logo")),
            title=_optional_str(header.get("title")),
            navbar_links=_build_links(header.get("navbar_links")),
        ),
        footer=ThemeFooterConfig(
            copyright=_optional_str(footer.get("copyright")),
            links=_build_links(footer.get("links")),
        ),
        appearance=ThemeAppearanceConfig(
            primary_color=_optional_str(appearance.get("primary_color")),
            enable_dark_mode=bool(appearance.get("enable_dark_mode", True)),
            default_mode=str(appearance.get("default_mode") or "auto"),
        ),
        search=ThemeSearchConfig(enabled=bool(search.get("enabled", True))),
        custom_css=_optional_str(payload.get("custom_css")),
    )


def theme_to_mapping(theme: ThemeConfig) -> dict[str, typ.Any]:
    """Serialise a ThemeConfig into plain nested mappings without ``None``."""

    def _prune(value: typ.Any) -> typ.Any:
        if isinstance(value, dict):
            return {
                key: _prune(item)
                for key, item in value.items()
                if item is not None and item != []
            }
        if isinstance(value, list):
            return [_prune(item) for item in value]
        return value

    return _prune(dc.asdict(theme))


def validate_project(
    project: Project | typ.Mapping[str, typ.Any],
) -> list[ValidationIssue]:
    """Return findings for a single project without raising.

    >>> [issue.field for issue in validate_project({"name": "x"})]
    ['baseDirectory', 'publishingDirectory']
    """
    if isinstance(project, Project):
        name = project.name
        base = project.base_directory
        output = project.publishing_directory
    else:
        name = project.get("name")
        base = project.get("base_directory")
        output = project.get("publishing_directory")

    issues: list[ValidationIssue] = []
    if not name:
        issues.append(ValidationIssue("name", "Project name is required"))
    if not base:
        issues.append(ValidationIssue("baseDirectory", "Base directory is required"))
    if not output:
        issues.append(
            ValidationIssue("publishingDirectory", "Publishing directory is required")
        )
    if base and output and base == output:
        issues.append(
            ValidationIssue(
                "publishingDirectory",
                "Publishing directory must be different from base directory",
            )
        )
    return issues


def find_component_cycles(
    projects: typ.Mapping[str, Project | ComponentProject],
) -> list[list[str]]:
    """Return each component cycle as the list of names walked around it."""
    cycles: list[list[str]] = []
    state: dict[str, str] = {}

    def _walk(name: str, trail: list[str]) -> None:
        project = projects.get(name)
        if not isinstance(project, ComponentProject):
            return
        state[name] = "active"
        trail.append(name)
        for member in project.components:
            if state.get(member) == "active":
                cycles.append([*trail[trail.index(member) :], member])
            elif member not in state:
                _walk(member, trail)
        trail.pop()
        state[name] = "done"

    for name in projects:
        if name not in state:
            _walk(name, [])
    return cycles


def validate_config(config: PublishConfig) -> list[ValidationIssue]:
    """Return findings for a whole configuration without raising.

    Covers empty configurations, configurations made only of component
    projects, dangling component references, component cycles, and the
    per-project checks from :func:`validate_project`.
    """
    issues: list[ValidationIssue] = []
    if not config.projects:
        issues.append(ValidationIssue("projects", "At least one project is required"))
        return issues

    if not any(isinstance(p, Project) for p in config.projects.values()):
        issues.append(
            ValidationIssue(
                "projects", "At least one publishable (non-component) project is required"
            )
        )

    for name, project in config.projects.items():
        if isinstance(project, ComponentProject):
            for member in project.components:
                if member not in config.projects:
                    issues.append(
                        ValidationIssue(
                            f"projects.{name}.components",
                            f'Referenced project "{member}" does not exist',
                        )
                    )
            continue
        issues.extend(
            ValidationIssue(f"projects.{name}.{issue.field}", issue.message)
            for issue in validate_project(project)
        )

    for cycle in find_component_cycles(config.projects):
        issues.append(
            ValidationIssue(
                f"projects.{cycle[0]}.components",
                "Component cycle detected: " + " -> ".join(cycle),
            )
        )
    return issues


__all__ = [
    "DEFAULT_PROJECT_SETTINGS",
    "GITHUB_PAGES_PRESET",
    "build_theme_config",
    "find_component_cycles",
    "is_component",
    "merge_with_defaults",
    "project_from_json",
    "project_to_json",
    "theme_to_mapping",
    "validate_config",
    "validate_project",
]
