"""Load, normalise and validate orgbook publishing configuration.

This subpackage reads either a Jupyter-Book style ``_config.yml`` or a
``.org-publish.json`` file from the workspace root, layers every project over
:data:`DEFAULT_PROJECT_SETTINGS`, and produces typed dataclasses
(:class:`PublishConfig`, :class:`Project`, :class:`ComponentProject`) that the
publishing engine consumes. Validation is a separate, non-raising pass that
returns :class:`ValidationIssue` findings.

Examples
--------
>>> from pathlib import Path
>>> from orgbook.config import load_config, validate_config
>>> config = load_config(Path("."))  # doctest: +SKIP
>>> validate_config(config)  # doctest: +SKIP
[]
"""

from .helpers import (
    DEFAULT_PROJECT_SETTINGS,
    GITHUB_PAGES_PRESET,
    build_theme_config,
    find_component_cycles,
    merge_with_defaults,
    validate_config,
    validate_project,
)
from .loader import load_config, save_config, save_config_yaml
from .models import (
    ComponentProject,
    NavLinkConfig,
    Project,
    PublishConfig,
    PublishingFunction,
    SiteConfigError,
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

__all__ = [
    "DEFAULT_PROJECT_SETTINGS",
    "GITHUB_PAGES_PRESET",
    "ComponentProject",
    "NavLinkConfig",
    "Project",
    "PublishConfig",
    "PublishingFunction",
    "SiteConfigError",
    "SitemapSortOrder",
    "SitemapStyle",
    "ThemeAppearanceConfig",
    "ThemeConfig",
    "ThemeFooterConfig",
    "ThemeHeaderConfig",
    "ThemeLayoutConfig",
    "ThemeSearchConfig",
    "ValidationIssue",
    "build_theme_config",
    "find_component_cycles",
    "load_config",
    "merge_with_defaults",
    "save_config",
    "save_config_yaml",
    "validate_config",
    "validate_project",
]
