"""Typed dataclasses describing orgbook publishing configuration."""

from __future__ import annotations

import dataclasses as dc
import enum


class SiteConfigError(ValueError):
    """Raised when the publishing configuration is invalid or incomplete."""


class PublishingFunction(enum.StrEnum):
    """How the files of a project are turned into output."""

    ORG_HTML = "org-html-publish-to-html"
    MD_HTML = "md-html-publish-to-html"
    IPYNB_HTML = "ipynb-html-publish-to-html"
    AUTO = "auto"
    COPY = "copy"

    @classmethod
    def parse(cls, value: object) -> PublishingFunction:
        """Map a configured publishing function name onto a member.

        ``md-html-*`` and ``ipynb-html-*`` spellings select the matching
        converter; anything unrecognised falls back to :attr:`AUTO`.

        Examples
        --------
        >>> PublishingFunction.parse("copy")
        <PublishingFunction.COPY: 'copy'>
        >>> PublishingFunction.parse("md-html-publish-to-html-with-toc")
        <PublishingFunction.MD_HTML: 'md-html-publish-to-html'>
        >>> PublishingFunction.parse("something-else")
        <PublishingFunction.AUTO: 'auto'>
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        try:
            return cls(text)
        except ValueError:
            pass
        if text.startswith("md-html-"):
            return cls.MD_HTML
        if text.startswith("ipynb-html-"):
            return cls.IPYNB_HTML
        return cls.AUTO


class SitemapStyle(enum.StrEnum):
    """Layout of an auto-generated sitemap."""

    LIST = "list"
    TREE = "tree"


class SitemapSortOrder(enum.StrEnum):
    """Ordering of entries in an auto-generated sitemap."""

    ALPHABETICALLY = "alphabetically"
    CHRONOLOGICALLY = "chronologically"
    ANTI_CHRONOLOGICALLY = "anti-chronologically"


@dc.dataclass(slots=True)
class NavLinkConfig:
    """Link rendered in a theme header or footer."""

    text: str
    url: str


@dc.dataclass(slots=True)
class ThemeLayoutConfig:
    """Sidebar switches for multi-column themes."""

    show_left_sidebar: bool = True
    show_right_sidebar: bool = True
    toc_depth: int = 3


@dc.dataclass(slots=True)
class ThemeHeaderConfig:
    """Site header content."""

    logo: str | None = None
    title: str | None = None
    navbar_links: list[NavLinkConfig] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class ThemeFooterConfig:
    """Site footer content."""

    copyright: str | None = None
    links: list[NavLinkConfig] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class ThemeAppearanceConfig:
    """Colour and colour-mode settings."""

    primary_color: str | None = None
    enable_dark_mode: bool = True
    default_mode: str = "auto"


@dc.dataclass(slots=True)
class ThemeSearchConfig:
    """Client-side search switch."""

    enabled: bool = True


@dc.dataclass(slots=True)
class ThemeConfig:
    """Visual theming applied to published pages."""

    name: str = "default"
    layout: ThemeLayoutConfig = dc.field(default_factory=ThemeLayoutConfig)
    header: ThemeHeaderConfig = dc.field(default_factory=ThemeHeaderConfig)
    footer: ThemeFooterConfig = dc.field(default_factory=ThemeFooterConfig)
    appearance: ThemeAppearanceConfig = dc.field(
        default_factory=ThemeAppearanceConfig
    )
    search: ThemeSearchConfig = dc.field(default_factory=ThemeSearchConfig)
    custom_css: str | None = None


@dc.dataclass(slots=True)
class Project:
    """A single source directory published into an output directory.

    Attributes
    ----------
    name : str
        Identifier used by the orchestrator and the CLI.
    base_directory : str
        Source directory, relative to the workspace root.
    publishing_directory : str
        Output directory, relative to the workspace root. Must differ from
        ``base_directory``.
    base_extension : str
        Extension (or ``|``-separated alternation) collected by directory scans.
    with_toc : bool | int
        Whether the exporter emits an in-document table of contents; an
        integer limits its depth.
    """

    name: str
    base_directory: str
    publishing_directory: str
    base_extension: str = "org"
    recursive: bool = True
    exclude: str | None = None
    include: list[str] = dc.field(default_factory=list)
    publishing_function: PublishingFunction = PublishingFunction.ORG_HTML
    auto_sitemap: bool = True
    sitemap_filename: str = "sitemap.org"
    sitemap_title: str = "Site Map"
    sitemap_style: SitemapStyle = SitemapStyle.LIST
    sitemap_sort_files: SitemapSortOrder = SitemapSortOrder.ALPHABETICALLY
    sitemap_sort_folders: str = "first"
    html_preamble: str | None = None
    html_postamble: str | None = None
    html_head: str | None = None
    html_head_extra: str | None = None
    css_files: list[str] = dc.field(default_factory=list)
    js_files: list[str] = dc.field(default_factory=list)
    use_default_theme: bool = True
    with_author: bool = True
    with_creator: bool = True
    with_toc: bool | int = True
    section_numbers: bool = False
    default_title: str | None = None
    pygments_style: str | None = None


@dc.dataclass(slots=True)
class ComponentProject:
    """A named alias expanding to other projects; never published itself."""

    name: str
    components: list[str] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class PublishConfig:
    """Collection of projects alongside workspace-wide publishing switches."""

    projects: dict[str, Project | ComponentProject]
    github_pages: bool = False
    custom_domain: str | None = None
    default_project: str | None = None
    theme: ThemeConfig | None = None
    title: str | None = None
    author: str | None = None

    def get_project(self, name: str | None) -> Project | ComponentProject:
        """Return the named project or fall back to the default project."""
        if name is None:
            return self._get_default_project()
        try:
            return self.projects[name]
        except KeyError as exc:
            available = ", ".join(sorted(self.projects))
            msg = f"Unknown project '{name}'. Known projects: {available}"
            raise KeyError(msg) from exc

    def _get_default_project(self) -> Project | ComponentProject:
        if self.default_project and self.default_project in self.projects:
            return self.projects[self.default_project]
        if not self.projects:
            msg = "No projects configured."
            raise SiteConfigError(msg)
        return next(iter(self.projects.values()))


@dc.dataclass(slots=True, frozen=True)
class ValidationIssue:
    """A single configuration finding; callers decide whether it is fatal."""

    field: str
    message: str


__all__ = [
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
]
