"""Single-column theme used when no other theme is configured."""

from __future__ import annotations

import typing as typ

from markupsafe import Markup

from orgbook._constants import HIGHLIGHT_JS_VERSION

from .base import build_environment, neighbour_links

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .base import PageContext, ProjectContext


class DefaultTheme:
    """Centred content column with inline styles and prev/next links."""

    name = "default"

    def __init__(self) -> None:
        self.env = build_environment()
        self.template = self.env.get_template("default_page.jinja")

    def render_page(
        self, content: str, page: PageContext, project: ProjectContext
    ) -> str:
        """Wrap ``content`` in the default page template."""
        prev_link, next_link = neighbour_links(page, project)
        return self.template.render(
            title=page.title or "Untitled",
            content=Markup(content),
            custom_css=project.config.custom_css,
            prev_link=prev_link,
            next_link=next_link,
            highlight_version=HIGHLIGHT_JS_VERSION,
        )

    def copy_assets(self, output_dir: Path) -> None:
        """Do nothing; the default theme's styles are inline."""


__all__ = ["DefaultTheme"]
