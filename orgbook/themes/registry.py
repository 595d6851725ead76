"""Look up themes by name from an explicitly constructed registry."""

from __future__ import annotations

import logging
import typing as typ

from .book import BookTheme
from .default import DefaultTheme

if typ.TYPE_CHECKING:
    from orgbook.config.models import ThemeConfig

    from .base import Theme

logger = logging.getLogger(__name__)

ThemeFactory = typ.Callable[[], "Theme"]
DEFAULT_THEME_NAME = "default"


class ThemeRegistry:
    """Map theme names to factories.

    Lookups that miss fall back to the theme registered as ``default``.

    Example
    -------
    >>> registry = default_registry()
    >>> registry.names()
    ['book', 'default']
    >>> registry.get("missing").name
    'default'
    """

    def __init__(
        self, factories: typ.Mapping[str, ThemeFactory] | None = None
    ) -> None:
        self._factories: dict[str, ThemeFactory] = dict(factories or {})

    def register(self, name: str, factory: ThemeFactory) -> None:
        """Register ``factory`` under ``name``, replacing any earlier entry."""
        self._factories[name] = factory

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def names(self) -> list[str]:
        """Return the registered theme names, sorted."""
        return sorted(self._factories)

    def get(self, name: str | None) -> Theme:
        """Build the theme called ``name``, falling back to the default theme.

        Raises
        ------
        KeyError
            If neither ``name`` nor ``default`` is registered.
        """
        factory = self._factories.get(name or DEFAULT_THEME_NAME)
        if factory is None:
            logger.warning("Unknown theme %r; using the default theme", name)
            factory = self._factories.get(DEFAULT_THEME_NAME)
        if factory is None:
            msg = f"No theme named {name!r} and no default theme registered"
            raise KeyError(msg)
        return factory()

    def for_config(self, config: ThemeConfig | None) -> Theme:
        """Return the theme a configuration names."""
        return self.get(config.name if config else None)


def default_registry() -> ThemeRegistry:
    """Return a registry holding the bundled ``default`` and ``book`` themes."""
    return ThemeRegistry({DEFAULT_THEME_NAME: DefaultTheme, "book": BookTheme})


__all__ = ["DEFAULT_THEME_NAME", "ThemeFactory", "ThemeRegistry", "default_registry"]
