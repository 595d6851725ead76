"""Publish org-mode, Markdown and Jupyter notebook sources as a static site.

This package exposes the CLI entry points behind the ``orgbook`` console
script along with the publishing engine it drives.

Exports
-------
- ``app``: Cyclopts application with the ``publish``, ``init`` and ``list``
  commands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from orgbook import main
>>> main()  # doctest: +SKIP
>>> from orgbook import app
>>> app(["list"])  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
