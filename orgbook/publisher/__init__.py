"""Publish individual source files: gate, dispatch, convert and write.

Exports
-------
- :class:`FilePublisher`: per-project file publisher with org, Markdown,
  notebook and copy branches.
- :func:`is_up_to_date` and :func:`compute_output_path`: the incremental
  build gate and output path mapping.
- Result types :class:`PublishFileResult` and :class:`PublishProjectResult`.
"""

from __future__ import annotations

from .dispatch import Converter, FilePublisher, RenderedPage, resolve_converter
from .gate import compute_copy_path, compute_output_path, is_up_to_date
from .models import (
    ProgressCallback,
    PublishError,
    PublishFileResult,
    PublishOptions,
    PublishProjectResult,
)

__all__ = [
    "Converter",
    "FilePublisher",
    "ProgressCallback",
    "PublishError",
    "PublishFileResult",
    "PublishOptions",
    "PublishProjectResult",
    "RenderedPage",
    "compute_copy_path",
    "compute_output_path",
    "is_up_to_date",
    "resolve_converter",
]
