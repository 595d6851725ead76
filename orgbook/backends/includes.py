"""Expand ``#+INCLUDE:`` directives in org text."""

from __future__ import annotations

import dataclasses as dc
import logging
import re
import shlex
from pathlib import Path

from orgbook._constants import INCLUDE_MAX_DEPTH

logger = logging.getLogger(__name__)

INCLUDE_PATTERN = re.compile(
    r'^[ \t]*#\+INCLUDE:[ \t]+"(?P<file>[^"]+)"(?P<rest>.*)$',
    re.IGNORECASE | re.MULTILINE,
)
HEADLINE_PATTERN = re.compile(r"^(\*+)(\s.*)$")


@dc.dataclass(slots=True)
class IncludeDirective:
    """One parsed ``#+INCLUDE:`` line."""

    file: str
    block_type: str | None = None
    language: str | None = None
    line_start: int | None = None
    line_end: int | None = None
    min_level: int | None = None


def has_includes(text: str) -> bool:
    """Return True when ``text`` contains an include directive."""
    return INCLUDE_PATTERN.search(text) is not None


def parse_include(line: str) -> IncludeDirective | None:
    """Parse a single line into an :class:`IncludeDirective`.

    >>> parse_include('#+INCLUDE: "code.py" src python :lines "3-5"')
    IncludeDirective(file='code.py', block_type='src', language='python', line_start=3, line_end=5, min_level=None)
    """
    match = INCLUDE_PATTERN.match(line)
    if match is None:
        return None
    directive = IncludeDirective(file=match.group("file"))
    try:
        tokens = shlex.split(match.group("rest"))
    except ValueError:
        tokens = match.group("rest").split()
    index = 0
    while index < len(tokens):
        token = tokens[index]
        following = tokens[index + 1] if index + 1 < len(tokens) else None
        if token == "src" and following and not following.startswith(":"):
            directive.block_type, directive.language = "src", following
            index += 2
        elif token in ("example", "quote"):
            directive.block_type = token
            index += 1
        elif token == ":lines" and following is not None:
            directive.line_start, directive.line_end = _line_range(following)
            index += 2
        elif token == ":minlevel" and following is not None:
            if following.isdigit() and int(following) > 0:
                directive.min_level = int(following)
            index += 2
        else:
            index += 1
    return directive


def _line_range(text: str) -> tuple[int | None, int | None]:
    start, _, end = text.partition("-")
    return (
        int(start) if start.strip().isdigit() else None,
        int(end) if end.strip().isdigit() else None,
    )


def _apply_min_level(content: str, min_level: int) -> str:
    levels = [
        len(match.group(1))
        for match in map(HEADLINE_PATTERN.match, content.splitlines())
        if match
    ]
    if not levels:
        return content
    shift = min_level - min(levels)
    if shift == 0:
        return content
    lines = []
    for line in content.splitlines():
        match = HEADLINE_PATTERN.match(line)
        if match:
            line = "*" * max(1, len(match.group(1)) + shift) + match.group(2)
        lines.append(line)
    return "\n".join(lines)


def _wrap(content: str, directive: IncludeDirective) -> str:
    match directive.block_type:
        case "src":
            return f"#+BEGIN_SRC {directive.language or ''}\n{content}\n#+END_SRC"
        case "example":
            return f"#+BEGIN_EXAMPLE\n{content}\n#+END_EXAMPLE"
        case "quote":
            return f"#+BEGIN_QUOTE\n{content}\n#+END_QUOTE"
        case _:
            return content


def _include(
    directive: IncludeDirective,
    base_path: Path,
    *,
    recursive: bool,
    max_depth: int,
    depth: int,
) -> str:
    if depth >= max_depth:
        logger.warning("Include depth %d exceeded for %s", max_depth, directive.file)
        return f"[INCLUDE ERROR: Maximum include depth ({max_depth}) exceeded]"
    path = Path(directive.file)
    if not path.is_absolute():
        path = base_path / path
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Cannot include %s: %s", path, exc)
        return f"[INCLUDE ERROR: File not found: {directive.file}]"

    if directive.line_start is not None or directive.line_end is not None:
        lines = content.split("\n")
        start = (directive.line_start or 1) - 1
        content = "\n".join(lines[start : directive.line_end or len(lines)])
    if directive.min_level:
        content = _apply_min_level(content, directive.min_level)
    if recursive and directive.block_type is None:
        content = process_includes(
            content,
            base_path=path.parent,
            recursive=recursive,
            max_depth=max_depth,
            _depth=depth + 1,
        )
    return _wrap(content, directive)


def process_includes(
    text: str,
    *,
    base_path: Path,
    recursive: bool = True,
    max_depth: int = INCLUDE_MAX_DEPTH,
    _depth: int = 0,
) -> str:
    """Replace every include directive in ``text`` with the included content.

    Parameters
    ----------
    text : str
        Org source.
    base_path : Path
        Directory relative include paths are resolved against.
    recursive : bool, optional
        Expand directives found in included files too.
    max_depth : int, optional
        Nesting limit; deeper directives become an inline error marker.

    Returns
    -------
    str
        Expanded text. Missing files and exceeded depth leave an
        ``[INCLUDE ERROR: ...]`` marker in place of the directive.
    """
    result: list[str] = []
    for line in text.split("\n"):
        directive = parse_include(line)
        if directive is None:
            result.append(line)
            continue
        result.append(
            _include(
                directive,
                base_path,
                recursive=recursive,
                max_depth=max_depth,
                depth=_depth,
            )
        )
    return "\n".join(result)


__all__ = ["IncludeDirective", "has_includes", "parse_include", "process_includes"]
