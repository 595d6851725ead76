r"""Read the small YAML subset used by ``_config.yml`` and ``_toc.yml``.

Jupyter-Book configuration files only need block mappings, nested mappings,
and sequences of scalars or mappings. This reader scans the text line by line
and keeps an explicit stack of open containers keyed by indentation, so it
does not need a grammar or a general YAML dependency.

Supported
---------
- ``key: value`` pairs and ``key:`` openers for nested blocks
- block sequences, indented under their key or flush with it
- ``- key: value`` items whose following, further-indented keys belong to the
  most recently opened item
- plain, single-quoted and double-quoted scalars, ``true``/``false``,
  ``null``/``~``, integers, floats, and flow lists of scalars (``[a, b]``)
- ``#`` comments outside quotes

Example
-------
>>> parse_simple_yaml("root: intro\nchapters:\n  - file: one\n    title: One\n")
{'root': 'intro', 'chapters': [{'file': 'one', 'title': 'One'}]}
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

KEY_VALUE_PATTERN = re.compile(
    r"""^(?P<key>"[^"]*"|'[^']*'|[^:#'"][^:#]*?)\s*:(?:\s+(?P<value>.*))?$"""
)
INT_PATTERN = re.compile(r"^[-+]?\d+$")
FLOAT_PATTERN = re.compile(r"^[-+]?(\d+\.\d*|\.\d+)([eE][-+]?\d+)?$")


class YamlSyntaxError(ValueError):
    """Raised when a line cannot be read as part of the supported subset."""

    def __init__(self, message: str, line_number: int) -> None:
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number


@dc.dataclass(slots=True)
class _Frame:
    """An open container and the column its entries start at."""

    indent: int
    container: dict[str, typ.Any] | list[typ.Any]


@dc.dataclass(slots=True)
class _PendingKey:
    """A ``key:`` with no inline value, waiting to learn its block type."""

    owner: dict[str, typ.Any]
    key: str
    indent: int


def parse_simple_yaml(text: str) -> dict[str, typ.Any]:
    """Parse ``text`` into nested dicts and lists.

    Parameters
    ----------
    text : str
        Document using the subset described in the module docstring.

    Returns
    -------
    dict[str, Any]
        The top-level mapping; an empty document yields ``{}``.

    Raises
    ------
    YamlSyntaxError
        If a line is neither a mapping entry nor a sequence item, or a
        sequence item appears where a mapping is open.
    """
    root: dict[str, typ.Any] = {}
    stack: list[_Frame] = [_Frame(-1, root)]
    pending: _PendingKey | None = None

    for line_number, raw in enumerate(text.splitlines(), start=1):
        stripped = _strip_comment(raw).rstrip()
        if not stripped.strip() or stripped.strip() in ("---", "..."):
            continue
        indent = len(stripped) - len(stripped.lstrip(" "))
        content = stripped.strip()
        is_item = content == "-" or content.startswith("- ")

        if pending is not None:
            opens_block = indent > pending.indent or (
                indent == pending.indent and is_item
            )
            if opens_block:
                block: dict[str, typ.Any] | list[typ.Any] = [] if is_item else {}
                pending.owner[pending.key] = block
                stack.append(_Frame(indent, block))
            pending = None

        while len(stack) > 1 and (
            stack[-1].indent > indent
            or (
                stack[-1].indent == indent
                and isinstance(stack[-1].container, list)
                and not is_item
            )
        ):
            stack.pop()

        frame = stack[-1]
        if is_item:
            pending = _add_item(stack, frame, indent, content, line_number)
        else:
            if not isinstance(frame.container, dict):
                msg = f"expected a sequence item, got {content!r}"
                raise YamlSyntaxError(msg, line_number)
            pending = _assign(frame.container, content, indent, line_number)
    return root


def _add_item(
    stack: list[_Frame],
    frame: _Frame,
    indent: int,
    content: str,
    line_number: int,
) -> _PendingKey | None:
    """Append a ``- ...`` item to the open sequence."""
    if not isinstance(frame.container, list):
        msg = f"sequence item {content!r} inside a mapping"
        raise YamlSyntaxError(msg, line_number)
    rest = content[1:].strip()
    if not rest:
        item: dict[str, typ.Any] = {}
        frame.container.append(item)
        stack.append(_Frame(indent + 2, item))
        return None
    if KEY_VALUE_PATTERN.match(rest) and not _is_flow(rest):
        item = {}
        frame.container.append(item)
        item_indent = indent + (len(content) - len(rest))
        stack.append(_Frame(item_indent, item))
        return _assign(item, rest, item_indent, line_number)
    frame.container.append(parse_scalar(rest))
    return None


def _assign(
    owner: dict[str, typ.Any], content: str, indent: int, line_number: int
) -> _PendingKey | None:
    """Store a ``key: value`` pair, or open a pending block for ``key:``."""
    match = KEY_VALUE_PATTERN.match(content)
    if match is None:
        msg = f"expected 'key: value', got {content!r}"
        raise YamlSyntaxError(msg, line_number)
    key = _unquote(match.group("key").strip())
    value = match.group("value")
    if value is None or not value.strip():
        owner[key] = None
        return _PendingKey(owner, key, indent)
    owner[key] = parse_scalar(value)
    return None


def _is_flow(text: str) -> bool:
    return text.startswith(("[", "{"))


def parse_scalar(text: str) -> typ.Any:
    """Convert a scalar token into ``str``, ``bool``, ``int``, ``float`` or None.

    >>> parse_scalar("true"), parse_scalar("3"), parse_scalar("'a: b'")
    (True, 3, 'a: b')
    >>> parse_scalar("[one, 'two']")
    ['one', 'two']
    """
    value = text.strip()
    if not value or value in ("~", "null", "Null", "NULL"):
        return None
    if value[0] in "\"'" and value[-1] == value[0] and len(value) >= 2:
        return _unquote(value)
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1].strip()
        if not inner:
            return []
        return [parse_scalar(part) for part in _split_flow(inner)]
    if value == "{}":
        return {}
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if INT_PATTERN.match(value):
        return int(value)
    if FLOAT_PATTERN.match(value):
        return float(value)
    return value


def _split_flow(inner: str) -> list[str]:
    """Split a flow sequence body on commas that sit outside quotes."""
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for char in inner:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
            current.append(char)
        elif char == ",":
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [part for part in parts if part.strip()]


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] == '"':
        return (
            token[1:-1]
            .replace('\\"', '"')
            .replace("\\n", "\n")
            .replace("\\t", "\t")
            .replace("\\\\", "\\")
        )
    if len(token) >= 2 and token[0] == token[-1] == "'":
        return token[1:-1].replace("''", "'")
    return token


def _strip_comment(line: str) -> str:
    """Drop a trailing ``# comment`` that is not inside quotes."""
    quote: str | None = None
    for index, char in enumerate(line):
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == "#" and (index == 0 or line[index - 1] in " \t"):
            return line[:index]
    return line


__all__ = ["YamlSyntaxError", "parse_scalar", "parse_simple_yaml"]
