"""
JSON-Pointer style paths used by claims.

Paths are `/`-separated segments with RFC 6901 escaping (`~1` for `/`,
`~0` for `~`). The empty path and `"/"` both address the document root.
A final `-` segment is the array-append sentinel: the write lands at the
next free index of the array at the parent path.
"""

import re
from typing import Any, Iterator, NamedTuple, Sequence

APPEND_TOKEN = "-"
APPEND_SUFFIX = "/" + APPEND_TOKEN
ROOT_PATHS = ("", "/")

_INDEX_RE = re.compile(r"^(0|[1-9][0-9]*)$")


class PointerError(ValueError):
    """Raised when a path cannot be parsed or applied"""


class MalformedPathError(PointerError):
    """The path string itself is not usable"""


class ContainerMismatchError(PointerError):
    """The path walks through a value of the wrong container kind"""


class Lookup(NamedTuple):
    """Explicit result of a path lookup: whether something was found and what"""

    found: bool
    value: Any = None


MISSING = Lookup(False)


def unescape(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def escape(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")


def is_root(path: str) -> bool:
    return path in ROOT_PATHS


def segments(path: str) -> list[str]:
    """
    Split a path into unescaped segments.

    The root paths `""` and `"/"` yield an empty list rather than `[""]`.

    Raises:
        MalformedPathError: if the path is not a string or lacks the leading `/`
    """
    if not isinstance(path, str):
        raise MalformedPathError(f"Path must be a string, got {type(path).__name__}")
    if is_root(path):
        return []
    if not path.startswith("/"):
        raise MalformedPathError(f"Path must start with '/': {path!r}")
    return [unescape(part) for part in path[1:].split("/")]


def join(base: str, relative: Sequence[str]) -> str:
    """Append raw segments to a path, special-casing the root path"""
    if not relative:
        return base
    suffix = "/".join(escape(str(part)) for part in relative)
    if is_root(base):
        return "/" + suffix
    return base + "/" + suffix


def is_index(segment: str) -> bool:
    """True for canonical array indices (`0`, `1`, `12`, never `01`)"""
    return bool(_INDEX_RE.match(segment))


def is_append_path(path: str) -> bool:
    return isinstance(path, str) and path.endswith(APPEND_SUFFIX)


def parent_of_append(path: str) -> str:
    """The array path an append path targets (`/a/b/-` -> `/a/b`)"""
    return path[: -len(APPEND_SUFFIX)]


def rewrite_append_path(path: str, index: int) -> str:
    """Replace the trailing append sentinel with a concrete index"""
    if not is_append_path(path):
        raise MalformedPathError(f"Not an append path: {path!r}")
    return f"{parent_of_append(path)}/{index}"


def lookup(document: Any, path: str) -> Lookup:
    """
    Look a path up in a document without raising for absent values.

    Returns MISSING when any segment is absent or walks into a scalar.
    Malformed paths still raise MalformedPathError.
    """
    current = document
    for segment in segments(path):
        if isinstance(current, dict):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, list):
            if not is_index(segment) or int(segment) >= len(current):
                return MISSING
            current = current[int(segment)]
        else:
            return MISSING
    return Lookup(True, current)


def resolve_append_index(document: Any, parent_path: str) -> int:
    """
    Next free index of the array at `parent_path`.

    An absent array counts as length 0.

    Raises:
        ContainerMismatchError: if a non-array value already sits there
    """
    found = lookup(document, parent_path)
    if not found.found:
        return 0
    if not isinstance(found.value, list):
        raise ContainerMismatchError(
            f"Cannot append to {parent_path or '/'}: existing value is "
            f"{type(found.value).__name__}, not an array"
        )
    return len(found.value)


def validate_write_segments(parts: Sequence[str], path: str) -> None:
    """
    Reject segment lists that can never be written.

    A write needs at least one segment, and the append sentinel is only
    meaningful once it has been rewritten to a concrete index.
    """
    if not parts:
        raise MalformedPathError("Path addresses the document root; a segment is required")
    if APPEND_TOKEN in parts:
        raise MalformedPathError(f"Append sentinel '-' is only allowed as the final segment: {path!r}")


def iter_leaves(value: Any, prefix: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], Any]]:
    """
    Yield (relative segments, leaf value) for every leaf under `value`.

    Scalars, None and empty containers are leaves. A scalar at the top
    level yields a single leaf with an empty segment tuple.
    """
    if isinstance(value, dict) and value:
        for key, child in value.items():
            yield from iter_leaves(child, prefix + (str(key),))
    elif isinstance(value, list) and value:
        for index, child in enumerate(value):
            yield from iter_leaves(child, prefix + (str(index),))
    else:
        yield prefix, value
