"""JSON Pointer helpers (RFC 6901) for document paths.

A *path* is a list of string keys (``["paths", "/pet", "get"]``) and a
*pointer* its URI-fragment form (``#/paths/~1pet/get``).
"""

from __future__ import annotations

from typing import Any, Iterable

MISSING = object()


def escape_token(token: Any) -> str:
    return str(token).replace("~", "~0").replace("/", "~1")


def unescape_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def path_to_ptr(path: Iterable[Any]) -> str:
    """Convert a key path to a ``#``-prefixed JSON pointer."""
    tokens = [escape_token(token) for token in path]
    if not tokens:
        return "#"
    return "#/" + "/".join(tokens)


def ptr_to_path(ptr: str) -> list[str]:
    """Convert a JSON pointer (with or without the leading ``#``) to a key path.

    Raises:
        ValueError: If the pointer is neither empty nor starts with ``/``.
    """
    if ptr.startswith("#"):
        ptr = ptr[1:]
    if ptr == "":
        return []
    if not ptr.startswith("/"):
        raise ValueError("ptr must start with a / or #/")
    return [unescape_token(token) for token in ptr[1:].split("/")]


def get_at(document: Any, path: Iterable[Any], default: Any = MISSING) -> Any:
    """Return the value at *path*, or *default* when any step is missing."""
    current = document
    for token in path:
        token = str(token)
        if isinstance(current, dict) and token in current:
            current = current[token]
        elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
            current = current[int(token)]
        else:
            return default
    return current
