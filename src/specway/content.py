"""Request/response access helpers and the tagged message body.

Callers hand in request- and response-like values of many shapes: plain
dicts or framework objects with attributes, with headers in any mapping
(``httpx.Headers`` included).  The helpers here read them uniformly so the
rest of the package never needs to care which one it got.

A message body is wrapped once in a :class:`Body`.  Its :class:`BodyKind`
tag decides how the body is decoded for validation, so downstream code
never re-inspects Python types.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from specway.exceptions import BodyDecodeError

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_YAML_MEDIA_TYPES = frozenset(
    {"application/x-yaml", "application/yaml", "text/yaml", "text/x-yaml"}
)


# --- Media types ---


def media_type(content_type: Optional[str]) -> str:
    """Strip MIME parameters (``; charset=...``) from a content-type value."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip()


def is_json_media_type(content_type: Optional[str]) -> bool:
    stripped = media_type(content_type).lower()
    return stripped == "application/json" or stripped.endswith("+json")


def is_yaml_media_type(content_type: Optional[str]) -> bool:
    stripped = media_type(content_type).lower()
    return stripped in _YAML_MEDIA_TYPES or stripped.endswith("+yaml")


# --- Request/response access ---


def get_field(message: Any, *names: str, default: Any = None) -> Any:
    """Return the first of *names* present on *message* (key or attribute)."""
    for name in names:
        if isinstance(message, Mapping):
            if name in message:
                return message[name]
        elif hasattr(message, name):
            return getattr(message, name)
    return default


def get_header(headers: Any, name: str) -> Any:
    """Case-insensitive header lookup; ``None`` when absent."""
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if str(key).lower() == wanted:
            return value
    return None


def get_content_type(message: Any) -> Optional[str]:
    return get_header(get_field(message, "headers"), "content-type")


def get_status_code(message: Any) -> Any:
    return get_field(message, "status_code", "statusCode", "status")


# --- Bodies ---


class BodyKind(str, enum.Enum):
    """How a message body arrived."""

    MISSING = "missing"
    TEXT = "text"
    BYTES = "bytes"
    PARSED = "parsed"


@dataclass(frozen=True)
class Body:
    """A message body tagged with its :class:`BodyKind`.

    Attributes:
        kind: The tag.
        raw: The body exactly as the caller supplied it.
    """

    kind: BodyKind
    raw: Any = None

    @classmethod
    def of(cls, value: Any) -> Body:
        if value is None:
            return cls(BodyKind.MISSING)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls(BodyKind.BYTES, value)
        if isinstance(value, str):
            return cls(BodyKind.TEXT, value)
        return cls(BodyKind.PARSED, value)

    @classmethod
    def from_message(cls, message: Any) -> Body:
        return cls.of(get_field(message, "body"))

    @property
    def is_empty(self) -> bool:
        return self.kind is BodyKind.MISSING or (
            self.kind in (BodyKind.TEXT, BodyKind.BYTES) and len(self.raw) == 0
        )

    def decode(self, content_type: Optional[str], encoding: Optional[str] = None) -> Any:
        """Return the value to validate.

        Bytes are decoded with *encoding* (UTF-8 by default).  Text is parsed
        as JSON only for JSON media types, and kept as text when it is not
        valid JSON.

        Raises:
            BodyDecodeError: If *encoding* is unknown or the bytes are not
                valid in it.
        """
        if self.kind is BodyKind.MISSING:
            return None
        if self.kind is BodyKind.PARSED:
            return self.raw
        if self.kind is BodyKind.BYTES:
            try:
                text = bytes(self.raw).decode(encoding or "utf-8")
            except (LookupError, UnicodeDecodeError) as exc:
                raise BodyDecodeError(f"Unable to decode body: {exc}") from exc
        else:
            text = self.raw
        if is_json_media_type(content_type):
            try:
                return json.loads(text)
            except ValueError:
                return text
        return text
