"""Compile path templates and resolve concrete URLs to the best template.

A template such as ``/pet/{petId}/uploadImage`` is split on ``/`` into
:class:`Segment` descriptors.  A segment is *literal* when it holds no
``{name}`` placeholder and a *parameter* segment otherwise.  Literal text is
regex-escaped, and each placeholder matches one or more characters other
than ``/``.

When several templates match one URL, the most specific wins: each
candidate is scored per segment (1 for literal, 0 for parameter) and the
score vectors are compared left to right.  Candidates with equal vectors
fall back to declaration order.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, TypeVar
from urllib.parse import unquote, urlsplit

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([^{}]*)\}")

T = TypeVar("T")


class SegmentKind(str, enum.Enum):
    LITERAL = "literal"
    PARAMETER = "parameter"


@dataclass(frozen=True)
class Segment:
    """One ``/``-delimited piece of a template.

    Attributes:
        text: The raw segment text (``{petId}``, ``pet``, ``{id}.json``).
        kind: Literal or parameter.
        names: Placeholder names in this segment, in order.
    """

    text: str
    kind: SegmentKind
    names: tuple[str, ...] = ()

    @property
    def score(self) -> int:
        return 1 if self.kind is SegmentKind.LITERAL else 0

    @property
    def shape(self) -> str:
        """The segment with placeholder names erased (``{}``)."""
        return _PLACEHOLDER.sub("{}", self.text)


def normalize_base_path(base_path: Optional[str]) -> str:
    if not base_path:
        return ""
    return base_path.rstrip("/")


def url_path(url: str) -> str:
    """Return the path portion of *url* (query string and fragment removed)."""
    if "://" in url:
        return urlsplit(url).path or "/"
    return url.split("?", 1)[0].split("#", 1)[0]


class PathMatcher:
    """Compiled matcher for one template.

    Args:
        template: The template string, e.g. ``/pet/{petId}``.
        base_path: The document's ``basePath``.
    """

    def __init__(self, template: str, base_path: Optional[str] = None):
        self.template = template
        self.base_path = normalize_base_path(base_path)
        self.segments: tuple[Segment, ...] = tuple(
            _compile_segment(text) for text in template.split("/")[1:]
        )
        self.keys: list[str] = [name for segment in self.segments for name in segment.names]

        body, self._groups = _pattern_body(self.segments)
        self._pattern = re.compile(f"^{body}/?$")
        self.regexp = re.compile(f"^{re.escape(self.base_path)}{body}/?$")

    @property
    def score(self) -> tuple[int, ...]:
        return tuple(segment.score for segment in self.segments)

    @property
    def shape(self) -> tuple[str, ...]:
        """Segment shapes; two templates with the same shape match the same URLs."""
        return tuple(segment.shape for segment in self.segments)

    def strip_base_path(self, path: str) -> Optional[str]:
        if not self.base_path:
            return path
        if path == self.base_path:
            return "/"
        if path.startswith(self.base_path + "/"):
            return path[len(self.base_path):]
        return None

    def match(self, url: str) -> Optional[dict[str, str]]:
        """Match a concrete URL.

        Returns:
            The captured parameter values keyed by name (URL-decoded), or
            ``None`` when the URL does not match.
        """
        path = self.strip_base_path(url_path(url))
        if path is None:
            return None
        found = self._pattern.match(path)
        if found is None:
            return None
        return {name: unquote(found.group(group)) for group, name in self._groups}


def _compile_segment(text: str) -> Segment:
    names = tuple(_PLACEHOLDER.findall(text))
    if names:
        return Segment(text, SegmentKind.PARAMETER, names)
    return Segment(text, SegmentKind.LITERAL)


def _pattern_body(segments: Sequence[Segment]) -> tuple[str, list[tuple[str, str]]]:
    parts: list[str] = []
    groups: list[tuple[str, str]] = []
    for segment in segments:
        piece = ""
        position = 0
        for found in _PLACEHOLDER.finditer(segment.text):
            piece += re.escape(segment.text[position:found.start()])
            group = f"p{len(groups)}"
            groups.append((group, found.group(1)))
            piece += f"(?P<{group}>[^/]+?)"
            position = found.end()
        piece += re.escape(segment.text[position:])
        parts.append("/" + piece)
    return "".join(parts), groups


def select_best(candidates: Sequence[tuple[T, PathMatcher]], url: str) -> Optional[tuple[T, dict[str, str]]]:
    """Pick the most specific candidate matching *url*.

    Args:
        candidates: ``(item, matcher)`` pairs in declaration order.
        url: A concrete URL or path.

    Returns:
        ``(item, captured parameters)`` for the winner, or ``None``.
    """
    matches = []
    for item, matcher in candidates:
        params = matcher.match(url)
        if params is not None:
            matches.append((item, matcher, params))
    if not matches:
        return None
    # max() keeps the first of equal keys, i.e. declaration order
    item, matcher, params = max(matches, key=lambda match: match[1].score)
    if len(matches) > 1:
        logger.debug(
            "URL %s matched %d templates, selected %s", url, len(matches), matcher.template
        )
    return item, params
