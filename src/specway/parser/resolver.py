"""Resolve ``$ref`` JSON References in Swagger 2.0 documents.

:func:`resolve` produces the artifacts the document model is built on:

* ``original`` -- a deep copy of the input document.
* ``resolved_local`` -- every *remote* reference (another file or a URL)
  inlined, while *local* references (``#/...``) are kept.  Pointers into
  this tree are stable, which is what the semantic checks report against.
* ``resolved_full`` -- every reference inlined.  A reference that re-enters
  its own expansion is replaced by an empty schema ``{}`` to break the
  cycle.
* ``references`` -- one :class:`~specway.models.ReferenceOutcome` per
  ``$ref`` in the primary document, in document order.

Resolution never raises for a bad reference.  Failures are recorded in the
inventory and the offending ``{"$ref": ...}`` object is left in place.

Example::

    resolved = resolve(load_document("petstore.yaml"), "petstore.yaml")
    resolved.resolved_full["paths"]["/pet"]["post"]["parameters"][0]["schema"]
    # now holds the Pet definition instead of a $ref pointer.
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass
from typing import Any, Iterator, Optional
from urllib.parse import urljoin, urlsplit

from specway.exceptions import ReferenceResolutionError, SpecParseError
from specway.models import ReferenceOutcome, SpecwayConfig
from specway.parser.loader import fetch_document, is_url
from specway.parser.pointer import MISSING, get_at, path_to_ptr, ptr_to_path

logger = logging.getLogger(__name__)

# Upper bound on chained local $ref hops while following a pointer
_MAX_HOPS = 64


@dataclass
class ResolvedDocument:
    """The outputs of :func:`resolve`."""

    original: dict[str, Any]
    resolved_local: dict[str, Any]
    resolved_full: dict[str, Any]
    references: list[ReferenceOutcome]


def resolve(
    document: dict[str, Any],
    base_location: Optional[str] = None,
    config: Optional[SpecwayConfig] = None,
) -> ResolvedDocument:
    """Resolve all references in *document*.

    Args:
        document: The parsed Swagger document.
        base_location: File path or URL the document was loaded from.
            Relative remote references are resolved against it (against
            the working directory when ``None``).
        config: Controls remote fetching; defaults to
            :class:`~specway.models.SpecwayConfig` defaults.

    Returns:
        A :class:`ResolvedDocument`.
    """
    return _Resolver(base_location, config or SpecwayConfig()).run(document)


def iter_references(node: Any, path: Optional[list[str]] = None) -> Iterator[tuple[list[str], dict[str, Any]]]:
    """Yield ``(path, node)`` for every JSON Reference object under *node*.

    The contents of a reference object are not searched further.
    """
    if path is None:
        path = []
    if isinstance(node, dict):
        if isinstance(node.get("$ref"), str):
            yield path, node
            return
        for key, value in node.items():
            yield from iter_references(value, path + [str(key)])
    elif isinstance(node, list):
        for index, item in enumerate(node):
            yield from iter_references(item, path + [str(index)])


class _Resolver:
    """Holds the remote document cache for one :func:`resolve` call."""

    def __init__(self, base_location: Optional[str], config: SpecwayConfig):
        self._base = base_location
        self._config = config
        self._documents: dict[str, Any] = {}
        self._failures: dict[str, str] = {}
        self._circular: set[str] = set()
        self._primary: Any = None

    def run(self, document: dict[str, Any]) -> ResolvedDocument:
        original = copy.deepcopy(document)
        resolved_local = self._inline_remote(original, [])
        self._primary = resolved_local
        resolved_full = self._inline(resolved_local, resolved_local, self._base, [], ())
        references = [
            self._outcome(path, node, resolved_local)
            for path, node in iter_references(original)
        ]
        return ResolvedDocument(
            original=original,
            resolved_local=resolved_local,
            resolved_full=resolved_full,
            references=references,
        )

    # --- Locations ---

    def _split(self, ref: str, doc_location: Optional[str]) -> tuple[Optional[str], str]:
        """Split *ref* into ``(absolute document location or None, fragment)``.

        Raises:
            ReferenceResolutionError: If the reference is syntactically invalid.
        """
        location, _, fragment = ref.partition("#")
        if fragment and not fragment.startswith("/"):
            raise ReferenceResolutionError("ptr must start with a / or #/")
        if not location:
            return None, fragment

        parts = urlsplit(location)
        if parts.scheme in ("http", "https"):
            if not parts.hostname:
                raise ReferenceResolutionError("HTTP URIs must have a host.")
            return location, fragment
        if doc_location is None:
            return os.path.abspath(location), fragment
        if is_url(doc_location):
            return urljoin(doc_location, location), fragment
        return os.path.normpath(os.path.join(os.path.dirname(os.path.abspath(doc_location)), location)), fragment

    def _load(self, location: str) -> Any:
        if location in self._documents:
            return self._documents[location]
        if location in self._failures:
            raise ReferenceResolutionError(self._failures[location])
        if not self._config.allow_remote_refs:
            message = f"Remote references are disabled: {location}"
            self._failures[location] = message
            raise ReferenceResolutionError(message)
        try:
            document = fetch_document(location, timeout=self._config.fetch_timeout)
        except SpecParseError as exc:
            logger.warning("Unable to load remote reference %s: %s", location, exc)
            self._failures[location] = str(exc)
            raise ReferenceResolutionError(str(exc)) from exc
        logger.debug("Loaded remote document %s", location)
        self._documents[location] = document
        return document

    def _lookup(self, document: Any, fragment: str, ref: str) -> tuple[Any, list[str]]:
        """Follow *fragment* inside *document*, hopping through local references.

        Returns:
            The target value and its key path within *document*.

        Raises:
            ReferenceResolutionError: If the pointer leads nowhere.
        """
        path = ptr_to_path(fragment)
        for _ in range(_MAX_HOPS):
            current = document
            resolved_path: list[str] = []
            redirected = False
            for index, token in enumerate(path):
                current = get_at(current, [token])
                if current is MISSING:
                    raise ReferenceResolutionError(
                        f"JSON Pointer points to missing location: {ref}"
                    )
                resolved_path.append(token)
                inner = current.get("$ref") if isinstance(current, dict) else None
                if isinstance(inner, str) and inner.startswith("#") and index < len(path) - 1:
                    try:
                        path = ptr_to_path(inner) + path[index + 1:]
                    except ValueError as exc:
                        raise ReferenceResolutionError(str(exc)) from exc
                    redirected = True
                    break
            if not redirected:
                return current, resolved_path
        raise ReferenceResolutionError(f"JSON Pointer points to missing location: {ref}")

    # --- Inlining ---

    def _inline_remote(self, node: Any, path: list[str]) -> Any:
        """Copy *node*, replacing remote references by their fully resolved targets."""
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str) and not ref.startswith("#"):
                try:
                    location, fragment = self._split(ref, self._base)
                    remote = self._load(location)
                    target, target_path = self._lookup(remote, fragment, ref)
                except ReferenceResolutionError:
                    return copy.deepcopy(node)
                key = f"{location}#{path_to_ptr(target_path)[1:]}"
                return self._inline(target, remote, location, target_path, (key,))
            return {key: self._inline_remote(value, path + [key]) for key, value in node.items()}
        if isinstance(node, list):
            return [self._inline_remote(item, path + [str(i)]) for i, item in enumerate(node)]
        return node

    def _inline(
        self,
        node: Any,
        document: Any,
        location: Optional[str],
        here: list[str],
        stack: tuple[str, ...],
    ) -> Any:
        """Copy *node* with every resolvable reference replaced by its target.

        Args:
            node: The subtree to copy.
            document: The document *node* belongs to (local refs resolve here).
            location: Where *document* was loaded from.
            here: Key path of *node* inside *document*.
            stack: Targets currently being expanded, used to cut cycles.
        """
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str):
                try:
                    target_location, fragment = self._split(ref, location)
                    target_document = document if target_location is None else self._load(target_location)
                    target, target_path = self._lookup(target_document, fragment, ref)
                except ReferenceResolutionError:
                    return copy.deepcopy(node)
                effective_location = location if target_location is None else target_location
                key = f"{effective_location}#{path_to_ptr(target_path)[1:]}"
                if key in stack or (target_location is None and here[: len(target_path)] == target_path):
                    if document is self._primary:
                        self._circular.add(path_to_ptr(here))
                    return {}
                return self._inline(target, target_document, effective_location, target_path, stack + (key,))
            return {
                key: self._inline(value, document, location, here + [key], stack)
                for key, value in node.items()
            }
        if isinstance(node, list):
            return [
                self._inline(item, document, location, here + [str(i)], stack)
                for i, item in enumerate(node)
            ]
        return node

    # --- Inventory ---

    def _outcome(self, path: list[str], node: dict[str, Any], resolved_local: dict[str, Any]) -> ReferenceOutcome:
        ref = node["$ref"]
        pointer = path_to_ptr(path)
        extra = [key for key in node if key != "$ref"]
        outcome = ReferenceOutcome(
            pointer=pointer, path=path, ref=ref, location=ref, type="local", extra=extra
        )
        try:
            location, fragment = self._split(ref, self._base)
        except ReferenceResolutionError as exc:
            outcome.type = "invalid"
            outcome.missing = True
            outcome.error = str(exc)
            return outcome

        try:
            if location is None:
                outcome.location = f"#{fragment}"
                self._lookup(resolved_local, fragment, ref)
            else:
                outcome.type = "remote"
                outcome.location = f"{location}#{fragment}"
                self._lookup(self._load(location), fragment, ref)
        except ReferenceResolutionError as exc:
            outcome.missing = True
            outcome.error = str(exc)
        outcome.circular = pointer in self._circular
        logger.debug("Reference %s at %s -> %s", ref, pointer, "missing" if outcome.missing else "ok")
        return outcome
