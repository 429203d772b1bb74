"""Load Swagger 2.0 documents from a URL, local file, or stdin.

This module handles all I/O for fetching raw documents and converting them
into Python dictionaries.  JSON and YAML are both supported with automatic
format detection.  The reference resolver reuses :func:`fetch_document` to
read the targets of remote ``$ref`` values.

The public functions are:

* :func:`load_document` -- Load and parse a document from any supported source.
* :func:`fetch_document` -- Load a remote ``$ref`` target (URL or file).
* :func:`validate_swagger_version` -- Check and return the ``swagger``
  version string, rejecting OpenAPI 3.x and anything other than ``2.0``.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from specway.exceptions import SpecParseError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0


def is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def load_document(source: str, timeout: float = _DEFAULT_TIMEOUT) -> dict[str, Any]:
    """Load a document from URL, file path, or stdin ('-').

    Args:
        source: A URL (http/https), file path, or '-' for stdin.
        timeout: Seconds to wait for a URL fetch.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SpecParseError: If the source cannot be loaded or parsed.
    """
    if source == "-":
        return _load_from_stdin()
    return fetch_document(source, timeout=timeout)


def fetch_document(location: str, timeout: float = _DEFAULT_TIMEOUT) -> dict[str, Any]:
    """Load a document from a URL or a file path.

    Raises:
        SpecParseError: If the location cannot be read or parsed.
    """
    if is_url(location):
        return _load_from_url(location, timeout=timeout)
    return _load_from_file(location)


def _load_from_stdin() -> dict[str, Any]:
    """Read a document from stdin.

    Raises:
        SpecParseError: If stdin is empty or content cannot be parsed.
    """
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SpecParseError("No input received from stdin")

    return _parse_content(content, hint="stdin")


def _load_from_url(url: str, timeout: float = _DEFAULT_TIMEOUT) -> dict[str, Any]:
    """Fetch a document from a URL.

    The response's content-type is used as a parsing hint.

    Raises:
        SpecParseError: If the URL cannot be fetched or content cannot be parsed.
    """
    logger.debug("Fetching %s", url)
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching document from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch document from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    elif url.lower().endswith((".yaml", ".yml")):
        hint = "yaml"

    return _parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    """Load a document from a local file.

    Supports .json, .yaml and .yml extensions, falling back to content-based
    detection for anything else.

    Raises:
        SpecParseError: If the file cannot be read or content cannot be parsed.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Document not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read document {path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Document is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        SpecParseError: If the content cannot be parsed as either format.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
        else:
            if not isinstance(result, dict):
                raise SpecParseError(
                    f"Document must be a JSON/YAML object (got {type(result).__name__})"
                )
            return result

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        yaml_error = exc
    else:
        if not isinstance(result, dict):
            kind = type(result).__name__ if result is not None else "empty document"
            raise SpecParseError(f"Document must be a JSON/YAML object (got {kind})")
        return result

    msg = "Failed to parse document as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SpecParseError(msg)


def validate_swagger_version(document: dict[str, Any]) -> str:
    """Validate and return the Swagger version string.

    Only Swagger 2.0 is supported.

    Args:
        document: The parsed document.

    Returns:
        The version string, always ``"2.0"``.

    Raises:
        SpecParseError: If the version is missing, unsupported, or the
            document is OpenAPI 3.x.
    """
    if "openapi" in document:
        raise SpecParseError(
            f"OpenAPI {document['openapi']} is not supported. "
            "Only Swagger 2.0 documents are supported."
        )

    version = document.get("swagger")
    if version is None:
        raise SpecParseError("Missing 'swagger' field. Is this a Swagger 2.0 document?")

    version_str = str(version)
    if version_str != "2.0":
        raise SpecParseError(
            f"Unsupported Swagger version: {version_str}. Only 2.0 is supported."
        )
    return version_str
