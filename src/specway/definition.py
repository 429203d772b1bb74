"""The document root and document construction.

:func:`create` turns a Swagger 2.0 document (a mapping, a file path, a URL
or ``-`` for stdin) into an :class:`ApiDefinition`.  Construction either
succeeds with a complete object graph or raises
:class:`~specway.exceptions.SpecParseError`; there is no partial state.

Example::

    api = create("petstore.yaml")
    operation = api.get_operation({"method": "GET", "url": "/v2/pet/1"})
    result = operation.validate_request({"url": "/v2/pet/1"})
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, Optional, Union

from specway.config import resolve_config
from specway.content import get_field
from specway.exceptions import InvalidArgumentError, SpecParseError
from specway.matcher import select_best
from specway.models import Issue, SpecwayConfig, ValidationResult
from specway.operation import Operation
from specway.parser.loader import load_document, validate_swagger_version
from specway.parser.resolver import ResolvedDocument, resolve
from specway.path import Path
from specway.schema.sample import FormatGenerator
from specway.schema.validator import FormatPredicate, validate_document
from specway.semantic import validate_semantics

logger = logging.getLogger(__name__)

CustomValidator = Callable[["ApiDefinition"], Any]


def _check_name(name: Any) -> None:
    if name is None:
        raise InvalidArgumentError("name is required")
    if not isinstance(name, str):
        raise InvalidArgumentError("name must be a string")


def _check_callable(value: Any, label: str) -> None:
    if value is None:
        raise InvalidArgumentError(f"{label} is required")
    if not callable(value):
        raise InvalidArgumentError(f"{label} must be callable")


def _as_issues(values: Any) -> list[Issue]:
    return [value if isinstance(value, Issue) else Issue.model_validate(value) for value in values or []]


class ApiDefinition:
    """A resolved Swagger 2.0 document and its object graph.

    The path graph is built once; afterwards only the three registries
    (:attr:`custom_validators`, :attr:`custom_formats` and
    :attr:`custom_format_generators`) change.  The registries are plain
    instance attributes and are not safe to mutate while another thread is
    validating with the same definition.

    Args:
        resolved: Output of :func:`specway.parser.resolver.resolve`.
        config: Effective configuration.
    """

    def __init__(self, resolved: ResolvedDocument, config: Optional[SpecwayConfig] = None):
        self.config = config or SpecwayConfig()
        self.original = resolved.original
        self.resolved_local = resolved.resolved_local
        self.resolved_full = resolved.resolved_full
        self.references = resolved.references

        self.base_path: str = self.resolved_full.get("basePath") or ""
        self.info: dict[str, Any] = self.resolved_full.get("info") or {}

        self.custom_validators: list[CustomValidator] = []
        self.custom_formats: dict[str, FormatPredicate] = {}
        self.custom_format_generators: dict[str, FormatGenerator] = {}

        paths = self.resolved_full.get("paths")
        self.paths: dict[str, Path] = {}
        if isinstance(paths, dict):
            for template, item in paths.items():
                self.paths[template] = Path(self, template, item)

        logger.info(
            "Loaded API definition %r with %d paths and %d operations",
            self.info.get("title", ""),
            len(self.paths),
            len(self.get_operations()),
        )

    def __repr__(self) -> str:
        return f"ApiDefinition(title={self.info.get('title')!r}, paths={len(self.paths)})"

    # --- Lookups ---

    def get_paths(self) -> list[Path]:
        return list(self.paths.values())

    def get_path(self, template_or_request: Any) -> Optional[Path]:
        """Return a path by exact template, or the best match for a request.

        Args:
            template_or_request: A template such as ``/pet/{petId}``, or a
                request-like value with ``url``/``original_url``.
        """
        if isinstance(template_or_request, str):
            return self.paths.get(template_or_request)
        url = get_field(template_or_request, "original_url", "originalUrl", "url")
        if not isinstance(url, str):
            return None
        best = select_best([(path, path.matcher) for path in self.paths.values()], url)
        return best[0] if best is not None else None

    def get_operations(self, path: Optional[str] = None) -> list[Operation]:
        """Return all operations, or those of the path with template *path*."""
        if path is not None:
            found = self.paths.get(path)
            return found.get_operations() if found is not None else []
        return [operation for item in self.paths.values() for operation in item.operations]

    def get_operation(self, path_or_request: Any, method: Optional[str] = None) -> Optional[Operation]:
        """Find one operation.

        Accepts ``(template, method)``, an ``operationId`` alone, or a
        request-like value exposing ``method`` and ``url``/``original_url``.
        Returns ``None`` when nothing matches.
        """
        if isinstance(path_or_request, str):
            if method is None:
                for operation in self.get_operations():
                    if operation.operation_id == path_or_request:
                        return operation
                return None
            path = self.paths.get(path_or_request)
        else:
            method = method or get_field(path_or_request, "method")
            path = self.get_path(path_or_request)
        if path is None or not isinstance(method, str):
            return None
        return path.get_operation(method)

    def get_operations_by_tag(self, tag: str) -> list[Operation]:
        return [operation for operation in self.get_operations() if tag in operation.tags]

    # --- Registries ---

    def register_format(self, name: Any = None, validator: Any = None) -> None:
        """Register a format predicate used when validating values.

        Raises:
            InvalidArgumentError: If *name* is missing or not a string, or
                *validator* is missing or not callable.
        """
        _check_name(name)
        _check_callable(validator, "validator")
        self.custom_formats[name] = validator

    def unregister_format(self, name: str) -> None:
        self.custom_formats.pop(name, None)

    def register_format_generator(self, name: Any = None, format_generator: Any = None) -> None:
        """Register a sample generator for a string format.

        Raises:
            InvalidArgumentError: If *name* is missing or not a string, or
                *format_generator* is missing or not callable.
        """
        _check_name(name)
        _check_callable(format_generator, "format_generator")
        self.custom_format_generators[name] = format_generator

    def unregister_format_generator(self, name: str) -> None:
        self.custom_format_generators.pop(name, None)

    def register_validator(self, validator: Any = None) -> None:
        """Register a document validator run at the end of :meth:`validate`.

        The validator receives this definition and returns a
        :class:`~specway.models.ValidationResult` or a mapping with
        ``errors`` and ``warnings`` lists.
        """
        _check_callable(validator, "validator")
        self.custom_validators.append(validator)

    def unregister_validator(self, validator: Any) -> None:
        if validator in self.custom_validators:
            self.custom_validators.remove(validator)

    # --- Validation ---

    def validate(self) -> ValidationResult:
        """Validate the document.

        Structural errors against the Swagger 2.0 JSON Schema are returned
        alone.  Otherwise the semantic checks run, followed by every
        registered validator in registration order.
        """
        structural = validate_document(self.resolved_full)
        if structural:
            logger.debug("Document failed structural validation with %d errors", len(structural))
            return ValidationResult(errors=structural)

        result = validate_semantics(self)
        for validator in self.custom_validators:
            outcome = validator(self)
            if isinstance(outcome, ValidationResult):
                result.extend(outcome)
            elif outcome is not None:
                result.errors.extend(_as_issues(get_field(outcome, "errors")))
                result.warnings.extend(_as_issues(get_field(outcome, "warnings")))
        return result


def create(
    definition: Union[Mapping[str, Any], str],
    base_location: Optional[str] = None,
    config: Optional[SpecwayConfig] = None,
    **overrides: Any,
) -> ApiDefinition:
    """Build an :class:`ApiDefinition`.

    Args:
        definition: A parsed document, or a file path, URL or ``-``.
        base_location: Where relative remote references resolve from.
            Defaults to *definition* when that is a path or URL.
        config: A ready configuration; when omitted it is resolved from
            *overrides*, the environment and ``./specway.json``.
        **overrides: :class:`~specway.models.SpecwayConfig` field values.

    Raises:
        SpecParseError: If the document cannot be loaded, is an OpenAPI 3
            document, or cannot be modelled.
        ConfigError: If the configuration is invalid.
    """
    config = config or resolve_config(**overrides)
    if isinstance(definition, str):
        if base_location is None and definition != "-":
            base_location = definition
        definition = load_document(definition, timeout=config.fetch_timeout)
    if not isinstance(definition, Mapping):
        raise SpecParseError("API definition must be an object")
    if "openapi" in definition:
        validate_swagger_version(dict(definition))

    try:
        return ApiDefinition(resolve(dict(definition), base_location, config), config)
    except (AttributeError, TypeError, KeyError, ValueError, RecursionError) as exc:
        raise SpecParseError(f"Unable to build API definition: {exc}") from exc


async def create_async(
    definition: Union[Mapping[str, Any], str],
    base_location: Optional[str] = None,
    config: Optional[SpecwayConfig] = None,
    **overrides: Any,
) -> ApiDefinition:
    """Awaitable :func:`create`; loading and resolution run in a worker thread."""
    return await asyncio.to_thread(create, definition, base_location, config, **overrides)
