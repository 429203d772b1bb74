"""Parameters and the value extraction pipeline.

:meth:`Parameter.get_value` runs three steps against a request-like value:

1. **Extraction** by location (``path``, ``query``, ``header``,
   ``formData`` or ``body``).
2. **Coercion** of raw text to the declared type.  Coercion is lenient: a
   value that cannot be converted is kept as-is and rejected by step 3.
3. **Validation** against the parameter's schema view, wrapping all
   failures in one ``SCHEMA_VALIDATION_FAILED`` issue.

A byte body that cannot be decoded is reported as ``INVALID_BODY_ENCODING``.

Problems are returned on the :class:`~specway.models.ParameterValue`,
never raised.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import parse_qs, urlsplit

from specway.content import Body, get_content_type, get_field, get_header
from specway.exceptions import BodyDecodeError
from specway.models import Issue, ParameterLocation, ParameterValue
from specway.parser.pointer import path_to_ptr
from specway.schema.sample import generate
from specway.schema.validator import validate_value

if TYPE_CHECKING:
    from specway.definition import ApiDefinition
    from specway.path import Path

# Keys copied from a non-body parameter into its schema view
_SCHEMA_KEYS = (
    "type",
    "format",
    "items",
    "collectionFormat",
    "default",
    "enum",
    "maximum",
    "exclusiveMaximum",
    "minimum",
    "exclusiveMinimum",
    "maxLength",
    "minLength",
    "pattern",
    "maxItems",
    "minItems",
    "uniqueItems",
    "multipleOf",
    "description",
)

_COLLECTION_SEPARATORS = {"csv": ",", "ssv": " ", "tsv": "\t", "pipes": "|"}

_BRACKETS = re.compile(r"\[([^\[\]]*)\]")

# Raw text accepted as a number: JSON number syntax, ASCII digits only
_INTEGER = re.compile(r"-?[0-9]+")
_NUMBER = re.compile(r"-?[0-9]+(\.[0-9]+)?([eE][+-]?[0-9]+)?")


def schema_view(definition: dict[str, Any]) -> dict[str, Any]:
    """Return the schema a parameter's values are validated against."""
    if definition.get("in") == ParameterLocation.BODY:
        schema = definition.get("schema")
        return schema if isinstance(schema, dict) else {}
    return {key: definition[key] for key in _SCHEMA_KEYS if key in definition}


def coerce(value: Any, schema: dict[str, Any]) -> Any:
    """Convert raw request text to the type declared by *schema*.

    Values that do not convert are returned unchanged.
    """
    kind = schema.get("type")
    if kind == "array":
        if isinstance(value, str):
            fmt = schema.get("collectionFormat", "csv")
            if value == "":
                items: list[Any] = []
            elif fmt == "multi":
                items = [value]
            else:
                items = value.split(_COLLECTION_SEPARATORS.get(fmt, ","))
        elif isinstance(value, (list, tuple)):
            items = list(value)
        else:
            return value
        item_schema = schema.get("items")
        if not isinstance(item_schema, dict):
            return items
        return [coerce(item, item_schema) for item in items]

    if not isinstance(value, str):
        return value
    if kind == "integer":
        return int(value) if _INTEGER.fullmatch(value) else value
    if kind == "number":
        if _INTEGER.fullmatch(value):
            return int(value)
        return float(value) if _NUMBER.fullmatch(value) else value
    if kind == "boolean":
        lowered = value.lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        return value
    return value


def _query_mapping(request: Any) -> Any:
    query = get_field(request, "query")
    if query is not None:
        return query
    url = get_field(request, "original_url", "originalUrl", "url")
    if not isinstance(url, str):
        return None
    parsed = parse_qs(urlsplit(url).query, keep_blank_values=True)
    return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}


def _lookup_query(query: Any, name: str) -> Any:
    if not query:
        return None
    if name in query:
        return query[name]
    head, _, rest = name.partition("[")
    if not rest:
        return None
    current = query.get(head) if hasattr(query, "get") else None
    for key in _BRACKETS.findall("[" + rest):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


class Parameter:
    """One parameter of an operation (or a path).

    Attributes:
        definition: The fully resolved parameter object.
        path: Key path of the parameter's declaration in the document.
        ptr: JSON pointer form of :attr:`path`.
        name: Declared ``name``.
        location: Declared ``in`` value.
        required: ``True`` for path parameters and when declared required.
        schema: The schema view (the ``schema`` for body parameters).
    """

    def __init__(
        self,
        api: ApiDefinition,
        path_object: Path,
        definition: dict[str, Any],
        path: list[str],
    ):
        self.api = api
        self.path_object = path_object
        self.definition = definition
        self.path = path
        self.ptr = path_to_ptr(path)
        self.name: Optional[str] = definition.get("name")
        self.location: Optional[str] = definition.get("in")
        self.required = bool(definition.get("required")) or self.location == ParameterLocation.PATH
        self.schema = schema_view(definition)

    def __repr__(self) -> str:
        return f"Parameter(name={self.name!r}, location={self.location!r})"

    @property
    def is_file(self) -> bool:
        return self.location == ParameterLocation.FORM_DATA and self.definition.get("type") == "file"

    def get_sample(self) -> Any:
        """Return a generated value valid for this parameter."""
        return generate(
            self.schema,
            self.api.custom_format_generators,
            seed=self.api.config.sample_seed,
        )

    def _extract(self, request: Any) -> tuple[Any, Any]:
        """Return ``(raw, decoded)``; decoded differs from raw only for bodies."""
        if self.location == ParameterLocation.PATH:
            url = get_field(request, "original_url", "originalUrl", "url")
            if not isinstance(url, str):
                return None, None
            captured = self.path_object.matcher.match(url) or {}
            raw = captured.get(self.name)
            return raw, raw
        if self.location == ParameterLocation.QUERY:
            raw = _lookup_query(_query_mapping(request), self.name or "")
            return raw, raw
        if self.location == ParameterLocation.HEADER:
            raw = get_header(get_field(request, "headers"), self.name or "")
            return raw, raw
        if self.location == ParameterLocation.FORM_DATA:
            source = get_field(request, "files") if self.is_file else get_field(request, "body")
            raw = source.get(self.name) if isinstance(source, dict) else None
            return raw, raw
        if self.location == ParameterLocation.BODY:
            body = Body.from_message(request)
            decoded = body.decode(get_content_type(request), get_field(request, "encoding"))
            return body.raw, decoded
        return None, None

    def get_value(self, request: Any) -> ParameterValue:
        """Extract, coerce and validate this parameter's value from *request*.

        Args:
            request: A mapping or object exposing ``url``/``original_url``,
                ``query``, ``headers``, ``body``, ``files`` and
                ``encoding`` as needed.

        Returns:
            The :class:`~specway.models.ParameterValue`; ``error`` is set
            when the value is missing or invalid.
        """
        try:
            raw, decoded = self._extract(request)
        except BodyDecodeError as exc:
            return ParameterValue(
                raw=get_field(request, "body"),
                error=Issue(
                    code="INVALID_BODY_ENCODING",
                    message=exc.message,
                    path=self.path,
                    failed_validation=True,
                ),
            )

        if raw is None:
            if "default" in self.schema:
                return ParameterValue(raw=None, value=coerce(self.schema["default"], self.schema))
            if self.required:
                return ParameterValue(
                    error=Issue(
                        code="REQUIRED",
                        message="Value is required but was not provided",
                        path=self.path,
                        failed_validation=True,
                    )
                )
            return ParameterValue()

        if self.is_file:
            return ParameterValue(raw=raw, value=raw)

        if self.location == ParameterLocation.BODY:
            value = decoded
        else:
            value = coerce(raw, self.schema)

        issues = validate_value(value, self.schema, self.api.custom_formats)
        if not issues:
            return ParameterValue(raw=raw, value=value)
        return ParameterValue(
            raw=raw,
            value=value,
            error=Issue(
                code="SCHEMA_VALIDATION_FAILED",
                message="Value failed JSON Schema validation",
                path=self.path,
                failed_validation=True,
                errors=issues,
            ),
        )
