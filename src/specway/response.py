"""Declared responses and response validation.

:meth:`Response.validate_response` checks, in order:

1. the ``Content-Type`` against the operation's effective ``produces``
   (skipped for void responses, empty bodies and ``204``/``304``);
2. every declared header present on the response;
3. the body against the declared ``schema``, unless step 1 failed or the
   status is ``204``/``304``.  A byte body that cannot be decoded is
   reported as ``INVALID_BODY_ENCODING``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional

import yaml

from specway.content import (
    DEFAULT_CONTENT_TYPE,
    Body,
    get_content_type,
    get_field,
    get_header,
    get_status_code,
    is_yaml_media_type,
    media_type,
)
from specway.exceptions import BodyDecodeError
from specway.models import Issue, ValidationResult
from specway.parameter import coerce, schema_view
from specway.parser.pointer import path_to_ptr
from specway.schema.sample import generate
from specway.schema.validator import validate_value

if TYPE_CHECKING:
    from specway.operation import Operation

# Statuses that carry no content; neither Content-Type nor body is checked
_NO_CONTENT_STATUSES = frozenset({"204", "304"})


def _summary(prefix: str, issues: list[Issue]) -> str:
    if len(issues) == 1:
        return f"{prefix}: {issues[0].message}"
    return f"{prefix}: Value failed JSON Schema validation"


class Response:
    """One entry of an operation's ``responses`` map.

    Attributes:
        status_code: ``"default"`` or a three digit status string.
        definition: The fully resolved response object.
        schema: The declared schema, ``None`` for a void response.
        headers: Declared headers keyed by name.
        examples: Declared examples keyed by media type.
    """

    def __init__(self, operation: Operation, status_code: str, definition: dict[str, Any], path: list[str]):
        self.operation = operation
        self.status_code = status_code
        self.definition = definition
        self.path = path
        self.ptr = path_to_ptr(path)
        self.schema: Optional[dict[str, Any]] = definition.get("schema")
        self.headers: dict[str, Any] = definition.get("headers") or {}
        self.examples: dict[str, Any] = definition.get("examples") or {}

    def __repr__(self) -> str:
        return f"Response(status_code={self.status_code!r})"

    @property
    def is_void(self) -> bool:
        return self.schema is None

    def get_example(self, mime_type: str) -> Optional[str]:
        """Return the declared example for *mime_type* as text.

        String examples are returned verbatim.  Others are rendered as block
        YAML for YAML media types and as indented JSON otherwise.
        """
        if mime_type not in self.examples:
            return None
        example = self.examples[mime_type]
        if isinstance(example, str):
            return example
        if is_yaml_media_type(mime_type):
            return yaml.safe_dump(example, default_flow_style=False, indent=2, sort_keys=False)
        # JSON media types and anything unrecognized
        return json.dumps(example, indent=2)

    def get_sample(self) -> Any:
        """Return a generated body valid for this response, ``None`` when void."""
        if self.is_void:
            return None
        api = self.operation.api
        return generate(self.schema, api.custom_format_generators, seed=api.config.sample_seed)

    def validate_response(self, response: Any) -> ValidationResult:
        """Validate a response-like value against this declared response.

        Args:
            response: A mapping or object exposing ``headers``, ``body``,
                ``encoding`` and ``status_code``/``statusCode``.

        Returns:
            A :class:`~specway.models.ValidationResult`; ``warnings`` is
            always empty.
        """
        result = ValidationResult()
        body = Body.from_message(response)
        content_type = get_content_type(response)
        no_content = str(get_status_code(response)) in _NO_CONTENT_STATUSES

        content_type_ok = True
        if not (self.is_void or body.is_empty or no_content):
            content_type_ok = self._check_content_type(content_type, result)

        self._check_headers(response, result)

        if content_type_ok and not (self.is_void or no_content):
            try:
                value = body.decode(content_type, get_field(response, "encoding"))
            except BodyDecodeError as exc:
                result.errors.append(Issue(code="INVALID_BODY_ENCODING", message=exc.message, path=[]))
                return result
            issues = validate_value(value, self.schema, self.operation.api.custom_formats)
            if issues:
                result.errors.append(
                    Issue(
                        code="INVALID_RESPONSE_BODY",
                        message=_summary("Invalid body", issues),
                        path=[],
                        errors=issues,
                    )
                )
        return result

    def _check_content_type(self, content_type: Optional[str], result: ValidationResult) -> bool:
        actual = content_type or DEFAULT_CONTENT_TYPE
        produces = self.operation.produces
        if actual in produces or media_type(actual) in produces:
            return True
        result.errors.append(
            Issue(
                code="INVALID_CONTENT_TYPE",
                message=(
                    f"Invalid Content-Type ({media_type(actual)}).  "
                    f"These are supported: {', '.join(produces)}"
                ),
                path=[],
            )
        )
        return False

    def _check_headers(self, response: Any, result: ValidationResult) -> None:
        headers = get_field(response, "headers")
        for name, header in self.headers.items():
            raw = get_header(headers, name)
            if raw is None:
                continue
            schema = schema_view(header)
            issues = validate_value(coerce(raw, schema), schema, self.operation.api.custom_formats)
            if issues:
                result.errors.append(
                    Issue(
                        code="INVALID_RESPONSE_HEADER",
                        message=_summary(f"Invalid header ({name})", issues),
                        name=name,
                        path=[],
                        errors=issues,
                    )
                )
