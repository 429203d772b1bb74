"""JSON Schema evaluation for values and for whole Swagger documents.

Values are checked with :mod:`jsonschema`'s draft-04 validator extended with
the Swagger-only ``file`` type.  Every :class:`jsonschema.ValidationError`
is translated into an :class:`~specway.models.Issue` whose ``code``,
``message`` and ``params`` follow the conventions callers match on::

    INVALID_TYPE     Expected type string but found type integer
    MIN_LENGTH       String is too short (2 chars), minimum 3
    INVALID_FORMAT   Object didn't pass validation for format date-time: now

Documents are checked against the Swagger 2.0 JSON Schema
(:data:`~specway.schema.swagger20.SWAGGER_20`).  One-of failures on a
handful of well known nodes are reported as a single friendly
``Not a valid <kind> definition`` issue instead of the raw keyword errors.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from collections import Counter
from typing import Any, Callable, Mapping, Optional

from jsonschema import Draft4Validator, FormatChecker, ValidationError, validators
from referencing import Registry
from referencing.exceptions import Unresolvable

from specway.models import Issue
from specway.schema.swagger20 import SWAGGER_20

logger = logging.getLogger(__name__)

FormatPredicate = Callable[[Any], bool]

_TYPE_CHECKER = Draft4Validator.TYPE_CHECKER.redefine("file", lambda checker, instance: True)

SwaggerValueValidator = validators.extend(Draft4Validator, type_checker=_TYPE_CHECKER)

_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)
_BASE64 = re.compile(r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$")

_DEFINITIONS = SWAGGER_20["definitions"]
_META_KINDS: tuple[tuple[dict[str, Any], str], ...] = (
    (_DEFINITIONS["parametersList"]["items"], "parameter"),
    (_DEFINITIONS["parameter"], "parameter"),
    (_DEFINITIONS["responseValue"], "response"),
    (_DEFINITIONS["schema"]["properties"]["additionalProperties"], "schema additionalProperties"),
    (_DEFINITIONS["schema"]["properties"]["items"], "schema items"),
    (_DEFINITIONS["securityDefinitions"]["additionalProperties"], "securityDefinitions"),
)


# --- Formats ---


def _is_int_in(bits: int) -> FormatPredicate:
    low, high = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1

    def check(instance: Any) -> bool:
        if isinstance(instance, bool) or not isinstance(instance, int):
            return True
        return low <= instance <= high

    return check


def _always(instance: Any) -> bool:
    return True


def _is_byte(instance: Any) -> bool:
    if not isinstance(instance, str):
        return True
    if not _BASE64.match(instance):
        return False
    try:
        base64.b64decode(instance, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def _is_date_time(instance: Any) -> bool:
    if not isinstance(instance, str):
        return True
    match = _RFC3339.match(instance)
    if match is None:
        return False
    _, month, day, hour, minute, second = (int(part) for part in match.groups()[:6])
    return 1 <= month <= 12 and 1 <= day <= 31 and hour < 24 and minute < 60 and second < 61


SWAGGER_FORMATS: dict[str, FormatPredicate] = {
    "int32": _is_int_in(32),
    "int64": _is_int_in(64),
    "float": _always,
    "double": _always,
    "byte": _is_byte,
    "binary": _always,
    "password": _always,
    "date-time": _is_date_time,
}


def build_format_checker(custom: Optional[Mapping[str, FormatPredicate]] = None) -> FormatChecker:
    """Return a format checker with jsonschema's formats, the Swagger ones and *custom*.

    Later registrations win, so custom predicates override built-ins.
    Formats nobody registered are ignored during validation.
    """
    checker = FormatChecker()
    for name, predicate in {**SWAGGER_FORMATS, **(custom or {})}.items():
        checker.checks(name)(predicate)
    return checker


# --- Error translation ---


def json_type(value: Any) -> str:
    """Return the JSON type name of a Python value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _first_duplicate(items: list[Any]) -> list[int]:
    for i, item in enumerate(items):
        for j in range(i + 1, len(items)):
            if items[j] == item:
                return [i, j]
    return []


def _additional_properties(error: ValidationError) -> list[str]:
    schema = error.schema
    declared = schema.get("properties", {})
    patterns = [re.compile(p) for p in schema.get("patternProperties", {})]
    return [
        key
        for key in error.instance
        if key not in declared and not any(p.search(key) for p in patterns)
    ]


class _Translator:
    """Turns jsonschema errors into :class:`Issue` values."""

    def __init__(self, describe: bool = True):
        self._describe = describe
        self._required_seen: Counter[tuple[int, tuple[Any, ...]]] = Counter()

    def issue(self, error: ValidationError) -> Issue:
        code, message, params = self._describe_error(error)
        issue = Issue(
            code=code,
            message=message,
            params=params or None,
            path=[str(token) for token in error.absolute_path],
        )
        if self._describe and isinstance(error.schema, dict):
            description = error.schema.get("description")
            if isinstance(description, str):
                issue.description = description
        if error.validator in ("oneOf", "anyOf") and error.context:
            issue.errors = [self.issue(sub) for sub in error.context]
        return issue

    def _describe_error(self, error: ValidationError) -> tuple[str, str, list[Any]]:
        keyword = error.validator
        expected = error.validator_value
        value = error.instance
        schema = error.schema if isinstance(error.schema, dict) else {}

        if keyword == "type":
            wanted = ",".join(expected) if isinstance(expected, list) else expected
            found = json_type(value)
            return "INVALID_TYPE", f"Expected type {wanted} but found type {found}", [wanted, found]
        if keyword == "required":
            key = (id(error.schema), tuple(error.absolute_path))
            missing = [name for name in expected if name not in value]
            index = self._required_seen[key]
            self._required_seen[key] += 1
            name = missing[index] if index < len(missing) else error.message
            return "OBJECT_MISSING_REQUIRED_PROPERTY", f"Missing required property: {name}", [name]
        if keyword == "format":
            return (
                "INVALID_FORMAT",
                f"Object didn't pass validation for format {expected}: {value}",
                [expected, value],
            )
        if keyword == "maximum":
            if schema.get("exclusiveMaximum"):
                return "MAXIMUM_EXCLUSIVE", f"Value {value} is equal or greater than exclusive maximum {expected}", [value, expected]
            return "MAXIMUM", f"Value {value} is greater than maximum {expected}", [value, expected]
        if keyword == "minimum":
            if schema.get("exclusiveMinimum"):
                return "MINIMUM_EXCLUSIVE", f"Value {value} is equal or less than exclusive minimum {expected}", [value, expected]
            return "MINIMUM", f"Value {value} is less than minimum {expected}", [value, expected]
        if keyword == "maxLength":
            return "MAX_LENGTH", f"String is too long ({len(value)} chars), maximum {expected}", [len(value), expected]
        if keyword == "minLength":
            return "MIN_LENGTH", f"String is too short ({len(value)} chars), minimum {expected}", [len(value), expected]
        if keyword == "pattern":
            return "PATTERN", f"String does not match pattern {expected}: {value}", [expected, value]
        if keyword == "enum":
            return "ENUM_MISMATCH", f"No enum match for: {value}", [value]
        if keyword == "maxItems":
            return "ARRAY_LENGTH_LONG", f"Array is too long ({len(value)}), maximum {expected}", [len(value), expected]
        if keyword == "minItems":
            return "ARRAY_LENGTH_SHORT", f"Array is too short ({len(value)}), minimum {expected}", [len(value), expected]
        if keyword == "uniqueItems":
            indexes = _first_duplicate(list(value))
            joined = " and ".join(str(i) for i in indexes)
            return "ARRAY_UNIQUE", f"Array items are not unique (indexes {joined})", indexes
        if keyword == "multipleOf":
            return "MULTIPLE_OF", f"Value {value} is not a multiple of {expected}", [value, expected]
        if keyword == "additionalProperties":
            extra = ",".join(_additional_properties(error))
            return "OBJECT_ADDITIONAL_PROPERTIES", f"Additional properties not allowed: {extra}", [extra]
        if keyword == "additionalItems":
            return "ARRAY_ADDITIONAL_ITEMS", "Additional items not allowed", []
        if keyword == "maxProperties":
            return "OBJECT_PROPERTIES_MAXIMUM", f"Too many properties defined ({len(value)}), maximum {expected}", [len(value), expected]
        if keyword == "minProperties":
            return "OBJECT_PROPERTIES_MINIMUM", f"Too few properties defined ({len(value)}), minimum {expected}", [len(value), expected]
        if keyword == "oneOf":
            if error.context:
                return "ONE_OF_MISSING", "Data does not match any schemas from 'oneOf'", []
            return "ONE_OF_MULTIPLE", "Data is valid against more than one schema from 'oneOf'", []
        if keyword == "anyOf":
            return "ANY_OF_MISSING", "Data does not match any schemas from 'anyOf'", []
        if keyword == "not":
            return "NOT_PASSED", "Data matches schema from 'not'", []
        return keyword.upper(), error.message, []


# --- Public API ---


def validate_value(
    value: Any,
    schema: Any,
    formats: Optional[Mapping[str, FormatPredicate]] = None,
) -> list[Issue]:
    """Validate *value* against a Swagger schema object.

    Args:
        value: The (already coerced) value.
        schema: A fully resolved schema.  Leftover unresolvable ``$ref``
            values are reported instead of raised.
        formats: Extra format predicates, keyed by format name.

    Returns:
        The translated issues, empty when the value is valid.
    """
    if not isinstance(schema, dict):
        return []
    validator = SwaggerValueValidator(
        schema,
        format_checker=build_format_checker(formats),
        registry=Registry(),
    )
    translator = _Translator()
    try:
        return [translator.issue(error) for error in validator.iter_errors(value)]
    except Unresolvable as exc:
        logger.debug("Schema reference could not be resolved: %s", exc)
        return [
            Issue(
                code="UNRESOLVABLE_REFERENCE",
                message=f"Reference could not be resolved: {getattr(exc, 'ref', exc)}",
                path=[],
            )
        ]


def _meta_kind(error: ValidationError) -> Optional[str]:
    if error.validator not in ("oneOf", "anyOf"):
        return None
    for node, kind in _META_KINDS:
        if error.schema == node:
            return kind
    return None


def validate_document(document: Any) -> list[Issue]:
    """Validate a fully resolved document against the Swagger 2.0 JSON Schema."""
    validator = Draft4Validator(SWAGGER_20)
    translator = _Translator(describe=False)
    issues: list[Issue] = []
    for error in validator.iter_errors(document):
        kind = _meta_kind(error)
        if kind is not None:
            code = "ONE_OF_MISSING" if error.validator == "oneOf" else "ANY_OF_MISSING"
            issue = Issue(
                code=code,
                message=f"Not a valid {kind} definition",
                path=[str(token) for token in error.absolute_path],
            )
        else:
            issue = translator.issue(error)
        issue.schema_id = SWAGGER_20["id"]
        issue.title = SWAGGER_20["title"]
        issues.append(issue)
    return issues
