"""Canonical data shapes shared across all specway modules.

The models fall into three groups:

**Result models** -- produced by validation and handed back to callers:
    :class:`Issue`, :class:`ValidationResult` and :class:`ParameterValue`.

**Resolver models** -- the reference inventory built during construction:
    :class:`ReferenceOutcome`.

**Configuration** -- :class:`SpecwayConfig`, resolved by :mod:`specway.config`.

Issues use Pydantic v2 with ``extra="allow"`` so that rule-specific fields
added by custom validators survive a round trip through ``model_dump``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class HTTPMethod(str, enum.Enum):
    """HTTP methods an OpenAPI 2.0 path item may declare."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"


class ParameterLocation(str, enum.Enum):
    """Where a parameter value is carried in a request."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    FORM_DATA = "formData"
    BODY = "body"


# --- Results ---


class Issue(BaseModel):
    """A single structural or semantic problem.

    ``path`` is a list of document keys (or value keys, for nested value
    errors) leading to the offending node.  Every other field is only set
    by the rules that need it; :meth:`to_dict` drops the unset ones.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    code: str
    message: str
    path: list[str] = Field(default_factory=list)
    params: Optional[list[Any]] = None
    errors: Optional[list[Issue]] = None
    name: Optional[str] = None
    lineage: Optional[list[str]] = None
    error: Optional[str] = None
    schema_id: Optional[str] = Field(default=None, alias="schemaId")
    title: Optional[str] = None
    description: Optional[str] = None
    failed_validation: Optional[bool] = Field(default=None, alias="failedValidation")

    def to_dict(self) -> dict[str, Any]:
        """Return the issue as a plain dict using the wire field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


Issue.model_rebuild()


class ValidationResult(BaseModel):
    """Errors and warnings produced by one validation call."""

    errors: list[Issue] = Field(default_factory=list)
    warnings: list[Issue] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def extend(self, other: ValidationResult) -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
        }


@dataclass
class ParameterValue:
    """Outcome of extracting one parameter from one request.

    Attributes:
        raw: The value as found in the request, before coercion.
        value: The coerced value, or ``raw`` when coercion does not apply.
        error: The issue explaining why the value is invalid, if any.
    """

    raw: Any = None
    value: Any = None
    error: Optional[Issue] = None

    @property
    def valid(self) -> bool:
        return self.error is None


# --- Resolver ---


class ReferenceOutcome(BaseModel):
    """One ``$ref`` found in the primary document and what became of it.

    ``pointer`` is the JSON pointer of the object holding the ``$ref`` and
    ``path`` the same location as a key list.  ``location`` is the absolute
    target (``#/definitions/Pet`` for local references).
    """

    pointer: str
    path: list[str]
    ref: str
    location: str
    type: Literal["local", "remote", "invalid"]
    missing: bool = False
    circular: bool = False
    error: Optional[str] = None
    extra: list[str] = Field(default_factory=list)


# --- Configuration ---


class SpecwayConfig(BaseModel):
    """Effective configuration for document construction.

    Resolved by :func:`specway.config.resolve_config` from keyword
    overrides, ``SPECWAY_*`` environment variables, ``./specway.json`` and
    these defaults.
    """

    allow_remote_refs: bool = Field(
        default=True, description="Fetch remote $ref targets (files and URLs)"
    )
    fetch_timeout: float = Field(
        default=30.0, gt=0, description="Timeout in seconds for remote fetches"
    )
    sample_seed: Optional[int] = Field(
        default=None, description="Seed for sample generation; None is random"
    )
