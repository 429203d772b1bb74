"""Operations: one HTTP method on one path."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from specway.content import get_status_code
from specway.models import Issue, ValidationResult
from specway.parameter import Parameter
from specway.parser.pointer import path_to_ptr
from specway.response import Response

if TYPE_CHECKING:
    from specway.definition import ApiDefinition
    from specway.path import Path


class Operation:
    """A single operation of a :class:`~specway.path.Path`.

    The effective parameter list is the operation's own parameters followed
    by the path-level parameters it does not override.  A path-level
    parameter is overridden by an operation parameter with the same
    ``name`` and ``in``.

    Attributes:
        method: Lower-case HTTP method.
        definition: The fully resolved operation object.
        path: Key path of the operation in the document.
        ptr: JSON pointer form of :attr:`path`.
        operation_id: Declared ``operationId``, if any.
        consumes: Own ``consumes``, else the document's.
        produces: Own ``produces``, else the document's.
        security: Own ``security``, else the document's.
    """

    def __init__(
        self,
        api: ApiDefinition,
        path_object: Path,
        method: str,
        definition: dict[str, Any],
        path: list[str],
    ):
        self.api = api
        self.path_object = path_object
        self.method = method
        self.definition = definition
        self.path = path
        self.ptr = path_to_ptr(path)

        document = api.resolved_full
        self.operation_id: Optional[str] = definition.get("operationId")
        self.tags: list[str] = definition.get("tags") or []
        self.summary: Optional[str] = definition.get("summary")
        self.description: Optional[str] = definition.get("description")
        self.deprecated = bool(definition.get("deprecated", False))
        self.consumes: list[str] = _own_or_global(definition, document, "consumes")
        self.produces: list[str] = _own_or_global(definition, document, "produces")
        self.security: list[dict[str, list[str]]] = _own_or_global(definition, document, "security")

        self.parameters = self._build_parameters()
        self.responses: dict[str, Response] = {
            str(code): Response(self, str(code), response, path + ["responses", str(code)])
            for code, response in (definition.get("responses") or {}).items()
            if isinstance(response, dict)
        }

    def __repr__(self) -> str:
        return f"Operation(method={self.method!r}, path={self.path_object.path!r})"

    def _build_parameters(self) -> list[Parameter]:
        own: list[Parameter] = []
        for index, definition in enumerate(self.definition.get("parameters") or []):
            if isinstance(definition, dict):
                own.append(
                    Parameter(
                        self.api,
                        self.path_object,
                        definition,
                        self.path + ["parameters", str(index)],
                    )
                )
        overridden = {(param.name, param.location) for param in own}
        inherited = [
            param
            for param in self.path_object.parameters
            if (param.name, param.location) not in overridden
        ]
        return own + inherited

    # --- Lookups ---

    def get_parameter(self, name: str, location: Optional[str] = None) -> Optional[Parameter]:
        """Return the effective parameter called *name*, optionally in *location*."""
        for param in self.parameters:
            if param.name == name and (location is None or param.location == location):
                return param
        return None

    def get_parameters(self) -> list[Parameter]:
        return list(self.parameters)

    def get_response(self, code: Any = None) -> Optional[Response]:
        """Return the response for status *code*, falling back to ``default``.

        Args:
            code: A status code (``200`` or ``"200"``); ``None`` means
                ``"default"``.
        """
        key = "default" if code is None else str(code)
        return self.responses.get(key) or self.responses.get("default")

    def get_responses(self) -> list[Response]:
        return list(self.responses.values())

    def get_security(self) -> list[dict[str, list[str]]]:
        return list(self.security)

    # --- Validation ---

    def validate_request(self, request: Any) -> ValidationResult:
        """Validate every effective parameter against *request*.

        Each failing parameter contributes exactly one error.
        """
        result = ValidationResult()
        for param in self.parameters:
            outcome = param.get_value(request)
            if outcome.error is not None:
                result.errors.append(outcome.error)
        return result

    def validate_response(self, response: Any) -> ValidationResult:
        """Validate *response* against the response declared for its status."""
        code = get_status_code(response)
        declared = self.get_response(code)
        if declared is None:
            result = ValidationResult()
            result.errors.append(
                Issue(
                    code="INVALID_RESPONSE_CODE",
                    message=(
                        f"This operation does not have a defined '{'default' if code is None else code}' "
                        "or 'default' response code"
                    ),
                    path=[],
                )
            )
            return result
        return declared.validate_response(response)


def _own_or_global(definition: dict[str, Any], document: dict[str, Any], key: str) -> list[Any]:
    value = definition.get(key)
    if value is None:
        value = document.get(key)
    return list(value) if isinstance(value, list) else []
