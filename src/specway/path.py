"""Path items: one template of the ``paths`` map and its operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from specway.matcher import PathMatcher
from specway.models import HTTPMethod
from specway.operation import Operation
from specway.parameter import Parameter
from specway.parser.pointer import get_at, path_to_ptr

if TYPE_CHECKING:
    from specway.definition import ApiDefinition

_METHODS = frozenset(method.value for method in HTTPMethod)


class Path:
    """A path template with its compiled matcher and operations.

    Attributes:
        path: The template string, e.g. ``/pet/{petId}``.
        ptr: JSON pointer of the path item (``#/paths/~1pet~1{petId}``).
        definition: The path item from ``resolved_local``.
        definition_fully_resolved: The path item from ``resolved_full``.
        matcher: The compiled :class:`~specway.matcher.PathMatcher`.
        regexp: Compiled pattern matching full URL paths, ``basePath`` included.
        keys: Placeholder names in template order.
        parameters: Path-level parameters.
        operations: Operations in declaration order.
    """

    def __init__(self, api: ApiDefinition, template: str, definition: dict[str, Any]):
        self.api = api
        self.path = template
        self.document_path = ["paths", template]
        self.ptr = path_to_ptr(self.document_path)
        self.definition_fully_resolved = definition
        local = get_at(api.resolved_local, self.document_path, default=None)
        self.definition = local if isinstance(local, dict) else definition

        self.matcher = PathMatcher(template, api.base_path)
        self.regexp = self.matcher.regexp
        self.keys = self.matcher.keys
        self.segments = self.matcher.segments

        self.parameters: list[Parameter] = [
            Parameter(api, self, param, self.document_path + ["parameters", str(index)])
            for index, param in enumerate(definition.get("parameters") or [])
            if isinstance(param, dict)
        ]
        self.operations: list[Operation] = [
            Operation(api, self, method, operation, self.document_path + [method])
            for method, operation in definition.items()
            if method in _METHODS
        ]

    def __repr__(self) -> str:
        return f"Path({self.path!r})"

    def get_operation(self, method_or_id: str) -> Optional[Operation]:
        """Return the operation for an HTTP method (any case) or an ``operationId``."""
        method = method_or_id.lower()
        for operation in self.operations:
            if operation.method == method:
                return operation
        for operation in self.operations:
            if operation.operation_id == method_or_id:
                return operation
        return None

    def get_operations(self) -> list[Operation]:
        return list(self.operations)

    def get_operations_by_tag(self, tag: str) -> list[Operation]:
        return [operation for operation in self.operations if tag in operation.tags]

    def get_parameters(self) -> list[Parameter]:
        return list(self.parameters)
