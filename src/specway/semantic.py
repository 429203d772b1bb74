"""Document checks that the Swagger 2.0 JSON Schema cannot express.

Each check takes an :class:`~specway.definition.ApiDefinition` and a
:class:`~specway.models.ValidationResult` to append to.  They run in the
order of :data:`SEMANTIC_CHECKS`, after structural validation succeeded.

Walks that report document locations (schema walks, inheritance cycles)
run over ``resolved_local`` so pointers match what the author wrote.
Values that need full resolution (declared defaults, inherited
properties) are looked up in ``resolved_full`` at the same location.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

from specway.models import Issue, ParameterLocation, ValidationResult
from specway.parameter import schema_view
from specway.parser.pointer import get_at, path_to_ptr, ptr_to_path
from specway.schema.validator import validate_value

if TYPE_CHECKING:
    from specway.definition import ApiDefinition

logger = logging.getLogger(__name__)

SemanticCheck = Callable[["ApiDefinition", ValidationResult], None]

# Sections whose entries must be referenced somewhere to count as used
_REFERENCEABLE_SECTIONS = ("definitions", "parameters", "responses")


def _is_reference(node: Any) -> bool:
    return isinstance(node, dict) and isinstance(node.get("$ref"), str)


# --- References ---


def check_references(api: ApiDefinition, result: ValidationResult) -> None:
    """Report invalid and unresolvable references, warn about ignored siblings."""
    for outcome in api.references:
        if outcome.type == "invalid":
            result.errors.append(
                Issue(
                    code="INVALID_REFERENCE",
                    message=outcome.error or f"Invalid JSON Reference: {outcome.ref}",
                    path=outcome.path + ["$ref"],
                )
            )
        elif outcome.missing:
            result.errors.append(
                Issue(
                    code="UNRESOLVABLE_REFERENCE",
                    message=f"Reference could not be resolved: {outcome.ref}",
                    path=outcome.path + ["$ref"],
                    error=outcome.error,
                )
            )
        if outcome.extra:
            result.warnings.append(
                Issue(
                    code="EXTRA_REFERENCE_PROPERTIES",
                    message=f"Extra JSON Reference properties will be ignored: {', '.join(outcome.extra)}",
                    path=outcome.path,
                )
            )


# --- Inheritance cycles ---


def _inheritance_edges(document: Any, ptr: str) -> list[str]:
    """Return the pointers a schema inherits from through ``allOf``."""
    node = get_at(document, ptr_to_path(ptr), default=None)
    if not isinstance(node, dict) or not isinstance(node.get("allOf"), list):
        return []
    edges = []
    for index, entry in enumerate(node["allOf"]):
        if _is_reference(entry):
            if entry["$ref"].startswith("#/"):
                edges.append(entry["$ref"])
        elif isinstance(entry, dict):
            edges.append(f"{ptr}/allOf/{index}")
    return edges


def check_circular_inheritance(api: ApiDefinition, result: ValidationResult) -> None:
    """Report every schema whose ``allOf`` chain leads back to itself.

    One issue is produced per schema on a cycle, with the ``lineage`` of
    pointers walked from the schema back to itself.
    """
    document = api.resolved_local
    definitions = document.get("definitions")
    if not isinstance(definitions, dict):
        return

    starts = [path_to_ptr(["definitions", name]) for name in definitions]
    queued = set(starts)
    index = 0
    while index < len(starts):
        start = starts[index]
        index += 1
        stack: list[list[str]] = [[start]]
        while stack:
            lineage = stack.pop()
            for edge in _inheritance_edges(document, lineage[-1]):
                if edge not in queued:
                    queued.add(edge)
                    starts.append(edge)
                if edge == start:
                    result.errors.append(
                        Issue(
                            code="CIRCULAR_INHERITANCE",
                            message=f"Schema object inherits from itself: {start}",
                            path=ptr_to_path(start),
                            lineage=lineage + [start],
                        )
                    )
                elif edge not in lineage:
                    stack.append(lineage + [edge])


# --- Schema walks ---


def _walk_schema(node: Any, path: list[str]) -> Iterator[tuple[str, list[str], dict[str, Any]]]:
    """Yield ``("schema", path, node)`` for a schema and all nested schemas.

    Children are visited in the order ``additionalProperties``, ``allOf``,
    ``items``, ``properties``.  References are not followed.
    """
    if not isinstance(node, dict) or _is_reference(node):
        return
    yield "schema", path, node
    additional = node.get("additionalProperties")
    if isinstance(additional, dict):
        yield from _walk_schema(additional, path + ["additionalProperties"])
    for index, entry in enumerate(node.get("allOf") or []):
        yield from _walk_schema(entry, path + ["allOf", str(index)])
    items = node.get("items")
    if isinstance(items, list):
        for index, entry in enumerate(items):
            yield from _walk_schema(entry, path + ["items", str(index)])
    else:
        yield from _walk_schema(items, path + ["items"])
    properties = node.get("properties")
    if isinstance(properties, dict):
        for name, prop in properties.items():
            yield from _walk_schema(prop, path + ["properties", str(name)])


def _walk_simple(node: Any, path: list[str]) -> Iterator[tuple[str, list[str], dict[str, Any]]]:
    """Yield ``("simple", path, node)`` for a non-body parameter or header and its ``items``."""
    if not isinstance(node, dict) or _is_reference(node):
        return
    yield "simple", path, node
    yield from _walk_simple(node.get("items"), path + ["items"])


def _walk_parameter(node: Any, path: list[str]) -> Iterator[tuple[str, list[str], dict[str, Any]]]:
    if not isinstance(node, dict) or _is_reference(node):
        return
    if node.get("in") == ParameterLocation.BODY:
        yield from _walk_schema(node.get("schema"), path + ["schema"])
    else:
        yield from _walk_simple(node, path)


def _walk_response(node: Any, path: list[str]) -> Iterator[tuple[str, list[str], dict[str, Any]]]:
    if not isinstance(node, dict) or _is_reference(node):
        return
    yield from _walk_schema(node.get("schema"), path + ["schema"])
    headers = node.get("headers")
    if isinstance(headers, dict):
        for name, header in headers.items():
            yield from _walk_simple(header, path + ["headers", str(name)])


def _entries(node: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(node, dict):
        for key, value in node.items():
            yield str(key), value
    elif isinstance(node, list):
        for index, value in enumerate(node):
            yield str(index), value


def iter_schema_locations(document: dict[str, Any]) -> Iterator[tuple[str, list[str], dict[str, Any]]]:
    """Yield every schema-like location of *document*.

    Each item is ``(kind, path, node)`` where ``kind`` is ``"schema"`` for
    schema objects and ``"simple"`` for non-body parameters, headers and
    their ``items``.
    """
    for name, schema in _entries(document.get("definitions")):
        yield from _walk_schema(schema, ["definitions", name])
    for name, param in _entries(document.get("parameters")):
        yield from _walk_parameter(param, ["parameters", name])
    for name, response in _entries(document.get("responses")):
        yield from _walk_response(response, ["responses", name])
    for template, item in _entries(document.get("paths")):
        if not isinstance(item, dict) or _is_reference(item):
            continue
        base = ["paths", template]
        for index, param in _entries(item.get("parameters")):
            yield from _walk_parameter(param, base + ["parameters", index])
        for method, operation in item.items():
            if method == "parameters" or not isinstance(operation, dict):
                continue
            for index, param in _entries(operation.get("parameters")):
                yield from _walk_parameter(param, base + [method, "parameters", index])
            for code, response in _entries(operation.get("responses")):
                yield from _walk_response(response, base + [method, "responses", code])


def check_array_items(api: ApiDefinition, result: ValidationResult) -> None:
    """Every ``type: array`` location must declare ``items``."""
    for _, path, node in iter_schema_locations(api.resolved_local):
        if node.get("type") == "array" and "items" not in node:
            result.errors.append(
                Issue(
                    code="OBJECT_MISSING_REQUIRED_PROPERTY",
                    message="Missing required property: items",
                    path=path,
                )
            )


def _declared_properties(node: Any, seen: Optional[set[int]] = None) -> set[str]:
    """Property names declared on *node* or inherited through ``allOf``."""
    if not isinstance(node, dict):
        return set()
    seen = seen if seen is not None else set()
    if id(node) in seen:
        return set()
    seen.add(id(node))
    names = set(node.get("properties") or {})
    for parent in node.get("allOf") or []:
        names |= _declared_properties(parent, seen)
    return names


def check_required_properties(api: ApiDefinition, result: ValidationResult) -> None:
    """Names in ``required`` must be declared as (possibly inherited) properties."""
    for kind, path, node in iter_schema_locations(api.resolved_local):
        required = node.get("required")
        if kind != "schema" or not isinstance(required, list):
            continue
        full = get_at(api.resolved_full, path, default=node)
        declared = _declared_properties(full)
        for name in required:
            if name not in declared:
                result.errors.append(
                    Issue(
                        code="OBJECT_MISSING_REQUIRED_PROPERTY_DEFINITION",
                        message=f"Missing required property definition: {name}",
                        path=path,
                    )
                )


def check_default_values(api: ApiDefinition, result: ValidationResult) -> None:
    """A declared ``default`` must validate against its own schema."""
    for kind, path, node in iter_schema_locations(api.resolved_local):
        if "default" not in node:
            continue
        if kind == "simple":
            schema = schema_view(node)
        else:
            schema = get_at(api.resolved_full, path, default=node)
        for issue in validate_value(node["default"], schema, api.custom_formats):
            issue.path = path + ["default"] + issue.path
            result.errors.append(issue)


# --- Paths and operations ---


def check_paths(api: ApiDefinition, result: ValidationResult) -> None:
    """Check path templates against each other and against their parameters."""
    shapes: dict[tuple[str, ...], str] = {}
    for path in api.get_paths():
        if "" in path.keys:
            result.errors.append(
                Issue(
                    code="EMPTY_PATH_PARAMETER_DECLARATION",
                    message=f"Path parameter declaration cannot be empty: {path.path}",
                    path=path.document_path,
                )
            )
        shape = path.matcher.shape
        if shape in shapes:
            result.errors.append(
                Issue(
                    code="EQUIVALENT_PATH",
                    message=f"Equivalent path already exists: {path.path}",
                    path=path.document_path,
                )
            )
        else:
            shapes[shape] = path.path

        reported: set[str] = set()
        candidates = list(path.parameters)
        for operation in path.operations:
            candidates.extend(operation.parameters)
        for param in candidates:
            if param.location != ParameterLocation.PATH or param.name in path.keys:
                continue
            if param.ptr in reported:
                continue
            reported.add(param.ptr)
            result.errors.append(
                Issue(
                    code="MISSING_PATH_PARAMETER_DECLARATION",
                    message=f"Path parameter is defined but is not declared: {param.name}",
                    path=param.path,
                )
            )

        for operation in path.operations:
            defined = {
                param.name for param in operation.parameters if param.location == ParameterLocation.PATH
            }
            for key in path.keys:
                if key and key not in defined:
                    result.errors.append(
                        Issue(
                            code="MISSING_PATH_PARAMETER_DEFINITION",
                            message=f"Path parameter is declared but is not defined: {key}",
                            path=operation.path,
                        )
                    )


def _report_duplicates(params: list[Any], result: ValidationResult) -> None:
    seen: set[tuple[Any, Any]] = set()
    for param in params:
        key = (param.name, param.location)
        if key in seen:
            result.errors.append(
                Issue(
                    code="DUPLICATE_PARAMETER",
                    message=f"Operation cannot have duplicate parameters: {param.ptr}",
                    path=param.path,
                )
            )
        else:
            seen.add(key)


def check_operations(api: ApiDefinition, result: ValidationResult) -> None:
    """Check parameter sets and ``operationId`` uniqueness."""
    operation_ids: set[str] = set()
    for path in api.get_paths():
        _report_duplicates(path.parameters, result)
        inherited = {id(param) for param in path.parameters}
        for operation in path.operations:
            _report_duplicates([p for p in operation.parameters if id(p) not in inherited], result)

            locations = [param.location for param in operation.parameters]
            if locations.count(ParameterLocation.BODY) > 1:
                result.errors.append(
                    Issue(
                        code="MULTIPLE_BODY_PARAMETERS",
                        message="Operation cannot have multiple body parameters",
                        path=operation.path,
                    )
                )
            if ParameterLocation.BODY in locations and ParameterLocation.FORM_DATA in locations:
                result.errors.append(
                    Issue(
                        code="INVALID_PARAMETER_COMBINATION",
                        message="Operation cannot have a body parameter and a formData parameter",
                        path=operation.path,
                    )
                )

            if operation.operation_id is None:
                continue
            if operation.operation_id in operation_ids:
                result.errors.append(
                    Issue(
                        code="DUPLICATE_OPERATIONID",
                        message=(
                            "Cannot have multiple operations with the same operationId: "
                            f"{operation.operation_id}"
                        ),
                        path=operation.path + ["operationId"],
                    )
                )
            else:
                operation_ids.add(operation.operation_id)


# --- Security ---


def _security_requirements(api: ApiDefinition) -> Iterator[tuple[list[str], Any]]:
    """Yield ``(path, requirements)`` for the global and every operation's own ``security``."""
    yield ["security"], api.resolved_full.get("security")
    for path in api.get_paths():
        for operation in path.operations:
            yield operation.path + ["security"], operation.definition.get("security")


def check_security(api: ApiDefinition, result: ValidationResult) -> None:
    """Security requirements must name declared definitions and scopes."""
    declared = api.resolved_full.get("securityDefinitions") or {}
    for base, requirements in _security_requirements(api):
        for index, requirement in _entries(requirements):
            for name, scopes in _entries(requirement):
                location = base + [index, name]
                definition = declared.get(name)
                if not isinstance(definition, dict):
                    result.errors.append(
                        Issue(
                            code="UNRESOLVABLE_REFERENCE",
                            message=f"Security definition could not be resolved: {name}",
                            path=location,
                        )
                    )
                    continue
                known = definition.get("scopes") or {}
                for position, scope in _entries(scopes):
                    if scope not in known:
                        result.errors.append(
                            Issue(
                                code="UNRESOLVABLE_REFERENCE",
                                message=f"Security scope definition could not be resolved: {scope}",
                                path=location + [position],
                            )
                        )


# --- Unused definitions ---


def _is_used(ptr: str, targets: set[str]) -> bool:
    return any(target == ptr or target.startswith(ptr + "/") for target in targets)


def check_unused_definitions(api: ApiDefinition, result: ValidationResult) -> None:
    """Warn about reusable entries nothing refers to."""
    targets = {
        outcome.location
        for outcome in api.references
        if outcome.type == "local" and not outcome.missing
    }
    document = api.resolved_local
    for section in _REFERENCEABLE_SECTIONS:
        for name, _ in _entries(document.get(section)):
            ptr = path_to_ptr([section, name])
            if not _is_used(ptr, targets):
                result.warnings.append(
                    Issue(
                        code="UNUSED_DEFINITION",
                        message=f"Definition is not used: {ptr}",
                        path=[section, name],
                    )
                )

    used_schemes: dict[str, set[str]] = {}
    for _, requirements in _security_requirements(api):
        for _, requirement in _entries(requirements):
            for name, scopes in _entries(requirement):
                used_schemes.setdefault(name, set()).update(
                    scope for _, scope in _entries(scopes) if isinstance(scope, str)
                )
    for name, definition in _entries(api.resolved_full.get("securityDefinitions")):
        path = ["securityDefinitions", name]
        if name not in used_schemes:
            result.warnings.append(
                Issue(
                    code="UNUSED_DEFINITION",
                    message=f"Definition is not used: {path_to_ptr(path)}",
                    path=path,
                )
            )
            continue
        scopes = definition.get("scopes") if isinstance(definition, dict) else None
        for scope, _ in _entries(scopes):
            if scope not in used_schemes[name]:
                scope_path = path + ["scopes", scope]
                result.warnings.append(
                    Issue(
                        code="UNUSED_DEFINITION",
                        message=f"Definition is not used: {path_to_ptr(scope_path)}",
                        path=scope_path,
                    )
                )


SEMANTIC_CHECKS: tuple[SemanticCheck, ...] = (
    check_references,
    check_circular_inheritance,
    check_array_items,
    check_required_properties,
    check_default_values,
    check_paths,
    check_operations,
    check_security,
    check_unused_definitions,
)


def validate_semantics(api: ApiDefinition) -> ValidationResult:
    """Run every semantic check against *api*."""
    result = ValidationResult()
    for check in SEMANTIC_CHECKS:
        check(api, result)
        logger.debug("%s: %d errors, %d warnings so far", check.__name__, len(result.errors), len(result.warnings))
    return result
