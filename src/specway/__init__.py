"""specway -- a queryable, validating model of Swagger 2.0 API documents.

A document is loaded, its ``$ref`` references resolved, and the result is
wrapped in an object graph::

    ApiDefinition -> Path -> Operation -> Parameter / Response

The graph answers lookups (which operation serves ``GET /v2/pet/1``?),
extracts and validates request parameters, validates responses, and
checks the document itself for problems a JSON Schema cannot express.

Typical usage::

    import specway

    api = specway.create("petstore.yaml")
    print(api.validate().errors)

    operation = api.get_operation({"method": "GET", "url": "/v2/pet/1"})
    operation.validate_request({"url": "/v2/pet/1"})

Modules:
    definition: Document construction and the :class:`ApiDefinition` root.
    path, operation, parameter, response: The object graph.
    matcher: URL to path template matching.
    semantic: Document checks beyond the Swagger 2.0 JSON Schema.
    models: Pydantic models shared across the package.
    config: Configuration precedence resolution.
    exceptions: Exception hierarchy.
"""

from specway.definition import ApiDefinition, create, create_async
from specway.exceptions import (
    BodyDecodeError,
    ConfigError,
    InvalidArgumentError,
    ReferenceResolutionError,
    SpecParseError,
    SpecwayError,
    UnknownFormatError,
)
from specway.models import Issue, ParameterValue, SpecwayConfig, ValidationResult
from specway.operation import Operation
from specway.parameter import Parameter
from specway.path import Path
from specway.response import Response

__version__ = "0.1.0"

__all__ = [
    "ApiDefinition",
    "BodyDecodeError",
    "ConfigError",
    "InvalidArgumentError",
    "Issue",
    "Operation",
    "Parameter",
    "ParameterValue",
    "Path",
    "ReferenceResolutionError",
    "Response",
    "SpecParseError",
    "SpecwayConfig",
    "SpecwayError",
    "UnknownFormatError",
    "ValidationResult",
    "create",
    "create_async",
]
