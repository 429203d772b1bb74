"""JSON Schema support: value validation, document validation and samples.

Sub-modules:

* :mod:`~specway.schema.validator` -- draft-04 validation with Swagger
  formats, translated into :class:`~specway.models.Issue` values.
* :mod:`~specway.schema.sample` -- Faker-backed sample generation.
* :mod:`~specway.schema.swagger20` -- the Swagger 2.0 JSON Schema.
"""

from specway.schema.sample import generate
from specway.schema.validator import validate_document, validate_value

__all__ = ["generate", "validate_document", "validate_value"]
