"""Generate sample values that satisfy a Swagger schema.

Values come from a per-call :class:`faker.Faker` instance, seeded when a
seed is given so samples are reproducible.  String ``format`` values are
produced by a format generator: registered generators are consulted first,
then the built-in ones.  A string format neither knows about raises
:class:`~specway.exceptions.UnknownFormatError`.

Example::

    generate({"type": "string", "format": "date-time"}, seed=1)
    # '1984-03-12T17:21:09+00:00'
"""

from __future__ import annotations

import base64
import math
from datetime import timezone
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

import rstr
from faker import Faker

from specway.exceptions import UnknownFormatError

FormatGenerator = Callable[[dict[str, Any]], Any]

# Nested objects/arrays beyond this depth are emitted empty
_MAX_DEPTH = 8

_BUILTIN_STRING_FORMATS: dict[str, Callable[[Faker], str]] = {
    "date": lambda fake: fake.date(),
    "date-time": lambda fake: fake.date_time(tzinfo=timezone.utc).isoformat(),
    "email": lambda fake: fake.email(),
    "uri": lambda fake: fake.uri(),
    "uuid": lambda fake: fake.uuid4(),
    "hostname": lambda fake: fake.hostname(),
    "ipv4": lambda fake: fake.ipv4(),
    "ipv6": lambda fake: fake.ipv6(),
    "byte": lambda fake: base64.b64encode(fake.binary(length=12)).decode("ascii"),
    "binary": lambda fake: fake.pystr(),
    "password": lambda fake: fake.password(),
}


class SampleGenerator:
    """Builds sample values for schemas.

    Args:
        format_generators: Registered generators keyed by format name.  Each
            is called with the schema being sampled.
        seed: Seed for the underlying Faker instance.
    """

    def __init__(
        self,
        format_generators: Optional[Mapping[str, FormatGenerator]] = None,
        seed: Optional[int] = None,
    ):
        self._format_generators = dict(format_generators or {})
        self._faker = Faker()
        if seed is not None:
            self._faker.seed_instance(seed)

    def sample(self, schema: Any, depth: int = 0) -> Any:
        if not isinstance(schema, dict):
            return None
        if "enum" in schema and schema["enum"]:
            return schema["enum"][0]
        if "default" in schema:
            return schema["default"]
        if "example" in schema:
            return schema["example"]

        kind = schema.get("type")
        if isinstance(kind, list):
            kind = kind[0] if kind else None
        if kind is None:
            if "properties" in schema or "allOf" in schema:
                kind = "object"
            elif "items" in schema:
                kind = "array"

        if kind == "object" or kind is None:
            return self._object(schema, depth)
        if kind == "array":
            return self._array(schema, depth)
        if kind == "integer":
            return self._integer(schema)
        if kind == "number":
            return self._number(schema)
        if kind == "boolean":
            return self._faker.pybool()
        if kind == "null":
            return None
        if kind == "file":
            return self._faker.file_name()
        return self._string(schema)

    def _object(self, schema: dict[str, Any], depth: int) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if depth >= _MAX_DEPTH:
            return result
        for part in schema.get("allOf", []):
            value = self.sample(part, depth + 1)
            if isinstance(value, dict):
                result.update(value)
        for name, prop in schema.get("properties", {}).items():
            result[name] = self.sample(prop, depth + 1)
        return result

    def _array(self, schema: dict[str, Any], depth: int) -> list[Any]:
        if depth >= _MAX_DEPTH:
            return []
        items = schema.get("items", {})
        if isinstance(items, list):
            return [self.sample(item, depth + 1) for item in items]
        count = max(schema.get("minItems", 1), 1)
        if "maxItems" in schema:
            count = min(count, schema["maxItems"])
        return [self.sample(items, depth + 1) for _ in range(count)]

    def _bounds(self, schema: dict[str, Any], step: float) -> tuple[float, float]:
        low = schema.get("minimum")
        high = schema.get("maximum")
        if low is not None and schema.get("exclusiveMinimum"):
            low += step
        if high is not None and schema.get("exclusiveMaximum"):
            high -= step
        if low is None:
            low = 0 if high is None or high >= 0 else high - 100
        if high is None:
            high = low + 100
        return low, high

    def _multiple_between(self, low: float, high: float, multiple: Any) -> Any:
        """Pick a multiple of *multiple* in ``[low, high]``.

        Falls back to the first multiple above *low* when none fits.
        """
        step = Decimal(str(multiple))
        first = math.ceil(Decimal(str(low)) / step)
        last = math.floor(Decimal(str(high)) / step)
        value = step * (self._faker.random_int(first, last) if first <= last else first)
        return int(value) if value == value.to_integral_value() else float(value)

    def _integer(self, schema: dict[str, Any]) -> int:
        low, high = self._bounds(schema, 1)
        low, high = math.ceil(low), math.floor(high)
        multiple = schema.get("multipleOf")
        if isinstance(multiple, (int, float)) and multiple > 0 and multiple == int(multiple):
            return int(self._multiple_between(low, high, int(multiple)))
        return self._faker.random_int(low, max(low, high))

    def _number(self, schema: dict[str, Any]) -> float:
        low, high = self._bounds(schema, 0.001)
        multiple = schema.get("multipleOf")
        if isinstance(multiple, (int, float)) and multiple > 0:
            return self._multiple_between(low, high, multiple)
        return self._faker.random.uniform(low, high)

    def _string(self, schema: dict[str, Any]) -> Any:
        fmt = schema.get("format")
        if fmt is not None:
            if fmt in self._format_generators:
                return self._format_generators[fmt](schema)
            if fmt in _BUILTIN_STRING_FORMATS:
                return _BUILTIN_STRING_FORMATS[fmt](self._faker)
            raise UnknownFormatError(fmt)
        if "pattern" in schema:
            return rstr.Rstr(self._faker.random).xeger(schema["pattern"])
        max_length = schema.get("maxLength", max(schema.get("minLength", 1), 20))
        min_length = min(schema.get("minLength", 1), max_length)
        return self._faker.pystr(min_chars=min_length, max_chars=max_length)


def generate(
    schema: Any,
    format_generators: Optional[Mapping[str, FormatGenerator]] = None,
    seed: Optional[int] = None,
) -> Any:
    """Return a sample value for *schema*.

    Raises:
        UnknownFormatError: If a string format has no generator.
    """
    return SampleGenerator(format_generators, seed).sample(schema)
