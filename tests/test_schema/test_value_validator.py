"""Tests for specway.schema.validator."""

from __future__ import annotations

import copy
from typing import Any

from specway.schema.swagger20 import SWAGGER_20
from specway.schema.validator import (
    SWAGGER_FORMATS,
    build_format_checker,
    json_type,
    validate_document,
    validate_value,
)


class TestValidateValue:
    """Value validation and error translation."""

    def test_valid_value(self) -> None:
        assert validate_value(3, {"type": "integer", "maximum": 10}) == []

    def test_type_mismatch(self) -> None:
        issues = validate_value("abc", {"type": "integer"})
        assert len(issues) == 1
        issue = issues[0]
        assert issue.code == "INVALID_TYPE"
        assert issue.message == "Expected type integer but found type string"
        assert issue.params == ["integer", "string"]
        assert issue.path == []

    def test_min_length(self) -> None:
        issues = validate_value("ab", {"type": "string", "minLength": 3})
        assert issues[0].code == "MIN_LENGTH"
        assert issues[0].message == "String is too short (2 chars), minimum 3"

    def test_maximum(self) -> None:
        issues = validate_value(11, {"type": "integer", "maximum": 10})
        assert issues[0].code == "MAXIMUM"
        assert issues[0].message == "Value 11 is greater than maximum 10"

    def test_exclusive_minimum(self) -> None:
        issues = validate_value(1, {"type": "integer", "minimum": 1, "exclusiveMinimum": True})
        assert issues[0].code == "MINIMUM_EXCLUSIVE"

    def test_enum_mismatch(self) -> None:
        issues = validate_value("sold-out", {"type": "string", "enum": ["available", "sold"]})
        assert issues[0].code == "ENUM_MISMATCH"
        assert issues[0].message == "No enum match for: sold-out"

    def test_required_properties_reported_in_order(self) -> None:
        issues = validate_value({}, {"type": "object", "required": ["name", "photoUrls"]})
        assert [issue.message for issue in issues] == [
            "Missing required property: name",
            "Missing required property: photoUrls",
        ]
        assert issues[1].params == ["photoUrls"]

    def test_nested_path(self) -> None:
        schema = {"type": "object", "properties": {"tags": {"type": "array", "items": {"type": "string"}}}}
        issues = validate_value({"tags": ["a", 2]}, schema)
        assert issues[0].path == ["tags", "1"]

    def test_description_is_carried(self) -> None:
        issues = validate_value("x", {"type": "integer", "description": "calls per hour"})
        assert issues[0].description == "calls per hour"

    def test_array_unique(self) -> None:
        issues = validate_value([1, 2, 1], {"type": "array", "uniqueItems": True})
        assert issues[0].code == "ARRAY_UNIQUE"
        assert issues[0].params == [0, 2]

    def test_additional_properties(self) -> None:
        schema = {"type": "object", "properties": {"a": {}}, "additionalProperties": False}
        issues = validate_value({"a": 1, "b": 2}, schema)
        assert issues[0].code == "OBJECT_ADDITIONAL_PROPERTIES"
        assert issues[0].message == "Additional properties not allowed: b"

    def test_file_type_accepts_anything(self) -> None:
        assert validate_value(object(), {"type": "file"}) == []

    def test_non_dict_schema_is_ignored(self) -> None:
        assert validate_value("x", None) == []

    def test_unresolvable_reference(self) -> None:
        issues = validate_value(1, {"$ref": "#/definitions/Missing"})
        assert [issue.code for issue in issues] == ["UNRESOLVABLE_REFERENCE"]


class TestFormats:
    """Built-in, Swagger-specific and custom formats."""

    def test_date_time(self) -> None:
        schema = {"type": "string", "format": "date-time"}
        assert validate_value("2016-05-24T10:00:00Z", schema) == []
        issues = validate_value("now", schema)
        assert issues[0].code == "INVALID_FORMAT"
        assert issues[0].message == "Object didn't pass validation for format date-time: now"
        assert issues[0].params == ["date-time", "now"]

    def test_int32_range(self) -> None:
        schema = {"type": "integer", "format": "int32"}
        assert validate_value(2**31 - 1, schema) == []
        assert validate_value(2**31, schema)[0].code == "INVALID_FORMAT"

    def test_byte(self) -> None:
        schema = {"type": "string", "format": "byte"}
        assert validate_value("c3dheQ==", schema) == []
        assert validate_value("not base64!", schema)[0].code == "INVALID_FORMAT"

    def test_unknown_format_is_ignored(self) -> None:
        assert validate_value("anything", {"type": "string", "format": "mystery"}) == []

    def test_custom_format(self) -> None:
        issues = validate_value(
            "shouldFail",
            {"type": "string", "format": "alwaysFails"},
            formats={"alwaysFails": lambda value: False},
        )
        assert issues[0].code == "INVALID_FORMAT"
        assert issues[0].params == ["alwaysFails", "shouldFail"]

    def test_custom_format_overrides_builtin(self) -> None:
        checker = build_format_checker({"int32": lambda value: False})
        assert not checker.conforms(1, "int32")

    def test_swagger_formats_registered(self) -> None:
        checker = build_format_checker()
        for name in SWAGGER_FORMATS:
            assert name in checker.checkers


class TestJsonType:
    def test_names(self) -> None:
        assert json_type(None) == "null"
        assert json_type(True) == "boolean"
        assert json_type(1) == "integer"
        assert json_type(1.5) == "number"
        assert json_type("a") == "string"
        assert json_type([]) == "array"
        assert json_type({}) == "object"


class TestValidateDocument:
    """Structural validation against the Swagger 2.0 JSON Schema."""

    def test_petstore_is_valid(self, petstore_raw: dict[str, Any]) -> None:
        assert validate_document(petstore_raw) == []

    def test_missing_info(self, petstore_raw: dict[str, Any]) -> None:
        del petstore_raw["info"]
        issues = validate_document(petstore_raw)
        assert len(issues) == 1
        issue = issues[0]
        assert issue.code == "OBJECT_MISSING_REQUIRED_PROPERTY"
        assert issue.message == "Missing required property: info"
        assert issue.path == []
        assert issue.schema_id == SWAGGER_20["id"]
        assert issue.title == SWAGGER_20["title"]

    def test_invalid_parameter_is_summarised(self, petstore_raw: dict[str, Any]) -> None:
        petstore_raw["paths"]["/pet"]["post"]["parameters"] = [{"name": "body"}]
        issues = validate_document(petstore_raw)
        assert len(issues) == 1
        assert issues[0].code == "ONE_OF_MISSING"
        assert issues[0].message == "Not a valid parameter definition"
        assert issues[0].path == ["paths", "/pet", "post", "parameters", "0"]

    def test_does_not_modify_document(self, petstore_raw: dict[str, Any]) -> None:
        before = copy.deepcopy(petstore_raw)
        validate_document(petstore_raw)
        assert petstore_raw == before

    def test_serialised_issue_uses_wire_names(self, petstore_raw: dict[str, Any]) -> None:
        del petstore_raw["paths"]
        data = validate_document(petstore_raw)[0].to_dict()
        assert data["schemaId"] == SWAGGER_20["id"]
        assert "schema_id" not in data
