"""Tests for specway.parameter -- extraction, coercion and validation."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from specway import ApiDefinition
from specway.parameter import coerce, schema_view


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _add_query_param(document: dict[str, Any], definition: dict[str, Any]) -> None:
    document["paths"]["/user/login"]["get"]["parameters"].append(definition)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestSchemaView:
    def test_non_body_parameter(self) -> None:
        definition = {
            "name": "orderId",
            "in": "path",
            "required": True,
            "type": "integer",
            "maximum": 10,
            "format": "int64",
        }
        assert schema_view(definition) == {"type": "integer", "maximum": 10, "format": "int64"}

    def test_body_parameter(self) -> None:
        schema = {"type": "object"}
        assert schema_view({"name": "body", "in": "body", "schema": schema}) is schema
        assert schema_view({"name": "body", "in": "body"}) == {}


class TestCoerce:
    @pytest.mark.parametrize(
        "raw, schema, expected",
        [
            ("5", {"type": "integer"}, 5),
            ("abc", {"type": "integer"}, "abc"),
            ("1.5", {"type": "number"}, 1.5),
            ("2", {"type": "number"}, 2),
            ("TRUE", {"type": "boolean"}, True),
            ("false", {"type": "boolean"}, False),
            ("yes", {"type": "boolean"}, "yes"),
            ("text", {"type": "string"}, "text"),
            (7, {"type": "string"}, 7),
            ("-3", {"type": "integer"}, -3),
            ("1e3", {"type": "number"}, 1000.0),
            ("1_000", {"type": "integer"}, "1_000"),
            (" 7 ", {"type": "integer"}, " 7 "),
            ("\u0663", {"type": "integer"}, "\u0663"),
            ("1.5", {"type": "integer"}, "1.5"),
            ("inf", {"type": "number"}, "inf"),
            ("nan", {"type": "number"}, "nan"),
            ("1_000.5", {"type": "number"}, "1_000.5"),
        ],
    )
    def test_scalars(self, raw: Any, schema: dict[str, Any], expected: Any) -> None:
        assert coerce(raw, schema) == expected

    @pytest.mark.parametrize(
        "raw, collection_format, expected",
        [
            ("1,2", "csv", [1, 2]),
            ("1 2", "ssv", [1, 2]),
            ("1\t2", "tsv", [1, 2]),
            ("1|2", "pipes", [1, 2]),
            ("1", "multi", [1]),
            ("", "csv", []),
        ],
    )
    def test_collection_formats(self, raw: str, collection_format: str, expected: list[int]) -> None:
        schema = {"type": "array", "items": {"type": "integer"}, "collectionFormat": collection_format}
        assert coerce(raw, schema) == expected

    def test_list_items_are_coerced(self) -> None:
        assert coerce(["1", "x"], {"type": "array", "items": {"type": "integer"}}) == [1, "x"]


# ---------------------------------------------------------------------------
# get_value
# ---------------------------------------------------------------------------


class TestPathParameters:
    def test_value_is_coerced(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("getPetById").get_parameter("petId")
        outcome = param.get_value({"url": "/v2/pet/12"})
        assert outcome.raw == "12"
        assert outcome.value == 12
        assert outcome.valid

    def test_invalid_value(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("getPetById").get_parameter("petId")
        outcome = param.get_value({"url": "/v2/pet/abc"})
        assert outcome.value == "abc"
        assert outcome.error.code == "SCHEMA_VALIDATION_FAILED"
        assert outcome.error.message == "Value failed JSON Schema validation"
        assert outcome.error.failed_validation is True
        assert outcome.error.path == ["paths", "/pet/{petId}", "parameters", "0"]
        assert outcome.error.errors[0].code == "INVALID_TYPE"
        assert outcome.error.errors[0].params == ["integer", "string"]

    def test_python_only_number_syntax_is_rejected(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("getPetById").get_parameter("petId")
        outcome = param.get_value({"url": "/v2/pet/1_000"})
        assert outcome.value == "1_000"
        assert outcome.error.code == "SCHEMA_VALIDATION_FAILED"

    def test_value_is_url_decoded(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("getUserByName").get_parameter("username")
        assert param.get_value({"url": "/v2/user/jane%20doe"}).value == "jane doe"

    def test_path_parameters_are_required(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("getPetById").get_parameter("petId")
        assert param.required
        outcome = param.get_value({})
        assert outcome.error.code == "REQUIRED"
        assert outcome.error.message == "Value is required but was not provided"


class TestQueryParameters:
    def test_multi_collection_from_url(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("findPetsByStatus").get_parameter("status")
        outcome = param.get_value({"url": "/v2/pet/findByStatus?status=available&status=sold"})
        assert outcome.value == ["available", "sold"]
        assert outcome.valid

    def test_multi_collection_single_value(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("findPetsByStatus").get_parameter("status")
        assert param.get_value({"url": "/v2/pet/findByStatus?status=sold"}).value == ["sold"]

    def test_csv_collection_from_query(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("findPetsByTags").get_parameter("tags")
        assert param.get_value({"query": {"tags": "a,b"}}).value == ["a", "b"]

    def test_enum_violation(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("findPetsByStatus").get_parameter("status")
        outcome = param.get_value({"query": {"status": ["lost"]}})
        assert outcome.error.errors[0].code == "ENUM_MISMATCH"
        assert outcome.error.errors[0].path == ["0"]

    def test_default_applies_when_absent(
        self, petstore_raw: dict[str, Any], build_api: Callable[[dict[str, Any]], ApiDefinition]
    ) -> None:
        _add_query_param(petstore_raw, {"name": "limit", "in": "query", "type": "integer", "default": 10})
        api = build_api(petstore_raw)
        outcome = api.get_operation("loginUser").get_parameter("limit").get_value({"url": "/v2/user/login"})
        assert outcome.raw is None
        assert outcome.value == 10
        assert outcome.valid

    def test_optional_absent_parameter(
        self, petstore_raw: dict[str, Any], build_api: Callable[[dict[str, Any]], ApiDefinition]
    ) -> None:
        _add_query_param(petstore_raw, {"name": "remember", "in": "query", "type": "boolean"})
        api = build_api(petstore_raw)
        param = api.get_operation("loginUser").get_parameter("remember")
        outcome = param.get_value({"url": "/v2/user/login"})
        assert outcome.value is None
        assert outcome.error is None
        assert param.get_value({"url": "/v2/user/login?remember=true"}).value is True

    def test_hierarchical_names(
        self, petstore_raw: dict[str, Any], build_api: Callable[[dict[str, Any]], ApiDefinition]
    ) -> None:
        _add_query_param(petstore_raw, {"name": "page[size]", "in": "query", "type": "integer"})
        api = build_api(petstore_raw)
        param = api.get_operation("loginUser").get_parameter("page[size]")
        assert param.get_value({"query": {"page": {"size": "5"}}}).value == 5
        assert param.get_value({"query": {"page[size]": "6"}}).value == 6
        assert param.get_value({"query": {"page": "7"}}).value is None


class TestHeaderParameters:
    def test_lookup_is_case_insensitive(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("deletePet").get_parameter("api_key")
        assert param.get_value({"headers": {"API_KEY": "secret"}}).value == "secret"

    def test_absent_optional_header(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("deletePet").get_parameter("api_key")
        assert param.get_value({"headers": {}}).valid


class TestFormDataParameters:
    def test_form_field(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("updatePetWithForm").get_parameter("name")
        assert param.get_value({"body": {"name": "doggie"}}).value == "doggie"

    def test_file_is_taken_as_is(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("uploadFile").get_parameter("file")
        upload = object()
        assert param.is_file
        outcome = param.get_value({"files": {"file": upload}})
        assert outcome.value is upload
        assert outcome.valid

    def test_missing_optional_file(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("uploadFile").get_parameter("file")
        assert param.get_value({"url": "/v2/pet/1/uploadImage"}).valid


class TestBodyParameters:
    def test_parsed_body(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("addPet").get_parameter("body")
        body = {"name": "doggie", "photoUrls": ["http://example.com/1.png"]}
        outcome = param.get_value({"body": body})
        assert outcome.value == body
        assert outcome.valid

    def test_json_text_body(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("addPet").get_parameter("body")
        outcome = param.get_value(
            {
                "headers": {"Content-Type": "application/json"},
                "body": '{"name": "doggie", "photoUrls": []}',
            }
        )
        assert outcome.raw == '{"name": "doggie", "photoUrls": []}'
        assert outcome.value == {"name": "doggie", "photoUrls": []}
        assert outcome.valid

    def test_body_missing_required_property(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("addPet").get_parameter("body")
        outcome = param.get_value({"body": {"name": "doggie"}})
        assert [issue.message for issue in outcome.error.errors] == ["Missing required property: photoUrls"]

    def test_text_body_against_object_schema(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("addPet").get_parameter("body")
        outcome = param.get_value({"headers": {"content-type": "text/plain"}, "body": "Some value"})
        nested = outcome.error.errors[0]
        assert nested.code == "INVALID_TYPE"
        assert nested.params == ["object", "string"]
        assert nested.path == []

    def test_absent_required_body(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("addPet").get_parameter("body")
        assert param.get_value({"url": "/v2/pet"}).error.code == "REQUIRED"


class TestByteBodies:
    @pytest.fixture
    def string_body_api(
        self, petstore_raw: dict[str, Any], build_api: Callable[[dict[str, Any]], ApiDefinition]
    ) -> ApiDefinition:
        body = petstore_raw["paths"]["/pet"]["post"]["parameters"][0]
        body["schema"] = {"type": "string", "minLength": 3, "maxLength": 3}
        return build_api(petstore_raw)

    def test_utf8_bytes_counted_in_characters(self, string_body_api: ApiDefinition) -> None:
        param = string_body_api.get_operation("addPet").get_parameter("body")
        outcome = param.get_value({"headers": {"content-type": "text/plain"}, "body": "été".encode("utf-8")})
        assert outcome.raw == "été".encode("utf-8")
        assert outcome.value == "été"
        assert outcome.valid

    def test_bytes_decoded_with_encoding(self, string_body_api: ApiDefinition) -> None:
        param = string_body_api.get_operation("addPet").get_parameter("body")
        outcome = param.get_value(
            {"headers": {"content-type": "text/plain"}, "body": "été".encode("latin-1"), "encoding": "latin-1"}
        )
        assert outcome.value == "été"
        assert outcome.valid

    def test_too_long_after_decoding(self, string_body_api: ApiDefinition) -> None:
        param = string_body_api.get_operation("addPet").get_parameter("body")
        outcome = param.get_value({"headers": {"content-type": "text/plain"}, "body": b"four"})
        assert outcome.error.code == "SCHEMA_VALIDATION_FAILED"
        assert outcome.error.errors[0].code == "MAX_LENGTH"

    def test_unknown_encoding_is_reported(self, petstore: ApiDefinition) -> None:
        param = petstore.get_operation("addPet").get_parameter("body")
        request = {
            "headers": {"content-type": "application/json"},
            "body": b'{"name": "x", "photoUrls": []}',
            "encoding": "no-such-codec",
        }
        outcome = param.get_value(request)
        assert outcome.raw == request["body"]
        assert outcome.value is None
        assert outcome.error.code == "INVALID_BODY_ENCODING"
        assert "no-such-codec" in outcome.error.message
        assert outcome.error.path == ["paths", "/pet", "post", "parameters", "0"]

    def test_invalid_utf8_is_reported(self, string_body_api: ApiDefinition) -> None:
        param = string_body_api.get_operation("addPet").get_parameter("body")
        outcome = param.get_value({"headers": {"content-type": "text/plain"}, "body": b"\xffab"})
        assert outcome.error.code == "INVALID_BODY_ENCODING"
        assert outcome.error.message.startswith("Unable to decode body")


class TestGetSample:
    def test_sample_is_valid(self, petstore: ApiDefinition) -> None:
        operation = petstore.get_operation("getOrderById")
        param = operation.get_parameter("orderId")
        sample = param.get_sample()
        assert 1 <= sample <= 10
        assert param.get_value({"url": f"/v2/store/order/{sample}"}).valid

    def test_seeded_samples_repeat(self, petstore_raw: dict[str, Any]) -> None:
        from specway import create

        first = create(petstore_raw, sample_seed=5).get_operation("addPet").get_parameter("body").get_sample()
        second = create(petstore_raw, sample_seed=5).get_operation("addPet").get_parameter("body").get_sample()
        assert first == second
