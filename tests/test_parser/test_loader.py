"""Tests for specway.parser.loader."""

from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from specway.exceptions import SpecParseError
from specway.parser.loader import (
    _load_from_file,
    _load_from_stdin,
    _load_from_url,
    _parse_content,
    fetch_document,
    is_url,
    load_document,
    validate_swagger_version,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


# ---------------------------------------------------------------------------
# load_document dispatch
# ---------------------------------------------------------------------------


class TestLoadDocument:
    """Test load_document routes to the correct loader."""

    def test_loads_from_file_json(self) -> None:
        result = load_document(str(FIXTURES_DIR / "petstore.json"))
        assert result["swagger"] == "2.0"
        assert result["info"]["title"] == "Swagger Petstore"

    def test_loads_from_file_yaml(self) -> None:
        result = load_document(str(FIXTURES_DIR / "relative-refs" / "swagger.yaml"))
        assert result["swagger"] == "2.0"
        assert result["info"] == {"$ref": "info.yaml"}

    def test_loads_from_stdin(self) -> None:
        body = json.dumps({"swagger": "2.0", "info": {"title": "stdin test", "version": "1.0"}})
        with patch("specway.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(body)
            result = load_document("-")
        assert result["info"]["title"] == "stdin test"

    def test_loads_from_url(self) -> None:
        document = {"swagger": "2.0", "info": {"title": "URL test", "version": "1.0"}}
        mock_response = httpx.Response(
            status_code=200,
            json=document,
            request=httpx.Request("GET", "https://example.com/swagger.json"),
        )
        with patch("specway.parser.loader.httpx.get", return_value=mock_response) as mock_get:
            result = load_document("https://example.com/swagger.json", timeout=5.0)
        assert result["info"]["title"] == "URL test"
        assert mock_get.call_args.kwargs["timeout"] == 5.0


class TestFetchDocument:
    def test_is_url(self) -> None:
        assert is_url("https://example.com/a.json")
        assert is_url("http://example.com/a.json")
        assert not is_url("definitions.json")
        assert not is_url("/tmp/a.json")

    def test_fetches_file(self) -> None:
        result = fetch_document(str(FIXTURES_DIR / "relative-refs" / "info.yaml"))
        assert result["title"] == "Swagger Petstore"

    def test_missing_file_raises(self) -> None:
        with pytest.raises(SpecParseError, match="not found"):
            fetch_document("/nonexistent/fake.json")


# ---------------------------------------------------------------------------
# _load_from_file
# ---------------------------------------------------------------------------


class TestLoadFromFile:
    """Test loading documents from local files."""

    def test_load_json_file(self) -> None:
        result = _load_from_file(str(FIXTURES_DIR / "petstore.json"))
        assert isinstance(result, dict)
        assert "paths" in result

    def test_load_yaml_file(self, tmp_path: Path) -> None:
        content = textwrap.dedent("""\
            swagger: "2.0"
            info:
              title: Test
              version: "1.0"
            paths:
              /hello:
                get:
                  summary: Hello
                  responses:
                    "200":
                      description: OK
        """)
        yaml_file = tmp_path / "test.yaml"
        yaml_file.write_text(content, encoding="utf-8")
        result = _load_from_file(str(yaml_file))
        assert result["paths"]["/hello"]["get"]["summary"] == "Hello"

    def test_file_not_found_raises(self) -> None:
        with pytest.raises(SpecParseError, match="not found"):
            _load_from_file("/nonexistent/path/to/swagger.json")

    def test_empty_file_raises(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.json"
        empty.write_text("", encoding="utf-8")
        with pytest.raises(SpecParseError, match="empty"):
            _load_from_file(str(empty))

    def test_invalid_json_file_raises(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("{invalid json", encoding="utf-8")
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            _load_from_file(str(bad))

    def test_non_object_json_raises(self, tmp_path: Path) -> None:
        array_file = tmp_path / "array.json"
        array_file.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            _load_from_file(str(array_file))


# ---------------------------------------------------------------------------
# _load_from_stdin
# ---------------------------------------------------------------------------


class TestLoadFromStdin:
    """Test loading documents from stdin."""

    def test_reads_yaml_from_stdin(self) -> None:
        yaml_content = textwrap.dedent("""\
            swagger: "2.0"
            info:
              title: YAML stdin
              version: "1.0"
        """)
        with patch("specway.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(yaml_content)
            result = _load_from_stdin()
        assert result["info"]["title"] == "YAML stdin"

    def test_empty_stdin_raises(self) -> None:
        with patch("specway.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("   \n\t\n  ")
            with pytest.raises(SpecParseError, match="No input"):
                _load_from_stdin()


# ---------------------------------------------------------------------------
# _load_from_url
# ---------------------------------------------------------------------------


class TestLoadFromUrl:
    """Test loading documents from URLs."""

    def test_loads_yaml_from_url(self) -> None:
        yaml_body = textwrap.dedent("""\
            swagger: "2.0"
            info:
              title: YAML Remote
              version: "1.0"
        """)
        mock_response = httpx.Response(
            status_code=200,
            text=yaml_body,
            headers={"content-type": "application/x-yaml"},
            request=httpx.Request("GET", "https://example.com/swagger.yaml"),
        )
        with patch("specway.parser.loader.httpx.get", return_value=mock_response):
            result = _load_from_url("https://example.com/swagger.yaml")
        assert result["info"]["title"] == "YAML Remote"

    def test_http_error_raises(self) -> None:
        mock_response = httpx.Response(
            status_code=404,
            request=httpx.Request("GET", "https://example.com/missing.json"),
        )
        with patch("specway.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(SpecParseError, match="HTTP 404"):
                _load_from_url("https://example.com/missing.json")

    def test_connection_error_raises(self) -> None:
        with patch(
            "specway.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("Connection refused"),
        ):
            with pytest.raises(SpecParseError, match="Failed to fetch"):
                _load_from_url("https://unreachable.example.com/swagger.json")


# ---------------------------------------------------------------------------
# _parse_content
# ---------------------------------------------------------------------------


class TestParseContent:
    """Test content parsing with format detection."""

    def test_parses_json(self) -> None:
        assert _parse_content('{"key": "value"}') == {"key": "value"}

    def test_parses_yaml(self) -> None:
        result = _parse_content("key: value\nnested:\n  a: 1")
        assert result == {"key": "value", "nested": {"a": 1}}

    def test_json_hint_forces_json_only(self) -> None:
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            _parse_content("not: valid: json: {{{", hint="json")

    def test_invalid_content_raises(self) -> None:
        with pytest.raises(SpecParseError, match="Failed to parse"):
            _parse_content("}{not valid at all][", hint="")

    def test_null_yaml_raises(self) -> None:
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            _parse_content("---\n", hint="yaml")


# ---------------------------------------------------------------------------
# validate_swagger_version
# ---------------------------------------------------------------------------


class TestValidateSwaggerVersion:
    """Test Swagger version validation."""

    def test_accepts_2_0(self) -> None:
        assert validate_swagger_version({"swagger": "2.0"}) == "2.0"

    def test_version_as_number(self) -> None:
        assert validate_swagger_version({"swagger": 2.0}) == "2.0"

    def test_rejects_openapi_3(self) -> None:
        with pytest.raises(SpecParseError, match="OpenAPI 3.0.3 is not supported"):
            validate_swagger_version({"openapi": "3.0.3"})

    def test_rejects_missing_swagger_field(self) -> None:
        with pytest.raises(SpecParseError, match="Missing 'swagger' field"):
            validate_swagger_version({"info": {"title": "test"}})

    def test_rejects_unsupported_version(self) -> None:
        with pytest.raises(SpecParseError, match="Unsupported Swagger version: 1.2"):
            validate_swagger_version({"swagger": "1.2"})
