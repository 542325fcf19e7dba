import json
from types import MappingProxyType

import pytest

from openapi_assertions.errors import ResponseParseError
from openapi_assertions.validator.compiler import ResponseValidators, build_registry
from openapi_assertions.validator.engine import (
    lookup_status,
    to_pointer,
    validate_response,
    value_at_pointer,
)


def _response(method, url, status, body=None):
    return {
        "request": {"method": method, "url": url},
        "statusCode": status,
        "headers": {"content-type": "application/json"},
        "body": lambda: body,
    }


class TestValidResponses:
    def test_list_pets(self, registry):
        body = [
            {"id": 1, "name": "Fluffy", "tag": None, "status": "available"},
            {"id": 2, "name": "Buddy", "status": "pending"},
        ]
        result = validate_response(_response("GET", "/pets", 200, body), registry)
        assert result.valid is True
        assert result.errors is None
        assert (result.route, result.method, result.status) == ("/pets", "GET", "200")

    def test_nullable_via_type_array(self, registry):
        body = {"id": 1, "name": "Fluffy", "tag": None}
        assert validate_response(_response("GET", "/pets/1", 200, body), registry).valid

    def test_no_body_schema_accepts_any_body(self, registry):
        result = validate_response(_response("DELETE", "/pets/1", 204, "anything"), registry)
        assert result.valid

    def test_non_json_content_is_not_validated(self, registry):
        assert validate_response(_response("GET", "/health", 200, "OK"), registry).valid

    def test_literal_route_wins(self, registry):
        body = {"id": 1, "email": "me@example.com", "roles": ["admin"]}
        result = validate_response(_response("GET", "/users/me", 200, body), registry)
        assert result.valid
        assert result.route == "/users/me"

    def test_sibling_keys_override_referenced_schema(self, registry):
        body = {"id": 1, "email": "me@example.com"}
        result = validate_response(_response("GET", "/users/me", 200, body), registry)
        assert not result.valid
        assert result.errors[0].keyword == "required"
        assert "roles" in result.errors[0].message


class TestStatusLookup:
    def test_default_fallback(self, registry):
        body = {"code": 500, "message": "boom"}
        result = validate_response(_response("GET", "/pets", 500, body), registry)
        assert result.valid
        assert result.status == "default"

    def test_wildcard_fallback(self, registry):
        body = {"code": 422, "message": "bad name"}
        result = validate_response(_response("POST", "/pets", 422, body), registry)
        assert result.valid
        assert result.status == "4XX"

    def test_lookup_priority(self):
        responses = MappingProxyType(
            {"4XX": ResponseValidators(), "default": ResponseValidators(), "404": ResponseValidators()}
        )
        assert lookup_status(responses, "404") == "404"
        assert lookup_status(responses, "400") == "default"
        assert lookup_status({"4XX": ResponseValidators()}, "400") == "4XX"
        assert lookup_status({"200": ResponseValidators()}, "500") is None


class TestFailures:
    def test_missing_required_field(self, registry):
        result = validate_response(_response("GET", "/pets/1", 200, {"id": 1}), registry)
        assert result.valid is False
        [error] = result.errors
        assert error.keyword == "required"
        assert "'name' is a required property" in error.message
        assert error.path == ""
        assert error.expected == {"missingProperty": "name"}
        assert error.actual == {"id": 1}

    def test_each_missing_property_is_named(self, registry):
        result = validate_response(_response("GET", "/users/me", 200, {"id": 1}), registry)
        assert [e.keyword for e in result.errors] == ["required", "required"]
        assert [e.expected for e in result.errors] == [
            {"missingProperty": "email"},
            {"missingProperty": "roles"},
        ]

    def test_wrong_type_reports_pointer_and_actual(self, registry):
        body = [{"id": 1, "name": "Fluffy"}, {"id": "not-a-number", "name": "Buddy"}]
        result = validate_response(_response("GET", "/pets", 200, body), registry)
        assert not result.valid
        [error] = result.errors
        assert error.path == "/1/id"
        assert error.keyword == "type"
        assert error.expected == "integer"
        assert error.actual == "not-a-number"

    def test_reports_every_violation(self, registry):
        body = {"id": "x", "status": "lost"}
        result = validate_response(_response("GET", "/pets/1", 200, body), registry)
        keywords = sorted(e.keyword for e in result.errors)
        assert keywords == ["enum", "required", "type"]

    def test_error_response_body_is_validated(self, registry):
        result = validate_response(_response("GET", "/pets/9", 404, {"message": "gone"}), registry)
        assert not result.valid
        assert result.status == "404"

    def test_no_matching_path(self, registry):
        result = validate_response(_response("GET", "/unknown", 200, {}), registry)
        assert not result.valid
        [error] = result.errors
        assert "No matching path" in error.message
        assert error.actual == "/unknown"
        assert error.expected == registry.templates
        assert result.route is None

    def test_no_operation_for_method(self, registry):
        result = validate_response(_response("PATCH", "/pets", 200, {}), registry)
        [error] = result.errors
        assert "No PATCH operation defined for /pets" in error.message
        assert error.actual == "patch"
        assert result.route == "/pets"

    def test_no_response_for_status(self, registry):
        result = validate_response(_response("GET", "/pets/1", 418, {}), registry)
        [error] = result.errors
        assert "No response schema defined" in error.message
        assert error.expected == ["200", "404"]
        assert error.actual == "418"
        assert result.status is None

    def test_unrecognized_response_raises(self, registry):
        with pytest.raises(ResponseParseError):
            validate_response({"hello": "world"}, registry)

    @pytest.mark.parametrize("ref", ["#/components/schemas/Missing", "other.json#/Pet"])
    def test_unresolvable_ref_skips_body_check(self, tmp_path, ref):
        spec = tmp_path / "spec.json"
        doc = {
            "openapi": "3.1.0",
            "paths": {
                "/a": {
                    "get": {
                        "responses": {
                            "200": {"content": {"application/json": {"schema": {"$ref": ref}}}}
                        }
                    }
                }
            },
        }
        spec.write_text(json.dumps(doc), encoding="utf-8")

        result = validate_response(_response("GET", "/a", 200, {"any": "thing"}), build_registry([spec]))
        assert result.valid
        assert result.status == "200"


class TestBasePath:
    def test_base_path_is_stripped(self, petstore_path):
        registry = build_registry([petstore_path], base_path="/api/v1")
        body = {"id": 1, "name": "Fluffy"}
        result = validate_response(
            _response("GET", "http://petstore.example.com/api/v1/pets/1", 200, body), registry
        )
        assert result.valid
        assert result.route == "/pets/{petId}"


class TestPointers:
    def test_to_pointer_escapes(self):
        assert to_pointer([]) == ""
        assert to_pointer(["a/b", 0, "c~d"]) == "/a~1b/0/c~0d"

    def test_value_at_pointer(self):
        doc = {"pets": [{"name": "Fluffy"}], "a/b": 1}
        assert value_at_pointer(doc, "") == (True, doc)
        assert value_at_pointer(doc, "/pets/0/name") == (True, "Fluffy")
        assert value_at_pointer(doc, "/a~1b") == (True, 1)
        assert value_at_pointer(doc, "/pets/3") == (False, None)
        assert value_at_pointer(doc, "/missing") == (False, None)
