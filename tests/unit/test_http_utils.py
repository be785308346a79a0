import json

import pytest

from src.shared.http_utils import (
    flag,
    parse_model,
    positive_int,
    read_json_body,
    response_for_exception,
    trace_id_for,
)
from src.specs.common.errors import ResourceNotFoundError, ValidationError
from src.specs.documents.poster_document_spec import PosterInput
from tests.helpers import http_request


class TestRequestHelpers:
    """Test cases for request parsing helpers"""

    def test_trace_id_from_header(self):
        req = http_request("GET", "health", headers={"x-request-id": "abc"})
        assert trace_id_for(req) == "abc"
        assert len(trace_id_for(http_request("GET", "health"))) == 32

    @pytest.mark.parametrize("value, expected", [(None, 1), ("", 1), ("3", 3)])
    def test_positive_int(self, value, expected):
        assert positive_int(value, "page") == expected

    @pytest.mark.parametrize("value", ["0", "-2", "two"])
    def test_positive_int_rejects(self, value):
        with pytest.raises(ValidationError, match="page must be a positive integer"):
            positive_int(value, "page")

    @pytest.mark.parametrize("value, expected", [("true", True), ("1", True), ("YES", True), ("false", False), (None, False)])
    def test_flag(self, value, expected):
        assert flag(value) is expected

    def test_read_json_body(self):
        assert read_json_body(http_request("POST", "x", json_body={"a": 1})) == {"a": 1}
        with pytest.raises(ValidationError, match="Invalid JSON"):
            read_json_body(http_request("POST", "x", body=b"{oops"))
        with pytest.raises(ValidationError, match="must be an object"):
            read_json_body(http_request("POST", "x", json_body=[1, 2]))

    def test_parse_model_collects_errors(self):
        with pytest.raises(ValidationError) as excinfo:
            parse_model(PosterInput, {"title": "x"})
        fields = {tuple(e["loc"]) for e in excinfo.value.details["errors"]}
        assert fields == {("category",), ("imageKey",)}


class TestResponseForException:
    """Test cases for error translation"""

    def test_application_error(self):
        resp = response_for_exception(ResourceNotFoundError("Poster", "p1"), "t", "test:error", "Reading")
        assert resp.status_code == 404
        body = json.loads(resp.get_body())
        assert body["code"] == "RESOURCE_NOT_FOUND"
        assert body["error"] == "Poster with id 'p1' not found"

    def test_unexpected_error(self):
        resp = response_for_exception(RuntimeError("boom"), "t", "test:error", "Reading")
        assert resp.status_code == 500
        assert json.loads(resp.get_body()) == {"error": "Reading failed", "code": "INTERNAL_ERROR", "details": "boom"}
