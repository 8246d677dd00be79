"""
UXBOX Backend - Parameter Coercion Unit Tests
==============================================

What:  Tests for the coercion steps and the page parameter schemas.
How:   Steps are pure functions; schemas are validated directly with pydantic.
"""

from uuid import UUID, uuid4

import pytest
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError

from uxbox.exceptions import ValidationError
from uxbox.schemas.page import PageCreate, PageHistoryQuery, PageMetadataUpdate, PageUpdate
from uxbox.validation import (
    boolean_str,
    chain,
    describe_errors,
    integer,
    integer_str,
    required,
    string,
    uuid_str,
    validation_error_from_request,
)


class TestSteps:

    def test_required_rejects_none(self):
        with pytest.raises(ValueError, match="required"):
            required(None)
        assert required(0) == 0
        assert required({}) == {}

    def test_uuid_str(self):
        value = uuid4()
        assert uuid_str(str(value)) == value
        assert uuid_str(value) is value
        for bad in ("", "1234", 42, None, value.hex, f"urn:uuid:{value}", f"{{{value}}}"):
            with pytest.raises(ValueError):
                uuid_str(bad)

    @pytest.mark.parametrize("raw,expected", [("10", 10), ("-3", -3), ("+7", 7), (5, 5)])
    def test_integer_str_accepts(self, raw, expected):
        assert integer_str(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "1.5", "", "1e3", True, 2.0])
    def test_integer_str_rejects(self, raw):
        with pytest.raises(ValueError):
            integer_str(raw)

    @pytest.mark.parametrize("raw,expected", [("true", True), ("FALSE", False), (True, True)])
    def test_boolean_str_accepts(self, raw, expected):
        assert boolean_str(raw) is expected

    @pytest.mark.parametrize("raw", ["yes", "1", "", 1, None])
    def test_boolean_str_rejects(self, raw):
        with pytest.raises(ValueError):
            boolean_str(raw)

    def test_string_and_integer_are_strict(self):
        assert string("Home") == "Home"
        assert integer(3) == 3
        with pytest.raises(ValueError):
            string(3)
        with pytest.raises(ValueError):
            integer("3")
        with pytest.raises(ValueError):
            integer(True)

    def test_chain_stops_at_first_failure(self):
        calls = []

        def record(value):
            calls.append(value)
            return value

        with pytest.raises(ValueError, match="required"):
            chain(required, record)(None)
        assert calls == []
        assert chain(required, integer_str, record)("4") == 4
        assert calls == [4]


class TestPageSchemas:

    def test_create_payload_omits_unset_id(self):
        project = uuid4()
        body = PageCreate.model_validate(
            {"data": {}, "metadata": {}, "project": str(project), "name": "Home"}
        )

        assert body.to_payload() == {
            "data": {},
            "metadata": {},
            "project": project,
            "name": "Home",
        }

    def test_explicit_null_id_is_dropped(self):
        body = PageCreate.model_validate(
            {"data": {}, "metadata": {}, "project": str(uuid4()), "name": "Home", "id": None}
        )

        assert "id" not in body.to_payload()

    def test_nested_nulls_are_kept(self):
        body = PageCreate.model_validate(
            {"data": {"selected": None}, "metadata": {}, "project": str(uuid4()), "name": "Home"}
        )

        assert body.to_payload()["data"] == {"selected": None}

    def test_unknown_keys_are_dropped(self):
        body = PageCreate.model_validate(
            {"data": {}, "metadata": {}, "project": str(uuid4()), "name": "Home", "owner": "x"}
        )

        assert "owner" not in body.to_payload()

    def test_update_requires_integer_version(self):
        base = {"data": {}, "metadata": {}, "project": str(uuid4()), "name": "Home"}
        assert PageUpdate.model_validate({**base, "version": 2}).version == 2
        with pytest.raises(PydanticValidationError):
            PageUpdate.model_validate({**base, "version": "2"})
        with pytest.raises(PydanticValidationError):
            PageUpdate.model_validate(base)

    def test_metadata_update_requires_id(self):
        with pytest.raises(PydanticValidationError):
            PageMetadataUpdate.model_validate(
                {"metadata": {}, "project": str(uuid4()), "name": "Home"}
            )

    def test_history_query_coercion(self):
        query = PageHistoryQuery.model_validate({"max": "10", "pinned": "false"})

        assert query.to_payload() == {"max": 10, "pinned": False}
        assert isinstance(query.to_payload()["pinned"], bool)


class TestErrorTranslation:

    def test_describe_errors(self):
        described = describe_errors([
            {"loc": ("query", "project"), "msg": "Field required"},
            {"loc": ("body", "data", 0), "msg": "Value error, field is required"},
            {"loc": ("body",), "msg": "Field required"},
        ])

        assert described == [
            {"location": "query", "field": "project", "message": "Field required"},
            {"location": "body", "field": "data.0", "message": "field is required"},
            {"location": "body", "field": "body", "message": "Field required"},
        ]

    def test_validation_error_from_request(self):
        exc = RequestValidationError([
            {"type": "missing", "loc": ("query", "project"), "msg": "Field required", "input": None},
            {"type": "value_error", "loc": ("path", "page_id"),
             "msg": "Value error, must be a valid uuid", "input": "x"},
        ])

        error = validation_error_from_request(exc)

        assert isinstance(error, ValidationError)
        assert error.fields == ["project", "page_id"]
        assert error.message == "Invalid request parameters: query.project, path.page_id"
        assert error.context["errors"][1]["message"] == "must be a valid uuid"

    def test_uuid_type_roundtrip(self):
        value = uuid4()
        query = PageCreate.model_validate(
            {"data": 1, "metadata": 2, "project": str(value), "name": "n"}
        )
        assert isinstance(query.project, UUID)
