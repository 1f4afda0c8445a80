"""Error hierarchy tests."""

import pytest

from pyjson2sql._errors import (
    CommitError,
    ConfigurationError,
    DocumentParseError,
    DocumentReadError,
    InvalidIdentifierError,
    Json2SqlError,
    OperationCancelledError,
    PathError,
    RowError,
    SchemaError,
)
from pyjson2sql.paths import resolve_paths


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [
            DocumentReadError,
            DocumentParseError,
            PathError,
            SchemaError,
            RowError,
            CommitError,
            OperationCancelledError,
        ],
    )
    def test_subclasses_base(self, cls):
        assert issubclass(cls, Json2SqlError)

    def test_schema_family(self):
        assert issubclass(ConfigurationError, SchemaError)
        assert issubclass(InvalidIdentifierError, SchemaError)


class TestDualMessaging:
    def test_internal_defaults_to_user_message(self):
        e = Json2SqlError("visible")
        assert str(e) == "visible"
        assert e.internal() == "visible"

    def test_internal_details(self):
        e = SchemaError("table not found", "table 'secret' not present")
        assert "secret" not in str(e)
        assert "secret" in e.internal()

    def test_wrapped(self):
        cause = ValueError("x")
        assert RowError("failed", wrapped=cause).wrapped is cause

    def test_path_error_hides_document_keys(self):
        with pytest.raises(PathError) as exc_info:
            resolve_paths({"password": 1, "data": []}, "users[]")
        assert "password" not in str(exc_info.value)
        assert "password" in exc_info.value.internal()
