"""Exception hierarchy for JSON-to-SQLite loading."""


class Json2SqlError(Exception):
    """Base exception for JSON loading and reconciliation errors.

    Provides dual messaging: a sanitized user-facing message and
    internal details for logging.
    """

    def __init__(
        self,
        user_message: str,
        internal_details: str = "",
        wrapped: Exception | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details or user_message
        self.wrapped = wrapped

    def internal(self) -> str:
        return self.internal_details


class DocumentReadError(Json2SqlError):
    """Raised when a JSON document cannot be opened or read."""


class DocumentParseError(Json2SqlError):
    """Raised when a JSON document is malformed."""


class PathError(Json2SqlError):
    """Raised when a path expression does not match the document structure."""


class SchemaError(Json2SqlError):
    """Raised when a table, column or constraint does not fit the operation."""


class ConfigurationError(SchemaError):
    """Raised when an operation is configured inconsistently."""


class InvalidIdentifierError(SchemaError):
    """Raised when a table or column name fails validation."""


class RowError(Json2SqlError):
    """Raised when a single record cannot be applied to the table."""


class CommitError(Json2SqlError):
    """Raised when the final commit fails and the transaction is rolled back."""


class OperationCancelledError(Json2SqlError):
    """Raised when a caller cancels a running operation."""


# Sanitized user-facing error message constants
ERR_MSG_DOCUMENT_UNREADABLE = "JSON document could not be read"
ERR_MSG_DOCUMENT_MALFORMED = "JSON document is malformed"
ERR_MSG_ROOT_NOT_CONTAINER = "JSON root is neither an object nor an array"
ERR_MSG_TABLE_NOT_FOUND = "table not found"
ERR_MSG_COLUMN_NOT_FOUND = "column not found"
ERR_MSG_NOT_NULL_UNCOVERED = "NOT NULL columns have no value source"
ERR_MSG_KEY_NOT_MAPPED = "key column is not a mapping target"
ERR_MSG_COMMIT_FAILED = "commit failed; no changes were applied"
ERR_MSG_CANCELLED = "operation cancelled; no changes were applied"
ERR_MSG_DATABASE_UNAVAILABLE = "database could not be opened"
