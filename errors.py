"""Error taxonomy for row mutations and the database error classifier."""

import logging

logger = logging.getLogger(__name__)


class TableEditorError(Exception):
    """Base error. Carries the user-facing message and the HTTP status."""

    status_code = 400
    message = "Request failed."

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidTable(TableEditorError):
    message = "Invalid table."


class NoColumns(TableEditorError):
    message = "Table has no columns."


class MissingKey(TableEditorError):
    message = "Missing table or ID"


class NoPrimaryKey(TableEditorError):
    status_code = 500
    message = "Primary key not found"


class NoData(TableEditorError):
    message = "No data to insert."


class NoUpdatableFields(TableEditorError):
    message = "No updatable fields provided"


class UpdateFailed(TableEditorError):
    status_code = 404
    message = "Update failed: Row not found."


class NotFound(TableEditorError):
    status_code = 404
    message = "Delete failed: Row not found."


class FetchAfterInsert(TableEditorError):
    status_code = 500
    message = "Insert failed: Inserted row could not be read back."


class MethodNotAllowed(TableEditorError):
    status_code = 405
    message = "Method Not Allowed"


class DatabaseError(TableEditorError):
    """A classified engine failure. The message is prefixed by the action."""

    reason = "Database error."

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"{action} failed: {self.reason}")


class IntegrityViolation(DatabaseError):
    reason = "Invalid or missing data."


class NotNullViolation(DatabaseError):
    reason = "Required field missing."


class DuplicateKey(DatabaseError):
    reason = "Duplicate value."


class UnknownDbError(DatabaseError):
    reason = "Database error."


# Ordered: the first pattern found in the native message wins.
DB_ERROR_PATTERNS = {
    "sqlite": [
        ("UNIQUE constraint failed", DuplicateKey),
        ("NOT NULL constraint failed", NotNullViolation),
        ("CHECK constraint failed", IntegrityViolation),
        ("FOREIGN KEY constraint failed", IntegrityViolation),
        ("datatype mismatch", IntegrityViolation),
    ],
    "mysql": [
        ("Duplicate entry", DuplicateKey),
        ("cannot be null", NotNullViolation),
        ("Integrity constraint violation", IntegrityViolation),
    ],
}


def classify_db_error(exc: Exception, action: str, engine: str = "sqlite") -> DatabaseError:
    """Map an engine exception to one of the classified database errors.

    The native message is logged here and never placed on the returned error.
    """
    native = str(exc)
    logger.warning("%s failed on %s: %s", action, engine, native)
    for pattern, error_class in DB_ERROR_PATTERNS.get(engine, []):
        if pattern in native:
            return error_class(action)
    return UnknownDbError(action)
