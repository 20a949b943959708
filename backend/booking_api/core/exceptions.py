"""
Domain errors surfaced through the GraphQL error channel.

Each error carries a stable `code` that ends up in the error's
`extensions`, so clients can tell an authorization failure apart from a
data error without parsing messages.
"""

from typing import Any


class BookingAPIError(Exception):
    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, **extensions: Any):
        super().__init__(message)
        self.message = message
        self.extensions = extensions

    def as_extensions(self) -> dict:
        return {"code": self.code, **self.extensions}


class InvalidInputError(BookingAPIError):
    code = "BAD_USER_INPUT"


class AuthenticationRequiredError(BookingAPIError):
    code = "UNAUTHENTICATED"


class PermissionDeniedError(BookingAPIError):
    code = "FORBIDDEN"


class ReferentialIntegrityError(BookingAPIError):
    code = "CONSTRAINT_VIOLATION"


class InsertFailedError(BookingAPIError):
    code = "INSERT_FAILED"


class UpdateFailedError(BookingAPIError):
    code = "UPDATE_FAILED"


class StorageError(BookingAPIError):
    code = "STORAGE_ERROR"


class OperationNotFoundError(BookingAPIError):
    code = "OPERATION_NOT_FOUND"


class OperationNotImplementedError(BookingAPIError):
    code = "NOT_IMPLEMENTED"
