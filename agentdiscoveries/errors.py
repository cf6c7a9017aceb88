from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    NOT_AUTHORISED = "NOT_AUTHORISED"
    NOT_FOUND = "NOT_FOUND"
    OPERATION_INVALID = "OPERATION_INVALID"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.NOT_AUTHENTICATED: 401,
    ErrorCode.NOT_AUTHORISED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.OPERATION_INVALID: 409,
    ErrorCode.UNKNOWN_ERROR: 500,
}


class FailedRequestException(Exception):
    """Raised by route handlers; translated to an HTTP error by the app."""

    def __init__(self, error_code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.message = message

    def to_body(self) -> dict:
        return {"errorCode": self.error_code.value, "message": self.message}


__all__ = ["ErrorCode", "FailedRequestException"]
