from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of operational failures the API can report."""

    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    INTERNAL_SERVER_ERROR = "internal_server_error"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INTERNAL_SERVER_ERROR: 500,
}


class AppError(Exception):
    """An expected failure carrying the HTTP status it should be rendered with."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __repr__(self) -> str:
        return f"AppError({self.kind.name}, {self.message!r})"


def bad_request(message: str) -> AppError:
    return AppError(ErrorKind.BAD_REQUEST, message)


def unauthorized(message: str) -> AppError:
    return AppError(ErrorKind.UNAUTHORIZED, message)


def not_found(message: str) -> AppError:
    return AppError(ErrorKind.NOT_FOUND, message)


def internal(message: str) -> AppError:
    return AppError(ErrorKind.INTERNAL_SERVER_ERROR, message)


class ConfigError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""


class StoreError(RuntimeError):
    """Raised by document store backends when a read or write fails."""
