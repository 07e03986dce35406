"""Ошибки HTTP-слоя и их соответствие кодам ответа."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Категории ошибок, которые видит клиент API."""

    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.INTERNAL: 500,
}


class ApiError(Exception):
    """Неуспешный исход запроса; превращается в ответ обработчиком исключений приложения."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @classmethod
    def bad_request(cls, message: str) -> "ApiError":
        return cls(ErrorKind.BAD_REQUEST, message)

    @classmethod
    def unauthorized(cls, message: str) -> "ApiError":
        return cls(ErrorKind.UNAUTHORIZED, message)

    @classmethod
    def forbidden(cls, message: str) -> "ApiError":
        return cls(ErrorKind.FORBIDDEN, message)

    @classmethod
    def internal(cls, message: str) -> "ApiError":
        return cls(ErrorKind.INTERNAL, message)
