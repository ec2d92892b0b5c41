from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException


@dataclass
class ApiError:
    code: str
    message: str
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class AppHTTPException(HTTPException):
    def __init__(self, status_code: int, error: ApiError):
        super().__init__(status_code=status_code, detail=error.to_dict())


class StockMirrorError(Exception):
    """Base class for errors raised by the sync and reconciliation core."""


class UpstreamError(StockMirrorError):
    """The remote catalog answered with a non-2xx status (or not at all)."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class BadRequestError(UpstreamError):
    """Remote rejected the request as malformed; retrying cannot help."""


class UpstreamServerError(UpstreamError):
    pass


class RateLimited(UpstreamError):
    """Still rate limited after the client exhausted its retries."""


class ValidationError(StockMirrorError):
    pass


class ParseError(StockMirrorError):
    pass


class NotFoundError(StockMirrorError):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}
