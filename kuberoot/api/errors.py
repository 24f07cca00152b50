"""Typed API errors rendered through the ErrorResponse envelope."""

from __future__ import annotations


class APIError(Exception):
    """Raised by route handlers and dependencies; mapped to a JSON error response."""

    def __init__(self, status_code: int, error: str, detail: str) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.error = error
        self.detail = detail


def bad_request(detail: str, error: str = "INVALID_QUERY") -> APIError:
    return APIError(400, error, detail)


def unauthorized(detail: str) -> APIError:
    return APIError(401, "UNAUTHORIZED", detail)
