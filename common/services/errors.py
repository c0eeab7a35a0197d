from typing import Any, Dict, Optional


class StoreError(Exception):
    """Base error carrying the HTTP status the API should answer with."""

    status_code = 400

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> Dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class AuthRequired(StoreError):
    status_code = 401


class AccessDenied(StoreError):
    status_code = 403


class NotFound(StoreError):
    status_code = 404


class Conflict(StoreError):
    status_code = 409


class RateLimited(StoreError):
    status_code = 429
