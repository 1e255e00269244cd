"""Application error hierarchy.

Every error carries the HTTP status it maps to and a stable machine-readable
code. ``main.py`` registers a single handler that renders them as::

    {"error": "<code>", "message": "<human text>", "field": "<name>"}

``field`` is only present for :class:`InvalidParameter`.
"""
from typing import Dict, Optional


class GalleriaError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code: int = 500
    error: str = "internal_server_error"

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class Unauthorized(GalleriaError):
    """No credential where one is required, or the credential was revoked"""

    status_code = 401
    error = "unauthorized"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(GalleriaError):
    """Credential present but invalid or insufficient"""

    status_code = 403
    error = "forbidden"


class NotFound(GalleriaError):
    status_code = 404
    error = "not_found"


class Conflict(GalleriaError):
    status_code = 409
    error = "conflict"


class UnprocessableInput(GalleriaError):
    status_code = 422
    error = "unprocessable_input"


class InvalidParameter(GalleriaError):
    """A query parameter is out of range or cannot be parsed"""

    status_code = 400
    error = "invalid_parameter"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field}
