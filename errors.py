"""
Error taxonomy for the Ratings Platform.

Every error carries the HTTP status code the API answers with, so services can
raise them without knowing about FastAPI.
"""

from typing import Any, Dict


class RatingsError(Exception):
    status_code = 400

    def __init__(self, detail: Any = None):
        self.detail = detail if detail is not None else self.default_detail()
        super().__init__(str(self.detail))

    def default_detail(self) -> Any:
        return "Request failed"


class ValidationError(RatingsError):
    """Field-level, user-correctable failure. ``detail`` maps field -> message."""

    status_code = 422

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__(self.errors)


class AuthenticationFailure(RatingsError):
    status_code = 401

    def default_detail(self) -> Any:
        return "Invalid email or password"


class DuplicateEmail(RatingsError):
    status_code = 409

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already registered")


class NoSession(RatingsError):
    status_code = 401

    def default_detail(self) -> Any:
        return "Not authenticated"


class PermissionDenied(RatingsError):
    status_code = 403

    def default_detail(self) -> Any:
        return "Insufficient permissions"


class NotFound(RatingsError):
    status_code = 404

    def default_detail(self) -> Any:
        return "Not found"


class ReferentialError(RatingsError):
    """A record references a missing or unsuitable parent record."""

    status_code = 400
