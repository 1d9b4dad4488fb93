"""Exceptions raised by the registration services."""
from __future__ import annotations


class RegistrationError(Exception):
    """Base class for errors that carry a machine-readable reason code."""

    code = "error"

    def __init__(self, detail: str = "", *, code: str | None = None):
        super().__init__(detail)
        self.detail = detail
        if code:
            self.code = code


class AuthorizationError(RegistrationError):
    code = "unauthorized"


class RegistrationNotFound(RegistrationError):
    code = "not_found"


class InvalidTransition(RegistrationError):
    code = "invalid_transition"


class AdmissionBlocked(RegistrationError):
    """A status change would break a hard admission rule."""

    code = "blocked"

    def __init__(self, detail: str = "", *, code: str | None = None, must_override: bool = False):
        super().__init__(detail, code=code)
        self.must_override = must_override
