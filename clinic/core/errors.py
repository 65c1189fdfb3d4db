# clinic/core/errors.py
"""
Error taxonomy shared by the service modules.

Services raise subclasses of these; routers map them to HTTP status codes.
Notification failures never use these classes, they are logged and dropped.
Missing or malformed input never reaches a service: the pydantic request
models reject it and FastAPI answers 422.
"""


class ClinicError(Exception):
    """Base class for errors that block a request."""


class NotFoundError(ClinicError):
    """Referenced record does not exist (404)."""


class ConflictError(ClinicError):
    """Request clashes with existing state (409)."""


class AuthError(ClinicError):
    """Credentials were rejected (401)."""
