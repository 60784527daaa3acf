"""
Exceptions raised while resolving and mutating property references.

These are independent of the HTTP layer; main.py maps each one to its
``status_code`` with an empty body.
"""

from typing import Iterable, Optional


class PropertyReferenceError(Exception):
    """Base exception for all property reference errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ResourceNotFoundError(PropertyReferenceError):
    """Raised when a repository, object, property or element cannot be found."""

    status_code = 404


class MethodNotSupportedError(PropertyReferenceError):
    """Raised when an HTTP method does not apply to the property or repository."""

    status_code = 405

    def __init__(self, method: str, allowed: Optional[Iterable[str]] = None, reason: Optional[str] = None):
        self.method = method
        self.allowed = sorted(allowed or [])
        message = f"Method {method} not supported"
        if reason:
            message += f": {reason}"
        super().__init__(message=message, details={"method": method, "allowed": self.allowed})


class BadRequestError(PropertyReferenceError):
    """Raised when the incoming links do not fit the property."""

    status_code = 400
