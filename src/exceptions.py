"""
PatentVault - Exception Hierarchy

Provides a consistent set of exceptions for the storage, proof and registry
components. Every exception carries the HTTP status code the API layer should
answer with, so blueprints can let domain errors propagate to the shared
error handler instead of translating them one by one.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class ErrorContext:
    """Structured context for error tracking and debugging."""
    component: str
    action: str
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "component": self.component,
            "action": self.action,
            "timestamp": self.timestamp,
            "details": self.details,
        }


class PatentVaultError(Exception):
    """
    Base exception for all PatentVault errors.

    Subclasses override ``status_code``; anything that is not a
    PatentVaultError is treated as an internal error (500) by the API.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        component: str = "unknown",
        action: str = "unknown",
        details: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        super().__init__(message)
        self.message = message
        self.context = ErrorContext(
            component=component,
            action=action,
            details=details or {}
        )
        self.cause = cause

        if cause:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        result = {
            "error_type": type(self).__name__,
            "message": self.message,
            **self.context.to_dict()
        }
        if self.cause:
            result["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause)
            }
        return result

    def to_response(self) -> dict[str, Any]:
        """Body returned to HTTP clients; details stay in the log payload."""
        return {"error": self.message}

    def __str__(self) -> str:
        return self.message


class ValidationError(PatentVaultError):
    """A request or argument is missing a required field or is malformed."""

    status_code = 400

    def __init__(self, message: str, field_name: str | None = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if field_name:
            details["field"] = field_name
        super().__init__(message, component=kwargs.pop("component", "validation"),
                         action=kwargs.pop("action", "validate"), details=details, **kwargs)
        self.field_name = field_name


class NotFoundError(PatentVaultError):
    """A requested record does not exist."""

    status_code = 404


class NotOriginalError(PatentVaultError):
    """A content hash is already present in the known-hash set."""

    status_code = 400

    def __init__(self, message: str = "Patent matches existing patent",
                 patent_hash: str | None = None, **kwargs):
        super().__init__(message, component=kwargs.pop("component", "zk_proofs"),
                         action=kwargs.pop("action", "prove_originality"), **kwargs)
        self.patent_hash = patent_hash


class OutOfRangeError(PatentVaultError):
    """A range proof was requested for a value outside its bounds."""

    status_code = 400

    def __init__(self, message: str = "Value out of range", **kwargs):
        super().__init__(message, component=kwargs.pop("component", "zk_proofs"),
                         action=kwargs.pop("action", "generate_range_proof"), **kwargs)


class IntegrityError(PatentVaultError):
    """
    Authenticated decryption failed.

    Raised for tampered ciphertext, a wrong password and malformed or
    truncated blobs alike; no partial plaintext is ever returned.
    """

    status_code = 400

    def __init__(self, message: str = "Decryption failed: unable to authenticate data", **kwargs):
        super().__init__(message, component=kwargs.pop("component", "encryption"),
                         action=kwargs.pop("action", "decrypt"), **kwargs)


class InternalError(PatentVaultError):
    """Unexpected failure; the message is passed through to the client."""

    status_code = 500


__all__ = [
    "ErrorContext",
    "PatentVaultError",
    "ValidationError",
    "NotFoundError",
    "NotOriginalError",
    "OutOfRangeError",
    "IntegrityError",
    "InternalError",
]
