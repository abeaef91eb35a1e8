"""Exception types raised by the assessment engine.

Answer validation failures are never raised; they travel as
``{question_id: message}`` mappings.
"""

from __future__ import annotations


class NotFoundError(LookupError):
    """Raised when an operation requires a record that does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id!r} not found")
        self.kind = kind
        self.record_id = record_id


class PersistenceError(RuntimeError):
    """Raised when the record store fails to read or write."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.message = message


class SaveRejectedError(ValueError):
    """Raised when an assessment is not eligible for saving."""

    def __init__(self, reasons: list[str]):
        super().__init__("Assessment save rejected")
        self.reasons = reasons

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Assessment save rejected: {self.reasons}"


class BuilderError(ValueError):
    """Raised for an invalid builder mutation."""


class SessionStateError(RuntimeError):
    """Raised when a runtime session operation is not allowed in its state."""

    def __init__(self, operation: str, state: str):
        super().__init__(f"Cannot {operation} while session is {state}")
        self.operation = operation
        self.state = state


__all__ = [
    "BuilderError",
    "NotFoundError",
    "PersistenceError",
    "SaveRejectedError",
    "SessionStateError",
]
