"""JSON schemas for the persisted session snapshot."""

from .validator import (
    SESSION_SCHEMA_VERSION,
    ValidationError,
    validate_answers,
    validate_session,
)

__all__ = [
    "SESSION_SCHEMA_VERSION",
    "ValidationError",
    "validate_answers",
    "validate_session",
]
