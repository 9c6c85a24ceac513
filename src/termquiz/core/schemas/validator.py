"""
Schema Validation Utilities

Validates snapshot JSON (the session descriptor with its embedded answers
table) before the persistence layer trusts it.

A snapshot that fails validation is never repaired or partially loaded:
the caller turns ``ValidationError`` into ``StateCorruption`` and the
candidate has to reset explicitly.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema


# Schema version constants
# 2: answers table moved into session.json
SESSION_SCHEMA_VERSION = 2


# Load schemas lazily
_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


class ValidationError(Exception):
    """Raised when data fails schema validation."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


def _validate(data: Any, schema_name: str) -> None:
    schema = _load_schema(schema_name)
    validator = jsonschema.Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    if errors:
        first = errors[0]
        raise ValidationError(
            f"Schema validation failed: {first.message}",
            path=".".join(str(p) for p in first.absolute_path),
            errors=[e.message for e in errors],
        )


def validate_session(data: Any) -> None:
    """
    Validate a session descriptor (``session.json``) and its answers table.

    Args:
        data: Decoded JSON

    Raises:
        ValidationError: If data is invalid or from another schema version
    """
    if not isinstance(data, dict):
        raise ValidationError("session descriptor must be an object")

    version = data.get("schema_version")
    if version != SESSION_SCHEMA_VERSION:
        raise ValidationError(
            f"Unsupported session schema version: {version} (expected {SESSION_SCHEMA_VERSION})",
            path="schema_version",
        )

    _validate(data, "session")
    try:
        validate_answers(data["answers"])
    except ValidationError as e:
        path = f"answers.{e.path}" if e.path else "answers"
        raise ValidationError(str(e), path=path, errors=e.errors) from e


def validate_answers(data: Any) -> None:
    """
    Validate an answers table keyed ``q<number>``.

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError("answers table must be an object")
    _validate(data, "answers")
