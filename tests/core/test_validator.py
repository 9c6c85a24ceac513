"""
Unit Tests for snapshot schema validation.
"""

import pytest

from termquiz.core.schemas.validator import (
    SESSION_SCHEMA_VERSION,
    ValidationError,
    validate_answers,
    validate_session,
)


class TestValidateSession:
    """Tests for validate_session."""

    @pytest.fixture
    def valid_session_data(self) -> dict:
        return {
            "schema_version": SESSION_SCHEMA_VERSION,
            "quiz_hash": "sha256:abc123",
            "source_name": "quiz.md",
            "current_index": 2,
            "started_at": "2025-01-02T10:00:00-05:00",
            "submitted_at": None,
            "acknowledgment": {
                "name": "Jane",
                "agreed_at": "2025-01-02T10:00:05-05:00",
                "text_hash": "sha256:def",
            },
            "flags": [3],
            "done_marks": [1],
            "hints_revealed": {"q4": 1},
            "visited": [1, 2, 3],
            "answers": {"q1": {"type": "single", "selected": ["b"]}},
        }

    def test_validate_when_valid_then_passes(self, valid_session_data):
        validate_session(valid_session_data)

    def test_validate_when_wrong_version_then_raises(self, valid_session_data):
        valid_session_data["schema_version"] = 99

        with pytest.raises(ValidationError, match="Unsupported session schema version") as exc:
            validate_session(valid_session_data)
        assert exc.value.path == "schema_version"

    def test_validate_when_missing_field_then_raises(self, valid_session_data):
        del valid_session_data["visited"]

        with pytest.raises(ValidationError, match="visited"):
            validate_session(valid_session_data)

    def test_validate_when_bad_hash_then_raises(self, valid_session_data):
        valid_session_data["quiz_hash"] = "md5:abc"

        with pytest.raises(ValidationError):
            validate_session(valid_session_data)

    def test_validate_when_bad_hint_key_then_raises(self, valid_session_data):
        valid_session_data["hints_revealed"] = {"4": 1}

        with pytest.raises(ValidationError):
            validate_session(valid_session_data)

    def test_validate_when_embedded_answer_invalid_then_path_points_into_answers(self, valid_session_data):
        valid_session_data["answers"] = {"q1": {"type": "single"}}

        with pytest.raises(ValidationError) as exc:
            validate_session(valid_session_data)
        assert exc.value.path.startswith("answers")

    def test_validate_when_not_object_then_raises(self):
        with pytest.raises(ValidationError, match="must be an object"):
            validate_session([])


class TestValidateAnswers:
    """Tests for validate_answers."""

    def test_validate_when_every_kind_then_passes(self):
        validate_answers({
            "q1": {"type": "single", "selected": ["b"]},
            "q2": {"type": "multi", "selected": ["a", "d"]},
            "q3": {"type": "short", "text": "-i"},
            "q4": {"type": "long", "text": "a\nb"},
            "q5": {"type": "file", "files": ["main.rs"]},
        })

    def test_validate_when_text_on_choice_answer_then_raises(self):
        with pytest.raises(ValidationError):
            validate_answers({"q1": {"type": "single", "selected": ["a"], "text": "x"}})

    def test_validate_when_bad_key_then_raises(self):
        with pytest.raises(ValidationError):
            validate_answers({"question1": {"type": "short", "text": "x"}})

    def test_validate_when_uppercase_label_then_raises(self):
        with pytest.raises(ValidationError) as exc:
            validate_answers({"q1": {"type": "single", "selected": ["A"]}})
        assert exc.value.errors
