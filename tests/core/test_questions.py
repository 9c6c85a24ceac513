"""
Unit Tests for the Quiz / Question models.
"""

from datetime import datetime, timedelta, timezone

import pytest

from termquiz.core.models import (
    Choice,
    FileConstraints,
    Frontmatter,
    Question,
    QuestionType,
    Quiz,
)

UTC = timezone.utc


def _frontmatter() -> Frontmatter:
    start = datetime(2025, 1, 2, 15, 0, tzinfo=UTC)
    return Frontmatter(start=start, end=start + timedelta(hours=2))


def _choices(*texts: str):
    return tuple(Choice(label="abcdefgh"[i], text=t) for i, t in enumerate(texts))


class TestQuestion:
    """Tests for Question invariants."""

    def test_init_when_single_with_choices_then_creates_question(self):
        q = Question(1, "Pick", QuestionType.SINGLE, choices=_choices("x", "y"))

        assert q.labels == ("a", "b")
        assert q.choice_label(1) == "b"

    def test_init_when_zero_number_then_raises_error(self):
        with pytest.raises(ValueError, match="must be positive"):
            Question(0, "Bad", QuestionType.SHORT)

    def test_init_when_choice_type_without_choices_then_raises_error(self):
        with pytest.raises(ValueError, match="needs choices"):
            Question(1, "Pick", QuestionType.MULTI)

    def test_init_when_text_type_with_choices_then_raises_error(self):
        with pytest.raises(ValueError, match="cannot have choices"):
            Question(1, "Type", QuestionType.SHORT, choices=_choices("x"))

    def test_init_when_file_without_constraints_then_raises_error(self):
        with pytest.raises(ValueError, match="file_constraints"):
            Question(1, "Upload", QuestionType.FILE)

    def test_init_when_duplicate_labels_then_raises_error(self):
        dup = (Choice("a", "x"), Choice("a", "y"))
        with pytest.raises(ValueError, match="duplicate choice labels"):
            Question(1, "Pick", QuestionType.SINGLE, choices=dup)

    def test_choice_label_when_out_of_range_then_raises_index_error(self):
        q = Question(1, "Pick", QuestionType.SINGLE, choices=_choices("x"))

        with pytest.raises(IndexError):
            q.choice_label(3)


class TestQuiz:
    """Tests for Quiz lookups."""

    @pytest.fixture
    def quiz(self) -> Quiz:
        questions = (
            Question(2, "Two", QuestionType.SHORT),
            Question(7, "Seven", QuestionType.FILE, file_constraints=FileConstraints()),
        )
        return Quiz(_frontmatter(), "T", (), questions, "q.md", "sha256:00")

    def test_question_when_number_exists_then_returns_it(self, quiz: Quiz):
        assert quiz.question(7).title == "Seven"
        assert quiz.index_of(7) == 1
        assert quiz.numbers == (2, 7)

    def test_question_when_number_missing_then_raises_key_error(self, quiz: Quiz):
        with pytest.raises(KeyError):
            quiz.question(3)

    def test_contains_uses_question_numbers_not_positions(self, quiz: Quiz):
        assert 2 in quiz
        assert 0 not in quiz
        assert len(quiz) == 2

    def test_init_when_duplicate_numbers_then_raises_error(self):
        questions = (Question(1, "A", QuestionType.SHORT), Question(1, "B", QuestionType.LONG))
        with pytest.raises(ValueError, match="duplicate question number"):
            Quiz(_frontmatter(), "T", (), questions, "q.md", "sha256:00")


class TestFrontmatter:
    """Tests for the timing window."""

    def test_init_when_end_before_start_then_raises_error(self):
        start = datetime(2025, 1, 2, 15, 0, tzinfo=UTC)
        with pytest.raises(ValueError, match="must be after start"):
            Frontmatter(start=start, end=start - timedelta(minutes=1))

    def test_init_when_naive_timestamp_then_raises_error(self):
        with pytest.raises(ValueError, match="UTC offset"):
            Frontmatter(start=datetime(2025, 1, 2, 10), end=datetime(2025, 1, 2, 12))

    def test_duration_seconds(self):
        assert _frontmatter().duration_seconds == 7200
