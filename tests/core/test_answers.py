"""
Unit Tests for the Answer tagged union.
"""

import pytest

from termquiz.core.models import Answer, QuestionType


class TestAnswerConstruction:
    """Payload must match the tag."""

    def test_single_when_one_label_then_creates_answer(self):
        answer = Answer.single("b")

        assert answer.type is QuestionType.SINGLE
        assert answer.sorted_labels == ("b",)

    def test_init_when_single_has_two_labels_then_raises_error(self):
        with pytest.raises(ValueError, match="single answer has 2 labels"):
            Answer(type=QuestionType.SINGLE, selected=frozenset({"a", "b"}))

    def test_init_when_choice_answer_carries_text_then_raises_error(self):
        with pytest.raises(ValueError, match="only carry selected labels"):
            Answer(type=QuestionType.MULTI, selected=frozenset({"a"}), text="x")

    def test_init_when_text_answer_missing_text_then_raises_error(self):
        with pytest.raises(ValueError, match="requires text"):
            Answer(type=QuestionType.SHORT)

    def test_init_when_file_answer_carries_labels_then_raises_error(self):
        with pytest.raises(ValueError, match="only carry files"):
            Answer(type=QuestionType.FILE, selected=frozenset({"a"}))

    def test_text_for_when_choice_kind_then_raises_error(self):
        with pytest.raises(ValueError, match="do not take text"):
            Answer.text_for(QuestionType.SINGLE, "x")


class TestAnswerQueries:

    @pytest.mark.parametrize(
        "answer, expected",
        [
            (Answer.multi([]), True),
            (Answer.multi(["a"]), False),
            (Answer.short("   "), True),
            (Answer.long("text"), False),
            (Answer.file([]), True),
            (Answer.file(["x.rs"]), False),
        ],
    )
    def test_is_empty(self, answer: Answer, expected: bool):
        assert answer.is_empty is expected


class TestAnswerSerialization:

    def test_to_dict_when_multi_then_labels_sorted(self):
        assert Answer.multi({"d", "a", "b"}).to_dict() == {"type": "multi", "selected": ["a", "b", "d"]}

    def test_to_dict_when_file_then_keeps_order(self):
        data = Answer.file(["b.rs", "a.rs"]).to_dict()

        assert data == {"type": "file", "files": ["b.rs", "a.rs"]}

    def test_from_dict_when_long_then_restores_text(self):
        answer = Answer.from_dict({"type": "long", "text": "line one\nline two"})

        assert answer == Answer.long("line one\nline two")

    def test_from_dict_when_unknown_type_then_raises_error(self):
        with pytest.raises(ValueError):
            Answer.from_dict({"type": "essay", "text": "x"})
