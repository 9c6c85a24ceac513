"""
Unit Tests for the Session aggregate.
"""

import itertools
from pathlib import Path

import pytest

from termquiz.core.errors import AttachmentRejected
from termquiz.core.models import Answer
from termquiz.core.utils.hashing import hash_text
from termquiz.session import QuestionStatus, Session


class TestAnswers:

    def test_set_answer_when_tag_mismatch_then_raises(self, session: Session):
        with pytest.raises(ValueError, match="question 1 is single"):
            session.set_answer(1, Answer.short("fork"))

    def test_set_answer_when_unknown_label_then_raises(self, session: Session):
        with pytest.raises(ValueError, match="no choice"):
            session.set_answer(1, Answer.single("z"))

    def test_set_answer_when_empty_text_then_clears_entry_and_done(self, session: Session):
        session.set_answer(3, Answer.short("-i"))
        session.toggle_done(3)

        session.set_answer(3, Answer.short(""))

        assert 3 not in session.answers
        assert 3 not in session.done_marks

    def test_toggle_single_when_reselected_then_exactly_one_label(self, session: Session):
        session.toggle_single(1, 0)
        session.toggle_single(1, 2)

        assert session.answers[1].sorted_labels == ("c",)

    def test_toggle_single_when_multi_question_then_raises(self, session: Session):
        with pytest.raises(ValueError, match="not single choice"):
            session.toggle_single(2, 0)

    def test_toggle_multi_flips_labels(self, session: Session):
        session.toggle_multi(2, 0)
        session.toggle_multi(2, 3)
        session.toggle_multi(2, 0)

        assert session.answers[2].sorted_labels == ("d",)

    def test_toggle_multi_when_last_label_removed_then_clears_answer_and_done(self, session: Session):
        session.toggle_multi(2, 1)
        session.toggle_done(2)

        session.toggle_multi(2, 1)

        assert 2 not in session.answers
        assert session.status(2) is not QuestionStatus.DONE

    def test_toggle_multi_when_index_out_of_range_then_raises(self, session: Session):
        with pytest.raises(IndexError):
            session.toggle_multi(2, 9)


class TestDoneAndFlag:

    def test_toggle_done_when_unanswered_then_false_and_unchanged(self, session: Session):
        assert session.toggle_done(1) is False
        assert session.done_marks == set()

    def test_toggle_done_when_answered_then_clears_flag(self, session: Session):
        session.toggle_single(1, 1)
        session.toggle_flag(1)

        assert session.toggle_done(1) is True
        assert 1 in session.done_marks
        assert 1 not in session.flags

    def test_toggle_done_when_already_done_then_unmarks(self, session: Session):
        session.toggle_single(1, 1)
        session.toggle_done(1)

        assert session.toggle_done(1) is True
        assert 1 not in session.done_marks

    def test_toggle_flag_when_done_then_clears_done(self, session: Session):
        session.toggle_single(1, 1)
        session.toggle_done(1)

        assert session.toggle_flag(1) is True
        assert session.done_marks == set()
        assert session.toggle_flag(1) is False

    def test_done_and_flag_never_both_set_after_any_toggle_sequence(self, session: Session):
        session.toggle_single(1, 0)
        actions = [session.toggle_done, session.toggle_flag]

        for sequence in itertools.product(actions, repeat=5):
            for action in sequence:
                action(1)
                assert not (1 in session.done_marks and 1 in session.flags)


class TestLiveBuffer:

    def test_toggle_done_when_buffer_has_text_then_succeeds_before_commit(self, session: Session):
        session.navigate(2)
        session.edit_text("-i")

        assert 3 not in session.answers
        assert session.toggle_done(3) is True

    def test_edit_text_when_emptied_then_drops_done_mark(self, session: Session):
        session.navigate(2)
        session.edit_text("-i")
        session.toggle_done(3)

        session.edit_text("   ")

        assert 3 not in session.done_marks
        assert session.status(3) is QuestionStatus.NOT_ANSWERED

    def test_edit_text_when_not_text_question_then_raises(self, session: Session):
        with pytest.raises(ValueError, match="does not take a text answer"):
            session.edit_text("x")

    def test_navigate_commits_buffer_and_loads_destination(self, session: Session):
        session.navigate(2)
        session.edit_text("-i")
        session.navigate(3)
        session.edit_text("ownership")

        session.navigate(2)

        assert session.answers[3] == Answer.short("-i")
        assert session.answers[4] == Answer.long("ownership")
        assert session.text_buffer == "-i"
        assert session.visited == {3, 4}

    def test_navigate_when_out_of_range_then_raises(self, session: Session):
        with pytest.raises(IndexError):
            session.navigate(5)

    def test_set_answer_on_current_text_question_updates_buffer(self, session: Session):
        session.navigate(3)

        session.set_answer(4, Answer.long("replaced"))

        assert session.text_buffer == "replaced"


class TestStatus:

    def test_status_precedence(self, session: Session):
        session.begin(session.quiz.frontmatter.start)
        session.toggle_single(1, 0)
        session.toggle_done(1)
        session.navigate(1)
        session.toggle_flag(2)
        session.navigate(2)
        session.edit_text("-i")
        session.navigate(3)

        assert session.status(1) is QuestionStatus.DONE
        assert session.status(2) is QuestionStatus.FLAGGED
        assert session.status(3) is QuestionStatus.ANSWERED
        assert session.status(4) is QuestionStatus.NOT_ANSWERED
        assert session.status(5) is QuestionStatus.UNREAD

    def test_status_counts(self, session: Session):
        session.begin(session.quiz.frontmatter.start)
        session.toggle_single(1, 0)
        session.toggle_done(1)
        session.toggle_flag(3)

        counts = session.status_counts()

        assert counts.total == 5
        assert (counts.done, counts.answered, counts.flagged) == (1, 0, 1)
        assert counts.not_answered == 0
        assert counts.unread == 3
        assert counts.unanswered == 3


class TestHintsFilesLifecycle:

    def test_reveal_hint_stops_at_hint_count(self, session: Session):
        assert session.reveal_hint(4) == "Think about what happens when a value goes out of scope."
        assert session.reveal_hint(4) == "Consider moves versus copies."
        assert session.reveal_hint(4) is None
        assert session.hints_revealed[4] == 2

    def test_reveal_hint_when_question_has_none_then_none(self, session: Session):
        assert session.reveal_hint(1) is None
        assert 1 not in session.hints_revealed

    def test_attach_and_remove_file(self, session: Session, tmp_path: Path):
        source = tmp_path / "main.rs"
        source.write_text("fn main() {}", encoding="utf-8")

        session.attach_file(5, source)

        assert session.answers[5].files == (str(source),)
        assert session.remove_file(5, 0) == str(source)
        assert 5 not in session.answers

    def test_attach_file_when_rejected_then_answer_unchanged(self, session: Session, tmp_path: Path):
        source = tmp_path / "notes.txt"
        source.write_text("x", encoding="utf-8")

        with pytest.raises(AttachmentRejected, match="not allowed"):
            session.attach_file(5, source)
        assert 5 not in session.answers

    def test_attach_file_when_not_file_question_then_raises(self, session: Session, tmp_path: Path):
        with pytest.raises(ValueError, match="does not take files"):
            session.attach_file(1, tmp_path / "x.rs")

    def test_remove_file_when_index_missing_then_raises(self, session: Session):
        with pytest.raises(IndexError):
            session.remove_file(5, 0)

    def test_acknowledge_records_name_and_text_hash(self, session: Session, during_quiz):
        record = session.acknowledge("  Jane Doe ", during_quiz)

        assert record.name == "Jane Doe"
        assert record.agreed_at == during_quiz
        assert record.text_hash == hash_text(session.quiz.frontmatter.acknowledgment.text)
        assert session.is_acknowledged()

    def test_acknowledge_when_blank_name_then_raises(self, session: Session, during_quiz):
        with pytest.raises(ValueError, match="requires a name"):
            session.acknowledge("  ", during_quiz)
        assert not session.is_acknowledged()

    def test_begin_stamps_start_once_and_visits_current(self, session: Session, during_quiz):
        session.begin(during_quiz)
        first = session.started_at
        session.begin(during_quiz.replace(hour=11))

        assert session.started_at == first
        assert session.visited == {1}

    def test_mark_submitted_commits_buffer(self, session: Session, during_quiz):
        session.navigate(2)
        session.edit_text("-i")

        session.mark_submitted(during_quiz)

        assert session.answers[3] == Answer.short("-i")
        assert session.submitted_at == during_quiz
