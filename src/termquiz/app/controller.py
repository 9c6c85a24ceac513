"""
Module: app.controller

Purpose:
    Single-threaded event loop core. All application state lives in one
    AppState aggregate owned by the QuizController; candidate actions,
    timer events and publish events are applied one at a time, and the
    session is saved after each change before the next event is taken.

    Rendering and key handling are not part of this module: a front end
    reads ``controller.state`` and calls the action methods.

Key Classes:
    - Screen, Dialog: What the front end should show
    - AppState: Screen, dialog stack, session and progress fields
    - QuizController: Actions plus ``poll`` for background events

Key Functions:
    - initial_screen(): Screen to open on, from the quiz window
    - screen_for_pipeline(): Screen for a submission state

Dependencies:
    - session.state, session.persistence
    - submission.pipeline
    - app.timer
    - logging_utils (queue handler for the status line)

Used By:
    - Terminal front ends (drawing and key bindings live there)
"""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from termquiz.core.errors import AttachmentRejected, ResourceError
from termquiz.core.models.questions import QuestionType, Quiz
from termquiz.core.utils.timeutil import utc_now
from termquiz.logging_utils import (
    QueueLogHandler,
    attach_queue_handler,
    detach_queue_handler,
    drain_log_queue,
)
from termquiz.session.attachments import validate_attachment
from termquiz.session.persistence import SnapshotStore
from termquiz.session.state import Session
from termquiz.submission.pipeline import PipelineState, RetryProgress, SubmissionPipeline

from .timer import TimerEvent, TimerEventKind

logger = logging.getLogger(__name__)


class Screen(str, Enum):
    WAITING = "waiting"
    PREAMBLE = "preamble"
    ACKNOWLEDGMENT = "acknowledgment"
    WORKING = "working"
    CLOSED = "closed"
    ALREADY_SUBMITTED = "already_submitted"
    PUSHING = "pushing"
    PUSH_RETRYING = "push_retrying"
    SAVE_LOCAL = "save_local"
    DONE = "done"


class Dialog(str, Enum):
    CONFIRM_SUBMIT = "confirm_submit"
    CONFIRM_QUIT = "confirm_quit"
    CONFIRM_HINT = "confirm_hint"
    CONFIRM_DELETE_FILE = "confirm_delete_file"
    DONE_REQUIRES_ANSWER = "done_requires_answer"
    TWO_MINUTE_WARNING = "two_minute_warning"
    HELP = "help"


_PIPELINE_SCREENS = {
    PipelineState.COMPOSING: Screen.WORKING,
    PipelineState.PUBLISHING: Screen.PUSHING,
    PipelineState.RETRYING_PUBLISH: Screen.PUSH_RETRYING,
    PipelineState.PUBLISHED: Screen.DONE,
    PipelineState.ALREADY_SUBMITTED: Screen.ALREADY_SUBMITTED,
    PipelineState.LOCAL_FALLBACK: Screen.SAVE_LOCAL,
}


def screen_for_pipeline(state: PipelineState) -> Screen:
    return _PIPELINE_SCREENS[state]


def initial_screen(quiz: Quiz, now: datetime, already_submitted: bool = False) -> Screen:
    """
    Screen to open on.

    A prior submission wins; otherwise the quiz window decides between
    waiting, closed and the preamble.
    """
    if already_submitted:
        return Screen.ALREADY_SUBMITTED
    if now < quiz.frontmatter.start:
        return Screen.WAITING
    if now > quiz.frontmatter.end:
        return Screen.CLOSED
    return Screen.PREAMBLE


@dataclass
class AppState:
    """
    Everything a front end needs to draw one frame.

    Attributes:
        screen: Current screen
        session: Candidate progress
        dialogs: Modal stack, top last
        remaining_seconds: Latest countdown value
        retry: Latest publish retry report
        message: One-line status or error for the candidate
        pending_file_index: File selected for removal, awaiting confirmation
        should_quit: Set when the candidate confirmed quitting
    """

    screen: Screen
    session: Session
    dialogs: List[Dialog] = field(default_factory=list)
    remaining_seconds: Optional[int] = None
    retry: Optional[RetryProgress] = None
    message: str = ""
    pending_file_index: Optional[int] = None
    should_quit: bool = False

    def push_dialog(self, dialog: Dialog) -> None:
        self.dialogs.append(dialog)

    def pop_dialog(self) -> Optional[Dialog]:
        return self.dialogs.pop() if self.dialogs else None

    @property
    def top_dialog(self) -> Optional[Dialog]:
        return self.dialogs[-1] if self.dialogs else None

    def has_dialog(self) -> bool:
        return bool(self.dialogs)


class QuizController:
    """
    Applies actions and background events to the AppState.

    Args:
        session: Fresh or resumed session
        store: Snapshot store, saved after every change
        pipeline: Submission pipeline for ``session``
        already_submitted: Whether a submission already exists
        clock: Source of "now"

    Example:
        >>> controller = QuizController(session, store, pipeline)
        >>> controller.start()
        >>> controller.select_choice(1)
        >>> controller.toggle_done()
        True
    """

    def __init__(
        self,
        session: Session,
        store: SnapshotStore,
        pipeline: SubmissionPipeline,
        already_submitted: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.pipeline = pipeline
        self.clock = clock
        self.timer_events: "queue.Queue[TimerEvent]" = queue.Queue()
        self.log_queue: "queue.Queue[Tuple[str, str]]" = queue.Queue()
        self._log_handler: Optional[QueueLogHandler] = None
        self.state = AppState(
            screen=initial_screen(session.quiz, clock(), already_submitted),
            session=session,
        )

    @property
    def session(self) -> Session:
        return self.state.session

    # ─────────────────────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────────────────────

    def persist(self) -> bool:
        """
        Save the session; a failure is reported but never loses memory state.

        Returns:
            True if the snapshot was written
        """
        if self.pipeline.state is PipelineState.PUBLISHED:
            return False
        try:
            self.store.save(self.session)
        except ResourceError as e:
            logger.error(f"Progress not saved: {e}")
            self.state.message = f"Warning: progress not saved ({e})"
            return False
        return True

    # ─────────────────────────────────────────────────────────────────────────
    # Entry
    # ─────────────────────────────────────────────────────────────────────────

    def start(self) -> Screen:
        """Leave the preamble: to the consent gate if required, else to the questions."""
        if self.state.screen is not Screen.PREAMBLE:
            return self.state.screen
        if not self.session.is_acknowledged():
            self.state.screen = Screen.ACKNOWLEDGMENT
            return self.state.screen
        return self._begin()

    def acknowledge(self, name: str) -> Screen:
        """
        Accept the consent gate under ``name``.

        A blank name leaves the candidate on the acknowledgment screen.
        """
        if self.state.screen is not Screen.ACKNOWLEDGMENT:
            return self.state.screen
        try:
            self.session.acknowledge(name, self.clock())
        except ValueError as e:
            self.state.message = str(e)
            return self.state.screen
        return self._begin()

    def _begin(self) -> Screen:
        self.session.begin(self.clock())
        self.state.screen = Screen.WORKING
        self.persist()
        return self.state.screen

    # ─────────────────────────────────────────────────────────────────────────
    # Question Actions
    # ─────────────────────────────────────────────────────────────────────────

    def _working(self) -> bool:
        return self.state.screen is Screen.WORKING and self.session.current_question is not None

    def navigate(self, index: int) -> None:
        if not self._working() or not 0 <= index < len(self.session.quiz):
            return
        self.session.navigate(index)
        self.persist()

    def next_question(self) -> None:
        self.navigate(self.session.current_index + 1)

    def previous_question(self) -> None:
        self.navigate(self.session.current_index - 1)

    def select_choice(self, index: int) -> None:
        """Select (single) or toggle (multi) the choice at ``index`` of the current question."""
        if not self._working():
            return
        question = self.session.current_question
        if question.type is QuestionType.SINGLE:
            self.session.toggle_single(question.number, index)
        elif question.type is QuestionType.MULTI:
            self.session.toggle_multi(question.number, index)
        else:
            return
        self.persist()

    def edit_text(self, text: str) -> None:
        if not self._working() or not self.session.current_question.type.is_text:
            return
        self.session.edit_text(text)
        self.persist()

    def toggle_done(self) -> bool:
        if not self._working():
            return False
        changed = self.session.toggle_done(self.session.current_number)
        if not changed:
            self.state.push_dialog(Dialog.DONE_REQUIRES_ANSWER)
            return False
        self.persist()
        return True

    def toggle_flag(self) -> None:
        if not self._working():
            return
        self.session.toggle_flag(self.session.current_number)
        self.persist()

    def request_hint(self) -> None:
        """Ask to reveal the next hint; revealing is confirmed through a dialog."""
        if not self._working():
            return
        question = self.session.current_question
        if self.session.hints_revealed.get(question.number, 0) >= len(question.hints):
            self.state.message = "No more hints for this question"
            return
        self.state.push_dialog(Dialog.CONFIRM_HINT)

    def attach_file(self, path: Path) -> bool:
        """
        Attach a chosen file to the current file question.

        The file is checked against the question's limits, copied into the
        state directory, and the copy is recorded.

        Returns:
            True if the file was attached
        """
        if not self._working():
            return False
        question = self.session.current_question
        if question.type is not QuestionType.FILE:
            return False
        try:
            current = self.session.answers.get(question.number)
            validate_attachment(question.file_constraints, current.files if current else (), path)
            stored = self.store.store_attachment(path, question.number)
            self.session.attach_file(question.number, stored)
        except (AttachmentRejected, ResourceError) as e:
            logger.warning(f"Attachment not added: {e}")
            self.state.message = str(e)
            return False
        self.persist()
        return True

    def request_remove_file(self, index: int) -> None:
        if not self._working():
            return
        self.state.pending_file_index = index
        self.state.push_dialog(Dialog.CONFIRM_DELETE_FILE)

    def request_submit(self) -> None:
        if self._working():
            self.state.push_dialog(Dialog.CONFIRM_SUBMIT)

    def request_quit(self) -> None:
        self.state.push_dialog(Dialog.CONFIRM_QUIT)

    # ─────────────────────────────────────────────────────────────────────────
    # Dialogs
    # ─────────────────────────────────────────────────────────────────────────

    def confirm_dialog(self) -> None:
        """Accept the top dialog and perform its action."""
        dialog = self.state.pop_dialog()
        if dialog is Dialog.CONFIRM_SUBMIT:
            self.submit()
        elif dialog is Dialog.CONFIRM_QUIT:
            self.session.commit_buffer()
            self.persist()
            self.state.should_quit = True
        elif dialog is Dialog.CONFIRM_HINT:
            hint = self.session.reveal_hint(self.session.current_number)
            if hint is not None:
                self.persist()
        elif dialog is Dialog.CONFIRM_DELETE_FILE:
            self._remove_pending_file()
        # DONE_REQUIRES_ANSWER, TWO_MINUTE_WARNING and HELP are informational

    def dismiss_dialog(self) -> None:
        dialog = self.state.pop_dialog()
        if dialog is Dialog.CONFIRM_DELETE_FILE:
            self.state.pending_file_index = None

    def _remove_pending_file(self) -> None:
        index = self.state.pending_file_index
        self.state.pending_file_index = None
        if index is None or not self._working():
            return
        number = self.session.current_number
        try:
            removed = self.session.remove_file(number, index)
        except IndexError:
            return
        try:
            self.store.discard_attachment(Path(removed))
        except ResourceError as e:
            logger.warning(f"Stored copy not removed: {e}")
        self.persist()

    # ─────────────────────────────────────────────────────────────────────────
    # Submission
    # ─────────────────────────────────────────────────────────────────────────

    def submit(self) -> Screen:
        """Start the submission pipeline from the working screen."""
        if self.state.screen is not Screen.WORKING:
            return self.state.screen
        self.state.dialogs.clear()
        try:
            pipeline_state = self.pipeline.submit()
        except ResourceError as e:
            logger.error(f"Submission not written: {e}")
            self.state.message = f"Could not write submission: {e}"
            return self.state.screen
        self.state.screen = screen_for_pipeline(pipeline_state)
        return self.state.screen

    def cancel_publish(self) -> bool:
        """Stop retrying; the CANCELLED event returns the candidate to the questions."""
        if self.state.screen is not Screen.PUSH_RETRYING:
            return False
        return self.pipeline.cancel()

    def recovery_instructions(self) -> str:
        return self.pipeline.recovery_instructions()

    # ─────────────────────────────────────────────────────────────────────────
    # Background Events
    # ─────────────────────────────────────────────────────────────────────────

    def handle_timer_event(self, event: TimerEvent) -> None:
        state = self.state
        kind = event.kind
        if kind is TimerEventKind.TICK:
            state.remaining_seconds = event.remaining_seconds
            if state.screen is Screen.WAITING and self.clock() >= self.session.quiz.frontmatter.start:
                state.screen = Screen.PREAMBLE
        elif kind is TimerEventKind.TWO_MINUTE_WARNING:
            if state.screen is Screen.WORKING and not state.has_dialog():
                state.push_dialog(Dialog.TWO_MINUTE_WARNING)
        elif kind is TimerEventKind.TIME_EXPIRED:
            state.remaining_seconds = 0
            if state.screen is Screen.WORKING:
                logger.info("Time is up, submitting")
                self.submit()
            elif state.screen in (Screen.WAITING, Screen.PREAMBLE, Screen.ACKNOWLEDGMENT):
                state.screen = Screen.CLOSED
        else:
            raise ValueError(f"Unknown timer event: {kind!r}")

    def capture_logs(self) -> None:
        """Route termquiz log records to ``log_queue`` while a front end owns the terminal."""
        if self._log_handler is None:
            self._log_handler = attach_queue_handler(self.log_queue)

    def release_logs(self) -> None:
        if self._log_handler is not None:
            detach_queue_handler(self._log_handler)
            self._log_handler = None

    def poll(self) -> None:
        """Apply every pending timer event, publish event and captured log record."""
        while True:
            try:
                event = self.timer_events.get_nowait()
            except queue.Empty:
                break
            self.handle_timer_event(event)

        if self.pipeline.poll():
            self.state.retry = self.pipeline.progress
            self.state.screen = screen_for_pipeline(self.pipeline.state)

        for message, level in drain_log_queue(self.log_queue):
            if level in ("WARNING", "ERROR", "CRITICAL"):
                self.state.message = message
