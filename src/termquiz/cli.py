"""
Command line entry point.

    termquiz DOCUMENT [--clear] [--status] [--export PATH] [--submit]
                      [--state-dir DIR] [--verbose] [--log-file PATH]

The command only builds and queries core objects: it parses the document,
resumes saved progress, and can print status, export answers, reset
state, or submit without an interactive front end. The document's parent
directory is the working directory that receives ``response/``.

Exit codes:
    0  success
    1  document, state or submission error
    2  usage error (missing document)
    3  submission kept locally (not pushed)
"""

from __future__ import annotations

import argparse
import logging
import queue
import sys
from pathlib import Path
from typing import List, Optional

from termquiz import __version__
from termquiz.core.errors import DocumentError, ResourceError, StateCorruption
from termquiz.core.utils.timeutil import format_iso, utc_now
from termquiz.document import load_quiz
from termquiz.logging_utils import configure_logging
from termquiz.session import Session, SnapshotStore, state_dir_for
from termquiz.submission import GitRepository, PipelineState, SubmissionPipeline

logger = logging.getLogger("termquiz.cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_LOCAL_ONLY = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="termquiz",
        description="Answer a timed markdown quiz and submit it through git",
    )
    parser.add_argument("document", type=Path, help="Quiz markdown file")
    parser.add_argument("--clear", action="store_true", help="Delete saved progress for this quiz")
    parser.add_argument("--status", action="store_true", help="Print progress and exit")
    parser.add_argument("--export", type=Path, metavar="PATH", help="Write answers to PATH as JSON")
    parser.add_argument("--submit", action="store_true", help="Submit saved answers now")
    parser.add_argument("--state-dir", type=Path, metavar="DIR", help="Override the state directory")
    parser.add_argument("--log-file", type=Path, metavar="PATH", help="Also write a detailed log")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    parser.add_argument("--version", action="version", version=f"termquiz {__version__}")
    return parser


def format_status(session: Session) -> str:
    quiz = session.quiz
    counts = session.status_counts()
    lines = [
        f"Quiz: {quiz.title}",
        f"File: {quiz.source_name}",
        f"Window: {format_iso(quiz.frontmatter.start)} to {format_iso(quiz.frontmatter.end)}",
        f"Questions: {counts.total}",
        f"  Done: {counts.done}, Answered: {counts.answered}, Flagged: {counts.flagged}, "
        f"Not answered: {counts.not_answered}, Unread: {counts.unread}",
    ]
    if session.started_at is not None:
        lines.append(f"Started: {format_iso(session.started_at)}")
    if session.acknowledgment is not None:
        lines.append(f"Acknowledged by: {session.acknowledgment.name}")
    return "\n".join(lines)


def _submit(session: Session, store: SnapshotStore, working_dir: Path) -> int:
    repository = GitRepository(working_dir)
    if repository.is_repository() and repository.has_existing_submission():
        logger.error("A submission for this quiz has already been pushed")
        return EXIT_ERROR
    if not session.is_acknowledged():
        logger.error("This quiz requires an acknowledgment; open it interactively first")
        return EXIT_ERROR
    if session.started_at is None:
        session.begin(utc_now())

    pipeline = SubmissionPipeline(session, store, working_dir, repository)
    try:
        state = pipeline.submit()
    except ResourceError as e:
        logger.error(f"Could not write submission: {e}")
        return EXIT_ERROR

    if state is PipelineState.PUBLISHING:
        logger.info("Pushing submission (Ctrl-C to stop retrying)...")
        try:
            state = pipeline.wait_until_final()
        except KeyboardInterrupt:
            pipeline.cancel()
            try:
                state = pipeline.wait_until_final(timeout=5)
            except queue.Empty:
                state = pipeline.state

    if state is PipelineState.PUBLISHED:
        logger.info("Submitted.")
        return EXIT_OK
    if state is PipelineState.ALREADY_SUBMITTED:
        logger.error("The remote already holds a submission for this quiz")
        return EXIT_ERROR
    if state is PipelineState.COMPOSING:
        logger.info("Push cancelled; the submission is committed locally")
        return EXIT_LOCAL_ONLY
    logger.warning(pipeline.recovery_instructions())
    return EXIT_LOCAL_ONLY


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose, log_file=args.log_file)

    document: Path = args.document
    if not document.is_file():
        logger.error(f"Quiz file not found: {document}")
        return EXIT_USAGE

    try:
        quiz = load_quiz(document)
    except DocumentError as e:
        logger.error(f"Invalid quiz: {e}")
        if e.source:
            logger.error(f"  at: {e.source.splitlines()[0]}")
        return EXIT_ERROR

    store = SnapshotStore(args.state_dir or state_dir_for(document))

    if args.clear:
        try:
            store.clear()
        except ResourceError as e:
            logger.error(str(e))
            return EXIT_ERROR
        logger.info("Saved progress cleared")
        if not (args.status or args.export or args.submit):
            return EXIT_OK

    try:
        session = store.load(quiz)
    except StateCorruption as e:
        logger.error(str(e))
        return EXIT_ERROR
    if session is None:
        session = Session(quiz)

    if args.status:
        print(format_status(session))

    if args.export:
        try:
            store.export(session, args.export)
        except ResourceError as e:
            logger.error(str(e))
            return EXIT_ERROR
        logger.info(f"Answers exported to {args.export}")

    if args.submit:
        return _submit(session, store, document.resolve().parent)

    if not (args.status or args.export):
        print(format_status(session))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
