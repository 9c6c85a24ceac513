"""
Module: document.parser

Purpose:
    Turn a markdown quiz document into an immutable Quiz. Pure: no I/O
    except in ``load_quiz``, which reads and hashes the file first.

Document shape:
    ---                                   <- YAML frontmatter (required)
    start: 2025-01-02T10:00:00-05:00
    end: 2025-01-02T12:00:00-05:00
    ---
    # Title                               <- fallback title
    Preamble paragraphs...
    ## 1. Question title                  <- opens question 1
    Body text, code fences, lists...
    - [ ] choice a                        <- checkbox items become choices
    > long                                <- or short / file(...) directive
    :::hint
    Hint text
    :::

Key Functions:
    - parse_quiz(): text -> Quiz
    - load_quiz(): path -> Quiz (hashes the bytes)

Dependencies:
    - markdown_it (markdown-it-py): CommonMark token stream
    - document.frontmatter, document.file_params

Used By:
    - cli
    - app.controller (via cli)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from termquiz.core.errors import DocumentError
from termquiz.core.models.questions import (
    CHOICE_LABELS,
    BlockKind,
    BodyBlock,
    Choice,
    FileConstraints,
    Question,
    QuestionType,
    Quiz,
)
from termquiz.core.utils.hashing import hash_bytes

from .file_params import parse_file_constraints
from .frontmatter import parse_frontmatter, split_frontmatter

logger = logging.getLogger(__name__)

md = MarkdownIt("commonmark")

MULTI_MARKER = "(Multi)"
HINT_OPEN = ":::hint"
HINT_CLOSE = ":::"

_HEADING_RE = re.compile(r"^(?P<number>\d+)\.\s*(?P<title>.*)$", re.DOTALL)
_CHECKBOX_RE = re.compile(r"^\[(?P<mark>[ xX])\]\s+(?P<text>.*)$", re.DOTALL)


# ─────────────────────────────────────────────────────────────────────────────
# Inline Rendering
# ─────────────────────────────────────────────────────────────────────────────

def _render_inline(node: SyntaxTreeNode, markup: bool = True) -> str:
    """
    Flatten inline nodes into text.

    Line breaks become "\\n". With ``markup`` on, inline code keeps its
    backticks and emphasis keeps its ``*``/``**`` markers so a renderer can
    style them later; headings use ``markup=False``.
    """
    parts: List[str] = []
    for child in node.children:
        kind = child.type
        if kind == "text" or kind == "html_inline":
            parts.append(child.content)
        elif kind == "code_inline":
            parts.append(f"`{child.content}`" if markup else child.content)
        elif kind in ("softbreak", "hardbreak"):
            parts.append("\n")
        elif kind in ("em", "strong"):
            inner = _render_inline(child, markup)
            parts.append(f"{child.markup}{inner}{child.markup}" if markup else inner)
        else:
            # links, images, strikethrough: keep the visible text
            parts.append(_render_inline(child, markup))
    return "".join(parts)


def _inline_of(node: SyntaxTreeNode) -> Optional[SyntaxTreeNode]:
    for child in node.children:
        if child.type == "inline":
            return child
    return None


def _block_lines(node: SyntaxTreeNode, markup: bool = True) -> List[str]:
    """Rendered lines of a paragraph or heading node."""
    inline = _inline_of(node)
    if inline is None:
        return []
    return _render_inline(inline, markup).split("\n")


def _join_lines(lines: List[str]) -> str:
    return " ".join(line.strip() for line in lines if line.strip())


# ─────────────────────────────────────────────────────────────────────────────
# Question Accumulator
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class _PendingQuestion:
    """Mutable state for the question currently being read."""

    heading: str
    number: int
    title: str
    body: List[BodyBlock] = field(default_factory=list)
    choices: List[Choice] = field(default_factory=list)
    override: Optional[QuestionType] = None
    constraints: Optional[FileConstraints] = None
    hints: List[str] = field(default_factory=list)
    open_hint: Optional[List[str]] = None

    def add_choice(self, text: str, marked: bool) -> None:
        if len(self.choices) >= len(CHOICE_LABELS):
            raise DocumentError(
                f"Question {self.number} has more than {len(CHOICE_LABELS)} choices",
                source=self.heading,
            )
        label = CHOICE_LABELS[len(self.choices)]
        self.choices.append(Choice(label=label, text=text, marked=marked))

    def finish(self) -> Question:
        if self.open_hint is not None:
            raise DocumentError(
                f"Unterminated {HINT_OPEN} block in question {self.number}",
                source=self.heading,
            )

        if self.choices:
            if self.override is not None:
                raise DocumentError(
                    f"Question {self.number} has choices and a '{self.override.value}' "
                    "answer directive; use one or the other",
                    source=self.heading,
                )
            kind = QuestionType.MULTI if MULTI_MARKER in self.title else QuestionType.SINGLE
        else:
            kind = self.override or QuestionType.SHORT

        try:
            return Question(
                number=self.number,
                title=self.title,
                type=kind,
                body=tuple(self.body),
                choices=tuple(self.choices),
                file_constraints=self.constraints if kind is QuestionType.FILE else None,
                hints=tuple(self.hints),
            )
        except ValueError as e:
            raise DocumentError(str(e), source=self.heading) from e


def _parse_heading(text: str) -> Tuple[int, str]:
    """
    Split "N. Title" into (N, "Title").

    Raises:
        DocumentError: If the heading does not match or N is zero
    """
    trimmed = text.strip()
    match = _HEADING_RE.match(trimmed)
    if not match:
        raise DocumentError(
            f"Question heading must be in format '## N. Title', got: {trimmed}",
            source=trimmed,
        )
    number = int(match.group("number"))
    if number <= 0:
        raise DocumentError(f"Question number must be positive, got: {trimmed}", source=trimmed)
    return number, match.group("title").strip()


# ─────────────────────────────────────────────────────────────────────────────
# Body Walker
# ─────────────────────────────────────────────────────────────────────────────

class _BodyWalker:
    """
    Walk top-level markdown blocks in order, building questions.

    Everything before the first level-2 heading is preamble; each level-2
    heading closes the previous question and opens the next.
    """

    def __init__(self) -> None:
        self.h1_title: Optional[str] = None
        self.preamble: List[str] = []
        self.questions: List[Question] = []
        self._numbers: set[int] = set()
        self._current: Optional[_PendingQuestion] = None

    def walk(self, body: str) -> None:
        root = SyntaxTreeNode(md.parse(body))
        for node in root.children:
            self._block(node)
        self._finish_current()

    # -- dispatch -------------------------------------------------------------

    def _block(self, node: SyntaxTreeNode) -> None:
        kind = node.type
        if kind == "heading":
            self._heading(node)
        elif kind == "paragraph":
            self._paragraph(node)
        elif kind == "blockquote":
            self._blockquote(node)
        elif kind in ("bullet_list", "ordered_list"):
            for item in node.children:
                self._list_item(item)
        elif kind in ("fence", "code_block"):
            self._code(node)
        # hr, html_block: visual only

    def _heading(self, node: SyntaxTreeNode) -> None:
        text = _join_lines(_block_lines(node, markup=False))
        if node.tag == "h1":
            if self.h1_title is None:
                self.h1_title = text
        elif node.tag == "h2":
            self._open_question(text)
        elif self._current is not None:
            self._current.body.append(BodyBlock(BlockKind.TEXT, text))
        elif text:
            self.preamble.append(text)

    def _open_question(self, heading: str) -> None:
        self._finish_current()
        number, title = _parse_heading(heading)
        if number in self._numbers:
            raise DocumentError(f"Duplicate question number {number}", source=heading)
        self._numbers.add(number)
        self._current = _PendingQuestion(heading=heading, number=number, title=title)

    def _finish_current(self) -> None:
        if self._current is not None:
            self.questions.append(self._current.finish())
            self._current = None

    # -- blocks ---------------------------------------------------------------

    def _paragraph(self, node: SyntaxTreeNode) -> None:
        lines = _block_lines(node)
        question = self._current
        if question is None:
            text = _join_lines(lines)
            if text:
                self.preamble.append(text)
            return

        plain: List[str] = []
        for line in lines:
            stripped = line.strip()
            if question.open_hint is not None:
                if stripped == HINT_CLOSE:
                    question.hints.append(" ".join(question.open_hint))
                    question.open_hint = None
                elif stripped:
                    question.open_hint.append(stripped)
            elif stripped.startswith(HINT_OPEN):
                self._flush_text(question, plain)
                rest = stripped[len(HINT_OPEN):].strip()
                question.open_hint = [rest] if rest else []
            else:
                plain.append(line)
        self._flush_text(question, plain)

    @staticmethod
    def _flush_text(question: _PendingQuestion, lines: List[str]) -> None:
        text = _join_lines(lines)
        if text:
            question.body.append(BodyBlock(BlockKind.TEXT, text))
        lines.clear()

    def _blockquote(self, node: SyntaxTreeNode) -> None:
        paragraphs = [
            _join_lines(_block_lines(child))
            for child in node.children
            if child.type == "paragraph"
        ]
        text = "\n".join(p for p in paragraphs if p).strip()
        question = self._current
        if question is None:
            if text:
                self.preamble.append(text)
            return

        if text == "short":
            question.override = QuestionType.SHORT
        elif text == "long":
            question.override = QuestionType.LONG
        elif text.startswith("file"):
            question.override = QuestionType.FILE
            question.constraints = parse_file_constraints(text)
        elif text:
            question.body.append(BodyBlock(BlockKind.TEXT, text))

    def _list_item(self, item: SyntaxTreeNode) -> None:
        text = ""
        nested: List[SyntaxTreeNode] = []
        for child in item.children:
            if child.type == "paragraph" and not text:
                text = _join_lines(_block_lines(child))
            elif child.type in ("bullet_list", "ordered_list"):
                nested.append(child)

        question = self._current
        checkbox = _CHECKBOX_RE.match(text)
        if question is None:
            if text:
                self.preamble.append(f"- {text}")
        elif checkbox:
            question.add_choice(checkbox.group("text").strip(), checkbox.group("mark") in "xX")
        elif text:
            question.body.append(BodyBlock(BlockKind.LIST_ITEM, text))

        for sub_list in nested:
            for sub_item in sub_list.children:
                self._list_item(sub_item)

    def _code(self, node: SyntaxTreeNode) -> None:
        if self._current is None:
            return
        language = None
        if node.type == "fence":
            language = (node.info or "").strip() or None
        self._current.body.append(
            BodyBlock(BlockKind.CODE, node.content.rstrip("\n"), language=language)
        )


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────

def parse_quiz(
    text: str,
    source_name: str = "quiz.md",
    source_hash: Optional[str] = None,
) -> Quiz:
    """
    Parse quiz document text.

    Args:
        text: Full document, frontmatter included
        source_name: File name recorded in the Quiz and submission
        source_hash: Hash of the original bytes; computed from ``text`` if omitted

    Returns:
        Immutable Quiz

    Raises:
        DocumentError: On malformed frontmatter, a bad or duplicate question
            heading, choices combined with a type directive, or an
            unterminated hint block

    Example:
        >>> quiz = parse_quiz(Path("exam.md").read_text())
        >>> [q.number for q in quiz.questions]
        [1, 2, 3, 4, 5]
    """
    metadata, body = split_frontmatter(text)
    frontmatter = parse_frontmatter(metadata)

    walker = _BodyWalker()
    walker.walk(body)

    title = frontmatter.title or walker.h1_title or Path(source_name).stem
    quiz = Quiz(
        frontmatter=frontmatter,
        title=title,
        preamble=tuple(walker.preamble),
        questions=tuple(walker.questions),
        source_name=source_name,
        source_hash=source_hash or hash_bytes(text.encode("utf-8")),
    )
    logger.debug(f"Parsed {len(quiz.questions)} questions from {source_name}")
    return quiz


def load_quiz(path: Path) -> Quiz:
    """
    Read, hash and parse a quiz file.

    The hash covers the raw bytes so any edit to the file, even whitespace,
    invalidates saved sessions.

    Raises:
        DocumentError: If the file is unreadable, not UTF-8, or malformed
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise DocumentError(f"Cannot read quiz file {path}: {e}") from e
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DocumentError(f"Quiz file {path} is not UTF-8: {e}") from e

    quiz = parse_quiz(text, source_name=path.name, source_hash=hash_bytes(data))
    logger.info(f"Loaded quiz '{quiz.title}' with {len(quiz.questions)} questions")
    return quiz
