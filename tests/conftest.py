import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to sys.path so we can import termquiz
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from termquiz.document import load_quiz, parse_quiz  # noqa: E402
from termquiz.session import Session, SnapshotStore  # noqa: E402

FIXTURES = Path(__file__).resolve().parent / "fixtures"

EST = timezone(timedelta(hours=-5))

FRONTMATTER = """---
start: 2025-01-02T10:00:00-05:00
end: 2025-01-02T12:00:00-05:00
---
"""


# Common test fixtures
@pytest.fixture
def sample_quiz_path() -> Path:
    """Path of the five-question fixture document."""
    return FIXTURES / "sample_quiz.md"


@pytest.fixture
def sample_quiz(sample_quiz_path: Path):
    """Parsed five-question fixture (single, multi, short, long, file)."""
    return load_quiz(sample_quiz_path)


@pytest.fixture
def session(sample_quiz) -> Session:
    """Fresh session over the fixture quiz."""
    return Session(sample_quiz)


@pytest.fixture
def store(tmp_path: Path) -> SnapshotStore:
    """Snapshot store in a temporary state directory."""
    return SnapshotStore(tmp_path / "state")


@pytest.fixture
def build_quiz():
    """Return a helper that parses a body under a fixed frontmatter block."""

    def _build(body: str, frontmatter: str = FRONTMATTER, source_name: str = "quiz.md"):
        return parse_quiz(frontmatter + body, source_name=source_name)

    return _build


@pytest.fixture
def during_quiz() -> datetime:
    """A moment inside the fixture quiz window (10:00 to 12:00 EST)."""
    return datetime(2025, 1, 2, 10, 30, tzinfo=EST)


@pytest.fixture
def quiz_file(tmp_path: Path, sample_quiz_path: Path) -> Path:
    """Copy of the fixture document in a temporary working directory."""
    target = tmp_path / "work" / "sample_quiz.md"
    target.parent.mkdir(parents=True)
    target.write_bytes(sample_quiz_path.read_bytes())
    return target
