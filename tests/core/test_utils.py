"""
Unit Tests for core utilities: timestamps, hashing, atomic writes and locking.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from termquiz.core.utils import file_locking
from termquiz.core.utils.file_locking import LOCK_FILE_NAME, atomic_write_text, locked_directory
from termquiz.core.utils.hashing import hash_bytes, hash_text, short_path_digest
from termquiz.core.utils.timeutil import format_duration, format_remaining, parse_timestamp


class TestParseTimestamp:

    def test_parse_when_offset_string_then_returns_aware_datetime(self):
        parsed = parse_timestamp("2025-01-02T10:00:00-05:00")

        assert parsed.utcoffset() == timedelta(hours=-5)

    def test_parse_when_trailing_z_then_utc(self):
        parsed = parse_timestamp("2025-01-02T15:00:00Z")

        assert parsed == datetime(2025, 1, 2, 15, tzinfo=timezone.utc)

    def test_parse_when_naive_then_raises_error(self):
        with pytest.raises(ValueError, match="no UTC offset"):
            parse_timestamp("2025-01-02T10:00:00")

    def test_parse_when_not_timestamp_then_raises_error(self):
        with pytest.raises(ValueError):
            parse_timestamp(12345)


class TestFormatting:

    @pytest.mark.parametrize(
        "seconds, expected",
        [(0, "00:00:00"), (4954, "01:22:34"), (90061, "25:01:01"), (-5, "00:00:00")],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected

    @pytest.mark.parametrize(
        "seconds, expected",
        [(3725, "1h 02m 05s"), (65, "1m 05s"), (5, "5s"), (0, "0s")],
    )
    def test_format_remaining(self, seconds, expected):
        assert format_remaining(seconds) == expected


class TestHashing:

    def test_hash_text_has_prefix_and_matches_bytes(self):
        assert hash_text("abc") == hash_bytes(b"abc")
        assert hash_text("abc") == (
            "sha256:ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_short_path_digest_is_eight_hex_chars(self):
        digest = short_path_digest(Path("/tmp/quiz.md"))

        assert len(digest) == 8
        int(digest, 16)


class TestAtomicWrite:

    def test_write_when_target_missing_then_creates_parents(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "out.json"

        atomic_write_text(target, "{}")

        assert target.read_text(encoding="utf-8") == "{}"

    def test_write_when_replace_fails_then_keeps_old_file_and_no_temp(self, tmp_path: Path):
        target = tmp_path / "out.json"
        target.write_text("old", encoding="utf-8")

        with patch.object(Path, "replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                atomic_write_text(target, "new")

        assert target.read_text(encoding="utf-8") == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["out.json"]


class TestLockedDirectory:

    def test_lock_when_entered_then_creates_lock_file_and_releases(self, tmp_path: Path):
        state_dir = tmp_path / "state"

        with patch.object(file_locking.portalocker, "unlock", wraps=file_locking.portalocker.unlock) as unlock:
            with locked_directory(state_dir) as locked:
                assert locked == state_dir
                assert (state_dir / LOCK_FILE_NAME).exists()

        unlock.assert_called_once()
