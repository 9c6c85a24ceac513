"""Utility helpers for termquiz core (hashing, timestamps, atomic files)."""

from .file_locking import atomic_write_text, locked_directory
from .hashing import hash_bytes, hash_file, hash_text
from .timeutil import format_duration, format_iso, format_remaining, parse_timestamp, utc_now

__all__ = [
    "atomic_write_text",
    "locked_directory",
    "hash_bytes",
    "hash_file",
    "hash_text",
    "format_duration",
    "format_iso",
    "format_remaining",
    "parse_timestamp",
    "utc_now",
]
