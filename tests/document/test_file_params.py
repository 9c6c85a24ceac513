"""
Unit Tests for file directive parameters.
"""

import pytest

from termquiz.document.file_params import parse_file_constraints, parse_size


class TestParseSize:

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("5MB", 5242880),
            ("2GB", 2147483648),
            ("100", 100),
            ("512kb", 524288),
            ("10 B", 10),
            ("1 Mb", 1048576),
        ],
    )
    def test_parse_size_when_valid_then_binary_multiples(self, value, expected):
        assert parse_size(value) == expected

    @pytest.mark.parametrize("value", ["lots", "5TB", "-1", "", "1.5MB", "²", "³MB"])
    def test_parse_size_when_invalid_then_none(self, value):
        assert parse_size(value) is None


class TestParseFileConstraints:

    def test_parse_when_all_keys_then_fills_every_field(self):
        constraints = parse_file_constraints("file(max_files: 3, max_size: 5MB, accept: .rs .toml)")

        assert constraints.max_files == 3
        assert constraints.max_size_bytes == 5242880
        assert constraints.accepted_extensions == frozenset({".rs", ".toml"})

    def test_parse_when_unknown_key_then_ignored(self):
        constraints = parse_file_constraints("file(colour: blue, max_files: 1)")

        assert constraints.max_files == 1

    def test_parse_when_bad_values_then_fields_unset(self):
        constraints = parse_file_constraints("file(max_files: many, max_size: huge)")

        assert constraints.max_files is None
        assert constraints.max_size_bytes is None

    def test_parse_when_pair_without_colon_then_skipped(self):
        constraints = parse_file_constraints("file(whatever, accept: .py)")

        assert constraints.accepted_extensions == frozenset({".py"})

    def test_parse_when_superscript_digits_then_fields_unset(self):
        constraints = parse_file_constraints("file(max_files: ², max_size: ³KB)")

        assert constraints.max_files is None
        assert constraints.max_size_bytes is None


def test_quiz_with_superscript_max_files_parses_unconstrained(build_quiz):
    quiz = build_quiz("## 1. Upload\n\n> file(max_files: ²)\n")

    assert quiz.question(1).file_constraints.max_files is None
