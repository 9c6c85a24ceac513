"""
Document Package

Markdown quiz parser: YAML frontmatter, numbered question headings, checkbox
choices, answer-type directives and hint blocks.
"""

from .file_params import parse_file_constraints, parse_size
from .frontmatter import parse_frontmatter, split_frontmatter
from .parser import load_quiz, parse_quiz

__all__ = [
    "load_quiz",
    "parse_quiz",
    "parse_frontmatter",
    "split_frontmatter",
    "parse_file_constraints",
    "parse_size",
]
