"""
Statement parsing: LLM page parsing, cross-page merge, validation.
"""

from .merger import StatementParseError, merge_pages
from .prompts import PROMPT_VERSION, StatementPrompt
from .statement_parser import DATE_FORMATS, PageParseError, StatementParser, parse_date
from .validator import StatementValidationError, validate_statement

__all__ = [
    "DATE_FORMATS",
    "PROMPT_VERSION",
    "PageParseError",
    "StatementParseError",
    "StatementParser",
    "StatementPrompt",
    "StatementValidationError",
    "merge_pages",
    "parse_date",
    "validate_statement",
]
