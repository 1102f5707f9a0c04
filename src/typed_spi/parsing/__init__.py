"""SQL text scanning helpers."""

from typed_spi.parsing.sql_lexer import (
    Placeholder,
    SqlLexer,
    find_placeholders,
    has_keyword,
    leading_keyword,
    placeholder_count,
    rewrite_placeholders,
    statement_words,
)

__all__ = [
    "Placeholder",
    "SqlLexer",
    "find_placeholders",
    "has_keyword",
    "leading_keyword",
    "placeholder_count",
    "rewrite_placeholders",
    "statement_words",
]
