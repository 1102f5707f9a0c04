"""Token scanner for the parts of SQL text the runner needs to understand.

The engine does the real parsing. This lexer only has to know enough to find
``$n`` placeholders and keywords without being fooled by string literals,
quoted identifiers, dollar-quoted bodies and comments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import ply.lex as lex


@dataclass(frozen=True)
class Placeholder:
    """A ``$n`` parameter reference and where it sits in the statement text."""

    number: int
    start: int
    end: int


class SqlLexer:
    """Lexer for tokenizing SQL statement text."""

    tokens = [
        "PARAM",
        "STRING",
        "DOLLAR_STRING",
        "QUOTED_IDENTIFIER",
        "IDENTIFIER",
        "NUMBER",
        "CAST",
        "OP",
    ]

    t_ignore = " \t\r"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    # Rules are all functions so PLY tries them in definition order.

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_LINE_COMMENT(self, t: lex.LexToken) -> None:
        r"--[^\n]*"
        pass

    def t_BLOCK_COMMENT(self, t: lex.LexToken) -> None:
        r"/\*(?:.|\n)*?\*/"
        t.lexer.lineno += t.value.count("\n")

    def t_PARAM(self, t: lex.LexToken) -> lex.LexToken:
        r"\$\d+"
        return t

    def t_DOLLAR_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$"
        # Dollar quotes close on the same tag; scan for it by hand
        tag = t.value
        data = t.lexer.lexdata
        close = data.find(tag, t.lexer.lexpos)
        end = len(data) if close < 0 else close + len(tag)
        t.value = data[t.lexpos:end]
        t.lexer.lineno += t.value.count("\n")
        t.lexer.lexpos = end
        return t

    def t_ESCAPE_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r"[eE]'(?:[^'\\]|\\(?:.|\n)|'')*'"
        t.type = "STRING"
        t.lexer.lineno += t.value.count("\n")
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r"'(?:[^']|'')*'"
        t.lexer.lineno += t.value.count("\n")
        return t

    def t_QUOTED_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r'"(?:[^"]|"")*"'
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[A-Za-z_][A-Za-z0-9_$]*"
        return t

    def t_NUMBER(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+(?:\.\d*)?(?:[eE][-+]?\d+)?"
        return t

    def t_CAST(self, t: lex.LexToken) -> lex.LexToken:
        r"::"
        return t

    def t_OP(self, t: lex.LexToken) -> lex.LexToken:
        r"."
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens


_lexer: SqlLexer | None = None


def _shared_lexer() -> SqlLexer:
    global _lexer
    if _lexer is None:
        _lexer = SqlLexer()
        _lexer.build()
    return _lexer


def tokenize(sql: str) -> list[lex.LexToken]:
    """Tokenize SQL text, skipping whitespace and comments."""
    lexer = _shared_lexer()
    lexer.lexer.lineno = 1
    return lexer.tokenize(sql)


def find_placeholders(sql: str) -> list[Placeholder]:
    """Return every ``$n`` placeholder outside literals and comments, in order."""
    return [
        Placeholder(number=int(tok.value[1:]), start=tok.lexpos, end=tok.lexpos + len(tok.value))
        for tok in tokenize(sql)
        if tok.type == "PARAM"
    ]


def placeholder_count(sql: str) -> int:
    """Return the number of parameters the statement expects (its highest ``$n``)."""
    return max((p.number for p in find_placeholders(sql)), default=0)


def rewrite_placeholders(sql: str, replace: Callable[[int], str]) -> str:
    """Replace each ``$n`` with ``replace(n)``, leaving all other text untouched."""
    pieces = []
    pos = 0
    for placeholder in find_placeholders(sql):
        pieces.append(sql[pos:placeholder.start])
        pieces.append(replace(placeholder.number))
        pos = placeholder.end
    pieces.append(sql[pos:])
    return "".join(pieces)


def leading_keyword(sql: str) -> str | None:
    """Return the first keyword of the statement, lowercased.

    Leading parentheses are skipped so ``(SELECT 1)`` reports ``select``.
    """
    for tok in tokenize(sql):
        if tok.type == "IDENTIFIER":
            return tok.value.lower()
        if tok.type == "OP" and tok.value == "(":
            continue
        return None
    return None


def has_keyword(sql: str, keyword: str) -> bool:
    """Return True if ``keyword`` appears as a bare word outside literals."""
    keyword = keyword.lower()
    return any(
        tok.type == "IDENTIFIER" and tok.value.lower() == keyword
        for tok in tokenize(sql)
    )


def statement_words(sql: str) -> list[list[str]]:
    """Return the bare words of each ``;``-separated statement, lowercased."""
    statements: list[list[str]] = [[]]
    for tok in tokenize(sql):
        if tok.type == "OP" and tok.value == ";":
            statements.append([])
        elif tok.type == "IDENTIFIER":
            statements[-1].append(tok.value.lower())
    return [words for words in statements if words]
