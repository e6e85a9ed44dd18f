"""Token types for the lexer.

Keyword and punctuator members use their source spelling as the enum value,
so the lexer derives its keyword and operator tables from the enum itself.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class TokenType(Enum):
    """Token types of the supported JavaScript subset."""

    EOF = "end of input"
    NUMBER = "number"
    STRING = "string"
    IDENTIFIER = "identifier"

    # Keywords
    VAR = "var"
    LET = "let"
    CONST = "const"
    FUNCTION = "function"
    RETURN = "return"
    IF = "if"
    ELSE = "else"
    WHILE = "while"
    FOR = "for"
    BREAK = "break"
    CONTINUE = "continue"
    TYPEOF = "typeof"
    VOID = "void"
    THIS = "this"
    TRUE = "true"
    FALSE = "false"
    NULL = "null"

    # Punctuation
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    SEMICOLON = ";"
    COMMA = ","
    DOT = "."
    COLON = ":"
    QUESTION = "?"
    ARROW = "=>"

    # Arithmetic
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    PERCENT = "%"
    STARSTAR = "**"
    PLUSPLUS = "++"
    MINUSMINUS = "--"

    # Comparison and logic
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    EQ = "=="
    NE = "!="
    EQEQ = "==="
    NENE = "!=="
    AND = "&&"
    OR = "||"
    NOT = "!"

    # Assignment
    ASSIGN = "="
    PLUS_ASSIGN = "+="
    MINUS_ASSIGN = "-="
    STAR_ASSIGN = "*="
    SLASH_ASSIGN = "/="
    PERCENT_ASSIGN = "%="


_WORD_TYPES = {TokenType.NUMBER, TokenType.STRING, TokenType.IDENTIFIER}

KEYWORDS: Dict[str, TokenType] = {t.value: t for t in TokenType if t.value.isalpha() and t not in _WORD_TYPES}

# Longest spelling first so "===" wins over "==" and "="
PUNCTUATORS = sorted(
    ((t.value, t) for t in TokenType if not t.value[0].isalpha()),
    key=lambda item: len(item[0]),
    reverse=True,
)


@dataclass
class Token:
    """A token from the source text."""

    type: TokenType
    value: Any
    line: int
    column: int

    def __repr__(self) -> str:
        if self.value is not None:
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"
