"""Lexer (tokenizer) for the supported JavaScript subset."""

from typing import Callable, Iterator, Tuple
from .tokens import Token, TokenType, KEYWORDS, PUNCTUATORS
from .errors import JSSyntaxError


# str.isdigit() also accepts superscripts and other scripts' digits
DIGITS = frozenset("0123456789")
HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


def _is_identifier_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$"


def _is_identifier_part(ch: str) -> bool:
    return ch.isalpha() or ch in DIGITS or ch in "_$"


class Lexer:
    """Tokenizes source code."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.length = len(source)

    def save_state(self) -> Tuple[int, int, int]:
        """Snapshot the read position so the parser can look ahead."""
        return (self.pos, self.line, self.column)

    def restore_state(self, state: Tuple[int, int, int]) -> None:
        """Rewind to a position returned by save_state()."""
        self.pos, self.line, self.column = state

    def _char(self, offset: int = 0) -> str:
        """Character at pos + offset, or '' past the end."""
        pos = self.pos + offset
        return self.source[pos] if pos < self.length else ""

    def _advance(self, count: int = 1) -> str:
        """Consume count characters, keeping line and column current."""
        consumed = self.source[self.pos : self.pos + count]
        for ch in consumed:
            if ch == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        self.pos += len(consumed)
        return consumed

    def _take_while(self, predicate: Callable[[str], bool]) -> str:
        start = self.pos
        while self.pos < self.length and predicate(self.source[self.pos]):
            self._advance()
        return self.source[start : self.pos]

    def _skip_trivia(self) -> None:
        """Skip whitespace and comments."""
        while self.pos < self.length:
            ch = self._char()
            if ch in " \t\r\n":
                self._advance()
            elif self.source.startswith("//", self.pos):
                self._take_while(lambda c: c != "\n")
            elif self.source.startswith("/*", self.pos):
                line, column = self.line, self.column
                end = self.source.find("*/", self.pos + 2)
                if end == -1:
                    raise JSSyntaxError("Unterminated comment", line, column)
                self._advance(end + 2 - self.pos)
            else:
                return

    def _read_hex_escape(self, prefix: str, width: int) -> str:
        line, column = self.line, self.column
        digits = self._advance(width)
        if len(digits) != width or not all(c in HEX_DIGITS for c in digits):
            kind = "hex" if prefix == "x" else "unicode"
            raise JSSyntaxError(f"Invalid {kind} escape: \\{prefix}{digits}", line, column)
        return chr(int(digits, 16))

    def _read_string(self, quote: str) -> str:
        """Read a string literal, decoding escapes."""
        line, column = self.line, self.column
        self._advance()  # opening quote
        parts = []

        while True:
            ch = self._char()
            if ch == "" or ch == "\n":
                raise JSSyntaxError("Unterminated string literal", line, column)
            self._advance()
            if ch == quote:
                return "".join(parts)
            if ch != "\\":
                parts.append(ch)
                continue

            escape = self._advance()
            if escape == "x":
                parts.append(self._read_hex_escape("x", 2))
            elif escape == "u":
                parts.append(self._read_hex_escape("u", 4))
            elif escape == "\n":
                pass  # line continuation
            else:
                # Quotes, backslash and unknown escapes stand for themselves
                parts.append(SIMPLE_ESCAPES.get(escape, escape))

    def _read_number(self) -> float | int:
        """Read a decimal or hexadecimal number literal."""
        line, column = self.line, self.column

        if self._char() == "0" and self._char(1) in ("x", "X"):
            self._advance(2)
            digits = self._take_while(lambda c: c in HEX_DIGITS)
            if not digits:
                raise JSSyntaxError("Invalid hex literal", line, column)
            value: float | int = int(digits, 16)
        else:
            start = self.pos
            self._take_while(lambda c: c in DIGITS)
            is_float = False
            if self._char() == "." and self._char(1) in DIGITS:
                is_float = True
                self._advance()
                self._take_while(lambda c: c in DIGITS)
            if self._char() in ("e", "E"):
                is_float = True
                self._advance()
                if self._char() in ("+", "-"):
                    self._advance()
                if not self._take_while(lambda c: c in DIGITS):
                    raise JSSyntaxError("Invalid number literal", line, column)
            text = self.source[start : self.pos]
            value = float(text) if is_float else int(text)

        if self._char() and _is_identifier_part(self._char()):
            raise JSSyntaxError("Identifier starts immediately after numeric literal", line, column)
        return value

    def next_token(self) -> Token:
        """Get the next token."""
        self._skip_trivia()
        line, column = self.line, self.column

        if self.pos >= self.length:
            return Token(TokenType.EOF, None, line, column)

        ch = self._char()

        if ch in ("'", '"'):
            return Token(TokenType.STRING, self._read_string(ch), line, column)

        if ch in DIGITS or (ch == "." and self._char(1) in DIGITS):
            return Token(TokenType.NUMBER, self._read_number(), line, column)

        if _is_identifier_start(ch):
            word = self._take_while(_is_identifier_part)
            return Token(KEYWORDS.get(word, TokenType.IDENTIFIER), word, line, column)

        for spelling, token_type in PUNCTUATORS:
            if self.source.startswith(spelling, self.pos):
                self._advance(len(spelling))
                return Token(token_type, spelling, line, column)

        raise JSSyntaxError(f"Unexpected character: {ch!r}", line, column)

    def tokenize(self) -> Iterator[Token]:
        """Tokenize the entire source."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                return
