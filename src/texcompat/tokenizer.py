"""Tokenizer for the text resource value grammar"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Union

from .errors import ParseError


class TokenKind(Enum):
    PARENTHESIS_OPEN = "("
    PARENTHESIS_CLOSE = ")"
    BRACKET_OPEN = "["
    BRACKET_CLOSE = "]"
    CURLY_BRACKET_OPEN = "{"
    CURLY_BRACKET_CLOSE = "}"
    COMMA = ","
    COLON = ":"
    EQUAL = "="
    NUMBER = "number"
    STRING = "string"
    IDENTIFIER = "identifier"
    EOF = "EOF"


PUNCTUATION = {kind.value: kind for kind in TokenKind if len(kind.value) == 1}

ESCAPES = {
    '"': '"',
    '\\': '\\',
    'n': '\n',
    't': '\t',
    'r': '\r',
}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: Union[int, float, str, None] = None
    line: int = 1

    def describe(self) -> str:
        if self.kind in (TokenKind.NUMBER, TokenKind.IDENTIFIER):
            return f"{self.kind.value} '{self.value}'"
        if self.kind is TokenKind.STRING:
            return f'string "{self.value}"'
        return f"'{self.kind.value}'"


class Tokenizer:
    """
    Pull tokenizer over a text buffer.

    next_token() keeps returning EOF once the text is exhausted. The current
    line is available as `line` for error reporting.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self._peeked: Optional[Token] = None

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            yield token
            if token.kind is TokenKind.EOF:
                return

    def peek(self) -> Token:
        if self._peeked is None:
            self._peeked = self._scan()
        return self._peeked

    def next_token(self) -> Token:
        token = self.peek()
        self._peeked = None
        return token

    def error(self, message: str) -> ParseError:
        return ParseError(message, self.line)

    def _scan(self) -> Token:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == '\n':
                self.line += 1
                self.pos += 1
            elif ch.isspace():
                self.pos += 1
            elif ch == ';':
                # Comment to end of line
                while self.pos < len(text) and text[self.pos] != '\n':
                    self.pos += 1
            else:
                break
        else:
            return Token(TokenKind.EOF, None, self.line)

        ch = text[self.pos]
        if ch in PUNCTUATION:
            self.pos += 1
            return Token(PUNCTUATION[ch], None, self.line)
        if ch == '"':
            return self._scan_string()
        if ch.isdigit() or (ch in '+-.' and self._number_follows()):
            return self._scan_number()
        if ch.isalpha() or ch == '_':
            start = self.pos
            while self.pos < len(text) and (text[self.pos].isalnum() or text[self.pos] == '_'):
                self.pos += 1
            return Token(TokenKind.IDENTIFIER, text[start:self.pos], self.line)

        raise self.error(f"Unexpected character {ch!r}")

    def _number_follows(self) -> bool:
        rest = self.text[self.pos + 1:self.pos + 3]
        return bool(rest) and (rest[0].isdigit() or (rest[0] == '.' and rest[1:2].isdigit()))

    def _scan_number(self) -> Token:
        text = self.text
        start = self.pos
        if text[self.pos] in '+-':
            self.pos += 1
        is_float = False
        while self.pos < len(text):
            ch = text[self.pos]
            if ch.isdigit():
                self.pos += 1
            elif ch in '.eE' and not (ch == '.' and is_float):
                is_float = True
                self.pos += 1
                if ch in 'eE' and self.pos < len(text) and text[self.pos] in '+-':
                    self.pos += 1
            else:
                break

        literal = text[start:self.pos]
        try:
            value = float(literal) if is_float else int(literal)
        except ValueError:
            raise self.error(f"Malformed number {literal!r}")
        return Token(TokenKind.NUMBER, value, self.line)

    def _scan_string(self) -> Token:
        text = self.text
        line = self.line
        self.pos += 1
        chars: List[str] = []
        while True:
            if self.pos >= len(text):
                raise ParseError("Unterminated string", line)
            ch = text[self.pos]
            self.pos += 1
            if ch == '"':
                break
            if ch == '\\':
                if self.pos >= len(text):
                    raise ParseError("Unterminated string", line)
                esc = text[self.pos]
                self.pos += 1
                chars.append(ESCAPES.get(esc, esc))
                continue
            if ch == '\n':
                self.line += 1
            chars.append(ch)
        return Token(TokenKind.STRING, ''.join(chars), line)
