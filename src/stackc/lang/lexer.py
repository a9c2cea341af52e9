"""
Lexer (Tokenizer)
=================

This module converts source text into the finite token sequence consumed
by the parser. The sequence is always terminated by an EOF token.

Token Categories
----------------
- Keywords: int, if, else, while, return
- Identifiers: [A-Za-z_][A-Za-z0-9_]*
- Literals: decimal integers
- Operators: + - * / % = == != < <= > >=
- Delimiters: ( ) { } ; ,

Comments
--------
- Single-line: // comment
- Multi-line: /* comment */

Example Usage
-------------
>>> from stackc.lang.lexer import Lexer
>>> for token in Lexer('{ int a; }', "test.c").tokenize():
...     print(token)
Token(LBRACE, 1:1)
Token(INT, 1:3)
Token(IDENTIFIER, 'a', 1:7)
Token(SEMICOLON, 1:8)
Token(RBRACE, 1:10)
Token(EOF, 1:11)
"""

import logging
import string
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional

from stackc.errors import SourceLocation
from stackc.lang.errors import CSyntaxError, InvalidCharacterError

logger = logging.getLogger(__name__)


# =============================================================================
# Token Kind Enumeration
# =============================================================================

class TokenKind(Enum):
    """
    Token kinds of the language.

    Keywords are distinguished from identifiers so the parser can
    dispatch on a single token of lookahead.
    """

    # === Structural ===
    EOF = auto()            # End of input

    # === Identifiers and Literals ===
    IDENTIFIER = auto()     # Variable names
    LITERAL = auto()        # Integer literals

    # === Keywords ===
    INT = auto()            # int
    IF = auto()             # if
    ELSE = auto()           # else
    WHILE = auto()          # while
    RETURN = auto()         # return

    # === Arithmetic Operators ===
    PLUS = auto()           # +
    MINUS = auto()          # -
    STAR = auto()           # *
    SLASH = auto()          # /
    PERCENT = auto()        # %

    # === Comparison Operators ===
    EQ = auto()             # ==
    NE = auto()             # !=
    LT = auto()             # <
    GT = auto()             # >
    LE = auto()             # <=
    GE = auto()             # >=

    # === Assignment ===
    ASSIGN = auto()         # =

    # === Delimiters ===
    LPAREN = auto()         # (
    RPAREN = auto()         # )
    LBRACE = auto()         # {
    RBRACE = auto()         # }
    SEMICOLON = auto()      # ;
    COMMA = auto()          # ,

    @property
    def text(self) -> str:
        """Source spelling used in diagnostics and by the source printer."""
        return TOKEN_TEXT[self]


# Map keyword strings to their token kinds
KEYWORDS: dict[str, TokenKind] = {
    "int": TokenKind.INT,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "while": TokenKind.WHILE,
    "return": TokenKind.RETURN,
}

TOKEN_TEXT: dict[TokenKind, str] = {
    TokenKind.EOF: "end of input",
    TokenKind.IDENTIFIER: "identifier",
    TokenKind.LITERAL: "literal",
    **{kind: word for word, kind in KEYWORDS.items()},
    TokenKind.PLUS: "+",
    TokenKind.MINUS: "-",
    TokenKind.STAR: "*",
    TokenKind.SLASH: "/",
    TokenKind.PERCENT: "%",
    TokenKind.EQ: "==",
    TokenKind.NE: "!=",
    TokenKind.LT: "<",
    TokenKind.GT: ">",
    TokenKind.LE: "<=",
    TokenKind.GE: ">=",
    TokenKind.ASSIGN: "=",
    TokenKind.LPAREN: "(",
    TokenKind.RPAREN: ")",
    TokenKind.LBRACE: "{",
    TokenKind.RBRACE: "}",
    TokenKind.SEMICOLON: ";",
    TokenKind.COMMA: ",",
}


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single classified token.

    Attributes:
        kind: The TokenKind classification
        location: Where the token starts in the source
        lexeme: Source text for identifiers and literals, None otherwise
    """
    kind: TokenKind
    location: SourceLocation
    lexeme: Optional[str] = None

    def __repr__(self) -> str:
        where = f"{self.location.line}:{self.location.column}"
        if self.lexeme is not None:
            return f"Token({self.kind.name}, {self.lexeme!r}, {where})"
        return f"Token({self.kind.name}, {where})"

    @property
    def text(self) -> str:
        """The token as it appeared in the source."""
        if self.lexeme is not None:
            return self.lexeme
        return self.kind.text


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes source code.

    Usage:
        lexer = Lexer(source_text, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
    """

    IDENT_START = string.ascii_letters + "_"
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    SINGLE_TOKENS = {
        "+": TokenKind.PLUS,
        "-": TokenKind.MINUS,
        "*": TokenKind.STAR,
        "/": TokenKind.SLASH,
        "%": TokenKind.PERCENT,
        "(": TokenKind.LPAREN,
        ")": TokenKind.RPAREN,
        "{": TokenKind.LBRACE,
        "}": TokenKind.RBRACE,
        ";": TokenKind.SEMICOLON,
        ",": TokenKind.COMMA,
    }

    # First character -> (kind alone, kind when followed by '=')
    EQUALS_PAIRS = {
        "=": (TokenKind.ASSIGN, TokenKind.EQ),
        "<": (TokenKind.LT, TokenKind.LE),
        ">": (TokenKind.GT, TokenKind.GE),
        "!": (None, TokenKind.NE),
    }

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        self._pos = 0
        self._line = 1
        self._column = 1
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects, ending with a single EOF token

        Raises:
            CSyntaxError: If invalid input is encountered
        """
        count = 0
        while True:
            self._skip_whitespace_and_comments()
            if self._at_end():
                break
            yield self._scan_token()
            count += 1

        logger.debug(f"Lexed {count} tokens from {self.filename}")
        yield Token(TokenKind.EOF, self._location())

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Character at current position + offset, or "" past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume the current character, updating line/column tracking."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _match(self, expected: str) -> bool:
        if self._peek() == expected:
            self._advance()
            return True
        return False

    def _location(self, line: Optional[int] = None, column: Optional[int] = None) -> SourceLocation:
        return SourceLocation(self.filename, line or self._line, column or self._column)

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace_and_comments(self) -> None:
        while not self._at_end():
            char = self._peek()

            if char in " \t\n\r\f\v":
                self._advance()
                continue

            if char == "/" and self._peek(1) == "/":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
                continue

            if char == "/" and self._peek(1) == "*":
                self._skip_block_comment()
                continue

            break

    def _skip_block_comment(self) -> None:
        """
        Skip a multi-line comment (/* ... */).

        Raises:
            CSyntaxError: If comment is not terminated
        """
        start = self._location()
        self._advance()
        self._advance()

        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

        raise CSyntaxError(
            "unterminated multi-line comment",
            start,
            hint="add closing */ to terminate the comment",
        )

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        start = self._location()
        char = self._peek()

        if char in self.IDENT_START:
            return self._scan_identifier(start)

        if char.isdigit():
            return self._scan_number(start)

        return self._scan_operator(start)

    def _scan_identifier(self, start: SourceLocation) -> Token:
        """Scan an identifier, then check it against the keyword table."""
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())

        name = "".join(chars)
        if name in KEYWORDS:
            return Token(KEYWORDS[name], start)
        return Token(TokenKind.IDENTIFIER, start, name)

    def _scan_number(self, start: SourceLocation) -> Token:
        chars = []
        while self._peek().isdigit():
            chars.append(self._advance())

        # 123abc is one malformed token, not a literal followed by a name
        if self._peek() and self._peek() in self.IDENT_START:
            raise self._error(
                f"invalid suffix '{self._peek()}' on integer literal",
                start,
            )

        return Token(TokenKind.LITERAL, start, "".join(chars))

    def _scan_operator(self, start: SourceLocation) -> Token:
        char = self._advance()

        if char in self.EQUALS_PAIRS:
            alone, with_equals = self.EQUALS_PAIRS[char]
            if self._match("="):
                return Token(with_equals, start)
            if alone is not None:
                return Token(alone, start)

        elif char in self.SINGLE_TOKENS:
            return Token(self.SINGLE_TOKENS[char], start)

        raise InvalidCharacterError(char, start, self._get_current_line())

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def _get_current_line(self) -> str:
        """Get the current line of source text for error reporting."""
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]

    def _error(self, message: str, location: SourceLocation, hint: Optional[str] = None) -> CSyntaxError:
        return CSyntaxError(message, location, hint=hint, source_line=self._get_current_line())


def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Tokenize a whole source string into a list ending with EOF."""
    return list(Lexer(source, filename).tokenize())
