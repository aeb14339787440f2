"""
6502 Assembly Language Lexer
============================

This module implements the lexer (tokenizer) for 6502 assembly language.
It converts one source file into a list of located tokens that the
resolver (parser) consumes.

Token Types
-----------
- INSTRUCTION: 3-letter mnemonic (LDA, bne, ...), value is upper case
- KEYWORD: any other identifier (constant names, label references, X, Y)
- LABEL: identifier immediately followed by ':'  (``loop:``)
- LOCAL_LABEL: '.' identifier immediately followed by ':'  (``.loop:``)
- DIRECTIVE: '.' identifier  (``.BYTE``); also a local label reference
- NUMBER: numeric literal with an inferred width of 8 or 16 bits
- STRING: double-quoted string ("hello"), ``\\"`` is the only escape
- ASSIGN, COMMA, LPAREN, RPAREN, HASH: punctuation
- SPACE, NEWLINE, COMMENT: kept so the token stream can be dumped back
- EOF: end marker

Number Formats
--------------
The width of a literal is part of its meaning: it selects between zero
page and absolute addressing.

| Format      | Prefix | Byte form  | Word form          |
|-------------|--------|------------|--------------------|
| Hexadecimal | $      | 2 digits   | 4 digits           |
| Binary      | %      | 8 digits   | 16 digits          |
| Decimal     | (none) | 0..255     | 256..65535         |

Any other digit count is a format error.

Example
-------
>>> from asm6502.assembler.lexer import Lexer
>>> for token in Lexer("loop: LDA #$41").tokenize():
...     print(token)
Token(LABEL, 'loop', 1:1)
Token(SPACE, 1, 1:6)
Token(INSTRUCTION, 'LDA', 1:7)
Token(SPACE, 1, 1:10)
Token(HASH, 1:11)
Token(NUMBER, $41/8, 1:12)
Token(EOF, 1:15)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional
import string

from asm6502.cpu import MNEMONICS
from asm6502.errors import AssemblySyntaxError, SourceLocation


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for 6502 assembly language."""

    INSTRUCTION = auto()
    KEYWORD = auto()
    DIRECTIVE = auto()
    LABEL = auto()
    LOCAL_LABEL = auto()

    # Values
    STRING = auto()
    NUMBER = auto()

    # Punctuation
    ASSIGN = auto()      # =
    COMMA = auto()       # ,
    LPAREN = auto()      # (
    RPAREN = auto()      # )
    HASH = auto()        # # (immediate mode indicator)

    # Layout, preserved for token dumps
    SPACE = auto()
    NEWLINE = auto()
    COMMENT = auto()

    EOF = auto()


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single located token.

    Attributes:
        type: The TokenType classification
        value: Payload: text for identifiers/strings/comments, the numeric
               value for NUMBER, run length for SPACE/NEWLINE, else None
        line: Line number in source (1-indexed)
        column: Start column (1-indexed)
        end: End column (1-indexed, exclusive)
        filename: Name of the source file
        width: 8 or 16 for NUMBER tokens, None otherwise
    """
    type: TokenType
    value: str | int | None
    line: int
    column: int
    end: int
    filename: str
    width: Optional[int] = None

    def __repr__(self) -> str:
        if self.type == TokenType.NUMBER:
            return f"Token({self.type.name}, ${self.value:X}/{self.width}, {self.line}:{self.column})"
        if self.value is not None:
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    __str__ = __repr__

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation spanning this token."""
        return SourceLocation(self.filename, self.line, self.column, self.end)

    @property
    def is_byte(self) -> bool:
        return self.type == TokenType.NUMBER and self.width == 8

    @property
    def is_word(self) -> bool:
        return self.type == TokenType.NUMBER and self.width == 16


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes 6502 assembly source code.

    The lexer is stateless across files: the resolver creates a new Lexer
    for every included file.

    Usage:
        lexer = Lexer(source_text, filename)
        tokens = lexer.tokenize()

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
    """

    IDENT_START = string.ascii_letters
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    # Characters that may legally follow a number
    NUMBER_TERMINATORS = " \t\r\n,);"

    # Characters that may legally follow an identifier
    IDENT_TERMINATORS = " \t\r\n,)=;"

    # Characters that may legally follow a directive name or local label
    # reference (".loop," in a .WORD list, "(.loop)" in JMP)
    DIRECTIVE_TERMINATORS = " \t\r\n;,)"

    SINGLE_CHAR_TOKENS = {
        "=": TokenType.ASSIGN,
        ",": TokenType.COMMA,
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
        "#": TokenType.HASH,
    }

    def __init__(self, source: str | bytes, filename: str = "<input>"):
        """
        Initialize the lexer with source code.

        Args:
            source: The assembly source (bytes are decoded as UTF-8)
            filename: Name of the source file (for error messages)
        """
        self.filename = filename

        # Position tracking is needed for the error below
        self._pos = 0
        self._line = 1
        self._column = 1
        self._line_start_pos = 0
        self._start_column = 1

        if isinstance(source, bytes):
            try:
                source = source.decode("utf-8")
            except UnicodeDecodeError as e:
                self.source = ""
                raise AssemblySyntaxError(
                    f"source is not valid UTF-8 (byte {e.start})",
                    SourceLocation(filename, 1, 1),
                ) from e
        self.source = source

    def tokenize(self) -> list[Token]:
        """
        Produce the token list for the whole source.

        Returns:
            Tokens in source order, terminated by an EOF token

        Raises:
            AssemblySyntaxError: If invalid syntax is encountered
        """
        tokens: list[Token] = []
        while not self._at_end():
            tokens.append(self._scan_token())

        self._start_column = self._column
        tokens.append(self._make_token(TokenType.EOF, None))
        return tokens

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Look at a character without advancing; empty string past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume and return the current character, updating line/column."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        # LF, CRLF and a lone CR all end a line
        if char == "\n" or (char == "\r" and self._peek() != "\n"):
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        value: str | int | None,
        width: Optional[int] = None,
        start_line: Optional[int] = None,
        end: Optional[int] = None,
    ) -> Token:
        return Token(
            type=token_type,
            value=value,
            line=start_line or self._line,
            column=self._start_column,
            end=end or self._column,
            filename=self.filename,
            width=width,
        )

    def _error(self, message: str) -> AssemblySyntaxError:
        """Create a syntax error spanning the token being scanned."""
        end = max(self._column, self._start_column + 1)
        location = SourceLocation(self.filename, self._line, self._start_column, end)
        return AssemblySyntaxError(message, location, source_line=self.get_current_line())

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        self._start_column = self._column
        char = self._peek()

        if char in "\r\n":
            return self._scan_newline()

        if char in " \t":
            count = 0
            while self._peek() and self._peek() in " \t":
                self._advance()
                count += 1
            return self._make_token(TokenType.SPACE, count)

        if char == ";":
            return self._scan_comment()

        if char == "$":
            return self._scan_radix_number(string.hexdigits, 16, {2: 8, 4: 16}, "hexadecimal")

        if char == "%":
            return self._scan_radix_number("01", 2, {8: 8, 16: 16}, "binary")

        if char in string.digits:
            return self._scan_decimal_number()

        if char in self.IDENT_START:
            return self._scan_identifier()

        if char == ".":
            return self._scan_directive()

        if char == '"':
            return self._scan_string()

        if char in self.SINGLE_CHAR_TOKENS:
            self._advance()
            return self._make_token(self.SINGLE_CHAR_TOKENS[char], None)

        self._advance()
        raise self._error(f"unexpected character '{char}'")

    def _scan_newline(self) -> Token:
        """Scan a run of CR/LF characters; the value is the number of lines."""
        start_line = self._line
        end = self._column + 1
        lines = 0
        while self._peek() and self._peek() in "\r\n":
            char = self._advance()
            if char == "\n" or (char == "\r" and self._peek() != "\n"):
                lines += 1
        return self._make_token(TokenType.NEWLINE, lines, start_line=start_line, end=end)

    def _scan_comment(self) -> Token:
        """Scan a ';' comment up to (not including) the line break."""
        chars = []
        while not self._at_end() and self._peek() not in "\r\n":
            chars.append(self._advance())
        return self._make_token(TokenType.COMMENT, "".join(chars))

    def _scan_radix_number(
        self,
        digits: str,
        base: int,
        widths: dict[int, int],
        radix_name: str,
    ) -> Token:
        """Scan a '$' or '%' prefixed number whose width follows its digit count."""
        self._advance()  # consume prefix
        chars = []
        while not self._at_end() and self._peek() not in self.NUMBER_TERMINATORS:
            char = self._peek()
            if char not in digits:
                self._advance()
                raise self._error(f"invalid {radix_name} digit '{char}'")
            chars.append(self._advance())

        width = widths.get(len(chars))
        if width is None:
            expected = " or ".join(str(count) for count in widths)
            raise self._error(
                f"{radix_name} number must have {expected} digits, got {len(chars)}"
            )

        return self._make_token(TokenType.NUMBER, int("".join(chars), base), width=width)

    def _scan_decimal_number(self) -> Token:
        """Scan a decimal number; values above 255 are words."""
        chars = []
        while not self._at_end() and self._peek() not in self.NUMBER_TERMINATORS:
            char = self._peek()
            if char not in string.digits:
                self._advance()
                raise self._error(f"invalid decimal digit '{char}'")
            chars.append(self._advance())

        value = int("".join(chars))
        if value > 0xFFFF:
            raise self._error(f"decimal number {value} does not fit in 16 bits")

        width = 8 if value <= 0xFF else 16
        return self._make_token(TokenType.NUMBER, value, width=width)

    def _scan_identifier(self) -> Token:
        """
        Scan a mnemonic, keyword or label definition.

        A 3-letter identifier matching a mnemonic (case-insensitive) becomes
        an INSTRUCTION token; a trailing ':' makes a LABEL.
        """
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())
        name = "".join(chars)

        if self._peek() == ":":
            self._advance()
            return self._make_token(TokenType.LABEL, name)

        if not self._at_end() and self._peek() not in self.IDENT_TERMINATORS:
            char = self._advance()
            raise self._error(f"invalid character '{char}' in identifier '{name}'")

        if len(name) == 3 and name.upper() in MNEMONICS:
            return self._make_token(TokenType.INSTRUCTION, name.upper())

        return self._make_token(TokenType.KEYWORD, name)

    def _scan_directive(self) -> Token:
        """
        Scan a '.' prefixed name.

        ``.NAME`` is a directive (or a local label reference when used as an
        operand); ``.name:`` defines a local label.
        """
        self._advance()  # consume .
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())
        name = "".join(chars)

        if not any(char in string.ascii_letters for char in name):
            raise self._error(f"invalid directive name '.{name}'")

        if self._peek() == ":":
            self._advance()
            return self._make_token(TokenType.LOCAL_LABEL, name)

        if not self._at_end() and self._peek() not in self.DIRECTIVE_TERMINATORS:
            char = self._advance()
            raise self._error(f"invalid character '{char}' in directive '.{name}'")

        return self._make_token(TokenType.DIRECTIVE, name)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal; ``\\"`` is the only escape."""
        self._advance()  # consume opening "

        chars = []
        while not self._at_end():
            char = self._peek()

            if char == '"':
                self._advance()
                return self._make_token(TokenType.STRING, "".join(chars))

            if char in "\r\n":
                break

            if char == "\\" and self._peek(1) == '"':
                self._advance()
            chars.append(self._advance())

        raise self._error("unterminated string literal")

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def get_current_line(self) -> str:
        """Get the current line of source text (for error reporting)."""
        line_end = self._line_start_pos
        while line_end < len(self.source) and self.source[line_end] not in "\r\n":
            line_end += 1
        return self.source[self._line_start_pos:line_end]


# =============================================================================
# Token Dump
# =============================================================================

_DUMP_NAMES = {
    TokenType.INSTRUCTION: "INSTR",
    TokenType.KEYWORD: "KEYWORD",
    TokenType.DIRECTIVE: "DIRECTIVE",
    TokenType.LABEL: "LABEL",
    TokenType.LOCAL_LABEL: "LOCAL",
    TokenType.STRING: "STRING",
    TokenType.NUMBER: "NUMBER",
    TokenType.ASSIGN: "=",
    TokenType.COMMA: ",",
    TokenType.LPAREN: "(",
    TokenType.RPAREN: ")",
    TokenType.HASH: "#",
    TokenType.SPACE: "SPACE",
    TokenType.NEWLINE: "NEWLINE",
    TokenType.COMMENT: "COMMENT",
    TokenType.EOF: "END",
}


def dump_tokens(tokens: list[Token]) -> str:
    """
    Render a token list one source line per row.

    Each token is shown as ``[column:end KIND]``; rows are prefixed with the
    line number. Tokens from included files are grouped by file.

    Example:
        >>> print(dump_tokens(Lexer("LDA #$01").tokenize()))
            1. [ 1:4  INSTR   ] [ 4:5  SPACE   ] [ 5:6    #     ] ...
    """
    rows: list[str] = []
    current: Optional[tuple[str, int]] = None
    cells: list[str] = []

    for token in tokens:
        key = (token.filename, token.line)
        if key != current:
            if cells:
                rows.append(" ".join(cells))
            if current is None or current[0] != token.filename:
                rows.append(f"{token.filename}:")
            current = key
            cells = [f"{token.line:>5}."]
        cells.append(f"[{token.column:>2}:{token.end:<2} {_DUMP_NAMES[token.type]:^9}]")

    if cells:
        rows.append(" ".join(cells))
    return "\n".join(rows)
