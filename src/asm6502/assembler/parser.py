"""
6502 Assembly Language Parser
=============================

This module implements the semantic resolver for 6502 assembly language.
It converts the token list produced by the lexer into a list of statements
that the code generator processes in a single forward pass.

Statement Types
---------------
1. **LabelDef**: label definition (global or local)
   ```asm
   start:          ; Global label, opens a new local scope
   .loop:          ; Local label, visible until the next global label
   ```

2. **ImpliedInstruction**: instruction without operand
   ```asm
   INX
   ASL             ; accumulator mode
   ASL A           ; accumulator mode, explicit
   ```

3. **Instruction**: instruction with a resolved numeric operand
   ```asm
   LDA #$41        ; immediate
   STA $0200,X     ; absolute,X
   LDA ($40),Y     ; indirect indexed
   ```

4. **BranchInstruction** / **JumpInstruction**: symbolic targets
   ```asm
   BNE .loop       ; relative, local label
   JSR print       ; absolute, global label
   ```

5. **Directive**: assembler directive with its typed values
   ```asm
   .ORG $0600
   .BYTE $01, "text"
   ```

6. **Assignment**: constant definition
   ```asm
   SCREEN = $0200
   ```

Addressing Mode Detection
-------------------------
The width of a literal (or of the constant a name resolves to) decides
between zero page and absolute forms:

| Syntax       | Byte operand     | Word operand |
|--------------|------------------|--------------|
| #v           | immediate        | (error)      |
| v            | zero page        | absolute     |
| v,X / v,Y    | zero page,X / ,Y | absolute,X / ,Y |
| (v,X)        | indexed indirect | (error)      |
| (v),Y        | indirect indexed | (error)      |
| (v)          | (error)          | indirect     |

Include Handling
----------------
The token list is held in an arena with an integer cursor and a logical
length. ``.INCLUDE "file"`` lexes the file and splices its tokens (without
the end marker) into the arena at the cursor, so they are resolved next,
in place, before the rest of the including file.
"""

from dataclasses import dataclass, field
from difflib import get_close_matches
from pathlib import Path
from typing import Callable, Iterable, Optional
import logging

from asm6502.errors import (
    AssemblySyntaxError,
    DirectiveError,
    DuplicateSymbolError,
    IncludeError,
    SourceLocation,
    UndefinedSymbolError,
)
from asm6502.assembler.lexer import Lexer, Token, TokenType
from asm6502.assembler.directives import (
    DirectiveInfo,
    DirectiveKind,
    Value,
    ValueType,
    get_directive,
)
from asm6502.cpu import (
    AddressingMode,
    BRANCH_INSTRUCTIONS,
    JUMP_INSTRUCTIONS,
    supports_mode,
)


logger = logging.getLogger(__name__)

# Reads a whole file; used for .INCLUDE and .INCBIN
FileReader = Callable[[Path], bytes]


def read_file(path: Path) -> bytes:
    """Default file reader."""
    return Path(path).read_bytes()


# =============================================================================
# Statement Data Classes
# =============================================================================

@dataclass
class Statement:
    """
    Base class for all resolved statements.

    Every statement has a source location for error reporting.
    """
    location: SourceLocation


@dataclass
class LabelDef(Statement):
    """
    Label definition.

    Attributes:
        name: Label name (without ':' or the leading '.' of local labels)
        is_local: True for a local (scoped) label
    """
    name: str
    is_local: bool = False


@dataclass
class ImpliedInstruction(Statement):
    """Instruction without operand (implied or accumulator mode)."""
    mnemonic: str


@dataclass
class Instruction(Statement):
    """
    Instruction with a numeric operand.

    Attributes:
        mnemonic: Upper-case mnemonic
        value: Operand value (signed displacement byte for RELATIVE)
        mode: Inferred addressing mode
    """
    mnemonic: str
    value: int
    mode: AddressingMode


@dataclass
class BranchInstruction(Statement):
    """Relative branch to a label."""
    mnemonic: str
    target: str
    is_local: bool = False


@dataclass
class JumpInstruction(Statement):
    """
    Absolute (or indirect) jump to a label.

    Attributes:
        indirect: True for ``JMP (label)``
    """
    mnemonic: str
    target: str
    is_local: bool = False
    indirect: bool = False


@dataclass
class Directive(Statement):
    """
    Assembler directive.

    Attributes:
        kind: The directive effect
        values: Validated value list
        name: Directive name as looked up (e.g. "DB")
    """
    kind: DirectiveKind
    values: list[Value] = field(default_factory=list)
    name: str = ""


@dataclass
class Assignment(Statement):
    """Constant assignment ``name = value, ...``."""
    name: str
    values: list[Value] = field(default_factory=list)


_LAYOUT = (TokenType.SPACE, TokenType.NEWLINE, TokenType.COMMENT)

_TOKEN_DESCRIPTIONS = {
    TokenType.INSTRUCTION: "instruction",
    TokenType.KEYWORD: "identifier",
    TokenType.DIRECTIVE: "directive",
    TokenType.LABEL: "label",
    TokenType.LOCAL_LABEL: "local label",
    TokenType.STRING: "string",
    TokenType.NUMBER: "number",
    TokenType.ASSIGN: "'='",
    TokenType.COMMA: "','",
    TokenType.LPAREN: "'('",
    TokenType.RPAREN: "')'",
    TokenType.HASH: "'#'",
    TokenType.SPACE: "space",
    TokenType.NEWLINE: "end of line",
    TokenType.COMMENT: "comment",
    TokenType.EOF: "end of file",
}


def _describe(token: Token) -> str:
    return _TOKEN_DESCRIPTIONS[token.type]


# =============================================================================
# Parser Implementation
# =============================================================================

class Parser:
    """
    Resolves 6502 assembly tokens into statements.

    Usage:
        tokens = Lexer(source, filename).tokenize()
        parser = Parser(tokens, filename)
        statements = parser.parse()

    The parser owns the reference table of ``name = value`` constants and
    substitutes them into operands and directive arguments as it goes.
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        include_paths: Iterable[str | Path] = (),
        reader: Optional[FileReader] = None,
        sources: Optional[dict[str, str]] = None,
    ):
        """
        Initialize the parser.

        Args:
            tokens: Token list from the lexer (copied into the arena)
            filename: Name of the root source file
            include_paths: Extra directories searched by .INCLUDE/.INCBIN
            reader: File reader for included files
            sources: Optional dict that receives filename -> source text for
                     every included file (used to render error lines)
        """
        self._tokens: list[Token] = list(tokens)
        self._pos = 0
        self._size = len(self._tokens)
        self._filename = filename
        self._include_paths = [Path(p) for p in include_paths]
        self._reader = reader or read_file
        self._sources = sources if sources is not None else {}

        self._statements: list[Statement] = []
        self._previous: Optional[Token] = None

        # Reference table: constant name -> values
        self._references: dict[str, list[Value]] = {}
        self._reference_locations: dict[str, SourceLocation] = {}

        # Include chain: resolved file -> resolved including file
        self._include_parents: dict[str, Optional[str]] = {}

    @property
    def references(self) -> dict[str, list[Value]]:
        """The constants assigned so far."""
        return dict(self._references)

    @property
    def token_count(self) -> int:
        """Logical length of the token arena (grows with every include)."""
        return self._size

    @property
    def tokens(self) -> list[Token]:
        """The token arena, including spliced include tokens."""
        return self._tokens[:self._size]

    def parse(self) -> list[Statement]:
        """
        Resolve all tokens into statements.

        Raises:
            AssemblerError: On the first syntax or semantic error
        """
        while not self._at_end():
            token = self._current()

            if token.type in _LAYOUT:
                self._advance()
            elif token.type == TokenType.EOF:
                break
            elif token.type == TokenType.INSTRUCTION:
                self._parse_instruction()
            elif token.type in (TokenType.LABEL, TokenType.LOCAL_LABEL):
                self._advance()
                self._statements.append(LabelDef(
                    location=token.location,
                    name=token.value,
                    is_local=token.type == TokenType.LOCAL_LABEL,
                ))
            elif token.type == TokenType.DIRECTIVE:
                self._parse_directive()
            elif token.type == TokenType.KEYWORD:
                self._parse_assignment()
            else:
                raise AssemblySyntaxError(
                    f"unexpected {_describe(token)}", token.location
                )

        logger.debug(f"Resolved {len(self._statements)} statements from {self._size} tokens")
        return self._statements

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= self._size

    def _current(self) -> Token:
        if self._pos >= self._size:
            last = self._tokens[self._size - 1] if self._size else None
            return Token(
                TokenType.EOF, None,
                last.line if last else 1,
                last.end if last else 1,
                last.end if last else 1,
                last.filename if last else self._filename,
            )
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._current()
        self._pos += 1
        if token.type not in _LAYOUT:
            self._previous = token
        return token

    def _check(self, *types: TokenType) -> bool:
        return self._current().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._check(*types):
            return self._advance()
        return None

    def _skip_space(self) -> None:
        while self._check(TokenType.SPACE):
            self._advance()

    def _at_line_end(self) -> bool:
        return self._check(TokenType.NEWLINE, TokenType.COMMENT, TokenType.EOF)

    def _expect_line_end(self) -> None:
        """Consume optional space and comment, then a newline or end of file."""
        self._skip_space()
        self._match(TokenType.COMMENT)
        if self._match(TokenType.NEWLINE) or self._check(TokenType.EOF):
            return
        token = self._current()
        raise AssemblySyntaxError(
            f"expected end of line, found {_describe(token)}", token.location
        )

    def _span(self, start: Token) -> SourceLocation:
        """Location from start to the last consumed token on the same line."""
        last = self._previous
        if last is None or last.filename != start.filename or last.line != start.line:
            return start.location
        return SourceLocation(start.filename, start.line, start.column, last.end)

    # =========================================================================
    # Instruction Parsing
    # =========================================================================

    def _parse_instruction(self) -> None:
        start = self._advance()
        mnemonic = start.value

        if not self._check(TokenType.SPACE) and not self._at_line_end():
            token = self._current()
            raise AssemblySyntaxError(
                f"expected space between '{mnemonic}' and its operand",
                token.location,
            )
        self._skip_space()

        if self._at_line_end():
            if mnemonic in BRANCH_INSTRUCTIONS or mnemonic in JUMP_INSTRUCTIONS:
                raise AssemblySyntaxError(
                    f"'{mnemonic}' requires a target operand", start.location
                )
            statement: Statement = ImpliedInstruction(start.location, mnemonic)
        elif mnemonic in BRANCH_INSTRUCTIONS:
            statement = self._parse_branch_operand(start)
        elif mnemonic in JUMP_INSTRUCTIONS:
            statement = self._parse_jump_operand(start)
        else:
            statement = self._parse_operand(start)

        statement.location = self._span(start)
        self._expect_line_end()
        self._statements.append(statement)

    def _parse_operand(self, start: Token) -> Statement:
        """Infer the addressing mode of a regular instruction operand."""
        mnemonic = start.value
        token = self._current()

        # Explicit accumulator operand: ASL A
        if (token.type == TokenType.KEYWORD and token.value.upper() == "A"
                and token.value not in self._references
                and supports_mode(mnemonic, AddressingMode.ACCUMULATOR)):
            self._advance()
            return ImpliedInstruction(start.location, mnemonic)

        if self._match(TokenType.HASH):
            value, width, value_token = self._parse_number_operand()
            if width != 8:
                raise AssemblySyntaxError(
                    "immediate value must be a byte", value_token.location
                )
            return Instruction(start.location, mnemonic, value, AddressingMode.IMMEDIATE)

        if self._match(TokenType.LPAREN):
            return self._parse_indirect_operand(start)

        value, width, value_token = self._parse_number_operand()
        self._skip_space()

        if not self._match(TokenType.COMMA):
            mode = AddressingMode.ZERO_PAGE if width == 8 else AddressingMode.ABSOLUTE
            return Instruction(start.location, mnemonic, value, mode)

        self._skip_space()
        register = self._expect_register("X", "Y")
        if register == "X":
            mode = AddressingMode.ZERO_PAGE_X if width == 8 else AddressingMode.ABSOLUTE_X
        else:
            mode = AddressingMode.ZERO_PAGE_Y if width == 8 else AddressingMode.ABSOLUTE_Y
        return Instruction(start.location, mnemonic, value, mode)

    def _parse_indirect_operand(self, start: Token) -> Instruction:
        """Parse ``(v,X)``, ``(v),Y`` or ``(v)`` after the opening parenthesis."""
        mnemonic = start.value
        self._skip_space()
        value, width, value_token = self._parse_number_operand()
        self._skip_space()

        if self._match(TokenType.COMMA):
            self._skip_space()
            self._expect_register("X")
            self._skip_space()
            self._expect_closing_paren()
            self._require_byte(width, value_token, "indexed indirect")
            return Instruction(start.location, mnemonic, value, AddressingMode.INDEXED_INDIRECT)

        self._expect_closing_paren()
        self._skip_space()

        if self._match(TokenType.COMMA):
            self._skip_space()
            self._expect_register("Y")
            self._require_byte(width, value_token, "indirect indexed")
            return Instruction(start.location, mnemonic, value, AddressingMode.INDIRECT_INDEXED)

        if width != 16:
            raise AssemblySyntaxError(
                "indirect address must be a word", value_token.location
            )
        return Instruction(start.location, mnemonic, value, AddressingMode.INDIRECT)

    def _parse_branch_operand(self, start: Token) -> Statement:
        """Branch operand: global label, local label or byte displacement."""
        mnemonic = start.value
        token = self._advance()

        if token.type == TokenType.KEYWORD:
            return BranchInstruction(start.location, mnemonic, token.value)

        if token.type == TokenType.DIRECTIVE:
            return BranchInstruction(start.location, mnemonic, token.value, is_local=True)

        if token.type == TokenType.NUMBER:
            if token.width != 8:
                raise AssemblySyntaxError(
                    "relative displacement must be a byte", token.location
                )
            return Instruction(start.location, mnemonic, token.value, AddressingMode.RELATIVE)

        raise AssemblySyntaxError(
            f"branch target label or relative displacement expected, found {_describe(token)}",
            token.location,
        )

    def _parse_jump_operand(self, start: Token) -> Statement:
        """Jump operand: label, constant, absolute address or (indirect)."""
        mnemonic = start.value
        indirect = self._match(TokenType.LPAREN) is not None
        if indirect:
            self._skip_space()

        token = self._current()
        if token.type == TokenType.KEYWORD and token.value not in self._references:
            self._advance()
            statement: Statement = JumpInstruction(
                start.location, mnemonic, token.value, indirect=indirect
            )
        elif token.type == TokenType.DIRECTIVE:
            self._advance()
            statement = JumpInstruction(
                start.location, mnemonic, token.value, is_local=True, indirect=indirect
            )
        elif token.type in (TokenType.KEYWORD, TokenType.NUMBER):
            # Jumps have no zero page form: byte addresses are widened
            value, _, _ = self._parse_number_operand()
            mode = AddressingMode.INDIRECT if indirect else AddressingMode.ABSOLUTE
            statement = Instruction(start.location, mnemonic, value, mode)
        else:
            raise AssemblySyntaxError(
                "label name, absolute address or indirect address expected, "
                f"found {_describe(token)}",
                token.location,
            )

        if indirect:
            self._skip_space()
            self._expect_closing_paren()
        return statement

    def _parse_number_operand(self) -> tuple[int, int, Token]:
        """
        Read a numeric operand: a literal or the name of a constant.

        Returns:
            (value, width in bits, token)
        """
        token = self._current()

        if token.type == TokenType.NUMBER:
            self._advance()
            return token.value, token.width, token

        if token.type == TokenType.KEYWORD:
            self._advance()
            value = self._resolve_constant(token)
            width = 8 if value.type == ValueType.BYTE else 16
            return value.value, width, token

        raise AssemblySyntaxError(
            f"expected number or constant name, found {_describe(token)}",
            token.location,
        )

    def _resolve_constant(self, token: Token) -> Value:
        """Look up a single-number constant for use as an operand."""
        name = token.value
        values = self._references.get(name)
        if values is None:
            raise UndefinedSymbolError(
                name,
                token.location,
                similar_symbols=get_close_matches(name, list(self._references), n=3),
            )

        if len(values) != 1 or not values[0].is_number:
            raise AssemblySyntaxError(
                f"constant '{name}' must hold a single number to be used as an operand",
                token.location,
                hint=f"'{name}' was assigned at {self._reference_locations[name]}",
            )
        return values[0]

    def _expect_register(self, *registers: str) -> str:
        token = self._current()
        if token.type == TokenType.KEYWORD and token.value.upper() in registers:
            self._advance()
            return token.value.upper()
        raise AssemblySyntaxError(
            f"expected register {' or '.join(registers)}, found {_describe(token)}",
            token.location,
        )

    def _expect_closing_paren(self) -> None:
        if not self._match(TokenType.RPAREN):
            token = self._current()
            raise AssemblySyntaxError(
                f"unterminated '(': expected ')', found {_describe(token)}",
                token.location,
            )

    @staticmethod
    def _require_byte(width: int, token: Token, mode_name: str) -> None:
        if width != 8:
            raise AssemblySyntaxError(
                f"{mode_name} addressing requires a zero page byte address",
                token.location,
            )

    # =========================================================================
    # Directive Parsing
    # =========================================================================

    def _parse_directive(self) -> None:
        start = self._advance()
        info = get_directive(start.value)
        if info is None:
            raise DirectiveError(f"unknown directive '.{start.value}'", start.location)

        values = self._substitute_references(self._parse_value_list())
        location = self._span(start)
        values = self._check_directive_values(info, values, location)

        if info.kind == DirectiveKind.INCLUDE:
            self._include(values[0].value, start)
            return

        if info.kind == DirectiveKind.INCBIN:
            path = self._resolve_path(values[0].value, start)
            values = [Value(ValueType.STRING, str(path))]

        self._statements.append(Directive(location, info.kind, values, name=info.name))

    def _parse_value_list(self) -> list[Value]:
        """
        Parse a comma-separated list of bytes, words, strings and names.

        The list ends at the first token that is not followed by a comma;
        that token is left for the caller.
        """
        values: list[Value] = []
        self._skip_space()

        while True:
            token = self._current()
            if token.type == TokenType.NUMBER:
                value_type = ValueType.BYTE if token.width == 8 else ValueType.WORD
                values.append(Value(value_type, token.value))
            elif token.type == TokenType.STRING:
                values.append(Value(ValueType.STRING, token.value))
            elif token.type == TokenType.KEYWORD:
                values.append(Value(ValueType.REFERENCE, token.value))
            elif token.type == TokenType.DIRECTIVE and get_directive(token.value) is None:
                # Local label reference, kept with its leading dot
                values.append(Value(ValueType.REFERENCE, "." + token.value))
            elif values:
                raise AssemblySyntaxError(
                    f"expected value after ',', found {_describe(token)}",
                    token.location,
                )
            else:
                return values
            self._advance()

            self._skip_space()
            if not self._match(TokenType.COMMA):
                return values
            self._skip_space()

    def _substitute_references(self, values: list[Value]) -> list[Value]:
        """Replace references to constants by the constants' values."""
        result: list[Value] = []
        for value in values:
            if value.type == ValueType.REFERENCE and value.value in self._references:
                result.extend(self._references[value.value])
            else:
                result.append(value)
        return result

    def _check_directive_values(
        self,
        info: DirectiveInfo,
        values: list[Value],
        location: SourceLocation,
    ) -> list[Value]:
        """Validate values against the directive's arity and type policy."""
        if not info.arity.accepts(len(values)):
            raise DirectiveError(
                f".{info.name} expects {info.arity.describe()}, got {len(values)}",
                location,
            )

        checked: list[Value] = []
        for value in values:
            if value.type not in info.value_types:
                if value.type == ValueType.BYTE and ValueType.WORD in info.value_types:
                    value = Value(ValueType.WORD, value.value)
                elif value.type == ValueType.REFERENCE and value.value.startswith("."):
                    raise DirectiveError(
                        f"local label reference '{value.value}' is not allowed in .{info.name}",
                        location,
                        hint="label addresses can only be stored with .WORD or .DW",
                    )
                elif value.type == ValueType.REFERENCE:
                    raise UndefinedSymbolError(
                        value.value,
                        location,
                        similar_symbols=get_close_matches(value.value, list(self._references), n=3),
                    )
                else:
                    accepted = ", ".join(sorted(str(t) for t in info.value_types))
                    raise DirectiveError(
                        f".{info.name} does not accept {value.type} values "
                        f"(accepted: {accepted})",
                        location,
                    )
            checked.append(value)

        if info.kind == DirectiveKind.DSB and len(checked) == 2 and checked[1].type != ValueType.BYTE:
            raise DirectiveError(".DSB fill value must be a byte", location)

        return checked

    # =========================================================================
    # Constant Assignment
    # =========================================================================

    def _parse_assignment(self) -> None:
        start = self._advance()
        name = start.value
        self._skip_space()

        if not self._match(TokenType.ASSIGN):
            raise AssemblySyntaxError(
                f"unexpected identifier '{name}'",
                start.location,
                hint="labels need a trailing ':' and constants are assigned with '='",
            )

        values = self._substitute_references(self._parse_value_list())
        if not values:
            token = self._current()
            raise AssemblySyntaxError(
                f"expected value after '=', found {_describe(token)}",
                token.location,
            )

        if name in self._references:
            raise DuplicateSymbolError(
                name,
                location=start.location,
                original_location=self._reference_locations[name],
            )

        location = self._span(start)
        self._references[name] = values
        self._reference_locations[name] = location
        self._statements.append(Assignment(location, name, values))
        logger.debug(f"Constant {name} = {', '.join(v.render() for v in values)}")
        self._expect_line_end()

    # =========================================================================
    # Include Files
    # =========================================================================

    def _resolve_path(self, filename: str, token: Token) -> Path:
        """
        Resolve a file named by .INCLUDE/.INCBIN.

        Search order: the including file's directory (the working directory
        for string input), the configured include paths, the working
        directory. When no candidate exists the first one is returned and
        reading it reports the error.
        """
        if token.filename == "<input>":
            candidates = [Path.cwd() / filename]
        else:
            candidates = [Path(token.filename).parent / filename]
        candidates.extend(path / filename for path in self._include_paths)
        candidates.append(Path(filename))

        for candidate in candidates:
            if candidate.is_file():
                return candidate
        return candidates[0]

    def _include(self, filename: str, token: Token) -> None:
        """Lex an included file and splice its tokens in at the cursor."""
        path = self._resolve_path(filename, token)
        key = str(path.resolve())

        parent = None if token.filename == "<input>" else str(Path(token.filename).resolve())
        ancestor = parent
        while ancestor is not None:
            if ancestor == key:
                raise IncludeError(filename, "circular include detected", token.location)
            ancestor = self._include_parents.get(ancestor)
        self._include_parents[key] = parent

        try:
            data = self._reader(path)
        except OSError as e:
            raise IncludeError(
                filename,
                e.strerror or str(e),
                token.location,
                search_paths=[str(path.parent)] + [str(p) for p in self._include_paths],
            ) from e

        lexer = Lexer(data, str(path))
        self._sources[str(path)] = lexer.source
        sub_tokens = [t for t in lexer.tokenize() if t.type != TokenType.EOF]

        # Splice before the next read; the logical length grows with it
        self._tokens[self._pos:self._pos] = sub_tokens
        self._size += len(sub_tokens)
        logger.debug(f"Included {path} ({len(sub_tokens)} tokens)")


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_source(
    source: str | bytes,
    filename: str = "<input>",
    include_paths: Iterable[str | Path] = (),
    reader: Optional[FileReader] = None,
    sources: Optional[dict[str, str]] = None,
) -> list[Statement]:
    """
    Lex and resolve assembly source in one call.

    Args:
        source: Assembly source text
        filename: Source filename for error messages and include resolution
        include_paths: Extra directories searched by .INCLUDE/.INCBIN
        reader: File reader for included files
        sources: Optional dict receiving filename -> source text

    Returns:
        List of resolved statements
    """
    lexer = Lexer(source, filename)
    if sources is not None:
        sources[filename] = lexer.source
    tokens = lexer.tokenize()
    parser = Parser(tokens, filename, include_paths=include_paths, reader=reader, sources=sources)
    return parser.parse()
