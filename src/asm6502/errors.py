"""
asm6502 Error Hierarchy
=======================

All assembler failures derive from Asm6502Error. Errors tied to a place in
the source derive from AssemblerError, which renders compiler-style
diagnostics:

    prog.asm:4:9: error: undefined symbol 'prnt'
        JSR prnt
            ^^^^
    hint: did you mean 'print'?

Exception Hierarchy
-------------------
Asm6502Error
└── AssemblerError
    ├── AssemblySyntaxError   malformed tokens and statements
    ├── UndefinedSymbolError  unknown constant, unresolved label
    ├── DuplicateSymbolError  label or constant defined twice
    ├── AddressingModeError   illegal opcode for (mnemonic, mode)
    ├── BranchRangeError      relative displacement outside -128..127
    ├── DirectiveError        directive arity, type or value problems
    ├── IncludeError          .INCLUDE/.INCBIN read failures and cycles
    └── UserFailError         raised by .FAIL

The first error aborts assembly; .WARNING is the only non-fatal diagnostic
and is reported through logging instead.
"""

from dataclasses import dataclass
from typing import Optional


class Asm6502Error(Exception):
    """Root of every exception raised by asm6502."""


# =============================================================================
# Locations
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A token span in a source file.

    Attributes:
        filename: Source file ("<input>" for in-memory source)
        line: 1-based line number
        column: 1-based first column of the span
        end: 1-based column just past the span (0 if unknown)
    """
    filename: str
    line: int
    column: int
    end: int = 0

    @property
    def width(self) -> int:
        return max(1, self.end - self.column)

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Located Errors
# =============================================================================

class AssemblerError(Asm6502Error):
    """
    An error at a known (or unknown) place in the source.

    Attributes:
        message: One-line description
        location: Span of the offending tokens, if known
        hint: Suggested fix, if any
        source_line: Text of the offending line, once attached
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self.render())

    def attach_source_line(self, source_line: str) -> None:
        """Record the offending line so the caret span can be drawn."""
        self.source_line = source_line
        self.args = (self.render(),)

    def render(self) -> str:
        header = "error: " + self.message
        if self.location is not None:
            header = f"{self.location}: {header}"
        lines = [header]

        if self.location is not None and self.source_line is not None:
            indent = " " * (3 + self.location.column)
            lines.append("    " + self.source_line)
            lines.append(indent + "^" * self.location.width)

        if self.hint:
            lines.append("hint: " + self.hint)
        return "\n".join(lines)


class AssemblySyntaxError(AssemblerError):
    """Bad numbers, identifiers, strings or statement structure."""


class UndefinedSymbolError(AssemblerError):
    """
    A name that never received a value.

    Constants are checked as operands are resolved; global labels once the
    generation pass is over; local labels when their scope closes.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbol = symbol
        self.similar_symbols = list(similar_symbols or [])
        if hint is None and self.similar_symbols:
            hint = "did you mean " + " or ".join(f"'{name}'" for name in self.similar_symbols) + "?"
        super().__init__(f"undefined symbol '{symbol}'", location, hint)


class DuplicateSymbolError(AssemblerError):
    """A global label, a local label within one scope, or a constant defined twice."""

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location
        hint = None if original_location is None else f"previous definition at {original_location}"
        super().__init__(f"'{symbol}' is already defined", location, hint)


class AddressingModeError(AssemblerError):
    """
    Illegal opcode: no encoding exists for the mnemonic in this mode.

    ``STA #$01`` is the classic case; the hint lists the modes the
    mnemonic does support.
    """

    def __init__(
        self,
        mnemonic: str,
        mode: str,
        location: Optional[SourceLocation] = None,
        valid_modes: Optional[list[str]] = None,
    ):
        self.mnemonic = mnemonic
        self.mode = mode
        self.valid_modes = list(valid_modes or [])
        hint = None
        if self.valid_modes:
            hint = f"valid modes for {mnemonic}: " + ", ".join(self.valid_modes)
        super().__init__(f"illegal opcode: {mnemonic} has no {mode} form", location, hint)


class BranchRangeError(AssemblerError):
    """A relative branch whose displacement does not fit in a signed byte."""

    def __init__(
        self,
        target: str,
        offset: int,
        location: Optional[SourceLocation] = None,
    ):
        self.target = target
        self.offset = offset
        super().__init__(
            f"branch to '{target}' out of range ({offset:+d} bytes, limit -128..+127)",
            location,
            hint="branch over a JMP to reach distant targets",
        )


class DirectiveError(AssemblerError):
    """Unknown directive, wrong number or type of values, or a bad .PAD target."""


class IncludeError(AssemblerError):
    """A file named by .INCLUDE or .INCBIN could not be used."""

    def __init__(
        self,
        filename: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        search_paths: Optional[list[str]] = None,
    ):
        self.included_filename = filename
        self.reason = reason
        self.search_paths = list(search_paths or [])
        hint = None
        if self.search_paths:
            hint = "looked in " + ", ".join(self.search_paths)
        super().__init__(f"cannot include '{filename}': {reason}", location, hint)


class UserFailError(AssemblerError):
    """Assembly stopped by ``.FAIL``; the message is the directive's text."""
