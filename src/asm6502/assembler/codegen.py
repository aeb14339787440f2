"""
6502 Code Generator
===================

This module generates 6502 machine code from resolved statements in a
single forward pass.

Single Pass With Fixups
-----------------------
Statements are encoded in order into a growing output buffer. A reference
to a label that is already defined is encoded directly. A forward reference
emits a placeholder and queues a fixup:

- **Global fixups** (targets are global labels) are resolved after the
  whole pass. A name that is still unknown then is an undefined symbol.
- **Local fixups** (targets are local labels) are resolved as soon as the
  local label is defined. Local labels only live until the next global
  label, so any local fixup still pending when a new global label opens
  a scope is an undefined symbol.

Address Arithmetic
------------------
- Relative branch, target known: ``target - (offset + 2)``
- Relative branch, patched later: ``target - (patch_position + 1)``
- Absolute address: ``origin + target_offset``, little endian, where the
  origin is the one in effect when the reference was encoded.

Displacements must fit in -128..127.

Output
------
The result is the raw binary image. ``get_symbols()`` returns the global
labels as absolute addresses and ``format_hex_dump()`` renders an image
for display.
"""

from dataclasses import dataclass
from difflib import get_close_matches
from enum import Enum, auto
from pathlib import Path
from typing import Optional
import logging

from asm6502.errors import (
    AddressingModeError,
    BranchRangeError,
    DirectiveError,
    DuplicateSymbolError,
    IncludeError,
    SourceLocation,
    UndefinedSymbolError,
    UserFailError,
)
from asm6502.assembler.directives import DirectiveKind, Value, ValueType
from asm6502.assembler.parser import (
    Assignment,
    BranchInstruction,
    Directive,
    FileReader,
    ImpliedInstruction,
    Instruction,
    JumpInstruction,
    LabelDef,
    Statement,
    read_file,
)
from asm6502.cpu import (
    AddressingMode,
    InstructionInfo,
    get_instruction_info,
    get_valid_modes,
    operand_size,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Symbols and Fixups
# =============================================================================

@dataclass
class Symbol:
    """
    Symbol table entry.

    Attributes:
        name: Label name
        offset: Offset of the label in the output buffer
        location: Where the label was defined
        is_local: True for local labels
        origin: Origin in effect where the label was defined
    """
    name: str
    offset: int
    location: SourceLocation
    is_local: bool = False
    origin: int = 0

    @property
    def address(self) -> int:
        return (self.origin + self.offset) & 0xFFFF


class FixupKind(Enum):
    RELATIVE = auto()   # 8-bit branch displacement
    ABSOLUTE = auto()   # 16-bit little endian address


@dataclass
class Fixup:
    """
    A placeholder waiting for a label to be defined.

    Attributes:
        name: Target label name
        position: Buffer offset of the placeholder
        kind: RELATIVE (one byte) or ABSOLUTE (two bytes)
        origin: Origin in effect when the reference was encoded
        location: Source location of the referencing statement
    """
    name: str
    position: int
    kind: FixupKind
    origin: int
    location: SourceLocation


# =============================================================================
# Code Generator
# =============================================================================

class CodeGenerator:
    """
    Generates 6502 object code from resolved statements.

    The code generator maintains:
    - Global and local symbol tables (label offsets)
    - Pending global and local fixups
    - The output buffer, origin and fill value

    Usage:
        codegen = CodeGenerator()
        code = codegen.generate(statements)
        symbols = codegen.get_symbols()
    """

    def __init__(self, reader: Optional[FileReader] = None):
        """
        Initialize the code generator.

        Args:
            reader: File reader used by .INCBIN (defaults to reading from disk)
        """
        self._reader = reader or read_file

        self._code = bytearray()
        self._origin = 0
        self._fill_value = 0

        self._globals: dict[str, Symbol] = {}
        self._locals: dict[str, Symbol] = {}
        self._global_fixups: list[Fixup] = []
        self._local_fixups: list[Fixup] = []

        self.warnings: list[str] = []

    def generate(self, statements: list[Statement]) -> bytes:
        """
        Generate object code from resolved statements.

        Args:
            statements: Statements from the parser

        Returns:
            The binary image

        Raises:
            AssemblerError: On the first error
        """
        self._code.clear()
        self._origin = 0
        self._fill_value = 0
        self._globals.clear()
        self._locals.clear()
        self._global_fixups.clear()
        self._local_fixups.clear()
        self.warnings.clear()

        for stmt in statements:
            self._generate_statement(stmt)

        self._finalize()

        logger.debug(
            f"Generated {len(self._code)} bytes, {len(self._globals)} global labels"
        )
        return bytes(self._code)

    def get_code(self) -> bytes:
        """Return the generated binary image."""
        return bytes(self._code)

    def get_origin(self) -> int:
        """Return the origin in effect at the end of generation."""
        return self._origin

    def get_symbols(self) -> dict[str, int]:
        """
        Return the global labels as absolute addresses.

        Each label is placed relative to the origin in effect where it was
        defined.
        """
        return {name: sym.address for name, sym in self._globals.items()}

    # =========================================================================
    # Statement Dispatch
    # =========================================================================

    def _generate_statement(self, stmt: Statement) -> None:
        if isinstance(stmt, LabelDef):
            if stmt.is_local:
                self._define_local_label(stmt)
            else:
                self._define_global_label(stmt)
        elif isinstance(stmt, ImpliedInstruction):
            self._emit_implied(stmt)
        elif isinstance(stmt, Instruction):
            self._emit_instruction(stmt)
        elif isinstance(stmt, BranchInstruction):
            self._emit_branch(stmt)
        elif isinstance(stmt, JumpInstruction):
            self._emit_jump(stmt)
        elif isinstance(stmt, Directive):
            self._generate_directive(stmt)
        elif isinstance(stmt, Assignment):
            # Constants were substituted by the parser
            pass
        else:
            raise TypeError(f"unknown statement type: {type(stmt).__name__}")

    # =========================================================================
    # Labels
    # =========================================================================

    def _define_global_label(self, label: LabelDef) -> None:
        existing = self._globals.get(label.name)
        if existing is not None:
            raise DuplicateSymbolError(
                label.name,
                location=label.location,
                original_location=existing.location,
            )

        # Closing the local scope: every local reference must be resolved
        if self._local_fixups:
            pending = self._local_fixups[0]
            raise UndefinedSymbolError(
                f".{pending.name}",
                pending.location,
                hint=f"local labels are only visible up to the next global label ('{label.name}')",
            )

        self._globals[label.name] = Symbol(
            label.name, len(self._code), label.location, origin=self._origin
        )
        self._locals.clear()
        logger.debug(f"Label {label.name} at offset {len(self._code)}")

    def _define_local_label(self, label: LabelDef) -> None:
        existing = self._locals.get(label.name)
        if existing is not None:
            raise DuplicateSymbolError(
                f".{label.name}",
                location=label.location,
                original_location=existing.location,
            )

        offset = len(self._code)
        self._locals[label.name] = Symbol(
            label.name, offset, label.location, is_local=True, origin=self._origin
        )

        pending = []
        for fixup in self._local_fixups:
            if fixup.name == label.name:
                self._apply_fixup(fixup, offset)
            else:
                pending.append(fixup)
        self._local_fixups = pending

    # =========================================================================
    # Instructions
    # =========================================================================

    def _lookup(self, mnemonic: str, mode: AddressingMode, location: SourceLocation) -> InstructionInfo:
        info = get_instruction_info(mnemonic, mode)
        if info is None:
            raise AddressingModeError(
                mnemonic,
                str(mode),
                location,
                valid_modes=[str(m) for m in get_valid_modes(mnemonic)],
            )
        return info

    def _emit_implied(self, inst: ImpliedInstruction) -> None:
        info = (
            get_instruction_info(inst.mnemonic, AddressingMode.IMPLIED)
            or get_instruction_info(inst.mnemonic, AddressingMode.ACCUMULATOR)
        )
        if info is None:
            info = self._lookup(inst.mnemonic, AddressingMode.IMPLIED, inst.location)
        self._emit_byte(info.opcode)

    def _emit_instruction(self, inst: Instruction) -> None:
        info = self._lookup(inst.mnemonic, inst.mode, inst.location)
        self._emit_byte(info.opcode)
        if operand_size(inst.mode) == 1:
            self._emit_byte(inst.value)
        else:
            self._emit_word(inst.value)
        logger.debug(f"{inst.mnemonic} {inst.mode} ${inst.value:X}")

    def _emit_branch(self, inst: BranchInstruction) -> None:
        info = self._lookup(inst.mnemonic, AddressingMode.RELATIVE, inst.location)
        symbol = self._find_label(inst.target, inst.is_local)

        if symbol is not None:
            offset = symbol.offset - (len(self._code) + 2)
            self._check_branch_range(inst.target, offset, inst.location)
            self._emit_byte(info.opcode)
            self._emit_byte(offset)
            return

        self._emit_byte(info.opcode)
        self._queue_fixup(inst.target, inst.is_local, FixupKind.RELATIVE, inst.location)
        self._emit_byte(0)

    def _emit_jump(self, inst: JumpInstruction) -> None:
        mode = AddressingMode.INDIRECT if inst.indirect else AddressingMode.ABSOLUTE
        info = self._lookup(inst.mnemonic, mode, inst.location)
        self._emit_byte(info.opcode)
        self._emit_label_address(inst.target, inst.is_local, inst.location)

    def _emit_label_address(self, name: str, is_local: bool, location: SourceLocation) -> None:
        """Emit the absolute address of a label, or a placeholder and a fixup."""
        symbol = self._find_label(name, is_local)
        if symbol is not None:
            self._emit_word(self._origin + symbol.offset)
            return

        self._queue_fixup(name, is_local, FixupKind.ABSOLUTE, location)
        self._emit_word(0)

    @staticmethod
    def _check_branch_range(target: str, offset: int, location: SourceLocation) -> None:
        if offset < -128 or offset > 127:
            raise BranchRangeError(target, offset, location)

    # =========================================================================
    # Fixups
    # =========================================================================

    def _find_label(self, name: str, is_local: bool) -> Optional[Symbol]:
        table = self._locals if is_local else self._globals
        return table.get(name)

    def _queue_fixup(
        self,
        name: str,
        is_local: bool,
        kind: FixupKind,
        location: SourceLocation,
    ) -> None:
        """Record a fixup for the placeholder about to be emitted."""
        fixup = Fixup(name, len(self._code), kind, self._origin, location)
        if is_local:
            self._local_fixups.append(fixup)
        else:
            self._global_fixups.append(fixup)
        logger.debug(f"Fixup {kind.name.lower()} '{name}' at offset {fixup.position}")

    def _apply_fixup(self, fixup: Fixup, target_offset: int) -> None:
        """Patch a placeholder now that its target offset is known."""
        if fixup.kind == FixupKind.RELATIVE:
            offset = target_offset - (fixup.position + 1)
            self._check_branch_range(fixup.name, offset, fixup.location)
            self._code[fixup.position] = offset & 0xFF
        else:
            address = (fixup.origin + target_offset) & 0xFFFF
            self._code[fixup.position] = address & 0xFF
            self._code[fixup.position + 1] = (address >> 8) & 0xFF

    def _finalize(self) -> None:
        """Resolve global fixups once every label is known."""
        if self._local_fixups:
            pending = self._local_fixups[0]
            raise UndefinedSymbolError(f".{pending.name}", pending.location)

        for fixup in self._global_fixups:
            symbol = self._globals.get(fixup.name)
            if symbol is None:
                raise UndefinedSymbolError(
                    fixup.name,
                    fixup.location,
                    similar_symbols=_similar_names(fixup.name, self._globals),
                )
            self._apply_fixup(fixup, symbol.offset)
        self._global_fixups.clear()

    # =========================================================================
    # Directives
    # =========================================================================

    def _generate_directive(self, directive: Directive) -> None:
        kind = directive.kind
        values = directive.values

        if kind == DirectiveKind.ORG:
            self._origin = values[0].value
            logger.debug(f"Origin set to ${self._origin:04X}")

        elif kind == DirectiveKind.INCBIN:
            self._code.extend(self._read_binary(values[0].value, directive.location))

        elif kind == DirectiveKind.BYTE:
            for value in values:
                if value.type == ValueType.STRING:
                    self._code.extend(_encode(value.value))
                else:
                    self._emit_byte(value.value)

        elif kind == DirectiveKind.WORD:
            for value in values:
                if value.type == ValueType.REFERENCE:
                    name = value.value
                    is_local = name.startswith(".")
                    self._emit_label_address(name.lstrip("."), is_local, directive.location)
                else:
                    self._emit_word(value.value)

        elif kind == DirectiveKind.ASCII:
            for value in values:
                self._code.extend(_encode(value.value))

        elif kind == DirectiveKind.ASCIIZ:
            for value in values:
                self._code.extend(_encode(value.value))
                if not value.value.endswith("\x00"):
                    self._emit_byte(0)

        elif kind == DirectiveKind.DSB:
            count = values[0].value
            fill = values[1].value if len(values) > 1 else 0
            self._code.extend(bytes([fill & 0xFF]) * count)

        elif kind == DirectiveKind.DSW:
            count = values[0].value
            fill = values[1].value if len(values) > 1 else 0
            for _ in range(count):
                self._emit_word(fill)

        elif kind == DirectiveKind.PAD:
            target = values[0].value
            if len(self._code) > target:
                raise DirectiveError(
                    f".PAD target ${target:04X} is below the current size "
                    f"${len(self._code):04X}",
                    directive.location,
                )
            self._code.extend(bytes([self._fill_value]) * (target - len(self._code)))

        elif kind == DirectiveKind.FILLVALUE:
            self._fill_value = values[0].value

        elif kind == DirectiveKind.WARNING:
            message = " ".join(_render(value) for value in values)
            logger.warning(f"{directive.location}: warning: {message}")
            self.warnings.append(message)

        elif kind == DirectiveKind.FAIL:
            raise UserFailError(_render(values[0]), directive.location)

        else:
            raise DirectiveError(
                f".{directive.name} cannot be assembled here", directive.location
            )

    def _read_binary(self, path: str, location: SourceLocation) -> bytes:
        try:
            data = self._reader(Path(path))
        except OSError as e:
            raise IncludeError(path, e.strerror or str(e), location) from e
        logger.debug(f"Included {len(data)} bytes from {path}")
        return data

    # =========================================================================
    # Emission Helpers
    # =========================================================================

    def _emit_byte(self, value: int) -> None:
        """Emit a single byte to the output."""
        self._code.append(value & 0xFF)

    def _emit_word(self, value: int) -> None:
        """Emit a 16-bit word to the output (little-endian)."""
        self._code.append(value & 0xFF)
        self._code.append((value >> 8) & 0xFF)


# =============================================================================
# Helpers
# =============================================================================

def _encode(text: str) -> bytes:
    return text.encode("utf-8")


def _render(value: Value) -> str:
    if value.type == ValueType.STRING:
        return value.value
    return value.render()


def _similar_names(name: str, symbols: dict[str, Symbol]) -> list[str]:
    return get_close_matches(name, list(symbols), n=3)


def format_hex_dump(data: bytes, origin: int = 0, width: int = 16) -> str:
    """
    Format a binary image as a hex dump.

    Example:
        >>> print(format_hex_dump(bytes([0xA2, 0x08, 0xCA]), 0x0600))
        0600: a2 08 ca
    """
    lines = []
    for start in range(0, len(data), width):
        chunk = data[start:start + width]
        address = (origin + start) & 0xFFFF
        lines.append(f"{address:04x}: " + " ".join(f"{byte:02x}" for byte in chunk))
    return "\n".join(lines)
