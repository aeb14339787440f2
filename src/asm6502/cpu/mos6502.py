"""
MOS 6502 Instruction Set
========================

Opcode tables for the 56 documented NMOS 6502 instructions.

Every instruction is described by the set of addressing modes it supports
and the opcode byte for each (mnemonic, mode) pair. The assembler looks up
the pair after it has inferred the addressing mode from the operand syntax;
a missing pair is an illegal opcode.

Addressing Modes
----------------
| Mode              | Syntax      | Operand bytes |
|-------------------|-------------|---------------|
| Implied           | CLC         | 0             |
| Accumulator       | ASL / ASL A | 0             |
| Immediate         | #$BB        | 1             |
| Zero page         | $LL         | 1             |
| Zero page,X / ,Y  | $LL,X       | 1             |
| Absolute          | $HHLL       | 2             |
| Absolute,X / ,Y   | $HHLL,X     | 2             |
| Indirect          | ($HHLL)     | 2             |
| Indexed indirect  | ($LL,X)     | 1             |
| Indirect indexed  | ($LL),Y     | 1             |
| Relative          | BNE label   | 1             |

Multi-byte operands are little endian.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# =============================================================================
# Addressing Modes
# =============================================================================

class AddressingMode(Enum):
    """6502 addressing modes."""

    IMPLIED = "implied"
    ACCUMULATOR = "accumulator"
    IMMEDIATE = "immediate"
    ZERO_PAGE = "zero page"
    ZERO_PAGE_X = "zero page,X"
    ZERO_PAGE_Y = "zero page,Y"
    ABSOLUTE = "absolute"
    ABSOLUTE_X = "absolute,X"
    ABSOLUTE_Y = "absolute,Y"
    INDIRECT = "indirect"
    INDEXED_INDIRECT = "(indirect,X)"
    INDIRECT_INDEXED = "(indirect),Y"
    RELATIVE = "relative"

    def __str__(self) -> str:
        return self.value


# Number of operand bytes following the opcode, per mode
_OPERAND_SIZES = {
    AddressingMode.IMPLIED: 0,
    AddressingMode.ACCUMULATOR: 0,
    AddressingMode.IMMEDIATE: 1,
    AddressingMode.ZERO_PAGE: 1,
    AddressingMode.ZERO_PAGE_X: 1,
    AddressingMode.ZERO_PAGE_Y: 1,
    AddressingMode.ABSOLUTE: 2,
    AddressingMode.ABSOLUTE_X: 2,
    AddressingMode.ABSOLUTE_Y: 2,
    AddressingMode.INDIRECT: 2,
    AddressingMode.INDEXED_INDIRECT: 1,
    AddressingMode.INDIRECT_INDEXED: 1,
    AddressingMode.RELATIVE: 1,
}


def operand_size(mode: AddressingMode) -> int:
    """Return the number of operand bytes that follow the opcode for mode."""
    return _OPERAND_SIZES[mode]


# =============================================================================
# Instruction Info
# =============================================================================

@dataclass(frozen=True)
class InstructionInfo:
    """
    Encoding of one (mnemonic, addressing mode) pair.

    Attributes:
        mnemonic: Upper-case instruction mnemonic
        mode: Addressing mode
        opcode: Opcode byte
    """
    mnemonic: str
    mode: AddressingMode
    opcode: int

    @property
    def size(self) -> int:
        """Total instruction size in bytes (opcode + operand)."""
        return 1 + operand_size(self.mode)


# =============================================================================
# Master Opcode Table
# =============================================================================

_M = AddressingMode

# The eight opcodes shared by the "group one" ALU instructions, in
# (immediate, zp, zp,X, abs, abs,X, abs,Y, (zp,X), (zp),Y) order.
_GROUP_ONE_MODES = (
    _M.IMMEDIATE, _M.ZERO_PAGE, _M.ZERO_PAGE_X, _M.ABSOLUTE,
    _M.ABSOLUTE_X, _M.ABSOLUTE_Y, _M.INDEXED_INDIRECT, _M.INDIRECT_INDEXED,
)

# Shift and rotate instructions: (accumulator, zp, zp,X, abs, abs,X)
_SHIFT_MODES = (
    _M.ACCUMULATOR, _M.ZERO_PAGE, _M.ZERO_PAGE_X, _M.ABSOLUTE, _M.ABSOLUTE_X,
)


def _group_one(*opcodes: int) -> dict[AddressingMode, int]:
    return dict(zip(_GROUP_ONE_MODES, opcodes))


def _shift(*opcodes: int) -> dict[AddressingMode, int]:
    return dict(zip(_SHIFT_MODES, opcodes))


OPCODE_TABLE: dict[str, dict[AddressingMode, int]] = {
    "ADC": _group_one(0x69, 0x65, 0x75, 0x6D, 0x7D, 0x79, 0x61, 0x71),
    "AND": _group_one(0x29, 0x25, 0x35, 0x2D, 0x3D, 0x39, 0x21, 0x31),
    "ASL": _shift(0x0A, 0x06, 0x16, 0x0E, 0x1E),
    "BCC": {_M.RELATIVE: 0x90},
    "BCS": {_M.RELATIVE: 0xB0},
    "BEQ": {_M.RELATIVE: 0xF0},
    "BIT": {_M.ZERO_PAGE: 0x24, _M.ABSOLUTE: 0x2C},
    "BMI": {_M.RELATIVE: 0x30},
    "BNE": {_M.RELATIVE: 0xD0},
    "BPL": {_M.RELATIVE: 0x10},
    "BRK": {_M.IMPLIED: 0x00},
    "BVC": {_M.RELATIVE: 0x50},
    "BVS": {_M.RELATIVE: 0x70},
    "CLC": {_M.IMPLIED: 0x18},
    "CLD": {_M.IMPLIED: 0xD8},
    "CLI": {_M.IMPLIED: 0x58},
    "CLV": {_M.IMPLIED: 0xB8},
    "CMP": _group_one(0xC9, 0xC5, 0xD5, 0xCD, 0xDD, 0xD9, 0xC1, 0xD1),
    "CPX": {_M.IMMEDIATE: 0xE0, _M.ZERO_PAGE: 0xE4, _M.ABSOLUTE: 0xEC},
    "CPY": {_M.IMMEDIATE: 0xC0, _M.ZERO_PAGE: 0xC4, _M.ABSOLUTE: 0xCC},
    "DEC": {_M.ZERO_PAGE: 0xC6, _M.ZERO_PAGE_X: 0xD6, _M.ABSOLUTE: 0xCE, _M.ABSOLUTE_X: 0xDE},
    "DEX": {_M.IMPLIED: 0xCA},
    "DEY": {_M.IMPLIED: 0x88},
    "EOR": _group_one(0x49, 0x45, 0x55, 0x4D, 0x5D, 0x59, 0x41, 0x51),
    "INC": {_M.ZERO_PAGE: 0xE6, _M.ZERO_PAGE_X: 0xF6, _M.ABSOLUTE: 0xEE, _M.ABSOLUTE_X: 0xFE},
    "INX": {_M.IMPLIED: 0xE8},
    "INY": {_M.IMPLIED: 0xC8},
    "JMP": {_M.ABSOLUTE: 0x4C, _M.INDIRECT: 0x6C},
    "JSR": {_M.ABSOLUTE: 0x20},
    "LDA": _group_one(0xA9, 0xA5, 0xB5, 0xAD, 0xBD, 0xB9, 0xA1, 0xB1),
    "LDX": {
        _M.IMMEDIATE: 0xA2, _M.ZERO_PAGE: 0xA6, _M.ZERO_PAGE_Y: 0xB6,
        _M.ABSOLUTE: 0xAE, _M.ABSOLUTE_Y: 0xBE,
    },
    "LDY": {
        _M.IMMEDIATE: 0xA0, _M.ZERO_PAGE: 0xA4, _M.ZERO_PAGE_X: 0xB4,
        _M.ABSOLUTE: 0xAC, _M.ABSOLUTE_X: 0xBC,
    },
    "LSR": _shift(0x4A, 0x46, 0x56, 0x4E, 0x5E),
    "NOP": {_M.IMPLIED: 0xEA},
    "ORA": _group_one(0x09, 0x05, 0x15, 0x0D, 0x1D, 0x19, 0x01, 0x11),
    "PHA": {_M.IMPLIED: 0x48},
    "PHP": {_M.IMPLIED: 0x08},
    "PLA": {_M.IMPLIED: 0x68},
    "PLP": {_M.IMPLIED: 0x28},
    "ROL": _shift(0x2A, 0x26, 0x36, 0x2E, 0x3E),
    "ROR": _shift(0x6A, 0x66, 0x76, 0x6E, 0x7E),
    "RTI": {_M.IMPLIED: 0x40},
    "RTS": {_M.IMPLIED: 0x60},
    "SBC": _group_one(0xE9, 0xE5, 0xF5, 0xED, 0xFD, 0xF9, 0xE1, 0xF1),
    "SEC": {_M.IMPLIED: 0x38},
    "SED": {_M.IMPLIED: 0xF8},
    "SEI": {_M.IMPLIED: 0x78},
    # STA has no immediate form
    "STA": {
        _M.ZERO_PAGE: 0x85, _M.ZERO_PAGE_X: 0x95, _M.ABSOLUTE: 0x8D,
        _M.ABSOLUTE_X: 0x9D, _M.ABSOLUTE_Y: 0x99,
        _M.INDEXED_INDIRECT: 0x81, _M.INDIRECT_INDEXED: 0x91,
    },
    "STX": {_M.ZERO_PAGE: 0x86, _M.ZERO_PAGE_Y: 0x96, _M.ABSOLUTE: 0x8E},
    "STY": {_M.ZERO_PAGE: 0x84, _M.ZERO_PAGE_X: 0x94, _M.ABSOLUTE: 0x8C},
    "TAX": {_M.IMPLIED: 0xAA},
    "TAY": {_M.IMPLIED: 0xA8},
    "TSX": {_M.IMPLIED: 0xBA},
    "TXA": {_M.IMPLIED: 0x8A},
    "TXS": {_M.IMPLIED: 0x9A},
    "TYA": {_M.IMPLIED: 0x98},
}

del _M


# =============================================================================
# Instruction Set Reference Lists
# =============================================================================

MNEMONICS = frozenset(OPCODE_TABLE)

# Conditional branches: operand is a label or signed 8-bit displacement
BRANCH_INSTRUCTIONS = frozenset({
    "BCC", "BCS", "BEQ", "BMI", "BNE", "BPL", "BVC", "BVS",
})

# Jumps: operand is a label, absolute address or (indirect) address
JUMP_INSTRUCTIONS = frozenset({"JMP", "JSR"})


# =============================================================================
# Lookup Functions
# =============================================================================

def get_instruction_info(mnemonic: str, mode: AddressingMode) -> Optional[InstructionInfo]:
    """
    Look up the encoding of an instruction in a given addressing mode.

    Returns:
        InstructionInfo, or None if the mnemonic is unknown or does not
        support the mode.
    """
    modes = OPCODE_TABLE.get(mnemonic.upper())
    if modes is None or mode not in modes:
        return None
    return InstructionInfo(mnemonic.upper(), mode, modes[mode])


def get_valid_modes(mnemonic: str) -> list[AddressingMode]:
    """Return the addressing modes supported by a mnemonic."""
    return list(OPCODE_TABLE.get(mnemonic.upper(), {}))


def is_valid_instruction(mnemonic: str) -> bool:
    """Check whether a word is a known mnemonic (case-insensitive)."""
    return mnemonic.upper() in MNEMONICS


def supports_mode(mnemonic: str, mode: AddressingMode) -> bool:
    """Check whether a mnemonic has an encoding for mode."""
    return mode in OPCODE_TABLE.get(mnemonic.upper(), {})
