"""
asm6502 CPU Package
===================

Architecture definitions for the MOS 6502, shared by the lexer (mnemonic
recognition), the resolver (branch/jump classification, accumulator
detection) and the code generator (opcode encoding).

Usage:
    from asm6502.cpu import (
        AddressingMode,
        get_instruction_info,
    )
"""

from asm6502.cpu.mos6502 import (
    # Core types
    AddressingMode,
    InstructionInfo,
    # Master instruction database
    OPCODE_TABLE,
    # Instruction set reference lists
    MNEMONICS,
    BRANCH_INSTRUCTIONS,
    JUMP_INSTRUCTIONS,
    # Lookup functions
    get_instruction_info,
    get_valid_modes,
    is_valid_instruction,
    supports_mode,
    operand_size,
)

__all__ = [
    "AddressingMode",
    "InstructionInfo",
    "OPCODE_TABLE",
    "MNEMONICS",
    "BRANCH_INSTRUCTIONS",
    "JUMP_INSTRUCTIONS",
    "get_instruction_info",
    "get_valid_modes",
    "is_valid_instruction",
    "supports_mode",
    "operand_size",
]
