"""
6502 Assembler
==============

This package provides a complete assembler for the MOS 6502
microprocessor. It converts 6502 assembly source code into a raw binary
image.

Main Components
---------------
- **Assembler**: Main assembler class that orchestrates the assembly process
- **Lexer**: Tokenizes assembly source into located tokens
- **Parser**: Resolves tokens into statements, infers addressing modes,
  substitutes constants and splices include files
- **CodeGenerator**: Encodes statements and resolves label fixups

Assembly Process
----------------
1. **Lexing**: every source file becomes a token list; numeric literals
   carry their width (byte or word) so that zero page and absolute forms
   can be told apart.

2. **Resolving**: tokens become statements. ``.INCLUDE`` splices the
   included file's tokens into the stream in place.

3. **Code Generation** (single pass):
   - Encode each statement into the output buffer
   - Queue fixups for forward label references
   - Resolve local fixups when their label appears, global ones at the end

Example Usage
-------------
>>> from asm6502.assembler import assemble
>>> assemble("LDA #$01\\nSTA $0200\\n").hex(" ")
'a9 01 8d 00 02'

Supported Features
------------------
- All 56 documented 6502 instructions and 13 addressing modes
- Global labels and scoped local labels (``.name:``)
- Constants (``name = value``)
- Data directives (.BYTE/.DB, .WORD/.DW, .ASCII, .ASCIIZ, .DSB, .DSW)
- Layout directives (.ORG, .PAD, .FILLVALUE)
- Include files (.INCLUDE) and binary includes (.INCBIN)
- Diagnostics (.WARNING, .FAIL)
"""

from asm6502.assembler.assembler import Assembler, assemble, assemble_file
from asm6502.assembler.lexer import Lexer, Token, TokenType, dump_tokens
from asm6502.assembler.parser import (
    Parser,
    Statement,
    LabelDef,
    ImpliedInstruction,
    Instruction,
    BranchInstruction,
    JumpInstruction,
    Directive,
    Assignment,
    parse_source,
)
from asm6502.assembler.directives import (
    DirectiveKind,
    DirectiveInfo,
    Value,
    ValueType,
    get_directive,
)
from asm6502.assembler.codegen import CodeGenerator, Fixup, FixupKind, format_hex_dump

__all__ = [
    # Main class and functions
    "Assembler",
    "assemble",
    "assemble_file",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    "dump_tokens",
    # Parser
    "Parser",
    "Statement",
    "LabelDef",
    "ImpliedInstruction",
    "Instruction",
    "BranchInstruction",
    "JumpInstruction",
    "Directive",
    "Assignment",
    "parse_source",
    # Directives
    "DirectiveKind",
    "DirectiveInfo",
    "Value",
    "ValueType",
    "get_directive",
    # Code generator
    "CodeGenerator",
    "Fixup",
    "FixupKind",
    "format_hex_dump",
]
