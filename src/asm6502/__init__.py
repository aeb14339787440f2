"""
asm6502 - Assembler for the MOS 6502
====================================

This package provides a single-pass assembler for the MOS 6502 CPU, the
processor of the Apple II, Commodore 64, Atari 2600 and NES. It turns
assembly source files into raw binary images.

Main Components
---------------
- **assembler**: lexer, parser, code generator and the Assembler facade
- **cpu**: 6502 addressing modes and opcode tables
- **cli**: the ``asm6502`` command-line tool

Quick Start
-----------
Assemble a program:
    >>> from asm6502 import Assembler
    >>> asm = Assembler()
    >>> code = asm.assemble_file("hello.asm")
    >>> asm.write_binary("hello.bin")

Or use the command-line tool:
    $ asm6502 hello.asm -o hello.bin -s hello.sym

Version History
---------------
1.0.0 - Initial release
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from asm6502.assembler import Assembler, assemble, assemble_file
from asm6502.errors import (
    Asm6502Error,
    AssemblerError,
    AssemblySyntaxError,
    UndefinedSymbolError,
    DuplicateSymbolError,
    AddressingModeError,
    BranchRangeError,
    DirectiveError,
    IncludeError,
    UserFailError,
    SourceLocation,
)

__all__ = [
    # Version info
    "__version__",
    # Assembler
    "Assembler",
    "assemble",
    "assemble_file",
    # Exception hierarchy
    "Asm6502Error",
    "AssemblerError",
    "AssemblySyntaxError",
    "UndefinedSymbolError",
    "DuplicateSymbolError",
    "AddressingModeError",
    "BranchRangeError",
    "DirectiveError",
    "IncludeError",
    "UserFailError",
    "SourceLocation",
]
