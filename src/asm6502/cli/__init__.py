"""
asm6502 Command-Line Interface
==============================

- **asm6502**: 6502 assembler

The tool is a Click-based CLI application with help and error reporting.
"""

__all__ = ["asm"]
