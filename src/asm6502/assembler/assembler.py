"""
6502 Assembler - Main Interface
===============================

This module provides the main Assembler class, which is the primary interface
for assembling 6502 source code. It coordinates the lexer, the parser and
the code generator to produce a raw binary image.

Example Usage
-------------
>>> from asm6502.assembler import Assembler
>>>
>>> asm = Assembler()
>>> code = asm.assemble_string('''
...     .ORG $0600
... start:
...     LDX #$08
... .loop:
...     DEX
...     BNE .loop
...     RTS
... ''')
>>> asm.get_code().hex(" ")
'a2 08 ca d0 fd 60'
>>> asm.write_binary("program.bin")

Command-Line Usage
------------------
    $ asm6502 program.asm -o program.bin -s program.sym

Options:
    -o, --output FILE      Output binary file
    -s, --symbols FILE     Generate symbol file
    -I, --include PATH     Add include search path
    --tokens               Dump the token stream
    --hexdump              Print a hex dump of the image
    -v, --verbose          Verbose output
"""

from pathlib import Path
from typing import Optional
import logging

from asm6502.assembler.lexer import Lexer, Token
from asm6502.assembler.parser import FileReader, Parser, read_file
from asm6502.assembler.codegen import CodeGenerator
from asm6502.errors import AssemblerError


logger = logging.getLogger(__name__)


class Assembler:
    """
    Main 6502 assembler class.

    The assembler supports:
    - All documented 6502 instructions and addressing modes
    - Global and local labels with forward references
    - Constants (name = value)
    - Data and layout directives (.BYTE, .WORD, .DSB, .PAD, ...)
    - Include files (.INCLUDE) and binary includes (.INCBIN)

    Attributes:
        verbose: If True, log progress messages at INFO level
    """

    def __init__(
        self,
        verbose: bool = False,
        include_paths: list[str | Path] | None = None,
        reader: Optional[FileReader] = None,
    ):
        """
        Initialize the assembler.

        Args:
            verbose: Enable progress messages
            include_paths: Directories searched by .INCLUDE and .INCBIN after
                           the including file's own directory
            reader: File reader for sources, includes and binary includes
                    (defaults to reading from disk)
        """
        self._verbose = verbose
        self._include_paths: list[Path] = []
        self._reader = reader or read_file
        self._codegen = CodeGenerator(reader=self._reader)
        self._sources: dict[str, str] = {}
        self._tokens: list[Token] = []

        if include_paths:
            for path in include_paths:
                self.add_include_path(path)

    def add_include_path(self, path: str | Path) -> None:
        """
        Add a directory to search for include files.

        Args:
            path: Directory path to add
        """
        path = Path(path)
        if not path.is_dir():
            logger.warning(f"include path '{path}' is not a directory")
        self._include_paths.append(path)

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble_string(self, source: str | bytes, filename: str = "<input>") -> bytes:
        """
        Assemble source code from a string.

        The assembly pipeline is:
        1. Tokenize the source (lexer)
        2. Resolve tokens into statements, splicing includes (parser)
        3. Generate code and resolve fixups (code generator)

        Args:
            source: Assembly source code
            filename: Virtual filename for error messages; also the base for
                      resolving relative include paths

        Returns:
            The binary image

        Raises:
            AssemblerError: If assembly fails
        """
        self._sources = {}
        self._tokens = []

        try:
            lexer = Lexer(source, filename)
            self._sources[filename] = lexer.source
            tokens = lexer.tokenize()

            parser = Parser(
                tokens,
                filename,
                include_paths=self._include_paths,
                reader=self._reader,
                sources=self._sources,
            )
            statements = parser.parse()
            self._tokens = parser.tokens
            self._log(f"Parsed {len(statements)} statements")

            code = self._codegen.generate(statements)
        except AssemblerError as e:
            self._attach_source_line(e)
            raise

        self._log(f"Generated {len(code)} bytes of code")
        return code

    def assemble_file(self, filepath: str | Path) -> bytes:
        """
        Assemble source code from a file.

        Args:
            filepath: Path to assembly source file

        Returns:
            The binary image

        Raises:
            AssemblerError: If assembly fails
            OSError: If the source file cannot be read
        """
        filepath = Path(filepath)
        self._log(f"Assembling {filepath}...")
        return self.assemble_string(self._reader(filepath), str(filepath))

    def _attach_source_line(self, error: AssemblerError) -> None:
        """Attach the offending source line to a located error."""
        if error.location is None or error.source_line is not None:
            return
        text = self._sources.get(error.location.filename)
        if text is None:
            return
        lines = text.splitlines()
        if 1 <= error.location.line <= len(lines):
            error.attach_source_line(lines[error.location.line - 1])

    def _log(self, message: str) -> None:
        if self._verbose:
            logger.info(message)

    # =========================================================================
    # Output Methods
    # =========================================================================

    def get_code(self) -> bytes:
        """Get the generated binary image."""
        return self._codegen.get_code()

    def get_origin(self) -> int:
        """Get the origin address (last .ORG value, 0 by default)."""
        return self._codegen.get_origin()

    def get_symbols(self) -> dict[str, int]:
        """Get the global labels as absolute addresses."""
        return self._codegen.get_symbols()

    def get_warnings(self) -> list[str]:
        """Get the messages of all .WARNING directives of the last run."""
        return list(self._codegen.warnings)

    def get_tokens(self) -> list[Token]:
        """Get the token stream of the last run, including spliced includes."""
        return list(self._tokens)

    def write_binary(self, filepath: str | Path) -> None:
        """
        Write the raw binary image.

        Args:
            filepath: Output file path
        """
        code = self.get_code()
        Path(filepath).write_bytes(code)
        self._log(f"Wrote {len(code)} bytes to {filepath}")

    def write_symbols(self, filepath: str | Path) -> None:
        """
        Write symbol table file.

        Format: name $address (one per line, sorted by name)
        """
        lines = ["; Symbol table", "; Generated by asm6502"]
        for name, address in sorted(self.get_symbols().items()):
            lines.append(f"{name} ${address:04X}")
        Path(filepath).write_text("\n".join(lines) + "\n")
        self._log(f"Wrote symbols to {filepath}")


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(
    source: str | bytes,
    filename: str = "<input>",
    include_paths: list[str | Path] | None = None,
) -> bytes:
    """
    Convenience function to assemble source code.

    Args:
        source: Assembly source code
        filename: Virtual filename for errors
        include_paths: Extra include search directories

    Returns:
        The binary image

    Raises:
        AssemblerError: If assembly fails
    """
    asm = Assembler(include_paths=include_paths)
    return asm.assemble_string(source, filename)


def assemble_file(
    filepath: str | Path,
    include_paths: list[str | Path] | None = None,
) -> bytes:
    """
    Convenience function to assemble a file.

    Args:
        filepath: Path to source file
        include_paths: Extra include search directories

    Returns:
        The binary image

    Raises:
        AssemblerError: If assembly fails
    """
    asm = Assembler(include_paths=include_paths)
    return asm.assemble_file(filepath)
