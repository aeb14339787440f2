"""
asm6502 - 6502 Assembler Command-Line Interface
===============================================

This module implements the command-line interface for the 6502 assembler.

Usage Examples
--------------
Basic assembly:
    $ asm6502 hello.asm

With output file and symbol table:
    $ asm6502 hello.asm -o hello.bin -s hello.sym

With include paths:
    $ asm6502 -I ./include program.asm

Inspect the result:
    $ asm6502 --tokens --hexdump hello.asm

Verbose mode:
    $ asm6502 -v hello.asm
"""

from pathlib import Path
from typing import Optional
import logging

import click

from asm6502 import __version__
from asm6502.assembler import Assembler, dump_tokens, format_hex_dump
from asm6502.cli.errors import handle_cli_exception


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output binary file (default: input.bin)",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file",
)
@click.option(
    "-I", "--include",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Add include search path (can be repeated)",
)
@click.option(
    "--tokens",
    is_flag=True,
    help="Print the token stream (with included files) before writing",
)
@click.option(
    "--hexdump",
    is_flag=True,
    help="Print a hex dump of the assembled image",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="asm6502")
def main(
    input_file: Path,
    output: Optional[Path],
    symbols: Optional[Path],
    include: tuple[Path, ...],
    tokens: bool,
    hexdump: bool,
    verbose: bool,
) -> None:
    """
    Assemble 6502 source code into a raw binary image.

    INPUT_FILE is the assembly source file (.asm) to assemble.

    \b
    Examples:
        asm6502 hello.asm              # Outputs hello.bin
        asm6502 hello.asm -o out.bin   # Specify output file
        asm6502 -I inc/ hello.asm      # Add include path
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    output_file = output if output is not None else input_file.with_suffix(".bin")
    asm = Assembler(verbose=verbose, include_paths=list(include))

    try:
        asm.assemble_file(input_file)

        if tokens:
            click.echo(dump_tokens(asm.get_tokens()))

        asm.write_binary(output_file)

        if symbols:
            asm.write_symbols(symbols)

        if hexdump:
            click.echo(format_hex_dump(asm.get_code(), asm.get_origin()))

        if verbose:
            code = asm.get_code()
            click.echo(f"Assembly complete: {len(code)} bytes at ${asm.get_origin():04X}")
            click.echo(f"Defined {len(asm.get_symbols())} symbols")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
