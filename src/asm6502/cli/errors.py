"""
CLI Error Handling
==================

Turns exceptions escaping the assembler into a diagnostic on stderr and a
process exit code.

| Exit code      | Raised for                                        |
|----------------|---------------------------------------------------|
| SUCCESS        | -                                                 |
| BUILD_ERROR    | any Asm6502Error (bad source, includes, .FAIL)    |
| INVALID_ARGS   | bad click parameters, unreadable input or output  |
| INTERNAL_ERROR | anything else (a bug in asm6502)                  |
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click

from asm6502.errors import Asm6502Error, AssemblerError


class ExitCode(IntEnum):
    SUCCESS = 0
    BUILD_ERROR = 1
    INVALID_ARGS = 2
    INTERNAL_ERROR = 3


def exit_code_for(error: BaseException) -> ExitCode:
    """Classify an exception by the exit code it should produce."""
    if isinstance(error, Asm6502Error):
        return ExitCode.BUILD_ERROR
    if isinstance(error, (click.BadParameter, FileNotFoundError, PermissionError, IsADirectoryError)):
        return ExitCode.INVALID_ARGS
    return ExitCode.INTERNAL_ERROR


def handle_cli_exception(
    error: Exception,
    verbose: bool = False,
    error_type: str | None = None,
) -> NoReturn:
    """
    Report an exception and terminate the process.

    Located assembler errors already render as ``file:line:col: error: ...``
    and are printed unchanged. Other assembler errors get an ``error_type``
    prefix (e.g. "Assembly error: ..."). Internal errors print a traceback
    in verbose mode.
    """
    code = exit_code_for(error)

    if isinstance(error, AssemblerError) and error.location is not None:
        message = str(error)
    elif code == ExitCode.BUILD_ERROR:
        message = f"{error_type or 'Build'} error: {error}"
    elif code == ExitCode.INVALID_ARGS:
        message = f"Error: {error}"
    else:
        message = f"Internal error: {type(error).__name__}: {error}"

    click.echo(message, err=True)
    if code == ExitCode.INTERNAL_ERROR and verbose:
        traceback.print_exc()
    sys.exit(code)
