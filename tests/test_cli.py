# =============================================================================
# test_cli.py - Command-Line Interface Tests
# =============================================================================
# Tests for the asm6502 command-line tool.
#
# Test coverage includes:
#   - Default and explicit output files
#   - Symbol files, include paths, token dumps and hex dumps
#   - Exit codes for assembly errors and bad arguments
# =============================================================================

import pytest
from click.testing import CliRunner

from asm6502 import __version__
from asm6502.cli.asm import main
from asm6502.cli.errors import ExitCode, exit_code_for
from asm6502.errors import UserFailError


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def program(tmp_path):
    source = tmp_path / "prog.asm"
    source.write_text(".org $0600\nstart:\n  LDA #$01\n  STA $0200\n  RTS\n")
    return source


class TestAssembleCommand:
    """Test successful assembly through the CLI."""

    def test_default_output(self, runner, program):
        result = runner.invoke(main, [str(program)])
        assert result.exit_code == ExitCode.SUCCESS
        output = program.with_suffix(".bin")
        assert output.read_bytes() == bytes([0xA9, 0x01, 0x8D, 0x00, 0x02, 0x60])

    def test_explicit_output(self, runner, program, tmp_path):
        output = tmp_path / "out" / "image.rom"
        output.parent.mkdir()
        result = runner.invoke(main, [str(program), "-o", str(output)])
        assert result.exit_code == ExitCode.SUCCESS
        assert output.exists()
        assert not program.with_suffix(".bin").exists()

    def test_symbols_file(self, runner, program, tmp_path):
        symbols = tmp_path / "prog.sym"
        result = runner.invoke(main, [str(program), "-s", str(symbols)])
        assert result.exit_code == ExitCode.SUCCESS
        assert "start $0600" in symbols.read_text()

    def test_include_path(self, runner, tmp_path):
        inc = tmp_path / "inc"
        inc.mkdir()
        (inc / "defs.inc").write_text("VALUE = $2A\n")
        source = tmp_path / "prog.asm"
        source.write_text('.include "defs.inc"\nLDA #VALUE\n')

        result = runner.invoke(main, [str(source), "-I", str(inc)])
        assert result.exit_code == ExitCode.SUCCESS
        assert source.with_suffix(".bin").read_bytes() == bytes([0xA9, 0x2A])

    def test_hexdump(self, runner, program):
        result = runner.invoke(main, [str(program), "--hexdump"])
        assert result.exit_code == ExitCode.SUCCESS
        assert "0600: a9 01 8d 00 02 60" in result.output

    def test_tokens(self, runner, program):
        result = runner.invoke(main, [str(program), "--tokens"])
        assert result.exit_code == ExitCode.SUCCESS
        assert "INSTR" in result.output
        assert "DIRECTIVE" in result.output

    def test_verbose_summary(self, runner, program):
        result = runner.invoke(main, [str(program), "-v"])
        assert result.exit_code == ExitCode.SUCCESS
        assert "Assembly complete: 6 bytes at $0600" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestCommandErrors:
    """Test error reporting and exit codes."""

    def test_assembly_error(self, runner, tmp_path):
        source = tmp_path / "bad.asm"
        source.write_text("NOP\nSTA #$01\n")
        result = runner.invoke(main, [str(source)])
        assert result.exit_code == ExitCode.BUILD_ERROR
        assert "illegal opcode" in result.output
        assert "STA #$01" in result.output
        assert not source.with_suffix(".bin").exists()

    def test_fail_directive(self, runner, tmp_path):
        source = tmp_path / "fail.asm"
        source.write_text('.fail "unsupported target"\n')
        result = runner.invoke(main, [str(source)])
        assert result.exit_code == ExitCode.BUILD_ERROR
        assert "unsupported target" in result.output

    def test_missing_input(self, runner, tmp_path):
        result = runner.invoke(main, [str(tmp_path / "missing.asm")])
        assert result.exit_code == ExitCode.INVALID_ARGS


class TestExitCodes:
    """Test exception classification."""

    def test_assembler_errors_are_build_errors(self):
        assert exit_code_for(UserFailError("stop")) == ExitCode.BUILD_ERROR

    def test_missing_files_are_invalid_args(self):
        assert exit_code_for(FileNotFoundError("x.asm")) == ExitCode.INVALID_ARGS

    def test_other_exceptions_are_internal(self):
        assert exit_code_for(KeyError("boom")) == ExitCode.INTERNAL_ERROR
