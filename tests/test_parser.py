# =============================================================================
# test_parser.py - Parser Unit Tests
# =============================================================================
# Tests for the 6502 assembler parser (semantic resolver).
#
# Test coverage includes:
#   - Addressing mode inference from operand syntax and literal width
#   - Branch and jump operands (labels, local labels, literals)
#   - Constant assignment and substitution
#   - Directive arity and value type checking
#   - Include splicing and .INCBIN path resolution
#   - Error conditions
# =============================================================================

from pathlib import Path

import pytest
from asm6502.assembler.lexer import Lexer, TokenType
from asm6502.assembler.parser import (
    Parser,
    parse_source,
    Assignment,
    BranchInstruction,
    Directive,
    ImpliedInstruction,
    Instruction,
    JumpInstruction,
    LabelDef,
)
from asm6502.assembler.directives import DirectiveKind, Value, ValueType
from asm6502.cpu import AddressingMode
from asm6502.errors import (
    AssemblySyntaxError,
    DirectiveError,
    DuplicateSymbolError,
    IncludeError,
    UndefinedSymbolError,
)


# =============================================================================
# Helper Functions
# =============================================================================

def parse(source: str):
    return parse_source(source, "<test>")


def parse_one(source: str):
    """Parse source and return the last statement."""
    statements = parse(source)
    assert statements
    return statements[-1]


# =============================================================================
# Addressing Mode Inference Tests
# =============================================================================

class TestAddressingModes:
    """The operand syntax and literal width select the addressing mode."""

    @pytest.mark.parametrize("source,value,mode", [
        ("LDA #$41", 0x41, AddressingMode.IMMEDIATE),
        ("LDA $10", 0x10, AddressingMode.ZERO_PAGE),
        ("LDA $0010", 0x10, AddressingMode.ABSOLUTE),
        ("LDA $10,X", 0x10, AddressingMode.ZERO_PAGE_X),
        ("LDX $10,Y", 0x10, AddressingMode.ZERO_PAGE_Y),
        ("LDA $1000,X", 0x1000, AddressingMode.ABSOLUTE_X),
        ("LDA $1000,Y", 0x1000, AddressingMode.ABSOLUTE_Y),
        ("LDA ($40,X)", 0x40, AddressingMode.INDEXED_INDIRECT),
        ("LDA ($40),Y", 0x40, AddressingMode.INDIRECT_INDEXED),
        ("LDA 300", 300, AddressingMode.ABSOLUTE),
        ("LDA %00000001", 1, AddressingMode.ZERO_PAGE),
    ])
    def test_mode_inference(self, source, value, mode):
        stmt = parse_one(source)
        assert isinstance(stmt, Instruction)
        assert stmt.mnemonic == "LDA" or stmt.mnemonic == "LDX"
        assert stmt.value == value
        assert stmt.mode == mode

    def test_registers_case_insensitive(self):
        assert parse_one("lda $10,x").mode == AddressingMode.ZERO_PAGE_X
        assert parse_one("lda ($10),y").mode == AddressingMode.INDIRECT_INDEXED

    def test_spaces_inside_operand(self):
        stmt = parse_one("LDA ( $10 , X )")
        assert stmt.mode == AddressingMode.INDEXED_INDIRECT
        stmt = parse_one("LDA ( $10 ) , Y")
        assert stmt.mode == AddressingMode.INDIRECT_INDEXED
        stmt = parse_one("STA $0200 , Y")
        assert stmt.mode == AddressingMode.ABSOLUTE_Y

    def test_trailing_comment(self):
        stmt = parse_one("LDA #$c0  ;Load the hex value $c0")
        assert stmt.mode == AddressingMode.IMMEDIATE

    def test_implied(self):
        stmt = parse_one("INX")
        assert isinstance(stmt, ImpliedInstruction)
        assert stmt.mnemonic == "INX"

    def test_implied_with_comment(self):
        stmt = parse_one("TAX       ;Transfer A to X")
        assert isinstance(stmt, ImpliedInstruction)

    @pytest.mark.parametrize("source", ["ASL A", "rol a", "LSR  A ; shift"])
    def test_explicit_accumulator(self, source):
        assert isinstance(parse_one(source), ImpliedInstruction)

    def test_immediate_word_rejected(self):
        with pytest.raises(AssemblySyntaxError, match="immediate"):
            parse("LDA #$1000")

    def test_indexed_indirect_word_rejected(self):
        with pytest.raises(AssemblySyntaxError):
            parse("LDA ($1000,X)")

    def test_indirect_indexed_word_rejected(self):
        with pytest.raises(AssemblySyntaxError):
            parse("LDA ($1000),Y")

    def test_jump_indirect_byte_widened(self):
        stmt = parse_one("JMP ($10)")
        assert stmt.mode == AddressingMode.INDIRECT
        assert stmt.value == 0x10

    def test_indirect_requires_word(self):
        with pytest.raises(AssemblySyntaxError, match="indirect address must be a word"):
            parse("LDA ($10)")

    def test_indirect_indexed_requires_y(self):
        with pytest.raises(AssemblySyntaxError, match="register Y"):
            parse("LDA ($10),X")

    def test_indexed_indirect_requires_x(self):
        with pytest.raises(AssemblySyntaxError, match="register X"):
            parse("LDA ($10,Y)")

    def test_bad_index_register(self):
        with pytest.raises(AssemblySyntaxError, match="register"):
            parse("LDA $10,Z")

    def test_unterminated_paren(self):
        with pytest.raises(AssemblySyntaxError, match="unterminated"):
            parse("LDA ($10")

    def test_missing_space_after_mnemonic(self):
        with pytest.raises(AssemblySyntaxError, match="expected space"):
            parse("LDA,X")

    def test_trailing_garbage(self):
        with pytest.raises(AssemblySyntaxError, match="end of line"):
            parse("LDA $10 $20")

    def test_instruction_location_spans_operand(self):
        stmt = parse_one("  STA #$01")
        assert stmt.location.column == 3
        assert stmt.location.end == 11


# =============================================================================
# Branch and Jump Tests
# =============================================================================

class TestBranchesAndJumps:
    """Branches take labels or displacements; jumps take labels or addresses."""

    def test_branch_global_label(self):
        stmt = parse_one("BNE loop")
        assert isinstance(stmt, BranchInstruction)
        assert stmt.target == "loop"
        assert not stmt.is_local

    def test_branch_local_label(self):
        stmt = parse_one("BEQ .done")
        assert isinstance(stmt, BranchInstruction)
        assert stmt.target == "done"
        assert stmt.is_local

    def test_branch_displacement(self):
        stmt = parse_one("BNE $FE")
        assert isinstance(stmt, Instruction)
        assert stmt.mode == AddressingMode.RELATIVE
        assert stmt.value == 0xFE

    @pytest.mark.parametrize("source", [
        "BNE",
        "BNE BNE",
        "BNE 11111",
        'BNE "Hello"',
        'BNE  = "Hello"',
    ])
    def test_bad_branch_operand(self, source):
        with pytest.raises(AssemblySyntaxError):
            parse(source)

    def test_jump_label(self):
        stmt = parse_one("JSR init")
        assert isinstance(stmt, JumpInstruction)
        assert stmt.target == "init"
        assert not stmt.indirect

    def test_jump_local_label(self):
        stmt = parse_one("JMP .again")
        assert isinstance(stmt, JumpInstruction)
        assert stmt.is_local

    def test_jump_absolute_literal(self):
        stmt = parse_one("JMP $1234")
        assert isinstance(stmt, Instruction)
        assert stmt.mode == AddressingMode.ABSOLUTE
        assert stmt.value == 0x1234

    def test_jump_byte_literal_is_absolute(self):
        stmt = parse_one("JMP $10")
        assert stmt.mode == AddressingMode.ABSOLUTE

    def test_jump_indirect_literal(self):
        stmt = parse_one("JMP ($00f0) ;dereferences to $cc01")
        assert isinstance(stmt, Instruction)
        assert stmt.mode == AddressingMode.INDIRECT
        assert stmt.value == 0xF0

    def test_jump_indirect_label(self):
        stmt = parse_one("JMP (vector)")
        assert isinstance(stmt, JumpInstruction)
        assert stmt.indirect

    def test_jump_constant(self):
        stmt = parse_one("RESET = $FFFC\nJMP (RESET)")
        assert isinstance(stmt, Instruction)
        assert stmt.mode == AddressingMode.INDIRECT
        assert stmt.value == 0xFFFC

    def test_jump_requires_operand(self):
        with pytest.raises(AssemblySyntaxError, match="target"):
            parse("JMP")

    def test_jump_bad_operand(self):
        with pytest.raises(AssemblySyntaxError):
            parse("JMP #$10")


# =============================================================================
# Label Tests
# =============================================================================

class TestLabels:
    """Labels become LabelDef statements and may share a line."""

    def test_global_label(self):
        stmt = parse_one("start:")
        assert stmt == LabelDef(stmt.location, "start", False)

    def test_local_label(self):
        stmt = parse_one(".loop:")
        assert isinstance(stmt, LabelDef)
        assert stmt.is_local

    def test_label_and_instruction_on_one_line(self):
        statements = parse("loop: DEX")
        assert isinstance(statements[0], LabelDef)
        assert isinstance(statements[1], ImpliedInstruction)

    def test_indented_label(self):
        statements = parse("  firstloop:\n    TXA")
        assert statements[0].name == "firstloop"

    def test_unexpected_token_at_statement_start(self):
        with pytest.raises(AssemblySyntaxError, match="unexpected number"):
            parse("$10")

    def test_bare_identifier(self):
        with pytest.raises(AssemblySyntaxError, match="unexpected identifier") as exc_info:
            parse("foo")
        assert exc_info.value.hint


# =============================================================================
# Constant Tests
# =============================================================================

class TestConstants:
    """Assignments fill the reference table used by operands and directives."""

    def test_assignment_statement(self):
        stmt = parse_one("IOSAVE          = $FF4A ; save the registers")
        assert isinstance(stmt, Assignment)
        assert stmt.name == "IOSAVE"
        assert stmt.values == [Value(ValueType.WORD, 0xFF4A)]

    def test_constant_operand_keeps_width(self):
        statements = parse("SCREEN = $0200\nZP = $10\nSTA SCREEN\nLDA ZP,X")
        assert statements[2].mode == AddressingMode.ABSOLUTE
        assert statements[2].value == 0x200
        assert statements[3].mode == AddressingMode.ZERO_PAGE_X

    def test_constant_immediate(self):
        stmt = parse_one("COUNT = 8\nLDX #COUNT")
        assert stmt.mode == AddressingMode.IMMEDIATE
        assert stmt.value == 8

    def test_constant_of_constant(self):
        stmt = parse_one("A1 = $10\nB1 = A1\nLDA B1")
        assert stmt.value == 0x10

    def test_multi_value_constant(self):
        stmt = parse_one('GREETING = "hi", 0')
        assert stmt.values == [Value(ValueType.STRING, "hi"), Value(ValueType.BYTE, 0)]

    def test_undefined_constant(self):
        with pytest.raises(UndefinedSymbolError, match="MISSING"):
            parse("STA MISSING")

    def test_undefined_constant_suggestion(self):
        with pytest.raises(UndefinedSymbolError) as exc_info:
            parse("SCREEN = $0200\nSTA SCRAEN")
        assert "SCREEN" in exc_info.value.similar_symbols

    def test_string_constant_as_operand(self):
        with pytest.raises(AssemblySyntaxError, match="single number"):
            parse('MSG = "hi"\nLDA MSG')

    def test_duplicate_assignment(self):
        with pytest.raises(DuplicateSymbolError):
            parse("X = 1\nX = 2")

    def test_constant_named_x_does_not_break_indexing(self):
        stmt = parse_one("X = 1\nLDA $10,X")
        assert stmt.mode == AddressingMode.ZERO_PAGE_X

    def test_accumulator_name_can_be_a_constant(self):
        stmt = parse_one("A = $10\nASL A")
        assert isinstance(stmt, Instruction)
        assert stmt.mode == AddressingMode.ZERO_PAGE

    def test_assignment_requires_value(self):
        with pytest.raises(AssemblySyntaxError, match="expected value"):
            parse("EMPTY =")


# =============================================================================
# Directive Tests
# =============================================================================

class TestDirectives:
    """Directive values are checked against the directive table."""

    def test_byte_values(self):
        stmt = parse_one('.byte $01, "ab"')
        assert isinstance(stmt, Directive)
        assert stmt.kind == DirectiveKind.BYTE
        assert stmt.values == [Value(ValueType.BYTE, 1), Value(ValueType.STRING, "ab")]

    def test_alias_keeps_name(self):
        stmt = parse_one(".db 1")
        assert stmt.kind == DirectiveKind.BYTE
        assert stmt.name == "DB"

    def test_case_insensitive_name(self):
        assert parse_one(".OrG $0600").kind == DirectiveKind.ORG

    def test_byte_widened_to_word(self):
        stmt = parse_one(".org $10")
        assert stmt.values == [Value(ValueType.WORD, 0x10)]

    def test_word_reference(self):
        stmt = parse_one(".word start, $1234")
        assert stmt.values == [Value(ValueType.REFERENCE, "start"), Value(ValueType.WORD, 0x1234)]

    def test_word_local_reference(self):
        stmt = parse_one(".word .loop, .next")
        assert stmt.values == [Value(ValueType.REFERENCE, ".loop"), Value(ValueType.REFERENCE, ".next")]

    def test_local_reference_only_in_word(self):
        with pytest.raises(DirectiveError, match="local label reference '.loop'") as exc_info:
            parse(".byte .loop")
        assert ".WORD" in exc_info.value.hint

    def test_reference_substituted_by_constant(self):
        stmt = parse_one("ADDR = $1234\n.word ADDR")
        assert stmt.values == [Value(ValueType.WORD, 0x1234)]

    def test_two_directives_on_one_line(self):
        statements = parse('.byte $ff .byte "abcd"')
        assert len(statements) == 2
        assert statements[1].values == [Value(ValueType.STRING, "abcd")]

    def test_unknown_directive(self):
        with pytest.raises(DirectiveError, match="unknown directive"):
            parse('.fBNE  = "Hello"')

    def test_missing_argument(self):
        with pytest.raises(DirectiveError, match="exactly 1 value"):
            parse(".INCBIN")

    def test_too_many_arguments(self):
        with pytest.raises(DirectiveError, match="1 to 2"):
            parse(".dsb 1, 2, 3")

    def test_wrong_value_type(self):
        with pytest.raises(DirectiveError, match="does not accept string"):
            parse('.org "here"')

    def test_word_rejected_for_byte_list(self):
        with pytest.raises(DirectiveError):
            parse(".byte $1234")

    def test_dsb_fill_must_be_byte(self):
        with pytest.raises(DirectiveError, match="fill value"):
            parse(".dsb 4, $1234")

    def test_reference_not_accepted(self):
        with pytest.raises(UndefinedSymbolError, match="nowhere"):
            parse(".byte nowhere")

    def test_dangling_comma(self):
        with pytest.raises(AssemblySyntaxError, match="after ','"):
            parse(".byte $01,\nNOP")


# =============================================================================
# Include Tests
# =============================================================================

class TestIncludes:
    """.INCLUDE splices tokens in place; .INCBIN resolves its path."""

    def test_include_splices_in_place(self, tmp_path):
        (tmp_path / "sub.asm").write_text("INX\nINY\n")
        main = tmp_path / "main.asm"
        source = 'LDA #$01\n.include "sub.asm"\nRTS\n'

        tokens = Lexer(source, str(main)).tokenize()
        parser = Parser(tokens, str(main))
        statements = parser.parse()

        assert [s.mnemonic for s in statements] == ["LDA", "INX", "INY", "RTS"]
        assert parser.token_count > len(tokens)
        assert any(t.filename == str(tmp_path / "sub.asm") for t in parser.tokens)

    def test_include_without_trailing_newline(self, tmp_path):
        (tmp_path / "sub.asm").write_text("INX")
        statements = parse_source(
            '.include "sub.asm" ; pull in\nRTS', str(tmp_path / "main.asm")
        )
        assert [s.mnemonic for s in statements] == ["INX", "RTS"]

    def test_included_constants_visible(self, tmp_path):
        (tmp_path / "defs.inc").write_text("SCREEN = $0200\n")
        stmt = parse_source(
            '.include "defs.inc"\nSTA SCREEN', str(tmp_path / "main.asm")
        )[-1]
        assert stmt.value == 0x200

    def test_nested_include_relative_to_includer(self, tmp_path):
        lib = tmp_path / "lib"
        lib.mkdir()
        (lib / "outer.asm").write_text('.include "inner.asm"\nNOP\n')
        (lib / "inner.asm").write_text("BRK\n")
        statements = parse_source('.include "lib/outer.asm"', str(tmp_path / "main.asm"))
        assert [s.mnemonic for s in statements] == ["BRK", "NOP"]

    def test_include_search_path(self, tmp_path):
        inc = tmp_path / "inc"
        inc.mkdir()
        (inc / "lib.asm").write_text("NOP\n")
        statements = parse_source(
            '.include "lib.asm"', str(tmp_path / "main.asm"), include_paths=[inc]
        )
        assert statements[0].mnemonic == "NOP"

    def test_include_records_source(self, tmp_path):
        (tmp_path / "sub.asm").write_text("NOP\n")
        sources = {}
        parse_source('.include "sub.asm"', str(tmp_path / "main.asm"), sources=sources)
        assert sources[str(tmp_path / "sub.asm")] == "NOP\n"

    def test_missing_include(self, tmp_path):
        with pytest.raises(IncludeError, match="missing.asm"):
            parse_source('.include "missing.asm"', str(tmp_path / "main.asm"))

    def test_circular_include(self, tmp_path):
        (tmp_path / "a.asm").write_text('.include "b.asm"\n')
        (tmp_path / "b.asm").write_text('.include "a.asm"\n')
        with pytest.raises(IncludeError, match="circular"):
            parse_source('.include "a.asm"', str(tmp_path / "main.asm"))

    def test_self_include(self, tmp_path):
        main = tmp_path / "main.asm"
        with pytest.raises(IncludeError, match="circular"):
            parse_source('.include "main.asm"', str(main))

    def test_include_twice_is_allowed(self, tmp_path):
        (tmp_path / "nop.asm").write_text("NOP\n")
        statements = parse_source(
            '.include "nop.asm"\n.include "nop.asm"', str(tmp_path / "main.asm")
        )
        assert len(statements) == 2

    def test_include_with_reader(self):
        files = {"virtual.asm": b"DEX\n"}

        def reader(path: Path) -> bytes:
            try:
                return files[path.name]
            except KeyError:
                raise FileNotFoundError(2, "No such file or directory", str(path))

        statements = parse_source('.include "virtual.asm"\nRTS', reader=reader)
        assert [s.mnemonic for s in statements] == ["DEX", "RTS"]

        with pytest.raises(IncludeError, match="No such file"):
            parse_source('.include "other.asm"', reader=reader)

    def test_incbin_resolves_path(self, tmp_path):
        (tmp_path / "data.bin").write_bytes(b"\x00\x01")
        stmt = parse_source('.incbin "data.bin"', str(tmp_path / "main.asm"))[0]
        assert stmt.kind == DirectiveKind.INCBIN
        assert stmt.values == [Value(ValueType.STRING, str(tmp_path / "data.bin"))]
