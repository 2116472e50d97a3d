"""
Parser and instruction-decoding tests for Tily.

Tests cover:
  - Line classification (tiles / tags / comments / instructions)
  - Tile declarations (explode, replace, indentation)
  - Tag resolution (instruction index, one-past-the-end)
  - Argument decoding (integer, tag reference, count token, text)
  - Strict mode
  - Re-parsing identical source
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from tily import (
    parse, Program, Instruction, Opcode, IntegerLiteral, TextToken, TagRef,
    CountToken, decode_instruction,
)
from tily.errors import UnknownOpcodeError, TilyParseError


COMMENTED = """\
// This is a comment
STOP yes
"""

TAGGED = """\
ALLOCATE count
ALLOCATE max
ASSIGN count 0
ASSIGN max 4
#LOOP_BEGIN
INCREMENT count
JUMP_IF_EQUAL count max #EXIT
JUMP #LOOP_BEGIN
#EXIT
STOP YES
"""


# ─── Line classification ─────────────────────

class TestLineClassification:
    def test_parses_to_program(self):
        assert isinstance(parse(COMMENTED), Program)

    def test_comment_only_source(self):
        """A lone comment still builds a Program, just with no instructions."""
        program = parse("// nothing here")
        assert isinstance(program, Program)
        assert program.instructions == []

    def test_comments_are_dropped(self):
        program = parse(COMMENTED)
        assert len(program.instructions) == 1
        assert isinstance(program.instructions[0], Instruction)
        assert program.instructions[0].opcode is Opcode.STOP

    def test_instruction_keeps_source_line(self):
        program = parse(COMMENTED)
        assert program.instructions[0].line == 2

    def test_blank_line_becomes_unknown_instruction(self):
        program = parse("ALLOCATE a\n\nSTOP yes")
        assert len(program.instructions) == 3
        blank = program.instructions[1]
        assert blank.opcode is Opcode.UNKNOWN
        assert blank.name == ""
        assert blank.args == ()
        assert blank.line == 2

    def test_trailing_newline_adds_nothing(self):
        assert len(parse("STOP yes\n").instructions) == 1

    def test_empty_source(self):
        program = parse("")
        assert program.instructions == []
        assert program.tags == {}
        assert program.tiles == []

    def test_only_newline_separates_lines(self):
        for sep in ("\x0b", "\x0c", "\x1c", "\x85", "\u2028", "\u2029"):
            program = parse(f"// note{sep}STOP no\nSTOP yes")
            assert len(program.instructions) == 1, repr(sep)
            assert program.instructions[0].line == 2, repr(sep)

    def test_crlf_line_endings(self):
        program = parse("ALLOCATE a\r\n#END\r\nSTOP yes\r\n")
        assert [str(i) for i in program.instructions] == ["ALLOCATE a", "STOP yes"]
        assert program.tags == {"END": 1}


# ─── Tiles ─────────────────────

class TestTiles:
    def test_spaced_tiles(self):
        assert parse("{A B C D}").tiles == ["A", "B", "C", "D"]

    def test_tokens_are_exploded(self):
        assert parse("{HJKL}").tiles == ["H", "J", "K", "L"]

    def test_mixed_tokens(self):
        program = parse("{DFG   RA FSD}")
        assert program.tiles == ["D", "F", "G", "R", "A", "F", "S", "D"]

    def test_last_declaration_wins(self):
        assert parse("{AB}\n{CD}").tiles == ["C", "D"]

    def test_indented_declaration(self):
        assert parse("   {A B}  ").tiles == ["A", "B"]

    def test_tile_line_is_not_an_instruction(self):
        program = parse("{AB}\nSTOP yes")
        assert len(program.instructions) == 1

    def test_count_token_inside_instruction_is_not_a_tile_line(self):
        program = parse("{HJKL}\nASSIGN count {N}")
        assert program.tiles == ["H", "J", "K", "L"]
        assert len(program.instructions) == 1

    def test_non_ascii_word_is_not_a_tile_line(self):
        program = parse("{\u00c4B}")
        assert program.tiles == []
        assert program.instructions[0].opcode is Opcode.UNKNOWN
        assert program.instructions[0].name == "{\u00c4B}"


# ─── Tags ─────────────────────

class TestTags:
    def test_tags_instructions(self):
        program = parse(TAGGED)
        assert len(program.instructions) == 8
        assert program.tags["LOOP_BEGIN"] == 4
        assert program.tags["EXIT"] == 7

    def test_tag_at_end_points_past_last_instruction(self):
        program = parse("STOP yes\n#END")
        assert program.tags["END"] == 1
        assert program.tags["END"] == len(program.instructions)

    def test_tag_at_start(self):
        assert parse("#TOP\nSTOP yes").tags["TOP"] == 0

    def test_trailing_text_after_tag_name_ignored(self):
        program = parse("#LOOP extra words\nSTOP yes")
        assert program.tags == {"LOOP": 0}
        assert len(program.instructions) == 1

    def test_redeclared_tag_uses_latest_position(self):
        program = parse("#A\nSTOP no\n#A\nSTOP yes")
        assert program.tags["A"] == 1

    def test_non_ascii_name_is_not_a_tag(self):
        program = parse("#\u00c4G\nSTOP yes")
        assert program.tags == {}
        assert len(program.instructions) == 2

    def test_tag_table_is_read_only(self):
        program = parse("#TOP\nSTOP yes")
        with pytest.raises(TypeError):
            program.image.tags["TOP"] = 5
        program.tags["TOP"] = 5
        assert program.tags["TOP"] == 0

    def test_tag_values_are_valid_targets(self):
        program = parse(TAGGED)
        for index in program.tags.values():
            assert 0 <= index <= len(program.instructions)


# ─── Decoding ─────────────────────

class TestDecoding:
    def test_full_instruction(self):
        instr = decode_instruction("JUMP_IF_EQUAL count max #EXIT", 7)
        assert instr == Instruction(
            Opcode.JUMP_IF_EQUAL, "JUMP_IF_EQUAL",
            (TextToken("count"), TextToken("max"), TagRef("#EXIT")), 7)

    def test_integer_literal(self):
        instr = decode_instruction("ASSIGN count 42")
        assert instr.args == (TextToken("count"), IntegerLiteral(42))

    def test_leading_zeros(self):
        assert decode_instruction("ASSIGN n 007").args[1] == IntegerLiteral(7)

    def test_signed_number_is_text(self):
        assert decode_instruction("ASSIGN n -3").args[1] == TextToken("-3")

    def test_count_token(self):
        instr = decode_instruction("ASSIGN count {N}")
        assert instr.args[1] == CountToken("{N}")

    def test_tag_ref_keeps_marker(self):
        ref = decode_instruction("JUMP #LOOP_BEGIN").args[0]
        assert isinstance(ref, TagRef)
        assert ref.text == "#LOOP_BEGIN"
        assert ref.tag == "LOOP_BEGIN"

    def test_tag_ref_is_not_plain_text(self):
        assert TagRef("#EXIT") != TextToken("#EXIT")

    def test_letter_is_text(self):
        assert decode_instruction("ASSIGN c J").args[1] == TextToken("J")

    def test_opcode_is_case_sensitive(self):
        instr = decode_instruction("stop yes")
        assert instr.opcode is Opcode.UNKNOWN
        assert instr.name == "stop"

    def test_unknown_opcode_keeps_args(self):
        instr = decode_instruction("FROB a 1")
        assert instr.opcode is Opcode.UNKNOWN
        assert instr.args == (TextToken("a"), IntegerLiteral(1))

    def test_every_opcode_decodes(self):
        for name in ["ALLOCATE", "ASSIGN", "COPY", "INCREMENT",
                     "JUMP", "JUMP_IF_EQUAL", "STOP"]:
            assert decode_instruction(name).opcode is Opcode[name]

    def test_str_renders_source_form(self):
        assert str(decode_instruction("ASSIGN   count\t42")) == "ASSIGN count 42"
        assert str(decode_instruction("JUMP #EXIT")) == "JUMP #EXIT"


# ─── Strict mode ─────────────────────

class TestStrictMode:
    def test_lenient_by_default(self):
        program = parse("FROB x\nSTOP yes")
        assert program.instructions[0].opcode is Opcode.UNKNOWN

    def test_unknown_opcode_rejected(self):
        with pytest.raises(UnknownOpcodeError) as exc:
            parse("ALLOCATE a\nFROB x", strict=True)
        assert exc.value.line == 2
        assert exc.value.name == "FROB"
        assert "Line 2" in str(exc.value)

    def test_blank_line_rejected(self):
        with pytest.raises(TilyParseError):
            parse("STOP yes\n\n", strict=True)

    def test_valid_program_accepted(self):
        program = parse(TAGGED, strict=True)
        assert len(program.instructions) == 8


# ─── Idempotence ─────────────────────

class TestReparse:
    def test_identical_source_gives_identical_image(self):
        source = "{HJKL}\n" + TAGGED
        first = parse(source)
        second = parse(source)
        assert first.image == second.image
        assert first.instructions == second.instructions
        assert first.tags == second.tags
        assert first.tiles == second.tiles
