"""Tests for the assembly parser and the program encoding."""

import pytest

from triton_cli.kernel.digest import Digest
from triton_cli.kernel.field import PRIME
from triton_cli.kernel.program import (
    Instruction,
    Opcode,
    Program,
    ProgramDecodeError,
    ProgramParseError,
    parse_program,
)


def test_parse_simple_program():
    program = parse_program("read_io 2 add write_io 1 halt")
    assert program.instructions == (
        Instruction(Opcode.READ_IO, 2),
        Instruction(Opcode.ADD),
        Instruction(Opcode.WRITE_IO, 1),
        Instruction(Opcode.HALT),
    )
    assert len(program) == 6


def test_comments_and_newlines_are_ignored():
    text = """
    // add two numbers
    read_io 2   // a and b
    add
    write_io 1
    halt
    """
    assert parse_program(text) == parse_program("read_io 2 add write_io 1 halt")


def test_labels_resolve_to_word_addresses():
    program = parse_program("push 1 call double halt double: dup 0 add return")
    # push 1 (0-1), call (2-3), halt (4), double at 5
    assert program.instructions[1] == Instruction(Opcode.CALL, 5)
    assert program.instruction_at(5) == Instruction(Opcode.DUP, 0)


def test_numeric_call_target():
    assert parse_program("call 3 halt nop return").instructions[0] == Instruction(Opcode.CALL, 3)


def test_numeric_call_target_must_be_instruction_start():
    with pytest.raises(ProgramParseError) as excinfo:
        parse_program("push 7 call 1 halt")
    assert excinfo.value.line == 1
    assert excinfo.value.column == 13


def test_negative_push_wraps_around():
    program = parse_program("push -1 halt")
    assert program.instructions[0].arg == PRIME - 1


@pytest.mark.parametrize(
    "text, line, column",
    [
        ("halt\n  frobnicate", 2, 3),
        ("read_io", 1, 1),
        ("read_io 6 halt", 1, 9),
        ("pop 0 halt", 1, 5),
        ("dup 16 halt", 1, 5),
        ("dup -1 halt", 1, 5),
        (f"push {PRIME} halt", 1, 6),
        ("call nowhere halt", 1, 6),
        ("a: halt a: halt", 1, 9),
        ("add: halt", 1, 1),
    ],
)
def test_parse_errors_carry_location(text, line, column):
    with pytest.raises(ProgramParseError) as excinfo:
        parse_program(text)
    assert (excinfo.value.line, excinfo.value.column) == (line, column)
    assert str(excinfo.value).startswith(f"line {line}, column {column}: ")


def test_word_encoding_round_trip():
    program = parse_program("main: push 3 call sub halt sub: addi -1 dup 0 skiz recurse return")
    assert Program.from_words(program.to_words()) == program


@pytest.mark.parametrize(
    "words",
    [
        [99],
        [int(Opcode.PUSH)],
        [int(Opcode.POP), 7],
        [int(Opcode.CALL), 1, int(Opcode.HALT)],
    ],
)
def test_from_words_rejects_invalid_encodings(words):
    with pytest.raises(ProgramDecodeError):
        Program.from_words(words)


def test_to_source_reparses_to_equal_program():
    program = parse_program("start: push 5 call f halt f: push -2 mul return")
    assert parse_program(program.to_source()) == program


def test_digest_identifies_the_program():
    a = parse_program("push 1 halt")
    b = parse_program("push 2 halt")
    assert isinstance(a.digest(), Digest)
    assert a.digest() == parse_program("// same\npush 1\nhalt").digest()
    assert a.digest() != b.digest()
