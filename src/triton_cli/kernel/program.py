"""Programs: the instruction set, the assembly parser, and the word encoding."""

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Sequence, Tuple

from .digest import Digest, hash_varlen
from .field import FieldRangeError, parse_field_element


class ArgKind(Enum):
    """What kind of argument an instruction takes."""
    NONE = "none"
    FIELD_ELEMENT = "field element"
    NUM_WORDS = "number of words (1 to 5)"
    STACK_INDEX = "stack index (0 to 15)"
    ADDRESS = "label or address"


class Opcode(IntEnum):
    """Instruction opcodes; the value is the instruction's first word."""
    HALT = 0
    NOP = 1
    SKIZ = 2
    CALL = 3
    RETURN = 4
    RECURSE = 5
    RECURSE_OR_RETURN = 6
    ASSERT = 7
    ASSERT_VECTOR = 8
    POP = 9
    PUSH = 10
    DIVINE = 11
    PICK = 12
    PLACE = 13
    DUP = 14
    SWAP = 15
    READ_MEM = 16
    WRITE_MEM = 17
    HASH = 18
    MERKLE_STEP = 19
    ADD = 20
    ADDI = 21
    MUL = 22
    INVERT = 23
    EQ = 24
    SPLIT = 25
    LT = 26
    AND = 27
    XOR = 28
    LOG_2_FLOOR = 29
    POW = 30
    DIV_MOD = 31
    POP_COUNT = 32
    READ_IO = 33
    WRITE_IO = 34

    @property
    def mnemonic(self) -> str:
        return self.name.lower()

    @property
    def arg_kind(self) -> ArgKind:
        return _ARG_KINDS.get(self, ArgKind.NONE)


_ARG_KINDS = {
    Opcode.CALL: ArgKind.ADDRESS,
    Opcode.POP: ArgKind.NUM_WORDS,
    Opcode.PUSH: ArgKind.FIELD_ELEMENT,
    Opcode.DIVINE: ArgKind.NUM_WORDS,
    Opcode.PICK: ArgKind.STACK_INDEX,
    Opcode.PLACE: ArgKind.STACK_INDEX,
    Opcode.DUP: ArgKind.STACK_INDEX,
    Opcode.SWAP: ArgKind.STACK_INDEX,
    Opcode.READ_MEM: ArgKind.NUM_WORDS,
    Opcode.WRITE_MEM: ArgKind.NUM_WORDS,
    Opcode.ADDI: ArgKind.FIELD_ELEMENT,
    Opcode.READ_IO: ArgKind.NUM_WORDS,
    Opcode.WRITE_IO: ArgKind.NUM_WORDS,
}

_MNEMONICS: Dict[str, Opcode] = {op.mnemonic: op for op in Opcode}

_LABEL_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-]*$")


class ProgramParseError(ValueError):
    """Raised when program text is not valid assembly."""

    def __init__(self, message: str, line: int, column: int):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(f"line {line}, column {column}: {message}")


class ProgramDecodeError(ValueError):
    """Raised when a word sequence does not encode a program."""
    pass


@dataclass(frozen=True)
class Instruction:
    """One instruction with its (optional) argument."""
    opcode: Opcode
    arg: Optional[int] = None

    @property
    def size(self) -> int:
        """Number of words the instruction occupies in program memory."""
        return 1 if self.opcode.arg_kind is ArgKind.NONE else 2

    def __str__(self) -> str:
        if self.arg is None:
            return self.opcode.mnemonic
        return f"{self.opcode.mnemonic} {self.arg}"


@dataclass(frozen=True)
class Program:
    """A parsed program with all labels resolved to word addresses."""
    instructions: Tuple[Instruction, ...]
    _by_address: Dict[int, Instruction] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self):
        by_address = {}
        address = 0
        for instruction in self.instructions:
            by_address[address] = instruction
            address += instruction.size
        object.__setattr__(self, "_by_address", by_address)

    def __len__(self) -> int:
        """Length in words."""
        return sum(i.size for i in self.instructions)

    def instruction_at(self, address: int) -> Optional[Instruction]:
        return self._by_address.get(address)

    def is_instruction_address(self, address: int) -> bool:
        return address in self._by_address

    def to_words(self) -> List[int]:
        words: List[int] = []
        for instruction in self.instructions:
            words.append(int(instruction.opcode))
            if instruction.arg is not None:
                words.append(instruction.arg)
        return words

    @classmethod
    def from_words(cls, words: Sequence[int]) -> "Program":
        """Decode the encoding produced by `to_words`."""
        instructions = []
        i = 0
        while i < len(words):
            try:
                opcode = Opcode(words[i])
            except ValueError:
                raise ProgramDecodeError(f"invalid opcode {words[i]} at address {i}") from None
            if opcode.arg_kind is ArgKind.NONE:
                instructions.append(Instruction(opcode))
                i += 1
                continue
            if i + 1 >= len(words):
                raise ProgramDecodeError(f"missing argument of '{opcode.mnemonic}' at address {i}")
            arg = words[i + 1]
            problem = _check_arg(opcode.arg_kind, arg)
            if problem:
                raise ProgramDecodeError(f"'{opcode.mnemonic}' at address {i}: {problem}")
            instructions.append(Instruction(opcode, arg))
            i += 2
        program = cls(tuple(instructions))
        for instruction in program.instructions:
            if instruction.opcode is Opcode.CALL and not program.is_instruction_address(instruction.arg):
                raise ProgramDecodeError(
                    f"call target {instruction.arg} is not the address of an instruction"
                )
        return program

    def digest(self) -> Digest:
        """The program's identity, as it appears in claims."""
        return hash_varlen(self.to_words())

    def to_source(self) -> str:
        """Render as label-free assembly that parses back into an equal program."""
        return "\n".join(str(i) for i in self.instructions)


def _check_arg(kind: ArgKind, arg: int) -> Optional[str]:
    if kind is ArgKind.NUM_WORDS and not 1 <= arg <= 5:
        return f"expected {kind.value}, got {arg}"
    if kind is ArgKind.STACK_INDEX and not 0 <= arg <= 15:
        return f"expected {kind.value}, got {arg}"
    return None


@dataclass
class _Token:
    text: str
    line: int
    column: int


def _tokenize(text: str) -> List[_Token]:
    tokens = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        line = line.split("//", 1)[0]
        for match in re.finditer(r"\S+", line):
            tokens.append(_Token(match.group(0), line_no, match.start() + 1))
    return tokens


def parse_program(text: str) -> Program:
    """Parse assembly text.

    Syntax: whitespace-separated instructions, `//` comments to the end of the
    line, label definitions `name:`, and `call` targets given either as a
    label or as a word address.

    Raises:
        ProgramParseError: with line and column of the offending token
    """
    tokens = _tokenize(text)
    labels: Dict[str, int] = {}
    # (instruction, token of an unresolved label, token of the argument)
    pending: List[Tuple[Instruction, Optional[_Token], Optional[_Token]]] = []
    address = 0

    i = 0
    while i < len(tokens):
        token = tokens[i]
        i += 1

        if token.text.endswith(":"):
            name = token.text[:-1]
            if not _LABEL_RE.match(name):
                raise ProgramParseError(f"invalid label name '{name}'", token.line, token.column)
            if name in _MNEMONICS:
                raise ProgramParseError(
                    f"label '{name}' collides with an instruction name", token.line, token.column
                )
            if name in labels:
                raise ProgramParseError(f"duplicate label '{name}'", token.line, token.column)
            labels[name] = address
            continue

        opcode = _MNEMONICS.get(token.text)
        if opcode is None:
            raise ProgramParseError(f"unknown instruction '{token.text}'", token.line, token.column)

        kind = opcode.arg_kind
        if kind is ArgKind.NONE:
            pending.append((Instruction(opcode), None, None))
            address += 1
            continue

        if i >= len(tokens) or tokens[i].text.endswith(":"):
            raise ProgramParseError(
                f"instruction '{token.text}' requires an argument: {kind.value}",
                token.line, token.column,
            )
        arg_token = tokens[i]
        i += 1
        address += 2

        if kind is ArgKind.ADDRESS and not arg_token.text.isdigit():
            if not _LABEL_RE.match(arg_token.text):
                raise ProgramParseError(
                    f"invalid call target '{arg_token.text}'", arg_token.line, arg_token.column
                )
            pending.append((Instruction(opcode, 0), arg_token, arg_token))
            continue

        try:
            arg = parse_field_element(arg_token.text)
        except FieldRangeError as e:
            raise ProgramParseError(str(e), arg_token.line, arg_token.column) from None
        except ValueError:
            raise ProgramParseError(
                f"expected {kind.value}, got '{arg_token.text}'", arg_token.line, arg_token.column
            ) from None

        # Only push and addi take negative numbers; they wrap around the modulus.
        if kind is not ArgKind.FIELD_ELEMENT and arg_token.text.startswith("-"):
            raise ProgramParseError(
                f"expected {kind.value}, got '{arg_token.text}'", arg_token.line, arg_token.column
            )
        problem = _check_arg(kind, arg)
        if problem:
            raise ProgramParseError(problem, arg_token.line, arg_token.column)
        pending.append((Instruction(opcode, arg), None, arg_token))

    instructions = []
    calls: List[Tuple[Instruction, _Token]] = []
    for instruction, label_token, arg_token in pending:
        if label_token is not None:
            if label_token.text not in labels:
                raise ProgramParseError(
                    f"unknown label '{label_token.text}'", label_token.line, label_token.column
                )
            instruction = Instruction(instruction.opcode, labels[label_token.text])
        if instruction.opcode is Opcode.CALL:
            calls.append((instruction, arg_token))
        instructions.append(instruction)

    program = Program(tuple(instructions))
    for instruction, arg_token in calls:
        if not program.is_instruction_address(instruction.arg):
            raise ProgramParseError(
                f"call target {instruction.arg} is not the address of an instruction",
                arg_token.line, arg_token.column,
            )
    return program
