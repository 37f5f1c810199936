"""Reference interpreter for the VM, with optional execution-trace recording.

The interpreter is a direct state machine over `VMState`. When a
`_TraceRecorder` is attached, every step also records what the step
contributes to each table of the algebraic execution trace, so the trace
heights (and the padded height derived from them) can be reported and
committed to.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List, Optional, Set, Tuple

from . import field as ff
from .digest import DIGEST_LENGTH, RATE, Digest, hash_fixed, hash_pair, permutation_count
from .nondeterminism import NonDeterminism
from .program import Instruction, Opcode, Program


logger = logging.getLogger(__name__)

OP_STACK_MIN_LENGTH = 16

# Rows one permutation occupies in the hash table.
HASH_ROWS_PER_PERMUTATION = 6

# The lookup table always has one row per byte value.
LOOKUP_TABLE_HEIGHT = 256


class TableId(str, Enum):
    """Tables of the algebraic execution trace, in reporting order."""
    PROGRAM = "program"
    PROCESSOR = "processor"
    OP_STACK = "op stack"
    RAM = "ram"
    JUMP_STACK = "jump stack"
    HASH = "hash"
    LOOKUP = "lookup"
    U32 = "u32"


class VMErrorKind(str, Enum):
    INSTRUCTION_POINTER_OVERFLOW = "instruction pointer overflow"
    OP_STACK_TOO_SHALLOW = "op stack too shallow"
    JUMP_STACK_IS_EMPTY = "jump stack is empty"
    ASSERTION_FAILED = "assertion failed"
    VECTOR_ASSERTION_FAILED = "vector assertion failed"
    INVERSE_OF_ZERO = "inverse of zero"
    DIVISION_BY_ZERO = "division by zero"
    LOG_2_OF_ZERO = "logarithm of zero"
    FAILED_U32_CONVERSION = "failed u32 conversion"
    EMPTY_PUBLIC_INPUT = "public input is exhausted"
    EMPTY_SECRET_INPUT = "secret input is exhausted"
    EMPTY_SECRET_DIGEST_INPUT = "secret digest input is exhausted"


class VMError(Exception):
    """The program did not terminate gracefully."""

    def __init__(self, kind: VMErrorKind, ip: int, cycle_count: int, detail: str = ""):
        self.kind = kind
        self.ip = ip
        self.cycle_count = cycle_count
        self.detail = detail
        message = kind.value
        if detail:
            message = f"{message}: {detail}"
        super().__init__(f"{message} (ip {ip}, cycle {cycle_count})")


def next_power_of_two(n: int) -> int:
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


@dataclass(frozen=True)
class TraceStats:
    """Sizing information of an algebraic execution trace."""
    table_heights: Dict[TableId, int]
    cycle_count: int

    @property
    def height(self) -> int:
        return max(self.table_heights.values())

    @property
    def padded_height(self) -> int:
        return next_power_of_two(self.height)

    @property
    def dominating_table(self) -> TableId:
        """The first table, in reporting order, of maximal height."""
        tallest = self.height
        return next(t for t in TableId if self.table_heights[t] == tallest)


@dataclass
class AlgebraicExecutionTrace:
    """Everything the prover needs to know about one execution."""
    program: Program
    public_input: Tuple[int, ...]
    non_determinism: NonDeterminism
    processor_trace: List[Tuple[int, ...]] = field(default_factory=list)
    op_stack_rows: int = 0
    ram_rows: int = 0
    hash_permutations: int = 0
    u32_entries: Set[Tuple[int, int, int]] = field(default_factory=set)

    @property
    def cycle_count(self) -> int:
        # The last processor row is `halt`, which does not count as a cycle.
        return max(len(self.processor_trace) - 1, 0)

    def stats(self) -> TraceStats:
        program_permutations = permutation_count(len(self.program))
        u32_height = sum(
            max(lhs.bit_length(), rhs.bit_length()) + 1
            for _, lhs, rhs in self.u32_entries
        )
        heights = {
            TableId.PROGRAM: program_permutations * RATE,
            TableId.PROCESSOR: len(self.processor_trace),
            TableId.OP_STACK: self.op_stack_rows,
            TableId.RAM: self.ram_rows,
            TableId.JUMP_STACK: len(self.processor_trace),
            TableId.HASH: (program_permutations + self.hash_permutations) * HASH_ROWS_PER_PERMUTATION,
            TableId.LOOKUP: LOOKUP_TABLE_HEIGHT,
            TableId.U32: u32_height,
        }
        return TraceStats(table_heights=heights, cycle_count=self.cycle_count)


class VMState:
    """Complete state of the VM between two steps."""

    def __init__(self, program: Program, public_input, non_determinism: NonDeterminism):
        self.program = program
        self.public_input: Deque[int] = deque(public_input)
        self.secret_individual_tokens: Deque[int] = deque(non_determinism.individual_tokens)
        self.secret_digests: Deque[Digest] = deque(non_determinism.digests)
        self.ram: Dict[int, int] = dict(non_determinism.ram)
        self.public_output: List[int] = []

        # Bottom to top; the program digest sits at the very bottom.
        self.op_stack: List[int] = list(reversed(program.digest()))
        self.op_stack += [0] * (OP_STACK_MIN_LENGTH - DIGEST_LENGTH)

        # (origin, destination) pairs of `call`s
        self.jump_stack: List[Tuple[int, int]] = []
        self.ip = 0
        self.cycle_count = 0
        self.halting = False

        self._recorder: Optional[_TraceRecorder] = None

    # stack helpers

    def st(self, i: int) -> int:
        return self.op_stack[-1 - i]

    def push(self, value: int) -> None:
        self.op_stack.append(value)
        if self._recorder:
            self._recorder.trace.op_stack_rows += 1

    def pop(self) -> int:
        if len(self.op_stack) <= OP_STACK_MIN_LENGTH:
            self._fail(VMErrorKind.OP_STACK_TOO_SHALLOW)
        if self._recorder:
            self._recorder.trace.op_stack_rows += 1
        return self.op_stack.pop()

    def pop_u32(self) -> int:
        value = self.pop()
        if not ff.is_u32(value):
            self._fail(VMErrorKind.FAILED_U32_CONVERSION, f"{value} is not a u32")
        return value

    def _fail(self, kind: VMErrorKind, detail: str = ""):
        raise VMError(kind, self.ip, self.cycle_count, detail)

    def _record_u32(self, opcode: Opcode, lhs: int, rhs: int) -> None:
        if self._recorder:
            self._recorder.trace.u32_entries.add((int(opcode), lhs, rhs))

    def _record_ram(self, accesses: int) -> None:
        if self._recorder:
            self._recorder.trace.ram_rows += accesses

    def _record_permutation(self) -> None:
        if self._recorder:
            self._recorder.trace.hash_permutations += 1

    # execution

    def step(self) -> None:
        """Execute the instruction at the instruction pointer."""
        instruction = self.program.instruction_at(self.ip)
        if instruction is None:
            self._fail(VMErrorKind.INSTRUCTION_POINTER_OVERFLOW)

        if self._recorder:
            self._recorder.record_row(self, instruction)

        next_ip = self.ip + instruction.size
        handler = _HANDLERS[instruction.opcode]
        jump = handler(self, instruction)
        self.ip = next_ip if jump is None else jump

        if instruction.opcode is not Opcode.HALT:
            self.cycle_count += 1

    def run(self) -> None:
        while not self.halting:
            self.step()


class _TraceRecorder:
    def __init__(self, trace: AlgebraicExecutionTrace):
        self.trace = trace

    def record_row(self, state: VMState, instruction: Instruction) -> None:
        self.trace.processor_trace.append((
            state.cycle_count,
            state.ip,
            int(instruction.opcode),
            instruction.arg or 0,
            state.st(0),
            state.st(1),
            state.st(2),
            len(state.op_stack),
            len(state.jump_stack),
        ))


# Instruction handlers. Each returns the next instruction pointer if the
# instruction jumps, or None to fall through.

def _halt(state: VMState, _: Instruction):
    state.halting = True
    return state.ip


def _nop(state: VMState, _: Instruction):
    return None


def _skiz(state: VMState, _: Instruction):
    if state.pop() != 0:
        return None
    following = state.ip + 1
    skipped = state.program.instruction_at(following)
    return following + (skipped.size if skipped else 0)


def _call(state: VMState, instruction: Instruction):
    state.jump_stack.append((state.ip + instruction.size, instruction.arg))
    return instruction.arg


def _return(state: VMState, _: Instruction):
    if not state.jump_stack:
        state._fail(VMErrorKind.JUMP_STACK_IS_EMPTY)
    origin, _destination = state.jump_stack.pop()
    return origin


def _recurse(state: VMState, _: Instruction):
    if not state.jump_stack:
        state._fail(VMErrorKind.JUMP_STACK_IS_EMPTY)
    return state.jump_stack[-1][1]


def _recurse_or_return(state: VMState, instruction: Instruction):
    if state.st(5) == state.st(6):
        return _return(state, instruction)
    return _recurse(state, instruction)


def _assert(state: VMState, _: Instruction):
    if state.st(0) != 1:
        state._fail(VMErrorKind.ASSERTION_FAILED, f"st0 is {state.st(0)}, expected 1")
    state.pop()


def _assert_vector(state: VMState, _: Instruction):
    for i in range(DIGEST_LENGTH):
        if state.st(i) != state.st(i + DIGEST_LENGTH):
            state._fail(
                VMErrorKind.VECTOR_ASSERTION_FAILED,
                f"st{i} is {state.st(i)}, st{i + DIGEST_LENGTH} is {state.st(i + DIGEST_LENGTH)}",
            )
    for _ in range(DIGEST_LENGTH):
        state.pop()


def _pop(state: VMState, instruction: Instruction):
    for _ in range(instruction.arg):
        state.pop()


def _push(state: VMState, instruction: Instruction):
    state.push(instruction.arg)


def _divine(state: VMState, instruction: Instruction):
    for _ in range(instruction.arg):
        if not state.secret_individual_tokens:
            state._fail(VMErrorKind.EMPTY_SECRET_INPUT)
        state.push(state.secret_individual_tokens.popleft())


def _pick(state: VMState, instruction: Instruction):
    value = state.op_stack.pop(-1 - instruction.arg)
    state.op_stack.append(value)


def _place(state: VMState, instruction: Instruction):
    value = state.op_stack.pop()
    state.op_stack.insert(len(state.op_stack) - instruction.arg, value)


def _dup(state: VMState, instruction: Instruction):
    state.push(state.st(instruction.arg))


def _swap(state: VMState, instruction: Instruction):
    i = instruction.arg
    stack = state.op_stack
    stack[-1], stack[-1 - i] = stack[-1 - i], stack[-1]


def _read_mem(state: VMState, instruction: Instruction):
    pointer = state.pop()
    for i in range(instruction.arg):
        state.push(state.ram.get((pointer - i) % ff.PRIME, 0))
    state.push((pointer - instruction.arg) % ff.PRIME)
    state._record_ram(instruction.arg)


def _write_mem(state: VMState, instruction: Instruction):
    pointer = state.pop()
    for i in range(instruction.arg):
        state.ram[(pointer + i) % ff.PRIME] = state.pop()
    state.push((pointer + instruction.arg) % ff.PRIME)
    state._record_ram(instruction.arg)


def _push_digest(state: VMState, digest: Digest) -> None:
    for element in reversed(digest):
        state.push(element)


def _hash(state: VMState, _: Instruction):
    elements = [state.pop() for _ in range(RATE)]
    _push_digest(state, hash_fixed(elements))
    state._record_permutation()


def _merkle_step(state: VMState, _: Instruction):
    node_index = state.st(DIGEST_LENGTH)
    if not ff.is_u32(node_index):
        state._fail(VMErrorKind.FAILED_U32_CONVERSION, f"node index {node_index} is not a u32")
    if not state.secret_digests:
        state._fail(VMErrorKind.EMPTY_SECRET_DIGEST_INPUT)
    sibling = state.secret_digests.popleft()
    current = Digest(state.pop() for _ in range(DIGEST_LENGTH))
    if node_index % 2 == 0:
        parent = hash_pair(current, sibling)
    else:
        parent = hash_pair(sibling, current)
    state.op_stack[-1] = node_index // 2
    _push_digest(state, parent)
    state._record_permutation()
    state._record_u32(Opcode.MERKLE_STEP, node_index, 2)


def _add(state: VMState, _: Instruction):
    rhs = state.pop()
    lhs = state.pop()
    state.push(ff.add(lhs, rhs))


def _addi(state: VMState, instruction: Instruction):
    state.push(ff.add(state.pop(), instruction.arg))


def _mul(state: VMState, _: Instruction):
    rhs = state.pop()
    lhs = state.pop()
    state.push(ff.mul(lhs, rhs))


def _invert(state: VMState, _: Instruction):
    value = state.pop()
    if value == 0:
        state._fail(VMErrorKind.INVERSE_OF_ZERO)
    state.push(ff.inverse(value))


def _eq(state: VMState, _: Instruction):
    state.push(int(state.pop() == state.pop()))


def _split(state: VMState, _: Instruction):
    value = state.pop()
    hi, lo = value >> 32, value & 0xFFFFFFFF
    state.push(hi)
    state.push(lo)
    state._record_u32(Opcode.SPLIT, lo, hi)


def _lt(state: VMState, _: Instruction):
    top = state.pop_u32()
    below = state.pop_u32()
    state.push(int(top < below))
    state._record_u32(Opcode.LT, top, below)


def _and(state: VMState, _: Instruction):
    lhs = state.pop_u32()
    rhs = state.pop_u32()
    state.push(lhs & rhs)
    state._record_u32(Opcode.AND, lhs, rhs)


def _xor(state: VMState, _: Instruction):
    lhs = state.pop_u32()
    rhs = state.pop_u32()
    state.push(lhs ^ rhs)
    state._record_u32(Opcode.XOR, lhs, rhs)


def _log_2_floor(state: VMState, _: Instruction):
    value = state.pop_u32()
    if value == 0:
        state._fail(VMErrorKind.LOG_2_OF_ZERO)
    state.push(value.bit_length() - 1)
    state._record_u32(Opcode.LOG_2_FLOOR, value, 0)


def _pow(state: VMState, _: Instruction):
    base = state.pop()
    exponent = state.pop_u32()
    state.push(ff.power(base, exponent))
    state._record_u32(Opcode.POW, base, exponent)


def _div_mod(state: VMState, _: Instruction):
    numerator = state.pop_u32()
    denominator = state.pop_u32()
    if denominator == 0:
        state._fail(VMErrorKind.DIVISION_BY_ZERO)
    state.push(numerator // denominator)
    state.push(numerator % denominator)
    state._record_u32(Opcode.DIV_MOD, numerator, denominator)


def _pop_count(state: VMState, _: Instruction):
    value = state.pop_u32()
    state.push(bin(value).count("1"))
    state._record_u32(Opcode.POP_COUNT, value, 0)


def _read_io(state: VMState, instruction: Instruction):
    for _ in range(instruction.arg):
        if not state.public_input:
            state._fail(VMErrorKind.EMPTY_PUBLIC_INPUT)
        state.push(state.public_input.popleft())


def _write_io(state: VMState, instruction: Instruction):
    for _ in range(instruction.arg):
        state.public_output.append(state.pop())


_HANDLERS = {
    Opcode.HALT: _halt,
    Opcode.NOP: _nop,
    Opcode.SKIZ: _skiz,
    Opcode.CALL: _call,
    Opcode.RETURN: _return,
    Opcode.RECURSE: _recurse,
    Opcode.RECURSE_OR_RETURN: _recurse_or_return,
    Opcode.ASSERT: _assert,
    Opcode.ASSERT_VECTOR: _assert_vector,
    Opcode.POP: _pop,
    Opcode.PUSH: _push,
    Opcode.DIVINE: _divine,
    Opcode.PICK: _pick,
    Opcode.PLACE: _place,
    Opcode.DUP: _dup,
    Opcode.SWAP: _swap,
    Opcode.READ_MEM: _read_mem,
    Opcode.WRITE_MEM: _write_mem,
    Opcode.HASH: _hash,
    Opcode.MERKLE_STEP: _merkle_step,
    Opcode.ADD: _add,
    Opcode.ADDI: _addi,
    Opcode.MUL: _mul,
    Opcode.INVERT: _invert,
    Opcode.EQ: _eq,
    Opcode.SPLIT: _split,
    Opcode.LT: _lt,
    Opcode.AND: _and,
    Opcode.XOR: _xor,
    Opcode.LOG_2_FLOOR: _log_2_floor,
    Opcode.POW: _pow,
    Opcode.DIV_MOD: _div_mod,
    Opcode.POP_COUNT: _pop_count,
    Opcode.READ_IO: _read_io,
    Opcode.WRITE_IO: _write_io,
}



def run(program: Program, public_input, non_determinism: NonDeterminism) -> List[int]:
    """Run the program to completion and return its public output.

    Raises:
        VMError: the program did not terminate gracefully
    """
    state = VMState(program, public_input, non_determinism)
    state.run()
    logger.debug("program halted after %d cycles", state.cycle_count)
    return state.public_output


def trace_execution(
    program: Program, public_input, non_determinism: NonDeterminism
) -> Tuple[AlgebraicExecutionTrace, List[int]]:
    """Run the program while recording its algebraic execution trace.

    Raises:
        VMError: the program did not terminate gracefully
    """
    trace = AlgebraicExecutionTrace(
        program=program,
        public_input=tuple(public_input),
        non_determinism=non_determinism,
    )
    state = VMState(program, public_input, non_determinism)
    state._recorder = _TraceRecorder(trace)
    state.run()
    logger.debug(
        "traced %d cycles, padded height %d", trace.cycle_count, trace.stats().padded_height
    )
    return trace, state.public_output
