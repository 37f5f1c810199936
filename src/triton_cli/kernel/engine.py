"""The VM engine capability, and the reference engine backing the CLI.

Everything the command layer needs from a virtual machine goes through
`VMEngine`, so commands can be exercised against a fake engine without
generating real proofs.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from . import stark, vm
from .claim import Claim
from .nondeterminism import NonDeterminism
from .program import Program, parse_program
from .stark import Proof, StarkParameters
from .vm import AlgebraicExecutionTrace, TraceStats


class VMEngine(ABC):
    """Abstract VM engine.

    Implementations raise `ProgramParseError` from `parse_program`, `VMError`
    when a program does not terminate gracefully, and `ProvingError` when a
    proof cannot be generated. `verify` reports a bad proof by returning
    False, never by raising.
    """

    @abstractmethod
    def parse_program(self, source: str) -> Program:
        ...

    @abstractmethod
    def execute(
        self, program: Program, public_input: Sequence[int], non_determinism: NonDeterminism
    ) -> List[int]:
        """Run to completion, return the public output."""

    @abstractmethod
    def profile(
        self, program: Program, public_input: Sequence[int], non_determinism: NonDeterminism
    ) -> Tuple[List[int], TraceStats]:
        """Run to completion, return the public output and trace sizing."""

    @abstractmethod
    def trace_execution(
        self, program: Program, public_input: Sequence[int], non_determinism: NonDeterminism
    ) -> Tuple[AlgebraicExecutionTrace, List[int]]:
        ...

    @abstractmethod
    def prove(self, claim: Claim, trace: AlgebraicExecutionTrace) -> Proof:
        ...

    @abstractmethod
    def verify(self, claim: Claim, proof: Proof, parameters: StarkParameters) -> bool:
        ...


class ReferenceEngine(VMEngine):
    """Pure-Python engine: reference interpreter plus transparent attestation proofs."""

    def __init__(self, parameters: StarkParameters = None):
        self.parameters = parameters or StarkParameters.default()

    def parse_program(self, source: str) -> Program:
        return parse_program(source)

    def execute(self, program, public_input, non_determinism):
        return vm.run(program, public_input, non_determinism)

    def profile(self, program, public_input, non_determinism):
        trace, output = vm.trace_execution(program, public_input, non_determinism)
        return output, trace.stats()

    def trace_execution(self, program, public_input, non_determinism):
        return vm.trace_execution(program, public_input, non_determinism)

    def prove(self, claim, trace):
        return stark.prove(self.parameters, claim, trace)

    def verify(self, claim, proof, parameters):
        return stark.verify(parameters, claim, proof)
