"""Interpreter and prover performance sentinels (gated perf tests)."""

from __future__ import annotations

import os
from time import perf_counter
from typing import Dict, List, Tuple

from triton_cli.kernel import stark
from triton_cli.kernel.claim import Claim
from triton_cli.kernel.nondeterminism import NonDeterminism
from triton_cli.kernel.program import parse_program
from triton_cli.kernel.vm import TraceStats, trace_execution


def _budget_from_env(var_name: str, default_ms: float) -> float:
    raw = os.getenv(var_name)
    if not raw:
        return default_ms
    try:
        return float(raw)
    except ValueError:
        return default_ms


MAX_COUNTDOWN_MS = _budget_from_env("TRITON_CLI_MAX_COUNTDOWN_MS", 2000.0)
MAX_HASH_CHAIN_MS = _budget_from_env("TRITON_CLI_MAX_HASH_CHAIN_MS", 2000.0)
MAX_U32_MIX_MS = _budget_from_env("TRITON_CLI_MAX_U32_MIX_MS", 2000.0)

# name -> (program source, public input)
SENTINELS: Dict[str, Tuple[str, List[int]]] = {
    "countdown": (
        "read_io 1 call loop halt loop: addi -1 dup 0 skiz recurse return",
        [20000],
    ),
    "hash_chain": (
        """
        read_io 1
        call loop
        halt
    loop:
        push 0 push 0 push 0 push 0 push 0
        push 0 push 0 push 0 push 0 push 0
        hash
        pop 5
        addi -1
        dup 0
        skiz
        recurse
        return
        """,
        [2000],
    ),
    "u32_mix": (
        """
        read_io 1
        call loop
        halt
    loop:
        dup 0 push 7 and pop 1
        dup 0 push 3 xor pop 1
        dup 0 pop_count pop 1
        addi -1
        dup 0
        skiz
        recurse
        return
        """,
        [5000],
    ),
}


def run_sentinel_case(case: str) -> Tuple[float, TraceStats, bool]:
    """Prove and verify one sentinel; return elapsed ms, trace sizing and the verdict."""
    source, public_input = SENTINELS[case]
    params = stark.StarkParameters.default()

    start = perf_counter()
    program = parse_program(source)
    trace, output = trace_execution(program, public_input, NonDeterminism())
    claim = Claim.about_program(program).with_input(public_input).with_output(output)
    proof = stark.prove(params, claim, trace)
    accepted = stark.verify(params, claim, proof)
    elapsed_ms = (perf_counter() - start) * 1000.0
    return elapsed_ms, trace.stats(), accepted
