"""Performance sentinels (gated)."""

from __future__ import annotations

import pytest

from triton_cli.kernel.vm import TableId
from triton_cli._internal.benchmarks import (
    MAX_COUNTDOWN_MS,
    MAX_HASH_CHAIN_MS,
    MAX_U32_MIX_MS,
    run_sentinel_case,
)


def _assert_budget(benchmark, max_ms: float) -> None:
    mean_ms = benchmark.stats.stats.mean * 1000.0
    assert mean_ms < max_ms, f"Mean {mean_ms:.2f} ms exceeded budget {max_ms:.2f} ms"


@pytest.mark.perf
def test_countdown_sentinel(benchmark):
    _, stats, accepted = benchmark.pedantic(lambda: run_sentinel_case("countdown"), rounds=3, iterations=1)

    assert accepted
    assert stats.dominating_table is TableId.PROCESSOR
    assert stats.padded_height == 131072

    _assert_budget(benchmark, MAX_COUNTDOWN_MS)


@pytest.mark.perf
def test_hash_chain_sentinel(benchmark):
    _, stats, accepted = benchmark.pedantic(lambda: run_sentinel_case("hash_chain"), rounds=3, iterations=1)

    assert accepted
    assert stats.table_heights[TableId.HASH] >= 2000 * 6

    _assert_budget(benchmark, MAX_HASH_CHAIN_MS)


@pytest.mark.perf
def test_u32_mix_sentinel(benchmark):
    _, stats, accepted = benchmark.pedantic(lambda: run_sentinel_case("u32_mix"), rounds=3, iterations=1)

    assert accepted
    assert stats.table_heights[TableId.U32] > 0

    _assert_budget(benchmark, MAX_U32_MIX_MS)
