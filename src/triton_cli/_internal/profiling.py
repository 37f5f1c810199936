"""Optional timing and sizing reports for `--profile`.

Profiles are collected next to the primary operation and rendered as plain
text. Nothing here influences outputs, artifacts or exit statuses.
"""

from time import perf_counter
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from triton_cli.kernel.stark import StarkParameters
from triton_cli.kernel.vm import TableId, TraceStats


class Stopwatch:
    """Named wall-clock laps in milliseconds."""

    def __init__(self):
        self.timings: Dict[str, float] = {}
        self._start = perf_counter()

    def lap(self, name: str) -> None:
        now = perf_counter()
        self.timings[name] = (now - self._start) * 1000.0
        self._start = now


class TableHeight(BaseModel):
    table: str
    height: int
    dominating: bool = False


class ExecutionProfile(BaseModel):
    """Sizing of one execution."""
    table_heights: List[TableHeight]
    dominating_table: str
    padded_height: int
    cycle_count: int
    fri_domain_length: Optional[int] = None
    timings_ms: Dict[str, float] = Field(default_factory=dict)

    @classmethod
    def from_stats(
        cls,
        stats: TraceStats,
        timings_ms: Dict[str, float],
        parameters: Optional[StarkParameters] = None,
    ) -> "ExecutionProfile":
        dominating = stats.dominating_table
        heights = [
            TableHeight(table=table.value, height=stats.table_heights[table], dominating=table is dominating)
            for table in TableId
        ]
        fri_domain_length = None
        if parameters is not None:
            fri_domain_length = parameters.fri_domain_length(stats.padded_height)
        return cls(
            table_heights=heights,
            dominating_table=dominating.value,
            padded_height=stats.padded_height,
            cycle_count=stats.cycle_count,
            fri_domain_length=fri_domain_length,
            timings_ms=dict(timings_ms),
        )


class ProofProfile(BaseModel):
    """Sizing and timings of one `prove` invocation."""
    execution: ExecutionProfile
    proof_size_bytes: int


class VerificationProfile(BaseModel):
    """What `verify` learned about the proof it checked."""
    padded_height: int
    fri_domain_length: int
    proof_size_bytes: int
    timings_ms: Dict[str, float] = Field(default_factory=dict)


def _render_timings(timings_ms: Dict[str, float]) -> List[str]:
    if not timings_ms:
        return []
    width = max(len(name) for name in timings_ms)
    lines = ["", "timings:"]
    for name, ms in timings_ms.items():
        lines.append(f"  {name:<{width}}  {ms:10.3f} ms")
    lines.append(f"  {'total':<{width}}  {sum(timings_ms.values()):10.3f} ms")
    return lines


def render_execution_profile(profile: ExecutionProfile) -> str:
    width = max(len(row.table) for row in profile.table_heights)
    lines = [f"{'table':<{width}}  {'height':>10}"]
    for row in profile.table_heights:
        marker = "  <- dominating" if row.dominating else ""
        lines.append(f"{row.table:<{width}}  {row.height:>10}{marker}")
    lines.append("")
    lines.append(f"padded height:      {profile.padded_height}")
    lines.append(f"cycle count:        {profile.cycle_count}")
    if profile.fri_domain_length is not None:
        lines.append(f"FRI domain length:  {profile.fri_domain_length}")
    lines.extend(_render_timings(profile.timings_ms))
    return "\n".join(lines)


def render_proof_profile(profile: ProofProfile) -> str:
    return "\n".join([
        render_execution_profile(profile.execution),
        f"proof size:         {profile.proof_size_bytes} bytes",
    ])


def render_verification_profile(profile: VerificationProfile) -> str:
    lines = [
        f"padded height:      {profile.padded_height}",
        f"FRI domain length:  {profile.fri_domain_length}",
        f"proof size:         {profile.proof_size_bytes} bytes",
    ]
    lines.extend(_render_timings(profile.timings_ms))
    return "\n".join(lines)
