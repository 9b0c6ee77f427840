"""Console-friendly formatting utilities."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .advisor import Verdict
from .remediation import Remedy
from .system_state import ClockFacts


def format_optional(value: object) -> str:
    if value is None:
        return "unknown"
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def format_cycles(cycles: Optional[float]) -> str:
    return "not measured" if cycles is None else f"{cycles:.0f} cycles/call"


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))
    lines = []
    lines.append(_format_row(headers, widths))
    lines.append(_format_row(["-" * w for w in widths], widths))
    for row in rows:
        lines.append(_format_row(row, widths))
    return "\n".join(lines)


def format_facts(facts: ClockFacts) -> str:
    lines = [
        f"Time: {facts.timestamp:%Y-%m-%d %H:%M:%S}",
        f"Clock source: {format_optional(facts.clock_source)}"
        f" | available: {' '.join(facts.available_sources) or 'unknown'}",
        f"Stable TSC: {format_optional(facts.tsc_supported)}"
        f" | flags: {' '.join(facts.tsc_flags) or 'none'}",
        f"vDSO mapped: {format_optional(facts.vdso_present)}",
        f"clock_gettime cost: {format_cycles(facts.benchmark_cycles_per_call)}",
    ]
    if facts.errors:
        lines.append("Unavailable facts:")
        lines.extend(f"  - {error}" for error in facts.errors)
    return "\n".join(lines)


def format_verdict(verdict: Verdict) -> str:
    lines = [f"[{verdict.severity.value.upper()}] {verdict.message}"]
    if verdict.recommended_action:
        lines.append(f"Recommended: {verdict.recommended_action}")
    lines.extend(f"Advisory: {advisory}" for advisory in verdict.advisories)
    if not verdict.confident:
        lines.append(f"Reduced confidence, unknown: {', '.join(verdict.unknown_facts)}")
    return "\n".join(lines)


def format_remedies(remedies: Iterable[Remedy]) -> str:
    rows = [[remedy.description, remedy.command] for remedy in remedies]
    return render_table(["Step", "Command"], rows) if rows else "No commands to suggest."


def _format_row(row: Sequence[str], widths: Sequence[int]) -> str:
    padded = [cell.ljust(width) for cell, width in zip(row, widths)]
    return " | ".join(padded)
