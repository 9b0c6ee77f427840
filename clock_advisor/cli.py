"""Entry point for the clock-advisor command line tool."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .advisor import DEFAULT_CYCLES_THRESHOLD, Severity, Verdict, evaluate
from .formatting import format_cycles, format_facts, format_optional, format_remedies, format_verdict
from .remediation import DIAGNOSTIC_COMMANDS, Remedy, remedies_for
from .system_state import DEFAULT_ITERATIONS, ClockFacts, gather_facts

SEVERITY_STYLES = {
    Severity.OPTIMAL: "bold green",
    Severity.ACCEPTABLE: "bold cyan",
    Severity.WARNING: "bold yellow",
    Severity.CRITICAL: "bold red",
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Check whether the clock source is costing this machine CPU, and how to fix it.",
    )
    parser.add_argument("--json", action="store_true", help="print facts, verdict and remedies as JSON")
    parser.add_argument("--ui", action="store_true", help="render a Rich terminal UI")
    parser.add_argument("--benchmark", action="store_true", help="measure the cost of a clock_gettime call")
    parser.add_argument(
        "--iterations", type=int, default=DEFAULT_ITERATIONS, help="calls made by the benchmark"
    )
    parser.add_argument(
        "--cycles-per-call",
        type=float,
        default=None,
        help="use an externally measured clock_gettime cost instead of running the benchmark",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_CYCLES_THRESHOLD,
        help="cycles per call above which a tsc fast path is considered inactive",
    )
    parser.add_argument("--pid", type=int, default=None, help="process to inspect for the vDSO mapping")
    parser.add_argument("--root", default="/", help="filesystem root holding /sys and /proc")
    parser.add_argument("--commands", action="store_true", help="print diagnostic one-liners and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if args.commands:
        print(format_remedies(DIAGNOSTIC_COMMANDS))
        return 0

    run_benchmark = args.benchmark and args.cycles_per_call is None
    facts = gather_facts(root=args.root, pid=args.pid, benchmark=run_benchmark, iterations=args.iterations)
    if args.cycles_per_call is not None:
        facts.benchmark_cycles_per_call = args.cycles_per_call

    verdict = evaluate(
        facts.clock_source,
        facts.tsc_supported,
        facts.vdso_present,
        benchmark_cycles_per_call=facts.benchmark_cycles_per_call,
        cycles_threshold=args.threshold,
    )
    remedies = remedies_for(verdict, facts)

    if args.json:
        print(_to_json(facts, verdict, remedies))
    elif args.ui:
        _render_rich(facts, verdict, remedies)
    else:
        print(format_facts(facts))
        print()
        print(format_verdict(verdict))
        if remedies:
            print("\nSuggested commands:")
            print(format_remedies(remedies))

    return verdict.exit_code


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _to_json(facts: ClockFacts, verdict: Verdict, remedies: List[Remedy]) -> str:
    facts_dict: Dict[str, Any] = asdict(facts)
    facts_dict["timestamp"] = facts.timestamp.isoformat()
    payload: Dict[str, Any] = {
        "facts": facts_dict,
        "verdict": verdict.to_dict(),
        "remedies": [asdict(remedy) for remedy in remedies],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _render_rich(facts: ClockFacts, verdict: Verdict, remedies: List[Remedy]) -> None:
    console = Console()

    console.print(Panel(f"Clock source check - {facts.timestamp:%Y-%m-%d %H:%M:%S}", style="bold cyan"))

    summary = Table(show_header=False, box=box.ROUNDED)
    summary.add_row("Clock source", format_optional(facts.clock_source))
    summary.add_row("Available", " ".join(facts.available_sources) or "unknown")
    summary.add_row("Stable TSC", f"{format_optional(facts.tsc_supported)} ({' '.join(facts.tsc_flags) or 'no flags'})")
    summary.add_row("vDSO mapped", format_optional(facts.vdso_present))
    summary.add_row("clock_gettime cost", format_cycles(facts.benchmark_cycles_per_call))
    console.print(summary)

    if facts.errors:
        console.print(Panel(escape("\n".join(facts.errors)), title="Unavailable facts", style="yellow"))

    body = escape(verdict.message)
    if verdict.recommended_action:
        body += f"\n\nRecommended: {escape(verdict.recommended_action)}"
    console.print(
        Panel(body, title=verdict.severity.value.upper(), style=SEVERITY_STYLES[verdict.severity])
    )

    for advisory in verdict.advisories:
        console.print(f"[yellow]Advisory:[/yellow] {escape(advisory)}")
    if not verdict.confident:
        console.print(f"[dim]Reduced confidence, unknown: {', '.join(verdict.unknown_facts)}[/dim]")

    if remedies:
        table = Table(title="Suggested commands", box=box.SIMPLE_HEAD)
        table.add_column("Step", style="bold")
        table.add_column("Command")
        for remedy in remedies:
            table.add_row(escape(remedy.description), escape(remedy.command))
        console.print(table)


if __name__ == "__main__":
    sys.exit(main())
