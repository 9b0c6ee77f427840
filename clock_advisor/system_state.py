"""Collect timekeeping facts from a Linux host."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
import operator
import os
import time
import timeit
from typing import List, Optional, Tuple

import psutil

logger = logging.getLogger(__name__)

CLOCKSOURCE_DIR = "sys/devices/system/clocksource/clocksource0"
CPUINFO = "proc/cpuinfo"
TSC_FLAGS = ("tsc", "constant_tsc", "nonstop_tsc", "tsc_reliable", "tsc_known_freq")
DEFAULT_ITERATIONS = 200_000
DEFAULT_REPEATS = 5


class FactUnavailable(Exception):
    """A timekeeping fact could not be read from the host."""

    def __init__(self, fact: str, reason: str) -> None:
        super().__init__(f"{fact}: {reason}")
        self.fact = fact
        self.reason = reason


@dataclass
class ClockFacts:
    timestamp: datetime
    clock_source: Optional[str] = None
    available_sources: List[str] = field(default_factory=list)
    tsc_supported: Optional[bool] = None
    tsc_flags: List[str] = field(default_factory=list)
    vdso_present: Optional[bool] = None
    benchmark_cycles_per_call: Optional[float] = None
    errors: List[str] = field(default_factory=list)


def gather_facts(
    root: str = "/",
    pid: Optional[int] = None,
    benchmark: bool = False,
    iterations: int = DEFAULT_ITERATIONS,
) -> ClockFacts:
    """Collect every fact the advisor needs, recording the ones that are unavailable."""
    facts = ClockFacts(timestamp=datetime.now())

    try:
        facts.clock_source = read_clock_source(root)
    except FactUnavailable as exc:
        _record(facts, exc)

    try:
        facts.available_sources = read_available_clock_sources(root)
    except FactUnavailable as exc:
        _record(facts, exc)

    try:
        facts.tsc_supported, facts.tsc_flags = read_tsc_support(root)
    except FactUnavailable as exc:
        _record(facts, exc)

    try:
        facts.vdso_present = check_vdso(pid)
    except FactUnavailable as exc:
        _record(facts, exc)

    if benchmark:
        try:
            facts.benchmark_cycles_per_call = measure_cycles_per_call(iterations)
        except FactUnavailable as exc:
            _record(facts, exc)

    return facts


def read_clock_source(root: str = "/") -> str:
    value = _read_text(root, f"{CLOCKSOURCE_DIR}/current_clocksource", "clock_source").strip()
    if not value:
        raise FactUnavailable("clock_source", "current_clocksource is empty")
    return value


def read_available_clock_sources(root: str = "/") -> List[str]:
    return _read_text(root, f"{CLOCKSOURCE_DIR}/available_clocksource", "available_sources").split()


def read_tsc_support(root: str = "/") -> Tuple[bool, List[str]]:
    """Return whether the CPU reports a stable TSC, plus the TSC flags seen.

    Stable means ``tsc_reliable``, or both ``constant_tsc`` and ``nonstop_tsc``.
    Only the first ``flags`` line is read; all CPUs report the same set.
    """
    cpuinfo = _read_text(root, CPUINFO, "tsc_supported")
    for line in cpuinfo.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() == "flags":
            flags = set(value.split())
            seen = [flag for flag in TSC_FLAGS if flag in flags]
            stable = "tsc_reliable" in flags or {"constant_tsc", "nonstop_tsc"} <= flags
            return stable, seen
    raise FactUnavailable("tsc_supported", "no CPU flags line in /proc/cpuinfo")


def check_vdso(pid: Optional[int] = None) -> bool:
    """Whether the vDSO is mapped into the process (the current one by default)."""
    target = "current process" if pid is None else f"pid {pid}"
    try:
        maps = psutil.Process(pid).memory_maps(grouped=True)
    except psutil.NoSuchProcess:
        raise FactUnavailable("vdso_present", f"no such process: {target}")
    except psutil.AccessDenied:
        raise FactUnavailable("vdso_present", f"access denied to memory maps of {target}")
    except AttributeError:
        # memory_maps() is not implemented on every platform
        raise FactUnavailable("vdso_present", "memory maps are not available on this platform")
    return any(region.path == "[vdso]" for region in maps)


def measure_cycles_per_call(iterations: int = DEFAULT_ITERATIONS, repeats: int = DEFAULT_REPEATS) -> float:
    """Estimate CPU cycles spent reading ``CLOCK_MONOTONIC`` through ``clock_gettime``.

    ``time.clock_gettime_ns`` is timed against ``operator.neg`` on an integer of
    the same size: both are one-argument builtins returning a freshly allocated
    int, so subtracting the baseline leaves the cost of the clock read itself.
    Each side keeps the fastest of ``repeats`` passes, which filters out
    scheduler noise. Nanoseconds are turned into cycles with the frequency
    reported by psutil.
    """
    if iterations <= 0 or repeats <= 0:
        raise FactUnavailable("benchmark_cycles_per_call", "iteration and repeat counts must be positive")
    clock_id = getattr(time, "CLOCK_MONOTONIC", None)
    if clock_id is None:
        raise FactUnavailable("benchmark_cycles_per_call", "CLOCK_MONOTONIC is not available on this platform")
    mhz = _cpu_mhz()

    namespace = {
        "read_clock": time.clock_gettime_ns,
        "baseline": operator.neg,
        "clock_id": clock_id,
        "same_size_int": time.clock_gettime_ns(clock_id),
    }
    baseline_s = min(
        timeit.repeat("baseline(same_size_int)", globals=namespace, number=iterations, repeat=repeats)
    )
    clock_s = min(timeit.repeat("read_clock(clock_id)", globals=namespace, number=iterations, repeat=repeats))

    ns_per_call = max(clock_s - baseline_s, 0.0) * 1e9 / iterations
    cycles = ns_per_call * mhz / 1000
    logger.debug(
        "clock_gettime benchmark: %.1f ns/call at %.0f MHz = %.0f cycles (best of %d x %d calls)",
        ns_per_call,
        mhz,
        cycles,
        repeats,
        iterations,
    )
    return cycles


def _cpu_mhz() -> float:
    try:
        freq = psutil.cpu_freq()
    except (NotImplementedError, OSError) as exc:
        raise FactUnavailable("benchmark_cycles_per_call", f"cannot read CPU frequency: {exc}")
    if freq is None:
        raise FactUnavailable("benchmark_cycles_per_call", "CPU frequency is not reported")
    mhz = freq.current or freq.max
    if not mhz:
        raise FactUnavailable("benchmark_cycles_per_call", "CPU frequency is reported as zero")
    return float(mhz)


def _read_text(root: str, relative: str, fact: str) -> str:
    path = os.path.join(root, relative)
    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            return handle.read()
    except OSError as exc:
        raise FactUnavailable(fact, f"cannot read {path}: {exc.strerror or exc}")


def _record(facts: ClockFacts, exc: FactUnavailable) -> None:
    logger.warning("fact unavailable: %s", exc)
    facts.errors.append(str(exc))
