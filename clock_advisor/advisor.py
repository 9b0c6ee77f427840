"""Judge a host's timekeeping configuration from a handful of observed facts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_CYCLES_THRESHOLD = 500

TSC_UNAVAILABLE = "TSC not available; do not force tsc clocksource."
VDSO_MISSING = "fast-path time mechanism missing; investigate kernel/runtime configuration (vDSO is not mapped)."


class ClockSource(str, Enum):
    TSC = "tsc"
    KVM_CLOCK = "kvm-clock"
    HPET = "hpet"
    ACPI_PM = "acpi_pm"
    XEN = "xen"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "ClockSource":
        """Map any value to a clock source; unknown values become OTHER."""
        if isinstance(value, ClockSource):
            return value
        if not isinstance(value, str):
            return cls.OTHER
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.OTHER


class Severity(str, Enum):
    OPTIMAL = "optimal"
    ACCEPTABLE = "acceptable"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def healthy(self) -> bool:
        return self in (Severity.OPTIMAL, Severity.ACCEPTABLE)


@dataclass(frozen=True)
class Verdict:
    clock_source: ClockSource
    severity: Severity
    message: str
    recommended_action: Optional[str] = None
    advisories: Tuple[str, ...] = ()
    unknown_facts: Tuple[str, ...] = ()

    @property
    def confident(self) -> bool:
        return not self.unknown_facts

    @property
    def exit_code(self) -> int:
        return 0 if self.severity.healthy else 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clock_source": self.clock_source.value,
            "severity": self.severity.value,
            "message": self.message,
            "recommended_action": self.recommended_action,
            "advisories": list(self.advisories),
            "unknown_facts": list(self.unknown_facts),
            "confident": self.confident,
        }


def evaluate(
    clock_source: Any,
    tsc_supported: Optional[bool],
    vdso_present: Optional[bool],
    benchmark_cycles_per_call: Optional[float] = None,
    cycles_threshold: float = DEFAULT_CYCLES_THRESHOLD,
) -> Verdict:
    """Return the verdict for the given timekeeping facts.

    Any fact may be ``None`` when it could not be gathered. A missing clock
    source is judged as ``other``, missing booleans raise no advisory, and
    every missing fact is listed in ``Verdict.unknown_facts``. Never raises.
    """
    source = ClockSource.parse(clock_source)
    severity, message, action = _judge_source(source)

    if (
        source is ClockSource.TSC
        and benchmark_cycles_per_call is not None
        and benchmark_cycles_per_call > cycles_threshold
    ):
        severity = Severity.WARNING
        message = "tsc selected but fast path appears inactive; check for syscall interception (audit/seccomp)."
        action = (
            f"Timestamp reads cost {benchmark_cycles_per_call:.0f} cycles (threshold {cycles_threshold:.0f}); "
            "look for audit rules or seccomp filters trapping clock_gettime."
        )

    advisories: List[str] = []
    if tsc_supported is False:
        advisories.append(TSC_UNAVAILABLE)
    if vdso_present is False:
        advisories.append(VDSO_MISSING)

    return Verdict(
        clock_source=source,
        severity=severity,
        message=message,
        recommended_action=action,
        advisories=tuple(advisories),
        unknown_facts=_unknown_facts(clock_source, tsc_supported, vdso_present),
    )


def _judge_source(source: ClockSource) -> Tuple[Severity, str, Optional[str]]:
    if source is ClockSource.XEN:
        return (
            Severity.CRITICAL,
            "xen clock source: losing significant CPU to slow timekeeping.",
            "Switch to tsc if supported, else kvm-clock.",
        )
    if source in (ClockSource.HPET, ClockSource.ACPI_PM):
        return (
            Severity.CRITICAL,
            f"{source.value} is a slow clock source; every timestamp read enters the kernel.",
            "Switch to tsc or kvm-clock.",
        )
    if source is ClockSource.KVM_CLOCK:
        return (
            Severity.ACCEPTABLE,
            "kvm-clock is a paravirtual clock source with acceptable overhead.",
            "tsc is better if supported.",
        )
    if source is ClockSource.TSC:
        return Severity.OPTIMAL, "tsc is the optimal clock source.", None
    return (
        Severity.WARNING,
        "Unrecognized clock source; its timekeeping overhead is unknown.",
        "Investigate; consider tsc.",
    )


def _unknown_facts(
    clock_source: Any, tsc_supported: Optional[bool], vdso_present: Optional[bool]
) -> Tuple[str, ...]:
    missing = []
    if clock_source is None:
        missing.append("clock_source")
    if tsc_supported is None:
        missing.append("tsc_supported")
    if vdso_present is None:
        missing.append("vdso_present")
    return tuple(missing)
