"""Copy-paste commands for diagnosing and fixing clock source problems.

Nothing here is executed; the commands are printed for an operator to run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .advisor import ClockSource, Severity, Verdict, VDSO_MISSING
from .system_state import CLOCKSOURCE_DIR, ClockFacts


@dataclass
class Remedy:
    description: str
    command: str


DIAGNOSTIC_COMMANDS: List[Remedy] = [
    Remedy("Current clock source", f"cat /{CLOCKSOURCE_DIR}/current_clocksource"),
    Remedy("Available clock sources", f"cat /{CLOCKSOURCE_DIR}/available_clocksource"),
    Remedy("TSC related CPU flags", "grep -o -w -E 'constant_tsc|nonstop_tsc|tsc_reliable|tsc_known_freq' /proc/cpuinfo | sort | uniq -c"),
    Remedy("Kernel clock source decisions", "dmesg | grep -i -E 'clocksource|tsc'"),
    Remedy("Clock parameters on the kernel command line", "tr ' ' '\\n' < /proc/cmdline | grep -E 'clocksource|tsc|vdso'"),
    Remedy("vDSO mapped into a process", "grep -F '[vdso]' /proc/self/maps"),
    Remedy("Count clock_gettime syscalls that bypass the vDSO", "strace -c -e trace=clock_gettime,gettimeofday -p <pid>"),
    Remedy("Audit rules that may trap time syscalls", "sudo auditctl -l"),
    Remedy("Seccomp mode of a process", "grep Seccomp /proc/<pid>/status"),
]


def recommended_target(facts: ClockFacts) -> Optional[str]:
    """Pick the clock source to switch to, if any is known to be usable."""
    available = facts.available_sources
    if facts.tsc_supported and (not available or ClockSource.TSC.value in available):
        return ClockSource.TSC.value
    if ClockSource.KVM_CLOCK.value in available:
        return ClockSource.KVM_CLOCK.value
    return None


def remedies_for(verdict: Verdict, facts: ClockFacts) -> List[Remedy]:
    remedies: List[Remedy] = []

    if verdict.severity is not Severity.OPTIMAL:
        target = recommended_target(facts)
        if target and target != facts.clock_source:
            remedies.extend(_switch_remedies(target))

    if verdict.clock_source is ClockSource.TSC and verdict.severity is Severity.WARNING:
        remedies.append(Remedy("List audit rules; a rule on clock_gettime forces the slow path", "sudo auditctl -l"))
        remedies.append(Remedy("Check whether the workload runs under a seccomp filter", "grep Seccomp /proc/<pid>/status"))
        remedies.append(Remedy("Confirm time syscalls reach the kernel", "strace -c -e trace=clock_gettime -p <pid>"))

    if VDSO_MISSING in verdict.advisories:
        remedies.append(Remedy("Look for the vDSO mapping", "grep -F '[vdso]' /proc/<pid>/maps"))
        remedies.append(Remedy("Check the kernel command line for vdso=0", "cat /proc/cmdline"))

    return remedies


def _switch_remedies(target: str) -> List[Remedy]:
    cmdline = f"clocksource={target}"
    if target == ClockSource.TSC.value:
        cmdline += " tsc=reliable"
    return [
        Remedy(
            f"Switch to {target} until next reboot",
            f"echo {target} | sudo tee /{CLOCKSOURCE_DIR}/current_clocksource",
        ),
        Remedy(
            f"Make {target} persistent: add '{cmdline}' to GRUB_CMDLINE_LINUX, then regenerate the config",
            "sudo grub2-mkconfig -o /boot/grub2/grub.cfg  # or: sudo update-grub",
        ),
    ]
