from datetime import datetime

import pytest

from clock_advisor.system_state import CLOCKSOURCE_DIR, ClockFacts

STABLE_FLAGS = "fpu vme tsc msr pae constant_tsc rep_good nopl nonstop_tsc cpuid tsc_known_freq"


def _make_facts(
    *,
    clock_source="tsc",
    available_sources=("tsc", "kvm-clock", "acpi_pm"),
    tsc_supported=True,
    vdso_present=True,
    benchmark_cycles_per_call=None,
    errors=None,
) -> ClockFacts:
    return ClockFacts(
        timestamp=datetime(2024, 5, 1, 12, 0, 0),
        clock_source=clock_source,
        available_sources=list(available_sources),
        tsc_supported=tsc_supported,
        tsc_flags=["tsc", "constant_tsc", "nonstop_tsc"] if tsc_supported else [],
        vdso_present=vdso_present,
        benchmark_cycles_per_call=benchmark_cycles_per_call,
        errors=list(errors or []),
    )


@pytest.fixture
def fake_root(tmp_path):
    """Build a minimal sysfs/procfs tree and return a writer for it."""

    def build(current="kvm-clock", available="kvm-clock tsc acpi_pm", flags=STABLE_FLAGS):
        clock_dir = tmp_path / CLOCKSOURCE_DIR
        clock_dir.mkdir(parents=True, exist_ok=True)
        if current is not None:
            (clock_dir / "current_clocksource").write_text(current + "\n")
        if available is not None:
            (clock_dir / "available_clocksource").write_text(available + " \n")
        proc = tmp_path / "proc"
        proc.mkdir(exist_ok=True)
        if flags is not None:
            (proc / "cpuinfo").write_text(
                "processor\t: 0\nvendor_id\t: GenuineIntel\n"
                f"flags\t\t: {flags}\n\nprocessor\t: 1\nflags\t\t: fpu\n"
            )
        return str(tmp_path)

    return build


@pytest.fixture
def make_facts():
    return _make_facts
