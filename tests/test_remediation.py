from clock_advisor.advisor import evaluate
from clock_advisor.remediation import DIAGNOSTIC_COMMANDS, recommended_target, remedies_for


def commands(remedies):
    return [remedy.command for remedy in remedies]


def test_xen_with_stable_tsc_switches_to_tsc(make_facts):
    facts = make_facts(clock_source="xen", available_sources=["xen", "tsc", "hpet"])
    verdict = evaluate(facts.clock_source, facts.tsc_supported, facts.vdso_present)
    remedies = remedies_for(verdict, facts)
    assert "echo tsc | sudo tee /sys/devices/system/clocksource/clocksource0/current_clocksource" in commands(remedies)
    assert any("clocksource=tsc tsc=reliable" in remedy.description for remedy in remedies)


def test_hpet_without_tsc_falls_back_to_kvm_clock(make_facts):
    facts = make_facts(clock_source="hpet", available_sources=["hpet", "kvm-clock"], tsc_supported=False)
    verdict = evaluate(facts.clock_source, facts.tsc_supported, facts.vdso_present)
    assert recommended_target(facts) == "kvm-clock"
    assert any("echo kvm-clock" in command for command in commands(remedies_for(verdict, facts)))


def test_tsc_not_listed_as_available_is_not_recommended(make_facts):
    facts = make_facts(clock_source="acpi_pm", available_sources=["acpi_pm", "hpet"])
    assert recommended_target(facts) is None


def test_unknown_availability_trusts_tsc_flags(make_facts):
    facts = make_facts(clock_source="hpet", available_sources=[])
    assert recommended_target(facts) == "tsc"


def test_optimal_tsc_needs_nothing(make_facts):
    facts = make_facts()
    verdict = evaluate(facts.clock_source, facts.tsc_supported, facts.vdso_present)
    assert remedies_for(verdict, facts) == []


def test_kvm_clock_suggests_tsc_when_supported(make_facts):
    facts = make_facts(clock_source="kvm-clock")
    verdict = evaluate(facts.clock_source, facts.tsc_supported, facts.vdso_present)
    assert any("echo tsc" in command for command in commands(remedies_for(verdict, facts)))


def test_slow_tsc_suggests_audit_and_seccomp_checks(make_facts):
    facts = make_facts(benchmark_cycles_per_call=900)
    verdict = evaluate("tsc", True, True, facts.benchmark_cycles_per_call)
    found = commands(remedies_for(verdict, facts))
    assert "sudo auditctl -l" in found
    assert "grep Seccomp /proc/<pid>/status" in found
    assert not any(command.startswith("echo") for command in found)


def test_missing_vdso_suggests_map_check(make_facts):
    facts = make_facts(vdso_present=False)
    verdict = evaluate(facts.clock_source, facts.tsc_supported, facts.vdso_present)
    assert "grep -F '[vdso]' /proc/<pid>/maps" in commands(remedies_for(verdict, facts))


def test_diagnostic_cheatsheet_covers_clock_source():
    found = commands(DIAGNOSTIC_COMMANDS)
    assert "cat /sys/devices/system/clocksource/clocksource0/current_clocksource" in found
    assert all(remedy.description for remedy in DIAGNOSTIC_COMMANDS)
