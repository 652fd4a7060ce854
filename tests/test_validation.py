from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from autowinapps.lib.hwdetect import HostFacts
from autowinapps.validation import (
    CheckStatus,
    Verdict,
    check_architecture,
    check_conflicts,
    check_disk,
    check_kernel,
    check_kernel_modules,
    check_memory,
    check_network,
    check_permissions,
    check_virtualization,
    render_system_report,
    run_validation,
)

GB = 1024 ** 3


def healthy(**overrides) -> HostFacts:
    facts = HostFacts(
        machine="x86_64",
        kernel_release="6.8.0-45-generic",
        cpu_model="Test CPU",
        cpu_cores=8,
        cpu_flags=frozenset({"vmx", "sse2"}),
        mem_total_kb=16 * 1024 * 1024,
        mem_available_kb=12 * 1024 * 1024,
        home_free_bytes=200 * GB,
        root_free_bytes=40 * GB,
        kvm_present=True,
        kvm_accessible=True,
        modules_loaded=frozenset({"kvm", "tun", "bridge"}),
        modules_available=frozenset({"kvm", "tun", "bridge"}),
        internet=True,
        reachable={"github.com:443": True},
        sudo_installed=True,
        sudo_passwordless=False,
    )
    return replace(facts, **overrides)


def test_healthy_host_passes():
    report = run_validation(healthy())
    assert report.errors == 0 and report.warnings == 0
    assert report.verdict() is Verdict.PASSED
    assert [r.name for r in report.results] == [
        "architecture",
        "memory",
        "disk",
        "virtualization",
        "network",
        "kernel",
        "kernel_modules",
        "conflicts",
        "permissions",
    ]


@pytest.mark.parametrize(
    "machine,status",
    [("x86_64", CheckStatus.PASS), ("aarch64", CheckStatus.WARN), ("riscv64", CheckStatus.FAIL)],
)
def test_architecture(machine, status):
    assert check_architecture(healthy(machine=machine)).status is status


def test_low_memory_warns():
    r = check_memory(healthy(mem_total_kb=4 * 1024 * 1024))
    assert r.status is CheckStatus.WARN
    assert "4GB" in r.message


def test_disk_thresholds():
    assert check_disk(healthy(home_free_bytes=30 * GB)).status is CheckStatus.FAIL
    assert check_disk(healthy(home_free_bytes=60 * GB)).status is CheckStatus.WARN
    assert check_disk(healthy(root_free_bytes=2 * GB)).status is CheckStatus.WARN
    assert check_disk(healthy(home_free_bytes=80 * GB)).status is CheckStatus.PASS


def test_virtualization():
    assert check_virtualization(healthy(cpu_flags=frozenset())).status is CheckStatus.FAIL
    assert check_virtualization(healthy(kvm_present=False)).status is CheckStatus.WARN
    assert check_virtualization(healthy(kvm_accessible=False)).status is CheckStatus.WARN
    amd = check_virtualization(healthy(cpu_flags=frozenset({"svm"})))
    assert amd.status is CheckStatus.PASS and "AMD-V" in amd.message


def test_network():
    assert check_network(healthy(internet=False)).status is CheckStatus.FAIL
    partial = check_network(healthy(reachable={"github.com:443": True, "registry.hub.docker.com:443": False}))
    assert partial.status is CheckStatus.PASS
    assert "unreachable: registry.hub.docker.com:443" in partial.details


@pytest.mark.parametrize(
    "release,status",
    [("6.8.0", CheckStatus.PASS), ("4.19.0", CheckStatus.WARN), ("3.2.0", CheckStatus.WARN)],
)
def test_kernel(release, status):
    assert check_kernel(healthy(kernel_release=release)).status is status


def test_kernel_modules():
    r = check_kernel_modules(healthy(modules_loaded=frozenset({"kvm"}), modules_available=frozenset({"kvm", "tun"})))
    assert r.status is CheckStatus.WARN
    assert "Module tun available but not loaded" in r.details
    assert "Module bridge not available" in r.details


def test_conflicts():
    r = check_conflicts(healthy(virtualbox_installed=True, wsl=True))
    assert r.status is CheckStatus.WARN
    assert len(r.details) == 2


def test_permissions():
    assert check_permissions(healthy(sudo_installed=False)).status is CheckStatus.WARN
    assert check_permissions(healthy(home_writable=False)).status is CheckStatus.WARN
    assert check_permissions(healthy()).status is CheckStatus.PASS


def test_verdicts():
    degraded = run_validation(healthy(machine="aarch64"))
    assert degraded.verdict() is Verdict.DEGRADED

    blocked = run_validation(healthy(internet=False))
    assert blocked.errors == 1
    assert blocked.verdict() is Verdict.BLOCKED
    assert blocked.verdict(force=True) is Verdict.FORCED


def test_counts_failures_and_warnings_together():
    report = run_validation(
        healthy(machine="riscv64", internet=False, mem_total_kb=4 * 1024 * 1024, kernel_release="4.19.0", wsl=True)
    )
    assert report.errors == 2
    assert report.warnings == 3
    assert report.verdict() is Verdict.BLOCKED
    assert report.verdict(force=True) is Verdict.FORCED


def test_system_report_contents():
    text = render_system_report(
        healthy(),
        now=datetime(2024, 5, 1, 12, 0, 0),
        environ={"USER": "tester", "SHELL": "/bin/bash", "XDG_CURRENT_DESKTOP": "KDE"},
    )
    assert text.startswith("AutoWinApps System Report\n")
    assert "- Virtualization: Intel VT-x" in text
    assert "- Memory: 16GB" in text
    assert "- Username: tester" in text
    assert "- Desktop: KDE" in text
