"""
Pre-install system validation.

Each check looks at one aspect of a ``HostFacts`` snapshot and returns a
``CheckResult``. Checks never mutate the host and do not depend on each
other; ``run_validation`` runs them all and aggregates the verdict.
"""

from __future__ import annotations

import getpass
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence

from .lib.files import write_file
from .lib.hwdetect import REQUIRED_MODULES, HostFacts, parse_kernel_version
from .logging_utils import log_success

if TYPE_CHECKING:
    from .context import HostProfile

logger = logging.getLogger(__name__)

MIN_HOME_FREE_GB = 50
RECOMMENDED_HOME_FREE_GB = 80
MIN_ROOT_FREE_GB = 5
RECOMMENDED_MEMORY_GB = 8


class CheckStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class Verdict(str, Enum):
    PASSED = "passed"
    DEGRADED = "degraded"
    BLOCKED = "blocked"
    FORCED = "forced"


@dataclass(frozen=True)
class CheckResult:
    name: str
    status: CheckStatus
    message: str
    details: List[str] = field(default_factory=list)


def _result(name: str, status: CheckStatus, message: str, details: Optional[List[str]] = None) -> CheckResult:
    return CheckResult(name=name, status=status, message=message, details=details or [])


def check_architecture(facts: HostFacts) -> CheckResult:
    arch = facts.machine
    if arch in ("x86_64", "amd64"):
        return _result("architecture", CheckStatus.PASS, f"CPU architecture: {arch} (supported)")
    if arch in ("aarch64", "arm64"):
        return _result(
            "architecture",
            CheckStatus.WARN,
            f"CPU architecture: {arch} (experimental support)",
            ["ARM64 support may have limitations"],
        )
    return _result(
        "architecture",
        CheckStatus.FAIL,
        f"CPU architecture: {arch} (unsupported)",
        ["Supported architectures: x86_64, aarch64"],
    )


def check_memory(facts: HostFacts) -> CheckResult:
    total = facts.mem_total_gb
    details = [f"Total memory: {total}GB", f"Available memory: {facts.mem_available_kb // (1024 * 1024)}GB"]
    if total < RECOMMENDED_MEMORY_GB:
        details.append("Consider reducing Windows VM memory allocation")
        return _result(
            "memory",
            CheckStatus.WARN,
            f"Low total memory. Recommended: {RECOMMENDED_MEMORY_GB}GB, detected: {total}GB",
            details,
        )
    return _result("memory", CheckStatus.PASS, "Memory requirements satisfied", details)


def check_disk(facts: HostFacts) -> CheckResult:
    home, root = facts.home_free_gb, facts.root_free_gb
    details = [f"Available space in $HOME: {home}GB", f"Available space in /: {root}GB"]
    if home < MIN_HOME_FREE_GB:
        return _result(
            "disk",
            CheckStatus.FAIL,
            f"Insufficient space in $HOME. Minimum: {MIN_HOME_FREE_GB}GB, available: {home}GB",
            details,
        )

    status, message = CheckStatus.PASS, "Disk space requirements satisfied"
    if home < RECOMMENDED_HOME_FREE_GB:
        status = CheckStatus.WARN
        message = f"Low space in $HOME. Recommended: {RECOMMENDED_HOME_FREE_GB}GB, available: {home}GB"
    if root < MIN_ROOT_FREE_GB:
        status = CheckStatus.WARN
        details.append(f"Low space on root filesystem: {root}GB")
        if message.startswith("Disk space"):
            message = f"Low space on root filesystem: {root}GB"
    return _result("disk", status, message, details)


def check_virtualization(facts: HostFacts) -> CheckResult:
    virt = facts.virtualization
    if virt is None:
        return _result(
            "virtualization",
            CheckStatus.FAIL,
            "CPU virtualization not detected",
            ["Enable virtualization in BIOS/UEFI settings"],
        )
    if not facts.kvm_present:
        return _result(
            "virtualization",
            CheckStatus.WARN,
            f"CPU virtualization: {virt} detected, but KVM device not found",
            ["KVM modules may need to be loaded"],
        )
    if not facts.kvm_accessible:
        return _result(
            "virtualization",
            CheckStatus.WARN,
            "KVM device permissions need adjustment",
            ["User will be added to kvm group during installation"],
        )
    return _result("virtualization", CheckStatus.PASS, f"CPU virtualization: {virt} detected, KVM device accessible")


def check_network(facts: HostFacts) -> CheckResult:
    if not facts.internet:
        return _result(
            "network",
            CheckStatus.FAIL,
            "No internet connectivity",
            ["Internet connection required for installation"],
        )
    details = [f"{'reachable' if ok else 'unreachable'}: {svc}" for svc, ok in facts.reachable.items()]
    for svc, ok in facts.reachable.items():
        if not ok:
            logger.warning("%s unreachable", svc)
    return _result("network", CheckStatus.PASS, "Internet connectivity verified", details)


def check_kernel(facts: HostFacts) -> CheckResult:
    release = facts.kernel_release
    major, minor = parse_kernel_version(release)
    if (major, minor) < (3, 10):
        return _result("kernel", CheckStatus.WARN, f"Kernel version too old. Minimum: 3.10, detected: {release}")
    if major < 5:
        return _result(
            "kernel", CheckStatus.WARN, f"Kernel {release}: consider upgrading to kernel 5.0+ for better performance"
        )
    return _result("kernel", CheckStatus.PASS, f"Kernel version {release} supported")


def check_kernel_modules(facts: HostFacts) -> CheckResult:
    details: List[str] = []
    missing: List[str] = []
    for module in REQUIRED_MODULES:
        if module in facts.modules_loaded:
            details.append(f"Module {module} loaded")
        elif module in facts.modules_available:
            details.append(f"Module {module} available but not loaded")
        else:
            missing.append(module)
            details.append(f"Module {module} not available")
    if missing:
        return _result("kernel_modules", CheckStatus.WARN, f"{len(missing)} required modules missing", details)
    return _result("kernel_modules", CheckStatus.PASS, "All required kernel modules available", details)


def check_conflicts(facts: HostFacts) -> CheckResult:
    conflicts: List[str] = []
    if facts.virtualbox_installed:
        conflicts.append("VirtualBox detected - may conflict with KVM")
    if facts.vmware_active:
        conflicts.append("VMware services detected - may conflict with KVM")
    if facts.wsl:
        conflicts.append("Running on WSL - nested virtualization may not work")
    if conflicts:
        return _result("conflicts", CheckStatus.WARN, f"{len(conflicts)} potential conflicts detected", conflicts)
    return _result("conflicts", CheckStatus.PASS, "No conflicting software detected")


def check_permissions(facts: HostFacts) -> CheckResult:
    issues: List[str] = []
    if not facts.sudo_installed:
        issues.append("Sudo access required for installation")
    if not facts.home_writable:
        issues.append("Home directory not writable")
    if issues:
        return _result("permissions", CheckStatus.WARN, f"{len(issues)} permission issues detected", issues)
    note = "no password required" if facts.sudo_passwordless else "password may be requested"
    return _result("permissions", CheckStatus.PASS, f"User permissions adequate (sudo: {note})")


Check = Callable[[HostFacts], CheckResult]

CHECKS: Sequence[Check] = (
    check_architecture,
    check_memory,
    check_disk,
    check_virtualization,
    check_network,
    check_kernel,
    check_kernel_modules,
    check_conflicts,
    check_permissions,
)


@dataclass(frozen=True)
class ValidationReport:
    results: List[CheckResult]

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.status is CheckStatus.FAIL)

    @property
    def warnings(self) -> int:
        return sum(1 for r in self.results if r.status is CheckStatus.WARN)

    def verdict(self, force: bool = False) -> Verdict:
        if self.errors:
            return Verdict.FORCED if force else Verdict.BLOCKED
        if self.warnings:
            return Verdict.DEGRADED
        return Verdict.PASSED


def _log_result(r: CheckResult) -> None:
    if r.status is CheckStatus.PASS:
        log_success(logger, r.message)
    elif r.status is CheckStatus.WARN:
        logger.warning(r.message)
    else:
        logger.error(r.message)
    for line in r.details:
        logger.debug("  %s", line)


def run_validation(facts: HostFacts, checks: Sequence[Check] = CHECKS) -> ValidationReport:
    report = ValidationReport(results=[check(facts) for check in checks])
    for r in report.results:
        _log_result(r)
    return report


def log_verdict(report: ValidationReport, verdict: Verdict) -> None:
    if verdict is Verdict.BLOCKED:
        logger.error("System validation failed with %d critical errors", report.errors)
        logger.info("Use --force to override these checks (not recommended)")
    elif verdict is Verdict.FORCED:
        logger.error("System validation failed with %d critical errors", report.errors)
        logger.warning("Forcing installation despite errors (may cause issues)")
    elif verdict is Verdict.DEGRADED:
        logger.warning("System validation completed with %d warnings", report.warnings)
        logger.info("Installation can proceed but some features may not work optimally")
    else:
        log_success(logger, "All system validation checks passed!")


def render_system_report(
    facts: HostFacts,
    profile: Optional["HostProfile"] = None,
    *,
    now: Optional[datetime] = None,
    environ: Optional[dict] = None,
) -> str:
    env = os.environ if environ is None else environ
    ts = (now or datetime.now()).strftime("%a %b %d %H:%M:%S %Y")
    os_line = f"{profile.os_name} {profile.os_version}" if profile else "unknown"
    lines = [
        "AutoWinApps System Report",
        f"Generated: {ts}",
        "=========================",
        "",
        "System Information:",
        f"- OS: {os_line}",
        f"- Kernel: {facts.kernel_release}",
        f"- Architecture: {facts.machine}",
        f"- Desktop: {env.get('XDG_CURRENT_DESKTOP') or 'Unknown'}",
        "",
        "Hardware:",
        f"- CPU: {facts.cpu_model}",
        f"- Cores: {facts.cpu_cores}",
        f"- Memory: {facts.mem_total_gb}GB",
        f"- Virtualization: {facts.virtualization or 'Not detected'}",
        "",
        "Storage:",
        f"- Root filesystem: {facts.root_free_gb}GB available",
        f"- Home directory: {facts.home_free_gb}GB available",
        f"- Filesystem type: {profile.root_filesystem_type if profile else 'unknown'}",
        "",
        "Network:",
        f"- Internet: {'reachable' if facts.internet else 'unreachable'}",
    ]
    lines += [f"- {svc}: {'reachable' if ok else 'unreachable'}" for svc, ok in facts.reachable.items()]
    lines += [
        "",
        "User Information:",
        f"- Username: {env.get('USER') or getpass.getuser()}",
        f"- Shell: {env.get('SHELL', 'unknown')}",
    ]
    return "\n".join(lines) + "\n"


def write_system_report(
    facts: HostFacts,
    path: Path,
    profile: Optional["HostProfile"] = None,
) -> Path:
    write_file(path, render_system_report(facts, profile), dry_run=False)
    log_success(logger, "System report saved to: %s", str(path))
    return path
