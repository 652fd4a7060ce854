from __future__ import annotations

import logging
import os
import platform
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Sequence, Tuple

from .command import command_exists, run_cmd
from .net import is_online, tcp_reachable

logger = logging.getLogger(__name__)

REQUIRED_MODULES: Tuple[str, ...] = ("kvm", "tun", "bridge")

PROBE_SERVICES: Tuple[Tuple[str, int], ...] = (
    ("github.com", 443),
    ("raw.githubusercontent.com", 443),
    ("registry.hub.docker.com", 443),
)

KB_PER_GB = 1024 * 1024


def normalize_arch(machine: str) -> str:
    m = machine.lower()
    return {
        "x86_64": "amd64",
        "amd64": "amd64",
        "aarch64": "arm64",
        "arm64": "arm64",
        "armv7l": "armhf",
        "armv6l": "armhf",
    }.get(m, m)


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip()
        return txt or None
    except OSError:
        return None


def read_meminfo(path: str | Path = "/proc/meminfo") -> Dict[str, int]:
    """MemTotal/MemAvailable/... in kB (best-effort)."""

    out: Dict[str, int] = {}
    for line in (_read_text(Path(path)) or "").splitlines():
        key, _, rest = line.partition(":")
        parts = rest.split()
        if parts and parts[0].isdigit():
            out[key.strip()] = int(parts[0])
    return out


def read_cpuinfo(path: str | Path = "/proc/cpuinfo") -> Tuple[FrozenSet[str], str]:
    """Return (cpu flags, model name)."""

    flags: set[str] = set()
    model = "unknown"
    for line in (_read_text(Path(path)) or "").splitlines():
        key, _, value = line.partition(":")
        key = key.strip()
        if key == "flags" and not flags:
            flags = set(value.split())
        elif key == "model name" and model == "unknown":
            model = value.strip()
    return frozenset(flags), model


def loaded_modules(path: str | Path = "/proc/modules") -> FrozenSet[str]:
    names = [ln.split()[0] for ln in (_read_text(Path(path)) or "").splitlines() if ln.strip()]
    return frozenset(names)


def module_available(name: str) -> bool:
    return run_cmd(["modinfo", name], check=False).ok


def free_bytes(path: str | Path) -> int:
    try:
        return shutil.disk_usage(str(path)).free
    except OSError:
        return 0


def parse_kernel_version(release: str) -> Tuple[int, int]:
    m = re.match(r"(\d+)\.(\d+)", release or "")
    if not m:
        return (0, 0)
    return int(m.group(1)), int(m.group(2))


def sudo_status() -> Tuple[bool, bool]:
    """Return (sudo installed, passwordless sudo available)."""

    if not command_exists("sudo"):
        return False, False
    return True, run_cmd(["sudo", "-n", "true"], check=False).ok


@dataclass(frozen=True)
class HostFacts:
    """Read-only snapshot of everything the validator looks at."""

    machine: str
    kernel_release: str
    cpu_model: str = "unknown"
    cpu_cores: int = 1
    cpu_flags: FrozenSet[str] = frozenset()
    mem_total_kb: int = 0
    mem_available_kb: int = 0
    home_free_bytes: int = 0
    root_free_bytes: int = 0
    kvm_present: bool = False
    kvm_accessible: bool = False
    modules_loaded: FrozenSet[str] = frozenset()
    modules_available: FrozenSet[str] = frozenset()
    internet: bool = False
    reachable: Dict[str, bool] = field(default_factory=dict)
    virtualbox_installed: bool = False
    vmware_active: bool = False
    wsl: bool = False
    sudo_installed: bool = False
    sudo_passwordless: bool = False
    home_writable: bool = True

    @property
    def mem_total_gb(self) -> int:
        return self.mem_total_kb // KB_PER_GB

    @property
    def home_free_gb(self) -> int:
        return self.home_free_bytes // (1024 ** 3)

    @property
    def root_free_gb(self) -> int:
        return self.root_free_bytes // (1024 ** 3)

    @property
    def virtualization(self) -> Optional[str]:
        if "vmx" in self.cpu_flags:
            return "Intel VT-x"
        if "svm" in self.cpu_flags:
            return "AMD-V"
        return None


def gather_host_facts(
    home: str | Path,
    *,
    probe_services: Sequence[Tuple[str, int]] = PROBE_SERVICES,
) -> HostFacts:
    """Collect host signals (best-effort). Never mutates the system."""

    flags, model = read_cpuinfo()
    mem = read_meminfo()
    loaded = loaded_modules()
    available = frozenset(m for m in REQUIRED_MODULES if m in loaded or module_available(m))

    kvm = Path("/dev/kvm")
    version = (_read_text(Path("/proc/version")) or "").lower()

    reachable = {f"{h}:{p}": tcp_reachable(h, p) for h, p in probe_services}
    sudo_installed, sudo_passwordless = sudo_status()

    facts = HostFacts(
        machine=platform.machine(),
        kernel_release=platform.release(),
        cpu_model=model,
        cpu_cores=os.cpu_count() or 1,
        cpu_flags=flags,
        mem_total_kb=mem.get("MemTotal", 0),
        mem_available_kb=mem.get("MemAvailable", 0),
        home_free_bytes=free_bytes(home),
        root_free_bytes=free_bytes("/"),
        kvm_present=kvm.exists(),
        kvm_accessible=os.access(kvm, os.R_OK | os.W_OK),
        modules_loaded=loaded,
        modules_available=available,
        internet=is_online(),
        reachable=reachable,
        virtualbox_installed=command_exists("vboxmanage"),
        vmware_active=run_cmd(["systemctl", "is-active", "--quiet", "vmware"], check=False).ok,
        wsl="microsoft" in version,
        sudo_installed=sudo_installed,
        sudo_passwordless=sudo_passwordless,
        home_writable=os.access(str(home), os.W_OK),
    )
    logger.debug(
        "Host facts: arch=%s kernel=%s mem=%sGB home_free=%sGB virt=%s",
        facts.machine,
        facts.kernel_release,
        facts.mem_total_gb,
        facts.home_free_gb,
        facts.virtualization,
    )
    return facts
