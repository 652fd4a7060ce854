from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from ..logging_utils import log_success
from .command import run_cmd, sudo

logger = logging.getLogger(__name__)

Installer = Callable[[str], bool]


class InstallOutcome(str, Enum):
    OK = "ok"
    PARTIAL = "partial"
    ERROR = "error"


@dataclass(frozen=True)
class InstallStrategy:
    """Install ``package`` from ``source`` (repo, backports, kubic, pip, aur...)."""

    package: str
    source: str = "repo"

    def __str__(self) -> str:
        return self.package if self.source == "repo" else f"{self.package} ({self.source})"


@dataclass
class InstallReport:
    requested: List[str] = field(default_factory=list)
    installed: List[str] = field(default_factory=list)
    substituted: Dict[str, InstallStrategy] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)

    @property
    def outcome(self) -> InstallOutcome:
        if not self.failed:
            return InstallOutcome.OK
        if self.requested and not self.installed and not self.substituted:
            return InstallOutcome.ERROR
        return InstallOutcome.PARTIAL


class PackageManager(Protocol):
    name: str
    binary: str

    def update(self) -> bool:
        ...

    def upgrade(self) -> bool:
        ...

    def install(self, packages: Sequence[str]) -> bool:
        ...

    def remove(self, packages: Sequence[str]) -> bool:
        ...

    def autoremove(self) -> bool:
        ...

    def has_package(self, package: str) -> bool:
        ...


class Apt:
    name = "apt"
    binary = "apt"

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def _apt_get(self, *args: str) -> List[str]:
        return sudo(["env", "DEBIAN_FRONTEND=noninteractive", "apt-get", *args])

    def update(self) -> bool:
        return run_cmd(self._apt_get("update"), check=False, dry_run=self.dry_run).ok

    def upgrade(self) -> bool:
        return run_cmd(self._apt_get("upgrade", "-y"), check=False, dry_run=self.dry_run).ok

    def install(self, packages: Sequence[str]) -> bool:
        if not packages:
            return True
        return run_cmd(self._apt_get("install", "-y", *packages), check=False, dry_run=self.dry_run).ok

    def remove(self, packages: Sequence[str]) -> bool:
        if not packages:
            return True
        return run_cmd(self._apt_get("remove", "--purge", "-y", *packages), check=False, dry_run=self.dry_run).ok

    def autoremove(self) -> bool:
        return run_cmd(self._apt_get("autoremove", "-y"), check=False, dry_run=self.dry_run).ok

    def has_package(self, package: str) -> bool:
        """Return True if apt knows about a package name.

        This is useful for optional packages that may only exist in some repos.
        """
        if self.dry_run:
            # Be permissive in dry-run so planning doesn't fail.
            return True
        return run_cmd(["apt-cache", "show", package], check=False).ok


class Pacman:
    name = "pacman"
    binary = "pacman"

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def update(self) -> bool:
        return run_cmd(sudo(["pacman", "-Sy", "--noconfirm"]), check=False, dry_run=self.dry_run).ok

    def upgrade(self) -> bool:
        return run_cmd(sudo(["pacman", "-Su", "--noconfirm"]), check=False, dry_run=self.dry_run).ok

    def install(self, packages: Sequence[str]) -> bool:
        if not packages:
            return True
        return run_cmd(
            sudo(["pacman", "-S", "--needed", "--noconfirm", *packages]), check=False, dry_run=self.dry_run
        ).ok

    def remove(self, packages: Sequence[str]) -> bool:
        if not packages:
            return True
        return run_cmd(sudo(["pacman", "-Rns", "--noconfirm", *packages]), check=False, dry_run=self.dry_run).ok

    def autoremove(self) -> bool:
        return True

    def has_package(self, package: str) -> bool:
        if self.dry_run:
            return True
        return run_cmd(["pacman", "-Si", package], check=False).ok


def parse_fallbacks(raw: Mapping[str, Any]) -> Dict[str, List[InstallStrategy]]:
    """Turn the manifest ``fallbacks`` mapping into strategy chains.

    Entries without a ``package`` key reuse the failed package's name at
    resolution time (see ``fallbacks_for``).
    """

    out: Dict[str, List[InstallStrategy]] = {}
    for pkg, chain in (raw or {}).items():
        if not isinstance(chain, list):
            raise ValueError(f"fallbacks.{pkg} must be a list")
        out[str(pkg)] = [
            InstallStrategy(package=str(item.get("package") or ""), source=str(item.get("source") or "repo"))
            for item in chain
        ]
    return out


def fallbacks_for(package: str, table: Mapping[str, Sequence[InstallStrategy]]) -> List[InstallStrategy]:
    chain = table.get(package)
    if chain is None:
        chain = table.get("*", [])
    return [s if s.package else InstallStrategy(package=package, source=s.source) for s in chain]


def install_with_fallbacks(
    strategies: Iterable[InstallStrategy],
    installers: Mapping[str, Installer],
) -> Optional[InstallStrategy]:
    """Try strategies in order; return the first that succeeds, else None."""

    for strategy in strategies:
        installer = installers.get(strategy.source)
        if installer is None:
            logger.warning("No installer for source %r (package %s)", strategy.source, strategy.package)
            continue
        logger.info("Trying %s", strategy)
        if installer(strategy.package):
            log_success(logger, "Installed %s", strategy)
            return strategy
    return None


def install_package_set(
    manager: PackageManager,
    packages: Sequence[str],
    *,
    fallbacks: Mapping[str, Sequence[InstallStrategy]],
    installers: Mapping[str, Installer],
) -> InstallReport:
    """Bulk install, then per-package retries, then fallback chains.

    Packages that still fail are reported, never rolled back.
    """

    report = InstallReport(requested=list(packages))
    if not packages:
        return report

    logger.info("Installing %d packages with %s...", len(packages), manager.name)
    if manager.install(packages):
        report.installed = list(packages)
        log_success(logger, "All packages installed successfully")
        return report

    logger.warning("Some packages failed to install, attempting individual installation...")
    failed: List[str] = []
    for package in packages:
        if manager.install([package]):
            logger.debug("Installed: %s", package)
            report.installed.append(package)
        else:
            logger.warning("Failed: %s", package)
            failed.append(package)

    for package in failed:
        chain = fallbacks_for(package, fallbacks)
        if not chain:
            logger.warning("No alternative available for: %s", package)
            report.failed.append(package)
            continue
        used = install_with_fallbacks(chain, installers)
        if used is None:
            logger.warning("All alternatives failed for: %s", package)
            report.failed.append(package)
        else:
            report.substituted[package] = used

    if report.failed:
        logger.warning("Failed packages: %s", " ".join(report.failed))
    return report
