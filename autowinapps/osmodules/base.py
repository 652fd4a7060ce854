from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..context import Backend, InstallContext
from ..errors import InstallerError
from ..lib.command import command_exists, run_cmd, sudo
from ..lib.files import write_file
from ..lib.manifests import load_os_manifest
from ..lib.osdetect import OsId, version_major
from ..lib.pkg import (
    InstallOutcome,
    InstallReport,
    Installer,
    PackageManager,
    install_package_set,
    parse_fallbacks,
)
from ..logging_utils import log_success

logger = logging.getLogger(__name__)


def render_sysctl(header: str, settings: Mapping[str, Any]) -> str:
    lines = [f"# {header}", "# Generated by AutoWinApps installer", ""]
    lines += [f"{key} = {value}" for key, value in settings.items()]
    return "\n".join(lines) + "\n"


class OsModule:
    """Distribution-specific half of the installer.

    Subclasses provide the package manager and whatever repository or
    tuning work their distribution needs. Package sets, fallback chains and
    sysctl tunables come from ``manifests/os/<id>.yaml``.
    """

    os_id: OsId

    def __init__(self, ctx: InstallContext, manifest: Optional[Dict[str, Any]] = None) -> None:
        self.ctx = ctx
        self.manifest = manifest if manifest is not None else load_os_manifest(self.os_id.value)
        self.manager: PackageManager = self.make_manager()
        self.fallbacks = parse_fallbacks(self.manifest.get("fallbacks") or {})
        self.last_report: Optional[InstallReport] = None

    # -- hooks -------------------------------------------------------------

    def make_manager(self) -> PackageManager:
        raise NotImplementedError

    def check_version(self) -> None:
        """Log how well the detected release is supported. Never fails."""

    def enable_repositories(self) -> None:
        pass

    def installers(self) -> Dict[str, Installer]:
        return {"repo": lambda package: self.manager.install([package])}

    # -- common operations ---------------------------------------------------

    @property
    def display_name(self) -> str:
        return str(self.manifest.get("display_name") or self.os_id.value)

    @property
    def version_major(self) -> int:
        return version_major(self.ctx.profile.os_version)

    def check_requirements(self) -> bool:
        logger.debug("Checking %s-specific requirements...", self.display_name)
        if not command_exists(self.manager.binary):
            logger.error("%s package manager not found", self.manager.binary)
            return False
        self.check_version()
        log_success(logger, "%s environment verified", self.display_name)
        return True

    def update_system(self) -> None:
        if self.ctx.skip_updates:
            logger.info("Skipping system updates (--skip-updates specified)")
            return
        logger.info("Updating package lists...")
        if not self.manager.update():
            raise InstallerError("Failed to update package lists")
        logger.info("Upgrading installed packages...")
        if not self.manager.upgrade():
            raise InstallerError("Failed to upgrade installed packages")
        log_success(logger, "System packages updated")

    def rdp_client(self) -> str:
        candidates = [str(p) for p in (self.manifest.get("packages") or {}).get("rdp_client") or []]
        if not candidates:
            raise InstallerError(f"No RDP client package listed for {self.display_name}")
        for candidate in candidates[:-1]:
            if self.manager.has_package(candidate):
                logger.debug("Using %s", candidate)
                return candidate
            logger.warning("%s not available, trying next RDP client", candidate)
        return candidates[-1]

    def backend_packages(self, backend: Backend) -> List[str]:
        backends = (self.manifest.get("packages") or {}).get("backends") or {}
        return [str(p) for p in backends.get(backend.value) or []]

    def required_packages(self, backend: Backend) -> List[str]:
        base = [str(p) for p in (self.manifest.get("packages") or {}).get("base") or []]
        return base + [self.rdp_client()] + self.backend_packages(backend)

    def install_dependencies(self, backend: Backend) -> InstallOutcome:
        self.enable_repositories()
        report = install_package_set(
            self.manager,
            self.required_packages(backend),
            fallbacks=self.fallbacks,
            installers=self.installers(),
        )
        self.last_report = report
        return report.outcome

    # -- services ------------------------------------------------------------

    def _try(self, argv: List[str], warning: str) -> bool:
        ok = run_cmd(argv, check=False, dry_run=self.ctx.dry_run).ok
        if not ok:
            logger.warning(warning)
        return ok

    def configure_services(self, backend: Backend) -> None:
        logger.info("Configuring %s services...", backend.value)
        if backend is Backend.LIBVIRT:
            self.configure_libvirt()
        elif backend is Backend.DOCKER:
            self.configure_docker()
        else:
            self.configure_podman()

    def configure_libvirt(self) -> None:
        user = self.ctx.user
        self._try(sudo(["usermod", "-aG", "libvirt,kvm", user]), f"Could not add {user} to libvirt/kvm groups")
        self._try(sudo(["systemctl", "enable", "libvirtd.service"]), "Could not enable libvirtd.service")
        self._try(sudo(["systemctl", "start", "libvirtd.service"]), "Could not start libvirtd.service")

        if not self.ctx.dry_run:
            nets = run_cmd(["virsh", "net-list", "--all"], check=False)
            if any(ln.split()[:2] == ["default", "active"] for ln in nets.stdout.splitlines()):
                logger.debug("Default libvirt network already active")
                log_success(logger, "libvirt services configured")
                return

        logger.info("Starting default libvirt network...")
        run_cmd(["virsh", "net-autostart", "default"], check=False, dry_run=self.ctx.dry_run)
        run_cmd(["virsh", "net-start", "default"], check=False, dry_run=self.ctx.dry_run)
        log_success(logger, "libvirt services configured")

    def configure_docker(self) -> None:
        user = self.ctx.user
        self._try(sudo(["usermod", "-aG", "docker", user]), f"Could not add {user} to docker group")
        self._try(sudo(["systemctl", "enable", "docker.service"]), "Could not enable docker.service")
        self._try(sudo(["systemctl", "start", "docker.service"]), "Could not start docker.service")
        if self.ctx.dry_run:
            return
        if run_cmd(["docker", "--version"], check=False).ok:
            log_success(logger, "Docker configured and running")
        else:
            logger.warning("Docker may not be properly configured")

    def configure_podman(self) -> None:
        run_cmd(["systemctl", "--user", "enable", "podman.socket"], check=False, dry_run=self.ctx.dry_run)
        if self.ctx.dry_run:
            logger.info("DRY RUN: would create %s", str(self.ctx.paths.containers_config_dir))
        else:
            self.ctx.paths.containers_config_dir.mkdir(parents=True, exist_ok=True)
        log_success(logger, "Podman services configured")

    # -- tuning --------------------------------------------------------------

    def apply_optimizations(self) -> None:
        logger.info("Applying %s optimizations...", self.display_name)
        self.write_sysctl()

    def write_sysctl(self) -> None:
        cfg = self.manifest.get("sysctl") or {}
        if not cfg.get("file"):
            return
        path = self.ctx.paths.sysctl_dir / str(cfg["file"])
        if path.exists():
            logger.debug("%s already present", str(path))
            return
        write_file(
            path,
            render_sysctl(str(cfg.get("header") or self.display_name), cfg.get("settings") or {}),
            dry_run=self.ctx.dry_run,
            privileged=True,
        )
        run_cmd(sudo(["sysctl", "-p", str(path)]), check=False, dry_run=self.ctx.dry_run)
        logger.debug("Created sysctl configuration: %s", str(path))

    # -- uninstall -----------------------------------------------------------

    def removable_packages(self, backend: Backend) -> List[str]:
        pkgs = self.manifest.get("packages") or {}
        base = [str(p) for p in pkgs.get("base") or []]
        return base + [str(p) for p in pkgs.get("rdp_client") or []] + self.backend_packages(backend)

    def remove_packages(self, backend: Backend) -> bool:
        pkgs = self.manifest.get("packages") or {}
        rest = [str(p) for p in pkgs.get("base") or []] + self.backend_packages(backend)
        logger.info("Removing packages with %s...", self.manager.name)
        # Removing a package that is not installed can still succeed, so every candidate is tried.
        results = [self.manager.remove(rest + [str(rdp)]) for rdp in pkgs.get("rdp_client") or []]
        ok = any(results)
        self.manager.autoremove()
        if not ok:
            logger.warning("Some packages could not be removed (they may not have been installed by this installer)")
        return ok
