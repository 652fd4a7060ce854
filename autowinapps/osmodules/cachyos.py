from __future__ import annotations

import logging
import platform
import tempfile
from pathlib import Path
from typing import Dict, Optional

from ..lib.command import command_exists, run_cmd, sudo
from ..lib.hwdetect import read_cpuinfo
from ..lib.osdetect import OsId
from ..lib.pkg import Installer, PackageManager, Pacman
from ..logging_utils import log_success
from .base import OsModule

logger = logging.getLogger(__name__)

AUR_HELPERS = ("yay", "paru")


class CachyOSModule(OsModule):
    os_id = OsId.CACHYOS

    aur_helper: Optional[str] = None

    def make_manager(self) -> PackageManager:
        return Pacman(dry_run=self.ctx.dry_run)

    def ensure_aur_helper(self) -> Optional[str]:
        if self.aur_helper:
            return self.aur_helper
        for helper in AUR_HELPERS:
            if command_exists(helper):
                log_success(logger, "%s already installed", helper)
                self.aur_helper = helper
                return helper

        logger.info("Installing yay AUR helper...")
        if self.ctx.dry_run:
            run_cmd(["git", "clone", "https://aur.archlinux.org/yay.git"], dry_run=True)
            self.aur_helper = "yay"
            return self.aur_helper

        self.manager.install(["base-devel", "git"])
        with tempfile.TemporaryDirectory(prefix="autowinapps-yay-") as tmp:
            src = Path(tmp) / "yay"
            if not run_cmd(["git", "clone", "https://aur.archlinux.org/yay.git", str(src)], check=False).ok:
                logger.warning("Could not clone yay from the AUR")
                return None
            if not run_cmd(["makepkg", "-si", "--noconfirm"], check=False, cwd=str(src)).ok:
                logger.warning("Could not build yay")
                return None
        self.aur_helper = "yay"
        log_success(logger, "yay installed successfully")
        return self.aur_helper

    def enable_repositories(self) -> None:
        self.ensure_aur_helper()

    def installers(self) -> Dict[str, Installer]:
        out = super().installers()
        out["aur"] = self.install_from_aur
        return out

    def install_from_aur(self, package: str) -> bool:
        helper = self.ensure_aur_helper()
        if helper is None:
            return False
        return run_cmd([helper, "-S", "--needed", "--noconfirm", package], check=False, dry_run=self.ctx.dry_run).ok

    def configure_libvirt(self) -> None:
        dry_run = self.ctx.dry_run
        run_cmd(sudo(["modprobe", "kvm"]), check=False, dry_run=dry_run)
        flags, _ = read_cpuinfo()
        if "vmx" in flags:
            run_cmd(sudo(["modprobe", "kvm-intel"]), check=False, dry_run=dry_run)
        elif "svm" in flags:
            run_cmd(sudo(["modprobe", "kvm-amd"]), check=False, dry_run=dry_run)
        super().configure_libvirt()

    def apply_optimizations(self) -> None:
        if "cachyos" not in platform.release():
            logger.info("Not running a CachyOS kernel; skipping kernel tuning")
            return
        log_success(logger, "CachyOS kernel detected")
        super().apply_optimizations()
