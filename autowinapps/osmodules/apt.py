from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from ..lib.command import command_exists, run_cmd, sudo
from ..lib.files import write_file
from ..lib.manifests import read_asset
from ..lib.pkg import Apt, Installer, PackageManager
from .base import OsModule

logger = logging.getLogger(__name__)

KUBIC_BASE = "https://download.opensuse.org/repositories/devel:kubic:libcontainers:stable"
KUBIC_KEYRING = "/etc/apt/keyrings/devel_kubic_libcontainers_stable.gpg"
KUBIC_LIST = "/etc/apt/sources.list.d/devel:kubic:libcontainers:stable.list"


class AptOsModule(OsModule):
    """Shared behaviour for the Debian family (Ubuntu, Debian, Mint)."""

    def make_manager(self) -> PackageManager:
        return Apt(dry_run=self.ctx.dry_run)

    # -- repositories --------------------------------------------------------

    def sources_files(self) -> List[Path]:
        main = self.ctx.paths.system("/etc/apt/sources.list")
        extra_dir = self.ctx.paths.system("/etc/apt/sources.list.d")
        files = [main] if main.exists() else []
        if extra_dir.is_dir():
            files += sorted(p for p in extra_dir.iterdir() if p.is_file())
        return files

    def sources_match(self, pattern: str) -> bool:
        rx = re.compile(pattern, re.MULTILINE)
        for p in self.sources_files():
            try:
                if rx.search(p.read_text(encoding="utf-8", errors="ignore")):
                    return True
            except OSError:
                continue
        return False

    def add_apt_component(self, component: str) -> None:
        if self.sources_match(rf"^(deb|Components:).*\b{re.escape(component)}\b"):
            logger.debug("%s repository already enabled", component)
            return
        logger.info("Enabling %s repository...", component)
        run_cmd(sudo(["add-apt-repository", component, "-y"]), check=False, dry_run=self.ctx.dry_run)

    def write_backports_list(self, name: str, line: str) -> None:
        write_file(self.ctx.paths.system(f"/etc/apt/sources.list.d/{name}"), line, dry_run=self.ctx.dry_run, privileged=True)
        logger.info("Enabled backports repository")

    @property
    def codename(self) -> str:
        return self.ctx.profile.os_codename

    # -- fallback installers -------------------------------------------------

    def installers(self) -> Dict[str, Installer]:
        out = super().installers()
        out.update(
            {
                "backports": self.install_from_backports,
                "kubic": self.install_from_kubic,
                "pip": self.install_with_pip,
            }
        )
        return out

    def install_from_backports(self, package: str) -> bool:
        if not self.codename:
            logger.warning("Release codename unknown; cannot use backports for %s", package)
            return False
        return self.manager.install([f"{package}/{self.codename}-backports"])

    def kubic_slug(self) -> Optional[str]:
        """Repository path segment for the Kubic libcontainers repo, or None."""
        return None

    def install_from_kubic(self, package: str) -> bool:
        slug = self.kubic_slug()
        if slug is None:
            logger.warning("No Kubic repository available for %s %s", self.display_name, self.ctx.profile.os_version)
            return False

        dry_run = self.ctx.dry_run
        logger.info("Adding Kubic libcontainers repository (%s)...", slug)
        key = run_cmd(["curl", "-fsSL", f"{KUBIC_BASE}/{slug}/Release.key"], check=False, dry_run=dry_run)
        if not key.ok:
            logger.warning("Could not download the Kubic repository key")
            return False
        run_cmd(sudo(["mkdir", "-p", str(Path(KUBIC_KEYRING).parent)]), check=False, dry_run=dry_run)
        if not run_cmd(
            sudo(["gpg", "--dearmor", "--yes", "-o", KUBIC_KEYRING]),
            check=False,
            input_text=key.stdout,
            dry_run=dry_run,
        ).ok:
            logger.warning("Could not install the Kubic repository key")
            return False

        arch = self.ctx.profile.architecture
        write_file(
            self.ctx.paths.system(KUBIC_LIST),
            f"deb [arch={arch} signed-by={KUBIC_KEYRING}] {KUBIC_BASE}/{slug}/ /\n",
            dry_run=dry_run,
            privileged=True,
        )
        self.manager.update()
        return self.manager.install([package])

    def install_with_pip(self, package: str) -> bool:
        if not command_exists("pip3") and not self.ctx.dry_run:
            logger.warning("pip3 not available; cannot install %s", package)
            return False
        return run_cmd(["pip3", "install", "--user", package], check=False, dry_run=self.ctx.dry_run).ok

    # -- tuning --------------------------------------------------------------

    def configure_apparmor(self) -> None:
        if not self.ctx.dry_run and not run_cmd(["systemctl", "is-active", "--quiet", "apparmor"], check=False).ok:
            logger.debug("AppArmor not active")
            return
        apparmor_dir = self.ctx.paths.system("/etc/apparmor.d")
        profile = apparmor_dir / "containers"
        if not apparmor_dir.is_dir() or profile.exists():
            return
        logger.info("Configuring AppArmor for container support...")
        write_file(profile, read_asset("apparmor-containers"), dry_run=self.ctx.dry_run, privileged=True)
        run_cmd(sudo(["apparmor_parser", "-r", str(profile)]), check=False, dry_run=self.ctx.dry_run)

    def configure_systemd_user(self) -> None:
        user_dir = self.ctx.paths.systemd_user_dir
        if self.ctx.dry_run:
            logger.info("DRY RUN: would create %s", str(user_dir))
        else:
            user_dir.mkdir(parents=True, exist_ok=True)
        run_cmd(["systemctl", "--user", "daemon-reload"], check=False, dry_run=self.ctx.dry_run)
