from __future__ import annotations

import logging
from typing import Dict, Optional

from ..lib.files import write_file
from ..lib.osdetect import OsId, parse_os_release
from ..errors import UnsupportedOSError
from ..logging_utils import log_success
from .apt import AptOsModule

logger = logging.getLogger(__name__)

MINT_INTEGRATION = """\
# Linux Mint integration settings
ENABLE_MINT_MENU_INTEGRATION=true
ENABLE_PANEL_INTEGRATION=true
OPTIMIZE_FOR_VM_WORKLOAD=true
"""

APT_UPDATES_OVERRIDE = """\
// WinApps update configuration
// Prevent automatic updates during VM operations
APT::Periodic::Update-Package-Lists "0";
APT::Periodic::Unattended-Upgrade "0";
"""


class LinuxMintModule(AptOsModule):
    os_id = OsId.LINUXMINT

    def _read_kv(self, rel: str) -> Dict[str, str]:
        try:
            return parse_os_release(self.ctx.paths.system(rel))
        except UnsupportedOSError:
            return {}

    def edition(self) -> Optional[str]:
        return self._read_kv("/etc/linuxmint/info").get("EDITION") or None

    def upstream_ubuntu_version(self) -> Optional[str]:
        return self._read_kv("/etc/upstream-release/lsb-release").get("DISTRIB_RELEASE") or None

    def check_version(self) -> None:
        major = self.version_major
        version = self.ctx.profile.os_version
        if major in (22, 23):
            log_success(logger, "Modern Linux Mint version detected")
        elif major == 21:
            logger.info("Linux Mint version %s is supported", version)
        elif major == 20:
            logger.warning("Linux Mint version %s is quite old. Consider upgrading.", version)
        else:
            logger.warning("Linux Mint version not specifically tested")

        edition = self.edition()
        if edition:
            logger.info("Linux Mint edition: %s", edition)

    def enable_repositories(self) -> None:
        logger.info("Checking repository configuration...")
        self.add_apt_component("universe")
        self.add_apt_component("multiverse")
        log_success(logger, "Repository configuration verified")

    def kubic_slug(self) -> Optional[str]:
        if self.version_major >= 22:
            return None
        ubuntu = self.upstream_ubuntu_version()
        if ubuntu is None:
            logger.error("Could not determine Ubuntu base version for repository setup")
            return None
        return f"xUbuntu_{ubuntu}"

    def apply_optimizations(self) -> None:
        super().apply_optimizations()
        paths = self.ctx.paths
        if paths.system("/etc/apt/apt.conf.d/20auto-upgrades").exists():
            logger.info("Configuring Linux Mint update settings...")
            write_file(
                paths.system("/etc/apt/apt.conf.d/99-winapps-updates"),
                APT_UPDATES_OVERRIDE,
                dry_run=self.ctx.dry_run,
                privileged=True,
            )
        write_file(paths.winapps_config_dir / "linuxmint-integration.conf", MINT_INTEGRATION, dry_run=self.ctx.dry_run)
        logger.debug("Linux Mint desktop integration configured")
