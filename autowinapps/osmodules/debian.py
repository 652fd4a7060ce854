from __future__ import annotations

import logging
from typing import Optional

from ..lib.command import run_cmd, sudo
from ..lib.osdetect import OsId
from ..logging_utils import log_success
from .apt import AptOsModule

logger = logging.getLogger(__name__)


class DebianModule(AptOsModule):
    os_id = OsId.DEBIAN

    def check_version(self) -> None:
        major = self.version_major
        version = self.ctx.profile.os_version
        if major < 11:
            logger.warning("Debian version %s is quite old. Consider upgrading.", version)
        elif major >= 12:
            log_success(logger, "Modern Debian version detected")
        else:
            logger.info("Debian version %s is supported", version)

    def _append_component(self, after: str, component: str) -> bool:
        if self.sources_match(rf"\b{component}\b"):
            logger.debug("%s repository already enabled", component)
            return False
        logger.info("Enabling %s repository...", component)
        sources = str(self.ctx.paths.system("/etc/apt/sources.list"))
        run_cmd(
            sudo(["sed", "-i", f"s/{after}$/{after} {component}/", sources]),
            check=False,
            dry_run=self.ctx.dry_run,
        )
        return True

    def enable_repositories(self) -> None:
        logger.info("Checking repository configuration...")
        changed = self._append_component("main", "contrib")
        if self.version_major >= 12:
            changed = self._append_component("contrib", "non-free-firmware") or changed
        else:
            changed = self._append_component("contrib", "non-free") or changed

        if self.codename and not self.sources_match(rf"{self.codename}-backports"):
            logger.info("Enabling backports repository...")
            self.write_backports_list(
                "debian-backports.list",
                f"deb http://deb.debian.org/debian {self.codename}-backports main contrib non-free\n",
            )
            changed = True

        if changed:
            logger.info("Updating package lists after repository changes...")
            self.manager.update()
        log_success(logger, "Repository configuration verified")

    def kubic_slug(self) -> Optional[str]:
        return f"Debian_{self.version_major}"

    def apply_optimizations(self) -> None:
        super().apply_optimizations()
        self.configure_apparmor()
