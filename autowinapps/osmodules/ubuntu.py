from __future__ import annotations

import logging
from typing import Optional

from ..lib.osdetect import OsId
from ..logging_utils import log_success
from .apt import AptOsModule

logger = logging.getLogger(__name__)


class UbuntuModule(AptOsModule):
    os_id = OsId.UBUNTU

    def check_version(self) -> None:
        major = self.version_major
        version = self.ctx.profile.os_version
        if major < 20:
            logger.warning("Ubuntu version %s is quite old. Consider upgrading.", version)
        elif major >= 24:
            log_success(logger, "Modern Ubuntu version detected")
        else:
            logger.info("Ubuntu version %s is supported", version)

    def enable_repositories(self) -> None:
        logger.info("Checking repository configuration...")
        self.add_apt_component("universe")

        if self.version_major >= 24:
            logger.debug("Ubuntu 24.04+ detected - FreeRDP3 should be available")
        elif not self.manager.has_package("freerdp3-x11") and self.codename:
            logger.warning("FreeRDP3 not available. Will use FreeRDP2 or enable backports.")
            self.write_backports_list(
                "ubuntu-backports.list",
                f"deb http://archive.ubuntu.com/ubuntu {self.codename}-backports main universe\n",
            )
        log_success(logger, "Repository configuration verified")

    def kubic_slug(self) -> Optional[str]:
        # Newer releases ship podman in universe.
        if self.version_major < 22:
            return f"xUbuntu_{self.ctx.profile.os_version}"
        return None

    def apply_optimizations(self) -> None:
        super().apply_optimizations()
        self.configure_apparmor()
        self.configure_systemd_user()
