from __future__ import annotations

import logging

from ..context import InstallContext
from ..errors import InstallerError
from ..lib.pkg import InstallOutcome
from ..osmodules import OsModule

logger = logging.getLogger(__name__)


class InstallDependenciesStep:
    step_id = "install_dependencies"
    title = "Installing dependencies"

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        outcome = os_module.install_dependencies(ctx.backend)
        report = os_module.last_report

        if outcome is InstallOutcome.ERROR:
            raise InstallerError("No packages could be installed")
        if outcome is InstallOutcome.PARTIAL and report is not None:
            # Leftover failures are reported, never rolled back.
            logger.warning(
                "Continuing without: %s (installed %d of %d)",
                " ".join(report.failed),
                len(report.installed) + len(report.substituted),
                len(report.requested),
            )
        for original, used in (report.substituted if report else {}).items():
            logger.info("%s replaced by %s", original, used)
