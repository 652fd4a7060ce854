from __future__ import annotations

from ..artifacts import setup_winapps
from ..context import InstallContext
from ..osmodules import OsModule


class SetupWinAppsStep:
    step_id = "setup_winapps"
    title = "Installing WinApps"

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        setup_winapps(ctx)
