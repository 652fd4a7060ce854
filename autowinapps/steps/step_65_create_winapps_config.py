from __future__ import annotations

from ..artifacts import create_winapps_config
from ..context import InstallContext
from ..osmodules import OsModule


class CreateWinAppsConfigStep:
    step_id = "create_winapps_config"
    title = "Writing WinApps configuration"

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        create_winapps_config(ctx)
