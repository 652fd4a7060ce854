from __future__ import annotations

from ..artifacts import create_dockur_config
from ..context import InstallContext
from ..osmodules import OsModule


class CreateDockurConfigStep:
    step_id = "create_dockur_config"
    title = "Writing dockur configuration"

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        create_dockur_config(ctx)
