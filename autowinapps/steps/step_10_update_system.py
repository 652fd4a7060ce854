from __future__ import annotations

from ..context import InstallContext
from ..osmodules import OsModule


class UpdateSystemStep:
    step_id = "update_system"
    title = "Updating system packages"

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        os_module.update_system()
