from __future__ import annotations

from ..context import InstallContext
from ..osmodules import OsModule


class ConfigureServicesStep:
    step_id = "configure_services"
    title = "Configuring services"

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        os_module.configure_services(ctx.backend)
