from __future__ import annotations

from ..context import InstallContext
from ..desktop import configure_desktop_integration
from ..osmodules import OsModule


class ConfigureDesktopIntegrationStep:
    step_id = "configure_desktop_integration"
    title = "Configuring desktop integration"

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        configure_desktop_integration(ctx)
