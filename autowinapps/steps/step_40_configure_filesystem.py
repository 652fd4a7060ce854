from __future__ import annotations

from ..containers import configure_filesystem_for_containers
from ..context import InstallContext
from ..osmodules import OsModule


class ConfigureFilesystemStep:
    step_id = "configure_filesystem"
    title = "Configuring filesystem for containers"

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        configure_filesystem_for_containers(ctx)
