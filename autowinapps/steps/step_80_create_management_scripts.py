from __future__ import annotations

from ..artifacts import create_management_scripts
from ..context import InstallContext
from ..osmodules import OsModule


class CreateManagementScriptsStep:
    step_id = "create_management_scripts"
    title = "Writing management scripts"

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        create_management_scripts(ctx)
