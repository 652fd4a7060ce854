from __future__ import annotations

import logging

from ..context import InstallContext
from ..errors import CommandError
from ..osmodules import OsModule

logger = logging.getLogger(__name__)


class ApplyOptimizationsStep:
    step_id = "apply_optimizations"
    title = "Applying distribution optimizations"

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        try:
            os_module.apply_optimizations()
        except (CommandError, OSError) as e:
            # Tuning is optional.
            logger.warning("Optimizations not applied: %s", e)
