from __future__ import annotations

from typing import Dict, Type

from ..context import InstallContext
from ..errors import InstallerError
from ..lib.osdetect import OsId
from .base import OsModule
from .cachyos import CachyOSModule
from .debian import DebianModule
from .linuxmint import LinuxMintModule
from .ubuntu import UbuntuModule

OS_MODULES: Dict[OsId, Type[OsModule]] = {
    OsId.CACHYOS: CachyOSModule,
    OsId.UBUNTU: UbuntuModule,
    OsId.DEBIAN: DebianModule,
    OsId.LINUXMINT: LinuxMintModule,
}


def load_os_module(os_id: OsId, ctx: InstallContext) -> OsModule:
    """Instantiate the one module registered for ``os_id``."""

    cls = OS_MODULES.get(os_id)
    if cls is None:
        raise InstallerError(f"OS module not found for {os_id.value}")
    return cls(ctx)


__all__ = [
    "OS_MODULES",
    "OsModule",
    "CachyOSModule",
    "DebianModule",
    "LinuxMintModule",
    "UbuntuModule",
    "load_os_module",
]
