from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from ..errors import StepNotFoundError
from .step_10_update_system import UpdateSystemStep
from .step_20_install_dependencies import InstallDependenciesStep
from .step_30_configure_services import ConfigureServicesStep
from .step_40_configure_filesystem import ConfigureFilesystemStep
from .step_50_apply_optimizations import ApplyOptimizationsStep
from .step_60_create_dockur_config import CreateDockurConfigStep
from .step_65_create_winapps_config import CreateWinAppsConfigStep
from .step_70_setup_winapps import SetupWinAppsStep
from .step_80_create_management_scripts import CreateManagementScriptsStep
from .step_90_configure_desktop_integration import ConfigureDesktopIntegrationStep

_STEP_CLASSES = (
    UpdateSystemStep,
    InstallDependenciesStep,
    ConfigureServicesStep,
    ConfigureFilesystemStep,
    ApplyOptimizationsStep,
    CreateDockurConfigStep,
    CreateWinAppsConfigStep,
    SetupWinAppsStep,
    CreateManagementScriptsStep,
    ConfigureDesktopIntegrationStep,
)

STEP_REGISTRY: Dict[str, type] = {cls.step_id: cls for cls in _STEP_CLASSES}

INSTALL_SEQUENCE: Tuple[str, ...] = tuple(cls.step_id for cls in _STEP_CLASSES)


def resolve_steps(names: Iterable[str] = INSTALL_SEQUENCE) -> List[object]:
    """Instantiate steps by name. Unknown names fail before anything runs."""

    steps = []
    for name in names:
        cls = STEP_REGISTRY.get(name)
        if cls is None:
            raise StepNotFoundError(f"Step not registered: {name}")
        steps.append(cls())
    return steps


__all__ = [
    "INSTALL_SEQUENCE",
    "STEP_REGISTRY",
    "resolve_steps",
    "UpdateSystemStep",
    "InstallDependenciesStep",
    "ConfigureServicesStep",
    "ConfigureFilesystemStep",
    "ApplyOptimizationsStep",
    "CreateDockurConfigStep",
    "CreateWinAppsConfigStep",
    "SetupWinAppsStep",
    "CreateManagementScriptsStep",
    "ConfigureDesktopIntegrationStep",
]
