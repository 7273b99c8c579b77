from .stage_10_host_tools import HostToolsStage
from .stage_20_kernel import BuildKernelStage
from .stage_30_bare_rootfs import BareRootfsStage
from .stage_40_debian_rootfs import DebianRootfsStage
from .stage_50_fedora_rootfs import FedoraRootfsStage
from .stage_60_theme import ThemeStage
from .stage_70_wine import WineStage
from .stage_80_factory_reset import FactoryResetStage
from .stage_90_iso import BuildIsoStage

__all__ = [
    "HostToolsStage",
    "BuildKernelStage",
    "BareRootfsStage",
    "DebianRootfsStage",
    "FedoraRootfsStage",
    "ThemeStage",
    "WineStage",
    "FactoryResetStage",
    "BuildIsoStage",
]
