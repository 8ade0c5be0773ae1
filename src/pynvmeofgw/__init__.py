"""pynvmeofgw - Async NVMe-oF gateway monitor: group-map reconciliation and heartbeats."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pynvmeofgw")
except PackageNotFoundError:
    __version__ = "0+local"
from pynvmeofgw.beacon import BeaconReporter, derive_availability
from pynvmeofgw.config import GatewayConfig
from pynvmeofgw.convergence import ConvergenceActuator, GroupAdmission
from pynvmeofgw.coordinator import GatewayCoordinator, ReconcileOutcome
from pynvmeofgw.exceptions import (
    GwAuthenticationError,
    GwConfigError,
    GwError,
    GwRejectedError,
    GwRetryExhaustedError,
    GwRpcError,
    GwShutdownError,
    GwTransportError,
)
from pynvmeofgw.models import (
    AnaGroupState,
    AnaInfo,
    AnaState,
    Beacon,
    GatewayAvailability,
    GatewayState,
    GroupKey,
    GroupMapUpdate,
    NqnAnaStates,
    SubsystemState,
)
from pynvmeofgw.state.cache import StateCache
from pynvmeofgw.state.diff import compute_ana_diff

__all__ = [
    "__version__",
    "AnaGroupState",
    "AnaInfo",
    "AnaState",
    "Beacon",
    "BeaconReporter",
    "ConvergenceActuator",
    "GatewayAvailability",
    "GatewayConfig",
    "GatewayCoordinator",
    "GatewayState",
    "GroupAdmission",
    "GroupKey",
    "GroupMapUpdate",
    "GwAuthenticationError",
    "GwConfigError",
    "GwError",
    "GwRejectedError",
    "GwRetryExhaustedError",
    "GwRpcError",
    "GwShutdownError",
    "GwTransportError",
    "NqnAnaStates",
    "ReconcileOutcome",
    "StateCache",
    "SubsystemState",
    "compute_ana_diff",
    "derive_availability",
]
