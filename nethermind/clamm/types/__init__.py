from .config import FeeConfiguration, PoolDefaults
from .pool import (
    GlobalState,
    PluginConfig,
    PoolImmutables,
    PoolLockState,
    PoolState,
    PositionInfo,
    SwapResult,
    SwapState,
    SwapStep,
    Tick,
)

__all__ = [
    "FeeConfiguration",
    "PoolDefaults",
    "GlobalState",
    "PluginConfig",
    "PoolImmutables",
    "PoolLockState",
    "PoolState",
    "PositionInfo",
    "SwapResult",
    "SwapState",
    "SwapStep",
    "Tick",
]
