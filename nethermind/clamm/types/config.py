from pydantic import BaseModel, model_validator

from nethermind.clamm.math.shared import (
    MAX_COMMUNITY_FEE,
    MAX_FEE,
    MAX_TICK_SPACING,
)

from .pool import PluginConfig


class FeeConfiguration(BaseModel):
    """
    Base fee configuration distributed by the factory to dynamic fee plugins.

    The adaptive fee is the sum of two sigmoids over volatility and volume, added to a base fee.  Alphas are the
    sigmoid heights, betas are the shifts, and gammas are the sigmoid slopes.  The pool itself only enforces the
    bounds of the configuration, the fee curve is evaluated by plugins.
    """

    alpha1: int = 2900
    alpha2: int = 15000 - 3000
    beta1: int = 360
    beta2: int = 60000
    gamma1: int = 59
    gamma2: int = 8500
    base_fee: int = 100

    @model_validator(mode="after")
    def check_bounds(self) -> "FeeConfiguration":
        """Ensures the maximum reachable fee fits in a uint16 and both sigmoid slopes are positive"""
        if self.alpha1 + self.alpha2 + self.base_fee > MAX_FEE:
            raise ValueError("Max fee exceeded")
        if self.gamma1 <= 0 or self.gamma2 <= 0:
            raise ValueError("Gammas must be > 0")
        return self


class PoolDefaults(BaseModel):
    """Default parameters applied by the factory to newly created pools"""

    community_fee: int = 0
    """ Share of swap fees in thousandths sent to the community vault """
    tick_spacing: int = 60
    fee: int = 3000
    plugin_config: PluginConfig = PluginConfig.NONE

    @model_validator(mode="after")
    def check_bounds(self) -> "PoolDefaults":
        """Checks that the defaults are within the bounds accepted by a pool"""
        if not 0 <= self.community_fee <= MAX_COMMUNITY_FEE:
            raise ValueError(f"Community fee {self.community_fee} exceeds {MAX_COMMUNITY_FEE}")
        if not 0 < self.tick_spacing <= MAX_TICK_SPACING:
            raise ValueError(f"Tick spacing {self.tick_spacing} outside of (0, {MAX_TICK_SPACING}]")
        if not 0 <= self.fee <= MAX_FEE:
            raise ValueError(f"Fee {self.fee} exceeds {MAX_FEE}")
        return self
