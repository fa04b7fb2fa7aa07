from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Any

from eth_typing import ChecksumAddress


class PoolLockState(Enum):
    """Reentrancy guard of a pool.  Every mutating pool method moves the pool from UNLOCKED to LOCKED and back."""

    UNLOCKED = "unlocked"
    LOCKED = "locked"


class PluginConfig(IntFlag):
    """Bitmask selecting which plugin hooks are invoked by the pool"""

    NONE = 0
    BEFORE_SWAP = 1
    AFTER_SWAP = 2
    BEFORE_POSITION_MODIFY = 4
    AFTER_POSITION_MODIFY = 8
    BEFORE_FLASH = 16
    AFTER_FLASH = 32
    AFTER_INIT = 64
    DYNAMIC_FEE = 128


@dataclass(slots=True)
class GlobalState:
    """Stores the current price, tick, fee configuration, plugin configuration and the reentrancy lock"""

    price: int
    """
        Current Exchange rate between token_0 and token_1.

        This value is represented as the square root of the ratio between token_1 and token_0, in a
        fixed point Q64.96 Number (64 bits of integer precision & 96 bits of fractional precision).
        A price of zero marks an uninitialized pool.
    """
    tick: int
    """
        Current Tick of the Pool.  Always equal to the greatest tick whose sqrt ratio is at or below the price.

        The Token 0 to Token 1 exchange rate at a tick can be calculated by the following formula:
        1.0001 ** tick
    """
    fee: int
    """
        Current swap fee, measured in hundredths of a bip (0.0001%).  A pool with a 0.3% swap fee has a fee of 3000.
    """
    community_fee: int
    """
        Share of swap fees diverted to the community vault, measured in thousandths.  A value of 100 sends 10% of
        every swap fee to the vault.
    """
    plugin_config: PluginConfig
    """
        Bitmask describing which plugin hooks are called.
    """
    lock: PoolLockState = PoolLockState.UNLOCKED

    @classmethod
    def uninitialized(cls) -> "GlobalState":
        """Returns an uninitialized global state used during pool construction"""
        return GlobalState(
            price=0,
            tick=0,
            fee=0,
            community_fee=0,
            plugin_config=PluginConfig.NONE,
        )

    @property
    def initialized(self) -> bool:
        """True once the pool price has been set"""
        return self.price != 0


@dataclass(slots=True)
class PoolState:
    """Stores the current active liquidity, fee growths and tick spacing"""

    liquidity: int
    """
    Amount of active liquidity.  This parameter remains constant during swaps where the price does not move ticks.
    When crossing a tick, this value is increased or reduced by the liquidity_net of the tick.
    """
    fee_growth_global_0: int
    """
    Tracks fee accumulation for token_0 per unit of liquidity as a Q128.128 number.  When selling token_0,
    the swap fee is collected in token_0 and added to this accumulator.  The accumulator wraps modulo 2**256.
    """
    fee_growth_global_1: int
    """
    Tracks fee accumulation for token_1.  When selling token_1, the swap fee is collected in token_1.
    """
    tick_spacing: int
    """
        Number of ticks between usable liquidity bounds.
    """
    max_liquidity_per_tick: int
    """
        Maximum gross liquidity that may reference a single tick.  Derived from the tick spacing so that the
        liquidity active at any price can never overflow a uint128.
    """

    @classmethod
    def uninitialized(cls, tick_spacing: int, max_liquidity_per_tick: int) -> "PoolState":
        """Returns an empty pool state"""
        return PoolState(
            liquidity=0,
            fee_growth_global_0=0,
            fee_growth_global_1=0,
            tick_spacing=tick_spacing,
            max_liquidity_per_tick=max_liquidity_per_tick,
        )


@dataclass(slots=True)
class Tick:
    """Stores liquidity data and fee growth for each tick"""

    liquidity_gross: int  # 128
    """ Total liquidity owned by all positions that use this tick as an upper tick or a lower tick.
    Used by the pool to determine if it is okay to delete a tick when a position is removed.
    """
    liquidity_net: int  # 128
    """
    Net liquidity to add/remove from the pool when a swap moves the price across tick boundaries.
    If price is moving up, add liquidity_net to current liquidity.
    If price is moving down, liquidity_net is subtracted from current liquidity.
    """
    fee_growth_outside_0: int  # 256
    """
        Fee growth per unit of liquidity on the other side of this tick, relative to the current tick
    """
    fee_growth_outside_1: int  # 256
    seconds_outside: int  # 32
    """
        Seconds spent on the other side of this tick, relative to the current tick
    """

    @classmethod
    def uninitialized(cls) -> "Tick":
        """
        Returns an uninitialized tick with each field set to 0
        """
        return Tick(
            liquidity_gross=0,
            liquidity_net=0,
            fee_growth_outside_0=0,
            fee_growth_outside_1=0,
            seconds_outside=0,
        )


@dataclass(slots=True)
class PositionInfo:
    """
    Stores the current liquidity, fee growth, and fees owed for each position.

    .. note::
        Positions are never deleted.  A position with zero liquidity keeps its owed tokens until they are collected.
    """

    liquidity: int
    """
        Amount of liquidity owned by this position
    """
    fee_growth_inside_0_last: int
    """
        Token 0 fee growth per unit of liquidity inside the position range as of the last update.  This value is
        a modular snapshot and may be larger than the global accumulator.
    """
    fee_growth_inside_1_last: int
    tokens_owed_0: int
    """
        Number of token_0 owed to the position owner.  Increases on every position update and decreases on collect
    """
    tokens_owed_1: int

    @classmethod
    def uninitialized(cls) -> "PositionInfo":
        """
        Returns an uninitialized position info with each field set to 0
        """
        return PositionInfo(
            liquidity=0,
            fee_growth_inside_0_last=0,
            fee_growth_inside_1_last=0,
            tokens_owed_0=0,
            tokens_owed_1=0,
        )


@dataclass(slots=True)
class SwapState:
    """Model to store the pool state during swap execution"""

    amount_specified_remaining: int
    amount_calculated: int
    sqrt_price: int
    tick: int
    fee_growth_global: int
    community_fee: int
    liquidity: int
    ticks_crossed: list[int] = field(default_factory=list)


@dataclass(slots=True)
class SwapStep:
    """Model to store the results of a single swap step"""

    sqrt_price_start: int
    tick_next: int = 0
    initialized: bool = False
    sqrt_price_next: int = 0
    amount_in: int = 0
    amount_out: int = 0
    fee_amount: int = 0


@dataclass(slots=True)
class SwapResult:
    """
    Realized result of a swap computation.  Negative amounts are owed by the pool to the recipient, positive
    amounts are owed to the pool.
    """

    amount_0: int
    amount_1: int
    sqrt_price: int
    tick: int
    liquidity: int
    community_fee: int
    fee_growth_global: int
    ticks_crossed: list[int]


@dataclass(slots=True)
class PoolImmutables:
    """Stores the parameters that are set once when the pool is created"""

    pool_address: ChecksumAddress
    token_0: Any  # ERC20Token.  Typed as Any to avoid circular imports
    token_1: Any
