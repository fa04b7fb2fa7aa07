import copy
import datetime
import json
import logging
from contextlib import contextmanager
from dataclasses import asdict
from typing import TYPE_CHECKING, Any, Callable

import numpy as np
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from pandas import DataFrame

from nethermind.clamm.exceptions import (
    AlreadyInitializedError,
    InsufficientInputError,
    LiquidityOverflowError,
    NotInitializedError,
    PoolRevert,
    ReentrancyError,
    UnauthorizedError,
    ZeroLiquidityError,
)
from nethermind.clamm.math import PoolMath
from nethermind.clamm.math.shared import (
    COMMUNITY_FEE_DENOMINATOR,
    FEE_DENOMINATOR,
    MAX_COMMUNITY_FEE,
    MAX_FEE,
)
from nethermind.clamm.tokens.erc_20 import ERC20Token
from nethermind.clamm.types import (
    GlobalState,
    PluginConfig,
    PoolImmutables,
    PoolLockState,
    PoolState,
    PositionInfo,
    SwapResult,
    Tick,
)
from nethermind.clamm.utils import ZERO_ADDRESS, random_address, wrapping_add, wrapping_sub

from . import events
from .journal import StateJournal
from .plugins import AbstractCrossingObserver, AbstractPoolPlugin, HookGateway, HookPoint
from .positions import PositionManager
from .reserves import Reserves, ReservesManager
from .swap import SwapEngine
from .ticks import TickTable

if TYPE_CHECKING:
    from nethermind.clamm.factory import PoolFactory

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("pool")

MintCallback = Callable[[int, int, Any], None]
SwapCallback = Callable[[int, int, Any], None]
FlashCallback = Callable[[int, int, Any], None]


# pylint: disable=too-many-instance-attributes, too-many-public-methods
class AlgebraPool:
    """
    Concentrated liquidity pool with plugin hooks, a community fee and reserve tracking.

    Liquidity providers deposit liquidity over tick ranges, and swaps walk the price across initialized ticks.
    Every mutating method runs under the pool lock: if any step fails, including settlement callbacks and plugin
    hooks, the pool state is restored to its value before the call and the exception is re-raised.

    Pools are created with keyword arguments:

        * **fee** / **tick_spacing** -> defaults to 3000 / 60.  Standard fee tiers infer the other value
        * **token_0** / **token_1** -> :class:`ERC20Token` ledgers.  Test tokens are generated if omitted
        * **factory** -> :class:`~nethermind.clamm.factory.PoolFactory` authorizing privileged calls
        * **community_fee**, **plugin**, **plugin_config**
        * **initial_price** -> initializes the pool at this sqrt price
        * **initial_timestamp** / **initial_block** / **pool_address**
    """

    math = PoolMath

    immutables: PoolImmutables
    """
    PoolImmutables object containing the pool address, token_0 and token_1
    """

    global_state: GlobalState
    """
    Current price, tick, fee, community fee and plugin config of the pool, along with the reentrancy lock
    """

    state: PoolState
    """
    Active liquidity, fee growth accumulators and tick spacing of the pool
    """

    ticks: TickTable
    """
    Table of all initialized ticks and the tick bitmap used to search them during swaps
    """

    positions: PositionManager
    """
    All LP positions, keyed by (owner, tick_lower, tick_upper)
    """

    reserves: ReservesManager
    """
    Tracked token reserves and pending community fees
    """

    hooks: HookGateway

    journal: StateJournal
    """Undo log shared by the tick table and position manager.  Active only while the pool is locked"""

    factory: "PoolFactory | None"

    events: list[events.Event]
    """
    Events published by the pool, in order.  Events of reverted operations are removed
    """

    block_number: int
    """
    Current block number of the pool.  Can be manually incremented through the advance_block() method.
    """

    block_timestamp: int
    """
    Current Block timestamp of the pool.  Used for tracking the time spent outside of ticks, and for timing
    community fee transfers.  Every time advance_block() is called, this value is incremented by 12 seconds.
    """

    def __init__(self, **kwargs) -> None:
        fee, tick_spacing = self.math.get_fee_and_spacing(kwargs)
        self.math.check_tick_spacing(tick_spacing)
        if not 0 <= fee <= MAX_FEE:
            raise PoolRevert(f"Fee {fee} exceeds max fee {MAX_FEE}")

        token_0, token_1 = kwargs.get("token_0"), kwargs.get("token_1")
        if token_0 is None or token_1 is None:
            token_0, token_1 = sorted(
                (token_0 or ERC20Token.test_token("TKN0"), token_1 or ERC20Token.test_token("TKN1")),
                key=lambda token: int(token.address, 16),
            )
        elif int(token_0.address, 16) >= int(token_1.address, 16):
            raise PoolRevert("token_0 address must sort before token_1 address")

        self.immutables = PoolImmutables(
            pool_address=to_checksum_address(kwargs.get("pool_address", random_address())),
            token_0=token_0,
            token_1=token_1,
        )
        self.factory = kwargs.get("factory")

        community_fee = kwargs.get("community_fee", 0)
        if not 0 <= community_fee <= MAX_COMMUNITY_FEE:
            raise PoolRevert(f"Community fee {community_fee} exceeds {MAX_COMMUNITY_FEE}")

        self.global_state = GlobalState.uninitialized()
        self.global_state.fee = fee
        self.global_state.community_fee = community_fee
        self.global_state.plugin_config = PluginConfig(kwargs.get("plugin_config", PluginConfig.NONE))

        self.state = PoolState.uninitialized(tick_spacing, self.math.get_max_liquidity_per_tick(tick_spacing))
        self.journal = StateJournal()
        self.ticks = TickTable(tick_spacing, journal=self.journal)
        self.positions = PositionManager(journal=self.journal)
        self.reserves = ReservesManager()
        self.hooks = HookGateway(plugin=kwargs.get("plugin"))
        self.events = []

        self.block_timestamp = kwargs.get("initial_timestamp", int(datetime.datetime.now().timestamp()))
        self.block_number = kwargs.get("initial_block", 0)

        if "initial_price" in kwargs:
            self.initialize(kwargs["initial_price"])

    def __repr__(self):
        return (
            f"{self.immutables.token_0.symbol} <-> {self.immutables.token_1.symbol} "
            f"@ {self.global_state.fee / 100} bips"
        )

    # -----------------------------------------------------------------------------------------------------------
    #  Lock & State Management
    # -----------------------------------------------------------------------------------------------------------

    @contextmanager
    def _lock(self, commit: bool = True):
        """
        Locks the pool for the duration of an operation.  Every tick, bitmap word, position and state field is
        journaled on its first write.  If the operation raises, or if commit is False, the journaled values are
        restored when the lock is released.  Token balances held by the ledgers are not part of the pool state and
        are not restored.
        """
        if self.global_state.lock == PoolLockState.LOCKED:
            raise ReentrancyError("Pool is locked")

        plugin, crossing_observer = self.hooks.plugin, self.hooks.crossing_observer
        event_count = len(self.events)

        self.journal.begin()
        self.journal.record_fields(self.global_state)
        self.journal.record_fields(self.state)
        self.journal.record_fields(self.reserves.reserves)

        self.global_state.lock = PoolLockState.LOCKED
        try:
            yield
        except Exception:
            self.journal.rollback()
            self.hooks.plugin, self.hooks.crossing_observer = plugin, crossing_observer
            del self.events[event_count:]
            raise
        else:
            if commit:
                self.journal.commit()
            else:
                self.journal.rollback()
        finally:
            self.global_state.lock = PoolLockState.UNLOCKED

    def _require_initialized(self):
        if not self.global_state.initialized:
            raise NotInitializedError("Pool price has not been initialized")

    def _emit(self, event: events.Event):
        self.events.append(event)
        logger.info(f"{event.name}: {event.to_dict()}")

    def _invoke_hook(self, hook: HookPoint, *args):
        return self.hooks.invoke(hook, self.global_state.plugin_config, *args)

    def _update_reserves(self) -> tuple[int, int]:
        """
        Reconciles reserves with the token balances of the pool, distributing any surplus to active liquidity.

        :return: token balances of the pool before the operation moves any tokens
        """
        pool_address = self.immutables.pool_address
        balance_0, balance_1, fee_growth_0, fee_growth_1 = self.reserves.update_reserves(
            self.immutables.token_0.balance_of(pool_address),
            self.immutables.token_1.balance_of(pool_address),
            self.state.liquidity,
        )
        if fee_growth_0:
            self.state.fee_growth_global_0 = wrapping_add(self.state.fee_growth_global_0, fee_growth_0)
        if fee_growth_1:
            self.state.fee_growth_global_1 = wrapping_add(self.state.fee_growth_global_1, fee_growth_1)
        return balance_0, balance_1

    def _transfer_out(self, token: ERC20Token, recipient: ChecksumAddress, amount: int):
        if amount > 0:
            token.transfer(self.immutables.pool_address, recipient, amount)

    def _send_community_fee(self):
        amount_0, amount_1 = self.reserves.pop_community_fee(self.block_timestamp)
        vault = self.reserves.reserves.community_vault
        if vault is not None:
            self._transfer_out(self.immutables.token_0, vault, amount_0)
            self._transfer_out(self.immutables.token_1, vault, amount_1)

    # -----------------------------------------------------------------------------------------------------------
    #  Publicly Exposed Pool Methods
    # -----------------------------------------------------------------------------------------------------------

    def initialize(self, sqrt_price: int, sender: ChecksumAddress = ZERO_ADDRESS):
        """
        Sets the initial price of the pool.  Can only be called once.

        :param sqrt_price: initial sqrt price of the pool as a Q64.96 value
        :param sender: address initializing the pool, passed to the plugin
        """
        with self._lock():
            if self.global_state.initialized:
                raise AlreadyInitializedError("Pool is already initialized")
            self.math.check_sqrt_price(sqrt_price)

            self._invoke_hook(HookPoint.BEFORE_INITIALIZE, sender, sqrt_price)

            tick = self.math.tick_math.get_tick_at_sqrt_ratio(sqrt_price)
            self.global_state.price = sqrt_price
            self.global_state.tick = tick
            self.reserves.reserves.last_fee_transfer_timestamp = self.block_timestamp

            self._emit(events.Initialize(self.block_number, sqrt_price, tick))
            self._invoke_hook(HookPoint.AFTER_INITIALIZE, sender, sqrt_price, tick)

    # pylint: disable=too-many-arguments,too-many-locals
    def mint(
        self,
        sender: ChecksumAddress,
        recipient: ChecksumAddress,
        tick_lower: int,
        tick_upper: int,
        liquidity: int,
        callback: MintCallback,
        data: Any = None,
    ) -> tuple[int, int]:
        """
        Adds liquidity to a position.  The callback is called with the token amounts owed to the pool, and must
        transfer at least those amounts to the pool address.  Any excess received is refunded to sender.

        :param ChecksumAddress sender:
            Address paying for the liquidity, and receiving refunds.
        :param ChecksumAddress recipient:
            Owner address of the minted liquidity.
        :param int tick_lower:
            Lower bound of the minted liquidity.
        :param int tick_upper:
            Upper bound of the minted liquidity.
        :param int liquidity:
            Amount of liquidity to mint.
        :param callback:
            Called as callback(amount_0_owed, amount_1_owed, data)
        :param data:
            Passed through to the callback and plugin hooks
        :return: token_0 and token_1 amounts deposited
        """
        with self._lock():
            self._require_initialized()
            if liquidity <= 0:
                raise ZeroLiquidityError("Cannot Mint 0 or Negative Liquidity")
            self.math.check_ticks(tick_lower, tick_upper, self.state.tick_spacing)

            self._invoke_hook(
                HookPoint.BEFORE_MODIFY_POSITION, sender, recipient, tick_lower, tick_upper, liquidity, data
            )

            balance_0_before, balance_1_before = self._update_reserves()
            amount_0, amount_1 = self.positions.get_amounts_for_liquidity_delta(
                tick_lower, tick_upper, liquidity, self.global_state, copy.copy(self.state)
            )

            callback(amount_0, amount_1, data)

            received_0 = self.immutables.token_0.balance_of(self.immutables.pool_address) - balance_0_before
            received_1 = self.immutables.token_1.balance_of(self.immutables.pool_address) - balance_1_before
            if received_0 < amount_0 or received_1 < amount_1:
                raise InsufficientInputError(
                    f"Mint callback delivered ({received_0}, {received_1}), required ({amount_0}, {amount_1})"
                )

            self.positions.update_position(
                recipient, tick_lower, tick_upper, liquidity, self.ticks, self.global_state, self.state,
                self.block_timestamp,
            )  # fmt: skip
            self.positions.get_amounts_for_liquidity_delta(
                tick_lower, tick_upper, liquidity, self.global_state, self.state
            )

            self._transfer_out(self.immutables.token_0, sender, received_0 - amount_0)
            self._transfer_out(self.immutables.token_1, sender, received_1 - amount_1)
            self.reserves.change_reserves(amount_0, amount_1)

            self._emit(
                events.Mint(self.block_number, sender, recipient, tick_lower, tick_upper, liquidity, amount_0, amount_1)
            )
            self._invoke_hook(
                HookPoint.AFTER_MODIFY_POSITION,
                sender, recipient, tick_lower, tick_upper, liquidity, amount_0, amount_1, data,
            )  # fmt: skip

        return amount_0, amount_1

    def burn(
        self,
        owner: ChecksumAddress,
        tick_lower: int,
        tick_upper: int,
        liquidity: int,
        data: Any = None,
    ) -> tuple[int, int]:
        """
        Removes liquidity from a position.  The withdrawn tokens are added to the tokens owed of the position, and
        are transferred by calling :meth:`collect`.  Burning zero liquidity updates the fees owed to a position that
        holds liquidity.

        :param owner:
            Owner of the liquidity to burn.
        :param tick_lower:
            Lower bound of the liquidity to burn.
        :param tick_upper:
            Upper bound of the liquidity to burn.
        :param liquidity:
            Amount of liquidity to burn.
        :param data:
            Passed through to plugin hooks
        :return: token_0 and token_1 amounts withdrawn from the position
        """
        with self._lock():
            self._require_initialized()
            if liquidity < 0:
                raise PoolRevert("Cannot burn negative liquidity")
            self.math.check_ticks(tick_lower, tick_upper, self.state.tick_spacing)

            position = self.positions.get(owner, tick_lower, tick_upper)
            if position is not None and liquidity > position.liquidity:
                raise LiquidityOverflowError(f"Cannot burn {liquidity} from position with {position.liquidity}")

            self._invoke_hook(HookPoint.BEFORE_MODIFY_POSITION, owner, owner, tick_lower, tick_upper, -liquidity, data)
            self._update_reserves()

            position = self.positions.update_position(
                owner, tick_lower, tick_upper, -liquidity, self.ticks, self.global_state, self.state,
                self.block_timestamp,
            )  # fmt: skip
            amount_0, amount_1 = self.positions.get_amounts_for_liquidity_delta(
                tick_lower, tick_upper, -liquidity, self.global_state, self.state
            )
            amount_0, amount_1 = -amount_0, -amount_1

            if (
                position.tokens_owed_0 + amount_0 > self.math.UINT_128_MAX
                or position.tokens_owed_1 + amount_1 > self.math.UINT_128_MAX
            ):
                raise LiquidityOverflowError("Tokens owed to position overflow uint128")
            position.tokens_owed_0 += amount_0
            position.tokens_owed_1 += amount_1

            self._emit(events.Burn(self.block_number, owner, tick_lower, tick_upper, liquidity, amount_0, amount_1))
            self._invoke_hook(
                HookPoint.AFTER_MODIFY_POSITION,
                owner, owner, tick_lower, tick_upper, -liquidity, amount_0, amount_1, data,
            )  # fmt: skip

        return amount_0, amount_1

    def collect(
        self,
        owner: ChecksumAddress,
        recipient: ChecksumAddress,
        tick_lower: int,
        tick_upper: int,
        amount_0_requested: int,
        amount_1_requested: int,
    ) -> tuple[int, int]:
        """
        Transfers tokens owed to a position.  Amounts are capped at the tokens owed, and a collect that transfers
        nothing does not change state or publish an event.

        :return: token_0 and token_1 amounts transferred to recipient
        """
        with self._lock():
            amount_0, amount_1 = self.positions.collect_tokens_owed(
                owner, tick_lower, tick_upper, amount_0_requested, amount_1_requested
            )
            if amount_0 == 0 and amount_1 == 0:
                return 0, 0

            self.reserves.change_reserves(-amount_0, -amount_1)

            self._transfer_out(self.immutables.token_0, recipient, amount_0)
            self._transfer_out(self.immutables.token_1, recipient, amount_1)

            self._emit(events.Collect(self.block_number, owner, recipient, tick_lower, tick_upper, amount_0, amount_1))

        return amount_0, amount_1

    def swap(
        self,
        sender: ChecksumAddress,
        recipient: ChecksumAddress,
        zero_to_one: bool,
        amount_required: int,
        sqrt_price_limit: int,
        callback: SwapCallback,
        data: Any = None,
    ) -> tuple[int, int]:
        """
        Swaps tokens in the pool.  The callback is called with the signed token deltas of the swap, and must
        transfer the input amount to the pool before the output amount is sent to recipient.

        :param sender:
            Address initiating the swap, passed to plugins
        :param recipient:
            Address receiving the output tokens
        :param zero_to_one:
            Which direction to swap tokens.  If True, sell Token 0 and buy Token 1.  If False, sell Token 1
            and buy Token 0.
        :param amount_required:
            Raw token amount to swap.  If positive, this represents the quantity of tokens to sell.  If negative,
            this represents the quantity of tokens to buy.
        :param sqrt_price_limit:
            The minimum (zero_to_one) or maximum price that the swap can move the pool to.  The swap stops early
            when this price is reached.
        :param callback:
            Called as callback(amount_0, amount_1, data).  Positive amounts are owed to the pool
        :param data:
            Passed through to the callback and plugin hooks
        :return: signed token_0 and token_1 deltas of the pool.  Negative amounts were sent to recipient
        """
        with self._lock():
            self._require_initialized()
            if amount_required == 0:
                raise PoolRevert("Cannot swap 0 tokens")

            ack = self._invoke_hook(
                HookPoint.BEFORE_SWAP, sender, recipient, zero_to_one, amount_required, sqrt_price_limit, data
            )
            if ack is not None and ack.fee_override is not None:
                self._set_fee(ack.fee_override)

            balance_0_before, balance_1_before = self._update_reserves()

            result = SwapEngine(self.ticks).compute_swap(
                self.global_state,
                self.state,
                zero_to_one,
                amount_required,
                sqrt_price_limit,
                self.global_state.fee,
                self.block_timestamp,
                on_cross=self.hooks.notify_cross,
            )
            self._commit_swap(result, zero_to_one)

            callback(result.amount_0, result.amount_1, data)

            if zero_to_one:
                received = self.immutables.token_0.balance_of(self.immutables.pool_address) - balance_0_before
                if received < result.amount_0:
                    raise InsufficientInputError(f"Swap callback delivered {received}, required {result.amount_0}")
                self._transfer_out(self.immutables.token_1, recipient, -result.amount_1)
                self.reserves.change_reserves(result.amount_0, result.amount_1, result.community_fee, 0)
            else:
                received = self.immutables.token_1.balance_of(self.immutables.pool_address) - balance_1_before
                if received < result.amount_1:
                    raise InsufficientInputError(f"Swap callback delivered {received}, required {result.amount_1}")
                self._transfer_out(self.immutables.token_0, recipient, -result.amount_0)
                self.reserves.change_reserves(result.amount_0, result.amount_1, 0, result.community_fee)

            self._send_community_fee()

            self._emit(
                events.Swap(
                    self.block_number,
                    sender,
                    recipient,
                    result.amount_0,
                    result.amount_1,
                    self.global_state.price,
                    self.state.liquidity,
                    self.global_state.tick,
                )
            )
            self._invoke_hook(
                HookPoint.AFTER_SWAP,
                sender, recipient, zero_to_one, amount_required, sqrt_price_limit, result.amount_0, result.amount_1,
                data,
            )  # fmt: skip

        return result.amount_0, result.amount_1

    def _commit_swap(self, result: SwapResult, zero_to_one: bool):
        self.global_state.price = result.sqrt_price
        self.global_state.tick = result.tick
        self.state.liquidity = result.liquidity
        if zero_to_one:
            self.state.fee_growth_global_0 = result.fee_growth_global
        else:
            self.state.fee_growth_global_1 = result.fee_growth_global

        if result.ticks_crossed:
            logger.info(f"Swap crossed ticks {result.ticks_crossed}.  Active liquidity: {result.liquidity}")

    def flash(
        self,
        sender: ChecksumAddress,
        recipient: ChecksumAddress,
        amount_0: int,
        amount_1: int,
        callback: FlashCallback,
        data: Any = None,
    ) -> tuple[int, int]:
        """
        Lends tokens to recipient for the duration of the callback.  The callback is called with the fees owed,
        and must return the borrowed amounts plus fees to the pool.  Fees paid are split between the community
        vault and active liquidity.

        :return: token_0 and token_1 fees paid
        """
        with self._lock():
            self._require_initialized()
            if amount_0 < 0 or amount_1 < 0:
                raise PoolRevert("Cannot flash negative amounts")

            self._invoke_hook(HookPoint.BEFORE_FLASH, sender, recipient, amount_0, amount_1, data)

            balance_0_before, balance_1_before = self._update_reserves()
            fee_0 = self.math.full_math.mul_div_rounding_up(amount_0, self.global_state.fee, FEE_DENOMINATOR)
            fee_1 = self.math.full_math.mul_div_rounding_up(amount_1, self.global_state.fee, FEE_DENOMINATOR)

            self._transfer_out(self.immutables.token_0, recipient, amount_0)
            self._transfer_out(self.immutables.token_1, recipient, amount_1)

            callback(fee_0, fee_1, data)

            paid_0 = self.immutables.token_0.balance_of(self.immutables.pool_address) - balance_0_before
            paid_1 = self.immutables.token_1.balance_of(self.immutables.pool_address) - balance_1_before
            if paid_0 < fee_0 or paid_1 < fee_1:
                raise InsufficientInputError(f"Flash callback paid ({paid_0}, {paid_1}), required ({fee_0}, {fee_1})")

            community_fee_0 = self._distribute_flash_fee(paid_0, 0)
            community_fee_1 = self._distribute_flash_fee(paid_1, 1)
            self.reserves.change_reserves(paid_0, paid_1, community_fee_0, community_fee_1)
            self._send_community_fee()

            self._emit(events.Flash(self.block_number, sender, recipient, amount_0, amount_1, paid_0, paid_1))
            self._invoke_hook(HookPoint.AFTER_FLASH, sender, recipient, amount_0, amount_1, paid_0, paid_1, data)

        return paid_0, paid_1

    def _distribute_flash_fee(self, paid: int, token_index: int) -> int:
        """Adds the LP share of a flash fee to fee growth and returns the community share"""
        if paid == 0:
            return 0
        if self.state.liquidity == 0:
            return paid

        community_fee = paid * self.global_state.community_fee // COMMUNITY_FEE_DENOMINATOR
        fee_growth = self.math.full_math.mul_div(paid - community_fee, self.math.Q128, self.state.liquidity)
        if token_index == 0:
            self.state.fee_growth_global_0 = wrapping_add(self.state.fee_growth_global_0, fee_growth)
        else:
            self.state.fee_growth_global_1 = wrapping_add(self.state.fee_growth_global_1, fee_growth)
        return community_fee

    # -----------------------------------------------------------------------------------------------------------
    #  Administrative Methods
    # -----------------------------------------------------------------------------------------------------------

    def _only_administrator(self, caller: ChecksumAddress):
        if self.factory is None or not self.factory.is_administrator(caller):
            raise UnauthorizedError(f"Caller {caller} is not a pool administrator")

    def _is_plugin(self, caller: ChecksumAddress) -> bool:
        return self.hooks.plugin is not None and caller == self.hooks.plugin.address

    def _set_fee(self, fee: int):
        if not 0 <= fee <= MAX_FEE:
            raise PoolRevert(f"Fee {fee} exceeds max fee {MAX_FEE}")
        if fee != self.global_state.fee:
            self.global_state.fee = fee
            self._emit(events.Fee(self.block_number, fee))

    def set_fee(self, caller: ChecksumAddress, fee: int):
        """
        Sets the swap fee.  When the DYNAMIC_FEE plugin config is set, only the plugin can set the fee.
        Otherwise, only pool administrators can set the fee.
        """
        with self._lock():
            if self.global_state.plugin_config & PluginConfig.DYNAMIC_FEE:
                if not self._is_plugin(caller):
                    raise UnauthorizedError("Fee is managed by the plugin")
            else:
                self._only_administrator(caller)
            self._set_fee(fee)

    def set_community_fee(self, caller: ChecksumAddress, community_fee: int):
        """Sets the share of swap fees, in thousandths, sent to the community vault"""
        with self._lock():
            self._only_administrator(caller)
            if not 0 <= community_fee <= MAX_COMMUNITY_FEE:
                raise PoolRevert(f"Community fee {community_fee} exceeds {MAX_COMMUNITY_FEE}")
            if community_fee == self.global_state.community_fee:
                raise PoolRevert("Community fee is already set")
            self.global_state.community_fee = community_fee
            self._emit(events.CommunityFee(self.block_number, community_fee))

    def set_tick_spacing(self, caller: ChecksumAddress, tick_spacing: int):
        """
        Changes the tick spacing of the pool.  Every initialized tick must be a multiple of the new tick spacing.
        """
        with self._lock():
            self._only_administrator(caller)
            self.math.check_tick_spacing(tick_spacing)
            if tick_spacing == self.state.tick_spacing:
                raise PoolRevert("Tick spacing is already set")

            self.ticks.set_tick_spacing(tick_spacing)
            self.state.tick_spacing = tick_spacing
            self.state.max_liquidity_per_tick = self.math.get_max_liquidity_per_tick(tick_spacing)
            self._emit(events.TickSpacing(self.block_number, tick_spacing))

    def set_plugin(self, caller: ChecksumAddress, plugin: AbstractPoolPlugin | None):
        """Attaches a plugin to the pool, or detaches the current plugin when plugin is None"""
        with self._lock():
            self._only_administrator(caller)
            self.hooks.plugin = plugin
            self._emit(events.Plugin(self.block_number, plugin.address if plugin is not None else None))

    def set_plugin_config(self, caller: ChecksumAddress, plugin_config: PluginConfig | int):
        """Sets the bitmask of plugin hooks called by the pool.  Callable by administrators and the plugin"""
        with self._lock():
            if not self._is_plugin(caller):
                self._only_administrator(caller)
            self.global_state.plugin_config = PluginConfig(plugin_config)
            self._emit(events.PluginConfigUpdate(self.block_number, int(plugin_config)))

    def set_community_vault(self, caller: ChecksumAddress, community_vault: ChecksumAddress | None):
        """Sets the address receiving community fees.  Pending fees accrue until a vault is set"""
        with self._lock():
            self._only_administrator(caller)
            self.reserves.reserves.community_vault = community_vault
            self._emit(events.CommunityVault(self.block_number, community_vault))

    def set_incentive(self, caller: ChecksumAddress, crossing_observer: AbstractCrossingObserver | None):
        """Attaches a crossing observer.  Callable by administrators and the farming address of the factory"""
        with self._lock():
            if self.factory is None or caller != self.factory.farming_address:
                self._only_administrator(caller)
            self.hooks.crossing_observer = crossing_observer
            self._emit(
                events.Incentive(
                    self.block_number,
                    type(crossing_observer).__name__ if crossing_observer is not None else None,
                )
            )

    # -----------------------------------------------------------------------------------------------------------
    #  Utility Functions
    # -----------------------------------------------------------------------------------------------------------

    def get_price_at_sqrt_ratio(
        self,
        sqrt_price: int,
        reverse_tokens: bool = False,
    ) -> float:
        """
        Converts a sqrt_price to a human-readable price.

        :param sqrt_price:
            sqrt_price encoded as fixed point Q64.96
        :param reverse_tokens:
            Whether to reverse the tokens in the price.  The sqrt_price represents the
            :math:`\\frac{ Token 1 }{ Token 0}`.  If reverse_tokens is True, the price will be represented as
            :math:`\\frac{ Token 0 }{ Token 1}`.
        """
        token_0, token_1 = self.immutables.token_0, self.immutables.token_1

        raw_price_float = (sqrt_price / (2**96)) ** 2
        adjusted_price = raw_price_float / (10 ** (token_1.decimals - token_0.decimals))

        if reverse_tokens:
            adjusted_price = 1 / adjusted_price

        return adjusted_price

    def get_formatted_price_at_sqrt_ratio(self, sqrt_price: int, reverse_tokens: bool = False) -> str:
        """
        Converts a sqrt_price to a formatted price string.  Includes rounding to 6 significant figures, and listing
        the Reference Asset, ie WETH: 2245.32 USDC.
        """
        token_0, token_1 = self.immutables.token_0, self.immutables.token_1
        adjusted_price = self.get_price_at_sqrt_ratio(sqrt_price, reverse_tokens)

        rounded_price = np.format_float_positional(float(f"{adjusted_price:.6g}"))
        return (
            f"{token_0.symbol}: {rounded_price} {token_1.symbol}"
            if reverse_tokens
            else f"{token_1.symbol}: {rounded_price} {token_0.symbol}"
        )

    def get_price_at_tick(self, tick: int, reverse_tokens: bool = False) -> float:
        """
        Converts a tick to a human-readable price.
        """
        sqrt_price = self.math.tick_math.get_sqrt_ratio_at_tick(tick)
        return self.get_price_at_sqrt_ratio(sqrt_price, reverse_tokens)

    def get_position(self, owner: ChecksumAddress, tick_lower: int, tick_upper: int) -> PositionInfo | None:
        return self.positions.get(owner, tick_lower, tick_upper)

    # -----------------------------------------------------------------------------------------------------------
    #  Research & Simulation Functionality
    # -----------------------------------------------------------------------------------------------------------

    def advance_block(self, blocks: int = 1):
        """
        Advances the current block by `blocks` and adds 12 seconds to the block_timestamp for each block progressed
        :param blocks: Number of blocks to advance forward.  Defaults to 1
        """
        self.block_number += blocks
        self.block_timestamp += 12 * blocks

    def quote_swap(self, zero_to_one: bool, amount_required: int, sqrt_price_limit: int) -> SwapResult:
        """
        Computes the result of a swap without modifying the pool.  The swap runs against the live tick table under
        the pool lock, and the crossed ticks are rolled back once the quote is computed.  Plugin hooks and crossing
        observers are not called, so dynamic fee overrides are not reflected in the quote.

        Raises ReentrancyError when called while the pool is locked, ie from a plugin hook or callback.
        """
        self._require_initialized()
        with self._lock(commit=False):
            return SwapEngine(self.ticks).compute_swap(
                self.global_state,
                self.state,
                zero_to_one,
                amount_required,
                sqrt_price_limit,
                self.global_state.fee,
                self.block_timestamp,
            )

    def get_position_value(self, owner: ChecksumAddress, tick_lower: int, tick_upper: int) -> tuple[int, int]:
        """
        Returns the token_0 and token_1 value of a position if it was fully burned and collected at the current
        price, including fees owed.  Does not modify the pool.
        """
        position = self.positions.get(owner, tick_lower, tick_upper)
        if position is None:
            return 0, 0

        amount_0, amount_1 = self.positions.get_amounts_for_liquidity_delta(
            tick_lower, tick_upper, -position.liquidity, self.global_state, copy.copy(self.state)
        )
        fee_growth_inside_0, fee_growth_inside_1 = self.ticks.get_fee_growth_inside(
            tick_lower,
            tick_upper,
            self.global_state.tick,
            self.state.fee_growth_global_0,
            self.state.fee_growth_global_1,
        )
        fees_0 = self.math.full_math.mul_div(
            wrapping_sub(fee_growth_inside_0, position.fee_growth_inside_0_last), position.liquidity, self.math.Q128
        )
        fees_1 = self.math.full_math.mul_div(
            wrapping_sub(fee_growth_inside_1, position.fee_growth_inside_1_last), position.liquidity, self.math.Q128
        )
        return -amount_0 + position.tokens_owed_0 + fees_0, -amount_1 + position.tokens_owed_1 + fees_1

    def compute_liquidity_at_price(self, reverse_tokens: bool = False, compress: bool = False) -> DataFrame:
        """
        Computes the liquidity at each price point in the pool.

        :param reverse_tokens:
            Reverses the reference token in the price.
        :param compress:
            Compresses the output to only include price points where the liquidity changes by more than 10%.
        :return:
            Dataframe with the current token/token price and the active liquidity at that price.
        """
        current_liquidity = 0
        last_liquidity = 1
        liquidity: dict[str, list] = {"tick": [], "price": [], "active_liquidity": []}
        for tick_index, tick_data in self.ticks.sorted_items():
            current_liquidity += tick_data.liquidity_net
            if compress and abs((current_liquidity - last_liquidity) / last_liquidity) <= 0.1:
                continue

            liquidity["tick"].append(tick_index)
            liquidity["price"].append(self.get_price_at_tick(tick_index, reverse_tokens))
            liquidity["active_liquidity"].append(current_liquidity)
            last_liquidity = current_liquidity or 1

        return DataFrame(liquidity).astype({"tick": int, "price": float, "active_liquidity": float})

    # -----------------------------------------------------------------------------------------------------------
    #  Caching Pool State
    # -----------------------------------------------------------------------------------------------------------

    def save_pool(self, file_path):
        """
        Saves pool state & parameters to JSON file.  This file can later be used to re-initialize a pool
        instance.  Plugins, crossing observers and the factory are not saved.

        :param file_path: writable file object for the JSON output
        """
        logger.info("Json Encoding Pool State")

        pool_state_dict = {
            "block_timestamp": self.block_timestamp,
            "block_number": self.block_number,
            "immutables": {
                "pool_address": self.immutables.pool_address,
                "token_0": self.immutables.token_0.to_dict(),
                "token_1": self.immutables.token_1.to_dict(),
            },
            "global_state": {
                **asdict(self.global_state),
                "plugin_config": int(self.global_state.plugin_config),
                "lock": self.global_state.lock.value,
            },
            "state": asdict(self.state),
            "reserves": asdict(self.reserves.reserves),
            "ticks": {index: asdict(tick) for index, tick in self.ticks.sorted_items()},
            "positions": {
                f"{owner}_{tick_lower}_{tick_upper}": asdict(position)
                for owner, tick_lower, tick_upper, position in self.positions.iter_positions()
            },
        }
        json.dump(pool_state_dict, file_path)
        logger.info("Pool State Saved")

    @classmethod
    def load_pool(cls, file_path, factory: "PoolFactory | None" = None) -> "AlgebraPool":
        """
        Loads a pool from a JSON File generated by the save_pool() method

        :param file_path: readable file object containing the JSON state
        :param factory: factory to attach to the loaded pool
        :return:
        """
        pool_params = json.load(file_path)

        global_state_params = pool_params["global_state"]
        state = PoolState(**pool_params["state"])

        pool = AlgebraPool(
            pool_address=pool_params["immutables"]["pool_address"],
            token_0=ERC20Token.from_dict(pool_params["immutables"]["token_0"]),
            token_1=ERC20Token.from_dict(pool_params["immutables"]["token_1"]),
            fee=global_state_params["fee"],
            tick_spacing=state.tick_spacing,
            factory=factory,
            initial_timestamp=pool_params["block_timestamp"],
            initial_block=pool_params["block_number"],
        )
        pool.global_state = GlobalState(
            price=global_state_params["price"],
            tick=global_state_params["tick"],
            fee=global_state_params["fee"],
            community_fee=global_state_params["community_fee"],
            plugin_config=PluginConfig(global_state_params["plugin_config"]),
        )
        pool.state = state
        pool.reserves = ReservesManager(Reserves(**pool_params["reserves"]))
        pool.ticks = TickTable(
            state.tick_spacing,
            {int(index): Tick(**tick) for index, tick in pool_params["ticks"].items()},
            journal=pool.journal,
        )
        pool.positions = PositionManager(
            {
                (
                    to_checksum_address((keys := key.split("_"))[0]),
                    int(keys[1]),
                    int(keys[2]),
                ): PositionInfo(**position)
                for key, position in pool_params["positions"].items()
            },
            journal=pool.journal,
        )

        logger.info(f"Loaded pool {pool} with {len(pool.ticks)} ticks and {len(pool.positions)} positions")
        return pool
