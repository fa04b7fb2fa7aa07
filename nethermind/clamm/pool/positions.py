import logging

from eth_typing import ChecksumAddress

from nethermind.clamm.exceptions import LiquidityOverflowError, ZeroLiquidityError
from nethermind.clamm.math import PoolMath
from nethermind.clamm.types import GlobalState, PoolState, PositionInfo
from nethermind.clamm.utils import wrapping_sub

from .journal import StateJournal
from .ticks import TickTable

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("pool").getChild("positions")

PositionKey = tuple[ChecksumAddress, int, int]


class PositionManager:
    """
    Tracks liquidity positions keyed by (owner, tick_lower, tick_upper), and converts fee growth inside each range
    into tokens owed to the position owner.
    """

    math = PoolMath

    positions: dict[PositionKey, PositionInfo]
    """
    Dictionary of all LP positions.  The key to access the info for a position is a tuple of the owner address,
    lower tick, and upper tick of the position.  Positions are never removed.
    """

    journal: StateJournal

    def __init__(
        self,
        positions: dict[PositionKey, PositionInfo] | None = None,
        journal: StateJournal | None = None,
    ):
        self.positions = positions if positions is not None else {}
        self.journal = journal if journal is not None else StateJournal()

    def __len__(self) -> int:
        return len(self.positions)

    def get(self, owner: ChecksumAddress, tick_lower: int, tick_upper: int) -> PositionInfo | None:
        """Returns the position, or None if it was never created"""
        return self.positions.get((owner, tick_lower, tick_upper))

    def get_or_create(self, owner: ChecksumAddress, tick_lower: int, tick_upper: int) -> PositionInfo:
        """Returns the position, creating an empty position if it does not exist yet"""
        key = (owner, tick_lower, tick_upper)
        self.journal.record_item(self.positions, key)
        if key not in self.positions:
            self.positions[key] = PositionInfo.uninitialized()
        return self.positions[key]

    def update_position(  # pylint: disable=too-many-arguments
        self,
        owner: ChecksumAddress,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        ticks: TickTable,
        global_state: GlobalState,
        pool_state: PoolState,
        time: int,
    ) -> PositionInfo:
        """
        Updates the ticks bounding a position, accrues the fees earned by the position since its last update, and
        applies the liquidity delta to the position.

        :param owner: owner of the position
        :param tick_lower: lower tick of the position
        :param tick_upper: upper tick of the position
        :param liquidity_delta: signed liquidity change.  Zero only accrues fees (poke)
        :param ticks: tick table of the pool
        :param global_state: global state, providing the current tick
        :param pool_state: pool state, providing fee growth and max liquidity per tick
        :param time: current block timestamp
        :return: the updated position
        """
        if liquidity_delta == 0:
            existing = self.get(owner, tick_lower, tick_upper)
            if existing is None or existing.liquidity == 0:
                raise ZeroLiquidityError("Cannot poke a position without liquidity")

        position = self.get_or_create(owner, tick_lower, tick_upper)

        flipped_lower, flipped_upper = False, False
        if liquidity_delta != 0:
            flipped_lower = ticks.update_tick(
                tick_lower,
                global_state.tick,
                liquidity_delta,
                pool_state.fee_growth_global_0,
                pool_state.fee_growth_global_1,
                time,
                False,
                pool_state.max_liquidity_per_tick,
            )
            flipped_upper = ticks.update_tick(
                tick_upper,
                global_state.tick,
                liquidity_delta,
                pool_state.fee_growth_global_0,
                pool_state.fee_growth_global_1,
                time,
                True,
                pool_state.max_liquidity_per_tick,
            )

        fee_growth_inside_0, fee_growth_inside_1 = ticks.get_fee_growth_inside(
            tick_lower,
            tick_upper,
            global_state.tick,
            pool_state.fee_growth_global_0,
            pool_state.fee_growth_global_1,
        )

        self._update_position_info(position, liquidity_delta, fee_growth_inside_0, fee_growth_inside_1)

        # ticks are only cleared once the fee growth inside has been read from them
        if liquidity_delta < 0:
            if flipped_lower:
                ticks.clear_tick(tick_lower)
            if flipped_upper:
                ticks.clear_tick(tick_upper)

        return position

    def _update_position_info(
        self,
        position: PositionInfo,
        liquidity_delta: int,
        fee_growth_inside_0: int,
        fee_growth_inside_1: int,
    ):
        liquidity_next = self.math.add_delta(position.liquidity, liquidity_delta)

        fee_growth_delta_0 = wrapping_sub(fee_growth_inside_0, position.fee_growth_inside_0_last)
        fee_growth_delta_1 = wrapping_sub(fee_growth_inside_1, position.fee_growth_inside_1_last)

        tokens_owed_0 = self.math.full_math.mul_div(fee_growth_delta_0, position.liquidity, self.math.Q128)
        tokens_owed_1 = self.math.full_math.mul_div(fee_growth_delta_1, position.liquidity, self.math.Q128)

        logger.debug(
            f"Calculating Tokens Owed.  Liquidity Delta: {liquidity_delta}, "
            f"Fees Owed 0: {tokens_owed_0}, Fees Owed 1: {tokens_owed_1}"
        )

        if (
            position.tokens_owed_0 + tokens_owed_0 > self.math.UINT_128_MAX
            or position.tokens_owed_1 + tokens_owed_1 > self.math.UINT_128_MAX
        ):
            raise LiquidityOverflowError("Tokens owed to position overflow uint128, collect fees before updating")

        position.liquidity = liquidity_next
        position.fee_growth_inside_0_last = fee_growth_inside_0
        position.fee_growth_inside_1_last = fee_growth_inside_1
        position.tokens_owed_0 += tokens_owed_0
        position.tokens_owed_1 += tokens_owed_1

    def get_amounts_for_liquidity_delta(
        self,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        global_state: GlobalState,
        pool_state: PoolState,
    ) -> tuple[int, int]:
        """
        Returns the signed token amounts represented by a liquidity delta over [tick_lower, tick_upper).  Deposits
        are rounded up and withdrawals are rounded down.  When the range contains the current price, the active
        liquidity of the pool is updated.

        * Price below the range: the position is entirely token_0
        * Price inside the range: the position holds both tokens
        * Price at or above the upper tick: the position is entirely token_1
        """
        sqrt_price_lower = self.math.tick_math.get_sqrt_ratio_at_tick(tick_lower)
        sqrt_price_upper = self.math.tick_math.get_sqrt_ratio_at_tick(tick_upper)
        amount_0, amount_1 = 0, 0

        if global_state.tick < tick_lower:
            amount_0 = self.math.get_amount_0_delta(sqrt_price_lower, sqrt_price_upper, liquidity_delta)
        elif global_state.tick < tick_upper:
            amount_0 = self.math.get_amount_0_delta(global_state.price, sqrt_price_upper, liquidity_delta)
            amount_1 = self.math.get_amount_1_delta(sqrt_price_lower, global_state.price, liquidity_delta)
            pool_state.liquidity = self.math.add_delta(pool_state.liquidity, liquidity_delta)
        else:
            amount_1 = self.math.get_amount_1_delta(sqrt_price_lower, sqrt_price_upper, liquidity_delta)

        return amount_0, amount_1

    def iter_positions(self):
        """Yields (owner, tick_lower, tick_upper, position) for every position"""
        for (owner, tick_lower, tick_upper), position in self.positions.items():
            yield owner, tick_lower, tick_upper, position

    def collect_tokens_owed(
        self,
        owner: ChecksumAddress,
        tick_lower: int,
        tick_upper: int,
        amount_0_requested: int,
        amount_1_requested: int,
    ) -> tuple[int, int]:
        """
        Deducts collected tokens from the tokens owed to a position.  Requested amounts are capped at the tokens
        owed, and missing positions have nothing to collect.

        :return: token_0 and token_1 amounts deducted
        """
        key = (owner, tick_lower, tick_upper)
        position = self.positions.get(key)
        if position is None:
            return 0, 0

        amount_0 = max(min(amount_0_requested, position.tokens_owed_0), 0)
        amount_1 = max(min(amount_1_requested, position.tokens_owed_1), 0)
        if amount_0 == 0 and amount_1 == 0:
            return 0, 0

        self.journal.record_item(self.positions, key)
        position.tokens_owed_0 -= amount_0
        position.tokens_owed_1 -= amount_1
        return amount_0, amount_1
