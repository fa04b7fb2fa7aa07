import logging

from nethermind.clamm.exceptions import InvalidTickError, LiquidityOverflowError
from nethermind.clamm.types import Tick
from nethermind.clamm.utils import uint_over_under_flow, wrapping_sub

from .journal import StateJournal
from .tick_bitmap import TickBitmap

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("pool").getChild("ticks")


class TickTable:
    """
    Sparse table of initialized ticks, kept in sync with a :class:`TickBitmap`.

    Ticks are added to the table when liquidity is first referenced at a tick, and are deleted once all the
    liquidity referencing the tick is removed.  The fee growth outside of a tick is tracked relative to the current
    tick, so crossing a tick only needs to flip the accumulators of that tick.
    """

    ticks: dict[int, Tick]
    bitmap: TickBitmap
    tick_spacing: int
    journal: StateJournal

    def __init__(
        self,
        tick_spacing: int,
        ticks: dict[int, Tick] | None = None,
        journal: StateJournal | None = None,
    ):
        self.tick_spacing = tick_spacing
        self.ticks = ticks if ticks is not None else {}
        self.journal = journal if journal is not None else StateJournal()
        self.bitmap = TickBitmap(journal=self.journal)
        self.bitmap.rebuild((index for index, data in self.ticks.items() if data.liquidity_gross), tick_spacing)

    def __contains__(self, tick: int) -> bool:
        return tick in self.ticks

    def __len__(self) -> int:
        return len(self.ticks)

    def get(self, tick: int) -> Tick:
        """Returns the tick data, or an uninitialized tick if the tick is not in the table"""
        return self.ticks.get(tick, Tick.uninitialized())

    def update_tick(  # pylint: disable=too-many-arguments
        self,
        tick: int,
        tick_current: int,
        liquidity_delta: int,
        fee_growth_global_0: int,
        fee_growth_global_1: int,
        time: int,
        upper: bool,
        max_liquidity: int,
    ) -> bool:
        """
        Updates a tick and returns True if the tick was flipped from initialized to uninitialized, or vice versa.
        Flipped ticks are also flipped in the bitmap.  A tick flipped to zero gross liquidity stays in the table
        until :meth:`clear_tick` is called, so fee growth inside the range can still be read.

        :param tick: tick that will be updated
        :param tick_current: current tick of the pool
        :param liquidity_delta: liquidity added (positive) or removed (negative) at the tick
        :param fee_growth_global_0: all-time global fee growth of token_0 per unit of liquidity
        :param fee_growth_global_1: all-time global fee growth of token_1 per unit of liquidity
        :param time: current block timestamp
        :param upper: True when updating the upper tick of a position
        :param max_liquidity: maximum gross liquidity allowed at a single tick
        :return: whether the tick was flipped
        """
        tick_info = self.ticks.get(tick, Tick.uninitialized())
        liquidity_gross_before = tick_info.liquidity_gross
        liquidity_gross_after = liquidity_gross_before + liquidity_delta

        if liquidity_gross_after < 0:
            raise LiquidityOverflowError(f"Tick {tick} Liquidity Underflow: {liquidity_gross_before} + {liquidity_delta}")
        if liquidity_gross_after > max_liquidity:
            raise LiquidityOverflowError(
                f"Tick Liquidity ({liquidity_gross_after}) Overflows Max Liquidity ({max_liquidity})"
            )

        flipped = (liquidity_gross_before == 0) != (liquidity_gross_after == 0)
        self.journal.record_item(self.ticks, tick)

        # by convention, all growth before a tick was initialized happened below the tick
        if liquidity_gross_before == 0 and tick <= tick_current:
            tick_info.fee_growth_outside_0 = fee_growth_global_0
            tick_info.fee_growth_outside_1 = fee_growth_global_1
            tick_info.seconds_outside = time

        tick_info.liquidity_gross = liquidity_gross_after
        tick_info.liquidity_net = tick_info.liquidity_net + (-liquidity_delta if upper else liquidity_delta)

        self.ticks[tick] = tick_info

        if flipped:
            self.bitmap.flip_tick(tick, self.tick_spacing)
            logger.debug(f"Tick {tick} {'initialized' if liquidity_gross_after else 'uninitialized'}")
        return flipped

    def clear_tick(self, tick: int):
        """Deletes the data of a tick"""
        self.journal.record_item(self.ticks, tick)
        self.ticks.pop(tick, None)

    def cross_tick(
        self,
        tick: int,
        fee_growth_global_0: int,
        fee_growth_global_1: int,
        time: int,
    ) -> int:
        """
        Transitions to the next tick as needed by price movement.  Flips the outside accumulators of the tick to
        the other side of the current price.

        :return: the liquidity_net of the crossed tick
        """
        self.journal.record_item(self.ticks, tick)
        tick_info = self.ticks[tick]

        tick_info.fee_growth_outside_0 = wrapping_sub(fee_growth_global_0, tick_info.fee_growth_outside_0)
        tick_info.fee_growth_outside_1 = wrapping_sub(fee_growth_global_1, tick_info.fee_growth_outside_1)
        tick_info.seconds_outside = uint_over_under_flow(time - tick_info.seconds_outside, 256)

        return tick_info.liquidity_net

    def get_fee_growth_inside(
        self,
        tick_lower: int,
        tick_upper: int,
        tick_current: int,
        fee_growth_global_0: int,
        fee_growth_global_1: int,
    ) -> tuple[int, int]:
        """
        Returns the all-time fee growth per unit of liquidity inside the range [tick_lower, tick_upper).  The result
        is only meaningful when differenced against an earlier value for the same range, and wraps modulo 2**256.
        """
        lower, upper = self.get(tick_lower), self.get(tick_upper)

        if tick_current >= tick_lower:
            fee_growth_below_0 = lower.fee_growth_outside_0
            fee_growth_below_1 = lower.fee_growth_outside_1
        else:
            fee_growth_below_0 = wrapping_sub(fee_growth_global_0, lower.fee_growth_outside_0)
            fee_growth_below_1 = wrapping_sub(fee_growth_global_1, lower.fee_growth_outside_1)

        if tick_current < tick_upper:
            fee_growth_above_0 = upper.fee_growth_outside_0
            fee_growth_above_1 = upper.fee_growth_outside_1
        else:
            fee_growth_above_0 = wrapping_sub(fee_growth_global_0, upper.fee_growth_outside_0)
            fee_growth_above_1 = wrapping_sub(fee_growth_global_1, upper.fee_growth_outside_1)

        return (
            uint_over_under_flow(fee_growth_global_0 - fee_growth_below_0 - fee_growth_above_0, 256),
            uint_over_under_flow(fee_growth_global_1 - fee_growth_below_1 - fee_growth_above_1, 256),
        )

    def get_seconds_inside(self, tick_lower: int, tick_upper: int, tick_current: int, time: int) -> int:
        """
        Returns the seconds spent inside [tick_lower, tick_upper).  Like fee growth, the value is relative and must
        be differenced against a snapshot taken while both ticks were initialized.
        """
        lower, upper = self.get(tick_lower), self.get(tick_upper)

        seconds_below = lower.seconds_outside if tick_current >= tick_lower else time - lower.seconds_outside
        seconds_above = upper.seconds_outside if tick_current < tick_upper else time - upper.seconds_outside

        return uint_over_under_flow(time - seconds_below - seconds_above, 256)

    def next_initialized_tick_within_one_word(self, tick: int, lte: bool) -> tuple[int, bool]:
        """Searches the bitmap for the next initialized tick"""
        return self.bitmap.next_initialized_tick_within_one_word(tick, self.tick_spacing, lte)

    def set_tick_spacing(self, tick_spacing: int):
        """
        Rebuilds the bitmap for a new tick spacing.  Raises InvalidTickError if an initialized tick is not a multiple
        of the new spacing.
        """
        misaligned = sorted(index for index in self.ticks if index % tick_spacing)
        if misaligned:
            raise InvalidTickError(
                f"Initialized ticks {misaligned[:5]} are not multiples of the new tick spacing {tick_spacing}"
            )
        self.journal.record_attr(self, "tick_spacing")
        self.tick_spacing = tick_spacing
        self.bitmap.rebuild(self.ticks.keys(), tick_spacing)

    def sorted_items(self) -> list[tuple[int, Tick]]:
        """Returns all ticks ordered by tick index"""
        return sorted(self.ticks.items())
