import logging
from dataclasses import asdict
from typing import Callable

from nethermind.clamm.exceptions import InsufficientLiquidityError, PoolRevert
from nethermind.clamm.math import PoolMath
from nethermind.clamm.math.shared import COMMUNITY_FEE_DENOMINATOR
from nethermind.clamm.types import GlobalState, PoolState, SwapResult, SwapState, SwapStep
from nethermind.clamm.utils import wrapping_add

from .ticks import TickTable

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("pool").getChild("swap")


def check_price_limit(global_state: GlobalState, zero_for_one: bool, sqrt_price_limit: int):
    """
    Checks that the price limit of a swap lies strictly between the current price and the price bound in the
    direction of the swap
    """
    if zero_for_one:
        if not PoolMath.MIN_SQRT_RATIO < sqrt_price_limit < global_state.price:
            raise PoolRevert(
                f"sqrt_price_limit {sqrt_price_limit} must be between MIN_SQRT_RATIO and the current price "
                f"{global_state.price} when selling token_0"
            )
    elif not global_state.price < sqrt_price_limit < PoolMath.MAX_SQRT_RATIO:
        raise PoolRevert(
            f"sqrt_price_limit {sqrt_price_limit} must be between the current price {global_state.price} and "
            f"MAX_SQRT_RATIO when selling token_1"
        )


class SwapEngine:
    """
    Walks the price curve from the current price towards a price limit, one initialized tick at a time.  Between
    initialized ticks, the active liquidity is constant and the swap step is computed in closed form.
    """

    math = PoolMath

    def __init__(self, ticks: TickTable):
        self.ticks = ticks

    # pylint: disable=too-many-arguments,too-many-locals
    def compute_swap(
        self,
        global_state: GlobalState,
        pool_state: PoolState,
        zero_for_one: bool,
        amount_required: int,
        sqrt_price_limit: int,
        fee: int,
        time: int,
        on_cross: Callable[[int, bool], None] | None = None,
    ) -> SwapResult:
        """
        Computes a swap, crossing ticks in the tick table as the price moves.  Global and pool state are only read,
        and the caller commits the returned :class:`SwapResult`.  Crossed ticks are written through
        :meth:`TickTable.cross_tick`, which journals them so that a pool can roll the crossings back.

        :param global_state: current global state of the pool
        :param pool_state: current liquidity & fee growth of the pool
        :param zero_for_one:
            Which direction to swap tokens.  If True, sell Token 0 and buy Token 1.  If False, sell Token 1
            and buy Token 0.
        :param amount_required:
            Raw token amount to swap.  If positive, this represents the quantity of tokens to sell.  If negative,
            this represents the quantity of tokens to buy.
        :param sqrt_price_limit: price that the swap cannot move past
        :param fee: swap fee in hundredths of a bip
        :param time: current block timestamp, used to update the seconds outside of crossed ticks
        :param on_cross: called with (tick, zero_for_one) every time an initialized tick is crossed
        :return: realized amounts and the final state of the swap
        """
        if amount_required == 0:
            raise PoolRevert("Cannot swap 0 tokens")
        check_price_limit(global_state, zero_for_one, sqrt_price_limit)

        logger.debug(f"------ Swapping Token {0 if zero_for_one else 1} for Token {1 if zero_for_one else 0} -------")
        logger.debug(f"Swap Amount: {amount_required}\tPrice Limit: {sqrt_price_limit}")

        exact_input = amount_required > 0
        state = SwapState(
            amount_specified_remaining=amount_required,
            amount_calculated=0,
            sqrt_price=global_state.price,
            tick=global_state.tick,
            fee_growth_global=pool_state.fee_growth_global_0 if zero_for_one else pool_state.fee_growth_global_1,
            community_fee=0,
            liquidity=pool_state.liquidity,
        )

        while state.amount_specified_remaining != 0 and state.sqrt_price != sqrt_price_limit:
            step = SwapStep(sqrt_price_start=state.sqrt_price)
            step.tick_next, step.initialized = self.ticks.next_initialized_tick_within_one_word(
                state.tick,
                zero_for_one,
            )

            # the bitmap is not aware of the tick bounds
            step.tick_next = max(self.math.MIN_TICK, min(self.math.MAX_TICK, step.tick_next))
            step.sqrt_price_next = self.math.tick_math.get_sqrt_ratio_at_tick(step.tick_next)

            if zero_for_one:
                sqrt_price_target = max(step.sqrt_price_next, sqrt_price_limit)
            else:
                sqrt_price_target = min(step.sqrt_price_next, sqrt_price_limit)

            computed_swap_step = self.math.compute_swap_step(
                state.sqrt_price,
                sqrt_price_target,
                state.liquidity,
                state.amount_specified_remaining,
                fee,
            )
            logger.debug(f"Computed Swap Step: {asdict(computed_swap_step)}")

            state.sqrt_price = computed_swap_step.sqrt_price_next
            step.amount_in = computed_swap_step.amount_in
            step.amount_out = computed_swap_step.amount_out
            step.fee_amount = computed_swap_step.fee_amount

            if exact_input:
                state.amount_specified_remaining -= step.amount_in + step.fee_amount
                state.amount_calculated -= step.amount_out
            else:
                state.amount_specified_remaining += step.amount_out
                state.amount_calculated += step.amount_in + step.fee_amount

            self._distribute_step_fee(state, step, global_state.community_fee)

            if state.sqrt_price == step.sqrt_price_next:
                if step.initialized:
                    liquidity_net = self.ticks.cross_tick(
                        step.tick_next,
                        state.fee_growth_global if zero_for_one else pool_state.fee_growth_global_0,
                        pool_state.fee_growth_global_1 if zero_for_one else state.fee_growth_global,
                        time,
                    )
                    state.liquidity = self.math.add_delta(
                        state.liquidity,
                        -liquidity_net if zero_for_one else liquidity_net,
                    )
                    state.ticks_crossed.append(step.tick_next)
                    logger.debug(f"Crossed Tick {step.tick_next}, Active Liquidity: {state.liquidity}")
                    if on_cross is not None:
                        on_cross(step.tick_next, zero_for_one)

                state.tick = step.tick_next - 1 if zero_for_one else step.tick_next

            elif state.sqrt_price != step.sqrt_price_start:
                state.tick = self.math.tick_math.get_tick_at_sqrt_ratio(state.sqrt_price)

        if zero_for_one == exact_input:
            amount_0, amount_1 = amount_required - state.amount_specified_remaining, state.amount_calculated
        else:
            amount_0, amount_1 = state.amount_calculated, amount_required - state.amount_specified_remaining

        if amount_0 == 0 and amount_1 == 0:
            raise InsufficientLiquidityError("Swap did not exchange any tokens")

        logger.debug(f"Swap Computed.  Token 0 Delta: {amount_0} \t Token 1 Delta: {amount_1}")

        return SwapResult(
            amount_0=amount_0,
            amount_1=amount_1,
            sqrt_price=state.sqrt_price,
            tick=state.tick,
            liquidity=state.liquidity,
            community_fee=state.community_fee,
            fee_growth_global=state.fee_growth_global,
            ticks_crossed=state.ticks_crossed,
        )

    def _distribute_step_fee(self, state: SwapState, step: SwapStep, community_fee: int):
        """Splits the fee of a swap step between the community vault and active liquidity providers"""
        if state.liquidity == 0:
            state.community_fee += step.fee_amount
            return

        lp_fee = step.fee_amount
        if community_fee > 0:
            delta = step.fee_amount * community_fee // COMMUNITY_FEE_DENOMINATOR
            lp_fee -= delta
            state.community_fee += delta

        state.fee_growth_global = wrapping_add(
            state.fee_growth_global,
            self.math.full_math.mul_div(lp_fee, self.math.Q128, state.liquidity),
        )
