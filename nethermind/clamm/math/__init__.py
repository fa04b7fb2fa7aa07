import logging

from nethermind.clamm.exceptions import PoolRevert

from .full_math import FullMathModule
from .shared import (
    FEE_DENOMINATOR,
    FEES_TO_TICK_SPACINGS,
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    Q128,
    TICK_SPACINGS_TO_FEES,
    UINT_128_MAX,
    SwapComputation,
    add_delta,
    check_sqrt_price,
    check_tick_spacing,
    check_ticks,
    get_max_liquidity_per_tick,
)
from .sqrt_price_math import SqrtPriceMathModule
from .tick_math import TickMathModule

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("math")

__all__ = [
    "PoolMath",
    "FullMathModule",
    "SqrtPriceMathModule",
    "TickMathModule",
    "SwapComputation",
    "MAX_SQRT_RATIO",
    "MIN_SQRT_RATIO",
    "MAX_TICK",
    "MIN_TICK",
]


class PoolMath:
    """
    Class grouping the fixed point math used by concentrated liquidity pools.  All math is performed on python
    integers, reproducing uint256 rounding and overflow behavior exactly.
    """

    MAX_SQRT_RATIO = MAX_SQRT_RATIO
    MIN_SQRT_RATIO = MIN_SQRT_RATIO

    MAX_TICK = MAX_TICK
    MIN_TICK = MIN_TICK

    UINT_128_MAX = UINT_128_MAX
    Q128 = Q128

    # Math Modules

    full_math = FullMathModule
    sqrt_price_math = SqrtPriceMathModule
    tick_math = TickMathModule

    # Liquidity Methods

    get_max_liquidity_per_tick = classmethod(get_max_liquidity_per_tick)
    add_delta = staticmethod(add_delta)

    # Safety Methods
    check_ticks = classmethod(check_ticks)
    check_sqrt_price = classmethod(check_sqrt_price)
    check_tick_spacing = classmethod(check_tick_spacing)

    @classmethod
    def get_amount_0_delta(cls, sqrt_price_a: int, sqrt_price_b: int, liquidity: int) -> int:
        """
        Returns the signed amount of token 0 corresponding to a signed liquidity delta between two prices
        """
        return cls.sqrt_price_math.get_amount_0_delta(sqrt_price_a, sqrt_price_b, liquidity)

    @classmethod
    def get_amount_1_delta(cls, sqrt_price_a: int, sqrt_price_b: int, liquidity: int) -> int:
        """
        Returns the signed amount of token 1 corresponding to a signed liquidity delta between two prices
        """
        return cls.sqrt_price_math.get_amount_1_delta(sqrt_price_a, sqrt_price_b, liquidity)

    @classmethod
    def get_fee_and_spacing(cls, init_kwargs: dict) -> tuple[int, int]:
        """
        Returns the fee and tick spacing for a given pool.  If no fee or tick spacing is provided, the default values
        of 3000 and 60 are returned.

        :param init_kwargs:
        :return:
        """
        provided_fee = init_kwargs.get("fee")
        provided_spacing = init_kwargs.get("tick_spacing")

        if provided_fee is None and provided_spacing is None:
            return 3000, 60

        if provided_fee is None and TICK_SPACINGS_TO_FEES.get(provided_spacing) is not None:
            return TICK_SPACINGS_TO_FEES[provided_spacing], provided_spacing

        if provided_spacing is None and FEES_TO_TICK_SPACINGS.get(provided_fee) is not None:
            return provided_fee, FEES_TO_TICK_SPACINGS[provided_fee]

        if provided_fee is not None and provided_spacing is not None:
            if FEES_TO_TICK_SPACINGS.get(provided_fee) != provided_spacing:
                logger.warning(
                    f"Tick spacing & Fee were both specified, but do not match typical values"
                    f"\tFee: {provided_fee}, Tick Spacing: {provided_spacing}"
                )
            return provided_fee, provided_spacing

        raise PoolRevert(
            "Nonstandard tick spacing or fee provided. Please provide a standard value, "
            "or both tick_spacing and fee when using nonstandard values"
        )

    @classmethod
    def compute_swap_step(
        cls,
        sqrt_price_current: int,
        sqrt_price_target: int,
        liquidity: int,
        amount_remaining: int,
        fee_pips: int,
    ) -> SwapComputation:
        """
        Computes the result of swapping some amount in, or some amount out, given the parameters of the swap.
        The fee is taken from the input amount before the curve math is applied, and the resulting price never
        passes sqrt_price_target.

        :param sqrt_price_current: current sqrt price of the pool
        :param sqrt_price_target: price that cannot be exceeded, from which the swap direction is inferred
        :param liquidity: usable liquidity
        :param amount_remaining: how much input (positive) or output (negative) amount is remaining to be swapped
        :param fee_pips: fee taken from the input amount, in hundredths of a bip
        :return: next sqrt price, amount in, amount out, and fee amount of the step
        """
        zero_for_one = sqrt_price_current >= sqrt_price_target
        exact_input = amount_remaining >= 0
        spm = cls.sqrt_price_math
        amount_in, amount_out = 0, 0

        if exact_input:
            amount_remaining_less_fee = cls.full_math.mul_div(
                amount_remaining,
                FEE_DENOMINATOR - fee_pips,
                FEE_DENOMINATOR,
            )
            amount_in = (
                spm.get_amount_0_delta_unsigned(sqrt_price_target, sqrt_price_current, liquidity, True)
                if zero_for_one
                else spm.get_amount_1_delta_unsigned(sqrt_price_current, sqrt_price_target, liquidity, True)
            )
            if amount_remaining_less_fee >= amount_in:
                sqrt_price_next = sqrt_price_target
            else:
                sqrt_price_next = spm.get_next_sqrt_price_from_input(
                    sqrt_price_current,
                    liquidity,
                    amount_remaining_less_fee,
                    zero_for_one,
                )
        else:
            amount_out = (
                spm.get_amount_1_delta_unsigned(sqrt_price_target, sqrt_price_current, liquidity, False)
                if zero_for_one
                else spm.get_amount_0_delta_unsigned(sqrt_price_current, sqrt_price_target, liquidity, False)
            )
            if -amount_remaining >= amount_out:
                sqrt_price_next = sqrt_price_target
            else:
                sqrt_price_next = spm.get_next_sqrt_price_from_output(
                    sqrt_price_current,
                    liquidity,
                    -amount_remaining,
                    zero_for_one,
                )

        max_price_reached = sqrt_price_target == sqrt_price_next

        if zero_for_one:
            if not (max_price_reached and exact_input):
                amount_in = spm.get_amount_0_delta_unsigned(sqrt_price_next, sqrt_price_current, liquidity, True)
            if not (max_price_reached and not exact_input):
                amount_out = spm.get_amount_1_delta_unsigned(sqrt_price_next, sqrt_price_current, liquidity, False)
        else:
            if not (max_price_reached and exact_input):
                amount_in = spm.get_amount_1_delta_unsigned(sqrt_price_current, sqrt_price_next, liquidity, True)
            if not (max_price_reached and not exact_input):
                amount_out = spm.get_amount_0_delta_unsigned(sqrt_price_current, sqrt_price_next, liquidity, False)

        # cap the output amount to not exceed the remaining output amount
        if not exact_input and amount_out > -amount_remaining:
            amount_out = -amount_remaining

        if exact_input and sqrt_price_next != sqrt_price_target:
            # remainder of the input is taken as fee when the target price is not reached
            fee_amount = amount_remaining - amount_in
        else:
            fee_amount = cls.full_math.mul_div_rounding_up(amount_in, fee_pips, FEE_DENOMINATOR - fee_pips)

        return SwapComputation(
            sqrt_price_next=sqrt_price_next,
            amount_in=amount_in,
            amount_out=amount_out,
            fee_amount=fee_amount,
        )
