from dataclasses import dataclass

from nethermind.clamm.exceptions import (
    InvalidTickError,
    LiquidityOverflowError,
    PoolRevert,
    TickMathRevert,
)

MAX_TICK = 887272
MIN_TICK = -MAX_TICK
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342
MIN_SQRT_RATIO = 4295128739
SQRT_RESOLUTION = 96
SQRT_Q96 = 0x1000000000000000000000000
Q128 = 0x100000000000000000000000000000000
UINT_128_MAX = 2**128 - 1
UINT_160_MAX = 2**160 - 1
UINT_256_MAX = 2**256 - 1
INT_256_MAX = 2**255 - 1

FEE_DENOMINATOR = 1_000_000
MAX_FEE = 2**16 - 1
COMMUNITY_FEE_DENOMINATOR = 1_000
MAX_COMMUNITY_FEE = 1_000
MAX_TICK_SPACING = 500
FEE_TRANSFER_FREQUENCY = 8 * 60 * 60

FEES_TO_TICK_SPACINGS = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}

TICK_SPACINGS_TO_FEES = {v: k for k, v in FEES_TO_TICK_SPACINGS.items()}


@dataclass(slots=True)
class SwapComputation:
    """Model to store the results of a swap computation"""

    sqrt_price_next: int
    amount_in: int
    amount_out: int
    fee_amount: int


def check_ticks(cls, tick_lower: int, tick_upper: int, tick_spacing: int | None = None):  # pylint: disable=unused-argument
    """
    Checks that ticks are ordered, within MIN and MAX ticks, and aligned to the tick spacing.
    Raises InvalidTickError if invalid ticks are detected.

    :param tick_lower:
    :param tick_upper:
    :param tick_spacing: if provided, both ticks must be multiples of the tick spacing
    """
    if tick_lower >= tick_upper:
        raise InvalidTickError("tick_lower must be less than tick_upper")
    if tick_lower < MIN_TICK:
        raise InvalidTickError("tick_lower must be greater than MIN_TICK")
    if tick_upper > MAX_TICK:
        raise InvalidTickError("tick_upper must be less than MAX_TICK")
    if tick_spacing is not None and (tick_lower % tick_spacing or tick_upper % tick_spacing):
        raise InvalidTickError(f"Ticks ({tick_lower}, {tick_upper}) are not multiples of tick spacing {tick_spacing}")


def check_sqrt_price(cls, sqrt_price: int):  # pylint: disable=unused-argument
    """
    Checks that sqrt_price can be used as a pool price.  Raises TickMathRevert if the price is below MIN_SQRT_RATIO
    or at/above MAX_SQRT_RATIO.

    :param sqrt_price:
    """
    if not MIN_SQRT_RATIO <= sqrt_price < MAX_SQRT_RATIO:
        raise TickMathRevert(f"sqrt_price must be between MIN_SQRT_RATIO and MAX_SQRT_RATIO: {sqrt_price}")


def check_tick_spacing(cls, tick_spacing: int):  # pylint: disable=unused-argument
    """Checks that the tick spacing is between 1 and MAX_TICK_SPACING"""
    if not 0 < tick_spacing <= MAX_TICK_SPACING:
        raise PoolRevert(f"Invalid tick spacing: {tick_spacing}")


def get_max_liquidity_per_tick(cls, tick_spacing: int) -> int:  # pylint: disable=unused-argument
    """
    Returns the maximum liquidity per tick.  This is calculated by dividing the UINT_128_MAX by the number of ticks
    that can exist in the range of ticks for a given tick spacing.

    :param tick_spacing:
    :return:
    """
    max_tick = MAX_TICK - MAX_TICK % tick_spacing
    number_of_ticks = (max_tick * 2) // tick_spacing + 1
    return UINT_128_MAX // number_of_ticks


def add_delta(liquidity: int, liquidity_delta: int) -> int:
    """
    Adds a signed liquidity delta to an unsigned liquidity value.  Raises LiquidityOverflowError if the result
    underflows zero or overflows a uint128.
    """
    result = liquidity + liquidity_delta
    if result < 0:
        raise LiquidityOverflowError(f"Liquidity Underflow: {liquidity} + {liquidity_delta}")
    if result > UINT_128_MAX:
        raise LiquidityOverflowError(f"Liquidity Overflow: {liquidity} + {liquidity_delta}")
    return result
