import math

from nethermind.clamm.math.shared import MAX_TICK as ABSOLUTE_MAX_TICK
from nethermind.clamm.math.shared import MIN_TICK as ABSOLUTE_MIN_TICK
from nethermind.clamm.pool import AlgebraPool

MIN_TICK = {spacing: math.ceil(ABSOLUTE_MIN_TICK / spacing) * spacing for spacing in (1, 10, 60, 200)}
MAX_TICK = {spacing: math.floor(ABSOLUTE_MAX_TICK / spacing) * spacing for spacing in (1, 10, 60, 200)}


def encode_sqrt_price(reserve_1: int, reserve_0: int) -> int:
    """Returns the Q64.96 sqrt price of reserve_1 / reserve_0, rounded down"""
    return math.isqrt((reserve_1 << 192) // reserve_0)


def decode_sqrt_price(sqrt_price: int) -> float:
    return (sqrt_price / 2**96) ** 2


def pay_from(pool: AlgebraPool, payer):
    """Returns a settlement callback that transfers every positive amount from payer to the pool"""

    def _callback(amount_0: int, amount_1: int, _data):
        if amount_0 > 0:
            pool.immutables.token_0.transfer(payer, pool.immutables.pool_address, amount_0)
        if amount_1 > 0:
            pool.immutables.token_1.transfer(payer, pool.immutables.pool_address, amount_1)

    return _callback


def pool_balances(pool: AlgebraPool) -> tuple[int, int]:
    return (
        pool.immutables.token_0.balance_of(pool.immutables.pool_address),
        pool.immutables.token_1.balance_of(pool.immutables.pool_address),
    )


def assert_bitmap_matches_ticks(pool: AlgebraPool):
    """Every tick with gross liquidity is set in the bitmap, and every set bit has gross liquidity"""
    spacing = pool.ticks.tick_spacing
    for index, tick in pool.ticks.ticks.items():
        assert pool.ticks.bitmap.is_initialized(index, spacing) == (tick.liquidity_gross > 0)

    for word_pos, word in pool.ticks.bitmap.words.items():
        for bit_pos in range(256):
            if word & (1 << bit_pos):
                tick_index = ((word_pos << 8) + bit_pos) * spacing
                assert pool.ticks.get(tick_index).liquidity_gross > 0
