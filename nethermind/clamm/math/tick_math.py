import math

from nethermind.clamm.exceptions import TickMathRevert

from .shared import MAX_SQRT_RATIO, MAX_TICK, MIN_SQRT_RATIO, MIN_TICK

# sqrt(1.0001 ** -(2 ** i)) as Q128.128 fixed point numbers
_TICK_RATIO_MULTIPLIERS = (
    0xFFFCB933BD6FAD37AA2D162D1A594001,
    0xFFF97272373D413259A46990580E213A,
    0xFFF2E50F5F656932EF12357CF3C7FDCC,
    0xFFE5CACA7E10E4E61C3624EAA0941CD0,
    0xFFCB9843D60F6159C9DB58835C926644,
    0xFF973B41FA98C081472E6896DFB254C0,
    0xFF2EA16466C96A3843EC78B326B52861,
    0xFE5DEE046A99A2A811C461F1969C3053,
    0xFCBE86C7900A88AEDCFFC83B479AA3A4,
    0xF987A7253AC413176F2B074CF7815E54,
    0xF3392B0822B70005940C7A398E4B70F3,
    0xE7159475A2C29B7443B29C7FA6E889D9,
    0xD097F3BDFD2022B8845AD8F792AA5825,
    0xA9F746462D870FDF8A65DC1F90E061E5,
    0x70D869A156D2A1B890BB3DF62BAF32F7,
    0x31BE135F97D08FD981231505542FCFA6,
    0x9AA508B5B7A84E1C677DE54F3E99BC9,
    0x5D6AF8DEDB81196699C329225EE604,
    0x2216E584F5FA1EA926041BEDFE98,
    0x48A170391F7DC42444E8FA2,
)


class TickMathModule:
    """
    Module for computing sqrt prices & ticks for concentrated liquidity pools
    """

    @classmethod
    def get_sqrt_ratio_at_tick(cls, tick: int) -> int:
        """
        Returns the sqrt ratio as a Q64.96 fixed point number corresponding to the given tick.
        Computes the following formula: sqrt(1.0001^tick) * 2^96, rounded up to the next Q64.96 value.

        :param int tick: Tick to get sqrt ratio at.
        :return: sqrt_ratio encoded as a Q64.96 fixed point number
        """
        if tick > MAX_TICK or tick < MIN_TICK:
            raise TickMathRevert(f"Tick outside of min/max bounds.  Tick: {tick}")

        abs_tick = abs(tick)
        ratio = 1 << 128
        for bit, multiplier in enumerate(_TICK_RATIO_MULTIPLIERS):
            if abs_tick & (1 << bit):
                ratio = (ratio * multiplier) >> 128

        if tick > 0:
            ratio = ((1 << 256) - 1) // ratio

        return (ratio >> 32) + (1 if ratio % (1 << 32) else 0)

    @classmethod
    def get_tick_at_sqrt_ratio(cls, sqrt_ratio: int) -> int:
        """
        Returns the greatest tick whose sqrt ratio is less than or equal to sqrt_ratio.

        :param sqrt_ratio: Sqrt(token_1/token_0) price encoded as Q64.96 fixed point number
        :return: tick corresponding to the given sqrt ratio
        """
        if sqrt_ratio >= MAX_SQRT_RATIO or sqrt_ratio < MIN_SQRT_RATIO:
            raise TickMathRevert(f"Sqrt ratio outside of min/max bounds.  Sqrt ratio: {sqrt_ratio}")

        # Floating point estimate is within a couple of ticks, and is corrected with exact comparisons
        estimate = math.floor(2 * math.log(sqrt_ratio / 2**96, 1.0001))
        tick = max(MIN_TICK, min(MAX_TICK - 1, estimate))

        while tick > MIN_TICK and cls.get_sqrt_ratio_at_tick(tick) > sqrt_ratio:
            tick -= 1
        while tick < MAX_TICK - 1 and cls.get_sqrt_ratio_at_tick(tick + 1) <= sqrt_ratio:
            tick += 1

        return tick
