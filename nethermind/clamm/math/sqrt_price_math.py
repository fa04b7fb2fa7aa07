from nethermind.clamm.exceptions import SqrtPriceMathRevert

from .full_math import FullMathModule
from .shared import (
    INT_256_MAX,
    SQRT_Q96,
    SQRT_RESOLUTION,
    UINT_160_MAX,
    UINT_256_MAX,
)


class SqrtPriceMathModule:
    """
    Math module for calculating sqrt prices & liquidity amounts.  Every function rounds in the direction that
    favors the pool: amounts owed to the pool round up, amounts paid by the pool round down.
    """

    full_math = FullMathModule

    @classmethod
    def get_next_sqrt_price_from_amount_0_rounding_up(
        cls,
        sqrt_price: int,
        liquidity: int,
        amount: int,
        add: bool,
    ) -> int:
        """
        Returns the next sqrt price given a delta of token 0.  Always rounds up, so the price moves far enough
        when adding token 0 and not too far when removing token 0.

        :param sqrt_price: starting sqrt price
        :param liquidity: amount of usable liquidity
        :param amount: amount of token 0 to add or remove from virtual reserves
        :param add: whether to add or remove the amount of token 0
        :return: next sqrt price
        """
        if amount == 0:
            return sqrt_price

        numerator_1 = liquidity << SQRT_RESOLUTION
        product = amount * sqrt_price

        if add:
            if product <= UINT_256_MAX:
                denominator = numerator_1 + product
                if denominator <= UINT_256_MAX:
                    return cls.full_math.mul_div_rounding_up(numerator_1, sqrt_price, denominator)

            return cls.full_math.div_rounding_up(numerator_1, (numerator_1 // sqrt_price) + amount)

        if product > UINT_256_MAX or numerator_1 <= product:
            raise SqrtPriceMathRevert("Removing token 0 would move price past zero")

        sqrt_price_next = cls.full_math.mul_div_rounding_up(numerator_1, sqrt_price, numerator_1 - product)
        if sqrt_price_next > UINT_160_MAX:
            raise SqrtPriceMathRevert("UINT_160_MAX Overflow")
        return sqrt_price_next

    @classmethod
    def get_next_sqrt_price_from_amount_1_rounding_down(
        cls,
        sqrt_price: int,
        liquidity: int,
        amount: int,
        add: bool,
    ) -> int:
        """
        Returns the next sqrt price given a delta of token 1.  Always rounds down.

        :param sqrt_price: starting sqrt price
        :param liquidity: amount of usable liquidity
        :param amount: amount of token 1 to add or remove from virtual reserves
        :param add: whether to add or remove the amount of token 1
        :return: next sqrt price
        """
        if add:
            quotient = (
                (amount << SQRT_RESOLUTION) // liquidity
                if amount <= UINT_160_MAX
                else cls.full_math.mul_div(amount, SQRT_Q96, liquidity)
            )
            if sqrt_price + quotient > UINT_160_MAX:
                raise SqrtPriceMathRevert("UINT_160_MAX Overflow")
            return sqrt_price + quotient

        quotient = (
            cls.full_math.div_rounding_up(amount << SQRT_RESOLUTION, liquidity)
            if amount <= UINT_160_MAX
            else cls.full_math.mul_div_rounding_up(amount, SQRT_Q96, liquidity)
        )

        if sqrt_price <= quotient:
            raise SqrtPriceMathRevert("Sqrt Price cannot be less than quotient")
        return sqrt_price - quotient

    @classmethod
    def get_next_sqrt_price_from_input(
        cls,
        sqrt_price: int,
        liquidity: int,
        amount_in: int,
        zero_for_one: bool,
    ) -> int:
        """
        Returns the next sqrt price given an input amount of token 0 or token 1

        :param sqrt_price:
        :param liquidity:
        :param amount_in:
        :param zero_for_one:
        :return:
        """
        if sqrt_price <= 0 or liquidity <= 0:
            raise SqrtPriceMathRevert("sqrt_price and liquidity must be greater than 0")

        if zero_for_one:
            return cls.get_next_sqrt_price_from_amount_0_rounding_up(sqrt_price, liquidity, amount_in, True)
        return cls.get_next_sqrt_price_from_amount_1_rounding_down(sqrt_price, liquidity, amount_in, True)

    @classmethod
    def get_next_sqrt_price_from_output(
        cls,
        sqrt_price: int,
        liquidity: int,
        amount_out: int,
        zero_for_one: bool,
    ) -> int:
        """
        Returns the next sqrt price given an output amount of token 0 or token 1

        :param sqrt_price:
        :param liquidity:
        :param amount_out:
        :param zero_for_one:
        :return:
        """
        if sqrt_price <= 0 or liquidity <= 0:
            raise SqrtPriceMathRevert("sqrt_price and liquidity must be greater than 0")

        if zero_for_one:
            return cls.get_next_sqrt_price_from_amount_1_rounding_down(sqrt_price, liquidity, amount_out, False)
        return cls.get_next_sqrt_price_from_amount_0_rounding_up(sqrt_price, liquidity, amount_out, False)

    @classmethod
    def get_amount_0_delta_unsigned(
        cls,
        sqrt_price_a: int,
        sqrt_price_b: int,
        liquidity: int,
        round_up: bool,
    ) -> int:
        """
        Returns the amount of token 0 between two prices: liquidity / sqrt(lower) - liquidity / sqrt(upper)
        """
        if sqrt_price_a > sqrt_price_b:
            sqrt_price_a, sqrt_price_b = sqrt_price_b, sqrt_price_a

        if sqrt_price_a <= 0:
            raise SqrtPriceMathRevert("sqrt_price_a must be greater than 0")

        numerator_1 = liquidity << SQRT_RESOLUTION
        numerator_2 = sqrt_price_b - sqrt_price_a

        if round_up:
            return cls.full_math.div_rounding_up(
                cls.full_math.mul_div_rounding_up(numerator_1, numerator_2, sqrt_price_b),
                sqrt_price_a,
            )
        return cls.full_math.mul_div(numerator_1, numerator_2, sqrt_price_b) // sqrt_price_a

    @classmethod
    def get_amount_1_delta_unsigned(
        cls,
        sqrt_price_a: int,
        sqrt_price_b: int,
        liquidity: int,
        round_up: bool,
    ) -> int:
        """
        Returns the amount of token 1 between two prices: liquidity * (sqrt(upper) - sqrt(lower))
        """
        if sqrt_price_a > sqrt_price_b:
            sqrt_price_a, sqrt_price_b = sqrt_price_b, sqrt_price_a

        if round_up:
            return cls.full_math.mul_div_rounding_up(liquidity, sqrt_price_b - sqrt_price_a, SQRT_Q96)
        return cls.full_math.mul_div(liquidity, sqrt_price_b - sqrt_price_a, SQRT_Q96)

    @classmethod
    def get_amount_0_delta(cls, sqrt_price_a: int, sqrt_price_b: int, liquidity: int) -> int:
        """
        Returns the signed token 0 delta for a signed liquidity delta.  Positive liquidity (deposits) rounds up,
        negative liquidity (withdrawals) rounds toward zero.
        """
        if liquidity < 0:
            return -cls._to_int_256(cls.get_amount_0_delta_unsigned(sqrt_price_a, sqrt_price_b, -liquidity, False))
        return cls._to_int_256(cls.get_amount_0_delta_unsigned(sqrt_price_a, sqrt_price_b, liquidity, True))

    @classmethod
    def get_amount_1_delta(cls, sqrt_price_a: int, sqrt_price_b: int, liquidity: int) -> int:
        """
        Returns the signed token 1 delta for a signed liquidity delta.  Positive liquidity (deposits) rounds up,
        negative liquidity (withdrawals) rounds toward zero.
        """
        if liquidity < 0:
            return -cls._to_int_256(cls.get_amount_1_delta_unsigned(sqrt_price_a, sqrt_price_b, -liquidity, False))
        return cls._to_int_256(cls.get_amount_1_delta_unsigned(sqrt_price_a, sqrt_price_b, liquidity, True))

    @staticmethod
    def _to_int_256(value: int) -> int:
        if value > INT_256_MAX:
            raise SqrtPriceMathRevert(f"{value} overflows int256")
        return value
