import random
from typing import Literal

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

ZERO_ADDRESS = to_checksum_address("0x0000000000000000000000000000000000000000")


def random_address() -> ChecksumAddress:
    """
    Generate a random 20 byte ChecksumAddress
    :return: ChecksumAddress
    """
    return to_checksum_address(random.randbytes(20).hex())


def uint_over_under_flow(value: int, precision: Literal[128, 160, 256]) -> int:
    """
    Handle uint over/underflow.  Values are reduced modulo 2**precision, so a value that exceeds the max size of
    the uint wraps around and starts back at 0, and a negative value wraps around from the max.

    :param value: Number to wrap
    :param precision: bits of precision
    :return: within range uint
    """
    return value % (1 << precision)


def wrapping_add(value_a: int, value_b: int, precision: Literal[128, 160, 256] = 256) -> int:
    """
    Adds two unsigned integers modulo 2**precision.  Fee growth accumulators are allowed to wrap, and every
    difference taken between them is only meaningful modulo the accumulator width.
    """
    return uint_over_under_flow(value_a + value_b, precision)


def wrapping_sub(value_a: int, value_b: int, precision: Literal[128, 160, 256] = 256) -> int:
    """Subtracts value_b from value_a modulo 2**precision"""
    return uint_over_under_flow(value_a - value_b, precision)
