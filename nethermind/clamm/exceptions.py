class PoolRevert(Exception):
    """
    Pool Revert Exception is raised when a pool action violates a precondition or an invariant of the pool.
    Every failure raised by a pool operation is a subclass of this exception, and the pool state is restored to
    its value before the operation started.  The following conditions will result in this error being raised:

        * Ticks exceed the maximum tick value of 887272 or the minimum tick value of -887272
        * Ticks are not multiples of the pool tick spacing, or tick_lower >= tick_upper
        * uint values are set to a negative value
        * operations cause uints and ints to overflow or underflow
        * Minting positions with zero liquidity
        * Executing Swaps with invalid sqrt_price bounds or zero input

    """


class AlreadyInitializedError(PoolRevert):
    """Raised when initialize() is called on a pool that already has a price"""


class NotInitializedError(PoolRevert):
    """Raised when an operation requiring a price is called before initialize()"""


class InvalidTickError(PoolRevert):
    """Raised when tick bounds are misaligned with the tick spacing, out of range, or incorrectly ordered"""


class ZeroLiquidityError(PoolRevert):
    """Raised when minting zero liquidity, or when poking a position that holds no liquidity"""


class LiquidityOverflowError(PoolRevert):
    """
    Raised when liquidity would exceed the maximum liquidity per tick, overflow a uint128, or underflow below zero
    """


class InsufficientLiquidityError(PoolRevert):
    """Raised when a swap cannot exchange any tokens because no liquidity is active along the swapped price range"""


class InsufficientInputError(PoolRevert):
    """
    Raised when a settlement callback delivers fewer tokens than the operation requires.  Tokens that were already
    sent out before the shortfall was detected are not recovered.
    """


class ReentrancyError(PoolRevert):
    """Raised when a mutating pool method is called while another operation on the same pool is in progress"""


class UnauthorizedError(PoolRevert):
    """Raised when a privileged pool or factory method is called by an address without the required role"""


class PluginError(PoolRevert):
    """
    Raised when a plugin hook raises an unexpected exception.  The original exception is chained as the
    ``__cause__`` of this error.
    """


class PluginAcknowledgementError(PluginError):
    """
    Raised when a plugin hook returns a missing or incorrect acknowledgement.  Plugins must return a
    :class:`~nethermind.clamm.pool.plugins.HookAck` naming the hook that was processed.
    """


class InsufficientBalanceError(PoolRevert):
    """Raised when a token transfer exceeds the balance of the sender"""


class FullMathRevert(PoolRevert):
    """
    Raised when the result of (a * b) / c overflows the maximum value of a uint256, or when dividing by zero.
    """


class TickMathRevert(PoolRevert):
    """
    Raised when a tick value is out of bounds, or a sqrt_price exceeds the maximum sqrt_price
    """


class SqrtPriceMathRevert(PoolRevert):
    """
    Raised when a sqrt_price value is out of bounds, or the inputs to a price calculation are
    invalid, ie swapping with zero liquidity or moving the price past zero
    """
