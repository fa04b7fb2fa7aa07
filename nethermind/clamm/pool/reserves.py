import logging
from dataclasses import dataclass

from eth_typing import ChecksumAddress

from nethermind.clamm.exceptions import PoolRevert
from nethermind.clamm.math import PoolMath
from nethermind.clamm.math.shared import FEE_TRANSFER_FREQUENCY

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("pool").getChild("reserves")


@dataclass(slots=True)
class Reserves:
    """Token amounts tracked by a pool, including community fees that have not yet been sent to the vault"""

    reserve_0: int = 0
    reserve_1: int = 0
    community_fee_pending_0: int = 0
    community_fee_pending_1: int = 0
    last_fee_transfer_timestamp: int = 0
    community_vault: ChecksumAddress | None = None


class ReservesManager:
    """
    Reconciles the reserves a pool believes it holds with the balances reported by the token ledgers.

    Tokens can reach a pool outside of mint, swap and flash settlements, ie as donations or direct transfers.
    These surpluses are distributed to active liquidity providers as fee growth.  If no liquidity is active, the
    surplus is absorbed into the reserves.
    """

    math = PoolMath

    def __init__(self, reserves: Reserves | None = None):
        self.reserves = reserves if reserves is not None else Reserves()

    @property
    def reserve_0(self) -> int:
        return self.reserves.reserve_0

    @property
    def reserve_1(self) -> int:
        return self.reserves.reserve_1

    def update_reserves(self, balance_0: int, balance_1: int, liquidity: int) -> tuple[int, int, int, int]:
        """
        Synchronizes cached reserves with observed balances.

        :param balance_0: token_0 balance of the pool reported by the token ledger
        :param balance_1: token_1 balance of the pool reported by the token ledger
        :param liquidity: active liquidity of the pool
        :return: (balance_0, balance_1, fee_growth_delta_0, fee_growth_delta_1)
        """
        if balance_0 > self.math.UINT_128_MAX or balance_1 > self.math.UINT_128_MAX:
            raise PoolRevert(f"Pool balances ({balance_0}, {balance_1}) overflow uint128")

        fee_growth_delta_0 = self._reconcile(0, balance_0, liquidity)
        fee_growth_delta_1 = self._reconcile(1, balance_1, liquidity)

        return balance_0, balance_1, fee_growth_delta_0, fee_growth_delta_1

    def _reconcile(self, token_index: int, balance: int, liquidity: int) -> int:
        reserve_attr = f"reserve_{token_index}"
        reserve = getattr(self.reserves, reserve_attr)

        if balance == reserve:
            return 0

        setattr(self.reserves, reserve_attr, balance)

        if balance < reserve:
            logger.warning(f"Token {token_index} balance {balance} below tracked reserve {reserve}.  Re-syncing")
            return 0

        surplus = balance - reserve
        if liquidity == 0:
            logger.debug(f"Absorbed surplus of {surplus} token {token_index} without active liquidity")
            return 0

        logger.debug(f"Distributing surplus of {surplus} token {token_index} to active liquidity")
        return self.math.full_math.mul_div(surplus, self.math.Q128, liquidity)

    def change_reserves(
        self,
        delta_0: int,
        delta_1: int,
        community_fee_0: int = 0,
        community_fee_1: int = 0,
    ):
        """
        Applies signed deltas to the reserves and accrues community fees.  Community fees are part of the reserves
        until they are sent to the vault.
        """
        reserve_0 = self.reserves.reserve_0 + delta_0
        reserve_1 = self.reserves.reserve_1 + delta_1

        if reserve_0 < 0 or reserve_1 < 0:
            raise PoolRevert(f"Reserves cannot be negative: ({reserve_0}, {reserve_1})")
        if reserve_0 > self.math.UINT_128_MAX or reserve_1 > self.math.UINT_128_MAX:
            raise PoolRevert(f"Reserves ({reserve_0}, {reserve_1}) overflow uint128")

        self.reserves.reserve_0 = reserve_0
        self.reserves.reserve_1 = reserve_1
        self.reserves.community_fee_pending_0 += community_fee_0
        self.reserves.community_fee_pending_1 += community_fee_1

    def pop_community_fee(self, timestamp: int) -> tuple[int, int]:
        """
        Releases pending community fees when a vault is configured and FEE_TRANSFER_FREQUENCY seconds have passed
        since the last transfer.  Released amounts are removed from the reserves, and the caller is responsible for
        transferring them to the vault.

        :return: (token_0 amount, token_1 amount) to send to the community vault
        """
        if self.reserves.community_vault is None:
            return 0, 0
        if timestamp - self.reserves.last_fee_transfer_timestamp < FEE_TRANSFER_FREQUENCY:
            return 0, 0

        # reserves may have been re-synced below the pending fees
        amount_0 = min(self.reserves.community_fee_pending_0, self.reserves.reserve_0)
        amount_1 = min(self.reserves.community_fee_pending_1, self.reserves.reserve_1)
        self.reserves.last_fee_transfer_timestamp = timestamp

        if amount_0 == 0 and amount_1 == 0:
            return 0, 0

        self.reserves.community_fee_pending_0, self.reserves.community_fee_pending_1 = 0, 0
        self.change_reserves(-amount_0, -amount_1)
        logger.info(f"Releasing community fees ({amount_0}, {amount_1}) to {self.reserves.community_vault}")

        return amount_0, amount_1
