import logging
from typing import Any

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from nethermind.clamm.exceptions import InsufficientBalanceError, PoolRevert
from nethermind.clamm.math.shared import FEE_DENOMINATOR
from nethermind.clamm.utils import random_address

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("tokens")


class ERC20Token:
    """
    Class for representing ERC20 Tokens.  Tracks balances in memory, and is the asset ledger that pools settle
    mints, swaps, flashes and collects against.

    Can be used to convert raw token amounts into human-readable amounts.
    """

    name: str
    """
        UTF-8 Name of the token
    """

    symbol: str
    """
        Token Symbol
    """

    decimals: int
    """
        Number of decimals of the token
    """

    address: ChecksumAddress
    """
        Checksum Address of the Token
    """

    balances: dict[ChecksumAddress, int]
    """
        Raw token balance of every holder
    """

    transfer_fee_pips: int
    """
        Fee charged on every transfer in hundredths of a bip.  The fee is burned, so the recipient receives less
        than the amount sent.  Used to model fee-on-transfer tokens
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        decimals: int,
        address: ChecksumAddress | str,
        transfer_fee_pips: int = 0,
        balances: dict[str, int] | None = None,
    ) -> None:
        if not 0 <= transfer_fee_pips < FEE_DENOMINATOR:
            raise PoolRevert(f"Invalid transfer fee: {transfer_fee_pips}")

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.address = to_checksum_address(address)
        self.transfer_fee_pips = transfer_fee_pips
        self.balances = {to_checksum_address(holder): amount for holder, amount in (balances or {}).items()}

    @classmethod
    def test_token(cls, symbol: str, decimals: int = 18, **kwargs) -> "ERC20Token":
        """Creates a token with a random address"""
        return ERC20Token(
            name=f"Test Token {symbol}",
            symbol=symbol,
            decimals=decimals,
            address=random_address(),
            **kwargs,
        )

    @classmethod
    def from_dict(cls, token_params: dict[str, Any]) -> "ERC20Token":
        """
        Initialize ERC20Token from dictionary.  Dictionary must contain keys: name, symbol, decimals, and address.
        Balances and transfer_fee_pips are optional.

        :param dict token_params:
            Dictionary containing token parameters
        :return: :class:`~nethermind.clamm.tokens.erc_20.ERC20Token`
        """
        return ERC20Token(
            name=token_params["name"],
            symbol=token_params["symbol"],
            decimals=token_params["decimals"],
            address=token_params["address"],
            transfer_fee_pips=token_params.get("transfer_fee_pips", 0),
            balances=token_params.get("balances"),
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Returns dictionary containing token parameters and balances.  Typically used for JSON encoding ERC20 tokens

        :return:
        """
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "address": self.address,
            "transfer_fee_pips": self.transfer_fee_pips,
            "balances": dict(self.balances),
        }

    def balance_of(self, holder: ChecksumAddress) -> int:
        """Returns the raw token balance of holder"""
        return self.balances.get(holder, 0)

    @property
    def total_supply(self) -> int:
        return sum(self.balances.values())

    def mint(self, recipient: ChecksumAddress, amount: int):
        """Creates amount tokens and credits them to recipient"""
        if amount < 0:
            raise PoolRevert(f"Cannot mint negative amount: {amount}")
        self.balances[recipient] = self.balance_of(recipient) + amount

    def transfer(self, sender: ChecksumAddress, recipient: ChecksumAddress, amount: int) -> int:
        """
        Transfers amount tokens from sender to recipient.

        :param sender: address debited
        :param recipient: address credited
        :param amount: raw amount debited from the sender
        :return: raw amount credited to the recipient after the transfer fee
        """
        if amount < 0:
            raise PoolRevert(f"Cannot transfer negative amount: {amount}")

        sender_balance = self.balance_of(sender)
        if sender_balance < amount:
            raise InsufficientBalanceError(
                f"{sender} has insufficient {self.symbol} balance: {sender_balance} < {amount}"
            )

        received = amount - amount * self.transfer_fee_pips // FEE_DENOMINATOR

        self.balances[sender] = sender_balance - amount
        self.balances[recipient] = self.balance_of(recipient) + received

        logger.debug(f"Transferred {self.human_readable(amount)} from {sender} to {recipient}")
        return received

    def convert_decimals(self, raw_token_amount: int) -> float:
        """
        Divides raw token amounts by token decimals.

        :param int raw_token_amount:
            Raw token amount
        :return:
            Token amount adjusted by decimals
        """
        return raw_token_amount / 10**self.decimals

    def human_readable(self, raw_token_amount: int) -> str:
        """
        Converts raw token amount to human-readable string containing the correct decimals and the token symbol.
        """
        return f"{self.convert_decimals(raw_token_amount)} {self.symbol}"

    def __repr__(self) -> str:
        return f"ERC20Token({self.symbol} @ {self.address})"
