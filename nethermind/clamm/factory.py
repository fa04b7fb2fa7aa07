import logging

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from nethermind.clamm.exceptions import PoolRevert, UnauthorizedError
from nethermind.clamm.pool import events
from nethermind.clamm.pool.main import AlgebraPool
from nethermind.clamm.tokens.erc_20 import ERC20Token
from nethermind.clamm.types import FeeConfiguration, PluginConfig, PoolDefaults
from nethermind.clamm.utils import ZERO_ADDRESS

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("factory")


class PoolFactory:
    """
    Pool Factory class for creating pools.  The factory is the administrative authority of every pool it creates,
    and stores the default configuration applied to new pools.

    :param owner: address of the factory owner.  The owner is the administrator of all pools of the factory
    :param defaults: default fee, community fee, tick spacing and plugin config for new pools
    :param base_fee_configuration: adaptive fee configuration published to dynamic fee plugins
    """

    owner: ChecksumAddress
    """ Current owner of the factory.  Set to the zero address when ownership is renounced """

    pending_owner: ChecksumAddress | None
    """ Address allowed to accept ownership.  Ownership transfers take effect once accepted """

    farming_address: ChecksumAddress | None
    """ Address allowed to attach crossing observers (incentives) to pools """

    defaults: PoolDefaults

    base_fee_configuration: FeeConfiguration

    pools: dict[tuple[ChecksumAddress, ChecksumAddress], AlgebraPool]
    """
    Mapping of sorted token address pairs to pools.  Use :meth:`pool_by_pair` to query pools in either token order
    """

    events: list[events.Event]

    block_number: int
    """ Block number attached to factory events """

    def __init__(
        self,
        owner: ChecksumAddress | str,
        defaults: PoolDefaults | None = None,
        base_fee_configuration: FeeConfiguration | None = None,
        block_number: int = 0,
    ):
        self.owner = to_checksum_address(owner)
        self.pending_owner = None
        self.farming_address = None
        self.defaults = defaults if defaults is not None else PoolDefaults()
        self.base_fee_configuration = (
            base_fee_configuration if base_fee_configuration is not None else FeeConfiguration()
        )
        self.pools = {}
        self.events = []
        self.block_number = block_number

    def __repr__(self):
        return f"PoolFactory(owner={self.owner}, pools={len(self.pools)})"

    def _emit(self, event: events.Event):
        self.events.append(event)
        logger.info(f"Factory Event: {event.to_dict()}")

    def _only_owner(self, caller: ChecksumAddress):
        if caller != self.owner or self.owner == ZERO_ADDRESS:
            raise UnauthorizedError(f"Caller {caller} is not the factory owner")

    def is_administrator(self, caller: ChecksumAddress) -> bool:
        """Returns True if caller may change the configuration of pools created by this factory"""
        return caller == self.owner and self.owner != ZERO_ADDRESS

    # -----------------------------------------------------------------------------------------------------------
    #  Pool Registry
    # -----------------------------------------------------------------------------------------------------------

    def create_pool(self, token_a: ERC20Token, token_b: ERC20Token, **kwargs) -> AlgebraPool:
        """
        Creates an uninitialized pool for a pair of tokens.  Tokens are sorted by address, so a pool can be created
        and queried with the tokens in either order.  The default fee, community fee, tick spacing and plugin config
        of the factory are applied to the pool unless they are passed as keyword arguments.

        :param token_a: one of the two tokens of the pool
        :param token_b: the other token of the pool
        :param kwargs: extra keyword arguments passed to :class:`AlgebraPool`, ie initial_timestamp
        :return: the created pool
        """
        if token_a.address == token_b.address:
            raise PoolRevert("Cannot create a pool with identical tokens")

        token_0, token_1 = sorted((token_a, token_b), key=lambda token: int(token.address, 16))
        if token_0.address == ZERO_ADDRESS:
            raise PoolRevert("Cannot create a pool with the zero address")

        if (token_0.address, token_1.address) in self.pools:
            raise PoolRevert(f"Pool already exists for {token_0.symbol} <-> {token_1.symbol}")

        kwargs.setdefault("fee", self.defaults.fee)
        kwargs.setdefault("tick_spacing", self.defaults.tick_spacing)
        kwargs.setdefault("community_fee", self.defaults.community_fee)
        kwargs.setdefault("plugin_config", self.defaults.plugin_config)
        kwargs.setdefault("initial_block", self.block_number)

        pool = AlgebraPool(token_0=token_0, token_1=token_1, factory=self, **kwargs)
        self.pools[(token_0.address, token_1.address)] = pool

        self._emit(events.Pool(self.block_number, token_0.address, token_1.address, pool.immutables.pool_address))
        return pool

    def pool_by_pair(self, token_a: ChecksumAddress | str, token_b: ChecksumAddress | str) -> AlgebraPool | None:
        """Returns the pool for a pair of token addresses in either order, or None if no pool exists"""
        address_a, address_b = to_checksum_address(token_a), to_checksum_address(token_b)
        return self.pools.get((address_a, address_b)) or self.pools.get((address_b, address_a))

    # -----------------------------------------------------------------------------------------------------------
    #  Ownership
    # -----------------------------------------------------------------------------------------------------------

    def set_owner(self, caller: ChecksumAddress, new_owner: ChecksumAddress):
        """Starts an ownership transfer.  The new owner must call :meth:`accept_ownership`"""
        self._only_owner(caller)
        if new_owner == self.owner:
            raise PoolRevert("New owner is already the owner")
        self.pending_owner = new_owner

    def accept_ownership(self, caller: ChecksumAddress):
        """Completes an ownership transfer started by :meth:`set_owner`"""
        if self.pending_owner is None or caller != self.pending_owner:
            raise UnauthorizedError(f"Caller {caller} is not the pending owner")
        self.owner, self.pending_owner = caller, None
        self._emit(events.Owner(self.block_number, caller))

    def renounce_ownership(self, caller: ChecksumAddress):
        """Sets the owner to the zero address.  Pools of the factory can no longer be administered"""
        self._only_owner(caller)
        self.owner, self.pending_owner = ZERO_ADDRESS, None
        self._emit(events.Owner(self.block_number, ZERO_ADDRESS))

    # -----------------------------------------------------------------------------------------------------------
    #  Configuration
    # -----------------------------------------------------------------------------------------------------------

    def set_farming_address(self, caller: ChecksumAddress, farming_address: ChecksumAddress):
        self._only_owner(caller)
        if farming_address == self.farming_address:
            raise PoolRevert("Farming address is already set")
        self.farming_address = farming_address
        self._emit(events.FarmingAddress(self.block_number, farming_address))

    def set_default_community_fee(self, caller: ChecksumAddress, community_fee: int):
        self._only_owner(caller)
        if community_fee == self.defaults.community_fee:
            raise PoolRevert("Community fee is already set")
        self.defaults = PoolDefaults(**{**self.defaults.model_dump(), "community_fee": community_fee})
        self._emit(events.DefaultCommunityFee(self.block_number, community_fee))

    def set_default_tick_spacing(self, caller: ChecksumAddress, tick_spacing: int):
        self._only_owner(caller)
        if tick_spacing == self.defaults.tick_spacing:
            raise PoolRevert("Tick spacing is already set")
        self.defaults = PoolDefaults(**{**self.defaults.model_dump(), "tick_spacing": tick_spacing})
        self._emit(events.DefaultTickSpacing(self.block_number, tick_spacing))

    def set_default_plugin_config(self, caller: ChecksumAddress, plugin_config: PluginConfig):
        self._only_owner(caller)
        self.defaults = PoolDefaults(**{**self.defaults.model_dump(), "plugin_config": plugin_config})

    def set_base_fee_configuration(self, caller: ChecksumAddress, configuration: FeeConfiguration):
        """
        Replaces the adaptive fee configuration.  The configuration is validated when the model is created, so an
        invalid configuration never reaches the factory.
        """
        self._only_owner(caller)
        self.base_fee_configuration = configuration
        self._emit(events.FeeConfigurationUpdate(self.block_number, **configuration.model_dump()))
