from nethermind.clamm.pool import AlgebraPool
from nethermind.clamm.factory import PoolFactory
from nethermind.clamm.tokens.erc_20 import ERC20Token

__all__ = ["AlgebraPool", "PoolFactory", "ERC20Token"]
