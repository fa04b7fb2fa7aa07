import pytest

from nethermind.clamm.factory import PoolFactory
from nethermind.clamm.pool import AlgebraPool
from nethermind.clamm.tokens.erc_20 import ERC20Token

from .utils import MAX_TICK, MIN_TICK, encode_sqrt_price, pay_from

INITIAL_TIMESTAMP = 1_700_000_000
FUNDED_AMOUNT = 10**40


@pytest.fixture(name="initialize_empty_pool")
def fixture_initialize_empty_pool():
    def _initialize_empty_pool(tick_spacing: int | None = 60, fee: int | None = 3_000, **kwargs) -> AlgebraPool:
        return AlgebraPool(
            tick_spacing=tick_spacing,
            fee=fee,
            initial_block=10_000_000,
            initial_timestamp=INITIAL_TIMESTAMP,
            **kwargs,
        )

    return _initialize_empty_pool


@pytest.fixture(name="fund")
def fixture_fund():
    def _fund(pool: AlgebraPool, *holders, amount: int = FUNDED_AMOUNT):
        for holder in holders:
            pool.immutables.token_0.mint(holder, amount)
            pool.immutables.token_1.mint(holder, amount)

    return _fund


@pytest.fixture(name="initialize_mint_test_pool")
def fixture_initialize_mint_test_pool(random_address, initialize_empty_pool, fund):
    def _initialize_mint_test_pool(tick_spacing: int = 60, **kwargs):
        minter_address = random_address()

        mint_test_pool = initialize_empty_pool(
            tick_spacing=tick_spacing,
            fee=None,
            initial_price=encode_sqrt_price(1, 10),
            **kwargs,
        )
        fund(mint_test_pool, minter_address)

        mint_test_pool.mint(
            minter_address,
            minter_address,
            MIN_TICK[tick_spacing],
            MAX_TICK[tick_spacing],
            3161,
            pay_from(mint_test_pool, minter_address),
        )
        return mint_test_pool, minter_address

    return _initialize_mint_test_pool


@pytest.fixture(name="initialize_zero_tick_pool")
def fixture_initialize_zero_tick_pool(random_address, initialize_empty_pool, fund):
    """Pool at price 1.0 with funded liquidity provider and trader addresses"""

    def _initialize_zero_tick_pool(**kwargs):
        pool = initialize_empty_pool(initial_price=encode_sqrt_price(1, 1), **kwargs)
        provider, trader = random_address(), random_address()
        fund(pool, provider, trader)
        return pool, provider, trader

    return _initialize_zero_tick_pool


@pytest.fixture(name="factory_owner")
def fixture_factory_owner(random_address):
    return random_address()


@pytest.fixture(name="factory")
def fixture_factory(factory_owner):
    return PoolFactory(owner=factory_owner)


@pytest.fixture(name="token_pair")
def fixture_token_pair():
    return ERC20Token.test_token("WETH"), ERC20Token.test_token("USDC", decimals=6)
