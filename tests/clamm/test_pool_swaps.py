import copy

import pytest
from pydantic import BaseModel

from nethermind.clamm.exceptions import (
    InsufficientInputError,
    InsufficientLiquidityError,
    PoolRevert,
    ReentrancyError,
)
from nethermind.clamm.math import MAX_SQRT_RATIO, MIN_SQRT_RATIO, PoolMath
from nethermind.clamm.pool import events

from ..utils import expand_to_decimals
from .utils import (
    MAX_TICK,
    MIN_TICK,
    assert_bitmap_matches_ticks,
    encode_sqrt_price,
    pay_from,
    pool_balances,
)

LIQUIDITY = expand_to_decimals(1000)
ratio_at = PoolMath.tick_math.get_sqrt_ratio_at_tick


class SwapCase(BaseModel):
    zero_to_one: bool
    amount: int
    sqrt_price_limit: int | None = None


class Position(BaseModel):
    tick_lower: int
    tick_upper: int
    liquidity: int


class PoolTestCase(BaseModel):
    fee: int
    tick_spacing: int
    starting_price: int
    positions: list[Position]


SWAP_CASES = {
    "exact_1e18_token_0_for_token_1": SwapCase(zero_to_one=True, amount=expand_to_decimals(1)),
    "exact_1e18_token_1_for_token_0": SwapCase(zero_to_one=False, amount=expand_to_decimals(1)),
    "token_0_for_exact_1e18_token_1": SwapCase(zero_to_one=True, amount=-expand_to_decimals(1)),
    "token_1_for_exact_1e18_token_0": SwapCase(zero_to_one=False, amount=-expand_to_decimals(1)),
    "exact_1e18_token_0_for_token_1_to_price_0_5": SwapCase(
        zero_to_one=True, amount=expand_to_decimals(1), sqrt_price_limit=encode_sqrt_price(50, 100)
    ),
    "exact_1e18_token_1_for_token_0_to_price_2": SwapCase(
        zero_to_one=False, amount=expand_to_decimals(1), sqrt_price_limit=encode_sqrt_price(200, 100)
    ),
    "exact_1000_token_0_for_token_1": SwapCase(zero_to_one=True, amount=1000),
    "exact_1000_token_1_for_token_0": SwapCase(zero_to_one=False, amount=1000),
    "token_0_for_exact_1000_token_1": SwapCase(zero_to_one=True, amount=-1000),
    "token_1_for_exact_1000_token_0": SwapCase(zero_to_one=False, amount=-1000),
    "large_token_0_to_price_0_4": SwapCase(
        zero_to_one=True, amount=expand_to_decimals(10**6), sqrt_price_limit=encode_sqrt_price(2, 5)
    ),
    "large_token_1_to_price_2_5": SwapCase(
        zero_to_one=False, amount=expand_to_decimals(10**6), sqrt_price_limit=encode_sqrt_price(5, 2)
    ),
}

POOL_CASES = {
    "medium_fee_1_1_full_range": PoolTestCase(
        fee=3000,
        tick_spacing=60,
        starting_price=encode_sqrt_price(1, 1),
        positions=[Position(tick_lower=MIN_TICK[60], tick_upper=MAX_TICK[60], liquidity=expand_to_decimals(2))],
    ),
    "low_fee_1_1_full_range": PoolTestCase(
        fee=500,
        tick_spacing=10,
        starting_price=encode_sqrt_price(1, 1),
        positions=[Position(tick_lower=MIN_TICK[10], tick_upper=MAX_TICK[10], liquidity=expand_to_decimals(2))],
    ),
    "medium_fee_1_1_additional_liquidity_around_price": PoolTestCase(
        fee=3000,
        tick_spacing=60,
        starting_price=encode_sqrt_price(1, 1),
        positions=[
            Position(tick_lower=MIN_TICK[60], tick_upper=MAX_TICK[60], liquidity=expand_to_decimals(2)),
            Position(tick_lower=MIN_TICK[60], tick_upper=-60, liquidity=expand_to_decimals(2)),
            Position(tick_lower=60, tick_upper=MAX_TICK[60], liquidity=expand_to_decimals(2)),
        ],
    ),
    "high_fee_1_1_full_range": PoolTestCase(
        fee=10000,
        tick_spacing=200,
        starting_price=encode_sqrt_price(1, 1),
        positions=[Position(tick_lower=MIN_TICK[200], tick_upper=MAX_TICK[200], liquidity=expand_to_decimals(2))],
    ),
    "medium_fee_10_1_full_range": PoolTestCase(
        fee=3000,
        tick_spacing=60,
        starting_price=encode_sqrt_price(10, 1),
        positions=[Position(tick_lower=MIN_TICK[60], tick_upper=MAX_TICK[60], liquidity=expand_to_decimals(2))],
    ),
    "medium_fee_1_10_stacked_ranges": PoolTestCase(
        fee=3000,
        tick_spacing=60,
        starting_price=encode_sqrt_price(1, 10),
        positions=[
            Position(tick_lower=MIN_TICK[60], tick_upper=MAX_TICK[60], liquidity=expand_to_decimals(2)),
            Position(tick_lower=-27600, tick_upper=-18000, liquidity=expand_to_decimals(5)),
            Position(tick_lower=-24000, tick_upper=-22020, liquidity=expand_to_decimals(3)),
        ],
    ),
}


def _build_pool(pool_case: PoolTestCase, initialize_empty_pool, fund, provider, trader):
    pool = initialize_empty_pool(
        fee=pool_case.fee,
        tick_spacing=pool_case.tick_spacing,
        initial_price=pool_case.starting_price,
    )
    fund(pool, provider, trader)
    for position in pool_case.positions:
        pool.mint(
            provider,
            provider,
            position.tick_lower,
            position.tick_upper,
            position.liquidity,
            pay_from(pool, provider),
        )
    return pool


def _default_limit(zero_to_one: bool) -> int:
    return MIN_SQRT_RATIO + 1 if zero_to_one else MAX_SQRT_RATIO - 1


@pytest.mark.parametrize("pool_name", POOL_CASES.keys())
@pytest.mark.parametrize("swap_name", SWAP_CASES.keys())
def test_swap_properties(pool_name, swap_name, initialize_empty_pool, fund, random_address):
    provider, trader = random_address(), random_address()
    pool = _build_pool(POOL_CASES[pool_name], initialize_empty_pool, fund, provider, trader)
    swap_case = SWAP_CASES[swap_name]
    limit = swap_case.sqrt_price_limit or _default_limit(swap_case.zero_to_one)

    # limits on the wrong side of the starting price are rejected
    price_start = pool.global_state.price
    if (limit >= price_start) if swap_case.zero_to_one else (limit <= price_start):
        with pytest.raises(PoolRevert):
            pool.swap(trader, trader, swap_case.zero_to_one, swap_case.amount, limit, pay_from(pool, trader))
        assert pool.global_state.price == price_start
        return

    price_before, fee_growth_before = pool.global_state.price, (
        pool.state.fee_growth_global_0,
        pool.state.fee_growth_global_1,
    )
    quote = pool.quote_swap(swap_case.zero_to_one, swap_case.amount, limit)

    amount_0, amount_1 = pool.swap(
        trader, trader, swap_case.zero_to_one, swap_case.amount, limit, pay_from(pool, trader)
    )

    assert (amount_0, amount_1) == (quote.amount_0, quote.amount_1)
    assert pool.global_state.price == quote.sqrt_price
    assert pool.global_state.tick == quote.tick

    # the pool receives one token and pays the other
    if swap_case.zero_to_one:
        assert amount_0 > 0 and amount_1 <= 0
        assert pool.global_state.price < price_before
        assert pool.global_state.price >= limit
        assert pool.state.fee_growth_global_0 >= fee_growth_before[0]
    else:
        assert amount_1 > 0 and amount_0 <= 0
        assert pool.global_state.price > price_before
        assert pool.global_state.price <= limit
        assert pool.state.fee_growth_global_1 >= fee_growth_before[1]

    # exact amounts are never exceeded, and are met unless the price limit is reached
    specified = amount_0 if swap_case.zero_to_one == (swap_case.amount > 0) else amount_1
    if swap_case.amount > 0:
        assert specified <= swap_case.amount
    else:
        assert -specified <= -swap_case.amount
    if pool.global_state.price != limit:
        assert abs(specified) == abs(swap_case.amount)

    tick = pool.global_state.tick
    assert ratio_at(tick) <= pool.global_state.price
    assert tick == PoolMath.MAX_TICK or pool.global_state.price < ratio_at(tick + 1)

    assert pool_balances(pool) == (pool.reserves.reserve_0, pool.reserves.reserve_1)
    assert_bitmap_matches_ticks(pool)


class TestSwapScenarios:
    def test_mint_symmetric_range_at_price_one(self, initialize_zero_tick_pool):
        pool, provider, _ = initialize_zero_tick_pool()

        amount_0, amount_1 = pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))

        assert amount_0 > 0 and amount_1 > 0
        assert abs(amount_0 - amount_1) <= amount_0 // 10**9
        assert pool.state.liquidity == LIQUIDITY

    def test_swap_within_single_range(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))
        amount_in = expand_to_decimals(1, 17)

        expected = PoolMath.compute_swap_step(2**96, ratio_at(-60), LIQUIDITY, amount_in, 3000)
        quote = pool.quote_swap(True, amount_in, MIN_SQRT_RATIO + 1)
        balance_1_before = pool.immutables.token_1.balance_of(trader)

        amount_0, amount_1 = pool.swap(trader, trader, True, amount_in, MIN_SQRT_RATIO + 1, pay_from(pool, trader))

        assert quote.ticks_crossed == []
        assert amount_0 == amount_in
        assert amount_1 == -expected.amount_out
        assert pool.global_state.price == expected.sqrt_price_next
        assert pool.global_state.tick == PoolMath.tick_math.get_tick_at_sqrt_ratio(expected.sqrt_price_next)
        assert pool.state.liquidity == LIQUIDITY
        assert pool.state.fee_growth_global_0 == expected.fee_amount * PoolMath.Q128 // LIQUIDITY
        assert pool.state.fee_growth_global_1 == 0
        assert pool.immutables.token_1.balance_of(trader) == balance_1_before + expected.amount_out

        swap_event = pool.events[-1]
        assert isinstance(swap_event, events.Swap)
        assert (swap_event.amount_0, swap_event.amount_1) == (amount_0, amount_1)
        assert swap_event.liquidity == LIQUIDITY

    def test_swap_crossing_initialized_tick(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))
        pool.mint(provider, provider, 60, 120, 2 * LIQUIDITY, pay_from(pool, provider))
        amount_in = expand_to_decimals(5)

        first_step = PoolMath.compute_swap_step(2**96, ratio_at(60), LIQUIDITY, amount_in, 3000)
        remaining = amount_in - first_step.amount_in - first_step.fee_amount
        second_step = PoolMath.compute_swap_step(ratio_at(60), ratio_at(120), 2 * LIQUIDITY, remaining, 3000)

        quote = pool.quote_swap(False, amount_in, MAX_SQRT_RATIO - 1)
        amount_0, amount_1 = pool.swap(trader, trader, False, amount_in, MAX_SQRT_RATIO - 1, pay_from(pool, trader))

        assert first_step.sqrt_price_next == ratio_at(60)
        assert quote.ticks_crossed == [60]
        assert amount_1 == amount_in
        assert amount_0 == -(first_step.amount_out + second_step.amount_out)
        assert pool.state.liquidity == 2 * LIQUIDITY
        assert pool.global_state.price == second_step.sqrt_price_next
        assert 60 <= pool.global_state.tick < 120

        # fee growth outside of the crossed tick now tracks the growth below it
        assert pool.ticks.get(60).fee_growth_outside_1 == first_step.fee_amount * PoolMath.Q128 // LIQUIDITY

    def test_burn_and_collect_returns_principal_and_fees(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        deposit_0, deposit_1 = pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))

        amount_in = expand_to_decimals(1, 17)
        swap_0, swap_1 = pool.swap(trader, trader, True, amount_in, MIN_SQRT_RATIO + 1, pay_from(pool, trader))
        fee_amount = PoolMath.compute_swap_step(2**96, ratio_at(-60), LIQUIDITY, amount_in, 3000).fee_amount

        burned_0, burned_1 = pool.burn(provider, -60, 60, LIQUIDITY)
        collected_0, collected_1 = pool.collect(provider, provider, -60, 60, 2**128 - 1, 2**128 - 1)

        assert fee_amount - 1 <= collected_0 - burned_0 <= fee_amount
        assert collected_1 == burned_1
        assert collected_0 <= deposit_0 + swap_0
        assert collected_1 <= deposit_1 + swap_1

        event_count = len(pool.events)
        assert pool.collect(provider, provider, -60, 60, 2**128 - 1, 2**128 - 1) == (0, 0)
        assert len(pool.events) == event_count

    def test_get_position_value_matches_burn_and_collect(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))
        pool.swap(trader, trader, True, expand_to_decimals(1, 17), MIN_SQRT_RATIO + 1, pay_from(pool, trader))

        value = pool.get_position_value(provider, -60, 60)
        pool.burn(provider, -60, 60, LIQUIDITY)
        collected = pool.collect(provider, provider, -60, 60, 2**128 - 1, 2**128 - 1)

        assert value == collected

    def test_cross_and_cross_back_restores_liquidity(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))
        pool.mint(provider, provider, 60, 120, 2 * LIQUIDITY, pay_from(pool, provider))
        first_step = PoolMath.compute_swap_step(2**96, ratio_at(60), LIQUIDITY, expand_to_decimals(5), 3000)
        growth_in_lower_range = first_step.fee_amount * PoolMath.Q128 // LIQUIDITY

        pool.swap(trader, trader, False, expand_to_decimals(5), MAX_SQRT_RATIO - 1, pay_from(pool, trader))
        assert pool.state.liquidity == 2 * LIQUIDITY
        assert pool.ticks.get(60).fee_growth_outside_1 == growth_in_lower_range

        pool.swap(trader, trader, True, expand_to_decimals(10), ratio_at(30), pay_from(pool, trader))

        assert pool.global_state.price == ratio_at(30)
        assert pool.global_state.tick == 30
        assert pool.state.liquidity == LIQUIDITY

        # after crossing back, the tick tracks the growth accrued above it
        growth_above = pool.state.fee_growth_global_1 - growth_in_lower_range
        assert pool.ticks.get(60).fee_growth_outside_1 == growth_above

        _, inside_1 = pool.ticks.get_fee_growth_inside(
            -60, 60, pool.global_state.tick, pool.state.fee_growth_global_0, pool.state.fee_growth_global_1
        )
        assert inside_1 == growth_in_lower_range
        assert_bitmap_matches_ticks(pool)

    def test_add_then_remove_liquidity_is_symmetric(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, MIN_TICK[60], MAX_TICK[60], LIQUIDITY, pay_from(pool, provider))
        pool.swap(trader, trader, True, expand_to_decimals(3), MIN_SQRT_RATIO + 1, pay_from(pool, trader))

        state_before = copy.deepcopy((pool.global_state, pool.state))
        ticks_before = dict(pool.ticks.ticks)

        pool.mint(provider, provider, -600, 600, 12345678, pay_from(pool, provider))
        pool.burn(provider, -600, 600, 12345678)

        assert (pool.global_state, pool.state) == state_before
        assert pool.ticks.ticks.keys() == ticks_before.keys()
        assert_bitmap_matches_ticks(pool)

    def test_exact_output_swap(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, -600, 600, LIQUIDITY, pay_from(pool, provider))

        amount_0, amount_1 = pool.swap(
            trader, trader, True, -expand_to_decimals(1, 17), MIN_SQRT_RATIO + 1, pay_from(pool, trader)
        )

        assert amount_1 == -expand_to_decimals(1, 17)
        assert amount_0 > expand_to_decimals(1, 17)

    def test_swap_stops_at_price_limit(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, -600, 600, LIQUIDITY, pay_from(pool, provider))
        limit = ratio_at(-30)

        amount_0, _ = pool.swap(trader, trader, True, expand_to_decimals(100), limit, pay_from(pool, trader))

        assert pool.global_state.price == limit
        assert pool.global_state.tick == -30
        assert 0 < amount_0 < expand_to_decimals(100)


class TestSwapFailures:
    @pytest.mark.parametrize(
        "zero_to_one, limit",
        [
            (True, 2**96),
            (True, 2**96 + 1),
            (True, MIN_SQRT_RATIO),
            (False, 2**96),
            (False, 2**96 - 1),
            (False, MAX_SQRT_RATIO),
        ],
    )
    def test_invalid_price_limit(self, initialize_zero_tick_pool, zero_to_one, limit):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))

        with pytest.raises(PoolRevert):
            pool.swap(trader, trader, zero_to_one, 1000, limit, pay_from(pool, trader))

    def test_zero_amount(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))

        with pytest.raises(PoolRevert):
            pool.swap(trader, trader, True, 0, MIN_SQRT_RATIO + 1, pay_from(pool, trader))

    def test_swap_without_liquidity(self, initialize_zero_tick_pool):
        pool, _, trader = initialize_zero_tick_pool()

        with pytest.raises(InsufficientLiquidityError):
            pool.swap(trader, trader, True, 1000, ratio_at(-600), pay_from(pool, trader))

        assert pool.global_state.price == 2**96

    def test_underpaying_callback_reverts_swap(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))
        state_before = copy.deepcopy((pool.global_state, pool.state, pool.ticks.ticks))
        event_count = len(pool.events)
        token_1_before = pool.immutables.token_1.balance_of(trader)

        def _underpay(amount_0, _amount_1, _data):
            pool.immutables.token_0.transfer(trader, pool.immutables.pool_address, amount_0 - 1)

        with pytest.raises(InsufficientInputError):
            pool.swap(trader, trader, True, expand_to_decimals(1, 17), MIN_SQRT_RATIO + 1, _underpay)

        assert (pool.global_state, pool.state, pool.ticks.ticks) == state_before
        assert len(pool.events) == event_count
        assert pool.immutables.token_1.balance_of(trader) == token_1_before

    def test_reentrant_swap_is_rejected(self, initialize_zero_tick_pool):
        pool, provider, trader = initialize_zero_tick_pool()
        pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))

        def _reenter(_amount_0, _amount_1, _data):
            pool.swap(trader, trader, True, 1000, MIN_SQRT_RATIO + 1, pay_from(pool, trader))

        with pytest.raises(ReentrancyError):
            pool.swap(trader, trader, True, 1000, MIN_SQRT_RATIO + 1, _reenter)

        # the lock is released after the failed operation
        pool.swap(trader, trader, True, 1000, MIN_SQRT_RATIO + 1, pay_from(pool, trader))


class TestDonations:
    def test_donation_is_distributed_to_active_liquidity(self, initialize_zero_tick_pool, random_address):
        pool, provider, _ = initialize_zero_tick_pool()
        pool.mint(provider, provider, -60, 60, LIQUIDITY, pay_from(pool, provider))

        donor = random_address()
        pool.immutables.token_0.mint(donor, 1000)
        pool.immutables.token_0.transfer(donor, pool.immutables.pool_address, 1000)

        assert pool.burn(provider, -60, 60, 0) == (0, 0)

        position = pool.get_position(provider, -60, 60)
        assert position.tokens_owed_0 in (999, 1000)
        assert position.tokens_owed_1 == 0
        assert pool_balances(pool) == (pool.reserves.reserve_0, pool.reserves.reserve_1)

    def test_donation_without_active_liquidity_is_absorbed(self, initialize_zero_tick_pool, random_address):
        pool, provider, _ = initialize_zero_tick_pool()
        pool.mint(provider, provider, 60, 120, LIQUIDITY, pay_from(pool, provider))
        reserve_0 = pool.reserves.reserve_0

        donor = random_address()
        pool.immutables.token_0.mint(donor, 1000)
        pool.immutables.token_0.transfer(donor, pool.immutables.pool_address, 1000)
        pool.burn(provider, 60, 120, 0)

        assert pool.reserves.reserve_0 == reserve_0 + 1000
        assert pool.state.fee_growth_global_0 == 0
        assert pool.get_position(provider, 60, 120).tokens_owed_0 == 0
