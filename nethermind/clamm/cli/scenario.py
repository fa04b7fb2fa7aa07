import logging
from dataclasses import dataclass
from typing import Annotated, Literal, Union

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from pydantic import AfterValidator, BaseModel, Field
from rich.console import Console
from rich.table import Table

from nethermind.clamm.exceptions import PoolRevert
from nethermind.clamm.math.shared import MAX_SQRT_RATIO, MIN_SQRT_RATIO, UINT_128_MAX
from nethermind.clamm.pool import AlgebraPool
from nethermind.clamm.tokens.erc_20 import ERC20Token
from nethermind.clamm.utils import random_address

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("cli").getChild("scenario")


# -------------------------------------------------------
#    Scenario File Models
# -------------------------------------------------------


class TokenParams(BaseModel):
    symbol: str
    decimals: int = 18
    transfer_fee_pips: int = 0


class PoolParams(BaseModel):
    """Pool construction parameters.  Standard fee tiers infer the tick spacing, and vice versa"""

    fee: int | None = None
    tick_spacing: int | None = None
    community_fee: int = 0
    initial_timestamp: int = 1_700_000_000
    token_0: TokenParams = Field(default_factory=lambda: TokenParams(symbol="TKN0"))
    token_1: TokenParams = Field(default_factory=lambda: TokenParams(symbol="TKN1"))


Address = Annotated[str, AfterValidator(to_checksum_address)]


class InitializeAction(BaseModel):
    action: Literal["initialize"]
    sqrt_price: int


class MintAction(BaseModel):
    action: Literal["mint"]
    owner: Address
    tick_lower: int
    tick_upper: int
    liquidity: int


class BurnAction(BaseModel):
    action: Literal["burn"]
    owner: Address
    tick_lower: int
    tick_upper: int
    liquidity: int


class CollectAction(BaseModel):
    action: Literal["collect"]
    owner: Address
    tick_lower: int
    tick_upper: int
    amount_0: int = UINT_128_MAX
    amount_1: int = UINT_128_MAX


class SwapAction(BaseModel):
    """Positive amounts are exact input, negative amounts are exact output"""

    action: Literal["swap"]
    trader: Address
    zero_to_one: bool
    amount: int
    sqrt_price_limit: int | None = None


class FlashAction(BaseModel):
    action: Literal["flash"]
    borrower: Address
    amount_0: int = 0
    amount_1: int = 0


class AdvanceAction(BaseModel):
    action: Literal["advance"]
    blocks: int = 1


ScenarioAction = Annotated[
    Union[InitializeAction, MintAction, BurnAction, CollectAction, SwapAction, FlashAction, AdvanceAction],
    Field(discriminator="action"),
]


class Scenario(BaseModel):
    """Sequence of actions replayed against a single pool"""

    pool: PoolParams = Field(default_factory=PoolParams)
    actions: list[ScenarioAction]


@dataclass(slots=True)
class ActionResult:
    """Outcome of a replayed action, and the pool state after it"""

    index: int
    action: str
    amount_0: int
    amount_1: int
    tick: int
    sqrt_price: int
    liquidity: int
    error: str | None = None


# -------------------------------------------------------
#    Scenario Replay
# -------------------------------------------------------


def build_pool(params: PoolParams) -> AlgebraPool:
    """Creates an uninitialized pool with fresh test tokens"""
    address_0, address_1 = sorted((random_address(), random_address()), key=lambda address: int(address, 16))
    pool_kwargs = {
        "token_0": ERC20Token(
            name=f"Test Token {params.token_0.symbol}",
            symbol=params.token_0.symbol,
            decimals=params.token_0.decimals,
            address=address_0,
            transfer_fee_pips=params.token_0.transfer_fee_pips,
        ),
        "token_1": ERC20Token(
            name=f"Test Token {params.token_1.symbol}",
            symbol=params.token_1.symbol,
            decimals=params.token_1.decimals,
            address=address_1,
            transfer_fee_pips=params.token_1.transfer_fee_pips,
        ),
        "community_fee": params.community_fee,
        "initial_timestamp": params.initial_timestamp,
    }
    if params.fee is not None:
        pool_kwargs["fee"] = params.fee
    if params.tick_spacing is not None:
        pool_kwargs["tick_spacing"] = params.tick_spacing

    return AlgebraPool(**pool_kwargs)


def _pay(token: ERC20Token, payer: ChecksumAddress, recipient: ChecksumAddress, amount: int):
    # simulated actors are funded on demand
    if amount > 0:
        token.mint(payer, amount)
        token.transfer(payer, recipient, amount)


def run_action(pool: AlgebraPool, action: ScenarioAction) -> tuple[int, int]:
    """
    Executes a single scenario action against the pool.  Callbacks pay the pool from the acting address, which is
    minted the tokens it owes.

    :return: token amounts reported by the pool operation
    """
    token_0, token_1, pool_address = pool.immutables.token_0, pool.immutables.token_1, pool.immutables.pool_address

    match action:
        case InitializeAction():
            pool.initialize(action.sqrt_price)
            return 0, 0

        case MintAction():

            def mint_callback(amount_0_owed: int, amount_1_owed: int, _data):
                _pay(token_0, action.owner, pool_address, amount_0_owed)
                _pay(token_1, action.owner, pool_address, amount_1_owed)

            return pool.mint(
                action.owner, action.owner, action.tick_lower, action.tick_upper, action.liquidity, mint_callback
            )

        case BurnAction():
            return pool.burn(action.owner, action.tick_lower, action.tick_upper, action.liquidity)

        case CollectAction():
            return pool.collect(
                action.owner, action.owner, action.tick_lower, action.tick_upper, action.amount_0, action.amount_1
            )

        case SwapAction():

            def swap_callback(amount_0_delta: int, amount_1_delta: int, _data):
                _pay(token_0, action.trader, pool_address, amount_0_delta)
                _pay(token_1, action.trader, pool_address, amount_1_delta)

            limit = action.sqrt_price_limit
            if limit is None:
                limit = MIN_SQRT_RATIO + 1 if action.zero_to_one else MAX_SQRT_RATIO - 1

            return pool.swap(action.trader, action.trader, action.zero_to_one, action.amount, limit, swap_callback)

        case FlashAction():

            def flash_callback(fee_0: int, fee_1: int, _data):
                token_0.mint(action.borrower, fee_0)
                token_1.mint(action.borrower, fee_1)
                if action.amount_0 + fee_0 > 0:
                    token_0.transfer(action.borrower, pool_address, action.amount_0 + fee_0)
                if action.amount_1 + fee_1 > 0:
                    token_1.transfer(action.borrower, pool_address, action.amount_1 + fee_1)

            return pool.flash(
                action.borrower, action.borrower, action.amount_0, action.amount_1, flash_callback
            )

        case AdvanceAction():
            pool.advance_block(action.blocks)
            return 0, 0

    raise ValueError(f"Unsupported scenario action: {action!r}")


def run_scenario(scenario: Scenario, pool: AlgebraPool | None = None) -> tuple[AlgebraPool, list[ActionResult]]:
    """
    Replays every action of a scenario.  Actions that revert are recorded with their error, and the replay
    continues from the state the pool was restored to.
    """
    if pool is None:
        pool = build_pool(scenario.pool)

    results = []
    for index, action in enumerate(scenario.actions):
        error = None
        try:
            amount_0, amount_1 = run_action(pool, action)
        except PoolRevert as exc:
            logger.warning(f"Action {index} ({action.action}) reverted: {exc}")
            amount_0, amount_1, error = 0, 0, f"{type(exc).__name__}: {exc}"

        results.append(
            ActionResult(
                index=index,
                action=action.action,
                amount_0=amount_0,
                amount_1=amount_1,
                tick=pool.global_state.tick,
                sqrt_price=pool.global_state.price,
                liquidity=pool.state.liquidity,
                error=error,
            )
        )

    return pool, results


# -------------------------------------------------------
#    Rendering
# -------------------------------------------------------


def print_results(console: Console, pool: AlgebraPool, results: list[ActionResult]):
    token_0, token_1 = pool.immutables.token_0, pool.immutables.token_1

    result_table = Table(title=f"Scenario Results for {pool}", min_width=80)
    result_table.add_column("#", justify="right")
    result_table.add_column("Action")
    result_table.add_column(f"{token_0.symbol} Delta", justify="right")
    result_table.add_column(f"{token_1.symbol} Delta", justify="right")
    result_table.add_column("Tick", justify="right")
    result_table.add_column("Price")
    result_table.add_column("Liquidity", justify="right")

    for result in results:
        if result.error:
            result_table.add_row(str(result.index), f"[red]{result.action}", f"[red]{result.error}", "", "", "", "")
            continue

        result_table.add_row(
            str(result.index),
            f"[green]{result.action}",
            f"{result.amount_0:,}",
            f"{result.amount_1:,}",
            f"{result.tick:,}",
            pool.get_formatted_price_at_sqrt_ratio(result.sqrt_price) if result.sqrt_price else "-",
            f"{result.liquidity:,}",
        )

    console.print(result_table)


def print_pool(console: Console, pool: AlgebraPool):
    """Prints the global state, initialized ticks and positions of a pool"""
    console.print(f"[bold]------ {pool} @ {pool.immutables.pool_address} ------")

    state_table = Table(title="Pool State", min_width=80)
    state_table.add_column("Key")
    state_table.add_column("Value")
    state_rows = {
        "price": pool.get_formatted_price_at_sqrt_ratio(pool.global_state.price) if pool.global_state.price else "-",
        "sqrt_price": pool.global_state.price,
        "tick": pool.global_state.tick,
        "fee": pool.global_state.fee,
        "community_fee": pool.global_state.community_fee,
        "plugin_config": int(pool.global_state.plugin_config),
        "liquidity": pool.state.liquidity,
        "tick_spacing": pool.state.tick_spacing,
        "reserve_0": pool.reserves.reserve_0,
        "reserve_1": pool.reserves.reserve_1,
        "block_number": pool.block_number,
    }
    for key, val in state_rows.items():
        state_table.add_row(f"[green]{key}", f"{val}")
    console.print(state_table)

    tick_table = Table(title="Initialized Ticks", min_width=80)
    tick_table.add_column("Tick", justify="right")
    tick_table.add_column("Liquidity Gross", justify="right")
    tick_table.add_column("Liquidity Net", justify="right")
    for tick_index, tick in pool.ticks.sorted_items():
        tick_table.add_row(f"{tick_index:,}", f"{tick.liquidity_gross:,}", f"{tick.liquidity_net:,}")
    console.print(tick_table)

    position_table = Table(title="Positions", min_width=80)
    position_table.add_column("Owner")
    position_table.add_column("Range")
    position_table.add_column("Liquidity", justify="right")
    position_table.add_column("Owed 0", justify="right")
    position_table.add_column("Owed 1", justify="right")
    for owner, tick_lower, tick_upper, position in pool.positions.iter_positions():
        position_table.add_row(
            f"[cyan]{owner}",
            f"[{tick_lower}, {tick_upper})",
            f"{position.liquidity:,}",
            f"{position.tokens_owed_0:,}",
            f"{position.tokens_owed_1:,}",
        )
    console.print(position_table)
