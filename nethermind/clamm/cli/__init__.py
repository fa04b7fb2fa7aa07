import json
import logging

import click

from nethermind.clamm.cli.utils import group_options, log_level_option, save_option

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("cli")

# isort: skip_file
# pylint: disable=import-outside-toplevel


@click.group()
def clamm_cli():
    """Command Line Interface for the Nethermind Concentrated Liquidity Pool Simulator"""


@clamm_cli.command()
@click.argument("scenario_file", type=click.File("r"))
@group_options(log_level_option, save_option)
def simulate(scenario_file, log_level: str, save_path: str | None):
    """
    Replay the actions of a JSON scenario against a fresh pool, and print the result of every action.

    Actions that revert are reported, and the replay continues from the restored pool state.
    """
    from nethermind.clamm.cli.scenario import Scenario, print_results, run_scenario
    from nethermind.clamm.cli.utils import cli_logger_config

    console = cli_logger_config(root_logger, log_level)

    scenario = Scenario.model_validate(json.load(scenario_file))
    pool, results = run_scenario(scenario)

    print_results(console, pool, results)

    if save_path:
        with open(save_path, "w", encoding="utf-8") as save_file:
            pool.save_pool(save_file)
        console.print(f"[green]Saved pool state to {save_path}")


@clamm_cli.command()
@click.argument("pool_file", type=click.File("r"))
@group_options(log_level_option)
def inspect(pool_file, log_level: str):
    """Print the state, initialized ticks and positions of a pool saved with simulate --save"""
    from nethermind.clamm.cli.scenario import print_pool
    from nethermind.clamm.cli.utils import cli_logger_config
    from nethermind.clamm.pool import AlgebraPool

    console = cli_logger_config(root_logger, log_level)

    pool = AlgebraPool.load_pool(pool_file)
    print_pool(console, pool)
