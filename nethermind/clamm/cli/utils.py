import logging
import os
from logging import Logger

import click
from rich.console import Console
from rich.logging import RichHandler

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("cli")


def cli_logger_config(instrument_logger: Logger, log_level: str = "WARNING") -> Console:
    """Replaces the handlers of instrument_logger with a RichHandler, and returns the console it writes to"""
    rich_console = Console()
    instrument_logger.handlers.clear()

    instrument_logger.addHandler(RichHandler(show_path=False, console=rich_console))
    instrument_logger.setLevel(log_level.upper())
    return rich_console


def group_options(*options):
    """Decorator to group multiple click options together"""

    def wrapper(function):
        for option in reversed(options):
            function = option(function)
        return function

    return wrapper


# -------------------------------------------------------
#    CLI Configurations
# -------------------------------------------------------
log_level_option = click.option(
    "--log-level",
    "-l",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=os.environ.get("CLAMM_LOG_LEVEL", "WARNING"),
    help="Log level of pool events & swap steps.  If not provided, will use the CLAMM_LOG_LEVEL environment variable",
)

save_option = click.option(
    "--save",
    "-s",
    "save_path",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Path to save the final pool state as JSON.  The file can be reloaded with the inspect command",
)
