import logging
import random

import pytest
from eth_utils import to_checksum_address


@pytest.fixture(name="random_address")
def fixture_random_address():
    def _generate_random_address():
        return to_checksum_address(random.randbytes(20).hex())

    return _generate_random_address


@pytest.fixture(name="debug_logger")
def fixture_debug_logger(caplog):
    caplog.set_level(logging.DEBUG, logger="nethermind")
    return logging.getLogger("nethermind")
