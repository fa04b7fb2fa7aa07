from dataclasses import asdict, dataclass
from typing import Any

from eth_typing import ChecksumAddress


@dataclass(slots=True)
class Event:
    """Base class for events published by pools and factories"""

    block_number: int

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.name, **asdict(self)}


# ---------------------------------------------------------------------------------------------------------------
#  Pool Events
# ---------------------------------------------------------------------------------------------------------------


@dataclass(slots=True)
class Initialize(Event):
    price: int
    tick: int


@dataclass(slots=True)
class Mint(Event):
    sender: ChecksumAddress
    owner: ChecksumAddress
    tick_lower: int
    tick_upper: int
    liquidity: int
    amount_0: int
    amount_1: int


@dataclass(slots=True)
class Burn(Event):
    owner: ChecksumAddress
    tick_lower: int
    tick_upper: int
    liquidity: int
    amount_0: int
    amount_1: int


@dataclass(slots=True)
class Collect(Event):
    owner: ChecksumAddress
    recipient: ChecksumAddress
    tick_lower: int
    tick_upper: int
    amount_0: int
    amount_1: int


@dataclass(slots=True)
class Swap(Event):
    sender: ChecksumAddress
    recipient: ChecksumAddress
    amount_0: int
    amount_1: int
    price: int
    liquidity: int
    tick: int


@dataclass(slots=True)
class Flash(Event):
    sender: ChecksumAddress
    recipient: ChecksumAddress
    amount_0: int
    amount_1: int
    paid_0: int
    paid_1: int


@dataclass(slots=True)
class Fee(Event):
    fee: int


@dataclass(slots=True)
class CommunityFee(Event):
    community_fee: int


@dataclass(slots=True)
class TickSpacing(Event):
    tick_spacing: int


@dataclass(slots=True)
class Plugin(Event):
    plugin: str | None


@dataclass(slots=True)
class PluginConfigUpdate(Event):
    plugin_config: int

    @property
    def name(self) -> str:
        return "PluginConfig"


@dataclass(slots=True)
class Incentive(Event):
    incentive: str | None


@dataclass(slots=True)
class CommunityVault(Event):
    community_vault: ChecksumAddress | None


# ---------------------------------------------------------------------------------------------------------------
#  Factory Events
# ---------------------------------------------------------------------------------------------------------------


@dataclass(slots=True)
class Pool(Event):
    token_0: ChecksumAddress
    token_1: ChecksumAddress
    pool: ChecksumAddress


@dataclass(slots=True)
class Owner(Event):
    owner: ChecksumAddress


@dataclass(slots=True)
class FarmingAddress(Event):
    farming_address: ChecksumAddress


@dataclass(slots=True)
class FeeConfigurationUpdate(Event):
    alpha1: int
    alpha2: int
    beta1: int
    beta2: int
    gamma1: int
    gamma2: int
    base_fee: int

    @property
    def name(self) -> str:
        return "FeeConfiguration"


@dataclass(slots=True)
class DefaultCommunityFee(Event):
    community_fee: int


@dataclass(slots=True)
class DefaultTickSpacing(Event):
    tick_spacing: int
