import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from eth_typing import ChecksumAddress

from nethermind.clamm.exceptions import (
    PluginAcknowledgementError,
    PluginError,
    PoolRevert,
)
from nethermind.clamm.types import PluginConfig
from nethermind.clamm.utils import random_address

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("pool").getChild("plugins")


class HookPoint(Enum):
    """Points in the lifecycle of pool operations where a plugin is called.  Values are plugin method names"""

    BEFORE_INITIALIZE = "before_initialize"
    AFTER_INITIALIZE = "after_initialize"
    BEFORE_MODIFY_POSITION = "before_modify_position"
    AFTER_MODIFY_POSITION = "after_modify_position"
    BEFORE_SWAP = "before_swap"
    AFTER_SWAP = "after_swap"
    BEFORE_FLASH = "before_flash"
    AFTER_FLASH = "after_flash"


HOOK_FLAGS: dict[HookPoint, PluginConfig | None] = {
    HookPoint.BEFORE_INITIALIZE: None,  # always called when a plugin is set
    HookPoint.AFTER_INITIALIZE: PluginConfig.AFTER_INIT,
    HookPoint.BEFORE_MODIFY_POSITION: PluginConfig.BEFORE_POSITION_MODIFY,
    HookPoint.AFTER_MODIFY_POSITION: PluginConfig.AFTER_POSITION_MODIFY,
    HookPoint.BEFORE_SWAP: PluginConfig.BEFORE_SWAP,
    HookPoint.AFTER_SWAP: PluginConfig.AFTER_SWAP,
    HookPoint.BEFORE_FLASH: PluginConfig.BEFORE_FLASH,
    HookPoint.AFTER_FLASH: PluginConfig.AFTER_FLASH,
}


@dataclass(frozen=True, slots=True)
class HookAck:
    """
    Acknowledgement returned by every plugin hook.  The hook field must name the hook that was called.

    Only :attr:`HookPoint.BEFORE_SWAP` may set fee_override, and only when the pool has the DYNAMIC_FEE flag set.
    The override becomes the new fee of the pool before the swap is computed.
    """

    hook: HookPoint
    fee_override: int | None = None


class AbstractPoolPlugin(ABC):
    """
    Base class for pool plugins.  Every hook acknowledges by default, so plugins only override the hooks they
    act on.  Which hooks are called is controlled by the plugin_config bitmask of the pool.

    Hooks run while the pool is locked, so calling mutating methods of the pool from a hook raises a
    ReentrancyError.  Dynamic fee plugins return the new fee through :attr:`HookAck.fee_override` instead.
    """

    address: ChecksumAddress
    """ Address identifying the plugin when it calls privileged pool methods """

    def __init__(self, address: ChecksumAddress | None = None):
        self.address = address if address is not None else random_address()

    def before_initialize(self, sender: ChecksumAddress, sqrt_price: int) -> HookAck:
        return HookAck(HookPoint.BEFORE_INITIALIZE)

    def after_initialize(self, sender: ChecksumAddress, sqrt_price: int, tick: int) -> HookAck:
        return HookAck(HookPoint.AFTER_INITIALIZE)

    def before_modify_position(  # pylint: disable=too-many-arguments
        self,
        sender: ChecksumAddress,
        recipient: ChecksumAddress,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        data: Any,
    ) -> HookAck:
        return HookAck(HookPoint.BEFORE_MODIFY_POSITION)

    def after_modify_position(  # pylint: disable=too-many-arguments
        self,
        sender: ChecksumAddress,
        recipient: ChecksumAddress,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        amount_0: int,
        amount_1: int,
        data: Any,
    ) -> HookAck:
        return HookAck(HookPoint.AFTER_MODIFY_POSITION)

    def before_swap(  # pylint: disable=too-many-arguments
        self,
        sender: ChecksumAddress,
        recipient: ChecksumAddress,
        zero_to_one: bool,
        amount_required: int,
        sqrt_price_limit: int,
        data: Any,
    ) -> HookAck:
        return HookAck(HookPoint.BEFORE_SWAP)

    def after_swap(  # pylint: disable=too-many-arguments
        self,
        sender: ChecksumAddress,
        recipient: ChecksumAddress,
        zero_to_one: bool,
        amount_required: int,
        sqrt_price_limit: int,
        amount_0: int,
        amount_1: int,
        data: Any,
    ) -> HookAck:
        return HookAck(HookPoint.AFTER_SWAP)

    def before_flash(
        self,
        sender: ChecksumAddress,
        recipient: ChecksumAddress,
        amount_0: int,
        amount_1: int,
        data: Any,
    ) -> HookAck:
        return HookAck(HookPoint.BEFORE_FLASH)

    def after_flash(  # pylint: disable=too-many-arguments
        self,
        sender: ChecksumAddress,
        recipient: ChecksumAddress,
        amount_0: int,
        amount_1: int,
        paid_0: int,
        paid_1: int,
        data: Any,
    ) -> HookAck:
        return HookAck(HookPoint.AFTER_FLASH)


class AbstractCrossingObserver(ABC):
    """
    Receives a notification every time a swap crosses an initialized tick.  Used by incentive programs to track
    the time liquidity spends in range.
    """

    @abstractmethod
    def cross_to(self, tick: int, zero_to_one: bool):
        """
        Called after the tick has been crossed

        :param tick: crossed tick
        :param zero_to_one: True if the price is moving down
        """
        raise NotImplementedError


class HookGateway:
    """Dispatches hook calls to the plugin and crossing observer of a pool, and validates their results"""

    plugin: AbstractPoolPlugin | None
    crossing_observer: AbstractCrossingObserver | None

    def __init__(
        self,
        plugin: AbstractPoolPlugin | None = None,
        crossing_observer: AbstractCrossingObserver | None = None,
    ):
        self.plugin = plugin
        self.crossing_observer = crossing_observer

    def invoke(self, hook: HookPoint, plugin_config: PluginConfig, *args) -> HookAck | None:
        """
        Calls a plugin hook if a plugin is set and the flag of the hook is enabled.

        :param hook: hook to call
        :param plugin_config: plugin config bitmask of the pool
        :param args: arguments passed to the hook
        :return: the acknowledgement of the plugin, or None if the hook was not called
        """
        if self.plugin is None:
            return None

        flag = HOOK_FLAGS[hook]
        if flag is not None and not plugin_config & flag:
            return None

        logger.debug(f"Calling plugin hook {hook.value}")
        try:
            ack = getattr(self.plugin, hook.value)(*args)
        except PoolRevert:
            raise
        except Exception as exc:
            raise PluginError(f"Plugin raised an exception in {hook.value}: {exc}") from exc

        if not isinstance(ack, HookAck) or ack.hook != hook:
            raise PluginAcknowledgementError(f"Plugin returned invalid acknowledgement for {hook.value}: {ack!r}")

        if ack.fee_override is not None:
            if hook != HookPoint.BEFORE_SWAP:
                raise PluginAcknowledgementError(f"Fee override is only accepted from before_swap, not {hook.value}")
            if not plugin_config & PluginConfig.DYNAMIC_FEE:
                raise PluginAcknowledgementError("Fee override returned without DYNAMIC_FEE plugin config")

        return ack

    def notify_cross(self, tick: int, zero_to_one: bool):
        """Notifies the crossing observer of a crossed tick"""
        if self.crossing_observer is None:
            return

        try:
            self.crossing_observer.cross_to(tick, zero_to_one)
        except PoolRevert:
            raise
        except Exception as exc:
            raise PluginError(f"Crossing observer raised an exception at tick {tick}: {exc}") from exc
