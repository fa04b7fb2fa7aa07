from .journal import StateJournal
from .main import AlgebraPool
from .plugins import (
    AbstractCrossingObserver,
    AbstractPoolPlugin,
    HookAck,
    HookGateway,
    HookPoint,
)

__all__ = [
    "AlgebraPool",
    "AbstractCrossingObserver",
    "AbstractPoolPlugin",
    "HookAck",
    "HookGateway",
    "HookPoint",
    "StateJournal",
]
