import copy
import logging
from dataclasses import fields
from typing import Any, Hashable

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("pool").getChild("journal")

_MISSING = object()


class StateJournal:
    """
    Undo log for pool state.  While a pool operation is running, components record the value of every tick,
    bitmap word, position and state field the first time they write it.  If the operation fails, only the recorded
    entries are restored, so rolling back costs as much as the operation itself, regardless of how many ticks and
    positions the pool holds.

    Recording is a no-op while the journal is inactive, so components can be used on their own outside a pool.
    """

    active: bool

    def __init__(self):
        self.active = False
        self._entries: list[tuple[str, Any, Any, Any]] = []
        self._recorded: set[tuple[str, int, Hashable]] = set()

    def __len__(self) -> int:
        return len(self._entries)

    def _first_write(self, kind: str, target: Any, key: Hashable) -> bool:
        if not self.active:
            return False
        marker = (kind, id(target), key)
        if marker in self._recorded:
            return False
        self._recorded.add(marker)
        return True

    def record_item(self, mapping: dict, key: Hashable):
        """Records the value stored under key, or its absence, before the mapping entry is written or removed"""
        if not self._first_write("item", mapping, key):
            return
        value = mapping.get(key, _MISSING)
        self._entries.append(("item", mapping, key, value if value is _MISSING else copy.copy(value)))

    def record_attr(self, target: Any, name: str):
        """Records an attribute before it is reassigned"""
        if not self._first_write("attr", target, name):
            return
        self._entries.append(("attr", target, name, getattr(target, name)))

    def record_fields(self, target: Any):
        """Records every field of a dataclass before any of them are written"""
        if not self._first_write("fields", target, None):
            return
        self._entries.append(("fields", target, None, copy.copy(target)))

    def begin(self):
        """Starts recording.  Any entries left from a previous operation are discarded"""
        self._clear()
        self.active = True

    def commit(self):
        """Keeps every change made since :meth:`begin` and stops recording"""
        self._clear()
        self.active = False

    def rollback(self):
        """Restores every recorded value, latest first, and stops recording"""
        logger.debug(f"Rolling back {len(self._entries)} state entries")
        for kind, target, key, value in reversed(self._entries):
            if kind == "item":
                if value is _MISSING:
                    target.pop(key, None)
                else:
                    target[key] = value
            elif kind == "attr":
                setattr(target, key, value)
            else:
                for field in fields(target):
                    setattr(target, field.name, getattr(value, field.name))
        self._clear()
        self.active = False

    def _clear(self):
        self._entries = []
        self._recorded = set()
