"""
This module holds the stock reversible commands and the transition command
the engine wraps around every domain command.

Commands capture their inverse data when they execute, against whichever
entity they are executed on. That keeps them replayable: a copy of a command
executed on a copy of the starting entity reaches the same result.
"""
import copy
import logging
from typing import Any, Dict, List

from .errors import EngineInvariantError
from .models import Entity, OperationKind
from .protocols import Command


class SetFieldsCommand:
    """Merges `updates` into the entity data; undo restores old values or absence."""

    def __init__(self, updates: Dict[str, Any]):
        self.updates = copy.deepcopy(dict(updates))
        self.previous: Dict[str, Any] = {}
        self.absent: List[str] = []
        self.result: Any = None

    def execute(self, entity: Entity) -> List[str]:
        self.previous = {
            key: copy.deepcopy(entity.data[key])
            for key in self.updates
            if key in entity.data
        }
        self.absent = [key for key in self.updates if key not in entity.data]
        entity.data.update(copy.deepcopy(self.updates))
        self.result = sorted(self.updates)
        return self.result

    def undo(self, entity: Entity):
        for key in self.absent:
            entity.data.pop(key, None)
        entity.data.update(copy.deepcopy(self.previous))


class AppendItemCommand:
    """Appends `item` to the list stored under `field`, creating the list if needed."""

    def __init__(self, field: str, item: Any):
        self.field = field
        self.item = copy.deepcopy(item)
        self.created = False
        self.result: int | None = None

    def execute(self, entity: Entity) -> int:
        self.created = self.field not in entity.data
        items = entity.data.setdefault(self.field, [])
        items.append(copy.deepcopy(self.item))
        self.result = len(items) - 1
        return self.result

    def undo(self, entity: Entity):
        items = entity.data[self.field]
        del items[self.result]
        if self.created and not items:
            del entity.data[self.field]


class RemoveItemCommand:
    """Removes the item at `index` from the list under `field`; undo puts it back."""

    def __init__(self, field: str, index: int = -1):
        self.field = field
        self.index = index
        self.position: int | None = None
        self.result: Any = None

    def execute(self, entity: Entity) -> Any:
        items = entity.data.get(self.field)
        if items is None:
            raise KeyError(f"No list stored under '{self.field}'")
        # Normalise negative indexes so undo reinserts at the same slot.
        self.position = range(len(items))[self.index]
        self.result = items.pop(self.position)
        return self.result

    def undo(self, entity: Entity):
        entity.data[self.field].insert(self.position, self.result)


class TransitionCommand:
    """
    The unit recorded in the command history: a domain command (optional)
    plus the lifecycle transition it was accepted for. Execution and undo are
    all-or-nothing; if the domain command fails either way, the entity data
    is put back.
    """

    def __init__(
        self,
        command_id: int,
        from_state: Any,
        to_state: Any,
        inner: Command | None = None,
        kind: OperationKind | None = None,
        snapshot_watermark: int = 0,
    ):
        self.command_id = command_id
        self.from_state = from_state
        self.to_state = to_state
        self.inner = inner
        self.kind = kind
        # Newest snapshot sequence taken before this command ran; anything
        # newer reflects its effects.
        self.snapshot_watermark = snapshot_watermark
        self.result: Any = None

    def execute(self, entity: Entity) -> Any:
        if entity.state != self.from_state:
            raise EngineInvariantError(
                f"Command {self.command_id} expects state {self.from_state!r}, entity is in {entity.state!r}"
            )
        if self.inner is not None:
            before = copy.deepcopy(entity.data)
            try:
                self.result = self.inner.execute(entity)
            except Exception:
                entity.data = before
                logging.warning(f"Command {self.command_id} failed; entity data restored")
                raise
        entity.state = self.to_state
        return self.result

    def undo(self, entity: Entity):
        if entity.state != self.to_state:
            raise EngineInvariantError(
                f"Cannot undo command {self.command_id}: entity is in {entity.state!r}, expected {self.to_state!r}"
            )
        if self.inner is not None:
            before = copy.deepcopy(entity.data)
            try:
                self.inner.undo(entity)
            except Exception:
                entity.data = before
                logging.warning(f"Undo of command {self.command_id} failed; entity data restored")
                raise
        entity.state = self.from_state
