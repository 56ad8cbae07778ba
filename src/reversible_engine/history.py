import copy
import logging
from collections import deque
from typing import Any, Deque, Iterator, List

from .models import Entity
from .protocols import Command


class CommandHistory:
    """
    A LIFO history of executed commands with undo and optional redo.

    Executing a new command after an undo discards the redo buffer, so
    undone-but-not-redone commands become unreachable. With a `capacity`, the
    oldest command is evicted on overflow and folded into the baseline entity,
    which keeps `replay()` exact for the retained suffix.
    """

    def __init__(self, entity: Entity, capacity: int | None = None, redo_enabled: bool = True):
        if capacity is not None and capacity < 1:
            raise ValueError("History capacity must be at least 1.")
        self._entity = entity
        self._baseline = entity.model_copy(deep=True)
        self.capacity = capacity
        self.redo_enabled = redo_enabled
        self._done: Deque[Command] = deque()
        self._undone: List[Command] = []

    def execute(self, command: Command) -> Any:
        result = command.execute(self._entity)
        self._done.append(command)
        if self._undone:
            logging.debug(f"Discarding {len(self._undone)} undone command(s) from the redo buffer")
            self._undone.clear()
        self._evict_overflow()
        return result

    def undo(self) -> Command | None:
        if not self._done:
            return None
        command = self._done.pop()
        try:
            command.undo(self._entity)
        except Exception:
            self._done.append(command)
            raise
        if self.redo_enabled:
            self._undone.append(command)
        return command

    def redo(self) -> Command | None:
        if not self._undone:
            return None
        command = self._undone.pop()
        try:
            command.execute(self._entity)
        except Exception:
            self._undone.append(command)
            raise
        self._done.append(command)
        self._evict_overflow()
        return command

    def replay(self) -> Entity:
        """Re-executes copies of the retained commands on a copy of the baseline."""
        entity = self._baseline.model_copy(deep=True)
        for command in self._done:
            copy.deepcopy(command).execute(entity)
        return entity

    def rebase(self):
        """Forgets every command and takes the current entity as the new baseline."""
        self._done.clear()
        self._undone.clear()
        self._baseline = self._entity.model_copy(deep=True)

    def _evict_overflow(self):
        while self.capacity is not None and len(self._done) > self.capacity:
            oldest = self._done.popleft()
            copy.deepcopy(oldest).execute(self._baseline)
            logging.debug(f"Evicted oldest command from history (capacity {self.capacity})")

    @property
    def baseline(self) -> Entity:
        return self._baseline.model_copy(deep=True)

    @property
    def last(self) -> Command | None:
        return self._done[-1] if self._done else None

    @property
    def redo_length(self) -> int:
        return len(self._undone)

    def __len__(self) -> int:
        return len(self._done)

    def __iter__(self) -> Iterator[Command]:
        return iter(list(self._done))
