import copy
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Iterator

from .models import RollbackOutcome, Snapshot


class SnapshotStore:
    """
    An append-only history of full-state captures with a rollback cursor.

    The newest snapshot stands for the current state. Rolling back discards it
    and reports the one before, unless the caller's present data has moved on
    since that snapshot, in which case the newest snapshot itself is the
    rollback target and is kept. The state before the first checkpoint is only
    recoverable if the caller checkpoints at session start.
    """

    def __init__(self, capacity: int | None = None):
        if capacity is not None and capacity < 1:
            raise ValueError("Snapshot capacity must be at least 1.")
        self.capacity = capacity
        self._snapshots: Deque[Snapshot] = deque()
        self._sequence = 0

    def checkpoint(self, data: Dict[str, Any], state: Any = None) -> Snapshot:
        self._sequence += 1
        snapshot = Snapshot(
            sequence=self._sequence,
            timestamp=datetime.now(timezone.utc),
            data=copy.deepcopy(data),
            state=state,
        )
        self._snapshots.append(snapshot)
        while self.capacity is not None and len(self._snapshots) > self.capacity:
            evicted = self._snapshots.popleft()
            logging.debug(f"Evicted snapshot #{evicted.sequence} (capacity {self.capacity})")
        return snapshot

    def rollback_one(
        self, data: Dict[str, Any] | None = None, state: Any = None
    ) -> RollbackOutcome:
        if not self._snapshots:
            return RollbackOutcome()
        latest = self._snapshots[-1]
        if data is not None and self._diverged(latest, data, state):
            return RollbackOutcome(restored=latest)
        removed = self._snapshots.pop()
        restored = self._snapshots[-1] if self._snapshots else None
        return RollbackOutcome(removed=removed, restored=restored)

    def discard_after(self, sequence: int) -> int:
        """Drops every snapshot newer than `sequence`; returns how many were dropped."""
        dropped = 0
        while self._snapshots and self._snapshots[-1].sequence > sequence:
            self._snapshots.pop()
            dropped += 1
        return dropped

    @staticmethod
    def _diverged(snapshot: Snapshot, data: Dict[str, Any], state: Any) -> bool:
        if snapshot.data != data:
            return True
        return snapshot.state is not None and state is not None and snapshot.state != state

    @property
    def last_sequence(self) -> int:
        return self._sequence

    @property
    def latest(self) -> Snapshot | None:
        return self._snapshots[-1] if self._snapshots else None

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(list(self._snapshots))
