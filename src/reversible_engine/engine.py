"""
This module implements the engine, the composition root that owns an entity
together with its command history, snapshot store and notifier.

The `open_engine` async context manager is the intended entry point. It
starts the notifier, takes the start-of-session checkpoint when configured,
and on exit stops the notifier so watchers finish. There is no shared or
global state: every engine owns its own resources.
"""
import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, FrozenSet, Iterable, Mapping, Union

from .commands import TransitionCommand
from .errors import EngineInvariantError
from .history import CommandHistory
from .models import (
    Accepted,
    EmptyHistory,
    EmptySnapshotStore,
    EngineEvent,
    EngineResult,
    Entity,
    OperationKind,
    OperationRequest,
    Redone,
    Rejected,
    RolledBack,
    Snapshot,
    TransitionAllowed,
    Undone,
    ValidationFailure,
)
from .notifier import ALL_EVENTS, Notifier
from .protocols import Command, CommandFactory, Validator
from .snapshots import SnapshotStore
from .state_machine import LifecycleStateMachine, TransitionTable
from .validation import ValidatorChain


def _parse_kinds(kinds: Iterable[Union[str, OperationKind]]) -> FrozenSet[OperationKind]:
    # OperationKind("bogus") raises ValueError, which is what we want here.
    return frozenset(OperationKind(kind) for kind in kinds)


class Engine:
    """
    Orchestrates validate -> check transition -> execute -> record -> report.

    `submit`, `undo`, `redo`, `checkpoint` and `rollback_one` each run as one
    atomic unit under a single lock. Rejections leave the engine untouched.
    """

    def __init__(
        self,
        config: Dict,
        entity: Entity,
        machine: Union[LifecycleStateMachine, TransitionTable],
        validators: Union[ValidatorChain, Iterable[Validator], None] = None,
        commands: Mapping[OperationKind, CommandFactory] | None = None,
        notifier: Notifier | None = None,
    ):
        if not isinstance(entity, Entity):
            raise TypeError("entity must be an Entity")
        if isinstance(machine, TransitionTable):
            machine = LifecycleStateMachine(machine)
        if entity.state not in machine.table.states:
            raise ValueError(f"Initial state {entity.state!r} is not part of the transition table.")

        self.config = config
        self.machine = machine
        self.validators = (
            validators if isinstance(validators, ValidatorChain) else ValidatorChain(validators)
        )
        self.commands: Dict[OperationKind, CommandFactory] = {}
        for kind, factory in (commands or {}).items():
            if not callable(factory):
                raise TypeError(f"Command factory for '{kind}' must be callable")
            self.commands[OperationKind(kind)] = factory
        self.notifier = notifier if notifier is not None else Notifier()

        self.checkpoint_kinds = _parse_kinds(config.get("checkpoint_kinds", []))
        self.capture_state = bool(config.get("capture_state", False))
        self.default_data: Dict[str, Any] = copy.deepcopy(dict(config.get("default_data") or {}))

        # The engine owns its entity; callers keep no mutable handle on it.
        self._entity = entity.model_copy(deep=True)
        self.history = CommandHistory(
            self._entity,
            capacity=config.get("history_capacity"),
            redo_enabled=config.get("redo_enabled", True),
        )
        self.snapshots = SnapshotStore(capacity=config.get("snapshot_capacity"))
        self._lock = asyncio.Lock()
        self._next_command_id = 1

    async def _async_init(self):
        """Takes the start-of-session checkpoint when configured."""
        if self.config.get("checkpoint_on_start", False):
            await self.checkpoint()

    async def submit(self, request: OperationRequest) -> EngineResult:
        if not isinstance(request, OperationRequest):
            raise TypeError("submit expects an OperationRequest")

        async with self._lock:
            verdict = self.validators.validate(request)
            if isinstance(verdict, ValidationFailure):
                logging.info(
                    f"Rejected '{request.kind.value}' at validation: {verdict.reason}"
                )
                return Rejected(stage="validation", error=verdict)

            decision = self.machine.check(self._entity.state, request.kind)
            if not isinstance(decision, TransitionAllowed):
                logging.info(
                    f"Rejected '{request.kind.value}' from {self._entity.state!r}: {decision.code}"
                )
                return Rejected(stage="transition", error=decision)

            command = TransitionCommand(
                command_id=self._next_command_id,
                from_state=decision.from_state,
                to_state=decision.to_state,
                inner=self._build_command(request),
                kind=request.kind,
                snapshot_watermark=self.snapshots.last_sequence,
            )
            self.history.execute(command)
            self._next_command_id += 1

            snapshot_sequence = None
            if request.kind in self.checkpoint_kinds:
                snapshot_sequence = self._checkpoint().sequence

            logging.info(
                f"Accepted command {command.command_id}: {decision.from_state!r} -> {decision.to_state!r}"
            )
            await self._publish(
                "accepted",
                command_id=command.command_id,
                snapshot_sequence=snapshot_sequence,
            )
            return Accepted(
                state=self._entity.state,
                command_id=command.command_id,
                snapshot_sequence=snapshot_sequence,
            )

    async def undo(self) -> Union[Undone, EmptyHistory]:
        async with self._lock:
            command = self.history.undo()
            if command is None:
                logging.debug("Nothing to undo")
                return EmptyHistory(operation="undo")
            # Snapshots taken since the command ran describe effects that are
            # gone now; rollback must not bring them back.
            dropped = self.snapshots.discard_after(command.snapshot_watermark)
            if dropped:
                logging.debug(f"Discarded {dropped} snapshot(s) taken after command {command.command_id}")
            logging.info(f"Undid command {command.command_id}; state is {self._entity.state!r}")
            await self._publish("undone", command_id=command.command_id)
            return Undone(command_id=command.command_id, state=self._entity.state)

    async def redo(self) -> Union[Redone, EmptyHistory]:
        async with self._lock:
            command = self.history.redo()
            if command is None:
                logging.debug("Nothing to redo")
                return EmptyHistory(operation="redo")
            command.snapshot_watermark = self.snapshots.last_sequence
            snapshot_sequence = None
            if command.kind in self.checkpoint_kinds:
                snapshot_sequence = self._checkpoint().sequence
            logging.info(f"Redid command {command.command_id}; state is {self._entity.state!r}")
            await self._publish(
                "redone",
                command_id=command.command_id,
                snapshot_sequence=snapshot_sequence,
            )
            return Redone(
                command_id=command.command_id,
                state=self._entity.state,
                snapshot_sequence=snapshot_sequence,
            )

    async def checkpoint(self) -> Snapshot:
        async with self._lock:
            snapshot = self._checkpoint()
            await self._publish("checkpoint", snapshot_sequence=snapshot.sequence)
            return snapshot

    async def rollback_one(self) -> Union[RolledBack, EmptySnapshotStore]:
        async with self._lock:
            outcome = self.snapshots.rollback_one(
                self._entity.data,
                state=self._entity.state if self.capture_state else None,
            )
            if outcome.is_empty:
                logging.info("Rollback requested with no snapshots recorded")
                return EmptySnapshotStore(data=copy.deepcopy(self.default_data))

            restored = outcome.restored
            if restored is None:
                self._entity.data = copy.deepcopy(self.default_data)
            else:
                self._entity.data = copy.deepcopy(restored.data)
                if restored.state is not None:
                    if restored.state not in self.machine.table.states:
                        raise EngineInvariantError(
                            f"Snapshot #{restored.sequence} holds unknown state {restored.state!r}"
                        )
                    self._entity.state = restored.state
            # Commands recorded before the rollback no longer describe the
            # entity, so the history restarts from the restored state.
            self.history.rebase()

            sequence = restored.sequence if restored is not None else None
            if outcome.removed is not None:
                logging.info(f"Discarded snapshot #{outcome.removed.sequence}")
            logging.info(
                f"Rolled back to {'default data' if sequence is None else f'snapshot #{sequence}'}"
            )
            await self._publish("rolled_back", snapshot_sequence=sequence)
            return RolledBack(
                snapshot_sequence=sequence,
                data=copy.deepcopy(self._entity.data),
                state=self._entity.state,
            )

    async def watch(self, event_type: str = ALL_EVENTS) -> AsyncIterator[EngineEvent]:
        """Yields engine events until the engine is closed."""
        queue = await self.notifier.subscribe(event_type)
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
        finally:
            await self.notifier.unsubscribe(event_type, queue)

    # --- Inspection ---

    @property
    def current_state(self) -> Any:
        return self._entity.state

    @property
    def history_length(self) -> int:
        return len(self.history)

    @property
    def redo_length(self) -> int:
        return self.history.redo_length

    @property
    def snapshot_count(self) -> int:
        return len(self.snapshots)

    def entity_data(self) -> Dict[str, Any]:
        return copy.deepcopy(self._entity.data)

    async def metrics(self) -> Dict[str, Any]:
        latest = self.snapshots.latest
        last = self.history.last
        return {
            "current_state": self._entity.state,
            "is_terminal": self.machine.is_terminal(self._entity.state),
            "history_length": len(self.history),
            "redo_length": self.history.redo_length,
            "snapshot_count": len(self.snapshots),
            "last_command_id": last.command_id if last is not None else None,
            "last_snapshot_timestamp": latest.timestamp if latest is not None else None,
        }

    # --- Internals ---

    def _build_command(self, request: OperationRequest) -> Command | None:
        factory = self.commands.get(request.kind)
        if factory is None:
            return None
        return factory(request, self._entity.model_copy(deep=True))

    def _checkpoint(self) -> Snapshot:
        snapshot = self.snapshots.checkpoint(
            self._entity.data,
            state=self._entity.state if self.capture_state else None,
        )
        logging.debug(f"Checkpoint #{snapshot.sequence} taken in state {self._entity.state!r}")
        return snapshot

    async def _publish(self, event_type: str, **fields):
        await self.notifier.publish(
            EngineEvent(
                type=event_type,
                state=self._entity.state,
                timestamp=datetime.now(timezone.utc),
                **fields,
            )
        )


@asynccontextmanager
async def open_engine(
    config: Dict,
    entity: Entity,
    machine: Union[LifecycleStateMachine, TransitionTable],
    validators: Union[ValidatorChain, Iterable[Validator], None] = None,
    commands: Mapping[OperationKind, CommandFactory] | None = None,
) -> AsyncIterator[Engine]:
    notifier = Notifier()
    await notifier.start()
    engine = Engine(
        config,
        entity,
        machine,
        validators=validators,
        commands=commands,
        notifier=notifier,
    )
    await engine._async_init()
    logging.info(f"Engine opened in state {entity.state!r}")
    try:
        yield engine
    finally:
        await notifier.stop()
        logging.info(f"Engine closed in state {engine.current_state!r}")
