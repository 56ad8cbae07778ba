"""
This module defines the abstract protocols for validators and commands.

By using `Protocol`-based interfaces, the engine is decoupled from concrete
validation rules and domain actions. New validators or commands can be added
without touching the engine or the existing implementations.
"""
from typing import Any, Optional, Protocol

from .models import Entity, OperationRequest


class Validator(Protocol):
    """
    Defines the contract for one link of a validator chain.
    `check` returns None to pass, or the reason the request is rejected.
    Implementations must not mutate anything.
    """
    name: str

    def check(self, request: OperationRequest) -> Optional[str]:
        ...


class Command(Protocol):
    """
    Defines the contract for a reversible unit of work. A command captures the
    inverse data it needs when executed and exposes its result afterwards.
    """
    result: Any

    def execute(self, entity: Entity) -> Any:
        ...

    def undo(self, entity: Entity) -> None:
        ...


class CommandFactory(Protocol):
    """
    Builds the domain command for an accepted request. The entity handed in is
    a copy of the live one, for reading only.
    """
    def __call__(self, request: OperationRequest, entity: Entity) -> Command:
        ...
