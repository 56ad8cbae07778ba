"""
A drawing canvas: while drawing, every `handle` adds a point; `cancel`
closes the canvas for good. Drawing sessions lean on snapshot rollback
rather than undoing each point.
"""
from enum import Enum
from typing import Dict, List

from .commands import AppendItemCommand
from .models import Entity, OperationKind, OperationRequest
from .protocols import CommandFactory, Validator
from .state_machine import TransitionTable
from .validation import PredicateValidator, RequiredFieldValidator


class CanvasState(str, Enum):
    DRAWING = "drawing"
    CLOSED = "closed"


CANVAS_TABLE = TransitionTable(
    {
        (CanvasState.DRAWING, OperationKind.HANDLE): CanvasState.DRAWING,
        (CanvasState.DRAWING, OperationKind.CANCEL): CanvasState.CLOSED,
    },
    terminal_states=[CanvasState.CLOSED],
)


def new_canvas() -> Entity:
    return Entity(state=CanvasState.DRAWING, data={"points": []})


def draw_point(request: OperationRequest, canvas: Entity) -> AppendItemCommand:
    return AppendItemCommand("points", [request.payload["x"], request.payload["y"]])


def canvas_commands() -> Dict[OperationKind, CommandFactory]:
    return {OperationKind.HANDLE: draw_point}


def _numeric_coordinates(request: OperationRequest) -> bool:
    if request.kind is not OperationKind.HANDLE:
        return True
    return all(
        isinstance(request.payload.get(axis), (int, float)) for axis in ("x", "y")
    )


def canvas_validators() -> List[Validator]:
    return [
        RequiredFieldValidator("x", kinds=[OperationKind.HANDLE]),
        RequiredFieldValidator("y", kinds=[OperationKind.HANDLE]),
        PredicateValidator("numeric", _numeric_coordinates, "coordinates must be numbers"),
    ]
