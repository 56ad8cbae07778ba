"""
An order lifecycle: an order is accepted, paid, then delivered, and may be
cancelled until it is delivered. Delivered and cancelled orders are final.
"""
import uuid
from enum import Enum
from typing import Dict, Iterable, List

from .commands import SetFieldsCommand
from .models import Entity, OperationKind, OperationRequest
from .protocols import CommandFactory, Validator
from .state_machine import TransitionTable
from .validation import MinLengthValidator


class OrderState(str, Enum):
    PENDING = "pending"
    PAYMENT = "payment"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ORDER_TABLE = TransitionTable(
    {
        (OrderState.PENDING, OperationKind.HANDLE): OrderState.PAYMENT,
        (OrderState.PENDING, OperationKind.CANCEL): OrderState.CANCELLED,
        (OrderState.PAYMENT, OperationKind.HANDLE): OrderState.DELIVERED,
        (OrderState.PAYMENT, OperationKind.CANCEL): OrderState.CANCELLED,
    },
    terminal_states=[OrderState.DELIVERED, OrderState.CANCELLED],
)


def new_order(items: Iterable[str], total_amount: float, order_id: str | None = None) -> Entity:
    return Entity(
        state=OrderState.PENDING,
        data={
            "id": order_id or uuid.uuid4().hex,
            "items": list(items),
            "total_amount": total_amount,
        },
    )


def progress_order(request: OperationRequest, order: Entity) -> SetFieldsCommand:
    if order.state == OrderState.PENDING:
        updates = {"accepted": True}
    else:
        updates = {
            "paid_amount": request.payload.get("amount", order.data["total_amount"]),
        }
    return SetFieldsCommand(updates)


def cancel_order(request: OperationRequest, order: Entity) -> SetFieldsCommand:
    return SetFieldsCommand(
        {"cancel_reason": request.payload.get("reason", "cancelled by customer")}
    )


def order_commands() -> Dict[OperationKind, CommandFactory]:
    return {
        OperationKind.HANDLE: progress_order,
        OperationKind.CANCEL: cancel_order,
    }


def order_validators() -> List[Validator]:
    # Cancellations have to say why.
    return [MinLengthValidator("reason", 3, kinds=[OperationKind.CANCEL])]
