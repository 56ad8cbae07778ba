import argparse
import asyncio
import logging

from reversible_engine import OperationKind, OperationRequest, open_engine
from reversible_engine.canvas import CANVAS_TABLE, canvas_commands, canvas_validators, new_canvas
from reversible_engine.orders import ORDER_TABLE, new_order, order_commands, order_validators


async def order_demo():
    order = new_order(["rice", "side dishes"], total_amount=200.12)
    async with open_engine({}, order, ORDER_TABLE, order_validators(), order_commands()) as engine:
        for _ in range(3):
            result = await engine.submit(OperationRequest(kind=OperationKind.HANDLE))
            print(f"handle -> {result.model_dump()}")

        result = await engine.submit(
            OperationRequest(kind=OperationKind.CANCEL, payload={"reason": "too late"})
        )
        print(f"cancel -> {result.model_dump()}")

        print(f"undo -> {(await engine.undo()).model_dump()}")
        result = await engine.submit(
            OperationRequest(kind=OperationKind.CANCEL, payload={"reason": "no"})
        )
        print(f"cancel (short reason) -> {result.model_dump()}")
        result = await engine.submit(
            OperationRequest(kind=OperationKind.CANCEL, payload={"reason": "changed my mind"})
        )
        print(f"cancel -> {result.model_dump()}")
        print(f"metrics -> {await engine.metrics()}")


async def canvas_demo():
    config = {"checkpoint_kinds": ["handle"], "default_data": {"points": []}}
    async with open_engine(
        config, new_canvas(), CANVAS_TABLE, canvas_validators(), canvas_commands()
    ) as engine:
        for x, y in [(20, 20), (30, 30), (40, 40)]:
            await engine.submit(OperationRequest(kind=OperationKind.HANDLE, payload={"x": x, "y": y}))
            print(f"draw ({x}, {y}) -> points {engine.entity_data()['points']}")

        for _ in range(4):
            result = await engine.rollback_one()
            print(f"rollback -> {result.model_dump()}")


async def main():
    parser = argparse.ArgumentParser(description="Reversible operation engine demo")
    parser.add_argument("scenario", choices=["order", "canvas"], nargs="?", default="order")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.scenario == "order":
        await order_demo()
    else:
        await canvas_demo()


if __name__ == "__main__":
    asyncio.run(main())
