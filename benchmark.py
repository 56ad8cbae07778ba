import argparse
import asyncio
import time

from reversible_engine import OperationKind, OperationRequest, open_engine
from reversible_engine.canvas import CANVAS_TABLE, canvas_commands, new_canvas


async def benchmark(num_operations: int, checkpoint: bool):
    print(f"Benchmarking with {num_operations} operations (checkpoints: {checkpoint})...")
    config = {"checkpoint_kinds": ["handle"] if checkpoint else []}

    async with open_engine(config, new_canvas(), CANVAS_TABLE, commands=canvas_commands()) as engine:
        requests = [
            OperationRequest(kind=OperationKind.HANDLE, payload={"x": i, "y": i})
            for i in range(num_operations)
        ]

        start_submit = time.perf_counter()
        for request in requests:
            await engine.submit(request)
        submit_time = time.perf_counter() - start_submit

        start_undo = time.perf_counter()
        while engine.history_length:
            await engine.undo()
        undo_time = time.perf_counter() - start_undo

    submit_throughput = num_operations / submit_time if submit_time > 0 else 0
    undo_throughput = num_operations / undo_time if undo_time > 0 else 0
    print(f"Submit: {submit_time:.4f}s ({submit_throughput:,.0f} ops/s), Undo: {undo_time:.4f}s ({undo_throughput:,.0f} ops/s)")


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--num-operations", type=int, default=1000)
    parser.add_argument("--checkpoint", action="store_true")
    args = parser.parse_args()
    await benchmark(args.num_operations, args.checkpoint)


if __name__ == "__main__":
    asyncio.run(main())
