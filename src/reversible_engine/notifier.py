import asyncio
import logging
from collections import defaultdict
from typing import Dict, List

from .models import EngineEvent

ALL_EVENTS = "@all"


class Notifier:
    """
    Fans engine events out to watchers. Each watcher owns an unbounded queue
    subscribed to one event type, or to every event through "@all".
    Stopping the notifier pushes a `None` sentinel so watchers can finish.
    """

    def __init__(self):
        self._watchers: Dict[str, List[asyncio.Queue]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self._running = False

    async def start(self):
        if self._running:
            return
        self._running = True
        logging.info("Notifier started")

    async def stop(self):
        """Wakes every watcher with the sentinel and drops the subscriptions."""
        async with self._lock:
            for queues in self._watchers.values():
                for queue in queues:
                    queue.put_nowait(None)
            self._watchers.clear()
            self._running = False
        logging.info("Notifier stopped")

    async def publish(self, event: EngineEvent):
        async with self._lock:
            for queue in self._watchers.get(event.type, []):
                queue.put_nowait(event)
            for queue in self._watchers.get(ALL_EVENTS, []):
                queue.put_nowait(event)

    async def subscribe(self, event_type: str = ALL_EVENTS) -> asyncio.Queue:
        """Allows a watcher to subscribe to one event type."""
        async with self._lock:
            queue = asyncio.Queue()
            if not self._running:
                queue.put_nowait(None)
                return queue
            self._watchers[event_type].append(queue)
            return queue

    async def unsubscribe(self, event_type: str, queue: asyncio.Queue):
        """Removes a watcher's queue."""
        async with self._lock:
            if event_type in self._watchers and queue in self._watchers[event_type]:
                self._watchers[event_type].remove(queue)
                if not self._watchers[event_type]:
                    del self._watchers[event_type]

    @property
    def watcher_count(self) -> int:
        return sum(len(queues) for queues in self._watchers.values())
