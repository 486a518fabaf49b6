"""
Observer Channel

Abstract publish/subscribe channel to connected observers, and the
bounded per-observer outbox implementations use for fan-out.

A slow observer only fills its own outbox: sends never block the caller,
and overflow either drops the oldest queued event or disconnects the
observer.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple


logger = logging.getLogger(__name__)


DROP_OLDEST = "drop_oldest"
DISCONNECT = "disconnect"
OVERFLOW_POLICIES = (DROP_OLDEST, DISCONNECT)

ConnectCallback = Callable[[str], Awaitable[None]]
MessageCallback = Callable[[str, Any], Awaitable[None]]


class ObserverChannel(ABC):
    """
    Transport to connected observers

    Subclasses call `_notify_connect`, `_notify_disconnect` and
    `_notify_message` when the transport reports those events.
    """

    def __init__(self):
        self._connect_callbacks: List[ConnectCallback] = []
        self._disconnect_callbacks: List[ConnectCallback] = []
        self._message_callbacks: Dict[str, List[MessageCallback]] = {}

    @abstractmethod
    async def broadcast(self, event: str, data: Any):
        """Queue `event` for every connected observer"""

    @abstractmethod
    async def send_to(self, observer_id: str, event: str, data: Any) -> bool:
        """Queue `event` for one observer; False when it is not connected"""

    async def close(self):
        """Release per-observer resources"""

    def on_connect(self, callback: ConnectCallback):
        self._connect_callbacks.append(callback)

    def on_disconnect(self, callback: ConnectCallback):
        self._disconnect_callbacks.append(callback)

    def on_message(self, event: str, callback: MessageCallback):
        self._message_callbacks.setdefault(event, []).append(callback)

    async def _notify_connect(self, observer_id: str):
        for callback in self._connect_callbacks:
            await self._invoke(callback, observer_id)

    async def _notify_disconnect(self, observer_id: str):
        for callback in self._disconnect_callbacks:
            await self._invoke(callback, observer_id)

    async def _notify_message(self, event: str, observer_id: str, data: Any):
        for callback in self._message_callbacks.get(event, []):
            await self._invoke(callback, observer_id, data)

    @staticmethod
    async def _invoke(callback, *args):
        try:
            await callback(*args)
        except Exception:
            logger.exception("Observer callback %s failed", getattr(callback, '__name__', callback))


class ObserverOutbox:
    """
    Bounded queue of pending events for one observer

    Drained by its own sender task so a slow send only delays this
    observer.

    Args:
        observer_id: Observer identifier
        send: Coroutine function delivering (event, data) to the observer
        maxsize: Maximum queued events
        policy: 'drop_oldest' or 'disconnect' on overflow
        on_overflow: Called with the observer id when the disconnect
            policy triggers
    """

    def __init__(self,
                 observer_id: str,
                 send: Callable[[str, Any], Awaitable],
                 maxsize: int = 100,
                 policy: str = DROP_OLDEST,
                 on_overflow: Optional[Callable[[str], Awaitable]] = None):
        if policy not in OVERFLOW_POLICIES:
            raise ValueError(f"Unknown overflow policy: {policy}. Valid: {list(OVERFLOW_POLICIES)}")

        self.observer_id = observer_id
        self.send = send
        self.policy = policy
        self.on_overflow = on_overflow

        self._queue: asyncio.Queue[Tuple[str, Any]] = asyncio.Queue(maxsize=maxsize)
        self._task: Optional[asyncio.Task] = None
        self._overflow_tasks: Set[asyncio.Task] = set()
        self.closed = False

        # Statistics
        self.sent = 0
        self.dropped = 0
        self.errors = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self):
        if self._task is None:
            self._task = asyncio.create_task(self._drain(), name=f"outbox:{self.observer_id}")

    def put(self, event: str, data: Any) -> bool:
        """
        Enqueue without blocking

        Returns:
            False when the event was not queued (closed, or overflow
            under the disconnect policy)
        """
        if self.closed:
            return False

        if self._queue.full():
            if self.policy == DISCONNECT:
                self.dropped += 1
                self.closed = True
                logger.warning("Outbox for %s overflowed, disconnecting", self.observer_id)
                if self.on_overflow:
                    task = asyncio.create_task(self.on_overflow(self.observer_id))
                    self._overflow_tasks.add(task)
                    task.add_done_callback(self._overflow_tasks.discard)
                return False

            self._queue.get_nowait()
            self._queue.task_done()
            self.dropped += 1

        self._queue.put_nowait((event, data))
        return True

    async def join(self):
        """Wait until every queued event has been handed to `send`"""
        await self._queue.join()

    async def close(self):
        """Stop the sender task; queued events are discarded"""
        self.closed = True
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _drain(self):
        while True:
            event, data = await self._queue.get()
            try:
                await self.send(event, data)
                self.sent += 1
            except Exception as e:
                self.errors += 1
                logger.warning("Failed to send %s to %s: %s", event, self.observer_id, e)
            finally:
                self._queue.task_done()

    def get_stats(self) -> dict:
        return {
            'observerId': self.observer_id,
            'pending': self.pending,
            'sent': self.sent,
            'dropped': self.dropped,
            'errors': self.errors,
            'policy': self.policy,
        }
