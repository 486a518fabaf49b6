"""
Socket.IO Observer Channel

ObserverChannel over a python-socketio AsyncServer. Every connected sid
gets its own ObserverOutbox; broadcasting enqueues the event in each
outbox instead of emitting to the whole server at once.
"""

import logging
import time
from typing import Any, Dict, Optional

from .channel import DROP_OLDEST, ObserverChannel, ObserverOutbox
from .events import ClientEvent


logger = logging.getLogger(__name__)


class SocketIOObserverChannel(ObserverChannel):
    """
    python-socketio transport

    Usage:
        sio = socketio.AsyncServer(async_mode='asgi')
        channel = SocketIOObserverChannel(sio)
        channel.on_connect(gateway.handle_connect)
    """

    def __init__(self, sio, outbox_size: int = 100, overflow_policy: str = DROP_OLDEST):
        """
        Initialize the channel and register connection handlers

        Args:
            sio: Socket.IO AsyncServer instance
            outbox_size: Queued events per observer
            overflow_policy: 'drop_oldest' or 'disconnect'
        """
        super().__init__()
        self.sio = sio
        self.outbox_size = outbox_size
        self.overflow_policy = overflow_policy

        self._outboxes: Dict[str, ObserverOutbox] = {}
        self._registered_events = set()

        # Statistics
        self._emit_count = 0
        self._last_emit_time = 0.0
        self._total_connections = 0

        self.sio.on(ClientEvent.CONNECT.value, self.handle_connect)
        self.sio.on(ClientEvent.DISCONNECT.value, self.handle_disconnect)

    @property
    def observer_ids(self):
        return list(self._outboxes)

    def get_outbox(self, sid: str) -> Optional[ObserverOutbox]:
        return self._outboxes.get(sid)

    # ============================================
    # Connection Handlers
    # ============================================

    async def handle_connect(self, sid: str, environ: dict = None, auth: Any = None):
        """
        Handle observer connection

        Args:
            sid: Session ID
            environ: Connection environment
            auth: Optional auth payload (unused)
        """
        outbox = ObserverOutbox(
            sid,
            send=lambda event, data: self.sio.emit(event, data, room=sid),
            maxsize=self.outbox_size,
            policy=self.overflow_policy,
            on_overflow=self._disconnect_slow_observer,
        )
        self._outboxes[sid] = outbox
        outbox.start()
        self._total_connections += 1

        remote = (environ or {}).get("REMOTE_ADDR", "unknown")
        logger.info("Observer connected: %s from %s", sid, remote)

        await self._notify_connect(sid)

    async def handle_disconnect(self, sid: str, reason: Any = None):
        """Drop the observer's outbox; nothing about it is retained"""
        outbox = self._outboxes.pop(sid, None)
        if outbox is None:
            return

        await outbox.close()
        logger.info("Observer disconnected: %s (sent %d, dropped %d)", sid, outbox.sent, outbox.dropped)
        await self._notify_disconnect(sid)

    async def _disconnect_slow_observer(self, sid: str):
        try:
            await self.sio.disconnect(sid)
        except Exception:
            logger.warning("Failed to disconnect slow observer %s", sid, exc_info=True)
        await self.handle_disconnect(sid)

    # ============================================
    # ObserverChannel
    # ============================================

    def on_message(self, event: str, callback):
        super().on_message(event, callback)
        if event in self._registered_events:
            return

        async def handler(sid, data=None):
            await self._notify_message(event, sid, data)

        self.sio.on(event, handler)
        self._registered_events.add(event)

    async def broadcast(self, event: str, data: Any):
        for outbox in list(self._outboxes.values()):
            outbox.put(event, data)
        self._record_emit()

    async def send_to(self, observer_id: str, event: str, data: Any) -> bool:
        outbox = self._outboxes.get(observer_id)
        if outbox is None:
            return False
        queued = outbox.put(event, data)
        if queued:
            self._record_emit()
        return queued

    async def close(self):
        """Close every outbox"""
        outboxes = list(self._outboxes.values())
        self._outboxes.clear()
        for outbox in outboxes:
            await outbox.close()

    def _record_emit(self):
        self._emit_count += 1
        self._last_emit_time = time.time()

    def get_stats(self) -> Dict[str, Any]:
        """Get channel statistics"""
        return {
            "connectedObservers": len(self._outboxes),
            "totalConnections": self._total_connections,
            "totalEmits": self._emit_count,
            "lastEmitTime": self._last_emit_time,
            "overflowPolicy": self.overflow_policy,
            "outboxSize": self.outbox_size,
            "droppedEvents": sum(o.dropped for o in self._outboxes.values()),
        }
