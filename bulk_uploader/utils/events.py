from enum import Enum
from typing import Callable, Dict, List
import asyncio
import inspect
import logging
logger = logging.getLogger(__name__)


class UploadEvent(Enum):
    """Notifications emitted during a bulk upload."""
    SUCCESS = "upload_success"    # (pathname, response)
    ERROR = "upload_error"        # (pathname, message)
    CRITICAL = "upload_critical"  # (pathname, message)


class EventEmitter:
    """Simple event emitter for upload events."""

    def __init__(self):
        self._listeners: Dict[UploadEvent, List[Callable]] = {}
        self._lock = asyncio.Lock()

    def on(self, event: UploadEvent, callback: Callable):
        """Subscribe to an event."""
        if event not in self._listeners:
            self._listeners[event] = []
        if callback not in self._listeners[event]:
            self._listeners[event].append(callback)

    def off(self, event: UploadEvent, callback: Callable):
        """Unsubscribe from an event."""
        if event in self._listeners:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

    def listener_count(self, event: UploadEvent) -> int:
        return len(self._listeners.get(event, []))

    async def emit(self, event: UploadEvent, *args, **kwargs):
        """Emit an event to all listeners, in registration order."""
        if event not in self._listeners:
            return

        async with self._lock:
            for callback in self._listeners[event][:]:  # Copy list to avoid modification during iteration
                try:
                    result = callback(*args, **kwargs)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(f"Error in event listener for {event.value}: {e}")
