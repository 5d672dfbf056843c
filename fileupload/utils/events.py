import inspect
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)


class EventEmitter:
    """Simple event emitter for upload events."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        if event_name not in self._listeners:
            self._listeners[event_name] = []
        if callback not in self._listeners[event_name]:
            self._listeners[event_name].append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if event_name in self._listeners:
            if callback in self._listeners[event_name]:
                self._listeners[event_name].remove(callback)

    def has_listeners(self, event_name: str) -> bool:
        return bool(self._listeners.get(event_name))

    async def emit(self, event_name: str, *args, **kwargs):
        """
        Emit an event to all listeners, in subscription order.

        Listeners may be plain or async callables. A failing listener is
        logged and does not stop the others.
        """
        if event_name not in self._listeners:
            return

        # Copy list: listeners may unsubscribe while we iterate
        for callback in self._listeners[event_name][:]:
            try:
                result = callback(*args, **kwargs)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")
