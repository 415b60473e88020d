"""
Minimal publish/subscribe used between the media sinks, the playback
session and the orchestrator.
"""

from typing import Any, Callable, Dict, List

from util.logging_util import setup_logger

logger = setup_logger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, callback: Listener):
        self._listeners.setdefault(event, []).append(callback)

    def off(self, event: str, callback: Listener):
        if event in self._listeners:
            self._listeners[event] = [cb for cb in self._listeners[event] if cb is not callback]

    def emit(self, event: str, *args, **kwargs):
        """Call every listener of an event. A failing listener does not stop the others."""
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Listener for '{event}' failed: {e}")
