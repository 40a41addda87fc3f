"""
Progress notification for TextOnGif.

Listeners are registered explicitly per event name. Events are delivered
synchronously on the thread that emits them and are not replayed to
listeners that register later.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

DIMENSIONS_KNOWN = "dimensions_known"
EXTRACTION_COMPLETE = "extraction_complete"
FRAME_INDEX = "frame_index"
PROGRESS = "progress"
FINISHED = "finished"

EVENTS = (DIMENSIONS_KNOWN, EXTRACTION_COMPLETE, FRAME_INDEX, PROGRESS, FINISHED)


class EventEmitter:
    """Minimal observer registry keyed by event name."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable[..., Any]]] = defaultdict(list)

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[..., Any]:
        """
        Register a listener.

        Returns the callback so this can be used as a decorator.
        """
        if event not in EVENTS:
            raise ValueError(f"Unknown event {event!r}, expected one of {', '.join(EVENTS)}")
        self._listeners[event].append(callback)
        return callback

    def off(self, event: str, callback: Callable[..., Any]):
        """Remove a previously registered listener."""
        if callback in self._listeners.get(event, []):
            self._listeners[event].remove(callback)

    def emit(self, event: str, *args):
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Listener for '{event}' raised")
