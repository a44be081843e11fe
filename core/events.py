"""
Lightweight event bus carrying human-readable status events.

The frame pipeline and the effect state machine publish what happened
(hand found, snap fired, effect refused...) and any number of sinks
subscribe. Status is advisory; nothing in the control path reads it back.

Usage:
    bus = EventBus()
    bus.subscribe(Events.SNAP_DETECTED, my_handler)
    bus.subscribe(EventBus.ALL, status_sink)
    bus.emit(Events.SNAP_DETECTED, message="SNAP DETECTED!", distance=12.5)
"""

import time
import logging
from collections import defaultdict, deque
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Synchronous publish/subscribe event bus.

    Dispatch happens inline on the caller's frame, in priority order.
    Listener errors are logged and never propagate to the publisher.
    """

    ALL = "*"

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._event_history = deque(maxlen=max_history)
        self._enabled = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for, or EventBus.ALL for every event
            callback: Called as callback(event_name, **kwargs)
            priority: Higher priority callbacks run first (default 0)
        """
        self._listeners[event_name].append((priority, callback))
        self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", callback), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        self._listeners[event_name] = [
            (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
        ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to its listeners, then to wildcard listeners."""
        if not self._enabled:
            return

        self._event_history.append({
            "event": event_name,
            "time": time.time(),
            "message": kwargs.get("message"),
        })

        listeners = list(self._listeners.get(event_name, []))
        listeners += self._listeners.get(self.ALL, [])

        for _, callback in listeners:
            try:
                callback(event_name, **kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)

    def clear(self, event_name: str = None):
        """Remove all listeners, optionally for a specific event."""
        if event_name:
            self._listeners.pop(event_name, None)
        else:
            self._listeners.clear()

    def set_enabled(self, enabled: bool):
        self._enabled = enabled

    @property
    def listener_count(self) -> int:
        """Total number of registered listeners."""
        return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        return list(self._event_history)[-last_n:]


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Standard event names used throughout the system."""

    # Tracking
    HAND_DETECTED = "hand_detected"
    HAND_LOST = "hand_lost"
    FINGER_DISTANCE = "finger_distance"
    SNAP_DETECTED = "snap_detected"

    # Effect lifecycle
    EFFECT_TRIGGERED = "effect_triggered"
    EFFECT_REFUSED = "effect_refused"
    EFFECT_COMPLETE = "effect_complete"
    EFFECT_RESET = "effect_reset"

    # Collaborators
    SYSTEM_STARTING = "system_starting"
    CAMERA_STARTING = "camera_starting"
    CAMERA_STARTED = "camera_started"
    CAMERA_ERROR = "camera_error"
    DETECTOR_ERROR = "detector_error"
    SYSTEM_SHUTDOWN = "system_shutdown"
