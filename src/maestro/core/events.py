"""
Event plumbing for the controller.

Two halves live here:

* ``EventQueue`` / ``ControlEvent``: the single-consumer inbox. Timers, the
  pose source, UI commands and player lifecycle callbacks only ever *post*
  events; the controller drains them one at a time, so no two handlers ever
  mutate controller state concurrently.
* ``EventBus``: outbound publish/subscribe for observers (status labels,
  logging, UI glue) that want to hear about state changes.

Usage:
    bus = EventBus()
    bus.subscribe(Events.STATE_CHANGED, my_handler)
    bus.emit(Events.STATE_CHANGED, label="State: playing | Volume: 60 | Rate: 1.00x")
"""

import time
import queue
import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Deque, Dict, List, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)


# =============================================================================
# Inbound: control events
# =============================================================================

class EventType(Enum):
    """Kinds of messages processed by the controller."""
    FRAME = auto()          # HandFrame from the pose source
    TICK = auto()           # smoothing tick
    FADE_STEP = auto()      # one fade step, tagged with its fade generation
    COMMAND = auto()        # manual command from UI glue
    PLAYER_EVENT = auto()   # lifecycle event reported by the player


class Command(Enum):
    """Manual commands accepted from the UI."""
    LOAD_TRACK = "load_track"
    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    SET_MODE = "set_mode"
    SET_TRACKING = "set_tracking"


class PlayerEvent(Enum):
    """Lifecycle events emitted by a player."""
    PLAY = "play"
    PAUSE = "pause"
    ENDED = "ended"


@dataclass
class ControlEvent:
    """A single message in the controller inbox."""
    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def frame(cls, frame) -> "ControlEvent":
        return cls(EventType.FRAME, {"frame": frame})

    @classmethod
    def tick(cls) -> "ControlEvent":
        return cls(EventType.TICK)

    @classmethod
    def fade_step(cls, generation: int) -> "ControlEvent":
        return cls(EventType.FADE_STEP, {"generation": generation})

    @classmethod
    def command(cls, command: Command, **kwargs) -> "ControlEvent":
        return cls(EventType.COMMAND, dict(kwargs, command=command))

    @classmethod
    def player_event(cls, event: PlayerEvent) -> "ControlEvent":
        return cls(EventType.PLAYER_EVENT, {"event": event})


class EventQueue:
    """Thread-safe FIFO with exactly one consumer.

    ``put`` may be called from any thread (timer threads, capture callbacks);
    ``get``/``drain`` must only be called by the controller.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: "queue.Queue[ControlEvent]" = queue.Queue(maxsize=maxsize)
        self._dropped = 0

    def put(self, event: ControlEvent) -> bool:
        try:
            self._queue.put_nowait(event)
            return True
        except queue.Full:
            self._dropped += 1
            logger.warning("Event queue full, dropping %s", event.type.name)
            return False

    def get(self, timeout: Optional[float] = None) -> Optional[ControlEvent]:
        """Block up to ``timeout`` seconds for the next event."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self):
        """Yield every event currently queued, without blocking."""
        while True:
            try:
                yield self._queue.get_nowait()
            except queue.Empty:
                return

    def __len__(self) -> int:
        return self._queue.qsize()

    @property
    def dropped(self) -> int:
        return self._dropped


# =============================================================================
# Outbound: observer bus
# =============================================================================

class Published(NamedTuple):
    """One entry of the bus history."""
    event: str
    time: float
    data_keys: Tuple[str, ...]


class EventBus:
    """Thread-safe publish/subscribe bus for controller observers.

    Listeners run in priority order (highest first) on the thread that
    emits, which is the controller's consumer thread. One bus per
    controller; pass it in explicitly where it is needed.
    """

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()
        self._history: Deque[Published] = deque(maxlen=max_history)

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register ``callback(**payload)`` for ``event_name``."""
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", callback), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        with self._lock:
            self._listeners[event_name] = [
                (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
            ]

    def emit(self, event_name: str, **payload):
        """Publish ``payload`` to every listener of ``event_name``.

        A failing listener is logged and skipped; the remaining listeners
        still run.
        """
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))
            self._history.append(Published(event_name, time.time(), tuple(payload)))

        for _, callback in listeners:
            try:
                callback(**payload)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)

    def clear(self):
        """Remove every listener."""
        with self._lock:
            self._listeners.clear()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10, event_name: Optional[str] = None) -> List[Published]:
        """Most recent published events, oldest first, optionally of one name."""
        with self._lock:
            history = list(self._history)
        if event_name is not None:
            history = [h for h in history if h.event == event_name]
        return history[-last_n:]


class Events:
    """Standard event names published on the bus."""

    STATE_CHANGED = "state_changed"
    GESTURE_STATUS = "gesture_status"
    MODE_CHANGED = "mode_changed"
    TRACK_LOADED = "track_loaded"

    FADE_STARTED = "fade_started"
    FADE_COMPLETED = "fade_completed"
    FADE_CANCELLED = "fade_cancelled"

    PLAYBACK_FAILED = "playback_failed"
