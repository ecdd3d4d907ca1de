"""
Position delta tracker for slider control.

Remembers the last coordinate seen on the currently tracked axis of the
right hand and reports the raw change since then. Only one axis is tracked
at a time: observing X forgets Y and vice versa, so switching from the rate
gesture to the volume gesture always starts from a fresh baseline.

Deadzones are applied by the caller; the tracker only supplies deltas.
"""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class Axis(Enum):
    X = "x"
    Y = "y"


class DeltaTracker:
    """Stateful last-value filter for the slider mapper."""

    def __init__(self):
        self.last_x: Optional[float] = None
        self.last_y: Optional[float] = None

    def observe(self, axis: Axis, value: float) -> Optional[float]:
        """Record ``value`` on ``axis`` and return the delta from the previous one.

        Returns None on the first observation after a reset (or after the
        other axis was observed).
        """
        if axis is Axis.X:
            previous = self.last_x
            self.last_x = value
            self.last_y = None
        else:
            previous = self.last_y
            self.last_y = value
            self.last_x = None

        if previous is None:
            return None
        return value - previous

    def reset(self) -> None:
        """Clear both stored values."""
        if self.last_x is not None or self.last_y is not None:
            logger.debug("Slider tracking reset (x=%s, y=%s)", self.last_x, self.last_y)
        self.last_x = None
        self.last_y = None

    @property
    def is_tracking(self) -> bool:
        return self.last_x is not None or self.last_y is not None
