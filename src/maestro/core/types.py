"""
Shared domain types for the Maestro gesture media controller.

Centralizes enums, data classes, and type definitions used across modules
to eliminate circular imports and ensure type consistency.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, NamedTuple


# =============================================================================
# Gesture Types
# =============================================================================

class GestureLabel(Enum):
    """Discrete classification of one hand's finger-extension pattern."""
    CLOSED_FIST = "Closed Fist"
    ONE_FINGER = "One Finger"
    TWO_FINGERS = "Two Fingers"
    THREE_FINGERS = "Three Fingers"
    FOUR_FINGERS = "Four Fingers"
    OPEN_HAND = "Open Hand"
    OTHER = "Other"
    NONE = "None"

    @classmethod
    def from_count(cls, count: int) -> "GestureLabel":
        """Map a number of extended fingers to its label."""
        return _COUNT_LABELS.get(count, cls.OTHER)

    @classmethod
    def from_string(cls, name: str) -> "GestureLabel":
        """Convert a label string (value, enum name or legacy form), safely."""
        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            return cls.NONE
        key = name.strip()
        for label in cls:
            if key == label.value or key.upper() == label.name:
                return label
        return _LEGACY_LABELS.get(key, cls.NONE)

    @property
    def finger_count(self) -> Optional[int]:
        """Number of extended fingers, or None for Other/None."""
        for count, label in _COUNT_LABELS.items():
            if label is self:
                return count
        return None

    @property
    def is_hand(self) -> bool:
        return self is not GestureLabel.NONE


_COUNT_LABELS: Dict[int, GestureLabel] = {
    0: GestureLabel.CLOSED_FIST,
    1: GestureLabel.ONE_FINGER,
    2: GestureLabel.TWO_FINGERS,
    3: GestureLabel.THREE_FINGERS,
    4: GestureLabel.FOUR_FINGERS,
    5: GestureLabel.OPEN_HAND,
}

# Labels emitted by older recordings of the web tracker
_LEGACY_LABELS: Dict[str, GestureLabel] = {
    "1 Finger": GestureLabel.ONE_FINGER,
    "2 Fingers": GestureLabel.TWO_FINGERS,
    "3 Fingers": GestureLabel.THREE_FINGERS,
    "4 Fingers": GestureLabel.FOUR_FINGERS,
}


class Handedness(Enum):
    """Which hand an observation belongs to."""
    LEFT = "Left"
    RIGHT = "Right"

    @classmethod
    def from_string(cls, name) -> Optional["Handedness"]:
        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            return None
        key = name.strip().lower()
        for hand in cls:
            if key == hand.value.lower():
                return hand
        return None

    @property
    def mirrored(self) -> "Handedness":
        return Handedness.RIGHT if self is Handedness.LEFT else Handedness.LEFT


class FingerExtensionVector(NamedTuple):
    """Per-finger extension flags for one hand in one frame."""
    thumb: bool
    index: bool
    middle: bool
    ring: bool
    pinky: bool

    @property
    def count(self) -> int:
        return sum(1 for extended in self if extended)


# =============================================================================
# Observations
# =============================================================================

class Position(NamedTuple):
    """Hand position in canvas pixel coordinates."""
    x: float
    y: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


@dataclass(frozen=True)
class HandObservation:
    """One classified hand in one frame."""
    handedness: Handedness
    gesture: GestureLabel
    position: Position

    @classmethod
    def from_dict(cls, data: dict, handedness: Handedness) -> Optional["HandObservation"]:
        """Parse a recorded observation, returning None when it is malformed."""
        if not isinstance(data, dict):
            return None
        gesture = GestureLabel.from_string(data.get("gesture"))
        try:
            position = Position(float(data["x"]), float(data["y"]))
        except (KeyError, TypeError, ValueError):
            return None
        if not gesture.is_hand or not position.is_finite:
            return None
        return cls(handedness=handedness, gesture=gesture, position=position)


@dataclass(frozen=True)
class HandFrame:
    """Pair of optional hand observations produced by the pose source per frame."""
    left: Optional[HandObservation] = None
    right: Optional[HandObservation] = None

    @classmethod
    def from_dict(cls, data: dict) -> "HandFrame":
        """Build a frame from ``{"left": {...}|None, "right": {...}|None}``."""
        if not isinstance(data, dict):
            return cls()
        return cls(
            left=HandObservation.from_dict(data.get("left"), Handedness.LEFT),
            right=HandObservation.from_dict(data.get("right"), Handedness.RIGHT),
        )

    @property
    def is_empty(self) -> bool:
        return self.left is None and self.right is None

    def gesture(self, handedness: Handedness) -> GestureLabel:
        hand = self.left if handedness is Handedness.LEFT else self.right
        return hand.gesture if hand else GestureLabel.NONE


# =============================================================================
# Control State
# =============================================================================

class ControlMode(Enum):
    """Active strategy for mapping gestures to control values."""
    STATIC = "static"
    SLIDER = "slider"

    @classmethod
    def from_string(cls, name: str) -> "ControlMode":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown control mode: {name!r}") from None


class PlayState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


VOLUME_MIN = 0.0
VOLUME_MAX = 1.0
RATE_MIN = 0.25
RATE_MAX = 3.0


@dataclass
class ControllerState:
    """Single source of truth for the controller.

    Owned exclusively by the controller; every other component receives it
    (or a snapshot of it) and never holds on to it between events.
    """
    volume: float = 0.6
    target_volume: float = 0.6
    rate: float = 1.0
    target_rate: float = 1.0
    play_state: PlayState = PlayState.STOPPED
    fading: bool = False

    @property
    def is_playing(self) -> bool:
        return self.play_state is PlayState.PLAYING

    def sync_targets(self) -> None:
        """Point targets at the current actual values."""
        self.target_volume = self.volume
        self.target_rate = self.rate

    def describe(self) -> str:
        """Human-readable status line, e.g. ``State: playing | Volume: 60 | Rate: 1.00x``."""
        return "State: {} | Volume: {} | Rate: {:.2f}x".format(
            self.play_state.value, int(round(self.volume * 100)), self.rate)

    def to_dict(self) -> dict:
        return {
            "volume": self.volume,
            "target_volume": self.target_volume,
            "rate": self.rate,
            "target_rate": self.target_rate,
            "play_state": self.play_state.value,
            "fading": self.fading,
        }


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
