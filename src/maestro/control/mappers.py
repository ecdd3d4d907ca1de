"""
Mode Router
===========

Gesture-to-intent mapping strategies. Exactly one mapper is active at a
time; the controller picks it once per mode switch via ``create_mapper``.

Mappers never touch the player or the controller state. They read a
snapshot of the state and return a ``ControlIntent`` that the controller
applies (fade-gating pause intents and honouring the fading guard).

- StaticMapper: discrete finger-count tiers, eased in by the smoothing tick.
- SliderMapper: continuous right-hand position deltas applied immediately.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

from maestro.control.deadzone import Axis, DeltaTracker
from maestro.core.types import (
    RATE_MAX,
    RATE_MIN,
    VOLUME_MAX,
    VOLUME_MIN,
    ControlMode,
    ControllerState,
    GestureLabel,
    HandFrame,
    clamp,
)
from maestro.utils.config import config_value

logger = logging.getLogger(__name__)


@dataclass
class ControlIntent:
    """What a mapper wants done in response to one frame."""
    play: bool = False
    pause: bool = False
    target_volume: Optional[float] = None
    target_rate: Optional[float] = None
    # Direct manipulation: applied to the actual value and its target at once
    direct_volume: Optional[float] = None
    direct_rate: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not (self.play or self.pause) and all(
            v is None for v in (self.target_volume, self.target_rate,
                                self.direct_volume, self.direct_rate))


def _tiers(config: dict, key: str, default: Dict[int, float]) -> Dict[int, float]:
    """Read a finger-count tier table, keeping ``default`` if it is malformed."""
    mapping = config_value(config, key, default)
    try:
        return {int(k): float(v) for k, v in mapping.items()}
    except (TypeError, ValueError) as e:
        logger.warning("Config %s is not a finger-count table (%s), using defaults", key, e)
        return dict(default)


@dataclass
class StaticConfig:
    """Finger-count tier tables for static mode."""
    volume_tiers: Dict[int, float] = field(default_factory=lambda: {
        1: 0.25, 2: 0.5, 3: 0.75, 4: 1.0,
    })
    rate_tiers: Dict[int, float] = field(default_factory=lambda: {
        1: 0.5, 2: 0.75, 3: 1.0, 4: 1.5,
    })

    @classmethod
    def from_dict(cls, config: dict) -> "StaticConfig":
        defaults = cls()
        return cls(
            volume_tiers=_tiers(config, "volume_tiers", defaults.volume_tiers),
            rate_tiers=_tiers(config, "rate_tiers", defaults.rate_tiers),
        )


@dataclass
class SliderConfig:
    """Deadzones (canvas pixels) and gains for slider mode."""
    deadzone_x: float = 15.0
    deadzone_y: float = 10.0
    rate_gain: float = 0.005
    volume_gain: float = 0.002

    @classmethod
    def from_dict(cls, config: dict) -> "SliderConfig":
        return cls(
            deadzone_x=config_value(config, "deadzone_x", 15.0),
            deadzone_y=config_value(config, "deadzone_y", 10.0),
            rate_gain=config_value(config, "rate_gain", 0.005),
            volume_gain=config_value(config, "volume_gain", 0.002),
        )


class ModeMapper(ABC):
    """Common capability of all control modes."""

    mode: ControlMode

    @abstractmethod
    def map_observations(self, frame: HandFrame, state: ControllerState) -> ControlIntent:
        """Translate one frame into a control intent."""

    def reset(self) -> None:
        """Forget any per-frame tracking history."""


class StaticMapper(ModeMapper):
    """
    Discrete, position-independent mapping.

    - Both hands open: play. Both hands closed: pause (faded).
    - Left hand 1-4 fingers: volume tier. Right hand 1-4 fingers: rate tier.
    - A missing hand leaves its target where it was.
    """

    mode = ControlMode.STATIC

    def __init__(self, config: Optional[StaticConfig] = None):
        self.config = config or StaticConfig()

    def map_observations(self, frame: HandFrame, state: ControllerState) -> ControlIntent:
        intent = ControlIntent()
        left = frame.left.gesture if frame.left else None
        right = frame.right.gesture if frame.right else None

        if left is GestureLabel.OPEN_HAND and right is GestureLabel.OPEN_HAND:
            intent.play = not state.is_playing
        elif left is GestureLabel.CLOSED_FIST and right is GestureLabel.CLOSED_FIST:
            intent.pause = state.is_playing

        if left is not None and left.finger_count in self.config.volume_tiers:
            intent.target_volume = self.config.volume_tiers[left.finger_count]

        if right is not None and right.finger_count in self.config.rate_tiers:
            intent.target_rate = self.config.rate_tiers[right.finger_count]

        return intent


class SliderMapper(ModeMapper):
    """
    Continuous, position-driven mapping.

    Left hand: open plays, closed fist pauses (faded).
    Right hand open: horizontal movement scrubs the playback rate.
    Right hand closed: vertical movement scrubs the volume (up is louder).
    Anything else on the right resets the position history.
    """

    mode = ControlMode.SLIDER

    def __init__(self, config: Optional[SliderConfig] = None,
                 tracker: Optional[DeltaTracker] = None):
        self.config = config or SliderConfig()
        self.tracker = tracker or DeltaTracker()

    def map_observations(self, frame: HandFrame, state: ControllerState) -> ControlIntent:
        intent = ControlIntent()

        left = frame.left.gesture if frame.left else None
        if left is GestureLabel.OPEN_HAND:
            intent.play = not state.is_playing
        elif left is GestureLabel.CLOSED_FIST:
            intent.pause = state.is_playing

        right = frame.right
        if right is None:
            self.tracker.reset()
            return intent

        if right.gesture is GestureLabel.OPEN_HAND:
            delta = self.tracker.observe(Axis.X, right.position.x)
            if delta is not None and abs(delta) > self.config.deadzone_x:
                intent.direct_rate = clamp(
                    state.rate + delta * self.config.rate_gain, RATE_MIN, RATE_MAX)
        elif right.gesture is GestureLabel.CLOSED_FIST:
            delta = self.tracker.observe(Axis.Y, right.position.y)
            if delta is not None and abs(delta) > self.config.deadzone_y:
                # Canvas y grows downward, so moving the fist up raises volume
                intent.direct_volume = clamp(
                    state.volume - delta * self.config.volume_gain, VOLUME_MIN, VOLUME_MAX)
        else:
            self.tracker.reset()

        return intent

    def reset(self) -> None:
        self.tracker.reset()


def create_mapper(mode: ControlMode, static: Optional[StaticConfig] = None,
                  slider: Optional[SliderConfig] = None,
                  tracker: Optional[DeltaTracker] = None) -> ModeMapper:
    """Build the mapper for ``mode``."""
    if mode is ControlMode.STATIC:
        return StaticMapper(static)
    return SliderMapper(slider, tracker)
