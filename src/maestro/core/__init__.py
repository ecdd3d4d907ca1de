"""Shared types, errors and events."""
from .types import (
    ControlMode,
    ControllerState,
    GestureLabel,
    HandFrame,
    HandObservation,
    Handedness,
    PlayState,
    Position,
)

__all__ = [
    "ControlMode",
    "ControllerState",
    "GestureLabel",
    "HandFrame",
    "HandObservation",
    "Handedness",
    "PlayState",
    "Position",
]
