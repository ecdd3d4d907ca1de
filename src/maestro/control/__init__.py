"""Playback control: mode mappers, smoothing, fading, players and the controller."""
from .controller import ControllerConfig, MediaGestureController
from .player import MprisPlayer, Player, SimulatedPlayer, create_player

__all__ = [
    "ControllerConfig",
    "MediaGestureController",
    "MprisPlayer",
    "Player",
    "SimulatedPlayer",
    "create_player",
]
