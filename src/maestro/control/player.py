"""
Player Backends
===============

The controller drives playback through the small ``Player`` interface:
play / pause / seek-to-start / volume / rate, plus ``load`` for a track.
Players report lifecycle changes (play, pause, ended) to their listeners.

Backends:
- SimulatedPlayer: in-memory, logs what it would do. Used when no real
  player is available, and in tests.
- MprisPlayer: any MPRIS2-capable desktop player (VLC, mpv with
  mpv-mpris, ...) over the D-Bus session bus.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from maestro.core.errors import PlaybackStartFailure, PlayerUnavailableError
from maestro.core.events import PlayerEvent
from maestro.utils.config import config_value

logger = logging.getLogger(__name__)


@dataclass
class PlayerConfig:
    """Player backend selection."""
    backend: str = "simulated"  # simulated or mpris
    service_name: str = "org.mpris.MediaPlayer2.vlc"
    poll_interval_ms: int = 250

    @classmethod
    def from_dict(cls, config: dict) -> "PlayerConfig":
        return cls(
            backend=config_value(config, "backend", "simulated"),
            service_name=config_value(config, "service_name", "org.mpris.MediaPlayer2.vlc"),
            poll_interval_ms=config_value(config, "poll_interval_ms", 250),
        )


class Player(ABC):
    """Playback primitives used by the controller."""

    def __init__(self):
        self._listeners: List[Callable[[PlayerEvent], None]] = []

    def add_listener(self, callback: Callable[[PlayerEvent], None]) -> None:
        """Register ``callback(event)`` for lifecycle events."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[PlayerEvent], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, event: PlayerEvent) -> None:
        for callback in list(self._listeners):
            try:
                callback(event)
            except Exception as e:
                logger.error("Player listener error [%s]: %s", event.value, e)

    @abstractmethod
    def load(self, source: str) -> None:
        """Make ``source`` the current track."""

    @property
    @abstractmethod
    def has_source(self) -> bool:
        """True if a track is loaded."""

    @abstractmethod
    def play(self) -> None:
        """Start or resume playback.

        Raises:
            PlaybackStartFailure: if the player refuses to play
        """

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        ...

    @abstractmethod
    def set_playback_rate(self, rate: float) -> None:
        ...

    @abstractmethod
    def seek_to_start(self) -> None:
        ...

    def poll(self) -> None:
        """Check the backend for lifecycle changes (push-only players ignore this)."""


class SimulatedPlayer(Player):
    """
    In-memory player.

    Every primitive is recorded in ``calls`` so tests can assert on what
    the controller pushed. ``fail_play`` makes the next ``play()`` calls
    raise ``PlaybackStartFailure``; ``finish()`` simulates the track ending.

    Example:
        >>> player = SimulatedPlayer()
        >>> player.load("song.mp3")
        >>> player.play()
        >>> player.calls[-1]
        ('play',)
    """

    def __init__(self):
        super().__init__()
        self.source: Optional[str] = None
        self.playing = False
        self.volume = 1.0
        self.rate = 1.0
        self.position = 0.0
        self.fail_play = False
        self.calls: list = []

    def load(self, source: str) -> None:
        logger.debug("[SIMULATED] load %s", source)
        self.calls.append(("load", source))
        self.source = source
        self.playing = False
        self.position = 0.0

    @property
    def has_source(self) -> bool:
        return bool(self.source)

    def play(self) -> None:
        self.calls.append(("play",))
        if not self.source:
            raise PlaybackStartFailure("No source loaded")
        if self.fail_play:
            raise PlaybackStartFailure("Simulated playback failure")
        logger.debug("[SIMULATED] play")
        was_playing, self.playing = self.playing, True
        if not was_playing:
            self._notify(PlayerEvent.PLAY)

    def pause(self) -> None:
        logger.debug("[SIMULATED] pause")
        self.calls.append(("pause",))
        was_playing, self.playing = self.playing, False
        if was_playing:
            self._notify(PlayerEvent.PAUSE)

    def set_volume(self, volume: float) -> None:
        self.calls.append(("set_volume", volume))
        self.volume = volume

    def set_playback_rate(self, rate: float) -> None:
        self.calls.append(("set_playback_rate", rate))
        self.rate = rate

    def seek_to_start(self) -> None:
        self.calls.append(("seek_to_start",))
        self.position = 0.0

    def finish(self) -> None:
        """Simulate the track reaching its end."""
        self.playing = False
        self._notify(PlayerEvent.ENDED)

    def calls_named(self, name: str) -> list:
        return [c for c in self.calls if c[0] == name]


class MprisPlayer(Player):
    """
    MPRIS2 player over the D-Bus session bus.

    Lifecycle events are derived by polling ``PlaybackStatus``; call
    ``poll()`` periodically (the CLI does this on a timer).
    """

    OBJECT_PATH = "/org/mpris/MediaPlayer2"
    PLAYER_IFACE = "org.mpris.MediaPlayer2.Player"
    PROPS_IFACE = "org.freedesktop.DBus.Properties"

    def __init__(self, config: Optional[PlayerConfig] = None):
        super().__init__()
        self.config = config or PlayerConfig(backend="mpris")
        try:
            import dbus
        except ImportError as e:
            raise PlayerUnavailableError("dbus-python is not installed") from e

        self._dbus = dbus
        try:
            bus = dbus.SessionBus()
            obj = bus.get_object(self.config.service_name, self.OBJECT_PATH)
        except dbus.DBusException as e:
            raise PlayerUnavailableError(
                f"MPRIS service {self.config.service_name} not reachable: {e}") from e

        self._iface = dbus.Interface(obj, self.PLAYER_IFACE)
        self._props = dbus.Interface(obj, self.PROPS_IFACE)
        self._source: Optional[str] = None
        self._last_status: Optional[str] = None
        logger.info("Connected to MPRIS player %s", self.config.service_name)

    def _get(self, name: str):
        return self._props.Get(self.PLAYER_IFACE, name)

    def _set(self, name: str, value) -> None:
        try:
            self._props.Set(self.PLAYER_IFACE, name, value)
        except self._dbus.DBusException as e:
            logger.warning("MPRIS set %s failed: %s", name, e)

    def _track_id(self):
        try:
            metadata = self._get("Metadata") or {}
        except self._dbus.DBusException:
            return None
        return metadata.get("mpris:trackid")

    def load(self, source: str) -> None:
        uri = source if "://" in source else Path(source).resolve().as_uri()
        try:
            self._iface.OpenUri(uri)
        except self._dbus.DBusException as e:
            logger.warning("MPRIS OpenUri failed for %s: %s", uri, e)
            return
        self._source = uri

    @property
    def has_source(self) -> bool:
        return self._source is not None or self._track_id() is not None

    def play(self) -> None:
        try:
            if not bool(self._get("CanPlay")):
                raise PlaybackStartFailure("Player reports CanPlay=false")
            self._iface.Play()
        except self._dbus.DBusException as e:
            raise PlaybackStartFailure(str(e)) from e

    def pause(self) -> None:
        try:
            self._iface.Pause()
        except self._dbus.DBusException as e:
            logger.warning("MPRIS pause failed: %s", e)

    def set_volume(self, volume: float) -> None:
        self._set("Volume", self._dbus.Double(volume))

    def set_playback_rate(self, rate: float) -> None:
        self._set("Rate", self._dbus.Double(rate))

    def seek_to_start(self) -> None:
        track_id = self._track_id()
        try:
            if track_id is not None:
                self._iface.SetPosition(track_id, self._dbus.Int64(0))
            else:
                position = int(self._get("Position"))
                self._iface.Seek(self._dbus.Int64(-position))
        except self._dbus.DBusException as e:
            logger.warning("MPRIS seek to start failed: %s", e)

    def poll(self) -> None:
        try:
            status = str(self._get("PlaybackStatus"))
        except self._dbus.DBusException as e:
            logger.debug("MPRIS status poll failed: %s", e)
            return

        previous, self._last_status = self._last_status, status
        if previous is None or previous == status:
            return
        if status == "Playing":
            self._notify(PlayerEvent.PLAY)
        elif status == "Paused":
            self._notify(PlayerEvent.PAUSE)
        elif status == "Stopped" and previous == "Playing":
            self._notify(PlayerEvent.ENDED)


def create_player(config: Optional[PlayerConfig] = None) -> Player:
    """Build the configured backend, falling back to simulation if it is unavailable."""
    config = config or PlayerConfig()
    if config.backend == "simulated":
        return SimulatedPlayer()
    if config.backend == "mpris":
        try:
            return MprisPlayer(config)
        except PlayerUnavailableError as e:
            logger.warning("%s - falling back to simulated player", e)
            return SimulatedPlayer()
    raise ValueError(f"Unknown player backend: {config.backend!r}")
