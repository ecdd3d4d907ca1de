"""
Gesture Media Controller
========================

Orchestrates gesture mapping, smoothing, fading and manual commands over a
single ``ControllerState``.

Architecture:
    PoseSource -> submit_frame() ----\
    tick timer -> TICK ---------------\
    fade timer -> FADE_STEP ----------->  EventQueue  ->  dispatch()  ->  Player
    UI glue    -> submit_command() ---/                       |
    Player     -> PLAYER_EVENT ------/                        v
                                                          EventBus (observers)

Producers only enqueue. A single consumer (``process_pending`` or ``run``)
applies events one at a time, so state mutation is never concurrent. The
``fading`` flag is the only guard between the fade and everything else:
while it is set, gesture frames, smoothing ticks and manual play/pause are
ignored; stop always wins.

The handler methods (``handle_frame``, ``tick``, ``play_manual``, ...) may
be called directly, but only from the consumer thread.
"""

import time
import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from maestro.control.deadzone import DeltaTracker
from maestro.control.fade import FadeConfig, FadeController
from maestro.control.mappers import (
    ControlIntent,
    ModeMapper,
    SliderConfig,
    StaticConfig,
    create_mapper,
)
from maestro.control.player import Player
from maestro.control.smoothing import SmoothingConfig, SmoothingEngine
from maestro.control.timers import PeriodicTimer
from maestro.core.errors import PlaybackStartFailure
from maestro.core.events import (
    Command,
    ControlEvent,
    EventBus,
    EventQueue,
    Events,
    EventType,
    PlayerEvent,
)
from maestro.core.types import (
    RATE_MAX,
    RATE_MIN,
    VOLUME_MAX,
    VOLUME_MIN,
    ControlMode,
    ControllerState,
    HandFrame,
    HandObservation,
    Handedness,
    PlayState,
    Position,
    clamp,
)
from maestro.utils.config import config_section, config_value
from maestro.utils.logger import ControlEventLogger

logger = logging.getLogger(__name__)

STATUS_NO_HANDS = "(no hands)"
STATUS_CAMERA_OFF = "(camera off)"
STATUS_WAITING = "(waiting)"


@dataclass
class ControllerConfig:
    """Aggregated controller configuration."""
    tick_interval_ms: int = 50
    default_volume: float = 0.6
    default_rate: float = 1.0
    initial_mode: ControlMode = ControlMode.SLIDER
    tracking_enabled: bool = True
    # Hand positions are clamped to this canvas (pixels)
    canvas_width: int = 640
    canvas_height: int = 480
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    fade: FadeConfig = field(default_factory=FadeConfig)
    static: StaticConfig = field(default_factory=StaticConfig)
    slider: SliderConfig = field(default_factory=SliderConfig)

    @classmethod
    def from_dict(cls, config: dict) -> "ControllerConfig":
        """Create config from the full (YAML parsed) configuration dictionary."""
        controller = config_section(config, "controller")
        pose = config_section(config, "pose")

        mode_name = config_value(controller, "initial_mode", "slider")
        try:
            initial_mode = ControlMode.from_string(mode_name)
        except ValueError as e:
            logger.warning("%s, using slider", e)
            initial_mode = ControlMode.SLIDER

        return cls(
            tick_interval_ms=max(1, config_value(controller, "tick_interval_ms", 50)),
            default_volume=clamp(config_value(controller, "default_volume", 0.6),
                                 VOLUME_MIN, VOLUME_MAX),
            default_rate=clamp(config_value(controller, "default_rate", 1.0),
                               RATE_MIN, RATE_MAX),
            initial_mode=initial_mode,
            tracking_enabled=config_value(controller, "tracking_enabled", True),
            canvas_width=max(1, config_value(pose, "canvas_width", 640)),
            canvas_height=max(1, config_value(pose, "canvas_height", 480)),
            smoothing=SmoothingConfig.from_dict(config_section(config, "smoothing")),
            fade=FadeConfig.from_dict(config_section(config, "fade")),
            static=StaticConfig.from_dict(config_section(config, "static")),
            slider=SliderConfig.from_dict(config_section(config, "slider")),
        )


def describe_frame(frame: HandFrame) -> str:
    """Gesture status line, e.g. ``L: One Finger | R: No Hand``."""
    def name(side):
        gesture = frame.gesture(side)
        return gesture.value if gesture.is_hand else "No Hand"
    return "L: {} | R: {}".format(name(Handedness.LEFT), name(Handedness.RIGHT))


class MediaGestureController:
    """
    Gesture-to-playback controller.

    Example:
        >>> controller = MediaGestureController(SimulatedPlayer())
        >>> controller.submit_command(Command.LOAD_TRACK, source="song.mp3")
        >>> controller.submit_frame(frame)
        >>> controller.process_pending()
    """

    def __init__(self, player: Player, config: Optional[ControllerConfig] = None,
                 bus: Optional[EventBus] = None,
                 timer_factory: Callable = PeriodicTimer,
                 event_logger: Optional[ControlEventLogger] = None):
        self.config = config or ControllerConfig()
        self.player = player
        self.bus = bus or EventBus()
        self._inbox = EventQueue()
        self._timer_factory = timer_factory
        self._tick_timer = None
        self._events = event_logger or ControlEventLogger()

        self.state = ControllerState(
            volume=self.config.default_volume,
            target_volume=self.config.default_volume,
            rate=self.config.default_rate,
            target_rate=self.config.default_rate,
        )

        self._smoothing = SmoothingEngine(self.config.smoothing)
        self._fade = FadeController(self.config.fade, on_step=self._post_fade_step,
                                    timer_factory=timer_factory)
        self._tracker = DeltaTracker()
        self._mode = self.config.initial_mode
        self._mapper: ModeMapper = self._build_mapper(self._mode)

        self._tracking = self.config.tracking_enabled
        self._gesture_status = STATUS_WAITING if self._tracking else STATUS_CAMERA_OFF

        self.player.add_listener(self._post_player_event)
        self.player.set_volume(self.state.volume)
        self.player.set_playback_rate(self.state.rate)

        self._command_handlers = {
            Command.LOAD_TRACK: lambda p: self.load_track(p["source"]),
            Command.PLAY: lambda p: self.play_manual(),
            Command.PAUSE: lambda p: self.pause_manual(),
            Command.STOP: lambda p: self.stop_manual(),
            Command.SET_MODE: lambda p: self.set_control_mode(p["mode"]),
            Command.SET_TRACKING: lambda p: self.set_tracking(p["enabled"]),
        }

        logger.info("Controller ready (mode=%s, tick=%d ms, fade=%d ms)",
                    self._mode.value, self.config.tick_interval_ms,
                    self.config.fade.duration_ms)

    def _build_mapper(self, mode: ControlMode) -> ModeMapper:
        return create_mapper(mode, static=self.config.static,
                             slider=self.config.slider, tracker=self._tracker)

    # =========================================================================
    # Producers (any thread)
    # =========================================================================

    def submit_frame(self, frame: HandFrame) -> None:
        self._inbox.put(ControlEvent.frame(frame))

    def submit_command(self, command: Command, **kwargs) -> None:
        self._inbox.put(ControlEvent.command(command, **kwargs))

    def _post_player_event(self, event: PlayerEvent) -> None:
        self._inbox.put(ControlEvent.player_event(event))

    def _post_fade_step(self, generation: int) -> None:
        self._inbox.put(ControlEvent.fade_step(generation))

    def _post_tick(self) -> None:
        self._inbox.put(ControlEvent.tick())

    # =========================================================================
    # Lifecycle / consumer
    # =========================================================================

    def start(self) -> None:
        """Start the smoothing tick timer."""
        if self._tick_timer is not None:
            return
        self._tick_timer = self._timer_factory(
            self.config.tick_interval_ms / 1000.0, self._post_tick, "smoothing-tick")
        self._tick_timer.start()

    def shutdown(self) -> None:
        """Stop all timers. Pending events are left unprocessed."""
        if self._tick_timer is not None:
            self._tick_timer.cancel()
            self._tick_timer = None
        if self._fade.cancel():
            self.state.fading = False
        logger.info("Controller stopped (%d actions)", self._events.total_actions)

    def dispatch(self, event: ControlEvent) -> None:
        """Apply a single event. Failures are logged and contained to the event."""
        try:
            if event.type is EventType.FRAME:
                self.handle_frame(event.payload.get("frame"))
            elif event.type is EventType.TICK:
                self.tick()
            elif event.type is EventType.FADE_STEP:
                self.advance_fade(event.payload.get("generation"))
            elif event.type is EventType.COMMAND:
                command = event.payload.get("command")
                handler = self._command_handlers.get(command)
                if handler is None:
                    logger.warning("Unknown command: %s", command)
                else:
                    handler(event.payload)
            elif event.type is EventType.PLAYER_EVENT:
                self.handle_player_event(event.payload.get("event"))
        except Exception as e:
            logger.error("Error handling %s event: %s", event.type.name, e, exc_info=True)

    def process_pending(self) -> int:
        """Drain and apply every queued event. Returns the number processed."""
        count = 0
        for event in self._inbox.drain():
            self.dispatch(event)
            count += 1
        return count

    def run(self, stop_event: threading.Event, poll_interval: float = 0.25) -> None:
        """Consume events until ``stop_event`` is set, polling the player periodically."""
        last_poll = 0.0
        while not stop_event.is_set():
            event = self._inbox.get(timeout=0.05)
            if event is not None:
                self.dispatch(event)
            now = time.monotonic()
            if now - last_poll >= poll_interval:
                last_poll = now
                self.player.poll()

    # =========================================================================
    # Gesture handling
    # =========================================================================

    def handle_frame(self, frame: HandFrame) -> None:
        """Route one pose-source frame through the active mapper."""
        if not isinstance(frame, HandFrame):
            logger.warning("Ignoring malformed frame: %r", frame)
            return
        if not self._tracking or self.state.fading:
            return

        frame = self._sanitize_frame(frame)
        if frame.is_empty:
            self._mapper.reset()
            self._set_gesture_status(STATUS_NO_HANDS)
            return

        self._set_gesture_status(describe_frame(frame))
        intent = self._mapper.map_observations(frame, self.state)
        self._apply_intent(intent)

    def _sanitize_frame(self, frame: HandFrame) -> HandFrame:
        """Drop hands without a finite position and clamp the rest to the canvas.

        Dropping a hand also resets slider tracking, so the next valid
        position becomes a fresh baseline instead of producing a jump.
        """
        hands = {}
        dropped = False
        for side, hand in ((Handedness.LEFT, frame.left), (Handedness.RIGHT, frame.right)):
            if hand is None:
                hands[side] = None
                continue
            try:
                valid = isinstance(hand, HandObservation) and hand.position.is_finite
            except (AttributeError, TypeError):
                valid = False
            if not valid:
                logger.warning("Dropping %s hand with invalid position: %r", side.value, hand)
                hands[side] = None
                dropped = True
                continue
            x, y = hand.position
            clamped = Position(clamp(x, 0.0, float(self.config.canvas_width)),
                               clamp(y, 0.0, float(self.config.canvas_height)))
            hands[side] = hand if clamped == hand.position else replace(hand, position=clamped)

        if dropped:
            self._tracker.reset()
        return HandFrame(left=hands[Handedness.LEFT], right=hands[Handedness.RIGHT])

    def _apply_intent(self, intent: ControlIntent) -> None:
        if intent.is_empty:
            return

        if intent.play:
            self._request_play(origin="gesture")
        elif intent.pause:
            self._begin_fade()

        if self.state.fading:
            return

        changed = False
        if intent.target_volume is not None:
            self.state.target_volume = clamp(intent.target_volume, VOLUME_MIN, VOLUME_MAX)
        if intent.target_rate is not None:
            self.state.target_rate = clamp(intent.target_rate, RATE_MIN, RATE_MAX)

        if intent.direct_rate is not None:
            self.state.rate = clamp(intent.direct_rate, RATE_MIN, RATE_MAX)
            self.state.target_rate = self.state.rate
            self.player.set_playback_rate(self.state.rate)
            changed = True
        if intent.direct_volume is not None:
            self.state.volume = clamp(intent.direct_volume, VOLUME_MIN, VOLUME_MAX)
            self.state.target_volume = self.state.volume
            self.player.set_volume(self.state.volume)
            changed = True

        if changed:
            self._publish_state()

    def _set_gesture_status(self, status: str) -> None:
        if status == self._gesture_status:
            return
        self._gesture_status = status
        self._events.log_gesture(status)
        self.bus.emit(Events.GESTURE_STATUS, status=status)

    # =========================================================================
    # Smoothing and fading
    # =========================================================================

    def tick(self) -> None:
        """One smoothing step; pushes any change to the player."""
        result = self._smoothing.step(self.state)
        if result.volume_changed:
            self.player.set_volume(self.state.volume)
        if result.rate_changed:
            self.player.set_playback_rate(self.state.rate)
        if result.changed:
            self._publish_state()

    def _begin_fade(self) -> bool:
        if not self.state.is_playing or self.state.fading:
            return False
        self.state.fading = True
        generation = self._fade.start(self.state.volume)
        self._events.log_action("fade", detail=f"from {self.state.volume:.2f}")
        self.bus.emit(Events.FADE_STARTED, generation=generation, volume=self.state.volume)
        return True

    def advance_fade(self, generation: Optional[int] = None) -> None:
        """Apply one fade step; the final step commits the pause."""
        step = self._fade.step(generation)
        if step is None:
            return

        self.state.volume = step.volume
        if not step.done:
            self.player.set_volume(step.volume)
            return

        self.player.pause()
        self.player.set_volume(step.volume)
        self.state.play_state = PlayState.PAUSED
        self.state.fading = False
        self._events.log_action("pause", detail="after fade")
        self.bus.emit(Events.FADE_COMPLETED, volume=step.volume)
        self._publish_state()

    def _cancel_fade(self, restore_volume: bool) -> bool:
        if not self._fade.cancel():
            return False
        self.state.fading = False
        if restore_volume:
            self.state.volume = self._fade.original_volume
            self.player.set_volume(self.state.volume)
        self.bus.emit(Events.FADE_CANCELLED)
        return True

    # =========================================================================
    # Manual commands
    # =========================================================================

    def load_track(self, source: str) -> bool:
        """Load a track and start playing it."""
        self._cancel_fade(restore_volume=True)
        self.player.load(source)
        self.state.play_state = PlayState.STOPPED
        self._events.log_action("load", detail=str(source))
        self.bus.emit(Events.TRACK_LOADED, source=source)
        self._publish_state()
        return self.play_manual()

    def play_manual(self) -> bool:
        return self._request_play(origin="manual")

    def _request_play(self, origin: str) -> bool:
        if self.state.fading:
            return False
        if not self.player.has_source:
            logger.debug("Play (%s) ignored: no track loaded", origin)
            return False

        try:
            self.player.play()
        except PlaybackStartFailure as e:
            logger.warning("Play (%s) failed: %s", origin, e)
            self._events.log_action("play", success=False, detail=str(e))
            self.bus.emit(Events.PLAYBACK_FAILED, error=str(e), origin=origin)
            return False

        self.state.play_state = PlayState.PLAYING
        self.player.set_volume(self.state.volume)
        self.player.set_playback_rate(self.state.rate)
        self._events.log_action("play", detail=origin)
        self._publish_state()
        return True

    def pause_manual(self) -> bool:
        """Immediate pause. Ignored while a fade is running."""
        if self.state.fading or not self.state.is_playing:
            return False
        self.player.pause()
        self.state.play_state = PlayState.PAUSED
        self._events.log_action("pause", detail="manual")
        self._publish_state()
        return True

    def stop_manual(self) -> None:
        """Hard reset: cancel any fade, rewind, restore default volume and rate."""
        self._cancel_fade(restore_volume=False)

        self.player.pause()
        self.player.seek_to_start()
        self.state.play_state = PlayState.STOPPED
        self.state.volume = self.state.target_volume = self.config.default_volume
        self.state.rate = self.state.target_rate = self.config.default_rate
        self.player.set_volume(self.state.volume)
        self.player.set_playback_rate(self.state.rate)

        self._events.log_action("stop")
        self._publish_state()

    def set_control_mode(self, mode) -> None:
        """Switch mapping strategy. Re-selecting the active mode changes nothing."""
        mode = ControlMode.from_string(mode)
        if mode is self._mode:
            logger.debug("Control mode already %s", mode.value)
            return

        self._mode = mode
        self._mapper = self._build_mapper(mode)
        self._tracker.reset()
        self.state.sync_targets()
        if self.state.fading:
            # Aim at the level the fade restores, not the transient one
            self.state.target_volume = self._fade.original_volume

        logger.info("Control mode changed to: %s", mode.value)
        self.bus.emit(Events.MODE_CHANGED, mode=mode.value)

    def set_tracking(self, enabled: bool) -> None:
        """Enable or disable gesture input (the camera toggle)."""
        enabled = bool(enabled)
        if enabled == self._tracking:
            return
        self._tracking = enabled
        if not enabled:
            self._mapper.reset()
        self._set_gesture_status(STATUS_WAITING if enabled else STATUS_CAMERA_OFF)
        logger.info("Gesture tracking %s", "enabled" if enabled else "disabled")

    # =========================================================================
    # Player lifecycle
    # =========================================================================

    def handle_player_event(self, event: PlayerEvent) -> None:
        """Reconcile the cached play state with what the player reports."""
        if event is PlayerEvent.ENDED:
            self._cancel_fade(restore_volume=True)
            self.state.play_state = PlayState.STOPPED
        elif self.state.fading:
            # The fade owns play state until it completes or is cancelled
            return
        elif event is PlayerEvent.PLAY:
            if self.state.is_playing:
                return
            self.state.play_state = PlayState.PLAYING
        elif event is PlayerEvent.PAUSE:
            if not self.state.is_playing:
                return
            self.state.play_state = PlayState.PAUSED
        else:
            logger.warning("Unknown player event: %r", event)
            return
        self._publish_state()

    # =========================================================================
    # Observation
    # =========================================================================

    def _publish_state(self) -> None:
        self.bus.emit(Events.STATE_CHANGED, state=self.state.to_dict(),
                      label=self.state.describe())

    @property
    def mode(self) -> ControlMode:
        return self._mode

    @property
    def mapper(self) -> ModeMapper:
        return self._mapper

    @property
    def tracker(self) -> DeltaTracker:
        return self._tracker

    @property
    def fade(self) -> FadeController:
        return self._fade

    @property
    def action_log(self) -> ControlEventLogger:
        return self._events

    @property
    def gesture_status(self) -> str:
        return self._gesture_status

    @property
    def tracking_enabled(self) -> bool:
        return self._tracking

    @property
    def pending_events(self) -> int:
        return len(self._inbox)
