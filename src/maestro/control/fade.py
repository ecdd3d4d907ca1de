"""
Fade-out before pause.

Lifecycle:
    start(volume)   - Idle -> Fading, schedules periodic steps
    step(gen)       - one volume step; the last one reports done
    cancel()        - Fading -> Idle without completing (manual stop)

Every fade gets a new generation number. Step events are tagged with the
generation that scheduled them; a step for any other generation is stale
(left in the queue after a cancel or restart) and is ignored.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, NamedTuple, Optional

from maestro.control.timers import PeriodicTimer
from maestro.utils.config import config_value

logger = logging.getLogger(__name__)


@dataclass
class FadeConfig:
    steps: int = 10
    step_interval_ms: int = 50

    @classmethod
    def from_dict(cls, config: dict) -> "FadeConfig":
        return cls(
            steps=max(1, config_value(config, "steps", 10)),
            step_interval_ms=max(1, config_value(config, "step_interval_ms", 50)),
        )

    @property
    def duration_ms(self) -> int:
        return self.steps * self.step_interval_ms


class FadePhase(Enum):
    IDLE = "idle"
    FADING = "fading"


class FadeStep(NamedTuple):
    """Volume to apply after a step; ``done`` means commit the pause."""
    volume: float
    done: bool


class FadeController:
    """Stepped volume ramp to zero, cancellable at any point."""

    def __init__(self, config: Optional[FadeConfig] = None,
                 on_step: Optional[Callable[[int], None]] = None,
                 timer_factory: Callable = PeriodicTimer):
        """
        Args:
            config: Step count and cadence
            on_step: Called from the timer thread with the fade generation;
                expected to post a step event for the controller
            timer_factory: ``(interval_s, callback, name) -> timer``
        """
        self.config = config or FadeConfig()
        self._on_step = on_step or (lambda generation: None)
        self._timer_factory = timer_factory
        self._timer = None

        self._phase = FadePhase.IDLE
        self._generation = 0
        self._step = 0
        self._original_volume = 0.0

    def start(self, volume: float) -> int:
        """Begin fading from ``volume``. Returns the new fade generation."""
        self._stop_timer()
        self._generation += 1
        self._phase = FadePhase.FADING
        self._step = 0
        self._original_volume = volume

        generation = self._generation
        self._timer = self._timer_factory(
            self.config.step_interval_ms / 1000.0,
            lambda: self._on_step(generation),
            "fade-%d" % generation,
        )
        self._timer.start()

        logger.info("Fade started from volume %.2f (%d steps, %d ms)",
                    volume, self.config.steps, self.config.duration_ms)
        return generation

    def step(self, generation: Optional[int] = None) -> Optional[FadeStep]:
        """Advance the active fade by one step.

        Returns None when idle or when ``generation`` belongs to an older fade.
        """
        if self._phase is not FadePhase.FADING:
            return None
        if generation is not None and generation != self._generation:
            logger.debug("Ignoring stale fade step (gen %d, current %d)",
                         generation, self._generation)
            return None

        self._step += 1
        volume = self._original_volume * (1 - self._step / self.config.steps)

        if self._step >= self.config.steps or volume <= 0:
            self._stop_timer()
            self._phase = FadePhase.IDLE
            logger.info("Fade completed after %d steps", self._step)
            return FadeStep(self._original_volume, True)

        return FadeStep(volume, False)

    def cancel(self) -> bool:
        """Abort the active fade. Returns True if one was running."""
        was_active = self._phase is FadePhase.FADING
        self._stop_timer()
        self._phase = FadePhase.IDLE
        if was_active:
            logger.info("Fade cancelled at step %d/%d", self._step, self.config.steps)
        return was_active

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def active(self) -> bool:
        return self._phase is FadePhase.FADING

    @property
    def phase(self) -> FadePhase:
        return self._phase

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def current_step(self) -> int:
        return self._step

    @property
    def original_volume(self) -> float:
        return self._original_volume
