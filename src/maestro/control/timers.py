"""
Periodic timers that feed the controller inbox.

A timer never touches controller state: its callback is expected to post a
``ControlEvent`` and return. Cancelling a timer stops future callbacks; an
event it already posted may still be in the queue, which is why fade steps
carry a generation number.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTimer:
    """
    Background daemon thread calling ``callback`` every ``interval`` seconds.

    Example:
        >>> timer = PeriodicTimer(0.05, lambda: inbox.put(ControlEvent.tick()))
        >>> timer.start()
        >>> timer.cancel()
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "timer"):
        self.interval = interval
        self.name = name
        self._callback = callback
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "PeriodicTimer":
        if self._thread is not None:
            return self
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.debug("Timer '%s' started (%.0f ms)", self.name, self.interval * 1000)
        return self

    def cancel(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        logger.debug("Timer '%s' cancelled", self.name)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self._callback()
            except Exception as e:
                logger.error("Timer '%s' callback error: %s", self.name, e)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and not self._stop.is_set()
