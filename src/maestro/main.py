"""
Maestro - Gesture Media Control
===============================

Command-line entry point. Wires a player backend to the controller and
feeds it either a recorded session (``--replay``) or manual commands typed
on stdin.

Recorded sessions are JSON lines. Each line is either a classified frame::

    {"t": 0.40, "left": {"gesture": "Open Hand", "x": 120, "y": 300}, "right": null}

raw landmarks, classified on replay (21 normalized points per hand)::

    {"t": 0.45, "hands": [{"handedness": "Right", "landmarks": [[0.5, 0.75, 0.0], ...]}]}

or a command::

    {"t": 2.00, "command": "set_mode", "mode": "static"}
"""

import sys
import json
import time
import logging
import argparse
import threading
from typing import Iterator, Optional, Tuple

from maestro.control.controller import ControllerConfig, MediaGestureController
from maestro.control.player import PlayerConfig, create_player
from maestro.core.errors import ConfigError
from maestro.core.events import Command, Events
from maestro.core.types import HandFrame
from maestro.detection.observations import ObservationBuilder, PoseConfig, hands_from_records
from maestro.utils.config import config_section, load_config
from maestro.utils.logger import setup_logging

logger = logging.getLogger(__name__)

# Extra time after the last replayed line so smoothing and fades can settle
REPLAY_SETTLE_SECONDS = 3.0

_COMMAND_NAMES = {c.value: c for c in Command}


def parse_session_line(line: str,
                       builder: Optional[ObservationBuilder] = None) -> Optional[Tuple[float, object]]:
    """Parse one recorded line into ``(t, HandFrame | (Command, kwargs))``.

    Returns None for blank lines, comments and lines that cannot be parsed.
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        logger.warning("Skipping unparseable session line: %s", e)
        return None
    if not isinstance(data, dict):
        return None

    try:
        t = float(data.get("t", 0.0))
    except (TypeError, ValueError):
        t = 0.0

    if "command" in data:
        command = _COMMAND_NAMES.get(data["command"])
        if command is None:
            logger.warning("Skipping unknown command: %r", data["command"])
            return None
        kwargs = {k: v for k, v in data.items() if k not in ("t", "command")}
        return t, (command, kwargs)

    if "hands" in data:
        builder = builder or ObservationBuilder()
        return t, builder.build(hands_from_records(data["hands"]))

    return t, HandFrame.from_dict(data)


def read_session(path: str, builder: Optional[ObservationBuilder] = None
                 ) -> Iterator[Tuple[float, object]]:
    with open(path, "r") as f:
        for line in f:
            parsed = parse_session_line(line, builder)
            if parsed is not None:
                yield parsed


def parse_command(text: str) -> Optional[Tuple[Command, dict]]:
    """Parse an interactive command: play | pause | stop | load PATH | mode NAME | camera on|off."""
    parts = text.strip().split(maxsplit=1)
    if not parts:
        return None
    verb = parts[0].lower()
    arg = parts[1] if len(parts) > 1 else ""

    if verb in ("play", "pause", "stop"):
        return Command(verb), {}
    if verb == "load" and arg:
        return Command.LOAD_TRACK, {"source": arg}
    if verb == "mode" and arg:
        return Command.SET_MODE, {"mode": arg}
    if verb == "camera" and arg in ("on", "off"):
        return Command.SET_TRACKING, {"enabled": arg == "on"}
    return None


def replay(controller: MediaGestureController, path: str, speed: float = 1.0,
           builder: Optional[ObservationBuilder] = None) -> None:
    """Feed a recorded session to the controller in (scaled) real time."""
    start = time.monotonic()
    count = 0
    for t, item in read_session(path, builder):
        delay = start + t / speed - time.monotonic()
        if delay > 0:
            time.sleep(delay)
        if isinstance(item, HandFrame):
            controller.submit_frame(item)
        else:
            command, kwargs = item
            controller.submit_command(command, **kwargs)
        count += 1
    logger.info("Replayed %d events from %s", count, path)
    time.sleep(REPLAY_SETTLE_SECONDS)


def interactive(controller: MediaGestureController, stream=sys.stdin) -> None:
    print("Commands: play | pause | stop | load PATH | mode static|slider | camera on|off | quit")
    for line in stream:
        if line.strip().lower() in ("quit", "exit", "q"):
            break
        parsed = parse_command(line)
        if parsed is None:
            print("Unknown command: %s" % line.strip())
            continue
        command, kwargs = parsed
        controller.submit_command(command, **kwargs)


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Maestro gesture media control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  maestro --replay session.jsonl --track song.mp3
  maestro --player mpris --mode static
  maestro --config custom_config.yaml --debug
        """
    )
    parser.add_argument("--config", "-c", default=None,
                        help="Path to configuration file")
    parser.add_argument("--mode", "-m", choices=["static", "slider"],
                        help="Initial control mode (overrides config)")
    parser.add_argument("--player", "-p", choices=["simulated", "mpris"],
                        help="Player backend (overrides config)")
    parser.add_argument("--replay", "-r", metavar="FILE",
                        help="Replay a recorded JSON-lines session")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Replay speed multiplier")
    parser.add_argument("--track", "-t", help="Track to load before starting")
    parser.add_argument("--debug", "-d", action="store_true",
                        help="Enable debug logging")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config, required=args.config is not None)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    log_cfg = config_section(config, "logging")
    setup_logging(
        level="DEBUG" if args.debug else log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    if args.mode:
        config["controller"] = dict(config_section(config, "controller"), initial_mode=args.mode)
    if args.player:
        config["player"] = dict(config_section(config, "player"), backend=args.player)

    player_config = PlayerConfig.from_dict(config_section(config, "player"))
    player = create_player(player_config)
    controller = MediaGestureController(player, ControllerConfig.from_dict(config))
    controller.bus.subscribe(Events.STATE_CHANGED, lambda state, label: logger.info(label))
    controller.bus.subscribe(Events.GESTURE_STATUS, lambda status: logger.debug(status))

    stop = threading.Event()
    consumer = threading.Thread(
        target=controller.run, args=(stop, player_config.poll_interval_ms / 1000.0),
        name="controller", daemon=True)

    controller.start()
    consumer.start()
    try:
        if args.track:
            controller.submit_command(Command.LOAD_TRACK, source=args.track)
        if args.replay:
            builder = ObservationBuilder(PoseConfig.from_dict(config_section(config, "pose")))
            replay(controller, args.replay, speed=args.speed, builder=builder)
        else:
            interactive(controller)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        stop.set()
        consumer.join(timeout=1.0)
        controller.shutdown()

    logger.info("Final %s", controller.state.describe())
    return 0


if __name__ == "__main__":
    sys.exit(main())
