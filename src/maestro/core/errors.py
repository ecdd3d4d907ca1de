"""Exception types raised by the controller and its collaborators."""


class MaestroError(Exception):
    """Base class for all Maestro errors."""


class PlaybackStartFailure(MaestroError):
    """The player rejected a play request (no source, decoding error, ...)."""


class PlayerUnavailableError(MaestroError):
    """A player backend could not be reached."""


class ConfigError(MaestroError):
    """A configuration file could not be read or parsed."""
