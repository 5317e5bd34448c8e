"""
Exceptions raised by the declicker.

Every error the command line reports with exit status 2 derives from
SoundEditError, so callers can catch the whole family at once.
"""


class SoundEditError(Exception):
    """Base class for all declicker errors."""


class InvalidArgument(SoundEditError, ValueError):
    """A parameter is missing, malformed or out of range."""


class InvalidTransformSize(SoundEditError, ValueError):
    """The FFT was asked to transform a length that is not a power of two."""


class UnknownCommand(SoundEditError):
    """The requested command does not exist."""


class IOFailure(SoundEditError, OSError):
    """Reading, writing, decoding or encoding an audio file failed."""
