# ppmcoder/errors.py
# Exceptions raised by the codec. None of them are worth retrying: coding is
# deterministic, so a failed stream fails the same way every time.


class PPMError(Exception):
    """Base class for every codec failure."""


class ModelError(PPMError):
    """A frequency table cannot code the requested symbol (zero count, out of range, or total too large)."""


class CorruptStreamError(PPMError):
    """The compressed input is truncated or malformed."""


class RescaleInvariantError(PPMError):
    """Halving a frequency table left it with no probability mass."""
