"""Exception types raised by inftrans.

Each class also derives from the built-in exception family callers would
naturally catch (``ValueError``, ``LookupError``, ...), so existing
``except ValueError`` handlers keep working.
"""


class InfTransError(Exception):
    """Base class for all inftrans errors."""


class ValidationError(InfTransError, ValueError):
    """Input rejected before any state was modified.

    Raised for supports outside the domain bounds, too few supports to
    derive generative supports, malformed generation arguments and similar.
    """


class TranscriptionReferenceError(InfTransError, LookupError):
    """A reference does not resolve to a transcribed (or live) object."""


class UnsupportedCombinationError(InfTransError, NotImplementedError):
    """No generator or handler is registered for the requested combination.

    The fix is to register one (see ``register_support_generator``), not to
    retry.
    """


class InvariantViolationError(InfTransError, RuntimeError):
    """The operation would break a dependency held by another object."""
