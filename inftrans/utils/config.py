"""
Runtime Configuration for inftrans
==================================

Resolves the defaults used by support generation and transcription when a
caller does not pass an explicit value.

Priority order (same for every setting):
1. Environment variable
2. Global preference set by the matching ``set_*`` function
3. Constant from :mod:`inftrans.utils.constants`

Usage Examples
--------------
>>> from inftrans.utils.config import set_default_num_supports, get_default_num_supports
>>> set_default_num_supports(25)
>>> get_default_num_supports()
25

Environment Variables
--------------------
INFTRANS_NUM_SUPPORTS : int
    Number of supports generated by default (e.g. ``export INFTRANS_NUM_SUPPORTS=20``)
INFTRANS_SIG_DIGITS : int
    Significant digits support values are rounded to
INFTRANS_VERBOSE_NAMING : str
    '1', 'true' or 'yes' to embed support values in transcribed names
"""

import os
import logging
from typing import Optional

from inftrans.utils.constants import DEFAULT_NUM_SUPPORTS, DEFAULT_SIG_DIGITS, ENV_PREFIX

logger = logging.getLogger(__name__)

# Global preferences (set by callers, e.g. a test session or a script)
_NUM_SUPPORTS_PREFERENCE: Optional[int] = None
_SIG_DIGITS_PREFERENCE: Optional[int] = None
_VERBOSE_NAMING_PREFERENCE: Optional[bool] = None


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(ENV_PREFIX + name, '').strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {ENV_PREFIX}{name}={raw!r}")
        return None
    if value < 1:
        logger.warning(f"Ignoring non-positive {ENV_PREFIX}{name}={raw!r}")
        return None
    return value


def _check_positive(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ValueError(f"Invalid {name}: {value!r}. Must be a positive integer")
    return value


def set_default_num_supports(num_supports: Optional[int]) -> None:
    """
    Set the global default number of generated supports.

    Parameters
    ----------
    num_supports : int or None
        Positive count, or None to fall back to the built-in constant.
    """
    global _NUM_SUPPORTS_PREFERENCE
    _NUM_SUPPORTS_PREFERENCE = None if num_supports is None else _check_positive(
        'num_supports', num_supports)


def get_default_num_supports() -> int:
    """Return the effective default number of generated supports."""
    env_value = _env_int('NUM_SUPPORTS')
    if env_value is not None:
        return env_value
    if _NUM_SUPPORTS_PREFERENCE is not None:
        return _NUM_SUPPORTS_PREFERENCE
    return DEFAULT_NUM_SUPPORTS


def set_default_sig_digits(sig_digits: Optional[int]) -> None:
    """
    Set the global default number of significant digits.

    Only parameters created afterwards pick up the new value; existing
    parameters keep the precision they were created with.
    """
    global _SIG_DIGITS_PREFERENCE
    _SIG_DIGITS_PREFERENCE = None if sig_digits is None else _check_positive(
        'sig_digits', sig_digits)


def get_default_sig_digits() -> int:
    """Return the effective default number of significant digits."""
    env_value = _env_int('SIG_DIGITS')
    if env_value is not None:
        return env_value
    if _SIG_DIGITS_PREFERENCE is not None:
        return _SIG_DIGITS_PREFERENCE
    return DEFAULT_SIG_DIGITS


def set_verbose_naming(enabled: Optional[bool]) -> None:
    """Set the global verbose-naming preference (None restores the default)."""
    global _VERBOSE_NAMING_PREFERENCE
    _VERBOSE_NAMING_PREFERENCE = None if enabled is None else bool(enabled)


def is_verbose_naming_enabled() -> bool:
    """Return True if transcribed names should embed their support values."""
    raw = os.environ.get(ENV_PREFIX + 'VERBOSE_NAMING', '').lower()
    if raw in ('1', 'true', 'yes'):
        return True
    if raw in ('0', 'false', 'no'):
        return False
    if _VERBOSE_NAMING_PREFERENCE is not None:
        return _VERBOSE_NAMING_PREFERENCE
    return False


def reset_preferences() -> None:
    """Clear every global preference (useful for testing)."""
    global _NUM_SUPPORTS_PREFERENCE, _SIG_DIGITS_PREFERENCE, _VERBOSE_NAMING_PREFERENCE
    _NUM_SUPPORTS_PREFERENCE = None
    _SIG_DIGITS_PREFERENCE = None
    _VERBOSE_NAMING_PREFERENCE = None
