"""inftrans utilities module."""

from inftrans.utils.constants import *
from inftrans.utils.config import (
    get_default_num_supports,
    set_default_num_supports,
    get_default_sig_digits,
    set_default_sig_digits,
    is_verbose_naming_enabled,
    set_verbose_naming,
)
from inftrans.utils.rng import seed_supports, get_rng
from inftrans.utils.rounding import round_sig, round_supports

__all__ = [
    # Configuration
    'get_default_num_supports',
    'set_default_num_supports',
    'get_default_sig_digits',
    'set_default_sig_digits',
    'is_verbose_naming_enabled',
    'set_verbose_naming',
    # Randomness
    'seed_supports',
    'get_rng',
    # Rounding
    'round_sig',
    'round_supports',
]
