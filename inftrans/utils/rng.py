"""Seedable random-number source for sampling-based support generation.

All Monte-Carlo and weighted-sample generators draw from the generator
returned by :func:`get_rng` unless an explicit ``random_state`` is passed.

Environment Variables
--------------------
INFTRANS_SEED : int
    Seed used when the shared generator is first created.
"""

import os
import logging
from typing import Optional, Union

import numpy as np

from inftrans.utils.constants import ENV_PREFIX

logger = logging.getLogger(__name__)

RandomState = Union[None, int, np.random.Generator]

_RNG: Optional[np.random.Generator] = None


def seed_supports(seed: Optional[int] = None) -> np.random.Generator:
    """Reseed (or, with None, re-randomize) the shared generator and return it."""
    global _RNG
    _RNG = np.random.default_rng(seed)
    logger.debug(f"Support sampling generator seeded with {seed}")
    return _RNG


def get_rng() -> np.random.Generator:
    """Return the shared generator, creating it on first use."""
    global _RNG
    if _RNG is None:
        raw = os.environ.get(ENV_PREFIX + 'SEED', '').strip()
        seed = int(raw) if raw.lstrip('-').isdigit() else None
        _RNG = np.random.default_rng(seed)
    return _RNG


def resolve_rng(random_state: RandomState = None) -> np.random.Generator:
    """Turn a ``random_state`` argument into a Generator.

    None uses the shared generator, an int builds a fresh seeded generator
    and a Generator is returned as-is.
    """
    if random_state is None:
        return get_rng()
    if isinstance(random_state, np.random.Generator):
        return random_state
    return np.random.default_rng(random_state)
