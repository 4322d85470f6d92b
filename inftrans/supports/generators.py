"""
Support Generator Registry - Extensible dispatch for support generation.

This module maps a ``(domain kind, method label)`` pair to the function that
generates raw support values for it, so new domain types and generation
methods can be added without touching the dispatch logic.

Usage
-----
To add a generator for a new domain type:

1. Give the domain class a unique ``domain_kind`` string and a
   ``default_method`` label.

2. Write a generator with the signature:
   - gen(domain, method, num_supports, sig_digits, rng) -> array

3. Register it:
   register_support_generator('my_domain', [UNIFORM_GRID], gen)

Passing ``method=None`` or the ``ALL`` selector uses the domain's default
method.
"""

import logging
import warnings
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from inftrans.errors import ValidationError, UnsupportedCombinationError
from inftrans.model.domains import (
    InfiniteDomain, CollectionDomain,
    INTERVAL, UNIVARIATE_DISTRIBUTION, MULTIVARIATE_DISTRIBUTION, COLLECTION,
)
from inftrans.model.labels import (
    SupportLabel, LabelKind, UNIFORM_GRID, MC_SAMPLE, WEIGHTED_SAMPLE, MIXTURE,
)
from inftrans.utils.config import get_default_num_supports, get_default_sig_digits
from inftrans.utils.rng import RandomState, resolve_rng
from inftrans.utils.rounding import round_supports

logger = logging.getLogger(__name__)

# Type alias for clarity
GeneratorFunc = Callable[[InfiniteDomain, SupportLabel, int, int, np.random.Generator], np.ndarray]

# The registry: maps (domain kind, method label) to a generator
_GENERATOR_REGISTRY: Dict[Tuple[str, SupportLabel], GeneratorFunc] = {}

UNIVARIATE_MC_WARNING = (
    "Monte-Carlo supports for a univariate distribution domain are drawn from "
    "the distribution itself (same as WeightedSample), not uniformly over its "
    "support. Treat them as an approximation of unweighted sampling."
)

# Track whether we've already warned about the MC shortcut (to avoid spam in loops)
_univariate_mc_warning_issued = False


def register_support_generator(
    domain_kinds: Union[str, List[str]],
    methods: Union[SupportLabel, Iterable[SupportLabel]],
    generator: GeneratorFunc,
) -> None:
    """
    Register a generator for every (domain kind, method) combination given.

    Parameters
    ----------
    domain_kinds : str or list of str
        ``domain_kind`` values of the domain classes served.
    methods : SupportLabel or iterable of SupportLabel
        Generation methods served. The method label is also the label the
        generated supports are stored under.
    generator : callable
        ``(domain, method, num_supports, sig_digits, rng) -> array``.
        Scalar domains return shape ``(num_supports,)``, multi-dimensional
        domains ``(dimension, num_supports)``; values already rounded.
    """
    if isinstance(domain_kinds, str):
        domain_kinds = [domain_kinds]
    if isinstance(methods, SupportLabel):
        methods = [methods]
    for kind in domain_kinds:
        for method in methods:
            if method.is_selector:
                raise ValueError(f"Cannot register a generator for selector label {method}")
            _GENERATOR_REGISTRY[(kind, method)] = generator


def get_support_generator(domain_kind: str, method: SupportLabel) -> Optional[GeneratorFunc]:
    """Return the generator registered for the pair, or None."""
    return _GENERATOR_REGISTRY.get((domain_kind, method))


def list_registered_generators() -> List[Tuple[str, SupportLabel]]:
    """Return all registered (domain kind, method) pairs."""
    return list(_GENERATOR_REGISTRY.keys())


def is_generator_registered(domain_kind: str, method: SupportLabel) -> bool:
    return (domain_kind, method) in _GENERATOR_REGISTRY


def reset_univariate_mc_warning():
    """Reset the univariate Monte-Carlo warning flag (useful for testing)."""
    global _univariate_mc_warning_issued
    _univariate_mc_warning_issued = False


def generate_support_values(
    domain: InfiniteDomain,
    method: Optional[SupportLabel] = None,
    num_supports: Optional[int] = None,
    sig_digits: Optional[int] = None,
    random_state: RandomState = None,
) -> Tuple[np.ndarray, SupportLabel]:
    """
    Generate supports for ``domain`` and return them with their label.

    Parameters
    ----------
    domain : InfiniteDomain
        Domain to generate supports over.
    method : SupportLabel, optional
        Generation method. None or ``ALL`` selects the domain's default.
    num_supports : int, optional
        Number of supports (configured default when omitted).
    sig_digits : int, optional
        Significant digits of the generated values (configured default
        when omitted).
    random_state : int or numpy.random.Generator, optional
        Seed or generator for sampling methods (shared generator when
        omitted).

    Returns
    -------
    values : np.ndarray
        Shape ``(num_supports,)`` for scalar domains, ``(dimension,
        num_supports)`` otherwise.
    label : SupportLabel
        Label to store the supports under.

    Raises
    ------
    UnsupportedCombinationError
        If no generator is registered for the domain kind and method.
    ValidationError
        If ``num_supports`` or ``sig_digits`` is not positive.
    """
    if method is None or method.kind == LabelKind.ALL:
        method = domain.default_method
    num_supports = get_default_num_supports() if num_supports is None else num_supports
    sig_digits = get_default_sig_digits() if sig_digits is None else sig_digits
    if num_supports < 1:
        raise ValidationError(f"num_supports must be positive, got {num_supports}")
    if sig_digits < 1:
        raise ValidationError(f"sig_digits must be positive, got {sig_digits}")

    generator = get_support_generator(domain.domain_kind, method)
    if generator is None:
        registered = sorted(str(m) for k, m in _GENERATOR_REGISTRY if k == domain.domain_kind)
        raise UnsupportedCombinationError(
            f"No support generator for infinite domains of type "
            f"'{type(domain).__name__}' (kind '{domain.domain_kind}') with the "
            f"generation method '{method}'. Registered methods for this kind: "
            f"{registered}. To add support, use register_support_generator()."
        )
    logger.debug(
        f"Generating {num_supports} supports for {type(domain).__name__} using {method}"
    )
    values = generator(domain, method, num_supports, sig_digits, resolve_rng(random_state))
    return values, method


generate_supports = generate_support_values


# =============================================================================
# Built-in generators
# =============================================================================

def _interval_uniform_grid(domain, method, num_supports, sig_digits, rng):
    lower, upper = domain.bounds()
    return round_supports(np.linspace(lower, upper, num_supports), sig_digits)


def _interval_mc_sample(domain, method, num_supports, sig_digits, rng):
    lower, upper = domain.bounds()
    return round_supports(rng.uniform(lower, upper, size=num_supports), sig_digits)


def _distribution_weighted_sample(domain, method, num_supports, sig_digits, rng):
    draws = np.asarray(domain.distribution.rvs(size=num_supports, random_state=rng),
                       dtype=np.float64)
    return round_supports(draws.reshape(num_supports), sig_digits)


def _univariate_mc_sample(domain, method, num_supports, sig_digits, rng):
    # samples the distribution itself, not a uniform draw over its support
    global _univariate_mc_warning_issued
    if not _univariate_mc_warning_issued:
        warnings.warn(UNIVARIATE_MC_WARNING, UserWarning, stacklevel=4)
        _univariate_mc_warning_issued = True
    return _distribution_weighted_sample(domain, WEIGHTED_SAMPLE, num_supports, sig_digits, rng)


def _multivariate_weighted_sample(domain, method, num_supports, sig_digits, rng):
    draws = np.asarray(domain.distribution.rvs(size=num_supports, random_state=rng),
                       dtype=np.float64)
    # one flattened draw per column
    samples = draws.reshape(num_supports, -1).T
    return round_supports(samples, sig_digits)


def _collection_generator(domain: CollectionDomain, method, num_supports, sig_digits, rng):
    # fill sample-major so each sub-domain writes one contiguous column
    trans_supports = np.empty((num_supports, len(domain)), dtype=np.float64, order='F')
    sub_method = None if method == MIXTURE else method
    for i, sub in enumerate(domain.domains):
        values, _ = generate_support_values(
            sub, sub_method, num_supports=num_supports, sig_digits=sig_digits,
            random_state=rng,
        )
        trans_supports[:, i] = values
    return np.ascontiguousarray(trans_supports.T)


def _register_builtin_generators():
    """Register all built-in generators."""
    register_support_generator(INTERVAL, UNIFORM_GRID, _interval_uniform_grid)
    register_support_generator(INTERVAL, MC_SAMPLE, _interval_mc_sample)

    register_support_generator(UNIVARIATE_DISTRIBUTION, WEIGHTED_SAMPLE,
                               _distribution_weighted_sample)
    register_support_generator(UNIVARIATE_DISTRIBUTION, MC_SAMPLE, _univariate_mc_sample)

    # multivariate and matrix distributions alike
    register_support_generator(MULTIVARIATE_DISTRIBUTION, WEIGHTED_SAMPLE,
                               _multivariate_weighted_sample)

    register_support_generator(
        COLLECTION, [UNIFORM_GRID, MC_SAMPLE, WEIGHTED_SAMPLE, MIXTURE], _collection_generator
    )


# Auto-register builtin generators on import
_register_builtin_generators()
