"""
Support Store - operations on the supports of independent parameters.

All reads and writes of a parameter's supports go through this module so
that the dependent state stays consistent:

- values are rounded to the parameter's significant digits and
  bounds-checked before anything is modified
- adding or removing values deletes materialized generative supports and
  stale derivative evaluations, and marks the owning model not ready when
  the parameter is in use
- the internal-supports flag tracks whether any internal label is stored

Usage:
    from inftrans.supports.store import set_supports, add_supports, supports

    set_supports(t, [1.0, 0.0])
    supports(t)                       # array([0., 1.])
    add_supports(t, [0.5, 0.5])       # one new point, labelled once
    supports(t, label=UNIFORM_GRID)   # only grid points
"""

import itertools
import logging
import warnings
from typing import Optional

import numpy as np

from inftrans.errors import ValidationError, InvariantViolationError
from inftrans.model.derivative_methods import DerivativeMethod
from inftrans.model.domains import INTERVAL
from inftrans.model.generative import GenerativeInfo, NoGenerativeSupports
from inftrans.model.labels import (
    SupportLabel, ALL, PUBLIC, INTERNAL, USER_DEFINED, MC_SAMPLE,
    label_matches, any_matches, all_match,
)
from inftrans.model.parameters import IndependentParameter, SupportMap
from inftrans.supports.generators import generate_support_values
from inftrans.utils.config import get_default_num_supports
from inftrans.utils.rng import RandomState
from inftrans.utils.rounding import round_supports

logger = logging.getLogger(__name__)


# =============================================================================
# Internal helpers
# =============================================================================

def _param(pref) -> IndependentParameter:
    return pref.model.parameter(pref)


def _check_label(label: SupportLabel) -> None:
    if not isinstance(label, SupportLabel):
        raise ValidationError(f"Expected a SupportLabel, got {type(label).__name__}")
    if label.is_selector:
        raise ValidationError(f"Supports cannot be stored under the selector label {label}.")


def _check_supports_in_bounds(param: IndependentParameter, values: np.ndarray) -> None:
    inside = param.domain.contains(values)
    if not np.all(inside):
        lower, upper = param.domain.bounds()
        bad = values[~inside]
        raise ValidationError(
            f"Supports {bad.tolist()} of '{param.name}' violate the domain bounds "
            f"[{lower}, {upper}]."
        )


def check_supports(pref, values, label: SupportLabel = USER_DEFINED) -> np.ndarray:
    """Round ``values`` for ``pref`` and validate them without storing anything.

    Raises ``ValidationError`` for a selector label or out-of-bounds values.
    Returns the rounded values as a flat array.
    """
    param = _param(pref)
    _check_label(label)
    rounded = round_supports(values, param.sig_digits).reshape(-1)
    _check_supports_in_bounds(param, rounded)
    return rounded


def _mark_stale_if_used(pref) -> None:
    if pref.model.is_used(pref):
        pref.model.mark_stale()


def _reset_derivative_constraints(pref) -> None:
    param = _param(pref)
    if param.has_derivative_constraints:
        warnings.warn(
            f"Support change of '{param.name}' invalidated existing derivative "
            "evaluation constraints. These are being deleted.",
            UserWarning, stacklevel=4,
        )
        for dref in pref.model.derivative_refs_wrt(pref):
            pref.model.derivative_evaluations.pop(dref.index, None)
        param.has_derivative_constraints = False
        pref.model.mark_stale()


def _reset_generative_supports(pref) -> None:
    param = _param(pref)
    if param.has_generative_supports:
        logger.debug(f"Resetting generative supports of '{param.name}'")
        delete_supports(pref, label=param.generative_info.label)


def _as_pref_list(prefs):
    if isinstance(prefs, (list, tuple)):
        return list(prefs)
    if isinstance(prefs, np.ndarray):
        return list(prefs.reshape(-1))
    return None


# =============================================================================
# Parameter properties
# =============================================================================

def significant_digits(pref) -> int:
    """Return the number of significant digits enforced on the supports of ``pref``."""
    return _param(pref).sig_digits


def infinite_domain(pref):
    return _param(pref).domain


def derivative_method(pref) -> DerivativeMethod:
    return _param(pref).derivative_method


def generative_support_info(pref) -> GenerativeInfo:
    return _param(pref).generative_info


def has_internal_supports(pref) -> bool:
    """True if ``pref`` stores supports hidden from the user by default."""
    return _param(pref).has_internal_supports


def has_generative_supports(pref) -> bool:
    """True if the generative supports of ``pref`` are currently materialized."""
    return _param(pref).has_generative_supports


def has_derivative_constraints(pref) -> bool:
    return _param(pref).has_derivative_constraints


# =============================================================================
# Queries
# =============================================================================

def has_supports(pref) -> bool:
    """Return True if ``pref`` has any supports."""
    return len(_param(pref).supports) > 0


def num_supports(pref, label: SupportLabel = PUBLIC) -> int:
    """
    Return the number of supports of ``pref`` matching ``label``.

    By default only public supports are counted (supports whose labels are
    all internal are skipped); ``label=ALL`` counts everything.
    """
    param = _param(pref)
    supps = param.supports
    if label == ALL or (label == PUBLIC and not param.has_internal_supports):
        return len(supps)
    return sum(1 for _, labels in supps.items() if any_matches(labels, label))


def supports(pref, label: SupportLabel = PUBLIC, use_combinatorics: bool = True) -> np.ndarray:
    """
    Return the supports of ``pref`` matching ``label``, sorted ascending.

    Parameters
    ----------
    pref : EntityRef or sequence of EntityRef
        Parameter, or several parameters for a batched query.
    label : SupportLabel, default PUBLIC
        ``ALL`` for every support, ``PUBLIC`` for supports with at least one
        public label, any other label for the supports it covers.
    use_combinatorics : bool, default True
        Batched queries only. True returns every combination of the
        parameters' supports (``itertools.product`` order, last parameter
        varying fastest); False pairs the i-th supports of each parameter
        and requires equal support counts.

    Returns
    -------
    np.ndarray
        Shape ``(n,)`` for one parameter, ``(n_params, n_columns)`` for a
        batched query.

    Raises
    ------
    ValidationError
        For a non-combinatorial batched query with unequal support counts.
    """
    prefs = _as_pref_list(pref)
    if prefs is not None:
        return _supports_matrix(prefs, label, use_combinatorics)
    param = _param(pref)
    supps = param.supports
    if label == ALL or (label == PUBLIC and not param.has_internal_supports):
        return np.array(supps.keys(), dtype=np.float64)
    return np.array([v for v, labels in supps.items() if any_matches(labels, label)],
                    dtype=np.float64)


def _supports_matrix(prefs, label: SupportLabel, use_combinatorics: bool) -> np.ndarray:
    if not prefs:
        return np.empty((0, 0), dtype=np.float64)
    supp_list = [supports(p, label=label) for p in prefs]
    if use_combinatorics:
        combos = list(itertools.product(*supp_list))
        if not combos:
            return np.empty((len(prefs), 0), dtype=np.float64)
        return np.array(combos, dtype=np.float64).T
    num = len(supp_list[0])
    for p, supp in zip(prefs, supp_list):
        if len(supp) != num:
            raise ValidationError(
                "Cannot simultaneously query the supports of multiple independent "
                "parameters if the support dimensions do not match while ignoring "
                f"the combinatorics ('{_param(p).name}' has {len(supp)}, expected "
                f"{num}). Try setting `use_combinatorics = True`."
            )
    return np.vstack(supp_list) if num else np.empty((len(prefs), 0), dtype=np.float64)


# =============================================================================
# Mutation
# =============================================================================

def set_supports(pref, values, label: SupportLabel = USER_DEFINED, force: bool = False) -> None:
    """
    Replace the supports of ``pref`` with ``values``.

    Values are rounded to the parameter's significant digits; values equal
    after rounding are merged with a warning.

    Raises
    ------
    ValidationError
        If ``pref`` already has supports and ``force`` is False, or if a
        value lies outside the domain. Nothing is modified in either case.
    """
    param = _param(pref)
    _check_label(label)
    if len(param.supports) > 0 and not force:
        raise ValidationError(
            f"Unable set supports for '{param.name}' since it already has supports. "
            "Consider using `add_supports` or use `force = True` to overwrite the "
            "existing supports."
        )
    rounded = round_supports(values, param.sig_digits).reshape(-1)
    _check_supports_in_bounds(param, rounded)
    new_supports = SupportMap()
    for v in rounded:
        new_supports.add(float(v), label)
    if len(new_supports) != rounded.size:
        warnings.warn("Support points are not unique, eliminating redundant points.",
                      UserWarning, stacklevel=2)
    param.supports = new_supports
    _reset_derivative_constraints(pref)
    param.has_generative_supports = False
    param.has_internal_supports = label.internal
    logger.debug(f"Set {len(new_supports)} supports of '{param.name}' ({label})")
    _mark_stale_if_used(pref)


def add_supports(pref, values, label: SupportLabel = USER_DEFINED, check: bool = True) -> bool:
    """
    Add ``values`` to the supports of ``pref`` under ``label``.

    Existing values gain ``label``; new values are inserted.

    Parameters
    ----------
    pref : EntityRef
        Parameter.
    values : float or array_like
        Support values.
    label : SupportLabel, default USER_DEFINED
        Label to attach.
    check : bool, default True
        Bounds-check the values first.

    Returns
    -------
    bool
        True if at least one new support value was created.
    """
    param = _param(pref)
    _check_label(label)
    rounded = round_supports(values, param.sig_digits).reshape(-1)
    if check:
        _check_supports_in_bounds(param, rounded)
    added_new_support = False
    for v in rounded:
        added_new_support |= param.supports.add(float(v), label)
    if label.internal:
        param.has_internal_supports = True
    if added_new_support:
        logger.debug(f"Added supports to '{param.name}' ({label}), now {len(param.supports)}")
        _reset_derivative_constraints(pref)
        _reset_generative_supports(pref)
        _mark_stale_if_used(pref)
    return added_new_support


def delete_supports(pref, label: SupportLabel = ALL) -> None:
    """
    Delete supports of ``pref`` (or of each parameter in a sequence).

    With ``label=ALL`` every support is removed. With any other label,
    supports whose labels are all covered by it are removed and the label
    is stripped from the remaining supports; materialized generative
    supports are removed as well.

    Sequences are processed in order without rollback: if one parameter
    fails, the ones before it stay modified.

    Raises
    ------
    InvariantViolationError
        With ``label=ALL`` if a measure or a derivative still depends on
        the parameter. Nothing is modified.
    """
    prefs = _as_pref_list(pref)
    if prefs is not None:
        for p in prefs:
            delete_supports(p, label=label)
        return

    param = _param(pref)
    model = pref.model
    if label == ALL:
        if model.used_by_measure(pref):
            raise InvariantViolationError(
                f"Cannot delete the supports of '{param.name}' since it is used by a measure."
            )
        if model.used_by_derivative(pref):
            raise InvariantViolationError(
                f"Cannot delete the supports of '{param.name}' since a derivative depends on it."
            )

    if param.has_derivative_constraints:
        warnings.warn(
            "Deleting supports invalidated derivative evaluations. Thus, these are "
            "being deleted as well.",
            UserWarning, stacklevel=2,
        )
        for dref in model.derivative_refs_wrt(pref):
            model.derivative_evaluations.pop(dref.index, None)
        param.has_derivative_constraints = False

    supps = param.supports
    if label == ALL:
        supps.clear()
        param.has_generative_supports = False
        param.has_internal_supports = False
        logger.debug(f"Deleted all supports of '{param.name}'")
    else:
        selectors = [label]
        gen_label = param.generative_info.label
        if param.has_generative_supports and gen_label != label:
            selectors.append(gen_label)
        param.has_generative_supports = False
        for value, labels in supps.items():
            if all_match(labels, frozenset(selectors)):
                supps.remove(value)
            else:
                labels.difference_update(
                    [l for l in labels if any(label_matches(l, s) for s in selectors)])
        if param.has_internal_supports and not any(
                any_matches(labels, INTERNAL) for _, labels in supps.items()):
            param.has_internal_supports = False
        logger.debug(f"Deleted {label} supports of '{param.name}', {len(supps)} remain")
    _mark_stale_if_used(pref)


def fill_in_supports(
    pref,
    num_supports: Optional[int] = None,
    modify: bool = True,
    random_state: RandomState = None,
) -> None:
    """
    Generate supports so ``pref`` has (at least) ``num_supports`` of them.

    Nothing is added when the parameter already has enough supports, or
    when it has some and ``modify`` is False. Interval parameters that
    already have supports are topped up with Monte-Carlo samples; otherwise
    the domain's default method is used. Accepts a sequence of parameters.
    """
    prefs = _as_pref_list(pref)
    if prefs is not None:
        for p in prefs:
            fill_in_supports(p, num_supports=num_supports, modify=modify,
                             random_state=random_state)
        return
    if num_supports is None:
        num_supports = get_default_num_supports()
    current_amount = len(_param(pref).supports)
    if (modify or current_amount == 0) and current_amount < num_supports:
        generate_and_add_supports(
            pref, num_supports=num_supports - current_amount,
            adding_extra=current_amount > 0, random_state=random_state,
        )


def generate_and_add_supports(
    pref,
    method: Optional[SupportLabel] = None,
    num_supports: Optional[int] = None,
    adding_extra: bool = False,
    random_state: RandomState = None,
) -> bool:
    """
    Generate supports with ``method`` (domain default when None) and add them.

    Returns
    -------
    bool
        True if new support values were created.
    """
    param = _param(pref)
    domain = param.domain
    if method is None and adding_extra and domain.domain_kind == INTERVAL:
        method = MC_SAMPLE
    values, label = generate_support_values(
        domain, method, num_supports=num_supports, sig_digits=param.sig_digits,
        random_state=random_state,
    )
    return add_supports(pref, values, label=label)


# =============================================================================
# Generative supports and derivative methods
# =============================================================================

def add_generative_supports(pref) -> None:
    """
    Materialize the generative supports of ``pref`` if they are missing.

    Idempotent: once materialized nothing happens until a base support
    change removes them again.

    Raises
    ------
    ValidationError
        If fewer than two non-generative supports exist.
    """
    param = _param(pref)
    info = param.generative_info
    if isinstance(info, NoGenerativeSupports) or param.has_generative_supports:
        return
    gen_label = info.label
    existing = [v for v, labels in param.supports.items() if labels != {gen_label}]
    new_supports = info.make_supports(existing, owner=f"'{param.name}'")
    add_supports(pref, new_supports, label=gen_label, check=False)
    param.has_generative_supports = True
    logger.debug(f"Materialized {len(new_supports)} generative supports of '{param.name}'")


def set_generative_support_info(pref, info: GenerativeInfo) -> None:
    """Replace the generative info of ``pref``, dropping old generative supports."""
    if not isinstance(info, GenerativeInfo):
        raise ValidationError(f"Expected a GenerativeInfo, got {type(info).__name__}")
    _reset_generative_supports(pref)
    _param(pref).generative_info = info
    _mark_stale_if_used(pref)


def set_derivative_method(pref, method: DerivativeMethod) -> None:
    """
    Set the derivative evaluation method of ``pref``.

    The generative info follows the method, existing derivative evaluations
    are deleted and generative supports are rebuilt lazily.
    """
    if not isinstance(method, DerivativeMethod):
        raise ValidationError(f"Expected a DerivativeMethod, got {type(method).__name__}")
    param = _param(pref)
    _reset_derivative_constraints(pref)
    _reset_generative_supports(pref)
    param.derivative_method = method
    param.generative_info = method.generative_info()
    _mark_stale_if_used(pref)
