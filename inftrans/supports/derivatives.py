"""
Derivative evaluation equations.

A derivative ``d x / d t`` is made algebraic by relating its values to the
values of ``x`` at the supports of ``t``. Each relation is stored as an
:class:`EvaluationEquation` meaning

    sum(coef * ref(..., t=value, ...)) == 0

where every other parameter of ``x`` stays free (it is expanded over its own
supports at transcription time).

Supported methods:
- FiniteDifference: backward, forward and central stencils over
  consecutive supports
- OrthogonalCollocation: exact differentiation of the Lagrange interpolant
  through the nodes of each finite element
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from inftrans.errors import ValidationError, UnsupportedCombinationError
from inftrans.model.derivative_methods import (
    FDTechnique, FiniteDifference, OrthogonalCollocation,
)
from inftrans.model.infinite_model import IndexKind
from inftrans.supports.store import add_generative_supports

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationEquation:
    """
    One derivative evaluation equation.

    Attributes
    ----------
    derivative_ref : EntityRef
        Derivative being evaluated.
    terms : tuple of (float, EntityRef, float)
        ``(coefficient, derivative or variable ref, parameter value)``.
    """
    derivative_ref: object
    terms: Tuple[Tuple[float, object, float], ...]

    @property
    def support_values(self) -> Tuple[float, ...]:
        return tuple(sorted({value for _, _, value in self.terms}))


def lagrange_derivative_matrix(nodes: Sequence[float]) -> np.ndarray:
    """
    Differentiation matrix of the Lagrange interpolant through ``nodes``.

    ``D[j, k]`` is the derivative of the k-th Lagrange basis polynomial at
    ``nodes[j]``, so ``D @ f(nodes)`` is the interpolant's slope at every
    node. Built from barycentric weights.

    Examples
    --------
    >>> D = lagrange_derivative_matrix([0.0, 0.5, 1.0])
    >>> D @ np.array([0.0, 0.25, 1.0])      # f(t) = t**2
    array([0., 1., 2.])
    """
    t = np.asarray(nodes, dtype=np.float64)
    diff = t[:, None] - t[None, :]
    np.fill_diagonal(diff, 1.0)
    weights = 1.0 / np.prod(diff, axis=1)
    D = (weights[None, :] / weights[:, None]) / diff
    np.fill_diagonal(D, 0.0)
    np.fill_diagonal(D, -D.sum(axis=1))
    return D


def _finite_difference_equations(dref, vref, supps: np.ndarray,
                                 technique: FDTechnique) -> List[EvaluationEquation]:
    n = supps.size
    needed = 3 if technique == FDTechnique.CENTRAL else 2
    if n < needed:
        raise ValidationError(
            f"{technique.value.capitalize()} finite difference needs at least {needed} "
            f"supports, got {n}."
        )
    if technique == FDTechnique.BACKWARD:
        points = [(i, i - 1, i) for i in range(1, n)]
    elif technique == FDTechnique.FORWARD:
        points = [(i, i, i + 1) for i in range(n - 1)]
    else:
        points = [(i, i - 1, i + 1) for i in range(1, n - 1)]
    equations = []
    for at, lo, hi in points:
        equations.append(EvaluationEquation(dref, (
            (float(supps[hi] - supps[lo]), dref, float(supps[at])),
            (-1.0, vref, float(supps[hi])),
            (1.0, vref, float(supps[lo])),
        )))
    return equations


def _collocation_equations(dref, vref, param) -> List[EvaluationEquation]:
    gen_label = param.generative_info.label
    items = param.supports.items()
    is_boundary = [labels != {gen_label} for _, labels in items]
    values = [v for v, _ in items]
    boundaries = [i for i, b in enumerate(is_boundary) if b]
    if len(boundaries) < 2:
        raise ValidationError(
            f"Orthogonal collocation over '{param.name}' needs at least 2 supports."
        )
    equations = []
    for start, stop in zip(boundaries[:-1], boundaries[1:]):
        nodes = np.array(values[start:stop + 1])
        D = lagrange_derivative_matrix(nodes)
        # the first node is shared with the previous element
        for j in range(1, nodes.size):
            terms = [(-1.0, dref, float(nodes[j]))]
            terms.extend((float(D[j, k]), vref, float(nodes[k])) for k in range(nodes.size))
            equations.append(EvaluationEquation(dref, tuple(terms)))
    return equations


def evaluate_derivative(dref) -> List[EvaluationEquation]:
    """
    Build and store the evaluation equations of the derivative ``dref``.

    Generative supports of the derivative's parameter are materialized
    first. The equations are stored in ``model.derivative_evaluations`` and
    the parameter's derivative-constraint flag is set; the next support
    change of the parameter deletes them again.

    Returns
    -------
    list of EvaluationEquation

    Raises
    ------
    ValidationError
        If the parameter has too few supports for the method.
    UnsupportedCombinationError
        If the parameter's derivative method is not known.
    """
    model = dref.model
    model._check_ref(dref, IndexKind.DERIVATIVE)
    existing = model.derivative_evaluations.get(dref.index)
    if existing is not None:
        return existing
    deriv = model.object(dref)
    pref = deriv.parameter_ref
    add_generative_supports(pref)
    param = model.parameter(pref)
    method = param.derivative_method
    if isinstance(method, FiniteDifference):
        supps = np.array(param.supports.keys(), dtype=np.float64)
        equations = _finite_difference_equations(dref, deriv.variable_ref, supps,
                                                 method.technique)
    elif isinstance(method, OrthogonalCollocation):
        equations = _collocation_equations(dref, deriv.variable_ref, param)
    else:
        raise UnsupportedCombinationError(
            f"Derivative evaluation is not defined for methods of type "
            f"{type(method).__name__}."
        )
    model.derivative_evaluations[dref.index] = equations
    param.has_derivative_constraints = True
    logger.debug(f"Built {len(equations)} evaluation equations for '{deriv.name}'")
    return equations


def evaluate_all_derivatives(model) -> None:
    """Evaluate every derivative of ``model`` that has no stored equations."""
    for dref in model.refs(IndexKind.DERIVATIVE):
        evaluate_derivative(dref)
