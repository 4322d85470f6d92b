"""Discrete measure data.

A measure integrates (or takes the expectation of) an infinite-indexed
function over one or more of its parameters as a weighted sum over fixed
support points:

    measure(f) = sum_k coefficients[k] * weight(s_k) * f(s_k)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np

from inftrans.errors import ValidationError
from inftrans.model.labels import (
    SupportLabel, UNIFORM_GRID, MC_SAMPLE, WEIGHTED_SAMPLE, generate_unique_label,
)

if TYPE_CHECKING:
    from inftrans.model.infinite_model import EntityRef


def default_weight(*support_values: float) -> float:
    return 1.0


@dataclass(frozen=True, eq=False)
class DiscreteMeasureData:
    """
    Support points and coefficients defining a discrete measure.

    Attributes
    ----------
    parameter_refs : tuple of EntityRef
        Parameters integrated out, in the row order of ``supports``.
    coefficients : np.ndarray, shape (n,)
        Coefficient of each support point.
    supports : np.ndarray, shape (n_params, n)
        Support points, one column per point. 1-D input is one parameter.
    label : SupportLabel
        Label the supports are stored under on the parameters. A fresh
        per-measure label is allocated when omitted.
    weight_function : callable
        ``weight(*values) -> float`` evaluated at each support point.
    name : str
        Measure name used when naming transcribed artifacts.
    """
    parameter_refs: Tuple["EntityRef", ...]
    coefficients: np.ndarray
    supports: np.ndarray
    label: SupportLabel = field(default_factory=generate_unique_label)
    weight_function: Callable[..., float] = default_weight
    name: str = "measure"

    def __post_init__(self):
        prefs = self.parameter_refs
        if not isinstance(prefs, (tuple, list)):
            prefs = (prefs,)
        object.__setattr__(self, 'parameter_refs', tuple(prefs))
        coeffs = np.asarray(self.coefficients, dtype=np.float64).reshape(-1)
        supps = np.asarray(self.supports, dtype=np.float64)
        if supps.ndim == 1:
            supps = supps.reshape(1, -1)
        if supps.shape[0] != len(self.parameter_refs):
            raise ValidationError(
                f"Measure supports have {supps.shape[0]} rows but "
                f"{len(self.parameter_refs)} parameters were given."
            )
        if supps.shape[1] != coeffs.size:
            raise ValidationError(
                f"Number of coefficients ({coeffs.size}) does not match the "
                f"number of support points ({supps.shape[1]})."
            )
        if len(set(self.parameter_refs)) != len(self.parameter_refs):
            raise ValidationError("Measure parameters must be unique.")
        if self.label.is_selector:
            raise ValidationError(f"Measure supports cannot be stored under selector label {self.label}.")
        object.__setattr__(self, 'coefficients', coeffs)
        object.__setattr__(self, 'supports', supps)

    @property
    def num_points(self) -> int:
        return self.coefficients.size

    def weights(self) -> np.ndarray:
        """Coefficient times weight function at every support point."""
        w = np.array([self.weight_function(*self.supports[:, k])
                      for k in range(self.num_points)], dtype=np.float64)
        return self.coefficients * w


def uniform_measure_data(
    pref: "EntityRef",
    num_supports: Optional[int] = None,
    method: SupportLabel = UNIFORM_GRID,
    name: str = "integral",
    random_state=None,
) -> DiscreteMeasureData:
    """
    Build measure data for a single parameter from generated supports.

    Parameters
    ----------
    pref : EntityRef
        Parameter to integrate over.
    num_supports : int, optional
        Number of points (configured default when omitted).
    method : SupportLabel
        UNIFORM_GRID (trapezoid rule, interval domains), MC_SAMPLE (equal
        weights scaled by the interval length) or WEIGHTED_SAMPLE
        (expectation over a distribution domain, weights 1/n).
    name : str
        Measure name.
    random_state : int or numpy.random.Generator, optional
        Seed or generator for sampled methods.
    """
    from inftrans.supports.generators import generate_support_values
    from inftrans.utils.config import get_default_num_supports

    param = pref.model.parameter(pref)
    n = num_supports if num_supports is not None else get_default_num_supports()
    values, label = generate_support_values(
        param.domain, method, num_supports=n, sig_digits=param.sig_digits,
        random_state=random_state,
    )
    values = np.asarray(values, dtype=np.float64).reshape(-1)
    if label == UNIFORM_GRID:
        if values.size < 2:
            raise ValidationError("Trapezoid measure data needs at least 2 supports.")
        coeffs = np.zeros_like(values)
        widths = np.diff(values)
        coeffs[:-1] += widths / 2
        coeffs[1:] += widths / 2
    elif label == MC_SAMPLE:
        lower, upper = param.domain.bounds()
        if not (np.isfinite(lower) and np.isfinite(upper)):
            raise ValidationError("Monte-Carlo measure data needs a bounded domain.")
        coeffs = np.full(values.size, (upper - lower) / values.size)
    elif label == WEIGHTED_SAMPLE:
        coeffs = np.full(values.size, 1.0 / values.size)
    else:
        raise ValidationError(f"Cannot build measure coefficients for method {label}.")
    return DiscreteMeasureData((pref,), coeffs, values, name=name)
