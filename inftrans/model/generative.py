"""
Generative Support Information
==============================

Some measure and derivative techniques (e.g. orthogonal collocation) need
extra supports placed *between* the existing ones. A parameter's generative
info describes how to derive them:

- NoGenerativeSupports: nothing is derived
- UniformGenerativeInfo: the same basis of fractional offsets in [0, 1] is
  mapped into every finite element ``[s_i, s_{i+1}]``

The derived points are stored on the parameter under the info's label so
they can be torn down and rebuilt whenever the base supports change (see
:func:`inftrans.supports.store.add_generative_supports`).
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from inftrans.errors import ValidationError, UnsupportedCombinationError
from inftrans.model.labels import SupportLabel, NO_LABEL


class GenerativeInfo:
    """Base class for generative support information."""

    @property
    def label(self) -> SupportLabel:
        raise UnsupportedCombinationError(
            f"`label` not defined for generative support info type {type(self).__name__}."
        )

    def make_supports(self, existing: Sequence[float], owner: str = "parameter") -> np.ndarray:
        """Return the generative supports derived from ``existing`` (sorted)."""
        raise UnsupportedCombinationError(
            f"`make_supports` is not defined for generative support info of type "
            f"{type(self).__name__}."
        )


@dataclass(frozen=True)
class NoGenerativeSupports(GenerativeInfo):
    """No generative supports are created."""

    @property
    def label(self) -> SupportLabel:
        return NO_LABEL

    def make_supports(self, existing: Sequence[float], owner: str = "parameter") -> np.ndarray:
        return np.empty(0, dtype=np.float64)


@dataclass(frozen=True, init=False)
class UniformGenerativeInfo(GenerativeInfo):
    """
    Generative supports placed uniformly in every finite element.

    Parameters
    ----------
    basis : sequence of float
        Offsets defined over ``[lower, upper]``; stored rescaled to [0, 1].
    label : SupportLabel
        Label stamped on each derived support.
    lower, upper : float, default 0 and 1
        Interval the basis is expressed in.

    Raises
    ------
    ValidationError
        If the basis falls outside ``[lower, upper]``.

    Examples
    --------
    >>> info = UniformGenerativeInfo([0.0, 1.0], COLLOCATION, lower=-1, upper=1)
    >>> info.basis
    (0.5, 1.0)
    """
    basis: Tuple[float, ...]
    _label: SupportLabel

    def __init__(self, basis: Sequence[float], label: SupportLabel,
                 lower: float = 0.0, upper: float = 1.0):
        raw = np.asarray(basis, dtype=np.float64).reshape(-1)
        if raw.size == 0:
            raise ValidationError("Support basis must contain at least one value.")
        if not upper > lower:
            raise ValidationError(f"Invalid basis interval [{lower}, {upper}].")
        if raw.min() < lower or raw.max() > upper:
            raise ValidationError(
                "Support basis violate the given lower and upper bounds. "
                "Please specify the appropriate lower bound and upper bounds."
            )
        if label.is_selector:
            raise ValidationError(f"Cannot stamp generative supports with selector label {label}.")
        normalized = (raw - lower) / (upper - lower)
        object.__setattr__(self, 'basis', tuple(float(b) for b in normalized))
        object.__setattr__(self, '_label', label)

    @property
    def label(self) -> SupportLabel:
        return self._label

    def make_supports(self, existing: Sequence[float], owner: str = "parameter") -> np.ndarray:
        """
        Map the basis into each consecutive pair of ``existing`` supports.

        Returns ``len(basis) * (len(existing) - 1)`` values ordered by finite
        element, then by basis position.

        Raises
        ------
        ValidationError
            If fewer than two existing supports are given.
        """
        supps = np.asarray(existing, dtype=np.float64)
        if supps.size <= 1:
            raise ValidationError(
                f"{owner} does not have enough supports for creating generative supports."
            )
        basis = np.asarray(self.basis)
        lb = supps[:-1, None]
        ub = supps[1:, None]
        return (lb + basis[None, :] * (ub - lb)).reshape(-1)
