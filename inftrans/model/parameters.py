"""Independent infinite parameters and their ordered support storage.

A parameter owns its supports as a sorted mapping ``value -> set of labels``.
Values are rounded to the parameter's significant digits before they are
compared or stored, so values that agree after rounding share one entry.
"""

from __future__ import annotations

from bisect import bisect_left, insort
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Set, Tuple

from inftrans.model.derivative_methods import DerivativeMethod, DEFAULT_DERIVATIVE_METHOD
from inftrans.model.domains import InfiniteDomain
from inftrans.model.generative import GenerativeInfo
from inftrans.model.labels import SupportLabel


class SupportMap:
    """Mapping of support value to label set with strictly increasing keys."""

    def __init__(self):
        self._keys: List[float] = []
        self._labels: Dict[float, Set[SupportLabel]] = {}

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, value: float) -> bool:
        return value in self._labels

    def __getitem__(self, value: float) -> Set[SupportLabel]:
        return self._labels[value]

    def __iter__(self) -> Iterator[float]:
        return iter(self._keys)

    def keys(self) -> List[float]:
        return list(self._keys)

    def items(self) -> List[Tuple[float, Set[SupportLabel]]]:
        return [(k, self._labels[k]) for k in self._keys]

    def add(self, value: float, label: SupportLabel) -> bool:
        """Attach ``label`` to ``value``; return True if ``value`` is new."""
        labels = self._labels.get(value)
        if labels is not None:
            labels.add(label)
            return False
        insort(self._keys, value)
        self._labels[value] = {label}
        return True

    def remove(self, value: float) -> None:
        idx = bisect_left(self._keys, value)
        if idx == len(self._keys) or self._keys[idx] != value:
            raise KeyError(value)
        del self._keys[idx]
        del self._labels[value]

    def clear(self) -> None:
        self._keys.clear()
        self._labels.clear()

    def copy(self) -> "SupportMap":
        new = SupportMap()
        new._keys = list(self._keys)
        new._labels = {k: set(v) for k, v in self._labels.items()}
        return new


@dataclass
class IndependentParameter:
    """
    Core data of an independent infinite parameter.

    Attributes
    ----------
    name : str
        Display name.
    domain : InfiniteDomain
        Scalar domain the parameter ranges over.
    sig_digits : int
        Significant digits enforced on supports.
    derivative_method : DerivativeMethod
        How derivatives with respect to this parameter are evaluated.
    generative_info : GenerativeInfo
        How generative supports are derived (follows derivative_method).
    supports : SupportMap
        Stored supports. Only mutated through :mod:`inftrans.supports.store`.
    has_internal_supports : bool
        True iff some stored support carries an internal label.
    has_generative_supports : bool
        True iff generative supports are currently materialized.
    has_derivative_constraints : bool
        True iff derivative evaluation equations built from the current
        supports are stored on the owning model.
    """
    name: str
    domain: InfiniteDomain
    sig_digits: int
    derivative_method: DerivativeMethod = DEFAULT_DERIVATIVE_METHOD
    generative_info: GenerativeInfo = None
    supports: SupportMap = field(default_factory=SupportMap)
    has_internal_supports: bool = False
    has_generative_supports: bool = False
    has_derivative_constraints: bool = False

    def __post_init__(self):
        if self.generative_info is None:
            self.generative_info = self.derivative_method.generative_info()
