"""Infinite domains that parameters range over.

Domains are plain descriptions: they know their bounds and which generation
method is used by default. Sampling distributions are frozen ``scipy.stats``
objects (``scipy.stats.norm(0, 1)``, ``scipy.stats.multivariate_normal(...)``,
``scipy.stats.matrix_normal(...)``).

Each domain exposes ``domain_kind``, the key used by the support generator
registry in :mod:`inftrans.supports.generators`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Tuple

import numpy as np

from inftrans.errors import ValidationError
from inftrans.model.labels import (
    SupportLabel, UNIFORM_GRID, WEIGHTED_SAMPLE, MIXTURE,
)


INTERVAL = "interval"
UNIVARIATE_DISTRIBUTION = "univariate_distribution"
MULTIVARIATE_DISTRIBUTION = "multivariate_distribution"
COLLECTION = "collection"


class InfiniteDomain:
    """Base class for all infinite domains."""

    domain_kind: str = ""

    @property
    def default_method(self) -> SupportLabel:
        raise NotImplementedError

    def bounds(self) -> Tuple[float, float]:
        """Return ``(lower, upper)`` for scalar domains."""
        raise NotImplementedError(
            f"Domain kind '{self.domain_kind}' does not define scalar bounds"
        )

    def contains(self, values) -> np.ndarray:
        """Elementwise bounds check (bounds are inclusive)."""
        lower, upper = self.bounds()
        values = np.asarray(values, dtype=np.float64)
        return (values >= lower) & (values <= upper)


@dataclass(frozen=True)
class IntervalDomain(InfiniteDomain):
    """Closed interval ``[lower, upper]``."""
    lower: float
    upper: float

    domain_kind = INTERVAL

    def __post_init__(self):
        if not self.lower <= self.upper:
            raise ValidationError(
                f"Invalid interval: lower bound {self.lower} exceeds upper bound {self.upper}"
            )

    @property
    def default_method(self) -> SupportLabel:
        return UNIFORM_GRID

    def bounds(self) -> Tuple[float, float]:
        return float(self.lower), float(self.upper)


@dataclass(frozen=True, eq=False)
class UniDistributionDomain(InfiniteDomain):
    """Domain described by a frozen univariate ``scipy.stats`` distribution."""
    distribution: Any

    domain_kind = UNIVARIATE_DISTRIBUTION

    def __post_init__(self):
        if not hasattr(self.distribution, 'rvs'):
            raise ValidationError(
                f"Expected a frozen scipy.stats distribution, got {type(self.distribution).__name__}"
            )

    @property
    def default_method(self) -> SupportLabel:
        return WEIGHTED_SAMPLE

    def bounds(self) -> Tuple[float, float]:
        lower, upper = self.distribution.support()
        return float(lower), float(upper)


@dataclass(frozen=True, eq=False)
class MultiDistributionDomain(InfiniteDomain):
    """Domain described by a frozen multivariate or matrix ``scipy.stats`` distribution.

    Each draw is flattened (row-major) so that one sample becomes one column
    of the generated support matrix.
    """
    distribution: Any

    domain_kind = MULTIVARIATE_DISTRIBUTION

    def __post_init__(self):
        if not hasattr(self.distribution, 'rvs'):
            raise ValidationError(
                f"Expected a frozen scipy.stats distribution, got {type(self.distribution).__name__}"
            )

    @property
    def default_method(self) -> SupportLabel:
        return WEIGHTED_SAMPLE


@dataclass(frozen=True)
class CollectionDomain(InfiniteDomain):
    """Ordered collection of scalar domains (one per dependent dimension)."""
    domains: Tuple[InfiniteDomain, ...] = field(default_factory=tuple)

    domain_kind = COLLECTION

    def __post_init__(self):
        object.__setattr__(self, 'domains', tuple(self.domains))
        if not self.domains:
            raise ValidationError("CollectionDomain needs at least one sub-domain")
        for d in self.domains:
            if isinstance(d, (CollectionDomain, MultiDistributionDomain)):
                raise ValidationError(
                    f"CollectionDomain only holds scalar domains, got {type(d).__name__}"
                )

    def __len__(self) -> int:
        return len(self.domains)

    @property
    def default_method(self) -> SupportLabel:
        kinds = {d.domain_kind for d in self.domains}
        if kinds == {INTERVAL}:
            return UNIFORM_GRID
        if kinds == {UNIVARIATE_DISTRIBUTION}:
            return WEIGHTED_SAMPLE
        return MIXTURE
