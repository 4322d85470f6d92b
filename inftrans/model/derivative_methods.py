"""Derivative evaluation methods attached to infinite parameters.

A parameter's method decides how derivatives with respect to it are turned
into algebraic equations at transcription time, and which generative
supports (if any) the parameter needs.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from inftrans.errors import ValidationError
from inftrans.model.generative import (
    GenerativeInfo, NoGenerativeSupports, UniformGenerativeInfo,
)
from inftrans.model.labels import COLLOCATION


class FDTechnique(Enum):
    """Finite difference stencils."""
    BACKWARD = "backward"
    FORWARD = "forward"
    CENTRAL = "central"


class DerivativeMethod:
    """Base class for derivative evaluation methods."""

    def generative_info(self) -> GenerativeInfo:
        return NoGenerativeSupports()


@dataclass(frozen=True)
class FiniteDifference(DerivativeMethod):
    """Finite difference approximation over consecutive supports."""
    technique: FDTechnique = FDTechnique.BACKWARD

    def __post_init__(self):
        if not isinstance(self.technique, FDTechnique):
            object.__setattr__(self, 'technique', FDTechnique(self.technique))


def lobatto_nodes(num_nodes: int) -> np.ndarray:
    """Gauss-Lobatto nodes on [-1, 1] (endpoints included), sorted."""
    if num_nodes < 2:
        raise ValidationError(f"Gauss-Lobatto needs at least 2 nodes, got {num_nodes}")
    interior = np.polynomial.legendre.Legendre.basis(num_nodes - 1).deriv().roots()
    return np.concatenate(([-1.0], np.sort(np.real(interior)), [1.0]))


@dataclass(frozen=True)
class OrthogonalCollocation(DerivativeMethod):
    """
    Orthogonal collocation over finite elements on Gauss-Lobatto nodes.

    ``num_nodes`` counts both element endpoints, so ``num_nodes - 2``
    internal collocation supports are generated in every element.
    """
    num_nodes: int = 3

    def __post_init__(self):
        if self.num_nodes < 2:
            raise ValidationError(
                f"OrthogonalCollocation needs num_nodes >= 2, got {self.num_nodes}"
            )

    def generative_info(self) -> GenerativeInfo:
        if self.num_nodes == 2:
            return NoGenerativeSupports()
        interior = lobatto_nodes(self.num_nodes)[1:-1]
        return UniformGenerativeInfo(interior, COLLOCATION, lower=-1.0, upper=1.0)


DEFAULT_DERIVATIVE_METHOD = FiniteDifference()
