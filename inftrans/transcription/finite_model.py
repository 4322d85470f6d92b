"""Finite target model receiving transcribed variables and constraints.

The model is a plain container: variables and constraints are appended and
addressed by their integer position. Nothing here knows about parameters
or supports.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass
class FiniteVariable:
    name: str
    lower_bound: Optional[float] = None
    upper_bound: Optional[float] = None
    start: Optional[float] = None
    integer: bool = False


@dataclass
class AffineExpression:
    """``sum(coef * variable) + constant`` over finite variable indices."""
    terms: Dict[int, float] = field(default_factory=dict)
    constant: float = 0.0

    def add_term(self, index: int, coef: float) -> None:
        self.terms[index] = self.terms.get(index, 0.0) + coef

    def add(self, other: "AffineExpression", scale: float = 1.0) -> None:
        """In-place ``self += scale * other``."""
        for index, coef in other.terms.items():
            self.add_term(index, scale * coef)
        self.constant += scale * other.constant

    def scaled(self, scale: float) -> "AffineExpression":
        return AffineExpression({i: scale * c for i, c in self.terms.items()},
                                scale * self.constant)

    @classmethod
    def variable(cls, index: int) -> "AffineExpression":
        return cls({index: 1.0})

    def __repr__(self) -> str:
        parts = [f"{c:+g}*v{i}" for i, c in self.terms.items()]
        if self.constant or not parts:
            parts.append(f"{self.constant:+g}")
        return f"AffineExpression({' '.join(parts)})"


@dataclass
class FiniteConstraint:
    """``expression <sense> rhs``; the expression constant is folded into ``rhs``."""
    name: str
    expression: AffineExpression
    sense: str
    rhs: float


class FiniteModel:
    """Target model with name lookup for variables and constraints."""

    def __init__(self, name: str = "transcription"):
        self.name = name
        self.variables: List[FiniteVariable] = []
        self.constraints: List[FiniteConstraint] = []

    def __repr__(self) -> str:
        return (f"FiniteModel({self.name!r}, variables={len(self.variables)}, "
                f"constraints={len(self.constraints)})")

    @property
    def num_variables(self) -> int:
        return len(self.variables)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    def add_variable(self, name: str, lower_bound: Optional[float] = None,
                     upper_bound: Optional[float] = None, start: Optional[float] = None,
                     integer: bool = False) -> int:
        self.variables.append(FiniteVariable(name, lower_bound, upper_bound, start, integer))
        return len(self.variables) - 1

    def add_constraint(self, expression: AffineExpression, sense: str, rhs: float,
                       name: str = "") -> int:
        body = AffineExpression(dict(expression.terms))
        self.constraints.append(
            FiniteConstraint(name, body, sense, float(rhs) - expression.constant))
        return len(self.constraints) - 1

    def set_name(self, index: int, name: str, constraint: bool = False) -> None:
        target = self.constraints if constraint else self.variables
        target[index].name = name

    def variable_by_name(self, name: str) -> Optional[int]:
        """Index of the first variable called ``name``, or None."""
        return _first_named(self.variables, name)

    def constraint_by_name(self, name: str) -> Optional[int]:
        return _first_named(self.constraints, name)


def _first_named(objects: Iterable, name: str) -> Optional[int]:
    for i, obj in enumerate(objects):
        if obj.name == name:
            return i
    return None
