"""
Infinite Model
==============

Container for everything defined before transcription: infinite
parameters, infinite / finite / point variables, derivatives, measures and
constraints. Objects are addressed through :class:`EntityRef` values.

The model carries one dirty bit, ``transcription_ready``. Every mutation
path (support changes on a used parameter, generative support resets,
derivative invalidation, adding or deleting model objects) clears it and
only a fresh :func:`inftrans.transcription.build_transcription_model` sets
it again.

Usage:
    model = InfiniteModel()
    t = model.add_parameter(IntervalDomain(0, 10), name='t', num_supports=11)
    x = model.add_infinite_variable('x', [t], lower_bound=0)
    dx = model.add_derivative(x, t)
    c = model.add_constraint([(1.0, dx), (-2.0, x)], '==', 0.0, name='ode')
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from inftrans.errors import ValidationError, TranscriptionReferenceError
from inftrans.model.derivative_methods import DerivativeMethod, DEFAULT_DERIVATIVE_METHOD
from inftrans.model.domains import InfiniteDomain
from inftrans.model.measures import DiscreteMeasureData
from inftrans.model.parameters import IndependentParameter

logger = logging.getLogger(__name__)


class IndexKind(Enum):
    """Kinds of objects an :class:`EntityRef` can point at."""
    PARAMETER = auto()
    INFINITE_VARIABLE = auto()
    FINITE_VARIABLE = auto()
    POINT_VARIABLE = auto()
    DERIVATIVE = auto()
    MEASURE = auto()
    REDUCED_VARIABLE = auto()
    CONSTRAINT = auto()


FINITE_VARIABLE_KINDS = frozenset({IndexKind.FINITE_VARIABLE, IndexKind.POINT_VARIABLE})
INFINITE_VARIABLE_KINDS = frozenset({IndexKind.INFINITE_VARIABLE, IndexKind.DERIVATIVE})

SENSES = ('<=', '>=', '==')


@dataclass(frozen=True, eq=False)
class EntityRef:
    """Reference to an object of an :class:`InfiniteModel`.

    Two references are equal when they point at the same index of the same
    kind in the same model object.
    """
    model: "InfiniteModel" = field(repr=False)
    kind: IndexKind
    index: int

    def __eq__(self, other) -> bool:
        if not isinstance(other, EntityRef):
            return NotImplemented
        return (self.model is other.model and self.kind == other.kind
                and self.index == other.index)

    def __hash__(self) -> int:
        return hash((id(self.model), self.kind, self.index))

    @property
    def name(self) -> str:
        return self.model.name_of(self)

    def __str__(self) -> str:
        return self.name


# =============================================================================
# Model objects
# =============================================================================

@dataclass
class InfiniteVariable:
    name: str
    parameter_refs: Tuple[EntityRef, ...]
    lower_bound: Optional[float] = None
    upper_bound: Optional[float] = None
    start: Union[None, float, Callable[..., float]] = None
    integer: bool = False


@dataclass
class FiniteVariable:
    name: str
    lower_bound: Optional[float] = None
    upper_bound: Optional[float] = None
    start: Optional[float] = None
    integer: bool = False


@dataclass
class PointVariable:
    """An infinite variable evaluated at one support of its parameters."""
    name: str
    infinite_variable_ref: EntityRef
    support_values: Tuple[float, ...]


@dataclass
class Derivative:
    """Derivative of an infinite variable (or derivative) w.r.t. one of its parameters."""
    name: str
    variable_ref: EntityRef
    parameter_ref: EntityRef
    parameter_refs: Tuple[EntityRef, ...]


@dataclass
class Measure:
    name: str
    function_ref: EntityRef
    data: DiscreteMeasureData


@dataclass
class InfiniteConstraint:
    """
    Linear constraint ``sum(coef * term) <sense> rhs``.

    ``restrictions`` maps a parameter reference to an inclusive
    ``(lower, upper)`` box; supports outside it are skipped.
    """
    name: str
    terms: Tuple[Tuple[float, EntityRef], ...]
    sense: str
    rhs: float = 0.0
    restrictions: Dict[EntityRef, Tuple[float, float]] = field(default_factory=dict)


# =============================================================================
# Model
# =============================================================================

class InfiniteModel:
    """
    Pre-transcription model.

    Attributes
    ----------
    name : str
        Model name.
    transcription_ready : bool
        False whenever the model changed since the last transcription build.
    transcription_model : TranscriptionModel or None
        Result of the last build (see :mod:`inftrans.transcription`).
    derivative_evaluations : dict
        Derivative index -> list of evaluation equations built from the
        current supports (see :mod:`inftrans.supports.derivatives`).
    """

    def __init__(self, name: str = "model"):
        self.name = name
        self._objects: Dict[IndexKind, Dict[int, Any]] = {
            kind: {} for kind in IndexKind if kind != IndexKind.REDUCED_VARIABLE
        }
        self._next_index: Dict[IndexKind, int] = {kind: 0 for kind in self._objects}
        self.derivative_evaluations: Dict[int, list] = {}
        self.transcription_ready = False
        self.transcription_model = None

    def __repr__(self) -> str:
        counts = ', '.join(f"{k.name.lower()}={len(v)}" for k, v in self._objects.items() if v)
        return f"InfiniteModel({self.name!r}{', ' + counts if counts else ''})"

    # -- dirty bit -----------------------------------------------------------

    def mark_stale(self) -> None:
        """Flag the model as changed since the last transcription build."""
        if self.transcription_ready:
            logger.debug(f"Model '{self.name}' marked not ready for solving")
        self.transcription_ready = False

    def _mark_ready(self, transcription_model) -> None:
        self.transcription_model = transcription_model
        self.transcription_ready = True

    # -- generic access ------------------------------------------------------

    def _add(self, kind: IndexKind, obj) -> EntityRef:
        self._next_index[kind] += 1
        index = self._next_index[kind]
        self._objects[kind][index] = obj
        self.mark_stale()
        return EntityRef(self, kind, index)

    def _check_ref(self, ref: EntityRef, *kinds: IndexKind) -> None:
        if not isinstance(ref, EntityRef) or ref.model is not self:
            raise ValidationError(f"{ref!r} does not belong to model '{self.name}'.")
        if kinds and ref.kind not in kinds:
            expected = ', '.join(k.name for k in kinds)
            raise ValidationError(f"Expected a reference of kind {expected}, got {ref.kind.name}.")

    def object(self, ref: EntityRef):
        """Return the object stored for ``ref``."""
        self._check_ref(ref)
        obj = self._objects.get(ref.kind, {}).get(ref.index)
        if obj is None:
            raise TranscriptionReferenceError(
                f"Invalid {ref.kind.name.lower()} reference {ref.index}, it was likely deleted."
            )
        return obj

    def is_valid(self, ref: EntityRef) -> bool:
        return (isinstance(ref, EntityRef) and ref.model is self
                and ref.index in self._objects.get(ref.kind, {}))

    def refs(self, kind: IndexKind) -> List[EntityRef]:
        """All live references of one kind, in creation order."""
        return [EntityRef(self, kind, i) for i in self._objects[kind]]

    def name_of(self, ref: EntityRef) -> str:
        if ref.kind == IndexKind.REDUCED_VARIABLE:
            from inftrans.transcription.data import internal_reduced_variable
            return internal_reduced_variable(ref).name
        return self.object(ref).name

    # -- parameters ----------------------------------------------------------

    def add_parameter(
        self,
        domain: InfiniteDomain,
        name: str = "",
        supports: Optional[Sequence[float]] = None,
        num_supports: int = 0,
        sig_digits: Optional[int] = None,
        derivative_method: DerivativeMethod = DEFAULT_DERIVATIVE_METHOD,
    ) -> EntityRef:
        """
        Add an independent infinite parameter.

        Parameters
        ----------
        domain : InfiniteDomain
            Scalar domain (interval or univariate distribution).
        name : str
            Parameter name.
        supports : sequence of float, optional
            Initial supports (stored under the user-defined label).
        num_supports : int, default 0
            Number of supports to generate with the domain's default method
            when ``supports`` is not given.
        sig_digits : int, optional
            Significant digits (configured default when omitted).
        derivative_method : DerivativeMethod
            Derivative evaluation method.
        """
        from inftrans.supports.store import set_supports, fill_in_supports
        from inftrans.utils.config import get_default_sig_digits

        if sig_digits is None:
            sig_digits = get_default_sig_digits()
        if sig_digits < 1:
            raise ValidationError(f"sig_digits must be positive, got {sig_digits}")
        try:
            domain.bounds()
        except NotImplementedError:
            raise ValidationError(
                f"Independent parameters need a scalar domain, got {type(domain).__name__}"
            ) from None
        param = IndependentParameter(
            name=name or f"param{self._next_index[IndexKind.PARAMETER] + 1}",
            domain=domain,
            sig_digits=sig_digits,
            derivative_method=derivative_method,
        )
        pref = self._add(IndexKind.PARAMETER, param)
        if supports is not None:
            set_supports(pref, supports)
        elif num_supports:
            fill_in_supports(pref, num_supports=num_supports)
        return pref

    def parameter(self, pref: EntityRef) -> IndependentParameter:
        self._check_ref(pref, IndexKind.PARAMETER)
        return self.object(pref)

    def parameter_refs(self) -> List[EntityRef]:
        return self.refs(IndexKind.PARAMETER)

    def parameter_position(self, pref: EntityRef) -> int:
        """Position of ``pref`` in the model's parameter order."""
        self._check_ref(pref, IndexKind.PARAMETER)
        for pos, index in enumerate(self._objects[IndexKind.PARAMETER]):
            if index == pref.index:
                return pos
        raise TranscriptionReferenceError(f"Invalid parameter reference {pref.index}.")

    def sort_parameters(self, prefs) -> Tuple[EntityRef, ...]:
        """Deduplicate ``prefs`` and order them as the model orders parameters."""
        return tuple(sorted(set(prefs), key=self.parameter_position))

    def used_by_variable(self, pref: EntityRef) -> bool:
        return any(pref in v.parameter_refs
                   for v in self._objects[IndexKind.INFINITE_VARIABLE].values())

    def used_by_measure(self, pref: EntityRef) -> bool:
        return any(pref in m.data.parameter_refs
                   for m in self._objects[IndexKind.MEASURE].values())

    def used_by_derivative(self, pref: EntityRef) -> bool:
        return any(d.parameter_ref == pref
                   for d in self._objects[IndexKind.DERIVATIVE].values())

    def used_by_constraint(self, pref: EntityRef) -> bool:
        return any(any(r == pref for _, r in c.terms) or pref in c.restrictions
                   for c in self._objects[IndexKind.CONSTRAINT].values())

    def is_used(self, pref: EntityRef) -> bool:
        """True if any variable, derivative, measure or constraint depends on ``pref``."""
        return (self.used_by_variable(pref) or self.used_by_measure(pref)
                or self.used_by_derivative(pref) or self.used_by_constraint(pref))

    def derivative_refs_wrt(self, pref: EntityRef) -> List[EntityRef]:
        """Derivatives taken with respect to ``pref``."""
        return [EntityRef(self, IndexKind.DERIVATIVE, i)
                for i, d in self._objects[IndexKind.DERIVATIVE].items()
                if d.parameter_ref == pref]

    # -- variables -----------------------------------------------------------

    def add_infinite_variable(
        self,
        name: str,
        parameter_refs: Sequence[EntityRef],
        lower_bound: Optional[float] = None,
        upper_bound: Optional[float] = None,
        start: Union[None, float, Callable[..., float]] = None,
        integer: bool = False,
    ) -> EntityRef:
        """Add a variable indexed by ``parameter_refs``.

        ``start`` may be a callable receiving the support values (in
        ``parameter_refs`` order) and returning a start value.
        """
        prefs = tuple(parameter_refs)
        if not prefs:
            raise ValidationError(f"Infinite variable '{name}' needs at least one parameter.")
        for p in prefs:
            self.parameter(p)
        if len(set(prefs)) != len(prefs):
            raise ValidationError(f"Infinite variable '{name}' repeats a parameter.")
        return self._add(IndexKind.INFINITE_VARIABLE, InfiniteVariable(
            name, prefs, lower_bound, upper_bound, start, integer))

    def add_finite_variable(
        self,
        name: str,
        lower_bound: Optional[float] = None,
        upper_bound: Optional[float] = None,
        start: Optional[float] = None,
        integer: bool = False,
    ) -> EntityRef:
        """Add a variable that does not depend on any parameter."""
        return self._add(IndexKind.FINITE_VARIABLE, FiniteVariable(
            name, lower_bound, upper_bound, start, integer))

    def add_point_variable(self, infinite_variable_ref: EntityRef,
                           values: Sequence[float], name: str = "") -> EntityRef:
        """
        Add ``infinite_variable_ref`` evaluated at one point.

        ``values`` follow the variable's parameter order; they are added to
        the parameters as user-defined supports (rounded to each parameter's
        precision).
        """
        from inftrans.supports.store import add_supports, check_supports

        self._check_ref(infinite_variable_ref, *INFINITE_VARIABLE_KINDS)
        var = self.object(infinite_variable_ref)
        values = tuple(float(v) for v in values)
        if len(values) != len(var.parameter_refs):
            raise ValidationError(
                f"Point variable of '{var.name}' needs {len(var.parameter_refs)} "
                f"values, got {len(values)}."
            )
        rounded = tuple(float(check_supports(pref, [value])[0])
                        for pref, value in zip(var.parameter_refs, values))
        for pref, value in zip(var.parameter_refs, rounded):
            add_supports(pref, [value], check=False)
        if not name:
            name = f"{var.name}({', '.join(repr(v) for v in rounded)})"
        return self._add(IndexKind.POINT_VARIABLE,
                         PointVariable(name, infinite_variable_ref, rounded))

    def add_derivative(self, variable_ref: EntityRef, parameter_ref: EntityRef,
                       name: str = "") -> EntityRef:
        """Add the derivative of an infinite variable (or derivative) w.r.t. ``parameter_ref``."""
        self._check_ref(variable_ref, *INFINITE_VARIABLE_KINDS)
        var = self.object(variable_ref)
        if parameter_ref not in var.parameter_refs:
            raise ValidationError(
                f"'{var.name}' does not depend on parameter '{parameter_ref.name}'."
            )
        if not name:
            name = f"d{var.name}/d{self.parameter(parameter_ref).name}"
        return self._add(IndexKind.DERIVATIVE, Derivative(
            name, variable_ref, parameter_ref, var.parameter_refs))

    def delete_derivative(self, dref: EntityRef) -> None:
        self._check_ref(dref, IndexKind.DERIVATIVE)
        deriv = self.object(dref)
        for kind in (IndexKind.DERIVATIVE, IndexKind.MEASURE, IndexKind.CONSTRAINT,
                     IndexKind.POINT_VARIABLE):
            self._check_not_referenced(dref, kind)
        self.derivative_evaluations.pop(dref.index, None)
        del self._objects[IndexKind.DERIVATIVE][dref.index]
        param = self.parameter(deriv.parameter_ref)
        if not any(i in self.derivative_evaluations
                   for i in (d.index for d in self.derivative_refs_wrt(deriv.parameter_ref))):
            param.has_derivative_constraints = False
        self.mark_stale()

    def _check_not_referenced(self, ref: EntityRef, kind: IndexKind) -> None:
        for obj in self._objects[kind].values():
            refs = []
            if isinstance(obj, Derivative):
                refs = [obj.variable_ref]
            elif isinstance(obj, Measure):
                refs = [obj.function_ref]
            elif isinstance(obj, InfiniteConstraint):
                refs = [r for _, r in obj.terms]
            elif isinstance(obj, PointVariable):
                refs = [obj.infinite_variable_ref]
            if ref in refs:
                raise ValidationError(
                    f"Cannot delete '{self.name_of(ref)}' since '{obj.name}' depends on it."
                )

    # -- measures ------------------------------------------------------------

    def add_measure(self, function_ref: EntityRef, data: DiscreteMeasureData,
                    name: str = "") -> EntityRef:
        """
        Add a measure of ``function_ref`` described by ``data``.

        The data supports are added to the measured parameters under
        ``data.label``.
        """
        from inftrans.supports.store import add_supports, check_supports

        self._check_ref(function_ref, *(INFINITE_VARIABLE_KINDS | FINITE_VARIABLE_KINDS
                                        | {IndexKind.MEASURE}))
        func_prefs = self.entity_parameter_refs(function_ref)
        for pref in data.parameter_refs:
            self.parameter(pref)
            if pref not in func_prefs:
                raise ValidationError(
                    "Measure expression is not parameterized by the parameter "
                    f"'{pref.name}' specified in the measure data."
                )
        # validate every row before the first parameter is touched
        rows = [check_supports(pref, data.supports[row], label=data.label)
                for row, pref in enumerate(data.parameter_refs)]
        for pref, row in zip(data.parameter_refs, rows):
            add_supports(pref, row, label=data.label, check=False)
        if not name:
            name = f"{data.name}({self.name_of(function_ref)})"
        return self._add(IndexKind.MEASURE, Measure(name, function_ref, data))

    def delete_measure(self, mref: EntityRef) -> None:
        """Delete a measure and strip its unique support label from the parameters."""
        from inftrans.model.labels import LabelKind
        from inftrans.supports.store import delete_supports

        self._check_ref(mref, IndexKind.MEASURE)
        meas = self.object(mref)
        for kind in (IndexKind.MEASURE, IndexKind.CONSTRAINT):
            self._check_not_referenced(mref, kind)
        del self._objects[IndexKind.MEASURE][mref.index]
        if meas.data.label.kind == LabelKind.UNIQUE_MEASURE:
            for pref in meas.data.parameter_refs:
                delete_supports(pref, label=meas.data.label)
        self.mark_stale()

    # -- constraints ---------------------------------------------------------

    def add_constraint(
        self,
        terms: Sequence[Tuple[float, EntityRef]],
        sense: str,
        rhs: float = 0.0,
        name: str = "",
        restrictions: Optional[Dict[EntityRef, Tuple[float, float]]] = None,
    ) -> EntityRef:
        """
        Add the linear constraint ``sum(coef * ref) <sense> rhs``.

        Terms may reference parameters, infinite / finite / point variables,
        derivatives and measures.
        """
        if sense not in SENSES:
            raise ValidationError(f"Invalid constraint sense {sense!r}. Must be one of {SENSES}")
        checked = []
        for coef, ref in terms:
            self._check_ref(ref, IndexKind.PARAMETER, *INFINITE_VARIABLE_KINDS,
                            *FINITE_VARIABLE_KINDS, IndexKind.MEASURE)
            self.object(ref)
            checked.append((float(coef), ref))
        restrictions = dict(restrictions or {})
        for pref, (lower, upper) in restrictions.items():
            self.parameter(pref)
            if lower > upper:
                raise ValidationError(f"Invalid restriction [{lower}, {upper}] on '{pref.name}'.")
        if not name:
            name = f"c{self._next_index[IndexKind.CONSTRAINT] + 1}"
        return self._add(IndexKind.CONSTRAINT, InfiniteConstraint(
            name, tuple(checked), sense, float(rhs), restrictions))

    def delete_constraint(self, cref: EntityRef) -> None:
        self._check_ref(cref, IndexKind.CONSTRAINT)
        self.object(cref)
        del self._objects[IndexKind.CONSTRAINT][cref.index]
        self.mark_stale()

    # -- structure queries ---------------------------------------------------

    def entity_parameter_refs(self, ref: EntityRef) -> Tuple[EntityRef, ...]:
        """
        Parameters an object is indexed by, in model order.

        Infinite variables and derivatives keep their own parameter order;
        measures drop the measured parameters from their function's;
        constraints take the union over their terms.
        """
        kind = ref.kind
        if kind == IndexKind.PARAMETER:
            return (ref,)
        if kind in FINITE_VARIABLE_KINDS:
            return ()
        obj = self.object(ref)
        if kind in INFINITE_VARIABLE_KINDS:
            return obj.parameter_refs
        if kind == IndexKind.MEASURE:
            measured = set(obj.data.parameter_refs)
            return tuple(p for p in self.entity_parameter_refs(obj.function_ref)
                         if p not in measured)
        if kind == IndexKind.CONSTRAINT:
            prefs = []
            for _, term in obj.terms:
                prefs.extend(self.entity_parameter_refs(term))
            return self.sort_parameters(prefs)
        raise ValidationError(f"Objects of kind {kind.name} have no parameters.")
