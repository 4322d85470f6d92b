"""
Transcription Engine
====================

Expands every infinite-indexed object of an :class:`InfiniteModel` over the
supports of its parameters and records the finite counterparts in a
:class:`TranscriptionModel`.

Build steps:
1. fill in default supports where a parameter has none, restore the
   supports of point variables and measures, materialize generative
   supports and evaluate every derivative
2. read the supports (all labels) of every parameter once
3. transcribe finite, infinite and point variables, measures, constraints
   and derivative evaluation equations
4. attach the result to the model and mark it ready

Counterparts are get-or-create: an infinite variable referenced by several
constraints at the same support maps to one finite variable.

Usage:
    tm = build_transcription_model(model)
    transcription_variable(x)       # [0, 1, 2, ...]
    variable_supports(x)            # [0.0, 2.5, ...]
"""

import itertools
import logging
from typing import Dict, Optional, Sequence, Tuple

from inftrans.errors import TranscriptionReferenceError, UnsupportedCombinationError
from inftrans.model.infinite_model import (
    EntityRef, IndexKind, InfiniteModel, FINITE_VARIABLE_KINDS, INFINITE_VARIABLE_KINDS,
)
from inftrans.model.labels import ALL
from inftrans.supports.derivatives import evaluate_all_derivatives
from inftrans.supports.store import (
    add_generative_supports, add_supports, fill_in_supports, significant_digits, supports,
)
from inftrans.transcription.data import (
    ReducedVariable, TranscriptionEntry, TranscriptionModel,
)
from inftrans.transcription.finite_model import AffineExpression
from inftrans.utils.config import is_verbose_naming_enabled
from inftrans.utils.constants import SUPPORT_NAME_FORMAT
from inftrans.utils.rounding import round_sig

logger = logging.getLogger(__name__)


class _Builder:
    """One transcription pass over ``model`` into ``tm``."""

    def __init__(self, model: InfiniteModel, tm: TranscriptionModel):
        self.model = model
        self.tm = tm
        self.data = tm.data
        self.finite = tm.finite_model
        self._combo_cache: Dict[Tuple[EntityRef, ...], Tuple[Tuple[float, ...], ...]] = {}

    # -- helpers -------------------------------------------------------------

    def combinations(self, prefs: Sequence[EntityRef]) -> Tuple[Tuple[float, ...], ...]:
        """Support combinations of ``prefs`` in product order (last fastest)."""
        prefs = tuple(prefs)
        combos = self._combo_cache.get(prefs)
        if combos is None:
            combos = tuple(itertools.product(
                *(self.data.parameter_supports(p).tolist() for p in prefs)))
            self._combo_cache[prefs] = combos
        return combos

    def name(self, base: str, key: Tuple[float, ...], position: int) -> str:
        if not key:
            return base
        if self.data.verbose_naming:
            return f"{base}({', '.join(repr(v) for v in key)})"
        return SUPPORT_NAME_FORMAT.format(name=base, index=position + 1)

    def entry(self, group: str, ref: EntityRef, prefs=()) -> TranscriptionEntry:
        entries = self.data.entries[group]
        entry = entries.get(ref)
        if entry is None:
            entry = entries[ref] = TranscriptionEntry(prefs)
        return entry

    # -- variables -----------------------------------------------------------

    def finite_variable(self, ref: EntityRef) -> int:
        entry = self.entry('variable', ref)
        if entry.is_finite and len(entry):
            return entry.mappings[0]
        if ref.kind == IndexKind.POINT_VARIABLE:
            pvar = self.model.object(ref)
            index = self.variable_at(pvar.infinite_variable_ref, pvar.support_values)
        else:
            var = self.model.object(ref)
            index = self.finite.add_variable(var.name, var.lower_bound, var.upper_bound,
                                             var.start, var.integer)
        entry.add((), index)
        return index

    def variable_at(self, ref: EntityRef, key: Tuple[float, ...]) -> int:
        """Finite variable of the infinite variable (or derivative) ``ref`` at ``key``."""
        var = self.model.object(ref)
        entry = self.entry('variable', ref, var.parameter_refs)
        index = entry.get(key)
        if index is not None:
            return index
        if ref.kind == IndexKind.DERIVATIVE:
            lower = upper = start = None
            integer = False
        else:
            lower, upper, integer = var.lower_bound, var.upper_bound, var.integer
            start = var.start(*key) if callable(var.start) else var.start
        index = self.finite.add_variable(self.name(var.name, key, len(entry)),
                                         lower, upper, start, integer)
        entry.add(key, index)
        return index

    def transcribe_variables(self) -> None:
        for ref in self.model.refs(IndexKind.FINITE_VARIABLE):
            self.finite_variable(ref)
        for kind in (IndexKind.INFINITE_VARIABLE, IndexKind.DERIVATIVE):
            for ref in self.model.refs(kind):
                prefs = self.model.object(ref).parameter_refs
                self.entry('variable', ref, prefs)
                for key in self.combinations(prefs):
                    self.variable_at(ref, key)
        for ref in self.model.refs(IndexKind.POINT_VARIABLE):
            self.finite_variable(ref)

    # -- expressions ---------------------------------------------------------

    def expression(self, ref: EntityRef, point: Dict[EntityRef, float]) -> AffineExpression:
        """Affine expression of ``ref`` with its parameters fixed by ``point``."""
        kind = ref.kind
        if kind == IndexKind.PARAMETER:
            return AffineExpression(constant=point[ref])
        if kind in FINITE_VARIABLE_KINDS:
            return AffineExpression.variable(self.finite_variable(ref))
        if kind in INFINITE_VARIABLE_KINDS:
            prefs = self.model.object(ref).parameter_refs
            return AffineExpression.variable(self.variable_at(ref, tuple(point[p] for p in prefs)))
        if kind == IndexKind.MEASURE:
            prefs = self.model.entity_parameter_refs(ref)
            return self.measure_at(ref, tuple(point[p] for p in prefs))
        raise UnsupportedCombinationError(
            f"Transcription not defined for expression terms with indices of type {kind.name}."
        )

    # -- measures ------------------------------------------------------------

    def measure_at(self, ref: EntityRef, key: Tuple[float, ...]) -> AffineExpression:
        meas = self.model.object(ref)
        entry = self.entry('measure', ref, self.model.entity_parameter_refs(ref))
        expr = entry.get(key)
        if expr is not None:
            return expr
        mdata = meas.data
        point = dict(zip(entry.parameter_refs, key))
        expr = AffineExpression()
        weights = mdata.weights()
        digits = [significant_digits(p) for p in mdata.parameter_refs]
        for k in range(mdata.num_points):
            sub = dict(point)
            for row, pref in enumerate(mdata.parameter_refs):
                sub[pref] = round_sig(float(mdata.supports[row, k]), digits[row])
            expr.add(self.expression(meas.function_ref, sub), weights[k])
        entry.add(key, expr)
        self.reduce(meas.function_ref, mdata, digits)
        return expr

    def reduce(self, function_ref: EntityRef, mdata, digits) -> None:
        """Record the reduced variables of a partially integrated variable."""
        if function_ref.kind not in INFINITE_VARIABLE_KINDS:
            return
        var_prefs = self.model.object(function_ref).parameter_refs
        measured = [p for p in mdata.parameter_refs if p in var_prefs]
        remaining = tuple(p for p in var_prefs if p not in mdata.parameter_refs)
        if not measured or not remaining:
            return
        for k in range(mdata.num_points):
            fixed = {p: round_sig(float(mdata.supports[row, k]), digits[row])
                     for row, p in enumerate(mdata.parameter_refs) if p in var_prefs}
            lookup_key = (function_ref, tuple(fixed[p] for p in measured))
            if lookup_key in self.data.reduced_lookup:
                continue
            rentry = TranscriptionEntry(remaining)
            for key in self.combinations(remaining):
                point = dict(zip(remaining, key))
                point.update(fixed)
                rentry.add(key, self.variable_at(function_ref, tuple(point[p] for p in var_prefs)))
            self.data.reduced_lookup[lookup_key] = len(self.data.reduced_variables)
            self.data.reduced_variables.append(ReducedVariable(function_ref, fixed, remaining))
            self.data.reduced_entries.append(rentry)

    def transcribe_measures(self) -> None:
        for ref in self.model.refs(IndexKind.MEASURE):
            prefs = self.model.entity_parameter_refs(ref)
            self.entry('measure', ref, prefs)
            for key in self.combinations(prefs):
                self.measure_at(ref, key)

    # -- constraints ---------------------------------------------------------

    def transcribe_constraints(self) -> None:
        for ref in self.model.refs(IndexKind.CONSTRAINT):
            con = self.model.object(ref)
            prefs = self.model.entity_parameter_refs(ref)
            entry = self.entry('constraint', ref, prefs)
            for key in self.combinations(prefs):
                if key in entry.lookup:
                    continue
                point = dict(zip(prefs, key))
                if not _within_restrictions(point, con.restrictions):
                    continue
                expr = AffineExpression()
                for coef, term in con.terms:
                    expr.add(self.expression(term, point), coef)
                index = self.finite.add_constraint(expr, con.sense, con.rhs,
                                                   self.name(con.name, key, len(entry)))
                entry.add(key, index)

    def transcribe_derivative_evaluations(self) -> None:
        for dref in self.model.refs(IndexKind.DERIVATIVE):
            deriv = self.model.object(dref)
            equations = self.model.derivative_evaluations.get(dref.index)
            if equations is None:
                raise TranscriptionReferenceError(
                    f"Derivative '{deriv.name}' has no evaluation equations."
                )
            prefs = deriv.parameter_refs
            pref = deriv.parameter_ref
            others = tuple(p for p in prefs if p != pref)
            entry = self.entry('derivative_evaluation', dref, prefs)
            base = f"{deriv.name}_eval"
            for eq in equations:
                at = eq.terms[0][2]
                for other_key in self.combinations(others):
                    point = dict(zip(others, other_key))
                    point[pref] = at
                    key = tuple(point[p] for p in prefs)
                    if key in entry.lookup:
                        continue
                    expr = AffineExpression()
                    for coef, term, value in eq.terms:
                        point[pref] = value
                        expr.add(self.expression(term, point), coef)
                    index = self.finite.add_constraint(expr, '==', 0.0,
                                                       self.name(base, key, len(entry)))
                    entry.add(key, index)

    def run(self) -> None:
        self.transcribe_variables()
        self.transcribe_measures()
        self.transcribe_constraints()
        self.transcribe_derivative_evaluations()


def _within_restrictions(point: Dict[EntityRef, float], restrictions) -> bool:
    for pref, (lower, upper) in restrictions.items():
        value = point.get(pref)
        if value is not None and not lower <= value <= upper:
            return False
    return True


def _restore_entity_supports(model: InfiniteModel) -> None:
    """Re-add the supports of point variables and measures.

    Deleting or overwriting supports can remove values a point variable or
    a measure was defined at; every artifact must sit on the support grid.
    """
    for ref in model.refs(IndexKind.POINT_VARIABLE):
        pvar = model.object(ref)
        prefs = model.object(pvar.infinite_variable_ref).parameter_refs
        for pref, value in zip(prefs, pvar.support_values):
            add_supports(pref, [value])
    for ref in model.refs(IndexKind.MEASURE):
        mdata = model.object(ref).data
        for row, pref in enumerate(mdata.parameter_refs):
            add_supports(pref, mdata.supports[row], label=mdata.label)


def prepare_supports(model: InfiniteModel) -> None:
    """Fill in default supports, restore point and measure supports,
    materialize generative supports and evaluate derivatives."""
    prefs = model.parameter_refs()
    fill_in_supports(prefs, modify=False)
    _restore_entity_supports(model)
    for pref in prefs:
        add_generative_supports(pref)
    evaluate_all_derivatives(model)


def build_transcription_model(
    model: InfiniteModel,
    verbose_naming: Optional[bool] = None,
) -> TranscriptionModel:
    """
    Transcribe ``model`` into a new :class:`TranscriptionModel`.

    Parameters
    ----------
    model : InfiniteModel
        Model to transcribe. Its supports may be extended (default supports
        for parameters without any, point variable and measure supports that
        were removed, generative supports).
    verbose_naming : bool, optional
        Embed support values in the finite names instead of the support
        position (configured default when omitted).

    Returns
    -------
    TranscriptionModel
        Also stored as ``model.transcription_model``; the model is marked
        ready until its next mutation.
    """
    if verbose_naming is None:
        verbose_naming = is_verbose_naming_enabled()
    prepare_supports(model)

    tm = TranscriptionModel(f"{model.name}_transcription", verbose_naming=verbose_naming)
    data = tm.data
    prefs = tuple(model.parameter_refs())
    data.parameter_refs = prefs
    data.supports = tuple(supports(p, label=ALL) for p in prefs)
    for p in prefs:
        data.support_labels[p] = {v: frozenset(labels)
                                  for v, labels in model.parameter(p).supports.items()}

    _Builder(model, tm).run()
    model._mark_ready(tm)
    logger.info(
        f"Transcribed model '{model.name}': {tm.finite_model.num_variables} variables, "
        f"{tm.finite_model.num_constraints} constraints, "
        f"{len(data.reduced_variables)} reduced variables"
    )
    return tm
