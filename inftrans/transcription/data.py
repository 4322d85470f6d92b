"""
Transcription Store
===================

Per-entity record of what a transcription build produced.

For every transcribed entity an :class:`TranscriptionEntry` keeps

- ``lookup``: support tuple -> position in ``mappings``
- ``mappings``: the finite counterparts in creation order
- ``keys``: the support tuple of each counterpart, aligned with ``mappings``

Position ``i`` is the contract for "the i-th support": the i-th mapping was
created for the i-th key. Entities not indexed by any parameter have a
single counterpart stored under the empty tuple and queries return it
directly instead of a list.

Reduced variables (an infinite variable with some of its parameters fixed by
a measure) live in their own list and are addressed by references of kind
``IndexKind.REDUCED_VARIABLE``, an index space separate from the finite
model's variable indices.

Queries dispatch on the reference kind through a handler registry:

    register_query_handler('variable', IndexKind.INFINITE_VARIABLE, handler)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple

import numpy as np

from inftrans.errors import TranscriptionReferenceError, UnsupportedCombinationError
from inftrans.model.infinite_model import EntityRef, IndexKind
from inftrans.model.labels import SupportLabel, ALL, PUBLIC, any_matches
from inftrans.transcription.finite_model import FiniteModel


class TranscriptionEntry:
    """Index-aligned support tuples and finite counterparts of one entity."""

    def __init__(self, parameter_refs: Tuple[EntityRef, ...] = ()):
        self.parameter_refs = tuple(parameter_refs)
        self.lookup: Dict[Tuple[float, ...], int] = {}
        self.keys: List[Tuple[float, ...]] = []
        self.mappings: List[Any] = []
        self._support_cache: Dict[SupportLabel, List[Any]] = {}

    def __len__(self) -> int:
        return len(self.mappings)

    @property
    def is_finite(self) -> bool:
        return not self.parameter_refs

    def get(self, key: Tuple[float, ...]):
        pos = self.lookup.get(key)
        return None if pos is None else self.mappings[pos]

    def add(self, key: Tuple[float, ...], mapping) -> int:
        """Append ``mapping`` for ``key`` and return its position."""
        if key in self.lookup:
            raise ValueError(f"Support {key} is already transcribed")
        self.lookup[key] = len(self.mappings)
        self.keys.append(key)
        self.mappings.append(mapping)
        self._support_cache.clear()
        return len(self.mappings) - 1


@dataclass
class ReducedVariable:
    """An infinite variable with some parameters fixed at given values."""
    infinite_variable_ref: EntityRef
    fixed_values: Dict[EntityRef, float]
    parameter_refs: Tuple[EntityRef, ...]

    @property
    def name(self) -> str:
        var = self.infinite_variable_ref.model.object(self.infinite_variable_ref)
        args = [repr(self.fixed_values[p]) if p in self.fixed_values else p.name
                for p in var.parameter_refs]
        return f"{var.name}({', '.join(args)})"


@dataclass
class TranscriptionData:
    """
    Everything a transcription build produced for one model.

    Attributes
    ----------
    parameter_refs : tuple of EntityRef
        Parameters in model order.
    supports : tuple of np.ndarray
        Supports (all labels) of each parameter, aligned with
        ``parameter_refs``.
    support_labels : dict
        Parameter -> support value -> labels, as of the build.
    entries : dict
        Entry group ('variable', 'measure', 'constraint',
        'derivative_evaluation') -> entity ref -> TranscriptionEntry.
    reduced_variables : list of ReducedVariable
    reduced_entries : list of TranscriptionEntry
        Aligned with ``reduced_variables``.
    verbose_naming : bool
        Whether names embed support values.
    """
    parameter_refs: Tuple[EntityRef, ...] = ()
    supports: Tuple[np.ndarray, ...] = ()
    support_labels: Dict[EntityRef, Dict[float, frozenset]] = field(default_factory=dict)
    entries: Dict[str, Dict[EntityRef, TranscriptionEntry]] = field(default_factory=lambda: {
        'variable': {}, 'measure': {}, 'constraint': {}, 'derivative_evaluation': {},
    })
    reduced_variables: List[ReducedVariable] = field(default_factory=list)
    reduced_entries: List[TranscriptionEntry] = field(default_factory=list)
    reduced_lookup: Dict[Tuple, int] = field(default_factory=dict)
    verbose_naming: bool = False

    def parameter_supports(self, pref: EntityRef) -> np.ndarray:
        return self.supports[self.parameter_refs.index(pref)]

    def key_matches(self, entry: TranscriptionEntry, key: Tuple[float, ...],
                    label: SupportLabel) -> bool:
        """True if every value of ``key`` carries a label matching ``label``.

        Values missing from the build snapshot never match.
        """
        for p, v in zip(entry.parameter_refs, key):
            labels = self.support_labels[p].get(v)
            if labels is None or not any_matches(labels, label):
                return False
        return True

    def positions(self, entry: TranscriptionEntry, label: SupportLabel) -> List[int]:
        """Positions of ``entry`` whose support values all match ``label``."""
        if label == ALL or entry.is_finite:
            return list(range(len(entry)))
        return [i for i, key in enumerate(entry.keys) if self.key_matches(entry, key, label)]

    def support_tuples(self, entry: TranscriptionEntry, label: SupportLabel) -> List[Any]:
        """Human-readable supports of ``entry`` (memoized per label).

        One-parameter entities give plain floats, others tuples.
        """
        cached = entry._support_cache.get(label)
        if cached is None:
            keys = [entry.keys[i] for i in self.positions(entry, label)]
            if len(entry.parameter_refs) == 1:
                cached = [k[0] for k in keys]
            else:
                cached = list(keys)
            entry._support_cache[label] = cached
        return list(cached)


class TranscriptionModel:
    """The finite model plus the transcription data that maps into it."""

    def __init__(self, name: str = "transcription", verbose_naming: bool = False):
        self.finite_model = FiniteModel(name)
        self.data = TranscriptionData(verbose_naming=verbose_naming)

    def __repr__(self) -> str:
        return f"TranscriptionModel({self.finite_model!r})"


# =============================================================================
# Query handler registry
# =============================================================================

QueryHandler = Callable[[TranscriptionData, EntityRef], TranscriptionEntry]

_QUERY_HANDLERS: Dict[Tuple[str, IndexKind], QueryHandler] = {}


def register_query_handler(query: str, kind: IndexKind, handler: QueryHandler) -> None:
    """Register how ``query`` resolves the entry of references of ``kind``."""
    _QUERY_HANDLERS[(query, kind)] = handler


def list_query_handlers() -> List[Tuple[str, IndexKind]]:
    return list(_QUERY_HANDLERS.keys())


def transcription_model(model) -> TranscriptionModel:
    """Return the last built transcription of ``model``."""
    tm = model.transcription_model
    if tm is None:
        raise TranscriptionReferenceError(
            f"Model '{model.name}' has no transcription. Call build_transcription_model first."
        )
    return tm


def _resolve(query: str, ref: EntityRef) -> Tuple[TranscriptionData, TranscriptionEntry]:
    handler = _QUERY_HANDLERS.get((query, ref.kind))
    if handler is None:
        raise UnsupportedCombinationError(
            f"`transcription_{query}` not defined for {query}s with indices of type "
            f"{ref.kind.name}."
        )
    data = transcription_model(ref.model).data
    return data, handler(data, ref)


def _group_entry(group: str) -> QueryHandler:
    def handler(data: TranscriptionData, ref: EntityRef) -> TranscriptionEntry:
        entry = data.entries[group].get(ref)
        if entry is None:
            raise TranscriptionReferenceError(
                f"{_describe(ref)} not used in transcription."
            )
        return entry
    return handler


def _reduced_variable_entry(data: TranscriptionData, ref: EntityRef) -> TranscriptionEntry:
    internal_reduced_variable(ref)
    return data.reduced_entries[ref.index]


def _describe(ref: EntityRef) -> str:
    try:
        return f"'{ref.name}'"
    except TranscriptionReferenceError:
        return f"{ref.kind.name.lower()} {ref.index}"


def _register_builtin_handlers():
    variable_entry = _group_entry('variable')
    for kind in (IndexKind.INFINITE_VARIABLE, IndexKind.DERIVATIVE,
                 IndexKind.FINITE_VARIABLE, IndexKind.POINT_VARIABLE):
        register_query_handler('variable', kind, variable_entry)
    register_query_handler('variable', IndexKind.REDUCED_VARIABLE, _reduced_variable_entry)
    register_query_handler('measure', IndexKind.MEASURE, _group_entry('measure'))
    register_query_handler('constraint', IndexKind.CONSTRAINT, _group_entry('constraint'))
    register_query_handler('constraint', IndexKind.DERIVATIVE,
                           _group_entry('derivative_evaluation'))


_register_builtin_handlers()


# =============================================================================
# Queries
# =============================================================================

def _mappings(data: TranscriptionData, entry: TranscriptionEntry, label: SupportLabel):
    if entry.is_finite:
        return entry.mappings[0]
    return [entry.mappings[i] for i in data.positions(entry, label)]


def transcription_variable(ref: EntityRef, label: SupportLabel = PUBLIC):
    """
    Finite variable index (or list of indices) ``ref`` was transcribed into.

    Parameters
    ----------
    ref : EntityRef
        Infinite, finite, point, derivative or reduced variable.
    label : SupportLabel, default PUBLIC
        Keep only counterparts whose support values all carry a matching
        label. ``ALL`` keeps everything.

    Returns
    -------
    int or list of int
        A single index for finite and point variables.

    Raises
    ------
    TranscriptionReferenceError
        If ``ref`` was not used in the transcription.
    UnsupportedCombinationError
        If ``ref`` is not a variable.
    """
    data, entry = _resolve('variable', ref)
    return _mappings(data, entry, label)


def variable_supports(ref: EntityRef, label: SupportLabel = PUBLIC):
    """Supports of each counterpart of ``transcription_variable(ref, label)``."""
    data, entry = _resolve('variable', ref)
    if entry.is_finite:
        return ()
    return data.support_tuples(entry, label)


def transcription_measure(ref: EntityRef, label: SupportLabel = PUBLIC):
    """Expanded expression(s) of the measure ``ref``."""
    data, entry = _resolve('measure', ref)
    return _mappings(data, entry, label)


def measure_supports(ref: EntityRef, label: SupportLabel = PUBLIC):
    data, entry = _resolve('measure', ref)
    if entry.is_finite:
        return ()
    return data.support_tuples(entry, label)


def transcription_constraint(ref: EntityRef, label: SupportLabel = PUBLIC):
    """
    Finite constraint index (or list of indices) of ``ref``.

    For a derivative reference, the constraints of its evaluation equations.
    """
    data, entry = _resolve('constraint', ref)
    return _mappings(data, entry, label)


def constraint_supports(ref: EntityRef, label: SupportLabel = PUBLIC):
    data, entry = _resolve('constraint', ref)
    if entry.is_finite:
        return ()
    return data.support_tuples(entry, label)


def lookup_by_support(ref: EntityRef, values) -> Any:
    """
    The counterpart of ``ref`` transcribed at the support ``values``.

    ``values`` follow the entity's parameter order; a scalar is accepted for
    one-parameter entities.

    Raises
    ------
    TranscriptionReferenceError
        If nothing was transcribed at ``values``.
    """
    query = {IndexKind.MEASURE: 'measure', IndexKind.CONSTRAINT: 'constraint'}.get(
        ref.kind, 'variable')
    data, entry = _resolve(query, ref)
    key = tuple(np.atleast_1d(np.asarray(values, dtype=np.float64)).tolist())
    mapping = entry.get(key)
    if mapping is None:
        raise TranscriptionReferenceError(
            f"{_describe(ref)} has no transcription at support {key}."
        )
    return mapping


def parameter_supports(model) -> Tuple[np.ndarray, ...]:
    """Supports of every parameter used by the last build, in model order."""
    return tuple(s.copy() for s in transcription_model(model).data.supports)


def internal_reduced_variable(ref: EntityRef) -> ReducedVariable:
    """
    Resolve a reduced variable reference.

    Raises
    ------
    TranscriptionReferenceError
        If the reference is unknown or its infinite variable was deleted.
    """
    data = transcription_model(ref.model).data
    if ref.kind != IndexKind.REDUCED_VARIABLE or not 0 <= ref.index < len(data.reduced_variables):
        raise TranscriptionReferenceError(f"Invalid reduced variable reference {ref.index}.")
    rvar = data.reduced_variables[ref.index]
    if not ref.model.is_valid(rvar.infinite_variable_ref):
        raise TranscriptionReferenceError(
            "Invalid reduced variable reference, its infinite variable was likely deleted."
        )
    return rvar


def reduced_variable_refs(model) -> List[EntityRef]:
    """References of all reduced variables created by the last build."""
    data = transcription_model(model).data
    return [EntityRef(model, IndexKind.REDUCED_VARIABLE, i)
            for i in range(len(data.reduced_variables))]
