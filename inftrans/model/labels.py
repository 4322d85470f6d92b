"""
Support Labels
==============

Every support stored on a parameter carries a set of labels saying why the
point exists (given by the user, generated on a uniform grid, sampled, added
by a measure, derived for collocation, ...).

Key concepts:
- LabelKind: Enum tag for the label family
- SupportLabel: Immutable (kind, measure_id, internal) value
- Selectors: ALL / PUBLIC / INTERNAL / SAMPLE are used to *query* supports
  and are never stored on a support
- Public labels are reported by default; internal labels are hidden unless
  asked for explicitly

Usage:
    from inftrans.model.labels import PUBLIC, USER_DEFINED, label_matches

    label_matches(USER_DEFINED, PUBLIC)    # True
    label_matches(COLLOCATION, PUBLIC)     # False

    mlabel = generate_unique_label()       # fresh per-measure label
"""

import itertools
from dataclasses import dataclass
from enum import Enum, auto
from typing import FrozenSet, Iterable, Optional


class LabelKind(Enum):
    """
    Label families.

    Selector kinds (ALL, PUBLIC, INTERNAL, SAMPLE) only appear in queries.
    NO_LABEL is the placeholder label of the "no generative supports" variant.
    """
    # Selectors
    ALL = auto()
    PUBLIC = auto()
    INTERNAL = auto()
    SAMPLE = auto()
    # Public
    USER_DEFINED = auto()
    UNIFORM_GRID = auto()
    MC_SAMPLE = auto()
    WEIGHTED_SAMPLE = auto()
    MIXTURE = auto()
    MEASURE_BOUND = auto()
    UNIQUE_MEASURE = auto()
    # Internal
    COLLOCATION = auto()
    # Placeholder
    NO_LABEL = auto()


_SELECTOR_KINDS = frozenset({
    LabelKind.ALL, LabelKind.PUBLIC, LabelKind.INTERNAL, LabelKind.SAMPLE,
})

_SAMPLE_KINDS = frozenset({LabelKind.MC_SAMPLE, LabelKind.WEIGHTED_SAMPLE})


@dataclass(frozen=True)
class SupportLabel:
    """
    A support label.

    Attributes
    ----------
    kind : LabelKind
        Label family.
    measure_id : int or None
        Owning measure identifier (UNIQUE_MEASURE labels only). A
        UNIQUE_MEASURE label without an id selects every measure label.
    internal : bool
        True if supports carrying only internal labels are hidden by default.
    """
    kind: LabelKind
    measure_id: Optional[int] = None
    internal: bool = False

    @property
    def is_selector(self) -> bool:
        """True for labels that select supports but cannot be stored."""
        if self.kind in _SELECTOR_KINDS:
            return True
        return self.kind == LabelKind.UNIQUE_MEASURE and self.measure_id is None

    @property
    def is_public(self) -> bool:
        return not self.internal

    def __str__(self) -> str:
        if self.kind == LabelKind.UNIQUE_MEASURE and self.measure_id is not None:
            return f"UniqueMeasure[{self.measure_id}]"
        return ''.join(w.capitalize() for w in self.kind.name.split('_'))


# =============================================================================
# Predefined labels
# =============================================================================

ALL = SupportLabel(LabelKind.ALL)
PUBLIC = SupportLabel(LabelKind.PUBLIC)
INTERNAL = SupportLabel(LabelKind.INTERNAL, internal=True)
SAMPLE = SupportLabel(LabelKind.SAMPLE)

USER_DEFINED = SupportLabel(LabelKind.USER_DEFINED)
UNIFORM_GRID = SupportLabel(LabelKind.UNIFORM_GRID)
MC_SAMPLE = SupportLabel(LabelKind.MC_SAMPLE)
WEIGHTED_SAMPLE = SupportLabel(LabelKind.WEIGHTED_SAMPLE)
MIXTURE = SupportLabel(LabelKind.MIXTURE)
MEASURE_BOUND = SupportLabel(LabelKind.MEASURE_BOUND)
UNIQUE_MEASURE = SupportLabel(LabelKind.UNIQUE_MEASURE)

COLLOCATION = SupportLabel(LabelKind.COLLOCATION, internal=True)

NO_LABEL = SupportLabel(LabelKind.NO_LABEL, internal=True)

_measure_ids = itertools.count(1)


def generate_unique_label() -> SupportLabel:
    """Allocate a fresh label for the supports contributed by one measure."""
    return SupportLabel(LabelKind.UNIQUE_MEASURE, measure_id=next(_measure_ids))


def label_matches(label: SupportLabel, selector: SupportLabel) -> bool:
    """
    Return True if ``label`` is covered by ``selector``.

    Parameters
    ----------
    label : SupportLabel
        A concrete label stored on a support.
    selector : SupportLabel
        Either a selector (ALL, PUBLIC, INTERNAL, SAMPLE, UNIQUE_MEASURE
        without id) or a concrete label, which matches only itself.
    """
    kind = selector.kind
    if kind == LabelKind.ALL:
        return True
    if kind == LabelKind.PUBLIC:
        return not label.internal
    if kind == LabelKind.INTERNAL:
        return label.internal
    if kind == LabelKind.SAMPLE:
        return label.kind in _SAMPLE_KINDS
    if kind == LabelKind.UNIQUE_MEASURE and selector.measure_id is None:
        return label.kind == LabelKind.UNIQUE_MEASURE
    return label == selector


def any_matches(labels: Iterable[SupportLabel], selector: SupportLabel) -> bool:
    """True if at least one of ``labels`` is covered by ``selector``."""
    return any(label_matches(l, selector) for l in labels)


def all_match(labels: Iterable[SupportLabel], selectors: FrozenSet[SupportLabel]) -> bool:
    """True if every label is covered by at least one of ``selectors``."""
    return all(any(label_matches(l, s) for s in selectors) for l in labels)
