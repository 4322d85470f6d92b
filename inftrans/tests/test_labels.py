"""Tests for the support label taxonomy."""

import pytest

from inftrans.model.labels import (
    LabelKind, SupportLabel, ALL, PUBLIC, INTERNAL, SAMPLE,
    USER_DEFINED, UNIFORM_GRID, MC_SAMPLE, WEIGHTED_SAMPLE, UNIQUE_MEASURE,
    COLLOCATION, NO_LABEL, generate_unique_label, label_matches, any_matches, all_match,
)


class TestSelectors:
    """Test selector semantics of label_matches."""

    def test_all_matches_everything(self):
        for label in (USER_DEFINED, MC_SAMPLE, COLLOCATION, generate_unique_label()):
            assert label_matches(label, ALL)

    def test_public_excludes_internal(self):
        assert label_matches(USER_DEFINED, PUBLIC)
        assert label_matches(UNIFORM_GRID, PUBLIC)
        assert not label_matches(COLLOCATION, PUBLIC)

    def test_internal_selects_internal_only(self):
        assert label_matches(COLLOCATION, INTERNAL)
        assert not label_matches(USER_DEFINED, INTERNAL)

    def test_sample_family(self):
        assert label_matches(MC_SAMPLE, SAMPLE)
        assert label_matches(WEIGHTED_SAMPLE, SAMPLE)
        assert not label_matches(UNIFORM_GRID, SAMPLE)

    def test_unique_measure_family(self):
        """Test: the id-less UNIQUE_MEASURE label selects every measure label."""
        a, b = generate_unique_label(), generate_unique_label()
        assert label_matches(a, UNIQUE_MEASURE)
        assert label_matches(b, UNIQUE_MEASURE)
        assert label_matches(a, a)
        assert not label_matches(a, b)

    def test_concrete_label_matches_itself_only(self):
        assert label_matches(UNIFORM_GRID, UNIFORM_GRID)
        assert not label_matches(MC_SAMPLE, UNIFORM_GRID)

    def test_any_and_all_helpers(self):
        labels = {USER_DEFINED, COLLOCATION}
        assert any_matches(labels, INTERNAL)
        assert not any_matches({USER_DEFINED}, INTERNAL)
        assert all_match({COLLOCATION}, frozenset({INTERNAL}))
        assert not all_match(labels, frozenset({INTERNAL}))


class TestSupportLabel:
    """Test the label value type."""

    def test_selectors_flagged(self):
        for label in (ALL, PUBLIC, INTERNAL, SAMPLE, UNIQUE_MEASURE):
            assert label.is_selector
        for label in (USER_DEFINED, COLLOCATION, NO_LABEL, generate_unique_label()):
            assert not label.is_selector

    def test_public_internal_partition(self):
        assert USER_DEFINED.is_public
        assert not COLLOCATION.is_public

    def test_unique_labels_are_fresh(self):
        labels = {generate_unique_label() for _ in range(5)}
        assert len(labels) == 5
        assert all(l.kind == LabelKind.UNIQUE_MEASURE for l in labels)

    def test_labels_are_values(self):
        assert SupportLabel(LabelKind.UNIFORM_GRID) == UNIFORM_GRID
        assert hash(SupportLabel(LabelKind.UNIFORM_GRID)) == hash(UNIFORM_GRID)
        with pytest.raises(AttributeError):
            UNIFORM_GRID.kind = LabelKind.MC_SAMPLE

    def test_str(self):
        assert str(UNIFORM_GRID) == "UniformGrid"
        label = generate_unique_label()
        assert str(label) == f"UniqueMeasure[{label.measure_id}]"
