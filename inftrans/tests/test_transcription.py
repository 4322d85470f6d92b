"""Tests for the transcription engine and the transcription store queries."""

import itertools

import numpy as np
import pytest

from inftrans.errors import TranscriptionReferenceError, UnsupportedCombinationError
from inftrans.model import (
    IntervalDomain, DiscreteMeasureData, EntityRef, IndexKind, OrthogonalCollocation,
    uniform_measure_data, ALL, PUBLIC, USER_DEFINED,
)
from inftrans.supports.store import add_supports, delete_supports, set_supports
from inftrans.transcription import (
    TranscriptionData, TranscriptionEntry,
    build_transcription_model, transcription_model, transcription_variable,
    variable_supports, transcription_measure, measure_supports, transcription_constraint,
    constraint_supports, lookup_by_support, parameter_supports, internal_reduced_variable,
    reduced_variable_refs,
)
from inftrans.utils.config import set_verbose_naming

GRID = [0.0, 2.5, 5.0, 7.5, 10.0]


class TestVariables:
    """Test transcription of variables."""

    def test_infinite_variable(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param], lower_bound=0.0, start=1.0)
        tm = build_transcription_model(model)
        indices = transcription_variable(x)
        assert len(indices) == 5
        assert variable_supports(x) == GRID
        names = [tm.finite_model.variables[i].name for i in indices]
        assert names == [f"x(support: {i})" for i in range(1, 6)]
        assert all(tm.finite_model.variables[i].lower_bound == 0.0 for i in indices)

    def test_callable_start(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param], start=lambda t: 2 * t)
        tm = build_transcription_model(model)
        starts = [tm.finite_model.variables[i].start for i in transcription_variable(x)]
        assert starts == [2 * v for v in GRID]

    def test_index_alignment(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        build_transcription_model(model)
        for index, support in zip(transcription_variable(x), variable_supports(x)):
            assert lookup_by_support(x, support) == index

    def test_product_order(self, model, time_param):
        s = model.add_parameter(IntervalDomain(0, 1), name="s", supports=[0.0, 1.0])
        x = model.add_infinite_variable("x", [time_param, s])
        build_transcription_model(model)
        assert variable_supports(x) == list(itertools.product(GRID, [0.0, 1.0]))
        assert lookup_by_support(x, (5.0, 1.0)) == transcription_variable(x)[5]

    def test_finite_and_point_variables(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        z = model.add_finite_variable("z", lower_bound=-1.0)
        px = model.add_point_variable(x, [2.5])
        tm = build_transcription_model(model)
        zi = transcription_variable(z)
        assert isinstance(zi, int)
        assert tm.finite_model.variables[zi].name == "z"
        assert variable_supports(z) == ()
        assert transcription_variable(px) == transcription_variable(x)[1]

    def test_verbose_naming(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        tm = build_transcription_model(model, verbose_naming=True)
        assert tm.finite_model.variables[transcription_variable(x)[1]].name == "x(2.5)"
        set_verbose_naming(True)
        tm = build_transcription_model(model)
        assert tm.finite_model.variable_by_name("x(10.0)") is not None

    def test_default_supports_filled_in(self, model, unit_param):
        x = model.add_infinite_variable("x", [unit_param])
        build_transcription_model(model)
        assert len(transcription_variable(x)) == 10


class TestDeterminism:
    """Test reuse of finite counterparts."""

    def test_shared_variable_not_duplicated(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        model.add_constraint([(1.0, x)], ">=", 0.0, name="lb")
        model.add_constraint([(1.0, x)], "<=", 1.0, name="ub")
        tm = build_transcription_model(model)
        assert tm.finite_model.num_variables == 5
        assert tm.finite_model.num_constraints == 10

    def test_rebuild_is_identical(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        model.add_constraint([(1.0, x), (-1.0, time_param)], "==", 0.0)
        first = build_transcription_model(model)
        first_indices = transcription_variable(x)
        second = build_transcription_model(model)
        assert transcription_model(model) is second
        assert transcription_variable(x) == first_indices
        assert second.finite_model.num_variables == first.finite_model.num_variables
        assert second.finite_model.num_constraints == first.finite_model.num_constraints


class TestConstraints:

    def test_parameter_terms_folded_into_rhs(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        c = model.add_constraint([(1.0, x), (-1.0, time_param)], "==", 1.0, name="c")
        tm = build_transcription_model(model)
        indices = transcription_constraint(c)
        assert constraint_supports(c) == GRID
        rhs = [tm.finite_model.constraints[i].rhs for i in indices]
        assert rhs == [1.0 + v for v in GRID]
        assert tm.finite_model.constraints[indices[0]].name == "c(support: 1)"

    def test_restrictions(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        c = model.add_constraint([(1.0, x)], "<=", 0.0,
                                 restrictions={time_param: (2.0, 6.0)})
        build_transcription_model(model)
        assert constraint_supports(c) == [2.5, 5.0]

    def test_finite_constraint_single_counterpart(self, model):
        z = model.add_finite_variable("z")
        c = model.add_constraint([(2.0, z)], "<=", 4.0)
        tm = build_transcription_model(model)
        index = transcription_constraint(c)
        assert isinstance(index, int)
        assert tm.finite_model.constraints[index].expression.terms == {transcription_variable(z): 2.0}


class TestMeasures:

    def test_trapezoid_integral(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        m = model.add_measure(x, uniform_measure_data(time_param, num_supports=5))
        build_transcription_model(model)
        expr = transcription_measure(m)
        assert measure_supports(m) == ()
        xi = transcription_variable(x)
        assert expr.terms == {xi[0]: 1.25, xi[1]: 2.5, xi[2]: 2.5, xi[3]: 2.5, xi[4]: 1.25}

    def test_partial_integration_creates_reduced_variables(self, model, time_param):
        s = model.add_parameter(IntervalDomain(0, 1), name="s", supports=[0.0, 1.0])
        x = model.add_infinite_variable("x", [time_param, s])
        data = DiscreteMeasureData((s,), [0.5, 0.5], [0.0, 1.0], name="expect")
        m = model.add_measure(x, data)
        build_transcription_model(model)

        exprs = transcription_measure(m)
        assert len(exprs) == 5
        assert measure_supports(m) == GRID
        xi = transcription_variable(x)
        assert exprs[0].terms == {xi[0]: 0.5, xi[1]: 0.5}

        rrefs = reduced_variable_refs(model)
        assert len(rrefs) == 2
        rvar = internal_reduced_variable(rrefs[0])
        assert rvar.fixed_values == {s: 0.0}
        assert rvar.name == "x(t, 0.0)"
        assert transcription_variable(rrefs[0]) == xi[0::2]
        assert variable_supports(rrefs[1]) == GRID

    def test_measure_in_constraint(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        z = model.add_finite_variable("z")
        m = model.add_measure(x, DiscreteMeasureData((time_param,), [1.0, 1.0], [0.0, 10.0]))
        c = model.add_constraint([(1.0, m), (-1.0, z)], "==", 0.0)
        tm = build_transcription_model(model)
        con = tm.finite_model.constraints[transcription_constraint(c)]
        xi = transcription_variable(x)
        assert con.expression.terms == {xi[0]: 1.0, xi[4]: 1.0, transcription_variable(z): -1.0}


class TestDerivativeTranscription:

    def test_finite_difference_constraints(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        dx = model.add_derivative(x, time_param)
        tm = build_transcription_model(model)
        assert len(transcription_variable(dx)) == 5
        indices = transcription_constraint(dx)
        assert len(indices) == 4
        assert constraint_supports(dx) == GRID[1:]
        assert tm.finite_model.constraints[indices[0]].name == "dx/dt_eval(support: 1)"

    def test_collocation_hides_internal_supports(self, model):
        t = model.add_parameter(IntervalDomain(0, 2), name="t", supports=[0.0, 1.0, 2.0],
                                derivative_method=OrthogonalCollocation(3))
        x = model.add_infinite_variable("x", [t])
        dx = model.add_derivative(x, t)
        build_transcription_model(model)
        assert len(transcription_variable(x)) == 3
        assert len(transcription_variable(x, label=ALL)) == 5
        np.testing.assert_allclose(parameter_supports(model)[0], [0.0, 0.5, 1.0, 1.5, 2.0])
        assert len(transcription_constraint(dx, label=ALL)) == 4
        assert constraint_supports(dx) == [1.0, 2.0]


class TestReadiness:

    def test_dirty_bit(self, model, time_param):
        model.add_infinite_variable("x", [time_param])
        assert not model.transcription_ready
        build_transcription_model(model)
        assert model.transcription_ready
        add_supports(time_param, [1.0])
        assert not model.transcription_ready


class TestQueryErrors:

    def test_no_transcription(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        with pytest.raises(TranscriptionReferenceError, match="no transcription"):
            transcription_variable(x)

    def test_not_used_in_transcription(self, model, time_param):
        build_transcription_model(model)
        x = model.add_infinite_variable("x", [time_param])
        with pytest.raises(TranscriptionReferenceError, match="not used in transcription"):
            transcription_variable(x)

    def test_unsupported_index_kind(self, model, time_param):
        build_transcription_model(model)
        with pytest.raises(UnsupportedCombinationError, match="not defined for variables"):
            transcription_variable(time_param)

    def test_missing_support(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        build_transcription_model(model)
        with pytest.raises(TranscriptionReferenceError, match="no transcription at support"):
            lookup_by_support(x, 1.0)

    def test_invalid_reduced_reference(self, model, time_param):
        build_transcription_model(model)
        with pytest.raises(TranscriptionReferenceError, match="Invalid reduced variable"):
            internal_reduced_variable(EntityRef(model, IndexKind.REDUCED_VARIABLE, 3))


class TestRemovedSupports:
    """Test: artifacts defined at supports that were later removed."""

    def test_point_variable_after_label_delete(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        px = model.add_point_variable(x, [3.0])
        delete_supports(time_param, label=USER_DEFINED)
        assert 3.0 not in model.parameter(time_param).supports.keys()
        build_transcription_model(model)
        assert variable_supports(x) == [0.0, 2.5, 3.0, 5.0, 7.5, 10.0]
        assert transcription_variable(px) == transcription_variable(x)[2]
        assert lookup_by_support(x, 3.0) == transcription_variable(px)

    def test_measure_after_forced_set(self, model, time_param):
        x = model.add_infinite_variable("x", [time_param])
        m = model.add_measure(x, DiscreteMeasureData((time_param,), [1.0], [3.0]))
        set_supports(time_param, [0.0, 10.0], force=True)
        tm = build_transcription_model(model)
        assert variable_supports(x) == [0.0, 3.0, 10.0]
        xi = transcription_variable(x)
        assert transcription_measure(m).terms == {xi[1]: 1.0}
        assert tm.finite_model.num_variables == 3

    def test_unknown_support_never_matches_label(self, model, time_param):
        data = TranscriptionData(parameter_refs=(time_param,))
        data.support_labels[time_param] = {0.0: frozenset([USER_DEFINED])}
        entry = TranscriptionEntry((time_param,))
        entry.add((0.0,), 0)
        entry.add((3.0,), 1)
        assert data.positions(entry, PUBLIC) == [0]
        assert data.positions(entry, ALL) == [0, 1]
