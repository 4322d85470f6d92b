"""Shared fixtures for the inftrans test suite.

Provides fresh models with a single interval parameter and resets the
process-global state (preferences, random generator, warn-once flags)
between tests.
"""

import os

import pytest

from inftrans.model import InfiniteModel, IntervalDomain

# Environment overrides would change the defaults the tests rely on
for _name in ("INFTRANS_NUM_SUPPORTS", "INFTRANS_SIG_DIGITS",
              "INFTRANS_VERBOSE_NAMING", "INFTRANS_SEED"):
    os.environ.pop(_name, None)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset preferences, the shared generator and warn-once flags."""
    from inftrans.supports.generators import reset_univariate_mc_warning
    from inftrans.utils.config import reset_preferences
    from inftrans.utils.rng import seed_supports

    reset_preferences()
    seed_supports(1234)
    reset_univariate_mc_warning()
    yield
    reset_preferences()


@pytest.fixture
def model():
    """An empty InfiniteModel."""
    return InfiniteModel("test")


@pytest.fixture
def unit_param(model):
    """Parameter ``t`` over [0, 1] without supports."""
    return model.add_parameter(IntervalDomain(0.0, 1.0), name="t")


@pytest.fixture
def time_param(model):
    """Parameter ``t`` over [0, 10] with the grid [0, 2.5, 5, 7.5, 10]."""
    return model.add_parameter(IntervalDomain(0.0, 10.0), name="t", num_supports=5)
