"""Tests for runtime configuration, rounding and the shared random generator."""

import numpy as np
import pytest

from inftrans.utils.config import (
    get_default_num_supports, set_default_num_supports, get_default_sig_digits,
    set_default_sig_digits, is_verbose_naming_enabled, set_verbose_naming,
)
from inftrans.utils.constants import DEFAULT_NUM_SUPPORTS, DEFAULT_SIG_DIGITS
from inftrans.utils.rng import seed_supports, get_rng, resolve_rng
from inftrans.utils.rounding import round_sig, round_supports


class TestPreferences:
    """Test environment > preference > constant priority."""

    def test_constants_by_default(self):
        assert get_default_num_supports() == DEFAULT_NUM_SUPPORTS == 10
        assert get_default_sig_digits() == DEFAULT_SIG_DIGITS == 12
        assert not is_verbose_naming_enabled()

    def test_preference_overrides_constant(self):
        set_default_num_supports(25)
        set_default_sig_digits(6)
        set_verbose_naming(True)
        assert get_default_num_supports() == 25
        assert get_default_sig_digits() == 6
        assert is_verbose_naming_enabled()
        set_default_num_supports(None)
        assert get_default_num_supports() == DEFAULT_NUM_SUPPORTS

    def test_env_var_overrides_preference(self, monkeypatch):
        set_default_num_supports(25)
        monkeypatch.setenv("INFTRANS_NUM_SUPPORTS", "7")
        assert get_default_num_supports() == 7
        monkeypatch.setenv("INFTRANS_VERBOSE_NAMING", "yes")
        assert is_verbose_naming_enabled()

    def test_invalid_env_var_ignored(self, monkeypatch):
        monkeypatch.setenv("INFTRANS_SIG_DIGITS", "many")
        assert get_default_sig_digits() == DEFAULT_SIG_DIGITS
        monkeypatch.setenv("INFTRANS_SIG_DIGITS", "0")
        assert get_default_sig_digits() == DEFAULT_SIG_DIGITS

    def test_invalid_preference_rejected(self):
        with pytest.raises(ValueError, match="positive integer"):
            set_default_num_supports(0)
        with pytest.raises(ValueError):
            set_default_sig_digits(2.5)


class TestRounding:

    def test_round_sig(self):
        assert round_sig(0.123456789, 3) == 0.123
        assert round_sig(123456.0, 2) == 120000.0
        assert round_sig(0.0, 3) == 0.0
        assert np.isinf(round_sig(np.inf, 3))

    def test_round_supports_keeps_shape(self):
        out = round_supports([[1.23456, 2.0], [3.0, 4.56789]], 3)
        np.testing.assert_array_equal(out, [[1.23, 2.0], [3.0, 4.57]])
        assert round_supports(1.0, 3).shape == (1,)

    def test_round_supports_transposed_input(self):
        """Test: non C-contiguous input is rounded, not left uninitialised."""
        raw = np.array([[1.23456, 2.34567, 3.45678], [10.5555, 20.4444, 30.3333]])
        out = round_supports(raw.T, 3)
        assert out.shape == (3, 2)
        np.testing.assert_array_equal(out, [[1.23, 10.6], [2.35, 20.4], [3.46, 30.3]])

    def test_invalid_digits(self):
        with pytest.raises(ValueError):
            round_supports([1.0], 0)


class TestRandomState:

    def test_seed_reproducible(self):
        seed_supports(42)
        a = get_rng().uniform(size=3)
        seed_supports(42)
        b = get_rng().uniform(size=3)
        np.testing.assert_array_equal(a, b)

    def test_resolve(self):
        gen = np.random.default_rng(0)
        assert resolve_rng(gen) is gen
        assert resolve_rng(None) is get_rng()
        np.testing.assert_array_equal(resolve_rng(5).uniform(size=2),
                                      np.random.default_rng(5).uniform(size=2))
