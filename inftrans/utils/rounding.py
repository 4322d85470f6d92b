"""Significant-digit rounding of support values."""

from typing import Union

import numpy as np


def round_sig(value: float, sig_digits: int) -> float:
    """Round a scalar to ``sig_digits`` significant digits.

    Formatting through scientific notation gives correctly rounded decimal
    digits regardless of magnitude, which a multiply/round/divide scheme
    does not for very large or very small values.

    Examples
    --------
    >>> round_sig(0.123456789, 3)
    0.123
    >>> round_sig(2.5, 6)
    2.5
    """
    value = float(value)
    if value == 0.0 or not np.isfinite(value):
        return value
    return float(f"{value:.{sig_digits - 1}e}")


def round_supports(values: Union[float, np.ndarray, list], sig_digits: int) -> np.ndarray:
    """Round every element of ``values`` to ``sig_digits`` significant digits.

    Parameters
    ----------
    values : float or array_like
        Raw support values (any shape).
    sig_digits : int
        Number of significant digits to keep.

    Returns
    -------
    np.ndarray
        Float64 array of the same shape (0-d input becomes shape ``(1,)``).
    """
    if sig_digits < 1:
        raise ValueError(f"sig_digits must be positive, got {sig_digits}")
    arr = np.atleast_1d(np.asarray(values, dtype=np.float64))
    # C order so that the flat view below aliases the result
    out = np.empty(arr.shape, dtype=np.float64)
    flat_out = out.reshape(-1)
    for i, v in enumerate(arr.ravel()):
        flat_out[i] = round_sig(v, sig_digits)
    return out
