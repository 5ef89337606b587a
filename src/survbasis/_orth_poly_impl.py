"""Kernels and construction helpers for orthogonal polynomial bases.

The orthogonal polynomials are those of R's ``poly()``: monic polynomials
generated by a three-term recurrence with coefficients `alpha` and `norm2`,
each scaled to unit norm. Derivatives and antiderivatives are obtained from
the raw powers through a lower-triangular change of basis, see
https://stats.stackexchange.com/a/472289/81865.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
import numpy.typing as npt

from ._basis_utils import _DualPathKernel, jitable

logger = logging.getLogger(__name__)


@jitable
def _eval_raw_poly(  # noqa: PLR0913
    num_basis: int,
    first_power: int,
    lower_limit: float,
    x: Any,
    ders: int,
    out: Any,
) -> None:
    """Evaluate the powers ``x**p``, ``p = first_power, ..., first_power + num_basis - 1``.

    Positive `ders` gives derivatives (power rule) and negative `ders` the
    `-ders`-fold antiderivative ``p! / (p - ders)! * t**(p - ders)`` taken
    between `lower_limit` and `x`.
    """
    if ders == 0:
        val = 1.0
        for _ in range(first_power):
            val = val * x
        for c in range(num_basis):
            out[c] = val
            val = val * x

    elif ders > 0:
        val = 1.0
        for c in range(num_basis):
            power = c + first_power
            if power < ders:
                out[c] = 0.0
                continue
            mult = 1.0
            for factor in range(power - ders + 1, power + 1):
                mult *= factor
            out[c] = mult * val
            val = val * x

    else:
        n_int = -ders
        upper_val = 1.0
        lower_val = 1.0
        for _ in range(first_power + n_int):
            upper_val = upper_val * x
            lower_val = lower_val * lower_limit
        coef = 1.0
        for factor in range(first_power + 1, first_power + n_int + 1):
            coef /= factor
        for c in range(num_basis):
            power = c + first_power
            out[c] = coef * (upper_val - lower_val)
            upper_val = upper_val * x
            lower_val = lower_val * lower_limit
            coef = coef * (power + 1) / (power + n_int + 1)


@jitable
def _eval_orth_poly(  # noqa: PLR0913
    raw: bool,
    alpha: Any,
    norm2: Any,
    sqrt_norm2: Any,
    orth_map: Any,
    intercept: bool,
    num_basis: int,
    lower_limit: float,
    x: Any,
    ders: int,
    out: Any,
    wk: Any,
) -> None:
    """Evaluate a raw or orthogonal polynomial basis (or its derivatives) at `x`.

    Args:
        raw (bool): Whether the basis holds plain powers of `x`.
        alpha: Recurrence coefficients (length ``degree``).
        norm2: Squared norms (length ``degree + 2``).
        sqrt_norm2: Square roots of `norm2`.
        orth_map: Lower-triangular ``(degree + 1, degree + 1)`` matrix mapping
            the powers ``1, x, ..., x**degree`` to the orthogonal polynomials.
        intercept (bool): Whether the constant column is included.
        num_basis (int): Number of output columns.
        lower_limit (float): Lower limit for antiderivatives.
        x: Evaluation point.
        ders (int): Derivative order (negative for antiderivatives).
        out: Output buffer with `num_basis` entries.
        wk: Scratch buffer with ``degree + 1`` entries (unused for raw bases).
    """
    shift = 1 if intercept else 0
    if raw:
        _eval_raw_poly(num_basis, 1 - shift, lower_limit, x, ders, out)
        return

    degree = alpha.shape[0]
    if ders == 0:
        if intercept:
            out[0] = 1.0
        if degree > 0:
            out[shift] = x - alpha[0]
            old = 1.0
            for c in range(1, degree):
                ratio = norm2[c + 1] / norm2[c]
                out[c + shift] = (x - alpha[c]) * out[c - 1 + shift] - ratio * old
                old = out[c - 1 + shift]
            for j in range(1, degree + 1):
                out[j - 1 + shift] = out[j - 1 + shift] / sqrt_norm2[j + 1]
        return

    _eval_raw_poly(degree + 1, 0, lower_limit, x, ders, wk)
    for i in range(num_basis):
        row = i + 1 - shift
        acc = 0.0
        for j in range(row + 1):
            acc += orth_map[row, j] * wk[j]
        out[i] = acc


_orth_poly_kernel = _DualPathKernel(_eval_orth_poly)


def _compute_orth_map(
    alpha: npt.NDArray[np.float64], norm2: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    """Compute the coefficients of the normalized orthogonal polynomials in the power basis.

    Args:
        alpha (npt.NDArray[np.float64]): Recurrence coefficients (length ``degree``).
        norm2 (npt.NDArray[np.float64]): Squared norms (length ``degree + 2``).

    Returns:
        npt.NDArray[np.float64]: Lower-triangular matrix ``C`` of shape
            ``(degree + 1, degree + 1)`` such that the ``k``-th basis polynomial
            is ``sum_j C[k, j] * x**j``. Row 0 is the unnormalized constant.
    """
    degree = alpha.size
    coefs = np.zeros((degree + 1, degree + 1), dtype=np.float64)
    coefs[0, 0] = 1.0
    if degree > 0:
        coefs[1, 0] = -alpha[0]
        coefs[1, 1] = 1.0
    for c in range(1, degree):
        coefs[c + 1, 1:] = coefs[c, :-1]
        coefs[c + 1] -= alpha[c] * coefs[c] + norm2[c + 1] / norm2[c] * coefs[c - 1]
    coefs[1:] /= np.sqrt(norm2[2:])[:, np.newaxis]
    return coefs


def _compute_recurrence_from_data(
    x: npt.ArrayLike, degree: int
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Compute recurrence coefficients of polynomials orthonormal over the points `x`.

    This mirrors R's ``poly(x, degree)``: the centred Vandermonde matrix is
    orthogonalized by a QR decomposition.

    Args:
        x (npt.ArrayLike): Data points.
        degree (int): Polynomial degree. Must be positive and smaller than the
            number of unique points.

    Returns:
        tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
            Tuple of (alpha, norm2, design) where design is the
            ``(len(x), degree)`` matrix of the orthonormal polynomials
            (without constant) evaluated at `x`.

    Raises:
        ValueError: If `degree` is not positive or `x` has too few unique values.
    """
    pts = np.asarray(x, dtype=np.float64).reshape(-1)
    if degree < 1:
        raise ValueError("degree must be positive")
    if np.unique(pts).size <= degree:
        raise ValueError("degree must be less than the number of unique points")

    centre = pts.mean()
    centred = pts - centre
    vander = np.vander(centred, degree + 1, increasing=True)
    q, r = np.linalg.qr(vander)
    z = q * np.diag(r)

    column_norm2 = np.sum(z**2, axis=0)
    alpha = (np.sum(centred[:, np.newaxis] * z**2, axis=0) / column_norm2 + centre)[:degree]
    norm2 = np.concatenate(([1.0], column_norm2))
    design = z[:, 1:] / np.sqrt(column_norm2[1:])

    logger.debug("Orthogonal polynomial of degree %d fitted to %d points", degree, pts.size)
    return alpha, norm2, design


__all__ = [
    "_compute_orth_map",
    "_compute_recurrence_from_data",
    "_eval_orth_poly",
    "_eval_raw_poly",
    "_orth_poly_kernel",
]
