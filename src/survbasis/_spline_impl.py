"""Kernels for the spline family of bases.

Every kernel writes its results into `out` and uses `wk` as scratch memory.
Inputs are assumed to be correct (no validation is performed here beyond the
derivative-order guards); the public classes in :mod:`survbasis.spline_basis`
validate arguments before calling them.

The B-spline recursion follows Carl de Boor, "A Practical Guide to Splines",
as used by R's ``splines`` package: the span containing ``x`` is located
without assuming any ordering of the evaluation points, values come from the
triangular Cox-de Boor scheme on knot-distance tables and derivatives from the
single-function algorithm applied to unit impulses.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt

from ._basis_utils import _DualPathKernel, jitable, nb_jit
from .exceptions import UnsupportedOrderError

logger = logging.getLogger(__name__)

# Highest derivative order available outside the boundary knots.
MAX_EXTRAPOLATION_ORDER = 3


@nb_jit(nopython=True, cache=True, parallel=False)
def _has_no_zero_denominator_impl(knots: npt.NDArray[np.float64], order: int) -> bool:
    """Check whether the value recursion can ever divide by zero.

    Scans every span that the recursion may visit and checks the knot
    differences used as denominators.

    Args:
        knots (npt.NDArray[np.float64]): Spline knot vector.
        order (int): Spline order.

    Returns:
        bool: True if no denominator can be zero, so the unguarded recursion
            is safe.
    """
    n_knots = knots.shape[0]
    ordm1 = order - 1
    end_span = n_knots - ordm1 if n_knots > ordm1 else order
    for span in range(order, end_span):
        for j in range(1, order):
            for r in range(j):
                if knots[span + r] - knots[span - j + r] == 0.0:
                    return False
    return True


@jitable
def _locate_knot_span(knots: Any, num_coef: int, x: Any) -> tuple[int, bool]:
    """Find the index of the first knot greater than `x`.

    Returns:
        tuple[int, bool]: The span index and whether `x` is the right boundary
            (the last knot that still supports a basis function), in which
            case the span is moved back onto it.
    """
    span = 0
    at_boundary = False
    for i in range(knots.shape[0]):
        if knots[i] >= x:
            span = i
        if knots[i] > x:
            break
    if span > num_coef and x == knots[num_coef]:
        span = num_coef
        at_boundary = True
    return span, at_boundary


@jitable
def _fill_knot_distances(
    knots: Any, span: int, x: Any, num_diff: int, left: Any, right: Any
) -> None:
    for i in range(num_diff):
        right[i] = knots[span + i] - x
        left[i] = x - knots[span - i - 1]


@jitable
def _spline_values_unguarded(order: int, left: Any, right: Any, values: Any) -> None:
    values[0] = 1.0
    for j in range(1, order):
        saved = 0.0
        for r in range(j):
            den = right[r] + left[j - 1 - r]
            term = values[r] / den
            values[r] = saved + right[r] * term
            saved = left[j - 1 - r] * term
        values[j] = saved


@jitable
def _spline_values_guarded(order: int, left: Any, right: Any, values: Any) -> None:
    values[0] = 1.0
    for j in range(1, order):
        saved = 0.0
        for r in range(j):
            den = right[r] + left[j - 1 - r]
            if den != 0.0:
                term = values[r] / den
                values[r] = saved + right[r] * term
                saved = left[j - 1 - r] * term
            else:
                if r != 0 or right[r] != 0.0:
                    values[r] = saved
                saved = 0.0
        values[j] = saved


@jitable
def _spline_derivative_single(  # noqa: PLR0913
    knots: Any,
    span: int,
    at_boundary: bool,
    order: int,
    x: Any,
    ders: int,
    coefs: Any,
    left: Any,
    right: Any,
) -> Any:
    """Derivative of the single B-spline whose coefficients are held in `coefs`.

    `coefs` holds a unit impulse on entry and is overwritten. Zero knot spans
    contribute zero.
    """
    outer = order - 1
    # The derivative of order `order - 1` is discontinuous at the right
    # boundary: its value there is arbitrary.
    if at_boundary and ders == outer:
        return 0.0

    for _ in range(ders):
        for apt in range(outer):
            lpt = span - outer + apt
            den = knots[lpt + outer] - knots[lpt]
            if den != 0.0:
                coefs[apt] = outer * (coefs[apt + 1] - coefs[apt]) / den
            else:
                coefs[apt] = 0.0
        outer -= 1

    _fill_knot_distances(knots, span, x, outer, left, right)
    for level in range(outer - 1, -1, -1):
        for apt in range(level + 1):
            lpt = level - apt
            den = right[apt] + left[lpt]
            if den != 0.0:
                coefs[apt] = (coefs[apt + 1] * left[lpt] + coefs[apt] * right[apt]) / den
            else:
                coefs[apt] = 0.0
    return coefs[0]


@jitable
def _eval_spline(  # noqa: PLR0913
    knots: Any,
    order: int,
    no_div_zero: bool,
    x: Any,
    ders: int,
    out: Any,
    wk: Any,
) -> None:
    """Evaluate all B-splines (or their `ders`-th derivative) at `x`.

    Args:
        knots: Knot vector.
        order (int): Spline order.
        no_div_zero (bool): Whether the unguarded value recursion is safe.
        x: Evaluation point.
        ders (int): Derivative order, in ``[0, order)``.
        out: Output buffer with ``len(knots) - order`` entries.
        wk: Scratch buffer with at least ``2 * (order - 1) + 2 * order`` entries.
    """
    if ders < 0 or ders >= order:
        raise UnsupportedOrderError("spline derivative order must be in [0, order)")

    num_coef = knots.shape[0] - order
    ordm1 = order - 1
    left = wk[:ordm1]
    right = wk[ordm1 : 2 * ordm1]
    coefs = wk[2 * ordm1 : 2 * ordm1 + order]
    values = wk[2 * ordm1 + order : 2 * ordm1 + 2 * order]

    for i in range(num_coef):
        out[i] = 0.0

    span, at_boundary = _locate_knot_span(knots, num_coef, x)
    if span < order or span > num_coef:
        # Outside of the knots supporting any basis function.
        return

    offset = span - order
    if ders > 0:
        for i in range(order):
            for j in range(order):
                coefs[j] = 0.0
            coefs[i] = 1.0
            out[i + offset] = _spline_derivative_single(
                knots, span, at_boundary, order, x, ders, coefs, left, right
            )
        return

    _fill_knot_distances(knots, span, x, ordm1, left, right)
    if no_div_zero:
        _spline_values_unguarded(order, left, right, values)
    else:
        _spline_values_guarded(order, left, right, values)
    for i in range(order):
        out[i + offset] = values[i]


@jitable
def _eval_bspline(  # noqa: PLR0913
    knots: Any,
    order: int,
    no_div_zero: bool,
    lower: Any,
    upper: Any,
    lower_pivot: Any,
    upper_pivot: Any,
    intercept: bool,
    x: Any,
    ders: int,
    out: Any,
    wk: Any,
) -> None:
    """Evaluate a B-spline basis extended beyond its boundary knots.

    Outside ``[lower, upper]`` the basis is the Taylor expansion, up to the
    third derivative, of the spline at a pivot a quarter of the boundary knot
    interval inside the boundary.
    """
    num_coef = knots.shape[0] - order
    skip = 0 if intercept else 1
    num_out = num_coef - skip
    terms = wk[:num_coef]
    spline_wk = wk[num_coef:]

    if x < lower or x > upper:
        if ders < 0 or ders > MAX_EXTRAPOLATION_ORDER:
            raise UnsupportedOrderError("derivative order beyond the boundary knots must be <= 3")
        pivot = lower_pivot if x < lower else upper_pivot
        delta = x - pivot
        for i in range(num_out):
            out[i] = 0.0
        factor = 1.0
        for d in range(ders, min(MAX_EXTRAPOLATION_ORDER + 1, order)):
            _eval_spline(knots, order, no_div_zero, pivot, d, terms, spline_wk)
            for i in range(num_out):
                out[i] += factor * terms[i + skip]
            factor = factor * delta / (d - ders + 1)
        return

    if intercept:
        _eval_spline(knots, order, no_div_zero, x, ders, out, spline_wk)
    else:
        _eval_spline(knots, order, no_div_zero, x, ders, terms, spline_wk)
        for i in range(num_out):
            out[i] = terms[i + 1]


@jitable
def _eval_natural_spline(  # noqa: PLR0913
    knots: Any,
    order: int,
    no_div_zero: bool,
    lower: Any,
    upper: Any,
    lower_pivot: Any,
    upper_pivot: Any,
    null_space: Any,
    intercept: bool,
    tangent_lower: Any,
    slope_lower: Any,
    tangent_upper: Any,
    slope_upper: Any,
    x: Any,
    ders: int,
    out: Any,
    wk: Any,
) -> None:
    """Evaluate a natural spline basis.

    Inside the boundary knots the B-spline basis (with intercept) is projected
    onto the null space of the boundary second-derivative constraint, dropping
    the two constrained rows. Outside, the basis is linear.
    """
    if ders < 0:
        raise UnsupportedOrderError("natural splines do not implement antiderivatives")

    num_out = null_space.shape[0] - 2

    if x < lower or x > upper:
        if x < lower:
            tangent = tangent_lower
            slope = slope_lower
            edge = lower
        else:
            tangent = tangent_upper
            slope = slope_upper
            edge = upper
        for i in range(num_out):
            if ders == 0:
                out[i] = tangent[i] + slope[i] * (x - edge)
            elif ders == 1:
                out[i] = slope[i]
            else:
                out[i] = 0.0
        return

    num_coef = knots.shape[0] - order
    spline_out = wk[:num_coef]
    _eval_bspline(
        knots,
        order,
        no_div_zero,
        lower,
        upper,
        lower_pivot,
        upper_pivot,
        True,
        x,
        ders,
        spline_out,
        wk[num_coef:],
    )

    skip = 0 if intercept else 1
    for r in range(num_out):
        acc = 0.0
        for c in range(null_space.shape[1]):
            acc += null_space[r + 2, c] * spline_out[c + skip]
        out[r] = acc


@jitable
def _lower_bound(values: Any, end: int, x: Any) -> int:
    """Index of the first entry of ``values[:end]`` not less than `x` (binary search)."""
    lo = 0
    hi = end
    while lo < hi:
        mid = (lo + hi) // 2
        if values[mid] < x:
            lo = mid + 1
        else:
            hi = mid
    return lo


@jitable
def _eval_ispline(  # noqa: PLR0913
    knots: Any,
    spline_order: int,
    no_div_zero: bool,
    lower: Any,
    upper: Any,
    lower_pivot: Any,
    upper_pivot: Any,
    has_interior: bool,
    intercept: bool,
    x: Any,
    ders: int,
    out: Any,
    wk: Any,
) -> None:
    """Evaluate an I-spline basis as running sums of B-splines of one order higher."""
    if ders < 0:
        raise UnsupportedOrderError("I-splines do not implement antiderivatives")

    order = spline_order - 1
    num_coef = knots.shape[0] - spline_order
    skip = 0 if intercept else 1
    num_out = num_coef - skip

    if x < 0.0:
        for i in range(num_out):
            out[i] = 0.0
        return
    if x > 1.0:
        fill = 0.0 if ders > 0 else 1.0
        for i in range(num_out):
            out[i] = fill
        return

    b = wk[:num_coef]
    _eval_bspline(
        knots,
        spline_order,
        no_div_zero,
        lower,
        upper,
        lower_pivot,
        upper_pivot,
        True,
        x,
        ders,
        b,
        wk[num_coef:],
    )

    if has_interior:
        js = _lower_bound(knots, knots.shape[0] - 1, x)
    else:
        js = order + 1

    for j in range(num_coef - 1, -1, -1):
        if j > js:
            b[j] = 0.0
        elif j != num_coef - 1:
            b[j] += b[j + 1]
    if ders == 0:
        for j in range(num_coef - 2, -1, -1):
            if j + order + 1 < js:
                b[j] = 1.0

    for i in range(num_out):
        out[i] = b[i + skip]


@jitable
def _eval_mspline(  # noqa: PLR0913
    knots: Any,
    order: int,
    no_div_zero: bool,
    lower: Any,
    upper: Any,
    lower_pivot: Any,
    upper_pivot: Any,
    intercept: bool,
    x: Any,
    ders: int,
    out: Any,
    wk: Any,
) -> None:
    """Evaluate an M-spline basis: B-splines scaled to integrate to one."""
    if ders < 0:
        raise UnsupportedOrderError("M-splines do not implement antiderivatives")

    num_coef = knots.shape[0] - order
    b = wk[:num_coef]
    _eval_bspline(
        knots,
        order,
        no_div_zero,
        lower,
        upper,
        lower_pivot,
        upper_pivot,
        True,
        x,
        ders,
        b,
        wk[num_coef:],
    )

    for j in range(num_coef):
        width = knots[j + order] - knots[j]
        scale = order / width if width > 0.0 else 0.0
        b[j] = b[j] * scale

    skip = 0 if intercept else 1
    for i in range(num_coef - skip):
        out[i] = b[i + skip]


_spline_kernel = _DualPathKernel(_eval_spline)
_bspline_kernel = _DualPathKernel(_eval_bspline)
_natural_spline_kernel = _DualPathKernel(_eval_natural_spline)
_ispline_kernel = _DualPathKernel(_eval_ispline)
_mspline_kernel = _DualPathKernel(_eval_mspline)


def _has_no_zero_denominator(knots: npt.NDArray[np.float64], order: int) -> bool:
    """Select the value recursion for a knot vector (True: unguarded recursion is safe)."""
    no_div_zero = bool(_has_no_zero_denominator_impl(knots, order))
    logger.debug(
        "Knot vector of size %d, order %d: %s recursion selected",
        knots.size,
        order,
        "unguarded" if no_div_zero else "guarded",
    )
    return no_div_zero


def _warmup_numba_functions() -> None:
    """Precompile the spline kernel with float64 signatures for faster first call."""
    knots_dummy = np.array([0.0, 0.0, 0.0, 0.0, 1.0, 1.0, 1.0, 1.0], dtype=np.float64)
    knots_dummy.flags.writeable = False
    order_dummy = 4
    out_dummy = np.empty(knots_dummy.size - order_dummy, dtype=np.float64)
    wk_dummy = np.empty(2 * (order_dummy - 1) + 2 * order_dummy, dtype=np.float64)

    _has_no_zero_denominator_impl(knots_dummy, order_dummy)
    _spline_kernel(True, knots_dummy, order_dummy, True, 0.5, 0, out_dummy, wk_dummy)


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "MAX_EXTRAPOLATION_ORDER",
    "_bspline_kernel",
    "_eval_bspline",
    "_eval_ispline",
    "_eval_mspline",
    "_eval_natural_spline",
    "_eval_spline",
    "_has_no_zero_denominator",
    "_ispline_kernel",
    "_lower_bound",
    "_mspline_kernel",
    "_natural_spline_kernel",
    "_spline_kernel",
    "_warmup_numba_functions",
]
