"""Spline bases: B-splines, extrapolated B-splines, natural splines, I-splines and M-splines.

:class:`SplineBasis` evaluates B-splines on an arbitrary knot vector. The other
classes are built on boundary and interior knots and compose a
:class:`BSplineBasis`, which extends the B-splines beyond the boundary knots.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
import numpy.typing as npt
import scipy.linalg

from ._basis_utils import _as_generic, _as_readonly
from ._spline_impl import (
    MAX_EXTRAPOLATION_ORDER,
    _bspline_kernel,
    _has_no_zero_denominator,
    _ispline_kernel,
    _mspline_kernel,
    _natural_spline_kernel,
    _spline_kernel,
)
from .basis import DEFAULT_INTERCEPT, DEFAULT_ORDER, Basis, BasisKind
from .exceptions import BasisConstructionError, UnsupportedOrderError
from .tolerance import get_rank_tolerance

logger = logging.getLogger(__name__)

# Fraction of the boundary knot interval between a boundary knot and its pivot.
_PIVOT_FRACTION = 0.25


def _validate_order(order: int) -> int:
    """Check that `order` is a positive integer and return it as int.

    Raises:
        TypeError: If `order` is not an integer.
        ValueError: If `order` is not positive.
    """
    if isinstance(order, bool) or not isinstance(order, (int, np.integer)):
        raise TypeError("order must be an integer")
    if order < 1:
        raise ValueError("order must be positive")
    return int(order)


def _validate_knots(knots: npt.ArrayLike, order: int) -> npt.NDArray[np.float64]:
    """Validate a knot vector and return it as a read-only float64 array.

    Raises:
        TypeError: If `knots` is not one-dimensional.
        ValueError: If there are fewer than ``order + 1`` knots, if knots are
            not finite or if they are not non-decreasing.
    """
    arr = np.asarray(knots, dtype=np.float64)
    if arr.ndim != 1:
        raise TypeError("knots must be a 1D array")
    if arr.size < order + 1:
        raise ValueError("knots must have at least order+1 elements")
    if not np.all(np.isfinite(arr)):
        raise ValueError("knots must be finite")
    if np.any(np.diff(arr) < 0.0):
        raise ValueError("knots must be non-decreasing")
    return _as_readonly(arr)


def _validate_boundary_and_interior_knots(
    boundary_knots: npt.ArrayLike, interior_knots: npt.ArrayLike
) -> tuple[float, float, npt.NDArray[np.float64]]:
    """Validate boundary and interior knots.

    Returns:
        tuple[float, float, npt.NDArray[np.float64]]: Tuple of (lower, upper, interior).

    Raises:
        ValueError: If there are not exactly two finite boundary knots with
            ``lower < upper``, or if the interior knots are not non-decreasing
            and strictly inside the boundary knots.
    """
    boundary = np.asarray(boundary_knots, dtype=np.float64).reshape(-1)
    if boundary.size != 2:  # noqa: PLR2004
        raise ValueError("boundary_knots must have exactly two elements")
    lower, upper = float(boundary[0]), float(boundary[1])
    if not (np.isfinite(lower) and np.isfinite(upper)):
        raise ValueError("boundary_knots must be finite")
    if not lower < upper:
        raise ValueError("boundary_knots must satisfy lower < upper")

    interior = np.asarray(interior_knots, dtype=np.float64).reshape(-1)
    if np.any(np.diff(interior) < 0.0):
        raise ValueError("interior_knots must be non-decreasing")
    if interior.size > 0 and (interior[0] <= lower or interior[-1] >= upper):
        raise ValueError("interior_knots must lie strictly inside the boundary knots")

    return lower, upper, _as_readonly(interior)


def _check_not_antiderivative(ders: int, name: str) -> None:
    if ders < 0:
        raise UnsupportedOrderError(f"{name} do not implement antiderivatives (ders={ders})")


class SplineBasis(Basis):
    """B-spline basis on an arbitrary (non-decreasing) knot vector.

    The basis has ``len(knots) - order`` functions. Points outside the knots
    supporting any basis function evaluate to zero.

    Args:
        knots (npt.ArrayLike): Knot vector. Must be non-decreasing and have at
            least ``order + 1`` elements. Repeated knots are allowed.
        order (int): Spline order (degree + 1). Defaults to 4 (cubic).

    Raises:
        TypeError: If `order` is not an integer or `knots` is not 1D.
        ValueError: If `order` is not positive or `knots` is invalid.

    Example:
        >>> SplineBasis([0, 0, 0, 0.5, 1, 1, 1], order=3).evaluate(0.25)
        array([0.25 , 0.625, 0.125, 0.   ])
    """

    kind = BasisKind.SPLINE

    def __init__(self, knots: npt.ArrayLike, order: int = DEFAULT_ORDER) -> None:
        super().__init__()
        self._order = _validate_order(order)
        self._knots = _validate_knots(knots, self._order)
        self._generic_knots = _as_generic(self._knots)
        self._no_div_zero = _has_no_zero_denominator(self._knots, self._order)

    @property
    def knots(self) -> npt.NDArray[np.float64]:
        """npt.NDArray[np.float64]: Read-only knot vector."""
        return self._knots

    @property
    def order(self) -> int:
        """int: Spline order (degree + 1)."""
        return self._order

    @property
    def no_div_zero(self) -> bool:
        """bool: Whether the value recursion is free of zero denominators.

        When True the faster, unguarded recursion is used.
        """
        return self._no_div_zero

    @property
    def num_basis(self) -> int:
        return int(self._knots.size - self._order)

    @property
    def scratch_size(self) -> int:
        return 2 * (self._order - 1) + 2 * self._order

    def _check_order(self, x: Any, ders: int) -> None:
        _check_not_antiderivative(ders, "splines")
        if ders >= self._order:
            raise UnsupportedOrderError(
                f"derivative order {ders} is not available for a spline of order {self._order}"
            )

    def _kernel_args(self, native: bool) -> tuple[Any, ...]:
        knots = self._knots if native else self._generic_knots
        return (knots, self._order, self._no_div_zero)

    def _evaluate_into(  # noqa: PLR0913
        self,
        native: bool,
        x: Any,
        ders: int,
        lower_limit: float,
        out: npt.NDArray[Any],
        scratch: npt.NDArray[Any],
    ) -> None:
        _spline_kernel(native, *self._kernel_args(native), x, ders, out, scratch)


class BSplineBasis(Basis):
    """B-spline basis on boundary and interior knots, extended beyond the boundary knots.

    The knot vector repeats each boundary knot `order` times around the
    interior knots. Outside the boundary knots, values and derivatives (up to
    order 3) come from a Taylor expansion of the spline around a pivot placed
    a quarter of the boundary knot interval inside the boundary.

    Args:
        boundary_knots (npt.ArrayLike): Lower and upper boundary knots.
        interior_knots (npt.ArrayLike): Non-decreasing knots strictly inside
            the boundary knots. Defaults to no interior knots.
        intercept (bool): Whether to keep the first basis function. Defaults
            to False.
        order (int): Spline order. Defaults to 4 (cubic).

    Raises:
        TypeError: If `order` is not an integer.
        ValueError: If the knots or the order are invalid, or if the basis
            would be empty.
    """

    kind = BasisKind.BSPLINE

    def __init__(
        self,
        boundary_knots: npt.ArrayLike,
        interior_knots: npt.ArrayLike = (),
        intercept: bool = DEFAULT_INTERCEPT,
        order: int = DEFAULT_ORDER,
    ) -> None:
        super().__init__()
        order = _validate_order(order)
        lower, upper, interior = _validate_boundary_and_interior_knots(
            boundary_knots, interior_knots
        )
        knots = np.concatenate(([lower] * order, interior, [upper] * order))

        self._spline = SplineBasis(knots, order)
        self._lower = lower
        self._upper = upper
        self._interior_knots = interior
        self._intercept = bool(intercept)

        if self.num_basis < 1:
            raise ValueError("the basis must have at least one function")

        # The pivots lie in the first and last knot intervals, where the
        # spline is a single polynomial.
        self._lower_pivot = (1.0 - _PIVOT_FRACTION) * lower + _PIVOT_FRACTION * float(knots[order])
        self._upper_pivot = (1.0 - _PIVOT_FRACTION) * upper + _PIVOT_FRACTION * float(
            knots[knots.size - order - 1]
        )

    @property
    def spline(self) -> SplineBasis:
        """SplineBasis: The underlying B-spline basis (all functions)."""
        return self._spline

    @property
    def knots(self) -> npt.NDArray[np.float64]:
        """npt.NDArray[np.float64]: Full read-only knot vector."""
        return self._spline.knots

    @property
    def order(self) -> int:
        """int: Spline order (degree + 1)."""
        return self._spline.order

    @property
    def boundary_knots(self) -> tuple[float, float]:
        """tuple[float, float]: Lower and upper boundary knots."""
        return self._lower, self._upper

    @property
    def interior_knots(self) -> npt.NDArray[np.float64]:
        """npt.NDArray[np.float64]: Read-only interior knots."""
        return self._interior_knots

    @property
    def intercept(self) -> bool:
        """bool: Whether the first basis function is kept."""
        return self._intercept

    @property
    def pivots(self) -> tuple[float, float]:
        """tuple[float, float]: Expansion points used below and above the boundary knots."""
        return self._lower_pivot, self._upper_pivot

    @property
    def num_basis(self) -> int:
        return self._spline.num_basis - (0 if self._intercept else 1)

    @property
    def scratch_size(self) -> int:
        return self._spline.scratch_size + self._spline.num_basis

    def _check_order(self, x: Any, ders: int) -> None:
        _check_not_antiderivative(ders, "splines")
        self._spline._check_order(x, ders)
        if ders > MAX_EXTRAPOLATION_ORDER and (x < self._lower or x > self._upper):
            raise UnsupportedOrderError(
                f"derivative order {ders} is not available beyond the boundary knots "
                f"(maximum {MAX_EXTRAPOLATION_ORDER})"
            )

    def _extrapolation_args(self, native: bool) -> tuple[Any, ...]:
        return (
            *self._spline._kernel_args(native),
            self._lower,
            self._upper,
            self._lower_pivot,
            self._upper_pivot,
        )

    def _kernel_args(self, native: bool) -> tuple[Any, ...]:
        return (*self._extrapolation_args(native), self._intercept)

    def _evaluate_into(  # noqa: PLR0913
        self,
        native: bool,
        x: Any,
        ders: int,
        lower_limit: float,
        out: npt.NDArray[Any],
        scratch: npt.NDArray[Any],
    ) -> None:
        _bspline_kernel(native, *self._kernel_args(native), x, ders, out, scratch)


class NaturalSplineBasis(Basis):
    """Natural spline basis: a B-spline basis constrained to be linear beyond its boundary knots.

    At construction the second derivatives of the B-splines at both boundary
    knots are computed and the basis is projected onto the null space of that
    constraint, obtained from a full QR decomposition. The two rows spanning
    the constraint are dropped.

    Args:
        boundary_knots (npt.ArrayLike): Lower and upper boundary knots.
        interior_knots (npt.ArrayLike): Non-decreasing knots strictly inside
            the boundary knots. Defaults to no interior knots.
        intercept (bool): Whether to keep the first B-spline before the
            projection. Defaults to False.
        order (int): Spline order. Defaults to 4 (cubic).

    Raises:
        BasisConstructionError: If the boundary constraint is rank deficient
            or leaves no basis function.
        TypeError: If `order` is not an integer.
        ValueError: If the knots or the order are invalid.
    """

    kind = BasisKind.NATURAL_SPLINE

    def __init__(
        self,
        boundary_knots: npt.ArrayLike,
        interior_knots: npt.ArrayLike = (),
        intercept: bool = DEFAULT_INTERCEPT,
        order: int = DEFAULT_ORDER,
    ) -> None:
        super().__init__()
        self._bspline = BSplineBasis(boundary_knots, interior_knots, intercept=True, order=order)
        self._intercept = bool(intercept)

        null_space = self._compute_null_space()
        self._null_space = _as_readonly(null_space)
        self._generic_null_space = _as_generic(self._null_space)

        lower, upper = self._bspline.boundary_knots
        tangents = [
            self._project(self._bspline.evaluate(knot, ders))
            for knot in (lower, upper)
            for ders in (0, 1)
        ]
        self._tangents = tuple(_as_readonly(t) for t in tangents)
        self._generic_tangents = tuple(_as_generic(t) for t in self._tangents)

    def _compute_null_space(self) -> npt.NDArray[np.float64]:
        """Compute the transposed Q factor of the boundary second-derivative constraint."""
        bspline = self._bspline
        if bspline.order < 3:  # noqa: PLR2004
            raise BasisConstructionError(
                f"natural splines need order >= 3, got order {bspline.order}: "
                "the second-derivative constraint vanishes"
            )

        constraint = bspline.tabulate(bspline.boundary_knots, ders=2)
        if not self._intercept:
            constraint = constraint[:, 1:]

        q, r = scipy.linalg.qr(constraint.T, mode="full")
        diagonal = np.diag(r)
        rank_tol = get_rank_tolerance(diagonal)
        if diagonal.size < 2 or np.any(np.abs(diagonal) <= rank_tol):  # noqa: PLR2004
            raise BasisConstructionError(
                "natural spline construction failed: the boundary second-derivative "
                "constraint is rank deficient"
            )
        if q.shape[0] <= 2:  # noqa: PLR2004
            raise BasisConstructionError(
                "natural spline construction failed: no basis function left"
            )

        logger.debug(
            "Natural spline null space of shape %s (diag(R) = %s)", q.shape, diagonal.tolist()
        )
        return np.ascontiguousarray(q.T)

    def _project(self, values: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        coefs = values if self._intercept else values[1:]
        return (self._null_space @ coefs)[2:]

    @property
    def bspline(self) -> BSplineBasis:
        """BSplineBasis: The wrapped B-spline basis (with intercept)."""
        return self._bspline

    @property
    def boundary_knots(self) -> tuple[float, float]:
        """tuple[float, float]: Lower and upper boundary knots."""
        return self._bspline.boundary_knots

    @property
    def interior_knots(self) -> npt.NDArray[np.float64]:
        """npt.NDArray[np.float64]: Read-only interior knots."""
        return self._bspline.interior_knots

    @property
    def intercept(self) -> bool:
        """bool: Whether the first B-spline is kept before the projection."""
        return self._intercept

    @property
    def order(self) -> int:
        """int: Spline order (degree + 1)."""
        return self._bspline.order

    @property
    def null_space(self) -> npt.NDArray[np.float64]:
        """npt.NDArray[np.float64]: Read-only orthonormal projection matrix (all rows)."""
        return self._null_space

    @property
    def num_basis(self) -> int:
        return int(self._null_space.shape[0] - 2)

    @property
    def scratch_size(self) -> int:
        return self._bspline.scratch_size + self._bspline.num_basis

    def _check_order(self, x: Any, ders: int) -> None:
        _check_not_antiderivative(ders, "natural splines")
        lower, upper = self._bspline.boundary_knots
        if lower <= x <= upper:
            self._bspline._check_order(x, ders)

    def _evaluate_into(  # noqa: PLR0913
        self,
        native: bool,
        x: Any,
        ders: int,
        lower_limit: float,
        out: npt.NDArray[Any],
        scratch: npt.NDArray[Any],
    ) -> None:
        null_space = self._null_space if native else self._generic_null_space
        tangents = self._tangents if native else self._generic_tangents
        _natural_spline_kernel(
            native,
            *self._bspline._extrapolation_args(native),
            null_space,
            self._intercept,
            *tangents,
            x,
            ders,
            out,
            scratch,
        )


class ISplineBasis(Basis):
    """I-spline basis: monotone, non-decreasing integrated splines on ``[0, 1]``.

    The functions are running sums of B-splines of order ``order + 1``. Below 0
    all functions vanish and above 1 they are equal to one (their derivatives
    vanish).

    Args:
        boundary_knots (npt.ArrayLike): Lower and upper boundary knots,
            usually ``(0, 1)``.
        interior_knots (npt.ArrayLike): Non-decreasing knots strictly inside
            the boundary knots. Defaults to no interior knots.
        intercept (bool): Whether to keep the first function. Defaults to False.
        order (int): I-spline order. Defaults to 4.

    Raises:
        TypeError: If `order` is not an integer.
        ValueError: If the knots or the order are invalid.
    """

    kind = BasisKind.ISPLINE

    def __init__(
        self,
        boundary_knots: npt.ArrayLike,
        interior_knots: npt.ArrayLike = (),
        intercept: bool = DEFAULT_INTERCEPT,
        order: int = DEFAULT_ORDER,
    ) -> None:
        super().__init__()
        self._order = _validate_order(order)
        self._bspline = BSplineBasis(
            boundary_knots, interior_knots, intercept=True, order=self._order + 1
        )
        self._intercept = bool(intercept)

    @property
    def bspline(self) -> BSplineBasis:
        """BSplineBasis: The wrapped B-spline basis of order ``order + 1``."""
        return self._bspline

    @property
    def intercept(self) -> bool:
        """bool: Whether the first function is kept."""
        return self._intercept

    @property
    def order(self) -> int:
        """int: I-spline order."""
        return self._order

    @property
    def num_basis(self) -> int:
        return self._bspline.num_basis - (0 if self._intercept else 1)

    @property
    def scratch_size(self) -> int:
        return self._bspline.scratch_size + self._bspline.num_basis

    def _check_order(self, x: Any, ders: int) -> None:
        _check_not_antiderivative(ders, "I-splines")
        if 0.0 <= x <= 1.0:
            self._bspline._check_order(x, ders)

    def _evaluate_into(  # noqa: PLR0913
        self,
        native: bool,
        x: Any,
        ders: int,
        lower_limit: float,
        out: npt.NDArray[Any],
        scratch: npt.NDArray[Any],
    ) -> None:
        _ispline_kernel(
            native,
            *self._bspline._extrapolation_args(native),
            self._bspline.interior_knots.size > 0,
            self._intercept,
            x,
            ders,
            out,
            scratch,
        )


class MSplineBasis(Basis):
    """M-spline basis: B-splines scaled so that each integrates to one.

    Args:
        boundary_knots (npt.ArrayLike): Lower and upper boundary knots.
        interior_knots (npt.ArrayLike): Non-decreasing knots strictly inside
            the boundary knots. Defaults to no interior knots.
        intercept (bool): Whether to keep the first function. Defaults to False.
        order (int): Spline order. Defaults to 4 (cubic).

    Raises:
        TypeError: If `order` is not an integer.
        ValueError: If the knots or the order are invalid.
    """

    kind = BasisKind.MSPLINE

    def __init__(
        self,
        boundary_knots: npt.ArrayLike,
        interior_knots: npt.ArrayLike = (),
        intercept: bool = DEFAULT_INTERCEPT,
        order: int = DEFAULT_ORDER,
    ) -> None:
        super().__init__()
        self._bspline = BSplineBasis(boundary_knots, interior_knots, intercept=True, order=order)
        self._intercept = bool(intercept)
        if self.num_basis < 1:
            raise ValueError("the basis must have at least one function")

    @property
    def bspline(self) -> BSplineBasis:
        """BSplineBasis: The wrapped B-spline basis (with intercept)."""
        return self._bspline

    @property
    def intercept(self) -> bool:
        """bool: Whether the first function is kept."""
        return self._intercept

    @property
    def order(self) -> int:
        """int: Spline order (degree + 1)."""
        return self._bspline.order

    @property
    def num_basis(self) -> int:
        return self._bspline.num_basis - (0 if self._intercept else 1)

    @property
    def scratch_size(self) -> int:
        return self._bspline.scratch_size + self._bspline.num_basis

    def _check_order(self, x: Any, ders: int) -> None:
        _check_not_antiderivative(ders, "M-splines")
        self._bspline._check_order(x, ders)

    def _evaluate_into(  # noqa: PLR0913
        self,
        native: bool,
        x: Any,
        ders: int,
        lower_limit: float,
        out: npt.NDArray[Any],
        scratch: npt.NDArray[Any],
    ) -> None:
        _mspline_kernel(
            native,
            *self._bspline._extrapolation_args(native),
            self._intercept,
            x,
            ders,
            out,
            scratch,
        )


__all__ = [
    "BSplineBasis",
    "ISplineBasis",
    "MSplineBasis",
    "NaturalSplineBasis",
    "SplineBasis",
]
