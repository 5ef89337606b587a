"""Common contract of all basis expansions."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar

import numpy as np
import numpy.typing as npt

from ._basis_utils import _normalize_points_1D, _prepare_evaluation_buffers

DEFAULT_ORDER = 4
DEFAULT_INTERCEPT = False


def _copy_attribute(value: Any, memo: dict[int, Any]) -> Any:
    """Deep-copy an attribute, sharing read-only arrays instead of copying them."""
    if isinstance(value, np.ndarray) and not value.flags.writeable:
        return value
    if isinstance(value, tuple):
        return tuple(_copy_attribute(item, memo) for item in value)
    return copy.deepcopy(value, memo)


class BasisKind(Enum):
    """Enumeration of the basis variants.

    Attributes:
        SPLINE (BasisKind): B-splines on an arbitrary knot vector.
        BSPLINE (BasisKind): B-splines on boundary and interior knots, extended
            beyond the boundary knots.
        NATURAL_SPLINE (BasisKind): Natural cubic-type splines, linear beyond
            the boundary knots.
        ISPLINE (BasisKind): Monotone integrated splines.
        MSPLINE (BasisKind): Density-scaled splines.
        ORTH_POLY (BasisKind): Raw or orthogonal polynomials.
    """

    SPLINE = "spline"
    BSPLINE = "bs"
    NATURAL_SPLINE = "ns"
    ISPLINE = "ispline"
    MSPLINE = "mspline"
    ORTH_POLY = "orth_poly"


class Basis(ABC):
    """A basis expansion evaluated one abscissa at a time into caller-owned buffers.

    Instances are immutable after construction except for the lower
    integration limit, used when an antiderivative (negative derivative order)
    is requested. Evaluation keeps no state in the instance, so several
    threads may evaluate the same instance concurrently as long as each one
    uses its own scratch buffer. Threads needing different lower limits
    should either pass ``lower_limit`` to :meth:`evaluate` or work on a
    :meth:`clone`.

    Evaluation is generic over the scalar type: a real `x` with float buffers
    runs a Numba-compiled kernel, while any other number-like `x` (e.g., an
    automatic-differentiation scalar) runs the same kernel interpreted, with
    ``object`` dtype buffers.
    """

    kind: ClassVar[BasisKind]

    def __init__(self) -> None:
        self._lower_limit = 0.0

    @property
    @abstractmethod
    def num_basis(self) -> int:
        """int: Number of basis functions, i.e., the length of each evaluation."""

    @property
    @abstractmethod
    def scratch_size(self) -> int:
        """int: Minimum number of scratch entries required by :meth:`evaluate`."""

    @abstractmethod
    def _check_order(self, x: Any, ders: int) -> None:
        """Raise UnsupportedOrderError if `ders` is not available at `x`."""

    @abstractmethod
    def _evaluate_into(  # noqa: PLR0913
        self,
        native: bool,
        x: Any,
        ders: int,
        lower_limit: float,
        out: npt.NDArray[Any],
        scratch: npt.NDArray[Any],
    ) -> None:
        """Run the kernel of the concrete basis on validated buffers."""

    @property
    def lower_limit(self) -> float:
        """float: Lower limit of the antiderivatives computed for negative orders."""
        return self._lower_limit

    def set_lower_limit(self, x: float) -> None:
        """Set the lower limit used when an antiderivative is requested.

        Args:
            x (float): New lower limit.
        """
        self._lower_limit = float(x)

    def evaluate(
        self,
        x: Any,
        ders: int = 0,
        *,
        out: npt.NDArray[Any] | None = None,
        scratch: npt.NDArray[Any] | None = None,
        lower_limit: float | None = None,
    ) -> npt.NDArray[Any]:
        """Evaluate the basis functions (or their derivatives) at a single point.

        When both `out` and `scratch` are provided no memory is allocated.

        Args:
            x (Any): Evaluation point. A real number, or any number-like scalar
                supporting arithmetic and comparisons with floats.
            ders (int): Derivative order. 0 gives the values, positive orders
                give derivatives and negative orders antiderivatives from the
                lower limit to `x`. Defaults to 0.
            out (npt.NDArray[Any] | None): Optional output array of shape
                ``(num_basis,)``. If None, a new array is allocated. This
                follows NumPy's style for output arrays. Defaults to None.
            scratch (npt.NDArray[Any] | None): Optional scratch array with at
                least :attr:`scratch_size` entries. If None, a new array is
                allocated. Defaults to None.
            lower_limit (float | None): Lower limit for antiderivatives. If
                None, :attr:`lower_limit` is used. Defaults to None.

        Returns:
            npt.NDArray[Any]: The evaluated basis, of shape ``(num_basis,)``.
                If `out` was provided, returns the same array.

        Raises:
            UnsupportedOrderError: If the basis does not implement `ders` at `x`.
            TypeError: If `x` is not a real number while a buffer has a float
                dtype, or a buffer has an unsupported type.
            ValueError: If a buffer has a wrong shape or is not writeable.
        """
        ders = int(ders)
        self._check_order(x, ders)
        out, scratch, native = _prepare_evaluation_buffers(
            x, self.num_basis, self.scratch_size, out, scratch
        )
        if native:
            x = float(x)
        limit = self._lower_limit if lower_limit is None else float(lower_limit)
        self._evaluate_into(native, x, ders, limit, out, scratch)
        return out

    def tabulate(
        self,
        pts: npt.ArrayLike,
        ders: int = 0,
        centre: float | None = None,
    ) -> npt.NDArray[Any]:
        """Evaluate the basis at a sequence of points.

        Args:
            pts (npt.ArrayLike): Evaluation points. Multi-dimensional input is
                flattened.
            ders (int): Derivative order. Defaults to 0.
            centre (float | None): If given and `ders` is not positive, the
                basis values at `centre` are subtracted from every row.
                Defaults to None.

        Returns:
            npt.NDArray[Any]: Array of shape ``(len(pts), num_basis)``, with
                float64 dtype (object dtype for non-real points).

        Example:
            >>> basis = BSplineBasis((0.0, 1.0), intercept=True)
            >>> basis.tabulate([0.0, 0.5])
            array([[1.   , 0.   , 0.   , 0.   ],
                   [0.125, 0.375, 0.375, 0.125]])
        """
        points = _normalize_points_1D(pts)
        result = np.empty((points.size, self.num_basis), dtype=points.dtype)
        scratch = self.allocate_scratch(points.dtype)

        for i, pt in enumerate(points):
            self.evaluate(pt, ders, out=result[i], scratch=scratch)

        if centre is not None and ders <= 0:
            result -= self.evaluate(float(centre), 0)
        return result

    def allocate_scratch(self, dtype: npt.DTypeLike = np.float64) -> npt.NDArray[Any]:
        """Allocate a scratch array of :attr:`scratch_size` entries.

        Args:
            dtype (npt.DTypeLike): float dtype for the compiled path, object
                for non-real scalars. Defaults to np.float64.

        Returns:
            npt.NDArray[Any]: Uninitialized scratch array.
        """
        return np.empty(self.scratch_size, dtype=dtype)

    def clone(self) -> Basis:
        """Return an independent copy with the same configuration and lower limit.

        Read-only arrays are shared with the copy.
        """
        return copy.deepcopy(self)

    def __deepcopy__(self, memo: dict[int, Any]) -> Basis:
        result = type(self).__new__(type(self))
        memo[id(self)] = result
        for name, value in vars(self).items():
            setattr(result, name, _copy_attribute(value, memo))
        return result


    def __repr__(self) -> str:
        return f"{type(self).__name__}(num_basis={self.num_basis})"


__all__ = [
    "DEFAULT_INTERCEPT",
    "DEFAULT_ORDER",
    "Basis",
    "BasisKind",
]
