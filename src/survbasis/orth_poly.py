"""Raw and orthogonal polynomial bases."""

from __future__ import annotations

from typing import Any

import numpy as np
import numpy.typing as npt

from ._basis_utils import _as_generic, _as_readonly
from ._orth_poly_impl import _compute_orth_map, _compute_recurrence_from_data, _orth_poly_kernel
from .basis import DEFAULT_INTERCEPT, Basis, BasisKind


def _validate_degree(degree: int) -> int:
    """Check that `degree` is a positive integer and return it as int.

    Raises:
        TypeError: If `degree` is not an integer.
        ValueError: If `degree` is not positive.
    """
    if isinstance(degree, bool) or not isinstance(degree, (int, np.integer)):
        raise TypeError("degree must be an integer")
    if degree < 1:
        raise ValueError("degree must be positive")
    return int(degree)


def _validate_recurrence(
    alpha: npt.ArrayLike, norm2: npt.ArrayLike
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Validate the recurrence coefficients of an orthogonal polynomial basis.

    Raises:
        ValueError: If `alpha` is empty, if ``len(norm2) != len(alpha) + 2``,
            or if the coefficients are not finite or the norms not positive.
    """
    alpha_arr = np.asarray(alpha, dtype=np.float64).reshape(-1)
    norm2_arr = np.asarray(norm2, dtype=np.float64).reshape(-1)
    if alpha_arr.size < 1:
        raise ValueError("alpha must have at least one element")
    if norm2_arr.size != alpha_arr.size + 2:
        raise ValueError(
            f"norm2 must have len(alpha) + 2 = {alpha_arr.size + 2} elements, "
            f"got {norm2_arr.size}"
        )
    if not (np.all(np.isfinite(alpha_arr)) and np.all(np.isfinite(norm2_arr))):
        raise ValueError("alpha and norm2 must be finite")
    if np.any(norm2_arr <= 0.0):
        raise ValueError("norm2 must be positive")
    return alpha_arr, norm2_arr


class OrthoPolyBasis(Basis):
    """Polynomial basis: raw powers or polynomials orthogonal over a set of points.

    The orthogonal variant follows R's ``poly()``: monic polynomials built
    from the three-term recurrence ``p_{k+1}(x) = (x - alpha[k]) p_k(x) -
    norm2[k+1] / norm2[k] p_{k-1}(x)`` and normalized by ``sqrt(norm2[k+1])``.
    The raw variant holds the plain powers ``x, x**2, ..., x**degree``.

    Both variants implement derivatives of any order and antiderivatives
    (negative orders) from the lower limit.

    Args:
        alpha (npt.ArrayLike): Recurrence coefficients, one per degree.
        norm2 (npt.ArrayLike): Squared norms, with ``len(alpha) + 2`` entries.
        intercept (bool): Whether to include the constant function as first
            column. Defaults to False.

    Raises:
        ValueError: If the recurrence coefficients are invalid.

    Example:
        >>> OrthoPolyBasis.raw(2).evaluate(2.0)
        array([2., 4.])
    """

    kind = BasisKind.ORTH_POLY

    def __init__(
        self,
        alpha: npt.ArrayLike,
        norm2: npt.ArrayLike,
        intercept: bool = DEFAULT_INTERCEPT,
    ) -> None:
        super().__init__()
        alpha_arr, norm2_arr = _validate_recurrence(alpha, norm2)
        self._setup(alpha_arr.size, alpha_arr, norm2_arr, intercept, raw=False)

    @classmethod
    def raw(cls, degree: int, intercept: bool = DEFAULT_INTERCEPT) -> OrthoPolyBasis:
        """Create a basis of raw powers ``x, ..., x**degree``.

        Args:
            degree (int): Highest power. Must be positive.
            intercept (bool): Whether to include the constant ``x**0`` as
                first column. Defaults to False.

        Returns:
            OrthoPolyBasis: The raw polynomial basis.

        Raises:
            TypeError: If `degree` is not an integer.
            ValueError: If `degree` is not positive.
        """
        degree = _validate_degree(degree)
        basis = cls.__new__(cls)
        Basis.__init__(basis)
        basis._setup(degree, np.empty(0), np.ones(2), intercept, raw=True)
        return basis

    @classmethod
    def from_data(
        cls, x: npt.ArrayLike, degree: int, intercept: bool = DEFAULT_INTERCEPT
    ) -> tuple[OrthoPolyBasis, npt.NDArray[np.float64]]:
        """Create the basis of polynomials orthonormal over the points `x`.

        Args:
            x (npt.ArrayLike): Data points.
            degree (int): Polynomial degree. Must be positive and smaller than
                the number of unique points.
            intercept (bool): Whether to include the constant function.
                Defaults to False.

        Returns:
            tuple[OrthoPolyBasis, npt.NDArray[np.float64]]: Tuple of
                (basis, design) where design is the basis tabulated at `x`,
                of shape ``(len(x), num_basis)``.

        Raises:
            TypeError: If `degree` is not an integer.
            ValueError: If `degree` is not positive or `x` has too few unique values.
        """
        alpha, norm2, design = _compute_recurrence_from_data(x, _validate_degree(degree))
        basis = cls(alpha, norm2, intercept)
        if intercept:
            design = np.hstack((np.ones((design.shape[0], 1)), design))
        return basis, design

    def _setup(  # noqa: PLR0913
        self,
        degree: int,
        alpha: npt.NDArray[np.float64],
        norm2: npt.NDArray[np.float64],
        intercept: bool,
        raw: bool,
    ) -> None:
        self._degree = degree
        self._raw = raw
        self._intercept = bool(intercept)
        self._alpha = _as_readonly(alpha)
        self._norm2 = _as_readonly(norm2)
        self._sqrt_norm2 = _as_readonly(np.sqrt(norm2))
        orth_map = np.zeros((1, 1)) if raw else _compute_orth_map(self._alpha, self._norm2)
        self._orth_map = _as_readonly(orth_map)
        self._generic = tuple(
            _as_generic(arr) for arr in (self._alpha, self._norm2, self._sqrt_norm2, self._orth_map)
        )

    @property
    def degree(self) -> int:
        """int: Highest polynomial degree."""
        return self._degree

    @property
    def is_raw(self) -> bool:
        """bool: Whether the basis holds raw powers."""
        return self._raw

    @property
    def intercept(self) -> bool:
        """bool: Whether the constant function is the first column."""
        return self._intercept

    @property
    def alpha(self) -> npt.NDArray[np.float64]:
        """npt.NDArray[np.float64]: Read-only recurrence coefficients (empty when raw)."""
        return self._alpha

    @property
    def norm2(self) -> npt.NDArray[np.float64]:
        """npt.NDArray[np.float64]: Read-only squared norms."""
        return self._norm2

    @property
    def orth_map(self) -> npt.NDArray[np.float64]:
        """npt.NDArray[np.float64]: Coefficients of the basis polynomials in the power basis.

        Row ``k`` holds the coefficients of the ``k``-th polynomial; row 0 is
        the constant. Not meaningful for raw bases.
        """
        return self._orth_map

    @property
    def num_basis(self) -> int:
        return self._degree + (1 if self._intercept else 0)

    @property
    def scratch_size(self) -> int:
        return 0 if self._raw else self._degree + 1

    def _check_order(self, x: Any, ders: int) -> None:
        # Polynomials implement every derivative and antiderivative order.
        return

    def _evaluate_into(  # noqa: PLR0913
        self,
        native: bool,
        x: Any,
        ders: int,
        lower_limit: float,
        out: npt.NDArray[Any],
        scratch: npt.NDArray[Any],
    ) -> None:
        if native:
            alpha, norm2, sqrt_norm2, orth_map = (
                self._alpha,
                self._norm2,
                self._sqrt_norm2,
                self._orth_map,
            )
        else:
            alpha, norm2, sqrt_norm2, orth_map = self._generic
        _orth_poly_kernel(
            native,
            self._raw,
            alpha,
            norm2,
            sqrt_norm2,
            orth_map,
            self._intercept,
            self.num_basis,
            lower_limit,
            x,
            ders,
            out,
            scratch,
        )


__all__ = ["OrthoPolyBasis"]
