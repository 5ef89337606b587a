"""Ordered collection of heterogeneous bases evaluated back to back."""

from __future__ import annotations

from collections.abc import Iterable, MutableSequence
from typing import Any, overload

import numpy as np
import numpy.typing as npt

from ._basis_utils import _prepare_evaluation_buffers
from .basis import Basis


class BasisCollection(MutableSequence[Basis]):
    """Ordered, clonable list of bases.

    The collection evaluates its members one after another at the same point,
    writing their outputs contiguously into a single output array. Each member
    works on its own slice of a shared scratch array, whose size is the sum of
    the members' requirements.

    Args:
        bases (Iterable[Basis]): Initial members. Defaults to an empty collection.

    Raises:
        TypeError: If a member is not a :class:`Basis`.

    Example:
        >>> coll = BasisCollection([BSplineBasis((0, 1)), OrthoPolyBasis.raw(2)])
        >>> coll.num_basis
        5
    """

    def __init__(self, bases: Iterable[Basis] = ()) -> None:
        self._bases: list[Basis] = []
        for basis in bases:
            self.append(basis)

    @staticmethod
    def _check_member(basis: object) -> Basis:
        if not isinstance(basis, Basis):
            raise TypeError(
                f"BasisCollection members must be Basis instances, got {type(basis).__name__}"
            )
        return basis

    @overload
    def __getitem__(self, index: int) -> Basis: ...

    @overload
    def __getitem__(self, index: slice) -> BasisCollection: ...

    def __getitem__(self, index: int | slice) -> Basis | BasisCollection:
        if isinstance(index, slice):
            return BasisCollection(self._bases[index])
        return self._bases[index]

    @overload
    def __setitem__(self, index: int, value: Basis) -> None: ...

    @overload
    def __setitem__(self, index: slice, value: Iterable[Basis]) -> None: ...

    def __setitem__(self, index: int | slice, value: Any) -> None:
        if isinstance(index, slice):
            self._bases[index] = [self._check_member(b) for b in value]
        else:
            self._bases[index] = self._check_member(value)

    def __delitem__(self, index: int | slice) -> None:
        del self._bases[index]

    def __len__(self) -> int:
        return len(self._bases)

    def insert(self, index: int, value: Basis) -> None:
        self._bases.insert(index, self._check_member(value))

    def __repr__(self) -> str:
        return f"BasisCollection({self._bases!r})"

    @property
    def num_basis(self) -> int:
        """int: Total number of basis functions over all members."""
        return sum(basis.num_basis for basis in self._bases)

    @property
    def scratch_size(self) -> int:
        """int: Sum of the members' scratch requirements."""
        return sum(basis.scratch_size for basis in self._bases)

    @property
    def offsets(self) -> npt.NDArray[np.int_]:
        """npt.NDArray[np.int_]: Output offset of each member, followed by the total size."""
        return np.cumsum([0] + [basis.num_basis for basis in self._bases])

    def allocate_scratch(self, dtype: npt.DTypeLike = np.float64) -> npt.NDArray[Any]:
        """Allocate a scratch array large enough for any member.

        Args:
            dtype (npt.DTypeLike): float dtype for the compiled path, object
                for non-real scalars. Defaults to np.float64.

        Returns:
            npt.NDArray[Any]: Uninitialized scratch array of :attr:`scratch_size` entries.
        """
        return np.empty(self.scratch_size, dtype=dtype)

    def set_lower_limit(self, x: float) -> None:
        """Set the antiderivative lower limit of every member."""
        for basis in self._bases:
            basis.set_lower_limit(x)

    def clone(self) -> BasisCollection:
        """Return a collection of independent clones of the members."""
        return BasisCollection(basis.clone() for basis in self._bases)

    def evaluate(
        self,
        x: Any,
        ders: int = 0,
        *,
        out: npt.NDArray[Any] | None = None,
        scratch: npt.NDArray[Any] | None = None,
        lower_limit: float | None = None,
    ) -> npt.NDArray[Any]:
        """Evaluate all members at `x` and concatenate their outputs.

        Args:
            x (Any): Evaluation point.
            ders (int): Derivative order passed to every member. Defaults to 0.
            out (npt.NDArray[Any] | None): Optional output array of shape
                ``(num_basis,)``. Defaults to None.
            scratch (npt.NDArray[Any] | None): Optional scratch array with at
                least :attr:`scratch_size` entries. Defaults to None.
            lower_limit (float | None): Lower limit for antiderivatives, passed to
                every member. If None, each member uses its own
                :attr:`~survbasis.basis.Basis.lower_limit`. Defaults to None.

        Returns:
            npt.NDArray[Any]: Concatenated evaluations, of shape ``(num_basis,)``.

        Raises:
            UnsupportedOrderError: If a member does not implement `ders` at `x`.
        """
        out, scratch, _ = _prepare_evaluation_buffers(
            x, self.num_basis, self.scratch_size, out, scratch
        )

        out_start = 0
        scratch_start = 0
        for basis in self._bases:
            out_end = out_start + basis.num_basis
            scratch_end = scratch_start + basis.scratch_size
            basis.evaluate(
                x,
                ders,
                out=out[out_start:out_end],
                scratch=scratch[scratch_start:scratch_end],
                lower_limit=lower_limit,
            )
            out_start = out_end
            scratch_start = scratch_end
        return out


__all__ = ["BasisCollection"]
