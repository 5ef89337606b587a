"""Utility functions shared by basis construction and evaluation.

Kernels are written once as plain Python functions over indexable buffers and
registered with :func:`numba.extending.register_jitable`, so that they can call
each other from compiled code. Each entry-point kernel is then wrapped in a
:class:`_DualPathKernel`, which runs the Numba-compiled version when the
evaluation point is a real number and the buffers hold floats, and the
interpreted version otherwise (for instance with automatic-differentiation
scalars stored in ``object`` arrays).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
from numpy import typing as npt

F = TypeVar("F", bound=Callable[..., Any])

if TYPE_CHECKING:
    # During type-checking, make the decorators no-ops that preserve types.
    def nb_jit(*args: object, **kwargs: object) -> Callable[[F], F]:
        def decorator(func: F) -> F:
            return func

        return decorator

    def jitable(func: F) -> F:
        return func
else:
    # At runtime, use the real Numba decorators.
    from numba.extending import register_jitable as jitable

    nb_jit = nb.jit  # type: ignore[attr-defined]


_REAL_SCALAR_TYPES = (int, float, np.integer, np.floating)
_BUFFER_DTYPES = (np.dtype(np.float32), np.dtype(np.float64), np.dtype(object))


class _DualPathKernel:
    """Entry-point kernel callable on the compiled or on the interpreted path.

    Args:
        func (Callable[..., None]): Kernel written against the ``jitable``
            subset of Python. It must write its results into its buffer
            arguments and must not allocate.
    """

    def __init__(self, func: Callable[..., None]) -> None:
        self.py_func = func
        self.compiled = nb_jit(nopython=True, cache=True, parallel=False)(func)
        self.__doc__ = func.__doc__
        self.__name__ = func.__name__

    def __call__(self, native: bool, *args: Any) -> None:
        if native:
            self.compiled(*args)
        else:
            self.py_func(*args)


def _is_real_scalar(x: object) -> bool:
    """Whether `x` can be handed to a compiled kernel as a float."""
    return isinstance(x, _REAL_SCALAR_TYPES) and not isinstance(x, (bool, np.bool_))


def _validate_buffer(
    buffer: npt.NDArray[Any],
    name: str,
    min_size: int,
    exact: bool,
) -> None:
    """Validate an output or scratch buffer.

    This function follows NumPy's style for output array validation.

    Args:
        buffer (npt.NDArray[Any]): Array to validate.
        name (str): Name of the argument, used in error messages.
        min_size (int): Required number of entries.
        exact (bool): If True, the size must be exactly `min_size`.

    Raises:
        TypeError: If `buffer` is not a numpy array or has an unsupported dtype.
        ValueError: If the array is not 1D, is too small (or not of the exact
            size), or is not writeable.
    """
    if not isinstance(buffer, np.ndarray):
        raise TypeError(f"{name} must be a numpy array")
    if buffer.dtype not in _BUFFER_DTYPES:
        raise TypeError(
            f"{name} has dtype {buffer.dtype}, but float32, float64 or object dtype is expected"
        )
    if buffer.ndim != 1:
        raise ValueError(f"{name} must be a 1D array")
    if exact and buffer.size != min_size:
        raise ValueError(f"{name} has shape {buffer.shape}, but expected shape ({min_size},)")
    if buffer.size < min_size:
        raise ValueError(f"{name} has {buffer.size} entries, but at least {min_size} are required")
    if not buffer.flags.writeable:
        raise ValueError(f"{name} array is not writeable")


def _prepare_evaluation_buffers(
    x: object,
    num_basis: int,
    scratch_size: int,
    out: npt.NDArray[Any] | None,
    scratch: npt.NDArray[Any] | None,
) -> tuple[npt.NDArray[Any], npt.NDArray[Any], bool]:
    """Validate (or allocate) the buffers of one evaluation and select the kernel path.

    Args:
        x (object): Evaluation point. A real number or any number-like scalar.
        num_basis (int): Number of basis functions written to `out`.
        scratch_size (int): Required scratch size.
        out (npt.NDArray[Any] | None): Output buffer. Allocated if None, with
            float64 dtype for real `x` and object dtype otherwise.
        scratch (npt.NDArray[Any] | None): Scratch buffer. Allocated if None,
            with the same dtype as `out`.

    Returns:
        tuple[npt.NDArray[Any], npt.NDArray[Any], bool]: Tuple of
            (out, scratch, native) where native is True when the compiled
            kernel can be used.

    Raises:
        TypeError: If `x` is not a real number but a buffer has a float dtype,
            or if a buffer has an unsupported type.
        ValueError: If a buffer has a wrong shape or is not writeable.
    """
    real = _is_real_scalar(x)

    if out is None:
        out = np.empty(num_basis, dtype=np.float64 if real else object)
    else:
        _validate_buffer(out, "out", num_basis, exact=True)

    if scratch is None:
        scratch = np.empty(scratch_size, dtype=out.dtype)
    else:
        _validate_buffer(scratch, "scratch", scratch_size, exact=False)

    float_buffers = out.dtype.kind == "f" and scratch.dtype.kind == "f"
    if not real and (out.dtype.kind == "f" or scratch.dtype.kind == "f"):
        raise TypeError(
            f"Evaluation at a {type(x).__name__} scalar requires out and scratch "
            "arrays with object dtype"
        )

    return out, scratch, real and float_buffers


def _normalize_points_1D(pts: npt.ArrayLike) -> npt.NDArray[Any]:
    """Normalize points to a 1D array for tabulation.

    Real-valued input is converted to float64. Input that numpy can only hold
    as objects (e.g., automatic-differentiation scalars) is kept with object
    dtype. Zero-dimensional input becomes a 1-element array and
    multi-dimensional input is flattened.

    Args:
        pts (npt.ArrayLike): Points (scalar, sequence or numpy array).

    Returns:
        npt.NDArray[Any]: 1D array with float64 or object dtype.
    """
    arr = np.asarray(pts)
    if arr.dtype.kind != "O":
        arr = arr.astype(np.float64)
    return arr.reshape(-1)


def _as_readonly(arr: npt.ArrayLike, dtype: npt.DTypeLike = np.float64) -> npt.NDArray[Any]:
    """Return a C-contiguous read-only copy of `arr`."""
    out = np.array(arr, dtype=dtype, order="C", copy=True)
    out.flags.writeable = False
    return out


def _as_generic(arr: npt.NDArray[np.float64]) -> npt.NDArray[np.object_]:
    """Return a read-only object-dtype copy of `arr` holding Python floats.

    Kernels running on the interpreted path index these copies, so that
    arithmetic with non-float scalars dispatches through plain Python floats
    instead of numpy scalar types.
    """
    out = arr.astype(object)
    out.flags.writeable = False
    return out


__all__ = [
    "_DualPathKernel",
    "_as_generic",
    "_as_readonly",
    "_is_real_scalar",
    "_normalize_points_1D",
    "_prepare_evaluation_buffers",
    "_validate_buffer",
    "jitable",
    "nb_jit",
]
