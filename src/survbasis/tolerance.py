"""Floating-point tolerances used when building and checking bases."""

from functools import cache
from typing import Any, NamedTuple, cast

import numpy as np
from numpy import typing as npt


@cache
def _ensure_float_dtype_by_name(name: str) -> np.dtype[np.floating[Any]]:
    """Cached validator returning a floating dtype from its canonical name.

    Args:
        name (str): Canonical NumPy dtype name (e.g., "float64").

    Returns:
        np.dtype[np.floating[Any]]: Validated floating-point dtype.

    Raises:
        ValueError: If dtype is not float32 or float64.
    """
    dtype_obj = np.dtype(name)
    if dtype_obj.type not in (np.float32, np.float64):
        raise ValueError(f"Unsupported dtype: {name}")
    return cast(np.dtype[np.floating[Any]], dtype_obj)


class _TolerancePreset(NamedTuple):
    """Tolerance values for the floating-point types the kernels compile for."""

    float32: float
    float64: float


_TOLERANCE_PRESETS = {
    "default": _TolerancePreset(1e-6, 1e-12),
    "strict": _TolerancePreset(1e-7, 1e-15),
    "conservative": _TolerancePreset(1e-5, 1e-10),
}


def _get_tolerance(dtype: npt.DTypeLike, preset: str) -> float:
    dtype_obj = _ensure_float_dtype_by_name(np.dtype(dtype).name)
    values = _TOLERANCE_PRESETS[preset]
    return values.float32 if dtype_obj.type == np.float32 else values.float64


def get_default_tolerance(dtype: npt.DTypeLike = np.float64) -> float:
    """Get a reasonable default tolerance for floating-point comparisons.

    Args:
        dtype (npt.DTypeLike): float32 or float64. Defaults to float64.

    Returns:
        float: Recommended tolerance for the given dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type.

    Example:
        >>> get_default_tolerance(np.float32)
        1e-06
        >>> get_default_tolerance("float64")
        1e-12
    """
    return _get_tolerance(dtype, "default")


def get_strict_tolerance(dtype: npt.DTypeLike = np.float64) -> float:
    """Get a strict tolerance, used for comparisons close to machine precision."""
    return _get_tolerance(dtype, "strict")


def get_conservative_tolerance(dtype: npt.DTypeLike = np.float64) -> float:
    """Get a conservative tolerance, used when comparing finite-difference results."""
    return _get_tolerance(dtype, "conservative")


def get_machine_epsilon(dtype: npt.DTypeLike = np.float64) -> float:
    """Get machine epsilon for a given floating-point dtype.

    Args:
        dtype (npt.DTypeLike): float32 or float64. Defaults to float64.

    Returns:
        float: Machine epsilon for the given dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type.
    """
    return float(np.finfo(_ensure_float_dtype_by_name(np.dtype(dtype).name)).eps)


def get_rank_tolerance(diagonal: npt.ArrayLike) -> float:
    """Get the threshold below which a triangular factor's diagonal entry counts as zero.

    The threshold is relative to the largest absolute diagonal entry, scaled by
    the default tolerance of the diagonal's dtype.

    Args:
        diagonal (npt.ArrayLike): Diagonal of the R factor of a QR decomposition.

    Returns:
        float: Absolute threshold. It is zero when the diagonal is empty or null.
    """
    diag = np.abs(np.asarray(diagonal, dtype=np.float64))
    if diag.size == 0:
        return 0.0
    return float(diag.max()) * get_default_tolerance(np.float64)


__all__ = [
    "get_conservative_tolerance",
    "get_default_tolerance",
    "get_machine_epsilon",
    "get_rank_tolerance",
    "get_strict_tolerance",
]
