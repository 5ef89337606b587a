"""Tests for tolerance utilities."""

from __future__ import annotations

from typing import Any

import numpy as np
import pytest

from survbasis.tolerance import (
    get_conservative_tolerance,
    get_default_tolerance,
    get_machine_epsilon,
    get_rank_tolerance,
    get_strict_tolerance,
)

DEFAULT_TOL_F32: float = 1e-6
DEFAULT_TOL_F64: float = 1e-12


class TestTolerance:
    """Test suite for tolerance utilities."""

    @pytest.mark.parametrize(
        ("dtype", "expected"),
        [(np.float32, DEFAULT_TOL_F32), ("float64", DEFAULT_TOL_F64), (np.float64, 1e-12)],
    )
    def test_get_default_tolerance(self, dtype: Any, expected: float) -> None:
        """Test get_default_tolerance with various dtypes."""
        assert get_default_tolerance(dtype) == expected

    @pytest.mark.parametrize(("dtype", "expected"), [(np.float32, 1e-7), ("float64", 1e-15)])
    def test_get_strict_tolerance(self, dtype: Any, expected: float) -> None:
        """Test get_strict_tolerance with various dtypes."""
        assert get_strict_tolerance(dtype) == expected

    @pytest.mark.parametrize(("dtype", "expected"), [(np.float32, 1e-5), ("float64", 1e-10)])
    def test_get_conservative_tolerance(self, dtype: Any, expected: float) -> None:
        """Test get_conservative_tolerance with various dtypes."""
        assert get_conservative_tolerance(dtype) == expected

    def test_default_dtype_is_float64(self) -> None:
        """Test that tolerances default to float64."""
        assert get_default_tolerance() == DEFAULT_TOL_F64
        assert get_machine_epsilon() == np.finfo(np.float64).eps

    @pytest.mark.parametrize("dtype", [np.float32, "float64"])
    def test_get_machine_epsilon(self, dtype: Any) -> None:
        """Test get_machine_epsilon against np.finfo."""
        assert get_machine_epsilon(dtype) == np.finfo(dtype).eps

    def test_presets_are_ordered(self) -> None:
        """Test that strict < default < conservative for every dtype."""
        for dtype in (np.float32, np.float64):
            assert (
                get_strict_tolerance(dtype)
                < get_default_tolerance(dtype)
                < get_conservative_tolerance(dtype)
            )

    def test_invalid_dtype_raises_error(self) -> None:
        """Test that an unsupported dtype raises a ValueError."""
        with pytest.raises(ValueError, match="Unsupported dtype"):
            get_default_tolerance(np.int32)
        with pytest.raises(ValueError, match="Unsupported dtype"):
            get_strict_tolerance("int64")
        with pytest.raises(ValueError, match="Unsupported dtype"):
            get_conservative_tolerance(np.complex64)
        with pytest.raises(ValueError, match="Unsupported dtype"):
            get_machine_epsilon(np.float16)


class TestRankTolerance:
    """Test the rank-detection threshold."""

    def test_relative_to_largest_entry(self) -> None:
        """Test that the threshold scales with the largest absolute diagonal entry."""
        assert get_rank_tolerance([3.0, -8.0, 1e-3]) == pytest.approx(8.0 * DEFAULT_TOL_F64)

    def test_empty_diagonal(self) -> None:
        """Test that an empty diagonal gives a zero threshold."""
        assert get_rank_tolerance([]) == 0.0

    def test_detects_dependent_columns(self) -> None:
        """Test that the threshold flags a QR factor of dependent columns."""
        mat = np.array([[1.0, 2.0], [2.0, 4.0], [3.0, 6.0]])
        diag = np.diag(np.linalg.qr(mat)[1])
        assert np.any(np.abs(diag) <= get_rank_tolerance(diag))
