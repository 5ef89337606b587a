"""Tests for OrthoPolyBasis."""

import numpy as np
import pytest

from survbasis.basis import BasisKind
from survbasis.orth_poly import OrthoPolyBasis

DATA = np.linspace(-1.0, 2.0, 20)


class TestRawPolynomial:
    """Test the raw power basis."""

    def test_degree_two_without_intercept(self) -> None:
        """Test that raw powers of degree 2 at x = 2 are {2, 4}."""
        basis = OrthoPolyBasis.raw(2)

        assert basis.kind is BasisKind.ORTH_POLY
        assert basis.is_raw
        assert basis.num_basis == 2  # noqa: PLR2004
        assert basis.scratch_size == 0
        np.testing.assert_array_equal(basis.evaluate(2.0), [2.0, 4.0])

    def test_intercept(self) -> None:
        """Test that the intercept adds the constant power."""
        basis = OrthoPolyBasis.raw(3, intercept=True)
        np.testing.assert_array_equal(basis.evaluate(2.0), [1.0, 2.0, 4.0, 8.0])

    @pytest.mark.parametrize(
        ("ders", "expected"),
        [
            (1, [0.0, 1.0, 4.0, 12.0]),
            (2, [0.0, 0.0, 2.0, 12.0]),
            (3, [0.0, 0.0, 0.0, 6.0]),
            (4, [0.0, 0.0, 0.0, 0.0]),
        ],
    )
    def test_derivatives(self, ders: int, expected: list[float]) -> None:
        """Test derivatives by the power rule."""
        basis = OrthoPolyBasis.raw(3, intercept=True)
        np.testing.assert_allclose(basis.evaluate(2.0, ders), expected)

    def test_antiderivative_from_zero(self) -> None:
        """Test the antiderivative with the default lower limit."""
        basis = OrthoPolyBasis.raw(2)
        np.testing.assert_allclose(basis.evaluate(2.0, -1), [2.0, 8.0 / 3.0])

    def test_antiderivative_with_lower_limit(self) -> None:
        """Test the antiderivative from a stored and from a per-call lower limit."""
        basis = OrthoPolyBasis.raw(2, intercept=True)
        basis.set_lower_limit(1.0)

        np.testing.assert_allclose(basis.evaluate(2.0, -1), [1.0, 1.5, 7.0 / 3.0])
        np.testing.assert_allclose(
            basis.evaluate(2.0, -1, lower_limit=0.0), [2.0, 2.0, 8.0 / 3.0]
        )
        assert basis.lower_limit == 1.0

    def test_double_antiderivative(self) -> None:
        """Test the second antiderivative from zero."""
        basis = OrthoPolyBasis.raw(2, intercept=True)
        np.testing.assert_allclose(basis.evaluate(2.0, -2), [2.0, 8.0 / 6.0, 16.0 / 12.0])

    def test_invalid_degree(self) -> None:
        """Test that a non-positive degree raises ValueError."""
        with pytest.raises(ValueError, match="degree must be positive"):
            OrthoPolyBasis.raw(0)

    @pytest.mark.parametrize("degree", [2.5, 2.0, True])
    def test_non_integer_degree(self, degree: object) -> None:
        """Test that a non-integer degree raises TypeError."""
        with pytest.raises(TypeError, match="degree must be an integer"):
            OrthoPolyBasis.raw(degree)  # type: ignore[arg-type]
        with pytest.raises(TypeError, match="degree must be an integer"):
            OrthoPolyBasis.from_data(np.linspace(0.0, 1.0, 10), degree)  # type: ignore[arg-type]


class TestOrthogonalPolynomial:
    """Test the orthogonalised basis."""

    def test_from_data_design_is_orthonormal(self) -> None:
        """Test that the design matrix at the data points has orthonormal columns."""
        basis, design = OrthoPolyBasis.from_data(DATA, 3)

        assert design.shape == (DATA.size, 3)
        assert basis.num_basis == 3  # noqa: PLR2004
        assert basis.scratch_size == 4  # noqa: PLR2004
        np.testing.assert_allclose(design.T @ design, np.eye(3), atol=1e-12)

    def test_recurrence_reproduces_design(self) -> None:
        """Test that evaluating the recurrence at the data reproduces the design matrix."""
        basis, design = OrthoPolyBasis.from_data(DATA, 3)
        table = basis.tabulate(DATA)

        np.testing.assert_allclose(table, design, atol=1e-12)
        np.testing.assert_allclose(table.T @ table, np.eye(3), atol=1e-12)
        np.testing.assert_allclose(table.sum(axis=0), 0.0, atol=1e-12)

    def test_intercept_design(self) -> None:
        """Test that the intercept adds a column of ones."""
        basis, design = OrthoPolyBasis.from_data(DATA, 2, intercept=True)

        assert design.shape == (DATA.size, 3)
        np.testing.assert_array_equal(design[:, 0], 1.0)
        np.testing.assert_allclose(basis.tabulate(DATA), design, atol=1e-12)

    def test_recurrence_matches_power_map(self) -> None:
        """Test that the recurrence agrees with the lower-triangular power map."""
        basis, _ = OrthoPolyBasis.from_data(DATA, 4)
        x = 0.83
        powers = x ** np.arange(5)
        np.testing.assert_allclose(basis.evaluate(x), basis.orth_map[1:] @ powers, atol=1e-12)

    def test_explicit_coefficients(self) -> None:
        """Test construction from explicit recurrence coefficients."""
        fitted, _ = OrthoPolyBasis.from_data(DATA, 2)
        basis = OrthoPolyBasis(fitted.alpha, fitted.norm2)

        assert basis.degree == 2  # noqa: PLR2004
        assert not basis.is_raw
        np.testing.assert_allclose(basis.evaluate(1.3), fitted.evaluate(1.3))

    @pytest.mark.parametrize("x", [-0.8, 0.4, 1.9])
    def test_central_differences(self, x: float) -> None:
        """Test first and second derivatives against central differences."""
        basis, _ = OrthoPolyBasis.from_data(DATA, 3, intercept=True)
        h = 1e-5
        first = (basis.evaluate(x + h) - basis.evaluate(x - h)) / (2.0 * h)
        second = (basis.evaluate(x + h, 1) - basis.evaluate(x - h, 1)) / (2.0 * h)

        np.testing.assert_allclose(basis.evaluate(x, 1), first, atol=1e-7)
        np.testing.assert_allclose(basis.evaluate(x, 2), second, atol=1e-7)
        np.testing.assert_allclose(basis.evaluate(x, 4), 0.0, atol=1e-12)

    @pytest.mark.parametrize(("a", "b"), [(0.0, 1.2), (-0.5, 0.7), (0.3, 1.9)])
    def test_antiderivative_round_trip(self, a: float, b: float) -> None:
        """Test that differentiating the antiderivative from a to b gives the value at b."""
        basis, _ = OrthoPolyBasis.from_data(DATA, 3, intercept=True)
        basis.set_lower_limit(a)
        h = 1e-5
        numeric = (basis.evaluate(b + h, -1) - basis.evaluate(b - h, -1)) / (2.0 * h)

        np.testing.assert_allclose(numeric, basis.evaluate(b), atol=1e-7)
        np.testing.assert_allclose(basis.evaluate(a, -1), 0.0, atol=1e-12)

    def test_intercept_column_antiderivative(self) -> None:
        """Test that the constant column integrates to x - a."""
        basis, _ = OrthoPolyBasis.from_data(DATA, 2, intercept=True)
        assert basis.evaluate(1.5, -1, lower_limit=0.5)[0] == pytest.approx(1.0)
        assert basis.evaluate(1.5, 1)[0] == 0.0

    def test_mismatched_norm2(self) -> None:
        """Test that norm2 must have two more entries than alpha."""
        with pytest.raises(ValueError, match="norm2 must have"):
            OrthoPolyBasis([0.0, 0.1], [1.0, 10.0, 2.0])

    def test_non_positive_norm2(self) -> None:
        """Test that norms must be positive."""
        with pytest.raises(ValueError, match="norm2 must be positive"):
            OrthoPolyBasis([0.0], [1.0, 10.0, 0.0])

    def test_empty_alpha(self) -> None:
        """Test that at least one recurrence coefficient is required."""
        with pytest.raises(ValueError, match="at least one"):
            OrthoPolyBasis([], [1.0, 1.0])

    def test_too_few_unique_points(self) -> None:
        """Test that the degree must be below the number of unique points."""
        with pytest.raises(ValueError, match="unique points"):
            OrthoPolyBasis.from_data([0.0, 1.0, 1.0, 0.0], 2)
