"""Tests for BasisCollection."""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from survbasis.collection import BasisCollection
from survbasis.exceptions import UnsupportedOrderError
from survbasis.orth_poly import OrthoPolyBasis
from survbasis.spline_basis import BSplineBasis, NaturalSplineBasis


def _make_collection() -> BasisCollection:
    return BasisCollection(
        [
            BSplineBasis((0.0, 1.0), (0.4,)),
            OrthoPolyBasis.raw(2, intercept=True),
            NaturalSplineBasis((0.0, 1.0), (0.3, 0.6)),
        ]
    )


class TestBasisCollection:
    """Test the ordered collection of bases."""

    def test_sizes_are_sums(self) -> None:
        """Test that dimension and scratch size sum over the members."""
        coll = _make_collection()

        assert len(coll) == 3  # noqa: PLR2004
        assert coll.num_basis == sum(b.num_basis for b in coll)
        assert coll.scratch_size == sum(b.scratch_size for b in coll)
        np.testing.assert_array_equal(coll.offsets, [0, 4, 7, 10])

    def test_evaluate_concatenates_members(self) -> None:
        """Test that outputs are written back to back."""
        coll = _make_collection()
        for ders in (0, 1):
            expected = np.concatenate([b.evaluate(0.45, ders) for b in coll])
            np.testing.assert_allclose(coll.evaluate(0.45, ders), expected)

    def test_evaluate_with_buffers(self) -> None:
        """Test evaluation into caller-owned buffers."""
        coll = _make_collection()
        out = np.empty(coll.num_basis)
        scratch = coll.allocate_scratch()

        assert coll.evaluate(1.3, out=out, scratch=scratch) is out
        np.testing.assert_allclose(out, np.concatenate([b.evaluate(1.3) for b in coll]))

    def test_unsupported_order_propagates(self) -> None:
        """Test that a member's unsupported order is reported."""
        with pytest.raises(UnsupportedOrderError):
            _make_collection().evaluate(0.5, -1)

    def test_clone_is_deep(self) -> None:
        """Test that cloning copies every member."""
        coll = _make_collection()
        clone = coll.clone()

        assert isinstance(clone, BasisCollection)
        assert all(a is not b for a, b in zip(coll, clone, strict=True))
        clone.set_lower_limit(0.5)
        assert all(b.lower_limit == 0.5 for b in clone)  # noqa: PLR2004
        assert all(b.lower_limit == 0.0 for b in coll)

    def test_sequence_operations(self) -> None:
        """Test list-like editing of the collection."""
        coll = _make_collection()
        extra = OrthoPolyBasis.raw(1)

        coll.append(extra)
        assert coll[-1] is extra
        del coll[0]
        assert len(coll) == 3  # noqa: PLR2004
        assert isinstance(coll[0:2], BasisCollection)
        coll[0] = extra
        assert coll.num_basis == 1 + 3 + 1

    def test_rejects_non_basis(self) -> None:
        """Test that only Basis instances can be stored."""
        coll = BasisCollection()
        with pytest.raises(TypeError, match="Basis instances"):
            coll.append(3.0)  # type: ignore[arg-type]
        with pytest.raises(TypeError, match="Basis instances"):
            BasisCollection([BSplineBasis((0.0, 1.0)), "ns"])  # type: ignore[list-item]

    def test_empty_collection(self) -> None:
        """Test an empty collection."""
        coll = BasisCollection()
        assert coll.num_basis == 0
        assert coll.scratch_size == 0
        assert coll.evaluate(0.5).shape == (0,)

    def test_lower_limit_forwarded(self) -> None:
        """Test that a per-call lower limit reaches every member without mutating it."""
        coll = BasisCollection([OrthoPolyBasis.raw(2, intercept=True), OrthoPolyBasis.raw(1)])

        values = coll.evaluate(2.0, -1, lower_limit=1.0)

        np.testing.assert_allclose(values, [1.0, 1.5, 7.0 / 3.0, 1.5])
        assert all(b.lower_limit == 0.0 for b in coll)
        np.testing.assert_allclose(coll.evaluate(2.0, -1), [2.0, 2.0, 8.0 / 3.0, 2.0])


class TestConcurrentEvaluation:
    """Test evaluation of shared instances from several threads."""

    @pytest.mark.parametrize("ders", [0, 1])
    def test_threads_with_private_scratch(self, ders: int) -> None:
        """Test that threads sharing a collection but not buffers get serial results."""
        coll = _make_collection()
        pts = np.linspace(-0.5, 1.5, 41)
        expected = np.array([coll.evaluate(x, ders) for x in pts])

        def work(offset: int) -> np.ndarray:
            out = np.empty(coll.num_basis)
            scratch = coll.allocate_scratch()
            result = np.empty_like(expected)
            for _ in range(20):
                for i in np.roll(np.arange(pts.size), offset):
                    result[i] = coll.evaluate(pts[i], ders, out=out, scratch=scratch)
            return result

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(work, range(0, 40, 10)))

        for result in results:
            np.testing.assert_array_equal(result, expected)
