"""Pytest configuration to make `src` importable without installing the package.

Also provides a minimal forward-mode dual number, used to exercise the
interpreted evaluation path with a scalar that is not a float.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest


def _ensure_src_on_sys_path() -> None:
    """Prepend the repository `src` directory to `sys.path` if missing."""
    repo_root: Path = Path(__file__).resolve().parents[1]
    src_path: Path = repo_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


_ensure_src_on_sys_path()


class Dual:
    """Forward-mode dual number ``val + der * eps`` with ``eps**2 = 0``."""

    # Make numpy defer to the reflected operators instead of broadcasting.
    __array_ufunc__ = None
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, val: float, der: float = 0.0) -> None:
        self.val = float(val)
        self.der = float(der)

    @staticmethod
    def _lift(other: Any) -> Dual:
        return other if isinstance(other, Dual) else Dual(other)

    def __add__(self, other: Any) -> Dual:
        o = self._lift(other)
        return Dual(self.val + o.val, self.der + o.der)

    __radd__ = __add__

    def __sub__(self, other: Any) -> Dual:
        o = self._lift(other)
        return Dual(self.val - o.val, self.der - o.der)

    def __rsub__(self, other: Any) -> Dual:
        return self._lift(other) - self

    def __mul__(self, other: Any) -> Dual:
        o = self._lift(other)
        return Dual(self.val * o.val, self.der * o.val + self.val * o.der)

    __rmul__ = __mul__

    def __truediv__(self, other: Any) -> Dual:
        o = self._lift(other)
        return Dual(self.val / o.val, (self.der * o.val - self.val * o.der) / (o.val * o.val))

    def __rtruediv__(self, other: Any) -> Dual:
        return self._lift(other) / self

    def __neg__(self) -> Dual:
        return Dual(-self.val, -self.der)

    def __pos__(self) -> Dual:
        return self

    def __eq__(self, other: object) -> bool:
        return self.val == self._lift(other).val

    def __ne__(self, other: object) -> bool:
        return self.val != self._lift(other).val

    def __lt__(self, other: Any) -> bool:
        return self.val < self._lift(other).val

    def __le__(self, other: Any) -> bool:
        return self.val <= self._lift(other).val

    def __gt__(self, other: Any) -> bool:
        return self.val > self._lift(other).val

    def __ge__(self, other: Any) -> bool:
        return self.val >= self._lift(other).val

    def __repr__(self) -> str:
        return f"Dual({self.val!r}, {self.der!r})"


@pytest.fixture
def dual() -> type[Dual]:
    """The dual-number type."""
    return Dual
