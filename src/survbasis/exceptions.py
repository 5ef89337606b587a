"""Exceptions raised by basis construction and evaluation."""


class BasisError(Exception):
    """Base class for all survbasis errors."""


class UnsupportedOrderError(BasisError, ValueError):
    """Raised when a basis is asked for a derivative order it does not implement.

    Negative orders request antiderivatives, which only orthogonal polynomials
    provide.
    """


class BasisConstructionError(BasisError, ValueError):
    """Raised when a basis cannot be built from the given configuration.

    The natural spline raises it when the boundary second-derivative
    constraint is rank deficient, so that no null-space projection exists.
    """


__all__ = [
    "BasisConstructionError",
    "BasisError",
    "UnsupportedOrderError",
]
