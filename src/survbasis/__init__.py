"""Public API surface for survbasis.

Defines package metadata and exported interfaces.
"""

from typing import Final

# Private API imports (accessible but not in __all__)
# Users can access private functions via: survbasis._spline_impl._function_name, etc.
from . import (
    _basis_utils,  # noqa: F401
    _orth_poly_impl,  # noqa: F401
    _spline_impl,  # noqa: F401
)

# Public API imports
from .basis import DEFAULT_INTERCEPT, DEFAULT_ORDER, Basis, BasisKind
from .collection import BasisCollection
from .exceptions import BasisConstructionError, BasisError, UnsupportedOrderError
from .orth_poly import OrthoPolyBasis
from .spline_basis import (
    BSplineBasis,
    ISplineBasis,
    MSplineBasis,
    NaturalSplineBasis,
    SplineBasis,
)
from .tolerance import (
    get_conservative_tolerance,
    get_default_tolerance,
    get_machine_epsilon,
    get_rank_tolerance,
    get_strict_tolerance,
)

# Package metadata
__version__: Final[str] = "0.1.0"
__license__: Final[str] = "MIT"
__author__: Final[str] = "Pablo Antolin <pablo.antolin@epfl.ch>"

# Public interface: only functions/classes that don't start with _
__all__ = [
    "DEFAULT_INTERCEPT",
    "DEFAULT_ORDER",
    "BSplineBasis",
    "Basis",
    "BasisCollection",
    "BasisConstructionError",
    "BasisError",
    "BasisKind",
    "ISplineBasis",
    "MSplineBasis",
    "NaturalSplineBasis",
    "OrthoPolyBasis",
    "SplineBasis",
    "UnsupportedOrderError",
    "__author__",
    "__license__",
    "__version__",
    "get_conservative_tolerance",
    "get_default_tolerance",
    "get_machine_epsilon",
    "get_rank_tolerance",
    "get_strict_tolerance",
]
