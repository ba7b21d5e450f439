"""> CPOBingham: Core enums, constants and default parameters.

Orientation matrices are expected to represent passive (i.e. alias) rotations,
such that `a[i, j]` gives the direction cosine of the angle between the i-th
crystallographic axis and the j-th external axis (in the global Eulerian frame).
Row 0 holds the [100] (a) axis, row 1 the [010] (b) axis and row 2 the [001] (c) axis.

"""

from dataclasses import asdict, dataclass
from enum import IntEnum, unique

# NOTE: Do NOT import any cpobingham submodules here to avoid cyclical imports.


CPO_PROPERTY_NAME = "crystal preferred orientation"
"""Name of the upstream particle property that carries the grain data."""

PROPERTY_NAME = "cpo bingham average"
"""Name under which the Bingham average particle property is registered."""

VALUES_PER_MINERAL = 9
"""Number of output values per mineral phase (three axes of three components)."""

EIGEN_METHODS = ("jacobi", "eigh")
"""Supported symmetric eigen-solvers, see `cpobingham.diagnostics.bingham_averages`."""


@unique
class CrystalAxis(IntEnum):
    """Crystallographic axes, valued by their row in an orientation matrix."""

    a = 0
    """[100]"""
    b = 1
    """[010]"""
    c = 2
    """[001]"""

    @classmethod
    def parse(cls, axis):
        """Get the `CrystalAxis` for a name ("a", "b", "c") or row index.

        >>> CrystalAxis.parse("b")
        <CrystalAxis.b: 1>
        >>> CrystalAxis.parse(2)
        <CrystalAxis.c: 2>

        """
        if isinstance(axis, cls):
            return axis
        if isinstance(axis, str):
            try:
                return cls[axis]
            except KeyError:
                raise ValueError(f"axis must be 'a', 'b', or 'c', not {axis}") from None
        try:
            return cls(axis)
        except ValueError:
            raise ValueError(f"axis must be 'a', 'b', or 'c', not {axis}") from None


@dataclass(frozen=True)
class DefaultParams:
    random_seed: int = 1
    """Seed used to generate random numbers for the volume-weighted resampling.

    Results are reproducible as long as the same seed, process rank and particle
    identity are used, regardless of the order in which particles are evaluated.

    """
    number_of_samples: int = 0
    """Number of orientations drawn by the volume-weighted resampling.

    Setting it to zero means that the number of samples is equal to the number
    of grains of the upstream CPO data.

    """
    c_axis_eigenvalue: str = "c"
    """Which eigenvalue scales the averaged c-axis, either "c" or "a".

    Earlier implementations scaled the averaged c-axis by the dominant eigenvalue
    of the a-axis scatter tensor. Use "a" only to reproduce such output.

    """
    eigen_method: str = "jacobi"
    """Symmetric eigen-solver, one of `EIGEN_METHODS`."""

    def as_dict(self):
        """Return mutable copy of default parameters as a dictionary."""
        return asdict(self)
