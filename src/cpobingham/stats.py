"""> CPOBingham: Statistical methods for orientation data.

Grain volume fractions describe a continuous, volume-weighted orientation
distribution. The functions here convert it to a discrete, unweighted sample by
random draws (`resample_volume_weighted`, `resample_orientations`) and accumulate the
second-moment (scatter) tensors of the crystallographic axes (`scatter_tensor`).

"""

from dataclasses import dataclass

import numpy as np
from scipy import linalg as la

from cpobingham import core as _core
from cpobingham import logger as _log
from cpobingham import tensors as _tensors


def particle_rng(seed: int, rank: int = 0, particle: int = 0) -> np.random.Generator:
    """Get a random number generator for one particle.

    The generator is seeded from the configured `seed`, the `rank` of the owning
    process and the `particle` identity, so that draws do not depend on the order in
    which particles are evaluated, nor on any other particle.

    >>> rng1 = particle_rng(1, rank=0, particle=42)
    >>> rng2 = particle_rng(1, rank=0, particle=42)
    >>> bool(rng1.random() == rng2.random())
    True
    >>> bool(particle_rng(1, 0, 42).random() == particle_rng(1, 1, 42).random())
    False

    """
    if seed < 0 or rank < 0 or particle < 0:
        raise ValueError(
            "seed, rank and particle must be non-negative integers,"
            + f" not ({seed}, {rank}, {particle})"
        )
    return np.random.default_rng(
        np.random.SeedSequence([int(seed), int(rank), int(particle)])
    )


def _sort_descending(fractions):
    # Stable, so grains with equal volume keep their original order.
    return np.argsort(-fractions, kind="stable")


def _draw_indices(cumfrac, draws):
    # Number of cumulative volumes strictly less than each draw,
    # falling back to the last entry when the draw exceeds all of them.
    count_less = np.searchsorted(cumfrac, draws, side="left")
    return np.minimum(count_less, len(cumfrac) - 1)


def resample_volume_weighted(fractions, orientations, n_samples, rng):
    """Draw `n_samples` orientations with probability given by the grain volumes.

    - `fractions` — N grain volume fractions (non-negative, need not sum to 1)
    - `orientations` — Nx3x3 grain orientation matrices
    - `n_samples` — number of orientations to draw (with replacement)
    - `rng` — random number generator, e.g. from `particle_rng`, or any object with a
      `random(size)` method that returns values in [0, 1)

    Grains are sorted by volume in descending order (ties keep their input order),
    and each uniform random draw selects the first grain whose cumulative volume is
    not less than the draw. If the fractions sum to less than the draw, the grain with
    the smallest volume is selected. In particular, all-zero fractions select the same
    (last sorted) grain for every draw.

    Returns the `n_samples`x3x3 array of drawn orientations.

    >>> orientations = np.stack([np.eye(3), -np.eye(3)])
    >>> samples = resample_volume_weighted([0.0, 1.0], orientations, 3, particle_rng(1))
    >>> samples.shape
    (3, 3, 3)
    >>> bool(np.all(samples == -np.eye(3)))
    True

    """
    _fractions = np.asarray(fractions, dtype=np.float64)
    _orientations = np.asarray(orientations, dtype=np.float64)
    if (
        _fractions.ndim != 1
        or _orientations.shape[1:] != (3, 3)
        or _orientations.shape[0] != _fractions.shape[0]
    ):
        raise ValueError(
            "invalid shape of input arrays,"
            + f" got orientations of shape {_orientations.shape}"
            + f" and fractions of shape {_fractions.shape}"
        )
    if len(_fractions) == 0:
        raise ValueError("cannot resample an empty grain population")
    if n_samples < 0:
        raise ValueError(f"number of samples must be non-negative, not {n_samples}")
    if np.any(_fractions < 0):
        raise ValueError(f"grain volume fractions must be non-negative:\n{_fractions}")

    sort_descending = _sort_descending(_fractions)
    cumfrac = _fractions[sort_descending].cumsum()
    if not np.isclose(cumfrac[-1], 1.0):
        _log.debug(
            "resampling grain volumes which sum to %s instead of 1", cumfrac[-1]
        )
    draws = np.asarray(rng.random(n_samples), dtype=np.float64)
    return _orientations[sort_descending][_draw_indices(cumfrac, draws)]


def resample_orientations(
    orientations: np.ndarray,
    fractions: np.ndarray,
    n_samples: int | None = None,
    seed: int | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Return new samples from `orientations` weighted by the volume distribution.

    - `orientations` — NxMx3x3 array of orientations
    - `fractions` — NxM array of grain volume fractions
    - `n_samples` — optional number of samples to return, default is M
    - `seed` — optional seed for the random number generator, which is used to pick
      random grain volume samples from the discrete distribution

    Returns the Nx`n_samples`x3x3 orientations and the volumes of the drawn grains.
    The selection rule is the same as for `resample_volume_weighted`,
    one generator is shared by all N polycrystals.

    """
    # Allow lists of Rotation.as_matrix() inputs.
    _orientations = np.asarray(orientations)
    _fractions = np.asarray(fractions)
    # Fail early to prevent possibly expensive data processing on incorrect data arrays.
    if (
        len(_orientations.shape) != 4
        or len(_fractions.shape) != 2
        or _orientations.shape[0] != _fractions.shape[0]
        or _orientations.shape[1] != _fractions.shape[1]
        or _orientations.shape[2:] != (3, 3)
    ):
        raise ValueError(
            "invalid shape of input arrays,"
            + f" got orientations of shape {_orientations.shape}"
            + f" and fractions of shape {_fractions.shape}"
        )
    rng = np.random.default_rng(seed=seed)
    if n_samples is None:
        n_samples = _fractions.shape[1]
    out_orientations = np.empty((len(_fractions), n_samples, 3, 3))
    out_fractions = np.empty((len(_fractions), n_samples))
    for i, (frac, orient) in enumerate(zip(_fractions, _orientations, strict=True)):
        sort_descending = _sort_descending(frac)
        frac_descending = frac[sort_descending]
        indices = _draw_indices(frac_descending.cumsum(), rng.random(n_samples))
        out_orientations[i, ...] = orient[sort_descending][indices]
        out_fractions[i, ...] = frac_descending[indices]
    return out_orientations, out_fractions


@dataclass(frozen=True)
class ScatterTensor:
    """Second-moment (scatter) tensor of one crystallographic axis.

    The tensor is the sum of the outer products of the axis direction cosines
    $[l, m, n]$ with themselves, see eq. 2.4 in
    [Watson (1966)](https://doi.org/10.1086%2F627211) or eq. 9.2.10 in
    [Mardia & Jupp, “Directional Statistics”](https://doi.org/10.1002/9780470316979).
    Its eigenvector with the largest eigenvalue is the Bingham average direction,
    and the eigenvalue measures the concentration of the axes around it.

    """

    axis: _core.CrystalAxis
    matrix: np.ndarray
    n_samples: int

    def eigen(self, method="jacobi"):
        """Get eigenvalues and eigenvectors (in columns) of the tensor.

        Supported methods are "jacobi" (`cpobingham.tensors.jacobi_eigh`)
        and "eigh" (`scipy.linalg.eigh`).

        """
        match method:
            case "jacobi":
                return _tensors.jacobi_eigh(self.matrix)
            case "eigh":
                return la.eigh(self.matrix)
            case _:
                raise ValueError(
                    f"unsupported eigen method '{method}',"
                    + f" use one of {_core.EIGEN_METHODS}"
                )

    def dominant(self, method="jacobi"):
        """Get the largest eigenvalue and its (unit, unsigned) eigenvector."""
        eigenvalues, eigenvectors = self.eigen(method)
        # The ordering of eigenvalues depends on the solver, so pick explicitly.
        i_max = np.argmax(eigenvalues)
        return eigenvalues[i_max], eigenvectors[:, i_max]


def _scatter_matrix(orientations, row):
    # Symmetric scatter (inertia) matrix of the [l, m, n] direction cosines,
    # taking the row assumes that `orientations` are passive rotations of the
    # reference frame [h, k, l] vector.
    scatter = np.zeros((3, 3))
    scatter[0, 0] = np.sum(orientations[:, row, 0] ** 2)
    scatter[1, 1] = np.sum(orientations[:, row, 1] ** 2)
    scatter[2, 2] = np.sum(orientations[:, row, 2] ** 2)
    scatter[0, 1] = scatter[1, 0] = np.sum(
        orientations[:, row, 0] * orientations[:, row, 1]
    )
    scatter[0, 2] = scatter[2, 0] = np.sum(
        orientations[:, row, 0] * orientations[:, row, 2]
    )
    scatter[1, 2] = scatter[2, 1] = np.sum(
        orientations[:, row, 1] * orientations[:, row, 2]
    )
    return scatter


def scatter_tensor(orientations, axis="a"):
    """Get the `ScatterTensor` of the given crystallographic `axis`.

    - `orientations` — Mx3x3 array of orientation matrices (M may be 0)
    - `axis` — "a", "b", "c" or a `cpobingham.core.CrystalAxis`

    >>> tensor = scatter_tensor(np.stack([np.eye(3)] * 4), axis="b")
    >>> tensor.matrix.tolist()
    [[0.0, 0.0, 0.0], [0.0, 4.0, 0.0], [0.0, 0.0, 0.0]]

    """
    _axis = _core.CrystalAxis.parse(axis)
    _orientations = np.asarray(orientations, dtype=np.float64).reshape((-1, 3, 3))
    return ScatterTensor(
        _axis, _scatter_matrix(_orientations, _axis.value), len(_orientations)
    )


def scatter_tensors(orientations):
    """Get the `ScatterTensor`s of the a, b and c axes."""
    return tuple(scatter_tensor(orientations, axis) for axis in _core.CrystalAxis)
