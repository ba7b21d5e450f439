"""> CPOBingham: Bingham averages of grain orientations.

.. note::
    Calculations expect orientation matrices $a$ to represent passive
    (i.e. alias) rotations, such that a[i, j] gives the direction cosine of the angle
    between the i-th grain axis and the j-th external axis (in the global Eulerian
    frame). See also `cpobingham.core`.

The Bingham average is antipodally symmetric, the sign of the averaged axes is
arbitrary and depends on the eigen-solver. Consumers of the averages should not
depend on it.

"""

import numpy as np
from scipy import linalg as la

from cpobingham import core as _core
from cpobingham import logger as _log
from cpobingham import stats as _stats


def bingham_average(orientations, axis="a", method="jacobi"):
    """Compute Bingham average of orientation matrices.

    Returns the antipodally symmetric average orientation
    of the given crystallographic `axis`, or the a-axis by default,
    as a unit vector. Valid axis specifiers are "a" for [100], "b" for [010]
    and "c" for [001].

    See also: [Watson (1966)](https://doi.org/10.1086%2F627211),
    [Mardia & Jupp, “Directional Statistics”](https://doi.org/10.1002/9780470316979).

    >>> bingham_average(np.stack([np.eye(3)] * 5), axis="c").tolist()
    [0.0, 0.0, 1.0]

    """
    # https://courses.eas.ualberta.ca/eas421/lecturepages/orientation.html
    # Eigenvector corresponding to largest eigenvalue is the mean direction.
    _, mean_vector = _stats.scatter_tensor(orientations, axis).dominant(method)
    return mean_vector / la.norm(mean_vector)


def bingham_averages(orientations, c_axis_eigenvalue="c", method="jacobi"):
    """Compute eigenvalue-weighted Bingham averages of the a, b and c axes.

    - `orientations` — Mx3x3 array of (resampled, equally weighted) orientations
    - `c_axis_eigenvalue` — "c" to scale the averaged c-axis by its own eigenvalue,
      or "a" to reproduce the legacy scaling by the a-axis eigenvalue
    - `method` — symmetric eigen-solver, see `cpobingham.stats.ScatterTensor.eigen`

    Returns a 3x3 array with the averaged a, b and c axes in its rows.
    Each average is the dominant eigenvector of the axis scatter tensor scaled by the
    dominant eigenvalue, so that its length measures the concentration of the axes
    (it equals M for perfectly aligned axes). An empty population returns zeros.

    >>> bingham_averages(np.stack([np.eye(3)] * 4)).tolist()
    [[4.0, 0.0, 0.0], [0.0, 4.0, 0.0], [0.0, 0.0, 4.0]]

    """
    if c_axis_eigenvalue not in ("a", "c"):
        raise ValueError(
            f"c_axis_eigenvalue must be either 'a' or 'c', not {c_axis_eigenvalue}"
        )
    _orientations = np.asarray(orientations, dtype=np.float64).reshape((-1, 3, 3))
    if len(_orientations) == 0:
        _log.debug("computing Bingham averages of an empty population")
        return np.zeros((3, 3))

    mean_vectors = np.empty((3, 3))
    eigenvalues = np.empty(3)
    for tensor in _stats.scatter_tensors(_orientations):
        eigenvalues[tensor.axis], mean_vectors[tensor.axis] = tensor.dominant(method)
    if c_axis_eigenvalue == "a":
        eigenvalues[_core.CrystalAxis.c] = eigenvalues[_core.CrystalAxis.a]
    return mean_vectors * eigenvalues[:, np.newaxis]
