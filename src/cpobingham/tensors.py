"""> CPOBingham: Symmetric tensor helpers and the Jacobi eigen-solver.

The Jacobi method diagonalises a real symmetric matrix by a sequence of plane
rotations, each of which annihilates one off-diagonal element. For 3x3 matrices it
converges quadratically and reaches machine precision in a handful of sweeps.

See chapter 11.1 of Press et al., “Numerical Recipes” (3rd ed.), and
[Kopp (2008)](https://doi.org/10.1142/S0129183108012303) for a comparison with
other methods for 3x3 matrices.

"""

import numba as nb
import numpy as np

from cpobingham import exceptions as _err

_JACOBI_TOLERANCE = (64 * np.finfo(np.float64).eps) ** 2
"""Squared relative size of the off-diagonal part at which a matrix is diagonal."""


def symmetric_from_upper(upper):
    """Get symmetric matrix from its upper triangular part.

    >>> symmetric_from_upper([[1, 2, 4], [0, 3, 5], [0, 0, 6]])
    array([[1, 2, 4],
           [2, 3, 5],
           [4, 5, 6]])

    """
    _upper = np.triu(np.asarray(upper))
    return _upper + np.triu(_upper, 1).transpose()


@nb.njit
def _jacobi_sweeps(matrix, max_sweeps, tolerance):
    a = matrix.copy()
    v = np.eye(3)
    norm2 = np.sum(a**2)
    for sweep in range(max_sweeps):
        off2 = 2 * (a[0, 1] ** 2 + a[0, 2] ** 2 + a[1, 2] ** 2)
        if off2 <= tolerance * norm2:
            return np.diag(a).copy(), v, sweep
        for p in range(2):
            for q in range(p + 1, 3):
                if a[p, q] == 0.0:
                    continue
                θ = (a[q, q] - a[p, p]) / (2 * a[p, q])
                t = 1 / (np.abs(θ) + np.sqrt(θ**2 + 1))
                if θ < 0:
                    t = -t
                c = 1 / np.sqrt(t**2 + 1)
                s = t * c
                # A ← Jᵀ A J, for J the rotation in the (p, q) plane.
                for k in range(3):
                    akp = a[k, p]
                    akq = a[k, q]
                    a[k, p] = c * akp - s * akq
                    a[k, q] = s * akp + c * akq
                for k in range(3):
                    apk = a[p, k]
                    aqk = a[q, k]
                    a[p, k] = c * apk - s * aqk
                    a[q, k] = s * apk + c * aqk
                # V ← V J, columns of V are the eigenvectors.
                for k in range(3):
                    vkp = v[k, p]
                    vkq = v[k, q]
                    v[k, p] = c * vkp - s * vkq
                    v[k, q] = s * vkp + c * vkq
    return np.diag(a).copy(), v, -1


def jacobi_eigh(matrix, max_sweeps=50):
    """Get eigenvalues and eigenvectors of a symmetric 3x3 `matrix`.

    Returns a tuple of the three eigenvalues and the 3x3 array with the corresponding
    orthonormal eigenvectors in its columns. Eigenvalues are not sorted, and the sign
    of each eigenvector is arbitrary. Only the upper triangle of `matrix` is assumed
    to be meaningful, the input is symmetrised by copying it to the lower triangle.

    Raises `cpobingham.exceptions.IterationError` if `matrix` has non-finite entries
    or if the off-diagonal entries could not be reduced to machine precision within
    `max_sweeps` sweeps. The matrix is scaled by a power of two before the sweeps, so
    that entries of any finite magnitude are supported.

    >>> λ, v = jacobi_eigh([[2.0, 0.0, 0.0], [0.0, 3.0, 0.0], [0.0, 0.0, 1.0]])
    >>> λ.tolist()
    [2.0, 3.0, 1.0]
    >>> v.tolist()
    [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]

    """
    _matrix = np.asarray(matrix, dtype=np.float64)
    if _matrix.shape != (3, 3):
        raise ValueError(f"expected a 3x3 matrix, not shape {_matrix.shape}")
    _matrix = symmetric_from_upper(_matrix)
    if not np.all(np.isfinite(_matrix)):
        raise _err.IterationError(
            f"cannot diagonalise a matrix with non-finite entries\n{_matrix}",
            iterations=0,
        )
    # Scale by a power of two (exact) so that squared entries can not overflow.
    _, exponent = np.frexp(np.max(np.abs(_matrix)))
    scale = np.ldexp(1.0, exponent)
    eigenvalues, eigenvectors, n_sweeps = _jacobi_sweeps(
        _matrix / scale, max_sweeps, _JACOBI_TOLERANCE
    )
    eigenvalues *= scale
    if n_sweeps < 0:
        raise _err.IterationError(
            f"Jacobi eigen-solver did not converge within {max_sweeps} sweeps"
            + f" for the matrix\n{_matrix}",
            iterations=max_sweeps,
        )
    return eigenvalues, eigenvectors
