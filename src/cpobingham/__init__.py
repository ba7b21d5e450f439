r"""
#### Volume-weighted Bingham averages of crystallographic preferred orientation

---

## Introduction

Polycrystals, e.g. in Earth's mantle, are composed of many grains with different
volumes and lattice orientations. Numerical models of crystallographic preferred
orientation (CPO) track a fixed number of surrogate grains per mineral phase, each
with a volume fraction and an orientation matrix. CPOBingham reduces such a
population to a single representative orientation per mineral phase, suitable for
visualisation or for downstream anisotropy calculations.

The reduction happens in two steps:

- **Volume-weighted resampling:** the grain volumes define a discrete distribution
  from which a fixed number of orientations is drawn with replacement
  (`cpobingham.stats.resample_volume_weighted`), so that the drawn population has
  uniform weights.

- **Bingham averaging:** for each crystallographic axis (a, b and c), the scatter
  (second-moment) tensor
  $$
  T = \sum_{k=1}^{M} \mathbf{x}_k \mathbf{x}_k^{T}
  $$
  of the axis direction cosines $\mathbf{x}_k$ is accumulated and diagonalised
  (`cpobingham.stats.ScatterTensor`). The eigenvector with the largest eigenvalue is
  the average axis direction, and it is returned scaled by that eigenvalue
  (`cpobingham.diagnostics.bingham_averages`).

The particle property `cpobingham.particles.CPOBinghamAverage` applies both steps to
every mineral phase of every particle and writes the 9 averaged axis components per
mineral into flat particle buffers. Random draws are seeded from a configured seed,
the process rank and the particle identity, so that results are reproducible and
independent of the order of evaluation.

See also: [Watson (1966)](https://doi.org/10.1086%2F627211),
[Mardia & Jupp, “Directional Statistics”](https://doi.org/10.1002/9780470316979).

## Command line usage

    cpobingham -i textures.npz -o averages.scsv --seed 1

See `cpobingham.cli.BinghamAverager` and `cpobingham.io.parse_config` for options.

"""

# Set up the top-level cpobingham namespace for convenient usage.
# To keep it clean, we don't want every single symbol here, especially not those from
# `utils` or `io` modules, which should be explicitly imported instead.
from cpobingham.core import CrystalAxis, DefaultParams
from cpobingham.diagnostics import bingham_average, bingham_averages
from cpobingham.exceptions import ConfigError, Error, IterationError
from cpobingham.particles import (
    CPOBinghamAverage,
    CPOBuffer,
    GrainData,
    TextureArrays,
)
from cpobingham.stats import (
    ScatterTensor,
    particle_rng,
    resample_orientations,
    resample_volume_weighted,
    scatter_tensor,
    scatter_tensors,
)
from cpobingham.tensors import jacobi_eigh
