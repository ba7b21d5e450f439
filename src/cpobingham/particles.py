"""> CPOBingham: Bingham average particle property and grain data providers.

The `CPOBinghamAverage` property computes, for every particle and every mineral phase,
the volume-weighted Bingham averages of the crystallographic a, b and c axes. Grain
data is supplied by a provider that implements the `GrainData` protocol, for example
`TextureArrays` (NPZ-backed arrays) or `CPOBuffer` (flat per-particle buffers laid out
like the upstream CPO particle property).

The averages are written to a flat per-particle buffer, with 9 contiguous values per
mineral starting at `data_position + mineral * 9`, in the order
a₀, a₁, a₂, b₀, b₁, b₂, c₀, c₁, c₂.

"""

import functools as ft
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from cpobingham import core as _core
from cpobingham import diagnostics as _diagnostics
from cpobingham import exceptions as _err
from cpobingham import io as _io
from cpobingham import logger as _log
from cpobingham import stats as _stats
from cpobingham import utils as _utils


class GrainData(Protocol):
    """Interface of grain data providers."""

    n_minerals: int
    n_grains: int

    def get_volume_fraction(self, particle: int, mineral: int, grain: int) -> float:
        ...

    def get_orientation_matrix(
        self, particle: int, mineral: int, grain: int
    ) -> np.ndarray:
        ...


def grain_population(provider: GrainData, particle: int, mineral: int):
    """Get grain volume fractions and orientation matrices for one mineral."""
    fractions = np.empty(provider.n_grains)
    orientations = np.empty((provider.n_grains, 3, 3))
    for grain in range(provider.n_grains):
        fractions[grain] = provider.get_volume_fraction(particle, mineral, grain)
        orientations[grain] = provider.get_orientation_matrix(particle, mineral, grain)
    return fractions, orientations


@dataclass
class TextureArrays:
    """Grain data of many particles stored in arrays.

    - `fractions` — P x `n_minerals` x `n_grains` grain volume fractions
    - `orientations` — P x `n_minerals` x `n_grains` x 3 x 3 orientation matrices

    Particles are identified by their index along the first axis.

    """

    fractions: np.ndarray
    orientations: np.ndarray

    def __post_init__(self):
        self.fractions = np.asarray(self.fractions, dtype=np.float64)
        self.orientations = np.asarray(self.orientations, dtype=np.float64)
        if (
            self.fractions.ndim != 3
            or self.orientations.shape != (*self.fractions.shape, 3, 3)
        ):
            raise ValueError(
                "invalid shape of texture arrays,"
                + f" got fractions of shape {self.fractions.shape}"
                + f" and orientations of shape {self.orientations.shape}"
            )

    @property
    def n_particles(self):
        return self.fractions.shape[0]

    @property
    def n_minerals(self):
        return self.fractions.shape[1]

    @property
    def n_grains(self):
        return self.fractions.shape[2]

    def get_volume_fraction(self, particle, mineral, grain):
        return self.fractions[particle, mineral, grain]

    def get_orientation_matrix(self, particle, mineral, grain):
        return self.orientations[particle, mineral, grain]

    def save(self, filename):
        """Save texture data to a `numpy` NPZ file.

        See also: `numpy.savez`, `TextureArrays.from_file`.

        """
        # Create parent directories, resolve relative paths.
        path = _io.resolve_path(filename)
        _log.info("saving texture arrays to file %s", path)
        np.savez(path, fractions=self.fractions, orientations=self.orientations)

    @classmethod
    def from_file(cls, filename):
        """Construct a `TextureArrays` instance using data from a `numpy` NPZ file.

        The file must contain the arrays "fractions" and "orientations".
        See also: `TextureArrays.save`.

        """
        if not str(filename).endswith(".npz"):
            raise ValueError(
                f"Must only load from numpy NPZ format. Cannot load from {filename}."
            )
        _log.info("loading texture arrays from file %s", filename)
        with np.load(filename) as data:
            return cls(data["fractions"], data["orientations"])


@dataclass
class CPOBuffer:
    """Grain data read from flat per-particle buffers of the upstream CPO property.

    - `data` — mapping (or sequence) from particle identity to its property buffer
    - `data_position` — offset of the CPO property in each buffer
    - `n_minerals`, `n_grains` — dimensions of the stored CPO data

    Each mineral occupies `2 + 10 * n_grains` values: the deformation type, the volume
    fraction of the mineral, and for every grain its volume fraction followed by the 9
    entries of its orientation matrix (row-major).

    """

    data: object
    data_position: int
    n_minerals: int
    n_grains: int

    @property
    def mineral_size(self):
        return 2 + 10 * self.n_grains

    def _grain_position(self, mineral, grain):
        return self.data_position + mineral * self.mineral_size + 2 + grain * 10

    def get_volume_fraction(self, particle, mineral, grain):
        return self.data[particle][self._grain_position(mineral, grain)]

    def get_orientation_matrix(self, particle, mineral, grain):
        start = self._grain_position(mineral, grain) + 1
        return np.reshape(
            np.asarray(self.data[particle][start : start + 9], dtype=np.float64),
            (3, 3),
        )


class CPOBinghamAverage:
    """Particle property holding the Bingham averages of the CPO of each mineral.

    - `n_minerals`, `n_grains` — dimensions of the upstream CPO data
    - `params` — dictionary of parameters (see `cpobingham.core.DefaultParams`),
      missing entries take their default values
    - `rank` — rank of the owning process, used to seed random number generators

    Results only depend on the parameters, the `rank` and the identity of the
    particles, so particles can be evaluated in any order and in parallel.

    """

    def __init__(self, n_minerals, n_grains, params=None, rank=0):
        self.params = _io.parse_params({} if params is None else dict(params))
        if n_minerals < 1 or n_grains < 1:
            raise _err.ConfigError(
                "CPO data must hold at least one mineral and one grain,"
                + f" not {n_minerals} mineral(s) of {n_grains} grain(s)"
            )
        if rank < 0:
            raise _err.ConfigError(f"process rank must be non-negative, not {rank}")
        self.n_minerals = n_minerals
        self.n_grains = n_grains
        self.rank = rank
        self.n_samples = self.params["number_of_samples"]
        if self.n_samples == 0:
            self.n_samples = n_grains

    def initialize(self, plugin_names):
        """Check that the upstream CPO property is registered before this one.

        - `plugin_names` — names of the registered particle properties, in the order
          in which they are evaluated

        Returns the index of the CPO property among `plugin_names`.
        Raises a `cpobingham.exceptions.ConfigError` if the CPO property is missing or
        is evaluated after this property.

        """
        names = list(plugin_names)
        if _core.CPO_PROPERTY_NAME not in names:
            raise _err.ConfigError(
                f"No {_core.CPO_PROPERTY_NAME} property plugin found."
            )
        i_cpo = names.index(_core.CPO_PROPERTY_NAME)
        if _core.PROPERTY_NAME in names and names.index(_core.PROPERTY_NAME) < i_cpo:
            raise _err.ConfigError(
                f"To use the {_core.PROPERTY_NAME} plugin,"
                + f" the {_core.CPO_PROPERTY_NAME} plugin needs to be defined before it."
            )
        _log.info(
            "computing Bingham averages of %d mineral(s) from %d samples of %d grains",
            self.n_minerals,
            self.n_samples,
            self.n_grains,
        )
        return i_cpo

    def property_information(self):
        """Get names and number of components of the output fields."""
        return [
            (f"cpo mineral {mineral} bingham average {axis.name} axis", 3)
            for mineral in range(self.n_minerals)
            for axis in _core.CrystalAxis
        ]

    def compute(self, provider: GrainData, particle: int):
        """Compute Bingham averages for all minerals of one particle.

        Returns an array of shape `n_minerals` x 3 x 3, where the rows of each 3x3
        block are the averaged a, b and c axes.

        """
        if provider.n_minerals != self.n_minerals or provider.n_grains != self.n_grains:
            raise ValueError(
                f"expected grain data for {self.n_minerals} mineral(s)"
                + f" of {self.n_grains} grain(s), got {provider.n_minerals}"
                + f" mineral(s) of {provider.n_grains} grain(s)"
            )
        rng = _stats.particle_rng(self.params["random_seed"], self.rank, particle)
        averages = np.empty((self.n_minerals, 3, 3))
        for mineral in range(self.n_minerals):
            fractions, orientations = grain_population(provider, particle, mineral)
            samples = _stats.resample_volume_weighted(
                fractions, orientations, self.n_samples, rng
            )
            averages[mineral] = _diagnostics.bingham_averages(
                samples,
                c_axis_eigenvalue=self.params["c_axis_eigenvalue"],
                method=self.params["eigen_method"],
            )
        return averages

    def initialize_one_particle(self, provider, particle, data):
        """Append the Bingham averages of a new particle to its `data` list."""
        data.extend(self.compute(provider, particle).ravel())

    def update_one_particle(self, data_position, provider, particle, data):
        """Overwrite the Bingham averages of a particle in its `data` buffer."""
        self._write(data_position, self.compute(provider, particle), data)

    def update_all(self, provider, particles, data, data_position, ncpus=1):
        """Update Bingham averages of many particles.

        - `provider` — `GrainData` provider for all `particles`
        - `particles` — identities of the particles to update
        - `data` — mapping (or sequence) from particle identity to its property buffer
        - `data_position` — offset of the Bingham averages in each buffer
        - `ncpus` — number of processes, a process pool is used if greater than 1

        """
        _particles = list(particles)
        if ncpus > 1 and len(_particles) > 1:
            Pool, HAS_RAY = _utils.import_proc_pool()
            _log.debug(
                "updating %d particles using %d processes (ray: %s)",
                len(_particles),
                ncpus,
                HAS_RAY,
            )
            with Pool(processes=ncpus) as pool:
                results = [
                    r
                    for chunk in pool.map(
                        ft.partial(self._compute_many, provider),
                        _utils.chunks(_particles, ncpus),
                    )
                    for r in chunk
                ]
        else:
            results = self._compute_many(provider, _particles)
        for particle, averages in zip(_particles, results, strict=True):
            self._write(data_position, averages, data[particle])

    def _compute_many(self, provider, particles):
        return [self.compute(provider, particle) for particle in particles]

    def _write(self, data_position, averages, data):
        n = _core.VALUES_PER_MINERAL
        for mineral, block in enumerate(averages):
            start = data_position + mineral * n
            data[start : start + n] = block.ravel()
