"""> CPOBingham: Entry points and argument handling for command line tools.

All CLI handlers should be registered in the `CLI_HANDLERS` namedtuple,
which ensures that they will be installed as executable scripts alongside the package.

"""

import argparse
import os
from collections import namedtuple

import numpy as np
from tqdm import tqdm

from cpobingham import core as _core
from cpobingham import exceptions as _err
from cpobingham import io as _io
from cpobingham import logger as _log
from cpobingham import particles as _particles
from cpobingham import utils as _utils


class CliTool:
    """Base class for CLI tools defining the required interface."""

    def __call__(self):
        return NotImplementedError

    def _get_args(self) -> argparse.Namespace | type[NotImplementedError]:
        return NotImplementedError


class BinghamAverager(CliTool):
    """CPOBingham script to compute Bingham averages of textures stored in NPZ files.

    The NPZ file must contain the arrays "fractions" (grain volume fractions, of shape
    P x n_minerals x n_grains) and "orientations" (orientation matrices, of shape
    P x n_minerals x n_grains x 3 x 3) for P particles. Parameters and file paths can
    be given in a TOML configuration file, command line options take precedence.
    The averages are written to an SCSV file with one row per particle and mineral.

    """

    def __call__(self, argv=None):
        args = self._get_args(argv)
        if args.config is not None:
            config = _io.parse_config(args.config)
        else:
            config = {
                "name": "bingham_averages",
                "parameters": _io.parse_params({}),
                "input": {"textures": None, "rank": 0},
                "output": {
                    "directory": _io.resolve_path(os.getcwd()),
                    "filename": "bingham_averages.scsv",
                    "log_level": "WARNING",
                },
            }

        params = config["parameters"]
        if args.seed is not None:
            params["random_seed"] = args.seed
        if args.samples is not None:
            params["number_of_samples"] = args.samples
        if args.legacy_c_axis:
            params["c_axis_eigenvalue"] = "a"
        rank = config["input"]["rank"] if args.rank is None else args.rank
        textures = args.input if args.input is not None else config["input"]["textures"]
        if textures is None:
            raise _err.ConfigError("no input texture file given")
        if args.output is not None:
            output = _io.resolve_path(args.output)
        else:
            _output = config["output"]
            output = _io.resolve_path(_output["filename"], _output["directory"])

        logfile = output.with_suffix(".log")
        with _io.logfile_enable(logfile, level=config["output"]["log_level"]):
            data = _particles.TextureArrays.from_file(str(textures))
            averager = _particles.CPOBinghamAverage(
                data.n_minerals, data.n_grains, params=params, rank=rank
            )
            averager.initialize([_core.CPO_PROPERTY_NAME, _core.PROPERTY_NAME])
            results = np.empty(
                (data.n_particles, data.n_minerals * _core.VALUES_PER_MINERAL)
            )
            particles = range(data.n_particles)
            ncpus = args.ncpus if args.ncpus > 0 else _utils.default_ncpus()
            if ncpus > 1:
                averager.update_all(data, particles, results, 0, ncpus=ncpus)
            else:
                for particle in tqdm(particles, desc="Averaging"):
                    averager.update_one_particle(0, data, particle, results[particle])
            _io.save_averages(
                output,
                results.reshape((data.n_particles, data.n_minerals, 3, 3)),
                comments=[
                    f"Bingham averages of {textures}",
                    f"random_seed: {params['random_seed']}, rank: {rank}",
                    f"number_of_samples: {averager.n_samples}",
                    f"c_axis_eigenvalue: {params['c_axis_eigenvalue']}",
                ],
            )
        _log.info("saved Bingham averages to %s", output)
        return output

    def _get_args(self, argv=None) -> argparse.Namespace:
        assert self.__doc__ is not None, f"missing docstring for {self}"
        description, epilog = self.__doc__.split(os.linesep + os.linesep, 1)
        parser = argparse.ArgumentParser(description=description, epilog=epilog)
        parser.add_argument(
            "-i", "--input", help="input texture file (.npz)", default=None
        )
        parser.add_argument(
            "-c", "--config", help="configuration file (.toml)", default=None
        )
        parser.add_argument(
            "-o", "--output", help="output file (.scsv)", default=None
        )
        parser.add_argument(
            "-s", "--seed", help="seed for the random draws", type=int, default=None
        )
        parser.add_argument(
            "-n",
            "--samples",
            help="number of orientations drawn per mineral (0 means number of grains)",
            type=int,
            default=None,
        )
        parser.add_argument(
            "-r",
            "--rank",
            help="process rank mixed into the random seed",
            type=int,
            default=None,
        )
        parser.add_argument(
            "--ncpus",
            help="number of processes to use (0 means all but one available CPU)",
            type=int,
            default=1,
        )
        parser.add_argument(
            "--legacy-c-axis",
            help="scale averaged c-axes by the a-axis eigenvalue (legacy output)",
            action="store_true",
        )
        return parser.parse_args(argv)


# These are not the final names of the executables (those are set in pyproject.toml).
_CLI_HANDLERS = namedtuple("_CLI_HANDLERS", ("bingham_averager",))
CLI_HANDLERS = _CLI_HANDLERS(bingham_averager=BinghamAverager())
