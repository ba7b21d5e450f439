"""> CPOBingham: tests for command line tools."""

import multiprocessing as mp

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from cpobingham import cli as _cli
from cpobingham import exceptions as _err
from cpobingham import io as _io
from cpobingham import particles as _particles
from cpobingham import utils as _utils


@pytest.fixture
def textures_file(tmp_path, seed):
    rng = np.random.default_rng(seed)
    fractions = rng.random((3, 2, 8))
    fractions /= fractions.sum(axis=-1, keepdims=True)
    orientations = Rotation.random(3 * 2 * 8, random_state=seed).as_matrix()
    textures = _particles.TextureArrays(fractions, orientations.reshape(3, 2, 8, 3, 3))
    textures.save(tmp_path / "textures.npz")
    return tmp_path / "textures.npz", textures


def _read_averages(path):
    data = _io.read_scsv(path)
    n_rows = len(data.particle)
    return data, np.array(data[2:]).transpose().reshape((n_rows, 3, 3))


def test_bingham_averager(tmp_path, textures_file):
    """Test averaging textures from an NPZ file with command line options."""
    infile, textures = textures_file
    outfile = tmp_path / "averages.scsv"
    output = _cli.BinghamAverager()(
        ["-i", str(infile), "-o", str(outfile), "--seed", "5", "--samples", "20"]
    )
    assert output == outfile.resolve()
    assert outfile.with_suffix(".log").exists()
    data, averages = _read_averages(outfile)
    assert data.particle == (0, 0, 1, 1, 2, 2)
    assert data.mineral == (0, 1, 0, 1, 0, 1)
    averager = _particles.CPOBinghamAverage(
        2, 8, {"random_seed": 5, "number_of_samples": 20}
    )
    for row, (particle, mineral) in enumerate(zip(data.particle, data.mineral)):
        np.testing.assert_array_equal(
            averages[row], averager.compute(textures, particle)[mineral]
        )


def test_bingham_averager_config(tmp_path, textures_file):
    """Test averaging textures with options from a configuration file."""
    infile, textures = textures_file
    config = tmp_path / "run.toml"
    config.write_text(
        f"""
[input]
textures = "{infile.name}"
rank = 1

[output]
directory = "results"
log_level = "INFO"

[parameters]
random_seed = 3
c_axis_eigenvalue = "a"
"""
    )
    output = _cli.BinghamAverager()(["-c", str(config)])
    assert output == (tmp_path / "results" / "run.scsv").resolve()
    _, averages = _read_averages(output)
    averager = _particles.CPOBinghamAverage(
        2, 8, {"random_seed": 3, "c_axis_eigenvalue": "a"}, rank=1
    )
    np.testing.assert_array_equal(averages[2:4], averager.compute(textures, 1))
    # Command line options take precedence over the configuration file.
    override = _cli.BinghamAverager()(
        ["-c", str(config), "-r", "0", "-o", str(tmp_path / "rank0.scsv")]
    )
    _, averages0 = _read_averages(override)
    averager0 = _particles.CPOBinghamAverage(
        2, 8, {"random_seed": 3, "c_axis_eigenvalue": "a"}, rank=0
    )
    np.testing.assert_array_equal(averages0[2:4], averager0.compute(textures, 1))


def test_bingham_averager_all_cpus(tmp_path, textures_file, monkeypatch):
    """Test that `--ncpus 0` uses the default process count and matches serial runs."""
    infile, _ = textures_file
    calls = []

    def _ncpus():
        calls.append(None)
        return 2

    monkeypatch.setattr(_utils, "default_ncpus", _ncpus)
    monkeypatch.setattr(_utils, "import_proc_pool", lambda: (mp.Pool, False))
    args = ["-i", str(infile), "--seed", "7"]
    serial = _cli.BinghamAverager()(args + ["-o", str(tmp_path / "serial.scsv")])
    parallel = _cli.BinghamAverager()(
        args + ["-o", str(tmp_path / "parallel.scsv"), "--ncpus", "0"]
    )
    assert len(calls) == 1
    np.testing.assert_array_equal(
        _read_averages(parallel)[1], _read_averages(serial)[1]
    )


def test_bingham_averager_errors(tmp_path, textures_file):
    infile, _ = textures_file
    with pytest.raises(_err.ConfigError):
        _cli.BinghamAverager()(["-o", str(tmp_path / "out.scsv")])
    with pytest.raises(_err.ConfigError):
        _cli.BinghamAverager()(
            ["-i", str(infile), "-o", str(tmp_path / "out.scsv"), "--seed", "-1"]
        )


def test_cli_handlers():
    assert isinstance(_cli.CLI_HANDLERS.bingham_averager, _cli.BinghamAverager)
