"""> CPOBingham: Configuration, data file Input/Output and logging contexts.

CPOBingham can read/write three kinds of files:
- configuration files (TOML), which specify parameters, input and output files
- texture files (NumPy NPZ) with grain volume fractions and orientation matrices,
  see `cpobingham.particles.TextureArrays`
- 'SCSV' files, CSV files with YAML frontmatter for (small) scientific datasets,
  used to store the computed Bingham averages

SCSV files are CSV files with a YAML header. The header is used for data attribution
and metadata, as well as a column type spec. For supported cell types, see
`SCSV_TYPEMAP`.

"""

import collections as c
import contextlib as cl
import csv
import io
import logging
import os
import pathlib
import sys

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import numpy as np
import yaml

from cpobingham import core as _core
from cpobingham import exceptions as _err
from cpobingham import logger as _log

SCSV_TYPEMAP = {"integer": int, "float": float}
"""Mapping of supported SCSV field types to corresponding Python types.

Every field must declare its type and a fill value, which stands in for missing cells.
The fill value "NaN" is only valid for float fields.

"""


def parse_config(path):
    """Parse a TOML file containing CPOBingham configuration.

    The file may contain the following tables, all of which are optional:
    - `[parameters]` — see `cpobingham.core.DefaultParams`
    - `[input]` — `textures` (path to an NPZ file) and the process `rank`
    - `[output]` — `directory`, `filename` of the SCSV output and `log_level`

    Relative paths are resolved with respect to the directory of the configuration
    file. Raises a `cpobingham.exceptions.ConfigError` for invalid values.

    """
    path = resolve_path(path)
    _log.info("parsing configuration file: %s", path)
    with open(path, "rb") as file:
        try:
            toml = tomllib.load(file)
        except tomllib.TOMLDecodeError as e:
            raise _err.ConfigError(f"invalid TOML in {path}: {e}") from None

    toml["name"] = toml.get("name", stringify(path.stem))
    toml["parameters"] = parse_params(toml.get("parameters", {}))

    _input = toml.get("input", {})
    if "textures" in _input:
        _input["textures"] = resolve_path(_input["textures"], path.parent)
    else:
        _input["textures"] = None
    _input["rank"] = _input.get("rank", 0)
    if not isinstance(_input["rank"], int) or _input["rank"] < 0:
        raise _err.ConfigError(
            f"process rank must be a non-negative integer, not {_input['rank']}"
        )
    toml["input"] = _input

    _output = toml.get("output", {})
    if "directory" in _output:
        _output["directory"] = resolve_path(_output["directory"], path.parent)
    else:
        _output["directory"] = resolve_path(pathlib.Path.cwd())
    _output["filename"] = _output.get("filename", f"{toml['name']}.scsv")
    # Default logging level for all log files.
    _output["log_level"] = _output.get("log_level", "WARNING")
    # Unknown level names are returned as "Level <name>" strings.
    if not isinstance(logging.getLevelName(_output["log_level"]), int):
        raise _err.ConfigError(f"invalid log level: {_output['log_level']}")
    toml["output"] = _output
    return toml


def parse_params(params):
    """Validate parameters and fill in missing values from `DefaultParams`.

    >>> parse_params({"number_of_samples": 10})
    {'random_seed': 1, 'number_of_samples': 10, 'c_axis_eigenvalue': 'c', 'eigen_method': 'jacobi'}

    """
    defaults = _core.DefaultParams().as_dict()
    unknown = set(params) - set(defaults)
    if unknown:
        raise _err.ConfigError(f"unknown parameters: {sorted(unknown)}")
    _params = {key: params.get(key, default) for key, default in defaults.items()}

    for key in ("random_seed", "number_of_samples"):
        value = _params[key]
        # Booleans are integers in Python, but not valid here.
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise _err.ConfigError(f"{key} must be an integer, not {value!r}")
        if value < 0:
            raise _err.ConfigError(f"{key} must be non-negative, not {value}")
        _params[key] = int(value)

    if _params["c_axis_eigenvalue"] not in ("a", "c"):
        raise _err.ConfigError(
            "c_axis_eigenvalue must be either 'a' or 'c',"
            + f" not {_params['c_axis_eigenvalue']!r}"
        )
    if _params["c_axis_eigenvalue"] == "a":
        _log.warning(
            "scaling averaged c-axes by the a-axis eigenvalue for legacy compatibility"
        )
    if _params["eigen_method"] not in _core.EIGEN_METHODS:
        raise _err.ConfigError(
            f"eigen_method must be one of {_core.EIGEN_METHODS},"
            + f" not {_params['eigen_method']!r}"
        )
    return _params


def resolve_path(path, refdir=None):
    """Resolve relative paths and create parent directories if necessary.

    Relative paths are interpreted with respect to the current working directory,
    i.e. the directory from whith the current Python process was executed,
    unless a specific reference directory is provided with `refdir`.

    """
    cwd = pathlib.Path.cwd()
    if refdir is None:
        _path = cwd / path
    else:
        _path = pathlib.Path(refdir) / path
    _path.parent.mkdir(parents=True, exist_ok=True)
    return _path.resolve()


def save_averages(file, averages, particles=None, comments=None):
    """Save Bingham averages to an SCSV file.

    - `file` — path to the output file
    - `averages` — P x `n_minerals` x 3 x 3 array of averaged a, b and c axes
    - `particles` — optional identities of the P particles, default is 0, …, P-1
    - `comments` — optional comments for the YAML header

    The file has one row per particle and mineral.

    """
    _averages = np.asarray(averages, dtype=np.float64)
    if _averages.ndim != 4 or _averages.shape[2:] != (3, 3):
        raise ValueError(
            f"expected averages of shape (P, n_minerals, 3, 3), not {_averages.shape}"
        )
    n_particles, n_minerals = _averages.shape[:2]
    if particles is None:
        particles = range(n_particles)
    particles = np.asarray(particles, dtype=int)
    if len(particles) != n_particles:
        raise ValueError(
            f"got {len(particles)} particle identities for {n_particles} particles"
        )
    fields = [
        {"name": "particle", "type": "integer", "fill": -1},
        {"name": "mineral", "type": "integer", "fill": -1},
    ] + [
        {"name": f"{axis.name}{i}", "type": "float", "fill": "NaN"}
        for axis in _core.CrystalAxis
        for i in range(3)
    ]
    columns = [
        np.repeat(particles, n_minerals).tolist(),
        np.tile(np.arange(n_minerals), n_particles).tolist(),
    ] + list(_averages.reshape((n_particles * n_minerals, 9)).transpose().tolist())
    save_scsv(
        file,
        {"delimiter": ",", "missing": "-", "fields": fields},
        columns,
        comments=comments,
    )


def read_scsv(file):
    """Read data from an SCSV file.

    Returns a NamedTuple with columns of the csv data, missing cells take the fill
    value of their field. See also `save_scsv`.

    """
    path = resolve_path(file)
    yaml_lines = []
    csv_lines = []
    with open(path) as fileref:
        is_yaml = False
        for line in fileref:
            if line.strip() == "":  # Empty lines are skipped.
                continue
            if line.rstrip() == "---":
                # First --- begins YAML section, second --- ends it.
                is_yaml = not is_yaml
                continue
            if is_yaml:
                yaml_lines.append(line)
            else:
                csv_lines.append(line)

    schema = yaml.safe_load(io.StringIO("".join(yaml_lines)))["schema"]
    if not _validate_scsv_schema(schema):
        raise _err.SCSVError(
            f"unable to parse SCSV schema from '{file}'."
            + " Check logging output for details."
        )
    reader = csv.reader(csv_lines, delimiter=schema["delimiter"], skipinitialspace=True)
    fields = schema["fields"]
    names = [field["name"] for field in fields]
    header = [s.strip() for s in next(reader)]
    if names != header:
        raise _err.SCSVError(
            f"schema field names must match column headers in '{file}'."
            + f" You've supplied schema fields\n{names}"
            + f"\n with column headers\n{header}"
        )

    _log.info("reading SCSV file: %s", path)
    Columns = c.namedtuple("Columns", names)
    rows = list(reader)
    if len(rows) == 0:
        return Columns._make([() for _ in names])
    return Columns._make(
        [
            tuple(_parse_scsv_cell(field, cell, schema["missing"]) for cell in column)
            for field, column in zip(fields, zip(*rows), strict=True)
        ]
    )


def write_scsv_header(stream, schema, comments=None):
    """Write YAML header to an SCSV stream.

    - `stream` — open output stream (e.g. file handle) where data should be written
    - `schema` — SCSV schema dictionary, with 'delimiter', 'missing' and 'fields' keys
    - `comments` (optional) — array of comments to be written above the schema, each on
      a new line with an '#' prefix

    See also `read_scsv`, `save_scsv`.

    """
    if not _validate_scsv_schema(schema):
        raise _err.SCSVError(
            "refusing to write invalid schema to stream."
            + " Check logging output for details."
        )

    stream.write("---" + os.linesep)
    for comment in comments or ():
        stream.write("# " + comment + os.linesep)
    stream.write("schema:" + os.linesep)
    stream.write(f"  delimiter: '{schema['delimiter']}'{os.linesep}")
    stream.write(f"  missing: '{schema['missing']}'{os.linesep}")
    stream.write("  fields:" + os.linesep)
    for field in schema["fields"]:
        stream.write(f"    - name: {field['name']}{os.linesep}")
        stream.write(f"      type: {field['type']}{os.linesep}")
        if "unit" in field:
            stream.write(f"      unit: {field['unit']}{os.linesep}")
        stream.write(f"      fill: {field['fill']}{os.linesep}")
    stream.write("---" + os.linesep)


def save_scsv(file, schema, data, **kwargs):
    """Save data to SCSV file.

    - `file` — path to the file where the data should be written
    - `schema` — SCSV schema dictionary, with 'delimiter', 'missing' and 'fields' keys
    - `data` — data arrays (columns) of equal length

    Cells equal to the fill value of their field are written as the 'missing' string.
    Optional keyword arguments are passed to `write_scsv_header`. See also `read_scsv`.

    """
    path = resolve_path(file)
    fields = schema.get("fields", ())
    if len(data) != len(fields):
        raise _err.SCSVError(
            "number of fields declared in schema does not match number of data columns."
            + f" Declared schema fields were {[f['name'] for f in fields]};"
            + f" got {len(data)} data columns"
        )
    n_rows = len(data[0])
    for col in data[1:]:
        if len(col) != n_rows:
            raise _err.SCSVError(
                "refusing to write data columns of unequal length to SCSV file"
            )

    _log.info("writing to SCSV file: %s", file)
    try:
        with open(path, mode="w", newline="") as stream:
            write_scsv_header(stream, schema, **kwargs)
            writer = csv.writer(
                stream, delimiter=schema["delimiter"], lineterminator=os.linesep
            )
            writer.writerow([field["name"] for field in fields])
            for row in zip(*data):
                writer.writerow(
                    [
                        _format_scsv_cell(field, cell, schema["missing"])
                        for field, cell in zip(fields, row, strict=True)
                    ]
                )
    except ValueError as e:
        path.unlink(missing_ok=True)
        raise _err.SCSVError(str(e)) from None


def _validate_scsv_schema(schema):
    format_ok = (
        "delimiter" in schema
        and "missing" in schema
        and "fields" in schema
        and len(schema["fields"]) > 0
        and schema["delimiter"] != schema["missing"]
        and schema["delimiter"] not in schema["missing"]
    )
    if not format_ok:
        _log.error(
            "invalid format for SCSV schema: %s"
            + "\nMust contain: 'delimiter', 'missing', 'fields'"
            + "\nMust contain at least one field."
            + "\nMust contain compatible 'missing' and 'delimiter' values.",
            schema,
        )
        return False
    for field in schema["fields"]:
        if not field["name"].isidentifier():
            _log.error(
                "SCSV field name '%s' is not a valid Python identifier", field["name"]
            )
            return False
        if field.get("type") not in SCSV_TYPEMAP:
            _log.error("unsupported SCSV field type: '%s'", field.get("type"))
            return False
        try:
            _scsv_fill(field)
        except (KeyError, ValueError):
            _log.error(
                "SCSV field '%s' requires a fill value of type '%s'",
                field["name"],
                field["type"],
            )
            return False
    return True


def _scsv_fill(field):
    func = SCSV_TYPEMAP[field["type"]]
    if field["fill"] == "NaN":
        return func(np.nan)
    return func(field["fill"])


def _parse_scsv_cell(field, data, missingstr):
    if data.strip() == missingstr:
        return _scsv_fill(field)
    return SCSV_TYPEMAP[field["type"]](data.strip())


def _format_scsv_cell(field, value, missingstr):
    func = SCSV_TYPEMAP[field["type"]]
    try:
        parsed = func(str(value).strip())
    except ValueError:
        raise ValueError(
            f"invalid data for column '{field['name']}'."
            + f" Cannot parse {value} as type '{field['type']}'."
        ) from None
    fill = _scsv_fill(field)
    if parsed == fill or (func is float and np.isnan(parsed) and np.isnan(fill)):
        return missingstr
    return repr(parsed) if func is float else str(parsed)


def stringify(s):
    """Return a cleaned version of a string for use in filenames, etc.

    >>> stringify("run 1/a.toml")
    'run1atoml'

    """
    return "".join(filter(lambda c: str.isidentifier(c) or str.isdecimal(c), str(s)))


@cl.contextmanager
def logfile_enable(path, level: str | int = logging.DEBUG, mode="w"):
    """Enable logging to a file at `path` with given `level`.

    Logging levels are documented here:
    - <https://docs.python.org/3/library/logging.html#logging-levels>

    """
    formatter = logging.Formatter(
        "%(levelname)s [%(asctime)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Path can be an io.TextIOWrapper or io.StringIO, for testing purposes.
    logger_file: logging.StreamHandler | logging.FileHandler
    if isinstance(path, (io.StringIO, io.TextIOWrapper)):
        _log.debug("enabling logging at %s level to IO stream", level)
        logger_file = logging.StreamHandler(path)
    else:
        _log.debug("enabling logging at %s level to %s", level, path)
        logger_file = logging.FileHandler(resolve_path(path), mode=mode)
    logger_file.setFormatter(formatter)
    logger_file.setLevel(level)
    _log.LOGGER.addHandler(logger_file)
    try:
        yield
    finally:
        if not isinstance(path, (io.StringIO, io.TextIOWrapper)):
            logger_file.close()
        _log.LOGGER.removeHandler(logger_file)


@cl.contextmanager
def log_cli_level(level: str | int, handler: logging.Handler = _log.CONSOLE_LOGGER):
    """Set console logging handler level for current context.

    >>> import logging
    >>> from cpobingham import logger as _log
    >>> with log_cli_level(logging.DEBUG):
    ...     _log.CONSOLE_LOGGER.level == logging.DEBUG
    True
    >>> _log.CONSOLE_LOGGER.level == logging.DEBUG
    False

    """
    default_level = handler.level
    handler.setLevel(level)
    try:
        yield
    finally:
        handler.setLevel(default_level)
