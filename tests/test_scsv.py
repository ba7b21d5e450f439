"""> CPOBingham: tests for the SCSV plain text file format."""
import tempfile

import numpy as np
import pytest
from numpy import testing as nt

from cpobingham import io as _io
from cpobingham import logger as _log
from cpobingham import exceptions as _err


def test_validate_schema():
    """Test SCSV schema validation."""
    schema_nofill = {
        "delimiter": ",",
        "missing": "-",
        "fields": [{"name": "nofill", "type": "float"}],
    }
    schema_nomissing = {
        "delimiter": ",",
        "fields": [{"name": "nomissing", "type": "float", "fill": "NaN"}],
    }
    schema_nofields = {"delimiter": ",", "missing": "-"}
    schema_badfieldname = {
        "delimiter": ",",
        "missing": "-",
        "fields": [{"name": "bad name", "type": "float", "fill": "NaN"}],
    }
    schema_delimiter_eq_missing = {
        "delimiter": ",",
        "missing": ",",
        "fields": [{"name": "baddelim", "type": "float", "fill": "NaN"}],
    }
    schema_delimiter_in_missing = {
        "delimiter": ",",
        "missing": "-,",
        "fields": [{"name": "baddelim", "type": "float", "fill": "NaN"}],
    }
    schema_long_delimiter = {
        "delimiter": ",,",
        "missing": "-",
        "fields": [{"name": "baddelim", "type": "float", "fill": "NaN"}],
    }

    with pytest.raises(_err.SCSVError):
        temp = tempfile.NamedTemporaryFile()
        _io.save_scsv(temp.name, schema_nofill, [[0.1]])
    with pytest.raises(_err.SCSVError):
        temp = tempfile.NamedTemporaryFile()
        _io.save_scsv(temp.name, schema_nomissing, [[0.1]])
    with pytest.raises(_err.SCSVError):
        temp = tempfile.NamedTemporaryFile()
        _io.save_scsv(temp.name, schema_nofields, [[0.1]])
    with pytest.raises(_err.SCSVError):
        temp = tempfile.NamedTemporaryFile()
        _io.save_scsv(temp.name, schema_badfieldname, [[0.1]])
    with pytest.raises(_err.SCSVError):
        temp = tempfile.NamedTemporaryFile()
        _io.save_scsv(temp.name, schema_delimiter_eq_missing, [[0.1]])
    with pytest.raises(_err.SCSVError):
        temp = tempfile.NamedTemporaryFile()
        _io.save_scsv(temp.name, schema_delimiter_in_missing, [[0.1]])
    # CSV module already raises a TypeError on long delimiters.
    with pytest.raises(TypeError):
        temp = tempfile.NamedTemporaryFile()
        _io.save_scsv(temp.name, schema_long_delimiter, [[0.1]])



def test_validate_field_types(tmp_path):
    """Test that only integer and float fields with valid fill values are accepted."""
    for field in (
        {"name": "flag", "type": "boolean", "fill": "false"},
        {"name": "label", "fill": "MISSING"},
        {"name": "count", "type": "integer", "fill": "NaN"},
        {"name": "count", "type": "integer"},
    ):
        with pytest.raises(_err.SCSVError):
            _io.save_scsv(
                tmp_path / "types.scsv",
                {"delimiter": ",", "missing": "-", "fields": [field]},
                [[1]],
            )


def _data_lines(path):
    # Lines after the closing '---' of the YAML header.
    with open(path) as stream:
        lines = [line.rstrip() for line in stream]
    return lines[lines.index("---", 1) + 1 :]


def test_save_fill_values(outdir, tmp_path):
    """Test that cells equal to the fill value are written as missing."""
    schema = {
        "delimiter": ",",
        "missing": "-",
        "fields": [
            {"name": "count", "type": "integer", "fill": "999999", "unit": "grains"},
            {"name": "value", "type": "float", "fill": "NaN"},
        ],
    }
    schema_alt = {
        "delimiter": ",",
        "missing": "-",
        "fields": [
            {"name": "count", "type": "integer", "fill": "999991"},
            {"name": "value", "type": "float", "fill": "0.0"},
        ],
    }
    data = [[999999, 10, 1], [1.1, np.nan, 1.0]]
    data_alt = [[999991, 10, 1], [1.1, 0.0, 1.0]]

    # Both variants have identical CSV contents but different YAML header specs.
    if outdir is not None:
        _io.save_scsv(f"{outdir}/spec_out.scsv", schema, data)
        _io.save_scsv(f"{outdir}/spec_out_alt.scsv", schema_alt, data_alt)

    _io.save_scsv(tmp_path / "fills.scsv", schema, data)
    _io.save_scsv(tmp_path / "spec_alt.scsv", schema_alt, data_alt)
    raw_read = _data_lines(tmp_path / "fills.scsv")
    raw_read_alt = _data_lines(tmp_path / "spec_alt.scsv")
    _log.debug("\n  first file: %s\n  second file: %s", raw_read, raw_read_alt)
    nt.assert_equal(raw_read, raw_read_alt)
    assert raw_read == ["count,value", "-,1.1", "10,-", "1,1.0"]

    read = _io.read_scsv(tmp_path / "fills.scsv")
    assert read.count == (999999, 10, 1)
    nt.assert_array_equal(read.value, [1.1, np.nan, 1.0])
    read_alt = _io.read_scsv(tmp_path / "spec_alt.scsv")
    assert read_alt.count == (999991, 10, 1)
    assert read_alt.value == (1.1, 0.0, 1.0)


def test_save_column_count(tmp_path):
    """Test that the number of data columns must match the schema."""
    schema = {
        "delimiter": ",",
        "missing": "-",
        "fields": [{"name": "only_column", "type": "float", "fill": "NaN"}],
    }
    with pytest.raises(_err.SCSVError):
        _io.save_scsv(tmp_path / "columns.scsv", schema, [[0.1], [0.2]])
    with pytest.raises(_err.SCSVError):
        _io.save_scsv(
            tmp_path / "lengths.scsv",
            {**schema, "fields": schema["fields"] * 2},
            [[0.1], [0.2, 0.3]],
        )


def test_save_invalid_cell(tmp_path):
    """Test that unparsable data is refused and no partial file is left behind."""
    schema = {
        "delimiter": ",",
        "missing": "-",
        "fields": [{"name": "count", "type": "integer", "fill": "-1"}],
    }
    path = tmp_path / "invalid.scsv"
    with pytest.raises(_err.SCSVError):
        _io.save_scsv(path, schema, [[1, "two"]])
    assert not path.exists()


def test_save_read_averages(tmp_path):
    """Test writing Bingham averages and reading them back."""
    averages = np.arange(2 * 2 * 9, dtype=np.float64).reshape((2, 2, 3, 3)) / 7
    averages[1, 0, 2, 1] = np.nan
    path = tmp_path / "averages.scsv"
    _io.save_averages(path, averages, particles=[10, 12], comments=["test averages"])
    with open(path) as stream:
        assert "# test averages" in stream.read()
    data = _io.read_scsv(path)
    assert data._fields == (
        "particle",
        "mineral",
        "a0",
        "a1",
        "a2",
        "b0",
        "b1",
        "b2",
        "c0",
        "c1",
        "c2",
    )
    assert data.particle == (10, 10, 12, 12)
    assert data.mineral == (0, 1, 0, 1)
    columns = np.array(data[2:]).transpose().reshape((2, 2, 3, 3))
    nt.assert_array_equal(columns, averages)


def test_save_averages_errors(tmp_path):
    with pytest.raises(ValueError):
        _io.save_averages(tmp_path / "shape.scsv", np.zeros((2, 3, 3)))
    with pytest.raises(ValueError):
        _io.save_averages(
            tmp_path / "particles.scsv", np.zeros((2, 1, 3, 3)), particles=[0]
        )


def test_read_empty(tmp_path):
    """Test reading an SCSV file with a header but no rows."""
    path = tmp_path / "empty.scsv"
    _io.save_averages(path, np.zeros((0, 1, 3, 3)))
    data = _io.read_scsv(path)
    assert len(data._fields) == 11
    assert all(column == () for column in data)
