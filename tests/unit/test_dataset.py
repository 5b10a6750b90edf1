"""Test pycmip5/core/dataset.py"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from pycmip5 import CMIP5Dataset, DenseValues, InvalidGridError, PreconditionError, ProvenanceEntry
from pycmip5.core.dataset import identical
from pycmip5.utils.synthetic import global_grid, synthetic_dataset


def test_init_defaults() -> None:
    lon, lat = global_grid(3, 2)
    ds = CMIP5Dataset(DenseValues(np.zeros((3, 2, 1)), lon, lat, time=[0.0]))
    assert ds.variable == ""
    assert ds.ensembles == ()
    assert ds.files == ()
    assert ds.provenance == ()
    assert ds.debug == {}
    assert ds.lon_bounds is None
    assert ds.shape == (3, 2, 1, 1)
    assert ds.values is ds.val


def test_init_invalid() -> None:
    lon, lat = global_grid(3, 2)
    with pytest.raises(PreconditionError, match="must be GriddedValues"):
        CMIP5Dataset(np.zeros((3, 2, 1, 1)))  # type: ignore[arg-type]

    with pytest.raises(PreconditionError, match="strictly ascending"):
        CMIP5Dataset.from_arrays(np.zeros((3, 2, 2)), lon, lat, time=[1.0, 0.0])

    with pytest.raises(PreconditionError, match="strictly ascending"):
        CMIP5Dataset.from_arrays(np.zeros((3, 2, 2)), lon, lat, time=[1.0, 1.0])

    with pytest.raises(PreconditionError, match="'lon_bounds' must have shape"):
        CMIP5Dataset.from_arrays(np.zeros((3, 2, 1)), lon, lat, time=[0.0], lon_bounds=[[0, 1]])

    with pytest.raises(PreconditionError, match="'time' is required"):
        CMIP5Dataset.from_arrays(np.zeros((3, 2, 1)), lon, lat)


def test_from_arrays_table() -> None:
    ds = synthetic_dataset([0.0, 1.0], lonsize=3, latsize=2, random=True, rng=4)
    frame = ds.to_tabular().val.frame
    table = CMIP5Dataset.from_arrays(frame, ds.lon, ds.lat, variable="var")
    assert table.is_tabular
    assert isinstance(table.val.frame, pd.DataFrame)
    np.testing.assert_array_equal(table.val.to_numpy(), ds.val.to_numpy())


def test_provenance_entries() -> None:
    ds = synthetic_dataset([0.0], lonsize=3, latsize=2)
    assert ds.provenance[0].message == "Dummy data created"
    assert isinstance(ds.provenance[0], ProvenanceEntry)

    out = ds.add_provenance("step")
    assert len(ds.provenance) == 1
    assert [p.message for p in out.provenance] == ["Dummy data created", "step"]

    lines = out.provenance_log().splitlines()
    assert lines[1].endswith(" step")
    assert lines[1].startswith(str(out.provenance[1].timestamp.year))


def test_provenance_timestamp_ignored() -> None:
    first = ProvenanceEntry("step")
    second = ProvenanceEntry("step", timestamp=first.timestamp.replace(year=2000))
    assert first == second
    assert first != ProvenanceEntry("other")


def test_replace() -> None:
    ds = synthetic_dataset([0.0], lonsize=3, latsize=2, debug={"source": "a"})
    out = ds.replace(variable="pr")
    assert out.variable == "pr"
    assert ds.variable == "var"
    assert out.val is ds.val

    # debug is copied
    out.debug["source"] = "b"
    assert ds.debug["source"] == "a"

    with pytest.raises(KeyError, match="Unknown dataset field"):
        ds.replace(units="K")


def test_eq() -> None:
    ds = synthetic_dataset([0.0, 1.0], lonsize=3, latsize=2, random=True, rng=8)
    assert ds == ds.replace()
    assert ds == ds.to_tabular()
    assert ds != ds.replace(experiment="other")
    assert ds != ds.add_provenance("step")
    assert ds != ds.replace(lon_bounds=np.array([[0.0, 120.0], [120.0, 240.0], [240.0, 360.0]]))
    assert ds != "ds"


def test_backing_conversion() -> None:
    ds = synthetic_dataset([0.0, 1.0], lonsize=3, latsize=2, levels=[1.0, 2.0])
    table = ds.to_tabular()
    assert table.is_tabular
    assert not table.to_dense().is_tabular
    assert table.to_tabular().val is table.val
    np.testing.assert_array_equal(table.level, [1.0, 2.0])
    np.testing.assert_array_equal(table.time, [0.0, 1.0])


def test_grid() -> None:
    ds = synthetic_dataset([0.0], lonsize=3, latsize=2)
    grid = ds.grid
    assert grid.shape == (3, 2)
    np.testing.assert_array_equal(grid.lon_bounds, [[0.0, 120.0], [120.0, 240.0], [240.0, 360.0]])

    lon = ds.lon.copy()
    lon[0, 1] += 1.0
    skewed = CMIP5Dataset.from_arrays(ds.val.to_numpy(), lon, ds.lat, time=ds.time)
    with pytest.raises(InvalidGridError):
        skewed.grid


def test_repr() -> None:
    ds = synthetic_dataset([0.0, 1.0], lonsize=3, latsize=2)
    text = repr(ds)
    assert text.startswith("CMIP5Dataset 'var' 'fakemodel' 'fakeexperiment'")
    assert "Time: 2 steps [0.0 .. 1.0]" in text


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        (None, None, True),
        (None, 0, False),
        ("mon", "mon", True),
        ("mon", "day", False),
        (np.array([1.0, np.nan]), np.array([1.0, np.nan]), True),
        (np.array([1.0, 2.0]), np.array([1.0, 2.0, 3.0]), False),
        (np.array(["a", "b"]), np.array(["a", "b"]), True),
        (("r1i1p1",), ("r1i1p1",), True),
        (("r1i1p1",), ["r1i1p1"], False),
        ({"a": np.zeros(2)}, {"a": np.zeros(2)}, True),
        ({"a": 1}, {"b": 1}, False),
        (1, 1.0, False),
    ],
)
def test_identical(a: object, b: object, expected: bool) -> None:
    assert identical(a, b) is expected
