"""Test pycmip5/core/values.py"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
import xarray as xr

from pycmip5 import DenseValues, PreconditionError, TabularValues
from pycmip5.core.values import SINGLE_LEVEL
from pycmip5.utils.synthetic import global_grid


@pytest.fixture()
def grid() -> tuple[np.ndarray, np.ndarray]:
    return global_grid(3, 2)


@pytest.fixture()
def dense(grid: tuple[np.ndarray, np.ndarray]) -> DenseValues:
    lon, lat = grid
    values = np.arange(3 * 2 * 2 * 4, dtype=float).reshape((3, 2, 2, 4))
    return DenseValues(values, lon, lat, level=[850.0, 500.0], time=[0.0, 1.0, 2.0, 3.0])


@pytest.fixture(params=["dense", "tabular"])
def values(request: pytest.FixtureRequest, dense: DenseValues) -> DenseValues | TabularValues:
    if request.param == "tabular":
        return dense.to_tabular()
    return dense


def test_dense_init(dense: DenseValues, grid: tuple[np.ndarray, np.ndarray]) -> None:
    assert dense.shape == (3, 2, 2, 4)
    assert isinstance(dense.data, xr.DataArray)
    assert dense.data.dims == ("x", "y", "level", "time")
    np.testing.assert_array_equal(dense.data["longitude"], grid[0])
    np.testing.assert_array_equal(dense.data["latitude"], grid[1])
    assert not dense.is_single_level


def test_dense_single_level(grid: tuple[np.ndarray, np.ndarray]) -> None:
    """Check that 3D values get a single level with coordinate -1."""
    lon, lat = grid
    vals = DenseValues(np.ones((3, 2, 5)), lon, lat, time=np.arange(5.0))
    assert vals.shape == (3, 2, 1, 5)
    assert vals.is_single_level
    np.testing.assert_array_equal(vals.level, [SINGLE_LEVEL])


def test_dense_copy(grid: tuple[np.ndarray, np.ndarray]) -> None:
    lon, lat = grid
    arr = np.zeros((3, 2, 1, 1))
    copied = DenseValues(arr, lon, lat, time=[0.0])
    shared = DenseValues(arr, lon, lat, time=[0.0], copy=False)
    arr[0, 0, 0, 0] = 1.0
    assert copied.to_numpy()[0, 0, 0, 0] == 0.0
    assert shared.to_numpy()[0, 0, 0, 0] == 1.0


def test_dense_invalid(grid: tuple[np.ndarray, np.ndarray]) -> None:
    lon, lat = grid
    with pytest.raises(PreconditionError, match="must be 3D or 4D"):
        DenseValues(np.ones((3, 2)), lon, lat, time=[0.0])
    with pytest.raises(PreconditionError, match="does not match coordinate shape"):
        DenseValues(np.ones((3, 2, 1, 2)), lon, lat, time=[0.0])
    with pytest.raises(PreconditionError, match="identical shape"):
        DenseValues(np.ones((3, 2, 1, 1)), lon, lat[:, :1], time=[0.0])
    with pytest.raises(PreconditionError, match="must be 1D"):
        DenseValues(np.ones((3, 2, 1, 1)), lon, lat, level=[[1.0]], time=[0.0])


def test_tabular_layout(dense: DenseValues) -> None:
    """Check the long-form table has one row per value, longitude fastest."""
    table = dense.to_tabular()
    frame = table.frame
    assert list(frame.columns) == ["lon", "lat", "Z", "time", "value"]
    assert len(frame) == 3 * 2 * 2 * 4

    first = frame.iloc[:3]
    np.testing.assert_array_equal(first["lon"], [60.0, 180.0, 300.0])
    np.testing.assert_array_equal(first["lat"], [-45.0, -45.0, -45.0])
    assert (first["Z"] == 850.0).all()
    assert (first["time"] == 0.0).all()
    np.testing.assert_array_equal(first["value"], dense.to_numpy()[:, 0, 0, 0])


def test_round_trip(values: DenseValues | TabularValues, dense: DenseValues) -> None:
    assert values.to_dense().equals(dense)
    assert values.to_tabular().equals(dense)
    np.testing.assert_array_equal(values.to_numpy(), dense.to_numpy())


def test_tabular_inferred_axes(grid: tuple[np.ndarray, np.ndarray]) -> None:
    """Check that level and time are inferred from the table."""
    lon, lat = grid
    frame = pd.DataFrame(
        {
            "lon": [60.0, 180.0, 60.0],
            "lat": [-45.0, -45.0, 45.0],
            "Z": [-1.0, -1.0, -1.0],
            "time": [2.0, 1.0, 2.0],
            "value": [1.0, 2.0, 3.0],
            "extra": ["a", "b", "c"],
        }
    )
    table = TabularValues(frame, lon, lat)
    assert table.shape == (3, 2, 1, 2)
    np.testing.assert_array_equal(table.time, [1.0, 2.0])
    assert "extra" not in table.frame

    # absent rows are missing values
    arr = table.to_numpy()
    assert np.isnan(arr).sum() == 3 * 2 * 2 - 3
    assert arr[0, 0, 0, 1] == 1.0
    assert arr[1, 0, 0, 0] == 2.0
    assert arr[0, 1, 0, 1] == 3.0


def test_tabular_invalid(grid: tuple[np.ndarray, np.ndarray]) -> None:
    lon, lat = grid
    row = {"lon": 60.0, "lat": -45.0, "Z": -1.0, "time": 0.0, "value": 1.0}

    with pytest.raises(PreconditionError, match="must be a pandas DataFrame"):
        TabularValues(row, lon, lat)  # type: ignore[arg-type]

    with pytest.raises(PreconditionError, match="missing column"):
        TabularValues(pd.DataFrame([row]).drop(columns="Z"), lon, lat)

    with pytest.raises(PreconditionError, match="duplicate"):
        TabularValues(pd.DataFrame([row, row]), lon, lat)

    with pytest.raises(PreconditionError, match=r"\(lon, lat\) not found"):
        TabularValues(pd.DataFrame([{**row, "lon": 61.0}]), lon, lat)

    with pytest.raises(PreconditionError, match="time not found"):
        TabularValues(pd.DataFrame([row]), lon, lat, time=[1.0])


def test_slice_by_time(values: DenseValues | TabularValues) -> None:
    sliced = values.slice_by_time(slice(1, 3))
    assert type(sliced) is type(values)
    np.testing.assert_array_equal(sliced.time, [1.0, 2.0])
    np.testing.assert_array_equal(sliced.to_numpy(), values.to_numpy()[..., 1:3])

    # an integer keeps the time dimension
    single = values.slice_by_time(-1)
    assert single.shape == (3, 2, 2, 1)
    np.testing.assert_array_equal(single.time, [3.0])

    picked = values.slice_by_time([0, 3])
    np.testing.assert_array_equal(picked.to_numpy(), values.to_numpy()[..., [0, 3]])


def test_concat_on_time(values: DenseValues | TabularValues) -> None:
    first = values.slice_by_time(slice(0, 2))
    second = values.slice_by_time(slice(2, 4))

    out = first.concat_on_time(second)
    assert type(out) is type(values)
    assert out.equals(values)

    # other backing is converted
    if isinstance(second, DenseValues):
        mixed = first.concat_on_time(second.to_tabular())
    else:
        mixed = first.concat_on_time(second.to_dense())
    assert type(mixed) is type(values)
    assert mixed.equals(values)


def test_concat_incompatible(values: DenseValues | TabularValues) -> None:
    lon, lat = global_grid(3, 2)
    other = DenseValues(np.ones((3, 2, 1, 1)), lon, lat, level=[850.0], time=[9.0])
    with pytest.raises(PreconditionError, match="must share"):
        values.concat_on_time(other)


def test_equals(values: DenseValues | TabularValues, dense: DenseValues) -> None:
    assert values.equals(dense)
    assert not values.equals(dense.slice_by_time(0))
    assert not values.equals(dense.to_numpy())

    arr = dense.to_numpy().copy()
    arr[0, 0, 0, 0] = np.nan
    with_nan = DenseValues(arr, dense.lon, dense.lat, dense.level, dense.time)
    assert with_nan.equals(with_nan.to_tabular())
    assert not with_nan.equals(dense)


def test_repr(values: DenseValues | TabularValues) -> None:
    assert repr(values) == f"{type(values).__name__} with shape (3, 2, 2, 4)"
