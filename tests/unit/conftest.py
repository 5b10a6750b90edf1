"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import Any

import numpy as np
import pytest

from pycmip5 import CMIP5Dataset
from pycmip5.utils.synthetic import global_grid, synthetic_dataset


def make_dataset(time: list[float], tabular: bool = False, **kwargs: Any) -> CMIP5Dataset:
    """Build a small random dataset on a 4 x 3 global grid.

    Parameters
    ----------
    time : list[float]
        Time axis
    tabular : bool, optional
        Back values with a long-form table
    **kwargs : Any
        Passed to :func:`synthetic_dataset`.

    Returns
    -------
    CMIP5Dataset
    """
    kwargs.setdefault("lonsize", 4)
    kwargs.setdefault("latsize", 3)
    kwargs.setdefault("random", True)
    kwargs.setdefault("rng", int(sum(time) * 10))
    return synthetic_dataset(time, tabular=tabular, **kwargs)


@pytest.fixture(params=["dense", "tabular"])
def tabular(request: pytest.FixtureRequest) -> bool:
    """Run a test once for each backing of gridded values."""
    return request.param == "tabular"


@pytest.fixture()
def ds_x(tabular: bool) -> CMIP5Dataset:
    """Return an "x" experiment over times 1 and 2."""
    return make_dataset([1.0, 2.0], tabular, experiment="x", files=("x.nc",))


@pytest.fixture()
def ds_y(tabular: bool) -> CMIP5Dataset:
    """Return a "y" experiment over times 3 and 4."""
    return make_dataset([3.0, 4.0], tabular, experiment="y", files=("y.nc",))


@pytest.fixture()
def regional_grid() -> tuple[np.ndarray, np.ndarray]:
    """Return a 4 x 4 grid of 10 degree cells covering [0, 40] x [0, 40]."""
    centers = np.arange(5.0, 40.0, 10.0)
    lon, lat = np.meshgrid(centers, centers, indexing="ij")
    return lon, lat


@pytest.fixture()
def coarse_grid() -> tuple[np.ndarray, np.ndarray]:
    """Return a 2 x 3 global grid."""
    return global_grid(2, 3)
