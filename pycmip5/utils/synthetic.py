"""Tools for creating synthetic data."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import numpy as np
import numpy.typing as npt

from pycmip5.core.dataset import CMIP5Dataset
from pycmip5.core.values import DenseValues

logger = logging.getLogger(__name__)


def global_grid(
    nlon: int, nlat: int
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Create a regular global grid of cell centers.

    Longitude cells span [0, 360) and latitude cells span [-90, 90].

    Parameters
    ----------
    nlon, nlat : int
        Number of cells along each axis

    Returns
    -------
    tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]
        2D longitude and latitude cell centers with shape ``(nlon, nlat)``

    Examples
    --------
    >>> lon, lat = global_grid(3, 2)
    >>> lon[:, 0]
    array([ 60., 180., 300.])
    >>> lat[0]
    array([-45.,  45.])
    """
    if nlon < 1 or nlat < 1:
        raise ValueError("Grid must have at least one cell along each axis.")
    lon = (np.arange(nlon) + 0.5) * 360.0 / nlon
    lat = -90.0 + (np.arange(nlat) + 0.5) * 180.0 / nlat
    lon_2d, lat_2d = np.meshgrid(lon, lat, indexing="ij")
    return lon_2d, lat_2d


def synthetic_dataset(
    time: npt.ArrayLike,
    lonsize: int = 10,
    latsize: int = 10,
    levels: npt.ArrayLike | None = None,
    random: bool = False,
    tabular: bool = False,
    rng: np.random.Generator | int | None = None,
    variable: str = "var",
    model: str = "fakemodel",
    experiment: str = "fakeexperiment",
    domain: str = "Amon",
    value_unit: str = "1",
    ensembles: Iterable[str] = ("r1i1p1",),
    time_freq: str = "mon",
    **kwargs: Any,
) -> CMIP5Dataset:
    """Create a dataset on a regular global grid for tests and examples.

    Parameters
    ----------
    time : npt.ArrayLike
        1D ascending time axis
    lonsize, latsize : int, optional
        Grid size
    levels : npt.ArrayLike | None, optional
        Level axis. Single level if None.
    random : bool, optional
        Fill with uniform random values in [0, 1). Otherwise values are a ramp
        ``0, 1, 2, ...`` in longitude-fastest order.
    tabular : bool, optional
        Back values with a long-form table instead of a dense array.
    rng : np.random.Generator | int | None, optional
        Random generator or seed, used when ``random`` is True.
    variable, model, experiment, domain, value_unit : str, optional
        Identifying metadata
    ensembles : Iterable[str], optional
        Ensemble member labels
    time_freq : str, optional
        Nominal time frequency, stored as ``debug["timeFreqStr"]``
    **kwargs : Any
        Passed to :class:`CMIP5Dataset`.

    Returns
    -------
    CMIP5Dataset
    """
    lon, lat = global_grid(lonsize, latsize)
    time = np.atleast_1d(np.asarray(time, dtype=np.float64))
    nz = 1 if levels is None else np.atleast_1d(levels).size
    shape = (lonsize, latsize, nz, time.size)

    if random:
        values = np.random.default_rng(rng).random(shape)
    else:
        values = np.arange(np.prod(shape), dtype=np.float64).reshape(shape, order="F")

    val = DenseValues(values, lon, lat, level=levels, time=time, copy=False)
    logger.debug("Created synthetic values with shape %s", val.shape)

    kwargs.setdefault("provenance", ("Dummy data created",))
    debug = {"timeFreqStr": time_freq, **kwargs.pop("debug", {})}
    ds = CMIP5Dataset(
        val,
        variable=variable,
        model=model,
        experiment=experiment,
        domain=domain,
        value_unit=value_unit,
        ensembles=ensembles,
        debug=debug,
        **kwargs,
    )
    if tabular:
        return ds.to_tabular()
    return ds
