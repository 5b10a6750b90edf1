"""Area-weighted global statistics."""

from __future__ import annotations

import logging
from collections.abc import Callable

import numpy as np
import numpy.typing as npt
import xarray as xr

from pycmip5.core.dataset import CMIP5Dataset
from pycmip5.core.exceptions import PreconditionError
from pycmip5.physics import constants

logger = logging.getLogger(__name__)

#: Statistic of one (level, time) slice from its values and cell areas
SliceStatistic = Callable[[npt.NDArray[np.float64], npt.NDArray[np.float64]], float]


def weighted_sum(values: npt.NDArray[np.float64], area: npt.NDArray[np.float64]) -> float:
    """Area-weighted sum skipping missing values."""
    return float(np.nansum(values * area))


def weighted_mean(values: npt.NDArray[np.float64], area: npt.NDArray[np.float64]) -> float:
    """Area-weighted mean over cells with valid values.

    Returns NaN if no cell has a valid value.
    """
    valid = np.isfinite(values) & np.isfinite(area)
    total = np.sum(area[valid])
    if total == 0.0:
        return np.nan
    return float(np.sum(values[valid] * area[valid]) / total)


def global_stat(
    dataset: CMIP5Dataset,
    area: npt.ArrayLike | None = None,
    func: SliceStatistic | None = None,
    radius: float = constants.radius_earth,
) -> xr.DataArray:
    r"""Compute an area-weighted statistic over the grid for every (level, time) slice.

    Parameters
    ----------
    dataset : CMIP5Dataset
        Dataset to summarize
    area : npt.ArrayLike | None, optional
        Cell areas with shape ``(nlon, nlat)``, [:math:`m^{2}`]. Computed from
        the dataset grid if None.
    func : SliceStatistic | None, optional
        Function of ``(values, area)`` for one 2D slice. Defaults to
        :func:`weighted_sum`.
    radius : float, optional
        Sphere radius used when computing ``area``, [:math:`m`]

    Returns
    -------
    xr.DataArray
        Statistic with dims ``("level", "time")``

    Raises
    ------
    PreconditionError
        If ``area`` does not match the dataset grid.
    """
    func = func or weighted_sum
    if area is None:
        area_arr = dataset.grid.cell_area(radius)
    else:
        area_arr = np.asarray(area, dtype=np.float64)
        if area_arr.shape != dataset.lon.shape:
            msg = f"Input 'area' has shape {area_arr.shape}, expected {dataset.lon.shape}."
            raise PreconditionError(msg)

    values = dataset.val.to_numpy()
    _, _, nz, nt = values.shape
    out = np.empty((nz, nt))
    for k in range(nz):
        for t in range(nt):
            out[k, t] = func(values[:, :, k, t], area_arr)

    return xr.DataArray(
        out,
        dims=("level", "time"),
        coords={"level": dataset.level, "time": dataset.time},
        name=dataset.variable or None,
    )
