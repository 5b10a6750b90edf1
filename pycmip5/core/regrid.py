"""Conservative regridding of datasets between lon/lat grids."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy.typing as npt

from pycmip5.core.dataset import CMIP5Dataset
from pycmip5.core.exceptions import PreconditionError
from pycmip5.core.grid import Grid
from pycmip5.core.projection import ProjectionMatrix, build_projection
from pycmip5.core.transforms import Transform, TransformParams, require_dataset
from pycmip5.physics import constants

logger = logging.getLogger(__name__)


@dataclass
class RegridParams(TransformParams):
    """Default parameters for :class:`Regridder`."""

    #: Sphere radius used for cell areas and overlaps, [:math:`m`]
    radius: float = constants.radius_earth


class Regridder(Transform):
    """Remap a dataset onto a new lon/lat grid, conserving area-weighted totals.

    Each destination value is ``sum_s w(d, s) * val[s]`` over overlapping source
    cells, computed independently for every (level, time) slice. Missing source
    values make every destination cell they contribute to missing, and
    destination cells outside the source grid are missing.

    The most recently used :class:`ProjectionMatrix` is kept on
    :attr:`projection_matrix` and can be passed to further calls for other
    variables on the same grid pair.

    Parameters
    ----------
    params : RegridParams | dict[str, Any] | None, optional
        Override default parameters.
    **params_kwargs : Any
        Override parameters with keyword arguments.

    Examples
    --------
    >>> from pycmip5.utils.synthetic import global_grid, synthetic_dataset
    >>> ds = synthetic_dataset(time=[0.0, 1.0], lonsize=6, latsize=4)
    >>> dst_lon, dst_lat = global_grid(3, 2)
    >>> out = Regridder().eval(ds, dst_lon, dst_lat)
    >>> out.shape
    (3, 2, 1, 2)
    """

    __slots__ = ("projection_matrix",)

    name = "regrid"
    long_name = "Conservative lon/lat regridding"
    default_params = RegridParams

    #: Transfer matrix used by the last call to :meth:`eval`
    projection_matrix: ProjectionMatrix | None

    def __init__(
        self, params: RegridParams | dict[str, Any] | None = None, **params_kwargs: Any
    ) -> None:
        super().__init__(params, **params_kwargs)
        self.projection_matrix = None

    def eval(  # type: ignore[override]
        self,
        source: CMIP5Dataset,
        dst_lon: npt.ArrayLike,
        dst_lat: npt.ArrayLike,
        src_area: npt.ArrayLike | None = None,
        dst_area: npt.ArrayLike | None = None,
        projection_matrix: ProjectionMatrix | None = None,
        dst_lon_bounds: npt.ArrayLike | None = None,
        dst_lat_bounds: npt.ArrayLike | None = None,
        **params: Any,
    ) -> CMIP5Dataset:
        """Regrid ``source`` onto the grid ``(dst_lon, dst_lat)``.

        Parameters
        ----------
        source : CMIP5Dataset
            Dataset to regrid
        dst_lon, dst_lat : npt.ArrayLike
            2D destination cell centers with shape ``(nlon, nlat)``
        src_area : npt.ArrayLike | None, optional
            Source cell areas. Computed from the source grid if None.
        dst_area : npt.ArrayLike | None, optional
            Destination cell areas. Computed from the destination grid if None.
        projection_matrix : ProjectionMatrix | None, optional
            Prebuilt transfer matrix for this grid pair. Built if None, in which
            case ``src_area`` and ``dst_area`` are used.
        dst_lon_bounds, dst_lat_bounds : npt.ArrayLike | None, optional
            Destination cell boundaries. Inferred from centers if None.
        **params : Any
            Overwrite parameters before evaluation.

        Returns
        -------
        CMIP5Dataset
            New dataset on the destination grid.

        Raises
        ------
        PreconditionError
            If ``source`` is not a dataset or ``projection_matrix`` belongs to other grids.
        InvalidGridError
            If either grid cannot be processed.
        NoOverlapError
            If the grids do not intersect.
        """
        self.update_params(params)
        source = require_dataset(source, "source")

        src_grid = source.grid
        dst_grid = Grid(dst_lon, dst_lat, dst_lon_bounds, dst_lat_bounds)

        if projection_matrix is None:
            self._progress("Building projection matrix %s -> %s", src_grid, dst_grid)
            projection_matrix = build_projection(
                src_grid, src_area, dst_grid, dst_area, radius=self.params["radius"]
            )
        else:
            _check_projection(projection_matrix, src_grid, dst_grid)
            self._progress("Reusing projection matrix %s", projection_matrix)

        self.projection_matrix = projection_matrix

        self._progress("Remapping %d (level, time) slices", source.shape[2] * source.shape[3])
        val = source.val.remap_with_weights(projection_matrix)

        dlon, dlat = dst_grid.resolution
        nlon, nlat = dst_grid.shape
        out = source.replace(
            val=val,
            lon_bounds=None if dst_lon_bounds is None else dst_grid.lon_bounds,
            lat_bounds=None if dst_lat_bounds is None else dst_grid.lat_bounds,
        )
        return out.add_provenance(
            f"Regridded from {src_grid.shape[0]}x{src_grid.shape[1]} to {nlon}x{nlat} grid "
            f"({dlon:.4g} x {dlat:.4g} degrees)"
        )


def regrid(
    dataset: CMIP5Dataset,
    dst_lon: npt.ArrayLike,
    dst_lat: npt.ArrayLike,
    src_area: npt.ArrayLike | None = None,
    dst_area: npt.ArrayLike | None = None,
    projection_matrix: ProjectionMatrix | None = None,
    **params: Any,
) -> CMIP5Dataset:
    """Regrid ``dataset`` conservatively onto ``(dst_lon, dst_lat)``.

    Shortcut for ``Regridder(**params).eval(...)``. See :meth:`Regridder.eval`.

    Parameters
    ----------
    dataset : CMIP5Dataset
        Dataset to regrid
    dst_lon, dst_lat : npt.ArrayLike
        2D destination cell centers
    src_area, dst_area : npt.ArrayLike | None, optional
        Cell areas. Computed if None.
    projection_matrix : ProjectionMatrix | None, optional
        Prebuilt transfer matrix. Built if None.
    **params : Any
        :class:`RegridParams` overrides.

    Returns
    -------
    CMIP5Dataset
    """
    return Regridder(**params).eval(
        dataset,
        dst_lon,
        dst_lat,
        src_area=src_area,
        dst_area=dst_area,
        projection_matrix=projection_matrix,
    )


def _check_projection(matrix: Any, src_grid: Grid, dst_grid: Grid) -> None:
    if not isinstance(matrix, ProjectionMatrix):
        msg = f"Input 'projection_matrix' must be a ProjectionMatrix, got {type(matrix).__name__}."
        raise PreconditionError(msg)
    if matrix.src_shape != src_grid.shape or matrix.dst_shape != dst_grid.shape:
        msg = (
            f"Projection matrix maps {matrix.src_shape} -> {matrix.dst_shape} "
            f"but regridding {src_grid.shape} -> {dst_grid.shape}."
        )
        raise PreconditionError(msg)
    if matrix.src_grid != src_grid or matrix.dst_grid != dst_grid:
        raise PreconditionError("Projection matrix was built for a different grid pair.")
