"""Sparse transfer matrices for conservative remapping between grids."""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt
import scipy.sparse

from pycmip5.core.exceptions import InvalidGridError, NoOverlapError, PreconditionError
from pycmip5.core.grid import Grid
from pycmip5.physics import constants, geo, units

logger = logging.getLogger(__name__)

#: Overlap fractions below this value are rounding noise along shared cell edges
FRACTION_EPSILON = 1e-12


class ProjectionMatrix:
    """Overlap weights between the cells of a source and a destination grid.

    Rows index destination cells and columns index source cells, both flattened
    longitude-fastest. Zero overlaps are not stored.

    Instances are read-only once built and depend only on the two grids and
    their cell areas, so one instance can be applied to any number of variables
    sharing the same grid pair.

    Use :func:`build_projection` to construct.
    """

    __slots__ = ("covered", "dst_grid", "fractions", "overlap", "src_grid", "weights")

    #: Source grid
    src_grid: Grid

    #: Destination grid
    dst_grid: Grid

    #: Geometric overlap area of each (destination, source) cell pair, [:math:`m^{2}`]
    overlap: scipy.sparse.csr_matrix

    #: Fraction of each source cell covered by each destination cell.
    #: Columns sum to 1 for source cells fully covered by the destination grid.
    fractions: scipy.sparse.csr_matrix

    #: Remap weights, ``fractions * src_area / dst_area``.
    #: Rows sum to at most 1 when areas are geometric.
    weights: scipy.sparse.csr_matrix

    #: Destination cells receiving any contribution
    covered: npt.NDArray[np.bool_]

    def __init__(
        self,
        src_grid: Grid,
        dst_grid: Grid,
        overlap: scipy.sparse.csr_matrix,
        fractions: scipy.sparse.csr_matrix,
        weights: scipy.sparse.csr_matrix,
    ) -> None:
        self.src_grid = src_grid
        self.dst_grid = dst_grid
        self.overlap = overlap
        self.fractions = fractions
        self.weights = weights
        self.covered = np.diff(weights.indptr) > 0

    def __repr__(self) -> str:
        return (
            f"ProjectionMatrix({self.src_grid!r} -> {self.dst_grid!r}, "
            f"{self.weights.nnz} nonzero weights)"
        )

    @property
    def src_shape(self) -> tuple[int, int]:
        """Shape of the source grid."""
        return self.src_grid.shape

    @property
    def dst_shape(self) -> tuple[int, int]:
        """Shape of the destination grid."""
        return self.dst_grid.shape

    @property
    def shape(self) -> tuple[int, int]:
        """Shape of the matrix, ``(n_dst_cells, n_src_cells)``."""
        return self.weights.shape  # type: ignore[return-value]

    def entries(self, dst_cell: int) -> dict[int, float]:
        """Return the ``{source cell: weight}`` mapping for one destination cell.

        Parameters
        ----------
        dst_cell : int
            Flat (longitude-fastest) destination cell index

        Returns
        -------
        dict[int, float]
            Nonzero weights keyed by flat source cell index
        """
        row = self.weights.getrow(dst_cell)
        return {int(i): float(w) for i, w in zip(row.indices, row.data, strict=True)}

    def apply(self, values: npt.ArrayLike) -> npt.NDArray[np.float64]:
        """Remap one source slice onto the destination grid.

        ``new[d] = sum_s weights[d, s] * values[s]``. A NaN source value makes
        every destination cell it contributes to NaN, and destination cells with
        no contribution at all are NaN.

        Parameters
        ----------
        values : npt.ArrayLike
            Source values, either 2D with the source grid shape or flat
            (longitude-fastest) with one value per source cell.

        Returns
        -------
        npt.NDArray[np.float64]
            Destination values with the same layout (2D or flat) as ``values``.

        Raises
        ------
        PreconditionError
            If ``values`` does not match the source grid.
        """
        arr = np.asarray(values, dtype=np.float64)
        if arr.ndim == 2:
            if arr.shape != self.src_shape:
                msg = f"Values with shape {arr.shape} do not match source grid {self.src_shape}."
                raise PreconditionError(msg)
            out = self._apply_flat(arr.ravel(order="F"))
            return out.reshape(self.dst_shape, order="F")

        if arr.shape != (self.src_grid.size,):
            msg = f"Expected {self.src_grid.size} source values, got shape {arr.shape}."
            raise PreconditionError(msg)
        return self._apply_flat(arr)

    def _apply_flat(self, vec: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        # Sparse products only touch stored entries, so NaN propagates through
        # nonzero weights and never through omitted ones
        out = np.asarray(self.weights @ vec, dtype=np.float64)
        out[~self.covered] = np.nan
        return out


def build_projection(
    src_grid: Grid,
    src_area: npt.ArrayLike | None,
    dst_grid: Grid,
    dst_area: npt.ArrayLike | None,
    radius: float = constants.radius_earth,
) -> ProjectionMatrix:
    """Build the transfer matrix between two rectilinear grids.

    For every (destination, source) pair of cells the geometric overlap on the
    sphere is computed. Because both grids are rectilinear, the overlap factors
    into a longitude part and a latitude part, and the full sparse matrix is
    their Kronecker product. No dense ``(n_dst, n_src)`` array is allocated.

    Weights are ``overlap / src_geometric_area * src_area / dst_area``. With
    these weights the area-weighted sum of a field is preserved:
    ``sum_d dst_area[d] * new[d] == sum_s src_area[s] * values[s]`` for every
    source cell fully covered by the destination grid.

    Parameters
    ----------
    src_grid : Grid
        Source grid
    src_area : npt.ArrayLike | None
        Source cell areas with shape ``src_grid.shape``. NaN entries count as
        zero area. If None, geometric areas are used.
    dst_grid : Grid
        Destination grid
    dst_area : npt.ArrayLike | None
        Destination cell areas with shape ``dst_grid.shape``. If None,
        geometric areas are used.
    radius : float, optional
        Sphere radius, [:math:`m`]

    Returns
    -------
    ProjectionMatrix
        Transfer matrix

    Raises
    ------
    InvalidGridError
        If areas do not match their grid or are negative.
    NoOverlapError
        If no source cell overlaps any destination cell.
    """
    src_geometric = src_grid.cell_area(radius)
    src_area = src_geometric if src_area is None else _validate_area(src_area, src_grid, "source")
    dst_area = (
        dst_grid.cell_area(radius)
        if dst_area is None
        else _validate_area(dst_area, dst_grid, "destination")
    )

    lon_overlap = units.degrees_to_radians(
        geo.longitude_overlap(dst_grid.lon_bounds, src_grid.lon_bounds)
    )
    lat_overlap = geo.latitude_overlap(dst_grid.lat_bounds, src_grid.lat_bounds)

    # kron(lat, lon)[j * ndlon + i, l * nslon + k] == lat[j, l] * lon[i, k]
    overlap = scipy.sparse.kron(
        scipy.sparse.csr_matrix(lat_overlap),
        scipy.sparse.csr_matrix(lon_overlap),
        format="csr",
    )
    overlap = overlap * radius**2
    overlap.eliminate_zeros()
    if overlap.nnz == 0:
        raise NoOverlapError(f"Source grid {src_grid!r} does not overlap {dst_grid!r}.")

    src_flat = src_geometric.ravel(order="F")
    inv_src = np.divide(1.0, src_flat, out=np.zeros_like(src_flat), where=src_flat > 0.0)
    fractions = (overlap @ scipy.sparse.diags(inv_src)).tocsr()
    fractions.data[fractions.data < FRACTION_EPSILON] = 0.0
    fractions.eliminate_zeros()

    dst_flat = dst_area.ravel(order="F")
    inv_dst = np.divide(1.0, dst_flat, out=np.zeros_like(dst_flat), where=dst_flat > 0.0)
    weights = (
        scipy.sparse.diags(inv_dst) @ fractions @ scipy.sparse.diags(src_area.ravel(order="F"))
    ).tocsr()
    weights.eliminate_zeros()
    if weights.nnz == 0:
        raise NoOverlapError("Source and destination grids share no cells with nonzero area.")

    logger.debug(
        "Built projection %s -> %s with %d nonzero weights",
        src_grid,
        dst_grid,
        weights.nnz,
    )
    return ProjectionMatrix(src_grid, dst_grid, overlap, fractions, weights)


def _validate_area(area: npt.ArrayLike, grid: Grid, name: str) -> npt.NDArray[np.float64]:
    arr = np.asarray(area, dtype=np.float64)
    if arr.shape != grid.shape:
        msg = f"The {name} area has shape {arr.shape} but the grid has shape {grid.shape}."
        raise InvalidGridError(msg)
    arr = np.where(np.isnan(arr), 0.0, arr)
    if np.any(arr < 0.0) or not np.all(np.isfinite(arr)):
        raise InvalidGridError(f"The {name} area must be finite and non-negative.")
    return arr
