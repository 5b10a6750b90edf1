"""Gridded values with dense-array or long-form table backing."""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Union

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override

import numpy as np
import numpy.typing as npt
import pandas as pd
import xarray as xr

from pycmip5.core.exceptions import PreconditionError
from pycmip5.core.grid import COORD_DTYPE

if TYPE_CHECKING:
    from pycmip5.core.projection import ProjectionMatrix

logger = logging.getLogger(__name__)

#: Level coordinate of single level data
SINGLE_LEVEL = -1.0

#: Columns of the long-form table
TABULAR_COLUMNS = ("lon", "lat", "Z", "time", "value")

#: Time indexer accepted by :meth:`GriddedValues.slice_by_time`
TimeIndexer = Union[int, slice, npt.ArrayLike]


class GriddedValues(ABC):
    """Values indexed by (longitude, latitude, level, time).

    Implementations differ only in how values are stored. Every operation gives
    the same logical result for every backing, so callers never branch on the
    representation.

    Parameters
    ----------
    lon : npt.ArrayLike
        2D longitude cell centers with shape ``(nlon, nlat)``
    lat : npt.ArrayLike
        2D latitude cell centers with shape ``(nlon, nlat)``
    level : npt.ArrayLike | None
        1D level coordinate. Defaults to ``[-1.0]`` for single level data.
    time : npt.ArrayLike
        1D numeric time coordinate
    """

    __slots__ = ("lat", "level", "lon", "time")

    #: Default dimension order (x, y, z, t)
    dim_order = ("x", "y", "level", "time")

    #: 2D longitude cell centers
    lon: npt.NDArray[np.float64]

    #: 2D latitude cell centers
    lat: npt.NDArray[np.float64]

    #: 1D level coordinate
    level: npt.NDArray[np.float64]

    #: 1D time coordinate
    time: npt.NDArray[np.float64]

    def __init__(
        self,
        lon: npt.ArrayLike,
        lat: npt.ArrayLike,
        level: npt.ArrayLike | None,
        time: npt.ArrayLike,
    ) -> None:
        self.lon = np.asarray(lon, dtype=COORD_DTYPE)
        self.lat = np.asarray(lat, dtype=COORD_DTYPE)
        if self.lon.ndim != 2 or self.lon.shape != self.lat.shape:
            msg = (
                "Longitude and latitude must be 2D arrays of identical shape, "
                f"got {self.lon.shape} and {self.lat.shape}."
            )
            raise PreconditionError(msg)

        if level is None:
            level = [SINGLE_LEVEL]
        self.level = np.atleast_1d(np.asarray(level, dtype=COORD_DTYPE))
        self.time = np.atleast_1d(np.asarray(time, dtype=np.float64))
        if self.level.ndim != 1 or self.time.ndim != 1:
            raise PreconditionError("Level and time coordinates must be 1D.")

    def __repr__(self) -> str:
        return f"{type(self).__name__} with shape {self.shape}"

    @property
    def shape(self) -> tuple[int, int, int, int]:
        """Return the ``(nlon, nlat, nlevel, ntime)`` shape."""
        nx, ny = self.lon.shape
        return nx, ny, self.level.size, self.time.size

    @property
    def is_single_level(self) -> bool:
        """Check if the values have a single level with level coordinate -1."""
        return self.level.size == 1 and self.level[0] == SINGLE_LEVEL

    def equals(self, other: object) -> bool:
        """Determine if two instances hold the same logical values.

        The backing does not matter. NaN values are considered equal.

        Parameters
        ----------
        other : object
            Values to compare with

        Returns
        -------
        bool
        """
        if not isinstance(other, GriddedValues):
            return False
        return (
            self.shape == other.shape
            and np.array_equal(self.lon, other.lon)
            and np.array_equal(self.lat, other.lat)
            and np.array_equal(self.level, other.level)
            and np.array_equal(self.time, other.time)
            and np.array_equal(self.to_numpy(), other.to_numpy(), equal_nan=True)
        )

    def _check_compatible(self, other: GriddedValues) -> None:
        """Ensure ``other`` shares the spatial grid and level axis."""
        if not (
            np.array_equal(self.lon, other.lon)
            and np.array_equal(self.lat, other.lat)
            and np.array_equal(self.level, other.level)
        ):
            raise PreconditionError("Values must share longitude, latitude, and level coordinates.")

    def _time_positions(self, indexer: TimeIndexer) -> npt.NDArray[np.intp]:
        """Convert a time indexer into sorted integer positions."""
        if isinstance(indexer, int | np.integer):
            indexer = [indexer]
        positions = np.arange(self.time.size)[indexer]
        return np.atleast_1d(positions)

    @abstractmethod
    def slice_by_time(self, indexer: TimeIndexer) -> Self:
        """Select a subset of time steps.

        Parameters
        ----------
        indexer : int | slice | npt.ArrayLike
            Positional indexer along the time dimension. An integer keeps the
            time dimension with length one.

        Returns
        -------
        Self
            New instance with the selected time steps.
        """

    @abstractmethod
    def concat_on_time(self, other: GriddedValues) -> Self:
        """Concatenate ``other`` after ``self`` along the time dimension.

        ``other`` is converted to the backing of ``self`` if necessary.

        Parameters
        ----------
        other : GriddedValues
            Values sharing the spatial grid and level axis

        Returns
        -------
        Self
            New instance with ``self.time`` followed by ``other.time``.

        Raises
        ------
        PreconditionError
            If grids or levels differ.
        """

    @abstractmethod
    def remap_with_weights(self, matrix: ProjectionMatrix) -> Self:
        """Apply a transfer matrix to every (level, time) slice independently.

        Parameters
        ----------
        matrix : ProjectionMatrix
            Transfer matrix whose source grid matches these values

        Returns
        -------
        Self
            New instance on the destination grid of ``matrix``.
        """

    @abstractmethod
    def to_numpy(self) -> npt.NDArray[np.float64]:
        """Return values as a dense ``(nlon, nlat, nlevel, ntime)`` array.

        Missing values are NaN.
        """

    @abstractmethod
    def to_dense(self) -> DenseValues:
        """Return an equivalent :class:`DenseValues`."""

    @abstractmethod
    def to_tabular(self) -> TabularValues:
        """Return an equivalent :class:`TabularValues`."""

    def _check_matrix(self, matrix: ProjectionMatrix) -> None:
        if matrix.src_shape != self.lon.shape:
            msg = (
                f"Projection matrix source grid {matrix.src_shape} does not match "
                f"values grid {self.lon.shape}."
            )
            raise PreconditionError(msg)


class DenseValues(GriddedValues):
    """Values stored as a 4D :class:`xarray.DataArray`.

    Parameters
    ----------
    values : npt.ArrayLike | xr.DataArray
        Array with shape ``(nlon, nlat, nlevel, ntime)``. A 3D array with
        shape ``(nlon, nlat, ntime)`` is interpreted as single level data.
    lon, lat, level, time
        Coordinates. See :class:`GriddedValues`.
    copy : bool, optional
        Copy ``values`` on instantiation, by default True.
    """

    __slots__ = ("data",)

    #: Values with dims :attr:`dim_order`
    data: xr.DataArray

    def __init__(
        self,
        values: npt.ArrayLike | xr.DataArray,
        lon: npt.ArrayLike,
        lat: npt.ArrayLike,
        level: npt.ArrayLike | None = None,
        time: npt.ArrayLike = (),
        copy: bool = True,
    ) -> None:
        super().__init__(lon, lat, level, time)

        arr = values.values if isinstance(values, xr.DataArray) else values
        arr = np.array(arr, dtype=np.float64) if copy else np.asarray(arr, dtype=np.float64)
        if arr.ndim == 3:
            arr = arr[:, :, np.newaxis, :]
        if arr.ndim != 4:
            raise PreconditionError(f"Dense values must be 3D or 4D, got {arr.ndim}D.")
        if arr.shape != self.shape:
            msg = f"Values shape {arr.shape} does not match coordinate shape {self.shape}."
            raise PreconditionError(msg)

        self.data = xr.DataArray(
            arr,
            dims=self.dim_order,
            coords={
                "longitude": (("x", "y"), self.lon),
                "latitude": (("x", "y"), self.lat),
                "level": self.level,
                "time": self.time,
            },
        )

    @classmethod
    def _from_fastpath(cls, data: xr.DataArray) -> Self:
        """Create new instance from a consistent :class:`xr.DataArray`.

        This is a low-level method that skips validation. It is intended for internal use only.
        """
        obj = cls.__new__(cls)
        obj.data = data
        obj.lon = data["longitude"].values
        obj.lat = data["latitude"].values
        obj.level = data["level"].values
        obj.time = data["time"].values
        return obj

    @override
    def slice_by_time(self, indexer: TimeIndexer) -> Self:
        positions = self._time_positions(indexer)
        return self._from_fastpath(self.data.isel(time=positions))

    @override
    def concat_on_time(self, other: GriddedValues) -> Self:
        other = other.to_dense()
        self._check_compatible(other)
        data = xr.concat(
            [self.data, other.data],
            dim="time",
            coords="minimal",
            compat="override",
            join="exact",
        )
        return self._from_fastpath(data)

    @override
    def remap_with_weights(self, matrix: ProjectionMatrix) -> Self:
        self._check_matrix(matrix)
        _, _, nz, nt = self.shape
        arr = self.data.values
        out = np.empty((*matrix.dst_shape, nz, nt))
        for k in range(nz):
            for t in range(nt):
                out[:, :, k, t] = matrix.apply(arr[:, :, k, t])

        return type(self)(
            out, matrix.dst_grid.lon, matrix.dst_grid.lat, self.level, self.time, copy=False
        )

    @override
    def to_numpy(self) -> npt.NDArray[np.float64]:
        return self.data.values

    @override
    def to_dense(self) -> DenseValues:
        return self

    @override
    def to_tabular(self) -> TabularValues:
        nx, ny, nz, nt = self.shape
        ncells = nx * ny

        # Fortran order: cell (longitude fastest), then level, then time
        frame = pd.DataFrame(
            {
                "lon": np.tile(self.lon.ravel(order="F"), nz * nt),
                "lat": np.tile(self.lat.ravel(order="F"), nz * nt),
                "Z": np.tile(np.repeat(self.level, ncells), nt),
                "time": np.repeat(self.time, ncells * nz),
                "value": self.data.values.ravel(order="F"),
            }
        )
        return TabularValues._from_fastpath(frame, self.lon, self.lat, self.level, self.time)


class TabularValues(GriddedValues):
    """Values stored as a long-form :class:`pandas.DataFrame`.

    Each row holds one value with its cell-center ``lon`` and ``lat``, its
    level ``Z``, and its ``time``. Rows absent from the table are missing values.

    Parameters
    ----------
    frame : pd.DataFrame
        Table with columns ``lon``, ``lat``, ``Z``, ``time``, and ``value``.
    lon, lat : npt.ArrayLike
        2D grid coordinates. Every (lon, lat) pair in ``frame`` must be a cell
        of this grid.
    level : npt.ArrayLike | None, optional
        Level axis. Inferred from the unique values of ``Z`` if None.
    time : npt.ArrayLike | None, optional
        Time axis. Inferred from the unique values of ``time`` if None.
    """

    __slots__ = ("frame",)

    #: Long-form values
    frame: pd.DataFrame

    def __init__(
        self,
        frame: pd.DataFrame,
        lon: npt.ArrayLike,
        lat: npt.ArrayLike,
        level: npt.ArrayLike | None = None,
        time: npt.ArrayLike | None = None,
    ) -> None:
        if not isinstance(frame, pd.DataFrame):
            raise PreconditionError("Tabular values must be a pandas DataFrame.")
        missing = set(TABULAR_COLUMNS).difference(frame.columns)
        if missing:
            raise PreconditionError(f"Tabular values are missing column(s): {sorted(missing)}.")

        if level is None:
            level = np.unique(frame["Z"].to_numpy(dtype=np.float64))
            if level.size == 0:
                level = None
        if time is None:
            time = np.unique(frame["time"].to_numpy(dtype=np.float64))
        super().__init__(lon, lat, level, time)

        dtypes = {"lon": COORD_DTYPE, "lat": COORD_DTYPE, "Z": COORD_DTYPE, "time": np.float64}
        frame = frame.loc[:, list(TABULAR_COLUMNS)].reset_index(drop=True)
        self.frame = frame.astype(dtypes)

        flat = self._flat_positions()
        if np.unique(flat).size != flat.size:
            raise PreconditionError("Tabular values contain duplicate (lon, lat, Z, time) rows.")

    @classmethod
    def _from_fastpath(
        cls,
        frame: pd.DataFrame,
        lon: npt.NDArray[np.float64],
        lat: npt.NDArray[np.float64],
        level: npt.NDArray[np.float64],
        time: npt.NDArray[np.float64],
    ) -> Self:
        """Create new instance from consistent data.

        This is a low-level method that skips validation. It is intended for internal use only.
        """
        obj = cls.__new__(cls)
        obj.frame = frame
        obj.lon = lon
        obj.lat = lat
        obj.level = level
        obj.time = time
        return obj

    def _positions(
        self,
    ) -> tuple[npt.NDArray[np.intp], npt.NDArray[np.intp], npt.NDArray[np.intp]]:
        """Locate each row as (flat cell, level position, time position).

        Raises
        ------
        PreconditionError
            If any row lies outside the grid, level axis, or time axis.
        """
        frame = self.frame
        cells = pd.MultiIndex.from_arrays([self.lon.ravel(order="F"), self.lat.ravel(order="F")])
        cell = cells.get_indexer(pd.MultiIndex.from_arrays([frame["lon"], frame["lat"]]))
        level = pd.Index(self.level).get_indexer(frame["Z"])
        time = pd.Index(self.time).get_indexer(frame["time"])

        for name, positions in (("(lon, lat)", cell), ("Z", level), ("time", time)):
            if np.any(positions < 0):
                raise PreconditionError(f"Tabular values contain {name} not found on the axes.")
        return cell, level, time

    def _flat_positions(self) -> npt.NDArray[np.intp]:
        cell, level, time = self._positions()
        ncells = self.lon.size
        return cell + ncells * (level + self.level.size * time)

    @override
    def slice_by_time(self, indexer: TimeIndexer) -> Self:
        positions = self._time_positions(indexer)
        time = self.time[positions]
        frame = self.frame[self.frame["time"].isin(time)].reset_index(drop=True)
        return self._from_fastpath(frame, self.lon, self.lat, self.level, time)

    @override
    def concat_on_time(self, other: GriddedValues) -> Self:
        other = other.to_tabular()
        self._check_compatible(other)
        frame = pd.concat([self.frame, other.frame], ignore_index=True)
        time = np.concatenate([self.time, other.time])
        return self._from_fastpath(frame, self.lon, self.lat, self.level, time)

    @override
    def remap_with_weights(self, matrix: ProjectionMatrix) -> Self:
        self._check_matrix(matrix)
        cell, level, time = self._positions()
        dst_lon, dst_lat = matrix.dst_grid.flat_cells()
        values = self.frame["value"].to_numpy(dtype=np.float64)
        nsrc = self.lon.size

        frames = []
        slice_key = level * self.time.size + time
        groups = pd.Series(slice_key).groupby(slice_key).indices
        for key, rows in sorted(groups.items()):
            k, t = divmod(int(key), self.time.size)
            src = np.full(nsrc, np.nan)
            src[cell[rows]] = values[rows]
            frames.append(
                pd.DataFrame(
                    {
                        "lon": dst_lon,
                        "lat": dst_lat,
                        "Z": self.level[k],
                        "time": self.time[t],
                        "value": matrix.apply(src),
                    }
                )
            )

        if frames:
            frame = pd.concat(frames, ignore_index=True)
        else:
            frame = _empty_frame()
        return self._from_fastpath(
            frame, matrix.dst_grid.lon, matrix.dst_grid.lat, self.level, self.time
        )

    @override
    def to_numpy(self) -> npt.NDArray[np.float64]:
        arr = np.full(self.shape, np.nan)
        cell, level, time = self._positions()
        nx = self.lon.shape[0]
        arr[cell % nx, cell // nx, level, time] = self.frame["value"].to_numpy(dtype=np.float64)
        return arr

    @override
    def to_dense(self) -> DenseValues:
        return DenseValues(self.to_numpy(), self.lon, self.lat, self.level, self.time, copy=False)

    @override
    def to_tabular(self) -> TabularValues:
        return self


def _empty_frame() -> pd.DataFrame:
    data: dict[str, Any] = {key: np.array([], dtype=np.float64) for key in TABULAR_COLUMNS}
    return pd.DataFrame(data)
