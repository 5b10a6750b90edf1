"""Rectilinear longitude-latitude grids."""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from pycmip5.physics import constants, geo

COORD_DTYPE = np.float64


class Grid:
    r"""Rectilinear longitude-latitude grid defined by 2D cell centers.

    Longitude varies along the first axis and latitude along the second. Cells
    are flattened in Fortran order (longitude fastest) wherever a grid is
    treated as a vector of cells.

    Parameters
    ----------
    lon : npt.ArrayLike
        2D longitude cell centers with shape ``(nlon, nlat)``, [:math:`\deg`]
    lat : npt.ArrayLike
        2D latitude cell centers with shape ``(nlon, nlat)``, [:math:`\deg`]
    lon_bounds : npt.ArrayLike | None, optional
        Longitude boundaries with shape ``(nlon, 2)``. Inferred if None.
    lat_bounds : npt.ArrayLike | None, optional
        Latitude boundaries with shape ``(nlat, 2)``. Inferred if None.

    Raises
    ------
    InvalidGridError
        If the coordinates do not define a rectilinear, monotonic grid.
    """

    __slots__ = ("lat", "lat_bounds", "lon", "lon_bounds")

    #: 2D longitude cell centers
    lon: npt.NDArray[np.float64]

    #: 2D latitude cell centers
    lat: npt.NDArray[np.float64]

    #: Longitude cell boundaries, shape ``(nlon, 2)``
    lon_bounds: npt.NDArray[np.float64]

    #: Latitude cell boundaries, shape ``(nlat, 2)``
    lat_bounds: npt.NDArray[np.float64]

    def __init__(
        self,
        lon: npt.ArrayLike,
        lat: npt.ArrayLike,
        lon_bounds: npt.ArrayLike | None = None,
        lat_bounds: npt.ArrayLike | None = None,
    ) -> None:
        self.lon = np.asarray(lon, dtype=COORD_DTYPE)
        self.lat = np.asarray(lat, dtype=COORD_DTYPE)

        lon1d, lat1d = geo.rectilinear_axes(self.lon, self.lat)
        if lon_bounds is None:
            self.lon_bounds = geo.longitude_bounds(lon1d)
        else:
            self.lon_bounds = geo.validate_bounds(lon_bounds, lon1d, "longitude")
        if lat_bounds is None:
            self.lat_bounds = geo.latitude_bounds(lat1d)
        else:
            self.lat_bounds = geo.validate_bounds(lat_bounds, lat1d, "latitude")

    @classmethod
    def from_axes(cls, longitude: npt.ArrayLike, latitude: npt.ArrayLike) -> Grid:
        """Create a grid from 1D longitude and latitude axes.

        Parameters
        ----------
        longitude : npt.ArrayLike
            1D longitude cell centers
        latitude : npt.ArrayLike
            1D latitude cell centers

        Returns
        -------
        Grid
        """
        lon, lat = np.meshgrid(longitude, latitude, indexing="ij")
        return cls(lon, lat)

    def __repr__(self) -> str:
        dlon, dlat = self.resolution
        return f"Grid({self.shape[0]}x{self.shape[1]}, {dlon:.4g} x {dlat:.4g} degrees)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return False
        return (
            np.array_equal(self.lon, other.lon)
            and np.array_equal(self.lat, other.lat)
            and np.array_equal(self.lon_bounds, other.lon_bounds)
            and np.array_equal(self.lat_bounds, other.lat_bounds)
        )

    __hash__ = None  # type: ignore[assignment]

    @property
    def shape(self) -> tuple[int, int]:
        """Return the ``(nlon, nlat)`` shape of the grid."""
        return self.lon.shape  # type: ignore[return-value]

    @property
    def size(self) -> int:
        """Return the number of cells."""
        return self.lon.size

    @property
    def longitude(self) -> npt.NDArray[np.float64]:
        """Return the 1D longitude axis."""
        return self.lon[:, 0]

    @property
    def latitude(self) -> npt.NDArray[np.float64]:
        """Return the 1D latitude axis."""
        return self.lat[0, :]

    @property
    def resolution(self) -> tuple[float, float]:
        r"""Mean cell width in longitude and latitude, [:math:`\deg`]."""
        dlon = float(np.mean(self.lon_bounds[:, 1] - self.lon_bounds[:, 0]))
        dlat = float(np.mean(self.lat_bounds[:, 1] - self.lat_bounds[:, 0]))
        return dlon, dlat

    def cell_area(self, radius: float = constants.radius_earth) -> npt.NDArray[np.float64]:
        """Compute the surface area of each cell.

        Parameters
        ----------
        radius : float, optional
            Sphere radius, [:math:`m`]

        Returns
        -------
        npt.NDArray[np.float64]
            Cell areas with shape :attr:`shape`, [:math:`m^{2}`]
        """
        return geo.bounds_area(self.lon_bounds, self.lat_bounds, radius)

    def flat_cells(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Return cell-center longitude and latitude flattened longitude-fastest."""
        return self.lon.ravel(order="F"), self.lat.ravel(order="F")
