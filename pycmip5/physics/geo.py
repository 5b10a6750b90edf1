"""Tools for spherical geometry of longitude-latitude grids."""

from __future__ import annotations

import numpy as np
import numpy.typing as npt
import xarray as xr

from pycmip5.core.exceptions import InvalidGridError
from pycmip5.physics import constants, units

#: Largest coordinate deviation along the other grid axis, [:math:`\deg`]
RECTILINEAR_ATOL = 1e-9

# ------------------
# Cell boundaries
# ------------------


def rectilinear_axes(
    longitude: npt.ArrayLike, latitude: npt.ArrayLike
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    r"""Extract 1D axes from 2D cell-center coordinate arrays.

    Longitude must vary along the first axis only and latitude along the
    second axis only.

    Parameters
    ----------
    longitude : npt.ArrayLike
        2D longitude cell centers with shape ``(nlon, nlat)``, [:math:`\deg`]
    latitude : npt.ArrayLike
        2D latitude cell centers with shape ``(nlon, nlat)``, [:math:`\deg`]

    Returns
    -------
    tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]
        1D longitude and latitude axes, [:math:`\deg`]

    Raises
    ------
    InvalidGridError
        If the arrays are not 2D, have mismatched shapes, contain non-finite values,
        are not rectilinear, or are not monotonic along their dimension.
    """
    lon = np.asarray(longitude, dtype=np.float64)
    lat = np.asarray(latitude, dtype=np.float64)

    if lon.ndim != 2 or lat.ndim != 2:
        raise InvalidGridError(
            f"Longitude and latitude must be 2D arrays, got {lon.ndim}D and {lat.ndim}D."
        )
    if lon.shape != lat.shape:
        raise InvalidGridError(f"Mismatched grid shapes: {lon.shape} and {lat.shape}.")
    if lon.size == 0:
        raise InvalidGridError("Grid must contain at least one cell.")
    if not (np.all(np.isfinite(lon)) and np.all(np.isfinite(lat))):
        raise InvalidGridError("Grid coordinates must be finite.")

    lon1d = lon[:, 0]
    lat1d = lat[0, :]
    if not np.allclose(lon, lon1d[:, np.newaxis], rtol=0.0, atol=RECTILINEAR_ATOL):
        raise InvalidGridError("Longitude must be constant along the latitude dimension.")
    if not np.allclose(lat, lat1d[np.newaxis, :], rtol=0.0, atol=RECTILINEAR_ATOL):
        raise InvalidGridError("Latitude must be constant along the longitude dimension.")

    _check_monotonic(lon1d, "longitude")
    _check_monotonic(lat1d, "latitude")

    if np.any(np.abs(lat1d) > constants.north_pole):
        raise InvalidGridError("Latitude values must be contained in the interval [-90, 90].")

    return lon1d, lat1d


def _check_monotonic(arr: npt.NDArray[np.float64], name: str) -> None:
    diff = np.diff(arr)
    if not (np.all(diff > 0.0) or np.all(diff < 0.0)):
        raise InvalidGridError(f"Coordinate '{name}' is not strictly monotonic.")


def _midpoint_bounds(centers: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Place cell edges halfway between centers and half a step beyond the ends."""
    edges = np.empty(centers.size + 1)
    edges[1:-1] = 0.5 * (centers[1:] + centers[:-1])
    edges[0] = centers[0] - 0.5 * (centers[1] - centers[0])
    edges[-1] = centers[-1] + 0.5 * (centers[-1] - centers[-2])

    # Rows are (lower, upper) regardless of the direction of the axis
    return np.sort(np.column_stack([edges[:-1], edges[1:]]), axis=1)


def longitude_bounds(longitude: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    r"""Infer longitude cell boundaries from 1D cell centers.

    Boundaries are not wrapped: a cell centered on 0 with width 2 has bounds
    ``(-1, 1)``. Overlap computations treat longitude as periodic.

    Parameters
    ----------
    longitude : npt.NDArray[np.float64]
        1D monotonic longitude cell centers, [:math:`\deg`]

    Returns
    -------
    npt.NDArray[np.float64]
        Boundaries with shape ``(nlon, 2)``, [:math:`\deg`]

    Raises
    ------
    InvalidGridError
        If the cells span more than a full circle.
    """
    if longitude.size == 1:
        half = constants.full_circle / 2.0
        return np.array([[longitude[0] - half, longitude[0] + half]])

    bounds = _midpoint_bounds(longitude)
    span = np.sum(bounds[:, 1] - bounds[:, 0])
    if span > constants.full_circle * (1.0 + 1e-9):
        raise InvalidGridError(f"Longitude cells span {span} degrees, more than a full circle.")
    return bounds


def latitude_bounds(latitude: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    r"""Infer latitude cell boundaries from 1D cell centers.

    Boundaries are clipped to the poles.

    Parameters
    ----------
    latitude : npt.NDArray[np.float64]
        1D monotonic latitude cell centers, [:math:`\deg`]

    Returns
    -------
    npt.NDArray[np.float64]
        Boundaries with shape ``(nlat, 2)``, [:math:`\deg`]
    """
    if latitude.size == 1:
        return np.array([[constants.south_pole, constants.north_pole]])

    bounds = _midpoint_bounds(latitude)
    return np.clip(bounds, constants.south_pole, constants.north_pole)


def validate_bounds(
    bounds: npt.ArrayLike, centers: npt.NDArray[np.float64], name: str
) -> npt.NDArray[np.float64]:
    """Check user supplied cell boundaries against 1D cell centers.

    Parameters
    ----------
    bounds : npt.ArrayLike
        Boundaries with shape ``(n, 2)``
    centers : npt.NDArray[np.float64]
        1D cell centers with length ``n``
    name : str
        Coordinate name used in error messages

    Returns
    -------
    npt.NDArray[np.float64]
        Boundaries sorted so that each row is ``(lower, upper)``

    Raises
    ------
    InvalidGridError
        If boundaries are malformed.
    """
    arr = np.asarray(bounds, dtype=np.float64)
    if arr.shape != (centers.size, 2):
        raise InvalidGridError(
            f"Coordinate '{name}' bounds must have shape {(centers.size, 2)}, got {arr.shape}."
        )
    if not np.all(np.isfinite(arr)):
        raise InvalidGridError(f"Coordinate '{name}' bounds must be finite.")
    arr = np.sort(arr, axis=1)
    if name == "latitude" and (
        np.any(arr < constants.south_pole) or np.any(arr > constants.north_pole)
    ):
        raise InvalidGridError("Latitude bounds must be contained in the interval [-90, 90].")
    if name == "longitude" and np.any(arr[:, 1] - arr[:, 0] > constants.full_circle):
        raise InvalidGridError("Longitude cells cannot be wider than a full circle.")
    return arr


# ---------------
# Grid properties
# ---------------


def cell_area(
    longitude: npt.ArrayLike,
    latitude: npt.ArrayLike,
    lon_bounds: npt.ArrayLike | None = None,
    lat_bounds: npt.ArrayLike | None = None,
    radius: float = constants.radius_earth,
) -> npt.NDArray[np.float64]:
    r"""Calculate the surface area of each cell of a 2D longitude-latitude grid.

    Cell boundaries are inferred from cell centers unless supplied. Cells next to
    the poles are truncated at :math:`\pm 90` degrees, and longitude boundaries
    may cross the date line or the 0/360 meridian.

    Parameters
    ----------
    longitude : npt.ArrayLike
        2D longitude cell centers with shape ``(nlon, nlat)``, [:math:`\deg`]
    latitude : npt.ArrayLike
        2D latitude cell centers with shape ``(nlon, nlat)``, [:math:`\deg`]
    lon_bounds : npt.ArrayLike | None, optional
        Longitude boundaries with shape ``(nlon, 2)``, [:math:`\deg`]
    lat_bounds : npt.ArrayLike | None, optional
        Latitude boundaries with shape ``(nlat, 2)``, [:math:`\deg`]
    radius : float, optional
        Sphere radius, [:math:`m`]. Defaults to :attr:`constants.radius_earth`.

    Returns
    -------
    npt.NDArray[np.float64]
        Surface area of each cell with shape ``(nlon, nlat)``, [:math:`m^{2}`]

    Raises
    ------
    InvalidGridError
        If the grid coordinates or boundaries are malformed.

    Examples
    --------
    >>> lon, lat = np.meshgrid([90.0, 270.0], [-45.0, 45.0], indexing="ij")
    >>> area = cell_area(lon, lat, radius=1.0)
    >>> bool(np.isclose(area.sum(), 4.0 * np.pi))
    True
    """
    lon1d, lat1d = rectilinear_axes(longitude, latitude)
    if lon_bounds is None:
        lon_b = longitude_bounds(lon1d)
    else:
        lon_b = validate_bounds(lon_bounds, lon1d, "longitude")
    if lat_bounds is None:
        lat_b = latitude_bounds(lat1d)
    else:
        lat_b = validate_bounds(lat_bounds, lat1d, "latitude")

    return bounds_area(lon_b, lat_b, radius)


def bounds_area(
    lon_bounds: npt.NDArray[np.float64],
    lat_bounds: npt.NDArray[np.float64],
    radius: float = constants.radius_earth,
) -> npt.NDArray[np.float64]:
    r"""Calculate cell areas from validated 1D cell boundaries.

    Parameters
    ----------
    lon_bounds : npt.NDArray[np.float64]
        Longitude boundaries with shape ``(nlon, 2)``, [:math:`\deg`]
    lat_bounds : npt.NDArray[np.float64]
        Latitude boundaries with shape ``(nlat, 2)``, [:math:`\deg`]
    radius : float, optional
        Sphere radius, [:math:`m`]

    Returns
    -------
    npt.NDArray[np.float64]
        Surface area of each cell with shape ``(nlon, nlat)``, [:math:`m^{2}`]
    """
    d_lon = lon_bounds[:, 1] - lon_bounds[:, 0]
    area_lat_btm = _area_between_latitude_and_north_pole(lat_bounds[:, 0], radius)
    area_lat_top = _area_between_latitude_and_north_pole(lat_bounds[:, 1], radius)

    area = np.outer(d_lon / constants.full_circle, area_lat_btm - area_lat_top)
    return np.maximum(area, 0.0)


def grid_cell_area(
    longitude: npt.NDArray[np.floating],
    latitude: npt.NDArray[np.floating],
    radius: float = constants.radius_earth,
) -> xr.DataArray:
    r"""Calculate surface area covered by each cell of 1D longitude and latitude axes.

    Parameters
    ----------
    longitude : npt.NDArray[np.floating]
        1D longitude cell centers, [:math:`\deg`]
    latitude : npt.NDArray[np.floating]
        1D latitude cell centers, [:math:`\deg`]
    radius : float, optional
        Sphere radius, [:math:`m`]

    Returns
    -------
    xr.DataArray
        Surface area of each cell, [:math:`m^{2}`]

    References
    ----------
    - https://www.pmel.noaa.gov/maillists/tmap/ferret_users/fu_2004/msg00023.html
    """
    lon_2d, lat_2d = np.meshgrid(longitude, latitude, indexing="ij")
    area = cell_area(lon_2d, lat_2d, radius=radius)
    return xr.DataArray(
        area,
        coords={"longitude": np.asarray(longitude), "latitude": np.asarray(latitude)},
        dims=("longitude", "latitude"),
        attrs={"units": "m2"},
    )


def _area_between_latitude_and_north_pole(
    latitude: npt.NDArray[np.floating], radius: float = constants.radius_earth
) -> npt.NDArray[np.floating]:
    r"""
    Calculate surface area from the provided latitude to the North Pole.

    Parameters
    ----------
    latitude: npt.NDArray[np.floating]
        1D Latitude values with index corresponding to latitude inputs, [:math:`\deg`]
    radius : float, optional
        Sphere radius, [:math:`m`]

    Returns
    -------
    npt.NDArray[np.floating]
        Surface area from latitude to North Pole, [:math:`m^{2}`]
    """
    lat_radians = units.degrees_to_radians(latitude)
    return 2.0 * np.pi * radius**2 * (1.0 - np.sin(lat_radians))


# ---------------
# Cell overlaps
# ---------------


def longitude_overlap(
    bounds0: npt.NDArray[np.float64], bounds1: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    r"""Compute the periodic overlap between two sets of longitude intervals.

    Parameters
    ----------
    bounds0 : npt.NDArray[np.float64]
        Boundaries with shape ``(n0, 2)``, [:math:`\deg`]
    bounds1 : npt.NDArray[np.float64]
        Boundaries with shape ``(n1, 2)``, [:math:`\deg`]

    Returns
    -------
    npt.NDArray[np.float64]
        Overlap widths with shape ``(n0, n1)``, [:math:`\deg`]
    """
    # Anchor every interval at a lower bound in [0, 360) so one shift each way suffices
    lo0 = units.normalize_longitude(bounds0[:, 0])
    hi0 = lo0 + (bounds0[:, 1] - bounds0[:, 0])
    lo1 = units.normalize_longitude(bounds1[:, 0])
    hi1 = lo1 + (bounds1[:, 1] - bounds1[:, 0])

    lo0 = lo0[:, np.newaxis]
    hi0 = hi0[:, np.newaxis]
    overlap = np.zeros((lo0.size, lo1.size))
    for shift in (-constants.full_circle, 0.0, constants.full_circle):
        width = np.minimum(hi0, hi1 + shift) - np.maximum(lo0, lo1 + shift)
        overlap += np.clip(width, 0.0, None)
    return overlap


def latitude_overlap(
    bounds0: npt.NDArray[np.float64], bounds1: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    r"""Compute the overlap between two sets of latitude bands.

    The overlap is expressed as the difference of the sine of the bounding
    latitudes, which is proportional to the surface area of the band.

    Parameters
    ----------
    bounds0 : npt.NDArray[np.float64]
        Boundaries with shape ``(n0, 2)``, [:math:`\deg`]
    bounds1 : npt.NDArray[np.float64]
        Boundaries with shape ``(n1, 2)``, [:math:`\deg`]

    Returns
    -------
    npt.NDArray[np.float64]
        Overlap with shape ``(n0, n1)``, dimensionless
    """
    lo = np.maximum(bounds0[:, 0][:, np.newaxis], bounds1[:, 0])
    hi = np.minimum(bounds0[:, 1][:, np.newaxis], bounds1[:, 1])
    band = np.sin(units.degrees_to_radians(hi)) - np.sin(units.degrees_to_radians(lo))
    return np.where(hi > lo, band, 0.0)
