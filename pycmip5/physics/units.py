"""Unit conversion support."""

from __future__ import annotations

import numpy as np

from pycmip5.physics import constants
from pycmip5.utils.types import ArrayScalarLike


def degrees_to_radians(degrees: ArrayScalarLike) -> ArrayScalarLike:
    r"""Convert from degrees to radians.

    Parameters
    ----------
    degrees : ArrayScalarLike
        Degrees values, [:math:`\deg`]

    Returns
    -------
    ArrayScalarLike
        Radians values
    """
    return degrees * (np.pi / 180.0)


def normalize_longitude(longitude: ArrayScalarLike) -> ArrayScalarLike:
    r"""Shift longitude values into the interval [0, 360).

    Parameters
    ----------
    longitude : ArrayScalarLike
        Longitude values, [:math:`\deg`]

    Returns
    -------
    ArrayScalarLike
        Longitude values in [0, 360), [:math:`\deg`]
    """
    return longitude % constants.full_circle
