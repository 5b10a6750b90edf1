"""Convenience types."""

from __future__ import annotations

from typing import TypeVar, Union

import numpy as np
import xarray as xr

#: Array or scalar input (np.ndarray, xr.DataArray, np.float64, float)
ArrayScalarLike = TypeVar(
    "ArrayScalarLike",
    np.ndarray,
    xr.DataArray,
    np.float64,
    float,
    Union[np.ndarray, float],
    Union[xr.DataArray, np.ndarray],
)
