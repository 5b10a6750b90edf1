"""Geophysical constants used for grid geometry."""

from __future__ import annotations

# NOTE: Use a decimal point for each float-valued constant. This is important for
# converting to numpy arrays.

#: Radius of Earth :math:`[m]`
radius_earth: float = 6371229.0

#: Full circle of longitude :math:`[\deg]`
full_circle: float = 360.0

#: Latitude of the North Pole :math:`[\deg]`
north_pole: float = 90.0

#: Latitude of the South Pole :math:`[\deg]`
south_pole: float = -90.0
