"""Exceptions and warnings raised while merging or regridding datasets."""


class CMIP5Error(Exception):
    """Base class for all pycmip5 exceptions."""


class PreconditionError(CMIP5Error, ValueError):
    """Caller supplied a malformed dataset or an invalid argument."""


class IncompatibleDatasetError(CMIP5Error):
    """Datasets differ in identifying metadata, grid, levels, or time frequency."""


class TimeOverlapError(CMIP5Error):
    """Time axes of two datasets overlap or cannot be separated."""


class InvalidGridError(CMIP5Error, ValueError):
    """Grid coordinates cannot be used for area or overlap computation.

    Raised for mismatched shapes, non-monotonic coordinates, and grids
    that are not rectilinear in longitude and latitude.
    """


class NoOverlapError(CMIP5Error):
    """Source and destination grids do not intersect."""


class DiagnosticWarning(UserWarning):
    """Non-fatal condition. The operation completed and its result is valid."""


class EnsembleMismatchWarning(DiagnosticWarning):
    """Merged datasets carry different ensemble members."""


class TimeGapWarning(DiagnosticWarning):
    """Gap between merged time axes differs from their internal timesteps."""
