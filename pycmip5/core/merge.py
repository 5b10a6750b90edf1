"""Merge two experiments into one continuous time series.

The most common reason to merge experiments is across time periods, e.g.
appending one of the future scenarios to "historical". Datasets must agree on
variable, units, grid, levels, domain, model, and time frequency, and their time
axes must not overlap.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt

from pycmip5.core.dataset import CMIP5Dataset, ProvenanceEntry, identical
from pycmip5.core.exceptions import (
    EnsembleMismatchWarning,
    IncompatibleDatasetError,
    PreconditionError,
    TimeGapWarning,
    TimeOverlapError,
)
from pycmip5.core.transforms import Transform, TransformParams, require_dataset

logger = logging.getLogger(__name__)

#: Fields that must be identical between merged datasets
IDENTITY_FIELDS = (
    "domain",
    "variable",
    "model",
    "value_unit",
    "lon",
    "lat",
    "lon_bounds",
    "lat_bounds",
    "level",
    "Z",
    "lev",
)

#: Ordering policy, returning ``(earlier, later)``
OrderingPolicy = Callable[[CMIP5Dataset, CMIP5Dataset], tuple[CMIP5Dataset, CMIP5Dataset]]


def mean_time_order(x: CMIP5Dataset, y: CMIP5Dataset) -> tuple[CMIP5Dataset, CMIP5Dataset]:
    """Order two datasets chronologically by their mean time stamp.

    This is a heuristic. It does not detect interleaved or overlapping time axes,
    which are rejected later by :func:`check_time_overlap`. Ties keep the
    argument order.

    Parameters
    ----------
    x, y : CMIP5Dataset
        Datasets to order

    Returns
    -------
    tuple[CMIP5Dataset, CMIP5Dataset]
        ``(earlier, later)``
    """
    if np.mean(x.time) > np.mean(y.time):
        return y, x
    return x, y


def check_time_overlap(left: CMIP5Dataset, right: CMIP5Dataset) -> None:
    """Ensure ``left`` ends strictly before ``right`` begins.

    Parameters
    ----------
    left, right : CMIP5Dataset
        Datasets in chronological order

    Raises
    ------
    TimeOverlapError
        If the time axes share a value or ``left`` ends after ``right`` starts.
    """
    shared = np.intersect1d(left.time, right.time)
    if shared.size or np.max(left.time) > np.min(right.time):
        msg = (
            f"Overlap between times; can't merge. Left spans "
            f"[{np.min(left.time)}, {np.max(left.time)}], right spans "
            f"[{np.min(right.time)}, {np.max(right.time)}] with {shared.size} shared value(s)."
        )
        raise TimeOverlapError(msg)


def internal_timestep(time: npt.NDArray[np.float64]) -> float:
    """Return ``time[1] - time[0]``, or NaN for fewer than two time steps."""
    if time.size < 2:
        return np.nan
    return float(time[1] - time[0])


def approx_equal(target: float, current: float, tolerance: float) -> bool:
    """Compare two numbers with a relative tolerance.

    The difference is relative to ``|target|`` unless ``target`` is zero, in
    which case it is absolute. Non-finite numbers are never equal.

    Parameters
    ----------
    target, current : float
        Numbers to compare
    tolerance : float
        Relative tolerance

    Returns
    -------
    bool
    """
    if not (np.isfinite(target) and np.isfinite(current)):
        return False
    diff = abs(target - current)
    scale = abs(target)
    if scale > 0.0:
        return diff / scale <= tolerance
    return diff <= tolerance


@dataclass
class MergeParams(TransformParams):
    """Default parameters for :class:`ExperimentMerger`."""

    #: Relative tolerance when comparing the gap between datasets with their timesteps
    time_tolerance: float = 1.5e-8

    #: Separator between experiment names, e.g. "historical.rcp85"
    separator: str = "."

    #: Policy deciding which dataset comes first
    ordering: OrderingPolicy = mean_time_order


class ExperimentMerger(Transform):
    """Merge two experiments of the same variable into one time series.

    Validation steps run in order and every fatal check happens before any data
    are combined, so a failed merge never returns a partial result:

    1. Identity of :data:`IDENTITY_FIELDS` (fatal)
    2. Time frequency label ``debug["timeFreqStr"]`` (fatal)
    3. Ensemble members (warning)
    4. Chronological ordering with the ``ordering`` param
    5. Time overlap (fatal)
    6. Gap between datasets vs. their internal timesteps (warning)

    Warnings derive from :class:`DiagnosticWarning`.

    Parameters
    ----------
    params : MergeParams | dict[str, Any] | None, optional
        Override default parameters.
    **params_kwargs : Any
        Override parameters with keyword arguments.
    """

    __slots__ = ()

    name = "merge"
    long_name = "Temporal merge of two experiments"
    default_params = MergeParams

    def eval(  # type: ignore[override]
        self, x: CMIP5Dataset, y: CMIP5Dataset, **params: Any
    ) -> CMIP5Dataset:
        """Merge ``x`` and ``y`` regardless of argument order.

        Parameters
        ----------
        x, y : CMIP5Dataset
            Datasets to merge
        **params : Any
            Overwrite parameters before evaluation.

        Returns
        -------
        CMIP5Dataset
            Merged dataset. Inputs are not modified.

        Raises
        ------
        PreconditionError
            If inputs are not datasets or have no time steps.
        IncompatibleDatasetError
            If identity fields or time frequency differ.
        TimeOverlapError
            If the time axes overlap.
        """
        self.update_params(params)
        x = require_dataset(x, "x")
        y = require_dataset(y, "y")
        for name, ds in (("x", x), ("y", y)):
            if not ds.time.size:
                raise PreconditionError(f"Input '{name}' has no time steps; can't merge.")

        self._progress("Checking that ancillary data are identical")
        self._check_identity(x, y)

        self._progress("Checking that time data match up")
        self._check_frequency(x, y)
        self._check_ensembles(x, y)

        left, right = self.params["ordering"](x, y)
        check_time_overlap(left, right)
        self._check_time_gap(left, right)

        self._progress("Merging")
        return self._combine(left, right)

    def _check_identity(self, x: CMIP5Dataset, y: CMIP5Dataset) -> None:
        for key in IDENTITY_FIELDS:
            if not identical(getattr(x, key), getattr(y, key)):
                raise IncompatibleDatasetError(f"Datasets differ in '{key}'; can't merge.")

    def _check_frequency(self, x: CMIP5Dataset, y: CMIP5Dataset) -> None:
        freq_x = x.debug.get("timeFreqStr")
        freq_y = y.debug.get("timeFreqStr")
        if not identical(freq_x, freq_y):
            msg = f"Datasets differ in time frequency ({freq_x!r} vs {freq_y!r}); can't merge."
            raise IncompatibleDatasetError(msg)

    def _check_ensembles(self, x: CMIP5Dataset, y: CMIP5Dataset) -> None:
        if identical(x.ensembles, y.ensembles):
            self._progress("OK: ensembles match")
            return
        warnings.warn(
            f"Ensembles differ between these datasets: {x.ensembles} vs {y.ensembles}. "
            "Merge proceeding but check carefully this is what you want!",
            EnsembleMismatchWarning,
            stacklevel=3,
        )

    def _check_time_gap(self, left: CMIP5Dataset, right: CMIP5Dataset) -> None:
        gap = float(np.min(right.time) - np.max(left.time))
        step_left = internal_timestep(left.time)
        step_right = internal_timestep(right.time)

        tolerance = self.params["time_tolerance"]
        if approx_equal(gap, step_left, tolerance) and approx_equal(gap, step_right, tolerance):
            self._progress("OK: time gap matches both timesteps")
            return

        # TODO: Accept gaps that are an integer multiple of the timestep once the
        # loaders report the calendar, so that missing months can be told apart.
        warnings.warn(
            f"The time gap between datasets is {gap:.3f} but their timesteps are "
            f"{step_left:.3f} and {step_right:.3f}. "
            "Merge proceeding but check carefully this is what you want!",
            TimeGapWarning,
            stacklevel=3,
        )

    def _combine(self, left: CMIP5Dataset, right: CMIP5Dataset) -> CMIP5Dataset:
        val = left.val.concat_on_time(right.val)
        experiment = f"{left.experiment}{self.params['separator']}{right.experiment}"

        provenance = (
            *left.provenance,
            ProvenanceEntry(
                f"Merging with another experiment: {right.experiment} "
                f"({right.variable}, {right.model}, {right.time.size} time steps)"
            ),
            *right.provenance,
            ProvenanceEntry(f"Merge completed: {experiment}"),
        )
        return left.replace(
            val=val,
            files=(*left.files, *right.files),
            experiment=experiment,
            provenance=provenance,
        )


def merge(x: CMIP5Dataset, y: CMIP5Dataset, **params: Any) -> CMIP5Dataset:
    """Merge two experiments into one continuous time series.

    Shortcut for ``ExperimentMerger(**params).eval(x, y)``.

    Parameters
    ----------
    x, y : CMIP5Dataset
        Datasets to merge, in any order
    **params : Any
        :class:`MergeParams` overrides.

    Returns
    -------
    CMIP5Dataset
    """
    return ExperimentMerger(**params).eval(x, y)
