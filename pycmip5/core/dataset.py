"""Climate model dataset value object."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

import numpy as np
import numpy.typing as npt
import pandas as pd

from pycmip5.core.exceptions import PreconditionError
from pycmip5.core.grid import Grid
from pycmip5.core.values import DenseValues, GriddedValues, TabularValues

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvenanceEntry:
    """One line of the audit trail of a dataset.

    The timestamp records when the entry was created and is ignored when
    comparing entries.
    """

    #: Description of the operation
    message: str

    #: Creation time (UTC)
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), compare=False
    )

    def __str__(self) -> str:
        return f"{self.timestamp.isoformat(timespec='seconds')} {self.message}"


class CMIP5Dataset:
    """Gridded climate model variable with its coordinates and metadata.

    Instances are treated as immutable values. Every transformation returns a
    new instance, sharing unmodified arrays with its input.

    Parameters
    ----------
    val : GriddedValues
        Values on a rectilinear lon/lat grid. Carries the ``lon``, ``lat``,
        level, and ``time`` coordinates.
    variable, model, domain, value_unit, experiment : str, optional
        Identifying metadata.
    Z : Any, optional
        Vertical level coordinate metadata.
    lev : Any, optional
        Vertical level description metadata.
    lon_bounds, lat_bounds : npt.ArrayLike | None, optional
        Cell boundaries with shape ``(nlon, 2)`` and ``(nlat, 2)``.
    ensembles : Iterable[str], optional
        Ensemble member labels.
    files : Iterable[str], optional
        Source identifiers.
    provenance : Iterable[ProvenanceEntry | str], optional
        Existing audit trail. Strings are converted to :class:`ProvenanceEntry`.
    debug : Mapping[str, Any] | None, optional
        Loader diagnostics. ``debug["timeFreqStr"]`` is the nominal time frequency.

    Raises
    ------
    PreconditionError
        If ``val`` is not :class:`GriddedValues`, if time is not strictly
        ascending, or if boundaries have the wrong shape.
    """

    __slots__ = (
        "Z",
        "debug",
        "domain",
        "ensembles",
        "experiment",
        "files",
        "lat_bounds",
        "lev",
        "lon_bounds",
        "model",
        "provenance",
        "val",
        "value_unit",
        "variable",
    )

    #: Gridded values
    val: GriddedValues

    #: Variable name, e.g. "tas"
    variable: str

    #: Climate model name
    model: str

    #: Model domain, e.g. "Amon"
    domain: str

    #: Unit of :attr:`val`
    value_unit: str

    #: Experiment name, e.g. "historical"
    experiment: str

    #: Vertical level coordinate metadata
    Z: Any

    #: Vertical level description metadata
    lev: Any

    #: Longitude cell boundaries, or None to infer them from centers
    lon_bounds: npt.NDArray[np.float64] | None

    #: Latitude cell boundaries, or None to infer them from centers
    lat_bounds: npt.NDArray[np.float64] | None

    #: Ensemble member labels
    ensembles: tuple[str, ...]

    #: Source identifiers
    files: tuple[str, ...]

    #: Append-only audit trail
    provenance: tuple[ProvenanceEntry, ...]

    #: Loader diagnostics
    debug: dict[str, Any]

    def __init__(
        self,
        val: GriddedValues,
        *,
        variable: str = "",
        model: str = "",
        domain: str = "",
        value_unit: str = "",
        experiment: str = "",
        Z: Any = None,
        lev: Any = None,
        lon_bounds: npt.ArrayLike | None = None,
        lat_bounds: npt.ArrayLike | None = None,
        ensembles: Iterable[str] = (),
        files: Iterable[str] = (),
        provenance: Iterable[ProvenanceEntry | str] = (),
        debug: Mapping[str, Any] | None = None,
    ) -> None:
        if not isinstance(val, GriddedValues):
            raise PreconditionError(f"Input 'val' must be GriddedValues, got {type(val).__name__}.")

        time = val.time
        if time.size > 1 and not np.all(np.diff(time) > 0.0):
            raise PreconditionError("Coordinate 'time' must be strictly ascending.")

        nx, ny = val.lon.shape
        self.lon_bounds = _optional_bounds(lon_bounds, nx, "lon_bounds")
        self.lat_bounds = _optional_bounds(lat_bounds, ny, "lat_bounds")

        self.val = val
        self.variable = variable
        self.model = model
        self.domain = domain
        self.value_unit = value_unit
        self.experiment = experiment
        self.Z = Z
        self.lev = lev
        self.ensembles = tuple(ensembles)
        self.files = tuple(files)
        self.provenance = tuple(
            p if isinstance(p, ProvenanceEntry) else ProvenanceEntry(str(p)) for p in provenance
        )
        self.debug = dict(debug or {})

    @classmethod
    def from_arrays(
        cls,
        values: npt.ArrayLike | pd.DataFrame,
        lon: npt.ArrayLike,
        lat: npt.ArrayLike,
        time: npt.ArrayLike | None = None,
        level: npt.ArrayLike | None = None,
        **kwargs: Any,
    ) -> Self:
        """Create a dataset from an array or a long-form table.

        Parameters
        ----------
        values : npt.ArrayLike | pd.DataFrame
            Dense ``(nlon, nlat, [nlevel,] ntime)`` array, or a table with columns
            ``lon``, ``lat``, ``Z``, ``time``, and ``value``.
        lon, lat : npt.ArrayLike
            2D cell-center coordinates.
        time : npt.ArrayLike | None, optional
            Time axis. Required for dense values.
        level : npt.ArrayLike | None, optional
            Level axis. Defaults to single level.
        **kwargs : Any
            Passed to the :class:`CMIP5Dataset` constructor.

        Returns
        -------
        Self
        """
        val: GriddedValues
        if isinstance(values, pd.DataFrame):
            val = TabularValues(values, lon, lat, level=level, time=time)
        else:
            if time is None:
                raise PreconditionError("Input 'time' is required for dense values.")
            val = DenseValues(values, lon, lat, level=level, time=time)
        return cls(val, **kwargs)

    @classmethod
    def _from_fastpath(cls, **fields: Any) -> Self:
        """Create new instance from consistent, already validated fields.

        This is a low-level method intended for internal use only.
        """
        obj = cls.__new__(cls)
        for key, value in fields.items():
            setattr(obj, key, value)
        return obj

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__} {self.variable!r} {self.model!r} {self.experiment!r}\n"
            f"\tDomain: {self.domain!r}, unit: {self.value_unit!r}\n"
            f"\tValues: {self.val!r}\n"
            f"\tTime: {self.time.size} steps"
            + (f" [{self.time[0]} .. {self.time[-1]}]" if self.time.size else "")
            + f"\n\tProvenance: {len(self.provenance)} entries"
        )

    def __eq__(self, other: object) -> bool:
        """Determine if two datasets are equal.

        Values are compared by logical content regardless of backing and NaN values
        are considered equal. Provenance timestamps are ignored.
        """
        if not isinstance(other, CMIP5Dataset):
            return False

        for key in self.__slots__:
            if key == "val":
                continue
            if not identical(getattr(self, key), getattr(other, key)):
                return False
        return self.val.equals(other.val)

    __hash__ = None  # type: ignore[assignment]

    # ------------
    # Coordinates
    # ------------

    @property
    def lon(self) -> npt.NDArray[np.float64]:
        """2D longitude cell centers."""
        return self.val.lon

    @property
    def lat(self) -> npt.NDArray[np.float64]:
        """2D latitude cell centers."""
        return self.val.lat

    @property
    def level(self) -> npt.NDArray[np.float64]:
        """1D level axis of :attr:`val`."""
        return self.val.level

    @property
    def time(self) -> npt.NDArray[np.float64]:
        """1D time axis."""
        return self.val.time

    @property
    def values(self) -> GriddedValues:
        """Alias for :attr:`val`."""
        return self.val

    @property
    def shape(self) -> tuple[int, int, int, int]:
        """Return the ``(nlon, nlat, nlevel, ntime)`` shape of :attr:`val`."""
        return self.val.shape

    @property
    def grid(self) -> Grid:
        """Return the lon/lat :class:`Grid` of this dataset.

        Raises
        ------
        InvalidGridError
            If the coordinates are not a rectilinear grid.
        """
        return Grid(self.lon, self.lat, self.lon_bounds, self.lat_bounds)

    @property
    def is_tabular(self) -> bool:
        """Check if :attr:`val` is backed by a long-form table."""
        return isinstance(self.val, TabularValues)

    # ------------
    # Copies
    # ------------

    def replace(self, **changes: Any) -> Self:
        """Return a new dataset with ``changes`` applied.

        Parameters
        ----------
        **changes : Any
            New field values keyed by field name

        Returns
        -------
        Self

        Raises
        ------
        KeyError
            If a key is not a dataset field.
        """
        unknown = set(changes).difference(self.__slots__)
        if unknown:
            raise KeyError(f"Unknown dataset field(s): {sorted(unknown)}")

        fields = {key: getattr(self, key) for key in self.__slots__}
        fields.update(changes)
        fields["debug"] = dict(fields["debug"])
        return self._from_fastpath(**fields)

    def add_provenance(self, message: str) -> Self:
        """Return a new dataset with ``message`` appended to its provenance.

        Parameters
        ----------
        message : str
            Description of the operation

        Returns
        -------
        Self
        """
        return self.replace(provenance=(*self.provenance, ProvenanceEntry(message)))

    def to_dense(self) -> Self:
        """Return the dataset with values backed by a dense array."""
        return self.replace(val=self.val.to_dense())

    def to_tabular(self) -> Self:
        """Return the dataset with values backed by a long-form table."""
        return self.replace(val=self.val.to_tabular())

    def provenance_log(self) -> str:
        """Format :attr:`provenance` as text, one entry per line."""
        return "\n".join(str(p) for p in self.provenance)


def identical(a: Any, b: Any) -> bool:
    """Check if two metadata values are identical.

    Arrays (and sequences of numbers) are compared elementwise with equal shape
    and with NaN values treated as equal. Anything else is compared with ``==``
    after checking types.

    Parameters
    ----------
    a, b : Any
        Values to compare

    Returns
    -------
    bool
    """
    if a is None or b is None:
        return a is b

    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        arr_a = np.asarray(a)
        arr_b = np.asarray(b)
        if arr_a.shape != arr_b.shape:
            return False
        # equal_nan not supported for non-numeric data (e.g. strings)
        equal_nan = arr_a.dtype.kind in "fc" and arr_b.dtype.kind in "fc"
        return bool(np.array_equal(arr_a, arr_b, equal_nan=equal_nan))

    if type(a) is not type(b):
        return False

    if isinstance(a, tuple | list):
        return len(a) == len(b) and all(identical(i, j) for i, j in zip(a, b, strict=True))

    if isinstance(a, dict):
        return a.keys() == b.keys() and all(identical(a[k], b[k]) for k in a)

    return bool(a == b)


def _optional_bounds(
    bounds: npt.ArrayLike | None, n: int, name: str
) -> npt.NDArray[np.float64] | None:
    if bounds is None:
        return None
    arr = np.asarray(bounds, dtype=np.float64)
    if arr.shape != (n, 2):
        raise PreconditionError(f"Input '{name}' must have shape {(n, 2)}, got {arr.shape}.")
    return arr
