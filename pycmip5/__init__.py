"""
``pycmip5`` public API.

Copyright 2024 The pycmip5 Developers

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

   http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

from __future__ import annotations

import logging
from importlib import metadata

from pycmip5.core.dataset import CMIP5Dataset, ProvenanceEntry
from pycmip5.core.exceptions import (
    CMIP5Error,
    DiagnosticWarning,
    EnsembleMismatchWarning,
    IncompatibleDatasetError,
    InvalidGridError,
    NoOverlapError,
    PreconditionError,
    TimeGapWarning,
    TimeOverlapError,
)
from pycmip5.core.grid import Grid
from pycmip5.core.merge import ExperimentMerger, MergeParams, mean_time_order, merge
from pycmip5.core.projection import ProjectionMatrix, build_projection
from pycmip5.core.regrid import Regridder, RegridParams, regrid
from pycmip5.core.stats import global_stat
from pycmip5.core.values import DenseValues, GriddedValues, TabularValues
from pycmip5.physics.geo import cell_area

__version__ = metadata.version("pycmip5")
__license__ = "Apache-2.0"

log = logging.getLogger(__name__)


__all__ = [
    "CMIP5Dataset",
    "CMIP5Error",
    "DenseValues",
    "DiagnosticWarning",
    "EnsembleMismatchWarning",
    "ExperimentMerger",
    "Grid",
    "GriddedValues",
    "IncompatibleDatasetError",
    "InvalidGridError",
    "MergeParams",
    "NoOverlapError",
    "PreconditionError",
    "ProjectionMatrix",
    "ProvenanceEntry",
    "RegridParams",
    "Regridder",
    "TabularValues",
    "TimeGapWarning",
    "TimeOverlapError",
    "build_projection",
    "cell_area",
    "global_stat",
    "mean_time_order",
    "merge",
    "regrid",
]
