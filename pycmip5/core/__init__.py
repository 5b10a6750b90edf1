"""Core data structures and methods."""

from pycmip5.core.dataset import CMIP5Dataset, ProvenanceEntry
from pycmip5.core.grid import Grid
from pycmip5.core.merge import ExperimentMerger, MergeParams, mean_time_order, merge
from pycmip5.core.projection import ProjectionMatrix, build_projection
from pycmip5.core.regrid import Regridder, RegridParams, regrid
from pycmip5.core.stats import global_stat
from pycmip5.core.transforms import Transform, TransformParams
from pycmip5.core.values import DenseValues, GriddedValues, TabularValues

__all__ = [
    "CMIP5Dataset",
    "DenseValues",
    "ExperimentMerger",
    "Grid",
    "GriddedValues",
    "MergeParams",
    "ProjectionMatrix",
    "ProvenanceEntry",
    "RegridParams",
    "Regridder",
    "TabularValues",
    "Transform",
    "TransformParams",
    "build_projection",
    "global_stat",
    "mean_time_order",
    "merge",
    "regrid",
]
