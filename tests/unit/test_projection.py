"""Test pycmip5/core/projection.py"""

from __future__ import annotations

import numpy as np
import pytest

from pycmip5 import Grid, InvalidGridError, NoOverlapError, PreconditionError, build_projection
from pycmip5.physics import constants
from pycmip5.utils.synthetic import global_grid


@pytest.fixture()
def src_grid() -> Grid:
    return Grid(*global_grid(12, 9))


@pytest.fixture()
def dst_grid() -> Grid:
    return Grid(*global_grid(5, 7))


def test_fraction_column_sums(src_grid: Grid, dst_grid: Grid) -> None:
    """Confirm every source cell is fully distributed over a global destination grid."""
    matrix = build_projection(src_grid, None, dst_grid, None)
    assert matrix.shape == (dst_grid.size, src_grid.size)
    col_sums = np.asarray(matrix.fractions.sum(axis=0)).ravel()
    np.testing.assert_allclose(col_sums, 1.0)


def test_weight_row_sums(src_grid: Grid, dst_grid: Grid) -> None:
    """Confirm a constant field stays constant with geometric areas."""
    matrix = build_projection(src_grid, None, dst_grid, None)
    row_sums = np.asarray(matrix.weights.sum(axis=1)).ravel()
    np.testing.assert_allclose(row_sums, 1.0)
    assert matrix.covered.all()


def test_overlap_total(src_grid: Grid, dst_grid: Grid) -> None:
    """Confirm the overlaps tile the sphere."""
    matrix = build_projection(src_grid, None, dst_grid, None, radius=1.0)
    assert matrix.overlap.sum() == pytest.approx(4.0 * np.pi)


def test_zero_overlaps_omitted(src_grid: Grid, dst_grid: Grid) -> None:
    matrix = build_projection(src_grid, None, dst_grid, None)
    for attr in ("overlap", "fractions", "weights"):
        arr = getattr(matrix, attr)
        assert np.all(arr.data != 0.0)
        assert arr.nnz < src_grid.size * dst_grid.size


def test_shared_edges_omitted() -> None:
    """Confirm cells meeting only along an edge are not paired."""
    grid = Grid(*global_grid(4, 3))
    matrix = build_projection(grid, None, grid, None)
    assert matrix.weights.nnz == grid.size
    np.testing.assert_allclose(matrix.weights.diagonal(), 1.0)


def test_entries(src_grid: Grid, dst_grid: Grid) -> None:
    matrix = build_projection(src_grid, None, dst_grid, None)
    entries = matrix.entries(0)
    assert entries
    assert all(w > 0.0 for w in entries.values())

    row = matrix.weights.toarray()[0]
    assert set(entries) == set(np.flatnonzero(row))
    assert sum(entries.values()) == pytest.approx(1.0)


def test_reuse_is_deterministic(src_grid: Grid, dst_grid: Grid) -> None:
    first = build_projection(src_grid, None, dst_grid, None)
    second = build_projection(src_grid, None, dst_grid, None)
    assert (first.weights != second.weights).nnz == 0

    rng = np.random.default_rng(5)
    for _ in range(2):
        values = rng.random(src_grid.shape)
        np.testing.assert_array_equal(first.apply(values), second.apply(values))


def test_custom_areas(src_grid: Grid, dst_grid: Grid) -> None:
    """Confirm supplied areas scale the weights and NaN areas count as zero."""
    src_area = src_grid.cell_area()
    src_area[0, 0] = np.nan
    dst_area = dst_grid.cell_area()
    matrix = build_projection(src_grid, src_area, dst_grid, dst_area)

    # the fractions only depend on geometry
    geometric = build_projection(src_grid, None, dst_grid, None)
    np.testing.assert_allclose(matrix.fractions.toarray(), geometric.fractions.toarray())

    weights = matrix.weights.toarray()
    assert np.all(weights[:, 0] == 0.0)
    np.testing.assert_allclose(weights[:, 1:], geometric.weights.toarray()[:, 1:])


def test_invalid_areas(src_grid: Grid, dst_grid: Grid) -> None:
    with pytest.raises(InvalidGridError, match="source area has shape"):
        build_projection(src_grid, np.ones(dst_grid.shape), dst_grid, None)

    with pytest.raises(InvalidGridError, match="finite and non-negative"):
        build_projection(src_grid, -np.ones(src_grid.shape), dst_grid, None)

    with pytest.raises(InvalidGridError, match="finite and non-negative"):
        build_projection(src_grid, None, dst_grid, np.full(dst_grid.shape, np.inf))


def test_no_overlap() -> None:
    src = Grid.from_axes([5.0, 15.0], [5.0, 15.0])
    dst = Grid.from_axes([105.0, 115.0], [5.0, 15.0])
    with pytest.raises(NoOverlapError):
        build_projection(src, None, dst, None)

    # overlapping geometry but all source areas zero
    with pytest.raises(NoOverlapError, match="nonzero area"):
        build_projection(src, np.zeros(src.shape), src, None)


def test_date_line_wrap() -> None:
    """Confirm cells crossing the 0/360 meridian overlap their shifted counterparts."""
    src = Grid.from_axes([-10.0, 0.0, 10.0], [0.0])
    dst = Grid.from_axes([350.0, 360.0, 370.0], [0.0])
    matrix = build_projection(src, None, dst, None)
    np.testing.assert_allclose(matrix.weights.toarray(), np.eye(3))


def test_apply(src_grid: Grid, dst_grid: Grid) -> None:
    matrix = build_projection(src_grid, None, dst_grid, None)
    rng = np.random.default_rng(3)
    values = rng.random(src_grid.shape)

    out = matrix.apply(values)
    assert out.shape == dst_grid.shape

    flat = matrix.apply(values.ravel(order="F"))
    np.testing.assert_array_equal(flat, out.ravel(order="F"))

    total = np.sum(values * src_grid.cell_area())
    assert np.sum(out * dst_grid.cell_area()) == pytest.approx(total, rel=1e-9)

    with pytest.raises(PreconditionError, match="do not match source grid"):
        matrix.apply(values.T)
    with pytest.raises(PreconditionError, match="source values"):
        matrix.apply(values.ravel()[:-1])


def test_repr(src_grid: Grid, dst_grid: Grid) -> None:
    matrix = build_projection(src_grid, None, dst_grid, None, radius=constants.radius_earth)
    text = repr(matrix)
    assert text.startswith("ProjectionMatrix(Grid(12x9, 30 x 20 degrees) -> Grid(5x7")
    assert f"{matrix.weights.nnz} nonzero weights" in text
