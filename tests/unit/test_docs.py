"""Test the Sphinx API pages against the package."""

from __future__ import annotations

import importlib
import pathlib

import pytest

import pycmip5

DOCS = pathlib.Path(__file__).parents[2] / "docs"


def _autosummary_entries() -> list[str]:
    entries = []
    in_block = False
    for line in (DOCS / "api.rst").read_text().splitlines():
        if line.startswith(".. autosummary::"):
            in_block = True
            continue
        if not in_block:
            continue
        if line and not line.startswith(" "):
            in_block = False
            continue
        name = line.strip()
        if name and not name.startswith(":"):
            entries.append(name)
    return entries


def test_index_links_api() -> None:
    assert "api" in (DOCS / "index.rst").read_text()


def test_api_covers_public_names() -> None:
    entries = _autosummary_entries()
    assert len(entries) == len(set(entries))
    assert set(pycmip5.__all__) <= set(entries)


@pytest.mark.parametrize("name", _autosummary_entries())
def test_api_entry_resolves(name: str) -> None:
    if "." in name:
        importlib.import_module(f"pycmip5.{name}")
    else:
        assert hasattr(pycmip5, name)
