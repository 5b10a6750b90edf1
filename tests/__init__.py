"""Pycmip5 tests."""
