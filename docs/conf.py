"""
Configuration file for the Sphinx documentation builder.

This file only contains a selection of the most common options. For a full
list see the documentation:
https://www.sphinx-doc.org/en/master/usage/configuration.html
"""

from __future__ import annotations

import datetime

import pycmip5

# -- Project information -----------------------------------------------------

project = "pycmip5"
copyright = f"2024-{datetime.datetime.now().year}, The pycmip5 Developers"

author = "The pycmip5 Developers"
version = pycmip5.__version__
release = pycmip5.__version__

# -- General configuration ---------------------------------------------------

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.todo",
    "sphinx.ext.intersphinx",
    "sphinx.ext.mathjax",
    "sphinx.ext.napoleon",
]

# List of patterns, relative to source directory, that match files and
# directories to ignore when looking for source files.
exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

# Set up mapping for other projects' docs
intersphinx_mapping = {
    "numpy": ("https://numpy.org/doc/stable/", None),
    "pandas": ("https://pandas.pydata.org/pandas-docs/dev/", None),
    "python": ("https://docs.python.org/3/", None),
    "scipy": ("https://docs.scipy.org/doc/scipy/", None),
    "xarray": ("https://docs.xarray.dev/en/stable/", None),
}

# Display todos by setting to True
todo_include_todos = True

# Napoleon configuration - https://www.sphinx-doc.org/en/master/usage/extensions/napoleon.html
napoleon_google_docstring = False
napoleon_numpy_docstring = True
napoleon_use_param = False
napoleon_use_rtype = False
napoleon_preprocess_types = True

# Note the ~ prefix removes the module name in presentation
napoleon_type_aliases = {
    # general terms
    "sequence": ":term:`sequence`",
    "iterable": ":term:`iterable`",
    "callable": ":py:func:`callable`",
    "mapping": ":term:`mapping`",
    # pycmip5
    "CMIP5Dataset": "~pycmip5.CMIP5Dataset",
    "GriddedValues": "~pycmip5.GriddedValues",
    "DenseValues": "~pycmip5.DenseValues",
    "TabularValues": "~pycmip5.TabularValues",
    "Grid": "~pycmip5.Grid",
    "ProjectionMatrix": "~pycmip5.ProjectionMatrix",
    "ProvenanceEntry": "~pycmip5.ProvenanceEntry",
    "MergeParams": "~pycmip5.MergeParams",
    "RegridParams": "~pycmip5.RegridParams",
    # pycmip5.utils
    "ArrayScalarLike": "~pycmip5.utils.types.ArrayScalarLike",
    # numpy
    "np.ndarray": "numpy.ndarray",
    # xarray
    "xr.DataArray": "xarray.DataArray",
    # pandas
    "pd.DataFrame": "pandas.DataFrame",
    # scipy
    "scipy.sparse.csr_matrix": "scipy.sparse.csr_matrix",
}

# generate autosummary files into the :toctree: directory
autosummary_generate = True
autodoc_typehints = "none"

# autodoc options
autoclass_content = "class"  # only include docstring from Class (not __init__ method)
autodoc_inherit_docstrings = False
autodoc_default_options = {
    "members": None,  # means yes/true/on
    "undoc-members": None,
    "show-inheritance": None,
}

pygments_style = "default"

# -- Options for HTML output -------------------------------------------------

html_theme = "alabaster"
html_title = f"{project} v{release}"
