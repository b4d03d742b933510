# Configuration file for the Sphinx documentation builder.

import os
import sys

sys.path.insert(0, os.path.abspath("../.."))

project = "sqlscore"
copyright = "2026, DanLeds"
author = "DanLeds"
release = "1.0.0"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
]

templates_path = ["_templates"]
exclude_patterns = []

html_theme = "alabaster"
html_static_path = ["_static"]

# Napoleon settings
napoleon_google_docstrings = True
napoleon_numpy_docstrings = False

# Intersphinx mapping
intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "statsmodels": ("https://www.statsmodels.org/stable/", None),
    "sklearn": ("https://scikit-learn.org/stable/", None),
    "sqlalchemy": ("https://docs.sqlalchemy.org/en/20/", None),
}
