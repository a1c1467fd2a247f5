"""Sphinx configuration for sqlmigrate documentation."""

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.abspath(".."))

from sqlmigrate import __version__

# Project information
project = "sqlmigrate"
copyright = "2024, sqlmigrate contributors"
author = "sqlmigrate contributors"
version = __version__
release = __version__

# General configuration
extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.viewcode",
    "sphinx.ext.napoleon",
    "myst_parser",
]

exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

# Options for HTML output
html_theme = "sphinx_rtd_theme"
html_theme_options = {
    "navigation_depth": 4,
    "collapse_navigation": False,
}

# MyST parser settings
myst_enable_extensions = [
    "colon_fence",
    "deflist",
]

# Autodoc settings
autodoc_member_order = "bysource"
autodoc_typehints = "description"

# Napoleon settings
napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_include_init_with_doc = True
