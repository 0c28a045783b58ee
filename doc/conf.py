import os
import sys

# -- Path setup --------------------------------------------------------------
# Project root on sys.path so autodoc can import cekit without installing it
sys.path.insert(0, os.path.abspath(".."))

# -- Project information -----------------------------------------------------
project = "cekit"
author = "cekit developers"

# Version from package metadata when installed, otherwise the dev marker
from importlib.metadata import version as _get_version, PackageNotFoundError


try:
    release = _get_version("cekit")
except PackageNotFoundError:
    release = "0.0.0-dev"
version = ".".join(release.split(".")[:2])

# -- General configuration ---------------------------------------------------
extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosectionlabel",
]

templates_path = ["_templates"]
exclude_patterns = []
autosectionlabel_prefix_document = True

autodoc_default_options = {
    "members": True,
    "undoc-members": True,
    "show-inheritance": True,
}
autodoc_mock_imports = ["z3"]

# -- Options for HTML output -------------------------------------------------
html_theme = "alabaster"
