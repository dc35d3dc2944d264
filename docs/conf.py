# Sphinx configuration for the imgcache docs

import os
import sys
from importlib.metadata import PackageNotFoundError, version as _dist_version

sys.path.insert(0, os.path.abspath("../src"))

project = "imgcache"
author = "imgcache contributors"
copyright = f"2026, {author}"
try:
    release = _dist_version("imgcache")
except PackageNotFoundError:
    release = "0.1.0"
version = ".".join(release.split(".")[:2])

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
    "sphinx_autodoc_typehints",
    "myst_parser",
]

exclude_patterns = ["_build"]

html_theme = "furo"
html_title = f"imgcache {release}"

myst_enable_extensions = ["colon_fence"]

# The HTTP service is an optional extra; document it without installing it.
autodoc_mock_imports = ["fastapi", "uvicorn"]
autodoc_default_options = {
    "members": True,
    "show-inheritance": True,
    "member-order": "bysource",
    "exclude-members": "model_config",
}
autodoc_typehints = "description"

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "httpx": ("https://www.python-httpx.org", None),
    "pydantic": ("https://docs.pydantic.dev/latest", None),
    "PIL": ("https://pillow.readthedocs.io/en/stable", None),
}

napoleon_google_docstring = True
napoleon_numpy_docstring = False
