# Sphinx configuration for the lscm documentation.
#
# Build with ``sphinx-build -b html docs/source docs/build`` from the
# repository root.

import os
import sys

# The modules live in a namespace package at the repository root.
sys.path.insert(0, os.path.abspath('../../.'))


# -- Project information -----------------------------------------------------

project = 'lscm'
copyright = '2024, m3shware'
author = 'm3shware'
release = '0.1'


# -- General configuration ---------------------------------------------------

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.intersphinx',
    'sphinx.ext.mathjax',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
]

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'numpy': ('https://numpy.org/doc/stable', None),
    'scipy': ('https://docs.scipy.org/doc/scipy', None),
}

exclude_patterns = []
toc_object_entries = False

# Handle classes are documented through their properties.
autodoc_member_order = 'bysource'


def skip(app, what, name, obj, skip, options):
    if name in ('__init__', '__new__'):
        return True

    return None


def setup(app):
    app.connect('autodoc-skip-member', skip)


# -- Options for HTML output -------------------------------------------------

html_theme = 'sphinx_rtd_theme'
html_show_sourcelink = False
