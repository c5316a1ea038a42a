"""CLI layer: dispatch, help rendering, console output and the error boundary.

This package is the outermost layer of the launcher.  It may import
from ``core``, ``infra`` and ``utils``, but no other layer may import
from ``cli``.
"""
