"""Allow ``python -m cmdlaunch`` invocation.

Delegates to the CLI error-boundary entry point so that
``python -m cmdlaunch`` behaves identically to the ``cmdlaunch``
console script.
"""

from __future__ import annotations

from cmdlaunch.cli.app import cli

if __name__ == "__main__":
    cli()
