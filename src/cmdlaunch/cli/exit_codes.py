"""Exit-code constants used by the CLI layer.

Every exit path returns one of these values instead of a bare integer.
"""

from __future__ import annotations

SUCCESS: int = 0
"""Command completed, or help / version was printed."""

GENERAL_ERROR: int = 1
"""A LauncherError was caught and reported."""

KEYBOARD_INTERRUPT: int = 130
"""User pressed Ctrl+C.  Follows POSIX convention (128 + SIGINT=2)."""
