# ==================================================================================================
#                                   Logging
# ==================================================================================================
#
# Tiny logging bootstrap used by the console-script entry point.  Library
# modules only ever call `logging.getLogger(__name__)`; handlers are attached
# here, once, and only when the launcher runs as a program.

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def resolve_level(level: int | str | None, *, verbose: bool = False) -> int:
    """Turn a level name or number into a ``logging`` level.

    ``None`` means WARNING, or DEBUG when *verbose* is set.  Unknown names
    fall back to WARNING.
    """
    if level is None:
        return logging.DEBUG if verbose else logging.WARNING
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.WARNING


def configure_logging(level: int = logging.WARNING) -> None:
    """
    Configure global logging once.

    Records go to stderr through ``rich.logging.RichHandler`` when Rich is
    installed, otherwise through a plain ``basicConfig`` stream handler.

    Parameters
    ----------
    level
        Logging level.

    Usage example
    -------------
        configure_logging(logging.DEBUG)
        logging.getLogger(__name__).debug("hello")
    """
    root = logging.getLogger()
    if root.handlers:
        # Embedding applications keep their own handlers.
        root.setLevel(level)
        return

    try:
        from rich.console import Console
        from rich.logging import RichHandler
    except ModuleNotFoundError:
        logging.basicConfig(level=level, format=_FORMAT)
        return

    logging.basicConfig(
        level=level,
        format="%(name)s | %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
