# ==================================================================================================
#                               Launcher options
# ==================================================================================================
#
# One frozen container for everything a Launcher can be told.  Values come
# from keyword arguments, optionally seeded from CMDLAUNCH_* environment
# variables by `LauncherOptions.from_env`.  Nothing here touches the
# filesystem; directories are only resolved when discovery runs.

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cmdlaunch.core.splitter import SharedFlagPolicy
from cmdlaunch.exceptions import LauncherError

ENV_CMDS_DIR = "CMDLAUNCH_CMDS_DIR"
ENV_CACHE_DIR = "CMDLAUNCH_CACHE_DIR"
ENV_NO_CACHE = "CMDLAUNCH_NO_CACHE"
ENV_LOG_LEVEL = "CMDLAUNCH_LOG_LEVEL"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class LauncherOptions:
    """
    Configuration of one :class:`~cmdlaunch.cli.dispatcher.Launcher`.

    Usage example
    -------------
        options = LauncherOptions(cmds_dir="cmds", base_dir=Path(__file__).parent)
        options = LauncherOptions.from_env(prog="mytool")
    """

    cmds_dir: str | Path = "cmds"
    """Commands root, absolute or relative to :attr:`base_dir`."""

    base_dir: Path | None = None
    """Anchor for a relative :attr:`cmds_dir`; the working directory when ``None``."""

    prog: str = "cmdlaunch"
    """Program name shown in help and version output."""

    version: str | None = None
    """Enables ``--version`` / ``-V`` when set."""

    on_error: Callable[[LauncherError], Any] | None = field(default=None, compare=False)
    """Receives launcher errors instead of the default stderr rendering."""

    cache_enabled: bool = True
    cache_dir: Path | None = None
    """Metadata cache directory; the user-level default when ``None``."""

    verbose: bool = False
    log_level: str | None = None

    shared_flag_policy: SharedFlagPolicy = SharedFlagPolicy.PARENT
    """Who receives a flag declared by both parent and child in a chain."""

    stat_concurrency: int = 10
    metadata_concurrency: int = 5
    validation_concurrency: int = 20

    def __post_init__(self) -> None:
        object.__setattr__(self, "shared_flag_policy", SharedFlagPolicy(self.shared_flag_policy))
        if self.base_dir is not None:
            object.__setattr__(self, "base_dir", Path(self.base_dir))
        if self.cache_dir is not None:
            object.__setattr__(self, "cache_dir", Path(self.cache_dir))
        for name in ("stat_concurrency", "metadata_concurrency", "validation_concurrency"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> LauncherOptions:
        """
        Build options from ``CMDLAUNCH_*`` variables, then apply *overrides*.

        Parameters
        ----------
        environ
            Variables to read; ``os.environ`` when ``None``.
        overrides
            Field values that win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        if env.get(ENV_CMDS_DIR):
            values["cmds_dir"] = env[ENV_CMDS_DIR]
        if env.get(ENV_CACHE_DIR):
            values["cache_dir"] = Path(env[ENV_CACHE_DIR]).expanduser()
        if env.get(ENV_NO_CACHE, "").strip().lower() in _TRUTHY:
            values["cache_enabled"] = False
        if env.get(ENV_LOG_LEVEL):
            values["log_level"] = env[ENV_LOG_LEVEL]

        values.update(overrides)
        return cls(**values)
