"""Single source of truth for the cmdlaunch version string."""

__version__: str = "0.4.0"
