"""auh - AUR helper with bounded parallel builds."""

__version__ = "0.1.0"
