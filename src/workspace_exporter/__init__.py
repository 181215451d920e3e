"""Stream a selection of project files into bounded, deterministic export segments."""

__version__ = "0.1.0"
