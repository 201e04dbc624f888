"""dutop: top-N disk usage for a directory tree."""

__version__ = "0.1.0"
