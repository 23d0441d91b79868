"""quickact: quick-action dispatch and background process supervision for a terminal file browser."""

__version__ = "0.1.0"
