"""SQLGrid - editable result grid for SQL query results."""

from .version import __version__

__all__ = ["__version__"]
