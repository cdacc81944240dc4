"""Module statistics: data-file storage, interval statistics, check reports and network outputs."""

__version__ = "0.1.0"