"""
Utilities package for the clinic data-access layer.

Exports shared logging helpers. Keep this package free of domain logic.
"""

from clinicdb.utils.logging import JsonFormatter, configure_logging, get_logger

__all__ = [
    "JsonFormatter",
    "configure_logging",
    "get_logger",
]
