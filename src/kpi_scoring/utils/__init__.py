"""
Utility module.

Logging setup and numeric coercion helpers shared across the package.
"""

from .logging import setup_logging, get_logger
from .numbers import clamp, to_number

__all__ = ["setup_logging", "get_logger", "clamp", "to_number"]
