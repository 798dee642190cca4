"""Utility functions for inkflow.

This module provides:

- Logging setup and configuration
- Job lifecycle logging and statistics
"""

from inkflow.utils.logging import (
    JobLogger,
    JobStats,
    configure_logging,
)

__all__ = [
    "JobLogger",
    "JobStats",
    "configure_logging",
]
