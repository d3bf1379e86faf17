"""
Spot price runners.

This package provides the cron-invoked runners that fetch prices and
maintain daily statistics in the database.
"""

from .base_runner import BaseRunner

__all__ = ['BaseRunner']
