"""
ENTSO-E data extraction package.

This package provides functionality to fetch and parse day-ahead prices
from the ENTSO-E Transparency Platform API.
"""

from .client import EntsoeClient
from .parsers import BaseParser, DayAheadPriceParser

__all__ = ['EntsoeClient', 'BaseParser', 'DayAheadPriceParser']
