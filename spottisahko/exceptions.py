"""Error taxonomy for price ingestion."""

from typing import Optional


class SpotPriceError(Exception):
    """Base class for all ingestion errors."""


class ConfigurationError(SpotPriceError, ValueError):
    """A required credential or setting is missing. Fatal, never retried."""


class UpstreamError(SpotPriceError):
    """The market-data API answered with a non-success status or timed out."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        status_text: Optional[str] = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.status_text = status_text


class ParseError(SpotPriceError):
    """The upstream response could not be parsed."""

    def __init__(self, message: str, preview: str = ""):
        super().__init__(message)
        self.preview = preview


class StorageError(SpotPriceError):
    """A single write or query against the price store failed."""
