"""Finnish day-ahead electricity price ingestion from ENTSO-E."""

__version__ = "0.1.0"
