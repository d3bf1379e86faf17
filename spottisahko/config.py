#!/usr/bin/env python3
"""
Centralized configuration for the price ingestion runners.
Loads configuration from environment variables.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

from spottisahko.exceptions import ConfigurationError

# Load environment variables from .env file if it exists
# Look for .env in the project root (parent of the package directory)
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(dotenv_path=env_path)
# If .env doesn't exist, assume env vars are already set (e.g., by Docker)

# Database configuration
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_NAME = os.getenv("DB_NAME", "postgres")
DB_PORT = int(os.getenv("DB_PORT", "5432"))
DB_SCHEMA = os.getenv("DB_SCHEMA", "spottisahko")
DB_CONNECT_TIMEOUT = int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "30000"))
DB_MAX_RETRIES = int(os.getenv("DB_MAX_RETRIES", "3"))
DB_BACKOFF_FACTOR = float(os.getenv("DB_BACKOFF_FACTOR", "1.0"))

# ENTSO-E API configuration
ENTSOE_BASE_URL = os.getenv("ENTSOE_BASE_URL", "https://web-api.tp.entsoe.eu/api")
ENTSOE_SECURITY_TOKEN = os.getenv("ENTSOE_SECURITY_TOKEN") or os.getenv("ENTSOE_API_KEY")
# EIC code for price areas missing from entsoe.constants.BIDDING_ZONES
ENTSOE_BIDDING_ZONE = os.getenv("ENTSOE_BIDDING_ZONE")
ENTSOE_TIMEOUT = int(os.getenv("ENTSOE_TIMEOUT", "30"))

# Single-area deployment
PRICE_AREA = os.getenv("PRICE_AREA", "FI")

# Pause between dates when backfilling history
BACKFILL_DELAY_SECONDS = float(os.getenv("BACKFILL_DELAY_SECONDS", "1.0"))


def require_database_credentials():
    """
    Validate that database credentials are configured.

    Raises:
        ConfigurationError: If DB_USER or DB_PASSWORD is missing
    """
    if not DB_USER or not DB_PASSWORD:
        raise ConfigurationError(
            "Database credentials not configured. "
            "Please set DB_USER and DB_PASSWORD in .env file"
        )


def database_url():
    """SQLAlchemy URL for Alembic migrations."""
    require_database_credentials()
    return f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
