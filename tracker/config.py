"""
Environment configuration.

Values come from the process environment, optionally seeded from a .env
file in the working directory.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load environment
load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///rue_tracker.db"


def is_test_mode() -> bool:
    """Check if running in test mode."""
    return os.getenv("TEST_MODE", "false").lower() == "true"


def get_database_url() -> str:
    """
    Get the document store URL.

    In test mode 'rue_tracker' in the URL is replaced with
    'test_rue_tracker' so tests never touch real data.
    """
    url = os.getenv("TRACKER_DATABASE_URL", DEFAULT_DATABASE_URL)
    if is_test_mode():
        return url.replace("rue_tracker", "test_rue_tracker")
    return url


def get_document_key() -> str:
    """Key of the single logical document (one per family/unit)."""
    return os.getenv("TRACKER_DOCUMENT_KEY", "default")


def get_mongo_db_name() -> str:
    return os.getenv("MONGO_DB_NAME", "rue_tracker")


def get_log_level() -> str:
    return os.getenv("TRACKER_LOG_LEVEL", "INFO").upper()
