"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the application.
"""

import os
import pathlib
from dotenv import load_dotenv


# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or "PYTEST_CURRENT_TEST" in os.environ

if not is_testing:
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # repository root
        pathlib.Path.cwd() / ".env",
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "postgresql://localhost/clinic_scheduler_dev"
    )

DATABASE_URL = get_database_url()
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Scheduling
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "UTC")
PATIENT_CANCELLATION_HOURS = int(os.getenv("PATIENT_CANCELLATION_HOURS", "24"))
MIN_DURATION_MINUTES = int(os.getenv("MIN_DURATION_MINUTES", "15"))
MAX_DURATION_MINUTES = int(os.getenv("MAX_DURATION_MINUTES", "240"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
