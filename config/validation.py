# config/validation.py

"""
Environment variable validation for the identity service.
Validates required environment variables at startup.
"""

import os
import sys
from typing import List, Tuple

from .base import VALID_ISOLATION_LEVELS


def validate_environment(flask_env: str = None) -> Tuple[bool, List[str]]:
    """
    Validate required environment variables.

    Args:
        flask_env: Flask environment (development, production, testing)
                  If None, reads from FLASK_ENV environment variable

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    if flask_env is None:
        flask_env = os.environ.get("FLASK_ENV", "development")

    errors = []

    # Only validate in production
    if flask_env != "production":
        return True, []

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        errors.append(
            "DATABASE_URL is required in production. "
            "Set it to your PostgreSQL connection string."
        )
    elif database_url.startswith("sqlite"):
        errors.append("DATABASE_URL must point to a transactional server database in production, not SQLite.")

    isolation_level = os.environ.get("IDENTITY_ISOLATION_LEVEL")
    if isolation_level:
        normalized = " ".join(isolation_level.replace("_", " ").split()).upper()
        if normalized not in VALID_ISOLATION_LEVELS:
            errors.append(
                f"IDENTITY_ISOLATION_LEVEL must be one of: {', '.join(VALID_ISOLATION_LEVELS)}"
            )

    max_attempts = os.environ.get("IDENTITY_MAX_ATTEMPTS")
    if max_attempts is not None:
        try:
            if int(max_attempts) < 1:
                errors.append("IDENTITY_MAX_ATTEMPTS must be at least 1")
        except ValueError:
            errors.append("IDENTITY_MAX_ATTEMPTS must be an integer")

    is_valid = len(errors) == 0
    return is_valid, errors


def validate_and_exit(flask_env: str = None) -> None:
    """
    Validate environment variables and exit with error if validation fails.
    Intended to be called at application startup.

    Args:
        flask_env: Flask environment (development, production, testing)
    """
    is_valid, errors = validate_environment(flask_env)

    if not is_valid:
        print("=" * 80, file=sys.stderr)
        print("ENVIRONMENT VALIDATION FAILED", file=sys.stderr)
        print("=" * 80, file=sys.stderr)
        print("\nThe following environment variables are missing or invalid:\n", file=sys.stderr)

        for i, error in enumerate(errors, 1):
            print(f"{i}. {error}", file=sys.stderr)

        print("\n" + "=" * 80, file=sys.stderr)
        print("Please check your .env file or environment variables.", file=sys.stderr)
        print("=" * 80, file=sys.stderr)

        sys.exit(1)
