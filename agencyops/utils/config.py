"""Application settings read from the environment."""

import os


class AppConfig:
    """Runtime settings for the HTTP layer and services."""

    ENVIRONMENT = os.environ.get("ENVIRONMENT", "development").lower()
    SERVICE_NAME = os.environ.get("SERVICE_NAME", "agencyops-backend")

    SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "session-token")
    IMPERSONATION_COOKIE_NAME = os.environ.get("IMPERSONATION_COOKIE_NAME", "impersonation-origin")
    IMPERSONATION_TTL_HOURS = int(os.environ.get("IMPERSONATION_TTL_HOURS", "3"))

    DEFAULT_DISTRIBUTION_STRATEGY = os.environ.get(
        "DEFAULT_DISTRIBUTION_STRATEGY", "round_robin_least"
    )
    ROUND_ROBIN_WINDOW = int(os.environ.get("ROUND_ROBIN_WINDOW", "3"))

    @classmethod
    def is_production(cls) -> bool:
        return os.environ.get("ENVIRONMENT", cls.ENVIRONMENT).lower() == "production"
