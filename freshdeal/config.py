"""Library configuration loaded from environment variables."""

import datetime as dt
import logging
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "FreshDeal Pricing"
    debug: bool = False
    log_level: str = "INFO"

    # Expiry interpretation
    timezone: str = "UTC"  # zone for naive and date-only expiries
    date_only_expiry_time: dt.time = dt.time(23, 59, 59)

    model_config = {
        "env_prefix": "FRESHDEAL_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @property
    def zone(self) -> dt.tzinfo:
        if self.timezone.upper() == "UTC":
            return dt.timezone.utc
        return ZoneInfo(self.timezone)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> logging.Logger:
    """Apply the configured level to the ``freshdeal`` logger tree."""
    settings = get_settings()
    pkg_logger = logging.getLogger("freshdeal")
    pkg_logger.setLevel((level or settings.log_level).upper())
    if settings.debug:
        pkg_logger.setLevel(logging.DEBUG)
    return pkg_logger
