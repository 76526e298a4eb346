from functools import lru_cache
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    # Unit system the service starts with
    default_unit_system: Literal["metric", "imperial"] = "metric"

    # IANA time zone for calendar-aligned ranges; unset means system local time
    timezone: Optional[str] = None

    # Refuse reads for metrics not covered by a successful authorization request
    enforce_authorization: bool = False

    # Logging
    log_level: str = "INFO"

    @property
    def debug(self) -> bool:
        """Debug mode is only enabled in development."""
        return self.environment == "development"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {value}") from e
        return value

    @property
    def tzinfo(self) -> Optional[ZoneInfo]:
        """Configured time zone, or None for system local time."""
        return ZoneInfo(self.timezone) if self.timezone else None

    class Config:
        env_prefix = "VITALS_"
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
