from functools import lru_cache
import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    stirr_station_id: str | None = None  # Auto-detected when unset

    host: str = "0.0.0.0"
    port: int = 80
    log_level: str = "INFO"

    refresh_interval_minutes: int = 30
    refresh_misfire_grace_sec: int = 300
    refresh_timeout_sec: int = 900  # Whole-refresh deadline, 0 disables it

    request_timeout_sec: float = 15.0
    request_max_retries: int = 3
    request_backoff_initial_sec: float = 1.0
    request_backoff_factor: float = 2.0
    channel_fetch_concurrency: int = 4

    station_detection_url: str = (
        "https://ott-stationselection.sinclairstoryline.com/stationAutoSelection"
    )
    api_base_url: str = "https://ott-gateway-stirr.sinclairstoryline.com/api/rest/v3"

    channel_id_prefix: str = "stirr"
    generator_info_name: str = "stirr-for-channels"
    generator_info_url: str = "https://github.com/robbiet480/stirr-for-channels"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("stirr_station_id", mode="before")
    @classmethod
    def parse_station_id(cls, value):
        """Treat a blank station id as unset."""
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        """Validate listen port range."""
        if not 1 <= value <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator(
        "refresh_interval_minutes",
        "refresh_misfire_grace_sec",
        "channel_fetch_concurrency",
        "request_max_retries",
    )
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure counters and intervals are positive integers."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("refresh_timeout_sec", "request_backoff_initial_sec")
    @classmethod
    def validate_non_negative(cls, value, info):
        """Ensure deadlines and delays are non-negative."""
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator("request_timeout_sec")
    @classmethod
    def validate_request_timeout(cls, value: float) -> float:
        """Every remote request must carry a bounded timeout."""
        if value <= 0:
            raise ValueError("request_timeout_sec must be > 0")
        return value

    @field_validator("request_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, value: float) -> float:
        """Ensure the backoff multiplier is at least 1."""
        if value < 1:
            raise ValueError("request_backoff_factor must be >= 1")
        return value

    @field_validator("station_detection_url", "api_base_url")
    @classmethod
    def validate_urls(cls, value: str, info) -> str:
        """Validate remote endpoints are HTTP/HTTPS."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"{info.field_name} must be HTTP/HTTPS: {value}")
        return value.rstrip("/")

    @field_validator("channel_id_prefix")
    @classmethod
    def validate_prefix(cls, value: str) -> str:
        """Channel ids are derived from the prefix, so it cannot be empty."""
        value = value.strip()
        if not value:
            raise ValueError("channel_id_prefix must not be empty")
        return value

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Station: %s", self.stirr_station_id or "auto-detect")
        logger.info("  Listen: %s:%s", self.host, self.port)
        logger.info("  Refresh Interval: %s minutes", self.refresh_interval_minutes)
        logger.info("  Refresh Misfire Grace: %ss", self.refresh_misfire_grace_sec)
        logger.info(
            "  Refresh Timeout: %s",
            f"{self.refresh_timeout_sec}s" if self.refresh_timeout_sec else "disabled",
        )
        logger.info(
            "  Requests: timeout=%.1fs retries=%s backoff=initial %.1fs x%.1f",
            self.request_timeout_sec,
            self.request_max_retries,
            self.request_backoff_initial_sec,
            self.request_backoff_factor,
        )
        logger.info("  Channel Fetch Concurrency: %s", self.channel_fetch_concurrency)
        logger.info("  API Base: %s", self.api_base_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
