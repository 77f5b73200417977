"""Environment-driven configuration with Pydantic v2."""

from typing import Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3010, ge=1024, le=65535)
    debug: bool = Field(default=False)

    # Cache Configuration (step memo storage)
    redis_url: Optional[str] = Field(default=None)
    redis_enabled: bool = Field(default=False)
    step_cache_ttl: int = Field(default=86400, ge=60)

    # Step retry policy
    step_max_attempts: int = Field(default=3, ge=1, le=10)
    step_initial_delay: float = Field(default=1.0, ge=0.0, le=60.0)
    step_max_delay: float = Field(default=30.0, ge=0.0, le=600.0)
    step_backoff_multiplier: float = Field(default=2.0, ge=1.0, le=10.0)

    # HTTP executor
    http_timeout: float = Field(default=30.0, gt=0.0, le=300.0)
    http_retry_transient: bool = Field(default=False)

    # Status broadcasting
    status_queue_size: int = Field(default=1000, ge=1)

    # Temporal (durable execution substrate)
    temporal_enabled: bool = Field(default=False)
    temporal_server_address: str = Field(default="localhost:7233")
    temporal_namespace: str = Field(default="default")
    temporal_task_queue: str = Field(default="nodeflow-runs")
    temporal_max_attempts: int = Field(default=3, ge=1, le=20)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Normalise and check the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
