"""Configuration schema models using Pydantic."""

from enum import Enum

from pydantic import BaseModel, Field


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class MatchingConfig(BaseModel):
    """Keyword-overlap ranking settings."""

    max_results: int = Field(
        0, ge=0, description="Maximum ranked candidates returned (0 = unlimited)"
    )
    keyword_stats_limit: int = Field(
        10, ge=1, le=1000, description="Default number of keywords in popularity stats"
    )


class MessagingConfig(BaseModel):
    """Match message thread settings."""

    max_content_length: int = Field(
        2000, ge=1, le=100000, description="Maximum characters per message"
    )


class AppConfig(BaseModel):
    """Root configuration object for the matching core.

    Every section has defaults, so an empty mapping is a valid configuration.
    """

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    matching: MatchingConfig = Field(
        default_factory=MatchingConfig, description="Ranking settings"
    )
    messaging: MessagingConfig = Field(
        default_factory=MessagingConfig, description="Messaging settings"
    )

    model_config = {"extra": "forbid"}
