"""Settings and logging configuration."""

import logging

import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict

from openapi_assertions.coverage import DEFAULT_EXPORT_FILE


class Settings(BaseSettings):
    """Defaults read from ``OPENAPI_ASSERTIONS_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="OPENAPI_ASSERTIONS_")

    report_coverage: bool = False
    export_coverage: bool = False
    coverage_file: str = DEFAULT_EXPORT_FILE
    base_path: str | None = None

    log_level: str = "WARNING"
    log_format: str = "console"  # console / json


def configure_logging(level: str = "WARNING", fmt: str = "console") -> None:
    """Route structlog through stdlib logging with the given level and renderer."""
    logging.basicConfig(format="%(message)s")
    logging.getLogger().setLevel(level.upper())
    renderer = (
        structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
