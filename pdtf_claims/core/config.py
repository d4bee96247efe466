"""Configuration management using Pydantic Settings"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent
    CLAIMS_DIR: Path = PROJECT_ROOT / "data" / "claims"
    SCHEMA_PATH: Optional[Path] = None

    # Trust framework
    TRUST_FRAMEWORK: str = "uk_pdtf"
    PDTF_SCHEMA_ID: str = "https://trust.propdata.org.uk/schemas/v3/pdtf-transaction.json"

    # Reporting
    MAX_REPORTED_ISSUES: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Install a single stderr sink at the configured level"""
    logger.remove()
    logger.add(sys.stderr, level=(level or settings.LOG_LEVEL).upper())
