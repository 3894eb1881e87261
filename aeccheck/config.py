"""AECCheck configuration management.

Loads configuration from environment variables with sensible defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class DBConfig:
    """Database connection configuration."""

    url: str
    pool_size: int = 10
    pool_max_overflow: int = 20
    pool_timeout: int = 30
    echo: bool = False  # SQL logging


@dataclass
class AECConfig:
    """AEC data model GraphQL endpoint settings."""

    graphql_url: str = "https://developer.api.autodesk.com/aec/graphql"
    access_token: str | None = None
    request_timeout_seconds: float = 45.0
    retry_attempts: int = 3
    retry_backoff_seconds: float = 0.35
    page_limit: int = 200


@dataclass
class AnalysisConfig:
    """Discipline analysis tuning.

    The inter-category delay keeps a single category request in flight
    against the platform with a cooldown between requests.
    """

    inter_category_delay_seconds: float = 0.1
    category_timeout_seconds: float = 5.0
    fallback_required_total: int = 10
    viewer_bulk_chunk_size: int = 1000


@dataclass
class AppConfig:
    """Root application configuration.

    Loads from environment variables with fail-fast on missing required values.
    """

    db: DBConfig
    catalog_file: str | None = None

    aec: AECConfig = field(default_factory=AECConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Required environment variables:
        - DATABASE_URL: check store connection string

        Optional (with defaults):
        - AEC_ACCESS_TOKEN: bearer token for the AEC GraphQL API
        - DISCIPLINE_CATALOG: path to an alternative disciplines YAML file

        Raises:
            KeyError: If required environment variables are missing
        """
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            raise KeyError(
                "DATABASE_URL environment variable is required. "
                "Example: sqlite+aiosqlite:///./aeccheck.db"
            )

        return cls(
            catalog_file=os.getenv("DISCIPLINE_CATALOG"),
            db=DBConfig(
                url=database_url,
                pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
                pool_max_overflow=int(os.getenv("DB_POOL_MAX_OVERFLOW", "20")),
                pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
                echo=os.getenv("DB_ECHO", "false").lower() == "true",
            ),
            aec=AECConfig(
                graphql_url=os.getenv(
                    "AEC_GRAPHQL_URL", "https://developer.api.autodesk.com/aec/graphql"
                ),
                access_token=os.getenv("AEC_ACCESS_TOKEN"),
                request_timeout_seconds=float(os.getenv("AEC_REQUEST_TIMEOUT", "45")),
                retry_attempts=int(os.getenv("AEC_RETRY_ATTEMPTS", "3")),
                retry_backoff_seconds=float(os.getenv("AEC_RETRY_BACKOFF", "0.35")),
                page_limit=int(os.getenv("AEC_PAGE_LIMIT", "200")),
            ),
            analysis=AnalysisConfig(
                inter_category_delay_seconds=float(
                    os.getenv("ANALYSIS_CATEGORY_DELAY", "0.1")
                ),
                category_timeout_seconds=float(
                    os.getenv("ANALYSIS_CATEGORY_TIMEOUT", "5.0")
                ),
                fallback_required_total=int(
                    os.getenv("ANALYSIS_FALLBACK_REQUIRED_TOTAL", "10")
                ),
                viewer_bulk_chunk_size=int(os.getenv("VIEWER_BULK_CHUNK_SIZE", "1000")),
            ),
        )

    @property
    def config_root(self) -> Path:
        """Root directory for configuration files (discipline catalog YAML)."""
        return Path(__file__).parent / "data"

    @property
    def catalog_path(self) -> Path:
        """Path to disciplines.yaml (overridable through DISCIPLINE_CATALOG)."""
        if self.catalog_file:
            return Path(self.catalog_file)
        return self.config_root / "disciplines.yaml"


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Raises:
        KeyError: If required environment variables are missing
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next call re-reads the environment."""
    global _config
    _config = None
