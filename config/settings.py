"""Configuration management using pydantic-settings."""
from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL


def _compute_current_season() -> int:
    """
    Compute the current football season year.

    API-Football uses the starting year of the season (2025 for 2025-26).
    Football seasons run Aug-May, so Jan-Jul uses previous year's season code.
    """
    now = datetime.now()
    # If we're in Jan-Jul, we're still in last year's season
    if now.month <= 7:
        return now.year - 1
    return now.year


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database - DATABASE_URL wins, otherwise DB_HOST switches to PostgreSQL
    database_url: Optional[str] = None
    db_host: Optional[str] = None
    db_port: int = 5432
    db_name: str = "wfn24"
    db_user: str = "postgres"
    db_password: Optional[str] = None
    db_echo: bool = False
    sqlite_path: Path = Path("./wfn24.db")

    # API-Football configuration
    football_api_key: Optional[str] = None
    football_api_base_url: str = "https://v3.football.api-sports.io"
    football_api_host: str = "v3.football.api-sports.io"
    football_api_timeout: float = 30.0
    football_api_max_attempts: int = 3

    # Cache TTLs (seconds) per data category
    cache_ttl_live: int = 60
    cache_ttl_match_detail: int = 300
    cache_ttl_fixtures: int = 1800
    cache_ttl_standings: int = 3600
    cache_ttl_top_scorers: int = 3600
    cache_ttl_metadata: int = 7200

    # Pagination
    default_per_page: int = 20
    max_per_page: int = 100

    # Auth
    bcrypt_rounds: int = 12

    # Live update relay
    relay_host: str = "0.0.0.0"
    relay_port: int = 8080
    relay_url: Optional[str] = None
    relay_secret: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    # Premier League ID for API-Football
    premier_league_id: int = 39

    # Current season (single source of truth)
    # Computed dynamically: Jan-Jul = previous year, Aug-Dec = current year
    current_season: int = _compute_current_season()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def resolved_database_url(self) -> str:
        """Database URL derived from DATABASE_URL or the DB_* variables."""
        if self.database_url:
            return self.database_url
        if self.db_host:
            return URL.create(
                "postgresql+psycopg2",
                username=self.db_user,
                password=self.db_password,
                host=self.db_host,
                port=self.db_port,
                database=self.db_name,
            ).render_as_string(hide_password=False)
        return f"sqlite:///{self.sqlite_path}"


def load_settings(env_file: Path = Path(".env")) -> Settings:
    """
    Export `env_file` into os.environ, then build Settings from it.

    Existing environment variables win. The exported values are also what
    requests reads for proxy and CA bundle configuration.
    """
    load_dotenv(env_file)
    return Settings(_env_file=env_file)


settings = load_settings()
