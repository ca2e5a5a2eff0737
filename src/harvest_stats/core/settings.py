"""Application settings and configuration.

This module defines all configuration options for the harvest statistics
service. Settings are loaded from environment variables with sensible
defaults. The cache manager and the storage factory receive a ``Settings``
instance explicitly; only the HTTP host uses the module-level ``settings``.
"""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

STORAGE_SQLITE = "sqlite"
STORAGE_MYSQL = "mysql"
STORAGE_POSTGRESQL = "postgresql"
STORAGE_TYPES = (STORAGE_SQLITE, STORAGE_MYSQL, STORAGE_POSTGRESQL)

_DEFAULT_PORTS = {STORAGE_MYSQL: 3306, STORAGE_POSTGRESQL: 5432}
_DRIVERS = {STORAGE_MYSQL: "mysql+pymysql", STORAGE_POSTGRESQL: "postgresql+psycopg"}


class Settings(BaseSettings):
    """Harvest data settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    app_name: str = Field(default="Harvest Stats", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Feature switch and backend selection
    harvest_enabled: bool = Field(default=True, alias="HARVEST_DATA_ENABLED")
    storage_type: str = Field(default=STORAGE_SQLITE, alias="HARVEST_STORAGE_TYPE")

    # Embedded backend
    sqlite_path: str = Field(default="./data/harvest-data.db", alias="HARVEST_SQLITE_PATH")

    # Networked backend connection
    db_host: str = Field(default="localhost", alias="HARVEST_DB_HOST")
    db_port: int | None = Field(default=None, alias="HARVEST_DB_PORT")
    db_name: str = Field(default="customcrops", alias="HARVEST_DB_NAME")
    db_username: str = Field(default="root", alias="HARVEST_DB_USERNAME")
    db_password: str = Field(default="", alias="HARVEST_DB_PASSWORD")
    table_prefix: str = Field(default="cc_", alias="HARVEST_TABLE_PREFIX")

    # Networked backend pool (timeouts in milliseconds)
    pool_maximum_size: int = Field(default=10, ge=1, alias="HARVEST_POOL_MAXIMUM_SIZE")
    pool_minimum_idle: int = Field(default=2, ge=0, alias="HARVEST_POOL_MINIMUM_IDLE")
    pool_connection_timeout_ms: int = Field(
        default=30_000, ge=0, alias="HARVEST_POOL_CONNECTION_TIMEOUT_MS"
    )
    pool_idle_timeout_ms: int = Field(
        default=600_000, ge=0, alias="HARVEST_POOL_IDLE_TIMEOUT_MS"
    )
    pool_max_lifetime_ms: int = Field(
        default=1_800_000, ge=0, alias="HARVEST_POOL_MAX_LIFETIME_MS"
    )

    # Write-behind cache behaviour
    flush_delay_seconds: float = Field(default=3, ge=0, alias="HARVEST_FLUSH_DELAY_SECONDS")
    keep_after_quit_seconds: float = Field(
        default=5, ge=0, alias="HARVEST_KEEP_AFTER_QUIT_SECONDS"
    )
    flush_interval_seconds: float = Field(
        default=1.0, gt=0, alias="HARVEST_FLUSH_INTERVAL_SECONDS"
    )
    save_workers: int = Field(default=4, ge=1, alias="HARVEST_SAVE_WORKERS")
    shutdown_timeout_seconds: float = Field(
        default=5.0, ge=0, alias="HARVEST_SHUTDOWN_TIMEOUT_SECONDS"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("storage_type", mode="before")
    @classmethod
    def normalize_storage_type(cls, value: object) -> object:
        """Accept any casing and reject unknown backends."""
        if isinstance(value, str):
            value = value.strip().lower()
            if value not in STORAGE_TYPES:
                raise ValueError(f"storage type must be one of {', '.join(STORAGE_TYPES)}")
        return value

    @model_validator(mode="after")
    def check_pool_bounds(self) -> Settings:
        if self.pool_minimum_idle > self.pool_maximum_size:
            raise ValueError("pool minimum idle cannot exceed pool maximum size")
        return self

    @property
    def effective_db_port(self) -> int:
        """Return the configured port or the dialect default."""
        if self.db_port is not None:
            return self.db_port
        return _DEFAULT_PORTS.get(self.storage_type, 3306)

    @property
    def network_url(self) -> URL:
        """Build the SQLAlchemy URL for the networked backend.

        Returns:
            URL using the pymysql driver for MySQL or psycopg for PostgreSQL
        """
        drivername = _DRIVERS.get(self.storage_type, _DRIVERS[STORAGE_MYSQL])
        query = {"charset": "utf8mb4"} if drivername.startswith("mysql") else {}
        return URL.create(
            drivername,
            username=self.db_username,
            password=self.db_password or None,
            host=self.db_host,
            port=self.effective_db_port,
            database=self.db_name,
            query=query,
        )


settings = Settings()
