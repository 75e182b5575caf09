# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides Pydantic Settings models for the registry's backing services:
# - DatabaseSettings: Transactional record store (SQLAlchemy URL)
# - MongoSettings: MongoDB change log configuration
# =============================================================================

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

__all__ = [
    "DatabaseSettings",
    "MongoSettings",
]


# =============================================================================
# Database Settings (Record Store)
# =============================================================================

class DatabaseSettings(BaseSettings):
    """
    Configuration for the transactional water object store.

    Any SQLAlchemy URL works; PostgreSQL in production
    (``postgresql+psycopg2://...``) and SQLite for local runs and tests.

    Maps environment variables:
    - DATABASE_URL → url
    - DATABASE_ECHO → echo
    - DATABASE_BUSY_TIMEOUT → busy_timeout

    Attributes:
        url: SQLAlchemy database URL (default: "sqlite:///./watermap.db")
        echo: Log every SQL statement (default: False)
        busy_timeout: Seconds to wait for a locked database (default: 30.0)
    """

    url: str = Field("sqlite:///./watermap.db", validation_alias="DATABASE_URL", description="SQLAlchemy database URL")
    echo: bool = Field(False, validation_alias="DATABASE_ECHO", description="Log SQL statements")
    busy_timeout: float = Field(30.0, gt=0, validation_alias="DATABASE_BUSY_TIMEOUT", description="Lock wait timeout (seconds)")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )


# =============================================================================
# MongoDB Settings (Change Log)
# =============================================================================

class MongoSettings(BaseSettings):
    """
    Configuration for MongoDB (lifecycle change log).

    Maps environment variables with prefix "MONGO_":
    - MONGO_HOST → host
    - MONGO_PORT → port
    - MONGO_INITDB_ROOT_USERNAME → username
    - MONGO_INITDB_ROOT_PASSWORD → password
    - MONGO_DATABASE → database
    - MONGO_AUTH_SOURCE → auth_source

    Attributes:
        host: MongoDB host (default: "mongodb")
        port: MongoDB port (default: 27017)
        username: MongoDB username (optional, maps from MONGO_INITDB_ROOT_USERNAME)
        password: MongoDB password (optional, maps from MONGO_INITDB_ROOT_PASSWORD)
        database: Database name (default: "watermap")
        auth_source: Authentication source (default: "admin")
    """

    host: str = Field("mongodb", validation_alias="MONGO_HOST", description="MongoDB host")
    port: int = Field(27017, validation_alias="MONGO_PORT", description="MongoDB port")
    username: str | None = Field(None, validation_alias="MONGO_INITDB_ROOT_USERNAME", description="MongoDB username")
    password: str | None = Field(None, validation_alias="MONGO_INITDB_ROOT_PASSWORD", description="MongoDB password")
    database: str = Field("watermap", validation_alias="MONGO_DATABASE", description="Database name")
    auth_source: str = Field("admin", validation_alias="MONGO_AUTH_SOURCE", description="Authentication source")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )

    @property
    def connection_string(self) -> str:
        """
        Build MongoDB connection URI.

        Format: mongodb://[username]:[password]@[host]:[port]/[database]?authSource=[auth_source]
        Credentials are omitted when no username is configured.

        Returns:
            MongoDB connection URI string
        """
        if not self.username:
            return f"mongodb://{self.host}:{self.port}/{self.database}"
        return (
            f"mongodb://{self.username}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?authSource={self.auth_source}"
        )
