# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides Pydantic Settings models for the migration:
# - MongoSettings: MongoDB source store configuration
# - PostgresSettings: PostgreSQL target store configuration
# - PipelineSettings: collections, batch size, target table and policies
# =============================================================================

from enum import Enum
from typing import Any, Optional
from urllib.parse import quote_plus

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "MongoSettings",
    "PostgresSettings",
    "PipelineSettings",
    "UnknownTypePolicy",
]


class UnknownTypePolicy(str, Enum):
    """What the transform stage does with an unrecognized discriminator."""

    FAIL = "fail"
    QUARANTINE = "quarantine"


# =============================================================================
# MongoDB Settings (Source Store)
# =============================================================================

class MongoSettings(BaseSettings):
    """
    Configuration for the MongoDB source store.

    Credentials are optional here: whatever the environment does not provide
    is requested from a secret provider at run time (see credentials.py).

    Maps environment variables with prefix "MONGO_":
    - MONGO_HOST → host
    - MONGO_PORT → port
    - MONGO_USERNAME → username
    - MONGO_PASSWORD → password
    - MONGO_DATABASE → database
    - MONGO_REPLICA_SET → replica_set
    - MONGO_AUTH_SOURCE → auth_source
    - MONGO_TIMEOUT_MS → timeout_ms

    Attributes:
        host: MongoDB host (default: "localhost")
        port: MongoDB port (default: 27017)
        username: MongoDB username
        password: MongoDB password
        database: Source database name
        replica_set: Replica set name, if the source is a replica set
        auth_source: Authentication database (default: "admin")
        timeout_ms: Server selection timeout in milliseconds (default: 10000)
    """

    host: str = Field("localhost", validation_alias="MONGO_HOST", description="MongoDB host")
    port: int = Field(27017, validation_alias="MONGO_PORT", description="MongoDB port")
    username: Optional[str] = Field(None, validation_alias="MONGO_USERNAME", description="MongoDB username")
    password: Optional[str] = Field(None, validation_alias="MONGO_PASSWORD", description="MongoDB password")
    database: Optional[str] = Field(None, validation_alias="MONGO_DATABASE", description="Source database name")
    replica_set: Optional[str] = Field(None, validation_alias="MONGO_REPLICA_SET", description="Replica set name")
    auth_source: str = Field("admin", validation_alias="MONGO_AUTH_SOURCE", description="Authentication source")
    timeout_ms: int = Field(10000, validation_alias="MONGO_TIMEOUT_MS", description="Server selection timeout (ms)")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
        populate_by_name=True,
    )

    def client_kwargs(self) -> dict[str, Any]:
        """
        Build keyword arguments for pymongo.MongoClient.

        Credentials are passed as separate arguments, never embedded in a URI.

        Returns:
            Dict of MongoClient keyword arguments
        """
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "serverSelectionTimeoutMS": self.timeout_ms,
        }
        if self.username:
            kwargs["username"] = self.username
            kwargs["password"] = self.password
            kwargs["authSource"] = self.auth_source
        if self.replica_set:
            kwargs["replicaSet"] = self.replica_set
        return kwargs


# =============================================================================
# PostgreSQL Settings (Target Store)
# =============================================================================

class PostgresSettings(BaseSettings):
    """
    Configuration for the PostgreSQL target store.

    Maps environment variables with prefix "POSTGRES_":
    - POSTGRES_HOST → host
    - POSTGRES_PORT → port
    - POSTGRES_USER → user
    - POSTGRES_PASSWORD → password
    - POSTGRES_DB → database

    Attributes:
        host: PostgreSQL host (default: "localhost")
        port: PostgreSQL port (default: 5432)
        user: PostgreSQL user
        password: PostgreSQL password
        database: Target database name
    """

    host: str = Field("localhost", validation_alias="POSTGRES_HOST", description="PostgreSQL host")
    port: int = Field(5432, validation_alias="POSTGRES_PORT", description="PostgreSQL port")
    user: Optional[str] = Field(None, validation_alias="POSTGRES_USER", description="PostgreSQL user")
    password: Optional[str] = Field(None, validation_alias="POSTGRES_PASSWORD", description="PostgreSQL password")
    database: Optional[str] = Field(None, validation_alias="POSTGRES_DB", description="Target database name")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
        populate_by_name=True,
    )

    @property
    def connection_string(self) -> str:
        """
        Build PostgreSQL connection URI.

        Format: postgresql+psycopg2://[user]:[password]@[host]:[port]/[database]

        Returns:
            PostgreSQL connection URI string
        """
        user = quote_plus(self.user or "")
        password = quote_plus(self.password or "")
        return (
            f"postgresql+psycopg2://{user}:{password}@"
            f"{self.host}:{self.port}/{self.database or ''}"
        )


# =============================================================================
# Pipeline Settings
# =============================================================================

class PipelineSettings(BaseSettings):
    """
    Non-secret knobs of the migration run.

    Maps environment variables with prefix "MIGRATION_":
    - MIGRATION_COLLECTIONS → collections (JSON list, e.g. '["datasets"]')
    - MIGRATION_BATCH_SIZE → batch_size
    - MIGRATION_TARGET_TABLE → target_table
    - MIGRATION_UNKNOWN_TYPE_POLICY → unknown_type_policy
    - MIGRATION_LOG_LEVEL → log_level
    """

    collections: list[str] = Field(
        default_factory=list,
        validation_alias="MIGRATION_COLLECTIONS",
        description="Source collections to extract, in order",
    )
    batch_size: int = Field(1000, gt=0, validation_alias="MIGRATION_BATCH_SIZE", description="Cursor batch size")
    target_table: str = Field(
        "catalog_records", validation_alias="MIGRATION_TARGET_TABLE", description="Target table name"
    )
    unknown_type_policy: UnknownTypePolicy = Field(
        UnknownTypePolicy.FAIL,
        validation_alias="MIGRATION_UNKNOWN_TYPE_POLICY",
        description="fail (default) or quarantine records with unknown discriminators",
    )
    log_level: str = Field("INFO", validation_alias="MIGRATION_LOG_LEVEL", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
        populate_by_name=True,
        validate_assignment=True,
    )

    @field_validator("collections")
    @classmethod
    def validate_collections(cls, v: list[str]) -> list[str]:
        """Trim names, drop blanks and duplicates (order preserved)."""
        cleaned = [name.strip() for name in v if name and name.strip()]
        return list(dict.fromkeys(cleaned))

    @field_validator("target_table")
    @classmethod
    def validate_target_table(cls, v: str) -> str:
        if not v or not v.replace("_", "").isalnum() or v[0].isdigit():
            raise ValueError(f"Invalid table name: {v!r}")
        return v
