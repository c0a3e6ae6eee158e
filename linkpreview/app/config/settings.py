from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # sqlite | mongo | memory
    cache_backend: str = Field("sqlite", validation_alias="CACHE_BACKEND")
    cache_db_path: str = Field("opengraph_cache.db", validation_alias="CACHE_DB_PATH")
    cache_ttl_seconds: int = Field(7 * 24 * 60 * 60, validation_alias="CACHE_TTL_SECONDS")

    database_host: str = Field("localhost", validation_alias="DATABASE_HOST")
    database_port: int = Field(27017, validation_alias="DATABASE_PORT")
    database_user: str = Field("", validation_alias="DATABASE_USER")
    database_password: str = Field("", validation_alias="DATABASE_PASSWORD")
    database_name: str = Field("link_metadata", validation_alias="DATABASE_NAME")
    database_collection: str = Field("opengraph_cache", validation_alias="DATABASE_COLLECTION")
    database_connection_timeout_ms: int = Field(5000, validation_alias="DATABASE_CONNECTION_TIMEOUT_MS")

    initial_backoff_seconds: float = Field(0.5, validation_alias="INITIAL_BACKOFF_SECONDS")
    max_backoff_seconds: float = Field(5.0, validation_alias="MAX_BACKOFF_SECONDS")
    backoff_multiplier: float = Field(2.0, validation_alias="BACKOFF_MULTIPLIER")
    max_connection_attempts: int = Field(3, validation_alias="MAX_CONNECTION_ATTEMPTS")

    fetch_connect_timeout_seconds: float = Field(10.0, validation_alias="FETCH_CONNECT_TIMEOUT_SECONDS")
    fetch_read_timeout_seconds: float = Field(10.0, validation_alias="FETCH_READ_TIMEOUT_SECONDS")
    fetch_total_timeout_seconds: float = Field(15.0, validation_alias="FETCH_TOTAL_TIMEOUT_SECONDS")

    # In-flight resolutions per resolve_many() call.
    max_concurrent_resolutions: int = Field(20, validation_alias="MAX_CONCURRENT_RESOLUTIONS")
    # Bodies longer than this are cut before HTML parsing; 0 disables the cut.
    max_page_source_length: int = Field(2_000_000, validation_alias="MAX_PAGE_SOURCE_LENGTH")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(False, validation_alias="LOG_JSON")
