from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional

class Settings(BaseSettings):
    # Storage backend: "postgres" (asyncpg) or "memory" (single process, no persistence)
    storage_backend: str = Field(default="postgres", alias='STORAGE_BACKEND')

    # Database
    database_url: Optional[str] = Field(default=None, alias='DATABASE_URL')
    db_user: str = Field(default="postgres", alias='DB_USER')
    db_host: str = Field(default="localhost", alias='DB_HOST')
    db_password: str = Field(default="", alias='DB_PASSWORD')
    db_port: int = Field(default=5432, alias='DB_PORT')
    db_name: str = Field(default="seatpool", alias='DB_NAME')
    db_pool_min_size: int = Field(default=1, alias='DB_POOL_MIN_SIZE')
    db_pool_max_size: int = Field(default=10, alias='DB_POOL_MAX_SIZE')

    # Remote team service
    team_api_base_url: str = Field(default="https://chatgpt.com/backend-api", alias='TEAM_API_BASE_URL')
    team_api_timeout: float = Field(default=30.0, alias='TEAM_API_TIMEOUT')
    team_api_user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        alias='TEAM_API_USER_AGENT'
    )

    # Seat allocation
    seat_capacity: int = Field(default=4, alias='SEAT_CAPACITY')
    default_temp_hours: int = Field(default=24, alias='DEFAULT_TEMP_HOURS')

    # Auto-kick defaults (used until an administrator saves a config)
    auto_kick_enabled: bool = Field(default=False, alias='AUTO_KICK_ENABLED')
    auto_kick_check_interval: int = Field(default=300, alias='AUTO_KICK_CHECK_INTERVAL')
    auto_kick_start_hour: int = Field(default=0, alias='AUTO_KICK_START_HOUR')
    auto_kick_end_hour: int = Field(default=23, alias='AUTO_KICK_END_HOUR')
    auto_kick_timezone: Optional[str] = Field(default=None, alias='AUTO_KICK_TIMEZONE')
    auto_kick_poll_seconds: int = Field(default=60, alias='AUTO_KICK_POLL_SECONDS')

    # App settings
    app_env: str = Field(default="development", alias='APP_ENV')
    host: str = Field(default="0.0.0.0", alias='HOST')
    port: int = Field(default=8000, alias='PORT')
    debug: bool = Field(default=False, alias='DEBUG')

    # CORS configuration
    cors_origins: str = Field(default="*", alias='CORS_ORIGINS')

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True

    @property
    def db_connection_params(self) -> dict:
        if self.database_url:
            return {"dsn": self.database_url}
        return {
            "host": self.db_host,
            "port": self.db_port,
            "user": self.db_user,
            "password": self.db_password,
            "database": self.db_name,
        }

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

settings = Settings()
