from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # PostgreSQL Configuration
    postgres_user: str = "admin"
    postgres_password: str = "admin"
    postgres_db: str = "matchengine"
    postgres_host: str = "db"
    postgres_port: int = 5432

    # Redis (profile cache + ARQ queue)
    redis_url: str = "redis://redis:6379/0"
    redis_pool_size: int = 20

    # Application Configuration
    app_env: str = "dev"
    api_port: int = 8000
    log_level: str = "INFO"
    sql_echo: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # Daily interaction quotas (premium likes are unlimited)
    free_daily_likes: int = 20
    free_daily_super_likes: int = 1
    premium_daily_super_likes: int = 5
    undo_window_seconds: int = 600  # 10 minutes
    default_timezone: str = "UTC"

    # Scoring / matchmaking
    profile_cache_ttl: int = 3600  # 1 hour
    matchmaking_max_workers: int = 4
    matchmaking_chunk_size: int = 250
    discovery_min_score: float = 30.0
    discovery_max_distance_km: float = 50.0
    event_sweep_minutes: int = 15

    # Weekly event generation (cron runs at hour:00 UTC on weekday, 0 = Monday)
    event_generation_weekday: int = 0
    event_generation_hour: int = 6
    event_lead_days: int = 1       # events open this many days after generation
    event_duration_days: int = 3
    event_default_max_participants: int = 1000

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"


settings = Settings()
