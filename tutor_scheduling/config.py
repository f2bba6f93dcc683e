from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'Tutor Availability'
    app_env: str = 'local'
    app_timezone: str = 'Asia/Jerusalem'
    database_url: str = 'sqlite:///./tutor_scheduling.db'
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200
    sync_days_ahead: int = 14
    fetch_timeout_seconds: float = 10.0
    rollover_day_of_week: str = 'fri'
    rollover_hour: int = 6
    rollover_minute: int = 0
    daily_sync_hour: int = 2
    daily_sync_minute: int = 15
    enable_scheduler: bool = True
    default_lesson_minutes: int = 60


settings = Settings()
