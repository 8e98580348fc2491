from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./dengue_watch.db"
    app_env: str = "local"
    log_level: str = "INFO"

    # Dashboard configuration
    forecast_default_weeks: int = 12
    public_top_regions: int = 6
    public_alerts_limit: int = 5
    ranking_default_limit: int = 10

    class Config:
        env_prefix = ""
        env_file = ".env"

settings = Settings()
