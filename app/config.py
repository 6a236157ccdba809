from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# Load .env from repo root for local development and scripts.
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)
    finnhub_api_key: str | None = Field(default=None, alias="FINNHUB_API_KEY")
    finnhub_base_url: str = Field(default="https://finnhub.io/api/v1", alias="FINNHUB_BASE_URL")
    db_path: str = Field(default="./data/app.db", alias="DB_PATH")
    local_tz: str = Field(default="Europe/Amsterdam", alias="LOCAL_TZ")
    currency: str = Field(default="EUR", alias="CURRENCY")
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")
    quote_cache_seconds: int = Field(default=300, alias="QUOTE_CACHE_SECONDS")
    quote_concurrency: int = Field(default=8, alias="QUOTE_CONCURRENCY")
    auto_refresh_enable: int = Field(default=1, alias="AUTO_REFRESH_ENABLE")
    auto_refresh_seconds: int = Field(default=30, alias="AUTO_REFRESH_SECONDS")
    daily_log_hour: int = Field(default=18, alias="DAILY_LOG_HOUR")
    daily_log_minute: int = Field(default=0, alias="DAILY_LOG_MINUTE")
    default_range: str = Field(default="365D", alias="DEFAULT_RANGE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_error_file: str = Field(default="", alias="LOG_ERROR_FILE")

settings = Settings()
