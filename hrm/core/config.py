from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")
    sql_echo: bool = Field(False, alias="SQL_ECHO")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Used for AttendanceSummary.standard_working_minutes
    standard_work_hours_per_day: int = Field(8, alias="STANDARD_WORK_HOURS_PER_DAY")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: Optional[str] = Field(None, alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
