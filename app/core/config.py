from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings
import os
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # PostgreSQL Configuration
    postgres_user: str = Field(default="admin", env="POSTGRES_USER")
    postgres_password: str = Field(default="admin", env="POSTGRES_PASSWORD")
    postgres_db: str = Field(default="matchmaking", env="POSTGRES_DB")
    postgres_host: str = Field(default="db", env="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, env="POSTGRES_PORT")
    db_pool_size: int = Field(default=10, env="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, env="DB_MAX_OVERFLOW")

    # Application Configuration
    app_env: str = Field(default="dev", env="APP_ENV")
    api_port: int = Field(default=8000, env="API_PORT")
    log_level: str = Field(default="", env="LOG_LEVEL")  # empty: DEBUG in dev, INFO elsewhere
    jwt_secret: str = Field(
        default="change-me-in-production-use-a-secure-random-string",
        env="JWT_SECRET"
    )
    access_token_expires: int = Field(default=900, env="ACCESS_TOKEN_EXPIRES")  # 15 minutes

    # Task queue
    redis_url: str = Field(default="redis://redis:6379/0", env="REDIS_URL")

    # Transactional email (Resend-compatible HTTP API)
    email_api_url: str = Field(default="https://api.resend.com/emails", env="EMAIL_API_URL")
    email_api_key: str = Field(default="", env="EMAIL_API_KEY")
    email_from: str = Field(default="Matchmaking <noreply@example.com>", env="EMAIL_FROM")
    app_base_url: str = Field(default="http://localhost:3000", env="APP_BASE_URL")

    # Ranking
    referral_boost_threshold: int = Field(default=3, env="REFERRAL_BOOST_THRESHOLD")
    referral_boost_days: int = Field(default=30, env="REFERRAL_BOOST_DAYS")

    # Engagement points awarded for answering a received interest
    interest_response_points: int = Field(default=5, env="INTEREST_RESPONSE_POINTS")

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # CORS - allow frontend origins (filter out None values)
    allowed_origins: List[str] = [
        origin for origin in [
            "http://localhost:3000",
            os.getenv("FRONTEND_URL")
        ] if origin is not None
    ]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
