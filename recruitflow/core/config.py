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
    postgres_db: str = Field(default="recruitment", env="POSTGRES_DB")
    postgres_host: str = Field(default="db", env="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, env="POSTGRES_PORT")

    # Application Configuration
    app_env: str = Field(default="dev", env="APP_ENV")
    api_port: int = Field(default=8000, env="API_PORT")
    jwt_secret: str = Field(
        default="change-me-in-production-use-a-secure-random-string",
        env="JWT_SECRET"
    )
    access_token_expires: int = Field(default=900, env="ACCESS_TOKEN_EXPIRES")  # 15 minutes

    # Workflow store access
    store_timeout_seconds: float = Field(default=5.0, env="STORE_TIMEOUT_SECONDS")
    store_retry_attempts: int = Field(default=1, env="STORE_RETRY_ATTEMPTS")

    # Change event fan-out
    broadcast_backend: str = Field(default="memory", env="BROADCAST_BACKEND")  # "memory" or "redis"
    broadcast_queue_size: int = Field(default=100, env="BROADCAST_QUEUE_SIZE")
    broadcast_send_timeout: float = Field(default=2.0, env="BROADCAST_SEND_TIMEOUT")
    broadcast_channel: str = Field(default="recruitflow:application-events", env="BROADCAST_CHANNEL")
    websocket_auth_timeout: float = Field(default=10.0, env="WEBSOCKET_AUTH_TIMEOUT")
    websocket_heartbeat_interval: int = Field(default=30, env="WEBSOCKET_HEARTBEAT_INTERVAL")
    redis_url: str = Field(default="redis://localhost:6379/0", env="REDIS_URL")
    redis_pool_size: int = Field(default=10, env="REDIS_POOL_SIZE")

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # CORS - allow dashboard origins (filter out None values)
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
