"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Host Panel"
    DEBUG: bool = False
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Database
    DATABASE_URL: str = "mysql+pymysql://root:@localhost:3306/magnetic_clouds"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_BACKOFF_SECONDS: float = 0.5

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    PRICING_CACHE_TTL_SECONDS: int = 600

    # Auth
    JWT_SECRET: str = "super-secret-jwt-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 60 * 24 * 7
    LOGIN_RATE_LIMIT: str = "10/minute"

    # Super Admin Seed
    SUPER_ADMIN_EMAIL: str = "admin@hostpanel.local"
    SUPER_ADMIN_PASSWORD: str = "changeme123"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
