import os


class Settings:
    PROJECT_NAME: str = "passbridge"
    debug: bool = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")

    # Database components
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
    DB_NAME: str = os.getenv("DB_NAME", "passbridge")
    DB_USER: str = os.getenv("DB_USER", "postgres")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "password")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Redis configuration
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))

    # JWT configuration (admin endpoints)
    JWT_SECRET: str = os.getenv("JWT_SECRET", "your-secret-key-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_HOURS: int = int(os.getenv("JWT_EXPIRY_HOURS", "24"))

    # PassSource API
    PASSSOURCE_API_BASE_URL: str = os.getenv("PASSSOURCE_API_BASE_URL", "https://www.passsource.com/api/")
    PASSSOURCE_TIMEOUT_SECONDS: float = float(os.getenv("PASSSOURCE_TIMEOUT_SECONDS", "30"))
    ORGANIZATION_NAME: str = os.getenv("ORGANIZATION_NAME", "passbridge")

    # Wallet button assets
    ASSETS_BASE_URL: str = os.getenv("ASSETS_BASE_URL", "http://localhost:8000/static")

    # Host platform integration
    DELAYED_PROCESSING_SECONDS: float = float(os.getenv("DELAYED_PROCESSING_SECONDS", "10"))
    HOOK_SECRET: str = os.getenv("HOOK_SECRET", "")
    DATE_FORMAT: str = os.getenv("DATE_FORMAT", "%B {day}, %Y")
    TIME_FORMAT: str = os.getenv("TIME_FORMAT", "{hour}:%M %p")

    # Per-attendee creation lock
    PASS_LOCK_ENABLED: bool = os.getenv("PASS_LOCK_ENABLED", "true").lower() in ("true", "1", "yes")
    PASS_LOCK_TTL_SECONDS: int = int(os.getenv("PASS_LOCK_TTL_SECONDS", "60"))
    PASS_LOCK_KEY_PREFIX: str = "passbridge_lock:"

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"


# Global settings instance
settings = Settings()
