"""Environment configuration for the IDMonitor backend."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./idmonitor.db")
        # Shared secret of the identity provider that signs bearer tokens
        self.AUTH_SECRET: str = os.getenv("AUTH_SECRET", "")
        self.JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
        self.FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
        self.CRON_SECRET: str = os.getenv("CRON_SECRET", "")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        # Due-reminder batch processing
        self.WORKER_BATCH_SIZE: int = int(os.getenv("WORKER_BATCH_SIZE", "100"))
        self.WORKER_POLL_INTERVAL_SECONDS: int = int(
            os.getenv("WORKER_POLL_INTERVAL_SECONDS", "60")
        )

    def validate(self) -> None:
        """Validate that required environment variables are set."""
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL environment variable is required")
        if not self.AUTH_SECRET:
            raise ValueError("AUTH_SECRET environment variable is required")
        if self.WORKER_BATCH_SIZE < 1:
            raise ValueError("WORKER_BATCH_SIZE must be a positive integer")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    return settings
