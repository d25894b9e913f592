import os
from dataclasses import dataclass
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = os.getenv("DATABASE_URL", "mysql+pymysql://root:@localhost:3306/eshop")
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "10"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    db_echo: bool = os.getenv("DB_ECHO", "false").lower() == "true"

    # Cache
    cache_backend: str = os.getenv("CACHE_BACKEND", "memory")  # memory | redis
    cache_ttl: int = int(os.getenv("CACHE_TTL", "300"))  # 5 minutes
    cache_check_period: int = int(os.getenv("CACHE_CHECK_PERIOD", "60"))
    cache_max_entries: int = int(os.getenv("CACHE_MAX_ENTRIES", "10000"))
    cache_key_prefix: str = os.getenv("CACHE_KEY_PREFIX", "eshop_cache")

    # Redis (only used when CACHE_BACKEND=redis)
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Media
    image_base_url: str = os.getenv(
        "IMAGE_BASE_URL", "https://uzvisimages.blr1.cdn.digitaloceanspaces.com/"
    )
    default_image: str = os.getenv("DEFAULT_IMAGE", "uploads/media/2022/default_image.png")
    no_image_url: str = os.getenv(
        "NO_IMAGE_URL",
        "https://uzvisimages.blr1.cdn.digitaloceanspaces.com/uploads/media/2022/uzvis.png",
    )

    # API
    api_prefix: str = os.getenv("API_PREFIX", "/app/v1/api")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "3000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "text")  # text | json

    @property
    def uses_redis(self) -> bool:
        """Check if responses are cached in Redis instead of process memory."""
        return self.cache_backend.lower() == "redis"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_backend.lower() not in ("memory", "redis"):
            raise ValueError(f"CACHE_BACKEND must be 'memory' or 'redis', got {self.cache_backend}")

        if self.cache_check_period <= 0:
            raise ValueError("CACHE_CHECK_PERIOD must be greater than 0")

        if self.cache_max_entries <= 0:
            raise ValueError("CACHE_MAX_ENTRIES must be greater than 0")

        if self.log_format.lower() not in ("text", "json"):
            raise ValueError(f"LOG_FORMAT must be 'text' or 'json', got {self.log_format}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )
