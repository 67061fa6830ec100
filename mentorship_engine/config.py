from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Optional

class Settings(BaseSettings):
    # Database Settings
    POSTGRES_USER: str = "user"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "incubator_db"
    # Full SQLAlchemy URL; when set it wins over the POSTGRES_* parts (e.g. sqlite for tests)
    DATABASE_URL: Optional[str] = None

    # SQLAlchemy Connection Pooling Settings
    # Refer to https://docs.sqlalchemy.org/en/20/core/engines.html#connection-pooling-options
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30 # seconds
    DB_POOL_RECYCLE: int = 1800 # seconds (30 minutes)

    # Semantic scoring / recommendation summary
    SEMANTIC_PROVIDER: str = "none" # none | sentence_transformers | openai
    EMBEDDING_MODEL_NAME: str = 'all-MiniLM-L12-v2'
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    OPENAI_CHAT_MODEL: str = "gpt-3.5-turbo"
    SEMANTIC_TIMEOUT_SECONDS: float = 5.0
    SUMMARY_TIMEOUT_SECONDS: float = 10.0

    # Matching Pipeline Settings
    MATCH_MAX_RESULTS: int = 10 # Number of matches stored on a request
    MATCH_MIN_SCORE: float = 0.0
    MATCH_NOTIFY_TOP: int = 3 # Number of top matched mentors notified of a new request

    # Where lifecycle notifications go
    NOTIFICATION_SINK: Literal["database", "logging"] = "database"

    # Requests left Pending longer than this need admin attention
    ATTENTION_AFTER_DAYS: int = 3

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore" # Ignore extra env variables not defined here
    )

@lru_cache() # Cache settings to avoid re-reading on every call
def get_settings():
    """Returns a cached instance of the Settings."""
    return Settings()
