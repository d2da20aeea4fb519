from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    # AI provider settings
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_TEMPERATURE: float = 0.7
    GEMINI_MAX_OUTPUT_TOKENS: int = 4096

    # Retry settings for generation calls
    AI_MAX_RETRIES: int = 3
    AI_BACKOFF_BASE_MS: int = 1000
    AI_BACKOFF_JITTER: float = 0.1

    # Retry settings for memory summarization calls
    SUMMARY_MAX_RETRIES: int = 2
    SUMMARY_BACKOFF_BASE_MS: int = 1500

    # Teacher's notes memory document
    MEMORY_FILE_PATH: str = "ai-memory.md"
    MEMORY_SNAPSHOT_BUDGET: int = 500
    MEMORY_RECENT_ACTIVITY_BUDGET: int = 1500
    MEMORY_HISTORY_BUDGET: int = 2000
    MEMORY_SUMMARY_FAILURE_THRESHOLD: int = 2

    # Record storage
    DATA_DIR: str = "data"

    # Learner defaults
    DEFAULT_DIFFICULTY: int = 5
    MENTOR_PROFILE: str = "linus"

    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() in ["production", "prod"]


settings = Settings()
