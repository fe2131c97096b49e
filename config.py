from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List

class Settings(BaseSettings):
    # Application Configuration
    app_name: str = "ReadbackGuard API"
    environment: str = "development"
    log_level: str = "INFO"

    # CORS
    cors_origins: List[str] = ["*"]

    # Analysis limits
    max_batch_size: int = 100
    history_window: int = 20  # most recent history entries used for trends

    # Non-native phraseology findings on the pilot side
    phraseology_checks_enabled: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False

@lru_cache()
def get_settings():
    return Settings()
