from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List, Optional

class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "AI Chat Service"
    APP_VERSION: str = "1.0.0"

    # Application Settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    # Storage
    DATA_DIR: Path = Path(__file__).resolve().parent.parent / "data"
    CHAT_DATA_DIR: Optional[Path] = None  # defaults to DATA_DIR/chats
    COMPANY_DATA_DIR: Optional[Path] = None  # defaults to DATA_DIR/ai_companies

    # Chat configuration
    DEFAULT_MAX_HISTORY_MESSAGES: int = 50
    ANTHROPIC_MAX_TOKENS: int = 4096  # Anthropic requires an explicit output cap

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)

        if self.CHAT_DATA_DIR is None:
            self.CHAT_DATA_DIR = self.DATA_DIR / "chats"
        if self.COMPANY_DATA_DIR is None:
            self.COMPANY_DATA_DIR = self.DATA_DIR / "ai_companies"

        # Ensure storage directories exist
        self.CHAT_DATA_DIR.mkdir(parents=True, exist_ok=True)
        self.COMPANY_DATA_DIR.mkdir(parents=True, exist_ok=True)

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

# Create settings instance
settings = Settings()
