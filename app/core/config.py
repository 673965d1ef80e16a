from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv(override=True)

class Settings(BaseSettings):
    PROJECT_NAME: str = "Ethos"
    # Application settings
    PORT: int = 8000
    HOST: str = "127.0.0.1"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # SQLAlchemy database URL
    DATABASE_URL: str = "sqlite:///./ethos.db"

    # Session token configuration
    JWT_SECRET: str | None = None
    JWT_ALGORITHM: str = "HS256"
    SESSION_TTL_SECONDS: int = 24 * 60 * 60 # 24 hours, matches the challenge text

    class Config:
        env_file = ".env"

# Instantiate the settings
settings = Settings()
