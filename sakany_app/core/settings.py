import os
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

from .url_parser import parser

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "SAKANY MATCH"
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./sakany.db")
    CREATE_TABLES_ON_STARTUP: bool = True

    SECRET_KEY: str = os.getenv("SECRET_KEY", "sakany-dev-secret-key")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_EXPIRE_MINUTES: int = 30
    REFRESH_EXPIRE_DAYS: int = 5
    SECURE_COOKIES: bool = False  # must be false on localhost

    RESET_SECRET_KEY: str = os.getenv("RESET_SECRET_KEY", "sakany-dev-reset-key")
    RESET_PASSWORD_SALT: str = "password-reset-salt"
    RESET_TOKEN_MAX_AGE_SECONDS: int = 3600
    TWO_FACTOR_CODE_TTL_SECONDS: int = 300

    EMAIL_USER: str | None = os.getenv("EMAIL_USER")
    EMAIL_PASSWORD: str | None = os.getenv("EMAIL_PASSWORD")
    EMAIL_SERVER: str | None = os.getenv("EMAIL_SERVER")
    EMAIL_PORT: int = 587
    EMAIL_USE_TLS: bool = True
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    TERMII_API_KEY: str | None = os.getenv("TERMII_API_KEY")
    TERMII_SENDER_ID: str | None = os.getenv("TERMII_SENDER_ID")
    TERMII_BASE_URL: str = os.getenv("TERMII_BASE_URL", "https://api.ng.termii.com")

    HEARTBEAT_INTERVAL_SECONDS: float = 30.0
    MAX_MESSAGE_LENGTH: int = 5000

    ALLOWED_HOSTS_RAW: str = os.getenv("ALLOWED_HOSTS", "http://localhost:5173")

    @property
    def ALLOWED_HOSTS(self) -> List[str]:
        return parser.parse_url_list(self.ALLOWED_HOSTS_RAW, "ALLOWED_HOSTS")

    class Config:
        env_file = ".env"
        extra = "ignore"
        case_sensitive = False


settings = Settings()
