"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB (stored requests)
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "vault_request_desk"

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Role lookup - comma separated emails treated as administrators
    administrator_emails: str = ""

    # Field synthesis
    home_country_codes: str = "US,USA"
    pending_reference_prefix: str = "temp_addr_"
    masked_secret_marker: str = "••••••••"

    # Session timing
    restore_guard_seconds: float = 5.0  # Upper bound for an unfinished restore
    execute_cooldown_seconds: float = 3.0  # Form stays locked after a successful execute

    # Error presentation
    max_error_message_length: int = 500

    # Password policy (skipped for generated passwords)
    password_min_length: int = 20

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def administrator_emails_list(self) -> List[str]:
        """Parse administrator emails to a lower-cased list"""
        return [
            email.strip().lower()
            for email in self.administrator_emails.split(",")
            if email.strip()
        ]

    @property
    def home_country_codes_list(self) -> List[str]:
        """Country codes that are not printed in address display lines"""
        return [code.strip().upper() for code in self.home_country_codes.split(",") if code.strip()]

@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
