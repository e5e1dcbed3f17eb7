"""
Configuration management for DentalHub
Uses Pydantic Settings for environment variable management
"""

import json
from functools import lru_cache
from typing import Dict, List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    debug: bool = Field(default=True)
    log_level: str = Field(default="DEBUG")
    secret_key: str = Field(default="default-secret-key")
    environment: str = Field(default="development")

    # Server Configuration
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8000)
    api_base_url: str = Field(default="http://localhost:8000")

    # CORS Settings
    allowed_origins: str = Field(default="http://localhost:3000,http://localhost:8000")

    # Database Configuration
    database_type: str = Field(default="sqlite")  # "sqlite" or "postgres"
    database_url: Optional[str] = Field(default=None)
    sqlite_path: str = Field(default="dentalhub.db")

    # Redis Configuration
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_default_ttl: int = Field(default=300)
    cache_enabled: bool = Field(default=True)

    # Supabase Auth
    supabase_url: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)
    supabase_jwt_secret: Optional[str] = Field(default=None)
    jwt_algorithm: str = Field(default="HS256")
    jwt_audience: str = Field(default="authenticated")
    auth_http_timeout: float = Field(default=15.0)

    # Sikka Configuration
    sikka_api_url: str = Field(default="https://api.sikkasoft.com/v4")
    sikka_app_id: Optional[str] = Field(default=None)
    sikka_app_key: Optional[str] = Field(default=None)
    sikka_practice_id: Optional[str] = Field(default=None)
    sikka_webhook_secret: Optional[str] = Field(default=None)
    sikka_http_timeout: float = Field(default=30.0)
    sikka_token_refresh_threshold_minutes: int = Field(default=5)

    # Retell Configuration
    retell_api_url: str = Field(default="https://api.retell.ai/v1")
    retell_api_key: Optional[str] = Field(default=None)
    retell_webhook_secret: Optional[str] = Field(default=None)
    retell_agent_id: Optional[str] = Field(default=None)
    retell_from_number: Optional[str] = Field(default=None)
    retell_http_timeout: float = Field(default=30.0)
    retell_retry_delays: str = Field(default="5,15,30")

    # Twilio Configuration (campaign SMS)
    twilio_account_sid: Optional[str] = Field(default=None)
    twilio_auth_token: Optional[str] = Field(default=None)
    twilio_phone_number: Optional[str] = Field(default=None)

    # OpenAI Configuration
    openai_api_key: Optional[str] = Field(default=None)
    openai_model: str = Field(default="gpt-4o-mini")
    openai_webhook_secret: Optional[str] = Field(default=None)
    # JSON object mapping agent type to assistant id
    openai_agent_assistants: str = Field(default="{}")

    # Marketing Email Configuration
    beehiiv_api_url: str = Field(default="https://api.beehiiv.com/v2")
    beehiiv_api_key: Optional[str] = Field(default=None)
    instantly_api_url: str = Field(default="https://api.instantly.ai/v1")
    instantly_api_key: Optional[str] = Field(default=None)
    marketing_http_timeout: float = Field(default=30.0)

    # Retry Configuration
    api_max_retries: int = Field(default=3)
    api_retry_delay: float = Field(default=1.0)

    # Rate Limiting
    rate_limit_requests_per_minute: int = Field(default=60)
    rate_limit_calls_per_hour: int = Field(default=100)
    rate_limit_burst_multiplier: float = Field(default=1.5)

    # Webhooks
    webhook_secret: Optional[str] = Field(default=None)
    webhook_timestamp_tolerance_seconds: int = Field(default=300)

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def retell_retry_schedule(self) -> List[float]:
        """Parse Retell retry delays (seconds) from comma-separated string"""
        return [float(d.strip()) for d in self.retell_retry_delays.split(",") if d.strip()]

    @property
    def agent_assistants(self) -> Dict[str, str]:
        """Parse the agent -> assistant id mapping"""
        try:
            parsed = json.loads(self.openai_agent_assistants or "{}")
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
