"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with CHATGATE_ prefix
(and an optional .env file). Defaults are for local development only.

Learn: the signing secret and the LLM API key are process-wide values,
read once at startup. Rotating jwt_secret invalidates every token that
is still out there. There is no server-side revocation list.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings

DEV_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """All app configuration. Set via CHATGATE_* env vars."""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    # Credential store
    user_store_backend: Literal["sql", "file"] = "sql"
    database_url: str = "sqlite+aiosqlite:///./chatgate.db"
    user_store_path: str = "./data/users.json"
    auto_create_schema: bool = True

    # Auth
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_expire_hours: int = 24
    bcrypt_rounds: int = 12  # ~100ms per hash on modern hardware
    cookie_name: str = "token"

    # Route guard
    guard_verify_tokens: bool = False  # presence-only unless enabled

    # LLM provider (OpenRouter-compatible chat completions)
    llm_api_key: str = ""
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_model: str = "openai/gpt-3.5-turbo"
    llm_system_prompt: str = "You are a helpful assistant."
    llm_timeout_seconds: float = 60.0
    chat_requires_auth: bool = True

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_rpm: int = 100  # requests per minute per IP
    rate_limit_auth_rpm: int = 10  # stricter limit for login/register
    redis_url: str = "redis://localhost:6379/0"  # shared counters across workers

    # Logging
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    model_config = {"env_prefix": "CHATGATE_", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if self.environment != "development" and self.jwt_secret == DEV_JWT_SECRET:
            raise ValueError(
                "CHATGATE_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Singleton, import this everywhere
settings = Settings()
