from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database
    database_url: str = "sqlite:///./comment_hash.db"

    # Logging
    log_level: str = "info"
    log_format: str = "console"  # "json" in production

    # Proof of Work (defaults written to the options table on first start)
    pow_default_difficulty: int = 5  # leading zero hex digits
    pow_default_max_age_seconds: int = 7200  # 2 hours
    pow_default_admin_bypass: bool = True
    pow_nonce_range: int = 10_000_000_000

    # Admin API (Argon2id hash of the admin bearer token; empty disables it)
    admin_token_hash: str = ""

    # Rate Limiting
    rate_limit_challenges: str = "30/minute"
    rate_limit_comments: str = "10/minute"
    rate_limit_admin: str = "30/minute"
    trust_forwarded_for: bool = False

    # CORS
    cors_origins: list[str] | str = ["http://localhost:5173", "http://127.0.0.1:5173"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


settings = Settings()
