from datetime import datetime

from pydantic import BaseModel, Field


class PowSettingsRead(BaseModel):
    difficulty: int
    max_age: int
    admin_bypass: bool
    nonce_range: int
    secret_key_set: bool


class PowSettingsUpdate(BaseModel):
    """Numeric values outside their bounds are clamped, not rejected."""

    difficulty: int | None = None
    max_age: int | None = Field(None, description="Seconds; clamped to 120-86400")
    admin_bypass: bool | None = None
    secret_key: str | None = Field(None, min_length=64, max_length=64)


class KeyRotationResponse(BaseModel):
    rotated: bool
    rotated_at: datetime
