from pydantic import BaseModel, ConfigDict, Field


class ChallengeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    challenge: str
    unique_str: str = Field(..., alias="uniqueStr")
    timestamp: str
    digest: str


class PowSettingsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    difficulty: int
    nonce_range: int = Field(..., alias="nonceRange")
    algorithm: str = "sha256"
