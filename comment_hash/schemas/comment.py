from pydantic import BaseModel, Field, field_validator

from comment_hash.services.pow_service import SubmissionProof

# Long enough for any legitimate value; missing or empty fields are left to the verifier
POW_FIELD_MAX_LENGTH = 128


class CommentCreate(BaseModel):
    author: str = Field(..., min_length=1, max_length=245)
    content: str = Field(..., min_length=1, max_length=65525)

    comment_pow_nonce: str = Field("", max_length=POW_FIELD_MAX_LENGTH)
    comment_pow_challenge: str = Field("", max_length=POW_FIELD_MAX_LENGTH)
    comment_pow_unique_str: str = Field("", max_length=POW_FIELD_MAX_LENGTH)
    comment_pow_timestamp: str = Field("", max_length=POW_FIELD_MAX_LENGTH)
    comment_pow_digest: str = Field("", max_length=POW_FIELD_MAX_LENGTH)

    @field_validator(
        "comment_pow_nonce",
        "comment_pow_challenge",
        "comment_pow_unique_str",
        "comment_pow_timestamp",
        "comment_pow_digest",
        mode="before",
    )
    @classmethod
    def trim_pow_field(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    def pow_proof(self) -> SubmissionProof:
        return SubmissionProof.from_form(self.model_dump())


class CommentResponse(BaseModel):
    accepted: bool
    pow_bypassed: bool = False
