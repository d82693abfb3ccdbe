from comment_hash.schemas.admin import KeyRotationResponse, PowSettingsRead, PowSettingsUpdate
from comment_hash.schemas.challenge import ChallengeResponse, PowSettingsResponse
from comment_hash.schemas.comment import CommentCreate, CommentResponse

__all__ = [
    "ChallengeResponse",
    "CommentCreate",
    "CommentResponse",
    "KeyRotationResponse",
    "PowSettingsRead",
    "PowSettingsResponse",
    "PowSettingsUpdate",
]
