import structlog
from fastapi import APIRouter, Depends, Request

from comment_hash.config import settings
from comment_hash.dependencies import get_pow_config
from comment_hash.middleware.rate_limit import limiter
from comment_hash.schemas.challenge import ChallengeResponse, PowSettingsResponse
from comment_hash.services.pow_service import issue_challenge
from comment_hash.services.settings_store import PowConfig

router = APIRouter()
logger = structlog.get_logger()


@router.post("/challenges", response_model=ChallengeResponse, status_code=201)
@limiter.limit(settings.rate_limit_challenges)
async def create_challenge(
    request: Request,
    config: PowConfig = Depends(get_pow_config),
):
    """
    Request a proof-of-work challenge.

    The client must find a nonce for this challenge before posting a comment.
    Nothing is stored; the digest lets the server recognise its own challenge.
    """
    bundle = issue_challenge(config.secret_key)

    logger.info("challenge_created", timestamp=bundle.timestamp)

    return ChallengeResponse(**bundle.to_wire())


@router.get("/challenges/settings", response_model=PowSettingsResponse)
async def get_challenge_settings(config: PowConfig = Depends(get_pow_config)):
    """Difficulty and nonce range the client search should use."""
    return PowSettingsResponse(difficulty=config.difficulty, nonce_range=config.nonce_range)
