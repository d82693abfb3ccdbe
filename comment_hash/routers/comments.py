import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from comment_hash.config import settings
from comment_hash.dependencies import get_pow_config, is_admin_request
from comment_hash.middleware.rate_limit import limiter
from comment_hash.schemas.comment import CommentCreate, CommentResponse
from comment_hash.services.pow_service import SubmissionRejected, verify_submission
from comment_hash.services.settings_store import PowConfig

router = APIRouter()
logger = structlog.get_logger()

# Same message for every rejection so clients cannot tell which check failed
REJECTION_MESSAGE = "Comment validation failed. Please try again."


@router.post("/comments", response_model=CommentResponse, status_code=201)
@limiter.limit(settings.rate_limit_comments)
async def submit_comment(
    request: Request,
    comment: CommentCreate,
    config: PowConfig = Depends(get_pow_config),
    is_admin_bypass: bool = Depends(is_admin_request),
):
    """
    Accept a comment once its proof of work checks out.

    Storing the comment is the host application's job; this endpoint only
    gates it.
    """
    if is_admin_bypass:
        logger.info("pow_verification_bypassed")
        return CommentResponse(accepted=True, pow_bypassed=True)

    try:
        verify_submission(comment.pow_proof(), config)
    except SubmissionRejected:
        raise HTTPException(status_code=403, detail=REJECTION_MESSAGE)

    logger.info("comment_accepted", content_length=len(comment.content))

    return CommentResponse(accepted=True)
