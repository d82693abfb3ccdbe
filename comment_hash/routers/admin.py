from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from comment_hash.config import settings
from comment_hash.database import get_db
from comment_hash.dependencies import require_admin
from comment_hash.middleware.rate_limit import limiter
from comment_hash.schemas.admin import KeyRotationResponse, PowSettingsRead, PowSettingsUpdate
from comment_hash.services.settings_store import PowConfig, SettingsStore

router = APIRouter(dependencies=[Depends(require_admin)])
logger = structlog.get_logger()


def to_read_model(config: PowConfig) -> PowSettingsRead:
    return PowSettingsRead(
        difficulty=config.difficulty,
        max_age=config.max_age,
        admin_bypass=config.admin_bypass,
        nonce_range=config.nonce_range,
        secret_key_set=bool(config.secret_key),
    )


@router.get("/admin/settings", response_model=PowSettingsRead)
@limiter.limit(settings.rate_limit_admin)
async def read_settings(request: Request, db: Session = Depends(get_db)):
    """Current proof-of-work settings. The secret key itself is never returned."""
    return to_read_model(SettingsStore(db).load())


@router.put("/admin/settings", response_model=PowSettingsRead)
@limiter.limit(settings.rate_limit_admin)
async def update_settings(
    request: Request,
    update: PowSettingsUpdate,
    db: Session = Depends(get_db),
):
    """
    Update proof-of-work settings.

    Replacing the secret key invalidates every challenge issued so far.
    """
    try:
        config = SettingsStore(db).update(**update.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(
        "pow_settings_updated",
        difficulty=config.difficulty,
        max_age=config.max_age,
        admin_bypass=config.admin_bypass,
    )
    return to_read_model(config)


@router.post("/admin/settings/rotate-key", response_model=KeyRotationResponse)
@limiter.limit(settings.rate_limit_admin)
async def rotate_key(request: Request, db: Session = Depends(get_db)):
    """Generate a new secret key. Outstanding challenges stop verifying."""
    SettingsStore(db).rotate_secret_key()
    return KeyRotationResponse(rotated=True, rotated_at=datetime.now(UTC))
