from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from comment_hash.database import get_db
from comment_hash.services.crypto_utils import is_admin_token
from comment_hash.services.settings_store import PowConfig, SettingsStore


def extract_bearer_token(authorization: str = Header(...)) -> str:
    """Extract token from Authorization header."""
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")
    return authorization[7:]


def get_pow_config(db: Session = Depends(get_db)) -> PowConfig:
    """Current proof-of-work settings, read fresh for each request."""
    return SettingsStore(db).load()


def is_admin_request(
    authorization: str | None = Header(None),
    config: PowConfig = Depends(get_pow_config),
) -> bool:
    """
    True when admin bypass is enabled and the request carries a valid admin
    bearer token. Never raises.

    The Argon2 check only runs when bypass is on.
    """
    if not config.admin_bypass:
        return False
    if not authorization or not authorization.startswith("Bearer "):
        return False
    return is_admin_token(authorization[7:])


def require_admin(token: str = Depends(extract_bearer_token)) -> None:
    if not is_admin_token(token):
        raise HTTPException(status_code=403, detail="Admin privileges required")
