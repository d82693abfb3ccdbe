"""Persisted proof-of-work settings.

Settings live in the `options` table as name/value rows. The rest of the
application only ever sees an immutable PowConfig snapshot.
"""

import secrets
from dataclasses import dataclass, field

import structlog
from sqlalchemy.orm import Session

from comment_hash.config import settings
from comment_hash.models.option import Option

logger = structlog.get_logger()

SECRET_KEY_CHARS = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!@#$%^&*()_+-=[]{}|;:,.<>?"
)
SECRET_KEY_LENGTH = 64

MIN_DIFFICULTY = 2
MAX_DIFFICULTY = 5
MIN_MAX_AGE = 120
MAX_MAX_AGE = 86400

OPTION_SECRET_KEY = "secret_key"
OPTION_DIFFICULTY = "difficulty"
OPTION_MAX_AGE = "max_age"
OPTION_ADMIN_BYPASS = "admin_bypass"


@dataclass(frozen=True)
class PowConfig:
    secret_key: str
    difficulty: int
    max_age: int
    admin_bypass: bool
    nonce_range: int = field(default_factory=lambda: settings.pow_nonce_range)


def generate_secret_key() -> str:
    """64 characters from SECRET_KEY_CHARS, drawn with a CSPRNG."""
    return "".join(secrets.choice(SECRET_KEY_CHARS) for _ in range(SECRET_KEY_LENGTH))


def sanitize_difficulty(value) -> int:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, int(value)))


def sanitize_max_age(value) -> int:
    return max(MIN_MAX_AGE, min(MAX_MAX_AGE, int(value)))


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class SettingsStore:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, name: str) -> str | None:
        option = self.db.get(Option, name)
        return option.value if option else None

    def _set(self, name: str, value: str) -> None:
        option = self.db.get(Option, name)
        if option:
            option.value = value
        else:
            self.db.add(Option(name=name, value=value))

    def activate(self) -> bool:
        """
        Write defaults for any missing option, generating the secret key.

        Returns True if anything was written.
        """
        defaults = {
            OPTION_DIFFICULTY: str(sanitize_difficulty(settings.pow_default_difficulty)),
            OPTION_MAX_AGE: str(sanitize_max_age(settings.pow_default_max_age_seconds)),
            OPTION_ADMIN_BYPASS: str(settings.pow_default_admin_bypass).lower(),
        }
        written = False

        if not self._get(OPTION_SECRET_KEY):
            self._set(OPTION_SECRET_KEY, generate_secret_key())
            logger.info("secret_key_generated")
            written = True

        for name, value in defaults.items():
            if self._get(name) is None:
                self._set(name, value)
                written = True

        if written:
            self.db.commit()
        return written

    def load(self) -> PowConfig:
        """Read the current settings. Raises RuntimeError if never activated."""
        secret_key = self._get(OPTION_SECRET_KEY)
        if not secret_key:
            raise RuntimeError("Proof-of-work settings are not initialized")

        difficulty = self._get(OPTION_DIFFICULTY)
        max_age = self._get(OPTION_MAX_AGE)
        admin_bypass = self._get(OPTION_ADMIN_BYPASS)

        return PowConfig(
            secret_key=secret_key,
            difficulty=int(difficulty) if difficulty is not None else settings.pow_default_difficulty,
            max_age=int(max_age) if max_age is not None else settings.pow_default_max_age_seconds,
            admin_bypass=(
                _parse_bool(admin_bypass)
                if admin_bypass is not None
                else settings.pow_default_admin_bypass
            ),
            nonce_range=settings.pow_nonce_range,
        )

    def update(
        self,
        *,
        difficulty: int | None = None,
        max_age: int | None = None,
        admin_bypass: bool | None = None,
        secret_key: str | None = None,
    ) -> PowConfig:
        """Save the given settings, clamping numeric values to their bounds."""
        if secret_key is not None:
            if len(secret_key) != SECRET_KEY_LENGTH or not (
                secret_key.isascii() and secret_key.isprintable()
            ):
                raise ValueError(
                    f"Secret key must be {SECRET_KEY_LENGTH} printable ASCII characters"
                )
            self._set(OPTION_SECRET_KEY, secret_key)
            logger.warning("secret_key_replaced")
        if difficulty is not None:
            self._set(OPTION_DIFFICULTY, str(sanitize_difficulty(difficulty)))
        if max_age is not None:
            self._set(OPTION_MAX_AGE, str(sanitize_max_age(max_age)))
        if admin_bypass is not None:
            self._set(OPTION_ADMIN_BYPASS, str(admin_bypass).lower())

        self.db.commit()
        return self.load()

    def rotate_secret_key(self) -> str:
        """Replace the secret key. Every outstanding challenge becomes invalid."""
        key = generate_secret_key()
        self._set(OPTION_SECRET_KEY, key)
        self.db.commit()
        logger.warning("secret_key_rotated")
        return key
