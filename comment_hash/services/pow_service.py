import enum
import hmac
import re
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from comment_hash.services.hashing import meets_difficulty, pow_hash, sign_bundle
from comment_hash.services.settings_store import PowConfig

logger = structlog.get_logger()

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
CHALLENGE_BYTES = 32
UNIQUE_STR_BYTES = 16

CHALLENGE_RE = re.compile(r"^[a-f0-9]{64}$")
UNIQUE_STR_RE = re.compile(r"^[a-f0-9]{32}$")
TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$", re.ASCII)


class RejectionReason(enum.StrEnum):
    MISSING_FIELDS = "missing_fields"
    MALFORMED_FIELD = "malformed_field"
    EXPIRED = "expired"
    TAMPERED_CHALLENGE = "tampered_challenge"
    INVALID_PROOF_OF_WORK = "invalid_proof_of_work"


class SubmissionRejected(ValueError):
    """Raised when a submission fails verification. Terminal for that attempt."""

    def __init__(self, reason: RejectionReason):
        super().__init__(reason.value)
        self.reason = reason


@dataclass(frozen=True)
class ChallengeBundle:
    challenge: str
    unique_str: str
    timestamp: str
    digest: str

    def to_wire(self) -> dict[str, str]:
        return {
            "challenge": self.challenge,
            "uniqueStr": self.unique_str,
            "timestamp": self.timestamp,
            "digest": self.digest,
        }


@dataclass(frozen=True)
class SubmissionProof:
    challenge: str
    unique_str: str
    timestamp: str
    digest: str
    nonce: str

    @classmethod
    def from_form(cls, form) -> "SubmissionProof":
        """Build a proof from the comment_pow_* fields of a submitted form."""

        def field(name: str) -> str:
            value = form.get(f"comment_pow_{name}")
            return str(value).strip() if value is not None else ""

        return cls(
            challenge=field("challenge"),
            unique_str=field("unique_str"),
            timestamp=field("timestamp"),
            digest=field("digest"),
            nonce=field("nonce"),
        )


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a bundle timestamp as UTC. Raises ValueError on impossible dates."""
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)


def issue_challenge(secret_key: str, *, now: datetime | None = None) -> ChallengeBundle:
    """Generate a fresh challenge bundle signed with the secret key."""
    challenge = secrets.token_hex(CHALLENGE_BYTES)  # 64 hex characters
    unique_str = secrets.token_hex(UNIQUE_STR_BYTES)  # 32 hex characters
    timestamp = format_timestamp(now or utc_now())

    digest = sign_bundle(secret_key, challenge, unique_str, timestamp)

    logger.debug("challenge_issued", timestamp=timestamp)

    return ChallengeBundle(
        challenge=challenge,
        unique_str=unique_str,
        timestamp=timestamp,
        digest=digest,
    )


def verify(
    proof: SubmissionProof,
    secret_key: str,
    difficulty: int,
    max_age: int,
    now: datetime,
) -> bool:
    """
    Verify a proof-of-work submission.

    Checks run in order (presence, format, freshness, integrity, work) and
    the first failure raises SubmissionRejected. Returns True if valid.
    """
    if difficulty < 0:
        raise ValueError("difficulty must be non-negative")

    if not all((proof.challenge, proof.unique_str, proof.timestamp, proof.digest, proof.nonce)):
        raise SubmissionRejected(RejectionReason.MISSING_FIELDS)

    if not (
        CHALLENGE_RE.fullmatch(proof.challenge)
        and UNIQUE_STR_RE.fullmatch(proof.unique_str)
        and TIMESTAMP_RE.fullmatch(proof.timestamp)
    ):
        raise SubmissionRejected(RejectionReason.MALFORMED_FIELD)

    try:
        issued_at = parse_timestamp(proof.timestamp)
    except ValueError:
        raise SubmissionRejected(RejectionReason.EXPIRED) from None

    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    # Whole seconds on both sides; a timestamp in the future is not rejected
    age = int(now.timestamp()) - int(issued_at.timestamp())
    if age > max_age:
        raise SubmissionRejected(RejectionReason.EXPIRED)

    expected = sign_bundle(secret_key, proof.challenge, proof.unique_str, proof.timestamp)
    submitted = proof.digest.encode("utf-8", "surrogatepass")
    if not hmac.compare_digest(expected.encode(), submitted):
        raise SubmissionRejected(RejectionReason.TAMPERED_CHALLENGE)

    try:
        hash_hex = pow_hash(proof.challenge, proof.unique_str, proof.timestamp, proof.nonce)
    except ValueError:
        raise SubmissionRejected(RejectionReason.INVALID_PROOF_OF_WORK) from None
    if not meets_difficulty(hash_hex, difficulty):
        raise SubmissionRejected(RejectionReason.INVALID_PROOF_OF_WORK)

    return True


def verify_submission(
    proof: SubmissionProof, config: PowConfig, now: datetime | None = None
) -> bool:
    """Verify a proof against the current settings, logging the rejection reason."""
    try:
        return verify(
            proof,
            secret_key=config.secret_key,
            difficulty=config.difficulty,
            max_age=config.max_age,
            now=now or utc_now(),
        )
    except SubmissionRejected as e:
        logger.info("pow_verification_failed", reason=e.reason.value)
        raise
