"""SHA-256 and HMAC-SHA256 helpers shared by issuance, verification and search."""

import hashlib
import hmac


def _as_utf8_bytes(value: str | bytes, field_name: str) -> bytes:
    """Encode str as UTF-8, or check that bytes already are valid UTF-8."""
    if isinstance(value, bytes):
        try:
            value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValueError(f"{field_name}: not valid UTF-8") from e
        return value
    try:
        return value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValueError(f"{field_name}: not encodable as UTF-8") from e


def sha256_hex(data: str | bytes) -> str:
    """Return the lowercase hex SHA-256 of data."""
    return hashlib.sha256(_as_utf8_bytes(data, "data")).hexdigest()


def hmac_sha256_hex(key: str | bytes, message: str | bytes) -> str:
    """Return the lowercase hex HMAC-SHA256 of message under key."""
    key_bytes = _as_utf8_bytes(key, "key")
    if not key_bytes:
        raise ValueError("key: must not be empty")
    return hmac.new(key_bytes, _as_utf8_bytes(message, "message"), hashlib.sha256).hexdigest()


def sign_bundle(secret_key: str, challenge: str, unique_str: str, timestamp: str) -> str:
    """HMAC tag binding a challenge bundle to the server secret."""
    return hmac_sha256_hex(secret_key, f"{challenge}{unique_str}{timestamp}")


def pow_hash(challenge: str, unique_str: str, timestamp: str, nonce: int | str) -> str:
    """Hash of the proof-of-work preimage: plain concatenation, nonce in decimal."""
    return sha256_hex(f"{challenge}{unique_str}{timestamp}{nonce}")


def leading_zeros(hex_digest: str) -> int:
    """Count leading '0' hex characters."""
    return len(hex_digest) - len(hex_digest.lstrip("0"))


def meets_difficulty(hex_digest: str, difficulty: int) -> bool:
    """True when the first `difficulty` hex characters are all '0'."""
    if difficulty < 0:
        raise ValueError("difficulty must be non-negative")
    return leading_zeros(hex_digest) >= difficulty
