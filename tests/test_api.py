"""Tests for the HTTP API."""

import re
from datetime import UTC, datetime, timedelta
from unittest import mock

import pytest

from comment_hash.config import settings
from comment_hash.services.crypto_utils import hash_token
from comment_hash.services.hashing import sha256_hex
from comment_hash.services.pow_service import format_timestamp, issue_challenge
from tests.test_utils import TEST_SECRET_KEY

ADMIN_TOKEN = "admin-" + "t" * 58
REJECTION_MESSAGE = "Comment validation failed. Please try again."


def solve_pow(challenge: dict, difficulty: int) -> int:
    """Brute-force the smallest nonce for a challenge as returned on the wire."""
    target = "0" * difficulty
    prefix = f"{challenge['challenge']}{challenge['uniqueStr']}{challenge['timestamp']}"
    for nonce in range(10_000_000):
        if sha256_hex(f"{prefix}{nonce}").startswith(target):
            return nonce
    raise RuntimeError("Failed to solve PoW within iteration limit")


def comment_payload(challenge: dict, nonce, **overrides) -> dict:
    payload = {
        "author": "alice",
        "content": "First!",
        "comment_pow_nonce": str(nonce),
        "comment_pow_challenge": challenge["challenge"],
        "comment_pow_unique_str": challenge["uniqueStr"],
        "comment_pow_timestamp": challenge["timestamp"],
        "comment_pow_digest": challenge["digest"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope="module")
def admin_token_hash():
    return hash_token(ADMIN_TOKEN)


@pytest.fixture
def admin_headers(monkeypatch, admin_token_hash):
    monkeypatch.setattr(settings, "admin_token_hash", admin_token_hash)
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def challenge(client):
    response = client.post("/api/v1/challenges")
    assert response.status_code == 201
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestChallenges:
    def test_create_challenge(self, challenge):
        assert set(challenge) == {"challenge", "uniqueStr", "timestamp", "digest"}
        assert re.fullmatch(r"[a-f0-9]{64}", challenge["challenge"])
        assert re.fullmatch(r"[a-f0-9]{32}", challenge["uniqueStr"])
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", challenge["timestamp"])
        assert re.fullmatch(r"[a-f0-9]{64}", challenge["digest"])

    def test_each_challenge_is_fresh(self, client):
        first = client.post("/api/v1/challenges").json()
        second = client.post("/api/v1/challenges").json()
        assert first["challenge"] != second["challenge"]

    def test_pow_settings(self, client):
        response = client.get("/api/v1/challenges/settings")
        assert response.status_code == 200
        assert response.json() == {
            "difficulty": 2,
            "nonceRange": 10_000_000_000,
            "algorithm": "sha256",
        }


class TestComments:
    def test_valid_submission_accepted(self, client, challenge):
        nonce = solve_pow(challenge, 2)
        response = client.post("/api/v1/comments", json=comment_payload(challenge, nonce))
        assert response.status_code == 201
        assert response.json() == {"accepted": True, "pow_bypassed": False}

    def test_fields_are_trimmed(self, client, challenge):
        nonce = solve_pow(challenge, 2)
        payload = comment_payload(
            challenge, f" {nonce} ", comment_pow_digest=f"{challenge['digest']}\n"
        )
        response = client.post("/api/v1/comments", json=payload)
        assert response.status_code == 201

    def test_missing_pow_fields_rejected(self, client):
        response = client.post("/api/v1/comments", json={"author": "bob", "content": "spam"})
        assert response.status_code == 403
        assert response.json()["detail"] == REJECTION_MESSAGE

    def test_wrong_nonce_rejected(self, client, challenge):
        nonce = solve_pow(challenge, 2)
        # Smallest solution, so every nonce below it fails; above it, find a failing one
        bad = nonce - 1 if nonce > 0 else next(
            n
            for n in range(1, 1000)
            if not sha256_hex(
                f"{challenge['challenge']}{challenge['uniqueStr']}{challenge['timestamp']}{n}"
            ).startswith("00")
        )
        response = client.post("/api/v1/comments", json=comment_payload(challenge, bad))
        assert response.status_code == 403
        assert response.json()["detail"] == REJECTION_MESSAGE

    def test_tampered_timestamp_rejected(self, client, challenge):
        nonce = solve_pow(challenge, 2)
        later = format_timestamp(datetime.now(UTC) + timedelta(seconds=30))
        payload = comment_payload(challenge, nonce, comment_pow_timestamp=later)
        response = client.post("/api/v1/comments", json=payload)
        assert response.status_code == 403

    def test_expired_challenge_rejected(self, client):
        # Signed with the real key, but issued long before max_age
        bundle = issue_challenge(TEST_SECRET_KEY, now=datetime.now(UTC) - timedelta(days=2))
        wire = bundle.to_wire()
        response = client.post(
            "/api/v1/comments", json=comment_payload(wire, solve_pow(wire, 2))
        )
        assert response.status_code == 403
        assert response.json()["detail"] == REJECTION_MESSAGE

    def test_rotated_key_invalidates_outstanding_challenges(
        self, client, challenge, admin_headers
    ):
        nonce = solve_pow(challenge, 2)
        rotate = client.post("/api/v1/admin/settings/rotate-key", headers=admin_headers)
        assert rotate.status_code == 200

        response = client.post("/api/v1/comments", json=comment_payload(challenge, nonce))
        assert response.status_code == 403

    def test_oversized_field_is_validation_error(self, client, challenge):
        payload = comment_payload(challenge, "1" * 500)
        response = client.post("/api/v1/comments", json=payload)
        assert response.status_code == 422

    def test_empty_content_is_validation_error(self, client, challenge):
        payload = comment_payload(challenge, 0, content="")
        response = client.post("/api/v1/comments", json=payload)
        assert response.status_code == 422


class TestAdminBypass:
    def test_admin_skips_verification(self, client, admin_headers):
        response = client.post(
            "/api/v1/comments",
            json={"author": "admin", "content": "Pinned"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json() == {"accepted": True, "pow_bypassed": True}

    def test_bypass_disabled_requires_pow(self, client, admin_headers, settings_store):
        settings_store.update(admin_bypass=False)
        response = client.post(
            "/api/v1/comments",
            json={"author": "admin", "content": "Pinned"},
            headers=admin_headers,
        )
        assert response.status_code == 403

    def test_bypass_disabled_skips_token_check(self, client, settings_store):
        settings_store.update(admin_bypass=False)
        with mock.patch("comment_hash.dependencies.is_admin_token") as check:
            response = client.post(
                "/api/v1/comments",
                json={"author": "mallory", "content": "Hi"},
                headers={"Authorization": "Bearer anything"},
            )
        assert response.status_code == 403
        check.assert_not_called()

    def test_wrong_token_gets_no_bypass(self, client, admin_headers):
        response = client.post(
            "/api/v1/comments",
            json={"author": "mallory", "content": "Hi"},
            headers={"Authorization": "Bearer not-the-token"},
        )
        assert response.status_code == 403
        assert response.json()["detail"] == REJECTION_MESSAGE

    def test_no_bypass_when_admin_token_unconfigured(self, client):
        response = client.post(
            "/api/v1/comments",
            json={"author": "admin", "content": "Pinned"},
            headers={"Authorization": f"Bearer {ADMIN_TOKEN}"},
        )
        assert response.status_code == 403


class TestAdminSettings:
    def test_read_settings_hides_secret(self, client, admin_headers):
        response = client.get("/api/v1/admin/settings", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data == {
            "difficulty": 2,
            "max_age": 7200,
            "admin_bypass": True,
            "nonce_range": 10_000_000_000,
            "secret_key_set": True,
        }
        assert TEST_SECRET_KEY not in response.text

    def test_update_clamps_values(self, client, admin_headers):
        response = client.put(
            "/api/v1/admin/settings",
            json={"difficulty": 7, "max_age": 60},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["difficulty"] == 5
        assert response.json()["max_age"] == 120

    def test_update_bad_secret_key(self, client, admin_headers):
        response = client.put(
            "/api/v1/admin/settings",
            json={"secret_key": "é" * 64},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_requires_authorization_header(self, client):
        response = client.get("/api/v1/admin/settings")
        assert response.status_code == 422

    def test_rejects_malformed_authorization(self, client):
        response = client.get("/api/v1/admin/settings", headers={"Authorization": "Token abc"})
        assert response.status_code == 401

    def test_rejects_wrong_token(self, client, admin_headers):
        response = client.get(
            "/api/v1/admin/settings", headers={"Authorization": "Bearer wrong"}
        )
        assert response.status_code == 403
