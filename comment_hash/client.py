"""
Python client for the comment endpoint.

Does what the browser script does: fetch a challenge, find a nonce, then post
the comment with the solution embedded in the comment_pow_* fields.

Usage:
    with CommentHashClient("https://example.com") as client:
        client.post_comment("alice", "Nice write-up!")
"""

from dataclasses import dataclass

import httpx
import structlog

from comment_hash.services.nonce_search import NonceSearcher, ProgressCallback, SearchResult
from comment_hash.services.pow_service import ChallengeBundle

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 30.0


class ApiError(RuntimeError):
    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class SolvedChallenge:
    bundle: ChallengeBundle
    result: SearchResult

    def form_fields(self) -> dict[str, str]:
        return {
            "comment_pow_nonce": str(self.result.nonce),
            "comment_pow_challenge": self.bundle.challenge,
            "comment_pow_unique_str": self.bundle.unique_str,
            "comment_pow_timestamp": self.bundle.timestamp,
            "comment_pow_digest": self.bundle.digest,
        }


class CommentHashClient:
    def __init__(
        self,
        base_url: str = "",
        *,
        http_client: httpx.Client | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        api_prefix: str = "/api/v1",
    ):
        self._owns_client = http_client is None
        self.http = http_client or httpx.Client(base_url=base_url, timeout=timeout_seconds)
        self.api_prefix = api_prefix

    def __enter__(self) -> "CommentHashClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.http.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        response = self.http.request(method, f"{self.api_prefix}{path}", **kwargs)
        if response.is_error:
            raise ApiError(response.status_code, response.text)
        return response.json()

    def fetch_challenge(self) -> ChallengeBundle:
        data = self._request("POST", "/challenges")
        return ChallengeBundle(
            challenge=data["challenge"],
            unique_str=data["uniqueStr"],
            timestamp=data["timestamp"],
            digest=data["digest"],
        )

    def fetch_pow_settings(self) -> tuple[int, int]:
        """Return (difficulty, nonce_range)."""
        data = self._request("GET", "/challenges/settings")
        return data["difficulty"], data["nonceRange"]

    def solve(self, on_progress: ProgressCallback | None = None) -> SolvedChallenge:
        difficulty, nonce_range = self.fetch_pow_settings()
        bundle = self.fetch_challenge()

        searcher = NonceSearcher(
            bundle.challenge,
            bundle.unique_str,
            bundle.timestamp,
            difficulty,
            nonce_range,
        )
        result = searcher.run(on_progress=on_progress)
        logger.info("pow_solved", difficulty=difficulty, iterations=result.iterations)
        return SolvedChallenge(bundle=bundle, result=result)

    def post_comment(
        self,
        author: str,
        content: str,
        *,
        solved: SolvedChallenge | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> dict:
        """Solve a fresh challenge (unless one is given) and submit the comment."""
        solved = solved or self.solve(on_progress=on_progress)
        payload = {"author": author, "content": content, **solved.form_fields()}
        return self._request("POST", "/comments", json=payload)
