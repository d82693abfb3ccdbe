"""
Client-side nonce search.

Brute-forces a nonce whose proof-of-work hash has the required number of
leading zero hex digits. The server never trusts this code; it re-derives
the hash on submission.
"""

import asyncio
import secrets
import threading
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

import structlog

from comment_hash.services.hashing import meets_difficulty, sha256_hex

logger = structlog.get_logger()

DEFAULT_NONCE_RANGE = 10_000_000_000
PROGRESS_INTERVAL = 1000


class SearchCancelled(Exception):
    pass


class NonceRangeExhausted(RuntimeError):
    """Every nonce in the range was tried without a match."""


@dataclass(frozen=True)
class SearchProgress:
    nonce: int
    iterations: int
    last_hash: str


@dataclass(frozen=True)
class SearchResult:
    nonce: int
    hash: str
    iterations: int


ProgressCallback = Callable[[SearchProgress], None]


class NonceSearcher:
    def __init__(
        self,
        challenge: str,
        unique_str: str,
        timestamp: str,
        difficulty: int,
        nonce_range: int = DEFAULT_NONCE_RANGE,
        *,
        start: int | None = None,
        progress_interval: int = PROGRESS_INTERVAL,
    ):
        if difficulty < 0:
            raise ValueError("difficulty must be non-negative")
        if nonce_range <= 0:
            raise ValueError("nonce_range must be positive")
        if progress_interval <= 0:
            raise ValueError("progress_interval must be positive")

        self.challenge = challenge
        self.unique_str = unique_str
        self.timestamp = timestamp
        self.difficulty = difficulty
        self.nonce_range = nonce_range
        # Random start keeps many clients from all grinding upward from 0
        self.start = secrets.randbelow(nonce_range) if start is None else start % nonce_range
        self.progress_interval = progress_interval

    def steps(self) -> Iterator[SearchProgress | SearchResult]:
        """
        Yield a SearchProgress every `progress_interval` attempts, then the
        SearchResult. Raises NonceRangeExhausted once the range wraps around.
        """
        prefix = f"{self.challenge}{self.unique_str}{self.timestamp}"
        nonce = self.start

        for iterations in range(self.nonce_range):
            hash_hex = sha256_hex(f"{prefix}{nonce}")
            if meets_difficulty(hash_hex, self.difficulty):
                yield SearchResult(nonce=nonce, hash=hash_hex, iterations=iterations)
                return

            nonce = (nonce + 1) % self.nonce_range

            if (iterations + 1) % self.progress_interval == 0:
                yield SearchProgress(nonce=nonce, iterations=iterations + 1, last_hash=hash_hex)

        raise NonceRangeExhausted(
            f"No nonce in range {self.nonce_range} meets difficulty {self.difficulty}"
        )

    def run(
        self,
        cancel_event: threading.Event | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SearchResult:
        """Drive the search to completion. Cancellation is checked at each progress step."""
        for step in self.steps():
            if isinstance(step, SearchResult):
                logger.debug("nonce_found", nonce=step.nonce, iterations=step.iterations)
                return step
            if cancel_event is not None and cancel_event.is_set():
                raise SearchCancelled(f"Search cancelled after {step.iterations} attempts")
            if on_progress is not None:
                on_progress(step)


class SearchTask:
    """A nonce search running on a worker thread."""

    def __init__(self, searcher: NonceSearcher, on_progress: ProgressCallback | None = None):
        self.searcher = searcher
        self._cancel_event = threading.Event()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="nonce-search")
        self._future: Future[SearchResult] = self._executor.submit(
            searcher.run, self._cancel_event, on_progress
        )
        self._executor.shutdown(wait=False)

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> SearchResult:
        """Block for the result. Raises SearchCancelled if cancel() won the race."""
        return self._future.result(timeout)


def search(
    challenge: str,
    unique_str: str,
    timestamp: str,
    difficulty: int,
    nonce_range: int = DEFAULT_NONCE_RANGE,
) -> int:
    """Blocking search returning the winning nonce."""
    return NonceSearcher(challenge, unique_str, timestamp, difficulty, nonce_range).run().nonce


async def search_async(
    searcher: NonceSearcher, on_progress: ProgressCallback | None = None
) -> SearchResult:
    """Run the search off the event loop; cancelling the awaiting task stops the worker."""
    cancel_event = threading.Event()
    try:
        return await asyncio.to_thread(searcher.run, cancel_event, on_progress)
    except asyncio.CancelledError:
        cancel_event.set()
        raise
