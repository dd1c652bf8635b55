import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

import httpx

from .models import UpstreamResponse

logger = logging.getLogger(__name__)

# Receives the 1-based attempt index and must build the request from scratch
RequestBuilder = Callable[[int], Awaitable[UpstreamResponse]]


class AttemptOutcome(StrEnum):
    SUCCESS = "success"
    PASS_THROUGH = "pass_through"
    RETRY = "retry"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Attempt:
    index: int
    status_code: int | None
    outcome: AttemptOutcome


class RetryController:
    """
    Bounded attempt loop that regenerates the whole request on every attempt.

    200 ends the loop with success and 404 is passed through untouched. Any
    other status is retried until ``max_attempts`` is reached, then the last
    response is returned as is. There is no delay between attempts.

    Transport errors (timeouts, connection failures) propagate immediately
    unless ``retry_transport_errors`` is set, in which case they are retried
    like a non-terminal status and re-raised once attempts run out.
    """

    TERMINAL_SUCCESS = 200
    TERMINAL_PASS_THROUGH = 404

    def __init__(self, max_attempts: int = 5, retry_transport_errors: bool = False):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.retry_transport_errors = retry_transport_errors

    def classify(self, index: int, status_code: int | None) -> AttemptOutcome:
        if status_code == self.TERMINAL_SUCCESS:
            return AttemptOutcome.SUCCESS
        if status_code == self.TERMINAL_PASS_THROUGH:
            return AttemptOutcome.PASS_THROUGH
        if index >= self.max_attempts:
            return AttemptOutcome.EXHAUSTED
        return AttemptOutcome.RETRY

    async def run(self, build: RequestBuilder) -> tuple[UpstreamResponse, list[Attempt]]:
        attempts: list[Attempt] = []
        for index in range(1, self.max_attempts + 1):
            try:
                response = await build(index)
            except httpx.TransportError as e:
                outcome = self.classify(index, None)
                attempts.append(Attempt(index=index, status_code=None, outcome=outcome))
                if not self.retry_transport_errors or outcome is AttemptOutcome.EXHAUSTED:
                    raise
                logger.warning(f"Attempt {index}/{self.max_attempts} transport error: {e!r}")
                continue

            outcome = self.classify(index, response.status_code)
            attempts.append(Attempt(index=index, status_code=response.status_code, outcome=outcome))
            if outcome is not AttemptOutcome.RETRY:
                return response, attempts
            logger.info(
                f"Attempt {index}/{self.max_attempts} got {response.status_code}, regenerating"
            )

        # unreachable: the last attempt is always classified as terminal
        raise RuntimeError("retry loop ended without a terminal attempt")
