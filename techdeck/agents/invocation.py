"""
Resilient Invocation Wrapper.

Sends a prompt to an LLMProvider and retries failures with exponential
backoff plus jitter:

    delay(attempt) = BASE_MS * 2^(attempt - 1), then +/- 10% uniform jitter

Both the retry policy and the sleep function are injectable so tests can
run against a fake clock.

Usage:
    invoker = ResilientInvoker(provider, RetryPolicy(max_attempts=3))
    text = await invoker.invoke("generateChallenge", prompt)
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional
import asyncio
import logging
import random

from tenacity import AsyncRetrying, RetryCallState, RetryError, stop_after_attempt

from techdeck.agents.providers import LLMProvider
from techdeck.core.config import Settings, settings as default_settings
from techdeck.core.exceptions import InvocationExhausted

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
INITIAL_BACKOFF_MS = 1000
JITTER_RATIO = 0.1

Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts to make and how long to wait between them."""
    max_attempts: int = MAX_RETRIES
    base_ms: float = INITIAL_BACKOFF_MS
    jitter: float = JITTER_RATIO
    rng: Callable[[], float] = field(default=random.random, compare=False, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if not 0 <= self.jitter < 1:
            raise ValueError(f"jitter must be in [0, 1), got {self.jitter}")

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "RetryPolicy":
        config = config or default_settings
        return cls(
            max_attempts=config.AI_MAX_RETRIES,
            base_ms=config.AI_BACKOFF_BASE_MS,
            jitter=config.AI_BACKOFF_JITTER
        )

    def base_delay_ms(self, attempt: int) -> float:
        """Delay before the retry that follows failed attempt `attempt`, without jitter."""
        return self.base_ms * 2 ** (attempt - 1)

    def backoff_ms(self, attempt: int) -> float:
        delay = self.base_delay_ms(attempt)
        offset = delay * self.jitter * (self.rng() * 2 - 1)
        return max(0.0, delay + offset)

    def backoff(self, attempt: int) -> float:
        """Backoff in seconds, as expected by the sleeper."""
        return self.backoff_ms(attempt) / 1000


class ResilientInvoker:
    """
    Provider-agnostic LLM caller with bounded retries.

    Every attempt, failure and scheduled delay is logged for diagnosis.
    """

    def __init__(
        self,
        provider: LLMProvider,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleeper = asyncio.sleep
    ):
        self.provider = provider
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def invoke(self, operation_name: str, prompt: str) -> str:
        """
        Call the provider, retrying on any exception.

        Args:
            operation_name: Descriptive name used in logs and errors
            prompt: Full prompt text

        Returns:
            Raw model text

        Raises:
            InvocationExhausted: After all attempts fail
        """
        max_attempts = self.policy.max_attempts

        def log_attempt(retry_state: RetryCallState) -> None:
            logger.info(
                f"🤖 Attempt {retry_state.attempt_number}/{max_attempts} "
                f"for AI operation: {operation_name}"
            )

        def log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            delay_ms = retry_state.next_action.sleep * 1000
            logger.warning(
                f"⚠️ AI call attempt {retry_state.attempt_number} failed for "
                f"{operation_name}: {error}. Retrying in ~{delay_ms:.0f}ms..."
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=lambda retry_state: self.policy.backoff(retry_state.attempt_number),
            sleep=self._sleep,
            before=log_attempt,
            before_sleep=log_retry,
            reraise=False
        )

        try:
            async for attempt in retrying:
                with attempt:
                    text = await self.provider.generate(prompt)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(
                f"❌ AI operation {operation_name} failed after {max_attempts} attempts: {last_error}"
            )
            raise InvocationExhausted(operation_name, max_attempts, last_error) from last_error

        logger.info(
            f"✅ AI operation {operation_name} successful on attempt "
            f"{attempt.retry_state.attempt_number}."
        )
        return text
