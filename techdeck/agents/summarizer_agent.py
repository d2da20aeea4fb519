"""
Summarizer Agent (memory compaction).

Shrinks an oversized block of teacher's notes to a character target:

    1. Text that already fits is returned unchanged
    2. Otherwise the LLM is asked to condense it to ~90% of the target
    3. Any failure (exhausted retries, empty reply) falls back to keeping
       the TAIL of the text behind a truncation marker

Truncation is the guaranteed baseline; the AI path is best effort. After
`failure_threshold` consecutive AI failures the circuit breaker opens and
compaction goes straight to truncation until `reset()` is called.

Usage:
    policy = CompactionPolicy(ResilientInvoker(provider, RetryPolicy(2, 1500)))
    shorter = await policy.compact(history_text, target_chars=2000)
"""

from typing import Optional
import logging

from techdeck.agents.invocation import ResilientInvoker, RetryPolicy
from techdeck.agents.prompt_composer import build_prompt
from techdeck.agents.providers import LLMProvider
from techdeck.core.config import Settings, settings as default_settings
from techdeck.core.exceptions import InvocationExhausted, SummarizationFailure
from techdeck.models.prompt import ContextSection, RenderHint

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "[SUMMARIZATION FAILED - TRUNCATED] ... "
PROMPT_TARGET_RATIO = 0.9
TRUNCATION_KEEP_RATIO = 0.8


def truncate_tail(text: str, target_chars: int) -> str:
    """
    Keep the most recent part of `text` behind the truncation marker.

    The result never exceeds `target_chars`.

    Example:
        >>> truncate_tail("a" * 100, 60)
        '[SUMMARIZATION FAILED - TRUNCATED] ... aaaaaaaaaaaaaaaaaaaaa'
    """
    if len(text) <= target_chars:
        return text
    if target_chars <= len(TRUNCATION_MARKER):
        return text[-target_chars:] if target_chars > 0 else ""

    keep = max(0, min(int(target_chars * TRUNCATION_KEEP_RATIO), target_chars - len(TRUNCATION_MARKER)))
    tail = text[-keep:] if keep else ""
    return f"{TRUNCATION_MARKER}{tail}"


class CompactionPolicy:
    """
    AI summarization with truncation fallback and a circuit breaker.
    """

    def __init__(self, invoker: Optional[ResilientInvoker] = None, failure_threshold: int = 2):
        self.invoker = invoker
        self.failure_threshold = max(1, failure_threshold)
        self.consecutive_failures = 0

        logger.info(
            f"✅ CompactionPolicy initialized "
            f"(AI summarization {'enabled' if invoker else 'disabled'}, "
            f"breaker after {self.failure_threshold} failures)"
        )

    @classmethod
    def from_settings(
        cls,
        provider: Optional[LLMProvider],
        config: Optional[Settings] = None
    ) -> "CompactionPolicy":
        config = config or default_settings
        invoker = None
        if provider is not None:
            invoker = ResilientInvoker(
                provider,
                RetryPolicy(
                    max_attempts=config.SUMMARY_MAX_RETRIES,
                    base_ms=config.SUMMARY_BACKOFF_BASE_MS,
                    jitter=config.AI_BACKOFF_JITTER
                )
            )
        return cls(invoker, failure_threshold=config.MEMORY_SUMMARY_FAILURE_THRESHOLD)

    @property
    def is_open(self) -> bool:
        """True when AI summarization is currently being skipped."""
        return self.consecutive_failures >= self.failure_threshold

    def reset(self) -> None:
        """Close the circuit breaker so the next compaction tries the AI again."""
        if self.consecutive_failures:
            logger.info("🔄 Compaction circuit breaker reset")
        self.consecutive_failures = 0

    async def compact(self, text: str, target_chars: int) -> str:
        """
        Shrink `text` to at most `target_chars` characters.

        Never raises SummarizationFailure; that is handled internally.
        """
        if len(text) <= target_chars:
            return text

        if self.invoker is None or self.is_open:
            if self.is_open:
                logger.warning(
                    f"⚡ Compaction circuit open after {self.consecutive_failures} failures, "
                    f"truncating ({len(text)} → {target_chars} chars)"
                )
            return truncate_tail(text, target_chars)

        try:
            summary = await self.summarize(text, target_chars)
        except SummarizationFailure as e:
            self.consecutive_failures += 1
            logger.error(f"❌ AI summarization failed ({e}). Falling back to TRUNCATION.")
            return truncate_tail(text, target_chars)

        self.consecutive_failures = 0
        if len(summary) > target_chars:
            logger.warning(
                f"⚠️ AI summary ({len(summary)} chars) still exceeds target {target_chars}, cutting"
            )
            summary = summary[:target_chars].rstrip()
        return summary

    async def summarize(self, text: str, target_chars: int) -> str:
        """
        Ask the LLM for a condensed version of `text`.

        Raises:
            SummarizationFailure: Invocation exhausted or the reply was empty
        """
        prompt_target = int(target_chars * PROMPT_TARGET_RATIO)
        prompt = build_prompt(
            persona=None,
            task="Summarize the following AI teacher's notes about a student's learning progress.",
            sections=[ContextSection(title="Notes", content=text, render_hint=RenderHint.NOTES)],
            instructions=[
                "Focus on capturing key patterns, significant achievements, persistent challenges, and potential focus areas.",
                f"Keep the summary concise and ideally under {prompt_target} characters.",
            ],
            output_format="Provide only the summarized text."
        )

        logger.info(f"🗜️ Attempting AI summarization ({len(text)} chars → ~{target_chars} chars)")
        try:
            summary = await self.invoker.invoke("summarizeMemory", prompt)
        except InvocationExhausted as e:
            raise SummarizationFailure(str(e)) from e

        summary = (summary or "").strip()
        if not summary:
            raise SummarizationFailure("AI returned empty summary text")

        logger.info(f"✅ AI summarization successful ({len(text)} → {len(summary)} chars)")
        return summary
