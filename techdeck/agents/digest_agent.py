"""
Digest Summary Agent.

Writes the narrative part of the weekly / monthly / quarterly progress
digest from the raw teacher's notes. Output is free Markdown, not a record.
"""

from enum import Enum
from typing import Optional, Union
import logging

from techdeck.agents.invocation import ResilientInvoker, RetryPolicy
from techdeck.agents.prompt_composer import build_prompt
from techdeck.agents.providers import GeminiProvider, LLMProvider
from techdeck.core.config import Settings, settings as default_settings
from techdeck.models.prompt import ContextSection, RenderHint
from techdeck.utils.memory_manager import MemoryStore

logger = logging.getLogger(__name__)


class DigestType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class DigestAgent:
    """Narrative progress summaries for digests."""

    def __init__(self, invoker: ResilientInvoker, memory: MemoryStore):
        self.invoker = invoker
        self.memory = memory

    def build_digest_prompt(self, teacher_notes: str, digest_type: DigestType) -> str:
        return build_prompt(
            persona=None,
            task=(
                f"Based on the following AI Teacher's Notes, please generate a concise narrative summary "
                f"for a **{digest_type.value}** student progress report."
            ),
            sections=[
                ContextSection(title="AI Teacher's Notes", content=teacher_notes, render_hint=RenderHint.NOTES),
            ],
            instructions=[
                "Focus on overall trends, significant achievements, persistent challenges, and potential "
                "focus areas for the upcoming period.",
                "Keep the tone encouraging but realistic.",
            ],
            output_format="Generate only the narrative summary text (markdown format allowed)."
        )

    async def generate_digest_summary(self, digest_type: Union[DigestType, str]) -> str:
        """
        Raises:
            ValueError: Unknown digest type
            InvocationExhausted: The model could not be reached
        """
        digest_type = DigestType(digest_type)
        teacher_notes = await self.memory.read_raw()

        logger.info(f"📰 Generating {digest_type.value} digest summary from AI memory...")
        summary = await self.invoker.invoke(
            f"generate{digest_type.value}DigestSummary",
            self.build_digest_prompt(teacher_notes, digest_type)
        )
        logger.info(f"✅ AI {digest_type.value} digest summary generated ({len(summary)} chars)")
        return summary.strip()


def create_digest_agent(
    config: Optional[Settings] = None,
    provider: Optional[LLMProvider] = None
) -> DigestAgent:
    """Build a DigestAgent wired from Settings (memory is read-only here)."""
    config = config or default_settings
    provider = provider or GeminiProvider.from_settings(config)
    return DigestAgent(
        ResilientInvoker(provider, RetryPolicy.from_settings(config)),
        MemoryStore.from_settings(config=config)
    )
