"""
Letter Response Agent.

Answers free-form letters from the student in the mentor's voice and
extracts insights (sentiment, topics, strengths, flags) for the notes.

Two instruction sets:
    - awaiting_introduction: welcoming reply, NO technical tasks
    - anything else: regular Q&A using notes, preferences, correspondence

The model replies with a single JSON object {content, insights}.

Usage:
    agent = create_letter_agent()
    reply = await agent.generate_letter_response(
        letter, correspondence, preferences, LINUS, student_status="active"
    )
"""

from typing import List, Optional, Sequence
import logging

from techdeck.agents.base import BaseAgent, build_dependencies
from techdeck.agents.prompt_composer import build_prompt
from techdeck.agents.providers import LLMProvider
from techdeck.agents.response_parser import LETTER_RESPONSE_SCHEMA
from techdeck.core.config import Settings
from techdeck.crud.records import RecordStore
from techdeck.models.preferences import LearnerPreferences
from techdeck.models.prompt import ContextSection, Persona, RenderHint
from techdeck.models.records import LetterResponse, utc_now

logger = logging.getLogger(__name__)

STATUS_AWAITING_INTRODUCTION = "awaiting_introduction"

LETTER_OUTPUT_FORMAT = (
    "Format the response as a single JSON object matching the LetterResponse schema: "
    "{ content: string (your response to the student), insights: { sentiment?: string, "
    "strengths?: string[], weaknesses?: string[], topics?: string[], "
    "skillLevelAdjustment?: number, flags?: string[] } }. Respond ONLY with this JSON object."
)


def introduction_instructions(mentor: Persona) -> List[str]:
    return [
        "Acknowledge this is the student's introduction/first letter.",
        f"Adopt your {mentor.name} persona ({mentor.style}, {mentor.tone}) to provide a welcoming "
        f"but character-appropriate response.",
        "Briefly acknowledge the student's stated goals or background from their letter.",
        "**Critically Important:** DO NOT assign technical tasks, request code examples, or give "
        "foundational exercises in this initial response. Mention that formal challenges will follow "
        "separately based on their configuration.",
        "Keep the response concise and encouraging in your persona's style.",
        "Generate insights based *only* on the content of THIS letter (sentiment, mentioned topics, "
        "flags like 'introduction').",
    ]


def conversation_instructions(mentor: Persona) -> List[str]:
    return [
        f"Respond to the student's questions or comments in your {mentor.name} persona "
        f"({mentor.style}, {mentor.tone}).",
        "Use the AI Teacher's Notes, student configuration, and recent correspondence for context.",
        "Provide clear answers or guidance.",
        "Based on the conversation and the AI Teacher Notes, consider if the student might benefit from "
        "adjusting their configured difficulty or topic levels. If so, gently suggest they review their configuration.",
        "Generate relevant insights based on the conversation (sentiment, topics, strengths, weaknesses, flags).",
    ]


class LetterAgent(BaseAgent):
    """Mentor replies to student letters."""

    def build_letter_prompt(
        self,
        letter: str,
        correspondence: Sequence[str],
        teacher_notes: str,
        preferences: LearnerPreferences,
        mentor: Persona,
        student_status: str
    ) -> str:
        types = ", ".join(t.value for t in preferences.preferred_challenge_types) or "Not specified"
        preferences_block = (
            f"Configured Topics & Levels: {preferences.topics_summary()}\n"
            f"Preferred Difficulty: {preferences.difficulty}/10\n"
            f"Preferred Challenge Types: {types}\n"
            f"User Email: {preferences.user_email or 'Not specified'}\n"
            f"GitHub Username: {preferences.github_username or 'Not specified'}"
        )

        if student_status == STATUS_AWAITING_INTRODUCTION:
            instructions = introduction_instructions(mentor)
        else:
            instructions = conversation_instructions(mentor)

        return build_prompt(
            persona=mentor,
            task="Respond to the student's letter.",
            sections=[
                ContextSection(title="AI Teacher Notes", content=teacher_notes, render_hint=RenderHint.NOTES),
                ContextSection(title="Student Preferences & Configuration", content=preferences_block),
                ContextSection(title="Recent Correspondence", content="\n---\n".join(correspondence) or "None"),
                ContextSection(title="Student's Latest Letter", content=letter),
            ],
            instructions=instructions,
            output_format=LETTER_OUTPUT_FORMAT
        )

    async def generate_letter_response(
        self,
        letter: str,
        correspondence: Sequence[str],
        preferences: LearnerPreferences,
        mentor: Persona,
        student_status: str,
        letter_key: Optional[str] = None
    ) -> LetterResponse:
        """
        Generate the mentor's reply to a letter.

        Args:
            letter: The student's latest letter
            correspondence: Earlier letters and replies, oldest first
            preferences: Learner preferences
            mentor: Persona to answer in
            student_status: e.g. "awaiting_introduction" or "active"
            letter_key: Storage key for the reply (defaults to a timestamp)

        Raises:
            InvocationExhausted, ParseFailure, ValidationFailure, PersistenceError
        """
        logger.info(f"✉️ Generating letter response as {mentor.name} (status: {student_status})")

        teacher_notes = await self.memory.read_raw()
        prompt = self.build_letter_prompt(
            letter, correspondence, teacher_notes, preferences, mentor, student_status
        )

        raw = await self.invoker.invoke("generateLetterResponse", prompt)
        logger.debug(f"📥 Raw AI response (letter):\n{raw}")

        response = await self.parser.parse(raw, LETTER_RESPONSE_SCHEMA)
        logger.info(f"✅ Generated letter response ({len(response.content)} chars)")

        key = letter_key or f"response-{utc_now():%Y%m%dT%H%M%S}"
        await self._persist(response, key)

        insights = response.insights
        topics = ", ".join(insights.topics) if insights.topics else "none"
        await self._log_activity(
            f"Letter answered ({student_status}): sentiment {insights.sentiment or 'unknown'}; topics: {topics}"
        )
        return response


def create_letter_agent(
    config: Optional[Settings] = None,
    provider: Optional[LLMProvider] = None,
    record_store: Optional[RecordStore] = None
) -> LetterAgent:
    """Build a LetterAgent wired from Settings."""
    return LetterAgent.from_dependencies(build_dependencies(config, provider, record_store))
