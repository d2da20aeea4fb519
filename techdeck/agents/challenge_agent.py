"""
Challenge Generation Agent.

Generates the next challenge for the student from their preferences and the
AI teacher's notes.

Flow:
    1. Pick a challenge type from the preferred types (random)
    2. Compose the prompt: preferences, teacher notes, type reminder
    3. Invoke the model (Markdown reply: # Title, ## Description, ...)
    4. Parse + validate into a Challenge, assign the next CC-### ID
    5. Persist and log "Challenge issued" to Recent Activity

Usage:
    agent = create_challenge_agent()
    challenge = await agent.generate_challenge(preferences, recent_challenges)
"""

from typing import Iterable, List, Optional
import logging
import random

from techdeck.agents.base import BaseAgent, build_dependencies
from techdeck.agents.prompt_composer import build_prompt
from techdeck.agents.providers import LLMProvider
from techdeck.agents.response_parser import CHALLENGE_SCHEMA
from techdeck.core.config import Settings
from techdeck.crud.records import RecordStore
from techdeck.models.preferences import LearnerPreferences
from techdeck.models.prompt import ContextSection, RenderHint
from techdeck.models.records import Challenge, ChallengeType

logger = logging.getLogger(__name__)


# ============================================================================
# PROMPT PIECES
# ============================================================================

TYPE_REMINDERS = {
    ChallengeType.CODING: "Reminder for 'coding': Focus on problem statement, requirements, examples.",
    ChallengeType.IAC: "Reminder for 'iac': Focus on task description, resources, example outputs.",
    ChallengeType.QUESTION: "Reminder for 'question': Focus on clear question in description; requirements/examples likely empty.",
    ChallengeType.MCQ: "Reminder for 'mcq': Question in description, options using standard Markdown list format under an '## Options' heading.",
    ChallengeType.DESIGN: "Reminder for 'design': Scenario in description, constraints/focus in requirements.",
    ChallengeType.CASESTUDY: "Reminder for 'casestudy': Case study in description, questions in requirements.",
    ChallengeType.PROJECT: "Reminder for 'project': Project outline in description, steps in requirements.",
}

CHALLENGE_OUTPUT_FORMAT = """Respond using Markdown. Use the following structure EXACTLY:
# [Challenge Title Here]
(The H1 heading above IS the title)

## Description
[Detailed Challenge Description Here]

## Topics
[Comma-separated List of Relevant Topics Here]

(Optional Sections Below - Include ONLY if meaningful and relevant to the challenge type)
## Requirements
[Use standard Markdown lists (* or -)]

## Examples
[Use standard Markdown lists (* or -). For MCQ type, use ## Options for the choices instead.]

## Hints
[Use standard Markdown lists (* or -)]

Use standard Markdown for all content (paragraphs, lists, code blocks etc.).
ONLY include the optional sections (Requirements, Examples, Hints) if they add value."""


def _recent_topics(recent_challenges: Iterable[Challenge]) -> str:
    topics = [topic for challenge in recent_challenges for topic in challenge.topics]
    return ", ".join(topics) or "No recent challenges"


# ============================================================================
# CHALLENGE AGENT CLASS
# ============================================================================

class ChallengeAgent(BaseAgent):
    """
    Produces validated Challenge records tailored to the student.
    """

    def __init__(self, invoker, parser, memory, record_store=None, rng: Optional[random.Random] = None):
        super().__init__(invoker, parser, memory, record_store)
        self.rng = rng or random.Random()

    def select_type(self, preferences: LearnerPreferences) -> ChallengeType:
        """Random pick among the preferred types; coding if none are configured."""
        available = preferences.preferred_challenge_types or [ChallengeType.CODING]
        selected = self.rng.choice(available)
        logger.info(f"🎲 Selected challenge type: {selected.value}")
        return selected

    def build_challenge_prompt(
        self,
        preferences: LearnerPreferences,
        teacher_notes: str,
        recent_challenges: List[Challenge],
        challenge_type: ChallengeType
    ) -> str:
        available = preferences.preferred_challenge_types or [ChallengeType.CODING]
        preferences_block = (
            f"Configured Topics & Levels: {preferences.topics_summary()}\n"
            f"All Available Topics: {', '.join(preferences.topics) or 'None configured'}\n"
            f"Preferred Difficulty: {preferences.difficulty}/10\n"
            f"Recent Challenge Topics (Avoid direct repeats): {_recent_topics(recent_challenges)}\n"
            f"Preferred Challenge Types: {', '.join(t.value for t in available)}"
        )

        instructions = [
            "Base the challenge on the student's progress documented in the Teacher's Notes and their "
            "preferences, considering the configured topics and their levels.",
            f"Generate a challenge of type: **{challenge_type.value}**.",
            f"Ensure difficulty aligns with student notes and preferred difficulty ({preferences.difficulty}/10).",
            "Ensure the selected Topics are relevant and logically connected. For higher difficulty levels, "
            "aim for challenges that integrate multiple concepts or require more in-depth solutions.",
            "Address weaknesses and build on strengths identified in the AI Teacher Notes.",
            "Avoid directly repeating recent challenge topics.",
            TYPE_REMINDERS[challenge_type],
        ]

        return build_prompt(
            persona=None,
            task=f"Generate a {challenge_type.value} challenge.",
            sections=[
                ContextSection(title="Student Preferences & Configuration", content=preferences_block),
                ContextSection(title="AI Teacher Notes", content=teacher_notes, render_hint=RenderHint.NOTES),
            ],
            instructions=instructions,
            output_format=CHALLENGE_OUTPUT_FORMAT
        )

    async def generate_challenge(
        self,
        preferences: LearnerPreferences,
        recent_challenges: Iterable[Challenge] = (),
        challenge_type: Optional[ChallengeType] = None
    ) -> Challenge:
        """
        Generate, validate, persist and log a new challenge.

        Args:
            preferences: Learner preferences (topics, difficulty, types)
            recent_challenges: Recently issued challenges, to avoid repeats
            challenge_type: Force a type instead of picking one

        Returns:
            Validated Challenge

        Raises:
            InvocationExhausted, ParseFailure, ValidationFailure, PersistenceError
        """
        selected = challenge_type or self.select_type(preferences)
        recent = list(recent_challenges)

        teacher_notes = await self.memory.read_raw()
        prompt = self.build_challenge_prompt(preferences, teacher_notes, recent, selected)

        logger.info(f"🧩 Generating {selected.value} challenge (difficulty {preferences.difficulty}/10)...")
        raw = await self.invoker.invoke("generateChallenge", prompt)
        logger.debug(f"📥 Raw AI response (challenge):\n{raw}")

        challenge = await self.parser.parse(
            raw,
            CHALLENGE_SCHEMA,
            defaults={"difficulty": preferences.difficulty, "type": selected}
        )
        logger.info(f"✅ Generated and validated challenge: {challenge.id} '{challenge.title}'")

        await self._persist(challenge, challenge.id)
        await self._log_activity(
            f"Challenge issued: {challenge.id} '{challenge.title}' "
            f"({challenge.type.value}, difficulty {challenge.difficulty}/10, "
            f"topics: {', '.join(challenge.topics)})"
        )
        return challenge


def create_challenge_agent(
    config: Optional[Settings] = None,
    provider: Optional[LLMProvider] = None,
    record_store: Optional[RecordStore] = None,
    rng: Optional[random.Random] = None
) -> ChallengeAgent:
    """
    Build a ChallengeAgent wired from Settings.

    Returns:
        Configured ChallengeAgent
    """
    deps = build_dependencies(config, provider, record_store)
    return ChallengeAgent.from_dependencies(deps, rng=rng)
