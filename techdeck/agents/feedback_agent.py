"""
Submission Feedback Agent.

Reviews a student's submission for a challenge in the voice of a mentor
persona and returns structured Feedback.

Context sent to the model:
    - Challenge details (title, requirements)
    - AI teacher's notes (student history)
    - The submission itself, as a code block

Expected reply (Markdown):
    ## Strengths / ## Weaknesses / ## Suggestions   (bullet lists)
    ## Score                                        (N/100)
    ## Improvement Path                             (free text)

The feedback's submissionId is always the challenge ID; the model is told
not to produce it.

Usage:
    agent = create_feedback_agent()
    feedback = await agent.generate_feedback(challenge, submission_text, LINUS)
"""

from typing import Optional
import logging

from techdeck.agents.base import BaseAgent, build_dependencies
from techdeck.agents.prompt_composer import build_prompt
from techdeck.agents.providers import LLMProvider
from techdeck.agents.response_parser import FEEDBACK_SCHEMA
from techdeck.core.config import Settings
from techdeck.crud.records import RecordStore
from techdeck.models.prompt import ContextSection, Persona, RenderHint
from techdeck.models.records import Challenge, Feedback

logger = logging.getLogger(__name__)


# ============================================================================
# PROMPT PIECES
# ============================================================================

FEEDBACK_INSTRUCTIONS = [
    "Review the student submission based on the challenge details and the student's history in the AI Teacher Notes.",
    "Provide key strengths of the implementation in relation to the student's progress.",
    "Identify areas for improvement, considering patterns noted in the memory.",
    "Give specific suggestions for better approaches or refinements.",
    "Provide a numerical score out of 100 and justify it within your response text.",
    "Recommend concrete next steps for improvement, relevant to the student's history.",
    "Based on the AI Teacher Notes and this submission, consider if the student might benefit from adjusting "
    "their configured difficulty or topic levels. If so, gently suggest they review their configuration.",
]

FEEDBACK_OUTPUT_FORMAT = """Respond using Markdown. Use the following headings EXACTLY, including the double hash marks and the field name, followed by the content on the next line(s). Use bullet points for lists under headings. Include your score justification naturally within the text under the appropriate headings.
## Strengths
- [Strength 1]
- ...
## Weaknesses
- [Weakness 1]
- ...
## Suggestions
- [Suggestion 1]
- ...
## Score
[Number from 0 to 100]/100
## Improvement Path
[Recommended next steps or focus areas]
DO NOT include headings or fields for 'submissionId' or 'createdAt'. These are handled by the application."""


# ============================================================================
# FEEDBACK AGENT CLASS
# ============================================================================

class FeedbackAgent(BaseAgent):
    """
    Grades submissions against their challenge.
    """

    def build_feedback_prompt(
        self,
        challenge: Challenge,
        submission_content: str,
        teacher_notes: str,
        mentor: Persona
    ) -> str:
        requirements = "\n".join(challenge.requirements) if challenge.requirements else "N/A"
        return build_prompt(
            persona=mentor,
            task="Provide feedback on a student submission.",
            sections=[
                ContextSection(
                    title="Challenge Details",
                    content=f"Title: {challenge.title}\nRequirements:\n{requirements}"
                ),
                ContextSection(title="AI Teacher Notes", content=teacher_notes, render_hint=RenderHint.NOTES),
                ContextSection(title="Student Submission", content=submission_content, render_hint=RenderHint.CODE),
            ],
            instructions=FEEDBACK_INSTRUCTIONS,
            output_format=FEEDBACK_OUTPUT_FORMAT
        )

    async def generate_feedback(
        self,
        challenge: Challenge,
        submission_content: str,
        mentor: Persona
    ) -> Feedback:
        """
        Generate feedback for one submission.

        Args:
            challenge: The challenge the submission answers
            submission_content: Student's code or answer text
            mentor: Persona to review in

        Returns:
            Validated Feedback (submission_id == challenge.id)

        Raises:
            InvocationExhausted, ParseFailure, ValidationFailure, PersistenceError
        """
        logger.info(
            f"📝 Generating feedback for {challenge.id} as {mentor.name} "
            f"(submission: {len(submission_content)} chars)"
        )

        teacher_notes = await self.memory.read_raw()
        prompt = self.build_feedback_prompt(challenge, submission_content, teacher_notes, mentor)

        raw = await self.invoker.invoke("generateFeedback", prompt)
        logger.debug(f"📥 Raw AI response (feedback):\n{raw}")

        feedback = await self.parser.parse(
            raw,
            FEEDBACK_SCHEMA,
            overrides={"submission_id": challenge.id}
        )
        logger.info(f"✅ Generated and validated feedback for submission: {feedback.submission_id}")

        await self._persist(feedback, challenge.id)

        score = f"{feedback.score}/100" if feedback.score is not None else "unscored"
        await self._log_activity(
            f"Feedback given: {challenge.id} '{challenge.title}' ({score}, "
            f"{len(feedback.strengths)} strengths, {len(feedback.weaknesses)} weaknesses)"
        )
        return feedback


def create_feedback_agent(
    config: Optional[Settings] = None,
    provider: Optional[LLMProvider] = None,
    record_store: Optional[RecordStore] = None
) -> FeedbackAgent:
    """
    Build a FeedbackAgent wired from Settings.

    Returns:
        Configured FeedbackAgent
    """
    return FeedbackAgent.from_dependencies(build_dependencies(config, provider, record_store))
