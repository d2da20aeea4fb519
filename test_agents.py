"""
End-to-end tests for the generation agents with a scripted provider.

Flow under test: memory -> prompt -> invoke -> parse -> persist -> log activity

Run with:
    pytest test_agents.py
"""

import json
import random

import pytest

from techdeck.agents.challenge_agent import ChallengeAgent
from techdeck.agents.digest_agent import DigestAgent
from techdeck.agents.feedback_agent import FeedbackAgent
from techdeck.agents.letter_agent import STATUS_AWAITING_INTRODUCTION, LetterAgent
from techdeck.core.exceptions import InvocationExhausted, ParseFailure, PersistenceError
from techdeck.crud.records import JsonRecordStore
from techdeck.data.mentor_profiles import LINUS, load_mentor_profile
from techdeck.models.preferences import LearnerPreferences
from techdeck.models.records import Challenge, ChallengeType, Feedback, LetterResponse

CHALLENGE_REPLY = """# Binary Search Boundaries

## Description
Find the first index whose value is >= target.

## Topics
Binary Search, Arrays

## Options
- A) Use bisect_left
- B) Linear scan
"""

FEEDBACK_REPLY = """## Strengths
- Correct boundary handling

## Weaknesses
- Magic numbers everywhere

## Suggestions
- Name your constants

## Score
78/100

## Improvement Path
Study invariants in loops.
"""

LETTER_REPLY = """```json
{"content": "Welcome aboard. Challenges come separately.", "insights": {"sentiment": "eager", "topics": ["rust"], "flags": ["introduction"]}}
```"""


@pytest.fixture
def preferences():
    return LearnerPreferences(
        topics={"python": {"currentLevel": 4}, "algorithms": {"currentLevel": 3}},
        difficulty=6,
        preferredChallengeTypes=["mcq"],
        userEmail="student@example.com",
    )


@pytest.fixture
def challenge():
    return Challenge(
        id="CC-004",
        title="Two Sum",
        description="Find two numbers adding to target.",
        requirements=["O(n) time"],
        difficulty=5,
        topics=["hashing"],
    )


def make_agent(cls, provider, make_invoker, parser, memory_store, store, **kwargs):
    return cls(make_invoker(provider), parser, memory_store, store, **kwargs)


# ============================================================================
# CHALLENGES
# ============================================================================

async def test_generate_challenge_end_to_end(make_provider, make_invoker, parser, memory_store, record_store, preferences):
    provider = make_provider([CHALLENGE_REPLY])
    agent = make_agent(ChallengeAgent, provider, make_invoker, parser, memory_store, record_store,
                       rng=random.Random(1))

    challenge = await agent.generate_challenge(preferences)

    assert challenge.id == "CC-008"
    assert challenge.type == ChallengeType.MCQ
    assert challenge.difficulty == 6
    assert challenge.examples == ["A) Use bisect_left", "B) Linear scan"]
    assert record_store.saved["CC-008"] is challenge

    prompt = provider.prompts[0]
    assert prompt.startswith("Generate a mcq challenge.")
    assert "Reminder for 'mcq'" in prompt
    assert "--- START AI TEACHER NOTES ---" in prompt
    assert "python (level 4)" in prompt

    notes = await memory_store.read()
    assert "Challenge issued: CC-008 'Binary Search Boundaries'" in notes.recent_activity


async def test_challenge_ids_keep_increasing(make_provider, make_invoker, parser, memory_store, record_store, preferences):
    provider = make_provider([CHALLENGE_REPLY, CHALLENGE_REPLY])
    agent = make_agent(ChallengeAgent, provider, make_invoker, parser, memory_store, record_store)

    first = await agent.generate_challenge(preferences)
    second = await agent.generate_challenge(preferences, recent_challenges=[first])

    assert (first.id, second.id) == ("CC-008", "CC-009")
    assert "Binary Search, Arrays" in provider.prompts[1]


def test_type_selection_uses_preferences(make_provider, make_invoker, parser, memory_store, record_store):
    agent = make_agent(ChallengeAgent, make_provider(), make_invoker, parser, memory_store, record_store,
                       rng=random.Random(7))
    preferences = LearnerPreferences(preferredChallengeTypes=["design", "iac"])

    picks = {agent.select_type(preferences) for _ in range(30)}

    assert picks <= {ChallengeType.DESIGN, ChallengeType.IAC}
    assert agent.select_type(LearnerPreferences(preferredChallengeTypes=[])) == ChallengeType.CODING


async def test_unparseable_challenge_is_not_persisted(make_provider, make_invoker, parser, memory_store, record_store, preferences):
    provider = make_provider(["# Title only"])
    agent = make_agent(ChallengeAgent, provider, make_invoker, parser, memory_store, record_store)

    with pytest.raises(ParseFailure):
        await agent.generate_challenge(preferences, challenge_type=ChallengeType.CODING)

    assert record_store.saved == {}


async def test_exhausted_invocation_propagates(make_provider, make_invoker, parser, memory_store, record_store, preferences):
    provider = make_provider(replies=[RuntimeError("503")] * 3)
    agent = make_agent(ChallengeAgent, provider, make_invoker, parser, memory_store, record_store)

    with pytest.raises(InvocationExhausted, match="generateChallenge"):
        await agent.generate_challenge(preferences)


# ============================================================================
# FEEDBACK
# ============================================================================

async def test_generate_feedback(make_provider, make_invoker, parser, memory_store, record_store, challenge):
    provider = make_provider([FEEDBACK_REPLY])
    agent = make_agent(FeedbackAgent, provider, make_invoker, parser, memory_store, record_store)

    feedback = await agent.generate_feedback(challenge, "def two_sum(): pass", LINUS)

    assert feedback.submission_id == "CC-004"
    assert feedback.score == 78
    assert feedback.weaknesses == ["Magic numbers everywhere"]
    assert record_store.saved["CC-004"] is feedback

    prompt = provider.prompts[0]
    assert prompt.startswith("You are the Linus Torvalds mentor")
    assert "```\ndef two_sum(): pass\n```" in prompt
    assert "Title: Two Sum\nRequirements:\nO(n) time" in prompt
    assert "## Score" in prompt

    notes = await memory_store.read()
    assert "Feedback given: CC-004 'Two Sum' (78/100" in notes.recent_activity


async def test_rejected_save_raises_persistence_error(make_provider, make_invoker, parser, memory_store, make_record_store, challenge):
    provider = make_provider([FEEDBACK_REPLY])
    agent = make_agent(FeedbackAgent, provider, make_invoker, parser, memory_store, make_record_store(accept=False))

    with pytest.raises(PersistenceError):
        await agent.generate_feedback(challenge, "code", LINUS)


async def test_activity_log_failure_does_not_fail_generation(make_provider, make_invoker, parser, memory_store, record_store, challenge, monkeypatch):
    async def broken_log(message):
        raise OSError("disk full")

    provider = make_provider([FEEDBACK_REPLY])
    agent = make_agent(FeedbackAgent, provider, make_invoker, parser, memory_store, record_store)
    monkeypatch.setattr(agent.memory, "log_activity", broken_log)

    feedback = await agent.generate_feedback(challenge, "code", LINUS)

    assert feedback.score == 78


# ============================================================================
# LETTERS
# ============================================================================

async def test_introduction_letter(make_provider, make_invoker, parser, memory_store, record_store, preferences):
    provider = make_provider([LETTER_REPLY])
    agent = make_agent(LetterAgent, provider, make_invoker, parser, memory_store, record_store)

    response = await agent.generate_letter_response(
        "Hi, I'm learning Rust.", [], preferences, LINUS,
        student_status=STATUS_AWAITING_INTRODUCTION, letter_key="letter-001"
    )

    assert response.content.startswith("Welcome aboard")
    assert response.insights.flags == ["introduction"]
    assert record_store.saved["letter-001"] is response

    prompt = provider.prompts[0]
    assert "introduction/first letter" in prompt
    assert "DO NOT assign technical tasks" in prompt
    assert "## Recent Correspondence\nNone" in prompt
    assert "User Email: student@example.com" in prompt

    notes = await memory_store.read()
    assert "sentiment eager; topics: rust" in notes.recent_activity


async def test_regular_letter_uses_conversation_instructions(make_provider, make_invoker, parser, memory_store, record_store, preferences):
    provider = make_provider(['{"content": "Use traits."}'])
    agent = make_agent(LetterAgent, provider, make_invoker, parser, memory_store, record_store)

    await agent.generate_letter_response(
        "How do generics work?", ["Earlier letter", "Earlier reply"], preferences, LINUS, student_status="active"
    )

    prompt = provider.prompts[0]
    assert "introduction/first letter" not in prompt
    assert "Respond to the student's questions or comments" in prompt
    assert "Earlier letter\n---\nEarlier reply" in prompt


def test_letter_response_serializes_camel_case():
    response = LetterResponse.model_validate({"content": "ok", "insights": {"skillLevelAdjustment": -1}})

    payload = json.loads(response.model_dump_json(by_alias=True, exclude_none=True))

    assert payload == {"content": "ok", "insights": {"skillLevelAdjustment": -1.0}}


# ============================================================================
# DIGESTS, PERSONAS, RECORD STORE
# ============================================================================

async def test_digest_summary(make_provider, make_invoker, memory_store):
    provider = make_provider(["  A solid month.  "])
    agent = DigestAgent(make_invoker(provider), memory_store)

    summary = await agent.generate_digest_summary("monthly")

    assert summary == "A solid month."
    assert "**monthly**" in provider.prompts[0]
    assert "--- START AI TEACHER'S NOTES ---" in provider.prompts[0]


async def test_digest_rejects_unknown_type(make_provider, make_invoker, memory_store):
    agent = DigestAgent(make_invoker(make_provider()), memory_store)

    with pytest.raises(ValueError):
        await agent.generate_digest_summary("daily")


def test_unknown_mentor_falls_back_to_default():
    assert load_mentor_profile("LINUS") is LINUS
    assert load_mentor_profile("ada") is LINUS


async def test_json_record_store(tmp_path, challenge):
    store = JsonRecordStore(tmp_path / "data")

    assert await store.list_ids("challenge") == []
    assert await store.save(challenge)
    assert await store.save(Feedback(submission_id="CC-004", score=90))

    assert await store.list_ids("challenge") == ["CC-004"]
    assert await store.list_ids("feedback") == ["CC-004"]

    raw = json.loads((tmp_path / "data" / "challenges" / "CC-004.json").read_text())
    assert raw["createdAt"]
    assert (await store.load("challenge", "CC-004")).title == "Two Sum"
    assert [c.id for c in await store.recent_challenges()] == ["CC-004"]


async def test_json_record_store_reports_io_failure(tmp_path, challenge):
    blocker = tmp_path / "data"
    blocker.write_text("not a directory")

    assert await JsonRecordStore(blocker).save(challenge) is False
