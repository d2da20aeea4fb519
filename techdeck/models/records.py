"""
Domain records produced by the pipeline: Challenge, Feedback, LetterResponse.

Field names are snake_case in Python and camelCase on the wire (aliases),
matching the JSON files consumed by the email renderer and stats tooling.
"""
from typing import Optional, List, Union
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field

RECORD_ID_PATTERN = r"^CC-\d{3,}$"
DEFAULT_IMPROVEMENT_PATH = "Review suggestions and try applying them."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChallengeType(str, Enum):
    """Challenge formats the generator can ask for."""
    CODING = "coding"
    IAC = "iac"
    QUESTION = "question"
    MCQ = "mcq"
    DESIGN = "design"
    CASESTUDY = "casestudy"
    PROJECT = "project"


class Challenge(BaseModel):
    """A generated challenge sent to the student."""
    id: str = Field(pattern=RECORD_ID_PATTERN)
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    type: ChallengeType = ChallengeType.CODING
    requirements: List[str] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)
    hints: List[str] = Field(default_factory=list)
    difficulty: int = Field(ge=1, le=10)
    topics: List[str] = Field(min_length=1)
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore"
    }


class Feedback(BaseModel):
    """Graded feedback for a submission; submission_id is the challenge ID."""
    submission_id: str = Field(pattern=RECORD_ID_PATTERN, alias="submissionId")
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    score: Optional[int] = Field(default=None, ge=0, le=100)  # None: downstream default
    improvement_path: str = Field(default=DEFAULT_IMPROVEMENT_PATH, alias="improvementPath")
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore"
    }


class LetterInsights(BaseModel):
    """Observations the mentor extracted from a student's letter."""
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    topics: Optional[List[str]] = None
    sentiment: Optional[str] = None
    skill_level_adjustment: Optional[float] = Field(default=None, alias="skillLevelAdjustment")
    flags: Optional[List[str]] = None

    model_config = {
        "populate_by_name": True,
        "extra": "ignore"
    }


class LetterResponse(BaseModel):
    """Mentor reply to a student letter."""
    content: str = Field(min_length=1)
    insights: LetterInsights = Field(default_factory=LetterInsights)

    model_config = {
        "populate_by_name": True,
        "extra": "ignore"
    }


DomainRecord = Union[Challenge, Feedback, LetterResponse]
