from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from techdeck.models.records import ChallengeType


class TopicLevel(BaseModel):
    """Self-reported level for one configured topic."""
    current_level: int = Field(default=1, ge=0, le=10, alias="currentLevel")

    model_config = {"populate_by_name": True}


class LearnerPreferences(BaseModel):
    """Learning preferences that shape challenge and letter prompts."""
    topics: Dict[str, TopicLevel] = Field(default_factory=dict)
    difficulty: int = Field(default=5, ge=1, le=10)
    preferred_challenge_types: List[ChallengeType] = Field(
        default_factory=lambda: [ChallengeType.CODING],
        alias="preferredChallengeTypes"
    )
    user_email: Optional[str] = Field(default=None, alias="userEmail")
    github_username: Optional[str] = Field(default=None, alias="githubUsername")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore"
    }

    def topics_summary(self) -> str:
        """Render topics as `name (level N)` pairs for prompts."""
        if not self.topics:
            return "None configured"
        return ", ".join(
            f"{name} (level {level.current_level})" for name, level in self.topics.items()
        )
