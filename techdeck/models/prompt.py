from typing import List, Optional, Tuple
from enum import Enum
from pydantic import BaseModel, Field, field_validator


class RenderHint(str, Enum):
    """How a context section is rendered inside the prompt."""
    PLAIN = "plain"
    NOTES = "notes-block"
    CODE = "code-block"


class Persona(BaseModel):
    """Mentor persona applied to feedback and letter prompts."""
    name: str
    style: str
    tone: str
    description: Optional[str] = None
    expertise: List[str] = Field(default_factory=list)
    persona_prompt: Optional[str] = Field(default=None, alias="personaPrompt")

    model_config = {
        "populate_by_name": True,
        "frozen": True
    }


class ContextSection(BaseModel):
    """A titled block of context (teacher notes, submission, preferences...)."""
    title: str
    content: str
    render_hint: RenderHint = Field(default=RenderHint.PLAIN, alias="renderHint")
    language: str = ""  # fence tag for code blocks

    model_config = {
        "populate_by_name": True,
        "frozen": True
    }


class PromptContext(BaseModel):
    """Everything the composer needs for one prompt. Immutable once built."""
    persona: Optional[Persona] = None
    task: str = ""
    sections: Tuple[ContextSection, ...] = ()
    instructions: Tuple[str, ...]
    output_format: str = Field(alias="outputFormat")

    model_config = {
        "populate_by_name": True,
        "frozen": True
    }

    @field_validator("instructions")
    @classmethod
    def instructions_not_empty(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if not v or not any(item.strip() for item in v):
            raise ValueError("At least one instruction is required")
        return v

    @field_validator("output_format")
    @classmethod
    def output_format_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Output format description is required")
        return v
