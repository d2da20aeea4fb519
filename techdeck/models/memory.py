from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field


class UpdateMode(str, Enum):
    """How new content is applied to a memory section."""
    APPEND = "append"
    OVERWRITE = "overwrite"


class MemorySection(str, Enum):
    """The three bounded sections of the teacher's notes."""
    SNAPSHOT = "snapshot"
    RECENT_ACTIVITY = "recentActivity"
    HISTORY = "history"

    @property
    def heading(self) -> str:
        """Exact Markdown heading; must stay byte-stable across rewrites."""
        return _HEADINGS[self]

    @property
    def default_mode(self) -> UpdateMode:
        if self is MemorySection.SNAPSHOT:
            return UpdateMode.OVERWRITE
        return UpdateMode.APPEND


_HEADINGS = {
    MemorySection.SNAPSHOT: "## Current Snapshot",
    MemorySection.RECENT_ACTIVITY: "## Recent Activity",
    MemorySection.HISTORY: "## Long-Term History & Patterns",
}


class SectionBudgets(BaseModel):
    """Character budget per section."""
    snapshot: int = Field(default=500, gt=0)
    recent_activity: int = Field(default=1500, gt=0)
    history: int = Field(default=2000, gt=0)

    def for_section(self, section: MemorySection) -> int:
        if section is MemorySection.SNAPSHOT:
            return self.snapshot
        if section is MemorySection.RECENT_ACTIVITY:
            return self.recent_activity
        return self.history


class AIMemoryDocument(BaseModel):
    """Parsed teacher's notes document."""
    header: str
    definitions: Optional[str] = None
    snapshot: str = ""
    recent_activity: str = ""
    history: str = ""

    def get(self, section: MemorySection) -> str:
        return getattr(self, _ATTRIBUTES[section])

    def set(self, section: MemorySection, content: str) -> None:
        setattr(self, _ATTRIBUTES[section], content)


_ATTRIBUTES = {
    MemorySection.SNAPSHOT: "snapshot",
    MemorySection.RECENT_ACTIVITY: "recent_activity",
    MemorySection.HISTORY: "history",
}
