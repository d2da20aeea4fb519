"""
Memory Manager for the AI teacher's notes.

This module owns the Markdown memory document the agents read before every
prompt and append to after every interaction.

Key Features:
- Create the default document on first read
- Line-based parsing into header / definitions / three sections
- Append or overwrite a section without touching the others
- Keep every section within its character budget (truncate / compact)

Memory Format (Markdown):
    # AI Teacher's Notes for [Student Name/ID]
    Last Updated: 2025-01-15T08:00:00+00:00

    ## System Definitions
    ...

    ---

    ## Current Snapshot
    <!-- budget: ~500 chars, overwritten -->
    Solid on recursion, shaky on DP.

    ## Recent Activity
    <!-- budget: ~1500 chars, rolling log -->
    *   [2025-01-15T08:00:00+00:00] Challenge issued: CC-004 ...

    ---

    ## Long-Term History & Patterns
    <!-- budget: ~2000 chars, summarized -->
    ...

Overflow rules (checked after every update):
    snapshot        -> truncated to budget, head kept
    recentActivity  -> previous content compacted into history, the section
                       restarts with only the new entry
    history         -> compacted in place
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union
from datetime import datetime
import asyncio
import logging
import re

from techdeck.agents.summarizer_agent import CompactionPolicy
from techdeck.core.config import Settings, settings as default_settings
from techdeck.models.memory import AIMemoryDocument, MemorySection, SectionBudgets, UpdateMode
from techdeck.models.records import utc_now

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "# AI Teacher's Notes for [Student Name/ID]"
DEFINITIONS_HEADING = "## System Definitions"
SECTION_SEPARATOR = "---"
HISTORY_SUMMARY_RATIO = 0.5

SYSTEM_DEFINITIONS = f"""{DEFINITIONS_HEADING}

### Challenge Types
This application uses the following challenge types:
*   **coding**: Standard programming exercise with requirements and examples.
*   **iac**: Infrastructure as Code task (Terraform, Dockerfile, K8s, etc.) involving defining resources.
*   **question**: Conceptual or short research question requiring a text answer.
*   **mcq**: Multiple Choice Question with options provided.
*   **design**: System design scenario requiring outlining a solution.
*   **casestudy**: Analysis of a provided technical case study.
*   **project**: Small, multi-step project outline."""

PLACEHOLDERS = {
    MemorySection.SNAPSHOT: "Initial state. Waiting for first interaction.",
    MemorySection.RECENT_ACTIVITY: "*   No activity logged yet.",
    MemorySection.HISTORY: "*   No history recorded yet.",
}

BUDGET_NOTES = {
    MemorySection.SNAPSHOT: "overwritten",
    MemorySection.RECENT_ACTIVITY: "rolling log",
    MemorySection.HISTORY: "summarized",
}

LAST_UPDATED_RE = re.compile(r"^Last Updated:.*$", re.MULTILINE)
BUDGET_COMMENT_RE = re.compile(r"^<!--\s*budget:.*-->$")


def _timestamp(moment: datetime) -> str:
    return moment.isoformat()


def _heading_section(line: str) -> Optional[MemorySection]:
    """Section whose heading starts this line; `(~500 chars)` style suffixes are tolerated."""
    stripped = line.rstrip()
    for section in MemorySection:
        heading = section.heading
        if stripped == heading:
            return section
        if stripped.startswith(heading) and stripped[len(heading)] in " \t":
            return section
    return None


def _demote_headings(text: str) -> str:
    """Push content lines that would read as a section heading down one level."""
    lines = text.split("\n")
    for i, line in enumerate(lines):
        if _heading_section(line) is not None or line.rstrip() == DEFINITIONS_HEADING:
            lines[i] = "#" + line
    return "\n".join(lines)


def _strip_trailing_separators(lines: List[str]) -> List[str]:
    while lines and lines[-1].strip() in ("", SECTION_SEPARATOR):
        lines.pop()
    return lines


def default_memory_document(now: Optional[datetime] = None) -> AIMemoryDocument:
    """Skeleton used when no memory file exists yet."""
    now = now or utc_now()
    return AIMemoryDocument(
        header=f"{DEFAULT_TITLE}\nLast Updated: {_timestamp(now)}",
        definitions=SYSTEM_DEFINITIONS,
        snapshot=PLACEHOLDERS[MemorySection.SNAPSHOT],
        recent_activity=PLACEHOLDERS[MemorySection.RECENT_ACTIVITY],
        history=PLACEHOLDERS[MemorySection.HISTORY],
    )


def parse_memory(raw: str) -> AIMemoryDocument:
    """
    Split the raw Markdown into header, definitions and the three sections.

    Budget comments and structural `---` separators are dropped; section
    text is whitespace-trimmed. A separator inside the history section is
    content (it divides summarized activity batches) and is kept.
    Content lines that repeat a section heading are written one level
    deeper by `serialize_memory`, so they never split a section here.
    """
    header: List[str] = []
    definitions: Optional[List[str]] = None
    bodies: Dict[MemorySection, List[str]] = {section: [] for section in MemorySection}
    current: Union[str, MemorySection] = "header"

    for line in raw.splitlines():
        section = _heading_section(line)
        if section is not None:
            current = section
            continue
        if line.rstrip() == DEFINITIONS_HEADING:
            current = "definitions"
            definitions = [line.rstrip()]
            continue
        if BUDGET_COMMENT_RE.match(line.strip()):
            continue

        if current == "header":
            header.append(line)
        elif current == "definitions":
            definitions.append(line)
        else:
            bodies[current].append(line)

    for section in (MemorySection.SNAPSHOT, MemorySection.RECENT_ACTIVITY):
        _strip_trailing_separators(bodies[section])

    header_text = "\n".join(_strip_trailing_separators(header)).strip()
    if not header_text:
        header_text = f"{DEFAULT_TITLE}\nLast Updated: {_timestamp(utc_now())}"

    definitions_text = None
    if definitions is not None:
        definitions_text = "\n".join(_strip_trailing_separators(definitions)).strip()

    return AIMemoryDocument(
        header=header_text,
        definitions=definitions_text,
        snapshot="\n".join(bodies[MemorySection.SNAPSHOT]).strip(),
        recent_activity="\n".join(bodies[MemorySection.RECENT_ACTIVITY]).strip(),
        history="\n".join(bodies[MemorySection.HISTORY]).strip(),
    )


def serialize_memory(
    document: AIMemoryDocument,
    budgets: Optional[SectionBudgets] = None,
    now: Optional[datetime] = None
) -> str:
    """Render the document back to Markdown, rewriting `Last Updated:`."""
    budgets = budgets or SectionBudgets()
    stamp = f"Last Updated: {_timestamp(now or utc_now())}"

    if LAST_UPDATED_RE.search(document.header):
        header = LAST_UPDATED_RE.sub(stamp, document.header, count=1)
    else:
        header = f"{document.header}\n{stamp}"

    def block(section: MemorySection) -> str:
        comment = f"<!-- budget: ~{budgets.for_section(section)} chars, {BUDGET_NOTES[section]} -->"
        return f"{section.heading}\n{comment}\n{_demote_headings(document.get(section))}"

    parts = [header]
    if document.definitions:
        parts += [document.definitions, SECTION_SEPARATOR]
    parts += [
        block(MemorySection.SNAPSHOT),
        block(MemorySection.RECENT_ACTIVITY),
        SECTION_SEPARATOR,
        block(MemorySection.HISTORY),
    ]
    return "\n\n".join(parts) + "\n"


def section_usage(
    document: AIMemoryDocument,
    budgets: Optional[SectionBudgets] = None
) -> Dict[MemorySection, Tuple[int, int]]:
    """
    Characters used vs budget per section.

    Example:
        >>> section_usage(doc)[MemorySection.HISTORY]
        (1234, 2000)
    """
    budgets = budgets or SectionBudgets()
    return {
        section: (len(document.get(section)), budgets.for_section(section))
        for section in MemorySection
    }


def format_activity_entry(message: str, when: Optional[datetime] = None) -> str:
    """One Recent Activity bullet: `*   [timestamp] message`."""
    return f"*   [{_timestamp(when or utc_now())}] {message}"


class MemoryStore:
    """
    Reads and maintains the teacher's notes file.

    Last write wins; there is no locking across processes.
    """

    def __init__(
        self,
        path: Union[str, Path],
        budgets: Optional[SectionBudgets] = None,
        compactor: Optional[CompactionPolicy] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.path = Path(path)
        self.budgets = budgets or SectionBudgets()
        self.compactor = compactor or CompactionPolicy(None)
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        compactor: Optional[CompactionPolicy] = None,
        config: Optional[Settings] = None
    ) -> "MemoryStore":
        config = config or default_settings
        budgets = SectionBudgets(
            snapshot=config.MEMORY_SNAPSHOT_BUDGET,
            recent_activity=config.MEMORY_RECENT_ACTIVITY_BUDGET,
            history=config.MEMORY_HISTORY_BUDGET
        )
        return cls(config.MEMORY_FILE_PATH, budgets=budgets, compactor=compactor)

    async def read_raw(self) -> str:
        """Full file text; creates the default document if the file is missing."""
        if not await asyncio.to_thread(self.path.exists):
            logger.warning(f"📝 {self.path} not found, creating a default one")
            content = serialize_memory(
                default_memory_document(self._clock()), self.budgets, self._clock()
            )
            await self._write_text(content)
            return content

        return await asyncio.to_thread(self.path.read_text, encoding="utf-8")

    async def read(self) -> AIMemoryDocument:
        return parse_memory(await self.read_raw())

    async def write(self, document: AIMemoryDocument) -> None:
        await self._write_text(serialize_memory(document, self.budgets, self._clock()))

    async def log_activity(self, message: str) -> AIMemoryDocument:
        """Append a timestamped bullet to Recent Activity."""
        return await self.update(
            MemorySection.RECENT_ACTIVITY, format_activity_entry(message, self._clock())
        )

    async def update(
        self,
        section: Union[MemorySection, str],
        content: str,
        mode: Optional[Union[UpdateMode, str]] = None
    ) -> AIMemoryDocument:
        """
        Apply new content to one section, then enforce the budgets.

        Args:
            section: snapshot, recentActivity or history
            content: Text to add or replace with
            mode: append or overwrite (default depends on the section)

        Returns:
            The document as written
        """
        section = MemorySection(section)
        mode = UpdateMode(mode) if mode else section.default_mode
        content = content.strip()

        document = await self.read()
        previous = self._effective(document, section)

        if mode is UpdateMode.OVERWRITE or not previous:
            updated = content
        else:
            updated = f"{previous}\n{content}"

        budget = self.budgets.for_section(section)

        if section is MemorySection.SNAPSHOT and len(updated) > budget:
            logger.warning(f"✂️ Snapshot section exceeds limit ({len(updated)} > {budget}). Truncating.")
            updated = updated[:budget].rstrip()

        elif section is MemorySection.RECENT_ACTIVITY and len(updated) > budget:
            logger.info(
                f"🗂️ Recent Activity ({len(updated)} chars) exceeds limit ({budget}). "
                f"Moving previous entries into history."
            )
            if previous:
                document.history = await self._absorb_into_history(document, previous)
            if len(content) > budget:
                logger.warning(
                    f"⚠️ New Recent Activity entry alone is {len(content)} chars (budget {budget})"
                )
            updated = content

        elif section is MemorySection.HISTORY and len(updated) > budget:
            logger.info(f"🗜️ History section ({len(updated)} chars) exceeds limit ({budget}). Compacting.")
            updated = await self.compactor.compact(updated, budget)

        document.set(section, updated)
        await self.write(document)
        logger.info(f"💾 AI memory updated (section: {section.value}, mode: {mode.value})")
        return document

    async def _absorb_into_history(self, document: AIMemoryDocument, old_activity: str) -> str:
        history_budget = self.budgets.history
        summary = await self.compactor.compact(old_activity, int(history_budget * HISTORY_SUMMARY_RATIO))

        history = self._effective(document, MemorySection.HISTORY)
        history = f"{summary}\n{SECTION_SEPARATOR}\n{history}" if history else summary

        if len(history) > history_budget:
            logger.info(
                f"🗜️ History ({len(history)} chars) exceeds limit ({history_budget}) "
                f"after adding recent summary. Compacting."
            )
            history = await self.compactor.compact(history, history_budget)
        return history

    @staticmethod
    def _effective(document: AIMemoryDocument, section: MemorySection) -> str:
        """Section text with the default placeholder treated as empty."""
        text = document.get(section).strip()
        return "" if text == PLACEHOLDERS[section] else text

    async def _write_text(self, content: str) -> None:
        def write() -> None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")

        await asyncio.to_thread(write)
