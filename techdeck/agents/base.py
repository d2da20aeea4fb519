"""
Shared plumbing for the generation agents.

Every agent follows the same flow:

    memory.read_raw() -> build prompt -> invoker.invoke() -> parser.parse()
        -> record_store.save() -> memory.log_activity()

Collaborators are passed in explicitly; `build_dependencies` wires the
default Gemini / JSON-file / Markdown-memory stack from Settings.
"""

from dataclasses import dataclass
from functools import partial
from typing import Optional
import logging

from techdeck.agents.invocation import ResilientInvoker, RetryPolicy
from techdeck.agents.providers import GeminiProvider, LLMProvider
from techdeck.agents.response_parser import ResponseParser
from techdeck.agents.summarizer_agent import CompactionPolicy
from techdeck.core.config import Settings, settings as default_settings
from techdeck.core.exceptions import PersistenceError
from techdeck.crud.records import KIND_CHALLENGE, JsonRecordStore, RecordStore
from techdeck.models.records import DomainRecord
from techdeck.utils.id_allocator import IdAllocator
from techdeck.utils.memory_manager import MemoryStore

logger = logging.getLogger(__name__)


@dataclass
class AgentDependencies:
    invoker: ResilientInvoker
    parser: ResponseParser
    memory: MemoryStore
    record_store: Optional[RecordStore]


def build_dependencies(
    config: Optional[Settings] = None,
    provider: Optional[LLMProvider] = None,
    record_store: Optional[RecordStore] = None
) -> AgentDependencies:
    """Default collaborators for an agent, configured from Settings."""
    config = config or default_settings
    provider = provider or GeminiProvider.from_settings(config)
    record_store = record_store or JsonRecordStore.from_settings(config)

    invoker = ResilientInvoker(provider, RetryPolicy.from_settings(config))
    parser = ResponseParser.from_settings(
        IdAllocator(partial(record_store.list_ids, KIND_CHALLENGE)), config
    )
    memory = MemoryStore.from_settings(CompactionPolicy.from_settings(provider, config), config)

    return AgentDependencies(invoker=invoker, parser=parser, memory=memory, record_store=record_store)


class BaseAgent:
    """Holds the collaborators and the persist / activity-log steps."""

    def __init__(
        self,
        invoker: ResilientInvoker,
        parser: ResponseParser,
        memory: MemoryStore,
        record_store: Optional[RecordStore] = None
    ):
        self.invoker = invoker
        self.parser = parser
        self.memory = memory
        self.record_store = record_store

    @classmethod
    def from_dependencies(cls, deps: AgentDependencies, **kwargs):
        return cls(deps.invoker, deps.parser, deps.memory, deps.record_store, **kwargs)

    async def _persist(self, record: DomainRecord, key: Optional[str] = None) -> None:
        """Hand the record to the store; a refused save is fatal."""
        if self.record_store is None:
            return
        saved = await self.record_store.save(record, key)
        if not saved:
            name = type(record).__name__
            logger.error(f"❌ Record store rejected {name} {key or ''}".rstrip())
            raise PersistenceError(f"Failed to persist {name} {key or ''}".rstrip())

    async def _log_activity(self, message: str) -> None:
        """Append to Recent Activity; an I/O failure here must not fail the generation."""
        try:
            await self.memory.log_activity(message)
        except OSError as e:
            logger.error(f"❌ Failed to log activity to AI memory: {e}")
