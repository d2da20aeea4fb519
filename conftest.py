"""
Shared fakes for the test suite: scripted LLM provider, recording sleeper,
in-memory record store, and a memory store on a temp file.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union

import pytest

from techdeck.agents.invocation import ResilientInvoker, RetryPolicy
from techdeck.agents.response_parser import ResponseParser
from techdeck.agents.summarizer_agent import CompactionPolicy
from techdeck.crud.records import default_key, record_kind
from techdeck.models.memory import SectionBudgets
from techdeck.models.records import DomainRecord
from techdeck.utils.id_allocator import IdAllocator
from techdeck.utils.memory_manager import MemoryStore

FIXED_NOW = datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc)


class FakeProvider:
    """Replays scripted replies; an Exception in the script is raised instead."""

    def __init__(self, replies: Sequence[Union[str, BaseException]] = (), default: Optional[str] = None):
        self.replies = list(replies)
        self.default = default
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.replies:
            reply = self.replies.pop(0)
        elif self.default is not None:
            reply = self.default
        else:
            raise RuntimeError("FakeProvider ran out of replies")
        if isinstance(reply, BaseException):
            raise reply
        return reply

    @property
    def calls(self) -> int:
        return len(self.prompts)


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class InMemoryRecordStore:
    """RecordStore keeping records in a dict; `accept=False` simulates a failing backend."""

    def __init__(self, existing: Optional[Dict[str, List[str]]] = None, accept: bool = True):
        self.ids: Dict[str, List[str]] = {kind: list(ids) for kind, ids in (existing or {}).items()}
        self.saved: Dict[str, DomainRecord] = {}
        self.accept = accept

    async def save(self, record: DomainRecord, key: Optional[str] = None) -> bool:
        if not self.accept:
            return False
        key = key or default_key(record)
        self.saved[key] = record
        self.ids.setdefault(record_kind(record), []).append(key)
        return True

    async def list_ids(self, kind: str) -> List[str]:
        return list(self.ids.get(kind, []))


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def make_invoker(fake_sleep):
    """Invoker factory with zero-jitter backoff and the recording sleeper."""
    def factory(provider, max_attempts: int = 3) -> ResilientInvoker:
        policy = RetryPolicy(max_attempts=max_attempts, base_ms=1000, jitter=0.1, rng=lambda: 0.5)
        return ResilientInvoker(provider, policy, sleep=fake_sleep)
    return factory


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore(existing={"challenge": ["CC-005", "CC-007"]})


@pytest.fixture
def make_record_store():
    return InMemoryRecordStore


@pytest.fixture
def parser(record_store) -> ResponseParser:
    return ResponseParser(IdAllocator(lambda: record_store.list_ids("challenge")))


@pytest.fixture
def memory_path(tmp_path):
    return tmp_path / "ai-memory.md"


@pytest.fixture
def make_memory_store(memory_path):
    def factory(budgets: Optional[SectionBudgets] = None, compactor: Optional[CompactionPolicy] = None) -> MemoryStore:
        return MemoryStore(memory_path, budgets=budgets, compactor=compactor, clock=lambda: FIXED_NOW)
    return factory


@pytest.fixture
def memory_store(make_memory_store) -> MemoryStore:
    return make_memory_store()
