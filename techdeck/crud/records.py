from pathlib import Path
from typing import Dict, List, Optional, Protocol, Type, Union
import asyncio
import json
import logging

from pydantic import BaseModel, ValidationError

from techdeck.core.config import Settings, settings as default_settings
from techdeck.models.records import Challenge, DomainRecord, Feedback, LetterResponse

logger = logging.getLogger(__name__)

KIND_CHALLENGE = "challenge"
KIND_FEEDBACK = "feedback"
KIND_LETTER = "letter"

RECORD_DIRS: Dict[str, str] = {
    KIND_CHALLENGE: "challenges",
    KIND_FEEDBACK: "feedback",
    KIND_LETTER: "letters",
}

RECORD_MODELS: Dict[str, Type[BaseModel]] = {
    KIND_CHALLENGE: Challenge,
    KIND_FEEDBACK: Feedback,
    KIND_LETTER: LetterResponse,
}


def record_kind(record: DomainRecord) -> str:
    if isinstance(record, Challenge):
        return KIND_CHALLENGE
    if isinstance(record, Feedback):
        return KIND_FEEDBACK
    if isinstance(record, LetterResponse):
        return KIND_LETTER
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


def default_key(record: DomainRecord) -> Optional[str]:
    """Natural storage key: challenge ID, or the challenge ID a feedback answers."""
    if isinstance(record, Challenge):
        return record.id
    if isinstance(record, Feedback):
        return record.submission_id
    return None


class RecordStore(Protocol):
    """Where validated records go after generation."""

    async def save(self, record: DomainRecord, key: Optional[str] = None) -> bool:
        ...

    async def list_ids(self, kind: str) -> List[str]:
        ...


class JsonRecordStore:
    """Record persistence as one JSON file per record (camelCase keys)."""

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "JsonRecordStore":
        config = config or default_settings
        return cls(config.DATA_DIR)

    def _dir(self, kind: str) -> Path:
        if kind not in RECORD_DIRS:
            raise ValueError(f"Unknown record kind '{kind}', expected one of {list(RECORD_DIRS)}")
        return self.base_dir / RECORD_DIRS[kind]

    async def save(self, record: DomainRecord, key: Optional[str] = None) -> bool:
        """Write a record to `<base>/<kind dir>/<key>.json`. Returns False on I/O failure."""
        kind = record_kind(record)
        key = key or default_key(record)
        if not key:
            raise ValueError(f"A storage key is required for {kind} records")

        path = self._dir(kind) / f"{key}.json"
        payload = record.model_dump_json(by_alias=True, indent=2)

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(payload, encoding="utf-8")

        try:
            await asyncio.to_thread(write)
        except OSError as e:
            logger.error(f"❌ Failed to save {kind} {key} to {path}: {e}")
            return False

        logger.info(f"💾 Saved {kind} {key}")
        return True

    async def list_ids(self, kind: str) -> List[str]:
        """Keys of stored records of one kind (file stems), sorted."""
        directory = self._dir(kind)

        def scan() -> List[str]:
            if not directory.is_dir():
                return []
            return sorted(p.stem for p in directory.glob("*.json"))

        return await asyncio.to_thread(scan)

    async def list_challenge_ids(self) -> List[str]:
        return await self.list_ids(KIND_CHALLENGE)

    async def load(self, kind: str, key: str) -> Optional[DomainRecord]:
        """Read one record back; None if it is missing or unreadable."""
        path = self._dir(kind) / f"{key}.json"
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None

        try:
            return RECORD_MODELS[kind].model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"❌ Stored {kind} {key} is not a valid record: {e}")
            return None

    async def recent_challenges(self, limit: int = 5) -> List[Challenge]:
        """Most recently created challenges, newest first."""
        challenges = []
        for challenge_id in await self.list_challenge_ids():
            challenge = await self.load(KIND_CHALLENGE, challenge_id)
            if challenge is not None:
                challenges.append(challenge)
        challenges.sort(key=lambda c: c.created_at, reverse=True)
        return challenges[:limit]
