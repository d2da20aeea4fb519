"""
Record ID allocation.

IDs look like `CC-001`. A new ID is the maximum numeric suffix among the
persisted IDs (and the IDs already issued in this run) plus one, zero padded
to at least three digits. IDs are never reused.
"""

from typing import Awaitable, Callable, Iterable, List, Optional, Set
import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "CC"
MIN_DIGITS = 3

IdLister = Callable[[], Awaitable[List[str]]]


def max_id_number(existing_ids: Iterable[str], prefix: str = DEFAULT_PREFIX) -> int:
    """Largest numeric suffix among `PREFIX-<digits>` IDs; 0 when there are none."""
    pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
    highest = 0
    for record_id in existing_ids:
        match = pattern.match(record_id.strip())
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def next_record_id(existing_ids: Iterable[str], prefix: str = DEFAULT_PREFIX) -> str:
    """
    Next ID after the highest existing one.

    Example:
        >>> next_record_id(["CC-005", "CC-007"])
        'CC-008'
    """
    return f"{prefix}-{max_id_number(existing_ids, prefix) + 1:0{MIN_DIGITS}d}"


class IdAllocator:
    """Assigns IDs by scanning an external listing of persisted IDs."""

    def __init__(self, list_ids: IdLister, prefix: str = DEFAULT_PREFIX):
        self._list_ids = list_ids
        self.prefix = prefix
        self._issued: Set[str] = set()

    def is_valid(self, record_id: Optional[str]) -> bool:
        if not isinstance(record_id, str):
            return False
        return re.fullmatch(rf"{re.escape(self.prefix)}-\d{{{MIN_DIGITS},}}", record_id) is not None

    async def allocate(self) -> str:
        existing = await self._list_ids()
        new_id = next_record_id([*existing, *self._issued], self.prefix)
        self._issued.add(new_id)
        logger.info(f"🆔 Assigned new record ID {new_id} ({len(existing)} existing)")
        return new_id

    async def claim(self, record_id: str) -> bool:
        """
        Reserve an externally supplied ID for this run.

        Returns False when the number is already persisted or issued, so a
        caller never stores two records under the same ID.
        """
        number = max_id_number([record_id], self.prefix)
        existing = await self._list_ids()
        if any(max_id_number([taken], self.prefix) == number for taken in [*existing, *self._issued]):
            logger.warning(f"⚠️ Record ID {record_id} is already in use")
            return False
        self._issued.add(record_id)
        return True
