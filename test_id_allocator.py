"""
Tests for record ID allocation.

Run with:
    pytest test_id_allocator.py
"""

from techdeck.utils.id_allocator import IdAllocator, max_id_number, next_record_id


def test_next_id_after_highest_existing():
    assert next_record_id(["CC-005", "CC-007"]) == "CC-008"


def test_first_id_when_nothing_exists():
    assert next_record_id([]) == "CC-001"


def test_malformed_ids_are_ignored():
    assert max_id_number(["CC-003", "CC-1745728838727-old", "notes", "XX-900"]) == 3


def test_padding_grows_past_three_digits():
    assert next_record_id(["CC-999"]) == "CC-1000"
    assert next_record_id(["CC-1234", "CC-002"]) == "CC-1235"


async def test_allocator_never_reissues_within_a_run():
    async def list_ids():
        return ["CC-005", "CC-007"]

    allocator = IdAllocator(list_ids)

    assert await allocator.allocate() == "CC-008"
    assert await allocator.allocate() == "CC-009"


def test_allocator_validation():
    async def list_ids():
        return []

    allocator = IdAllocator(list_ids)

    assert allocator.is_valid("CC-001")
    assert allocator.is_valid("CC-12345")
    assert not allocator.is_valid("CC-01")
    assert not allocator.is_valid("cc-001")
    assert not allocator.is_valid(None)


async def test_claim_rejects_persisted_and_issued_ids():
    async def list_ids():
        return ["CC-005", "CC-007"]

    allocator = IdAllocator(list_ids)

    assert not await allocator.claim("CC-005")
    assert not await allocator.claim("CC-0007")
    assert await allocator.claim("CC-010")
    assert not await allocator.claim("CC-010")
    assert await allocator.allocate() == "CC-011"
