"""
Tests for record id generation
"""
from petpos.core.ids import generate_id


def test_ids_are_unique():
    ids = {generate_id() for _ in range(1000)}

    assert len(ids) == 1000


def test_ids_are_lowercase_base36():
    record_id = generate_id()

    assert record_id.isalnum()
    assert record_id == record_id.lower()
    assert len(record_id) > 12
