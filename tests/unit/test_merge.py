"""
Unit tests for the in-memory merge of per-type results
"""
from datetime import datetime, timedelta, timezone

import pytest

from saveable.core.exceptions import MixedTypeLimitError
from saveable.services.merge import check_type_fanout, group_ids, merge_by_position, merge_by_recency

NOW = datetime(2025, 11, 8, 12, 0, 0)


def test_merge_by_position_orders_by_position_then_newest():
    rows = [
        ("a", 2, NOW, 1),
        ("b", 1, NOW - timedelta(minutes=5), 2),
        ("c", 1, NOW, 3),
        ("d", 0, NOW, 4),
    ]

    assert merge_by_position(rows) == ["d", "c", "b", "a"]


def test_merge_by_position_breaks_timestamp_ties_by_id():
    rows = [("a", 0, NOW, 1), ("b", 0, NOW, 2)]

    assert merge_by_position(rows) == ["b", "a"]


def test_merge_by_recency_mixes_naive_and_aware_timestamps():
    rows = [
        ("old", NOW - timedelta(hours=1), 1),
        ("new", NOW.replace(tzinfo=timezone.utc), 2),
        ("missing", None, 3),
    ]

    assert merge_by_recency(rows) == ["new", "old", "missing"]


def test_group_ids_keeps_first_occurrence_order():
    pairs = [("post", 3), ("comment", 1), ("post", 1), ("post", 3)]

    assert group_ids(pairs) == {"post": [3, 1], "comment": [1]}


def test_check_type_fanout():
    check_type_fanout(["a", "b"], 2)

    with pytest.raises(MixedTypeLimitError):
        check_type_fanout(["a", "b", "c"], 2)
