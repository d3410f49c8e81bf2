"""
Unit tests untuk request node naming dan sequence index parsing.
"""

import pytest
from zklock.core.naming import LockType, build_prefix, parse_index, format_sequence, parent_path


def test_parse_index():
    """Test parsing trailing sequence digits"""
    assert parse_index("lock-0000000005") == 5
    assert parse_index("read-0000000000") == 0
    assert parse_index("res/lock-0000000042") == 42
    assert parse_index("0000000007") == 7


def test_parse_index_not_a_sequence_node():
    """Node tanpa trailing digits bukan sequence node, bukan index 0"""
    assert parse_index("lock-") is None
    assert parse_index("res/read-") is None
    assert parse_index("lock-12a") is None


def test_parse_index_uses_longest_trailing_run():
    assert parse_index("lock-7-0000000123") == 123


def test_build_prefix():
    """Test prefix untuk setiap lock type"""
    assert build_prefix("res", LockType.READ) == "res/read-"
    assert build_prefix("res", LockType.WRITE) == "res/lock-"
    assert build_prefix("res", LockType.EXCLUSIVE) == "res/lock-"
    assert build_prefix("/app/orders") == "/app/orders/lock-"


def test_build_prefix_accepts_strings():
    assert build_prefix("res", "read") == "res/read-"
    assert build_prefix("res", "write") == "res/lock-"
    # Unknown kind falls back ke exclusive
    assert build_prefix("res", "bogus") == "res/lock-"


def test_format_sequence():
    assert format_sequence(0) == "0000000000"
    assert format_sequence(17) == "0000000017"
    assert parse_index("lock-" + format_sequence(123)) == 123


@pytest.mark.parametrize("path,expected", [
    ("res/lock-", "res"),
    ("/app/res/read-", "/app/res"),
    ("/res", "/"),
    ("res", ""),
])
def test_parent_path(path, expected):
    assert parent_path(path) == expected


if __name__ == "__main__":
    pytest.main([__file__, '-v'])
