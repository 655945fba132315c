"""Test PatternMatch value object."""

from dataclasses import FrozenInstanceError

import pytest
from hypothesis import given, strategies as st

from yara_session.domain import PatternMatch


class TestPatternMatch:
    """Test PatternMatch invariants and lookups."""

    def test_end_offset(self):
        """end_offset is exclusive."""
        match = PatternMatch(offset=6, length=5)
        assert match.end_offset == 11

    def test_rejects_negative_offset(self):
        with pytest.raises(ValueError, match="non-negative"):
            PatternMatch(offset=-1, length=3)

    def test_rejects_zero_length(self):
        with pytest.raises(ValueError, match="positive"):
            PatternMatch(offset=0, length=0)

    def test_is_immutable(self):
        match = PatternMatch(offset=0, length=5)
        with pytest.raises(FrozenInstanceError):
            match.offset = 3

    def test_matched_data_returns_covered_bytes(self):
        """matched_data slices the scanned buffer."""
        match = PatternMatch(offset=0, length=5)
        assert match.matched_data(b"hello world") == b"hello"

    def test_matched_data_encodes_text(self):
        match = PatternMatch(offset=6, length=5)
        assert match.matched_data("hello world") == b"world"

    def test_matched_data_out_of_range_is_empty(self):
        """Out-of-range lookups return empty bytes instead of failing."""
        assert PatternMatch(offset=20, length=5).matched_data(b"hello world") == b""
        assert PatternMatch(offset=8, length=5).matched_data(b"hello world") == b""
        assert PatternMatch(offset=0, length=1).matched_data(None) == b""

    def test_overlaps(self):
        first = PatternMatch(offset=0, length=5)
        assert first.overlaps(PatternMatch(offset=4, length=2))
        assert not first.overlaps(PatternMatch(offset=5, length=2))

    def test_equality_and_hash(self):
        """Matches are equal and hash equal by (offset, length)."""
        assert PatternMatch(3, 4) == PatternMatch(3, 4)
        assert PatternMatch(3, 4) != PatternMatch(3, 5)
        assert len({PatternMatch(3, 4), PatternMatch(3, 4)}) == 1

    def test_string_representation(self):
        assert str(PatternMatch(2, 7)) == "PatternMatch(offset: 2, length: 7)"

    @given(
        st.integers(min_value=0, max_value=500),
        st.integers(min_value=1, max_value=50),
        st.integers(min_value=0, max_value=500),
        st.integers(min_value=1, max_value=50),
    )
    def test_overlaps_is_symmetric(self, offset_a, length_a, offset_b, length_b):
        a = PatternMatch(offset_a, length_a)
        b = PatternMatch(offset_b, length_b)
        assert a.overlaps(b) == b.overlaps(a)

    @given(st.binary(max_size=64), st.integers(min_value=0, max_value=80), st.integers(min_value=1, max_value=20))
    def test_matched_data_is_empty_or_exact(self, data, offset, length):
        """matched_data never returns a partial slice."""
        result = PatternMatch(offset, length).matched_data(data)
        if offset + length <= len(data):
            assert result == data[offset:offset + length]
        else:
            assert result == b""
