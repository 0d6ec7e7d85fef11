"""Tests for domain value types."""

import pytest

from snapsync.domain.types import (
    EngineState,
    FailureKind,
    FileFingerprint,
    PassResult,
    VerificationFailure,
    VerificationSuccess,
)


def test_fingerprint_dict_round_trip():
    """Test the cache document representation of a fingerprint."""
    fp = FileFingerprint(modified_time=12, size_bytes=34)

    assert fp.to_dict() == {"mtime": 12, "size": 34}
    assert FileFingerprint.from_dict({"mtime": 12, "size": 34}) == fp


@pytest.mark.parametrize(
    ("data", "error"),
    [
        ({"mtime": 1}, KeyError),
        ({"mtime": True, "size": 1}, TypeError),
        ({"mtime": 1, "size": "x"}, ValueError),
    ],
)
def test_fingerprint_from_dict_rejects_bad_data(data, error):
    """Test malformed fingerprint data raises."""
    with pytest.raises(error):
        FileFingerprint.from_dict(data)


def test_pass_result_views():
    """Test failures and cache_hits are derived from outcomes."""
    result = PassResult(
        outcomes=(
            VerificationSuccess("a", "aa", cached=True),
            VerificationFailure(
                "b", "bb", None, FailureKind.NOT_FOUND, "missing"
            ),
            VerificationSuccess("c", "cc"),
        ),
        all_passed=False,
    )

    assert [f.filename for f in result.failures] == ["b"]
    assert result.cache_hits == 1


def test_terminal_states():
    """Test only AllValid and Exhausted are terminal."""
    terminal = {state for state in EngineState if state.is_terminal}
    assert terminal == {EngineState.ALL_VALID, EngineState.EXHAUSTED}
