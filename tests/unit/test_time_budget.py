# tests/unit/test_time_budget.py

from __future__ import annotations
import sys
import datetime as dt
from pathlib import Path

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from interviewer.core import time_budget
from interviewer.core.session import Session
from interviewer.core.time_budget import PacingTier

T0 = dt.datetime(2026, 1, 1, 12, 0, tzinfo=dt.timezone.utc)


def _session(seconds: int = 300) -> Session:
    return Session(subject_url="https://example.com/post", time_limit=dt.timedelta(seconds=seconds), start_time=T0)


def test_fresh_session_has_full_budget():
    s = _session(300)
    assert time_budget.remaining(s, s.start_time) == dt.timedelta(seconds=300)
    assert time_budget.is_expired(s, s.start_time) is False
    assert time_budget.elapsed(s, s.start_time) == dt.timedelta(0)


def test_exact_boundary_is_expired():
    s = _session(300)
    edge = T0 + dt.timedelta(seconds=300)
    assert time_budget.is_expired(s, edge) is True
    assert time_budget.remaining(s, edge) == dt.timedelta(0)
    assert time_budget.is_expired(s, edge - dt.timedelta(microseconds=1)) is False


def test_remaining_never_negative():
    s = _session(60)
    for later in (61, 600, 86_400):
        assert time_budget.remaining(s, T0 + dt.timedelta(seconds=later)) == dt.timedelta(0)


def test_clock_behind_start_counts_as_zero_elapsed():
    s = _session(60)
    before = T0 - dt.timedelta(seconds=5)
    assert time_budget.elapsed(s, before) == dt.timedelta(0)
    assert time_budget.is_expired(s, before) is False


def test_time_note_rounds_down_to_seconds():
    s = _session(300)
    assert time_budget.time_note(s, T0 + dt.timedelta(seconds=10.7)) == "timeRemaining: 289s"
    assert time_budget.time_note(s, T0 + dt.timedelta(hours=1)) == "timeRemaining: 0s"


def test_pacing_tiers():
    assert time_budget.pacing_tier(dt.timedelta(minutes=5)) is PacingTier.SHORT
    assert time_budget.pacing_tier(dt.timedelta(minutes=10)) is PacingTier.SHORT
    assert time_budget.pacing_tier(dt.timedelta(minutes=20)) is PacingTier.STANDARD
    assert time_budget.pacing_tier(dt.timedelta(minutes=45)) is PacingTier.EXTENDED
