"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from app.core.config import Settings
from app.imagestore.records import TieBreakPolicy


def test_tie_break_policy_accepts_loose_spelling():
    settings = Settings(tie_break_policy="Newest-Created")

    assert settings.tie_break_policy is TieBreakPolicy.NEWEST_CREATED


def test_tie_break_policy_from_environment(monkeypatch):
    monkeypatch.setenv("TIE_BREAK_POLICY", "display_order")

    assert Settings().tie_break_policy is TieBreakPolicy.DISPLAY_ORDER


def test_unknown_tie_break_policy_fails_at_startup():
    """Test a bad policy is rejected when settings load, not per request."""
    with pytest.raises(ValidationError):
        Settings(tie_break_policy="random")
