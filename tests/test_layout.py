"""
Tests for run_action, the wrapper pages use around service calls.
"""

import pytest
import streamlit as st

from utils.layout import run_action


@pytest.fixture
def shown(monkeypatch):
    """Capture toasts and errors instead of rendering them"""
    messages = {"toast": [], "error": []}
    monkeypatch.setattr(st, "toast", lambda body, icon=None: messages["toast"].append(body))
    monkeypatch.setattr(st, "error", lambda body: messages["error"].append(body))
    return messages


def test_success_toasts_and_returns_true_for_none(shown):
    assert run_action(lambda: None, "Saved") is True
    assert shown["toast"] == ["Saved"]


def test_falsy_result_is_returned_unchanged(shown):
    assert run_action(lambda: False, "Favorites updated") is False


def test_no_toast_when_caller_words_the_outcome(shown):
    assert run_action(lambda: False, None) is False
    assert shown["toast"] == []


def test_errors_are_shown_and_return_none(shown):
    def fail():
        raise ValueError("Court name is required")

    assert run_action(fail, "Saved") is None
    assert shown["error"] == ["❌ Court name is required"]
    assert shown["toast"] == []
