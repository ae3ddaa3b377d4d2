# tests/test_intents.py
"""Tests for direct-message intent classification and day windows."""

from datetime import timedelta

import pytest

from communicator.core.agent import Intent, classify_intent, extract_day_window


class TestClassifyIntent:
    """Tests for classify_intent function."""

    @pytest.mark.parametrize(
        "text",
        ["summarize last 3 d", "Give me a SUMMARY", "can you summarize today?"],
    )
    def test_summary_keywords(self, text):
        assert classify_intent(text) is Intent.SUMMARY

    @pytest.mark.parametrize(
        "text",
        ["any mentions?", "where was I tagged", "what did I miss? anything missed"],
    )
    def test_mentions_keywords(self, text):
        assert classify_intent(text) is Intent.MENTIONS

    def test_summary_wins_over_mentions(self):
        """Test first matching rule wins when both keyword sets appear."""
        assert classify_intent("summarize my mentions") is Intent.SUMMARY

    def test_substring_match_is_kept(self):
        """Test unrelated sentences containing a keyword still match."""
        assert classify_intent("I missed the bus") is Intent.MENTIONS

    def test_conversation_default(self):
        assert classify_intent("hello there") is Intent.CONVERSATION
        assert classify_intent("") is Intent.CONVERSATION


class TestExtractDayWindow:
    """Tests for extract_day_window function."""

    def test_days_with_space(self):
        assert extract_day_window("summarize last 3 d") == timedelta(hours=72)

    def test_days_without_space(self):
        assert extract_day_window("summary 7d") == timedelta(days=7)

    def test_word_days(self):
        assert extract_day_window("summarize the last 10 days") == timedelta(days=10)

    def test_no_window_defaults_to_24h(self):
        assert extract_day_window("summarize please") == timedelta(hours=24)

    def test_zero_defaults_to_24h(self):
        assert extract_day_window("summary 0d") == timedelta(hours=24)

    def test_out_of_range_defaults_to_24h(self):
        assert extract_day_window("summary 99999d") == timedelta(hours=24)

    def test_first_match_used(self):
        assert extract_day_window("summary 2d or 5d") == timedelta(days=2)
