"""Unit tests for the content guard."""
import asyncio

import pytest
from hypothesis import given
from hypothesis import strategies as st

from realtychat.guard import (
    DEFAULT_RULES,
    ContentGuard,
    GuardRule,
    ModerationReport,
    ModerationReporter,
    keyword_pattern,
)


class TestContentGuard:
    """Tests for ContentGuard.classify."""

    @pytest.fixture
    def guard(self):
        return ContentGuard()

    def test_clean_text_is_allowed(self, guard):
        """Test that ordinary property questions pass."""
        verdict = guard.classify("Show me 2BHK flats in Pune under 80 lakh")
        assert not verdict.restricted
        assert verdict.category is None
        assert verdict.reason is None

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_empty_input_is_never_restricted(self, guard, text):
        """Test that empty and whitespace input is clean."""
        assert not guard.classify(text).restricted

    def test_match_reports_category_and_reason(self, guard):
        """Test that a hit carries its category and reason."""
        verdict = guard.classify("you are an idiot")
        assert verdict.restricted
        assert verdict.category == "abusive_language"
        assert verdict.reason == "Abusive or insulting language"

    def test_matching_is_case_insensitive(self, guard):
        """Test that letter case does not matter."""
        assert guard.classify("CLICK HERE for a deal").category == "spam"

    def test_phrase_tolerates_extra_whitespace(self, guard):
        """Test that multi-word phrases match across whitespace runs."""
        assert guard.classify("I want to kill   myself").category == "self_harm"

    def test_keywords_match_whole_words_only(self, guard):
        """Test that a keyword inside a longer word is not a hit."""
        assert not guard.classify("What an idiotically good price").restricted

    def test_first_category_wins(self, guard):
        """Test that overlapping hits report the earliest category in the table."""
        verdict = guard.classify("buy now, idiot")
        assert verdict.category == "abusive_language"

    def test_categories_follow_table_order(self, guard):
        """Test the default category priority."""
        assert guard.categories == ["abusive_language", "hate_speech", "self_harm", "spam"]

    def test_custom_rules(self):
        """Test that a deployment can supply its own table."""
        guard = ContentGuard([
            GuardRule(category="competitor", reason="Competitor mention", patterns=(keyword_pattern("acme realty"),)),
        ])
        assert guard.classify("is Acme Realty cheaper?").category == "competitor"
        assert not guard.classify("you idiot").restricted

    def test_rule_without_patterns_never_matches(self):
        """Test that an empty rule is kept in order but never hits."""
        guard = ContentGuard([GuardRule(category="empty", reason="none", patterns=())])
        assert guard.categories == ["empty"]
        assert not guard.classify("anything").restricted

    @given(st.text(alphabet="0123456789 .,-", max_size=200))
    def test_digits_and_punctuation_are_clean(self, text: str):
        """Property test: Text with no letters never matches the default table."""
        assert not ContentGuard().classify(text).restricted

    @given(
        st.text(alphabet="abcdefghjklmnpqrstuvwxyz ", max_size=40),
        st.sampled_from([rule for rule in DEFAULT_RULES]),
    )
    def test_keyword_surrounded_by_spaces_is_caught(self, padding: str, rule: GuardRule):
        """Property test: Any table keyword as a separate word is restricted."""
        guard = ContentGuard()
        pattern_source = rule.patterns[0]
        keyword = pattern_source.replace(r"\b", "").replace(r"\s+", " ").replace("\\", "")
        verdict = guard.classify(f"{padding} {keyword} {padding}")
        assert verdict.restricted
        assert guard.categories.index(verdict.category) <= guard.categories.index(rule.category)

    @given(st.text(max_size=100))
    def test_classify_is_deterministic(self, text: str):
        """Property test: The same input always yields the same verdict."""
        guard = ContentGuard()
        assert guard.classify(text) == guard.classify(text)


class TestModerationReport:
    """Tests for the report payload."""

    def test_payload_uses_backend_names(self):
        """Test that the payload carries the raw text and system origin."""
        payload = ModerationReport(
            message="you idiot",
            category="abusive_language",
            reason="Abusive or insulting language",
            session_id="session_1",
            message_index=3,
        ).to_payload()

        assert payload["messageContent"] == "you idiot"
        assert payload["reportedBy"] == "system"
        assert payload["sessionId"] == "session_1"
        assert payload["messageIndex"] == 3
        assert "timestamp" in payload


class TestModerationReporter:
    """Tests for fire-and-forget report delivery."""

    @staticmethod
    def report(text: str = "you idiot") -> ModerationReport:
        return ModerationReport(message=text, category="abusive_language", reason="Abusive")

    async def test_reports_are_delivered_in_background(self):
        """Test that submit returns immediately and delivery happens later."""
        delivered = []

        async def deliver(report):
            await asyncio.sleep(0)
            delivered.append(report.message)

        reporter = ModerationReporter(deliver)
        reporter.submit(self.report("one"))
        reporter.submit(self.report("two"))
        assert delivered == []

        await reporter.close()
        assert delivered == ["one", "two"]
        assert reporter.delivered == 2

    async def test_delivery_failure_is_swallowed(self):
        """Test that a failing endpoint never raises into the caller."""
        async def deliver(report):
            raise ConnectionError("moderation endpoint down")

        reporter = ModerationReporter(deliver)
        reporter.submit(self.report())
        await reporter.drain()

        assert reporter.failed == 1
        assert reporter.delivered == 0
        await reporter.close()

    async def test_full_queue_drops_reports(self):
        """Test that overflow is counted, not raised."""
        async def deliver(report):
            pass

        reporter = ModerationReporter(deliver, max_pending=1)
        for _ in range(3):
            reporter.submit(self.report())

        assert reporter.dropped == 2
        await reporter.close()
        assert reporter.delivered == 1

    async def test_close_without_reports(self):
        """Test that closing an idle reporter is harmless."""
        async def deliver(report):
            pass

        reporter = ModerationReporter(deliver)
        await reporter.close()
        assert reporter.delivered == 0

    def test_submit_needs_running_loop(self):
        """Test that submitting outside an event loop is reported, not ignored."""
        async def deliver(report):
            pass

        reporter = ModerationReporter(deliver)
        with pytest.raises(RuntimeError):
            reporter.submit(self.report())
