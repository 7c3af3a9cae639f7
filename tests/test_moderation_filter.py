"""
tests/test_moderation_filter.py - Spam / violation classification
==================================================================

Pure engine tests: no Discord objects, explicit timestamps.
"""

from __future__ import annotations

from datetime import timedelta

from hundy.constants import timeout_for_offense
from hundy.engine.events import MessageSnapshot
from hundy.engine.moderation import (
    BannedWordList,
    ModerationFilter,
    Verdict,
    ViolationKind,
)


def _msg(content: str = "hello", *, user: int = 1, at: int = 10_000, attachment: bool = False):
    return MessageSnapshot(user_id=user, content=content, has_attachment=attachment, timestamp_ms=at)


def _filter(*words: str) -> ModerationFilter:
    return ModerationFilter(BannedWordList(words))


class TestBannedWordList:
    def test_case_insensitive_substring(self):
        banned = BannedWordList(["Frick"])
        assert banned.contains_banned("what the FRICKING heck")
        assert not banned.contains_banned("fine")

    def test_from_document_ignores_bad_shape(self):
        assert len(BannedWordList.from_document({"words": "nope"})) == 0
        assert len(BannedWordList.from_document(None)) == 0
        assert len(BannedWordList.from_document({"words": ["a", " ", "B"]})) == 2

    def test_is_immutable_frozenset(self):
        assert isinstance(BannedWordList(["x"]).words, frozenset)


class TestClassification:
    def test_clean_message_allowed(self):
        assert _filter("bad").classify(_msg("hi there")).verdict is Verdict.ALLOW

    def test_banned_word_is_violation(self):
        result = _filter("bad").classify(_msg("this is BAD"))
        assert result.verdict is Verdict.VIOLATION
        assert result.reasons == (ViolationKind.BANNED_WORD,)
        assert result.matched_word == "bad"

    def test_link_is_violation(self):
        result = _filter().classify(_msg("see https://example.com"))
        assert result.reasons == (ViolationKind.LINK,)

    def test_plain_domain_without_scheme_is_allowed(self):
        assert _filter().classify(_msg("example.com")).verdict is Verdict.ALLOW

    def test_attachment_is_violation(self):
        result = _filter().classify(_msg("", attachment=True))
        assert result.reasons == (ViolationKind.ATTACHMENT,)

    def test_all_reasons_reported(self):
        result = _filter("bad").classify(_msg("bad http://x.io", attachment=True))
        assert set(result.reasons) == set(ViolationKind)

    def test_spam_under_interval(self):
        f = _filter()
        f.classify(_msg(at=10_000))
        assert f.classify(_msg(at=10_999)).verdict is Verdict.SPAM

    def test_exactly_interval_is_not_spam(self):
        f = _filter()
        f.classify(_msg(at=10_000))
        assert f.classify(_msg(at=11_000)).verdict is Verdict.ALLOW

    def test_spam_takes_priority_over_content(self):
        f = _filter("bad")
        f.classify(_msg(at=10_000))
        assert f.classify(_msg("bad", at=10_100)).verdict is Verdict.SPAM

    def test_timestamp_updated_even_for_spam(self):
        f = _filter()
        f.classify(_msg(at=10_000))
        f.classify(_msg(at=10_500))   # spam, but becomes the new reference
        assert f.classify(_msg(at=11_200)).verdict is Verdict.SPAM

    def test_users_tracked_independently(self):
        f = _filter()
        f.classify(_msg(user=1, at=10_000))
        assert f.classify(_msg(user=2, at=10_001)).verdict is Verdict.ALLOW


class TestEscalation:
    def test_ladder(self):
        assert timeout_for_offense(1) is None
        assert timeout_for_offense(2) == timedelta(minutes=5)
        assert timeout_for_offense(3) == timedelta(hours=1)
        assert timeout_for_offense(7) == timedelta(hours=1)
        assert timeout_for_offense(0) is None

    def test_allowed_message_returns_no_sanction(self):
        f = _filter()
        assert f.evaluate(_msg("hi")) is None
        assert f.offense_count(1) == 0

    def test_spam_and_violations_share_one_counter(self):
        f = _filter("bad")
        first = f.evaluate(_msg("bad", at=10_000))
        second = f.evaluate(_msg("ok", at=10_200))       # spam
        third = f.evaluate(_msg("bad", at=20_000))

        assert (first.offense_count, second.offense_count, third.offense_count) == (1, 2, 3)
        assert first.timeout is None
        assert second.is_spam and second.timeout == timedelta(minutes=5)
        assert third.verdict is Verdict.VIOLATION and third.timeout == timedelta(hours=1)

    def test_counter_never_resets_on_clean_messages(self):
        f = _filter("bad")
        f.evaluate(_msg("bad", at=10_000))
        f.evaluate(_msg("clean", at=20_000))
        assert f.evaluate(_msg("bad", at=30_000)).offense_count == 2

    def test_clear_forgets_everything(self):
        f = _filter("bad")
        f.evaluate(_msg("bad"))
        f.clear()
        assert f.offense_count(1) == 0
