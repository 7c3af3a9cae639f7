"""
tests/test_moderation_service.py - Sanction enforcement
========================================================

Each enforcement step must fail on its own without stopping the rest.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import discord

from hundy.engine.moderation import Sanction, Verdict, ViolationKind
from hundy.services.moderation_service import (
    EnforcementReport,
    build_notice,
    describe_duration,
    enforce_sanction,
    is_moderatable,
)


def run_async(coro):
    return asyncio.run(coro)


def _http_error(cls=discord.HTTPException) -> discord.HTTPException:
    return cls(MagicMock(status=403, reason="Forbidden"), "nope")


def _make_member(user_id: int = 55, *, moderatable: bool = True) -> MagicMock:
    me = MagicMock()
    me.guild_permissions.moderate_members = moderatable
    me.top_role.position = 10

    guild = MagicMock()
    guild.me = me
    guild.owner_id = 1

    member = MagicMock()
    member.id = user_id
    member.guild = guild
    member.guild_permissions.administrator = False
    member.top_role.position = 2
    member.timeout = AsyncMock()
    return member


def _make_message(member: MagicMock) -> MagicMock:
    message = MagicMock()
    message.id = 999
    message.author.id = member.id
    message.delete = AsyncMock()
    message.channel.id = 100
    message.channel.send = AsyncMock()
    message.guild.get_member.return_value = member
    return message


def _sanction(verdict=Verdict.VIOLATION, count=1, timeout=None) -> Sanction:
    return Sanction(
        verdict=verdict,
        offense_count=count,
        timeout=timeout,
        reasons=(ViolationKind.BANNED_WORD,) if verdict is Verdict.VIOLATION else (),
    )


class TestHelpers:
    def test_describe_duration(self):
        assert describe_duration(timedelta(minutes=5)) == "5 minutes"
        assert describe_duration(timedelta(hours=1)) == "1 hour"
        assert describe_duration(timedelta(hours=2)) == "2 hours"

    def test_is_moderatable(self):
        assert is_moderatable(_make_member())
        assert not is_moderatable(_make_member(moderatable=False))

    def test_owner_is_not_moderatable(self):
        member = _make_member(user_id=1)
        assert not is_moderatable(member)

    def test_higher_role_is_not_moderatable(self):
        member = _make_member()
        member.top_role.position = 20
        assert not is_moderatable(member)

    def test_first_offense_notice_is_warning(self):
        notice = build_notice(_sanction(), 55, EnforcementReport(deleted=True))
        assert notice.startswith("⚠️ <@55>")
        assert "removed" in notice

    def test_notice_does_not_claim_removal_when_delete_failed(self):
        warning = build_notice(_sanction(), 55, EnforcementReport(deleted=False))
        assert "removed" not in warning

        report = EnforcementReport(deleted=False, moderatable=False)
        notice = build_notice(_sanction(count=2, timeout=timedelta(minutes=5)), 55, report)
        assert "could not be removed" in notice
        assert "was removed" not in notice

        report = EnforcementReport(deleted=True, timeout_failed=True)
        notice = build_notice(_sanction(count=2, timeout=timedelta(minutes=5)), 55, report)
        assert "message was removed" in notice

    def test_spam_warning_text_differs(self):
        spam = build_notice(_sanction(Verdict.SPAM), 55, EnforcementReport())
        violation = build_notice(_sanction(), 55, EnforcementReport())
        assert "slow down" in spam
        assert spam != violation

    def test_timed_out_notice_names_offense(self):
        report = EnforcementReport(timed_out=True)
        notice = build_notice(_sanction(count=3, timeout=timedelta(hours=1)), 55, report)
        assert "1 hour" in notice and "3rd offense" in notice


class TestEnforceSanction:
    def test_first_offense_deletes_and_warns_without_timeout(self):
        member = _make_member()
        message = _make_message(member)

        report = run_async(enforce_sanction(message, _sanction()))

        message.delete.assert_awaited_once()
        member.timeout.assert_not_awaited()
        message.channel.send.assert_awaited_once()
        assert report.deleted and report.notified and not report.timed_out

    def test_second_offense_times_out_for_five_minutes(self):
        member = _make_member()
        message = _make_message(member)

        report = run_async(enforce_sanction(message, _sanction(count=2, timeout=timedelta(minutes=5))))

        member.timeout.assert_awaited_once()
        assert member.timeout.await_args.args[0] == timedelta(minutes=5)
        assert report.timed_out
        assert "5 minutes" in message.channel.send.await_args.args[0]

    def test_unmoderatable_member_gets_warning_only(self):
        member = _make_member(moderatable=False)
        message = _make_message(member)

        report = run_async(enforce_sanction(message, _sanction(count=3, timeout=timedelta(hours=1))))

        member.timeout.assert_not_awaited()
        assert "cannot timeout" in report.notice

    def test_delete_failure_does_not_stop_other_steps(self):
        member = _make_member()
        message = _make_message(member)
        message.delete.side_effect = _http_error(discord.NotFound)

        report = run_async(enforce_sanction(message, _sanction(count=2, timeout=timedelta(minutes=5))))

        assert not report.deleted
        member.timeout.assert_awaited_once()
        message.channel.send.assert_awaited_once()
        assert "removed" not in report.notice

    def test_timeout_failure_degrades_notice(self):
        member = _make_member()
        member.timeout.side_effect = _http_error(discord.Forbidden)
        message = _make_message(member)

        report = run_async(enforce_sanction(message, _sanction(Verdict.SPAM, 2, timedelta(minutes=5))))

        assert report.timeout_failed and not report.timed_out
        assert "Error applying spam moderation" in report.notice
        message.channel.send.assert_awaited_once_with(report.notice)

    def test_member_fetch_failure_still_notifies(self):
        member = _make_member()
        message = _make_message(member)
        message.guild.get_member.return_value = None
        message.guild.fetch_member = AsyncMock(side_effect=_http_error(discord.NotFound))

        report = run_async(enforce_sanction(message, _sanction(count=2, timeout=timedelta(minutes=5))))

        assert not report.member_found
        assert report.notified

    def test_notice_failure_is_swallowed(self):
        member = _make_member()
        message = _make_message(member)
        message.channel.send.side_effect = _http_error()

        report = run_async(enforce_sanction(message, _sanction()))

        assert report.deleted and not report.notified

    def test_exactly_one_notice(self):
        member = _make_member()
        message = _make_message(member)
        run_async(enforce_sanction(message, _sanction(count=5, timeout=timedelta(hours=1))))
        assert message.channel.send.await_count == 1
