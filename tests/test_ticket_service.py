"""
tests/test_ticket_service.py - Ticket registry open/close rules
================================================================
"""

from __future__ import annotations

import asyncio
import itertools
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from hundy.errors import AlreadyExists, ExternalAPIFailure, NotFound
from hundy.services.ticket_service import TicketRegistry, has_open_ticket


def run_async(coro):
    return asyncio.run(coro)


_ids = itertools.count(9000)


def _make_channel(channel_id: int | None = None) -> MagicMock:
    channel = MagicMock()
    channel.id = channel_id or next(_ids)
    channel.mention = f"<#{channel.id}>"
    channel.send = AsyncMock()
    channel.delete = AsyncMock()
    return channel


def _make_guild() -> MagicMock:
    guild = MagicMock()
    guild.get_channel.return_value = None
    guild.create_text_channel = AsyncMock(side_effect=lambda **kw: _make_channel())
    return guild


def _make_user(user_id: int = 7, name: str = "sam") -> MagicMock:
    user = MagicMock()
    user.id = user_id
    user.name = name
    return user


class TestHasOpenTicket:
    def test_only_open_entries_count(self):
        tickets = {"1": {"userId": "7", "status": "closed"}}
        assert not has_open_ticket(tickets, 7)
        tickets["2"] = {"userId": "7", "status": "open"}
        assert has_open_ticket(tickets, 7)
        assert not has_open_ticket(tickets, 8)


class TestOpen:
    def test_open_creates_channel_and_records_ticket(self, store):
        guild = _make_guild()
        registry = TicketRegistry(store, staff_role_id=55)

        channel = run_async(registry.open(guild, _make_user()))

        assert guild.create_text_channel.await_args.kwargs["name"] == "ticket-sam"
        tickets = run_async(store.read("tickets"))
        assert tickets == {str(channel.id): {"userId": "7", "status": "open"}}
        channel.send.assert_awaited_once()

    def test_second_open_is_rejected_without_side_effects(self, store):
        guild = _make_guild()
        registry = TicketRegistry(store)

        run_async(registry.open(guild, _make_user()))
        with pytest.raises(AlreadyExists):
            run_async(registry.open(guild, _make_user()))

        assert guild.create_text_channel.await_count == 1
        assert len(run_async(store.read("tickets"))) == 1

    def test_creation_failure_records_nothing(self, store):
        guild = _make_guild()
        guild.create_text_channel = AsyncMock(
            side_effect=discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "no")
        )
        registry = TicketRegistry(store)

        with pytest.raises(ExternalAPIFailure):
            run_async(registry.open(guild, _make_user()))
        assert run_async(store.read("tickets")) == {}

    def test_overwrites_hide_channel_from_everyone(self, store):
        guild = _make_guild()
        registry = TicketRegistry(store, staff_role_id=55)

        overwrites = registry.private_overwrites(guild, 7)

        assert overwrites[guild.default_role].view_channel is False
        assert overwrites[guild.get_role.return_value].view_channel is True
        assert overwrites[guild.get_member.return_value].view_channel is True


class TestClose:
    def test_close_unknown_channel_is_not_found(self, store):
        registry = TicketRegistry(store)
        with pytest.raises(NotFound):
            run_async(registry.close(_make_channel(1234)))

    def test_close_removes_entry_then_deletes_after_delay(self, store):
        guild = _make_guild()
        registry = TicketRegistry(store, close_delay=0.05)

        async def _inner():
            channel = await registry.open(guild, _make_user())
            task = await registry.close(channel)
            assert await store.read("tickets") == {}
            channel.delete.assert_not_awaited()
            await task
            return channel

        channel = run_async(_inner())
        channel.delete.assert_awaited_once()
        assert "Ticket closed" in channel.send.await_args.args[0]

    def test_delete_failure_is_logged_not_raised(self, store):
        guild = _make_guild()
        registry = TicketRegistry(store, close_delay=0)

        async def _inner():
            channel = await registry.open(guild, _make_user())
            channel.delete.side_effect = discord.NotFound(MagicMock(status=404, reason="gone"), "x")
            await (await registry.close(channel))

        run_async(_inner())

    def test_user_can_reopen_after_close(self, store):
        guild = _make_guild()
        registry = TicketRegistry(store, close_delay=0)

        async def _inner():
            channel = await registry.open(guild, _make_user())
            await (await registry.close(channel))
            await registry.open(guild, _make_user())

        run_async(_inner())
        assert guild.create_text_channel.await_count == 2


class TestNotification:
    def test_notification_opens_level_ticket(self, store):
        guild = _make_guild()
        registry = TicketRegistry(store)

        channel = run_async(registry.open_notification(guild, 7, "Level 3", 3))

        assert guild.create_text_channel.await_args.kwargs["name"] == "ticket-level3"
        entry = run_async(store.read("tickets"))[str(channel.id)]
        assert entry == {"userId": "7", "status": "open", "reason": "Role Level 3 auto-created"}

    def test_notification_reuses_existing_open_ticket(self, store):
        guild = _make_guild()
        registry = TicketRegistry(store)

        async def _inner():
            existing = await registry.open(guild, _make_user())
            guild.get_channel.side_effect = lambda cid: existing if cid == existing.id else None
            target = await registry.open_notification(guild, 7, "Level 2", 2)
            return existing, target

        existing, target = run_async(_inner())
        assert target is existing
        assert guild.create_text_channel.await_count == 1
        tickets = run_async(store.read("tickets"))
        assert sum(1 for t in tickets.values() if t["userId"] == "7" and t["status"] == "open") == 1
