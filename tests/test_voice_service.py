"""
tests/test_voice_service.py - Voice session lifecycle
======================================================

Covers create gating, owner authorization, rename policy, invite parsing
with DM fallback, delete, and startup controller recovery.
"""

from __future__ import annotations

import asyncio
import itertools
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from hundy.engine.moderation import BannedWordList
from hundy.errors import (
    AlreadyExists,
    ExternalAPIFailure,
    NotFound,
    PermissionDenied,
    ValidationFailure,
)
from hundy.services.voice_service import VoiceSession, VoiceSessionManager, parse_invite_target


def run_async(coro):
    return asyncio.run(coro)


OWNER = 111111111111111111
OTHER = 222222222222222222
HUB = 500

_ids = itertools.count(7000)


def _http_error(cls=discord.HTTPException, status=403) -> discord.HTTPException:
    return cls(MagicMock(status=status, reason="x"), "nope")


def _make_channel(channel_id: int | None = None) -> MagicMock:
    channel = MagicMock()
    channel.id = channel_id or next(_ids)
    channel.mention = f"<#{channel.id}>"
    channel.send = AsyncMock(side_effect=lambda *a, **kw: MagicMock(id=next(_ids)))
    channel.delete = AsyncMock()
    channel.edit = AsyncMock()
    channel.set_permissions = AsyncMock()
    channel.fetch_message = AsyncMock()
    invite = MagicMock()
    invite.url = "https://discord.gg/abc"
    channel.create_invite = AsyncMock(return_value=invite)
    return channel


class FakeGuild:
    """Just enough of discord.Guild for the voice manager."""

    def __init__(self) -> None:
        self.channels: dict[int, MagicMock] = {}
        self.members: dict[int, MagicMock] = {}
        self.default_role = MagicMock(name="@everyone")
        self.me = MagicMock(name="bot")
        self.create_voice_channel = AsyncMock(side_effect=self._create)
        self.create_text_channel = AsyncMock(side_effect=self._create)
        self.fetch_channel = AsyncMock(side_effect=_http_error(discord.NotFound, 404))
        self.fetch_member = AsyncMock(side_effect=_http_error(discord.NotFound, 404))

    async def _create(self, **kwargs):
        channel = _make_channel()
        channel.name = kwargs.get("name")
        self.channels[channel.id] = channel
        return channel

    def get_channel(self, channel_id):
        return self.channels.get(channel_id)

    def get_member(self, member_id):
        return self.members.get(member_id)

    def get_role(self, role_id):
        return None


def _make_member(user_id: int = OWNER, name: str = "sam", *, manage: bool = False) -> MagicMock:
    member = MagicMock()
    member.id = user_id
    member.name = name
    member.guild_permissions.manage_channels = manage
    member.send = AsyncMock()
    return member


def _manager(store, *words: str) -> VoiceSessionManager:
    return VoiceSessionManager(store, BannedWordList(words), hub_channel_id=HUB)


async def _set_level(store, user_id: int, level: int) -> None:
    async with store.edit("xp") as xp:
        xp[str(user_id)] = {"xp": level * 200.0, "level": level}


async def _active_session(store, guild: FakeGuild, owner: MagicMock):
    await _set_level(store, owner.id, 1)
    manager = _manager(store, "bad")
    voice, control = await manager.create(guild, owner)
    return manager, voice, control


class TestParseInviteTarget:
    def test_mention(self):
        assert parse_invite_target(f"<@{OTHER}>") == OTHER
        assert parse_invite_target(f"<@!{OTHER}>") == OTHER

    def test_raw_id(self):
        assert parse_invite_target(f"  {OTHER} ") == OTHER

    @pytest.mark.parametrize("raw", ["", "bob", "12345", "@someone"])
    def test_invalid(self, raw):
        with pytest.raises(ValidationFailure):
            parse_invite_target(raw)


class TestCreate:
    def test_level_zero_is_denied_and_nothing_persisted(self, store):
        guild = FakeGuild()
        with pytest.raises(PermissionDenied):
            run_async(_manager(store).create(guild, _make_member()))
        guild.create_voice_channel.assert_not_awaited()
        assert run_async(store.read("vc_channels")) == {}

    def test_create_persists_full_mapping(self, store):
        guild = FakeGuild()
        owner = _make_member()

        _, voice, control = run_async(_active_session(store, guild, owner))

        entry = run_async(store.read("vc_channels"))[str(OWNER)]
        assert entry["voiceChannelId"] == str(voice.id)
        assert entry["controlChannelId"] == str(control.id)
        assert "controlMessageId" in entry
        assert voice.name == "sam's VC"
        assert control.name == "sam-vc-controls"

    def test_second_create_with_live_channel_is_rejected(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, _, _ = await _active_session(store, guild, owner)
            await manager.create(guild, owner)

        with pytest.raises(AlreadyExists):
            run_async(_inner())
        assert guild.create_voice_channel.await_count == 1

    def test_stale_record_is_replaced(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, voice, _ = await _active_session(store, guild, owner)
            del guild.channels[voice.id]          # deleted outside the bot
            return await manager.create(guild, owner)

        new_voice, _ = run_async(_inner())
        entry = run_async(store.read("vc_channels"))[str(OWNER)]
        assert entry["voiceChannelId"] == str(new_voice.id)

    def test_stale_replace_removes_old_control_channel(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, voice, control = await _active_session(store, guild, owner)
            del guild.channels[voice.id]
            await manager.create(guild, owner)
            return control

        run_async(_inner()).delete.assert_awaited_once()

    def test_lookup_outage_does_not_open_second_session(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, voice, control = await _active_session(store, guild, owner)
            before = await store.read("vc_channels")
            guild.channels.clear()  # cache miss, REST answers 503
            guild.fetch_channel = AsyncMock(side_effect=_http_error(status=503))
            with pytest.raises(ExternalAPIFailure):
                await manager.create(guild, owner)
            return voice, control, before

        voice, control, before = run_async(_inner())
        assert guild.create_voice_channel.await_count == 1
        voice.delete.assert_not_awaited()
        control.delete.assert_not_awaited()
        assert run_async(store.read("vc_channels")) == before

    def test_control_failure_cleans_up_voice_channel(self, store):
        guild = FakeGuild()
        guild.create_text_channel = AsyncMock(side_effect=_http_error(discord.Forbidden))
        owner = _make_member()

        async def _inner():
            await _set_level(store, OWNER, 2)
            await _manager(store).create(guild, owner)

        with pytest.raises(ExternalAPIFailure):
            run_async(_inner())
        voice = next(iter(guild.channels.values()))
        voice.delete.assert_awaited_once()
        assert run_async(store.read("vc_channels")) == {}


class TestMutations:
    def test_non_owner_without_manage_channels_is_denied(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, voice, _ = await _active_session(store, guild, owner)
            with pytest.raises(PermissionDenied):
                await manager.lock(guild, _make_member(OTHER, "eve"), OWNER)
            return voice

        run_async(_inner()).set_permissions.assert_not_awaited()

    def test_moderator_may_lock(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, voice, _ = await _active_session(store, guild, owner)
            await manager.lock(guild, _make_member(OTHER, "mod", manage=True), OWNER)
            return voice

        voice = run_async(_inner())
        voice.set_permissions.assert_awaited_once_with(guild.default_role, connect=False)

    def test_unlock_allows_connect(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, voice, _ = await _active_session(store, guild, owner)
            await manager.unlock(guild, owner, OWNER)
            return voice

        run_async(_inner()).set_permissions.assert_awaited_once_with(guild.default_role, connect=True)

    def test_lock_without_session_is_not_found(self, store):
        with pytest.raises(NotFound):
            run_async(_manager(store).lock(FakeGuild(), _make_member(), OWNER))

    def test_rename_applies_clean_name(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, voice, _ = await _active_session(store, guild, owner)
            return voice, await manager.rename(guild, owner, OWNER, "  Chill Zone  ")

        voice, outcome = run_async(_inner())
        assert outcome.applied and outcome.name == "Chill Zone"
        voice.edit.assert_awaited_once_with(name="Chill Zone")

    def test_rename_with_banned_word_resets_to_default(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, voice, _ = await _active_session(store, guild, owner)
            before = await store.read("vc_channels")
            outcome = await manager.rename(guild, owner, OWNER, "a BAD name")
            return voice, outcome, before, await store.read("vc_channels")

        voice, outcome, before, after = run_async(_inner())
        assert not outcome.applied
        voice.edit.assert_awaited_once_with(name="sam's VC")
        assert before == after

    def test_rename_truncates_to_90(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, _, _ = await _active_session(store, guild, owner)
            return await manager.rename(guild, owner, OWNER, "x" * 200)

        assert len(run_async(_inner()).name) == 90


class TestInvite:
    def test_invite_dms_target(self, store):
        guild = FakeGuild()
        owner = _make_member()
        target = _make_member(OTHER, "pat")
        guild.members[OTHER] = target

        async def _inner():
            manager, voice, _ = await _active_session(store, guild, owner)
            return voice, await manager.invite(guild, owner, OWNER, f"<@{OTHER}>")

        voice, outcome = run_async(_inner())
        assert outcome.dm_sent and outcome.target_id == OTHER
        voice.set_permissions.assert_awaited_once_with(target, connect=True)
        kwargs = voice.create_invite.await_args.kwargs
        assert (kwargs["max_uses"], kwargs["unique"], kwargs["max_age"]) == (1, True, 3600)
        assert "https://discord.gg/abc" in target.send.await_args.args[0]

    def test_dm_failure_falls_back_to_link(self, store):
        guild = FakeGuild()
        owner = _make_member()
        target = _make_member(OTHER, "pat")
        target.send = AsyncMock(side_effect=_http_error(discord.Forbidden))
        guild.members[OTHER] = target

        async def _inner():
            manager, _, _ = await _active_session(store, guild, owner)
            return await manager.invite(guild, owner, OWNER, str(OTHER))

        outcome = run_async(_inner())
        assert not outcome.dm_sent
        assert outcome.url == "https://discord.gg/abc"

    def test_inviting_owner_is_rejected(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, _, _ = await _active_session(store, guild, owner)
            await manager.invite(guild, owner, OWNER, str(OWNER))

        with pytest.raises(ValidationFailure):
            run_async(_inner())

    def test_garbage_target_is_rejected(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, _, _ = await _active_session(store, guild, owner)
            await manager.invite(guild, owner, OWNER, "somebody")

        with pytest.raises(ValidationFailure):
            run_async(_inner())


class TestDelete:
    def test_delete_removes_channels_and_record(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, voice, control = await _active_session(store, guild, owner)
            await manager.delete(guild, owner, OWNER)
            return voice, control

        voice, control = run_async(_inner())
        voice.delete.assert_awaited_once()
        control.delete.assert_awaited_once()
        assert run_async(store.read("vc_channels")) == {}

    def test_hub_channel_is_never_deleted(self, store):
        guild = FakeGuild()
        owner = _make_member()
        hub = _make_channel(HUB)
        voice = _make_channel()
        guild.channels.update({HUB: hub, voice.id: voice})

        async def _inner():
            async with store.edit("vc_channels") as sessions:
                sessions[str(OWNER)] = VoiceSession(voice.id, HUB, None).to_dict()
            await _manager(store).delete(guild, owner, OWNER)

        run_async(_inner())
        voice.delete.assert_awaited_once()
        hub.delete.assert_not_awaited()

    def test_missing_channels_are_tolerated(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            async with store.edit("vc_channels") as sessions:
                sessions[str(OWNER)] = VoiceSession(1, 2, 3).to_dict()
            await _manager(store).delete(guild, owner, OWNER)

        run_async(_inner())
        assert run_async(store.read("vc_channels")) == {}

    def test_delete_without_record_is_not_found(self, store):
        with pytest.raises(NotFound):
            run_async(_manager(store).delete(FakeGuild(), _make_member(), OWNER))


class TestRestoreControllers:
    def test_live_controller_is_left_alone(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, _, _ = await _active_session(store, guild, owner)
            return await manager.restore_controllers(guild)

        assert run_async(_inner()) == []

    def test_missing_control_channel_is_recreated(self, store):
        guild = FakeGuild()
        owner = _make_member()
        guild.members[OWNER] = owner

        async def _inner():
            manager, voice, control = await _active_session(store, guild, owner)
            del guild.channels[control.id]
            restored = await manager.restore_controllers(guild)
            return voice, control, restored

        voice, control, restored = run_async(_inner())
        assert restored == [OWNER]
        entry = run_async(store.read("vc_channels"))[str(OWNER)]
        assert entry["voiceChannelId"] == str(voice.id)
        assert entry["controlChannelId"] != str(control.id)

    def test_missing_message_id_reposts_in_same_channel(self, store):
        guild = FakeGuild()
        voice = _make_channel()
        control = _make_channel()
        guild.channels.update({voice.id: voice, control.id: control})

        async def _inner():
            async with store.edit("vc_channels") as sessions:
                sessions[str(OWNER)] = VoiceSession(voice.id, control.id, None).to_dict()
            return await _manager(store).restore_controllers(guild)

        assert run_async(_inner()) == [OWNER]
        control.send.assert_awaited_once()
        entry = run_async(store.read("vc_channels"))[str(OWNER)]
        assert entry["controlChannelId"] == str(control.id)
        assert entry["voiceChannelId"] == str(voice.id)
        assert "controlMessageId" in entry

    def test_deleted_message_triggers_repost(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, _, control = await _active_session(store, guild, owner)
            control.fetch_message.side_effect = _http_error(discord.NotFound, 404)
            return await manager.restore_controllers(guild)

        assert run_async(_inner()) == [OWNER]

    def test_outage_during_startup_does_not_duplicate_controller(self, store):
        guild = FakeGuild()
        owner = _make_member()

        async def _inner():
            manager, _, control = await _active_session(store, guild, owner)
            control.fetch_message.side_effect = _http_error(status=503)
            before = await store.read("vc_channels")
            return await manager.restore_controllers(guild), before

        restored, before = run_async(_inner())
        assert restored == []
        assert guild.create_text_channel.await_count == 1
        assert run_async(store.read("vc_channels")) == before

    def test_one_failure_does_not_stop_others(self, store):
        guild = FakeGuild()
        good_control = _make_channel()
        guild.channels[good_control.id] = good_control
        guild.create_text_channel = AsyncMock(side_effect=_http_error(discord.Forbidden))

        async def _inner():
            async with store.edit("vc_channels") as sessions:
                # No control channel at all and creation fails.
                sessions[str(OWNER)] = VoiceSession(1, None, None).to_dict()
                sessions[str(OTHER)] = VoiceSession(2, good_control.id, None).to_dict()
            return await _manager(store).restore_controllers(guild)

        assert run_async(_inner()) == [OTHER]
