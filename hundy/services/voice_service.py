"""
hundy.services.voice_service - Voice Session Manager
=====================================================

Owner-scoped custom voice channels.  The ``vc_channels`` document maps
owner id → ``{"voiceChannelId", "controlChannelId", "controlMessageId"}``.

Per owner a session is *none*, *active*, or *stale* (the record points at a
control channel or controller message that no longer exists).  Stale
sessions are repaired by :meth:`VoiceSessionManager.restore_controllers`
at startup; the stored voice channel id is never touched by that repair.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import discord

from hundy.constants import VC_INVITE_MAX_AGE, VC_NAME_MAX_LENGTH, VOICE_MIN_LEVEL, default_vc_name
from hundy.database.models import DocumentName
from hundy.engine.leveling import rank_of
from hundy.engine.moderation import BannedWordList
from hundy.errors import (
    AlreadyExists,
    ExternalAPIFailure,
    NotFound,
    PermissionDenied,
    ValidationFailure,
)
from hundy.services.controls import vc_controller_view
from hundy.services.document_store import DocumentStore
from hundy.services.embeds import build_vc_controller_embed

logger = logging.getLogger(__name__)

_MENTION_RE = re.compile(r"<@!?(\d{17,19})>")
_RAW_ID_RE = re.compile(r"\b(\d{17,19})\b")


def parse_invite_target(raw: str) -> int:
    """Resolve a user id from a mention or a raw 17-19 digit snowflake."""
    text = (raw or "").strip()
    match = _MENTION_RE.search(text) or _RAW_ID_RE.search(text)
    if match is None:
        raise ValidationFailure("❌ Provide a valid user ID or mention.")
    return int(match.group(1))


def _opt_id(value) -> int | None:
    return int(value) if value else None


@dataclass(slots=True)
class VoiceSession:
    voice_channel_id: int | None = None
    control_channel_id: int | None = None
    control_message_id: int | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> VoiceSession:
        return cls(
            voice_channel_id=_opt_id(raw.get("voiceChannelId")),
            control_channel_id=_opt_id(raw.get("controlChannelId")),
            control_message_id=_opt_id(raw.get("controlMessageId")),
        )

    def to_dict(self) -> dict:
        out = {
            "voiceChannelId": str(self.voice_channel_id) if self.voice_channel_id else None,
            "controlChannelId": str(self.control_channel_id) if self.control_channel_id else None,
        }
        if self.control_message_id:
            out["controlMessageId"] = str(self.control_message_id)
        return out


@dataclass(frozen=True, slots=True)
class RenameOutcome:
    name: str
    applied: bool


@dataclass(frozen=True, slots=True)
class InviteOutcome:
    target_id: int
    url: str
    dm_sent: bool


class VoiceSessionManager:
    """Creates, controls and repairs owner voice sessions."""

    def __init__(
        self,
        store: DocumentStore,
        banned_words: BannedWordList,
        *,
        staff_role_id: int | None = None,
        hub_channel_id: int | None = None,
    ) -> None:
        self.store = store
        self.banned_words = banned_words
        self.staff_role_id = staff_role_id
        self.hub_channel_id = hub_channel_id

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def authorize(actor: discord.Member, owner_id: int) -> None:
        """Owner or ``manage_channels`` holder, else PermissionDenied."""
        if actor.id == owner_id or actor.guild_permissions.manage_channels:
            return
        raise PermissionDenied("❌ You don't own this VC or have permission to manage it.")

    @staticmethod
    async def _fetch_channel(guild: discord.Guild, channel_id: int | None):
        """Cache, then REST.  None only when Discord says the channel is gone;
        any other HTTP error propagates so a live channel is never treated
        as stale.
        """
        if not channel_id:
            return None
        channel = guild.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await guild.fetch_channel(channel_id)
        except discord.NotFound:
            return None

    async def _lookup_channel(self, guild: discord.Guild, channel_id: int | None):
        """:meth:`_fetch_channel` with transient failures mapped to ExternalAPIFailure."""
        try:
            return await self._fetch_channel(guild, channel_id)
        except discord.HTTPException as exc:
            logger.warning("Could not look up channel %s: %s", channel_id, exc)
            raise ExternalAPIFailure("❌ Discord is not responding, try again shortly.") from exc

    async def _discard_control(self, guild: discord.Guild, session: VoiceSession) -> None:
        """Delete the control channel of a stale session (never the hub)."""
        if not session.control_channel_id or session.control_channel_id == self.hub_channel_id:
            return
        try:
            control = await self._fetch_channel(guild, session.control_channel_id)
            if control is not None:
                await control.delete(reason="Stale VC controls")
        except discord.HTTPException as exc:
            logger.warning(
                "Could not remove stale control channel %s: %s", session.control_channel_id, exc
            )

    def _control_overwrites(self, guild: discord.Guild, owner) -> dict:
        visible = discord.PermissionOverwrite(view_channel=True, send_messages=True)
        overwrites: dict = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            owner: visible,
        }
        if guild.me is not None:
            overwrites[guild.me] = visible
        if self.staff_role_id:
            role = guild.get_role(self.staff_role_id)
            if role is not None:
                overwrites[role] = visible
        return overwrites

    async def get_session(self, owner_id: int) -> VoiceSession | None:
        raw = (await self.store.read(DocumentName.VC_CHANNELS)).get(str(owner_id))
        return VoiceSession.from_dict(raw) if raw else None

    async def _require_voice(self, guild: discord.Guild, owner_id: int):
        session = await self.get_session(owner_id)
        if session is None:
            raise NotFound("❌ VC record not found.")
        voice = await self._lookup_channel(guild, session.voice_channel_id)
        if voice is None:
            raise NotFound("❌ Voice channel not found.")
        return voice

    @staticmethod
    async def _post_controller(channel, owner_id: int, owner_name: str, voice_channel_id: int | None):
        return await channel.send(
            embed=build_vc_controller_embed(owner_name, voice_channel_id),
            view=vc_controller_view(owner_id),
        )

    # ------------------------------------------------------------------
    # none → active
    # ------------------------------------------------------------------
    async def create(self, guild: discord.Guild, member: discord.Member):
        """Open a voice channel + control channel for *member*.

        Returns ``(voice_channel, control_channel)``.
        """
        xp = await self.store.read(DocumentName.XP)
        if rank_of(xp, member.id).level < VOICE_MIN_LEVEL:
            raise PermissionDenied(
                f"⚠️ You must be at least **Level {VOICE_MIN_LEVEL}** to create a custom voice channel."
            )

        async with self.store.edit(DocumentName.VC_CHANNELS) as sessions:
            raw = sessions.get(str(member.id))
            if raw:
                stale = VoiceSession.from_dict(raw)
                existing = await self._lookup_channel(guild, stale.voice_channel_id)
                if existing is not None:
                    raise AlreadyExists(f"⚠️ You already have a voice channel: {existing.mention}")
                await self._discard_control(guild, stale)

            name = default_vc_name(member.name)
            try:
                voice = await guild.create_voice_channel(
                    name=name,
                    overwrites={
                        guild.default_role: discord.PermissionOverwrite(connect=True),
                        member: discord.PermissionOverwrite(manage_channels=True, connect=True),
                    },
                    reason=f"Custom VC for {member.id}",
                )
            except discord.HTTPException as exc:
                logger.warning("Voice channel creation failed for %s: %s", member.id, exc)
                raise ExternalAPIFailure("❌ Failed to create voice channel. Check bot permissions.") from exc

            try:
                control = await guild.create_text_channel(
                    name=f"{member.name}-vc-controls",
                    overwrites=self._control_overwrites(guild, member),
                    category=getattr(voice, "category", None),
                    reason=f"VC controls for {member.id}",
                )
                controller = await self._post_controller(control, member.id, member.name, voice.id)
            except discord.HTTPException as exc:
                logger.warning("Control channel setup failed for %s: %s", member.id, exc)
                try:
                    await voice.delete(reason="VC setup failed")
                except discord.HTTPException:
                    logger.warning("Could not clean up voice channel %s", voice.id)
                raise ExternalAPIFailure("❌ Failed to create voice channel. Check bot permissions.") from exc

            sessions[str(member.id)] = VoiceSession(voice.id, control.id, controller.id).to_dict()

        logger.info("Created VC %s for %s", voice.id, member.id)
        return voice, control

    # ------------------------------------------------------------------
    # active → active
    # ------------------------------------------------------------------
    async def _set_connect(self, guild: discord.Guild, actor, owner_id: int, allowed: bool) -> None:
        self.authorize(actor, owner_id)
        voice = await self._require_voice(guild, owner_id)
        try:
            await voice.set_permissions(guild.default_role, connect=allowed)
        except discord.HTTPException as exc:
            verb = "unlock" if allowed else "lock"
            raise ExternalAPIFailure(f"❌ Failed to {verb} channel.") from exc

    async def lock(self, guild: discord.Guild, actor: discord.Member, owner_id: int) -> None:
        await self._set_connect(guild, actor, owner_id, False)

    async def unlock(self, guild: discord.Guild, actor: discord.Member, owner_id: int) -> None:
        await self._set_connect(guild, actor, owner_id, True)

    async def rename(
        self, guild: discord.Guild, actor: discord.Member, owner_id: int, new_name: str
    ) -> RenameOutcome:
        """Rename the voice channel; banned words reset it to the default name."""
        self.authorize(actor, owner_id)
        requested = (new_name or "").strip()[:VC_NAME_MAX_LENGTH]
        if not requested:
            raise ValidationFailure("❌ Channel name can't be empty.")
        voice = await self._require_voice(guild, owner_id)

        if self.banned_words.contains_banned(requested):
            outcome = RenameOutcome(name=default_vc_name(actor.name), applied=False)
        else:
            outcome = RenameOutcome(name=requested, applied=True)
        try:
            await voice.edit(name=outcome.name)
        except discord.HTTPException as exc:
            raise ExternalAPIFailure("❌ Failed to rename channel.") from exc
        return outcome

    async def invite(
        self, guild: discord.Guild, actor: discord.Member, owner_id: int, raw_target: str
    ) -> InviteOutcome:
        """Grant *raw_target* connect, make a one-shot invite, try to DM it."""
        self.authorize(actor, owner_id)
        target_id = parse_invite_target(raw_target)
        if target_id == owner_id:
            raise ValidationFailure("⚠️ You are already the owner of this VC.")
        voice = await self._require_voice(guild, owner_id)

        try:
            target = guild.get_member(target_id) or await guild.fetch_member(target_id)
            await voice.set_permissions(target, connect=True)
        except discord.NotFound as exc:
            raise NotFound("❌ That user isn't in this server.") from exc
        except discord.HTTPException as exc:
            raise ExternalAPIFailure("❌ Failed to add user to VC permissions.") from exc

        try:
            invite = await voice.create_invite(
                max_uses=1, unique=True, max_age=VC_INVITE_MAX_AGE, reason=f"Invite from {actor.id}"
            )
        except discord.HTTPException as exc:
            raise ExternalAPIFailure("❌ Failed to create invite (permissions?).") from exc

        dm_sent = False
        try:
            await target.send(
                f"\U0001f91d You have been invited to join a voice channel by <@{owner_id}>: {invite.url}"
            )
            dm_sent = True
        except discord.HTTPException as exc:
            logger.info("DM to %s failed, returning link to requester: %s", target_id, exc)
        return InviteOutcome(target_id=target_id, url=invite.url, dm_sent=dm_sent)

    # ------------------------------------------------------------------
    # active → none
    # ------------------------------------------------------------------
    async def delete(self, guild: discord.Guild, actor: discord.Member, owner_id: int) -> None:
        """Remove both channels (never the hub) and erase the record."""
        self.authorize(actor, owner_id)
        async with self.store.edit(DocumentName.VC_CHANNELS) as sessions:
            raw = sessions.get(str(owner_id))
            if not raw:
                raise NotFound("❌ VC record not found.")
            session = VoiceSession.from_dict(raw)

            channel_ids = [session.voice_channel_id]
            if session.control_channel_id != self.hub_channel_id:
                channel_ids.append(session.control_channel_id)
            for channel_id in channel_ids:
                channel = await self._lookup_channel(guild, channel_id)
                if channel is None:
                    continue
                try:
                    await channel.delete(reason=f"VC deleted by {actor.id}")
                except discord.HTTPException as exc:
                    logger.warning("Could not delete channel %s: %s", channel_id, exc)

            del sessions[str(owner_id)]
        logger.info("Deleted VC session for %s", owner_id)

    # ------------------------------------------------------------------
    # stale → active
    # ------------------------------------------------------------------
    async def _controller_alive(self, guild: discord.Guild, session: VoiceSession) -> bool:
        """False only when the controller is known to be gone.

        Other HTTP errors propagate; restore skips that record this run.
        """
        if not session.control_channel_id or not session.control_message_id:
            return False
        channel = await self._fetch_channel(guild, session.control_channel_id)
        if channel is None:
            return False
        try:
            await channel.fetch_message(session.control_message_id)
        except discord.NotFound:
            return False
        return True

    async def _repair(self, guild: discord.Guild, owner_id: int, session: VoiceSession) -> None:
        owner = guild.get_member(owner_id)
        owner_name = owner.name if owner is not None else str(owner_id)

        channel = await self._fetch_channel(guild, session.control_channel_id)
        if channel is None:
            channel = await guild.create_text_channel(
                name=f"{owner_name}-vc-controls",
                overwrites=self._control_overwrites(
                    guild, owner or discord.Object(id=owner_id, type=discord.Member)
                ),
                reason=f"Restored VC controls for {owner_id}",
            )
        message = await self._post_controller(channel, owner_id, owner_name, session.voice_channel_id)

        async with self.store.edit(DocumentName.VC_CHANNELS) as sessions:
            entry = sessions.get(str(owner_id))
            if entry is None:
                return
            entry["controlChannelId"] = str(channel.id)
            entry["controlMessageId"] = str(message.id)

    async def restore_controllers(self, guild: discord.Guild) -> list[int]:
        """Recreate missing controllers; returns the owners that were repaired."""
        restored: list[int] = []
        sessions = await self.store.read(DocumentName.VC_CHANNELS)
        for owner_key, raw in sessions.items():
            try:
                owner_id = int(owner_key)
                session = VoiceSession.from_dict(raw or {})
                if await self._controller_alive(guild, session):
                    continue
                await self._repair(guild, owner_id, session)
                restored.append(owner_id)
                logger.info("Restored VC controller for %s", owner_id)
            except Exception:
                logger.exception("Failed to restore VC controller", extra={"owner": owner_key})
        return restored
