"""
hundy.services.controls - Button rows and modals
=================================================

Buttons here carry only a ``custom_id``; clicks are routed by
:class:`hundy.bot.dispatch.InteractionRouter`, so the rows keep working
after a restart without re-registering views.
"""

from __future__ import annotations

import discord

from hundy.constants import VC_NAME_MAX_LENGTH

# Custom-id prefixes.  Owner-scoped ids end with the owner's snowflake.
OPEN_TICKET = "open_ticket"
CLOSE_TICKET = "close_ticket"
VC_CREATE = "vc_create"
VC_LOCK = "vc_lock_"
VC_UNLOCK = "vc_unlock_"
VC_RENAME = "vc_rename_"
VC_INVITE = "vc_invite_"
VC_DELETE = "vc_delete_"
VC_RENAME_MODAL = "vc_rename_modal_"
VC_INVITE_MODAL = "vc_invite_modal_"

VC_NEW_NAME_FIELD = "vc_new_name"
VC_INVITE_USER_FIELD = "vc_invite_user"


def _button(label: str, custom_id: str, style: discord.ButtonStyle) -> discord.ui.Button:
    return discord.ui.Button(label=label, custom_id=custom_id, style=style)


def vc_controller_view(owner_id: int) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(_button("\U0001f512 Lock", f"{VC_LOCK}{owner_id}", discord.ButtonStyle.danger))
    view.add_item(_button("\U0001f513 Unlock", f"{VC_UNLOCK}{owner_id}", discord.ButtonStyle.success))
    view.add_item(_button("✏️ Rename", f"{VC_RENAME}{owner_id}", discord.ButtonStyle.primary))
    view.add_item(_button("\U0001f91d Invite", f"{VC_INVITE}{owner_id}", discord.ButtonStyle.secondary))
    view.add_item(_button("\U0001f5d1️ Delete", f"{VC_DELETE}{owner_id}", discord.ButtonStyle.secondary))
    return view


def vc_hub_view() -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(_button("➕ Create VC", VC_CREATE, discord.ButtonStyle.success))
    return view


def ticket_menu_view() -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(_button("\U0001f39f️ Open Ticket", OPEN_TICKET, discord.ButtonStyle.primary))
    return view


def close_ticket_view() -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(_button("Close Ticket", CLOSE_TICKET, discord.ButtonStyle.danger))
    return view


class RenameModal(discord.ui.Modal):
    """Asks the owner for a new voice channel name."""

    def __init__(self, owner_id: int) -> None:
        super().__init__(title="Rename your VC", custom_id=f"{VC_RENAME_MODAL}{owner_id}")
        self.add_item(
            discord.ui.TextInput(
                label="New channel name",
                custom_id=VC_NEW_NAME_FIELD,
                style=discord.TextStyle.short,
                required=True,
                max_length=VC_NAME_MAX_LENGTH,
            )
        )


class InviteModal(discord.ui.Modal):
    """Asks the owner who to invite."""

    def __init__(self, owner_id: int) -> None:
        super().__init__(title="Invite to your VC", custom_id=f"{VC_INVITE_MODAL}{owner_id}")
        self.add_item(
            discord.ui.TextInput(
                label="User ID or @mention",
                custom_id=VC_INVITE_USER_FIELD,
                style=discord.TextStyle.short,
                required=True,
            )
        )


def modal_values(interaction: discord.Interaction) -> dict[str, str]:
    """Flatten a modal submission into ``{field custom_id: value}``."""
    values: dict[str, str] = {}

    def _walk(components: list[dict]) -> None:
        for comp in components or []:
            if "components" in comp:
                _walk(comp["components"])
            if "component" in comp:
                _walk([comp["component"]])
            if "custom_id" in comp and "value" in comp:
                values[comp["custom_id"]] = comp["value"] or ""

    _walk((interaction.data or {}).get("components", []))
    return values
