"""
hundy.errors - User-Facing Error Taxonomy
==========================================

Services raise these; cogs and the interaction router turn them into a
short private reply via :attr:`HundyError.user_message`.  Nothing here
carries stack traces or snowflakes to end users.
"""

from __future__ import annotations


class HundyError(Exception):
    """Base class for every expected, user-explainable failure."""

    default_message = "⚠️ Something went wrong."

    def __init__(self, user_message: str | None = None) -> None:
        self.user_message = user_message or self.default_message
        super().__init__(self.user_message)


class ExternalAPIFailure(HundyError):
    """A call to Discord, Twitch or YouTube failed (network or HTTP error)."""

    default_message = "❌ An external service is not responding. Try again later."


class PermissionDenied(HundyError):
    """The actor lacks a capability, or the bot cannot act on the target."""

    default_message = "❌ You don't have permission to do that."


class NotFound(HundyError):
    """A referenced channel, role, ticket or session is missing."""

    default_message = "❌ Not found."


class ValidationFailure(HundyError):
    """Malformed user input."""

    default_message = "❌ That input isn't valid."


class AlreadyExists(HundyError):
    """Duplicate ticket or session request."""

    default_message = "⚠️ That already exists."


class StaleDocument(HundyError):
    """A document changed underneath a compare-and-swap write."""

    default_message = "⚠️ That change collided with another one. Please try again."
