"""
hundy.engine.moderation - Spam / Violation Classification
==========================================================

Pure decision logic: no Discord I/O, no DB I/O.

Pipeline for one message::

    MessageSnapshot → spam interval check → content check → Verdict
                    → (non-allow) bump unified offense counter → Sanction

Spam takes priority over content: a message sent less than
``SPAM_INTERVAL_MS`` after the author's previous one is spam whatever it
says.  Spam and content violations share a single per-user strike counter,
so the escalation ladder in :mod:`hundy.constants` applies to the combined
count.

Offense counts and last-message timestamps live only in the
:class:`ModerationFilter` instance for the lifetime of the process.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import timedelta

from hundy.constants import SPAM_INTERVAL_MS, timeout_for_offense
from hundy.engine.events import MessageSnapshot

logger = logging.getLogger(__name__)

__all__ = [
    "BannedWordList",
    "Classification",
    "ModerationFilter",
    "Sanction",
    "Verdict",
    "ViolationKind",
    "find_violations",
]

_LINK_RE = re.compile(r"https?://[^\s]+", re.IGNORECASE)


class Verdict(enum.StrEnum):
    ALLOW = "allow"
    SPAM = "spam"
    VIOLATION = "violation"


class ViolationKind(enum.StrEnum):
    BANNED_WORD = "banned_word"
    LINK = "link"
    ATTACHMENT = "attachment"


# ---------------------------------------------------------------------------
# Banned words
# ---------------------------------------------------------------------------
class BannedWordList:
    """Lower-cased, immutable set of banned substrings."""

    __slots__ = ("words",)

    def __init__(self, words: Iterable[str] = ()) -> None:
        self.words: frozenset[str] = frozenset(
            w.strip().lower() for w in words if isinstance(w, str) and w.strip()
        )

    @classmethod
    def from_document(cls, body: dict | None) -> BannedWordList:
        """Build from a ``{"words": [...]}`` document body."""
        words = (body or {}).get("words") or []
        if not isinstance(words, list):
            logger.warning("banned_words document has no word list; using an empty one")
            words = []
        return cls(words)

    def find(self, text: str) -> str | None:
        """Return a banned word contained in *text* (case-insensitive), if any."""
        lowered = (text or "").lower()
        for word in sorted(self.words):
            if word in lowered:
                return word
        return None

    def contains_banned(self, text: str) -> bool:
        return self.find(text) is not None

    def __len__(self) -> int:
        return len(self.words)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Classification:
    """Outcome of looking at one message, before any counter changes."""

    verdict: Verdict
    reasons: tuple[ViolationKind, ...] = ()
    matched_word: str | None = None


@dataclass(frozen=True, slots=True)
class Sanction:
    """What to do about a spam or violating message."""

    verdict: Verdict
    offense_count: int
    timeout: timedelta | None
    reasons: tuple[ViolationKind, ...] = ()

    @property
    def is_spam(self) -> bool:
        return self.verdict is Verdict.SPAM


def find_violations(
    snapshot: MessageSnapshot, banned_words: BannedWordList
) -> tuple[tuple[ViolationKind, ...], str | None]:
    """Return every content rule *snapshot* breaks, plus the matched word."""
    reasons: list[ViolationKind] = []
    matched = banned_words.find(snapshot.content)
    if matched is not None:
        reasons.append(ViolationKind.BANNED_WORD)
    if _LINK_RE.search(snapshot.content or ""):
        reasons.append(ViolationKind.LINK)
    if snapshot.has_attachment:
        reasons.append(ViolationKind.ATTACHMENT)
    return tuple(reasons), matched


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------
class ModerationFilter:
    """Classifies messages and tracks per-user strikes for this process."""

    def __init__(
        self,
        banned_words: BannedWordList,
        *,
        spam_interval_ms: int = SPAM_INTERVAL_MS,
    ) -> None:
        self.banned_words = banned_words
        self.spam_interval_ms = spam_interval_ms
        self._offenses: dict[int, int] = {}
        self._last_message_ms: dict[int, int] = {}

    def classify(self, snapshot: MessageSnapshot) -> Classification:
        """Classify *snapshot* and record it as the author's latest message.

        The timestamp is updated in the same step as the interval check so
        the next message from this author is always measured against this one.
        """
        last = self._last_message_ms.get(snapshot.user_id)
        self._last_message_ms[snapshot.user_id] = snapshot.timestamp_ms

        if last is not None and snapshot.timestamp_ms - last < self.spam_interval_ms:
            return Classification(verdict=Verdict.SPAM)

        reasons, matched = find_violations(snapshot, self.banned_words)
        if reasons:
            return Classification(
                verdict=Verdict.VIOLATION, reasons=reasons, matched_word=matched
            )
        return Classification(verdict=Verdict.ALLOW)

    def record_offense(self, user_id: int) -> int:
        """Bump and return the unified strike count for *user_id*."""
        count = self._offenses.get(user_id, 0) + 1
        self._offenses[user_id] = count
        return count

    def offense_count(self, user_id: int) -> int:
        return self._offenses.get(user_id, 0)

    def evaluate(self, snapshot: MessageSnapshot) -> Sanction | None:
        """Classify *snapshot*; return a :class:`Sanction` unless allowed."""
        result = self.classify(snapshot)
        if result.verdict is Verdict.ALLOW:
            return None

        count = self.record_offense(snapshot.user_id)
        return Sanction(
            verdict=result.verdict,
            offense_count=count,
            timeout=timeout_for_offense(count),
            reasons=result.reasons,
        )

    def clear(self) -> None:
        """Forget all strikes and timestamps."""
        self._offenses.clear()
        self._last_message_ms.clear()
