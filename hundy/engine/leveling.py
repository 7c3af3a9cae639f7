"""
hundy.engine.leveling - XP Accrual & Level Thresholds
======================================================

Pure calculation over the ``xp`` document (``{user_id: {"xp", "level"}}``).
No Discord I/O, no DB I/O inside the engine.

XP is cumulative and never resets.  The check for the next level runs once
per award, so one message can raise the level by at most one.
"""

from __future__ import annotations

from dataclasses import dataclass

from hundy.constants import LEADERBOARD_SIZE, XP_PER_LEVEL, XP_PER_MESSAGE, XP_PRECISION, xp_for_level

__all__ = [
    "ExperienceRecord",
    "LevelResult",
    "apply_xp",
    "award_xp",
    "leaderboard",
    "level_for_xp",
    "rank_of",
]


@dataclass(slots=True)
class ExperienceRecord:
    """One member's entry in the XP ledger."""

    xp: float = 0.0
    level: int = 0

    @classmethod
    def from_dict(cls, raw: dict | None) -> ExperienceRecord:
        if not raw:
            return cls()
        return cls(xp=float(raw.get("xp", 0) or 0), level=int(raw.get("level", 0) or 0))

    def to_dict(self) -> dict:
        return {"xp": self.xp, "level": self.level}


@dataclass(frozen=True, slots=True)
class LevelResult:
    """Outcome of one XP award."""

    user_id: str
    xp: float
    level: int
    leveled_up: bool
    previous_level: int


def level_for_xp(xp: float) -> int:
    """Highest level whose threshold *xp* has reached."""
    return int(xp // XP_PER_LEVEL) if xp > 0 else 0


def apply_xp(record: ExperienceRecord, increment: float = XP_PER_MESSAGE) -> bool:
    """Add *increment* to *record* and level up at most once.

    Returns True when the level went up.
    """
    if increment < 0:
        raise ValueError("XP increments must be non-negative")
    record.xp = round(record.xp + increment, XP_PRECISION)
    if record.xp >= xp_for_level(record.level + 1):
        record.level += 1
        return True
    return False


def award_xp(ledger: dict, user_id: int | str, increment: float = XP_PER_MESSAGE) -> LevelResult:
    """Apply one award to *ledger* in place, creating the record if needed."""
    key = str(user_id)
    record = ExperienceRecord.from_dict(ledger.get(key))
    previous = record.level
    leveled_up = apply_xp(record, increment)
    ledger[key] = record.to_dict()
    return LevelResult(
        user_id=key,
        xp=record.xp,
        level=record.level,
        leveled_up=leveled_up,
        previous_level=previous,
    )


def rank_of(ledger: dict, user_id: int | str) -> ExperienceRecord:
    """Return the record for *user_id*, or a zero record."""
    return ExperienceRecord.from_dict(ledger.get(str(user_id)))


def leaderboard(ledger: dict, limit: int = LEADERBOARD_SIZE) -> list[tuple[str, ExperienceRecord]]:
    """Top *limit* entries by XP, highest first."""
    entries = [(uid, ExperienceRecord.from_dict(raw)) for uid, raw in ledger.items()]
    entries.sort(key=lambda item: item[1].xp, reverse=True)
    return entries[:limit]
