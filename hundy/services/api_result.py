"""Tagged result type shared by the Twitch and YouTube clients.

Callers branch on :attr:`ApiResult.status` instead of guessing whether a
``None`` meant "nothing there" or "the request failed".
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class ResultStatus(enum.StrEnum):
    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ApiResult(Generic[T]):
    status: ResultStatus
    data: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: T) -> ApiResult[T]:
        return cls(ResultStatus.OK, data=data)

    @classmethod
    def empty(cls) -> ApiResult[T]:
        return cls(ResultStatus.EMPTY)

    @classmethod
    def failed(cls, error: str) -> ApiResult[T]:
        return cls(ResultStatus.ERROR, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status is ResultStatus.OK

    @property
    def is_empty(self) -> bool:
        return self.status is ResultStatus.EMPTY

    @property
    def is_error(self) -> bool:
        return self.status is ResultStatus.ERROR
