from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class UnreadCountChanged:
    identity: str | None
    previous: int
    current: int
