from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ProfileUpdated:
    user_id: str
    name: str | None = None
    email: str | None = None
    role: str | None = None
