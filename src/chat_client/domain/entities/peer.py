from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PeerProfile:
    id: str
    name: str
    email: str
    role: str
