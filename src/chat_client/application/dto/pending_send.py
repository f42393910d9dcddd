from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class PendingSend:
    """An outgoing message waiting for its ``message_sent`` confirmation."""

    nonce: str
    receiver_id: str
    content: str
    created_at: datetime
    delivered: bool = True
