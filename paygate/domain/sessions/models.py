"""Payment session models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(slots=True)
class PaymentSession:
    id: str
    data: dict[str, Any]
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "data": self.data,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "PaymentSession":
        return cls(
            id=raw["id"],
            data=raw["data"],
            created_at=datetime.fromisoformat(raw["createdAt"]),
            expires_at=datetime.fromisoformat(raw["expiresAt"]),
        )
