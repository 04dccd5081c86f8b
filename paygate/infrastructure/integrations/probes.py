"""Mock confirmation probe.

No ledger is inspected. Each call waits ``delay`` seconds and answers
``confirmed`` with probability ``confirm_rate``, ``pending`` with
``pending_rate`` and ``not_found`` otherwise.
"""

from __future__ import annotations

import asyncio
import random
import secrets
from decimal import Decimal
from typing import Optional

from paygate.domain.payments import ProbeResult, ProbeStatus


class RandomConfirmationProbe:
    def __init__(
        self,
        *,
        confirm_rate: float = 0.3,
        pending_rate: float = 0.4,
        delay: float = 2.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        if confirm_rate < 0 or pending_rate < 0 or confirm_rate + pending_rate > 1:
            raise ValueError("probe rates must be non-negative and sum to at most 1")
        self.confirm_rate = confirm_rate
        self.pending_rate = pending_rate
        self.delay = delay
        self._rng = rng or random.Random()

    async def probe(self, address: str, expected_amount: Decimal, currency: str) -> ProbeResult:
        if self.delay:
            await asyncio.sleep(self.delay)
        roll = self._rng.random()
        if roll < self.confirm_rate:
            return ProbeResult(
                status=ProbeStatus.CONFIRMED,
                tx_reference=secrets.token_hex(32),
                amount=expected_amount,
            )
        if roll < self.confirm_rate + self.pending_rate:
            return ProbeResult(status=ProbeStatus.PENDING, amount=Decimal("0"))
        return ProbeResult(status=ProbeStatus.NOT_FOUND, amount=Decimal("0"))
