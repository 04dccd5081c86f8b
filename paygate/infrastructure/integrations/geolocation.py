"""Country lookup for the audit fields of an order."""

from __future__ import annotations

from typing import Optional

import httpx


class IpApiGeoLocator:
    def __init__(
        self,
        url_template: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url_template = url_template
        self._timeout = timeout
        self._transport = transport

    async def country_for(self, ip: str) -> str:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.get(self._url_template.format(ip=ip))
            response.raise_for_status()
            data = response.json()
        return data.get("country_name") or "Unknown"
