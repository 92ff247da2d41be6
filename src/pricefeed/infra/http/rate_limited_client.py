import asyncio
import time

import httpx


class _Slot:
    """Interval gate for one rate key."""

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.last_request_time = 0.0


class RateLimitedClient:
    """Async HTTP client with interval-based rate limiting per rate key.

    Calls sharing a key (one mapping) are spaced at least ``min_interval`` seconds apart;
    different keys never wait on each other.
    """

    def __init__(
        self,
        min_interval: float = 0.1,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._min_interval = min_interval
        self._slots: dict[str, _Slot] = {}
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _slot(self, key: str) -> _Slot:
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = _Slot()
        return slot

    async def _wait_for_slot(self, key: str) -> None:
        slot = self._slot(key)
        async with slot.lock:
            now = time.monotonic()
            elapsed = now - slot.last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            slot.last_request_time = time.monotonic()

    async def request(
        self,
        method: str,
        url: str,
        *,
        rate_key: str = "default",
        params: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        await self._wait_for_slot(rate_key)
        return await self._client.request(method, url, params=params, headers=headers)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RateLimitedClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
