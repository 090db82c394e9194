"""Minimal async JSON-RPC client used to fetch live bytecode."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

import httpx

from regenesis.core.config import Settings
from regenesis.core.errors import RemoteCodeFetchError

logger = logging.getLogger(__name__)


# ── Retry helper for transient network failures ─────────────────────────────


def _is_transient(exc: Exception) -> bool:
    """Return True for transport faults, rate limiting and upstream 5xx."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


async def _retry_async(
    coro_factory,  # callable returning a coroutine
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 15.0,
    label: str = "operation",
):
    """Retry an async operation with exponential back-off on transient errors."""
    last_exc: Exception | None = None
    for attempt in range(max_retries + 1):
        try:
            return await coro_factory()
        except Exception as exc:
            last_exc = exc
            if attempt >= max_retries or not _is_transient(exc):
                raise
            delay = min(base_delay * (2 ** attempt), max_delay)
            logger.warning(
                "Transient error in %s (attempt %d/%d), retrying in %.1fs: %s",
                label, attempt + 1, max_retries, delay, exc,
            )
            await asyncio.sleep(delay)
    raise last_exc  # unreachable but keeps mypy happy


class RpcError(Exception):
    """The node answered with a JSON-RPC error object."""


# ── Client ───────────────────────────────────────────────────────────────────


class ChainRpcClient:
    """Fetch deployed bytecode from one chain endpoint.

    All calls go through a per-client semaphore so a surgery run never fans
    out more than ``max_concurrent`` requests to the same node.
    """

    def __init__(
        self,
        url: str,
        *,
        max_concurrent: int = 8,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._ids = itertools.count(1)

    @classmethod
    def from_settings(cls, url: str, settings: Settings) -> "ChainRpcClient":
        return cls(
            url,
            max_concurrent=settings.rpc_max_concurrent,
            max_retries=settings.rpc_max_retries,
            retry_base_delay=settings.rpc_retry_base_delay,
            timeout=settings.rpc_timeout_seconds,
        )

    async def _post(self, payload: dict[str, Any]) -> Any:
        response = await self._client.post(self.url, json=payload)
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as exc:
            raise RpcError(f"{payload['method']}: response is not JSON: {exc}") from exc
        if not isinstance(body, dict):
            raise RpcError(f"{payload['method']}: unexpected response {body!r}")
        if body.get("error"):
            raise RpcError(f"{payload['method']}: {body['error']}")
        return body.get("result")

    async def call(self, method: str, params: list[Any]) -> Any:
        """Issue one JSON-RPC call under the concurrency limiter."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        async with self._semaphore:
            return await _retry_async(
                lambda: self._post(payload),
                max_retries=self._max_retries,
                base_delay=self._retry_base_delay,
                label=f"{method} on {self.url}",
            )

    async def get_code(self, address: str, block: str = "latest") -> str:
        """Return the deployed code at ``address`` as lower-case hex, no prefix.

        Raises:
            RemoteCodeFetchError: After retries are exhausted, or on a
                JSON-RPC error.
        """
        try:
            code = await self.call("eth_getCode", [address, block])
        except (httpx.HTTPError, RpcError) as exc:
            raise RemoteCodeFetchError(f"eth_getCode failed on {self.url}: {exc}", address=address) from exc
        if not isinstance(code, str):
            raise RemoteCodeFetchError(f"eth_getCode returned {code!r}", address=address)
        code = code.lower()
        return code[2:] if code.startswith("0x") else code

    async def chain_id(self) -> int:
        return int(await self.call("eth_chainId", []), 16)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
