"""Probe executor — one timeout-bounded HTTP request, classified healthy/unhealthy.

The executor never raises for a received status code: any response is a
classification input. Transport failures, DNS errors and timeouts all collapse
to an unhealthy outcome carrying a readable error description.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import httpx

from .errors import TransportError
from .models import Check, ProbeOutcome

logger = logging.getLogger(__name__)


# ── Transport ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    elapsed_ms: int


class HttpTransport(Protocol):
    async def request(self, url: str, method: str, timeout_s: float) -> TransportResponse:
        ...


class HttpxTransport:
    """Shared ``httpx.AsyncClient`` transport.

    Redirects are followed and the body is read, so latency covers the full
    response the way a browser-facing client would see it.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True, verify=True)
        return self._client

    async def request(self, url: str, method: str, timeout_s: float) -> TransportResponse:
        t0 = time.perf_counter()
        try:
            resp = await self._get_client().request(method, url, timeout=timeout_s)
        except httpx.TimeoutException as e:
            raise TransportError(f"Connection timed out ({round(timeout_s * 1000)}ms)") from e
        except httpx.ConnectError as e:
            raise TransportError(f"Connection error: {str(e) or type(e).__name__}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Error: {type(e).__name__}: {e}") from e
        elapsed = round((time.perf_counter() - t0) * 1000)
        return TransportResponse(status_code=resp.status_code, elapsed_ms=elapsed)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


# ── Executor ─────────────────────────────────────────────────────────────────


class ProbeExecutor:
    """Runs one probe against one check snapshot."""

    def __init__(
        self,
        transport: HttpTransport,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.transport = transport
        self._timer = timer

    def _elapsed_ms(self, t0: float) -> int:
        return round((self._timer() - t0) * 1000)

    async def probe(self, check: Check) -> ProbeOutcome:
        t0 = self._timer()
        try:
            # Hard deadline on top of the transport's own timeout.
            resp = await asyncio.wait_for(
                self.transport.request(check.url, check.method.value, check.timeout_seconds),
                timeout=check.timeout_seconds,
            )
        except asyncio.TimeoutError:
            return ProbeOutcome(
                healthy=False,
                latency_ms=self._elapsed_ms(t0),
                error=f"Timed out after {check.timeout_ms}ms",
            )
        except TransportError as e:
            return ProbeOutcome(healthy=False, latency_ms=self._elapsed_ms(t0), error=str(e))
        except Exception as e:
            logger.debug("Probe %s raised %s", check.id, type(e).__name__, exc_info=True)
            return ProbeOutcome(
                healthy=False,
                latency_ms=self._elapsed_ms(t0),
                error=f"Error: {type(e).__name__}: {e}",
            )

        if resp.status_code == check.expected_status:
            return ProbeOutcome(healthy=True, latency_ms=resp.elapsed_ms, http_status=resp.status_code)
        return ProbeOutcome(
            healthy=False,
            latency_ms=resp.elapsed_ms,
            http_status=resp.status_code,
            error=f"Expected {check.expected_status}, got {resp.status_code}",
        )
