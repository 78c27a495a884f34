"""agentguard.probe: liveness checks for declared service endpoints.

One request per endpoint, bounded by the configured timeout. MCP services
get a JSON-RPC `initialize` POST; everything else a plain GET. Failures are
recorded on the result, never raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

import httpx

from .config import EngineConfig
from .models import (
    EndpointCheckResult,
    IdentityRecord,
    Protocol,
    ServiceEndpoint,
    VerificationResult,
    VerificationStatus,
    round_half_up,
)
from .protocols import HeuristicProtocolInference, ProtocolInference

logger = logging.getLogger(__name__)

MCP_INITIALIZE = {"jsonrpc": "2.0", "method": "initialize", "id": 1}
USER_AGENT = "agentguard-probe/0.1"


def is_reachable(status: int) -> bool:
    return 200 <= status < 400


class EndpointProbe:
    """Probe endpoints over a shared httpx client.

    Args:
        config: Engine configuration (timeout and concurrency bounds).
        inference: Protocol inference strategy for declared services.
        client: Optional pre-built AsyncClient; the caller owns its lifecycle.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        inference: Optional[ProtocolInference] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or EngineConfig()
        self.inference = inference or HeuristicProtocolInference()
        self._client = client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            yield client

    async def probe(
        self,
        url: str,
        protocol: Protocol = Protocol.HTTP,
        timeout_ms: Optional[int] = None,
        service_name: str = "unnamed",
    ) -> EndpointCheckResult:
        """Single bounded liveness check of `url`."""
        async with self._session() as client:
            return await self._probe_with(client, url, protocol, timeout_ms, service_name)

    async def _probe_with(
        self,
        client: httpx.AsyncClient,
        url: str,
        protocol: Protocol,
        timeout_ms: Optional[int],
        service_name: str,
    ) -> EndpointCheckResult:
        timeout = (timeout_ms or self.config.probe_timeout_ms) / 1000
        start = time.monotonic()

        def failed(error: str) -> EndpointCheckResult:
            return EndpointCheckResult(
                url=url,
                protocol=protocol,
                reachable=False,
                status=0,
                latency_ms=_elapsed_ms(start),
                error=error,
                service_name=service_name,
            )

        try:
            response = await asyncio.wait_for(
                self._send(client, url, protocol, timeout), timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.debug("Probe timed out after %.1fs: %s", timeout, url)
            return failed("Timeout")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Probe failed for %s: %s", url, e)
            return failed(str(e) or type(e).__name__)
        except Exception as e:
            logger.exception("Unexpected probe failure for %s", url)
            return failed(str(e) or type(e).__name__)

        status = response.status_code
        return EndpointCheckResult(
            url=url,
            protocol=protocol,
            reachable=is_reachable(status),
            status=status,
            latency_ms=_elapsed_ms(start),
            status_text=response.reason_phrase,
            service_name=service_name,
        )

    async def _send(
        self, client: httpx.AsyncClient, url: str, protocol: Protocol, timeout: float
    ) -> httpx.Response:
        if protocol == Protocol.MCP:
            return await client.post(
                url,
                json=MCP_INITIALIZE,
                headers={"Content-Type": "application/json"},
                timeout=timeout,
            )
        return await client.get(url, timeout=timeout)

    async def probe_all(self, endpoints: Sequence[ServiceEndpoint]) -> list[EndpointCheckResult]:
        """Probe endpoints with bounded concurrency; results keep input order."""
        if not endpoints:
            return []
        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async with self._session() as client:
            async def run(ep: ServiceEndpoint) -> EndpointCheckResult:
                async with semaphore:
                    return await self._probe_with(client, ep.endpoint, ep.protocol, None, ep.label)

            return list(await asyncio.gather(*(run(ep) for ep in endpoints)))

    def endpoints_of(self, record: IdentityRecord) -> list[ServiceEndpoint]:
        """Declared services that carry an endpoint, in declaration order."""
        endpoints = []
        for service in record.services:
            ep = self.inference.endpoint_for(service)
            if ep is not None:
                endpoints.append(ep)
        return endpoints

    async def verify_identity(self, record) -> VerificationResult:
        """Probe every declared endpoint and classify overall health."""
        record = IdentityRecord.coerce(record)
        endpoints = self.endpoints_of(record)
        results = await self.probe_all(endpoints)

        total = len(results)
        alive = sum(1 for r in results if r.reachable)
        if total == 0:
            status, score = VerificationStatus.NO_ENDPOINTS, 0
        elif alive == total:
            status, score = VerificationStatus.HEALTHY, 100
        elif alive > 0:
            status, score = VerificationStatus.DEGRADED, round_half_up(alive / total * 100)
        else:
            status, score = VerificationStatus.OFFLINE, 0

        logger.debug("Agent #%s endpoints: %d/%d reachable (%s)",
                     record.id, alive, total, status.value,
                     extra={"agent_id": record.id})
        return VerificationResult(
            agent_id=record.id,
            chain=record.chain,
            name=record.display_name,
            owner=record.owner,
            status=status,
            score=score,
            endpoints=tuple(results),
        )


def _elapsed_ms(start: float) -> int:
    return int(round((time.monotonic() - start) * 1000))
