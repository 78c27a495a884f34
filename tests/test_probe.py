"""Tests for endpoint probing with mocked HTTP responses."""

import asyncio
import json

import httpx
import pytest
import respx

from agentguard.config import EngineConfig
from agentguard.models import Protocol, ServiceEndpoint, VerificationStatus
from agentguard.probe import MCP_INITIALIZE, EndpointProbe, is_reachable
from agentguard.protocols import DeclaredProtocolInference


@pytest.fixture
def probe():
    return EndpointProbe(EngineConfig(probe_timeout_ms=2000))


@pytest.mark.parametrize("status,expected", [
    (199, False), (200, True), (204, True), (301, True), (399, True), (400, False), (503, False),
])
def test_is_reachable(status, expected):
    assert is_reachable(status) is expected


# ── Single probe ──

class TestProbe:
    @pytest.mark.asyncio
    async def test_http_get(self, probe):
        with respx.mock:
            route = respx.get("https://agent.example/api").mock(return_value=httpx.Response(200))
            result = await probe.probe("https://agent.example/api", service_name="web")

        assert route.called
        assert result.reachable is True
        assert result.status == 200
        assert result.status_text == "OK"
        assert result.error is None
        assert result.latency_ms >= 0
        assert result.service_name == "web"

    @pytest.mark.asyncio
    async def test_mcp_post_initialize(self, probe):
        with respx.mock:
            route = respx.post("https://agent.example/mcp").mock(return_value=httpx.Response(200))
            result = await probe.probe("https://agent.example/mcp", Protocol.MCP)

        request = route.calls.last.request
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == MCP_INITIALIZE
        assert result.reachable is True
        assert result.protocol == Protocol.MCP

    @pytest.mark.asyncio
    async def test_a2a_uses_get(self, probe):
        with respx.mock:
            route = respx.get("https://agent.example/a2a").mock(return_value=httpx.Response(200))
            await probe.probe("https://agent.example/a2a", Protocol.A2A)
        assert route.called

    @pytest.mark.asyncio
    async def test_not_found_is_unreachable(self, probe):
        with respx.mock:
            respx.get("https://agent.example/api").mock(return_value=httpx.Response(404))
            result = await probe.probe("https://agent.example/api")

        assert result.reachable is False
        assert result.status == 404
        assert result.error is None

    @pytest.mark.asyncio
    async def test_redirect_status_reachable(self, probe):
        with respx.mock:
            respx.get("https://agent.example/api").mock(return_value=httpx.Response(304))
            result = await probe.probe("https://agent.example/api")
        assert result.reachable is True
        assert result.status == 304

    @pytest.mark.asyncio
    async def test_timeout(self, probe):
        with respx.mock:
            respx.get("https://agent.example/api").mock(side_effect=httpx.ConnectTimeout("timed out"))
            result = await probe.probe("https://agent.example/api")

        assert result.reachable is False
        assert result.status == 0
        assert result.error == "Timeout"

    @pytest.mark.asyncio
    async def test_slow_endpoint_bounded(self):
        probe = EndpointProbe(EngineConfig(probe_timeout_ms=50))

        async def slow(request):
            await asyncio.sleep(1)
            return httpx.Response(200)

        with respx.mock:
            respx.get("https://agent.example/slow").mock(side_effect=slow)
            result = await probe.probe("https://agent.example/slow")

        assert result.error == "Timeout"
        assert result.latency_ms < 1000

    @pytest.mark.asyncio
    async def test_connect_error(self, probe):
        with respx.mock:
            respx.get("https://agent.example/api").mock(side_effect=httpx.ConnectError("Connection refused"))
            result = await probe.probe("https://agent.example/api")

        assert result.reachable is False
        assert result.status == 0
        assert result.error == "Connection refused"

    @pytest.mark.asyncio
    async def test_invalid_url_never_raises(self, probe):
        result = await probe.probe("not a url")
        assert result.reachable is False
        assert result.error

    @pytest.mark.asyncio
    async def test_injected_client(self):
        async with httpx.AsyncClient() as client:
            probe = EndpointProbe(client=client)
            with respx.mock:
                respx.get("https://agent.example/api").mock(return_value=httpx.Response(200))
                result = await probe.probe("https://agent.example/api")
            assert not client.is_closed
        assert result.reachable


# ── probe_all ──

@pytest.mark.asyncio
async def test_probe_all_keeps_order():
    probe = EndpointProbe(EngineConfig(max_concurrency=2))

    async def delayed(request):
        # Later endpoints answer first
        await asyncio.sleep(0.05 if request.url.path == "/0" else 0)
        return httpx.Response(200)

    endpoints = [ServiceEndpoint(f"https://agent.example/{i}", name=f"s{i}") for i in range(5)]
    with respx.mock:
        respx.get(url__startswith="https://agent.example/").mock(side_effect=delayed)
        results = await probe.probe_all(endpoints)

    assert [r.url for r in results] == [e.endpoint for e in endpoints]
    assert [r.service_name for r in results] == ["s0", "s1", "s2", "s3", "s4"]


@pytest.mark.asyncio
async def test_probe_all_empty(probe):
    assert await probe.probe_all([]) == []


# ── verify_identity ──

class TestVerifyIdentity:
    @pytest.mark.asyncio
    async def test_healthy(self, probe, make_record, good_metadata):
        with respx.mock:
            respx.get("https://weatherbot.example/api").mock(return_value=httpx.Response(200))
            respx.post("https://weatherbot.example/mcp").mock(return_value=httpx.Response(200))
            result = await probe.verify_identity(make_record(metadata=good_metadata))

        assert result.status == VerificationStatus.HEALTHY
        assert result.score == 100
        assert result.alive == 2
        assert [e.protocol for e in result.endpoints] == [Protocol.HTTP, Protocol.MCP]

    @pytest.mark.asyncio
    async def test_single_endpoint_timeout_offline(self, probe, make_record):
        record = make_record(metadata={"name": "A", "services": [
            {"name": "web", "endpoint": "https://down.example/"},
        ]})
        with respx.mock:
            respx.get("https://down.example/").mock(side_effect=httpx.ReadTimeout("slow"))
            result = await probe.verify_identity(record)

        assert result.status == VerificationStatus.OFFLINE
        assert result.score == 0
        assert result.endpoints[0].error == "Timeout"

    @pytest.mark.asyncio
    async def test_one_of_two_degraded(self, probe, make_record):
        record = make_record(metadata={"name": "A", "services": [
            {"name": "web", "endpoint": "https://up.example/"},
            {"name": "web2", "endpoint": "https://down.example/"},
        ]})
        with respx.mock:
            respx.get("https://up.example/").mock(return_value=httpx.Response(200))
            respx.get("https://down.example/").mock(side_effect=httpx.ConnectError("refused"))
            result = await probe.verify_identity(record)

        assert result.status == VerificationStatus.DEGRADED
        assert result.score == 50

    @pytest.mark.asyncio
    async def test_degraded_rounds_half_up(self, probe, make_record):
        record = make_record(metadata={"services": [
            {"endpoint": "https://a.example/"},
            {"endpoint": "https://b.example/"},
            {"endpoint": "https://c.example/"},
        ]})
        with respx.mock:
            respx.get("https://a.example/").mock(return_value=httpx.Response(200))
            respx.get("https://b.example/").mock(return_value=httpx.Response(200))
            respx.get("https://c.example/").mock(return_value=httpx.Response(500))
            result = await probe.verify_identity(record)

        assert result.score == 67

    @pytest.mark.asyncio
    async def test_no_metadata(self, probe, make_record):
        result = await probe.verify_identity(make_record(metadata=None))
        assert result.status == VerificationStatus.NO_ENDPOINTS
        assert result.score == 0
        assert result.endpoints == ()

    @pytest.mark.asyncio
    async def test_services_without_endpoint_skipped(self, probe, make_record):
        record = make_record(metadata={"services": [
            {"name": "ghost"},
            {"name": "empty", "endpoint": ""},
            "garbage",
        ]})
        result = await probe.verify_identity(record)
        assert result.status == VerificationStatus.NO_ENDPOINTS
        assert result.endpoints == ()

    @pytest.mark.asyncio
    async def test_declared_protocol_inference(self, make_record):
        probe = EndpointProbe(inference=DeclaredProtocolInference())
        record = make_record(metadata={"services": [
            {"name": "tools", "endpoint": "https://agent.example/rpc", "protocol": "mcp"},
        ]})
        with respx.mock:
            route = respx.post("https://agent.example/rpc").mock(return_value=httpx.Response(200))
            result = await probe.verify_identity(record)

        assert route.called
        assert result.status == VerificationStatus.HEALTHY

    @pytest.mark.asyncio
    async def test_accepts_dict(self, probe):
        result = await probe.verify_identity({"id": 9, "owner": "0xabc"})
        assert result.agent_id == 9
        assert result.name == "Unknown"

    def test_to_dict(self):
        from agentguard.models import EndpointCheckResult, VerificationResult
        result = VerificationResult(
            agent_id=1, chain="base", name="A", owner="0xabc",
            status=VerificationStatus.DEGRADED, score=50,
            endpoints=(
                EndpointCheckResult("https://a.example", Protocol.HTTP, True, 200, 12),
                EndpointCheckResult("https://b.example", Protocol.MCP, False, 0, 8, error="Timeout"),
            ),
        )
        d = result.to_dict()
        assert d["status"] == "degraded"
        assert d["alive"] == 1
        assert d["total"] == 2
        assert d["endpoints"][1]["protocol"] == "mcp"
