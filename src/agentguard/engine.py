"""agentguard.engine: one entry point for every assessment operation.

Usage:
    engine = AssessmentEngine(registry=StaticRegistry.from_file("agents.json"))

    verification = await engine.verify_identity(record)
    audit = await engine.audit_identity(record)
    reputation = await engine.score_identity(record, age_days=30, owner_tx_count=250)
    report = await engine.scan_recent(limit=50)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Iterable, Optional, TypeVar

from .auditor import SecurityAuditor
from .config import EngineConfig
from .errors import ResolutionError
from .models import (
    AuditReport,
    ChainSignals,
    IdentityRecord,
    ReputationReport,
    ScanReport,
    VerificationResult,
)
from .probe import EndpointProbe
from .protocols import ProtocolInference
from .registry import ChainActivity, RegistryReader
from .reputation import ReputationScorer
from .scanner import BatchScanner, FailureCallback
from .threat_intel import StaticThreatIntel, ThreatIntel

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AssessmentEngine:
    """Wires the probe, auditor, scorer and scanner to shared collaborators."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        threat_intel: Optional[ThreatIntel] = None,
        registry: Optional[RegistryReader] = None,
        activity: Optional[ChainActivity] = None,
        inference: Optional[ProtocolInference] = None,
        probe: Optional[EndpointProbe] = None,
        on_scan_failure: Optional[FailureCallback] = None,
    ):
        self.config = config or EngineConfig()
        self.threat_intel = threat_intel or StaticThreatIntel()
        self.registry = registry
        if activity is None and isinstance(registry, ChainActivity):
            activity = registry
        self.activity = activity

        self.probe = probe or EndpointProbe(self.config, inference=inference)
        self.auditor = SecurityAuditor(self.config, self.threat_intel)
        self.scorer = ReputationScorer(self.config, self.probe)
        self.scanner = BatchScanner(self.auditor, registry, self.config, on_failure=on_scan_failure)

    # ── Identity operations ──

    async def resolve(self, agent_id: int) -> IdentityRecord:
        if self.registry is None:
            raise ResolutionError(agent_id, "No registry configured")
        try:
            resolved = await asyncio.wait_for(self.registry.get_identity(agent_id), self.config.lookup_timeout)
        except asyncio.TimeoutError:
            raise ResolutionError(agent_id, f"Timed out resolving agent #{agent_id}") from None
        return IdentityRecord.coerce(resolved)

    async def verify_identity(self, record: Any) -> VerificationResult:
        return await self.probe.verify_identity(record)

    async def audit_identity(self, record: Any) -> AuditReport:
        return self.auditor.audit(record)

    async def score_identity(
        self,
        record: Any,
        age_days: Optional[float] = None,
        owner_tx_count: Optional[int] = None,
        balance_eth: Optional[float] = None,
    ) -> ReputationReport:
        """Score with caller-supplied signals; None marks a signal as unknown."""
        signals = ChainSignals(age_days=age_days, tx_count=owner_tx_count, balance_eth=balance_eth)
        return await self.scorer.score(record, signals)

    async def score_agent(self, agent_id: int) -> ReputationReport:
        """Resolve an identity, collect its chain signals and score it."""
        record = await self.resolve(agent_id)
        signals = await self.collect_signals(record)
        return await self.scorer.score(record, signals)

    async def collect_signals(self, record: Any) -> ChainSignals:
        """Query the activity collaborator; each lookup is bounded and may come back unknown."""
        record = IdentityRecord.coerce(record)
        if self.activity is None:
            return ChainSignals()

        age, tx_count, balance = await asyncio.gather(
            self._lookup("registration age", self.activity.registration_age_days(record)),
            self._lookup("owner tx count", self.activity.owner_tx_count(record.owner, record.chain)),
            self._lookup("owner balance", self.activity.owner_balance_eth(record.owner, record.chain)),
        )
        return ChainSignals(age_days=age, tx_count=tx_count, balance_eth=balance)

    async def _lookup(self, what: str, call: Awaitable[Optional[T]]) -> Optional[T]:
        try:
            return await asyncio.wait_for(call, self.config.lookup_timeout)
        except asyncio.TimeoutError:
            logger.warning("Lookup of %s timed out after %.1fs", what, self.config.lookup_timeout)
        except Exception as e:
            logger.warning("Lookup of %s failed: %s", what, e)
        return None

    # ── Batch ──

    async def scan_batch(self, references: Iterable[Any]) -> ScanReport:
        return await self.scanner.scan(references)

    async def scan_recent(self, limit: int = 50) -> ScanReport:
        return await self.scanner.scan_recent(limit)
