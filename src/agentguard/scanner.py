"""agentguard.scanner: batch security scan over many identities.

Each reference is resolved and audited independently. An identity that
fails to resolve or audit is logged and skipped; it never aborts the scan
and never shows up in the report.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Iterable, Optional

from .auditor import SecurityAuditor
from .config import EngineConfig
from .errors import InvalidIdentityError, ResolutionError
from .logs import new_scan_id, scan_id_var
from .models import AgentSummary, IdentityRecord, ScanReport
from .registry import RegistryReader

logger = logging.getLogger(__name__)

FailureCallback = Callable[[Any, BaseException], None]


def _check_reference(ref: Any) -> Any:
    """Reject references that no registry could ever resolve."""
    if isinstance(ref, IdentityRecord):
        return ref
    if isinstance(ref, dict):
        return IdentityRecord.coerce(ref)
    if isinstance(ref, bool) or not isinstance(ref, int) or ref <= 0:
        raise InvalidIdentityError(f"Invalid agent reference: {ref!r}")
    return ref


def _agent_id(ref: Any) -> Any:
    if isinstance(ref, IdentityRecord):
        return ref.id
    return ref


def _label(ref: Any) -> str:
    return f"#{_agent_id(ref)}"


class BatchScanner:
    """Audit a sequence of identities and aggregate a ScanReport.

    Args:
        auditor: SecurityAuditor used per identity.
        registry: Resolves integer references; optional if every reference
            is already an IdentityRecord.
        config: Concurrency and lookup timeout bounds.
        on_failure: Optional callback(reference, exc) for skipped identities.
    """

    def __init__(
        self,
        auditor: Optional[SecurityAuditor] = None,
        registry: Optional[RegistryReader] = None,
        config: Optional[EngineConfig] = None,
        on_failure: Optional[FailureCallback] = None,
    ):
        self.config = config or (auditor.config if auditor else EngineConfig())
        self.auditor = auditor or SecurityAuditor(self.config)
        self.registry = registry
        self.on_failure = on_failure

    async def _resolve(self, ref: Any) -> IdentityRecord:
        if isinstance(ref, IdentityRecord):
            return ref
        if self.registry is None:
            raise ResolutionError(ref, f"No registry configured to resolve agent #{ref}")
        try:
            resolved = await asyncio.wait_for(self.registry.get_identity(ref), self.config.lookup_timeout)
        except asyncio.TimeoutError:
            raise ResolutionError(ref, f"Timed out resolving agent #{ref}") from None
        # Third-party readers may hand back plain dicts
        return IdentityRecord.coerce(resolved)

    async def _assess(self, ref: Any) -> Optional[AgentSummary]:
        try:
            record = await self._resolve(ref)
            audit = self.auditor.audit(record)
        except Exception as e:
            logger.warning("Skipping agent %s: %s", _label(ref), e,
                           extra={"agent_id": _agent_id(ref), "error_type": type(e).__name__})
            if self.on_failure is not None:
                self.on_failure(ref, e)
            return None

        return AgentSummary(
            agent_id=record.id,
            name=audit.name,
            owner=record.owner,
            score=audit.overall,
            risk_level=audit.risk_level,
            findings_count=len(audit.findings),
            critical_findings=audit.critical_count,
        )

    async def scan(self, references: Iterable[Any]) -> ScanReport:
        """Scan references (IdentityRecord, dict or agent id) in input order."""
        refs = [_check_reference(r) for r in references]
        token = scan_id_var.set(new_scan_id())
        start = time.monotonic()
        try:
            logger.info("Scanning %d agents", len(refs))
            semaphore = asyncio.Semaphore(self.config.scan_concurrency)

            async def run(ref: Any) -> Optional[AgentSummary]:
                async with semaphore:
                    return await self._assess(ref)

            results = await asyncio.gather(*(run(r) for r in refs))

            # Single writer: summaries are collected after every task finished
            report = ScanReport(
                agents=tuple(s for s in results if s is not None),
                elapsed_ms=(time.monotonic() - start) * 1000,
            )
            logger.info("Scan complete: %d scanned, %d healthy, %d warning, %d critical, %d skipped",
                        report.scanned, report.healthy, report.warning, report.critical,
                        len(refs) - report.scanned)
            return report
        finally:
            scan_id_var.reset(token)

    async def scan_recent(self, limit: int = 50) -> ScanReport:
        """Scan the most recent registrations, newest first."""
        if self.registry is None:
            raise ResolutionError("recent", "No registry configured")
        ids = await asyncio.wait_for(
            self.registry.recent_registrations(limit), self.config.lookup_timeout
        )
        return await self.scan(ids)
