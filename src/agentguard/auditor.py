"""agentguard.auditor: static security audit of an identity record.

Four independent checks, each scored 0-100:

    schema      25%  - required fields and well-formed services
    endpoint    30%  - transport security of declared URLs
    content     30%  - phishing lures and script injection in metadata
    reputation  15%  - owner address against known-bad lists

No network access; the audit is a pure function of the record, the
configuration and the threat intel.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import EngineConfig
from .models import (
    AuditReport,
    DimensionScore,
    Finding,
    IdentityRecord,
    RiskLevel,
    Severity,
    as_document,
    round_half_up,
)
from .threat_intel import StaticThreatIntel, ThreatIntel, host_of

logger = logging.getLogger(__name__)

LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})

_IPV4_HOST = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")

# Merged findings follow this order
CATEGORIES = ("Schema", "Endpoint", "Content", "Reputation")


def risk_level_for(overall: int, config: Optional[EngineConfig] = None) -> RiskLevel:
    config = config or EngineConfig()
    if overall < config.high_risk_below:
        return RiskLevel.HIGH
    if overall < config.medium_risk_below:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _is_local(host: str) -> bool:
    return host in LOCAL_HOSTS or host.endswith(".localhost")


class SecurityAuditor:
    """Run the four security checks and compose an AuditReport."""

    def __init__(self, config: Optional[EngineConfig] = None,
                 threat_intel: Optional[ThreatIntel] = None):
        self.config = config or EngineConfig()
        self.threat_intel = threat_intel or StaticThreatIntel()

    # ── Checks ──

    def check_schema(self, metadata: Any) -> DimensionScore:
        metadata = as_document(metadata)
        if metadata is None:
            return DimensionScore(0, ("No metadata found: agent has no identity information",))

        issues: list[str] = []
        warnings: list[str] = []

        name = metadata.get("name")
        if not name:
            issues.append('Missing "name" field')
        if not metadata.get("description"):
            warnings.append('Missing "description" field')
        if isinstance(name, str) and len(name) > self.config.max_name_length:
            warnings.append(f"Name is suspiciously long ({len(name)} chars)")

        services = metadata.get("services")
        if not isinstance(services, list):
            warnings.append("No services array: agent cannot be contacted")
        else:
            for service in services:
                service = service if isinstance(service, dict) else {}
                endpoint = service.get("endpoint")
                if not isinstance(endpoint, str) or not endpoint:
                    issues.append(f'Service "{_label(service)}" has no endpoint')

        penalty = self.config.schema_penalty
        return DimensionScore.from_findings(issues, warnings, penalty.critical, penalty.warning)

    def check_endpoints(self, metadata: Any) -> DimensionScore:
        issues: list[str] = []
        warnings: list[str] = []

        services = (as_document(metadata) or {}).get("services")
        for service in services if isinstance(services, list) else []:
            if not isinstance(service, dict):
                continue
            url = service.get("endpoint")
            if not isinstance(url, str) or not url:
                continue
            name = _label(service)
            host = host_of(url)

            if url.lower().startswith("http://") and not _is_local(host):
                issues.append(f"[{name}] Uses HTTP instead of HTTPS: traffic can be intercepted")

            for domain in self.threat_intel.suspicious_domains(url):
                warnings.append(f"[{name}] Uses suspicious domain: {domain}")

            if _IPV4_HOST.match(host):
                warnings.append(f"[{name}] Uses raw IP address instead of domain")

        penalty = self.config.endpoint_penalty
        return DimensionScore.from_findings(issues, warnings, penalty.critical, penalty.warning)

    def check_content(self, metadata: Any) -> DimensionScore:
        if metadata is None:
            return DimensionScore(100)

        text = json.dumps(metadata, separators=(",", ":"), ensure_ascii=False, default=str).lower()
        issues = [
            f"Phishing pattern detected: {pattern}"
            for pattern in self.threat_intel.phishing_patterns(text)
        ]
        if "<script" in text or "javascript:" in text:
            issues.append("Contains embedded JavaScript: potential XSS")
        if "data:text/html" in text:
            issues.append("Contains data:text/html URI: potential phishing page")

        penalty = self.config.content_penalty
        return DimensionScore.from_findings(issues, [], penalty.critical, penalty.warning)

    def check_owner(self, owner: str) -> DimensionScore:
        if self.threat_intel.is_blacklisted(owner):
            return DimensionScore(0, ("Owner address is on known blacklist (sanctioned/malicious)",))
        return DimensionScore(100)

    # ── Composition ──

    def overall_score(self, schema: int, endpoint: int, content: int, reputation: int) -> int:
        w = self.config.audit_weights
        return round_half_up(
            schema * w["schema"]
            + endpoint * w["endpoint"]
            + content * w["content"]
            + reputation * w["reputation"]
        )

    def audit(self, record: Any) -> AuditReport:
        """Audit one identity. Accepts an IdentityRecord or a plain dict."""
        record = IdentityRecord.coerce(record)

        dimensions = (
            self.check_schema(record.metadata),
            self.check_endpoints(record.metadata),
            self.check_content(record.metadata),
            self.check_owner(record.owner),
        )
        schema, endpoint, content, reputation = dimensions
        overall = self.overall_score(schema.score, endpoint.score, content.score, reputation.score)

        findings = [
            Finding(category, text, Severity.CRITICAL)
            for category, dim in zip(CATEGORIES, dimensions)
            for text in dim.issues
        ]
        findings += [
            Finding(category, text, Severity.WARNING)
            for category, dim in zip(CATEGORIES, dimensions)
            for text in dim.warnings
        ]

        report = AuditReport(
            agent_id=record.id,
            chain=record.chain,
            name=record.display_name,
            owner=record.owner,
            schema=schema,
            endpoint=endpoint,
            content=content,
            reputation=reputation,
            overall=overall,
            risk_level=risk_level_for(overall, self.config),
            findings=tuple(findings),
        )
        logger.debug("Audited agent #%s: %d/100 %s (%d findings)",
                     record.id, overall, report.risk_level.value, len(findings),
                     extra={"agent_id": record.id})
        return report


def _label(service: dict) -> str:
    name = service.get("name")
    return name if isinstance(name, str) and name else "unnamed"
