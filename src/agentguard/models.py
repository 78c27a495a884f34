"""agentguard.models: identity records, check results and assessment reports.

Everything here is built once per assessment and never mutated afterwards.
`IdentityRecord` is the only input type and is validated with pydantic; the
result types are plain dataclasses with `to_dict()` for JSON output.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidIdentityError

# ERC-8004 identity registry (CREATE2, same address on every EVM chain)
IDENTITY_REGISTRY = "0x8004A169FB4a3325136EB29fA0ceB6D2e539a432"

CHAINS = {
    "base": {"id": 8453, "name": "Base"},
    "ethereum": {"id": 1, "name": "Ethereum"},
    "bnb": {"id": 56, "name": "BNB Chain"},
}


# ─── Enumerations ──────────────────────────────────────────────────

class Protocol(str, Enum):
    HTTP = "http"
    A2A = "a2a"
    MCP = "mcp"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Tier(str, Enum):
    UNRATED = "Unrated"
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"


class VerificationStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    OFFLINE = "offline"
    NO_ENDPOINTS = "no-endpoints"


# HIGH first when sorting for review
RISK_ORDER = {RiskLevel.HIGH: 0, RiskLevel.MEDIUM: 1, RiskLevel.LOW: 2}


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative scores.

    Python's round() uses banker's rounding, which would make 74.5 a
    MEDIUM risk. Float noise from the weighted sums is dropped first.
    """
    return int(math.floor(round(value, 9) + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, int(value)))


def as_document(metadata: Any) -> Optional[dict]:
    """Metadata as a mapping for field lookups.

    None stays None (no document). A decoded document that is not a JSON
    object is present but has no fields, so it reads as {}.
    """
    if metadata is None:
        return None
    return metadata if isinstance(metadata, dict) else {}


# ─── Input ─────────────────────────────────────────────────────────

class IdentityRecord(BaseModel):
    """A resolved registry entry: id, owner and the decoded metadata document."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., gt=0, strict=True)
    owner: str = Field(..., min_length=1)
    # Any decoded JSON value; malformed documents are audited, not rejected
    metadata: Optional[Any] = None
    chain: str = "base"
    uri: Optional[str] = None

    @classmethod
    def coerce(cls, value: Any) -> "IdentityRecord":
        """Accept a record or a plain dict; anything else is a caller bug."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, dict):
            raise InvalidIdentityError(
                f"Expected an identity record, got {type(value).__name__}"
            )
        try:
            return cls.model_validate(value)
        except ValidationError as e:
            raise InvalidIdentityError(
                f"Invalid identity record: {e.error_count()} validation error(s)",
                errors=e.errors(),
            ) from e

    @property
    def display_name(self) -> str:
        name = (as_document(self.metadata) or {}).get("name")
        return str(name) if name else "Unknown"

    @property
    def nft_id(self) -> str:
        chain_id = CHAINS.get(self.chain, {}).get("id", self.chain)
        return f"{chain_id}:{IDENTITY_REGISTRY}:{self.id}"

    @property
    def services(self) -> list:
        """Declared services, or [] when the document has no services array."""
        services = (as_document(self.metadata) or {}).get("services")
        return services if isinstance(services, list) else []


@dataclass(frozen=True)
class ServiceEndpoint:
    """A declared contact point with its inferred wire protocol."""
    endpoint: str
    protocol: Protocol = Protocol.HTTP
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or "unnamed"


# ─── Endpoint probing ──────────────────────────────────────────────

@dataclass(frozen=True)
class EndpointCheckResult:
    """Outcome of probing one service endpoint."""
    url: str
    protocol: Protocol
    reachable: bool
    status: int
    latency_ms: int
    error: Optional[str] = None
    status_text: Optional[str] = None
    service_name: str = "unnamed"

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "protocol": self.protocol.value,
            "service_name": self.service_name,
            "reachable": self.reachable,
            "status": self.status,
            "latency_ms": self.latency_ms,
            "error": self.error,
            "status_text": self.status_text,
        }


@dataclass(frozen=True)
class VerificationResult:
    """Aggregate liveness of all endpoints declared by one identity."""
    agent_id: int
    chain: str
    name: str
    owner: str
    status: VerificationStatus
    score: int
    endpoints: tuple[EndpointCheckResult, ...] = ()

    @property
    def alive(self) -> int:
        return sum(1 for e in self.endpoints if e.reachable)

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "chain": self.chain,
            "name": self.name,
            "owner": self.owner,
            "status": self.status.value,
            "score": self.score,
            "alive": self.alive,
            "total": len(self.endpoints),
            "endpoints": [e.to_dict() for e in self.endpoints],
        }


# ─── Scoring ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class DimensionScore:
    """One assessment axis: a 0-100 score plus critical issues and warnings."""
    score: int
    issues: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @classmethod
    def from_findings(
        cls,
        issues: list[str],
        warnings: list[str],
        critical_penalty: int,
        warning_penalty: int = 0,
    ) -> "DimensionScore":
        score = 100 - len(issues) * critical_penalty - len(warnings) * warning_penalty
        return cls(clamp_score(score), tuple(issues), tuple(warnings))

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "issues": list(self.issues),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class Finding:
    category: str
    text: str
    severity: Severity

    def to_dict(self) -> dict:
        return {"category": self.category, "text": self.text, "severity": self.severity.value}


@dataclass(frozen=True)
class AuditReport:
    """Security audit of one identity across four dimensions."""
    agent_id: int
    chain: str
    name: str
    owner: str
    schema: DimensionScore
    endpoint: DimensionScore
    content: DimensionScore
    reputation: DimensionScore
    overall: int
    risk_level: RiskLevel
    findings: tuple[Finding, ...] = ()

    @property
    def critical_count(self) -> int:
        return sum(1 for f in self.findings if f.severity == Severity.CRITICAL)

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "chain": self.chain,
            "name": self.name,
            "owner": self.owner,
            "scores": {
                "schema": self.schema.score,
                "endpoint": self.endpoint.score,
                "content": self.content.score,
                "reputation": self.reputation.score,
                "overall": self.overall,
            },
            "risk_level": self.risk_level.value,
            "findings": [f.to_dict() for f in self.findings],
        }


@dataclass(frozen=True)
class ChainSignals:
    """On-chain signals for one identity. None means the lookup could not tell."""
    age_days: Optional[float] = None
    tx_count: Optional[int] = None
    balance_eth: Optional[float] = None

    @property
    def unknown(self) -> list[str]:
        missing = []
        if self.age_days is None:
            missing.append("age_days")
        if self.tx_count is None:
            missing.append("tx_count")
        return missing


@dataclass(frozen=True)
class ReputationReport:
    """Composite reputation of one identity."""
    agent_id: int
    chain: str
    name: str
    owner: str
    metadata: DimensionScore
    health: DimensionScore
    age: DimensionScore
    activity: DimensionScore
    overall: int
    tier: Tier
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "chain": self.chain,
            "name": self.name,
            "owner": self.owner,
            "tier": self.tier.value,
            "scores": {
                "metadata": self.metadata.score,
                "health": self.health.score,
                "age": self.age.score,
                "activity": self.activity.score,
                "overall": self.overall,
            },
            "details": dict(self.details),
        }


# ─── Batch scan ────────────────────────────────────────────────────

@dataclass(frozen=True)
class AgentSummary:
    """Per-identity line of a scan report."""
    agent_id: int
    name: str
    owner: str
    score: int
    risk_level: RiskLevel
    findings_count: int
    critical_findings: int

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "name": self.name,
            "owner": self.owner,
            "score": self.score,
            "risk_level": self.risk_level.value,
            "findings_count": self.findings_count,
            "critical_findings": self.critical_findings,
        }


@dataclass(frozen=True)
class ScanReport:
    """Aggregated result of a batch scan.

    Counts are derived from the summaries, so scanned always equals
    healthy + warning + critical.
    """
    agents: tuple[AgentSummary, ...] = ()
    elapsed_ms: float = 0.0

    @property
    def scanned(self) -> int:
        return len(self.agents)

    @property
    def healthy(self) -> int:
        return self._count(RiskLevel.LOW)

    @property
    def warning(self) -> int:
        return self._count(RiskLevel.MEDIUM)

    @property
    def critical(self) -> int:
        return self._count(RiskLevel.HIGH)

    def _count(self, level: RiskLevel) -> int:
        return sum(1 for a in self.agents if a.risk_level == level)

    def flagged(self) -> list[AgentSummary]:
        """Non-LOW agents, HIGH before MEDIUM, scan order within a level."""
        ordered = sorted(self.agents, key=lambda a: RISK_ORDER[a.risk_level])
        return [a for a in ordered if a.risk_level != RiskLevel.LOW]

    def top(self, n: int = 5) -> list[AgentSummary]:
        """Highest scores first, scan order on ties."""
        return sorted(self.agents, key=lambda a: -a.score)[:n]

    def to_dict(self, top_n: int = 5) -> dict:
        return {
            "scanned": self.scanned,
            "healthy": self.healthy,
            "warning": self.warning,
            "critical": self.critical,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "agents": [a.to_dict() for a in self.agents],
            "flagged": [a.agent_id for a in self.flagged()],
            "top": [a.agent_id for a in self.top(top_n)],
        }
