"""agentguard: health, security and reputation assessment for registered AI agent identities."""

from agentguard.auditor import SecurityAuditor, risk_level_for
from agentguard.config import EngineConfig, Penalty
from agentguard.engine import AssessmentEngine
from agentguard.errors import AgentGuardError, ConfigError, InvalidIdentityError, ResolutionError
from agentguard.models import (
    AgentSummary, AuditReport, ChainSignals, DimensionScore,
    EndpointCheckResult, Finding, IdentityRecord, Protocol,
    ReputationReport, RiskLevel, ScanReport, ServiceEndpoint,
    Severity, Tier, VerificationResult, VerificationStatus,
)
from agentguard.probe import EndpointProbe
from agentguard.protocols import (
    DeclaredProtocolInference, HeuristicProtocolInference,
    ProtocolInference, infer_protocol,
)
from agentguard.registry import ChainActivity, RegistryReader, StaticRegistry
from agentguard.reputation import ReputationScorer, tier_for
from agentguard.scanner import BatchScanner
from agentguard.threat_intel import HostThreatIntel, StaticThreatIntel, ThreatIntel

__version__ = "0.1.0"

__all__ = [
    "AssessmentEngine",
    "EngineConfig",
    "Penalty",
    "EndpointProbe",
    "SecurityAuditor",
    "ReputationScorer",
    "BatchScanner",
    "ThreatIntel",
    "StaticThreatIntel",
    "HostThreatIntel",
    "ProtocolInference",
    "HeuristicProtocolInference",
    "DeclaredProtocolInference",
    "infer_protocol",
    "RegistryReader",
    "ChainActivity",
    "StaticRegistry",
    "IdentityRecord",
    "ServiceEndpoint",
    "EndpointCheckResult",
    "VerificationResult",
    "VerificationStatus",
    "DimensionScore",
    "Finding",
    "AuditReport",
    "ChainSignals",
    "ReputationReport",
    "AgentSummary",
    "ScanReport",
    "Protocol",
    "Severity",
    "RiskLevel",
    "Tier",
    "risk_level_for",
    "tier_for",
    "AgentGuardError",
    "InvalidIdentityError",
    "ResolutionError",
    "ConfigError",
]
