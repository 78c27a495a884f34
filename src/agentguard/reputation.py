"""agentguard.reputation: composite reputation score for an identity.

Sub-scores (0-100) and default weights:

    metadata   25%  - completeness of the registration document
    health     30%  - share of declared endpoints that answer
    age        20%  - days since registration, saturating at 90
    activity   25%  - owner transaction count, log-scaled

Age and activity come from the chain-activity collaborator. A signal the
collaborator could not determine is carried as None: it scores 0 like a
confirmed zero, but is reported under details["unknown_signals"].
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

from .config import EngineConfig
from .models import (
    ChainSignals,
    DimensionScore,
    IdentityRecord,
    ReputationReport,
    Tier,
    VerificationStatus,
    as_document,
    round_half_up,
)
from .probe import EndpointProbe

logger = logging.getLogger(__name__)


def tier_for(overall: int, config: Optional[EngineConfig] = None) -> Tier:
    config = config or EngineConfig()
    for name, minimum in sorted(config.tier_thresholds.items(), key=lambda kv: -kv[1]):
        if overall >= minimum:
            return Tier(name)
    return Tier.UNRATED


def age_score(age_days: Optional[float], config: Optional[EngineConfig] = None) -> int:
    config = config or EngineConfig()
    if age_days is None or age_days <= 0:
        return 0
    return min(100, round_half_up(age_days / config.age_saturation_days * 100))


def activity_score(tx_count: Optional[int], config: Optional[EngineConfig] = None) -> int:
    """log10 scale: 10 txns -> 33, 100 -> 66, 1000 -> 99."""
    config = config or EngineConfig()
    if tx_count is None:
        return 0
    return min(100, round_half_up(math.log10(max(1, tx_count)) * config.activity_log_scale))


class ReputationScorer:
    def __init__(self, config: Optional[EngineConfig] = None,
                 probe: Optional[EndpointProbe] = None):
        self.config = config or EngineConfig()
        self.probe = probe or EndpointProbe(self.config)

    def score_metadata(self, metadata: Any) -> DimensionScore:
        """Additive completeness rubric, capped at 100."""
        metadata = as_document(metadata)
        if not metadata:
            return DimensionScore(0, warnings=("No metadata document",))

        points = self.config.completeness_points
        services = metadata.get("services")
        n_services = len(services) if isinstance(services, list) else 0
        description = metadata.get("description")

        score = 0
        if metadata.get("name"):
            score += points["name"]
        if description:
            score += points["description"]
        if isinstance(description, str) and len(description) > self.config.long_description_chars:
            score += points["long_description"]
        # Presence counts, whatever the value
        if "active" in metadata:
            score += points["active"]
        if "x402Support" in metadata:
            score += points["x402Support"]
        if n_services > 0:
            score += points["has_service"]
        if n_services > 1:
            score += points["multiple_services"]
        if metadata.get("image"):
            score += points["image"]
        if metadata.get("version"):
            score += points["version"]

        return DimensionScore(min(score, 100))

    async def score_health(self, record: IdentityRecord) -> tuple[DimensionScore, Optional[str]]:
        """Endpoint health; a failed verification counts as 0, never raises."""
        try:
            result = await self.probe.verify_identity(record)
        except Exception as e:
            logger.warning("Health check failed for agent #%s: %s", record.id, e,
                           extra={"agent_id": record.id})
            return DimensionScore(0, issues=(f"Endpoint verification failed: {e}",)), None

        warnings: tuple[str, ...] = ()
        if result.status == VerificationStatus.DEGRADED:
            down = len(result.endpoints) - result.alive
            warnings = (f"{down} of {len(result.endpoints)} endpoint(s) unreachable",)
        elif result.status == VerificationStatus.OFFLINE:
            warnings = ("All declared endpoints are unreachable",)
        elif result.status == VerificationStatus.NO_ENDPOINTS:
            warnings = ("No service endpoints declared",)
        return DimensionScore(result.score, warnings=warnings), result.status.value

    def overall_score(self, metadata: int, health: int, age: int, activity: int) -> int:
        w = self.config.reputation_weights
        return round_half_up(
            metadata * w["metadata"]
            + health * w["health"]
            + age * w["age"]
            + activity * w["activity"]
        )

    async def score(self, record: Any, signals: Optional[ChainSignals] = None) -> ReputationReport:
        record = IdentityRecord.coerce(record)
        signals = signals or ChainSignals()

        metadata = self.score_metadata(record.metadata)
        health, health_status = await self.score_health(record)
        age = DimensionScore(
            age_score(signals.age_days, self.config),
            warnings=("Registration age unknown",) if signals.age_days is None else (),
        )
        activity = DimensionScore(
            activity_score(signals.tx_count, self.config),
            warnings=("Owner transaction count unknown",) if signals.tx_count is None else (),
        )

        overall = self.overall_score(metadata.score, health.score, age.score, activity.score)
        details = {
            "age_days": round(signals.age_days, 1) if signals.age_days is not None else None,
            "owner_tx_count": signals.tx_count,
            "owner_balance": round(signals.balance_eth, 4) if signals.balance_eth is not None else None,
            "services_count": len(record.services),
            "health_status": health_status,
            "unknown_signals": signals.unknown,
        }

        logger.debug("Scored agent #%s: %d/100", record.id, overall, extra={"agent_id": record.id})
        return ReputationReport(
            agent_id=record.id,
            chain=record.chain,
            name=record.display_name,
            owner=record.owner,
            metadata=metadata,
            health=health,
            age=age,
            activity=activity,
            overall=overall,
            tier=tier_for(overall, self.config),
            details=details,
        )
