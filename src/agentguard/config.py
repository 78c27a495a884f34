"""agentguard.config: tunable scoring policy and network bounds.

All weights, thresholds and rubric constants live in one immutable
`EngineConfig` so the policy can be changed without touching check logic.

Environment overrides (see `EngineConfig.from_env`):
    AGENTGUARD_PROBE_TIMEOUT_MS   - per-endpoint probe bound (default 8000)
    AGENTGUARD_LOOKUP_TIMEOUT_MS  - per-lookup bound for chain signals (default 10000)
    AGENTGUARD_MAX_CONCURRENCY    - simultaneous endpoint probes (default 5)
    AGENTGUARD_SCAN_CONCURRENCY   - simultaneous identities in a scan (default 5)
"""

from __future__ import annotations

import math
import os
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError
from .models import Tier

AUDIT_WEIGHTS = {
    "schema": 0.25,
    "endpoint": 0.30,
    "content": 0.30,
    "reputation": 0.15,
}

REPUTATION_WEIGHTS = {
    "metadata": 0.25,
    "health": 0.30,
    "age": 0.20,
    "activity": 0.25,
}

TIER_THRESHOLDS = {
    "Platinum": 90,
    "Gold": 75,
    "Silver": 50,
    "Bronze": 25,
}

COMPLETENESS_POINTS = {
    "name": 15,
    "description": 15,
    "long_description": 10,
    "active": 10,
    "x402Support": 10,
    "has_service": 20,
    "multiple_services": 10,
    "image": 5,
    "version": 5,
}

_ENV_VARS = {
    "probe_timeout_ms": "AGENTGUARD_PROBE_TIMEOUT_MS",
    "lookup_timeout_ms": "AGENTGUARD_LOOKUP_TIMEOUT_MS",
    "max_concurrency": "AGENTGUARD_MAX_CONCURRENCY",
    "scan_concurrency": "AGENTGUARD_SCAN_CONCURRENCY",
}


def _check_weights(weights: dict[str, float], expected: dict[str, float]) -> dict[str, float]:
    if set(weights) != set(expected):
        raise ValueError(f"weights must have exactly the keys {sorted(expected)}")
    if any(w < 0 for w in weights.values()):
        raise ValueError("weights must be non-negative")
    if not math.isclose(sum(weights.values()), 1.0, abs_tol=1e-9):
        raise ValueError(f"weights must sum to 1.0, got {sum(weights.values())}")
    return weights


class Penalty(BaseModel):
    """Points deducted from 100 per critical issue and per warning."""
    model_config = ConfigDict(frozen=True)

    critical: int = Field(..., ge=0)
    warning: int = Field(0, ge=0)


class EngineConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Network bounds
    probe_timeout_ms: int = Field(8000, gt=0)
    lookup_timeout_ms: int = Field(10000, gt=0)
    max_concurrency: int = Field(5, ge=1)
    scan_concurrency: int = Field(5, ge=1)

    # Security audit
    audit_weights: dict[str, float] = Field(default_factory=lambda: dict(AUDIT_WEIGHTS))
    schema_penalty: Penalty = Penalty(critical=15, warning=5)
    endpoint_penalty: Penalty = Penalty(critical=20, warning=10)
    content_penalty: Penalty = Penalty(critical=25, warning=10)
    max_name_length: int = Field(200, gt=0)
    high_risk_below: int = Field(50, ge=0, le=100)
    medium_risk_below: int = Field(75, ge=0, le=100)

    # Reputation
    reputation_weights: dict[str, float] = Field(default_factory=lambda: dict(REPUTATION_WEIGHTS))
    completeness_points: dict[str, int] = Field(default_factory=lambda: dict(COMPLETENESS_POINTS))
    long_description_chars: int = Field(50, ge=0)
    age_saturation_days: float = Field(90.0, gt=0)
    activity_log_scale: float = Field(33.0, gt=0)
    tier_thresholds: dict[str, int] = Field(default_factory=lambda: dict(TIER_THRESHOLDS))

    @field_validator("audit_weights")
    @classmethod
    def audit_weights_valid(cls, v: dict[str, float]) -> dict[str, float]:
        return _check_weights(v, AUDIT_WEIGHTS)

    @field_validator("reputation_weights")
    @classmethod
    def reputation_weights_valid(cls, v: dict[str, float]) -> dict[str, float]:
        return _check_weights(v, REPUTATION_WEIGHTS)

    @field_validator("completeness_points")
    @classmethod
    def rubric_complete(cls, v: dict[str, int]) -> dict[str, int]:
        missing = set(COMPLETENESS_POINTS) - set(v)
        if missing:
            raise ValueError(f"completeness_points missing {sorted(missing)}")
        return v

    @field_validator("tier_thresholds")
    @classmethod
    def tiers_known(cls, v: dict[str, int]) -> dict[str, int]:
        known = {t.value for t in Tier} - {Tier.UNRATED.value}
        unknown = set(v) - known
        if unknown:
            raise ValueError(f"unknown tiers {sorted(unknown)}")
        return v

    @model_validator(mode="after")
    def risk_bands_ordered(self) -> "EngineConfig":
        if self.high_risk_below > self.medium_risk_below:
            raise ValueError("high_risk_below must not exceed medium_risk_below")
        return self

    @property
    def probe_timeout(self) -> float:
        return self.probe_timeout_ms / 1000

    @property
    def lookup_timeout(self) -> float:
        return self.lookup_timeout_ms / 1000

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise ConfigError(f"Invalid engine configuration: {e}") from e

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "EngineConfig":
        """Build a config from AGENTGUARD_* variables; explicit overrides win."""
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for field_name, var in _ENV_VARS.items():
            raw = env.get(var, "").strip()
            if raw:
                data[field_name] = raw
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)
