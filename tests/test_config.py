"""Tests for EngineConfig validation and environment overrides."""

import pytest
from pydantic import ValidationError

from agentguard.config import AUDIT_WEIGHTS, EngineConfig, Penalty
from agentguard.errors import ConfigError


class TestDefaults:
    def test_defaults(self):
        cfg = EngineConfig()
        assert cfg.probe_timeout_ms == 8000
        assert cfg.probe_timeout == 8.0
        assert cfg.lookup_timeout == 10.0
        assert cfg.max_concurrency == 5
        assert cfg.audit_weights == AUDIT_WEIGHTS
        assert cfg.schema_penalty == Penalty(critical=15, warning=5)
        assert cfg.tier_thresholds["Platinum"] == 90

    def test_frozen(self):
        cfg = EngineConfig()
        with pytest.raises(ValidationError):
            cfg.max_concurrency = 10


class TestValidation:
    def test_weights_must_sum_to_one(self):
        with pytest.raises(ConfigError, match="sum to 1.0"):
            EngineConfig.from_dict({"audit_weights": {
                "schema": 0.5, "endpoint": 0.5, "content": 0.5, "reputation": 0.5,
            }})

    def test_weights_keys_exact(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict({"reputation_weights": {"metadata": 1.0}})

    def test_negative_weight(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict({"audit_weights": {
                "schema": -0.25, "endpoint": 0.5, "content": 0.5, "reputation": 0.25,
            }})

    def test_custom_weights_accepted(self):
        cfg = EngineConfig.from_dict({"audit_weights": {
            "schema": 0.1, "endpoint": 0.4, "content": 0.4, "reputation": 0.1,
        }})
        assert cfg.audit_weights["endpoint"] == 0.4

    def test_unknown_tier(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict({"tier_thresholds": {"Diamond": 99}})

    def test_incomplete_rubric(self):
        with pytest.raises(ConfigError, match="missing"):
            EngineConfig.from_dict({"completeness_points": {"name": 50}})

    def test_risk_bands_ordered(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict({"high_risk_below": 80, "medium_risk_below": 60})

    def test_zero_concurrency(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict({"max_concurrency": 0})

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            EngineConfig.from_dict({"probe_timeout_ms": -1})


class TestFromEnv:
    def test_reads_variables(self):
        cfg = EngineConfig.from_env({
            "AGENTGUARD_PROBE_TIMEOUT_MS": "2500",
            "AGENTGUARD_SCAN_CONCURRENCY": "12",
        })
        assert cfg.probe_timeout_ms == 2500
        assert cfg.scan_concurrency == 12
        assert cfg.lookup_timeout_ms == 10000

    def test_blank_ignored(self):
        cfg = EngineConfig.from_env({"AGENTGUARD_MAX_CONCURRENCY": "  "})
        assert cfg.max_concurrency == 5

    def test_overrides_win(self):
        cfg = EngineConfig.from_env({"AGENTGUARD_PROBE_TIMEOUT_MS": "2500"}, probe_timeout_ms=100)
        assert cfg.probe_timeout_ms == 100

    def test_none_override_ignored(self):
        cfg = EngineConfig.from_env({"AGENTGUARD_PROBE_TIMEOUT_MS": "2500"}, probe_timeout_ms=None)
        assert cfg.probe_timeout_ms == 2500

    def test_bad_value(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_env({"AGENTGUARD_LOOKUP_TIMEOUT_MS": "soon"})
