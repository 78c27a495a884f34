"""agentguard.errors: exception hierarchy for the assessment engine.

Transport failures, missing metadata and malformed documents are never
raised; they become failed probe results or findings. Only precondition
violations and collaborator failures surface as exceptions.
"""

from __future__ import annotations


class AgentGuardError(Exception):
    """Base class for all agentguard errors."""


class InvalidIdentityError(AgentGuardError, ValueError):
    """Raised when a caller passes an identity record that fails validation."""

    def __init__(self, message: str, errors: list | None = None):
        self.errors = errors or []
        super().__init__(message)


class ResolutionError(AgentGuardError):
    """Raised when the registry cannot resolve an identity."""

    def __init__(self, agent_id, message: str = ""):
        self.agent_id = agent_id
        super().__init__(message or f"Could not resolve agent #{agent_id}")


class ConfigError(AgentGuardError, ValueError):
    """Raised for an invalid engine configuration or threat-intel file."""
