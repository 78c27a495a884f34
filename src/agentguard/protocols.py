"""agentguard.protocols: wire-protocol inference for declared services.

Registration documents do not reliably say how to talk to a service, so the
default is a substring heuristic over the service name and endpoint.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from .models import Protocol, ServiceEndpoint

_KNOWN = frozenset(p.value for p in Protocol)


def infer_protocol(name: Optional[str], endpoint: Optional[str]) -> Protocol:
    """Best-effort guess: "mcp" wins over "a2a", anything else is plain http."""
    name = name.lower() if isinstance(name, str) else ""
    endpoint = endpoint.lower() if isinstance(endpoint, str) else ""
    if "mcp" in name or "mcp" in endpoint:
        return Protocol.MCP
    if "a2a" in name or "a2a" in endpoint:
        return Protocol.A2A
    return Protocol.HTTP


class ProtocolInference(ABC):
    @abstractmethod
    def infer(self, service: dict) -> Protocol:
        ...

    def endpoint_for(self, service: Any) -> Optional[ServiceEndpoint]:
        """Build a ServiceEndpoint, or None when the service has no usable endpoint."""
        if not isinstance(service, dict):
            return None
        endpoint = service.get("endpoint")
        if not isinstance(endpoint, str) or not endpoint:
            return None
        name = service.get("name")
        return ServiceEndpoint(
            endpoint=endpoint,
            protocol=self.infer(service),
            name=name if isinstance(name, str) and name else None,
        )


class HeuristicProtocolInference(ProtocolInference):
    """Ignores any self-declared protocol; the document is untrusted."""

    def infer(self, service: dict) -> Protocol:
        return infer_protocol(service.get("name"), service.get("endpoint"))


class DeclaredProtocolInference(HeuristicProtocolInference):
    """Prefers an explicit `protocol` field when it names a known protocol."""

    def infer(self, service: dict) -> Protocol:
        declared = service.get("protocol")
        if isinstance(declared, str) and declared.strip().lower() in _KNOWN:
            return Protocol(declared.strip().lower())
        return super().infer(service)
