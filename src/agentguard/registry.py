"""agentguard.registry: interfaces to the on-chain collaborators.

The engine never talks to a chain itself. Identity resolution and activity
lookups go through `RegistryReader` and `ChainActivity`; `StaticRegistry`
implements both from a JSON fixture for offline use and tests.

Fixture format:

    {
        "identities": [
            {"id": 1, "owner": "0xabc...", "chain": "base", "metadata": {...}}
        ],
        "activity": {"1": {"age_days": 42.5}},
        "owners": {"0xabc...": {"tx_count": 120, "balance_eth": 0.5}}
    }

A bare JSON list is read as the "identities" array. Identities are listed
in registration order (oldest first).
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from .errors import ConfigError, ResolutionError
from .models import IdentityRecord

logger = logging.getLogger(__name__)


class RegistryReader(ABC):
    """Resolves identity records from the registry."""

    @abstractmethod
    async def get_identity(self, agent_id: int) -> IdentityRecord:
        """Resolve one identity. Raises ResolutionError (or any error) on failure."""
        ...

    @abstractmethod
    async def recent_registrations(self, limit: int = 20) -> list[int]:
        """Ids of the most recent registrations, newest first."""
        ...


class ChainActivity(ABC):
    """On-chain signals used by reputation scoring. None means unknown."""

    @abstractmethod
    async def registration_age_days(self, record: IdentityRecord) -> Optional[float]:
        ...

    @abstractmethod
    async def owner_tx_count(self, owner: str, chain: str = "base") -> Optional[int]:
        ...

    async def owner_balance_eth(self, owner: str, chain: str = "base") -> Optional[float]:
        return None


class StaticRegistry(RegistryReader, ChainActivity):
    """In-memory registry and activity source.

    Entries are validated on resolution, not on load, so one malformed
    entry fails only its own lookup.
    """

    def __init__(
        self,
        identities: Iterable[Union[IdentityRecord, dict]] = (),
        activity: Optional[dict] = None,
        owners: Optional[dict] = None,
    ):
        self._order: list[Any] = []
        self._entries: dict[Any, Union[IdentityRecord, dict]] = {}
        for entry in identities:
            agent_id = entry.id if isinstance(entry, IdentityRecord) else entry.get("id")
            if agent_id not in self._entries:
                self._order.append(agent_id)
            self._entries[agent_id] = entry
        self._activity = {str(k): v for k, v in (activity or {}).items()}
        self._owners = {str(k).lower(): v for k, v in (owners or {}).items()}

    @classmethod
    def from_dict(cls, data: Union[dict, list]) -> "StaticRegistry":
        if isinstance(data, list):
            data = {"identities": data}
        if not isinstance(data, dict) or not isinstance(data.get("identities", []), list):
            raise ConfigError("Registry fixture must be a list or an object with an 'identities' list")
        return cls(
            identities=[e for e in data.get("identities", []) if isinstance(e, dict)],
            activity=data.get("activity"),
            owners=data.get("owners"),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StaticRegistry":
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Registry fixture {path} is not valid JSON: {e}") from e
        registry = cls.from_dict(data)
        logger.info("Loaded %d identities from %s", len(registry), path)
        return registry

    def __len__(self) -> int:
        return len(self._order)

    async def get_identity(self, agent_id: int) -> IdentityRecord:
        if agent_id not in self._entries:
            raise ResolutionError(agent_id)
        return IdentityRecord.coerce(self._entries[agent_id])

    async def recent_registrations(self, limit: int = 20) -> list[int]:
        if limit <= 0:
            return []
        return list(reversed(self._order[-limit:]))

    async def registration_age_days(self, record: IdentityRecord) -> Optional[float]:
        value = self._activity.get(str(record.id), {}).get("age_days")
        return float(value) if value is not None else None

    async def owner_tx_count(self, owner: str, chain: str = "base") -> Optional[int]:
        value = self._owners.get(owner.lower(), {}).get("tx_count")
        return int(value) if value is not None else None

    async def owner_balance_eth(self, owner: str, chain: str = "base") -> Optional[float]:
        value = self._owners.get(owner.lower(), {}).get("balance_eth")
        return float(value) if value is not None else None
