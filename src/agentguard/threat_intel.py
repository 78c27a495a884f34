"""agentguard.threat_intel: deny-lists consulted by the security audit.

The auditor only talks to the `ThreatIntel` interface, so lists can be
refreshed from a file (or any other source) without touching the checks.

File format for `StaticThreatIntel.from_file`:

    {
        "suspicious_domains": ["bit.ly", "ngrok.io"],
        "phishing_patterns": ["claim.*airdrop"],
        "blacklisted_addresses": ["0xd90e..."]
    }

Missing keys fall back to the built-in defaults.

A URL is suspicious when it contains a deny-listed domain anywhere, so
shortener lookalikes (`bit.ly.evil.example`) and redirect parameters
(`?u=ngrok.io`) are caught. `HostThreatIntel` narrows this to the parsed
host for callers that prefer fewer false positives.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional, Union
from urllib.parse import urlsplit

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SUSPICIOUS_DOMAINS = (
    # URL shorteners hide the real destination
    "bit.ly", "tinyurl.com", "is.gd", "t.co",
    # Tunnels and local endpoints
    "ngrok.io", "localhost", "127.0.0.1", "0.0.0.0",
)

DEFAULT_PHISHING_PATTERNS = (
    r"metamask.*connect",
    r"wallet.*approve",
    r"claim.*airdrop",
    r"free.*token",
    r"urgent.*action",
)

DEFAULT_BLACKLISTED_ADDRESSES = (
    # Tornado Cash router
    "0xd90e2f925DA726b50C4Ed8D0Fb90Ad053324F31b",
    "0x722122dF12D4e14e13Ac3b6895a86e84145b6967",
)


class ThreatIntel(ABC):
    """Capability interface for deny-list lookups."""

    @abstractmethod
    def suspicious_domains(self, url: str) -> list[str]:
        """Return every deny-list entry matching `url`, in list order."""
        ...

    @abstractmethod
    def phishing_patterns(self, text: str) -> list[str]:
        """Return the source of every phishing pattern found in `text`, in list order."""
        ...

    @abstractmethod
    def is_blacklisted(self, address: str) -> bool:
        ...

    def is_suspicious_domain(self, url: str) -> bool:
        return bool(self.suspicious_domains(url))

    def matches_phishing_pattern(self, text: str) -> bool:
        return bool(self.phishing_patterns(text))


class StaticThreatIntel(ThreatIntel):
    """In-memory deny-lists, defaulting to the built-in entries."""

    def __init__(
        self,
        suspicious_domains: Optional[Iterable[str]] = None,
        phishing_patterns: Optional[Iterable[str]] = None,
        blacklisted_addresses: Optional[Iterable[str]] = None,
    ):
        domains = DEFAULT_SUSPICIOUS_DOMAINS if suspicious_domains is None else suspicious_domains
        patterns = DEFAULT_PHISHING_PATTERNS if phishing_patterns is None else phishing_patterns
        addresses = DEFAULT_BLACKLISTED_ADDRESSES if blacklisted_addresses is None else blacklisted_addresses

        self._domains = tuple(d.strip().lower() for d in domains if d.strip())
        try:
            self._patterns = tuple(re.compile(p, re.IGNORECASE) for p in patterns)
        except re.error as e:
            raise ConfigError(f"Invalid phishing pattern: {e}") from e
        self._addresses = frozenset(a.strip().lower() for a in addresses if a.strip())

    @classmethod
    def from_dict(cls, data: dict) -> "StaticThreatIntel":
        for key in ("suspicious_domains", "phishing_patterns", "blacklisted_addresses"):
            if key in data and not isinstance(data[key], list):
                raise ConfigError(f"'{key}' must be a list")
        return cls(
            suspicious_domains=data.get("suspicious_domains"),
            phishing_patterns=data.get("phishing_patterns"),
            blacklisted_addresses=data.get("blacklisted_addresses"),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StaticThreatIntel":
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Threat intel file {path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Threat intel file {path} must contain a JSON object")
        intel = cls.from_dict(data)
        logger.info("Loaded threat intel from %s (%d domains, %d patterns, %d addresses)",
                    path, len(intel._domains), len(intel._patterns), len(intel._addresses))
        return intel

    def suspicious_domains(self, url: str) -> list[str]:
        url = (url or "").lower()
        return [d for d in self._domains if d in url]

    def phishing_patterns(self, text: str) -> list[str]:
        return [p.pattern for p in self._patterns if p.search(text)]

    def is_blacklisted(self, address: str) -> bool:
        return (address or "").strip().lower() in self._addresses


def host_of(url: str) -> str:
    """Lowercased hostname of `url`, tolerating a missing scheme."""
    try:
        parts = urlsplit(url if "//" in url else "//" + url)
        return (parts.hostname or "").lower()
    except ValueError:
        return ""


class HostThreatIntel(StaticThreatIntel):
    """Deny-list matching on the parsed host only (equality or subdomain)."""

    def suspicious_domains(self, url: str) -> list[str]:
        host = host_of(url or "").rstrip(".")
        if not host:
            return []
        return [d for d in self._domains if host == d or host.endswith("." + d)]
