"""Tests for the deny-list lookups used by the auditor."""

import json

import pytest

from agentguard.errors import ConfigError
from agentguard.threat_intel import HostThreatIntel, StaticThreatIntel, host_of

from conftest import BLACKLISTED


@pytest.fixture
def intel():
    return StaticThreatIntel()


class TestDomains:
    @pytest.mark.parametrize("url,expected", [
        ("https://bit.ly/x", ["bit.ly"]),
        ("HTTPS://BIT.LY/x", ["bit.ly"]),
        ("https://abc.ngrok.io", ["ngrok.io"]),
        ("https://bit.ly.evil.example/x", ["bit.ly"]),
        ("https://evil.example/r?u=ngrok.io", ["ngrok.io"]),
        ("http://localhost:8080/?next=tinyurl.com", ["tinyurl.com", "localhost"]),
        ("https://example.com", []),
        ("", []),
    ])
    def test_url_containment(self, intel, url, expected):
        assert intel.suspicious_domains(url) == expected
        assert intel.is_suspicious_domain(url) is bool(expected)

    def test_custom_list_replaces_defaults(self):
        intel = StaticThreatIntel(suspicious_domains=["evil.example"])
        assert intel.suspicious_domains("https://api.evil.example") == ["evil.example"]
        assert intel.suspicious_domains("https://bit.ly") == []


class TestHostMatching:
    @pytest.mark.parametrize("url,expected", [
        ("https://bit.ly/x", ["bit.ly"]),
        ("https://abc.ngrok.io.", ["ngrok.io"]),
        ("https://bit.ly.evil.example/x", []),
        ("https://evil.example/r?u=ngrok.io", []),
        ("https://notbit.ly", []),
        ("", []),
    ])
    def test_host_only(self, url, expected):
        assert HostThreatIntel().suspicious_domains(url) == expected

    def test_loads_from_file(self, tmp_path):
        path = tmp_path / "intel.json"
        path.write_text(json.dumps({"suspicious_domains": ["evil.example"]}))
        intel = HostThreatIntel.from_file(path)
        assert isinstance(intel, HostThreatIntel)
        assert intel.suspicious_domains("https://cdn.evil.example") == ["evil.example"]


@pytest.mark.parametrize("url,host", [
    ("https://Agent.Example:8443/path", "agent.example"),
    ("agent.example/api", "agent.example"),
    ("http://[::1]:8080/", "::1"),
    ("", ""),
])
def test_host_of(url, host):
    assert host_of(url) == host


class TestPatterns:
    def test_matches_in_list_order(self, intel):
        text = "free token! claim your airdrop now"
        assert intel.phishing_patterns(text) == [r"claim.*airdrop", r"free.*token"]

    def test_case_insensitive(self, intel):
        assert intel.matches_phishing_pattern("URGENT ACTION required")

    def test_clean_text(self, intel):
        assert intel.phishing_patterns("weather forecasts for any city") == []

    def test_bad_regex(self):
        with pytest.raises(ConfigError, match="Invalid phishing pattern"):
            StaticThreatIntel(phishing_patterns=["("])


class TestAddresses:
    def test_blacklisted_case_insensitive(self, intel):
        assert intel.is_blacklisted(BLACKLISTED)
        assert intel.is_blacklisted(BLACKLISTED.lower())
        assert intel.is_blacklisted(BLACKLISTED.upper().replace("0X", "0x"))

    def test_clean_address(self, intel):
        assert not intel.is_blacklisted("0x1111111111111111111111111111111111111111")
        assert not intel.is_blacklisted("")


class TestLoading:
    def test_from_dict_partial(self):
        intel = StaticThreatIntel.from_dict({"blacklisted_addresses": ["0xABC"]})
        assert intel.is_blacklisted("0xabc")
        assert not intel.is_blacklisted(BLACKLISTED)
        # Missing keys keep defaults
        assert intel.suspicious_domains("https://bit.ly/x") == ["bit.ly"]

    def test_from_dict_rejects_non_list(self):
        with pytest.raises(ConfigError, match="must be a list"):
            StaticThreatIntel.from_dict({"suspicious_domains": "bit.ly"})

    def test_from_file(self, tmp_path):
        path = tmp_path / "intel.json"
        path.write_text(json.dumps({"phishing_patterns": ["seed.*phrase"]}))
        intel = StaticThreatIntel.from_file(path)
        assert intel.phishing_patterns("enter your seed phrase") == ["seed.*phrase"]

    def test_from_file_invalid_json(self, tmp_path):
        path = tmp_path / "intel.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="not valid JSON"):
            StaticThreatIntel.from_file(path)

    def test_from_file_not_object(self, tmp_path):
        path = tmp_path / "intel.json"
        path.write_text("[]")
        with pytest.raises(ConfigError, match="JSON object"):
            StaticThreatIntel.from_file(path)
