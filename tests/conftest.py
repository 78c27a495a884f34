"""Shared fixtures for agentguard tests."""
import os
import sys

import pytest

# Ensure src is on path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from agentguard.models import IdentityRecord

OWNER = "0x1111111111111111111111111111111111111111"
BLACKLISTED = "0xd90e2f925DA726b50C4Ed8D0Fb90Ad053324F31b"


@pytest.fixture
def good_metadata():
    """A complete, clean registration document."""
    return {
        "name": "WeatherBot",
        "description": "Answers weather questions for any city using public forecast data feeds.",
        "active": True,
        "x402Support": False,
        "image": "https://weatherbot.example/logo.png",
        "version": "1.2.0",
        "services": [
            {"name": "web", "endpoint": "https://weatherbot.example/api"},
            {"name": "mcp", "endpoint": "https://weatherbot.example/mcp"},
        ],
    }


@pytest.fixture
def make_record():
    def factory(agent_id=1, owner=OWNER, metadata=None, chain="base"):
        return IdentityRecord(id=agent_id, owner=owner, metadata=metadata, chain=chain)
    return factory


@pytest.fixture(autouse=True)
def _isolate_agentguard_logger():
    """Restore the agentguard logger after each test so handlers bound to a
    closed capture stream do not leak between tests."""
    import logging
    logger = logging.getLogger("agentguard")
    saved_handlers, saved_level = logger.handlers[:], logger.level
    logger.handlers = []
    yield
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)
