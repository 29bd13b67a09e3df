"""Pytest configuration and shared fixtures.

Organization:
    - Environment Fixtures: isolate settings from the host environment
    - Agent Fixtures: in-memory agent transport and a client bound to it

Every test runs with an empty config directory and no CONSUL_/LOG_
environment variables, so settings come from defaults unless a test sets
them explicitly.
"""

from __future__ import annotations

import os

import pytest

from consul_agent.agent.client import ConsulAgentClient
from consul_agent.agent.mock_transport import MockAgentTransport
from consul_agent.core.settings import clear_settings_cache

# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at an empty config directory and clear cached loaders.

    Yields:
        The config directory; tests may write consul.yaml or logging.yaml here.
    """
    for name in list(os.environ):
        if name.startswith(("CONSUL_", "LOG_", "LOGGING_")):
            monkeypatch.delenv(name, raising=False)

    config_dir = tmp_path / "conf"
    config_dir.mkdir()
    monkeypatch.setenv("CONSUL_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("LOGGING_CONFIG_DIR", str(config_dir))
    # Keep a stray .env in the working directory out of the tests
    monkeypatch.chdir(tmp_path)

    clear_settings_cache()
    yield config_dir
    clear_settings_cache()


# ============================================================================
# Agent Fixtures
# ============================================================================


@pytest.fixture
def mock_transport() -> MockAgentTransport:
    """In-memory agent reporting node name "node-A"."""
    return MockAgentTransport(node_name="node-A")


@pytest.fixture
def agent(mock_transport) -> ConsulAgentClient:
    """Client bound to the in-memory agent."""
    return ConsulAgentClient(transport=mock_transport)
