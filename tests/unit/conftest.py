"""Shared fixtures for vaultkeeper tests."""

from unittest.mock import MagicMock

import pytest
from prometheus_client import CollectorRegistry

from vaultkeeper.client import VaultStoreClient, _read_health
from vaultkeeper.metrics import VaultMetrics
from vaultkeeper.session import Session

VAULT_URL = "https://vault.example.com:8200"


@pytest.fixture(autouse=True)
def fast_retry_sleep(monkeypatch):
    """Eliminate health-check retry backoff delays to keep the suite fast."""
    monkeypatch.setattr(_read_health.retry, "sleep", lambda *args, **kwargs: None)


@pytest.fixture()
def session() -> Session:
    return Session(
        address=VAULT_URL,
        token="s.test_token",
        cluster_name="vault-cluster-test",
        cluster_id="cluster-id-123",
        version="1.15.2",
    )


@pytest.fixture()
def registry() -> CollectorRegistry:
    """Fresh registry so metric values never leak between tests."""
    return CollectorRegistry()


@pytest.fixture()
def metrics(session, registry) -> VaultMetrics:
    return VaultMetrics(session, engine="kv2", registry=registry)


@pytest.fixture()
def mock_store(session):
    """Store client double with the VaultStoreClient interface."""
    store = MagicMock(spec=VaultStoreClient)
    store.session = session
    return store


@pytest.fixture()
def mock_hvac_client():
    """Create a mock hvac client for testing."""
    client = MagicMock()
    client.sys.read_health_status.return_value = {
        "initialized": True,
        "sealed": False,
        "standby": False,
        "version": "1.15.2",
        "cluster_name": "vault-cluster-test",
        "cluster_id": "cluster-id-123",
    }
    client.auth.token.lookup_self.return_value = {"data": {"ttl": 3600, "renewable": True}}
    client.auth.token.renew_self.return_value = {"auth": {"client_token": "s.test_token"}}
    return client
