"""
Startup wiring: connect, select the engine, start the renewer.

Usage Example:
    >>> import threading
    >>> from vaultkeeper.backend import start_supervisor
    >>> from vaultkeeper.config import Settings
    >>> stop_event = threading.Event()
    >>> with start_supervisor(Settings(), stop_event) as backend:
    ...     db_password = backend.read_secret("secret/data/database", "password")
"""

from __future__ import annotations

import logging
import threading
from types import TracebackType

from prometheus_client import CollectorRegistry

from vaultkeeper.client import VaultStoreClient
from vaultkeeper.config import Settings
from vaultkeeper.engines import new_engine
from vaultkeeper.metrics import VaultMetrics
from vaultkeeper.reader import SecretReader
from vaultkeeper.renewer import TokenRenewer
from vaultkeeper.session import Session

logger = logging.getLogger(__name__)


class VaultBackend:
    """Connected store with a running token renewer and a secret reader."""

    def __init__(
        self,
        client: VaultStoreClient,
        reader: SecretReader,
        renewer: TokenRenewer,
        stop_event: threading.Event,
        metrics: VaultMetrics,
    ) -> None:
        self._client = client
        self._reader = reader
        self.renewer = renewer
        self.metrics = metrics
        self._stop_event = stop_event

    @property
    def session(self) -> Session:
        return self._client.session

    def read_secret(self, path: str, key: str = "") -> str:
        """See SecretReader.read_secret."""
        return self._reader.read_secret(path, key)

    def close(self, timeout: float | None = 5.0) -> None:
        """Signal the renewer to stop and wait for its thread."""
        self._stop_event.set()
        thread = self.renewer.thread
        if thread is not None:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Token renewer did not stop within timeout", extra={"timeout": timeout})

    def __enter__(self) -> VaultBackend:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def _connect(settings: Settings) -> VaultStoreClient:
    return VaultStoreClient.connect(
        settings.vault_addr,
        settings.vault_token.get_secret_value(),
        timeout=settings.vault_timeout,
        verify=settings.vault_verify,
    )


def start_supervisor(
    settings: Settings,
    stop_event: threading.Event,
    metrics: VaultMetrics | None = None,
    registry: CollectorRegistry | None = None,
) -> VaultBackend:
    """
    Connect to the store and start background token supervision.

    Each call builds its own metrics, so a later call in the same process can
    start a fresh supervisor after a previous run has stopped.

    Args:
        settings: Store address, token, engine and renewal policy
        stop_event: Setting this event stops the renewer
        metrics: Metrics recorder; built for the connected session if None
        registry: Registry for the metrics built here (default: a new one per call)

    Returns:
        VaultBackend whose renewer is already running

    Raises:
        ConfigurationError: Unknown engine or invalid renewal policy
        StoreUnavailableError: Store unreachable
    """
    # Validate configuration before any network call
    engine = new_engine(settings.vault_engine)
    policy = settings.renewal_policy()

    client = _connect(settings)
    if metrics is None:
        metrics = VaultMetrics(client.session, engine.engine.value, registry=registry)

    renewer = TokenRenewer(client, policy, metrics)
    renewer.start(stop_event)
    reader = SecretReader(client, engine, metrics)
    return VaultBackend(client, reader, renewer, stop_event, metrics)


def create_reader(settings: Settings, registry: CollectorRegistry | None = None) -> SecretReader:
    """
    Connect to the store and return a reader without starting a renewer.

    Meant for one-shot reads where the token outlives the process.

    Raises:
        ConfigurationError: Unknown engine
        StoreUnavailableError: Store unreachable
    """
    engine = new_engine(settings.vault_engine)
    client = _connect(settings)
    metrics = VaultMetrics(client.session, engine.engine.value, registry=registry)
    return SecretReader(client, engine, metrics)
