"""
Vault token supervision and secret reads.

This package keeps one short-lived Vault token alive in the background and
gives callers one key-lookup contract across secret engine formats.

Architecture:
    - VaultStoreClient: hvac-backed lookup/renew/read calls (client.py)
    - TokenRenewer: background TTL polling and renewal (renewer.py)
    - SecretReader: read_secret(path, key) over an engine adapter (reader.py)
    - EngineAdapter: kv1 / kv2 payload extraction (engines.py)
    - start_supervisor(): wires all of the above from Settings (backend.py)

Quick Start:
    >>> import threading
    >>> from vaultkeeper import Settings, start_supervisor
    >>> backend = start_supervisor(Settings(), threading.Event())
    >>> db_password = backend.read_secret("secret/data/database", "password")
    >>> backend.close()
"""

from vaultkeeper.backend import VaultBackend, create_reader, start_supervisor
from vaultkeeper.config import Settings
from vaultkeeper.engines import EngineAdapter, SecretEngine, new_engine
from vaultkeeper.exceptions import (
    ConfigurationError,
    SecretNotFoundError,
    StoreUnavailableError,
    TokenNotRenewableError,
    TTLDecodeError,
    VaultKeeperError,
)
from vaultkeeper.reader import DEFAULT_SECRET_KEY, SecretReader
from vaultkeeper.renewer import RenewalPolicy, RenewerState, StopReason, TokenRenewer

__all__ = [
    # Wiring
    "start_supervisor",
    "create_reader",
    "VaultBackend",
    "Settings",
    # Core
    "TokenRenewer",
    "RenewalPolicy",
    "RenewerState",
    "StopReason",
    "SecretReader",
    "DEFAULT_SECRET_KEY",
    "EngineAdapter",
    "SecretEngine",
    "new_engine",
    # Exceptions
    "VaultKeeperError",
    "StoreUnavailableError",
    "TokenNotRenewableError",
    "SecretNotFoundError",
    "TTLDecodeError",
    "ConfigurationError",
]
