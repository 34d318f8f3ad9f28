"""
Secret reader: single-key lookup over any supported engine.

Failure order for read_secret(path, key):
    1. Store call fails                 -> StoreUnavailableError
    2. Nothing stored at path           -> SecretNotFoundError
    3. Engine finds no payload          -> store warnings logged, SecretNotFoundError
    4. Payload lacks key / value        -> SecretNotFoundError
    5. Otherwise                        -> value as str

Every failure is raised to the caller; retry policy belongs to the caller.
Secret values are never logged.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from vaultkeeper.client import VaultStoreClient
from vaultkeeper.engines import EngineAdapter
from vaultkeeper.exceptions import SecretNotFoundError, VaultKeeperError
from vaultkeeper.metrics import VaultMetrics

logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "data"


class SecretReader:
    """
    Reads one field of one secret per call.

    Example:
        >>> reader = SecretReader(client, new_engine("kv2"), metrics)
        >>> password = reader.read_secret("secret/data/database", "password")
        >>> reader.read_secret("secret/data/tls")  # key defaults to "data"
    """

    def __init__(
        self,
        client: VaultStoreClient,
        engine: EngineAdapter,
        metrics: VaultMetrics,
    ) -> None:
        self._client = client
        self._engine = engine
        self._metrics = metrics

    def read_secret(self, path: str, key: str = "") -> str:
        """
        Return the value stored under ``key`` in the secret at ``path``.

        Args:
            path: Full store path (e.g., "secret/data/database" for kv2 mounts)
            key: Field name; empty selects DEFAULT_SECRET_KEY

        Returns:
            Field value as a string

        Raises:
            StoreUnavailableError: Store unreachable or rejected the token
            SecretNotFoundError: No secret at path, no payload, or key absent
        """
        if not key:
            key = DEFAULT_SECRET_KEY

        try:
            return self._read(path, key)
        except VaultKeeperError as e:
            self._metrics.inc_secret_read_errors(path, key, e.error_type)
            raise

    def _read(self, path: str, key: str) -> str:
        response = self._client.read_at_path(path)
        # hvac hands back the raw HTTP response when the body is not JSON
        if not isinstance(response, Mapping):
            raise SecretNotFoundError(path, key)

        data = self._engine.get_data(response)
        if data is None:
            for warning in _warnings(response):
                logger.warning(
                    "Store warning on secret read",
                    extra={"secret_path": path, "warning": warning},
                )
            raise SecretNotFoundError(path, key)

        value = _as_field_value(data.get(key))
        if value is None:
            raise SecretNotFoundError(path, key)
        return value


def _warnings(response: Mapping[str, Any]) -> list[str]:
    warnings = response.get("warnings")
    if isinstance(warnings, str):
        return [warnings]
    if isinstance(warnings, Sequence):
        return [str(w) for w in warnings]
    return []


def _as_field_value(value: Any) -> str | None:
    # Nested structures are not flat fields
    if value is None or isinstance(value, (Mapping, list, tuple)):
        return None
    if isinstance(value, str):
        return value
    return str(value)
