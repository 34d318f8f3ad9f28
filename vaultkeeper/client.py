"""
HashiCorp Vault store client.

VaultStoreClient is the only module that talks to hvac. It exposes the three
calls the core needs (token lookup, token renewal, read at path) and turns
every hvac/requests failure into StoreUnavailableError, so callers never
inspect store-specific error codes.

Retries:
    Only the startup health probe is retried (3 attempts, exponential
    backoff, VaultDown and connection errors). Lookup, renewal and reads
    are single attempts.

Timeouts:
    Every HTTP call is bounded by the hvac client timeout, which is what
    keeps a renewal call from blocking the renewer indefinitely.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import hvac
import requests
from hvac.exceptions import VaultDown, VaultError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from vaultkeeper.exceptions import StoreUnavailableError
from vaultkeeper.session import Session, SessionSlot
from vaultkeeper.token import TokenStatus

logger = logging.getLogger(__name__)

_STORE_ERRORS = (VaultError, requests.exceptions.RequestException)


class VaultStoreClient:
    """
    Authenticated client for one Vault session.

    Example:
        >>> client = VaultStoreClient.connect("https://vault.company.com:8200", "s.abc123")
        >>> client.lookup_current_token()
        TokenStatus(ttl=2764, renewable=True)
        >>> client.read_at_path("secret/data/database")
        {'data': {'data': {'password': '...'}, 'metadata': {...}}, ...}
    """

    def __init__(self, hvac_client: hvac.Client, session: Session) -> None:
        self._client = hvac_client
        self._slot = SessionSlot(session)

    @classmethod
    def connect(
        cls,
        address: str,
        token: str,
        timeout: float = 30.0,
        verify: bool = True,
    ) -> VaultStoreClient:
        """
        Build the hvac client and verify the store is reachable.

        Args:
            address: Store URL (e.g., "https://vault.company.com:8200")
            token: Initial token
            timeout: Per-request HTTP timeout in seconds
            verify: Verify TLS certificates

        Returns:
            Connected client holding a Session with the cluster description

        Raises:
            StoreUnavailableError: Store unreachable after retries, or health check rejected
        """
        hvac_client = hvac.Client(url=address, token=token, timeout=timeout, verify=verify)
        try:
            health = _read_health(hvac_client)
        except _STORE_ERRORS as e:
            logger.debug(
                "Could not contact Vault",
                extra={"vault_url": address, "error": str(e), "error_type": type(e).__name__},
            )
            raise StoreUnavailableError("health check", f"could not contact Vault at {address}: {e}") from e

        session = Session(
            address=address,
            token=token,
            cluster_name=str(health.get("cluster_name") or ""),
            cluster_id=str(health.get("cluster_id") or ""),
            version=str(health.get("version") or ""),
        )
        logger.info(
            "Connected to Vault successfully",
            extra={
                "vault_url": address,
                "cluster_name": session.cluster_name,
                "vault_version": session.version,
            },
        )
        return cls(hvac_client, session)

    @property
    def session(self) -> Session:
        return self._slot.get()

    def lookup_current_token(self) -> TokenStatus:
        """
        Look up metadata of the current token.

        Raises:
            StoreUnavailableError: Lookup call failed
            TTLDecodeError: Lookup succeeded but its TTL is not an integer
        """
        try:
            lookup = self._client.auth.token.lookup_self()
        except _STORE_ERRORS as e:
            raise StoreUnavailableError("token lookup", str(e)) from e
        return TokenStatus.from_lookup(lookup)

    def renew_current_token(self, increment: int) -> None:
        """
        Extend the current token by ``increment`` seconds.

        Publishes a new Session if the store hands back a token value.

        Raises:
            StoreUnavailableError: Renewal call failed
        """
        try:
            response = self._client.auth.token.renew_self(increment=increment)
        except _STORE_ERRORS as e:
            raise StoreUnavailableError("token renewal", str(e)) from e

        auth = response.get("auth") if isinstance(response, Mapping) else None
        new_token = auth.get("client_token") if isinstance(auth, Mapping) else None
        if new_token and new_token != self.session.token:
            self._publish(self.session.with_token(new_token))

    def read_at_path(self, path: str) -> dict[str, Any] | None:
        """
        Read the raw response stored at ``path``.

        Returns:
            Raw response dict, or None when nothing is stored at the path

        Raises:
            StoreUnavailableError: Read call failed
        """
        try:
            return self._client.read(path)
        except _STORE_ERRORS as e:
            raise StoreUnavailableError("secret read", str(e), path=path) from e

    def _publish(self, session: Session) -> None:
        self._slot.replace(session)
        self._client.token = session.token


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    retry=retry_if_exception_type((VaultDown, requests.exceptions.ConnectionError)),
    reraise=True,
)
def _read_health(hvac_client: hvac.Client) -> dict[str, Any]:
    health = hvac_client.sys.read_health_status(method="GET")
    # Standby and performance-standby nodes answer with a non-200 raw response
    if not isinstance(health, Mapping):
        health = health.json()
    return dict(health)
