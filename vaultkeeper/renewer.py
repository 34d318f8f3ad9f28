"""
Token lifecycle supervisor.

TokenRenewer runs in a background thread. On every polling period it looks
up the current token and renews it when the TTL drops below the configured
threshold.

    IDLE -> POLLING -> RENEWING -> POLLING   (renewed, wait a full period)
                    -> POLLING, stopped      (token healthy: run ends)
                    -> CANCELLED             (stop event, lookup/TTL failure)
                    -> EXPIRED               (not renewable, renewal failure)

A run ends the first time it finds the token healthy. Keeping the token
alive afterwards is up to whoever starts the next run. No failure is
retried; the run logs it, records it in ``last_error`` and stops, leaving
the host process untouched.

The stop event is raced against the timer wait, so an idle renewer reacts
to cancellation immediately. A renewal call that has started is never
interrupted; the store client's HTTP timeout bounds it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum

from vaultkeeper.client import VaultStoreClient
from vaultkeeper.exceptions import (
    ConfigurationError,
    TokenNotRenewableError,
    TTLDecodeError,
    VaultKeeperError,
)
from vaultkeeper.metrics import TOKEN_EXPIRED, TOKEN_NOT_EXPIRED, VaultMetrics
from vaultkeeper.token import TTL_UNKNOWN, TokenStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenewalPolicy:
    """
    Immutable renewal configuration.

    Attributes:
        polling_period: Seconds between token checks (> 0)
        threshold: Renew when TTL is strictly below this many seconds (>= 0)
        increment: Seconds requested on each renewal call (> 0)

    Raises:
        ConfigurationError: If any value is out of range
    """

    polling_period: float
    threshold: int
    increment: int

    def __post_init__(self) -> None:
        if self.polling_period <= 0:
            raise ConfigurationError(
                f"Token polling period must be positive, got {self.polling_period}"
            )
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, int):
            raise ConfigurationError("Token TTL threshold must be an integer number of seconds")
        if self.threshold < 0:
            raise ConfigurationError(f"Token TTL threshold must be >= 0, got {self.threshold}")
        if isinstance(self.increment, bool) or not isinstance(self.increment, int):
            raise ConfigurationError("Renewal increment must be an integer number of seconds")
        if self.increment <= 0:
            raise ConfigurationError(f"Renewal increment must be positive, got {self.increment}")


class RenewerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    RENEWING = "renewing"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class StopReason(str, Enum):
    """Why a renewer run ended."""

    HEALTHY = "healthy"
    CANCELLED = "cancelled"
    LOOKUP_FAILED = "lookup_failed"
    TTL_DECODE_FAILED = "ttl_decode_failed"
    NOT_RENEWABLE = "not_renewable"
    RENEWAL_FAILED = "renewal_failed"


class TokenRenewer:
    """
    Background supervisor that keeps one token from expiring.

    Example:
        >>> stop_event = threading.Event()
        >>> renewer = TokenRenewer(client, RenewalPolicy(15.0, 300, 600), metrics)
        >>> thread = renewer.start(stop_event)
        >>> ...
        >>> stop_event.set()
        >>> thread.join()
    """

    def __init__(
        self,
        client: VaultStoreClient,
        policy: RenewalPolicy,
        metrics: VaultMetrics,
    ) -> None:
        self._client = client
        self.policy = policy
        self._metrics = metrics
        self.state = RenewerState.IDLE
        self.stopped_reason: StopReason | None = None
        self.last_error: VaultKeeperError | None = None
        self._thread: threading.Thread | None = None

    @property
    def thread(self) -> threading.Thread | None:
        return self._thread

    def start(self, stop_event: threading.Event) -> threading.Thread:
        """Start the renewal loop in a daemon thread and return immediately."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread

        self._thread = threading.Thread(
            target=self.run,
            args=(stop_event,),
            name="vault-token-renewer",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def should_renew(self, ttl: int) -> bool:
        if ttl < self.policy.threshold:
            self._metrics.update_token_expired(TOKEN_EXPIRED)
            return True
        self._metrics.update_token_expired(TOKEN_NOT_EXPIRED)
        return False

    def get_token(self) -> TokenStatus:
        """
        Look up the current token and record its TTL.

        Raises:
            StoreUnavailableError: Lookup call failed
            TTLDecodeError: TTL field could not be decoded
        """
        try:
            status = self._client.lookup_current_token()
        except TTLDecodeError as e:
            logger.error("Couldn't decode TTL from token", extra={"error": str(e)})
            self._metrics.update_token_ttl(TTL_UNKNOWN)
            self._metrics.inc_token_lookup_errors(e.error_type)
            raise
        except VaultKeeperError as e:
            logger.error(
                "Error checking token with lookup-self API",
                extra={"error": str(e), "error_type": e.error_type},
            )
            self._metrics.inc_token_lookup_errors(e.error_type)
            raise

        self._metrics.update_token_ttl(status.ttl)
        return status

    def renew_token(self, status: TokenStatus) -> None:
        """
        Renew the current token by the policy increment.

        Raises:
            TokenNotRenewableError: Token cannot be extended (no renewal call is made)
            StoreUnavailableError: Renewability unknown or renewal call failed
        """
        try:
            if not status.is_renewable():
                raise TokenNotRenewableError()
            self._metrics.inc_token_renew_attempts()
            self._client.renew_current_token(self.policy.increment)
        except VaultKeeperError as e:
            self._metrics.inc_token_renew_errors(e.error_type)
            raise
        self._metrics.inc_token_renewals()

    def run(self, stop_event: threading.Event) -> StopReason:
        """
        Run the renewal loop in the calling thread until it stops.

        Returns:
            The reason the run ended (also kept in ``stopped_reason``)
        """
        self.state = RenewerState.POLLING
        self.stopped_reason = None
        self.last_error = None
        logger.info(
            "Token renewer started",
            extra={
                "polling_period": self.policy.polling_period,
                "threshold": self.policy.threshold,
                "increment": self.policy.increment,
            },
        )

        while True:
            if stop_event.wait(self.policy.polling_period):
                logger.info("Gracefully shutting down token renewer")
                return self._stop(RenewerState.CANCELLED, StopReason.CANCELLED)

            try:
                status = self.get_token()
            except TTLDecodeError as e:
                logger.error("Failed to read token TTL", extra={"error": str(e)})
                return self._stop(RenewerState.CANCELLED, StopReason.TTL_DECODE_FAILED, e)
            except VaultKeeperError as e:
                logger.error("Failed to fetch token", extra={"error": str(e)})
                return self._stop(RenewerState.CANCELLED, StopReason.LOOKUP_FAILED, e)

            logger.debug("Token checked", extra={"ttl": status.ttl})

            if not self.should_renew(status.ttl):
                logger.info(
                    "Token TTL above renewal threshold, renewer run complete",
                    extra={"ttl": status.ttl, "threshold": self.policy.threshold},
                )
                return self._stop(RenewerState.POLLING, StopReason.HEALTHY)

            if stop_event.is_set():
                logger.info("Gracefully shutting down token renewer")
                return self._stop(RenewerState.CANCELLED, StopReason.CANCELLED)

            logger.warning("Token is close to expiry", extra={"ttl": status.ttl})
            self.state = RenewerState.RENEWING
            try:
                self.renew_token(status)
            except TokenNotRenewableError as e:
                logger.error("Could not renew token", extra={"error": str(e), "error_type": e.error_type})
                return self._stop(RenewerState.EXPIRED, StopReason.NOT_RENEWABLE, e)
            except VaultKeeperError as e:
                logger.error("Could not renew token", extra={"error": str(e), "error_type": e.error_type})
                return self._stop(RenewerState.EXPIRED, StopReason.RENEWAL_FAILED, e)

            logger.info(
                "Token renewed successfully",
                extra={"previous_ttl": status.ttl, "increment": self.policy.increment},
            )
            self.state = RenewerState.POLLING

    def _stop(
        self,
        state: RenewerState,
        reason: StopReason,
        error: VaultKeeperError | None = None,
    ) -> StopReason:
        self.state = state
        self.stopped_reason = reason
        self.last_error = error
        return reason
