"""
Prometheus metrics for token supervision and secret reads.

Metrics are owned by a VaultMetrics instance bound to one CollectorRegistry
and handed to the renewer and reader explicitly. Without an explicit registry
each instance gets its own, so building a second recorder in the same process
never collides with the first. Every series carries the store description
(address, engine, version, cluster id/name) as labels.

Recording never raises into the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

from vaultkeeper.session import Session

logger = logging.getLogger(__name__)

_BASE_LABELS = [
    "vault_address",
    "vault_engine",
    "vault_version",
    "vault_cluster_id",
    "vault_cluster_name",
]

TOKEN_EXPIRED = 1
TOKEN_NOT_EXPIRED = 0


class VaultMetrics:
    """
    Metric recorder for one store session.

    Example:
        >>> registry = CollectorRegistry()
        >>> metrics = VaultMetrics(session, engine="kv2", registry=registry)
        >>> metrics.update_token_ttl(3600)
        >>> registry.get_sample_value("vault_token_ttl", metrics.base_labels)
        3600.0
    """

    def __init__(
        self,
        session: Session,
        engine: str,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.base_labels = {
            "vault_address": session.address,
            "vault_engine": engine,
            "vault_version": session.version,
            "vault_cluster_id": session.cluster_id,
            "vault_cluster_name": session.cluster_name,
        }

        self.token_ttl = Gauge(
            "vault_token_ttl",
            "Last observed TTL of the current token, in seconds",
            _BASE_LABELS,
            registry=self.registry,
        )
        self.token_expired = Gauge(
            "vault_token_expired",
            "1 if the last check found the token below the renewal threshold",
            _BASE_LABELS,
            registry=self.registry,
        )
        self.token_lookup_errors = Counter(
            "vault_token_lookup_errors_count",
            "Token lookup failures",
            [*_BASE_LABELS, "error"],
            registry=self.registry,
        )
        self.token_renew_attempts = Counter(
            "vault_token_renew_attempts_count",
            "Token renewal attempts",
            _BASE_LABELS,
            registry=self.registry,
        )
        self.token_renewals = Counter(
            "vault_token_renewals_count",
            "Successful token renewals",
            _BASE_LABELS,
            registry=self.registry,
        )
        self.token_renew_errors = Counter(
            "vault_token_renew_errors_count",
            "Token renewal failures",
            [*_BASE_LABELS, "error"],
            registry=self.registry,
        )
        self.secret_read_errors = Counter(
            "vault_secret_read_errors_count",
            "Secret read failures",
            [*_BASE_LABELS, "path", "key", "error"],
            registry=self.registry,
        )

    def _record(self, metric: str, action: Callable[[], None]) -> None:
        try:
            action()
        except Exception as e:
            logger.debug(
                "Failed to record metric",
                extra={"metric": metric, "error": str(e), "error_type": type(e).__name__},
            )

    def update_token_ttl(self, ttl: int) -> None:
        self._record("vault_token_ttl", lambda: self.token_ttl.labels(**self.base_labels).set(ttl))

    def update_token_expired(self, expired: int) -> None:
        self._record(
            "vault_token_expired",
            lambda: self.token_expired.labels(**self.base_labels).set(expired),
        )

    def inc_token_lookup_errors(self, error_type: str) -> None:
        self._record(
            "vault_token_lookup_errors_count",
            lambda: self.token_lookup_errors.labels(**self.base_labels, error=error_type).inc(),
        )

    def inc_token_renew_attempts(self) -> None:
        self._record(
            "vault_token_renew_attempts_count",
            lambda: self.token_renew_attempts.labels(**self.base_labels).inc(),
        )

    def inc_token_renewals(self) -> None:
        self._record(
            "vault_token_renewals_count",
            lambda: self.token_renewals.labels(**self.base_labels).inc(),
        )

    def inc_token_renew_errors(self, error_type: str) -> None:
        self._record(
            "vault_token_renew_errors_count",
            lambda: self.token_renew_errors.labels(**self.base_labels, error=error_type).inc(),
        )

    def inc_secret_read_errors(self, path: str, key: str, error_type: str) -> None:
        self._record(
            "vault_secret_read_errors_count",
            lambda: self.secret_read_errors.labels(
                **self.base_labels, path=path, key=key, error=error_type
            ).inc(),
        )


def start_metrics_server(port: int, registry: CollectorRegistry) -> None:
    """Expose ``registry`` on ``port`` over HTTP for Prometheus scraping."""
    start_http_server(port, registry=registry)
    logger.info("Metrics exporter started", extra={"port": port})


__all__ = [
    "TOKEN_EXPIRED",
    "TOKEN_NOT_EXPIRED",
    "VaultMetrics",
    "start_metrics_server",
]
