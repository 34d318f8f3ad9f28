"""Tests for the token lifecycle supervisor."""

import threading

import pytest

from vaultkeeper.exceptions import (
    ConfigurationError,
    StoreUnavailableError,
    TokenNotRenewableError,
    TTLDecodeError,
)
from vaultkeeper.renewer import RenewalPolicy, RenewerState, StopReason, TokenRenewer
from vaultkeeper.token import TTL_UNKNOWN, TokenStatus

# ================================================================================
# Fixtures
# ================================================================================

THRESHOLD = 300
INCREMENT = 600


@pytest.fixture()
def policy() -> RenewalPolicy:
    return RenewalPolicy(polling_period=0.001, threshold=THRESHOLD, increment=INCREMENT)


@pytest.fixture()
def renewer(mock_store, policy, metrics) -> TokenRenewer:
    return TokenRenewer(mock_store, policy, metrics)


def _sample(registry, name, metrics, **labels):
    return registry.get_sample_value(name, {**metrics.base_labels, **labels})


# ================================================================================
# RenewalPolicy
# ================================================================================


class TestRenewalPolicy:
    def test_valid_policy(self):
        policy = RenewalPolicy(polling_period=15.0, threshold=0, increment=1)
        assert policy.threshold == 0

    @pytest.mark.parametrize("period", [0, -1.5])
    def test_non_positive_period_rejected(self, period):
        with pytest.raises(ConfigurationError, match="polling period"):
            RenewalPolicy(polling_period=period, threshold=300, increment=600)

    def test_negative_threshold_rejected(self):
        with pytest.raises(ConfigurationError, match="threshold"):
            RenewalPolicy(polling_period=1.0, threshold=-1, increment=600)

    def test_fractional_threshold_rejected(self):
        """Threshold must be whole seconds, the unit TTLs are reported in."""
        with pytest.raises(ConfigurationError, match="integer"):
            RenewalPolicy(polling_period=1.0, threshold=1.5, increment=600)  # type: ignore[arg-type]

    @pytest.mark.parametrize("increment", [0, -10])
    def test_non_positive_increment_rejected(self, increment):
        with pytest.raises(ConfigurationError, match="increment"):
            RenewalPolicy(polling_period=1.0, threshold=300, increment=increment)

    def test_policy_is_immutable(self):
        policy = RenewalPolicy(polling_period=1.0, threshold=300, increment=600)
        with pytest.raises(AttributeError):
            policy.threshold = 10  # type: ignore[misc]


# ================================================================================
# Threshold decision
# ================================================================================


class TestShouldRenew:
    @pytest.mark.parametrize("ttl", [0, 1, THRESHOLD - 1])
    def test_below_threshold_renews(self, renewer, ttl):
        assert renewer.should_renew(ttl) is True

    @pytest.mark.parametrize("ttl", [THRESHOLD, THRESHOLD + 1, 86400])
    def test_at_or_above_threshold_does_not_renew(self, renewer, ttl):
        assert renewer.should_renew(ttl) is False

    def test_expired_gauge_tracks_decision(self, renewer, registry, metrics):
        renewer.should_renew(10)
        assert _sample(registry, "vault_token_expired", metrics) == 1.0

        renewer.should_renew(THRESHOLD)
        assert _sample(registry, "vault_token_expired", metrics) == 0.0

    def test_zero_threshold_never_renews(self, mock_store, metrics):
        renewer = TokenRenewer(mock_store, RenewalPolicy(1.0, 0, 600), metrics)
        assert renewer.should_renew(0) is False


# ================================================================================
# Renewal step
# ================================================================================


class TestRenewToken:
    def test_renews_with_policy_increment(self, renewer, mock_store, registry, metrics):
        renewer.renew_token(TokenStatus(ttl=5, renewable=True))

        mock_store.renew_current_token.assert_called_once_with(INCREMENT)
        assert _sample(registry, "vault_token_renewals_count_total", metrics) == 1.0
        assert _sample(registry, "vault_token_renew_attempts_count_total", metrics) == 1.0

    def test_increment_independent_of_triggering_ttl(self, renewer, mock_store):
        for ttl in (0, 1, THRESHOLD - 1):
            renewer.renew_token(TokenStatus(ttl=ttl, renewable=True))

        assert [c.args for c in mock_store.renew_current_token.call_args_list] == [
            (INCREMENT,),
            (INCREMENT,),
            (INCREMENT,),
        ]

    def test_not_renewable_skips_renewal_call(self, renewer, mock_store, registry, metrics):
        with pytest.raises(TokenNotRenewableError):
            renewer.renew_token(TokenStatus(ttl=5, renewable=False))

        mock_store.renew_current_token.assert_not_called()
        assert _sample(registry, "vault_token_renew_attempts_count_total", metrics) is None
        assert (
            _sample(
                registry,
                "vault_token_renew_errors_count_total",
                metrics,
                error="token_not_renewable",
            )
            == 1.0
        )

    def test_unknown_renewability_is_store_failure(self, renewer, mock_store, registry, metrics):
        with pytest.raises(StoreUnavailableError):
            renewer.renew_token(TokenStatus(ttl=5, renewable=None))

        mock_store.renew_current_token.assert_not_called()
        assert _sample(registry, "vault_token_renew_attempts_count_total", metrics) is None

    def test_renewal_call_failure_counted(self, renewer, mock_store, registry, metrics):
        mock_store.renew_current_token.side_effect = StoreUnavailableError(
            "token renewal", "permission denied"
        )

        with pytest.raises(StoreUnavailableError):
            renewer.renew_token(TokenStatus(ttl=5, renewable=True))

        assert (
            _sample(
                registry,
                "vault_token_renew_errors_count_total",
                metrics,
                error="store_unavailable",
            )
            == 1.0
        )
        assert _sample(registry, "vault_token_renewals_count_total", metrics) is None


# ================================================================================
# Lookup step
# ================================================================================


class TestGetToken:
    def test_records_ttl(self, renewer, mock_store, registry, metrics):
        mock_store.lookup_current_token.return_value = TokenStatus(ttl=1234, renewable=True)

        status = renewer.get_token()

        assert status.ttl == 1234
        assert _sample(registry, "vault_token_ttl", metrics) == 1234.0

    def test_lookup_failure_counted(self, renewer, mock_store, registry, metrics):
        mock_store.lookup_current_token.side_effect = StoreUnavailableError(
            "token lookup", "connection refused"
        )

        with pytest.raises(StoreUnavailableError):
            renewer.get_token()

        assert (
            _sample(
                registry,
                "vault_token_lookup_errors_count_total",
                metrics,
                error="store_unavailable",
            )
            == 1.0
        )

    def test_ttl_decode_failure_sets_unknown_ttl(self, renewer, mock_store, registry, metrics):
        mock_store.lookup_current_token.side_effect = TTLDecodeError("soon")

        with pytest.raises(TTLDecodeError):
            renewer.get_token()

        assert _sample(registry, "vault_token_ttl", metrics) == float(TTL_UNKNOWN)


# ================================================================================
# Loop
# ================================================================================


class TestRun:
    def test_healthy_token_ends_run(self, renewer, mock_store):
        """A run stops at the first healthy observation instead of polling forever."""
        mock_store.lookup_current_token.return_value = TokenStatus(ttl=3600, renewable=True)

        reason = renewer.run(threading.Event())

        assert reason is StopReason.HEALTHY
        assert renewer.stopped_reason is StopReason.HEALTHY
        assert renewer.state is RenewerState.POLLING
        assert renewer.last_error is None
        mock_store.lookup_current_token.assert_called_once()
        mock_store.renew_current_token.assert_not_called()

    def test_renews_then_polls_again(self, renewer, mock_store):
        mock_store.lookup_current_token.side_effect = [
            TokenStatus(ttl=120, renewable=True),
            TokenStatus(ttl=60, renewable=True),
            TokenStatus(ttl=720, renewable=True),
        ]

        reason = renewer.run(threading.Event())

        assert reason is StopReason.HEALTHY
        assert mock_store.lookup_current_token.call_count == 3
        assert mock_store.renew_current_token.call_count == 2
        mock_store.renew_current_token.assert_called_with(INCREMENT)

    def test_lookup_failure_stops_without_renewal(self, renewer, mock_store):
        mock_store.lookup_current_token.side_effect = StoreUnavailableError(
            "token lookup", "connection refused"
        )

        reason = renewer.run(threading.Event())

        assert reason is StopReason.LOOKUP_FAILED
        assert renewer.state is RenewerState.CANCELLED
        assert isinstance(renewer.last_error, StoreUnavailableError)
        mock_store.lookup_current_token.assert_called_once()
        mock_store.renew_current_token.assert_not_called()

    def test_lookup_failure_is_logged(self, renewer, mock_store, caplog):
        mock_store.lookup_current_token.side_effect = StoreUnavailableError(
            "token lookup", "connection refused"
        )

        with caplog.at_level("ERROR", logger="vaultkeeper.renewer"):
            renewer.run(threading.Event())

        assert "Failed to fetch token" in caplog.text

    def test_ttl_decode_failure_stops(self, renewer, mock_store):
        mock_store.lookup_current_token.side_effect = TTLDecodeError("n/a")

        reason = renewer.run(threading.Event())

        assert reason is StopReason.TTL_DECODE_FAILED
        assert isinstance(renewer.last_error, TTLDecodeError)
        mock_store.renew_current_token.assert_not_called()

    def test_not_renewable_stops(self, renewer, mock_store):
        mock_store.lookup_current_token.return_value = TokenStatus(ttl=10, renewable=False)

        reason = renewer.run(threading.Event())

        assert reason is StopReason.NOT_RENEWABLE
        assert renewer.state is RenewerState.EXPIRED
        assert isinstance(renewer.last_error, TokenNotRenewableError)
        mock_store.lookup_current_token.assert_called_once()
        mock_store.renew_current_token.assert_not_called()

    def test_renewal_failure_stops_without_retry(self, renewer, mock_store):
        mock_store.lookup_current_token.return_value = TokenStatus(ttl=10, renewable=True)
        mock_store.renew_current_token.side_effect = StoreUnavailableError(
            "token renewal", "timeout"
        )

        reason = renewer.run(threading.Event())

        assert reason is StopReason.RENEWAL_FAILED
        assert renewer.state is RenewerState.EXPIRED
        mock_store.renew_current_token.assert_called_once_with(INCREMENT)
        mock_store.lookup_current_token.assert_called_once()

    def test_preset_stop_event_makes_no_store_calls(self, renewer, mock_store):
        stop_event = threading.Event()
        stop_event.set()

        reason = renewer.run(stop_event)

        assert reason is StopReason.CANCELLED
        assert renewer.state is RenewerState.CANCELLED
        mock_store.lookup_current_token.assert_not_called()
        mock_store.renew_current_token.assert_not_called()

    def test_cancel_during_lookup_skips_renewal(self, renewer, mock_store):
        stop_event = threading.Event()

        def _lookup():
            stop_event.set()
            return TokenStatus(ttl=10, renewable=True)

        mock_store.lookup_current_token.side_effect = _lookup

        reason = renewer.run(stop_event)

        assert reason is StopReason.CANCELLED
        mock_store.renew_current_token.assert_not_called()


class TestStart:
    def test_start_returns_immediately_and_cancels(self, mock_store, metrics):
        renewer = TokenRenewer(mock_store, RenewalPolicy(30.0, THRESHOLD, INCREMENT), metrics)
        stop_event = threading.Event()

        thread = renewer.start(stop_event)
        assert thread.is_alive()
        assert thread.daemon

        stop_event.set()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert renewer.stopped_reason is StopReason.CANCELLED
        mock_store.lookup_current_token.assert_not_called()
        mock_store.renew_current_token.assert_not_called()

    def test_start_is_idempotent_while_running(self, mock_store, metrics):
        renewer = TokenRenewer(mock_store, RenewalPolicy(30.0, THRESHOLD, INCREMENT), metrics)
        stop_event = threading.Event()

        first = renewer.start(stop_event)
        second = renewer.start(stop_event)

        assert first is second
        stop_event.set()
        first.join(timeout=5)

    def test_background_run_renews(self, renewer, mock_store):
        mock_store.lookup_current_token.side_effect = [
            TokenStatus(ttl=10, renewable=True),
            TokenStatus(ttl=900, renewable=True),
        ]

        thread = renewer.start(threading.Event())
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert renewer.stopped_reason is StopReason.HEALTHY
        mock_store.renew_current_token.assert_called_once_with(INCREMENT)

    def test_restart_after_healthy_run(self, renewer, mock_store):
        mock_store.lookup_current_token.return_value = TokenStatus(ttl=900, renewable=True)
        stop_event = threading.Event()

        first = renewer.start(stop_event)
        first.join(timeout=5)
        assert renewer.stopped_reason is StopReason.HEALTHY

        mock_store.lookup_current_token.side_effect = [
            TokenStatus(ttl=10, renewable=True),
            TokenStatus(ttl=900, renewable=True),
        ]
        second = renewer.start(stop_event)
        second.join(timeout=5)

        assert second is not first
        assert not second.is_alive()
        assert renewer.stopped_reason is StopReason.HEALTHY
        assert renewer.last_error is None
        mock_store.renew_current_token.assert_called_once_with(INCREMENT)
