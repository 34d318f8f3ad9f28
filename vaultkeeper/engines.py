"""
Secret engine adapters.

Vault's key-value engines shape read responses differently:

    kv1: {"data": {"password": "abc"}, "warnings": None, ...}
    kv2: {"data": {"data": {"password": "abc"}, "metadata": {...}}, ...}

An adapter hides that difference by extracting the flat payload. The adapter
is selected once at startup via new_engine() and never changes afterwards.

Selecting the wrong adapter for a mount does not fail loudly. A kv2 adapter
reading a kv1 response finds no "data" envelope and reports no payload,
which callers see as SecretNotFoundError.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Any

from vaultkeeper.exceptions import ConfigurationError


class SecretEngine(str, Enum):
    """Supported engine identifiers (VAULT_ENGINE values)."""

    KV1 = "kv1"
    KV2 = "kv2"


class EngineAdapter(ABC):
    """Extracts the flat key -> value payload from a raw read response."""

    engine: SecretEngine

    @abstractmethod
    def get_data(self, response: Mapping[str, Any]) -> dict[str, Any] | None:
        """
        Return the payload of a raw response, or None when it carries none.

        Args:
            response: Raw response body as returned by the store client

        Returns:
            Flat payload dict, or None when the engine-specific payload is absent
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class KV1Engine(EngineAdapter):
    """Unversioned key-value engine: payload is the response's ``data``."""

    engine = SecretEngine.KV1

    def get_data(self, response: Mapping[str, Any]) -> dict[str, Any] | None:
        data = response.get("data")
        if isinstance(data, Mapping):
            return dict(data)
        return None


class KV2Engine(EngineAdapter):
    """Versioned key-value engine: payload sits under ``data.data`` next to ``data.metadata``."""

    engine = SecretEngine.KV2

    def get_data(self, response: Mapping[str, Any]) -> dict[str, Any] | None:
        envelope = response.get("data")
        if not isinstance(envelope, Mapping):
            return None
        data = envelope.get("data")
        if isinstance(data, Mapping):
            return dict(data)
        return None


_ENGINES: dict[SecretEngine, type[EngineAdapter]] = {
    SecretEngine.KV1: KV1Engine,
    SecretEngine.KV2: KV2Engine,
}


def new_engine(name: str | SecretEngine) -> EngineAdapter:
    """
    Build the adapter for an engine identifier.

    Args:
        name: Engine identifier, "kv1" or "kv2" (case-insensitive)

    Returns:
        EngineAdapter instance for the engine

    Raises:
        ConfigurationError: If the identifier is not a supported engine

    Example:
        >>> new_engine("kv2")
        KV2Engine()
    """
    try:
        engine = SecretEngine(name.strip().lower() if isinstance(name, str) else name)
    except ValueError as e:
        supported = ", ".join(member.value for member in SecretEngine)
        raise ConfigurationError(
            f"Unsupported secret engine '{name}'. Supported engines: {supported}"
        ) from e
    return _ENGINES[engine]()
