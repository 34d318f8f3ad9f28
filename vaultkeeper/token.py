"""Token status snapshots decoded from lookup-self responses."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from vaultkeeper.exceptions import StoreUnavailableError, TTLDecodeError

TTL_UNKNOWN = -1


def decode_ttl(raw_ttl: Any) -> int:
    """
    Decode the ``ttl`` field of a token lookup into whole seconds.

    JSON numbers may arrive as ints, integral floats or numeric strings.

    Raises:
        TTLDecodeError: If the value is missing, boolean, fractional or non-numeric
    """
    # bool is an int subclass; a boolean TTL is a malformed response
    if isinstance(raw_ttl, bool) or raw_ttl is None:
        raise TTLDecodeError(raw_ttl)
    if isinstance(raw_ttl, int):
        ttl = raw_ttl
    elif isinstance(raw_ttl, float):
        if not raw_ttl.is_integer():
            raise TTLDecodeError(raw_ttl)
        ttl = int(raw_ttl)
    elif isinstance(raw_ttl, str):
        try:
            ttl = int(raw_ttl.strip())
        except ValueError as e:
            raise TTLDecodeError(raw_ttl) from e
    else:
        raise TTLDecodeError(raw_ttl)

    if ttl < 0:
        raise TTLDecodeError(raw_ttl)
    return ttl


@dataclass(frozen=True)
class TokenStatus:
    """
    Snapshot of the current token, recomputed on every polling tick.

    Attributes:
        ttl: Remaining validity in seconds
        renewable: Whether the store allows this token to be extended, or
            None when the lookup did not say
    """

    ttl: int
    renewable: bool | None

    @classmethod
    def from_lookup(cls, lookup: Mapping[str, Any]) -> "TokenStatus":
        """
        Build a status from a raw lookup-self response.

        Raises:
            StoreUnavailableError: If the response has no ``data`` section
            TTLDecodeError: If ``data.ttl`` is not an integer
        """
        data = lookup.get("data") if isinstance(lookup, Mapping) else None
        if not isinstance(data, Mapping):
            raise StoreUnavailableError("token lookup", "response has no token data")

        renewable = data.get("renewable")
        return cls(
            ttl=decode_ttl(data.get("ttl")),
            renewable=renewable if isinstance(renewable, bool) else None,
        )

    def is_renewable(self) -> bool:
        """
        Report renewability.

        Raises:
            StoreUnavailableError: If the lookup did not carry a boolean renewable flag
        """
        if self.renewable is None:
            raise StoreUnavailableError("token renewal", "could not determine token renewability")
        return self.renewable
