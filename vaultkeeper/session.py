"""
Authenticated session state shared by the renewer and readers.

The session is an immutable snapshot held in a single slot. Renewal is the
only writer and publishes a whole new Session; readers take the current
snapshot and never see a partially updated one. Rebinding one attribute is
atomic under the interpreter, so neither side takes a lock.
"""

import dataclasses
from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    """
    Point-in-time view of the authenticated handle to the store.

    Attributes:
        address: Store base URL
        token: Current token value (never log this)
        cluster_name: Cluster name reported by the health check
        cluster_id: Cluster id reported by the health check
        version: Store server version reported by the health check
    """

    address: str
    token: str = dataclasses.field(repr=False)
    cluster_name: str = ""
    cluster_id: str = ""
    version: str = ""

    def with_token(self, token: str) -> "Session":
        """Return a copy of this session carrying a new token value."""
        return dataclasses.replace(self, token=token)


class SessionSlot:
    """
    Single-slot container with replace-on-write and snapshot-on-read.

    Example:
        >>> slot = SessionSlot(Session(address="https://vault:8200", token="s.abc"))
        >>> snapshot = slot.get()
        >>> slot.replace(snapshot.with_token("s.def"))
        >>> snapshot.token, slot.get().token
        ('s.abc', 's.def')
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self) -> Session:
        return self._session

    def replace(self, session: Session) -> None:
        self._session = session
