"""
Exception hierarchy for token supervision and secret reads.

Exception hierarchy:
    VaultKeeperError (base)
    ├── StoreUnavailableError - store unreachable, or it rejected the call
    ├── TokenNotRenewableError - current token can never be extended
    ├── SecretNotFoundError - no usable value at path/key
    ├── TTLDecodeError - token TTL field is not an integer
    └── ConfigurationError - invalid renewal policy or engine selection

Every class carries a stable ``error_type`` used as the metrics label. Error
messages include paths and keys, never token or secret values.
"""


class VaultKeeperError(Exception):
    """
    Base exception for all vaultkeeper errors.

    Attributes:
        message: Human-readable error message (MUST NOT include secret values)
        path: Secret path involved, if any
        key: Field name within the secret, if any

    Example:
        >>> str(VaultKeeperError("Timeout", path="db/creds", key="password"))
        'Timeout (path: db/creds, key: password)'
    """

    error_type = "unknown"

    def __init__(self, message: str, path: str | None = None, key: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.key = key

    def __str__(self) -> str:
        context_parts = []
        if self.path:
            context_parts.append(f"path: {self.path}")
        if self.key:
            context_parts.append(f"key: {self.key}")

        if context_parts:
            return f"{self.message} ({', '.join(context_parts)})"
        return self.message


class StoreUnavailableError(VaultKeeperError):
    """
    Raised when the store cannot be reached or rejects an authenticated call.

    Covers token lookup, token renewal and secret reads alike. Once the
    supervisor has stopped and the token has expired, every read ends here.
    """

    error_type = "store_unavailable"

    def __init__(
        self,
        operation: str,
        reason: str,
        path: str | None = None,
        key: str | None = None,
    ) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store unavailable during {operation}: {reason}", path=path, key=key)


class TokenNotRenewableError(VaultKeeperError):
    """Raised when the store reports that the current token cannot be extended."""

    error_type = "token_not_renewable"

    def __init__(self, message: str = "Current token is not renewable") -> None:
        super().__init__(message)


class SecretNotFoundError(VaultKeeperError):
    """
    Raised when a path or key yields no usable value.

    Callers cannot tell the three causes apart: nothing stored at the path,
    the engine found no payload, or the payload lacks the key.

    Example:
        >>> raise SecretNotFoundError("secret/data/db", "password")
        SecretNotFoundError: Secret not found (path: secret/data/db, key: password)
    """

    error_type = "secret_not_found"

    def __init__(self, path: str, key: str) -> None:
        super().__init__("Secret not found", path=path, key=key)


class TTLDecodeError(VaultKeeperError):
    """Raised when the token lookup returns a TTL that is not an integer."""

    error_type = "ttl_decode_error"

    def __init__(self, raw_ttl: object) -> None:
        self.raw_ttl = raw_ttl
        super().__init__(f"Could not decode token TTL from {type(raw_ttl).__name__} value")


class ConfigurationError(VaultKeeperError):
    """Raised for invalid renewal policy values or an unknown engine name."""

    error_type = "configuration_error"
