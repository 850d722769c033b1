"""
Error taxonomy for the inheritance vault engine
"""

from typing import List, Optional


class VaultError(Exception):
    """Base class for every error raised by the engine"""


# User-input errors: terminal, surfaced verbatim with remediation guidance

class ValidationError(VaultError, ValueError):
    """Plan request rejected before any cryptographic work"""


class InvalidKey(ValidationError):
    pass


class KeyCollision(ValidationError):
    pass


class LocktimeRange(ValidationError):
    pass


class UnsupportedNetwork(ValidationError):
    pass


class UnsupportedType(ValidationError):
    pass


class InvalidSSSConfig(ValidationError):
    pass


class AddressDerivationFailed(VaultError):
    """Library or encoding fault while deriving an address. Indicates a bug."""


class IntegrityCheckFailed(VaultError):
    """Recovery kit does not match the plan it claims to come from"""

    def __init__(self, message: str, mismatched_fields: Optional[List[str]] = None):
        super().__init__(message)
        self.mismatched_fields = list(mismatched_fields or [])


# Secret recovery

class ShareError(VaultError):
    pass


class InsufficientShares(ShareError):
    pass


class InvalidShareFormat(ShareError):
    pass


# Explorer / network I/O

class ExplorerError(VaultError):
    pass


class NetworkUnsupported(ExplorerError):
    pass


class RequestTimeout(ExplorerError):
    pass


class RequestCancelled(ExplorerError):
    pass


class ProviderError(ExplorerError):
    pass


class ProvidersExhausted(ExplorerError):
    """Every provider in the fallback order failed"""

    def __init__(self, message: str, last_error: Optional[Exception] = None):
        super().__init__(message)
        self.last_error = last_error


# Broadcast

class BroadcastError(VaultError):
    pass


class InvalidTxHex(BroadcastError, ValueError):
    pass


class InvalidRelayResponse(BroadcastError):
    pass
