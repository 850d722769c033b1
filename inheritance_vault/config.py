import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .checkin import DEFAULT_CADENCE_RATIO, normalize_cadence_ratio
from .errors import UnsupportedNetwork, UnsupportedType
from .explorer.config import (
    DEFAULT_TIMEOUT_SECONDS,
    PROVIDER_MEMPOOL,
    assert_explorer_provider,
    get_timeout_seconds,
)
from .models import ADDRESS_TYPE_ALIASES, ADDRESS_TYPE_P2TR, NETWORKS

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class VaultSettings:
    """
    Session settings passed explicitly into every call that needs them.

    The engine has no notion of a "current network"; whoever holds the
    settings decides which one applies.
    """

    network: str
    address_type: str = ADDRESS_TYPE_P2TR
    explorer_provider: str = PROVIDER_MEMPOOL
    fallback_to_other_provider: bool = True
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    checkin_cadence_ratio: float = DEFAULT_CADENCE_RATIO

    def __post_init__(self):
        if self.network not in NETWORKS:
            raise UnsupportedNetwork(
                f"Unsupported network {self.network!r}. Use one of: {', '.join(NETWORKS)}."
            )
        if self.address_type not in ADDRESS_TYPE_ALIASES:
            raise UnsupportedType(f"Unsupported address type {self.address_type!r}. Use 'p2tr' or 'p2wsh'.")
        # Normalize aliases and out-of-range numbers on a frozen instance
        object.__setattr__(self, 'address_type', ADDRESS_TYPE_ALIASES[self.address_type])
        assert_explorer_provider(self.explorer_provider)
        object.__setattr__(self, 'timeout_seconds', get_timeout_seconds(self.timeout_seconds))
        object.__setattr__(self, 'checkin_cadence_ratio', normalize_cadence_ratio(self.checkin_cadence_ratio))

    @classmethod
    def testnet(cls) -> 'VaultSettings':
        """Defaults for trying things out with test coins"""
        return cls(network="testnet")

    @classmethod
    def mainnet(cls) -> 'VaultSettings':
        """Mainnet with a slightly longer timeout for busy explorers"""
        return cls(network="mainnet", timeout_seconds=15.0)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'VaultSettings':
        env = os.environ if environ is None else environ
        return cls(
            network=env.get("VAULT_NETWORK", "testnet").strip().lower(),
            address_type=env.get("VAULT_ADDRESS_TYPE", ADDRESS_TYPE_P2TR).strip().lower(),
            explorer_provider=env.get("VAULT_EXPLORER_PROVIDER", PROVIDER_MEMPOOL).strip().lower(),
            fallback_to_other_provider=_parse_bool(env.get("VAULT_EXPLORER_FALLBACK"), True),
            timeout_seconds=env.get("VAULT_EXPLORER_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
            checkin_cadence_ratio=env.get("VAULT_CHECKIN_CADENCE", DEFAULT_CADENCE_RATIO),
        )


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise UnsupportedType(f"Expected a boolean flag (true/false), got {value!r}.")
