"""
Public explorer endpoints and request defaults
"""

from dataclasses import dataclass
from typing import List

from ..errors import NetworkUnsupported, UnsupportedType

PROVIDER_MEMPOOL = "mempool"
PROVIDER_BLOCKSTREAM = "blockstream"
EXPLORER_PROVIDERS = (PROVIDER_MEMPOOL, PROVIDER_BLOCKSTREAM)

DEFAULT_TIMEOUT_SECONDS = 10.0
ESPLORA_CHAIN_PAGE_SIZE = 25
ESPLORA_CHAIN_SCAN_PAGE_LIMIT = 20


@dataclass(frozen=True)
class ExplorerConfig:
    api_base_url: str
    explorer_base_url: str
    provider_label: str


EXPLORER_CONFIG = {
    "mainnet": {
        PROVIDER_MEMPOOL: ExplorerConfig(
            api_base_url="https://mempool.space/api",
            explorer_base_url="https://mempool.space",
            provider_label="Mempool.space",
        ),
        PROVIDER_BLOCKSTREAM: ExplorerConfig(
            api_base_url="https://blockstream.info/api",
            explorer_base_url="https://blockstream.info",
            provider_label="Blockstream.info",
        ),
    },
    "testnet": {
        PROVIDER_MEMPOOL: ExplorerConfig(
            api_base_url="https://mempool.space/testnet/api",
            explorer_base_url="https://mempool.space/testnet",
            provider_label="Mempool.space (Testnet)",
        ),
        PROVIDER_BLOCKSTREAM: ExplorerConfig(
            api_base_url="https://blockstream.info/testnet/api",
            explorer_base_url="https://blockstream.info/testnet",
            provider_label="Blockstream.info (Testnet)",
        ),
    },
}


def is_explorer_provider(value) -> bool:
    return isinstance(value, str) and value in EXPLORER_PROVIDERS


def supports_public_explorer_network(network: str) -> bool:
    return network in EXPLORER_CONFIG


def assert_public_explorer_network(network: str) -> None:
    if network == "regtest":
        raise NetworkUnsupported(
            "Public explorer APIs are not available for Regtest. Use a local node or local Esplora instance."
        )
    if not supports_public_explorer_network(network):
        raise NetworkUnsupported(f"No public explorer is configured for network {network!r}.")


def assert_explorer_provider(provider) -> None:
    if not is_explorer_provider(provider):
        raise UnsupportedType(
            f"Unsupported explorer provider {provider!r}. Use 'mempool' or 'blockstream'."
        )


def get_explorer_config(network: str, provider: str) -> ExplorerConfig:
    assert_public_explorer_network(network)
    assert_explorer_provider(provider)
    return EXPLORER_CONFIG[network][provider]


def get_provider_order(preferred: str, use_fallback: bool) -> List[str]:
    """Primary first; the other provider only when fallback is enabled"""
    if not use_fallback:
        return [preferred]
    secondary = PROVIDER_BLOCKSTREAM if preferred == PROVIDER_MEMPOOL else PROVIDER_MEMPOOL
    return [preferred, secondary]


def get_timeout_seconds(timeout) -> float:
    try:
        value = float(timeout)
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT_SECONDS
    return value if value > 0 and value != float('inf') else DEFAULT_TIMEOUT_SECONDS
