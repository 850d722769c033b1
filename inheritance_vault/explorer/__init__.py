"""
Explorer status engine and broadcast gateway over public Esplora APIs
"""

from .config import (
    DEFAULT_TIMEOUT_SECONDS,
    ESPLORA_CHAIN_PAGE_SIZE,
    ESPLORA_CHAIN_SCAN_PAGE_LIMIT,
    EXPLORER_CONFIG,
    EXPLORER_PROVIDERS,
    ExplorerConfig,
    assert_public_explorer_network,
    get_explorer_config,
    get_provider_order,
    is_explorer_provider,
    supports_public_explorer_network,
)
from .models import AddressSummary, BroadcastResult, FundingEvent
from .status import fetch_address_summary
from .broadcast import broadcast_transaction
from .urls import build_explorer_address_url, build_explorer_tx_url
from .utils import sanitize_address, sanitize_raw_tx_hex

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "ESPLORA_CHAIN_PAGE_SIZE",
    "ESPLORA_CHAIN_SCAN_PAGE_LIMIT",
    "EXPLORER_CONFIG",
    "EXPLORER_PROVIDERS",
    "ExplorerConfig",
    "assert_public_explorer_network",
    "get_explorer_config",
    "get_provider_order",
    "is_explorer_provider",
    "supports_public_explorer_network",
    "AddressSummary",
    "BroadcastResult",
    "FundingEvent",
    "fetch_address_summary",
    "broadcast_transaction",
    "build_explorer_address_url",
    "build_explorer_tx_url",
    "sanitize_address",
    "sanitize_raw_tx_hex",
]
