"""
Broadcast a signed transaction through a public relay, with fallback
"""

import dataclasses
import logging
import re
import threading
from typing import Optional

import requests

from ..errors import ExplorerError, InvalidRelayResponse, ProvidersExhausted, RequestCancelled
from .config import (
    DEFAULT_TIMEOUT_SECONDS,
    PROVIDER_MEMPOOL,
    assert_explorer_provider,
    assert_public_explorer_network,
    get_explorer_config,
    get_provider_order,
    get_timeout_seconds,
)
from .http import ExplorerHttp
from .models import BroadcastResult
from .urls import build_explorer_tx_url
from .utils import sanitize_raw_tx_hex

logger = logging.getLogger(__name__)

TXID_RE = re.compile(r"^[a-fA-F0-9]{64}$")


def _broadcast_with_provider(http: ExplorerHttp, network: str, raw_tx_hex: str, provider: str) -> BroadcastResult:
    config = get_explorer_config(network, provider)
    txid = http.post_text(f"{config.api_base_url}/tx", raw_tx_hex).strip()
    if not TXID_RE.fullmatch(txid):
        raise InvalidRelayResponse(
            f"{config.provider_label} did not answer with a transaction id: {txid[:80]!r}"
        )
    txid = txid.lower()
    return BroadcastResult(
        txid=txid,
        network=network,
        provider_used=provider,
        provider_label=config.provider_label,
        used_fallback_provider=False,
        explorer_tx_url=build_explorer_tx_url(network, provider, txid),
    )


def broadcast_transaction(
    network: str,
    raw_tx_hex: str,
    provider: str = PROVIDER_MEMPOOL,
    fallback_to_other_provider: bool = True,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    session: Optional[requests.Session] = None,
    cancel_event: Optional[threading.Event] = None,
) -> BroadcastResult:
    """
    Submit ``raw_tx_hex`` and return the relay's txid.

    The hex is checked locally first; a malformed transaction raises
    ``InvalidTxHex`` without any network traffic.
    """
    assert_public_explorer_network(network)
    assert_explorer_provider(provider)
    normalized = sanitize_raw_tx_hex(raw_tx_hex)
    order = get_provider_order(provider, fallback_to_other_provider)

    last_error = None
    with ExplorerHttp(session=session, timeout=get_timeout_seconds(timeout), cancel_event=cancel_event) as http:
        for index, candidate in enumerate(order):
            try:
                result = _broadcast_with_provider(http, network, normalized, candidate)
            except RequestCancelled:
                raise
            except (ExplorerError, InvalidRelayResponse) as e:
                logger.warning("Broadcast via %s failed: %s", candidate, e)
                last_error = e
                continue
            logger.info("Broadcast %s via %s", result.txid, candidate)
            return dataclasses.replace(result, used_fallback_provider=index > 0)

    raise ProvidersExhausted(
        f"Unable to broadcast transaction using public explorers. {last_error or 'Unknown network error.'}",
        last_error=last_error,
    )
