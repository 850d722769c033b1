"""
Address status from public Esplora-compatible explorers.

One query gathers the address aggregate stats, the newest page of its
transactions and the chain tip, then pages backward through confirmed history
only as far as needed to find the newest funding event and the newest
confirmed one. Providers are tried strictly in order; a result is either
complete or not returned at all.
"""

import dataclasses
import logging
import threading
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

import requests

from ..errors import ExplorerError, ProvidersExhausted, RequestCancelled
from .config import (
    DEFAULT_TIMEOUT_SECONDS,
    ESPLORA_CHAIN_PAGE_SIZE,
    ESPLORA_CHAIN_SCAN_PAGE_LIMIT,
    PROVIDER_MEMPOOL,
    assert_explorer_provider,
    assert_public_explorer_network,
    get_explorer_config,
    get_provider_order,
    get_timeout_seconds,
)
from .http import ExplorerHttp
from .models import AddressSummary
from .parsers import get_funding_events, get_oldest_confirmed_txid, parse_tip_height, to_safe_integer
from .utils import sanitize_address

logger = logging.getLogger(__name__)


def _stats(data, bucket: str) -> dict:
    stats = data.get(bucket) if isinstance(data, dict) else None
    return stats if isinstance(stats, dict) else {}


def _first_confirmed(events):
    return next((event for event in events if event.confirmed), None)


def _fetch_with_provider(http: ExplorerHttp, network: str, address: str, provider: str) -> AddressSummary:
    config = get_explorer_config(network, provider)
    base = f"{config.api_base_url}/address/{quote(address, safe='')}"

    address_data = http.get_json(base)
    txs_raw = http.get_json(f"{base}/txs")
    tip_height = parse_tip_height(http.get_text(f"{config.api_base_url}/blocks/tip/height"))

    chain = _stats(address_data, 'chain_stats')
    mempool = _stats(address_data, 'mempool_stats')
    confirmed_balance = to_safe_integer(chain.get('funded_txo_sum')) - to_safe_integer(chain.get('spent_txo_sum'))
    unconfirmed_balance = to_safe_integer(mempool.get('funded_txo_sum')) - to_safe_integer(mempool.get('spent_txo_sum'))
    tx_count = to_safe_integer(chain.get('tx_count')) + to_safe_integer(mempool.get('tx_count'))

    txs = txs_raw if isinstance(txs_raw, list) else []
    events = get_funding_events(txs, address, tip_height)
    last_funding = events[0] if events else None
    last_confirmed_funding = _first_confirmed(events)

    pages_scanned = 0
    cursor = get_oldest_confirmed_txid(txs)
    while (
        (last_funding is None or last_confirmed_funding is None)
        and cursor is not None
        and pages_scanned < ESPLORA_CHAIN_SCAN_PAGE_LIMIT
    ):
        older_raw = http.get_json(f"{base}/txs/chain/{cursor}")
        older = older_raw if isinstance(older_raw, list) else []
        if not older:
            break

        older_events = get_funding_events(older, address, tip_height)
        if last_funding is None and older_events:
            last_funding = older_events[0]
        if last_confirmed_funding is None:
            last_confirmed_funding = _first_confirmed(older_events)

        pages_scanned += 1
        next_cursor = get_oldest_confirmed_txid(older)
        if next_cursor is None or next_cursor == cursor or len(older) < ESPLORA_CHAIN_PAGE_SIZE:
            break
        cursor = next_cursor

    return AddressSummary(
        network=network,
        address=address,
        provider_used=provider,
        provider_label=config.provider_label,
        used_fallback_provider=False,
        confirmed_balance_sats=confirmed_balance,
        unconfirmed_balance_sats=unconfirmed_balance,
        total_balance_sats=confirmed_balance + unconfirmed_balance,
        tx_count=tx_count,
        tip_height=tip_height,
        last_funding_tx=last_funding,
        last_confirmed_funding_tx=last_confirmed_funding,
        fetched_at=datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
    )


def fetch_address_summary(
    network: str,
    address: str,
    provider: str = PROVIDER_MEMPOOL,
    fallback_to_other_provider: bool = True,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    session: Optional[requests.Session] = None,
    cancel_event: Optional[threading.Event] = None,
) -> AddressSummary:
    """
    Balance and funding summary for ``address``.

    Raises ``NetworkUnsupported`` for regtest, ``RequestCancelled`` as soon as
    ``cancel_event`` is observed, and ``ProvidersExhausted`` (carrying the last
    underlying error) when every provider failed.
    """
    assert_public_explorer_network(network)
    assert_explorer_provider(provider)
    normalized_address = sanitize_address(address)
    order = get_provider_order(provider, fallback_to_other_provider)

    last_error = None
    with ExplorerHttp(session=session, timeout=get_timeout_seconds(timeout), cancel_event=cancel_event) as http:
        for index, candidate in enumerate(order):
            try:
                summary = _fetch_with_provider(http, network, normalized_address, candidate)
            except RequestCancelled:
                raise
            except ExplorerError as e:
                logger.warning("Explorer %s failed for %s: %s", candidate, network, e)
                last_error = e
                continue
            if index > 0:
                logger.info("Address summary served by fallback provider %s", candidate)
            return dataclasses.replace(summary, used_fallback_provider=index > 0)

    raise ProvidersExhausted(
        f"Unable to fetch address data from public explorers. {last_error or 'Unknown network error.'}",
        last_error=last_error,
    )
