"""
Tolerant parsing of Esplora-style responses.

Third-party explorers omit fields, send nulls and occasionally floats; none of
that should crash a status query, so everything funnels through
``to_safe_integer`` and missing data degrades to zero or None.
"""

import math
import re
from typing import Any, List, Optional

from .models import FundingEvent

TXID_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def to_safe_integer(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return int(value)


def parse_tip_height(value: Any) -> Optional[int]:
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def _is_txid(value: Any) -> bool:
    return isinstance(value, str) and bool(TXID_RE.fullmatch(value))


def _status(tx: dict) -> dict:
    status = tx.get('status')
    return status if isinstance(status, dict) else {}


def to_funding_event(tx: Any, address: str, tip_height: Optional[int] = None) -> Optional[FundingEvent]:
    """FundingEvent for ``tx`` if any of its outputs pays ``address``"""
    if not isinstance(tx, dict) or not _is_txid(tx.get('txid')):
        return None

    vouts = tx.get('vout') if isinstance(tx.get('vout'), list) else []
    funded = sum(
        to_safe_integer(vout.get('value'))
        for vout in vouts
        if isinstance(vout, dict) and vout.get('scriptpubkey_address') == address
    )
    if funded <= 0:
        return None

    status = _status(tx)
    confirmed = bool(status.get('confirmed'))
    block_height = to_safe_integer(status.get('block_height'))
    block_time = to_safe_integer(status.get('block_time'))

    confirmations = None
    if confirmed and tip_height is not None and block_height > 0:
        confirmations = max(0, tip_height - block_height + 1)

    return FundingEvent(
        txid=tx['txid'].lower(),
        funded_amount_sats=funded,
        confirmed=confirmed,
        block_height=block_height if block_height > 0 else None,
        block_time=block_time if block_time > 0 else None,
        confirmations=confirmations,
    )


def get_funding_events(txs: List[Any], address: str, tip_height: Optional[int] = None) -> List[FundingEvent]:
    events = (to_funding_event(tx, address, tip_height) for tx in txs)
    return [event for event in events if event is not None]


def get_oldest_confirmed_txid(txs: List[Any]) -> Optional[str]:
    """Pagination cursor: the last confirmed txid in a newest-first page"""
    for tx in reversed(txs):
        if not isinstance(tx, dict) or not _status(tx).get('confirmed'):
            continue
        if _is_txid(tx.get('txid')):
            return tx['txid'].lower()
    return None
