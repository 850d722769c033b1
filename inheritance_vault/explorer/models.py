"""
Explorer result types. Built once per query, never mutated.
"""

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass(frozen=True)
class FundingEvent:
    """A transaction with at least one output paying the watched address"""
    txid: str
    funded_amount_sats: int
    confirmed: bool
    block_height: Optional[int] = None
    block_time: Optional[int] = None
    confirmations: Optional[int] = None


@dataclass(frozen=True)
class AddressSummary:
    network: str
    address: str
    provider_used: str
    provider_label: str
    used_fallback_provider: bool
    confirmed_balance_sats: int
    unconfirmed_balance_sats: int
    total_balance_sats: int
    tx_count: int
    fetched_at: str
    tip_height: Optional[int] = None
    last_funding_tx: Optional[FundingEvent] = None
    last_confirmed_funding_tx: Optional[FundingEvent] = None

    @property
    def confirmations_since_last_funding(self) -> Optional[int]:
        if self.last_confirmed_funding_tx is None:
            return None
        return self.last_confirmed_funding_tx.confirmations

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BroadcastResult:
    txid: str
    network: str
    provider_used: str
    provider_label: str
    used_fallback_provider: bool
    explorer_tx_url: str

    def to_dict(self) -> dict:
        return asdict(self)
