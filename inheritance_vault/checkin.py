import math
from dataclasses import asdict, dataclass
from typing import Optional

from .utils import calculate_time

STATUS_UNKNOWN = "unknown"
STATUS_ON_TRACK = "on_track"
STATUS_DUE_NOW = "due_now"
STATUS_BENEFICIARY_PATH_OPEN = "beneficiary_path_open"

DEFAULT_CADENCE_RATIO = 0.5
MIN_CADENCE_RATIO = 0.2
MAX_CADENCE_RATIO = 0.9


@dataclass(frozen=True)
class CheckInPlan:
    """Owner maintenance cadence for a vault, derived from its timelock"""

    locktime_blocks: int
    cadence_ratio: float
    recommended_check_in_every_blocks: int
    recommended_check_in_every_approx: str
    status: str
    confirmations_since_last_funding: Optional[int] = None
    blocks_until_recommended_check_in: Optional[int] = None
    blocks_until_beneficiary_eligible: Optional[int] = None
    beneficiary_eligibility_approx: Optional[str] = None

    def is_due(self) -> bool:
        return self.status in (STATUS_DUE_NOW, STATUS_BENEFICIARY_PATH_OPEN)

    def to_dict(self) -> dict:
        return asdict(self)


def normalize_cadence_ratio(cadence_ratio) -> float:
    """Clamp into [0.2, 0.9]; anything non-numeric or non-finite means the default"""
    try:
        value = float(cadence_ratio)
    except (TypeError, ValueError):
        return DEFAULT_CADENCE_RATIO
    if not math.isfinite(value):
        return DEFAULT_CADENCE_RATIO
    return min(MAX_CADENCE_RATIO, max(MIN_CADENCE_RATIO, value))


def _as_confirmations(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return max(0, math.floor(number))


def build_check_in_plan(
    locktime_blocks: int,
    confirmations_since_last_funding: Optional[int] = None,
    cadence_ratio: float = DEFAULT_CADENCE_RATIO,
) -> CheckInPlan:
    """
    Recommend how often the Owner should refresh the vault.

    ``confirmations_since_last_funding`` counts blocks since the newest
    confirmed funding transaction; without it the status is ``unknown``.
    """
    ratio = normalize_cadence_ratio(cadence_ratio)
    every = max(1, math.floor(locktime_blocks * ratio))

    confirmations = _as_confirmations(confirmations_since_last_funding)
    if confirmations is None:
        return CheckInPlan(
            locktime_blocks=locktime_blocks,
            cadence_ratio=ratio,
            recommended_check_in_every_blocks=every,
            recommended_check_in_every_approx=calculate_time(every),
            status=STATUS_UNKNOWN,
        )

    until_check_in = every - confirmations
    until_eligible = locktime_blocks - confirmations

    if until_eligible <= 0:
        status = STATUS_BENEFICIARY_PATH_OPEN
    elif until_check_in <= 0:
        status = STATUS_DUE_NOW
    else:
        status = STATUS_ON_TRACK

    return CheckInPlan(
        locktime_blocks=locktime_blocks,
        cadence_ratio=ratio,
        recommended_check_in_every_blocks=every,
        recommended_check_in_every_approx=calculate_time(every),
        status=status,
        confirmations_since_last_funding=confirmations,
        blocks_until_recommended_check_in=until_check_in,
        blocks_until_beneficiary_eligible=until_eligible,
        beneficiary_eligibility_approx=calculate_time(until_eligible) if until_eligible > 0 else "already eligible",
    )
