"""
Plan request validation.

Runs before any cryptographic work. Every check re-examines the raw values,
so payloads that bypassed construction-time typing (a parsed recovery kit, a
restored draft) get the same treatment as UI input.
"""

import re
from typing import Any, Dict, Optional

from .bitcoin_integration import is_valid_point
from .errors import (
    InvalidKey,
    InvalidSSSConfig,
    KeyCollision,
    LocktimeRange,
    UnsupportedNetwork,
    UnsupportedType,
)
from .models import (
    ADDRESS_TYPE_ALIASES,
    ADDRESS_TYPES,
    INHERITANCE_TYPE,
    MAX_LOCKTIME_BLOCKS,
    MIN_LOCKTIME_BLOCKS,
    NETWORKS,
    RECOVERY_METHODS,
    RECOVERY_SOCIAL,
    PlanInput,
)
from .sss import SSSConfig

PUBKEY_RE = re.compile(r"^(02|03)[0-9a-fA-F]{64}$")

EXAMPLE_PUBKEY = "02c6047f9441ed7d6d3045406e95c07cd85c778e4b8cef3ca7abac09b95c709ee5"

# Published documentation keys; never acceptable for real funds
SAMPLE_KEYS = {
    'owner': '02e9634f19b165239105436a5c17e3371901c5651581452a329978747474747474',
    'beneficiary': '03e9634f19b165239105436a5c17e3371901c5651581452a329978747474747474',
}


def normalize_pubkey_hex(value: str) -> str:
    return value.strip().lower()


def validate_pubkey(pubkey: Any) -> bool:
    """33-byte compressed hex key that decodes to a secp256k1 point"""
    if not isinstance(pubkey, str) or not PUBKEY_RE.fullmatch(pubkey):
        return False
    return is_valid_point(bytes.fromhex(pubkey))


def uses_disallowed_sample_key(owner_pubkey: str, beneficiary_pubkey: str) -> bool:
    samples = {normalize_pubkey_hex(k) for k in SAMPLE_KEYS.values()}
    return any(
        isinstance(key, str) and normalize_pubkey_hex(key) in samples
        for key in (owner_pubkey, beneficiary_pubkey)
    )


def _check_pubkey(pubkey: Any, role: str) -> None:
    if validate_pubkey(pubkey):
        return
    shown = pubkey if isinstance(pubkey, str) else type(pubkey).__name__
    raise InvalidKey(
        f"Invalid {role} public key ({shown!r}). Expected a 33-byte compressed public key: "
        f"66 hexadecimal characters starting with 02 or 03 that lies on the secp256k1 curve, "
        f"e.g. {EXAMPLE_PUBKEY}. Export it from your wallet's account or xpub view."
    )


def _check_enums(plan: PlanInput) -> None:
    if plan.network not in NETWORKS:
        raise UnsupportedNetwork(
            f"Unsupported network {plan.network!r}. Use one of: {', '.join(NETWORKS)} (e.g. 'testnet')."
        )
    if plan.inheritance_type != INHERITANCE_TYPE:
        raise UnsupportedType(
            f"Unsupported inheritance type {plan.inheritance_type!r}. "
            f"The only supported type is '{INHERITANCE_TYPE}'."
        )
    if plan.address_type not in ADDRESS_TYPES:
        raise UnsupportedType(
            f"Unsupported address type {plan.address_type!r}. "
            f"Use 'p2tr' (segwit v1, default) or 'p2wsh' (segwit v0)."
        )
    if plan.recovery_method not in RECOVERY_METHODS:
        raise UnsupportedType(
            f"Unsupported recovery method {plan.recovery_method!r}. Use 'single' or 'social'."
        )


def _check_locktime(locktime: Any) -> None:
    # bool is an int subclass; True must not pass as 1 block
    if isinstance(locktime, bool) or not isinstance(locktime, int):
        raise LocktimeRange(
            f"Delay must be a whole number of blocks, got {locktime!r}. "
            f"Enter an integer between {MIN_LOCKTIME_BLOCKS} and {MAX_LOCKTIME_BLOCKS:,}, e.g. 4320 (~30 days)."
        )
    if locktime < MIN_LOCKTIME_BLOCKS or locktime > MAX_LOCKTIME_BLOCKS:
        raise LocktimeRange(
            f"Delay must be between {MIN_LOCKTIME_BLOCKS} and {MAX_LOCKTIME_BLOCKS:,} blocks "
            f"(approx. 1 year), got {locktime}. For example 144 blocks is about 1 day."
        )


def _check_sss_config(config: Any) -> None:
    if not isinstance(config, SSSConfig):
        raise InvalidSSSConfig(
            "Social recovery needs a share configuration, e.g. {'threshold': 2, 'total': 3}."
        )
    config.validate()


def validate_plan_input(plan: PlanInput, allow_sample_keys: Optional[bool] = None) -> None:
    """
    Reject a malformed plan request.

    ``allow_sample_keys`` defaults to False on mainnet and True elsewhere.
    Raises a ``ValidationError`` subclass; returns None when the plan is usable.
    """
    _check_enums(plan)

    social = plan.recovery_method == RECOVERY_SOCIAL
    _check_pubkey(plan.owner_pubkey, "Owner")
    if not social:
        # Social recovery substitutes a freshly generated beneficiary key
        _check_pubkey(plan.beneficiary_pubkey, "Beneficiary")
        if normalize_pubkey_hex(plan.owner_pubkey) == normalize_pubkey_hex(plan.beneficiary_pubkey):
            raise KeyCollision(
                "Owner and Beneficiary public keys must be different. Use a key from the "
                "Beneficiary's own wallet, not a second copy of the Owner key."
            )
    else:
        _check_sss_config(plan.sss_config)

    _check_locktime(plan.locktime_blocks)

    if allow_sample_keys is None:
        allow_sample_keys = plan.network != "mainnet"
    if not allow_sample_keys and uses_disallowed_sample_key(plan.owner_pubkey, plan.beneficiary_pubkey):
        raise InvalidKey(
            "The sample keys from the documentation cannot be used here. "
            "Replace them with public keys from wallets you actually control."
        )


def parse_plan_input(data: Any) -> PlanInput:
    """Build a PlanInput from an untrusted mapping, normalizing aliases"""
    if not isinstance(data, dict):
        raise UnsupportedType(
            "Plan must be a JSON object with network, owner_pubkey, beneficiary_pubkey "
            "and locktime_blocks fields."
        )
    normalized: Dict[str, Any] = dict(data)
    address_type = normalized.get('address_type')
    if isinstance(address_type, str):
        normalized['address_type'] = ADDRESS_TYPE_ALIASES.get(address_type.strip().lower(), address_type)
    sss_raw = normalized.get('sss_config')
    if sss_raw is not None and not isinstance(sss_raw, dict):
        raise InvalidSSSConfig("sss_config must be an object like {'threshold': 2, 'total': 3}.")
    return PlanInput.from_dict(normalized)
