"""
Address derivation over the compiled vault script.

P2WSH (segwit v0) commits to sha256(script). P2TR (segwit v1) commits to a
single-leaf script tree under an internal key nobody can sign for, so the
script path is the only way to spend and both outputs carry exactly the same
two spending conditions.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ecdsa import MalformedPointError
from embit import bech32

from .bitcoin_integration import sha256, tap_leaf_hash, tap_tweak_pubkey
from .errors import AddressDerivationFailed
from .models import ADDRESS_TYPE_P2TR, ADDRESS_TYPE_P2WSH

logger = logging.getLogger(__name__)

# BIP341 "H": sha256 of the uncompressed secp256k1 generator, lifted to a point.
# No one knows its discrete log, so the key path is provably unspendable.
NUMS_INTERNAL_KEY_HEX = "50929b74c1a04954b78b4b6035e97a5e078a5a0f28ec96d547bfee9ace803ac0"

TAPSCRIPT_LEAF_VERSION = 0xc0

HRP = {
    "mainnet": "bc",
    "testnet": "tb",
    "regtest": "bcrt",
}


@dataclass(frozen=True)
class DerivedAddress:
    address: str
    descriptor: str
    address_type: str
    witness_program: bytes
    control_block: Optional[bytes] = None  # taproot script-path spends only


def _encode_segwit(network: str, witness_version: int, program: bytes) -> str:
    try:
        hrp = HRP[network]
        address = bech32.encode(hrp, witness_version, program)
    except Exception as e:
        raise AddressDerivationFailed(
            f"Could not encode witness v{witness_version} address for {network}: {e}"
        ) from e
    if not address:
        raise AddressDerivationFailed(
            f"Could not encode witness v{witness_version} address for {network}"
        )
    return address


def derive_p2wsh(script: bytes, network: str) -> DerivedAddress:
    program = sha256(script)
    return DerivedAddress(
        address=_encode_segwit(network, 0, program),
        descriptor=f"wsh(raw({script.hex()}))",
        address_type=ADDRESS_TYPE_P2WSH,
        witness_program=program,
    )


def derive_p2tr(script: bytes, network: str) -> DerivedAddress:
    internal_key = bytes.fromhex(NUMS_INTERNAL_KEY_HEX)
    # Single leaf: the merkle root is the leaf hash itself
    merkle_root = tap_leaf_hash(script, TAPSCRIPT_LEAF_VERSION)
    try:
        output_key, parity = tap_tweak_pubkey(internal_key, merkle_root)
    except (ValueError, MalformedPointError) as e:
        raise AddressDerivationFailed(f"Taproot tweak failed: {e}") from e

    return DerivedAddress(
        address=_encode_segwit(network, 1, output_key),
        descriptor=f"tr({NUMS_INTERNAL_KEY_HEX}, {{{script.hex()}}})",
        address_type=ADDRESS_TYPE_P2TR,
        witness_program=output_key,
        control_block=bytes([TAPSCRIPT_LEAF_VERSION | parity]) + internal_key,
    )


def derive_address(script: bytes, network: str, address_type: str) -> DerivedAddress:
    if address_type == ADDRESS_TYPE_P2WSH:
        derived = derive_p2wsh(script, network)
    elif address_type == ADDRESS_TYPE_P2TR:
        derived = derive_p2tr(script, network)
    else:
        raise AddressDerivationFailed(f"No derivation for address type {address_type!r}")
    logger.debug("Derived %s address %s on %s", address_type, derived.address, network)
    return derived
