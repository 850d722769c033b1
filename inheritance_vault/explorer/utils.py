"""
Input sanitizing for explorer and relay calls
"""

import re

from ..errors import InvalidTxHex, ValidationError

MIN_ADDRESS_LENGTH = 14
MIN_RAW_TX_HEX_LENGTH = 20

LOWER_HEX_RE = re.compile(r"^[a-f0-9]+$")


def sanitize_address(address) -> str:
    normalized = address.strip() if isinstance(address, str) else ""
    if len(normalized) < MIN_ADDRESS_LENGTH:
        raise ValidationError("Address is too short to query.")
    return normalized


def sanitize_raw_tx_hex(raw_tx_hex) -> str:
    """Normalize a signed transaction before it goes anywhere near the network"""
    normalized = raw_tx_hex.strip().lower() if isinstance(raw_tx_hex, str) else ""
    if not normalized:
        raise InvalidTxHex("Transaction hex is required.")
    if not LOWER_HEX_RE.fullmatch(normalized):
        raise InvalidTxHex("Transaction hex must contain only hexadecimal characters (0-9, a-f).")
    if len(normalized) % 2 != 0:
        raise InvalidTxHex("Transaction hex must have an even number of characters.")
    if len(normalized) < MIN_RAW_TX_HEX_LENGTH:
        raise InvalidTxHex("Transaction hex is too short to be valid.")
    return normalized
