"""
Bitcoin integration utilities

Curve and script primitives the rest of the engine builds on. Everything the
engine needs from a cryptography library goes through the functions here:
``is_valid_point``, ``derive_public_key``, ``compile_opcodes`` and
``encode_minimal_number``.
"""

import hashlib
import secrets
import struct
from typing import List, Tuple, Union

from ecdsa import SigningKey, SECP256k1, VerifyingKey, MalformedPointError

# Script opcodes used by the vault script
OP_0 = 0x00
OP_PUSHDATA1 = 0x4c
OP_PUSHDATA2 = 0x4d
OP_PUSHDATA4 = 0x4e
OP_1NEGATE = 0x4f
OP_1 = 0x51
OP_16 = 0x60
OP_IF = 0x63
OP_ELSE = 0x67
OP_ENDIF = 0x68
OP_DROP = 0x75
OP_CHECKSIG = 0xac
OP_CHECKSEQUENCEVERIFY = 0xb2

OPCODE_NAMES = {
    OP_0: "OP_0",
    OP_1NEGATE: "OP_1NEGATE",
    OP_IF: "OP_IF",
    OP_ELSE: "OP_ELSE",
    OP_ENDIF: "OP_ENDIF",
    OP_DROP: "OP_DROP",
    OP_CHECKSIG: "OP_CHECKSIG",
    OP_CHECKSEQUENCEVERIFY: "OP_CHECKSEQUENCEVERIFY",
}
for _n in range(1, 17):
    OPCODE_NAMES[OP_1 + _n - 1] = f"OP_{_n}"

# A chunk is either an opcode or a data push
ScriptChunk = Union[int, bytes]

CURVE_ORDER = SECP256k1.order
FIELD_PRIME = SECP256k1.curve.p()


class BitcoinKey:
    """Bitcoin key management utilities"""

    def __init__(self, private_key: bytes = None):
        if private_key:
            if not is_valid_private_key(private_key):
                raise ValueError("Private key must be a 32-byte scalar in [1, n-1]")
            self.private_key = SigningKey.from_string(private_key, curve=SECP256k1)
        else:
            self.private_key = SigningKey.generate(curve=SECP256k1)

        self.public_key = self.private_key.get_verifying_key()

    def get_private_key_bytes(self) -> bytes:
        return self.private_key.to_string()

    def get_public_key_bytes(self) -> bytes:
        """Compressed SEC1 encoding of the public key"""
        point = self.public_key.pubkey.point
        prefix = b'\x02' if point.y() % 2 == 0 else b'\x03'
        return prefix + point.x().to_bytes(32, 'big')

    def get_public_key_hex(self) -> str:
        """Get compressed public key in hex format"""
        return self.get_public_key_bytes().hex()

    @staticmethod
    def generate_key_pair() -> Tuple[str, str]:
        """Generate new key pair and return (private_key_hex, public_key_hex)"""
        key = BitcoinKey()
        return key.get_private_key_bytes().hex(), key.get_public_key_hex()


def is_valid_private_key(secret: bytes) -> bool:
    if len(secret) != 32:
        return False
    return 1 <= int.from_bytes(secret, 'big') < CURVE_ORDER


def is_valid_point(pubkey: bytes) -> bool:
    """True when ``pubkey`` is a compressed secp256k1 point on the curve"""
    if len(pubkey) != 33 or pubkey[0] not in (2, 3):
        return False
    if int.from_bytes(pubkey[1:], 'big') >= FIELD_PRIME:
        return False
    try:
        VerifyingKey.from_string(pubkey, curve=SECP256k1)
    except (MalformedPointError, ValueError):
        return False
    return True


def derive_public_key(private_key: bytes) -> bytes:
    """Compressed public key for a 32-byte private scalar"""
    return BitcoinKey(private_key).get_public_key_bytes()


def generate_private_key() -> bytes:
    """Fresh private scalar from the OS CSPRNG"""
    while True:
        candidate = secrets.token_bytes(32)
        if is_valid_private_key(candidate):
            return candidate


def encode_minimal_number(value: int) -> bytes:
    """Minimal script-number encoding (little-endian, sign bit in the top byte)"""
    if value == 0:
        return b''
    negative = value < 0
    magnitude = abs(value)
    result = bytearray()
    while magnitude:
        result.append(magnitude & 0xff)
        magnitude >>= 8
    if result[-1] & 0x80:
        result.append(0x80 if negative else 0x00)
    elif negative:
        result[-1] |= 0x80
    return bytes(result)


def _as_minimal_opcode(data: bytes):
    if len(data) == 0:
        return OP_0
    if len(data) != 1:
        return None
    if 1 <= data[0] <= 16:
        return OP_1 + data[0] - 1
    if data[0] == 0x81:
        return OP_1NEGATE
    return None


def _push_data(data: bytes) -> bytes:
    length = len(data)
    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xff:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xffff:
        return bytes([OP_PUSHDATA2]) + struct.pack('<H', length) + data
    return bytes([OP_PUSHDATA4]) + struct.pack('<I', length) + data


def compile_opcodes(chunks: List[ScriptChunk]) -> bytes:
    """Serialize opcodes and data pushes into script bytes"""
    out = bytearray()
    for chunk in chunks:
        if isinstance(chunk, bytes):
            op = _as_minimal_opcode(chunk)
            if op is not None:
                out.append(op)
            else:
                out += _push_data(chunk)
        else:
            out.append(chunk)
    return bytes(out)


def script_to_asm(chunks: List[ScriptChunk]) -> str:
    """Human-readable rendering of a chunk list"""
    parts = []
    for chunk in chunks:
        if isinstance(chunk, bytes):
            op = _as_minimal_opcode(chunk)
            parts.append(OPCODE_NAMES[op] if op is not None else chunk.hex())
        else:
            parts.append(OPCODE_NAMES.get(chunk, f"OP_UNKNOWN_{chunk:02x}"))
    return " ".join(parts)


def write_compact(n: int) -> bytes:
    if n < 0xfd:
        return struct.pack('<B', n)
    if n <= 0xffff:
        return b'\xfd' + struct.pack('<H', n)
    if n <= 0xffffffff:
        return b'\xfe' + struct.pack('<I', n)
    return b'\xff' + struct.pack('<Q', n)


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def tagged_hash(tag: str, data: bytes) -> bytes:
    """BIP340 tagged hash"""
    t = sha256(tag.encode())
    return sha256(t + t + data)


def tap_leaf_hash(script: bytes, leaf_version: int = 0xc0) -> bytes:
    return tagged_hash("TapLeaf", bytes([leaf_version]) + write_compact(len(script)) + script)


def tap_tweak_pubkey(internal_key: bytes, merkle_root: bytes) -> Tuple[bytes, int]:
    """
    Tweak an x-only internal key with a script-tree root.

    Returns the 32-byte x-only output key and the parity of its y coordinate.
    """
    if len(internal_key) != 32:
        raise ValueError("Internal key must be a 32-byte x-only public key")
    tweak = int.from_bytes(tagged_hash("TapTweak", internal_key + merkle_root), 'big')
    if tweak >= CURVE_ORDER:
        raise ValueError("Taproot tweak exceeds curve order")

    # lift_x: the even-y point for this x coordinate
    internal_point = VerifyingKey.from_string(b'\x02' + internal_key, curve=SECP256k1).pubkey.point
    output_point = internal_point + SECP256k1.generator * tweak
    return output_point.x().to_bytes(32, 'big'), output_point.y() % 2
