"""
Shamir secret sharing for social recovery of the beneficiary key.

Shares are computed over GF(2^8), one polynomial per secret byte, using the
AES reduction polynomial. A share is the y-values for every byte followed by a
single x-coordinate byte, hex encoded, so a 32-byte secret yields 66 hex chars.

Any ``threshold`` shares reconstruct the secret; fewer reveal nothing about
it, regardless of computing power.

Construction: Shamir, "How to Share a Secret" (CACM 1979), evaluated bytewise
in the AES field of FIPS-197 section 4.2 (x^8 + x^4 + x^3 + x + 1, generator
0x03). The share layout, y-bytes then a trailing x byte, is the one used by the
``shamir-secret-sharing`` npm package. x-coordinates here are 1..n rather than
random, and interoperability with that package is not guaranteed.
"""

import re
import secrets
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .errors import InsufficientShares, InvalidShareFormat, InvalidSSSConfig

SUPPORTED_CONFIGS = ((2, 3), (3, 5))

SHARE_RE = re.compile(r"^[0-9a-fA-F]{64,}$")
PRIVATE_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")


# GF(256) arithmetic with log/exp tables, generator 0x03
_EXP = [0] * 510
_LOG = [0] * 256
_x = 1
for _i in range(255):
    _EXP[_i] = _x
    _LOG[_x] = _i
    _x ^= (_x << 1) ^ (0x11b if _x & 0x80 else 0)
    _x &= 0xff
for _i in range(255, 510):
    _EXP[_i] = _EXP[_i - 255]


def _gf_mul(a: int, b: int) -> int:
    if a == 0 or b == 0:
        return 0
    return _EXP[_LOG[a] + _LOG[b]]


def _gf_div(a: int, b: int) -> int:
    if b == 0:
        raise ZeroDivisionError("division by zero in GF(256)")
    if a == 0:
        return 0
    return _EXP[(_LOG[a] - _LOG[b]) % 255]


def _eval_polynomial(coefficients: Sequence[int], x: int) -> int:
    # Horner, highest degree first
    result = 0
    for coefficient in reversed(coefficients):
        result = _gf_mul(result, x) ^ coefficient
    return result


def _interpolate_at_zero(points: Sequence[tuple]) -> int:
    result = 0
    for i, (xi, yi) in enumerate(points):
        term = yi
        for j, (xj, _) in enumerate(points):
            if i == j:
                continue
            # Lagrange basis at 0: xj / (xj - xi); subtraction is xor
            term = _gf_mul(term, _gf_div(xj, xj ^ xi))
        result ^= term
    return result


@dataclass(frozen=True)
class SSSConfig:
    """Threshold/total pair for social recovery"""
    threshold: int
    total: int

    def validate(self) -> None:
        if (self.threshold, self.total) not in SUPPORTED_CONFIGS:
            options = ", ".join(f"{t}-of-{n}" for t, n in SUPPORTED_CONFIGS)
            raise InvalidSSSConfig(
                f"Unsupported social recovery configuration {self.threshold}-of-{self.total}. "
                f"Choose one of: {options} (for example threshold=2, total=3)."
            )

    def to_dict(self) -> Dict[str, int]:
        return {'threshold': self.threshold, 'total': self.total}


@dataclass(frozen=True)
class SSShare:
    index: int  # 1-based
    share: str  # hex

    def to_dict(self) -> Dict:
        return {'index': self.index, 'share': self.share}


@dataclass(frozen=True)
class SocialRecoveryKit:
    config: SSSConfig
    shares: List[SSShare]
    instructions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'config': self.config.to_dict(),
            'shares': [s.to_dict() for s in self.shares],
            'instructions': list(self.instructions),
        }


def get_sss_options() -> List[Dict[str, str]]:
    return [
        {
            'id': '2-of-3',
            'label': '2-of-3 Shares',
            'description': 'Split among 3 trusted people, any 2 can recover',
        },
        {
            'id': '3-of-5',
            'label': '3-of-5 Shares',
            'description': 'Split among 5 family members, any 3 can recover',
        },
    ]


def split(secret: bytes, total: int, threshold: int) -> List[bytes]:
    """
    Split ``secret`` into ``total`` shares, any ``threshold`` of which recover it.

    Polynomial coefficients are drawn fresh from the OS CSPRNG on every call.
    """
    if not secret:
        raise ValueError("Secret must not be empty")
    if not (2 <= threshold <= total <= 255):
        raise ValueError("Require 2 <= threshold <= total <= 255")

    xs = list(range(1, total + 1))
    ys = [bytearray() for _ in xs]
    for byte in secret:
        coefficients = [byte] + [secrets.randbelow(256) for _ in range(threshold - 1)]
        for k, x in enumerate(xs):
            ys[k].append(_eval_polynomial(coefficients, x))

    return [bytes(y) + bytes([x]) for x, y in zip(xs, ys)]


def combine(shares: Sequence[bytes]) -> bytes:
    """Reconstruct the secret from a set of shares"""
    if len(shares) < 2:
        raise InsufficientShares("At least 2 shares are required to reconstruct the key.")

    length = len(shares[0])
    if length < 2 or any(len(s) != length for s in shares):
        raise InvalidShareFormat("All shares must have the same length.")

    xs = [s[-1] for s in shares]
    if 0 in xs or len(set(xs)) != len(xs):
        raise InvalidShareFormat("Shares must come from distinct trustees (duplicate or zero share index).")

    secret = bytearray()
    for position in range(length - 1):
        points = [(s[-1], s[position]) for s in shares]
        secret.append(_interpolate_at_zero(points))
    return bytes(secret)


def split_private_key(private_key_hex: str, config: SSSConfig) -> SocialRecoveryKit:
    """Split a 32-byte private key and wrap the shares with distribution instructions"""
    if not isinstance(private_key_hex, str) or not PRIVATE_KEY_RE.fullmatch(private_key_hex):
        raise ValueError("Invalid private key: must be 64 hex characters (32 bytes)")
    config.validate()

    raw_shares = split(bytes.fromhex(private_key_hex), config.total, config.threshold)
    return _kit_from_shares(raw_shares, config)


def split_secret(secret: bytes, config: SSSConfig) -> SocialRecoveryKit:
    config.validate()
    return _kit_from_shares(split(secret, config.total, config.threshold), config)


def _kit_from_shares(raw_shares: List[bytes], config: SSSConfig) -> SocialRecoveryKit:
    shares = [SSShare(index=i + 1, share=s.hex()) for i, s in enumerate(raw_shares)]
    return SocialRecoveryKit(
        config=config,
        shares=shares,
        instructions=generate_instructions(config),
    )


def combine_shares(shares: List[str]) -> str:
    """Hex-in, hex-out wrapper around ``combine``"""
    if len(shares) < 2:
        raise InsufficientShares("At least 2 shares are required to reconstruct the key.")
    normalized = []
    for i, share in enumerate(shares, start=1):
        candidate = share.strip() if isinstance(share, str) else share
        if not validate_share(candidate):
            raise InvalidShareFormat(
                f"Share #{i} is not valid: expected at least 64 hexadecimal characters "
                f"with an even length (e.g. '3f9a...c201')."
            )
        normalized.append(bytes.fromhex(candidate))
    return combine(normalized).hex()


def validate_share(share_hex: str) -> bool:
    """Shape check only; cannot tell whether a share is cryptographically correct"""
    return isinstance(share_hex, str) and bool(SHARE_RE.fullmatch(share_hex)) and len(share_hex) % 2 == 0


def generate_instructions(config: SSSConfig) -> List[str]:
    threshold, total = config.threshold, config.total
    return [
        f"SOCIAL RECOVERY CONFIGURATION: {threshold}-of-{total}",
        "",
        f"You have generated {total} shares. Any {threshold} of them can reconstruct the private key.",
        "",
        "DISTRIBUTION STRATEGY:",
        "• Give each share to a different trusted person",
        "• Never store all shares in the same location",
        "• Inform each person what the share is for",
        "• Consider geographic distribution (different cities/countries)",
        "",
        "SECURITY NOTES:",
        f"• {threshold - 1} or fewer shares reveal NOTHING about the key",
        f"• Shares are useless without meeting the {threshold}-share threshold",
        f"• If one share is lost, the remaining {total - 1} are still sufficient",
    ]
