"""
Plan request and result types
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .sss import SSSConfig, SocialRecoveryKit

NETWORKS = ("mainnet", "testnet", "regtest")

INHERITANCE_TYPE = "timelock_recovery"

ADDRESS_TYPE_P2WSH = "p2wsh"  # segwit v0
ADDRESS_TYPE_P2TR = "p2tr"    # segwit v1 (taproot)
ADDRESS_TYPES = (ADDRESS_TYPE_P2WSH, ADDRESS_TYPE_P2TR)
ADDRESS_TYPE_ALIASES = {
    "segwit-v0": ADDRESS_TYPE_P2WSH,
    "segwit-v1": ADDRESS_TYPE_P2TR,
    ADDRESS_TYPE_P2WSH: ADDRESS_TYPE_P2WSH,
    ADDRESS_TYPE_P2TR: ADDRESS_TYPE_P2TR,
}

RECOVERY_SINGLE = "single"
RECOVERY_SOCIAL = "social"
RECOVERY_METHODS = (RECOVERY_SINGLE, RECOVERY_SOCIAL)

MIN_LOCKTIME_BLOCKS = 1
MAX_LOCKTIME_BLOCKS = 52_560  # ~1 year at 10 min/block

# Fields compared by the recovery-kit integrity check
INTEGRITY_FIELDS = ("address", "script_hex", "witness_script", "descriptor", "network")


@dataclass(frozen=True)
class PlanInput:
    """Everything needed to derive a vault. Immutable once built."""
    network: str
    owner_pubkey: str  # compressed, hex
    beneficiary_pubkey: str  # compressed, hex
    locktime_blocks: int
    inheritance_type: str = INHERITANCE_TYPE
    address_type: str = ADDRESS_TYPE_P2TR
    recovery_method: str = RECOVERY_SINGLE
    sss_config: Optional[SSSConfig] = None
    plan_label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'network': self.network,
            'inheritance_type': self.inheritance_type,
            'owner_pubkey': self.owner_pubkey,
            'beneficiary_pubkey': self.beneficiary_pubkey,
            'locktime_blocks': self.locktime_blocks,
            'address_type': self.address_type,
            'recovery_method': self.recovery_method,
        }
        if self.sss_config is not None:
            data['sss_config'] = self.sss_config.to_dict()
        if self.plan_label is not None:
            data['plan_label'] = self.plan_label
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlanInput':
        """
        Map a loosely-typed payload onto a PlanInput without judging it.

        Values are carried over as-is; call ``validate_plan_input`` before
        trusting the result.
        """
        sss_raw = data.get('sss_config')
        sss_config = None
        if isinstance(sss_raw, dict):
            sss_config = SSSConfig(threshold=sss_raw.get('threshold'), total=sss_raw.get('total'))
        elif sss_raw is not None:
            sss_config = sss_raw

        return cls(
            network=data.get('network'),
            owner_pubkey=data.get('owner_pubkey'),
            beneficiary_pubkey=data.get('beneficiary_pubkey'),
            locktime_blocks=data.get('locktime_blocks'),
            inheritance_type=data.get('inheritance_type', INHERITANCE_TYPE),
            address_type=data.get('address_type', ADDRESS_TYPE_P2TR),
            recovery_method=data.get('recovery_method', RECOVERY_SINGLE),
            sss_config=sss_config,
            plan_label=data.get('plan_label'),
        )


@dataclass(frozen=True)
class PlanOutput:
    """Derived vault: script, address, descriptor and display text"""
    descriptor: str
    script_asm: str
    script_hex: str
    address: str
    witness_script: str
    network: str
    address_type: str
    human_explanation: List[str] = field(default_factory=list)
    social_recovery_kit: Optional[SocialRecoveryKit] = None

    def integrity_view(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in INTEGRITY_FIELDS}

    def to_dict(self, include_social_kit: bool = True) -> Dict[str, Any]:
        data = {
            'descriptor': self.descriptor,
            'script_asm': self.script_asm,
            'script_hex': self.script_hex,
            'address': self.address,
            'witness_script': self.witness_script,
            'network': self.network,
            'address_type': self.address_type,
            'human_explanation': list(self.human_explanation),
        }
        if include_social_kit and self.social_recovery_kit is not None:
            data['social_recovery_kit'] = self.social_recovery_kit.to_dict()
        return data
