"""
Recovery kit export, import and integrity verification.

A kit is trusted only because its plan fields rebuild, byte for byte, the
address and script it claims. The stored address string is never trusted on
its own, which closes the attack where a tampered kit keeps a plausible plan
but points the heir at somebody else's address.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from .errors import IntegrityCheckFailed, ValidationError
from .models import INTEGRITY_FIELDS, RECOVERY_SOCIAL, PlanInput, PlanOutput
from .utils import calculate_time
from .validation import parse_plan_input
from .vault import VaultPlan, build_plan

logger = logging.getLogger(__name__)

KIT_VERSION = 1


def verify_recovery_kit(plan: Any, result: Any) -> PlanOutput:
    """
    Rebuild ``plan`` and require the supplied ``result`` to match it exactly.

    Returns the freshly built result. Raises ``IntegrityCheckFailed`` on any
    mismatch; nothing is ever patched up.
    """
    try:
        plan_input = plan if isinstance(plan, PlanInput) else parse_plan_input(plan)
    except ValidationError as e:
        raise IntegrityCheckFailed(f"Recovery kit plan is malformed: {e}") from e

    if plan_input.recovery_method == RECOVERY_SOCIAL:
        raise IntegrityCheckFailed(
            "Recovery kit plan still requests social recovery; a kit must record the "
            "generated beneficiary key so it can be rebuilt."
        )

    try:
        # Sample-key policy belongs to plan creation, not to reading an existing kit
        rebuilt = build_plan(plan_input, allow_sample_keys=True)
    except ValidationError as e:
        raise IntegrityCheckFailed(f"Recovery kit plan failed validation: {e}") from e

    supplied = _integrity_view(result)
    expected = rebuilt.integrity_view()
    mismatched = [name for name in INTEGRITY_FIELDS if supplied.get(name) != expected[name]]
    if mismatched:
        logger.warning("Recovery kit integrity check failed on fields: %s", ", ".join(mismatched))
        raise IntegrityCheckFailed(
            "Recovery kit failed its integrity check: the stored "
            f"{', '.join(mismatched)} do not match what the plan's keys and delay produce. "
            "Do not send funds to or trust this kit; obtain an untampered copy from the Owner.",
            mismatched_fields=mismatched,
        )
    return rebuilt


def _integrity_view(result: Any) -> Dict[str, Any]:
    if isinstance(result, PlanOutput):
        return result.integrity_view()
    if isinstance(result, dict):
        return {name: result.get(name) for name in INTEGRITY_FIELDS}
    raise IntegrityCheckFailed("Recovery kit result must be an object with address and script fields.")


def build_recovery_kit(vault: VaultPlan, created_at: Optional[str] = None) -> Dict[str, Any]:
    """Serializable kit for long-term custody. Social-recovery shares are left out."""
    return {
        'version': KIT_VERSION,
        'created_at': created_at or _now_iso(),
        'plan': vault.plan.to_dict(),
        'result': vault.result.to_dict(include_social_kit=False),
    }


def dump_recovery_kit(vault: VaultPlan, created_at: Optional[str] = None) -> str:
    return json.dumps(build_recovery_kit(vault, created_at), indent=2)


@dataclass(frozen=True)
class VerifiedKit:
    plan: PlanInput
    result: PlanOutput
    version: Optional[int] = None
    created_at: Optional[str] = None


def load_recovery_kit(document: Union[str, bytes, Dict[str, Any]]) -> VerifiedKit:
    """Parse a kit document and accept it only if it passes the integrity check"""
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except ValueError as e:
            raise IntegrityCheckFailed(f"Recovery kit is not valid JSON: {e}") from e

    if not isinstance(document, dict) or 'plan' not in document or 'result' not in document:
        raise IntegrityCheckFailed("Recovery kit must be a JSON object with 'plan' and 'result' entries.")

    rebuilt = verify_recovery_kit(document['plan'], document['result'])
    return VerifiedKit(
        plan=parse_plan_input(document['plan']),
        result=rebuilt,
        version=document.get('version'),
        created_at=document.get('created_at'),
    )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


# Beneficiary instructions

@dataclass(frozen=True)
class InstructionModel:
    network: str  # upper-cased for display
    address: str
    owner_pubkey: str
    beneficiary_pubkey: str
    locktime_blocks: int
    locktime_approx: str
    witness_script_hex: str
    witness_script_asm: str
    descriptor: str
    created_at: str


def build_instructions(plan: PlanInput, result: PlanOutput, created_at: Optional[str] = None) -> InstructionModel:
    return InstructionModel(
        network=plan.network.upper(),
        address=result.address,
        owner_pubkey=plan.owner_pubkey,
        beneficiary_pubkey=plan.beneficiary_pubkey,
        locktime_blocks=plan.locktime_blocks,
        locktime_approx=calculate_time(plan.locktime_blocks),
        witness_script_hex=result.witness_script,
        witness_script_asm=result.script_asm,
        descriptor=result.descriptor,
        created_at=created_at or _now_iso(),
    )


def generate_instruction_text(m: InstructionModel) -> str:
    """Plain-text sheet telling the beneficiary what to hold and when they may claim"""
    return f"""
BENEFICIARY INSTRUCTIONS (BITCOIN WILL)
Generated on: {m.created_at}
--------------------------------------------------

WHAT THIS IS
This document contains the technical details required to claim funds
from a Bitcoin Will "Dead Man's Switch" vault.

WHAT YOU NEED
1. Your Private Key: You must hold the private key corresponding to
   the Beneficiary Public Key listed below.
2. This Instruction Set: Specifically the Witness Script or Descriptor.
3. An Advanced Wallet: Tools like Sparrow Wallet or Electrum that
   support custom scripts.

WHEN YOU CAN CLAIM
Delay: {m.locktime_blocks} blocks (Approx. {m.locktime_approx})
Condition: You can only claim these funds if they have remained
unmoved at the vault address for longer than the delay period
since the last funding transaction confirmed.

TECHNICAL DETAILS
Network: {m.network}
Vault Address: {m.address}
Beneficiary Pubkey: {m.beneficiary_pubkey}
Witness Script (Hex): {m.witness_script_hex}
Descriptor: {m.descriptor}

RECOVERY STEPS
1. Confirm the vault address has a balance using a blockchain explorer.
2. Identify the funding transaction and wait for {m.locktime_blocks} blocks to pass.
3. Construct a "Sweep" transaction using a compatible wallet.
4. Provide your signature and the Witness Script to unlock the funds.
5. Send the funds to a standard address you control.

WARNINGS
- Mistakes are irreversible.
- Never share your private keys with anyone.
- Test this process on Testnet before using significant amounts.
--------------------------------------------------
""".strip()
