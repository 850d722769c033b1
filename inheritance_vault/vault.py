"""
Plan orchestration: validated input in, complete vault plan out.

For ``recovery_method='single'`` the result is a pure function of the input.
Social recovery is the one nondeterministic branch: it generates the
beneficiary key, splits it among trustees and throws the key away.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import List, Optional

from .address import derive_address
from .bitcoin_integration import derive_public_key, generate_private_key
from .models import RECOVERY_SOCIAL, RECOVERY_SINGLE, PlanInput, PlanOutput
from .script import compile_vault_script
from .sss import split_secret
from .utils import calculate_time
from .validation import validate_plan_input

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VaultPlan:
    """
    A built vault together with the input that actually produced it.

    For social recovery ``plan`` carries the generated beneficiary key, so it
    (not the original request) is what belongs in a recovery kit.
    """
    plan: PlanInput
    result: PlanOutput


def build_plan(plan: PlanInput, allow_sample_keys: Optional[bool] = None) -> PlanOutput:
    """
    Build the vault for ``plan``.

    Example:
        >>> result = build_plan(PlanInput(
        ...     network='testnet',
        ...     owner_pubkey='0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798',
        ...     beneficiary_pubkey='02c6047f9441ed7d6d3045406e95c07cd85c778e4b8cef3ca7abac09b95c709ee5',
        ...     locktime_blocks=144,
        ... ))
        >>> result.address.startswith('tb1p')
        True
    """
    return build_vault(plan, allow_sample_keys=allow_sample_keys).result


def build_vault(plan: PlanInput, allow_sample_keys: Optional[bool] = None) -> VaultPlan:
    """Like ``build_plan`` but also returns the effective input"""
    validate_plan_input(plan, allow_sample_keys=allow_sample_keys)

    social_kit = None
    effective = plan
    if plan.recovery_method == RECOVERY_SOCIAL:
        effective, social_kit = _generate_social_beneficiary(plan)
        validate_plan_input(effective, allow_sample_keys=allow_sample_keys)

    compiled = compile_vault_script(effective.owner_pubkey, effective.beneficiary_pubkey, effective.locktime_blocks)
    derived = derive_address(compiled.script, effective.network, effective.address_type)

    logger.info(
        "Built %s vault on %s: %s (recovery=%s)",
        derived.address_type, effective.network, derived.address, plan.recovery_method,
    )

    result = PlanOutput(
        descriptor=derived.descriptor,
        script_asm=compiled.asm,
        script_hex=compiled.hex,
        address=derived.address,
        witness_script=compiled.hex,
        network=effective.network,
        address_type=derived.address_type,
        human_explanation=generate_explanation(effective, derived.address),
        social_recovery_kit=social_kit,
    )
    return VaultPlan(plan=effective, result=result)


def _generate_social_beneficiary(plan: PlanInput):
    """Fresh beneficiary key, split among trustees; only the pubkey and shares survive"""
    secret = generate_private_key()
    beneficiary_pubkey = derive_public_key(secret).hex()
    kit = split_secret(secret, plan.sss_config)
    del secret

    effective = dataclasses.replace(
        plan,
        beneficiary_pubkey=beneficiary_pubkey,
        recovery_method=RECOVERY_SINGLE,
        sss_config=None,
    )
    return effective, kit


def generate_explanation(plan: PlanInput, address: str) -> List[str]:
    """Display lines describing the two spending paths"""
    blocks = plan.locktime_blocks
    return [
        f"Vault Address: {address}",
        f"1. The Owner ({plan.owner_pubkey[:8]}...) can spend these funds at any time.",
        f"2. The Beneficiary ({plan.beneficiary_pubkey[:8]}...) can claim the funds ONLY if they "
        f"have remained unmoved for at least {blocks} blocks (approx. {calculate_time(blocks)}).",
        "3. Every time the Owner moves the funds to a new vault, the timer resets.",
    ]

