"""
Inheritance Vault - self-custodied Bitcoin inheritance with a relative timelock

The Owner can always spend; the Beneficiary can spend once the vault has sat
untouched for a chosen number of blocks.
"""

from .models import PlanInput, PlanOutput
from .vault import VaultPlan, build_plan, build_vault
from .validation import validate_plan_input, parse_plan_input
from .recovery_kit import build_recovery_kit, load_recovery_kit, verify_recovery_kit
from .sss import SSSConfig, SocialRecoveryKit, combine_shares, split_private_key
from .checkin import CheckInPlan, build_check_in_plan
from .config import VaultSettings

__version__ = "0.1.0"
__all__ = [
    "PlanInput",
    "PlanOutput",
    "VaultPlan",
    "build_plan",
    "build_vault",
    "validate_plan_input",
    "parse_plan_input",
    "build_recovery_kit",
    "load_recovery_kit",
    "verify_recovery_kit",
    "SSSConfig",
    "SocialRecoveryKit",
    "combine_shares",
    "split_private_key",
    "CheckInPlan",
    "build_check_in_plan",
    "VaultSettings",
]
