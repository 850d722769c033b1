#!/usr/bin/env python3
"""
Complete offline demo of the Inheritance Vault engine
"""

import json

from inheritance_vault.bitcoin_integration import BitcoinKey
from inheritance_vault.checkin import build_check_in_plan
from inheritance_vault.config import VaultSettings
from inheritance_vault.errors import IntegrityCheckFailed
from inheritance_vault.models import PlanInput, RECOVERY_SOCIAL
from inheritance_vault.recovery_kit import (
    build_instructions,
    build_recovery_kit,
    generate_instruction_text,
    load_recovery_kit,
)
from inheritance_vault.sss import SSSConfig, combine_shares
from inheritance_vault.vault import build_vault


def main():
    settings = VaultSettings.testnet()

    print("=" * 60)
    print("INHERITANCE VAULT - COMPLETE DEMO")
    print("=" * 60)
    print()

    # Step 1: keys
    print("STEP 1: Generating Owner and Beneficiary keys")
    print("-" * 40)
    _, owner_pub = BitcoinKey.generate_key_pair()
    _, beneficiary_pub = BitcoinKey.generate_key_pair()
    print(f"Owner:       {owner_pub}")
    print(f"Beneficiary: {beneficiary_pub}")
    print()

    # Step 2: both address types over the same script
    print("STEP 2: Building the vault (~30 day delay)")
    print("-" * 40)
    vaults = {}
    for address_type in ("p2wsh", "p2tr"):
        plan = PlanInput(
            network=settings.network,
            owner_pubkey=owner_pub,
            beneficiary_pubkey=beneficiary_pub,
            locktime_blocks=4320,
            address_type=address_type,
        )
        vaults[address_type] = build_vault(plan)
        print(f"{address_type:6s} {vaults[address_type].result.address}")
    taproot = vaults["p2tr"]
    print()
    print(f"Script: {taproot.result.script_asm}")
    print(f"Descriptor: {taproot.result.descriptor}")
    print()
    for line in taproot.result.human_explanation:
        print(line)
    print()

    # Step 3: recovery kit round trip, then a tampered copy
    print("STEP 3: Recovery kit integrity check")
    print("-" * 40)
    kit = build_recovery_kit(taproot)
    verified = load_recovery_kit(json.dumps(kit))
    print(f"Untouched kit accepted: {verified.result.address}")

    tampered = json.loads(json.dumps(kit))
    tampered["result"]["address"] = vaults["p2wsh"].result.address
    try:
        load_recovery_kit(tampered)
    except IntegrityCheckFailed as e:
        print(f"Tampered kit rejected on: {', '.join(e.mismatched_fields)}")
    print()

    # Step 4: social recovery
    print("STEP 4: Social recovery (2-of-3)")
    print("-" * 40)
    social = build_vault(PlanInput(
        network=settings.network,
        owner_pubkey=owner_pub,
        beneficiary_pubkey="",
        locktime_blocks=4320,
        recovery_method=RECOVERY_SOCIAL,
        sss_config=SSSConfig(threshold=2, total=3),
    ))
    shares = social.result.social_recovery_kit.shares
    for share in shares:
        print(f"Share #{share.index}: {share.share[:16]}...")
    recovered = combine_shares([shares[0].share, shares[2].share])
    recovered_pub = BitcoinKey(bytes.fromhex(recovered)).get_public_key_hex()
    print(f"Shares 1+3 rebuild beneficiary key: {recovered_pub == social.plan.beneficiary_pubkey}")
    print()

    # Step 5: check-in cadence
    print("STEP 5: Check-in planning")
    print("-" * 40)
    for confirmations in (None, 1000, 2500, 4400):
        checkin = build_check_in_plan(4320, confirmations, settings.checkin_cadence_ratio)
        print(f"confirmations={confirmations!s:>5}  status={checkin.status}")
    print()

    print(generate_instruction_text(build_instructions(taproot.plan, taproot.result)))


if __name__ == "__main__":
    main()
