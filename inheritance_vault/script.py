"""
Vault script compiler.

    OP_IF
      <owner_pubkey> OP_CHECKSIG
    OP_ELSE
      <locktime_blocks> OP_CHECKSEQUENCEVERIFY OP_DROP
      <beneficiary_pubkey> OP_CHECKSIG
    OP_ENDIF

Owner path: witness ``[sig, 1]``, any time.
Beneficiary path: witness ``[sig, 0]``, only once the spending input's
nSequence encodes a relative lock of at least ``locktime_blocks`` blocks
(BIP68/BIP112). The same bytes back both the P2WSH and the P2TR outputs.
"""

from dataclasses import dataclass
from typing import List

from .bitcoin_integration import (
    OP_CHECKSEQUENCEVERIFY,
    OP_CHECKSIG,
    OP_DROP,
    OP_ELSE,
    OP_ENDIF,
    OP_IF,
    ScriptChunk,
    compile_opcodes,
    encode_minimal_number,
    script_to_asm,
)


@dataclass(frozen=True)
class CompiledScript:
    script: bytes
    asm: str

    @property
    def hex(self) -> str:
        return self.script.hex()


def vault_script_chunks(owner_pubkey: bytes, beneficiary_pubkey: bytes, locktime_blocks: int) -> List[ScriptChunk]:
    return [
        OP_IF,
        owner_pubkey,
        OP_CHECKSIG,
        OP_ELSE,
        encode_minimal_number(locktime_blocks),
        OP_CHECKSEQUENCEVERIFY,
        OP_DROP,
        beneficiary_pubkey,
        OP_CHECKSIG,
        OP_ENDIF,
    ]


def compile_vault_script(owner_pubkey_hex: str, beneficiary_pubkey_hex: str, locktime_blocks: int) -> CompiledScript:
    """Compile the dual-path script for already-validated keys and delay"""
    chunks = vault_script_chunks(
        bytes.fromhex(owner_pubkey_hex),
        bytes.fromhex(beneficiary_pubkey_hex),
        locktime_blocks,
    )
    return CompiledScript(script=compile_opcodes(chunks), asm=script_to_asm(chunks))


def beneficiary_sequence(locktime_blocks: int) -> int:
    """nSequence a beneficiary spend must carry (block-based relative lock)"""
    # Bit 22 clear selects blocks; bit 31 clear enables the relative lock
    return locktime_blocks & 0xffff
