"""
Machine-state naming shared by every compiler.

The generated functions address the operand stack through a stack-pointer
global and rebase memory offsets against a memory-base global. Both names, the
slot geometry and the helper routines the generated code calls are carried on
an explicit MachineContext so no compiler reaches for module-level constants.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import FrozenSet


@dataclass(frozen=True)
class MachineContext:
    sp_global: str = "$sp"
    mem_base_global: str = "$memstart"
    slot_bytes: int = 32
    word_bytes: int = 8
    host_module: str = "ethereum"

    check_overflow_i32: str = "$check_overflow"
    check_overflow_i64: str = "$check_overflow_i64"
    mem_gas: str = "$memusegas"
    bswap_256: str = "$bswap_m256"
    callback_local: str = "$callback"

    # EVM CALL/CALLCODE carry two stack operands the host call does not take.
    reconciled_opcodes: FrozenSet[str] = frozenset({"CALL", "CALLCODE"})
    # Host returns 0 on success, the EVM pushes 1.
    status_inverted_opcodes: FrozenSet[str] = frozenset({"CALL", "CALLCODE", "DELEGATECALL"})

    banner: str = "generated by wastgen"

    @property
    def words_per_slot(self) -> int:
        return self.slot_bytes // self.word_bytes

    def slot_byte_offset(self, slot: int, byte: int = 0) -> int:
        return slot * self.slot_bytes + byte

    def with_host_module(self, module: str) -> "MachineContext":
        return replace(self, host_module=module)


DEFAULT_CONTEXT = MachineContext()
