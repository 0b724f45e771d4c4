"""Addressing helpers for 256-bit operand-stack slots relative to the stack pointer."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Type

from .context import MachineContext
from .ir import Call, Const, GetGlobal, Instr, Load, Node, Store


def slot_addr(ctx: MachineContext, slot: int, byte: int = 0) -> Node:
    offset = ctx.slot_byte_offset(slot, byte)
    if offset == 0:
        return GetGlobal(ctx.sp_global)
    return Instr("i32.add", (GetGlobal(ctx.sp_global), Const("i32", offset)))


def slot_words(ctx: MachineContext, slot: int) -> List[Node]:
    """The slot's sub-words, least significant first."""
    return [Load("i64", slot_addr(ctx, slot, w * ctx.word_bytes)) for w in range(ctx.words_per_slot)]


def narrow(ctx: MachineContext, checker: str, slot: int) -> Call:
    return Call(checker, tuple(slot_words(ctx, slot)))


def zero_words(ctx: MachineContext, slot: int, words: Iterable[int]) -> List[Node]:
    return [
        Store("i64", slot_addr(ctx, slot, w * ctx.word_bytes), Const("i64", 0))
        for w in words
    ]


def check_exhaustive(table: Dict, kinds: Type[Enum], *, what: str) -> None:
    missing = [k.value for k in kinds if k not in table]
    if missing:
        raise RuntimeError(f"{what}: no handler for {', '.join(missing)}")
