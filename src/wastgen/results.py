"""
Result marshalling: place the host's answer on the operand stack.

By-value results are stored into the low word of the result slot; wide results
are written by the host through an output-location handle pointing at that
slot. Either way the rest of the slot is cleared so no stale high-order bytes
survive into the 256-bit word.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from .context import MachineContext
from .ir import Call, Const, GetLocal, Instr, Node, Note, Store
from .manifest import InterfaceDescriptor, ReturnKind
from .operands import OperandPlan
from .signature import Mode, takes_callback
from .stack import check_exhaustive, slot_addr, zero_words


class _Result:
    def __init__(self, opcode: str, desc: InterfaceDescriptor, mode: Mode, plan: OperandPlan, ctx: MachineContext):
        self.opcode = opcode
        self.ctx = ctx
        self.slot = plan.result_slot
        self.call = Call(f"${desc.name}", plan.args)
        self.callback: Optional[Node] = GetLocal(ctx.callback_local) if takes_callback(desc, mode) else None

    def host_call(self, *handles: Node) -> Call:
        args = list(handles)
        if self.callback is not None:
            args.append(self.callback)
        return self.call.with_args(*args)

    def handle(self) -> Node:
        return slot_addr(self.ctx, self.slot)

    def pad(self, words) -> List[Node]:
        return [Note("zero out mem"), *zero_words(self.ctx, self.slot, words)]


def _no_result(r: _Result) -> List[Node]:
    return [r.host_call()]


def _result_i32(r: _Result) -> List[Node]:
    value: Node = r.host_call()
    out: List[Node] = []
    if r.opcode in r.ctx.status_inverted_opcodes:
        out.append(Note("flip call status from host convention (0 = success) to EVM (1 = success)"))
        value = Instr("i32.eqz", (value,))
    out.append(Store("i64", r.handle(), Instr("i64.extend_u/i32", (value,))))
    return out + r.pad(range(1, r.ctx.words_per_slot))


def _result_i64(r: _Result) -> List[Node]:
    return [Store("i64", r.handle(), r.host_call())] + r.pad(range(1, r.ctx.words_per_slot))


def _result_i128(r: _Result) -> List[Node]:
    return [r.host_call(r.handle())] + r.pad(range(2, r.ctx.words_per_slot))


def _result_address(r: _Result) -> List[Node]:
    # 160-bit address: words 0-1 plus the low half of word 2.
    return [
        r.host_call(r.handle()),
        *r.pad(range(3, r.ctx.words_per_slot)),
        Store("i32", slot_addr(r.ctx, r.slot, 2 * r.ctx.word_bytes + 4), Const("i32", 0)),
    ]


def _result_i256(r: _Result) -> List[Node]:
    return [
        r.host_call(r.handle()),
        Instr("drop", (Call(r.ctx.bswap_256, (r.handle(),)),)),
    ]


_HANDLERS: Dict[ReturnKind, Callable[[_Result], List[Node]]] = {
    ReturnKind.I32: _result_i32,
    ReturnKind.I64: _result_i64,
    ReturnKind.I128: _result_i128,
    ReturnKind.ADDRESS: _result_address,
    ReturnKind.I256: _result_i256,
}

check_exhaustive(_HANDLERS, ReturnKind, what="result marshalling")


def _clear_reconciled(r: _Result, plan: OperandPlan) -> List[Node]:
    out: List[Node] = []
    for slot in plan.reconciled_slots:
        # The result slot's padding is handled by the result branch.
        if slot == r.slot:
            continue
        out.append(Note("zero out dropped call operand"))
        out.extend(zero_words(r.ctx, slot, range(r.ctx.words_per_slot)))
    return out


def compile_result(
    opcode: str,
    desc: InterfaceDescriptor,
    mode: Mode,
    plan: OperandPlan,
    ctx: MachineContext,
) -> List[Node]:
    r = _Result(opcode, desc, mode, plan, ctx)
    kind = desc.result
    body = _no_result(r) if kind is None else _HANDLERS[kind](r)
    return body + _clear_reconciled(r, plan)
