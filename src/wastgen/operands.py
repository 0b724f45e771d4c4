"""
Operand marshalling: turn a descriptor's inputs into host call arguments.

Inputs are walked left to right against a running slot offset that starts at
the stack top (0) and moves down one slot per consumed operand. Narrowing
kinds always go through an overflow checker; offset/length pairs bind locals,
charge memory cost and rebase the offset onto linear memory before the call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .context import MachineContext
from .errors import ManifestError
from .ir import Call, GetGlobal, GetLocal, Instr, Node, SetLocal
from .manifest import InterfaceDescriptor, ParamKind
from .stack import check_exhaustive, narrow, slot_addr


@dataclass(frozen=True)
class OperandPlan:
    args: Tuple[Node, ...]
    locals: Tuple[Tuple[str, str], ...]
    prelude: Tuple[Node, ...]
    # Slot offset once every input is consumed; the result lands one above.
    offset: int
    reconciled_slots: Tuple[int, ...] = ()

    @property
    def result_slot(self) -> int:
        return self.offset + 1


class _Cursor:
    def __init__(self, opcode: str, ctx: MachineContext):
        self.opcode = opcode
        self.ctx = ctx
        self.offset = 0
        self.pairs = 0
        self.pending_offset: Optional[str] = None
        self.args: List[Node] = []
        self.locals: List[Tuple[str, str]] = []
        self.prelude: List[Node] = []
        self.reconciled: List[int] = []

    def plan(self) -> OperandPlan:
        return OperandPlan(
            args=tuple(self.args),
            locals=tuple(self.locals),
            prelude=tuple(self.prelude),
            offset=self.offset,
            reconciled_slots=tuple(self.reconciled),
        )


def _by_reference(cur: _Cursor) -> None:
    cur.args.append(slot_addr(cur.ctx, cur.offset))


def _output_pointer(cur: _Cursor) -> None:
    # Reserve a fresh slot above the consumed inputs for the host to fill.
    cur.offset += 1
    cur.args.append(slot_addr(cur.ctx, cur.offset))


def _scalar_i32(cur: _Cursor) -> None:
    cur.args.append(narrow(cur.ctx, cur.ctx.check_overflow_i32, cur.offset))


def _scalar_i64(cur: _Cursor) -> None:
    # CALL gas goes through unchanged; the host applies the call stipend.
    cur.args.append(narrow(cur.ctx, cur.ctx.check_overflow_i64, cur.offset))


def _memory_offset(cur: _Cursor) -> None:
    name = f"$offset{cur.pairs}"
    cur.locals.append((name, "i32"))
    cur.prelude.append(SetLocal(name, narrow(cur.ctx, cur.ctx.check_overflow_i32, cur.offset)))
    cur.args.append(GetLocal(name))
    cur.pending_offset = name


def _memory_length(cur: _Cursor) -> None:
    offset = cur.pending_offset
    if offset is None:
        raise ManifestError(f"{cur.opcode}: length without a preceding offset")
    ctx = cur.ctx
    name = f"$length{cur.pairs}"
    cur.locals.append((name, "i32"))
    cur.prelude.extend(
        [
            SetLocal(name, narrow(ctx, ctx.check_overflow_i32, cur.offset)),
            Call(ctx.mem_gas, (GetLocal(offset), GetLocal(name))),
            SetLocal(offset, Instr("i32.add", (GetGlobal(ctx.mem_base_global), GetLocal(offset)))),
        ]
    )
    cur.args.append(GetLocal(name))
    cur.pending_offset = None
    cur.pairs += 1

    if cur.opcode in ctx.reconciled_opcodes:
        # The EVM call has two more stack operands than the host call takes;
        # drop them here and clear them with the result.
        for _ in range(2):
            cur.offset -= 1
            cur.reconciled.append(cur.offset)


_HANDLERS: Dict[ParamKind, Callable[[_Cursor], None]] = {
    ParamKind.I32: _scalar_i32,
    ParamKind.I64: _scalar_i64,
    ParamKind.I128: _by_reference,
    ParamKind.ADDRESS: _by_reference,
    ParamKind.POINTER: _by_reference,
    ParamKind.IPOINTER: _by_reference,
    ParamKind.OPOINTER: _output_pointer,
    ParamKind.READ_OFFSET: _memory_offset,
    ParamKind.WRITE_OFFSET: _memory_offset,
    ParamKind.LENGTH: _memory_length,
}

check_exhaustive(_HANDLERS, ParamKind, what="operand marshalling")


def compile_operands(opcode: str, desc: InterfaceDescriptor, ctx: MachineContext) -> OperandPlan:
    cur = _Cursor(opcode, ctx)
    for kind in desc.inputs:
        _HANDLERS[kind](cur)
        cur.offset -= 1
    return cur.plan()
