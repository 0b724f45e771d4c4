from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

from .context import MachineContext
from .ir import Import
from .manifest import InterfaceDescriptor, ParamKind, ReturnKind


class Mode(str, Enum):
    SYNC = "sync"
    ASYNC = "async"


def takes_callback(desc: InterfaceDescriptor, mode: Mode) -> bool:
    return mode is Mode.ASYNC and desc.is_async


def import_params(desc: InterfaceDescriptor, mode: Mode) -> Tuple[str, ...]:
    params = ["i64" if kind is ParamKind.I64 else "i32" for kind in desc.inputs]
    # Wide results come back through an output-location handle.
    params.extend("i32" for kind in desc.outputs if not kind.by_value)
    if takes_callback(desc, mode):
        params.append("i32")
    return tuple(params)


def import_result(desc: InterfaceDescriptor) -> Optional[str]:
    first = desc.result
    if first is ReturnKind.I32 or first is ReturnKind.I64:
        return first.value
    return None


def compile_import(desc: InterfaceDescriptor, mode: Mode, ctx: MachineContext) -> Import:
    return Import(
        module=ctx.host_module,
        field=desc.name,
        name=f"${desc.name}",
        params=import_params(desc, mode),
        result=import_result(desc),
    )
