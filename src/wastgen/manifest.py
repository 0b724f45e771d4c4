"""
Host interface manifest: the declarative description of every opcode that
calls out to the host.

Descriptors are frozen and hold tuples, so a compiler cannot consume or
reorder a descriptor's inputs/outputs the way a list-based model allows.
load_manifest() returns fresh instances on every call.
"""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import ManifestError, UnrecognizedKindError


SCHEMA_VERSION = 1

_RE_HOST_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")
_RE_OPCODE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ParamKind(str, Enum):
    I32 = "i32"
    I64 = "i64"
    I128 = "i128"
    ADDRESS = "address"
    POINTER = "pointer"
    IPOINTER = "ipointer"
    OPOINTER = "opointer"
    READ_OFFSET = "readOffset"
    WRITE_OFFSET = "writeOffset"
    LENGTH = "length"

    @property
    def is_offset(self) -> bool:
        return self in (ParamKind.READ_OFFSET, ParamKind.WRITE_OFFSET)


class ReturnKind(str, Enum):
    I32 = "i32"
    I64 = "i64"
    I128 = "i128"
    ADDRESS = "address"
    I256 = "i256"

    @property
    def by_value(self) -> bool:
        return self in (ReturnKind.I32, ReturnKind.I64)


@dataclass(frozen=True)
class InterfaceDescriptor:
    name: str
    is_async: bool = False
    inputs: Tuple[ParamKind, ...] = ()
    outputs: Tuple[ReturnKind, ...] = ()
    note: Optional[str] = None

    @property
    def result(self) -> Optional[ReturnKind]:
        return self.outputs[0] if self.outputs else None


@dataclass(frozen=True)
class Manifest:
    host_module: str
    opcodes: Tuple[Tuple[str, InterfaceDescriptor], ...]

    def __iter__(self):
        return iter(self.opcodes)

    def __len__(self) -> int:
        return len(self.opcodes)

    def names(self) -> List[str]:
        return [op for op, _ in self.opcodes]

    def get(self, opcode: str) -> Optional[InterfaceDescriptor]:
        for op, desc in self.opcodes:
            if op == opcode:
                return desc
        return None

    def copy(self) -> "Manifest":
        return copy.deepcopy(self)


def _require_keys(obj: Mapping[str, Any], keys: Sequence[str], *, where: str) -> None:
    missing = [k for k in keys if k not in obj]
    if missing:
        raise ManifestError(f"{where}: missing required keys: {', '.join(missing)}")


def _expect_type(value: Any, expected: type, *, where: str) -> None:
    if not isinstance(value, expected):
        raise ManifestError(f"{where}: expected {expected.__name__}, got {type(value).__name__}")


def parse_param_kind(value: Any, *, where: str = "<input>") -> ParamKind:
    try:
        return ParamKind(value)
    except ValueError:
        raise UnrecognizedKindError(f"{where}: unrecognized parameter kind {value!r}") from None


def parse_return_kind(value: Any, *, where: str = "<output>") -> ReturnKind:
    try:
        return ReturnKind(value)
    except ValueError:
        raise UnrecognizedKindError(f"{where}: unrecognized return kind {value!r}") from None


def _check_pairing(inputs: Sequence[ParamKind], *, where: str) -> None:
    pending = False
    for idx, kind in enumerate(inputs):
        if kind.is_offset:
            if pending:
                raise ManifestError(f"{where}:input[{idx}]: offset follows an unpaired offset")
            pending = True
        elif kind is ParamKind.LENGTH:
            if not pending:
                raise ManifestError(f"{where}:input[{idx}]: length without a preceding offset")
            pending = False


def parse_descriptor(opcode: str, raw: Any, *, where: str) -> InterfaceDescriptor:
    where = f"{where}:{opcode}"
    _expect_type(raw, dict, where=where)
    _require_keys(raw, ["name", "input", "output"], where=where)

    name = raw["name"]
    _expect_type(name, str, where=f"{where}:name")
    if not _RE_HOST_NAME.match(name):
        raise ManifestError(f"{where}:name: invalid host function name {name!r}")

    is_async = raw.get("async", False)
    if not isinstance(is_async, bool):
        raise ManifestError(f"{where}:async must be bool")

    _expect_type(raw["input"], list, where=f"{where}:input")
    _expect_type(raw["output"], list, where=f"{where}:output")
    inputs = tuple(
        parse_param_kind(k, where=f"{where}:input[{i}]") for i, k in enumerate(raw["input"])
    )
    outputs = tuple(
        parse_return_kind(k, where=f"{where}:output[{i}]") for i, k in enumerate(raw["output"])
    )
    if len(outputs) > 1:
        raise ManifestError(f"{where}:output: at most one output kind is supported")
    _check_pairing(inputs, where=where)

    note = raw.get("note")
    if note is not None:
        _expect_type(note, str, where=f"{where}:note")

    return InterfaceDescriptor(name=name, is_async=is_async, inputs=inputs, outputs=outputs, note=note)


def parse_manifest(data: Any, *, source: str = "<manifest>") -> Manifest:
    _expect_type(data, dict, where=source)
    _require_keys(data, ["schema_version", "opcodes"], where=source)
    if data["schema_version"] != SCHEMA_VERSION:
        raise ManifestError(f"{source}: schema_version must be {SCHEMA_VERSION}")

    host_module = data.get("host_module", "ethereum")
    _expect_type(host_module, str, where=f"{source}:host_module")

    opcodes = data["opcodes"]
    _expect_type(opcodes, dict, where=f"{source}:opcodes")
    entries: List[Tuple[str, InterfaceDescriptor]] = []
    for opcode, raw in opcodes.items():
        if not _RE_OPCODE.match(opcode):
            raise ManifestError(f"{source}: invalid opcode name {opcode!r}")
        entries.append((opcode, parse_descriptor(opcode, raw, where=source)))
    return Manifest(host_module=host_module, opcodes=tuple(entries))


def _reject_duplicates(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in pairs:
        if key in out:
            raise ManifestError(f"duplicate key {key!r}")
        out[key] = value
    return out


def load_manifest(path: Path) -> Manifest:
    try:
        data = json.loads(path.read_text(encoding="utf-8"), object_pairs_hook=_reject_duplicates)
    except FileNotFoundError as e:
        raise ManifestError(f"Missing manifest: {path}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in manifest: {path}: {e}") from e
    return parse_manifest(data, source=path.name)


def default_manifest_path() -> Path:
    return Path(__file__).resolve().parent / "spec" / "interface_manifest.json"

