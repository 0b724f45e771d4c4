"""
Variant emitter, fragment merger and document serializer.

One run produces two documents keyed identically by opcode: the synchronous
interface and the asynchronous (continuation-passing) one. Hand-written
fragments from the asset directory replace generated entries of the same name
in both documents.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .context import DEFAULT_CONTEXT, MachineContext
from .errors import FragmentError, WastGenError
from .ir import Func, Node, Note, Seq, render
from .manifest import InterfaceDescriptor, Manifest
from .operands import compile_operands
from .results import compile_result
from .signature import Mode, compile_import, takes_callback


FRAGMENT_SUFFIX = ".wast"

OUTPUT_NAMES: Dict[Mode, str] = {
    Mode.SYNC: "wast.json",
    Mode.ASYNC: "wast-async.json",
}


@dataclass(frozen=True)
class Artifact:
    code: str
    imports: Optional[str] = None

    def to_json(self) -> Dict[str, str]:
        out = {"wast": self.code}
        if self.imports is not None:
            out["imports"] = self.imports
        return out


Document = Dict[str, Artifact]


def compile_function(opcode: str, desc: InterfaceDescriptor, mode: Mode, ctx: MachineContext) -> Artifact:
    plan = compile_operands(opcode, desc, ctx)
    body = [Seq(plan.prelude), *compile_result(opcode, desc, mode, plan, ctx)]
    params = ((ctx.callback_local, "i32"),) if takes_callback(desc, mode) else ()

    header: List[Node] = [Note(ctx.banner)]
    if desc.note:
        header.append(Note(f"known defect: {desc.note}"))
    func = Func(name=f"${opcode}", params=params, locals=plan.locals, body=tuple(body))

    return Artifact(
        code=render([*header, func]),
        imports=render(compile_import(desc, mode, ctx)),
    )


def generate_document(manifest: Manifest, mode: Mode, ctx: MachineContext) -> Document:
    doc: Document = {}
    for opcode, desc in manifest:
        doc[opcode] = compile_function(opcode, desc, mode, ctx)
    return doc


def load_fragments(fragment_dir: Path) -> Dict[str, str]:
    if not fragment_dir.is_dir():
        raise FragmentError(f"Fragment directory not found: {fragment_dir}")
    fragments: Dict[str, str] = {}
    try:
        paths = sorted(p for p in fragment_dir.iterdir() if p.name.endswith(FRAGMENT_SUFFIX))
        for path in paths:
            fragments[path.name[: -len(FRAGMENT_SUFFIX)]] = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FragmentError(f"Unable to read fragments from {fragment_dir}: {e}") from e
    return fragments


def merge_fragments(doc: Document, fragments: Mapping[str, str]) -> Document:
    merged = dict(doc)
    for name in sorted(fragments):
        # Hand-written code wins and never carries a generated import.
        merged[name] = Artifact(code=fragments[name])
    return merged


def generate_documents(
    manifest: Manifest,
    fragments: Mapping[str, str],
    ctx: MachineContext = DEFAULT_CONTEXT,
    *,
    host_module: Optional[str] = None,
) -> Dict[Mode, Document]:
    ctx = ctx.with_host_module(host_module or manifest.host_module)
    docs: Dict[Mode, Document] = {}
    for mode in (Mode.SYNC, Mode.ASYNC):
        # Each pass gets its own manifest instance.
        docs[mode] = merge_fragments(generate_document(manifest.copy(), mode, ctx), fragments)
    if docs[Mode.SYNC].keys() != docs[Mode.ASYNC].keys():
        raise WastGenError("sync and async documents are keyed differently")
    return docs


def serialize_document(doc: Document) -> str:
    data: Dict[str, Any] = {name: artifact.to_json() for name, artifact in doc.items()}
    return json.dumps(data, indent=2, sort_keys=True) + "\n"


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        f.write(text)
    os.replace(tmp, path)


def write_documents(docs: Mapping[Mode, Document], out_dir: Path) -> List[Path]:
    # Serialize everything before touching the filesystem.
    texts = {out_dir / OUTPUT_NAMES[mode]: serialize_document(docs[mode]) for mode in (Mode.SYNC, Mode.ASYNC)}
    written: List[Path] = []
    for path, text in texts.items():
        _write_text(path, text)
        written.append(path)
    return written


def check_documents(docs: Mapping[Mode, Document], out_dir: Path) -> List[str]:
    problems: List[str] = []
    for mode in (Mode.SYNC, Mode.ASYNC):
        path = out_dir / OUTPUT_NAMES[mode]
        if not path.exists():
            problems.append(f"missing: {path}")
            continue
        if path.read_text(encoding="utf-8") != serialize_document(docs[mode]):
            problems.append(f"out of date: {path}")
    return problems
