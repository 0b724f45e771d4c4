"""
Typed S-expression IR for generated WebAssembly text.

Compilers build trees of the node classes below; nothing concatenates text.
Every node lowers to plain nested lists (Sym heads, int/str atoms, Comment
lines) and a single formatter, render(), turns those into text. Grouping is
therefore balanced by construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union


MAX_LINE = 80
INDENT = "  "


@dataclass(frozen=True)
class Sym:
    value: str


@dataclass(frozen=True)
class Comment:
    text: str


class Node:
    def sexp(self) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class Const(Node):
    valtype: str
    value: int

    def sexp(self) -> Any:
        return [Sym(f"{self.valtype}.const"), self.value]


@dataclass(frozen=True)
class GetGlobal(Node):
    name: str

    def sexp(self) -> Any:
        return [Sym("get_global"), Sym(self.name)]


@dataclass(frozen=True)
class GetLocal(Node):
    name: str

    def sexp(self) -> Any:
        return [Sym("get_local"), Sym(self.name)]


@dataclass(frozen=True)
class SetLocal(Node):
    name: str
    value: Node

    def sexp(self) -> Any:
        return [Sym("set_local"), Sym(self.name), self.value.sexp()]


@dataclass(frozen=True)
class Instr(Node):
    """Plain instruction with operand subexpressions, e.g. i32.add or drop."""

    op: str
    args: Tuple[Node, ...] = ()

    def sexp(self) -> Any:
        return [Sym(self.op), *(a.sexp() for a in self.args)]


@dataclass(frozen=True)
class Load(Node):
    valtype: str
    addr: Node

    def sexp(self) -> Any:
        return [Sym(f"{self.valtype}.load"), self.addr.sexp()]


@dataclass(frozen=True)
class Store(Node):
    valtype: str
    addr: Node
    value: Node

    def sexp(self) -> Any:
        return [Sym(f"{self.valtype}.store"), self.addr.sexp(), self.value.sexp()]


@dataclass(frozen=True)
class Call(Node):
    target: str
    args: Tuple[Node, ...] = ()

    def sexp(self) -> Any:
        return [Sym("call"), Sym(self.target), *(a.sexp() for a in self.args)]

    def with_args(self, *extra: Node) -> "Call":
        return Call(self.target, self.args + tuple(extra))


@dataclass(frozen=True)
class Note(Node):
    """A comment line inside a sequence."""

    text: str

    def sexp(self) -> Any:
        return Comment(self.text)


@dataclass(frozen=True)
class Seq(Node):
    items: Tuple[Node, ...] = ()

    def sexp(self) -> Any:
        raise TypeError("Seq has no single S-expression; use flatten()")


@dataclass(frozen=True)
class Func(Node):
    name: str
    params: Tuple[Tuple[str, str], ...] = ()
    locals: Tuple[Tuple[str, str], ...] = ()
    body: Tuple[Node, ...] = ()

    def sexp(self) -> Any:
        out: List[Any] = [Sym("func"), Sym(self.name)]
        for pname, ptype in self.params:
            out.append([Sym("param"), Sym(pname), Sym(ptype)])
        for lname, ltype in self.locals:
            out.append([Sym("local"), Sym(lname), Sym(ltype)])
        out.extend(n.sexp() for n in flatten(self.body))
        return out


@dataclass(frozen=True)
class Import(Node):
    module: str
    field: str
    name: str
    params: Tuple[str, ...] = ()
    result: Optional[str] = None

    def sexp(self) -> Any:
        func: List[Any] = [Sym("func"), Sym(self.name)]
        if self.params:
            func.append([Sym("param"), *(Sym(p) for p in self.params)])
        if self.result is not None:
            func.append([Sym("result"), Sym(self.result)])
        return [Sym("import"), self.module, self.field, func]


def flatten(nodes: Iterable[Node]) -> List[Node]:
    out: List[Node] = []
    for node in nodes:
        if isinstance(node, Seq):
            out.extend(flatten(node.items))
        else:
            out.append(node)
    return out


def _q(s: str) -> str:
    escaped = s.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _atom(node: Any) -> str:
    if isinstance(node, Sym):
        return node.value
    if isinstance(node, bool):
        raise TypeError("bool is not a WAT atom")
    if isinstance(node, int):
        return str(node)
    if isinstance(node, str):
        return _q(node)
    raise TypeError(f"Unsupported S-expression node type: {type(node)!r}")


def _has_comment(node: Any) -> bool:
    if isinstance(node, Comment):
        return True
    if isinstance(node, list):
        return any(_has_comment(x) for x in node)
    return False


def _inline(node: Any) -> str:
    if isinstance(node, list):
        return "(" + " ".join(_inline(x) for x in node) + ")"
    return _atom(node)


def _sexp(node: Any, indent: int = 0) -> str:
    tab = INDENT * indent

    if isinstance(node, Comment):
        return f"{tab};; {node.text}"
    if not isinstance(node, list):
        return f"{tab}{_atom(node)}"
    if not node:
        raise ValueError("empty S-expression")

    if not _has_comment(node):
        flat = _inline(node)
        if len(tab) + len(flat) <= MAX_LINE or not any(isinstance(x, list) for x in node):
            return f"{tab}{flat}"

    # Leading atoms stay on the opening line, every list or comment child
    # gets a line of its own.
    head: List[str] = []
    rest = list(node)
    while rest and not isinstance(rest[0], (list, Comment)):
        head.append(_atom(rest.pop(0)))

    lines = [f"{tab}(" + " ".join(head)]
    for child in rest:
        lines.append(_sexp(child, indent + 1))
    if isinstance(rest[-1], Comment):
        lines.append(f"{tab})")
    else:
        lines[-1] += ")"
    return "\n".join(lines)


def render(nodes: Union[Node, Sequence[Node]]) -> str:
    """Format one node or a sequence of top-level nodes as WAT text."""
    if isinstance(nodes, Node):
        nodes = [nodes]
    return "\n".join(_sexp(n.sexp(), 0) for n in flatten(nodes))
