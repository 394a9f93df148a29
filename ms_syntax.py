from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Union

from ms_errors import MiniSchemeError, ParseError

# --- AST types

@dataclass(frozen=True)
class IntLiteral:
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class BoolLiteral:
    value: bool

    def __str__(self) -> str:
        return "#t" if self.value else "#f"


@dataclass(frozen=True)
class VarRef:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Binding:
    name: str
    value: Arg

    def __str__(self) -> str:
        return f"[{self.name} {self.value}]"


@dataclass
class Node:
    op: str
    args: list[Arg] = field(default_factory=list)

    def add_arg(self, arg: Arg) -> None:
        self.args.append(arg)

    def __str__(self) -> str:
        parts = [self.op] if self.op else []
        parts.extend(str(a) for a in self.args)
        return "(" + " ".join(parts) + ")"


Arg = Union[IntLiteral, BoolLiteral, VarRef, Binding, Node]

# --- Tokenizer

_num_re = re.compile(r"0|[1-9][0-9]*")
_pad_re = re.compile(r"([()\[\]])")

def tokenize_line(line: str) -> list[str]:
    # ; starts a comment that runs to end of line
    line = line.split(";", 1)[0]
    return _pad_re.sub(r" \1 ", line).split()

def is_int_literal(tok: str) -> bool:
    return _num_re.fullmatch(tok) is not None

# --- Parser

@dataclass
class _OpenBinding:
    # a [name value] production still being read
    name: Optional[str] = None
    values: list[Arg] = field(default_factory=list)


def parse_line(line: str) -> Optional[Node]:
    """Parse one source line into its top-level form, or None for a blank line."""
    tokens = tokenize_line(line)
    stack: list[Union[Node, _OpenBinding]] = []
    result: Optional[Node] = None
    i = 0

    def attach(arg: Arg) -> None:
        top = stack[-1]
        if isinstance(top, Node):
            top.add_arg(arg)
            return
        if top.name is None:
            raise ParseError(f"malformed binding: expected a name, got {arg}")
        top.values.append(arg)

    while i < len(tokens):
        tok = tokens[i]

        if tok == "(":
            if result is not None and not stack:
                raise ParseError("one top-level form per line")
            nxt = tokens[i + 1] if i + 1 < len(tokens) else None
            if nxt is None or nxt == ")":
                raise ParseError("empty form")
            if nxt in ("(", "]"):
                raise ParseError(f"expected an operator after '(', got {nxt!r}")
            if nxt.startswith("["):
                stack.append(Node(""))
            else:
                stack.append(Node(nxt))
                i += 1

        elif tok == ")":
            if not stack:
                raise ParseError("unmatched ')'")
            node = stack.pop()
            if isinstance(node, _OpenBinding):
                raise ParseError("malformed binding: missing ']'")
            if stack:
                attach(node)
            else:
                result = node

        elif tok == "[":
            if not stack:
                raise ParseError(f"unrecognized token: {tok!r}")
            if isinstance(stack[-1], _OpenBinding) and stack[-1].name is None:
                raise ParseError("malformed binding: expected a name")
            stack.append(_OpenBinding())

        elif tok == "]":
            top = stack.pop() if stack else None
            if not isinstance(top, _OpenBinding):
                raise ParseError("malformed binding: unmatched ']'")
            if top.name is None or len(top.values) != 1:
                raise ParseError("malformed binding: expected [name value]")
            attach(Binding(top.name, top.values[0]))

        elif is_int_literal(tok):
            if not stack:
                raise ParseError(f"top-level numbers not permitted: {tok}")
            attach(IntLiteral(int(tok)))

        elif tok in ("#t", "#f"):
            if not stack:
                raise ParseError(f"unrecognized token: {tok!r}")
            attach(BoolLiteral(tok == "#t"))

        else:
            if not stack:
                raise ParseError(f"unrecognized token: {tok!r}")
            top = stack[-1]
            if isinstance(top, _OpenBinding) and top.name is None:
                top.name = tok
            else:
                attach(VarRef(tok))

        i += 1

    if stack:
        raise ParseError("unterminated form")
    return result

def parse_source(src: str) -> list[tuple[int, Node]]:
    forms: list[tuple[int, Node]] = []
    for lineno, line in enumerate(src.splitlines(), start=1):
        try:
            node = parse_line(line)
        except MiniSchemeError as err:
            err.at_line(lineno)
            raise
        if node is not None:
            forms.append((lineno, node))
    return forms

def parse_file(path: str) -> list[tuple[int, Node]]:
    with open(path, "r", encoding="utf-8") as f:
        return parse_source(f.read())
