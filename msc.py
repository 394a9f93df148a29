#!/usr/bin/env python3
# msc.py
# Compile MiniScheme source -> stack VM bytecode

from __future__ import annotations

import logging
import sys
from typing import Optional

from ms_bytecode import Instruction, Opcode, encode
from ms_errors import CompileError, MiniSchemeError
from ms_syntax import Arg, Binding, BoolLiteral, IntLiteral, Node, VarRef, parse_file, parse_source

logger = logging.getLogger("minischeme.compiler")
logger.addHandler(logging.NullHandler())

_arith_ops = {"+": Opcode.ADD, "-": Opcode.SUB, "*": Opcode.MUL}

# --- Compilation context (registers + labels for one run)

class CompileContext:
    """State shared by every form compiled in one run.

    Registers are not scoped to the `let` that binds them: once a name has a
    register it keeps it for every later form in the same run.
    """

    def __init__(self):
        self.registers: dict[str, int] = {}
        self.next_register = 0
        self.label_counters: dict[str, int] = {}

    def gen_label(self, prefix: str) -> str:
        n = self.label_counters.get(prefix, 0)
        self.label_counters[prefix] = n + 1
        return f"{prefix}{n}"

    def bind(self, name: str) -> int:
        if name not in self.registers:
            self.registers[name] = self.next_register
            self.next_register += 1
        return self.registers[name]

    def register_for(self, name: str) -> int:
        try:
            return self.registers[name]
        except KeyError:
            raise CompileError(f"undefined variable '{name}'") from None

# --- Compiler

def compile_arg(arg: Arg, ctx: CompileContext) -> list[Instruction]:
    if isinstance(arg, IntLiteral):
        return [Instruction(Opcode.PUSH, arg.value)]
    if isinstance(arg, BoolLiteral):
        return [Instruction(Opcode.PUSH, 1 if arg.value else 0)]
    if isinstance(arg, VarRef):
        return [Instruction(Opcode.LOAD, ctx.register_for(arg.name))]
    if isinstance(arg, Node):
        return compile_node(arg, ctx)
    if isinstance(arg, Binding):
        raise CompileError(f"unexpected binding {arg} outside of let")
    raise CompileError(f"bad argument: {arg!r}")

def compile_node(node: Node, ctx: CompileContext) -> list[Instruction]:
    bc: list[Instruction] = []
    op = node.op
    args = node.args

    if op == "println":
        _expect_arity(node, 1)
        bc += compile_arg(args[0], ctx)
        bc.append(Instruction(Opcode.PRINT))
        return bc

    if op in _arith_ops:
        # left fold: op(op(op(a0, a1), a2), a3) ...
        if len(args) < 2:
            raise CompileError(f"{op}: expected at least 2 args, got {len(args)}")
        opcode = _arith_ops[op]
        bc += compile_arg(args[0], ctx)
        for a in args[1:]:
            bc += compile_arg(a, ctx)
            bc.append(Instruction(opcode))
        return bc

    if op == "let":
        # (let ([x 1] [y 2]) body...)
        for b in let_bindings(node):
            bc += compile_arg(b.value, ctx)
            bc.append(Instruction(Opcode.STOR, ctx.bind(b.name)))
        for expr in args[1:]:
            bc += compile_arg(expr, ctx)
        return bc

    if op == "if":
        _expect_arity(node, 3)
        cond, thn, els = args
        bc += compile_arg(cond, ctx)
        l_else = ctx.gen_label("fls")
        l_true = ctx.gen_label("tru")
        l_end = ctx.gen_label("done")
        bc.append(Instruction(Opcode.JZ, l_else))
        bc.append(Instruction(Opcode.LABEL, l_true))
        bc += compile_arg(thn, ctx)
        bc.append(Instruction(Opcode.JMP, l_end))
        bc.append(Instruction(Opcode.LABEL, l_else))
        bc += compile_arg(els, ctx)
        bc.append(Instruction(Opcode.LABEL, l_end))
        return bc

    if op == "":
        # binding list; only meaningful as the head of a let
        return bc

    raise CompileError(f"unrecognized operator '{op}'")

def let_bindings(node: Node) -> list[Binding]:
    group = node.args[0] if node.args else None
    if not isinstance(group, Node) or group.op != "":
        raise CompileError(f"let: expected a binding list, got {group}")
    bindings = []
    for b in group.args:
        if not isinstance(b, Binding):
            raise CompileError(f"let: expected [name val], got {b}")
        bindings.append(b)
    return bindings

def _expect_arity(node: Node, n: int) -> None:
    if len(node.args) != n:
        raise CompileError(f"{node.op}: expected {n} args, got {len(node.args)}")

def compile_forms(forms: list[tuple[int, Node]], ctx: Optional[CompileContext] = None) -> list[Instruction]:
    if ctx is None:
        ctx = CompileContext()
    bc: list[Instruction] = []
    for lineno, node in forms:
        logger.info("Parsing %s", node)
        try:
            bc += compile_node(node, ctx)
        except MiniSchemeError as err:
            err.at_line(lineno)
            raise
    return bc

def compile_src(src: str) -> str:
    return encode(compile_forms(parse_source(src)))

class Compiler:
    def __init__(self):
        self.ctx = CompileContext()

    def compile(self, scheme_file: str, bytecode_file: str) -> list[Instruction]:
        forms = parse_file(scheme_file)
        bc = compile_forms(forms, self.ctx)
        # nothing is written unless the whole file compiled
        with open(bytecode_file, "w", encoding="utf-8") as out:
            out.write(encode(bc))
        return bc

def main(argv: Optional[list[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 2:
        print("Usage: msc <scheme file> <bytecode file>")
        return 1
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    try:
        Compiler().compile(argv[0], argv[1])
    except MiniSchemeError as err:
        raise SystemExit(f"error: {err}") from None
    return 0

if __name__ == "__main__":
    sys.exit(main())
