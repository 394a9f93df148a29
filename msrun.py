#!/usr/bin/env python3
# msrun.py — reference tree-walking evaluator for MiniScheme (no bytecode)

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

from ms_errors import EvalError, MiniSchemeError
from ms_syntax import Arg, Binding, BoolLiteral, IntLiteral, Node, VarRef, parse_file, parse_source

logger = logging.getLogger("minischeme.eval")
logger.addHandler(logging.NullHandler())

Env = dict[str, int]

class Interpreter:
    def __init__(self, stdout: Optional[TextIO] = None):
        self.stdout = stdout
        # one environment per run, like the compiler's register map
        self.env: Env = {}

    def evaluate(self, expr: Arg, env: Env | None = None) -> Optional[int]:
        if env is None:
            env = self.env

        # atoms
        if isinstance(expr, IntLiteral):
            return expr.value
        if isinstance(expr, BoolLiteral):
            return 1 if expr.value else 0
        if isinstance(expr, VarRef):
            if expr.name in env:
                return env[expr.name]
            raise EvalError(f"undefined variable '{expr.name}'")
        if isinstance(expr, Binding):
            raise EvalError(f"unexpected binding {expr} outside of let")

        op = expr.op
        args = expr.args

        if op == "println":
            if len(args) != 1:
                raise EvalError(f"println: expected 1 args, got {len(args)}")
            print(self.value(args[0], env), file=self.stdout or sys.stdout)
            return None

        if op in ("+", "-", "*"):
            if len(args) < 2:
                raise EvalError(f"{op}: expected at least 2 args, got {len(args)}")
            acc = self.value(args[0], env)
            for a in args[1:]:
                v = self.value(a, env)
                if op == "+":
                    acc += v
                elif op == "-":
                    acc -= v
                else:
                    acc *= v
            return acc

        if op == "let":
            group = args[0] if args else None
            if not isinstance(group, Node) or group.op != "":
                raise EvalError(f"let: expected a binding list, got {group}")
            for b in group.args:
                if not isinstance(b, Binding):
                    raise EvalError(f"let: expected [name val], got {b}")
                env[b.name] = self.value(b.value, env)
            if len(args) == 1:
                logger.debug("let with no body: %s", expr)
            val = None
            for body in args[1:]:
                val = self.evaluate(body, env)
            return val

        if op == "if":
            if len(args) != 3:
                raise EvalError(f"if: expected 3 args, got {len(args)}")
            cond = self.value(args[0], env)
            return self.evaluate(args[1], env) if cond != 0 else self.evaluate(args[2], env)

        if op == "":
            return None

        raise EvalError(f"unrecognized operator '{op}'")

    def value(self, expr: Arg, env: Env) -> int:
        v = self.evaluate(expr, env)
        if v is None:
            raise EvalError(f"{expr} has no value")
        return v

    def execute_forms(self, forms: list[tuple[int, Node]]) -> None:
        for lineno, node in forms:
            try:
                self.evaluate(node)
            except MiniSchemeError as err:
                err.at_line(lineno)
                raise

    def execute_src(self, src: str) -> None:
        self.execute_forms(parse_source(src))

    def execute(self, file: str) -> None:
        self.execute_forms(parse_file(file))


def main(argv: Optional[list[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: msrun <scheme file>")
        return 1
    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    try:
        Interpreter().execute(argv[0])
    except MiniSchemeError as err:
        raise SystemExit(f"error: {err}") from None
    return 0


if __name__ == "__main__":
    sys.exit(main())
