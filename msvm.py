#!/usr/bin/env python3
from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

from ms_bytecode import JUMPS, Instruction, Opcode, decode_line
from ms_errors import MiniSchemeError, VMError

logger = logging.getLogger("minischeme.vm")
logger.addHandler(logging.NullHandler())

# --------------------------
# Bytecode VM
# --------------------------

class VirtualMachine:
    def __init__(self, stdout: Optional[TextIO] = None):
        self.stdout = stdout
        self.stack: list[int] = []
        self.registers: dict[int, int] = {}
        self.instructions: list[Instruction] = []
        self.labels: dict[str, int] = {}
        self.pc = 0

    def load(self, bytecode_file: str) -> None:
        with open(bytecode_file, "r", encoding="utf-8") as f:
            self.load_text(f.read())

    def load_text(self, bytecode_text: str) -> None:
        for lineno, raw in enumerate(bytecode_text.splitlines(), start=1):
            try:
                inst = decode_line(raw)
            except MiniSchemeError as err:
                err.at_line(lineno)
                raise
            if inst is None:
                continue
            if inst.op is Opcode.LABEL:
                # labels take no slot; they point at the next real instruction
                self.labels[inst.arg] = len(self.instructions)
            else:
                self.instructions.append(inst)
        logger.debug("loaded %d instructions, %d labels", len(self.instructions), len(self.labels))

    def pop(self) -> int:
        if not self.stack:
            raise VMError(f"stack underflow at pc {self.pc - 1}")
        return self.stack.pop()

    def target(self, label: str) -> int:
        if label not in self.labels:
            raise VMError(f"undefined label '{label}'")
        return self.labels[label]

    def step(self) -> None:
        inst = self.instructions[self.pc]
        self.pc += 1
        op = inst.op

        if op is Opcode.PUSH:
            self.stack.append(inst.arg)

        elif op is Opcode.PRINT:
            print(self.pop(), file=self.stdout or sys.stdout)

        elif op is Opcode.ADD:
            a, b = self.pop(), self.pop()
            self.stack.append(a + b)

        elif op is Opcode.SUB:
            # a is the right operand: it was pushed last
            a, b = self.pop(), self.pop()
            self.stack.append(b - a)

        elif op is Opcode.MUL:
            a, b = self.pop(), self.pop()
            self.stack.append(a * b)

        elif op in JUMPS:
            dest = self.target(inst.arg)
            if op is Opcode.JMP:
                self.pc = dest
            elif op is Opcode.JZ:
                if self.pop() == 0:
                    self.pc = dest
            elif self.pop() != 0:
                self.pc = dest

        elif op is Opcode.STOR:
            self.registers[inst.arg] = self.pop()

        elif op is Opcode.LOAD:
            if inst.arg not in self.registers:
                raise VMError(f"LOAD of unset register {inst.arg}")
            self.stack.append(self.registers[inst.arg])

        else:
            raise VMError(f"unrecognized instruction: {inst}")

    def run(self) -> None:
        while self.pc < len(self.instructions):
            self.step()

    def exec(self, bytecode_file: str) -> None:
        self.load(bytecode_file)
        self.run()

def run(bytecode_text: str, stdout: Optional[TextIO] = None) -> VirtualMachine:
    vm = VirtualMachine(stdout)
    vm.load_text(bytecode_text)
    vm.run()
    return vm

def main(argv: Optional[list[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: msvm <bytecode file>")
        return 1
    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    try:
        VirtualMachine().exec(argv[0])
    except MiniSchemeError as err:
        raise SystemExit(f"error: {err}") from None
    return 0

if __name__ == "__main__":
    sys.exit(main())
