from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ms_errors import VMError

# --- Instruction set shared by the compiler (msc) and the VM (msvm)

class Opcode(Enum):
    PUSH = "PUSH"   # push an integer literal
    PRINT = "PRINT" # pop and print
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    JMP = "JMP"     # unconditional jump
    JZ = "JZ"       # pop, jump if zero
    JNZ = "JNZ"     # pop, jump if nonzero
    STOR = "STOR"   # pop into register
    LOAD = "LOAD"   # push register
    LABEL = "LABEL" # jump target marker, written as `name:`


JUMPS = frozenset({Opcode.JMP, Opcode.JZ, Opcode.JNZ})

Operand = Union[int, str, None]


@dataclass(frozen=True)
class Instruction:
    op: Opcode
    arg: Operand = None

    def __str__(self) -> str:
        if self.op is Opcode.LABEL:
            return f"{self.arg}:"
        if self.arg is None:
            return self.op.value
        return f"{self.op.value} {self.arg}"


_label_re = re.compile(r"(\w+):")
_line_res: dict[Opcode, re.Pattern[str]] = {
    Opcode.PUSH: re.compile(r"PUSH\s+(-?\d+)"),
    Opcode.PRINT: re.compile(r"PRINT"),
    Opcode.ADD: re.compile(r"ADD"),
    Opcode.SUB: re.compile(r"SUB"),
    Opcode.MUL: re.compile(r"MUL"),
    Opcode.JMP: re.compile(r"JMP\s+(\w+)"),
    Opcode.JZ: re.compile(r"JZ\s+(\w+)"),
    Opcode.JNZ: re.compile(r"JNZ\s+(\w+)"),
    Opcode.STOR: re.compile(r"STOR\s+(\d+)"),
    Opcode.LOAD: re.compile(r"LOAD\s+(\d+)"),
}
_int_operands = frozenset({Opcode.PUSH, Opcode.STOR, Opcode.LOAD})

def decode_line(raw: str) -> Optional[Instruction]:
    """Decode one line of bytecode text. Blank lines give None."""
    line = raw.strip()
    if not line:
        return None
    m = _label_re.fullmatch(line)
    if m:
        return Instruction(Opcode.LABEL, m.group(1))
    for op, rx in _line_res.items():
        m = rx.fullmatch(line)
        if not m:
            continue
        if not m.groups():
            return Instruction(op)
        arg = m.group(1)
        return Instruction(op, int(arg) if op in _int_operands else arg)
    raise VMError(f"unrecognized instruction: {line!r}")

def encode(code: list[Instruction]) -> str:
    return "".join(str(instr) + "\n" for instr in code)
