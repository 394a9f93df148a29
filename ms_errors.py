from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class MiniSchemeError(Exception):
    message: str
    line: Optional[int] = None

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"line {self.line}: {self.message}"

    def at_line(self, line: int) -> MiniSchemeError:
        # keep the innermost line number if one is already attached
        if self.line is None:
            self.line = line
        return self


@dataclass
class ParseError(MiniSchemeError):
    pass


@dataclass
class CompileError(MiniSchemeError):
    pass


@dataclass
class VMError(MiniSchemeError):
    pass


@dataclass
class EvalError(MiniSchemeError):
    pass
