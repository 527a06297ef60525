# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


class AssetflowError(Exception):
    """Base class for errors reported to the user."""


class ConfigurationError(AssetflowError):
    """
    The unit graph or run configuration is invalid.
    Raised while assembling the graph, before anything is scheduled.
    """

    def __init__(self, message: str, details: Dict[str, Any] | None = None):
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        lines = [self.args[0]]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


class ContractViolation(RuntimeError):
    """A tracker transition was requested from the wrong state. Programming error."""


@dataclass
class CompileFailure(AssetflowError):
    """
    Structured compile error raised by a compile backend, with enough context for:
      - clean CLI output
      - identifying the failing unit
    """
    unit: str
    asset_type: str
    message: str
    exit_code: int | None = None
    output: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"[{self.unit}] {self.asset_type} compile failed: {self.message}"]
        if self.exit_code is not None:
            lines.append(f"exit_code={self.exit_code}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        if self.output:
            lines.append(self.output)
        return "\n".join(lines)
