from __future__ import annotations

from dataclasses import dataclass

from bestpractices.engine.types import Severity, Standard


@dataclass(frozen=True, slots=True)
class CheckMeta:
    rule: str
    kind: str
    standard: Standard
    default_severity: Severity
    description: str
