from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from types import MappingProxyType

from bestpractices.engine.types import Standard
from bestpractices.rules.antipatterns import PERFORMANCE_CHECKS
from bestpractices.rules.base import CheckMeta
from bestpractices.rules.functions import CODE_CHECKS
from bestpractices.rules.secrets import SECURITY_CHECKS


@lru_cache(maxsize=1)
def builtin_checks() -> tuple[CheckMeta, ...]:
    checks = (*CODE_CHECKS, *SECURITY_CHECKS, *PERFORMANCE_CHECKS)

    seen: set[tuple[str, str]] = set()
    for check in checks:
        key = (check.rule, check.kind)
        if key in seen:  # pragma: no cover
            raise RuntimeError(f"Duplicate check: {check.rule}/{check.kind}")
        seen.add(key)
    return checks


def checks_for_standard(standard: Standard) -> tuple[CheckMeta, ...]:
    return tuple(check for check in builtin_checks() if check.standard == standard)


@lru_cache(maxsize=1)
def check_by_kind() -> Mapping[str, CheckMeta]:
    return MappingProxyType({check.kind: check for check in builtin_checks()})

