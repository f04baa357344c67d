from __future__ import annotations

import math
from collections.abc import Iterable, Mapping

from bestpractices.config import PolicyConfig
from bestpractices.engine.types import Issue

# Points deducted per finding (security) and per performance signal, with the
# maximum each performance category may deduct.
SECRET_PENALTY = 15
VULNERABILITY_PENALTY = 10
BUNDLE_OVERAGE_CAP = 30
BUNDLE_OVERAGE_FACTOR = 20
LARGE_FILE_PENALTY, LARGE_FILE_CAP = 5, 20
UNUSED_DEPENDENCY_PENALTY, UNUSED_DEPENDENCY_CAP = 2, 15
PERFORMANCE_ISSUE_PENALTY, PERFORMANCE_ISSUE_CAP = 2, 25

STANDARD_LABELS = {
    "code": "Code quality",
    "security": "Security",
    "performance": "Performance",
}


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; scores round .5 upwards.
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def code_score(metrics: Mapping[str, int]) -> int:
    """
    Comment coverage is worth 80 points, with a 20 point base; long functions
    remove up to 20 points in proportion to their share of all functions.
    """

    total = metrics.get("total_functions", 0)
    if total <= 0:
        return 100

    comment_ratio = metrics.get("commented_functions", 0) / total
    long_penalty = (metrics.get("long_functions", 0) / total) * 20
    return clamp_score(comment_ratio * 80 + 20 - long_penalty)


def security_score(metrics: Mapping[str, int]) -> int:
    score = 100
    score -= metrics.get("secrets_found", 0) * SECRET_PENALTY
    score -= metrics.get("vulnerabilities", 0) * VULNERABILITY_PENALTY
    return max(0, score)


def performance_score(metrics: Mapping[str, int]) -> int:
    score = 100.0

    bundle_size = metrics.get("bundle_size", 0)
    limit = metrics.get("bundle_limit", 0)
    if limit > 0 and bundle_size > limit:
        overage_ratio = bundle_size / limit
        score -= min(BUNDLE_OVERAGE_CAP, (overage_ratio - 1) * BUNDLE_OVERAGE_FACTOR)

    score -= min(LARGE_FILE_CAP, metrics.get("large_files", 0) * LARGE_FILE_PENALTY)
    score -= min(UNUSED_DEPENDENCY_CAP, metrics.get("unused_dependencies", 0) * UNUSED_DEPENDENCY_PENALTY)
    score -= min(PERFORMANCE_ISSUE_CAP, metrics.get("performance_issues", 0) * PERFORMANCE_ISSUE_PENALTY)

    return clamp_score(score)


def overall_score(scores: Iterable[int]) -> int:
    values = list(scores)
    if not values:
        raise ValueError("overall_score requires at least one standard score.")
    return clamp_score(sum(values) / len(values))


def blocking_issue_count(issues: Iterable[Issue], *, policy: PolicyConfig) -> int:
    blocking = {s.lower() for s in policy.blocking_severities}
    return sum(1 for issue in issues if issue.severity.lower() in blocking)


def is_passing(score: int, issues: Iterable[Issue], *, policy: PolicyConfig) -> bool:
    return score >= policy.pass_threshold and blocking_issue_count(issues, policy=policy) == 0
