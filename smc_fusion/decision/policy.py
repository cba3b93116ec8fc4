"""
Gating policy

Folds criterion results into pass/fail according to a GatePolicy, so the
approval rule is configuration rather than control flow.
"""

from dataclasses import dataclass
from typing import List, Sequence

from smc_fusion.config.settings import GatePolicy
from smc_fusion.models.signals import CriterionCheck


@dataclass(frozen=True)
class GateVerdict:
    passed: bool
    failed: List[str]
    reason: str


def apply_mandatory_policy(checks: Sequence[CriterionCheck], policy: GatePolicy) -> GateVerdict:
    """
    At least `mandatory_min_passed` checks must pass and every hard
    requirement must be among them.
    """
    failed = [c.name for c in checks if not c.passed]
    passed_count = len(checks) - len(failed)
    failed_hard = [name for name in policy.hard_requirements if name in failed]

    if failed_hard:
        return GateVerdict(
            passed=False,
            failed=failed,
            reason=f"Hard requirements failed: {', '.join(failed_hard)}"
        )

    if passed_count < policy.mandatory_min_passed:
        return GateVerdict(
            passed=False,
            failed=failed,
            reason=(
                f"Mandatory checks: {passed_count}/{len(checks)} passed "
                f"(need {policy.mandatory_min_passed}). Failed: {', '.join(failed)}"
            )
        )

    return GateVerdict(
        passed=True,
        failed=failed,
        reason=f"Mandatory checks: {passed_count}/{len(checks)} passed"
    )


def apply_overall_policy(checks: Sequence[CriterionCheck], policy: GatePolicy) -> GateVerdict:
    """The share of passing criteria must reach `overall_min_ratio`."""
    failed = [c.name for c in checks if not c.passed]
    if not checks:
        return GateVerdict(passed=False, failed=[], reason="No criteria evaluated")

    ratio = (len(checks) - len(failed)) / len(checks)
    summary = f"{len(checks) - len(failed)}/{len(checks)} criteria passed ({ratio * 100:.1f}%)"

    if ratio < policy.overall_min_ratio:
        return GateVerdict(
            passed=False,
            failed=failed,
            reason=f"Insufficient criteria: {summary}, need {policy.overall_min_ratio * 100:.0f}%"
        )
    return GateVerdict(passed=True, failed=failed, reason=summary)
