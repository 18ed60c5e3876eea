from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Tuple, Union

from .errors import VerificationCheckError

logger = logging.getLogger(__name__)

Detail = Union[str, Callable[[], str]]


@dataclass(frozen=True)
class NamedCheck:
    name: str
    predicate: Callable[[], bool]
    detail: Detail = ""


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    detail: str


@dataclass(frozen=True)
class VerificationReport:
    results: Tuple[CheckResult, ...]

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return len(self.results) - self.passed

    @property
    def total(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "results": [{"name": r.name, "passed": r.passed, "detail": r.detail} for r in self.results],
        }


def _evaluate(check: NamedCheck) -> CheckResult:
    try:
        passed = bool(check.predicate())
        detail = check.detail() if callable(check.detail) else check.detail
        return CheckResult(name=check.name, passed=passed, detail=str(detail))
    except Exception as e:
        err = VerificationCheckError(check.name, e)
        logger.debug("Check %s could not be evaluated", check.name, exc_info=True)
        return CheckResult(name=check.name, passed=False, detail=f"check raised {err}")


def run_checks(checks: Sequence[NamedCheck]) -> VerificationReport:
    """Evaluate every check in order. A failure never stops the next one."""

    results: List[CheckResult] = []
    for check in checks:
        r = _evaluate(check)
        (logger.info if r.passed else logger.warning)(
            "%s: %s - %s", "PASS" if r.passed else "FAIL", r.name, r.detail
        )
        results.append(r)
    report = VerificationReport(results=tuple(results))
    logger.info("Verification: %d/%d passed", report.passed, report.total)
    return report


def format_report(report: VerificationReport) -> str:
    lines = [f"{'PASS' if r.passed else 'FAIL'}: {r.name} — {r.detail}" for r in report.results]
    lines.append(f"{report.passed}/{report.total} passed")
    return "\n".join(lines)
