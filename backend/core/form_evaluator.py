"""
Threshold Evaluator
Checks each form metric against the threshold table, in fixed check order.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from config import CheckKey, FormThresholds, get_thresholds
from .metric_calculator import FormMetrics


@dataclass(frozen=True)
class CheckResult:
    """Pass/fail outcome of one form check"""
    key: CheckKey
    name: str
    value: float
    threshold: float
    unit: str
    passed: bool
    description: str


@dataclass(frozen=True)
class EvaluationResult:
    """Ordered check results for one frame"""
    checks: Tuple[CheckResult, ...]

    def __iter__(self) -> Iterator[CheckResult]:
        return iter(self.checks)

    def __len__(self) -> int:
        return len(self.checks)

    def get(self, key: CheckKey) -> Optional[CheckResult]:
        for check in self.checks:
            if check.key == key:
                return check
        return None

    @property
    def pass_count(self) -> int:
        return sum(1 for c in self.checks if c.passed)

    @property
    def failing(self) -> List[CheckResult]:
        return [c for c in self.checks if not c.passed]

    @property
    def all_passed(self) -> bool:
        return all(c.passed for c in self.checks)

    def to_dict(self) -> Dict[str, Dict]:
        return {
            c.key.value: {
                "name": c.name,
                "value": c.value,
                "threshold": c.threshold,
                "unit": c.unit,
                "pass": c.passed,
                "description": c.description,
            }
            for c in self.checks
        }


def evaluate_form(
    metrics: FormMetrics,
    thresholds: Optional[FormThresholds] = None
) -> EvaluationResult:
    """
    Evaluate metrics against the threshold table.

    NaN or infinite metric values always fail, whatever the check kind.
    """
    thresholds = thresholds or get_thresholds().form

    results = []
    for key, entry in thresholds.items():
        value = metrics.value_for(key)
        results.append(CheckResult(
            key=key,
            name=entry.label,
            value=value,
            threshold=entry.check.reference,
            unit=entry.unit,
            passed=entry.check.passes(value),
            description=entry.description,
        ))

    return EvaluationResult(checks=tuple(results))
