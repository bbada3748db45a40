"""
Form Scoring Module
Turns failing checks into severity-tagged errors, scores the frame and
selects corrective feedback.

Two feedback policies exist:
- select_feedback: severity-ranked, persisted with every ShotRecord
- live_hint: first failing check in fixed order, for transient on-screen guidance
"""

import math
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from config import CheckKey, get_thresholds
from config.thresholds import SeverityConfig
from .form_evaluator import EvaluationResult
from .landmarks import UserConfig
from .metric_calculator import FormMetrics

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


SEVERITY_RANK = {Severity.LOW: 1, Severity.MEDIUM: 2, Severity.HIGH: 3}


# Corrective detail shown with a captured shot
CORRECTIVE_MESSAGES = {
    CheckKey.SHOULDER_LINE: "Focus on keeping your shoulders level throughout the draw.",
    CheckKey.BOW_ELBOW: "Extend your bow arm fully for better stability.",
    CheckKey.DRAW_ALIGN: "Align your draw elbow with the arrow.",
    CheckKey.HEAD_TILT: "Keep your head level and anchor consistently.",
    CheckKey.SPINE_LEAN: "Stand tall with a neutral spine.",
    CheckKey.ANCHOR: "Find a consistent anchor point on your face.",
}

# Live hint templates; {value} and {bound} are filled from the check result
LIVE_HINTS = {
    CheckKey.SHOULDER_LINE: "Keep shoulders level ({value} <= {bound})",
    CheckKey.BOW_ELBOW: "Straighten bow elbow ({value} ~ {bound})",
    CheckKey.DRAW_ALIGN: "Align draw elbow with string ({value} <= {bound})",
    CheckKey.HEAD_TILT: "Reduce head tilt ({value} <= {bound})",
    CheckKey.SPINE_LEAN: "Stand tall; reduce spine lean ({value} <= {bound})",
    CheckKey.ANCHOR: "Anchor to mouth corner",
}

GOOD_FORM_HINT = "Form looks good"


@dataclass(frozen=True)
class FormError:
    """A failing form check with its severity"""
    check: CheckKey
    type: str
    severity: Severity
    description: str
    value: float
    threshold: float


@dataclass(frozen=True)
class Feedback:
    """Headline message plus coaching detail"""
    message: str
    detail: str
    kind: str  # "positive" or "corrective"


@dataclass(frozen=True)
class ShotRecord:
    """Immutable summary of one captured shot"""
    timestamp: datetime
    metrics: FormMetrics
    evaluation: EvaluationResult
    errors: Tuple[FormError, ...]
    overall_score: int
    feedback: Feedback
    user_config: UserConfig = field(default_factory=UserConfig)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up"""
    return int(math.floor(value + 0.5))


def classify_severity(
    value: float,
    threshold: float,
    config: Optional[SeverityConfig] = None
) -> Severity:
    """
    Classify how far a failing value sits from its threshold.

    ratio = |value - threshold| / max(threshold, 1)
    """
    cfg = config or get_thresholds().severity
    ratio = abs(value - threshold) / max(threshold, cfg.min_denominator)

    if ratio > cfg.high_ratio:
        return Severity.HIGH
    if ratio > cfg.medium_ratio:
        return Severity.MEDIUM
    return Severity.LOW


def collect_errors(
    evaluation: EvaluationResult,
    config: Optional[SeverityConfig] = None
) -> List[FormError]:
    """One FormError per failing check, in check order"""
    errors = []
    for check in evaluation.failing:
        errors.append(FormError(
            check=check.key,
            type=check.name,
            severity=classify_severity(check.value, check.threshold, config),
            description=check.description or f"{check.name} out of range",
            value=check.value,
            threshold=check.threshold,
        ))
    return errors


def compute_overall_score(evaluation: EvaluationResult) -> int:
    """Percentage of passing checks, 0-100"""
    total = len(evaluation)
    if total == 0:
        return 0
    return round_half_up(100 * evaluation.pass_count / total)


def select_feedback(errors: List[FormError]) -> Feedback:
    """
    Pick the error to coach on: highest severity first, ties keep check order.
    """
    if not errors:
        return Feedback(
            message="Excellent Form!",
            detail="All form checks passed. Great shot!",
            kind="positive",
        )

    priority = sorted(errors, key=lambda e: -SEVERITY_RANK[e.severity])[0]
    return Feedback(
        message=priority.type,
        detail=CORRECTIVE_MESSAGES.get(priority.check, "Work on improving your form."),
        kind="corrective",
    )


def _format_measure(value: float, unit: str) -> str:
    if unit == "°":
        return f"{value:.0f}°"
    return f"{value:.2f}"


def live_hint(evaluation: EvaluationResult) -> str:
    """Message for the first failing check in fixed order, ignoring severity"""
    for check in evaluation:
        if not check.passed:
            unit = "°" if check.unit == "°" else ""
            return LIVE_HINTS[check.key].format(
                value=_format_measure(check.value, check.unit),
                bound=f"{check.threshold:g}{unit}",
            )
    return GOOD_FORM_HINT


def build_shot_record(
    metrics: FormMetrics,
    evaluation: EvaluationResult,
    user_config: UserConfig,
    timestamp: Optional[datetime] = None,
    config: Optional[SeverityConfig] = None
) -> ShotRecord:
    """Assemble a ShotRecord using the severity-ranked feedback policy"""
    errors = collect_errors(evaluation, config)
    record = ShotRecord(
        timestamp=timestamp or datetime.now(timezone.utc),
        metrics=metrics,
        evaluation=evaluation,
        errors=tuple(errors),
        overall_score=compute_overall_score(evaluation),
        feedback=select_feedback(errors),
        user_config=user_config,
    )
    logger.debug(
        f"Shot record built: score={record.overall_score}, errors={len(errors)}"
    )
    return record


def error_counts(errors: List[FormError]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for e in errors:
        counts[e.type] = counts.get(e.type, 0) + 1
    return counts
