"""
Report Generator
Converts analysis results into JSON-safe dicts for the presentation layer.

JSON has no NaN or infinity, so non-finite values are emitted as null and
the affected metric names are listed under "indeterminate".
"""

import math
from typing import Any, Dict, Optional

from config import FormThresholds
from .form_evaluator import EvaluationResult
from .form_scorer import Feedback, FormError, ShotRecord
from .metric_calculator import FormMetrics
from .pipeline import FrameAnalysis
from .shot_history import SessionStats


def _finite_or_none(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def metrics_to_dict(metrics: FormMetrics) -> Dict:
    data = {k: _finite_or_none(v) for k, v in metrics.to_dict().items()}
    data["indeterminate"] = metrics.indeterminate
    return data


def evaluation_to_dict(evaluation: EvaluationResult) -> Dict:
    result = evaluation.to_dict()
    for entry in result.values():
        entry["value"] = _finite_or_none(entry["value"])
    return result


def error_to_dict(error: FormError) -> Dict:
    return {
        "check": error.check.value,
        "type": error.type,
        "severity": error.severity.value,
        "description": error.description,
        "value": _finite_or_none(error.value),
        "threshold": error.threshold,
    }


def feedback_to_dict(feedback: Feedback) -> Dict:
    return {"message": feedback.message, "detail": feedback.detail, "type": feedback.kind}


def frame_analysis_to_dict(analysis: FrameAnalysis) -> Dict:
    evaluation = analysis.evaluation
    return {
        "metrics": metrics_to_dict(analysis.metrics),
        "evaluation": evaluation_to_dict(evaluation),
        "phase": analysis.phase.value,
        "overall_score": analysis.overall_score,
        "pass_count": evaluation.pass_count,
        "total_checks": len(evaluation),
        "live_hint": analysis.live_hint,
        "is_reliable": analysis.is_reliable,
    }


def shot_record_to_dict(shot: ShotRecord) -> Dict:
    return {
        "timestamp": shot.timestamp.isoformat(),
        "metrics": metrics_to_dict(shot.metrics),
        "evaluation": evaluation_to_dict(shot.evaluation),
        "errors": [error_to_dict(e) for e in shot.errors],
        "overall_score": shot.overall_score,
        "feedback": feedback_to_dict(shot.feedback),
        "user_config": shot.user_config.to_dict(),
    }


def session_stats_to_dict(stats: SessionStats, session_id: Optional[str] = None) -> Dict:
    data = {
        "total_shots": stats.total_shots,
        "average_score": stats.average_score,
        "best_score": stats.best_score,
        "common_errors": list(stats.common_errors),
    }
    if session_id is not None:
        data["session_id"] = session_id
    return data


def thresholds_to_dict(thresholds: FormThresholds) -> Dict:
    result = {}
    for key, entry in thresholds.items():
        row = {
            "kind": entry.check.kind,
            "unit": entry.unit,
            "label": entry.label,
            "description": entry.description,
        }
        if entry.check.kind == "max_bound":
            row["max"] = entry.check.max
        else:
            row["target"] = entry.check.target
            row["tolerance"] = entry.check.tolerance
        result[key.value] = row
    return result
