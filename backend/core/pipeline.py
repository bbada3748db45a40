"""
Form Analysis Pipeline
Composes the per-frame stages:
1. Compute metrics
2. Evaluate thresholds
3. Detect draw phase
4. Score and build feedback

The pipeline holds only configuration; frame state lives with the caller.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from config import ThresholdConfig, get_thresholds
from .form_evaluator import EvaluationResult, evaluate_form
from .form_scorer import ShotRecord, build_shot_record, compute_overall_score, live_hint
from .landmarks import LandmarkSet, UserConfig
from .metric_calculator import FormMetrics, MetricCalculator
from .phase_detector import DrawPhase, detect_phase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameAnalysis:
    """Transient per-frame result for the presentation layer"""
    metrics: FormMetrics
    evaluation: EvaluationResult
    phase: DrawPhase
    overall_score: int
    live_hint: str
    is_reliable: bool


class FormAnalysisPipeline:
    """
    Per-frame form analysis.

    Every method is a pure function of its arguments and the threshold
    configuration given at construction.
    """

    def __init__(self, thresholds: Optional[ThresholdConfig] = None):
        self.thresholds = thresholds or get_thresholds()
        self.metric_calculator = MetricCalculator(self.thresholds.visibility)

    def compute_metrics(self, landmarks: LandmarkSet, user_config: UserConfig) -> FormMetrics:
        return self.metric_calculator.compute(landmarks, user_config)

    def evaluate(self, metrics: FormMetrics) -> EvaluationResult:
        return evaluate_form(metrics, self.thresholds.form)

    def analyze_frame(
        self,
        landmarks: LandmarkSet,
        user_config: UserConfig,
        previous_metrics: Optional[FormMetrics] = None
    ) -> FrameAnalysis:
        """
        Analyze one frame.

        Raises:
            MissingLandmarkError: If a required landmark is absent; skip the frame
        """
        metrics = self.compute_metrics(landmarks, user_config)
        evaluation = self.evaluate(metrics)

        return FrameAnalysis(
            metrics=metrics,
            evaluation=evaluation,
            phase=detect_phase(metrics, previous_metrics, self.thresholds.phase),
            overall_score=compute_overall_score(evaluation),
            live_hint=live_hint(evaluation),
            is_reliable=self.metric_calculator.has_required_landmarks(landmarks, user_config),
        )

    def capture(
        self,
        landmarks: LandmarkSet,
        user_config: UserConfig,
        timestamp: Optional[datetime] = None
    ) -> ShotRecord:
        """
        Build a ShotRecord for the given frame.

        Raises:
            MissingLandmarkError: If a required landmark is absent
        """
        metrics = self.compute_metrics(landmarks, user_config)
        evaluation = self.evaluate(metrics)
        return build_shot_record(
            metrics, evaluation, user_config, timestamp, self.thresholds.severity
        )
