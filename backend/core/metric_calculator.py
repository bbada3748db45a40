"""
Metric Calculator
Computes archery form metrics from a single frame of pose landmarks.
"""

import math
import logging
from dataclasses import dataclass, asdict, fields
from typing import Dict, List, Optional

from config import CheckKey, get_thresholds
from config.thresholds import VisibilityConfig
from .geometry import angle_between_points, distance, line_angle, midpoint
from .landmarks import Landmark, LandmarkSet, UserConfig, resolve_sides

logger = logging.getLogger(__name__)


# Landmarks averaged into the frame confidence score
CONFIDENCE_LANDMARKS = (
    Landmark.LEFT_SHOULDER,
    Landmark.RIGHT_SHOULDER,
    Landmark.LEFT_ELBOW,
    Landmark.RIGHT_ELBOW,
    Landmark.LEFT_WRIST,
    Landmark.RIGHT_WRIST,
    Landmark.NOSE,
)

# Metric attribute evaluated by each form check
METRIC_FOR_CHECK = {
    CheckKey.SHOULDER_LINE: "shoulder_line_deg",
    CheckKey.BOW_ELBOW: "bow_elbow_deg",
    CheckKey.DRAW_ALIGN: "draw_align_deg",
    CheckKey.HEAD_TILT: "head_tilt_deg",
    CheckKey.SPINE_LEAN: "spine_lean_deg",
    CheckKey.ANCHOR: "anchor_ratio",
}


@dataclass(frozen=True)
class FormMetrics:
    """
    Form metrics for one frame.

    Angles are in degrees rounded to 1 decimal, anchor_ratio to 2 decimals.
    Degenerate geometry yields NaN (zero-length segment) or +inf (zero
    shoulder width) instead of raising.
    """
    shoulder_line_deg: float
    bow_elbow_deg: float
    draw_align_deg: float
    head_tilt_deg: float
    spine_lean_deg: float
    anchor_ratio: float
    shoulder_width: float
    confidence: float

    def value_for(self, key: CheckKey) -> float:
        return getattr(self, METRIC_FOR_CHECK[CheckKey(key)])

    @property
    def indeterminate(self) -> List[str]:
        """Names of metrics whose value is NaN or infinite"""
        return [f.name for f in fields(self) if not math.isfinite(getattr(self, f.name))]

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class MetricCalculator:
    """
    Computes FormMetrics from a LandmarkSet for a given archer profile.
    Stateless: every call depends only on its arguments.
    """

    def __init__(self, visibility: Optional[VisibilityConfig] = None):
        self._visibility = visibility or get_thresholds().visibility

    def compute(self, landmarks: LandmarkSet, user_config: UserConfig) -> FormMetrics:
        """
        Compute all form metrics for a single frame.

        Raises:
            MissingLandmarkError: If a required landmark is absent
        """
        sides = resolve_sides(user_config.handedness)

        bow_shoulder = landmarks.get(sides.bow_shoulder).xy
        bow_elbow = landmarks.get(sides.bow_elbow).xy
        bow_wrist = landmarks.get(sides.bow_wrist).xy
        draw_shoulder = landmarks.get(sides.draw_shoulder).xy
        draw_elbow = landmarks.get(sides.draw_elbow).xy
        draw_wrist = landmarks.get(sides.draw_wrist).xy
        mouth = landmarks.get(sides.anchor_reference).xy

        left_shoulder = landmarks.get(Landmark.LEFT_SHOULDER).xy
        right_shoulder = landmarks.get(Landmark.RIGHT_SHOULDER).xy
        left_hip = landmarks.get(Landmark.LEFT_HIP).xy
        right_hip = landmarks.get(Landmark.RIGHT_HIP).xy

        # 1. Shoulder line, folded into [0, 90]
        shoulder_angle = line_angle(left_shoulder, right_shoulder)
        shoulder_line_deg = min(shoulder_angle, abs(180.0 - shoulder_angle))

        # 2. Bow elbow joint angle
        bow_elbow_deg = angle_between_points(bow_shoulder, bow_elbow, bow_wrist)

        # 3. Draw forearm against the shoulder-wrist line
        angle_diff = abs(
            line_angle(draw_shoulder, draw_wrist) - line_angle(draw_elbow, draw_wrist)
        )
        draw_align_deg = min(angle_diff, 360.0 - angle_diff)

        # 4. Head tilt
        head_tilt_deg = self._head_tilt(landmarks, mouth)

        # 5. Spine deviation from vertical
        mid_hip = midpoint(left_hip, right_hip)
        mid_shoulder = midpoint(left_shoulder, right_shoulder)
        spine_lean_deg = abs(90.0 - line_angle(mid_hip, mid_shoulder))

        # 6. Anchor distance relative to shoulder width
        shoulder_width = distance(left_shoulder, right_shoulder)
        anchor_dist = distance(draw_wrist, mouth)
        anchor_ratio = anchor_dist / shoulder_width if shoulder_width > 0 else math.inf

        metrics = FormMetrics(
            shoulder_line_deg=round(shoulder_line_deg, 1),
            bow_elbow_deg=round(bow_elbow_deg, 1),
            draw_align_deg=round(draw_align_deg, 1),
            head_tilt_deg=round(head_tilt_deg, 1),
            spine_lean_deg=round(spine_lean_deg, 1),
            anchor_ratio=round(anchor_ratio, 2),
            shoulder_width=round(shoulder_width, 4),
            confidence=self.compute_confidence(landmarks),
        )

        if metrics.indeterminate:
            logger.debug(f"Indeterminate metrics in frame: {', '.join(metrics.indeterminate)}")

        return metrics

    def _head_tilt(self, landmarks: LandmarkSet, mouth) -> float:
        left_ear = landmarks.find(Landmark.LEFT_EAR)
        right_ear = landmarks.find(Landmark.RIGHT_EAR)

        if left_ear and right_ear and left_ear.visibility > 0 and right_ear.visibility > 0:
            return line_angle(left_ear.xy, right_ear.xy)

        # Fall back to the mouth-corner -> nose line, which is vertical when level
        nose = landmarks.get(Landmark.NOSE).xy
        return abs(line_angle(mouth, nose) - 90.0)

    def compute_confidence(self, landmarks: LandmarkSet) -> float:
        """Mean visibility of the key upper-body landmarks present in the frame"""
        visibilities = [
            point.visibility
            for point in (landmarks.find(lm) for lm in CONFIDENCE_LANDMARKS)
            if point is not None
        ]
        if not visibilities:
            return 0.0
        return sum(visibilities) / len(visibilities)

    def has_required_landmarks(self, landmarks: LandmarkSet, user_config: UserConfig) -> bool:
        """Check that both arms, both shoulders and the nose are clearly visible"""
        sides = resolve_sides(user_config.handedness)
        required = (
            sides.bow_shoulder, sides.bow_elbow, sides.bow_wrist,
            sides.draw_shoulder, sides.draw_elbow, sides.draw_wrist,
            Landmark.LEFT_SHOULDER, Landmark.RIGHT_SHOULDER, Landmark.NOSE,
        )
        threshold = self._visibility.min_visibility
        for lm in required:
            point = landmarks.find(lm)
            if point is None or not point.visibility >= threshold:
                return False
        return True
