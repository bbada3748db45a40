"""
Draw Phase Detector
Coarse, memory-less classification of the draw cycle from bow arm extension
and anchor distance.
"""

from enum import Enum
from typing import Optional

from config import get_thresholds
from config.thresholds import PhaseConfig
from .metric_calculator import FormMetrics


class DrawPhase(str, Enum):
    """Coarse stages of the draw cycle"""
    REST = "rest"
    DRAW = "draw"
    ANCHOR = "anchor"
    UNKNOWN = "unknown"


def detect_phase(
    current: FormMetrics,
    previous: Optional[FormMetrics] = None,
    config: Optional[PhaseConfig] = None
) -> DrawPhase:
    """
    Classify the current frame's draw phase.

    Any phase may follow any other; `previous` only signals that motion
    context exists. A bow elbow of exactly the draw cut point (or NaN)
    matches neither branch and reports UNKNOWN.
    """
    if previous is None:
        return DrawPhase.REST

    cfg = config or get_thresholds().phase
    bow_elbow = current.bow_elbow_deg

    if bow_elbow >= cfg.anchor_min_bow_elbow and current.anchor_ratio < cfg.anchor_max_ratio:
        return DrawPhase.ANCHOR
    elif bow_elbow > cfg.draw_min_bow_elbow:
        return DrawPhase.DRAW
    elif bow_elbow < cfg.draw_min_bow_elbow:
        return DrawPhase.REST

    return DrawPhase.UNKNOWN
