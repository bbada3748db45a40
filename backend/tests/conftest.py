"""
Shared landmark builders for OneShot tests.

Coordinates follow the mirrored (selfie) camera view used by the front end:
the archer's left shoulder appears on the left of the image.
"""

import math
from typing import Dict, List, Optional

import pytest


# MediaPipe indices used by the builders
NOSE = 0
LEFT_EAR, RIGHT_EAR = 7, 8
MOUTH_LEFT, MOUTH_RIGHT = 9, 10
LEFT_SHOULDER, RIGHT_SHOULDER = 11, 12
LEFT_ELBOW, RIGHT_ELBOW = 13, 14
LEFT_WRIST, RIGHT_WRIST = 15, 16
LEFT_HIP, RIGHT_HIP = 23, 24


def _point(x: float, y: float, visibility: float = 0.9) -> Dict:
    return {"x": x, "y": y, "visibility": visibility}


def build_archer_frame(
    bow_elbow_angle: float = 180.0,
    ears_visible: bool = True,
    visibility: float = 0.9,
    overrides: Optional[Dict[int, Dict]] = None
) -> List[Dict]:
    """
    33 landmarks for a right-handed archer (bow in the right hand) at anchor.

    With the defaults every check passes against the default thresholds:
    shoulders and ears level, spine vertical, draw forearm in line with the
    shoulder-wrist line and the draw hand close to the left mouth corner.
    """
    landmarks = [_point(0.5, 0.5, visibility) for _ in range(33)]

    landmarks[NOSE] = _point(0.5, 0.27, visibility)
    ear_vis = visibility if ears_visible else 0.0
    landmarks[LEFT_EAR] = _point(0.47, 0.25, ear_vis)
    landmarks[RIGHT_EAR] = _point(0.53, 0.25, ear_vis)
    landmarks[MOUTH_LEFT] = _point(0.48, 0.30, visibility)
    landmarks[MOUTH_RIGHT] = _point(0.52, 0.30, visibility)

    landmarks[LEFT_SHOULDER] = _point(0.40, 0.40, visibility)
    landmarks[RIGHT_SHOULDER] = _point(0.60, 0.40, visibility)
    landmarks[LEFT_HIP] = _point(0.42, 0.70, visibility)
    landmarks[RIGHT_HIP] = _point(0.58, 0.70, visibility)

    # Draw arm (left): elbow behind the shoulder on the shoulder-wrist line
    landmarks[LEFT_WRIST] = _point(0.46, 0.32, visibility)
    landmarks[LEFT_ELBOW] = _point(0.37, 0.44, visibility)

    # Bow arm (right): forearm rotated away from the upper arm by the given angle
    landmarks[RIGHT_ELBOW] = _point(0.75, 0.40, visibility)
    phi = math.radians(180.0 - bow_elbow_angle)
    landmarks[RIGHT_WRIST] = _point(
        0.75 + 0.15 * math.cos(phi), 0.40 + 0.15 * math.sin(phi), visibility
    )

    for idx, value in (overrides or {}).items():
        landmarks[idx] = value
    return landmarks


def build_symmetric_frame(visibility: float = 0.9) -> List[Dict]:
    """Bilaterally symmetric T-pose: both arms slightly lowered and bent alike"""
    landmarks = [_point(0.5, 0.5, visibility) for _ in range(33)]
    landmarks[NOSE] = _point(0.5, 0.27, visibility)
    landmarks[LEFT_EAR] = _point(0.47, 0.25, visibility)
    landmarks[RIGHT_EAR] = _point(0.53, 0.25, visibility)
    landmarks[MOUTH_LEFT] = _point(0.48, 0.30, visibility)
    landmarks[MOUTH_RIGHT] = _point(0.52, 0.30, visibility)
    landmarks[LEFT_SHOULDER] = _point(0.40, 0.40, visibility)
    landmarks[RIGHT_SHOULDER] = _point(0.60, 0.40, visibility)
    landmarks[LEFT_ELBOW] = _point(0.30, 0.45, visibility)
    landmarks[RIGHT_ELBOW] = _point(0.70, 0.45, visibility)
    landmarks[LEFT_WRIST] = _point(0.20, 0.42, visibility)
    landmarks[RIGHT_WRIST] = _point(0.80, 0.42, visibility)
    landmarks[LEFT_HIP] = _point(0.43, 0.70, visibility)
    landmarks[RIGHT_HIP] = _point(0.57, 0.70, visibility)
    return landmarks


@pytest.fixture
def archer_frame():
    return build_archer_frame


@pytest.fixture
def symmetric_frame():
    return build_symmetric_frame
