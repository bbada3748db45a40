"""
Geometry Primitives
2D helpers over normalized image coordinates, where y grows downward.
"""

import math
from typing import Tuple

Point = Tuple[float, float]


def angle_between_points(p1: Point, p2: Point, p3: Point) -> float:
    """
    Compute angle at p2 between p1-p2-p3 in degrees.
    Returns angle in range [0, 180], or NaN if either segment has zero length.
    """
    v1 = (p1[0] - p2[0], p1[1] - p2[1])
    v2 = (p3[0] - p2[0], p3[1] - p2[1])

    dot = v1[0] * v2[0] + v1[1] * v2[1]
    mag1 = math.sqrt(v1[0]**2 + v1[1]**2)
    mag2 = math.sqrt(v2[0]**2 + v2[1]**2)

    if mag1 == 0 or mag2 == 0:
        return math.nan

    cos_angle = dot / (mag1 * mag2)
    cos_angle = max(-1.0, min(1.0, cos_angle))  # Clamp for numerical stability

    return math.degrees(math.acos(cos_angle))


def line_angle(p1: Point, p2: Point) -> float:
    """
    Angle of the line p1 -> p2 to the horizontal, in degrees [0, 180].
    The y delta is negated because image y grows downward.
    """
    dx = p2[0] - p1[0]
    dy = p2[1] - p1[1]
    return abs(math.degrees(math.atan2(-dy, dx)))


def distance(p1: Point, p2: Point) -> float:
    """Euclidean distance between two points"""
    return math.sqrt((p1[0] - p2[0])**2 + (p1[1] - p2[1])**2)


def midpoint(p1: Point, p2: Point) -> Point:
    """Midpoint between two points"""
    return ((p1[0] + p2[0]) / 2, (p1[1] + p2[1]) / 2)
