"""
Pose Landmark Model
Fixed MediaPipe landmark enumeration, per-frame landmark sets and the
archer profile that decides which side holds the bow.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from exceptions import InvalidLandmarkData, MissingLandmarkError


NUM_LANDMARKS = 33


class Landmark(IntEnum):
    """MediaPipe Pose landmark indices (33-point model)"""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


class Handedness(str, Enum):
    """Which hand holds the bow"""
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class LandmarkPoint:
    """
    A single landmark in normalized image coordinates.

    x grows to the right and y grows downward. Values from the provider are
    untrusted and may fall outside [0, 1].
    """
    x: float
    y: float
    visibility: float = 0.0

    @property
    def xy(self) -> Tuple[float, float]:
        return (self.x, self.y)


class LandmarkSet:
    """
    Immutable landmark snapshot for one frame, addressed by Landmark.

    Slots may be empty when the provider delivered fewer points; reading an
    empty slot raises MissingLandmarkError.
    """

    __slots__ = ("_points",)

    def __init__(self, points: Sequence[Optional[LandmarkPoint]]):
        if len(points) > NUM_LANDMARKS:
            raise InvalidLandmarkData(
                f"Expected at most {NUM_LANDMARKS} landmarks, got {len(points)}"
            )
        self._points: Tuple[Optional[LandmarkPoint], ...] = tuple(points)

    @classmethod
    def from_landmarks(cls, landmarks: Iterable[Optional[Mapping]]) -> "LandmarkSet":
        """
        Build a set from provider data: a list of {"x", "y", "visibility"} dicts.

        Raises:
            InvalidLandmarkData: If an entry has no numeric x/y
        """
        points = []
        for idx, lm in enumerate(landmarks):
            if lm is None:
                points.append(None)
                continue
            try:
                x = float(lm["x"])
                y = float(lm["y"])
                visibility = float(lm.get("visibility", 0.0) or 0.0)
            except (KeyError, TypeError, ValueError) as e:
                raise InvalidLandmarkData(f"Malformed landmark at index {idx}: {e}", idx) from e
            points.append(LandmarkPoint(x, y, visibility))
        return cls(points)

    def get(self, landmark: Landmark) -> LandmarkPoint:
        """Get a landmark, raising MissingLandmarkError if absent"""
        idx = int(landmark)
        point = self._points[idx] if idx < len(self._points) else None
        if point is None:
            raise MissingLandmarkError(Landmark(idx).name, idx)
        return point

    def find(self, landmark: Landmark) -> Optional[LandmarkPoint]:
        """Get a landmark or None if absent"""
        idx = int(landmark)
        return self._points[idx] if idx < len(self._points) else None

    def scaled(self, factor: float) -> "LandmarkSet":
        """Copy with every coordinate multiplied by factor"""
        return LandmarkSet([
            LandmarkPoint(p.x * factor, p.y * factor, p.visibility) if p else None
            for p in self._points
        ])

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self):
        return iter(self._points)

    def __eq__(self, other) -> bool:
        if not isinstance(other, LandmarkSet):
            return NotImplemented
        return self._points == other._points

    def __hash__(self) -> int:
        return hash(self._points)

    def __repr__(self) -> str:
        present = sum(1 for p in self._points if p is not None)
        return f"LandmarkSet({present}/{NUM_LANDMARKS} landmarks)"


@dataclass(frozen=True)
class UserConfig:
    """
    Archer profile. Only handedness affects analysis; the remaining
    fields are carried through to shot records for display.
    """
    handedness: Handedness = Handedness.RIGHT
    height_cm: Optional[float] = None
    draw_length_in: Optional[float] = None
    distance_m: Optional[float] = None
    bow_type: Optional[str] = None
    experience: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "handedness": self.handedness.value,
            "height_cm": self.height_cm,
            "draw_length_in": self.draw_length_in,
            "distance_m": self.distance_m,
            "bow_type": self.bow_type,
            "experience": self.experience,
        }


@dataclass(frozen=True)
class ArcherSides:
    """Bow/draw side landmarks resolved from handedness"""
    bow_shoulder: Landmark
    bow_elbow: Landmark
    bow_wrist: Landmark
    draw_shoulder: Landmark
    draw_elbow: Landmark
    draw_wrist: Landmark
    # Mouth corner on the draw side of the face
    anchor_reference: Landmark


_LEFT_BOW = ArcherSides(
    bow_shoulder=Landmark.LEFT_SHOULDER,
    bow_elbow=Landmark.LEFT_ELBOW,
    bow_wrist=Landmark.LEFT_WRIST,
    draw_shoulder=Landmark.RIGHT_SHOULDER,
    draw_elbow=Landmark.RIGHT_ELBOW,
    draw_wrist=Landmark.RIGHT_WRIST,
    anchor_reference=Landmark.MOUTH_RIGHT,
)

_RIGHT_BOW = ArcherSides(
    bow_shoulder=Landmark.RIGHT_SHOULDER,
    bow_elbow=Landmark.RIGHT_ELBOW,
    bow_wrist=Landmark.RIGHT_WRIST,
    draw_shoulder=Landmark.LEFT_SHOULDER,
    draw_elbow=Landmark.LEFT_ELBOW,
    draw_wrist=Landmark.LEFT_WRIST,
    anchor_reference=Landmark.MOUTH_LEFT,
)


def resolve_sides(handedness: Handedness) -> ArcherSides:
    """Map handedness to bow side, draw side and anchor reference"""
    return _LEFT_BOW if Handedness(handedness) is Handedness.LEFT else _RIGHT_BOW

