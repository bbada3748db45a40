"""
OneShot - Configurable Thresholds
All thresholds can be tuned without code changes by modifying this file
or by pointing THRESHOLDS_FILE at a JSON override.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import ClassVar, Dict, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from exceptions import InvalidThresholdConfig

logger = logging.getLogger(__name__)


class CheckKey(str, Enum):
    """Form checks, declared in evaluation order"""
    SHOULDER_LINE = "shoulder_line"
    BOW_ELBOW = "bow_elbow"
    DRAW_ALIGN = "draw_align"
    HEAD_TILT = "head_tilt"
    SPINE_LEAN = "spine_lean"
    ANCHOR = "anchor"


# Evaluation order drives tie-breaks in feedback selection
CHECK_ORDER: Tuple[CheckKey, ...] = tuple(CheckKey)


@dataclass(frozen=True)
class MaxBound:
    """Passes while the value stays at or below `max`"""
    max: float
    kind: ClassVar[str] = "max_bound"

    @property
    def reference(self) -> float:
        return self.max

    def passes(self, value: float) -> bool:
        return math.isfinite(value) and value <= self.max


@dataclass(frozen=True)
class TargetTolerance:
    """Passes while the value stays within `tolerance` of `target`"""
    target: float
    tolerance: float
    kind: ClassVar[str] = "target_tolerance"

    @property
    def reference(self) -> float:
        return self.target

    def passes(self, value: float) -> bool:
        return math.isfinite(value) and abs(value - self.target) <= self.tolerance


ThresholdCheck = Union[MaxBound, TargetTolerance]


@dataclass(frozen=True)
class ThresholdEntry:
    """One row of the form threshold table"""
    check: ThresholdCheck
    unit: str
    label: str
    description: str


def _default_form_checks() -> Dict[CheckKey, ThresholdEntry]:
    return {
        CheckKey.SHOULDER_LINE: ThresholdEntry(
            MaxBound(max=10.0), "°", "Shoulder Level", "Keep shoulders level"
        ),
        CheckKey.BOW_ELBOW: ThresholdEntry(
            TargetTolerance(target=175.0, tolerance=15.0), "°",
            "Bow Arm Extension", "Straighten bow elbow"
        ),
        CheckKey.DRAW_ALIGN: ThresholdEntry(
            MaxBound(max=15.0), "°", "Draw Alignment", "Align draw elbow with string"
        ),
        CheckKey.HEAD_TILT: ThresholdEntry(
            MaxBound(max=12.0), "°", "Head Position", "Keep head level"
        ),
        CheckKey.SPINE_LEAN: ThresholdEntry(
            MaxBound(max=12.0), "°", "Spine Alignment", "Stand tall, reduce lean"
        ),
        CheckKey.ANCHOR: ThresholdEntry(
            MaxBound(max=0.25), "ratio", "Anchor Point", "Anchor to mouth corner"
        ),
    }


@dataclass
class FormThresholds:
    """Threshold table, one entry per form check in evaluation order"""
    checks: Dict[CheckKey, ThresholdEntry] = field(default_factory=_default_form_checks)

    def __post_init__(self):
        missing = [key.value for key in CHECK_ORDER if key not in self.checks]
        if missing:
            raise InvalidThresholdConfig(
                f"Threshold table is missing checks: {', '.join(missing)}"
            )
        self.checks = {key: self.checks[key] for key in CHECK_ORDER}

    def entry(self, key: CheckKey) -> ThresholdEntry:
        return self.checks[key]

    def items(self):
        return self.checks.items()


@dataclass
class PhaseConfig:
    """Draw phase heuristics (degrees / anchor ratio)"""
    # Bow arm near-straight and hand at the face
    anchor_min_bow_elbow: float = 160.0
    anchor_max_ratio: float = 0.3
    # Above this the bow arm is considered raised; below it the archer is at rest
    draw_min_bow_elbow: float = 140.0


@dataclass
class SeverityConfig:
    """Error severity cut points on the relative deviation ratio"""
    high_ratio: float = 0.5
    medium_ratio: float = 0.25
    # Denominator floor for thresholds near zero (anchor ratio)
    min_denominator: float = 1.0


@dataclass
class VisibilityConfig:
    """Landmark visibility thresholds"""
    # Minimum visibility for a frame to count as reliable
    min_visibility: float = 0.5


@dataclass
class ThresholdConfig:
    """Master threshold configuration"""
    form: FormThresholds = field(default_factory=FormThresholds)
    phase: PhaseConfig = field(default_factory=PhaseConfig)
    severity: SeverityConfig = field(default_factory=SeverityConfig)
    visibility: VisibilityConfig = field(default_factory=VisibilityConfig)


# Default config instance - modify this to tune thresholds
THRESHOLDS = ThresholdConfig()


def get_thresholds() -> ThresholdConfig:
    """Get the default threshold configuration"""
    return THRESHOLDS


# =============================================================================
# Overrides
# =============================================================================

class ThresholdEntryModel(BaseModel):
    """A single check override as it appears in a thresholds file"""
    model_config = {"extra": "forbid"}

    kind: Literal["max_bound", "target_tolerance"]
    max: Optional[float] = Field(default=None, allow_inf_nan=False)
    target: Optional[float] = Field(default=None, allow_inf_nan=False)
    tolerance: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    unit: Optional[str] = None
    label: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def check_bounds(self) -> "ThresholdEntryModel":
        if self.kind == "max_bound" and self.max is None:
            raise ValueError("max_bound requires 'max'")
        if self.kind == "target_tolerance" and (self.target is None or self.tolerance is None):
            raise ValueError("target_tolerance requires 'target' and 'tolerance'")
        return self

    def to_entry(self, default: ThresholdEntry) -> ThresholdEntry:
        if self.kind == "max_bound":
            check: ThresholdCheck = MaxBound(max=self.max)
        else:
            check = TargetTolerance(target=self.target, tolerance=self.tolerance)
        return ThresholdEntry(
            check=check,
            unit=self.unit if self.unit is not None else default.unit,
            label=self.label if self.label is not None else default.label,
            description=self.description if self.description is not None else default.description,
        )


class ThresholdFileModel(BaseModel):
    """Thresholds file layout; omitted checks keep their defaults"""
    model_config = {"extra": "forbid"}

    shoulder_line: Optional[ThresholdEntryModel] = None
    bow_elbow: Optional[ThresholdEntryModel] = None
    draw_align: Optional[ThresholdEntryModel] = None
    head_tilt: Optional[ThresholdEntryModel] = None
    spine_lean: Optional[ThresholdEntryModel] = None
    anchor: Optional[ThresholdEntryModel] = None


def thresholds_from_dict(data: Mapping, source: Optional[str] = None) -> FormThresholds:
    """
    Build a form threshold table from a mapping of check overrides.

    Raises:
        InvalidThresholdConfig: If the mapping doesn't validate
    """
    try:
        parsed = ThresholdFileModel.model_validate(data)
    except ValidationError as e:
        raise InvalidThresholdConfig(f"Invalid threshold overrides: {e}", source) from e

    defaults = _default_form_checks()
    checks = {}
    for key in CHECK_ORDER:
        override = getattr(parsed, key.value)
        checks[key] = override.to_entry(defaults[key]) if override else defaults[key]
    return FormThresholds(checks=checks)


def load_thresholds(path: Union[str, Path]) -> ThresholdConfig:
    """Load a ThresholdConfig whose form table is overridden from a JSON file"""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise InvalidThresholdConfig("Thresholds file must contain a JSON object", str(path))
        form = thresholds_from_dict(data, source=str(path))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read thresholds file {path}: {e}")
        raise InvalidThresholdConfig(f"Could not read thresholds file: {e}", str(path)) from e
    except InvalidThresholdConfig as e:
        logger.error(f"Rejected thresholds file {path}: {e.message}")
        raise

    logger.info(f"Loaded threshold overrides from {path}", extra={"checks": sorted(data)})
    return ThresholdConfig(form=form)
