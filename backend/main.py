"""
FastAPI Application - OneShot Form Coach API
Hosts the archery form analysis engine for a browser front end that streams
pose landmarks frame by frame.

Run with:
    uvicorn main:app --reload --host 0.0.0.0 --port 8000
"""

import math
import time
import logging
from contextlib import asynccontextmanager
from typing import Annotated, Callable, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from config import ThresholdConfig, get_thresholds, load_thresholds
from config.settings import Settings, get_settings
from core.landmarks import Handedness, LandmarkSet, NUM_LANDMARKS, UserConfig
from core.metric_calculator import FormMetrics
from core.pipeline import FormAnalysisPipeline
from core.report_generator import (
    frame_analysis_to_dict,
    session_stats_to_dict,
    shot_record_to_dict,
    thresholds_to_dict,
)
from core.session import SessionRegistry
from logging_config import setup_logging
from middleware.error_handler import setup_error_handlers
from middleware.performance import PerformanceMiddleware

logger = logging.getLogger(__name__)


# =============================================================================
# Request Models
# =============================================================================

class LandmarkModel(BaseModel):
    model_config = {"extra": "ignore"}

    x: float
    y: float
    visibility: float = 0.0


class UserConfigModel(BaseModel):
    handedness: Handedness = Handedness.RIGHT
    height_cm: Optional[float] = Field(default=None, gt=0)
    draw_length_in: Optional[float] = Field(default=None, gt=0)
    distance_m: Optional[float] = Field(default=None, gt=0)
    bow_type: Optional[str] = Field(default=None, max_length=50)
    experience: Optional[str] = Field(default=None, max_length=50)

    def to_user_config(self) -> UserConfig:
        return UserConfig(**self.model_dump())


class MetricsModel(BaseModel):
    """Previously reported metrics; null stands for an indeterminate value"""
    shoulder_line_deg: Optional[float] = None
    bow_elbow_deg: Optional[float] = None
    draw_align_deg: Optional[float] = None
    head_tilt_deg: Optional[float] = None
    spine_lean_deg: Optional[float] = None
    anchor_ratio: Optional[float] = None
    shoulder_width: Optional[float] = None
    confidence: Optional[float] = None

    def to_metrics(self) -> FormMetrics:
        return FormMetrics(**{
            k: math.nan if v is None else v for k, v in self.model_dump().items()
        })


LandmarkList = Annotated[List[Optional[LandmarkModel]], Field(max_length=NUM_LANDMARKS)]


class FrameRequest(BaseModel):
    landmarks: Optional[LandmarkList] = Field(
        default=None,
        description="33 pose landmarks, or null when no person was detected"
    )


class AnalyzeRequest(BaseModel):
    landmarks: LandmarkList
    user_config: UserConfigModel = Field(default_factory=UserConfigModel)
    previous_metrics: Optional[MetricsModel] = None


def to_landmark_set(landmarks: List[Optional[LandmarkModel]]) -> LandmarkSet:
    return LandmarkSet.from_landmarks(
        lm.model_dump() if lm is not None else None for lm in landmarks
    )


# =============================================================================
# Dependencies
# =============================================================================

def get_pipeline(request: Request) -> FormAnalysisPipeline:
    return request.app.state.pipeline


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


# =============================================================================
# Routes
# =============================================================================

router = APIRouter()


@router.get("/", tags=["Health"])
async def root(request: Request):
    settings: Settings = request.app.state.settings
    return {"status": "ok", "service": settings.APP_NAME, "version": settings.APP_VERSION}


@router.get("/health", tags=["Health"])
async def health(registry: SessionRegistry = Depends(get_registry)):
    return {"status": "healthy", "active_sessions": len(registry)}


@router.get("/api/thresholds", tags=["Analysis"])
async def get_threshold_table(pipeline: FormAnalysisPipeline = Depends(get_pipeline)):
    return thresholds_to_dict(pipeline.thresholds.form)


@router.post("/api/analyze", tags=["Analysis"])
async def analyze_frame(
    body: AnalyzeRequest,
    pipeline: FormAnalysisPipeline = Depends(get_pipeline)
):
    """Stateless single-frame analysis; a missing landmark is reported as 422"""
    previous = body.previous_metrics.to_metrics() if body.previous_metrics else None
    analysis = pipeline.analyze_frame(
        to_landmark_set(body.landmarks),
        body.user_config.to_user_config(),
        previous,
    )
    return frame_analysis_to_dict(analysis)


@router.post("/api/sessions", tags=["Session"])
async def start_session(
    body: UserConfigModel,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.create(body.to_user_config())
    return {
        "session_id": session.session_id,
        "user_config": session.user_config.to_dict(),
        "shot_cooldown_sec": session.shot_cooldown_sec,
    }


@router.post("/api/sessions/{session_id}/frames", tags=["Session"])
async def submit_frame(
    session_id: str,
    body: FrameRequest,
    registry: SessionRegistry = Depends(get_registry)
):
    """
    Analyze one frame. When nothing is detected or the frame is skipped,
    the last valid analysis is returned so the display can keep showing it.
    """
    session = registry.get(session_id)
    landmarks = to_landmark_set(body.landmarks) if body.landmarks else None
    analysis = session.process_frame(landmarks)

    latest = analysis or session.last_analysis
    return {
        "detected": landmarks is not None,
        "skipped": landmarks is not None and analysis is None,
        "analysis": frame_analysis_to_dict(latest) if latest else None,
    }


@router.post("/api/sessions/{session_id}/shots", tags=["Session"])
async def capture_shot(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    shot = registry.get(session_id).capture_shot()
    return shot_record_to_dict(shot)


@router.get("/api/sessions/{session_id}/shots", tags=["Session"])
async def list_shots(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    return {"session_id": session_id, "shots": [shot_record_to_dict(s) for s in session.shots]}


@router.get("/api/sessions/{session_id}/stats", tags=["Session"])
async def session_stats(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return session_stats_to_dict(registry.get(session_id).stats(), session_id)


@router.delete("/api/sessions/{session_id}", tags=["Session"])
async def end_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return session_stats_to_dict(registry.end(session_id), session_id)


# =============================================================================
# Application Factory
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings.LOG_LEVEL, json_format=settings.LOG_JSON, log_file=settings.LOG_FILE)
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} starting ({settings.ENVIRONMENT})")
    yield
    logger.info(f"{settings.APP_NAME} shutting down")


def create_app(
    settings: Optional[Settings] = None,
    thresholds: Optional[ThresholdConfig] = None,
    clock: Callable[[], float] = time.monotonic
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    if thresholds is None:
        thresholds = load_thresholds(settings.THRESHOLDS_FILE) if settings.THRESHOLDS_FILE else get_thresholds()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Real-time archery form analysis from pose landmarks",
        version=settings.APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Correlation-ID"],
        max_age=3600,
    )
    app.add_middleware(PerformanceMiddleware)
    setup_error_handlers(app, settings)

    pipeline = FormAnalysisPipeline(thresholds)
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.sessions = SessionRegistry(
        pipeline,
        settings.SHOT_COOLDOWN_SEC,
        clock=clock,
        idle_ttl_sec=settings.IDLE_SESSION_TTL_SEC,
        max_sessions=settings.MAX_SESSIONS
    )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
