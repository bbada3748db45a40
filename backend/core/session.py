"""
Shooting Session
Frame-driven session state around the stateless pipeline: last valid frame,
previous metrics for phase detection, shot capture with cooldown and history.
"""

import time
import uuid
import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from exceptions import (
    MissingLandmarkError,
    NoPoseDetected,
    SessionLimitReached,
    SessionNotFound,
    ShotCooldownActive,
)
from logging_config import StructuredLogger
from .form_scorer import ShotRecord
from .landmarks import LandmarkSet, UserConfig
from .pipeline import FormAnalysisPipeline, FrameAnalysis
from .shot_history import SessionStats, ShotHistory

logger = logging.getLogger(__name__)

DEFAULT_SHOT_COOLDOWN_SEC = 2.0
DEFAULT_IDLE_TTL_SEC = 1800.0
DEFAULT_MAX_SESSIONS = 500


class ShootingSession:
    """
    One archer's session.

    Frames that fail analysis are dropped and the last valid state is kept.
    Captures are serialized by a minimum interval between shots.
    """

    def __init__(
        self,
        pipeline: FormAnalysisPipeline,
        user_config: UserConfig,
        shot_cooldown_sec: float = DEFAULT_SHOT_COOLDOWN_SEC,
        session_id: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.pipeline = pipeline
        self.user_config = user_config
        self.shot_cooldown_sec = shot_cooldown_sec
        self.history = ShotHistory()

        self._clock = clock
        self._last_landmarks: Optional[LandmarkSet] = None
        self._last_analysis: Optional[FrameAnalysis] = None
        self._last_shot_time: Optional[float] = None
        self.frames_processed = 0
        self.frames_skipped = 0

        self._log = StructuredLogger(__name__, {"session_id": self.session_id})

    @property
    def last_analysis(self) -> Optional[FrameAnalysis]:
        """Most recent valid frame analysis"""
        return self._last_analysis

    @property
    def shots(self) -> Tuple[ShotRecord, ...]:
        return self.history.shots

    def process_frame(self, landmarks: Optional[LandmarkSet]) -> Optional[FrameAnalysis]:
        """
        Analyze one frame.

        Returns None when nothing was detected or a required landmark is
        missing; the previous valid state is left untouched.
        """
        if landmarks is None:
            return None

        previous = self._last_analysis.metrics if self._last_analysis else None
        try:
            analysis = self.pipeline.analyze_frame(landmarks, self.user_config, previous)
        except MissingLandmarkError as e:
            self.frames_skipped += 1
            self._log.debug("Frame skipped", landmark=e.landmark)
            return None

        self._last_landmarks = landmarks
        self._last_analysis = analysis
        self.frames_processed += 1
        return analysis

    def capture_shot(self, timestamp: Optional[datetime] = None) -> ShotRecord:
        """
        Capture the last valid frame as a shot.

        Raises:
            ShotCooldownActive: If called within the cooldown window
            NoPoseDetected: If no valid frame has been analyzed yet
        """
        now = self._clock()
        if self._last_shot_time is not None:
            elapsed = now - self._last_shot_time
            if elapsed < self.shot_cooldown_sec:
                raise ShotCooldownActive(self.shot_cooldown_sec - elapsed)

        if self._last_landmarks is None:
            raise NoPoseDetected()

        shot = self.pipeline.capture(self._last_landmarks, self.user_config, timestamp)
        self.history.add(shot)
        self._last_shot_time = now

        self._log.info(
            "Shot captured",
            score=shot.overall_score,
            errors=len(shot.errors),
            shot_number=len(self.history),
        )
        return shot

    def stats(self) -> SessionStats:
        return self.history.stats()

    def end(self) -> SessionStats:
        """Return the final stats and clear all session state"""
        final = self.history.stats()
        self.history.clear()
        self._last_landmarks = None
        self._last_analysis = None
        self._last_shot_time = None
        self._log.info("Session ended", total_shots=final.total_shots)
        return final


class SessionRegistry:
    """
    Active sessions by id, owned by the hosting application.

    Sessions idle longer than `idle_ttl_sec` are dropped; at most
    `max_sessions` are held at once.
    """

    def __init__(
        self,
        pipeline: FormAnalysisPipeline,
        shot_cooldown_sec: float = DEFAULT_SHOT_COOLDOWN_SEC,
        clock: Callable[[], float] = time.monotonic,
        idle_ttl_sec: float = DEFAULT_IDLE_TTL_SEC,
        max_sessions: int = DEFAULT_MAX_SESSIONS
    ):
        self.pipeline = pipeline
        self.shot_cooldown_sec = shot_cooldown_sec
        self.idle_ttl_sec = idle_ttl_sec
        self.max_sessions = max_sessions
        self._clock = clock
        self._sessions: Dict[str, ShootingSession] = {}
        self._last_seen: Dict[str, float] = {}

    def _is_expired(self, session_id: str, now: float) -> bool:
        return now - self._last_seen[session_id] > self.idle_ttl_sec

    def _drop(self, session_id: str) -> SessionStats:
        session = self._sessions.pop(session_id)
        del self._last_seen[session_id]
        return session.end()

    def sweep(self) -> int:
        """Drop idle sessions; returns how many were removed"""
        now = self._clock()
        expired = [sid for sid in self._sessions if self._is_expired(sid, now)]
        for sid in expired:
            self._drop(sid)
        if expired:
            logger.info(f"Expired {len(expired)} idle session(s)", extra={"active": len(self._sessions)})
        return len(expired)

    def create(self, user_config: UserConfig) -> ShootingSession:
        """
        Raises:
            SessionLimitReached: If max_sessions are still active after the sweep
        """
        self.sweep()
        if len(self._sessions) >= self.max_sessions:
            logger.warning(f"Session limit reached ({self.max_sessions})")
            raise SessionLimitReached(self.max_sessions)

        session = ShootingSession(
            self.pipeline,
            user_config,
            shot_cooldown_sec=self.shot_cooldown_sec,
            clock=self._clock,
        )
        self._sessions[session.session_id] = session
        self._last_seen[session.session_id] = self._clock()
        logger.info(
            f"Session started: {session.session_id}",
            extra={"handedness": user_config.handedness.value}
        )
        return session

    def get(self, session_id: str) -> ShootingSession:
        """Resolve a session and mark it active; an idle-expired id is not found"""
        if session_id not in self._sessions:
            raise SessionNotFound(session_id)

        now = self._clock()
        if self._is_expired(session_id, now):
            self._drop(session_id)
            logger.info(f"Session expired: {session_id}")
            raise SessionNotFound(session_id)

        self._last_seen[session_id] = now
        return self._sessions[session_id]

    def end(self, session_id: str) -> SessionStats:
        self.get(session_id)
        return self._drop(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
