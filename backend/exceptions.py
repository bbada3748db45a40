"""
Custom Exceptions for OneShot
Provides structured error handling with error codes and HTTP status mapping.
"""

from typing import Optional, Dict, Any


class OneShotException(Exception):
    """Base exception for all OneShot errors"""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API response format"""
        result = {
            "error": self.code,
            "detail": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Landmark Errors (400, 422)
# =============================================================================

class MissingLandmarkError(OneShotException):
    """Raised when a landmark required for a metric is absent from the frame"""
    def __init__(self, landmark: str, index: int):
        super().__init__(
            f"Required landmark missing: {landmark} (index {index})",
            "MISSING_LANDMARK",
            422,
            {"landmark": landmark, "index": index}
        )
        self.landmark = landmark
        self.index = index


class InvalidLandmarkData(OneShotException):
    """Raised when landmark provider data cannot be interpreted"""
    def __init__(self, message: str, index: Optional[int] = None):
        details = {"index": index} if index is not None else {}
        super().__init__(message, "INVALID_LANDMARK_DATA", 400, details)


# =============================================================================
# Resource Errors (404, 409)
# =============================================================================

class SessionNotFound(OneShotException):
    """Raised when session doesn't exist"""
    def __init__(self, session_id: str):
        super().__init__(
            f"Session not found: {session_id}",
            "SESSION_NOT_FOUND",
            404,
            {"session_id": session_id}
        )


class NoPoseDetected(OneShotException):
    """Raised when a shot is captured before any valid pose was analyzed"""
    def __init__(self, message: str = "No pose detected - please position yourself in frame"):
        super().__init__(message, "NO_POSE_DETECTED", 409)


class SessionLimitReached(OneShotException):
    """Raised when a new session would exceed the number of sessions held"""
    def __init__(self, max_sessions: int):
        super().__init__(
            "Too many active sessions - please try again later",
            "SESSION_LIMIT_REACHED",
            503,
            {"max_sessions": max_sessions}
        )


# =============================================================================
# Capture Errors (429)
# =============================================================================

class ShotCooldownActive(OneShotException):
    """Raised when a shot is captured inside the cooldown window"""
    def __init__(self, retry_after: float):
        super().__init__(
            "Please wait between shots",
            "SHOT_COOLDOWN_ACTIVE",
            429,
            {"retry_after_seconds": round(retry_after, 2)}
        )
        self.retry_after = retry_after


# =============================================================================
# Configuration Errors (500)
# =============================================================================

class InvalidThresholdConfig(OneShotException):
    """Raised when a threshold table cannot be loaded or validated"""
    def __init__(self, message: str, source: Optional[str] = None):
        details = {"source": source} if source else {}
        super().__init__(message, "INVALID_THRESHOLD_CONFIG", 500, details)
