"""
FORMCOACH Coach Service Router

Endpoints for live coaching sessions, still-photo analysis and the
real-time frame stream. One coaching session exists per process.
"""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from typing import Optional, List
import logging

from core.config import settings
from shared.utils import success_response, handle_exceptions, log_execution_time

from .models import (
    AUTO,
    CoachSession,
    ExerciseLabel,
    ExerciseThresholds,
    MediaPipePoseSource,
    Pose,
    PoseSourceError,
    SessionError,
    decode_image,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# Service instance (singleton pattern)
_session: Optional[CoachSession] = None


def get_coach_session() -> CoachSession:
    """Get or create the coaching session backed by MediaPipe."""
    global _session
    if _session is None:
        thresholds = ExerciseThresholds()
        pose_source = MediaPipePoseSource(
            model_path=settings.POSE_MODEL_PATH,
            model_complexity=settings.POSE_MODEL_COMPLEXITY,
            min_detection_confidence=settings.POSE_MIN_DETECTION_CONFIDENCE,
            min_tracking_confidence=settings.POSE_MIN_TRACKING_CONFIDENCE,
            landmark_min_visibility=thresholds.landmark_min_visibility,
        )
        _session = CoachSession(thresholds=thresholds, pose_source=pose_source)
    return _session


# ============= Pydantic Models =============

class SelectExerciseRequest(BaseModel):
    exercise: str = AUTO


class LandmarkIn(BaseModel):
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


class PoseFrameRequest(BaseModel):
    landmarks: Optional[List[LandmarkIn]] = None  # None/empty: no person detected
    timestamp_ms: Optional[float] = None


# ============= Helpers =============

async def _read_image(upload: UploadFile):
    if upload.content_type and not upload.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Please upload an image (JPG, PNG)")

    content = await upload.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large (max {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB)"
        )

    image = decode_image(content)
    if image is None:
        raise HTTPException(status_code=400, detail="Invalid image data")
    return image


# ============= REST Endpoints =============

@router.get("/exercises")
async def get_exercises():
    """List the exercises the coach recognizes."""
    return success_response([
        {"id": label.value, "name": label.display_name, "counted": label.is_counted}
        for label in ExerciseLabel
        if label != ExerciseLabel.NONE
    ])


@router.get("/session")
async def get_session_status(session: CoachSession = Depends(get_coach_session)):
    """Get current session status."""
    return success_response(session.status())


@router.post("/session/start")
async def start_session(session: CoachSession = Depends(get_coach_session)):
    """Start a live session from clean counters."""
    try:
        status = session.start()
    except PoseSourceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return success_response(status, message="Session started")


@router.post("/session/stop")
async def stop_session(session: CoachSession = Depends(get_coach_session)):
    """Stop the live session."""
    return success_response(session.stop(), message="Session stopped")


@router.post("/session/reset")
async def reset_session(session: CoachSession = Depends(get_coach_session)):
    """Zero counters without ending the session."""
    return success_response(session.reset(), message="Counters reset")


@router.post("/session/exercise")
@handle_exceptions
async def select_exercise(request: SelectExerciseRequest, session: CoachSession = Depends(get_coach_session)):
    """Pin the exercise, or "auto" for automatic recognition."""
    status = session.select_exercise(request.exercise)
    return success_response(status, message=f"Exercise: {session.selection_name}")


@router.post("/session/frame")
async def process_frame(
    image: UploadFile = File(...),
    session: CoachSession = Depends(get_coach_session)
):
    """Run one camera frame through the live pipeline."""
    frame = await _read_image(image)
    try:
        result = session.process_frame(frame)
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PoseSourceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return success_response(result.to_dict())


@router.post("/session/pose")
async def process_pose(request: PoseFrameRequest, session: CoachSession = Depends(get_coach_session)):
    """Run externally detected landmarks through the live pipeline."""
    pose = None
    if request.landmarks:
        pose = Pose.from_sequence(
            [lm.model_dump() for lm in request.landmarks],
            timestamp_ms=request.timestamp_ms or 0.0,
            min_visibility=session.thresholds.landmark_min_visibility,
        )
    try:
        result = session.process_pose(pose, request.timestamp_ms)
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return success_response(result.to_dict())


@router.post("/analyze-photo")
@log_execution_time
async def analyze_photo(
    image: UploadFile = File(...),
    session: CoachSession = Depends(get_coach_session)
):
    """
    Analyze exercise form in a still photo.

    Switches the session to photo mode, which resets all live counters.
    """
    frame = await _read_image(image)
    try:
        result = session.analyze_image(frame)
    except PoseSourceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return success_response(result.to_dict())


# ============= WebSocket Endpoints =============

@router.websocket("/ws/stream")
async def coach_stream(websocket: WebSocket, session: CoachSession = Depends(get_coach_session)):
    """
    Real-time coaching stream.

    Receives JPEG/PNG frames as binary messages and answers each with a
    FRAME_RESULT. The session runs for as long as the socket is open.
    """
    await websocket.accept()

    try:
        session.start()
    except PoseSourceError as e:
        await websocket.send_json({"type": "ERROR", "message": str(e)})
        await websocket.close()
        return

    try:
        await websocket.send_json({
            "type": "CONNECTED",
            "exercise": session.selection_name,
            "message": "Coach stream connected"
        })

        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            data = message.get("bytes")
            if data is None:
                await websocket.send_json({"type": "ERROR", "message": "Expected binary image frames"})
                continue

            frame = decode_image(data)
            if frame is None:
                await websocket.send_json({"type": "ERROR", "message": "Invalid frame data"})
                continue

            try:
                result = session.process_frame(frame)
            except (PoseSourceError, SessionError) as e:
                await websocket.send_json({"type": "ERROR", "message": str(e)})
                await websocket.close()
                return

            await websocket.send_json({"type": "FRAME_RESULT", **result.to_dict()})

    except WebSocketDisconnect:
        logger.info("Client disconnected from coach stream")
    finally:
        session.stop()
