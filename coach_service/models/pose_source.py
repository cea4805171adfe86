"""
FORMCOACH Coach Service - Pose Source

MediaPipe-based pose estimation. Maps a BGR image (OpenCV) to at most one
Pose; all model and inference failures surface as PoseSourceError.
"""

from typing import Optional, Protocol
import logging

import cv2
import numpy as np

from .landmarks import Pose

logger = logging.getLogger(__name__)


class PoseSourceError(RuntimeError):
    """The pose model could not be initialized or failed during inference."""


class PoseSource(Protocol):
    """Anything that turns an image into zero or one Pose."""

    def open(self, static_image: bool = False) -> None:
        ...

    def detect(self, image: np.ndarray, timestamp_ms: float = 0.0) -> Optional[Pose]:
        ...

    def close(self) -> None:
        ...


def decode_image(data: bytes) -> Optional[np.ndarray]:
    """Decode JPEG/PNG bytes into a BGR image, None if the bytes are not an image."""
    if not data:
        return None
    nparr = np.frombuffer(data, np.uint8)
    return cv2.imdecode(nparr, cv2.IMREAD_COLOR)


class MediaPipePoseSource:
    """
    Single-person pose detector backed by MediaPipe Pose.

    Uses the Tasks PoseLandmarker when a model path is given, otherwise the
    legacy solutions API, which ships its own model.
    """

    def __init__(
        self,
        model_path: Optional[str] = None,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        landmark_min_visibility: float = 0.1,
    ):
        self.model_path = model_path
        self.model_complexity = model_complexity
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self.landmark_min_visibility = landmark_min_visibility
        self.static_image = False
        self.pose_detector = None
        self._uses_tasks = False

    @property
    def is_open(self) -> bool:
        return self.pose_detector is not None

    def open(self, static_image: bool = False):
        """
        Initialize the MediaPipe detector for video or still-image mode.

        Raises:
            PoseSourceError: if MediaPipe is missing or the model fails to load
        """
        if self.is_open and self.static_image == static_image:
            return
        self.close()
        self.static_image = static_image

        try:
            import mediapipe as mp

            if self.model_path:
                from mediapipe.tasks import python as mp_python
                from mediapipe.tasks.python import vision

                base_options = mp_python.BaseOptions(model_asset_path=self.model_path)
                options = vision.PoseLandmarkerOptions(
                    base_options=base_options,
                    running_mode=vision.RunningMode.IMAGE if static_image else vision.RunningMode.VIDEO,
                    num_poses=1,
                    min_pose_detection_confidence=self.min_detection_confidence,
                    min_pose_presence_confidence=self.min_detection_confidence,
                    min_tracking_confidence=self.min_tracking_confidence,
                )
                self.pose_detector = vision.PoseLandmarker.create_from_options(options)
                self._uses_tasks = True
            else:
                self.pose_detector = mp.solutions.pose.Pose(
                    static_image_mode=static_image,
                    model_complexity=self.model_complexity,
                    enable_segmentation=False,
                    min_detection_confidence=self.min_detection_confidence,
                    min_tracking_confidence=self.min_tracking_confidence,
                )
                self._uses_tasks = False
        except Exception as e:
            self.pose_detector = None
            logger.error(f"Failed to initialize MediaPipe: {e}")
            raise PoseSourceError(f"Pose model unavailable: {e}") from e

        mode = "image" if static_image else "video"
        logger.info(f"MediaPipe pose detector initialized ({mode} mode)")

    def detect(self, image: np.ndarray, timestamp_ms: float = 0.0) -> Optional[Pose]:
        """
        Detect pose landmarks in a BGR image.

        Args:
            image: BGR image as numpy array (H, W, 3)
            timestamp_ms: Frame timestamp in milliseconds

        Returns:
            Pose, or None if no person was detected
        """
        if not self.is_open:
            raise PoseSourceError("Pose source is not open")

        try:
            rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
            if self._uses_tasks:
                import mediapipe as mp

                mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
                if self.static_image:
                    results = self.pose_detector.detect(mp_image)
                else:
                    results = self.pose_detector.detect_for_video(mp_image, int(timestamp_ms))
                if not results.pose_landmarks:
                    return None
                points = results.pose_landmarks[0]
            else:
                results = self.pose_detector.process(rgb)
                if not results.pose_landmarks:
                    return None
                points = results.pose_landmarks.landmark
        except Exception as e:
            logger.error(f"Pose detection error: {e}")
            raise PoseSourceError(f"Pose detection failed: {e}") from e

        return Pose.from_sequence(
            points,
            timestamp_ms=timestamp_ms,
            min_visibility=self.landmark_min_visibility,
        )

    def close(self):
        """Release resources."""
        if self.pose_detector is not None and hasattr(self.pose_detector, "close"):
            self.pose_detector.close()
        self.pose_detector = None
