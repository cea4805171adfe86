#!/usr/bin/env python3
"""
FORMCOACH command line

Usage Examples:
---------------
# Analyze a single photo
formcoach analyze photo.jpg
formcoach analyze photo.jpg --exercise plank --json

# Live coaching from the default webcam
formcoach live --camera 0

    keys: r reset | a auto | 1 squats | 2 lunges | 3 plank | 4 push-ups
          s toggle skeleton | q stop

# Serve the HTTP / WebSocket API
formcoach serve --port 8000
"""

import argparse
import json
import logging
import sys
from typing import Optional

import cv2

from core.config import settings
from shared.utils import LOG_FORMAT, LOG_DATE_FORMAT

from .models import (
    AUTO,
    CoachSession,
    ExerciseLabel,
    ExerciseThresholds,
    FrameResult,
    MediaPipePoseSource,
    PoseLandmark,
    PoseSourceError,
)

logger = logging.getLogger(__name__)

WINDOW_NAME = "FORMCOACH"

EXERCISE_KEYS = {
    ord("1"): ExerciseLabel.SQUATS,
    ord("2"): ExerciseLabel.LUNGES,
    ord("3"): ExerciseLabel.PLANK,
    ord("4"): ExerciseLabel.PUSHUPS,
}

L = PoseLandmark
SKELETON_CONNECTIONS = [
    (L.LEFT_SHOULDER, L.RIGHT_SHOULDER),
    (L.LEFT_SHOULDER, L.LEFT_ELBOW), (L.LEFT_ELBOW, L.LEFT_WRIST),
    (L.RIGHT_SHOULDER, L.RIGHT_ELBOW), (L.RIGHT_ELBOW, L.RIGHT_WRIST),
    (L.LEFT_SHOULDER, L.LEFT_HIP), (L.RIGHT_SHOULDER, L.RIGHT_HIP),
    (L.LEFT_HIP, L.RIGHT_HIP),
    (L.LEFT_HIP, L.LEFT_KNEE), (L.LEFT_KNEE, L.LEFT_ANKLE),
    (L.RIGHT_HIP, L.RIGHT_KNEE), (L.RIGHT_KNEE, L.RIGHT_ANKLE),
]


def build_session(exercise: Optional[str] = None) -> CoachSession:
    """Session with a MediaPipe pose source configured from settings."""
    thresholds = ExerciseThresholds()
    pose_source = MediaPipePoseSource(
        model_path=settings.POSE_MODEL_PATH,
        model_complexity=settings.POSE_MODEL_COMPLEXITY,
        min_detection_confidence=settings.POSE_MIN_DETECTION_CONFIDENCE,
        min_tracking_confidence=settings.POSE_MIN_TRACKING_CONFIDENCE,
        landmark_min_visibility=thresholds.landmark_min_visibility,
    )
    session = CoachSession(thresholds=thresholds, pose_source=pose_source)
    if exercise:
        session.select_exercise(exercise)
    return session


def format_result(result: FrameResult) -> str:
    lines = [
        f"Exercise: {result.label.display_name}",
        f"Feedback: {result.message} [{result.severity.value}]",
    ]
    lines.extend(f"  • {item}" for item in result.advice)
    return "\n".join(lines)


def _hex_to_bgr(color: str):
    color = color.lstrip("#")
    r, g, b = (int(color[i:i + 2], 16) for i in (0, 2, 4))
    return (b, g, r)


def draw_overlay(frame, result: FrameResult, draw_skeleton: bool = True):
    """Skeleton, counters and the feedback line on top of the camera frame."""
    height, width = frame.shape[:2]

    if draw_skeleton and result.pose is not None:
        def to_px(joint):
            lm = result.pose.point(joint)
            return None if lm is None else (int(lm.x * width), int(lm.y * height))

        for a, b in SKELETON_CONNECTIONS:
            pa, pb = to_px(a), to_px(b)
            if pa and pb:
                cv2.line(frame, pa, pb, (0, 255, 0), 3)
        for joint in {j for pair in SKELETON_CONNECTIONS for j in pair}:
            point = to_px(joint)
            if point:
                cv2.circle(frame, point, 4, (0, 0, 255), -1)

    color = _hex_to_bgr(result.feedback.color)
    cv2.putText(frame, result.label.display_name, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.9, (255, 255, 255), 2)
    cv2.putText(frame, f"Reps: {result.rep_count}  Hold: {result.hold_seconds}s", (10, 65),
                cv2.FONT_HERSHEY_SIMPLEX, 0.8, (255, 255, 255), 2)
    cv2.putText(frame, result.message.encode("ascii", "ignore").decode(), (10, height - 20),
                cv2.FONT_HERSHEY_SIMPLEX, 0.7, color, 2)
    return frame


# ═══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════════

def cmd_analyze(args: argparse.Namespace) -> int:
    image = cv2.imread(args.image)
    if image is None:
        logger.error(f"Cannot read image: {args.image}")
        return 2

    session = build_session(args.exercise)
    try:
        result = session.analyze_image(image)
    except PoseSourceError as e:
        logger.error(f"Pose model unavailable: {e}")
        return 1
    finally:
        session.stop()

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(format_result(result))
    return 0


def cmd_live(args: argparse.Namespace) -> int:
    cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        logger.error(f"Cannot open camera {args.camera}")
        return 1

    session = build_session(args.exercise)
    try:
        session.start()
    except PoseSourceError as e:
        logger.error(f"Pose model unavailable: {e}")
        cap.release()
        return 1

    draw_skeleton = True
    try:
        while session.is_live:
            ret, frame = cap.read()
            if not ret:
                logger.warning("Camera stream ended")
                break

            result = session.process_frame(frame)
            cv2.imshow(WINDOW_NAME, draw_overlay(frame, result, draw_skeleton))

            key = cv2.waitKey(1) & 0xFF
            if key in (ord("q"), 27):
                break
            elif key == ord("r"):
                session.reset()
            elif key == ord("a"):
                session.select_exercise(AUTO)
            elif key == ord("s"):
                draw_skeleton = not draw_skeleton
            elif key in EXERCISE_KEYS:
                session.select_exercise(EXERCISE_KEYS[key])
    except PoseSourceError as e:
        logger.error(f"Detection failed, restart the session: {e}")
        return 1
    finally:
        session.stop()
        cap.release()
        cv2.destroyAllWindows()

    logger.info(f"Session finished: {session.rep_state.count} reps")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn
    uvicorn.run("main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def parse_arguments(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Real-time exercise coaching from pose estimation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    exercise_choices = [AUTO] + [label.value for label in ExerciseLabel if label != ExerciseLabel.NONE]

    analyze = subparsers.add_parser("analyze", help="Analyze a still photo")
    analyze.add_argument("image", type=str, help="Path to the image")
    analyze.add_argument("--exercise", choices=exercise_choices, default=AUTO, help="Pin the exercise")
    analyze.add_argument("--json", action="store_true", help="Print the frame result as JSON")
    analyze.set_defaults(func=cmd_analyze)

    live = subparsers.add_parser("live", help="Live coaching from a camera")
    live.add_argument("--camera", type=int, default=0, help="Camera index")
    live.add_argument("--exercise", choices=exercise_choices, default=AUTO, help="Pin the exercise")
    live.set_defaults(func=cmd_live)

    serve = subparsers.add_parser("serve", help="Run the HTTP/WebSocket API")
    serve.add_argument("--host", type=str, default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point for CLI usage."""
    args = parse_arguments(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
